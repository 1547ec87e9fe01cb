"""Knowledge-graph events, broadcasting, batching, SSE sessions and REST views."""

__version__ = "1.3.0"