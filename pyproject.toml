[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "memory-graph"
version = "1.3.0"
description = "Real-time event broadcasting, SSE sessions and REST views over a knowledge graph"
requires-python = ">=3.10"
keywords = ["knowledge-graph", "mcp", "websocket", "sse", "events", "memory"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Database",
    "Typing :: Typed",
]
dependencies = []

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[tool.hatch.build.targets.wheel]
packages = ["memory_graph"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
