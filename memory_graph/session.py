"""Client sessions and server-sent event payloads for the MCP stream."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Any, Optional

from memory_graph.events import WsMessage


@dataclass
class ClientSession:
    session_id: str
    user: str
    api_key: Optional[str]
    connected_at: int


class SessionManager:
    """Tracks connected clients by session id."""

    def __init__(self) -> None:
        self._sessions: dict[str, ClientSession] = {}
        self._lock = threading.Lock()

    @staticmethod
    def generate_session_id() -> str:
        return f"sess_{time.time_ns():x}"

    def create_session(self, user: str, api_key: Optional[str] = None) -> ClientSession:
        session = ClientSession(
            session_id=self.generate_session_id(),
            user=user,
            api_key=api_key,
            connected_at=int(time.time()),
        )
        with self._lock:
            self._sessions[session.session_id] = session
        return session

    def remove_session(self, session_id: str) -> None:
        with self._lock:
            self._sessions.pop(session_id, None)

    def get_session(self, session_id: str) -> Optional[ClientSession]:
        with self._lock:
            return self._sessions.get(session_id)

    def session_count(self) -> int:
        with self._lock:
            return len(self._sessions)

    @staticmethod
    def validate_api_key(api_key: str) -> Optional[str]:
        """Map an API key to a user name; ``user:rest`` names the user directly."""
        if not api_key:
            return None
        username, sep, _ = api_key.partition(":")
        if sep and username:
            return username
        return f"api-user-{api_key[:8]}"


@dataclass
class SseResponse:
    """A JSON-RPC response pushed over the stream."""

    response: dict[str, Any]

    def to_dict(self) -> dict:
        return {"type": "response", **self.response}


@dataclass
class SseGraphEvent:
    """A graph change; the inner event's fields, including its type, take precedence."""

    event: WsMessage

    def to_dict(self) -> dict:
        return {"type": "graph_event", **self.event.to_dict()}


@dataclass
class SsePing:
    timestamp: int

    def to_dict(self) -> dict:
        return {"type": "ping", "timestamp": self.timestamp}


@dataclass
class SseWelcome:
    session_id: str
    server_name: str
    server_version: str
    sequence_id: int

    def to_dict(self) -> dict:
        return {
            "type": "welcome",
            "session_id": self.session_id,
            "server_name": self.server_name,
            "server_version": self.server_version,
            "sequence_id": self.sequence_id,
        }


@dataclass
class SseError:
    code: str
    message: str

    def to_dict(self) -> dict:
        return {"type": "error", "code": self.code, "message": self.message}