from __future__ import annotations

from threading import Lock

from app.core.exceptions import ResourceNotFoundError
from app.services.edit_session import EditSession


class InMemoryEditSessionRegistry:
    def __init__(self) -> None:
        self._sessions: dict[str, EditSession] = {}
        self._lock = Lock()

    def add(self, session: EditSession) -> EditSession:
        with self._lock:
            self._sessions[session.id] = session
        return session

    def get(self, session_id: str) -> EditSession:
        with self._lock:
            session = self._sessions.get(session_id)
        if session is None:
            raise ResourceNotFoundError("Edit session", session_id)
        return session

    def remove(self, session_id: str) -> EditSession:
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is None:
            raise ResourceNotFoundError("Edit session", session_id)
        return session

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def clear(self) -> None:
        with self._lock:
            self._sessions.clear()


_registry = InMemoryEditSessionRegistry()


def get_session_registry() -> InMemoryEditSessionRegistry:
    return _registry


def clear_session_registry() -> None:
    _registry.clear()
