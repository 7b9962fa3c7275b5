"""Registry of live relay sessions keyed by client connection id.

Sessions are never shared between connections; the registry only exists so
the server can report on them and close them all at shutdown.
"""

import asyncio
from typing import Any, Dict, List, Optional

from livecaptions.config.logging_config import configure_logging
from livecaptions.session_manager import RelaySession

logger = configure_logging("session_registry")


class SessionRegistry:
    """In-memory map of connection id to RelaySession."""

    def __init__(self):
        self._sessions: Dict[str, RelaySession] = {}
        self.total_sessions = 0

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, connection_id: str) -> bool:
        return connection_id in self._sessions

    def add(self, connection_id: str, session: RelaySession) -> None:
        if connection_id in self._sessions:
            raise ValueError(f"Connection {connection_id} already has a session")
        self._sessions[connection_id] = session
        self.total_sessions += 1
        logger.info(f"Registered session {session.session_id} for {connection_id}")

    def get(self, connection_id: str) -> Optional[RelaySession]:
        return self._sessions.get(connection_id)

    def remove(self, connection_id: str) -> Optional[RelaySession]:
        session = self._sessions.pop(connection_id, None)
        if session is not None:
            logger.info(f"Removed session {session.session_id} for {connection_id}")
        return session

    def list_sessions(self) -> List[RelaySession]:
        return list(self._sessions.values())

    async def close_all(self) -> None:
        """Close every registered session, used at shutdown."""
        sessions = list(self._sessions.items())
        self._sessions.clear()
        if not sessions:
            return
        logger.info(f"Closing {len(sessions)} active session(s)")
        results = await asyncio.gather(
            *(session.close() for _, session in sessions), return_exceptions=True
        )
        for (connection_id, _), result in zip(sessions, results):
            if isinstance(result, Exception):
                logger.error(f"Error closing session for {connection_id}: {result}")

    def get_stats(self) -> Dict[str, Any]:
        sessions = self.list_sessions()
        by_mode: Dict[str, int] = {}
        by_status: Dict[str, int] = {}
        for session in sessions:
            mode = session.mode.value if session.mode else "unconfigured"
            by_mode[mode] = by_mode.get(mode, 0) + 1
            by_status[session.status.value] = by_status.get(session.status.value, 0) + 1
        return {
            "active_sessions": len(sessions),
            "total_sessions": self.total_sessions,
            "by_mode": by_mode,
            "by_status": by_status,
            "sessions": [session.to_dict() for session in sessions],
        }
