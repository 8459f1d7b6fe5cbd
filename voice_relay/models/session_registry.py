"""
Registry of the call sessions currently running in this process.

Sessions share no state with each other; the registry only lets the health
endpoint report how many calls are live.
"""

from typing import TYPE_CHECKING, Dict

if TYPE_CHECKING:
    from voice_relay.bot.session import CallSession


class SessionRegistry:
    """
    Tracks active CallSession objects by connection id.

    Entries are added when a media-stream WebSocket is accepted and removed
    when its session finishes, whatever the reason.
    """

    def __init__(self):
        """Initialize an empty registry."""
        self.active_sessions: Dict[str, "CallSession"] = {}

    def add_session(self, session: "CallSession") -> None:
        """
        Register a session under its connection id.

        Args:
            session: The session that was just created for an accepted connection
        """
        self.active_sessions[session.connection_id] = session

    def remove_session(self, connection_id: str) -> None:
        """Forget a session; unknown ids are ignored."""
        self.active_sessions.pop(connection_id, None)

    def __len__(self) -> int:
        return len(self.active_sessions)
