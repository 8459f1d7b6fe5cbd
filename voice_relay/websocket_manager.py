"""
WebSocket connection manager for Twilio Media Streams.

Each accepted media-stream connection gets its own CallSession and its own
Gemini Live client. The manager only wires them together and keeps the session
registry current; all protocol handling lives in the session.
"""

import logging
from typing import Callable, Optional

from fastapi import WebSocket

from voice_relay.bot.gemini_live import GeminiLiveClient
from voice_relay.bot.session import CallSession
from voice_relay.config.constants import LOGGER_NAME
from voice_relay.config.settings import RelaySettings
from voice_relay.models.gemini_schemas import WireSchema
from voice_relay.models.session_registry import SessionRegistry

logger = logging.getLogger(LOGGER_NAME)

PeerFactory = Callable[[RelaySettings], GeminiLiveClient]


def default_peer_factory(settings: RelaySettings) -> GeminiLiveClient:
    return GeminiLiveClient(settings.connect_url, WireSchema(settings.wire_schema))


class WebSocketManager:
    """Accepts Twilio media-stream connections and runs one session per call."""

    def __init__(
        self,
        settings: Optional[RelaySettings] = None,
        peer_factory: PeerFactory = default_peer_factory,
    ):
        self.settings = settings or RelaySettings.from_env()
        self.peer_factory = peer_factory
        self.session_registry = SessionRegistry()

    async def handle_websocket(self, websocket: WebSocket) -> None:
        """Handle a media-stream WebSocket for the whole call.

        Args:
            websocket (WebSocket): The FastAPI WebSocket connection object

        The connection is accepted, a CallSession is created and registered,
        and the session runs until the call ends. Whatever ends it, the
        session is closed and unregistered before returning.
        """
        await websocket.accept()
        session = CallSession(websocket, self.peer_factory(self.settings), self.settings)
        self.session_registry.add_session(session)
        logger.info(
            f"Twilio media stream connected [{session.connection_id}] "
            f"({len(self.session_registry)} active)"
        )

        try:
            await session.run()
        except Exception as e:
            logger.error(f"Error in call session [{session.connection_id}]: {e}", exc_info=True)
        finally:
            await session.close()
            self.session_registry.remove_session(session.connection_id)
            logger.info(f"Media stream closed [{session.connection_id}]")
