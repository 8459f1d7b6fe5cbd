"""
WebSocket client for the Gemini Live (BidiGenerateContent) API.

One GeminiLiveClient belongs to exactly one call session. It opens the
connection, serializes outbound messages with the configured wire schema and
yields decoded server events. It never reconnects: a dropped connection ends
the call, and the next call starts a fresh client.
"""

import asyncio
import logging
import time
from typing import AsyncIterator, Optional

import websockets
from pydantic import BaseModel
from websockets.exceptions import (
    ConnectionClosed,
    ConnectionClosedError,
    ConnectionClosedOK,
    WebSocketException,
)

from voice_relay.config.constants import LOGGER_NAME
from voice_relay.models.gemini_schemas import PeerEvent, WireSchema, parse_server_message

logger = logging.getLogger(LOGGER_NAME)

CONNECTION_TIMEOUT = 15  # seconds
SEND_TIMEOUT = 5  # seconds

# WebSocket configuration for low latency
WS_MAX_SIZE = 16 * 1024 * 1024  # 16MB - large enough for audio chunks
WS_MAX_QUEUE = 32
WS_PING_INTERVAL = 5
WS_PING_TIMEOUT = 10


class AudioPeerConnectionError(Exception):
    """Raised when the Gemini Live connection cannot be established."""


class GeminiLiveClient:
    """
    Client for one Gemini Live session.
    """

    def __init__(self, url: str, schema: WireSchema = WireSchema.CAMEL):
        self.url = url
        self.schema = schema
        self.ws = None
        self.close_code: Optional[int] = None
        self.close_reason: Optional[str] = None
        self._is_closing = False

    @property
    def is_open(self) -> bool:
        return self.ws is not None and not self._is_closing

    async def connect(self) -> None:
        """
        Open the WebSocket connection.

        Raises:
            AudioPeerConnectionError: If the connection fails or times out
        """
        if self._is_closing:
            raise AudioPeerConnectionError("Cannot connect - client is closing")

        # The API key travels in the query string; keep it out of the logs
        logger.info(f"Connecting to Gemini Live at {self.url.split('?')[0]}")
        connection_start = time.time()
        try:
            self.ws = await asyncio.wait_for(
                websockets.connect(
                    self.url,
                    max_size=WS_MAX_SIZE,
                    max_queue=WS_MAX_QUEUE,
                    ping_interval=WS_PING_INTERVAL,
                    ping_timeout=WS_PING_TIMEOUT,
                    compression=None,
                ),
                timeout=CONNECTION_TIMEOUT,
            )
        except asyncio.TimeoutError:
            raise AudioPeerConnectionError(
                f"Timeout while connecting to Gemini Live (after {CONNECTION_TIMEOUT}s)"
            )
        except (OSError, WebSocketException) as e:
            raise AudioPeerConnectionError(f"Failed to connect to Gemini Live: {e}") from e

        logger.debug(f"Gemini Live connection established in {time.time() - connection_start:.2f}s")

    async def send_message(self, message: BaseModel) -> bool:
        """
        Send one outbound message.

        Returns:
            bool: True if the frame was handed to the transport, False if the
            connection is closed or the send timed out
        """
        if not self.is_open:
            logger.debug("Cannot send - Gemini Live connection not open")
            return False

        payload = self.schema.dump(message)
        try:
            await asyncio.wait_for(self.ws.send(payload), timeout=SEND_TIMEOUT)
            return True
        except asyncio.TimeoutError:
            logger.warning(f"Timeout while sending {type(message).__name__} to Gemini Live")
            return False
        except ConnectionClosed as e:
            logger.warning(f"Gemini Live connection closed while sending: {e}")
            return False

    async def events(self) -> AsyncIterator[PeerEvent]:
        """
        Yield decoded server events until the connection closes.

        A normal close ends the iteration quietly. An abnormal close is
        recorded on the client and re-raised as ConnectionClosedError.
        """
        if self.ws is None:
            return
        try:
            async for raw in self.ws:
                for event in parse_server_message(raw, self.schema):
                    yield event
        except ConnectionClosedOK as e:
            self._record_close(e)
            logger.info(f"Gemini Live connection closed normally: {self._describe_close()}")
        except ConnectionClosedError as e:
            self._record_close(e)
            logger.warning(f"Gemini Live connection closed unexpectedly: {self._describe_close()}")
            raise
        else:
            logger.info("Gemini Live connection closed")

    def _record_close(self, error: ConnectionClosed) -> None:
        if error.rcvd is not None:
            self.close_code = error.rcvd.code
            self.close_reason = error.rcvd.reason

    def _describe_close(self) -> str:
        if self.close_code is None:
            return "no close frame received"
        # Gemini reports quota and setup errors in the close reason
        return f"code={self.close_code} reason={self.close_reason or '<none>'}"

    async def close(self) -> None:
        """Close the connection. Safe to call more than once."""
        if self._is_closing:
            return
        self._is_closing = True
        if self.ws is None:
            return
        try:
            await self.ws.close()
        except (ConnectionClosed, OSError) as e:
            logger.debug(f"Ignoring error while closing Gemini Live connection: {e}")
        logger.info("Gemini Live client closed")
