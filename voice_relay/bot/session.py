"""
Per-call session bridging Twilio Media Streams with Gemini Live.

A CallSession owns one accepted Twilio WebSocket and one GeminiLiveClient for
the lifetime of a call. Both inbound directions run as tasks on the same event
loop. Each task handles its own frames in arrival order, but sends yield, so
the two directions interleave at every await.

Handshake:
  CONNECTING -> AWAITING_AUDIO_PEER_READY -> READY -> CLOSED
  (ERROR is reachable from any non-terminal state)

Caller audio is only forwarded once Gemini acknowledges the setup message.
Audio arriving earlier is queued (bounded, oldest evicted) or dropped,
depending on settings. READY is entered only after the greeting is sent and
the queue has drained, so caller audio reaches Gemini in the order Twilio
delivered it.
"""

import asyncio
import logging
import uuid
from collections import deque
from enum import Enum
from typing import Any, Deque, Optional, Union

from fastapi import WebSocket, WebSocketDisconnect
from websockets.exceptions import ConnectionClosed

from voice_relay.audio import pipeline
from voice_relay.audio.resampler import conversion_ratio
from voice_relay.bot.gemini_live import AudioPeerConnectionError, GeminiLiveClient
from voice_relay.config.constants import (
    EVENT_CONNECTED,
    EVENT_MARK,
    EVENT_MEDIA,
    EVENT_START,
    EVENT_STOP,
    LOGGER_NAME,
    PEER_INPUT_MIME_TYPE,
    PEER_INPUT_SAMPLE_RATE,
    TELEPHONY_SAMPLE_RATE,
)
from voice_relay.config.settings import RelaySettings
from voice_relay.models.frames import MalformedFrame, UnrecognizedFrame
from voice_relay.models.gemini_schemas import (
    AudioOutputEvent,
    InterruptedEvent,
    OutboundPeerMessage,
    PeerEvent,
    SetupCompleteEvent,
    TurnCompleteEvent,
    build_audio_input,
    build_setup,
    build_text_turn,
)
from voice_relay.models.twilio_schemas import (
    ClearMessage,
    MediaMessage,
    OutboundMediaMessage,
    OutboundTelephonyMessage,
    StartMessage,
    TelephonyMessage,
    parse_telephony_message,
)

logger = logging.getLogger(LOGGER_NAME)

# Errors that mean the Twilio side of the call is gone
TELEPHONY_TRANSPORT_ERRORS = (WebSocketDisconnect, RuntimeError, OSError)


class HandshakeState(str, Enum):
    """Lifecycle of a call session."""

    CONNECTING = "connecting"
    AWAITING_AUDIO_PEER_READY = "awaiting_audio_peer_ready"
    READY = "ready"
    CLOSED = "closed"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (HandshakeState.CLOSED, HandshakeState.ERROR)


class CallSession:
    """
    Relay for one phone call.

    Typical use is ``await CallSession(websocket, client, settings).run()``;
    run() returns once the call is over and both connections are closed.
    """

    def __init__(
        self,
        telephony: WebSocket,
        peer: GeminiLiveClient,
        settings: RelaySettings,
    ):
        self.connection_id = uuid.uuid4().hex
        self.telephony = telephony
        self.peer = peer
        self.settings = settings

        self.session_id: Optional[str] = None
        self.call_sid: Optional[str] = None
        self.state = HandshakeState.CONNECTING
        self.close_reason: Optional[str] = None

        self.pending_uplink: Deque[bytes] = deque(maxlen=settings.pre_ready_queue_max_chunks)
        self.peer_speaking = False

        self.uplink_chunks_forwarded = 0
        self.downlink_chunks_forwarded = 0
        self.uplink_chunks_dropped = 0

        self._ready = asyncio.Event()
        self._shutdown = asyncio.Event()
        self._closed = False

        self.telephony_handlers = {
            EVENT_CONNECTED: self._handle_connected,
            EVENT_START: self._handle_start,
            EVENT_MEDIA: self._handle_media,
            EVENT_STOP: self._handle_stop,
            EVENT_MARK: self._handle_mark,
        }

    # Lifecycle
    async def run(self) -> None:
        """Open the Gemini session, relay until either side ends, then tear down."""
        try:
            await self.peer.connect()
        except AudioPeerConnectionError as e:
            logger.error(f"[{self.connection_id}] {e}")
            self._transition(HandshakeState.ERROR)
            self.close_reason = "audio peer connection failed"
            await self.close()
            return

        if not await self._send_to_peer(build_setup(self.settings.model, self.settings.voice)):
            self._transition(HandshakeState.ERROR)
            self.close_reason = "setup message could not be sent"
            await self.close()
            return
        self._transition(HandshakeState.AWAITING_AUDIO_PEER_READY)

        tasks = [
            asyncio.create_task(self._telephony_loop()),
            asyncio.create_task(self._peer_loop()),
            asyncio.create_task(self._handshake_watchdog()),
        ]
        try:
            await self._shutdown.wait()
        finally:
            for task in tasks:
                task.cancel()
            results = await asyncio.gather(*tasks, return_exceptions=True)
            for result in results:
                # CancelledError is a BaseException and is skipped here
                if isinstance(result, Exception):
                    logger.error(
                        f"[{self.connection_id}] Relay task failed: {result!r}", exc_info=result
                    )
                    self._transition(HandshakeState.ERROR)
            await self.close()

    def request_shutdown(self, reason: str, error: bool = False) -> None:
        """Ask run() to tear the session down; the first reason given wins."""
        if self.close_reason is None:
            self.close_reason = reason
        if error:
            self._transition(HandshakeState.ERROR)
        self._shutdown.set()

    async def close(self) -> None:
        """Close both connections. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        self._transition(HandshakeState.CLOSED)
        self._shutdown.set()

        await self.peer.close()
        try:
            await self.telephony.close()
        except TELEPHONY_TRANSPORT_ERRORS as e:
            logger.debug(f"[{self.connection_id}] Telephony socket already closed: {e}")

        logger.info(
            f"[{self.connection_id}] Session {self.session_id or '<unbound>'} ended "
            f"({self.close_reason or 'closed'}): state={self.state.value}, "
            f"uplink={self.uplink_chunks_forwarded}, downlink={self.downlink_chunks_forwarded}, "
            f"dropped={self.uplink_chunks_dropped}"
        )

    def _transition(self, new_state: HandshakeState) -> None:
        if self.state.is_terminal or self.state == new_state:
            return
        logger.info(f"[{self.connection_id}] {self.state.value} -> {new_state.value}")
        self.state = new_state

    def bind_session_id(self, stream_sid: str) -> bool:
        """Bind the Twilio stream identifier; a second, different value is refused."""
        if self.session_id is None:
            self.session_id = stream_sid
            return True
        if stream_sid != self.session_id:
            logger.warning(
                f"[{self.connection_id}] Ignoring streamSid {stream_sid}; "
                f"session already bound to {self.session_id}"
            )
        return False

    # Loops
    async def _telephony_loop(self) -> None:
        try:
            while True:
                raw = await self._receive_telephony_frame()
                if await self.handle_telephony_frame(raw):
                    self.request_shutdown("stop event")
                    return
        except WebSocketDisconnect:
            self.request_shutdown("telephony disconnected")
        except TELEPHONY_TRANSPORT_ERRORS as e:
            logger.error(f"[{self.connection_id}] Telephony connection error: {e}")
            self.request_shutdown("telephony connection error", error=True)
        finally:
            self.request_shutdown("telephony loop ended")

    async def _receive_telephony_frame(self) -> Union[str, bytes]:
        """Next text or binary frame from Twilio; binary frames are decoded like text."""
        message = await self.telephony.receive()
        if message["type"] == "websocket.disconnect":
            raise WebSocketDisconnect(message.get("code", 1000))
        text = message.get("text")
        return text if text is not None else message.get("bytes") or b""

    async def _peer_loop(self) -> None:
        try:
            async for event in self.peer.events():
                await self.handle_peer_event(event)
            self.request_shutdown("audio peer closed")
        except ConnectionClosed:
            self.request_shutdown("audio peer connection error", error=True)
        finally:
            self.request_shutdown("audio peer loop ended")

    async def _handshake_watchdog(self) -> None:
        try:
            await asyncio.wait_for(self._ready.wait(), timeout=self.settings.handshake_timeout_seconds)
        except asyncio.TimeoutError:
            logger.error(
                f"[{self.connection_id}] Gemini Live did not complete setup within "
                f"{self.settings.handshake_timeout_seconds}s"
            )
            self.request_shutdown("handshake timeout", error=True)

    # Telephony -> Gemini
    async def handle_telephony_frame(self, raw: Any) -> bool:
        """
        Process one Twilio frame.

        Returns:
            bool: True if the frame ends the call (stop event)
        """
        message = parse_telephony_message(raw)
        if isinstance(message, MalformedFrame):
            logger.warning(
                f"[{self.connection_id}] Dropping malformed telephony frame: "
                f"{message.reason} ({message.raw_excerpt})"
            )
            return False
        if isinstance(message, UnrecognizedFrame):
            logger.debug(f"[{self.connection_id}] Ignoring telephony event: {message.frame_type}")
            return False

        handler = self.telephony_handlers[message.event]
        return bool(await handler(message))

    async def _handle_connected(self, message: TelephonyMessage) -> None:
        logger.debug(f"[{self.connection_id}] Twilio media stream connected")

    async def _handle_start(self, message: StartMessage) -> None:
        if self.bind_session_id(message.start.streamSid):
            self.call_sid = message.start.callSid
            logger.info(
                f"[{self.connection_id}] Stream started: {self.session_id} (call {self.call_sid})"
            )

    async def _handle_media(self, message: MediaMessage) -> None:
        if self.state.is_terminal:
            return
        if self.settings.echo_suppression_enabled and self.peer_speaking:
            self.uplink_chunks_dropped += 1
            return

        mulaw = message.media.audio
        if self.state != HandshakeState.READY:
            self._hold_pre_ready(mulaw)
            return
        await self._forward_uplink(mulaw)

    async def _handle_stop(self, message: TelephonyMessage) -> bool:
        logger.info(f"[{self.connection_id}] Stream stopped: {self.session_id or '<unbound>'}")
        return True

    async def _handle_mark(self, message: TelephonyMessage) -> None:
        logger.debug(f"[{self.connection_id}] Playback mark reached")

    def _hold_pre_ready(self, mulaw: bytes) -> None:
        if not self.settings.queue_pre_ready_audio:
            self.uplink_chunks_dropped += 1
            return
        if len(self.pending_uplink) == self.pending_uplink.maxlen:
            # deque(maxlen) evicts the oldest chunk on append
            self.uplink_chunks_dropped += 1
        self.pending_uplink.append(mulaw)

    async def _forward_uplink(self, mulaw: bytes) -> None:
        pcm = pipeline.uplink(
            mulaw, target_rate=PEER_INPUT_SAMPLE_RATE, gain=self.settings.uplink_gain
        )
        if await self._send_to_peer(build_audio_input(pcm, PEER_INPUT_MIME_TYPE)):
            self.uplink_chunks_forwarded += 1
            logger.debug(f"[{self.connection_id}] Uplink {len(mulaw)}B mu-law -> {len(pcm)}B PCM")

    async def _flush_pending_uplink(self) -> None:
        if self.pending_uplink:
            logger.info(f"[{self.connection_id}] Flushing {len(self.pending_uplink)} queued chunk(s)")
        while self.pending_uplink and not self.state.is_terminal:
            await self._forward_uplink(self.pending_uplink.popleft())

    async def _send_to_peer(self, message: OutboundPeerMessage) -> bool:
        return await self.peer.send_message(message)

    # Gemini -> Telephony
    async def handle_peer_event(self, event: PeerEvent) -> None:
        """Process one decoded Gemini Live event."""
        if isinstance(event, SetupCompleteEvent):
            await self._on_setup_complete()
        elif isinstance(event, AudioOutputEvent):
            await self._on_audio_output(event)
        elif isinstance(event, InterruptedEvent):
            await self._on_interrupted()
        elif isinstance(event, TurnCompleteEvent):
            self.peer_speaking = False
        elif isinstance(event, MalformedFrame):
            logger.warning(
                f"[{self.connection_id}] Dropping malformed Gemini frame: "
                f"{event.reason} ({event.raw_excerpt})"
            )
        else:
            logger.debug(f"[{self.connection_id}] Ignoring Gemini message: {event.frame_type}")

    async def _on_setup_complete(self) -> None:
        if self.state != HandshakeState.AWAITING_AUDIO_PEER_READY:
            logger.debug(f"[{self.connection_id}] Ignoring setup acknowledgement in state {self.state.value}")
            return
        self._ready.set()

        if self.settings.greeting_text:
            await self._send_to_peer(build_text_turn(self.settings.greeting_text))
        await self._flush_pending_uplink()
        # Chunks that arrived during the flush were drained by it; no await from here on
        self._transition(HandshakeState.READY)

    async def _on_audio_output(self, event: AudioOutputEvent) -> None:
        if self.session_id is None:
            logger.debug(f"[{self.connection_id}] Dropping model audio: no streamSid bound yet")
            return
        try:
            conversion_ratio(event.sample_rate, TELEPHONY_SAMPLE_RATE)
        except ValueError as e:
            logger.warning(f"[{self.connection_id}] Dropping model audio ({event.mime_type}): {e}")
            return

        mulaw = pipeline.downlink(event.audio, source_rate=event.sample_rate)
        if not mulaw:
            return
        if await self._send_to_telephony(OutboundMediaMessage.from_audio(self.session_id, mulaw)):
            # Only audio the caller can actually hear gates the uplink
            self.peer_speaking = True
            self.downlink_chunks_forwarded += 1
            logger.debug(
                f"[{self.connection_id}] Downlink {len(event.audio)}B PCM@{event.sample_rate} -> {len(mulaw)}B mu-law"
            )

    async def _on_interrupted(self) -> None:
        self.peer_speaking = False
        if self.session_id is None:
            logger.debug(f"[{self.connection_id}] Interruption before streamSid bound; nothing to clear")
            return
        logger.info(f"[{self.connection_id}] Gemini interrupted; clearing Twilio playback")
        await self._send_to_telephony(ClearMessage(streamSid=self.session_id))

    async def _send_to_telephony(self, message: OutboundTelephonyMessage) -> bool:
        try:
            await self.telephony.send_text(message.model_dump_json())
            return True
        except TELEPHONY_TRANSPORT_ERRORS as e:
            logger.error(f"[{self.connection_id}] Failed to send to Twilio: {e}")
            self.request_shutdown("telephony send failed", error=True)
            return False
