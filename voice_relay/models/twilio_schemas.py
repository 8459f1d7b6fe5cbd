"""
Pydantic models for Twilio Media Streams WebSocket messages.

This module defines the frames exchanged with Twilio over the media-stream
WebSocket, providing validation on the way in and serialization on the way out.

Inbound flow:
  {"event":"connected","protocol":"Call","version":"1.0.0"}
  {"event":"start","start":{"streamSid":"...","callSid":"..."}}
  {"event":"media","media":{"payload":"<base64 mu-law>"}}
  {"event":"stop"}

Outbound:
  {"event":"media","streamSid":"...","media":{"payload":"<base64 mu-law>"}}
  {"event":"clear","streamSid":"..."}
"""

import base64
import binascii
import json
from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import AfterValidator, BaseModel, Field, ValidationError, field_validator

from voice_relay.config.constants import (
    EVENT_CLEAR,
    EVENT_CONNECTED,
    EVENT_MARK,
    EVENT_MEDIA,
    EVENT_START,
    EVENT_STOP,
)
from voice_relay.models.frames import MalformedFrame, UnrecognizedFrame, excerpt


def _validate_base64(v: str) -> str:
    if not v:
        raise ValueError("Audio payload cannot be empty")
    try:
        base64.b64decode(v, validate=True)
    except (binascii.Error, ValueError):
        raise ValueError("Invalid base64 encoded audio data")
    return v


Base64Audio = Annotated[str, AfterValidator(_validate_base64)]


class BaseTelephonyMessage(BaseModel):
    """Base model for all media-stream messages."""

    event: str = Field(..., description="Message event identifier")
    sequenceNumber: Optional[str] = Field(None, description="Per-stream message counter")


# Inbound messages
class ConnectedMessage(BaseTelephonyMessage):
    """First message Twilio sends after the WebSocket opens."""

    event: Literal["connected"]
    protocol: Optional[str] = None
    version: Optional[str] = None


class StartPayload(BaseModel):
    """Stream metadata carried by the start message."""

    streamSid: str = Field(..., description="Identifier of this media stream")
    callSid: Optional[str] = Field(None, description="Identifier of the call")
    accountSid: Optional[str] = None
    tracks: Optional[List[str]] = None
    customParameters: Optional[Dict[str, str]] = None

    @field_validator("streamSid")
    def validate_stream_sid(cls, v):
        """Reject an empty stream identifier."""
        if not v.strip():
            raise ValueError("streamSid cannot be empty")
        return v


class StartMessage(BaseTelephonyMessage):
    """Model for the start message; binds the stream identifier."""

    event: Literal["start"]
    start: StartPayload


class MediaPayload(BaseModel):
    """One chunk of caller audio."""

    payload: Base64Audio = Field(..., description="Base64-encoded 8 kHz mu-law audio")
    track: Optional[str] = None
    chunk: Optional[str] = None
    timestamp: Optional[str] = None

    @property
    def audio(self) -> bytes:
        return base64.b64decode(self.payload)


class MediaMessage(BaseTelephonyMessage):
    """Model for an inbound media message."""

    event: Literal["media"]
    streamSid: Optional[str] = None
    media: MediaPayload


class StopMessage(BaseTelephonyMessage):
    """Model for the stop message that ends the stream."""

    event: Literal["stop"]
    streamSid: Optional[str] = None


class MarkMessage(BaseTelephonyMessage):
    """Playback marker echoed back by Twilio."""

    event: Literal["mark"]
    streamSid: Optional[str] = None
    mark: Optional[Dict[str, str]] = None


# Outbound messages
class OutboundMediaPayload(BaseModel):
    payload: Base64Audio = Field(..., description="Base64-encoded 8 kHz mu-law audio")


class OutboundMediaMessage(BaseModel):
    """Model for a media message sent to Twilio for playback."""

    event: Literal["media"] = EVENT_MEDIA
    streamSid: str
    media: OutboundMediaPayload

    @classmethod
    def from_audio(cls, stream_sid: str, mulaw_bytes: bytes) -> "OutboundMediaMessage":
        return cls(
            streamSid=stream_sid,
            media=OutboundMediaPayload(payload=base64.b64encode(mulaw_bytes).decode("utf-8")),
        )


class ClearMessage(BaseModel):
    """Model for the clear message that flushes Twilio's playback buffer."""

    event: Literal["clear"] = EVENT_CLEAR
    streamSid: str


# Union type for all possible inbound messages
TelephonyMessage = Union[
    ConnectedMessage,
    StartMessage,
    MediaMessage,
    StopMessage,
    MarkMessage,
]

# Union type for all possible outbound messages
OutboundTelephonyMessage = Union[OutboundMediaMessage, ClearMessage]

INBOUND_MODELS = {
    EVENT_CONNECTED: ConnectedMessage,
    EVENT_START: StartMessage,
    EVENT_MEDIA: MediaMessage,
    EVENT_STOP: StopMessage,
    EVENT_MARK: MarkMessage,
}


def parse_telephony_message(
    raw: Union[str, bytes],
) -> Union[TelephonyMessage, MalformedFrame, UnrecognizedFrame]:
    """
    Decode one inbound media-stream frame.

    Returns:
        A typed message, UnrecognizedFrame for an unknown event, or
        MalformedFrame when the JSON or a required field is invalid
    """
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        return MalformedFrame(reason=f"Invalid JSON: {e}", raw_excerpt=excerpt(raw))

    if not isinstance(data, dict):
        return MalformedFrame(reason="Frame is not a JSON object", raw_excerpt=excerpt(raw))

    event = data.get("event")
    model = INBOUND_MODELS.get(event) if isinstance(event, str) else None
    if model is None:
        return UnrecognizedFrame(frame_type=event if isinstance(event, str) else None)

    try:
        return model(**data)
    except ValidationError as e:
        return MalformedFrame(
            reason=f"Invalid {event} message: {e.error_count()} validation error(s)",
            raw_excerpt=excerpt(raw),
        )
