"""
Pydantic models for Gemini Live (BidiGenerateContent) WebSocket messages.

Gemini Live has shipped two field-naming conventions for the same protocol:
camelCase (``serverContent``, ``setupComplete``) and snake_case
(``server_content``, ``setup_complete``). Messages here are declared once with
snake_case attributes; a WireSchema picks the convention when a frame is
encoded or decoded, and nothing past that boundary sees wire field names.
"""

import base64
import binascii
import json
import re
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from voice_relay.config.constants import (
    PEER_INPUT_MIME_TYPE,
    PEER_OUTPUT_MIME_PREFIX,
    PEER_OUTPUT_SAMPLE_RATE,
    RESPONSE_MODALITY_AUDIO,
    WIRE_SCHEMA_CAMEL,
    WIRE_SCHEMA_SNAKE,
)
from voice_relay.models.frames import MalformedFrame, UnrecognizedFrame, excerpt

RATE_PATTERN = re.compile(r"rate=(\d+)")


class WireSchema(str, Enum):
    """Field-naming convention used on the Gemini Live wire."""

    CAMEL = WIRE_SCHEMA_CAMEL
    SNAKE = WIRE_SCHEMA_SNAKE

    def key(self, name: str) -> str:
        """Translate a snake_case field name into this schema's wire name."""
        return to_camel(name) if self is WireSchema.CAMEL else name

    def dump(self, message: BaseModel) -> str:
        """Serialize an outbound message using this schema's field names."""
        return json.dumps(message.model_dump(by_alias=self is WireSchema.CAMEL, exclude_none=True))


class LiveModel(BaseModel):
    """Base for outbound Gemini Live messages."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Setup
class PrebuiltVoiceConfig(LiveModel):
    voice_name: str


class VoiceConfig(LiveModel):
    prebuilt_voice_config: PrebuiltVoiceConfig


class SpeechConfig(LiveModel):
    voice_config: VoiceConfig


class GenerationConfig(LiveModel):
    response_modalities: List[str] = Field(default_factory=lambda: [RESPONSE_MODALITY_AUDIO])
    speech_config: Optional[SpeechConfig] = None


class SetupPayload(LiveModel):
    model: str = Field(..., description="Model resource name, e.g. models/gemini-2.0-flash-exp")
    generation_config: GenerationConfig = Field(default_factory=GenerationConfig)


class SetupMessage(LiveModel):
    """First message of every session; declares model and response modality."""

    setup: SetupPayload


# Client content (injected turns)
class TextPart(LiveModel):
    text: str


class Content(LiveModel):
    role: Literal["user", "model"] = "user"
    parts: List[TextPart]


class ClientContent(LiveModel):
    turns: List[Content]
    turn_complete: bool = True


class ClientContentMessage(LiveModel):
    """A synthetic conversation turn, used for the greeting."""

    client_content: ClientContent


# Realtime input
class Blob(LiveModel):
    mime_type: str
    data: str = Field(..., description="Base64-encoded payload")


class RealtimeInput(LiveModel):
    media_chunks: List[Blob]


class RealtimeInputMessage(LiveModel):
    """One chunk of caller audio streamed to the model."""

    realtime_input: RealtimeInput


OutboundPeerMessage = Union[SetupMessage, ClientContentMessage, RealtimeInputMessage]


def build_setup(model: str, voice: Optional[str] = None) -> SetupMessage:
    speech_config = None
    if voice:
        speech_config = SpeechConfig(
            voice_config=VoiceConfig(prebuilt_voice_config=PrebuiltVoiceConfig(voice_name=voice))
        )
    return SetupMessage(
        setup=SetupPayload(
            model=model,
            generation_config=GenerationConfig(
                response_modalities=[RESPONSE_MODALITY_AUDIO], speech_config=speech_config
            ),
        )
    )


def build_text_turn(text: str) -> ClientContentMessage:
    return ClientContentMessage(
        client_content=ClientContent(
            turns=[Content(role="user", parts=[TextPart(text=text)])], turn_complete=True
        )
    )


def build_audio_input(pcm_bytes: bytes, mime_type: str = PEER_INPUT_MIME_TYPE) -> RealtimeInputMessage:
    return RealtimeInputMessage(
        realtime_input=RealtimeInput(
            media_chunks=[
                Blob(mime_type=mime_type, data=base64.b64encode(pcm_bytes).decode("utf-8"))
            ]
        )
    )


# Inbound events, independent of wire schema
class SetupCompleteEvent(BaseModel):
    """The server accepted the setup message; audio may now flow."""

    kind: Literal["setup_complete"] = "setup_complete"


class AudioOutputEvent(BaseModel):
    """One audio part of a model turn."""

    kind: Literal["audio"] = "audio"
    audio: bytes
    mime_type: str
    sample_rate: int = PEER_OUTPUT_SAMPLE_RATE


class InterruptedEvent(BaseModel):
    """Generation was cut short, usually by caller speech."""

    kind: Literal["interrupted"] = "interrupted"


class TurnCompleteEvent(BaseModel):
    """The model finished its current turn."""

    kind: Literal["turn_complete"] = "turn_complete"


PeerEvent = Union[
    SetupCompleteEvent,
    AudioOutputEvent,
    InterruptedEvent,
    TurnCompleteEvent,
    MalformedFrame,
    UnrecognizedFrame,
]


def sample_rate_from_mime(mime_type: str, default: int = PEER_OUTPUT_SAMPLE_RATE) -> int:
    """Read the ``rate=`` parameter of a PCM MIME type."""
    match = RATE_PATTERN.search(mime_type)
    return int(match.group(1)) if match else default


def _audio_parts(model_turn: Dict[str, Any], schema: WireSchema) -> List[AudioOutputEvent]:
    parts = model_turn.get(schema.key("parts"))
    if parts is None:
        return []
    if not isinstance(parts, list):
        raise ValueError("parts is not a list")

    events = []
    for part in parts:
        if not isinstance(part, dict):
            raise ValueError("part is not an object")
        inline_data = part.get(schema.key("inline_data"))
        if inline_data is None:
            # Text and other non-audio parts carry nothing for the phone line
            continue
        if not isinstance(inline_data, dict):
            raise ValueError("inline data is not an object")
        mime_type = inline_data.get(schema.key("mime_type"))
        if not isinstance(mime_type, str) or not mime_type.startswith(PEER_OUTPUT_MIME_PREFIX):
            continue
        encoded = inline_data.get("data")
        if not isinstance(encoded, str):
            raise ValueError("audio part has no data")
        try:
            audio = base64.b64decode(encoded, validate=True)
        except binascii.Error:
            raise ValueError("audio part data is not valid base64")
        events.append(
            AudioOutputEvent(
                audio=audio, mime_type=mime_type, sample_rate=sample_rate_from_mime(mime_type)
            )
        )
    return events


def parse_server_message(raw: Union[str, bytes], schema: WireSchema) -> List[PeerEvent]:
    """
    Decode one Gemini Live server frame into ordered events.

    A single frame may carry several signals, e.g. audio parts followed by
    ``turnComplete``. Audio is emitted before interruption and turn-complete
    events, matching their order within a turn.

    Returns:
        The typed events, or a single MalformedFrame / UnrecognizedFrame
    """
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        return [MalformedFrame(reason=f"Invalid JSON: {e}", raw_excerpt=excerpt(raw))]

    if not isinstance(data, dict):
        return [MalformedFrame(reason="Frame is not a JSON object", raw_excerpt=excerpt(raw))]

    events: List[PeerEvent] = []

    setup_complete = data.get(schema.key("setup_complete"))
    if setup_complete is not None and setup_complete is not False:
        events.append(SetupCompleteEvent())

    server_content = data.get(schema.key("server_content"))
    if server_content is not None:
        if not isinstance(server_content, dict):
            return [MalformedFrame(reason="server content is not an object", raw_excerpt=excerpt(raw))]
        model_turn = server_content.get(schema.key("model_turn"))
        if model_turn is not None:
            if not isinstance(model_turn, dict):
                return [MalformedFrame(reason="model turn is not an object", raw_excerpt=excerpt(raw))]
            try:
                events.extend(_audio_parts(model_turn, schema))
            except ValueError as e:
                return [MalformedFrame(reason=str(e), raw_excerpt=excerpt(raw))]
        if server_content.get(schema.key("interrupted")):
            events.append(InterruptedEvent())
        if server_content.get(schema.key("turn_complete")):
            events.append(TurnCompleteEvent())

    if not events and server_content is None:
        return [UnrecognizedFrame(frame_type=next(iter(data), None))]
    return events
