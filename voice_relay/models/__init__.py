"""
Models module: message schemas for both wire protocols and session tracking.

Key components:
- twilio_schemas: Pydantic models for Twilio Media Streams frames and the
  parse_telephony_message decode step.
- gemini_schemas: Pydantic models for Gemini Live messages, the camelCase and
  snake_case wire schemas, and the parse_server_message decode step.
- frames: MalformedFrame and UnrecognizedFrame, returned instead of raising
  when a frame cannot be used.
- session_registry: the set of call sessions currently running.

Usage examples:
```python
from voice_relay.models.gemini_schemas import WireSchema, build_setup, parse_server_message
from voice_relay.models.twilio_schemas import ClearMessage, parse_telephony_message

message = parse_telephony_message('{"event":"start","start":{"streamSid":"MZ1"}}')
schema = WireSchema.CAMEL
await gemini_ws.send(schema.dump(build_setup("models/gemini-2.0-flash-exp", "Puck")))
for event in parse_server_message(raw_frame, schema):
    ...
await twilio_ws.send_text(ClearMessage(streamSid="MZ1").model_dump_json())
```
"""

from voice_relay.models.frames import MalformedFrame, UnrecognizedFrame
from voice_relay.models.gemini_schemas import (
    AudioOutputEvent,
    InterruptedEvent,
    SetupCompleteEvent,
    TurnCompleteEvent,
    WireSchema,
    parse_server_message,
)
from voice_relay.models.session_registry import SessionRegistry
from voice_relay.models.twilio_schemas import (
    ClearMessage,
    MediaMessage,
    OutboundMediaMessage,
    StartMessage,
    StopMessage,
    parse_telephony_message,
)
