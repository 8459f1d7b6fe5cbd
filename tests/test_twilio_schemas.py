"""
Tests for Twilio Media Streams message models and decoding.
"""

import base64
import json

import pytest
from pydantic import ValidationError

from voice_relay.models.frames import MalformedFrame, UnrecognizedFrame
from voice_relay.models.twilio_schemas import (
    ClearMessage,
    ConnectedMessage,
    MarkMessage,
    MediaMessage,
    OutboundMediaMessage,
    StartMessage,
    StopMessage,
    parse_telephony_message,
)

AUDIO = bytes(range(160))
PAYLOAD = base64.b64encode(AUDIO).decode("utf-8")


def test_parse_start():
    message = parse_telephony_message(
        json.dumps(
            {
                "event": "start",
                "sequenceNumber": "1",
                "start": {"streamSid": "MZ123", "callSid": "CA123", "tracks": ["inbound"]},
                "streamSid": "MZ123",
            }
        )
    )
    assert isinstance(message, StartMessage)
    assert message.start.streamSid == "MZ123"
    assert message.start.callSid == "CA123"


def test_parse_media_decodes_payload():
    message = parse_telephony_message(
        json.dumps({"event": "media", "media": {"payload": PAYLOAD, "track": "inbound"}})
    )
    assert isinstance(message, MediaMessage)
    assert message.media.audio == AUDIO


def test_parse_stop_connected_and_mark():
    assert isinstance(parse_telephony_message('{"event":"stop"}'), StopMessage)
    assert isinstance(
        parse_telephony_message('{"event":"connected","protocol":"Call","version":"1.0.0"}'),
        ConnectedMessage,
    )
    assert isinstance(
        parse_telephony_message('{"event":"mark","mark":{"name":"greeting"}}'), MarkMessage
    )


def test_parse_accepts_bytes():
    assert isinstance(parse_telephony_message(b'{"event":"stop"}'), StopMessage)


@pytest.mark.parametrize(
    "raw",
    [
        "not json",
        "[1, 2, 3]",
        '{"event":"start","start":{}}',
        '{"event":"start","start":{"streamSid":"  "}}',
        '{"event":"media","media":{}}',
        '{"event":"media","media":{"payload":"%%%not-base64%%%"}}',
        '{"event":"media","media":{"payload":""}}',
    ],
)
def test_malformed_frames(raw):
    assert isinstance(parse_telephony_message(raw), MalformedFrame)


def test_unknown_event_is_unrecognized():
    result = parse_telephony_message('{"event":"dtmf","dtmf":{"digit":"1"}}')
    assert isinstance(result, UnrecognizedFrame)
    assert result.frame_type == "dtmf"

    assert isinstance(parse_telephony_message('{"foo":"bar"}'), UnrecognizedFrame)


def test_outbound_media_serialization():
    message = OutboundMediaMessage.from_audio("MZ123", b"\xff\x7f")
    assert json.loads(message.model_dump_json()) == {
        "event": "media",
        "streamSid": "MZ123",
        "media": {"payload": base64.b64encode(b"\xff\x7f").decode("utf-8")},
    }


def test_clear_serialization():
    assert json.loads(ClearMessage(streamSid="MZ123").model_dump_json()) == {
        "event": "clear",
        "streamSid": "MZ123",
    }


def test_outbound_media_requires_stream_sid():
    with pytest.raises(ValidationError):
        OutboundMediaMessage(media={"payload": PAYLOAD})
