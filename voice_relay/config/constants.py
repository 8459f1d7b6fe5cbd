"""
Constants and configuration values used throughout the application.

This module defines constants that are used across different parts of the application,
providing a centralized location for protocol names, audio formats and defaults.
"""

# Logger name used throughout the application
LOGGER_NAME = "voice_relay"

# Sample rates (Hz)
TELEPHONY_SAMPLE_RATE = 8000
PEER_INPUT_SAMPLE_RATE = 16000
PEER_OUTPUT_SAMPLE_RATE = 24000

# Linear PCM sample width in bytes
PCM_SAMPLE_WIDTH = 2

# Audio MIME types for the Gemini Live API
PEER_INPUT_MIME_TYPE = f"audio/pcm;rate={PEER_INPUT_SAMPLE_RATE}"
PEER_OUTPUT_MIME_PREFIX = "audio/pcm"

# Gemini Live defaults
DEFAULT_GEMINI_MODEL = "models/gemini-2.0-flash-exp"
DEFAULT_GEMINI_VOICE = "Puck"
DEFAULT_GEMINI_WS_URL = (
    "wss://generativelanguage.googleapis.com/ws/"
    "google.ai.generativelanguage.v1alpha.GenerativeService.BidiGenerateContent"
)
RESPONSE_MODALITY_AUDIO = "AUDIO"

# Wire schema identifiers for the Gemini Live protocol
WIRE_SCHEMA_CAMEL = "camelCase"
WIRE_SCHEMA_SNAKE = "snake_case"

# Default pre-ready uplink audio policy
PRE_READY_POLICY_QUEUE = "queue"

# Twilio Media Streams event names
EVENT_CONNECTED = "connected"
EVENT_START = "start"
EVENT_MEDIA = "media"
EVENT_STOP = "stop"
EVENT_MARK = "mark"
EVENT_CLEAR = "clear"

# Control-plane paths
MEDIA_STREAM_PATH = "/media-stream"
