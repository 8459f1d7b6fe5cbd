"""
Environment-driven settings for the relay.

RelaySettings collects every tunable of a call session in one validated model.
main.py loads a .env file (if present) before RelaySettings.from_env() reads
the process environment.
"""

import os
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from voice_relay.config.constants import (
    DEFAULT_GEMINI_MODEL,
    DEFAULT_GEMINI_VOICE,
    DEFAULT_GEMINI_WS_URL,
    PRE_READY_POLICY_QUEUE,
    WIRE_SCHEMA_CAMEL,
)

DEFAULT_GREETING = "A caller has just connected. Greet them briefly and ask how you can help."

_TRUE_VALUES = {"1", "true", "yes", "on"}


class RelaySettings(BaseModel):
    """Settings shared by every call session."""

    api_key: Optional[str] = Field(None, description="Gemini API key")
    model: str = Field(DEFAULT_GEMINI_MODEL, description="Gemini model identifier")
    voice: str = Field(DEFAULT_GEMINI_VOICE, description="Prebuilt voice name")
    ws_url: str = Field(DEFAULT_GEMINI_WS_URL, description="BidiGenerateContent endpoint")
    wire_schema: Literal["camelCase", "snake_case"] = Field(
        WIRE_SCHEMA_CAMEL, description="Field naming used on the Gemini wire"
    )
    greeting_text: Optional[str] = Field(
        DEFAULT_GREETING, description="Injected opening turn; empty disables it"
    )
    pre_ready_audio_policy: Literal["queue", "drop"] = Field(
        PRE_READY_POLICY_QUEUE, description="What to do with caller audio before setup completes"
    )
    pre_ready_queue_max_chunks: int = Field(50, ge=1)
    handshake_timeout_seconds: float = Field(10.0, gt=0)
    echo_suppression_enabled: bool = False
    uplink_gain: float = Field(1.0, gt=0, le=10.0)

    @field_validator("greeting_text")
    def blank_greeting_disables(cls, v):
        """Treat a blank greeting as no greeting."""
        if v is not None and not v.strip():
            return None
        return v

    @property
    def queue_pre_ready_audio(self) -> bool:
        return self.pre_ready_audio_policy == PRE_READY_POLICY_QUEUE

    @property
    def connect_url(self) -> str:
        """Endpoint URL with the API key appended as a query parameter."""
        if not self.api_key:
            return self.ws_url
        separator = "&" if "?" in self.ws_url else "?"
        return f"{self.ws_url}{separator}key={self.api_key}"

    @classmethod
    def from_env(cls) -> "RelaySettings":
        """
        Build settings from environment variables.

        Raises:
            pydantic.ValidationError: If a variable holds an invalid value
        """
        values = {
            "api_key": os.getenv("GEMINI_API_KEY") or None,
            "model": os.getenv("GEMINI_MODEL", DEFAULT_GEMINI_MODEL),
            "voice": os.getenv("GEMINI_VOICE", DEFAULT_GEMINI_VOICE),
            "ws_url": os.getenv("GEMINI_WS_URL", DEFAULT_GEMINI_WS_URL),
            "wire_schema": os.getenv("GEMINI_WIRE_SCHEMA", WIRE_SCHEMA_CAMEL),
            "greeting_text": os.getenv("GREETING_TEXT", DEFAULT_GREETING),
            "pre_ready_audio_policy": os.getenv(
                "PRE_READY_AUDIO_POLICY", PRE_READY_POLICY_QUEUE
            ).lower(),
            "echo_suppression_enabled": os.getenv("ECHO_SUPPRESSION_ENABLED", "false").lower()
            in _TRUE_VALUES,
        }
        # Numeric values are left as strings for pydantic to coerce and validate
        for field_name, env_name in (
            ("pre_ready_queue_max_chunks", "PRE_READY_QUEUE_MAX_CHUNKS"),
            ("handshake_timeout_seconds", "HANDSHAKE_TIMEOUT_SECONDS"),
            ("uplink_gain", "UPLINK_GAIN"),
        ):
            raw = os.getenv(env_name)
            if raw is not None:
                values[field_name] = raw
        return cls(**values)
