"""
Decode results shared by both wire protocols.

A decode step never raises on bad input; it returns one of these instead of a
typed message so the session can log and drop the single frame.
"""

from typing import Literal, Optional

from pydantic import BaseModel, Field


class MalformedFrame(BaseModel):
    """A frame that could not be parsed or failed validation."""

    kind: Literal["malformed"] = "malformed"
    reason: str = Field(..., description="Why the frame was rejected")
    raw_excerpt: str = Field("", description="Leading characters of the raw frame")


class UnrecognizedFrame(BaseModel):
    """A well-formed frame whose type this relay does not handle."""

    kind: Literal["unrecognized"] = "unrecognized"
    frame_type: Optional[str] = Field(None, description="Declared type, if any")


def excerpt(raw, limit: int = 120) -> str:
    """Shorten a raw frame for log output."""
    text = raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else str(raw)
    return text if len(text) <= limit else f"{text[:limit]}..."
