"""
ITU-T G.711 mu-law companding.

encode_sample/decode_sample implement the per-sample contract. The array
helpers vectorize them with lookup tables precomputed from those same
functions, so both paths always agree.
"""

import logging

import numpy as np

from voice_relay.config.constants import LOGGER_NAME, PCM_SAMPLE_WIDTH

logger = logging.getLogger(LOGGER_NAME)

MULAW_BIAS = 0x84
MULAW_CLIP = 32635

INT16_MIN = -32768
INT16_MAX = 32767


def encode_sample(sample: int) -> int:
    """
    Compand one signed 16-bit linear sample into a mu-law byte.

    Magnitudes above MULAW_CLIP are clamped before biasing, so full-scale
    input saturates to 0x80 (positive) or 0x00 (negative) without wrapping.
    """
    sign = 0x80 if sample < 0 else 0x00
    magnitude = -sample if sample < 0 else sample
    if magnitude > MULAW_CLIP:
        magnitude = MULAW_CLIP
    magnitude += MULAW_BIAS

    exponent = 7
    mask = 0x4000
    while exponent > 0 and not magnitude & mask:
        exponent -= 1
        mask >>= 1

    mantissa = (magnitude >> (exponent + 3)) & 0x0F
    return ~(sign | (exponent << 4) | mantissa) & 0xFF


def decode_sample(mulaw_byte: int) -> int:
    """Expand one mu-law byte back to a signed 16-bit linear sample."""
    value = ~mulaw_byte & 0xFF
    sign = value & 0x80
    exponent = (value >> 4) & 0x07
    mantissa = value & 0x0F
    magnitude = ((2 * mantissa + 33) << (exponent + 2)) - MULAW_BIAS
    return -magnitude if sign else magnitude


def quantization_step(sample: int) -> int:
    """Width of the companding segment that ``sample`` falls into."""
    exponent = ((~encode_sample(sample) & 0xFF) >> 4) & 0x07
    return 1 << (exponent + 3)


_DECODE_TABLE = np.array([decode_sample(b) for b in range(256)], dtype=np.int16)

# Indexed by the int16 sample reinterpreted as uint16
_ENCODE_TABLE = np.array(
    [encode_sample(u if u < 32768 else u - 65536) for u in range(65536)],
    dtype=np.uint8,
)


def decode_array(mulaw_bytes: bytes) -> np.ndarray:
    """Decode a buffer of mu-law bytes into an int16 sample array."""
    indices = np.frombuffer(mulaw_bytes, dtype=np.uint8)
    return _DECODE_TABLE[indices]


def encode_array(samples: np.ndarray) -> bytes:
    """Encode an int16 sample array into mu-law bytes."""
    samples = np.asarray(samples, dtype=np.int16)
    return _ENCODE_TABLE[samples.view(np.uint16)].tobytes()


def pcm16_to_samples(pcm_bytes: bytes) -> np.ndarray:
    """
    Reinterpret little-endian 16-bit PCM bytes as an int16 array.

    A trailing odd byte cannot form a sample; it is dropped with a warning
    rather than shifting every following sample.
    """
    remainder = len(pcm_bytes) % PCM_SAMPLE_WIDTH
    if remainder:
        logger.warning(
            f"Truncating misaligned PCM chunk of {len(pcm_bytes)} bytes by {remainder} byte(s)"
        )
        pcm_bytes = pcm_bytes[: len(pcm_bytes) - remainder]
    return np.frombuffer(pcm_bytes, dtype="<i2").astype(np.int16)


def samples_to_pcm16(samples: np.ndarray) -> bytes:
    """Serialize an int16 array as little-endian 16-bit PCM bytes."""
    return np.asarray(samples, dtype=np.int16).astype("<i2").tobytes()
