"""
Directional transcoding between the telephony leg and the Gemini Live leg.

uplink:   mu-law 8 kHz  ->  16-bit linear PCM 16 kHz (little-endian)
downlink: 16-bit linear PCM 24 kHz  ->  mu-law 8 kHz

Each call transcodes one chunk independently.
"""

import numpy as np

from voice_relay.audio.codec import (
    decode_array,
    encode_array,
    pcm16_to_samples,
    samples_to_pcm16,
)
from voice_relay.audio.resampler import UpsampleMethod, resample
from voice_relay.config.constants import (
    PEER_INPUT_SAMPLE_RATE,
    PEER_OUTPUT_SAMPLE_RATE,
    TELEPHONY_SAMPLE_RATE,
)


def apply_gain(samples: np.ndarray, gain: float) -> np.ndarray:
    """Scale samples by ``gain``, saturating at the int16 limits."""
    if gain == 1.0:
        return samples
    scaled = np.rint(samples.astype(np.float64) * gain)
    return np.clip(scaled, -32768, 32767).astype(np.int16)


def uplink(
    mulaw_bytes: bytes,
    target_rate: int = PEER_INPUT_SAMPLE_RATE,
    gain: float = 1.0,
    method: UpsampleMethod = "linear",
) -> bytes:
    """
    Transcode a chunk of caller audio for the Gemini Live API.

    Args:
        mulaw_bytes: Raw mu-law bytes at 8 kHz, one byte per sample
        target_rate: Output sample rate; an integer multiple of 8 kHz
        gain: Linear gain applied after decoding
        method: Upsampling method, ``linear`` or ``hold``

    Returns:
        Little-endian 16-bit PCM bytes, ``len(mulaw_bytes) * 2 * ratio`` long
    """
    if not mulaw_bytes:
        return b""
    samples = apply_gain(decode_array(mulaw_bytes), gain)
    return samples_to_pcm16(resample(samples, TELEPHONY_SAMPLE_RATE, target_rate, method))


def downlink(pcm_bytes: bytes, source_rate: int = PEER_OUTPUT_SAMPLE_RATE) -> bytes:
    """
    Transcode a chunk of model audio for the phone line.

    Args:
        pcm_bytes: Little-endian 16-bit PCM; a trailing odd byte is dropped
        source_rate: Sample rate of ``pcm_bytes``; an integer multiple of 8 kHz

    Returns:
        mu-law bytes at 8 kHz
    """
    samples = pcm16_to_samples(pcm_bytes)
    if len(samples) == 0:
        return b""
    return encode_array(resample(samples, source_rate, TELEPHONY_SAMPLE_RATE))
