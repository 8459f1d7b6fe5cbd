"""
Integer-ratio sample-rate conversion for 16-bit linear PCM.

Both directions work on one chunk at a time and keep no state between calls.
Decimation applies no low-pass filter, so content above the target Nyquist
frequency aliases; for speech routed to an 8 kHz phone line this is accepted
in exchange for zero added latency.
"""

from typing import Literal

import numpy as np

UpsampleMethod = Literal["linear", "hold"]


def conversion_ratio(source_rate: int, target_rate: int) -> int:
    """
    Return the integer factor between two rates.

    Raises:
        ValueError: If neither rate is an integer multiple of the other
    """
    high, low = max(source_rate, target_rate), min(source_rate, target_rate)
    if low <= 0 or high % low:
        raise ValueError(f"Unsupported rate conversion: {source_rate} Hz -> {target_rate} Hz")
    return high // low


def decimate(samples: np.ndarray, ratio: int) -> np.ndarray:
    """
    Keep every ``ratio``-th sample, starting with the first.

    Output length is ``len(samples) // ratio``; a partial trailing group is
    discarded.
    """
    if ratio < 1:
        raise ValueError(f"Decimation ratio must be positive, got {ratio}")
    samples = np.asarray(samples, dtype=np.int16)
    usable = (len(samples) // ratio) * ratio
    return samples[:usable:ratio].copy()


def upsample(samples: np.ndarray, ratio: int, method: UpsampleMethod = "linear") -> np.ndarray:
    """
    Raise the sample rate by an integer ``ratio``.

    ``linear`` places ``ratio - 1`` interpolated samples between neighbours,
    rounding halves upward; the last input sample is interpolated against
    itself. ``hold`` repeats each sample ``ratio`` times.

    Output length is always ``len(samples) * ratio``.
    """
    if ratio < 1:
        raise ValueError(f"Upsampling ratio must be positive, got {ratio}")
    samples = np.asarray(samples, dtype=np.int16)
    if ratio == 1 or len(samples) == 0:
        return samples.copy()

    if method == "hold":
        return np.repeat(samples, ratio)
    if method != "linear":
        raise ValueError(f"Unknown upsampling method: {method}")

    current = samples.astype(np.int64)
    following = np.empty_like(current)
    following[:-1] = current[1:]
    following[-1] = current[-1]

    # out[i*ratio + k] = current + (following - current) * k / ratio, rounded half up
    steps = np.arange(ratio, dtype=np.int64)
    numerator = current[:, None] * ratio + (following - current)[:, None] * steps[None, :]
    interpolated = np.floor_divide(2 * numerator + ratio, 2 * ratio)
    return np.clip(interpolated, -32768, 32767).astype(np.int16).reshape(-1)


def resample(
    samples: np.ndarray,
    source_rate: int,
    target_rate: int,
    method: UpsampleMethod = "linear",
) -> np.ndarray:
    """Convert ``samples`` from ``source_rate`` to ``target_rate``."""
    ratio = conversion_ratio(source_rate, target_rate)
    if source_rate > target_rate:
        return decimate(samples, ratio)
    if source_rate < target_rate:
        return upsample(samples, ratio, method)
    return np.asarray(samples, dtype=np.int16).copy()
