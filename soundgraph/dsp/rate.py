"""
Rate conversion - playback-rate change and sample-rate conversion.

Interpolation policy (fixed, shared by every function here):
    Output sample i is read from the input at a fractional position p(i).
    The value is the linear interpolation between samples floor(p) and
    floor(p) + 1, with positions clamped to the last input sample.
    Integer positions reproduce input samples exactly.
"""

from __future__ import annotations

import math

import numpy as np

from soundgraph.audio import SAMPLE_DTYPE, SampleBuffer

# Kernel-boundary limits for playback rate
MIN_PLAYBACK_RATE = 0.25
MAX_PLAYBACK_RATE = 4.0


def _interpolate(data: np.ndarray, positions: np.ndarray) -> np.ndarray:
    """Linear interpolation of every channel at fractional positions."""
    channels, frames = data.shape
    if frames == 0 or len(positions) == 0:
        return np.zeros((channels, len(positions)), dtype=SAMPLE_DTYPE)

    positions = np.clip(positions, 0.0, frames - 1)
    lo = np.floor(positions).astype(np.int64)
    hi = np.minimum(lo + 1, frames - 1)
    frac = positions - lo
    return data[:, lo] * (1.0 - frac) + data[:, hi] * frac


def resample(buffer: SampleBuffer, factor: float) -> SampleBuffer:
    """
    Stretch or shrink a buffer by ``factor`` keeping its sample rate.

    Args:
        buffer: Input buffer
        factor: Length multiplier (2.0 = twice as many samples)

    Returns:
        New buffer with ``floor(frames * factor)`` samples

    Raises:
        ValueError: If factor is not a positive finite number
    """
    if not math.isfinite(factor) or factor <= 0:
        raise ValueError(f"factor must be positive and finite, got {factor}")

    new_length = int(math.floor(buffer.frames * factor))
    positions = np.arange(new_length, dtype=SAMPLE_DTYPE) / factor
    return SampleBuffer._adopt(_interpolate(buffer.data, positions), buffer.sample_rate)


def change_playback_rate(buffer: SampleBuffer, rate: float) -> SampleBuffer:
    """
    Speed audio up or down by reading it at ``rate`` samples per output sample.

    Args:
        buffer: Input buffer
        rate: Playback rate (2.0 = twice as fast, half as long). Non-finite
            values fall back to 1.0; others are clamped to
            [MIN_PLAYBACK_RATE, MAX_PLAYBACK_RATE].

    Returns:
        New buffer with ``floor(frames / rate)`` samples at the same rate

    Example:
        faster = change_playback_rate(buf, 2.0)
        assert len(faster) == len(buf) // 2
    """
    if not math.isfinite(rate):
        rate = 1.0
    rate = min(max(rate, MIN_PLAYBACK_RATE), MAX_PLAYBACK_RATE)

    if rate == 1.0:
        return buffer.copy()

    new_length = int(math.floor(buffer.frames / rate))
    positions = np.arange(new_length, dtype=SAMPLE_DTYPE) * rate
    return SampleBuffer._adopt(_interpolate(buffer.data, positions), buffer.sample_rate)


def resample_to_rate(buffer: SampleBuffer, sample_rate: int) -> SampleBuffer:
    """
    Convert a buffer to another sample rate, preserving its duration.

    Args:
        buffer: Input buffer
        sample_rate: Target sample rate in Hz

    Returns:
        The same buffer if the rate already matches, else a new buffer
        with ``floor(frames * sample_rate / buffer.sample_rate)`` samples
    """
    if sample_rate <= 0:
        raise ValueError(f"sample_rate must be positive, got {sample_rate}")
    if sample_rate == buffer.sample_rate:
        return buffer

    ratio = sample_rate / buffer.sample_rate
    new_length = int(math.floor(buffer.frames * ratio))
    positions = np.arange(new_length, dtype=SAMPLE_DTYPE) * (buffer.sample_rate / sample_rate)
    return SampleBuffer._adopt(_interpolate(buffer.data, positions), sample_rate)
