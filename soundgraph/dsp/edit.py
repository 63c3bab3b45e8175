"""
Editing kernels - crop and linear fades.
"""

from __future__ import annotations

import math
from enum import Enum

import numpy as np

from soundgraph.audio import SAMPLE_DTYPE, SampleBuffer


class FadeDirection(str, Enum):
    """Which end of the buffer a fade shapes."""
    IN = "in"
    OUT = "out"


def _seconds(value: float, default: float = 0.0) -> float:
    if not math.isfinite(value):
        return default
    return max(float(value), 0.0)


def crop(buffer: SampleBuffer, start: float, end: float) -> SampleBuffer:
    """
    Keep the samples between ``start`` and ``end`` seconds.

    ``end`` is clamped to the buffer duration and ``start`` to [0, end].
    Sample indices are ``floor(t * sample_rate)``.

    Returns:
        New buffer (possibly zero-length)
    """
    end = min(_seconds(end, buffer.duration), buffer.duration)
    start = min(_seconds(start), end)

    lo = int(math.floor(start * buffer.sample_rate))
    hi = min(int(math.floor(end * buffer.sample_rate)), buffer.frames)
    return SampleBuffer._adopt(buffer.data[:, lo:hi].copy(), buffer.sample_rate)


def fade_envelope(frames: int, fade_samples: int, direction: FadeDirection) -> np.ndarray:
    """Per-sample gain for a linear fade over the first/last ``fade_samples``."""
    env = np.ones(frames, dtype=SAMPLE_DTYPE)
    if fade_samples <= 0 or frames == 0:
        return env

    idx = np.arange(frames, dtype=SAMPLE_DTYPE)
    if direction is FadeDirection.IN:
        head = min(fade_samples, frames)
        env[:head] = idx[:head] / fade_samples
    else:
        start = frames - fade_samples
        tail = idx > start
        env[tail] = (frames - idx[tail]) / fade_samples
    return env


def fade(
    buffer: SampleBuffer,
    duration: float,
    direction: FadeDirection | str = FadeDirection.IN,
) -> SampleBuffer:
    """
    Apply a linear fade-in or fade-out.

    Args:
        buffer: Input buffer
        duration: Fade length in seconds (negative/non-finite -> 0)
        direction: IN ramps from silence, OUT ramps to silence

    Returns:
        New buffer, same shape
    """
    direction = FadeDirection(direction)
    fade_samples = int(math.floor(_seconds(duration) * buffer.sample_rate))
    env = fade_envelope(buffer.frames, fade_samples, direction)
    return SampleBuffer._adopt(buffer.data * env, buffer.sample_rate)
