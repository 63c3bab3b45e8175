"""
Soften kernel - one-pole low-pass with a dry/wet mix.

    alpha = dt / (RC + dt),  dt = 1 / sample_rate,  RC = 1 / (2 pi cutoff)
    y[n]  = alpha * x[n] + (1 - alpha) * y[n-1],   y[-1] = x[0]
    out   = x * (1 - wet) + y * wet,                wet = intensity / 100

Filter state is rebuilt from each buffer's first sample on every call.
"""

from __future__ import annotations

import math

import numpy as np
from scipy import signal

from soundgraph.audio import SampleBuffer

DEFAULT_CUTOFF_HZ = 8000.0
DEFAULT_INTENSITY = 50.0
MIN_CUTOFF_HZ = 1.0


def lowpass_alpha(cutoff_hz: float, sample_rate: int) -> float:
    """Smoothing coefficient of the RC low-pass."""
    dt = 1.0 / sample_rate
    rc = 1.0 / (2.0 * math.pi * cutoff_hz)
    return dt / (rc + dt)


def _one_pole(data: np.ndarray, alpha: float) -> np.ndarray:
    """Run the recurrence along every channel, seeded so that y[-1] = x[0]."""
    zi = (1.0 - alpha) * data[:, :1]
    filtered, _ = signal.lfilter([alpha], [1.0, alpha - 1.0], data, axis=-1, zi=zi)
    return filtered


def soften(
    buffer: SampleBuffer,
    cutoff_hz: float = DEFAULT_CUTOFF_HZ,
    intensity: float = DEFAULT_INTENSITY,
) -> SampleBuffer:
    """
    Low-pass a buffer and blend it with the dry signal.

    Args:
        buffer: Input buffer
        cutoff_hz: Cutoff frequency, clamped to [1 Hz, Nyquist]
        intensity: Wet percentage 0-100; 0 returns an exact copy

    Returns:
        New buffer, same shape and rate
    """
    if not math.isfinite(intensity):
        intensity = DEFAULT_INTENSITY
    intensity = min(max(float(intensity), 0.0), 100.0)

    if intensity == 0.0 or buffer.frames == 0:
        return buffer.copy()

    if not math.isfinite(cutoff_hz):
        cutoff_hz = DEFAULT_CUTOFF_HZ
    cutoff_hz = min(max(float(cutoff_hz), MIN_CUTOFF_HZ), buffer.sample_rate / 2.0)

    alpha = lowpass_alpha(cutoff_hz, buffer.sample_rate)
    wet = intensity / 100.0

    dry = buffer.data
    out = dry * (1.0 - wet) + _one_pole(dry, alpha) * wet

    return SampleBuffer._adopt(out, buffer.sample_rate)
