"""
Gain kernel with clipping management.

Detection runs on the gain-scaled signal BEFORE any protection. Protection
modes are triggered exactly by that detection: a buffer that does not clip
is emitted as ``s * g`` in every mode.

Modes:
    NONE       - emit s * g untouched, report the clip
    LIMITER    - hard clamp to [-1, 1]
    SOFTCLIP   - tanh knee above a threshold, continuous, never reaches 1
    NORMALIZE  - divide the whole buffer by its peak (peak becomes 1.0)

sync_peaks() levels several buffers to one target peak in dBFS, with the
same soft knee available as a limiter.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum

import numpy as np

from soundgraph.audio import SampleBuffer

# Representable range in normalized float terms
FULL_SCALE = 1.0

# Kernel-boundary gain limit (node parameters stop at 2.0)
MAX_GAIN = 16.0


class ClippingMode(str, Enum):
    """What to do when the scaled signal leaves [-1, 1]."""
    NONE = "none"
    LIMITER = "limiter"
    SOFTCLIP = "softclip"
    NORMALIZE = "normalize"


@dataclass(frozen=True)
class GainResult:
    """Output of apply_gain.

    Attributes:
        buffer: The transformed buffer.
        detected: True if the scaled signal exceeded full scale.
        clipped: True if clipping reaches the output unprotected
            (detected and mode is NONE). This is what the UI warns about.
    """
    buffer: SampleBuffer
    detected: bool
    clipped: bool


def sanitize_gain(gain: float) -> float:
    """Clamp a gain factor at the kernel boundary (NaN -> unity)."""
    if math.isnan(gain):
        return 1.0
    return min(max(float(gain), 0.0), MAX_GAIN)


def detect_clipping(data: np.ndarray) -> bool:
    """True if any sample magnitude exceeds full scale."""
    return bool(data.size) and bool(np.any(np.abs(data) > FULL_SCALE))


def soft_clip(data: np.ndarray, knee: float = 0.8) -> np.ndarray:
    """
    Compress magnitudes above ``knee`` smoothly toward full scale.

    Below the knee samples pass unchanged. Above it,
    ``|y| = knee + (1 - knee) * tanh((|x| - knee) / (1 - knee))``, which
    meets the identity with matching slope at the knee and stays below 1.
    """
    span = FULL_SCALE - knee
    magnitude = np.abs(data)
    over = magnitude > knee
    out = data.copy()
    compressed = knee + span * np.tanh((magnitude[over] - knee) / span)
    out[over] = np.sign(data[over]) * compressed
    return out


def normalize_peak(data: np.ndarray) -> np.ndarray:
    """Scale so the absolute peak is exactly full scale (silence unchanged)."""
    peak = float(np.max(np.abs(data))) if data.size else 0.0
    if peak == 0.0:
        return data.copy()
    return data / peak


def apply_gain(
    buffer: SampleBuffer,
    gain: float,
    mode: ClippingMode | str = ClippingMode.NONE,
    knee: float = 0.8,
) -> GainResult:
    """
    Scale a buffer and manage clipping.

    Args:
        buffer: Input buffer (not modified)
        gain: Gain factor (0 = silence, 1 = unity, 2 = +6 dB)
        mode: Clipping management mode
        knee: Soft-clip threshold

    Returns:
        GainResult with the new buffer and detection flags

    Example:
        result = apply_gain(buf, 2.0, ClippingMode.LIMITER)
        if result.detected:
            ...
    """
    mode = ClippingMode(mode)
    scaled = buffer.data * sanitize_gain(gain)
    detected = detect_clipping(scaled)

    if not detected or mode is ClippingMode.NONE:
        out = scaled
    elif mode is ClippingMode.LIMITER:
        out = np.clip(scaled, -FULL_SCALE, FULL_SCALE)
    elif mode is ClippingMode.SOFTCLIP:
        out = soft_clip(scaled, knee)
    else:  # NORMALIZE
        out = normalize_peak(scaled)

    return GainResult(
        buffer=SampleBuffer._adopt(out, buffer.sample_rate),
        detected=detected,
        clipped=detected and mode is ClippingMode.NONE,
    )


# =============================================================================
# Peak synchronisation
# =============================================================================

# Sample peaks below this count as this, so silence has a finite level
PEAK_FLOOR_DB = -100.0

# Soft-limiter threshold used after peak synchronisation
SYNC_LIMITER_KNEE = 0.95


@dataclass(frozen=True)
class PeakSyncResult:
    """Output of sync_peaks.

    Attributes:
        buffers: One output buffer per input, same order.
        adjustments_db: Gain applied to each buffer in dB (0.0 for silence).
        clipped: True if an output exceeds full scale (limiter off only).
    """
    buffers: tuple[SampleBuffer, ...]
    adjustments_db: tuple[float, ...]
    clipped: bool


def peak_db(buffer: SampleBuffer) -> float:
    """Sample peak in dBFS across all channels, floored at PEAK_FLOOR_DB."""
    peak = buffer.peak()
    if peak <= 0.0:
        return PEAK_FLOOR_DB
    return max(20.0 * math.log10(peak), PEAK_FLOOR_DB)


def sync_peaks(
    buffers: list[SampleBuffer] | tuple[SampleBuffer, ...],
    target_db: float = -1.0,
    keep_relative: bool = False,
    limiter: bool = True,
) -> PeakSyncResult:
    """
    Bring several buffers to one target peak level.

    Args:
        buffers: Buffers to level
        target_db: Target peak in dBFS, clamped to [-60, 0]
        keep_relative: Apply one shared gain chosen so the loudest buffer
            lands on the target; otherwise each buffer gets its own gain
        limiter: Soft-limit samples above SYNC_LIMITER_KNEE

    Silent buffers pass through unchanged.
    """
    if not math.isfinite(target_db):
        target_db = -1.0
    target_db = min(max(float(target_db), -60.0), 0.0)

    levels = [peak_db(buf) for buf in buffers]
    audible = [level for buf, level in zip(buffers, levels) if buf.peak() > 0.0]
    loudest = max(audible, default=PEAK_FLOOR_DB)

    out: list[SampleBuffer] = []
    adjustments: list[float] = []
    clipped = False
    for buf, level in zip(buffers, levels):
        if buf.peak() == 0.0:
            out.append(buf.copy())
            adjustments.append(0.0)
            continue

        adjustment = target_db - (loudest if keep_relative else level)
        scaled = buf.data * 10.0 ** (adjustment / 20.0)
        if limiter:
            scaled = soft_clip(scaled, SYNC_LIMITER_KNEE)
        else:
            clipped = clipped or detect_clipping(scaled)

        out.append(SampleBuffer._adopt(scaled, buf.sample_rate))
        adjustments.append(adjustment)

    return PeakSyncResult(tuple(out), tuple(adjustments), clipped)
