"""
Pitch kernel - semitone shift that keeps the duration.

Two steps, both built from operations used elsewhere in dsp:
    1. Overlap-add time stretch by ``ratio = 2 ** (semitones / 12)``:
       Hann-windowed frames read every ``hop / ratio`` samples are laid
       down every ``hop`` samples and divided by the summed window.
    2. Linear-interpolation read of the stretched signal every ``ratio``
       samples, which restores the original length and scales every
       frequency by ``ratio``.

Each output sample is a weighted average of input samples, so the peak
never grows.
"""

from __future__ import annotations

import math

import numpy as np

from soundgraph.audio import SAMPLE_DTYPE, SampleBuffer
from soundgraph.dsp.rate import _interpolate

MAX_SEMITONES = 12.0

FRAME_SIZE = 1024
SYNTHESIS_HOP = FRAME_SIZE // 4


def pitch_ratio(semitones: float) -> float:
    """Frequency multiplier for a shift in equal-tempered semitones."""
    return 2.0 ** (semitones / 12.0)


def _stretch(data: np.ndarray, ratio: float, pad: int) -> np.ndarray:
    """Overlap-add time stretch of zero-padded ``data`` by ``ratio``."""
    channels = data.shape[0]
    padded = np.pad(data, ((0, 0), (pad, pad)))
    total = padded.shape[1]

    window = np.hanning(FRAME_SIZE)
    analysis_hop = SYNTHESIS_HOP / ratio
    out_len = int(round(total * ratio)) + FRAME_SIZE

    out = np.zeros((channels, out_len), dtype=SAMPLE_DTYPE)
    weight = np.zeros(out_len, dtype=SAMPLE_DTYPE)

    k = 0
    while True:
        a = int(round(k * analysis_hop))
        s = k * SYNTHESIS_HOP
        if a + FRAME_SIZE > total or s + FRAME_SIZE > out_len:
            break
        out[:, s:s + FRAME_SIZE] += padded[:, a:a + FRAME_SIZE] * window
        weight[s:s + FRAME_SIZE] += window
        k += 1

    covered = weight > 1e-8
    out[:, covered] /= weight[covered]
    return out


def pitch_shift(buffer: SampleBuffer, semitones: float) -> SampleBuffer:
    """
    Shift the pitch of a buffer without changing its length.

    Args:
        buffer: Input buffer
        semitones: Shift in semitones, clamped to [-12, 12]. Non-finite
            values count as 0.

    Returns:
        New buffer with the same shape and sample rate; an exact copy when
        the shift is 0
    """
    if not math.isfinite(semitones):
        semitones = 0.0
    semitones = min(max(float(semitones), -MAX_SEMITONES), MAX_SEMITONES)

    if semitones == 0.0 or buffer.frames == 0:
        return buffer.copy()

    ratio = pitch_ratio(semitones)
    stretched = _stretch(buffer.data, ratio, FRAME_SIZE)

    positions = ratio * (FRAME_SIZE + np.arange(buffer.frames, dtype=SAMPLE_DTYPE))
    return SampleBuffer._adopt(_interpolate(stretched, positions), buffer.sample_rate)
