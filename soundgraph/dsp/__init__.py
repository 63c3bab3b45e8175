"""
DSP kernels - pure functions over SampleBuffers.

Kernels are synchronous and never suspend. They never mutate their input
and always return a new buffer. Malformed numeric parameters (NaN, Inf,
out-of-range) are clamped here, at the kernel boundary.

Example:
    from soundgraph.dsp import apply_gain, ClippingMode, soften, join

    louder = apply_gain(buf, 2.0, ClippingMode.LIMITER).buffer
    warm = soften(louder, cutoff_hz=4000, intensity=60)
    both = join(warm, buf)
"""

from soundgraph.dsp.gain import (
    ClippingMode,
    GainResult,
    apply_gain,
    detect_clipping,
    soft_clip,
    normalize_peak,
    PeakSyncResult,
    peak_db,
    sync_peaks,
)
from soundgraph.dsp.pitch import pitch_shift, pitch_ratio
from soundgraph.dsp.soften import soften, lowpass_alpha
from soundgraph.dsp.join import join, mix, MixResult, widen_channels
from soundgraph.dsp.edit import crop, fade, FadeDirection
from soundgraph.dsp.rate import resample, resample_to_rate, change_playback_rate

__all__ = [
    # Gain
    "ClippingMode",
    "GainResult",
    "apply_gain",
    "detect_clipping",
    "soft_clip",
    "normalize_peak",
    "PeakSyncResult",
    "peak_db",
    "sync_peaks",
    # Pitch
    "pitch_shift",
    "pitch_ratio",
    # Soften
    "soften",
    "lowpass_alpha",
    # Two-input
    "join",
    "mix",
    "MixResult",
    "widen_channels",
    # Editing
    "crop",
    "fade",
    "FadeDirection",
    # Rate
    "resample",
    "resample_to_rate",
    "change_playback_rate",
]
