"""
Two-input kernels - concatenation and mixing.

Both kernels bring the second buffer to the first buffer's format first:
    - sample rate: the first input's rate wins; the second is resampled
    - channels: max of both; the narrower buffer is widened by ChannelPolicy
"""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np

from soundgraph.audio import SAMPLE_DTYPE, ChannelPolicy, SampleBuffer
from soundgraph.dsp.gain import FULL_SCALE, normalize_peak
from soundgraph.dsp.rate import resample_to_rate


def widen_channels(
    buffer: SampleBuffer,
    channels: int,
    policy: ChannelPolicy | str = ChannelPolicy.DUPLICATE_LAST,
) -> np.ndarray:
    """Return the buffer's samples with exactly ``channels`` rows.

    Missing rows repeat the last channel (DUPLICATE_LAST) or are zero
    (SILENCE). Buffers already that wide are returned as-is.
    """
    have = buffer.channels
    if have >= channels:
        return buffer.data
    if ChannelPolicy(policy) is ChannelPolicy.SILENCE:
        extra = np.zeros((channels - have, buffer.frames), dtype=SAMPLE_DTYPE)
    else:
        extra = np.repeat(buffer.data[-1:], channels - have, axis=0)
    return np.vstack([buffer.data, extra])


def match_format(
    first: SampleBuffer,
    second: SampleBuffer,
    policy: ChannelPolicy | str = ChannelPolicy.DUPLICATE_LAST,
) -> tuple[np.ndarray, np.ndarray, int]:
    """Bring both buffers to a common rate and channel count.

    Returns:
        (first_samples, second_samples, sample_rate)
    """
    rate = first.sample_rate
    second = resample_to_rate(second, rate)
    channels = max(first.channels, second.channels)
    return (
        widen_channels(first, channels, policy),
        widen_channels(second, channels, policy),
        rate,
    )


def join(
    first: SampleBuffer,
    second: SampleBuffer,
    policy: ChannelPolicy | str = ChannelPolicy.DUPLICATE_LAST,
) -> SampleBuffer:
    """
    Concatenate two buffers end to end.

    Args:
        first: Leading audio; its sample rate is kept
        second: Trailing audio; resampled to the first's rate if needed
        policy: How the narrower buffer gains channels

    Returns:
        New buffer of ``len(first) + len(second)`` samples (when rates match)

    Example:
        out = join(intro, body)
        assert out.duration == pytest.approx(intro.duration + body.duration)
    """
    a, b, rate = match_format(first, second, policy)
    return SampleBuffer._adopt(np.concatenate([a, b], axis=1), rate)


@dataclass(frozen=True)
class MixResult:
    """Output of mix.

    Attributes:
        buffer: Mixed audio.
        normalized: True if the mix was rescaled to avoid clipping.
        clipped: True if the mix exceeds full scale and was left as-is.
    """
    buffer: SampleBuffer
    normalized: bool
    clipped: bool


def mix(
    first: SampleBuffer,
    second: SampleBuffer,
    balance: float = 50.0,
    auto_normalize: bool = True,
    policy: ChannelPolicy | str = ChannelPolicy.DUPLICATE_LAST,
) -> MixResult:
    """
    Sum two buffers sample-wise.

    Args:
        first: Track 1; its sample rate is kept
        second: Track 2
        balance: Share of track 1 in percent (track 2 gets 100 - balance)
        auto_normalize: Rescale to peak 1.0 when the sum clips
        policy: How the narrower buffer gains channels

    Returns:
        MixResult; the output is as long as the longer input, the shorter
        one padded with silence
    """
    if not math.isfinite(balance):
        balance = 50.0
    balance = min(max(float(balance), 0.0), 100.0)

    a, b, rate = match_format(first, second, policy)
    frames = max(a.shape[1], b.shape[1])
    out = np.zeros((a.shape[0], frames), dtype=SAMPLE_DTYPE)
    out[:, : a.shape[1]] += a * (balance / 100.0)
    out[:, : b.shape[1]] += b * ((100.0 - balance) / 100.0)

    peak = float(np.max(np.abs(out))) if out.size else 0.0
    over = peak > FULL_SCALE
    if over and auto_normalize:
        out = normalize_peak(out)

    return MixResult(
        buffer=SampleBuffer._adopt(out, rate),
        normalized=over and auto_normalize,
        clipped=over and not auto_normalize,
    )
