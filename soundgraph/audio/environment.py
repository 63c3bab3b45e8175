"""
Audio environment - process-wide processing policy.

The environment is an explicit value passed into processors and kernels.
Nothing in the engine reads ambient global audio state.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ChannelPolicy(str, Enum):
    """How a narrower buffer is widened to match a wider one."""
    DUPLICATE_LAST = "duplicate_last"   # Repeat the last channel
    SILENCE = "silence"                 # Fill missing channels with zeros


SUPPORTED_BIT_DEPTHS = (16, 24, 32)


@dataclass(frozen=True)
class AudioEnvironment:
    """Sample-rate policy and channel support shared by every node.

    Attributes:
        target_sample_rate: When set, source audio is resampled to this rate
            on load. None keeps each file's own rate.
        supported_channel_counts: Channel counts a source may decode to.
        soft_clip_knee: Magnitude above which SOFTCLIP starts compressing.
        channel_policy: Default widening policy for Join and Mix.
        export_bit_depth: Integer PCM depth used by export.
    """
    target_sample_rate: int | None = None
    supported_channel_counts: tuple[int, ...] = (1, 2)
    soft_clip_knee: float = 0.8
    channel_policy: ChannelPolicy = ChannelPolicy.DUPLICATE_LAST
    export_bit_depth: int = 16

    def __post_init__(self) -> None:
        if self.target_sample_rate is not None and self.target_sample_rate <= 0:
            raise ValueError("target_sample_rate must be positive")
        if not self.supported_channel_counts or min(self.supported_channel_counts) < 1:
            raise ValueError("supported_channel_counts must list positive counts")
        if not 0.0 <= self.soft_clip_knee < 1.0:
            raise ValueError("soft_clip_knee must be in [0, 1)")
        if self.export_bit_depth not in SUPPORTED_BIT_DEPTHS:
            raise ValueError(
                f"export_bit_depth must be one of {SUPPORTED_BIT_DEPTHS}, "
                f"got {self.export_bit_depth}"
            )
        object.__setattr__(self, "channel_policy", ChannelPolicy(self.channel_policy))
        object.__setattr__(
            self, "supported_channel_counts", tuple(self.supported_channel_counts)
        )

    def supports_channels(self, count: int) -> bool:
        return count in self.supported_channel_counts


DEFAULT_ENVIRONMENT = AudioEnvironment()
