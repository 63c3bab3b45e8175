"""
Audio module - buffers, bundles and the processing environment.

STABILITY: SampleBuffer is read-only after construction. Kernels never
mutate their inputs.
"""

from soundgraph.audio.types import (
    SAMPLE_DTYPE,
    SampleBuffer,
    AudioBundle,
)
from soundgraph.audio.environment import (
    AudioEnvironment,
    ChannelPolicy,
    DEFAULT_ENVIRONMENT,
    SUPPORTED_BIT_DEPTHS,
)

__all__ = [
    "SAMPLE_DTYPE",
    "SampleBuffer",
    "AudioBundle",
    "AudioEnvironment",
    "ChannelPolicy",
    "DEFAULT_ENVIRONMENT",
    "SUPPORTED_BIT_DEPTHS",
]
