"""
Audio Types - The unit every node consumes and produces.

SampleBuffer is immutable by construction: its array is flagged read-only,
so a node can never mutate a buffer it borrowed from upstream. Every
kernel allocates and returns a new buffer.

AudioBundle is the value carried by a port: zero, one or many buffers with
a parallel sequence of labels (usually filenames). An empty bundle is the
"null" output of a node.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, Sequence

import numpy as np

SAMPLE_DTYPE = np.float64


class SampleBuffer:
    """A ``(channels, frames)`` float64 PCM buffer with a sample rate.

    Args:
        data: Sample array. 1D input is treated as mono.
        sample_rate: Sample rate in Hz (positive integer).

    Example:
        buf = SampleBuffer(np.zeros((2, 48000)), 48000)
        buf.duration  # 1.0
    """

    __slots__ = ("_data", "_sample_rate")

    def __init__(self, data: np.ndarray | Sequence[Sequence[float]], sample_rate: int):
        arr = np.array(data, dtype=SAMPLE_DTYPE, copy=True)
        if arr.ndim == 1:
            arr = arr.reshape(1, -1)
        elif arr.ndim != 2:
            raise ValueError(f"SampleBuffer requires 1D or 2D data, got {arr.ndim}D")
        if arr.shape[0] < 1:
            raise ValueError("SampleBuffer requires at least one channel")

        rate = int(sample_rate)
        if rate <= 0 or rate != sample_rate:
            raise ValueError(f"sample_rate must be a positive integer, got {sample_rate}")

        arr.setflags(write=False)
        self._data = arr
        self._sample_rate = rate

    @classmethod
    def from_channels(cls, channels: Sequence[np.ndarray], sample_rate: int) -> SampleBuffer:
        """Build a buffer from one array per channel (all the same length)."""
        lengths = {len(ch) for ch in channels}
        if len(lengths) > 1:
            raise ValueError(f"Channel lengths differ: {sorted(lengths)}")
        return cls(np.vstack([np.asarray(ch, dtype=SAMPLE_DTYPE) for ch in channels]), sample_rate)

    @classmethod
    def silence(cls, channels: int, frames: int, sample_rate: int) -> SampleBuffer:
        """A buffer of zeros."""
        return cls(np.zeros((channels, frames), dtype=SAMPLE_DTYPE), sample_rate)

    @classmethod
    def _adopt(cls, arr: np.ndarray, sample_rate: int) -> SampleBuffer:
        """Wrap a freshly allocated kernel array without copying it again."""
        buf = cls.__new__(cls)
        arr = np.ascontiguousarray(arr, dtype=SAMPLE_DTYPE)
        arr.setflags(write=False)
        buf._data = arr
        buf._sample_rate = int(sample_rate)
        return buf

    @property
    def data(self) -> np.ndarray:
        """Read-only ``(channels, frames)`` array."""
        return self._data

    @property
    def sample_rate(self) -> int:
        return self._sample_rate

    @property
    def channels(self) -> int:
        return self._data.shape[0]

    @property
    def frames(self) -> int:
        return self._data.shape[1]

    def __len__(self) -> int:
        return self.frames

    @property
    def duration(self) -> float:
        """Duration in seconds."""
        return self.frames / self._sample_rate

    def channel(self, index: int) -> np.ndarray:
        """Read-only view of one channel."""
        return self._data[index]

    def peak(self) -> float:
        """Largest absolute sample value (0.0 for an empty buffer)."""
        if self._data.size == 0:
            return 0.0
        return float(np.max(np.abs(self._data)))

    def with_data(self, data: np.ndarray) -> SampleBuffer:
        """New buffer with the same sample rate and different samples."""
        return SampleBuffer._adopt(np.array(data, dtype=SAMPLE_DTYPE, copy=True), self._sample_rate)

    def copy(self) -> SampleBuffer:
        return SampleBuffer._adopt(self._data.copy(), self._sample_rate)

    def tobytes(self) -> bytes:
        """Raw float64 bytes, used for bit-exact comparisons."""
        return self._data.tobytes()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SampleBuffer):
            return NotImplemented
        return (
            self._sample_rate == other._sample_rate
            and self._data.shape == other._data.shape
            and np.array_equal(self._data, other._data)
        )

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return (
            f"SampleBuffer(channels={self.channels}, frames={self.frames}, "
            f"sample_rate={self._sample_rate})"
        )


@dataclass(frozen=True)
class AudioBundle:
    """Zero, one or many buffers arriving together at a port.

    ``labels`` runs parallel to ``buffers``. Missing labels are filled with
    ``file<n>`` so the two sequences always have the same length; more labels
    than buffers is an error.
    """
    buffers: tuple[SampleBuffer, ...] = ()
    labels: tuple[str, ...] = field(default=())

    def __post_init__(self) -> None:
        buffers = tuple(self.buffers)
        labels = list(self.labels)
        if len(labels) > len(buffers):
            raise ValueError(f"{len(labels)} labels for {len(buffers)} buffers")
        while len(labels) < len(buffers):
            labels.append(f"file{len(labels) + 1}")
        object.__setattr__(self, "buffers", buffers)
        object.__setattr__(self, "labels", tuple(labels))

    @classmethod
    def empty(cls) -> AudioBundle:
        return cls()

    @classmethod
    def single(cls, buffer: SampleBuffer, label: str = "file1") -> AudioBundle:
        return cls((buffer,), (label,))

    @property
    def first(self) -> SampleBuffer | None:
        """First buffer, or None for an empty bundle."""
        return self.buffers[0] if self.buffers else None

    @property
    def first_label(self) -> str | None:
        return self.labels[0] if self.labels else None

    @property
    def is_empty(self) -> bool:
        return not self.buffers

    @property
    def is_multi(self) -> bool:
        """True when more than one buffer arrived together."""
        return len(self.buffers) > 1

    def items(self) -> Iterator[tuple[SampleBuffer, str]]:
        """Iterate ``(buffer, label)`` pairs."""
        return iter(zip(self.buffers, self.labels))

    def extend(self, other: AudioBundle) -> AudioBundle:
        """New bundle with ``other`` appended after this one."""
        return AudioBundle(self.buffers + other.buffers, self.labels + other.labels)

    def __len__(self) -> int:
        return len(self.buffers)

    def __iter__(self) -> Iterator[SampleBuffer]:
        return iter(self.buffers)

    def __bool__(self) -> bool:
        return bool(self.buffers)
