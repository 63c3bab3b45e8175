"""
Shared fixtures for soundgraph tests.

Provides:
    - Small synthetic buffers
    - WAV bytes for source nodes
    - A quiet structured logger (events captured in memory)
    - Engines with a zero debounce
"""

from __future__ import annotations

import io
import json

import numpy as np
import pytest

from soundgraph.audio import SampleBuffer
from soundgraph.engine import GraphEngine
from soundgraph.formats import encode
from soundgraph.monitoring import LogLevel, StructuredLogger
from soundgraph.runtime import EngineConfig, SchedulerConfig


class EventCapture:
    """A StructuredLogger writing JSON lines into memory."""

    def __init__(self):
        self.stream = io.StringIO()
        self.logger = StructuredLogger("test", level=LogLevel.DEBUG, output=self.stream)

    def records(self) -> list[dict]:
        return [json.loads(line) for line in self.stream.getvalue().splitlines() if line]

    def events(self, name: str | None = None) -> list[dict]:
        return [r for r in self.records() if name is None or r["event"] == name]


@pytest.fixture
def capture() -> EventCapture:
    return EventCapture()


@pytest.fixture
def mono() -> SampleBuffer:
    """Eight samples at 8 Hz: one second, easy arithmetic."""
    return SampleBuffer([0.0, 0.1, 0.2, 0.3, 0.4, 0.5, 0.6, 0.7], 8)


@pytest.fixture
def stereo() -> SampleBuffer:
    return SampleBuffer([[0.1, 0.2, 0.3, 0.4], [-0.1, -0.2, -0.3, -0.4]], 4)


@pytest.fixture
def tone() -> SampleBuffer:
    t = np.arange(8000) / 8000
    return SampleBuffer(np.sin(2 * np.pi * 440 * t) * 0.5, 8000)


def wav_bytes(data, sample_rate: int = 8000, bit_depth: int = 16) -> bytes:
    """Encode raw samples (quantized exactly) as WAV bytes."""
    return encode(SampleBuffer(data, sample_rate), bit_depth)


@pytest.fixture
def make_wav():
    return wav_bytes


@pytest.fixture
def engine(capture) -> GraphEngine:
    config = EngineConfig(scheduler=SchedulerConfig(debounce_ms=0))
    return GraphEngine(config, event_logger=capture.logger)
