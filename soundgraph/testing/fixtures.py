"""
Test Fixtures - Synthetic audio and ready-made graphs.

Provides:
    - Test buffer generation (tone, silence, noise, ramp)
    - WAV bytes for source nodes
    - Small wired graphs and engines
"""

from __future__ import annotations

import numpy as np

from soundgraph.audio import SampleBuffer
from soundgraph.formats import encode
from soundgraph.graph import AudioGraph
from soundgraph.nodes import NodeKind


def create_test_audio(
    duration: float = 1.0,
    sample_rate: int = 8000,
    frequency: float = 440.0,
    amplitude: float = 0.5,
    channels: int = 1,
    audio_type: str = "tone",
    seed: int = 0,
) -> SampleBuffer:
    """
    Create a synthetic buffer.

    Args:
        duration: Duration in seconds
        sample_rate: Sample rate in Hz
        frequency: Frequency for tone (if audio_type == "tone")
        amplitude: Peak amplitude
        channels: Number of identical channels
        audio_type: "tone", "silence", "noise" or "ramp"
        seed: Seed for "noise"

    Returns:
        SampleBuffer of ``floor(duration * sample_rate)`` frames
    """
    frames = int(duration * sample_rate)

    if audio_type == "silence":
        mono = np.zeros(frames)
    elif audio_type == "tone":
        t = np.arange(frames) / sample_rate
        mono = np.sin(2 * np.pi * frequency * t) * amplitude
    elif audio_type == "noise":
        mono = np.random.default_rng(seed).uniform(-amplitude, amplitude, frames)
    elif audio_type == "ramp":
        mono = np.linspace(-amplitude, amplitude, frames)
    else:
        raise ValueError(f"Unknown audio_type: {audio_type}")

    return SampleBuffer(np.tile(mono, (channels, 1)), sample_rate)


def create_test_wav(bit_depth: int = 16, **kwargs) -> bytes:
    """WAV bytes of ``create_test_audio(**kwargs)``."""
    return encode(create_test_audio(**kwargs), bit_depth)


def create_test_graph(gain: float = 1.0) -> AudioGraph:
    """
    A ``src -> vol -> soft`` chain with an empty source.

    Load audio with ``graph.load_source("src", wav_bytes)``.
    """
    graph = AudioGraph()
    graph.add_node("src", NodeKind.SOURCE)
    graph.add_node("vol", NodeKind.VOLUME, {"gain": gain})
    graph.add_node("soft", NodeKind.SOFTEN)
    graph.connect("src", "vol", "audio")
    graph.connect("vol", "soft", "audio")
    return graph


def create_test_engine(gain: float = 1.0, **audio_kwargs):
    """A GraphEngine around create_test_graph() with a tone already loaded."""
    from soundgraph.engine import GraphEngine

    engine = GraphEngine(graph=create_test_graph(gain))
    engine.graph.load_source("src", create_test_wav(**audio_kwargs), "tone.wav")
    return engine
