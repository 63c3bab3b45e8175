"""
Testing Utilities - assertions and fixtures for graph output.

Usage:
    from soundgraph.testing import AudioAssertions, create_test_audio

    buf = create_test_audio(duration=2.0, amplitude=0.9)
    AudioAssertions(buf).assert_duration(2.0).assert_no_clipping()
"""

from soundgraph.testing.assertions import (
    AudioAssertions,
    AudioAnalysis,
)

from soundgraph.testing.fixtures import (
    create_test_audio,
    create_test_wav,
    create_test_graph,
    create_test_engine,
)

__all__ = [
    # Assertions
    "AudioAssertions",
    "AudioAnalysis",
    # Fixtures
    "create_test_audio",
    "create_test_wav",
    "create_test_graph",
    "create_test_engine",
]
