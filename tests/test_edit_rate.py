"""
Tests for crop, fade and the rate-conversion kernels.
"""

import numpy as np
import pytest

from soundgraph.audio import SampleBuffer
from soundgraph.dsp import (
    FadeDirection,
    change_playback_rate,
    crop,
    fade,
    resample,
    resample_to_rate,
)


class TestCrop:
    """Tests for crop."""

    def test_range(self, mono):
        out = crop(mono, 0.25, 0.75)

        np.testing.assert_array_equal(out.data[0], [0.2, 0.3, 0.4, 0.5])

    def test_end_clamped_to_duration(self, mono):
        assert crop(mono, 0.0, 10.0) == mono

    def test_start_after_end_is_empty(self, mono):
        out = crop(mono, 0.9, 0.5)

        assert out.frames == 0
        assert out.channels == 1

    def test_floor_indices(self, mono):
        out = crop(mono, 0.13, 0.5)  # floor(1.04) = 1, floor(4) = 4

        np.testing.assert_array_equal(out.data[0], [0.1, 0.2, 0.3])

    def test_nan_end_means_full(self, mono):
        assert crop(mono, 0.0, float("nan")) == mono


class TestFade:
    """Tests for fade."""

    def test_fade_in_starts_at_zero(self, tone):
        out = fade(tone, 0.5, FadeDirection.IN)

        assert out.data[0, 0] == 0.0
        np.testing.assert_array_equal(out.data[:, 4000:], tone.data[:, 4000:])

    def test_fade_in_linear(self):
        buf = SampleBuffer(np.ones(8), 8)

        out = fade(buf, 0.5, "in")

        np.testing.assert_allclose(out.data[0], [0, 0.25, 0.5, 0.75, 1, 1, 1, 1])

    def test_fade_out_linear(self):
        buf = SampleBuffer(np.ones(8), 8)

        out = fade(buf, 0.5, "out")

        np.testing.assert_allclose(out.data[0], [1, 1, 1, 1, 1, 0.75, 0.5, 0.25])

    def test_fade_out_ends_near_zero(self):
        out = fade(SampleBuffer(np.ones(8000), 8000), 1.0, FadeDirection.OUT)

        assert out.data[0, -1] == pytest.approx(1 / 8000)

    def test_longer_than_buffer(self):
        buf = SampleBuffer(np.ones(4), 4)

        out = fade(buf, 2.0, FadeDirection.IN)

        np.testing.assert_allclose(out.data[0], [0, 0.125, 0.25, 0.375])

    def test_zero_duration_is_identity(self, mono):
        assert fade(mono, 0.0, "out") == mono


class TestPlaybackRate:
    """Tests for change_playback_rate."""

    def test_double_speed_halves_length(self, tone):
        out = change_playback_rate(tone, 2.0)

        assert len(out) == len(tone) // 2
        assert out.sample_rate == tone.sample_rate

    def test_double_speed_takes_every_other(self, mono):
        out = change_playback_rate(mono, 2.0)

        np.testing.assert_array_equal(out.data[0], [0.0, 0.2, 0.4, 0.6])

    def test_half_speed_interpolates(self):
        buf = SampleBuffer([0.0, 1.0], 2)

        out = change_playback_rate(buf, 0.5)

        np.testing.assert_allclose(out.data[0], [0.0, 0.5, 1.0, 1.0])

    def test_unity_is_copy(self, mono):
        assert change_playback_rate(mono, 1.0) == mono

    def test_nan_is_unity(self, mono):
        assert change_playback_rate(mono, float("nan")) == mono


class TestResample:
    """Tests for resample and resample_to_rate."""

    def test_factor_length(self, mono):
        assert len(resample(mono, 1.5)) == 12
        assert len(resample(mono, 0.5)) == 4

    def test_integer_positions_exact(self, mono):
        out = resample(mono, 2.0)

        np.testing.assert_array_equal(out.data[0, ::2], mono.data[0])

    def test_bad_factor(self, mono):
        with pytest.raises(ValueError):
            resample(mono, 0.0)

    def test_to_rate_keeps_duration(self, tone):
        out = resample_to_rate(tone, 16000)

        assert out.sample_rate == 16000
        assert out.frames == 16000
        assert out.duration == pytest.approx(tone.duration)

    def test_same_rate_returns_input(self, tone):
        assert resample_to_rate(tone, 8000) is tone
