"""Tests for the mosaic-aware binomial blur."""

import numpy as np
import pytest

from burstfuse.raw.filters import binomial_kernel, mosaic_blur

pytestmark = pytest.mark.unit


class TestBinomialKernel:

    @pytest.mark.parametrize("k", [0, 1, 2, 4])
    def test_length_and_normalization(self, k):
        weights = binomial_kernel(k)
        assert weights.size == 2 * k + 1
        assert weights.sum() == pytest.approx(1.0)
        np.testing.assert_allclose(weights, weights[::-1])

    def test_radius_two_weights(self):
        np.testing.assert_allclose(binomial_kernel(2), np.array([1, 4, 6, 4, 1]) / 16)

    def test_negative_size_rejected(self):
        with pytest.raises(ValueError):
            binomial_kernel(-1)


class TestMosaicBlur:

    @pytest.mark.parametrize("pattern_width", [1, 2, 6])
    def test_flat_buffer_is_fixed_point(self, pattern_width):
        buf = np.full((13, 19), 321.0)
        np.testing.assert_allclose(mosaic_blur(buf, pattern_width, 2), buf)

    @pytest.mark.parametrize("shape", [(8, 8), (7, 9)])
    def test_bayer_blur_keeps_colours_apart(self, shape):
        """Only samples of one colour are mixed, even at the borders."""
        buf = np.zeros(shape)
        buf[0::2, 0::2] = 100.0
        out = mosaic_blur(buf, 2, 2)
        np.testing.assert_allclose(out[0::2, 0::2], 100.0)
        np.testing.assert_allclose(out[1::2, :], 0.0)
        np.testing.assert_allclose(out[:, 1::2], 0.0)

    def test_width_one_mixes_neighbours(self):
        buf = np.zeros((5, 5))
        buf[2, 2] = 16.0
        out = mosaic_blur(buf, 1, 1)
        assert out[2, 2] == pytest.approx(4.0)
        assert out[2, 3] == pytest.approx(2.0)
        assert out[3, 3] == pytest.approx(1.0)
        assert out.sum() == pytest.approx(16.0)

    def test_input_not_modified(self):
        buf = np.arange(16, dtype=float).reshape(4, 4)
        before = buf.copy()
        mosaic_blur(buf, 2, 1)
        np.testing.assert_array_equal(buf, before)

    def test_empty_buffer(self):
        assert mosaic_blur(np.zeros((0, 4)), 2, 1).shape == (0, 4)
