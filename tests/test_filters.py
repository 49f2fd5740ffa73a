"""Tests for the pixel buffer, resizer and filter stage."""

from __future__ import annotations

import numpy as np
import pytest
from PIL import Image

from flagmaker.buffer import PixelBuffer, quantize
from flagmaker.config import ProcessingParameters
from flagmaker.errors import GeometryError
from flagmaker.filters import (
    apply_brightness,
    apply_contrast,
    apply_filters,
    apply_median,
    apply_sharpen,
)
from flagmaker.resize import resize


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _random_buffer(width: int = 12, height: int = 9, seed: int = 42) -> PixelBuffer:
    rng = np.random.RandomState(seed)
    arr = rng.randint(0, 256, (height, width, 4), dtype=np.uint8)
    return PixelBuffer.from_array(arr)


def _gray_with_center(size: int = 3, base: float = 0.5, center: float = 1.0) -> PixelBuffer:
    data = np.full((size, size, 4), base, dtype=np.float32)
    data[:, :, 3] = 1.0
    data[size // 2, size // 2, :3] = center
    return PixelBuffer(data)


NEUTRAL = ProcessingParameters(brightness=0.0, contrast=1.0, sharpen=0.0, noise=1)


# ---------------------------------------------------------------------------
# Tests: PixelBuffer
# ---------------------------------------------------------------------------

class TestPixelBuffer:
    def test_zero_area_rejected(self):
        with pytest.raises(GeometryError):
            PixelBuffer(np.zeros((0, 4, 4), dtype=np.float32))

    def test_wrong_channel_count_rejected(self):
        with pytest.raises(GeometryError):
            PixelBuffer(np.zeros((2, 2, 3), dtype=np.float32))

    def test_from_array_adds_opaque_alpha(self):
        buf = PixelBuffer.from_array(np.zeros((2, 3, 3), dtype=np.uint8))
        assert buf.size == (3, 2)
        assert len(buf) == 6
        assert np.all(buf.pixels[:, :, 3] == 1.0)

    def test_from_image_flips_rows(self):
        img = Image.new("RGBA", (1, 2))
        img.putpixel((0, 0), (255, 0, 0, 255))   # top
        img.putpixel((0, 1), (0, 0, 255, 255))   # bottom
        buf = PixelBuffer.from_image(img)
        assert tuple(buf.to_uint8()[0, 0]) == (0, 0, 255, 255)
        assert tuple(buf.to_uint8()[1, 0]) == (255, 0, 0, 255)

    def test_image_roundtrip(self):
        buf = _random_buffer()
        back = PixelBuffer.from_image(buf.to_image())
        assert np.array_equal(back.to_uint8(), buf.to_uint8())

    def test_quantize_clamps(self):
        values = np.array([-0.2, 0.0, 0.5, 1.0, 1.4], dtype=np.float32)
        assert quantize(values).tolist() == [0, 0, 128, 255, 255]

    def test_opaque_keeps_rgb(self):
        buf = _random_buffer()
        opaque = buf.opaque()
        assert np.all(opaque.pixels[:, :, 3] == 1.0)
        assert np.array_equal(opaque.pixels[:, :, :3], buf.pixels[:, :, :3])


# ---------------------------------------------------------------------------
# Tests: Resizer
# ---------------------------------------------------------------------------

class TestResize:
    @pytest.mark.parametrize("src_size", [(1, 1), (2, 2), (37, 23), (400, 300)])
    def test_output_has_target_dimensions(self, src_size):
        buf = _random_buffer(*src_size)
        out = resize(buf, 100, 66)
        assert out.size == (100, 66)
        assert len(out) == 100 * 66

    def test_default_target_is_flag_size(self):
        out = resize(_random_buffer())
        assert out.size == (100, 66)

    def test_non_positive_target_fails_fast(self):
        buf = _random_buffer()
        with pytest.raises(GeometryError):
            resize(buf, 0, 66)
        with pytest.raises(ValueError):
            resize(buf, 100, -1)

    def test_deterministic(self):
        buf = _random_buffer(53, 41)
        a = resize(buf, 100, 66)
        b = resize(buf, 100, 66)
        assert np.array_equal(a.pixels, b.pixels)

    def test_uniform_image_stays_uniform(self):
        data = np.full((30, 50, 4), 0.25, dtype=np.float32)
        out = resize(PixelBuffer(data), 100, 66)
        assert np.allclose(out.pixels, 0.25, atol=1e-6)

    def test_source_untouched(self):
        buf = _random_buffer()
        before = buf.pixels.copy()
        resize(buf, 100, 66)
        assert np.array_equal(buf.pixels, before)


# ---------------------------------------------------------------------------
# Tests: individual filters
# ---------------------------------------------------------------------------

class TestBrightnessContrast:
    def test_brightness_adds_without_clamp(self):
        buf = PixelBuffer(np.full((2, 2, 4), 0.9, dtype=np.float32))
        apply_brightness(buf, 0.5)
        assert np.allclose(buf.pixels[:, :, :3], 1.4)
        assert np.allclose(buf.pixels[:, :, 3], 0.9)

    def test_contrast_formula(self):
        buf = PixelBuffer(np.full((1, 1, 4), 0.75, dtype=np.float32))
        apply_contrast(buf, 3.0)
        assert np.allclose(buf.pixels[0, 0, :3], 1.25)
        assert buf.pixels[0, 0, 3] == pytest.approx(0.75)

    def test_contrast_below_one_reduces(self):
        buf = PixelBuffer(np.full((1, 1, 4), 1.0, dtype=np.float32))
        apply_contrast(buf, 0.5)
        assert np.allclose(buf.pixels[0, 0, :3], 0.75)

    def test_brightness_zero_contrast_one_identity(self):
        buf = _random_buffer()
        before = buf.pixels.copy()
        apply_brightness(buf, 0.0)
        apply_contrast(buf, 1.0)
        assert np.allclose(buf.pixels, before, atol=1e-6)

    def test_dimensions_preserved(self):
        buf = _random_buffer(7, 5)
        apply_contrast(apply_brightness(buf, 0.3), 2.0)
        assert buf.size == (7, 5)


class TestSharpen:
    def test_uniform_image_unchanged(self):
        buf = PixelBuffer(np.full((5, 5, 4), 0.4, dtype=np.float32))
        apply_sharpen(buf, 1.0)
        assert np.allclose(buf.pixels, 0.4, atol=1e-6)

    def test_full_strength_center(self):
        buf = _gray_with_center()
        apply_sharpen(buf, 1.0)
        # 5 * 1.0 - 4 * 0.5
        assert np.allclose(buf.pixels[1, 1, :3], 3.0)

    def test_half_strength_blends(self):
        buf = _gray_with_center()
        apply_sharpen(buf, 0.5)
        assert np.allclose(buf.pixels[1, 1, :3], 2.0)

    def test_strength_above_one_saturates_blend(self):
        a = _gray_with_center()
        b = _gray_with_center()
        apply_sharpen(a, 1.0)
        apply_sharpen(b, 2.0)
        assert np.allclose(a.pixels, b.pixels)

    def test_border_passes_through(self):
        buf = _random_buffer(6, 5)
        before = buf.pixels.copy()
        apply_sharpen(buf, 1.0)
        assert np.array_equal(buf.pixels[0], before[0])
        assert np.array_equal(buf.pixels[-1], before[-1])
        assert np.array_equal(buf.pixels[:, 0], before[:, 0])
        assert np.array_equal(buf.pixels[:, -1], before[:, -1])

    def test_alpha_preserved(self):
        buf = _gray_with_center()
        buf.pixels[:, :, 3] = 0.3
        apply_sharpen(buf, 1.0)
        assert np.allclose(buf.pixels[:, :, 3], 0.3)

    def test_tiny_buffer_is_noop(self):
        buf = _random_buffer(2, 2)
        before = buf.pixels.copy()
        apply_sharpen(buf, 1.0)
        assert np.array_equal(buf.pixels, before)


class TestMedian:
    def test_size_one_identity(self):
        buf = _random_buffer()
        before = buf.pixels.copy()
        apply_median(buf, 1)
        assert np.array_equal(buf.pixels, before)

    def test_removes_single_outlier(self):
        buf = _gray_with_center(size=5, base=0.2, center=0.9)
        apply_median(buf, 3)
        assert np.allclose(buf.pixels[:, :, :3], 0.2)

    def test_edge_replication_at_corner(self):
        # corner window sees the outlier once among nine samples
        buf = _gray_with_center(size=3, base=0.2, center=0.9)
        apply_median(buf, 3)
        assert np.allclose(buf.pixels[0, 0, :3], 0.2)

    def test_channels_filtered_independently(self):
        data = np.zeros((1, 3, 4), dtype=np.float32)
        data[0, :, 0] = [0.1, 0.9, 0.5]
        data[0, :, 1] = [0.7, 0.3, 0.2]
        data[0, :, 3] = 1.0
        buf = PixelBuffer(data)
        apply_median(buf, 3)
        # middle pixel window: r {0.1,0.9,0.5} x3 rows, g {0.7,0.3,0.2}
        assert buf.pixels[0, 1, 0] == pytest.approx(0.5)
        assert buf.pixels[0, 1, 1] == pytest.approx(0.3)

    def test_alpha_from_center_pixel(self):
        buf = _gray_with_center(size=3)
        buf.pixels[1, 1, 3] = 0.2
        apply_median(buf, 3)
        assert buf.pixels[1, 1, 3] == pytest.approx(0.2)
        assert buf.pixels[0, 0, 3] == pytest.approx(1.0)

    def test_even_size_acts_like_next_odd(self):
        a = _random_buffer(9, 9)
        b = a.copy()
        apply_median(a, 4)
        apply_median(b, 5)
        assert np.array_equal(a.pixels, b.pixels)


# ---------------------------------------------------------------------------
# Tests: filter chain
# ---------------------------------------------------------------------------

class TestApplyFilters:
    def test_neutral_parameters_identity(self):
        buf = _random_buffer()
        before = buf.pixels.copy()
        apply_filters(buf, NEUTRAL)
        assert np.array_equal(buf.pixels, before)

    def test_fixed_order_brightness_before_contrast(self):
        buf = PixelBuffer(np.full((1, 1, 4), 0.5, dtype=np.float32))
        params = ProcessingParameters(brightness=0.1, contrast=2.0, sharpen=0.0, noise=1)
        apply_filters(buf, params)
        # (0.5 + 0.1 - 0.5) * 2 + 0.5, not 0.5 + 0.1
        assert buf.pixels[0, 0, 0] == pytest.approx(0.7, abs=1e-6)

    def test_dimensions_preserved_with_all_filters(self):
        buf = _random_buffer(100, 66)
        params = ProcessingParameters(brightness=0.2, contrast=3.0, sharpen=1.5, noise=5)
        apply_filters(buf, params)
        assert buf.size == (100, 66)
