"""
Tests for pixel buffers and the luminance analyzer.
"""

import unittest

import numpy as np

from duotone_lib import (
    InvalidInputError,
    LuminanceField,
    PixelBuffer,
    analyze_luminance,
    compute_luminance,
)
from tile_processor import TileProcessor


def solid(width, height, rgba):
    return PixelBuffer(np.full((height, width, 4), rgba, dtype=np.uint8))


class TestPixelBuffer(unittest.TestCase):
    """Test pixel buffer construction and validation."""

    def test_dimensions(self):
        """Width, height and byte length follow the array shape."""
        buffer = solid(5, 3, (1, 2, 3, 4))
        self.assertEqual((buffer.width, buffer.height), (5, 3))
        self.assertEqual(buffer.size, (5, 3))
        self.assertEqual(len(buffer.to_bytes()), 5 * 3 * 4)

    def test_from_bytes(self):
        """Flat RGBA bytes are wrapped row by row."""
        raw = bytes(range(2 * 2 * 4))
        buffer = PixelBuffer.from_bytes(raw, 2, 2)
        self.assertEqual(tuple(buffer.data[1, 0]), (8, 9, 10, 11))
        self.assertEqual(buffer.to_bytes(), raw)

    def test_from_bytes_wrong_length(self):
        """A byte count that does not match the size is rejected."""
        with self.assertRaises(InvalidInputError):
            PixelBuffer.from_bytes(bytes(15), 2, 2)

    def test_from_bytes_zero_area(self):
        """Zero-area byte buffers are rejected."""
        with self.assertRaises(InvalidInputError):
            PixelBuffer.from_bytes(b"", 0, 10)

    def test_zero_area_array(self):
        """Zero-area arrays are rejected."""
        with self.assertRaises(InvalidInputError):
            PixelBuffer(np.zeros((0, 4, 4), dtype=np.uint8))

    def test_rejects_rgb_array(self):
        """Arrays without an alpha channel are rejected."""
        with self.assertRaises(InvalidInputError):
            PixelBuffer(np.zeros((4, 4, 3), dtype=np.uint8))

    def test_rejects_float_array(self):
        """Only uint8 data is accepted."""
        with self.assertRaises(InvalidInputError):
            PixelBuffer(np.zeros((4, 4, 4), dtype=np.float32))

    def test_invalid_input_is_value_error(self):
        """Input errors are also ValueErrors."""
        self.assertTrue(issubclass(InvalidInputError, ValueError))

    def test_resized_returns_new_buffer(self):
        """Resizing returns a new buffer and leaves the source alone."""
        buffer = solid(40, 20, (10, 20, 30, 255))
        resized = buffer.resized(20, 10)
        self.assertEqual(resized.size, (20, 10))
        self.assertEqual(tuple(resized.data[5, 5]), (10, 20, 30, 255))
        self.assertEqual(buffer.size, (40, 20))


class TestLuminance(unittest.TestCase):
    """Test Rec.709 luminance and range analysis."""

    def test_rec709_weights(self):
        """Each channel contributes its Rec.709 weight."""
        pixels = np.array([[[255, 0, 0, 255], [0, 255, 0, 255], [0, 0, 255, 255]]], dtype=np.uint8)
        lum = compute_luminance(pixels)
        self.assertAlmostEqual(lum[0, 0], 0.2126 * 255)
        self.assertAlmostEqual(lum[0, 1], 0.7152 * 255)
        self.assertAlmostEqual(lum[0, 2], 0.0722 * 255)

    def test_alpha_ignored(self):
        """Alpha does not affect luminance."""
        pixels = np.array([[[100, 100, 100, 0], [100, 100, 100, 255]]], dtype=np.uint8)
        lum = compute_luminance(pixels)
        self.assertEqual(lum[0, 0], lum[0, 1])

    def test_min_max(self):
        """The observed range spans the darkest and brightest pixels."""
        data = np.zeros((2, 2, 4), dtype=np.uint8)
        data[0, 0, :3] = 255
        data[1, 1, :3] = (0, 0, 255)
        field = analyze_luminance(PixelBuffer(data))
        self.assertEqual(field.min_luminance, 0.0)
        self.assertAlmostEqual(field.max_luminance, 255.0)
        self.assertFalse(field.is_flat)
        origin, span = field.normalization_bounds()
        self.assertEqual(origin, 0.0)
        self.assertAlmostEqual(span, 255.0)

    def test_normalized_stretches_range(self):
        """The observed range is stretched to [0, 1]."""
        data = np.zeros((1, 3, 4), dtype=np.uint8)
        data[0, :, :3] = np.array([[50], [100], [150]])
        field = analyze_luminance(PixelBuffer(data))
        np.testing.assert_allclose(field.normalized()[0], [0.0, 0.5, 1.0], atol=1e-12)

    def test_flat_image_uses_full_scale(self):
        """A flat image is normalized against the full 8-bit scale."""
        field = analyze_luminance(solid(4, 4, (128, 128, 128, 255)))
        self.assertTrue(field.is_flat)
        self.assertEqual(field.normalization_bounds(), (0.0, 255.0))
        normalized = field.normalized()
        self.assertTrue(np.all(np.isfinite(normalized)))
        self.assertAlmostEqual(float(normalized[0, 0]), 128 / 255.0)

    def test_flat_black_and_white(self):
        """Flat black stays 0 and flat white stays 1."""
        self.assertEqual(float(analyze_luminance(solid(3, 3, (0, 0, 0, 255))).normalized().max()), 0.0)
        self.assertAlmostEqual(float(analyze_luminance(solid(3, 3, (255, 255, 255, 255))).normalized().min()), 1.0)

    def test_tiled_matches_direct(self):
        """Banded analysis matches a single pass."""
        rng = np.random.default_rng(7)
        buffer = PixelBuffer(rng.integers(0, 256, size=(90, 31, 4), dtype=np.uint8))
        direct = analyze_luminance(buffer)
        tiled = analyze_luminance(buffer, TileProcessor(num_workers=3, min_band_rows=10))
        np.testing.assert_array_equal(direct.values, tiled.values)
        self.assertEqual(direct.min_luminance, tiled.min_luminance)
        self.assertEqual(direct.max_luminance, tiled.max_luminance)

    def test_field_rejects_inverted_range(self):
        """A maximum below the minimum is rejected."""
        with self.assertRaises(ValueError):
            LuminanceField(np.zeros((1, 1)), 10.0, 5.0)


if __name__ == '__main__':
    unittest.main()
