"""
Tests for dimension normalization.
"""

import unittest

from duotone_lib import MAX_DIMENSION, calculate_dimensions


class TestCalculateDimensions(unittest.TestCase):
    """Test clamping image dimensions to the maximum bound."""

    def test_landscape_scaled_down(self):
        """Wide images are limited by their width."""
        self.assertEqual(calculate_dimensions(4000, 2000), (3000, 1500))

    def test_within_bounds_unchanged(self):
        """Images inside the bound are returned as is."""
        self.assertEqual(calculate_dimensions(2000, 1000), (2000, 1000))

    def test_exactly_at_bound_unchanged(self):
        """The bound itself is inclusive."""
        self.assertEqual(calculate_dimensions(3000, 3000), (3000, 3000))

    def test_portrait_scaled_down(self):
        """Tall images are limited by their height."""
        self.assertEqual(calculate_dimensions(2000, 4500), (1333, 3000))

    def test_rounds_to_nearest(self):
        """Scaled sides round to the nearest pixel."""
        # 10 * 3000 / 3001 = 9.9967 rounds up to 10
        self.assertEqual(calculate_dimensions(3001, 10), (3000, 10))

    def test_thin_image_keeps_one_pixel(self):
        """A side never rounds down to zero."""
        self.assertEqual(calculate_dimensions(10000, 1), (3000, 1))

    def test_custom_bound(self):
        """A caller-supplied bound is honored."""
        self.assertEqual(calculate_dimensions(400, 200, max_dimension=100), (100, 50))

    def test_default_bound(self):
        """The default bound is 3000 pixels."""
        self.assertEqual(MAX_DIMENSION, 3000)


if __name__ == '__main__':
    unittest.main()
