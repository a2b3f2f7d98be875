"""Unit tests for geometry helpers, the pixel buffer and the selection model.

Tests:
    - round_half_away and CoordinateMapper
    - PhysicalRect and normalized_rect
    - ScreenCaptureBuffer bounds checks and cropping
    - Selection lifecycle, bounds, hit-testing and resize handles
"""

import unittest

from PySide6.QtCore import QPointF

from snapmark.core.geometry import (
    CoordinateMapper,
    PhysicalRect,
    normalized_rect,
    round_half_away,
)
from snapmark.core.image_buffer import CapturedScreen, ScreenCaptureBuffer
from snapmark.core.selection import HandlePosition, Selection

RED = (255, 0, 0, 255)
BLUE = (0, 0, 255, 255)


class TestRounding(unittest.TestCase):
    """Halves round away from zero."""

    def test_positive_half(self):
        self.assertEqual(round_half_away(2.5), 3)
        self.assertEqual(round_half_away(0.5), 1)

    def test_negative_half(self):
        self.assertEqual(round_half_away(-2.5), -3)
        self.assertEqual(round_half_away(-0.5), -1)

    def test_non_half(self):
        self.assertEqual(round_half_away(2.49), 2)
        self.assertEqual(round_half_away(-2.51), -3)
        self.assertEqual(round_half_away(7.0), 7)


class TestCoordinateMapper(unittest.TestCase):
    """Logical to selection-relative physical mapping."""

    def test_scale_two(self):
        mapper = CoordinateMapper(QPointF(0, 0), 2.0)
        self.assertEqual(mapper.to_physical(QPointF(5, 5)), (10, 10))
        self.assertEqual(mapper.to_physical(QPointF(5, 25)), (10, 50))

    def test_offset_by_selection_origin(self):
        mapper = CoordinateMapper(QPointF(10, 20), 1.0)
        self.assertEqual(mapper.to_physical(QPointF(15, 25)), (5, 5))
        self.assertEqual(mapper.to_physical(QPointF(5, 10)), (-5, -10))

    def test_fractional_scale_rounds(self):
        mapper = CoordinateMapper(QPointF(0, 0), 1.5)
        # 3 * 1.5 = 4.5 rounds up, 1 * 1.5 = 1.5 rounds up
        self.assertEqual(mapper.to_physical(QPointF(3, 1)), (5, 2))

    def test_scale_length(self):
        mapper = CoordinateMapper(QPointF(0, 0), 2.0)
        self.assertEqual(mapper.scale(4.0), 8.0)
        self.assertEqual(mapper.scale_factor, 2.0)


class TestRects(unittest.TestCase):
    """PhysicalRect and normalized_rect."""

    def test_physical_rect_size(self):
        rect = PhysicalRect(10, 20, 50, 80)
        self.assertEqual((rect.width, rect.height), (40, 60))
        self.assertEqual(rect.as_tuple(), ((10, 20), (50, 80)))

    def test_inverted_physical_rect_is_empty(self):
        rect = PhysicalRect(50, 50, 10, 10)
        self.assertEqual((rect.width, rect.height), (0, 0))

    def test_normalized_rect(self):
        rect = normalized_rect(QPointF(100, 200), QPointF(10, 20))
        self.assertEqual(rect.topLeft(), QPointF(10, 20))
        self.assertEqual(rect.bottomRight(), QPointF(100, 200))


class TestScreenCaptureBuffer(unittest.TestCase):
    """Bounds-checked pixel access and cropping."""

    def test_default_pixels_are_transparent(self):
        buffer = ScreenCaptureBuffer(4, 3)
        self.assertEqual(buffer.pixels.shape, (3, 4, 4))
        self.assertEqual(buffer.get_pixel(3, 2), (0, 0, 0, 0))

    def test_out_of_range_access(self):
        buffer = ScreenCaptureBuffer.filled(4, 4, RED)
        self.assertIsNone(buffer.get_pixel(4, 0))
        self.assertIsNone(buffer.get_pixel(0, -1))
        buffer.put_pixel(-1, 0, BLUE)
        buffer.put_pixel(0, 4, BLUE)
        self.assertEqual(buffer.to_bytes(), bytes(RED) * 16)

    def test_put_get(self):
        buffer = ScreenCaptureBuffer(4, 4)
        buffer.put_pixel(2, 1, BLUE)
        self.assertEqual(buffer.get_pixel(2, 1), BLUE)
        self.assertEqual(buffer.to_bytes()[24:28], bytes(BLUE))

    def test_wrong_data_size_raises(self):
        with self.assertRaises(ValueError):
            ScreenCaptureBuffer(2, 2, bytearray(3))

    def test_negative_size_raises(self):
        with self.assertRaises(ValueError):
            ScreenCaptureBuffer(-1, 2)

    def test_crop_copies_window(self):
        buffer = ScreenCaptureBuffer.filled(10, 10, RED)
        buffer.put_pixel(5, 5, BLUE)
        crop = buffer.crop(4, 4, 3, 3)
        self.assertEqual((crop.width, crop.height), (3, 3))
        self.assertEqual(crop.get_pixel(1, 1), BLUE)
        self.assertEqual(crop.get_pixel(0, 0), RED)

    def test_crop_past_edge_leaves_default(self):
        buffer = ScreenCaptureBuffer.filled(10, 10, RED)
        crop = buffer.crop(8, 8, 4, 4)
        self.assertEqual(crop.get_pixel(1, 1), RED)
        self.assertEqual(crop.get_pixel(2, 2), (0, 0, 0, 0))
        self.assertEqual(crop.get_pixel(3, 0), (0, 0, 0, 0))

    def test_crop_before_origin(self):
        buffer = ScreenCaptureBuffer.filled(10, 10, RED)
        crop = buffer.crop(-2, -3, 4, 4)
        self.assertEqual(crop.get_pixel(1, 2), (0, 0, 0, 0))
        self.assertEqual(crop.get_pixel(2, 3), RED)

    def test_crop_does_not_share_pixels(self):
        buffer = ScreenCaptureBuffer.filled(10, 10, RED)
        crop = buffer.crop(0, 0, 5, 5)
        crop.put_pixel(0, 0, BLUE)
        self.assertEqual(buffer.get_pixel(0, 0), RED)

    def test_pixels_from_bytes(self):
        buffer = ScreenCaptureBuffer(2, 1, bytes(RED) + bytes(BLUE))
        self.assertEqual(buffer.get_pixel(1, 0), BLUE)

    def test_crop_empty(self):
        crop = ScreenCaptureBuffer.filled(10, 10, RED).crop(2, 2, 0, 5)
        self.assertTrue(crop.is_empty)

    def test_copy_is_independent(self):
        buffer = ScreenCaptureBuffer.filled(2, 2, RED)
        copy = buffer.copy()
        copy.put_pixel(0, 0, BLUE)
        self.assertEqual(buffer.get_pixel(0, 0), RED)

    def test_captured_screen_logical_size(self):
        screen = CapturedScreen(ScreenCaptureBuffer(200, 100), 2.0)
        self.assertEqual(screen.logical_size, (100.0, 50.0))


class TestSelection(unittest.TestCase):
    """Selection lifecycle and bounds."""

    def setUp(self):
        self.selection = Selection()

    def test_lifecycle(self):
        self.assertFalse(self.selection.has_selection())
        self.selection.start(QPointF(10, 20))
        self.assertTrue(self.selection.is_in_progress())
        self.selection.update(QPointF(100, 200))
        self.selection.finish()
        self.assertTrue(self.selection.is_completed())
        self.assertFalse(self.selection.is_in_progress())
        self.selection.reset()
        self.assertFalse(self.selection.has_selection())
        self.assertIsNone(self.selection.bounds())

    def test_bounds_are_normalized(self):
        self.selection.start(QPointF(100, 200))
        self.selection.update(QPointF(10, 20))
        bounds = self.selection.bounds()
        self.assertEqual(bounds.topLeft(), QPointF(10, 20))
        self.assertEqual(bounds.bottomRight(), QPointF(100, 200))

    def test_update_after_finish_ignored(self):
        self.selection.start(QPointF(0, 0))
        self.selection.update(QPointF(10, 10))
        self.selection.finish()
        self.selection.update(QPointF(50, 50))
        self.assertEqual(self.selection.size(), (10.0, 10.0))

    def test_bounds_physical_truncates(self):
        self.selection.start(QPointF(10.7, 20.2))
        self.selection.update(QPointF(100.9, 200.5))
        self.assertEqual(
            self.selection.bounds_physical(2.0), PhysicalRect(21, 40, 201, 401)
        )
        self.assertEqual(self.selection.size_physical(1.0), (90, 180))

    def test_physical_scale_two(self):
        self.selection.start(QPointF(0, 0))
        self.selection.update(QPointF(50, 50))
        self.assertEqual(self.selection.bounds_physical(2.0), PhysicalRect(0, 0, 100, 100))

    def test_contains_is_inclusive(self):
        self.selection.start(QPointF(10, 10))
        self.selection.update(QPointF(20, 20))
        self.assertTrue(self.selection.contains(QPointF(10, 10)))
        self.assertTrue(self.selection.contains(QPointF(20, 20)))
        self.assertFalse(self.selection.contains(QPointF(20.5, 15)))

    def test_empty_selection_queries(self):
        self.assertIsNone(self.selection.size())
        self.assertIsNone(self.selection.bounds_physical(1.0))
        self.assertFalse(self.selection.contains(QPointF(0, 0)))


class TestSelectionHandles(unittest.TestCase):
    """Resize handles of a finished selection."""

    def setUp(self):
        self.selection = Selection()
        self.selection.start(QPointF(100, 100))
        self.selection.update(QPointF(300, 200))
        self.selection.finish()

    def test_no_handles_while_dragging(self):
        selection = Selection()
        selection.start(QPointF(0, 0))
        selection.update(QPointF(50, 50))
        self.assertIsNone(selection.handle_at(QPointF(50, 50)))

    def test_corner_and_edge_hits(self):
        self.assertEqual(self.selection.handle_at(QPointF(102, 98)), HandlePosition.TOP_LEFT)
        self.assertEqual(self.selection.handle_at(QPointF(200, 200)), HandlePosition.BOTTOM_CENTER)
        self.assertEqual(self.selection.handle_at(QPointF(304, 150)), HandlePosition.MIDDLE_RIGHT)
        self.assertIsNone(self.selection.handle_at(QPointF(150, 150)))
        self.assertIsNone(self.selection.handle_at(QPointF(106, 100)))

    def test_resize_corner(self):
        self.selection.resize(HandlePosition.BOTTOM_RIGHT, QPointF(400, 350))
        bounds = self.selection.bounds()
        self.assertEqual(bounds.topLeft(), QPointF(100, 100))
        self.assertEqual(bounds.bottomRight(), QPointF(400, 350))

    def test_resize_edge_moves_one_axis(self):
        self.selection.resize(HandlePosition.TOP_CENTER, QPointF(999, 50))
        bounds = self.selection.bounds()
        self.assertEqual(bounds.topLeft(), QPointF(100, 50))
        self.assertEqual(bounds.bottomRight(), QPointF(300, 200))

    def test_resize_past_opposite_edge_flips(self):
        self.selection.resize(HandlePosition.MIDDLE_LEFT, QPointF(350, 0))
        bounds = self.selection.bounds()
        self.assertEqual(bounds.topLeft(), QPointF(300, 100))
        self.assertEqual(bounds.bottomRight(), QPointF(350, 200))
        self.assertTrue(self.selection.is_completed())
