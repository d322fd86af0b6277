"""
Unit tests for the selection overlay.
"""

import math

from PySide6.QtGui import QColor, QImage, QPainter

from markly.editor.shapes import ArrowShape, EllipseShape, RectangleShape, TextShape
from markly.editor.transformer import (
    HANDLE_BOTTOM_LEFT,
    HANDLE_BOTTOM_RIGHT,
    HANDLE_TOP_LEFT,
    HANDLE_TOP_RIGHT,
    HIT_INSIDE,
    HIT_NONE,
    OVERLAY_COLOR,
    Transformer,
)


class TestTransformerHitTest:
    """Test mapping pointer positions onto handles."""

    def test_detached_misses(self):
        assert Transformer().hit_test(0, 0) == HIT_NONE

    def test_corners_inside_and_miss(self):
        transformer = Transformer()
        transformer.attach(RectangleShape(0, 0, 100, 100))
        assert transformer.hit_test(0, 0) == HANDLE_TOP_LEFT
        assert transformer.hit_test(100, 0) == HANDLE_TOP_RIGHT
        assert transformer.hit_test(100, 100) == HANDLE_BOTTOM_RIGHT
        assert transformer.hit_test(0, 100) == HANDLE_BOTTOM_LEFT
        assert transformer.hit_test(50, 50) == HIT_INSIDE
        assert transformer.hit_test(500, 500) == HIT_NONE

    def test_pick_radius_is_strict(self):
        transformer = Transformer(handle_size=10)
        transformer.attach(RectangleShape(0, 0, 100, 100))
        assert transformer.hit_test(-9, 0) == HANDLE_TOP_LEFT
        assert transformer.hit_test(-10, 0) == HIT_NONE

    def test_nearest_corner_wins(self):
        # A 6px wide box puts both top corners within the pick radius
        transformer = Transformer()
        transformer.attach(RectangleShape(0, 0, 6, 50))
        assert transformer.hit_test(1, 0) == HANDLE_TOP_LEFT
        assert transformer.hit_test(5, 0) == HANDLE_TOP_RIGHT

    def test_tie_goes_to_lower_index(self):
        transformer = Transformer()
        transformer.attach(RectangleShape(0, 0, 6, 50))
        assert transformer.hit_test(3, 0) == HANDLE_TOP_LEFT

    def test_rotated_shape(self):
        # Centre (50, 25); a half turn swaps top-left and bottom-right
        transformer = Transformer()
        transformer.attach(RectangleShape(0, 0, 100, 50, rotation=math.pi))
        assert transformer.hit_test(100, 50) == HANDLE_TOP_LEFT
        assert transformer.hit_test(0, 0) == HANDLE_BOTTOM_RIGHT

    def test_quarter_turn_shifts_corners(self):
        transformer = Transformer()
        transformer.attach(RectangleShape(0, 0, 100, 100, rotation=math.pi / 2))
        assert transformer.hit_test(100, 0) == HANDLE_TOP_LEFT
        assert transformer.hit_test(100, 100) == HANDLE_TOP_RIGHT
        assert transformer.hit_test(0, 0) == HANDLE_BOTTOM_LEFT

    def test_inside_follows_rotation(self):
        # Centre (50, 10); a quarter turn spans x 40-60, y -40-60
        transformer = Transformer()
        transformer.attach(RectangleShape(0, 0, 100, 20, rotation=math.pi / 2))
        assert transformer.hit_test(50, 50) == HIT_INSIDE
        assert transformer.hit_test(90, 10) == HIT_NONE

    def test_ellipse_box(self):
        transformer = Transformer()
        transformer.attach(EllipseShape(50, 50, 20, 10))
        assert transformer.hit_test(30, 40) == HANDLE_TOP_LEFT
        assert transformer.hit_test(70, 60) == HANDLE_BOTTOM_RIGHT

    def test_arrow_box(self):
        transformer = Transformer()
        transformer.attach(ArrowShape(100, 100, 0, 0))
        assert transformer.hit_test(0, 0) == HANDLE_TOP_LEFT
        assert transformer.hit_test(100, 100) == HANDLE_BOTTOM_RIGHT

    def test_text_has_no_handles(self):
        transformer = Transformer()
        transformer.attach(TextShape(0, 0, "hello", font_size=20))
        assert transformer.hit_test(0, 0) == HIT_INSIDE
        assert transformer.hit_test(-5, -5) == HIT_NONE

    def test_text_uses_measure(self):
        transformer = Transformer(measure=lambda shape: (300.0, 40.0))
        transformer.attach(TextShape(0, 0, "hi"))
        assert transformer.hit_test(250, 30) == HIT_INSIDE

    def test_detach(self):
        transformer = Transformer()
        transformer.attach(RectangleShape(0, 0, 10, 10))
        transformer.attach(None)
        assert not transformer.is_attached
        assert transformer.hit_test(5, 5) == HIT_NONE


class TestTransformerPaint:
    """Test overlay rendering."""

    def _render(self, transformer: Transformer) -> QImage:
        image = QImage(200, 200, QImage.Format.Format_ARGB32_Premultiplied)
        image.fill(QColor(0, 0, 0))
        painter = QPainter(image)
        transformer.paint(painter)
        painter.end()
        return image

    def test_detached_paints_nothing(self):
        image = self._render(Transformer())
        assert image.pixelColor(100, 100) == QColor(0, 0, 0)

    def test_box_and_handles(self):
        transformer = Transformer()
        transformer.attach(RectangleShape(50, 50, 100, 100))
        image = self._render(transformer)
        top_edge = [image.pixel(100, 49), image.pixel(100, 50)]
        assert OVERLAY_COLOR.rgb() in top_edge
        # Handle interior is filled white
        assert image.pixelColor(52, 52) == QColor(255, 255, 255)
        assert image.pixelColor(100, 100) == QColor(0, 0, 0)
