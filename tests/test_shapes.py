"""
Unit tests for the shape models.
"""

import math

import pytest
from PySide6.QtCore import QPointF
from PySide6.QtGui import QBrush, QColor, QFontMetricsF, QImage, QPainter

from markly.editor.shapes import (
    ArrowShape,
    EllipseShape,
    FreehandShape,
    PixelationShape,
    RectangleShape,
    ShapeStyle,
    ShapeType,
    TextShape,
    measure_text,
)

from conftest import shape_state


def _paint(shape) -> QImage:
    image = QImage(200, 200, QImage.Format.Format_ARGB32_Premultiplied)
    image.fill(QColor(255, 255, 255))
    painter = QPainter(image)
    shape.paint(painter)
    painter.end()
    return image


class TestShapeStyle:
    """Test the shared style model."""

    def test_defaults(self):
        style = ShapeStyle()
        assert style.stroke_color == QColor(255, 0, 0)
        assert style.line_width == 2.0

    def test_clone_is_independent(self):
        style = ShapeStyle()
        copy = style.clone()
        copy.stroke_color = QColor(0, 0, 255)
        copy.line_width = 5
        assert style.stroke_color == QColor(255, 0, 0)
        assert style.line_width == 2.0


class TestRectangleShape:
    """Test rectangle geometry."""

    def test_hit_inside_and_outside(self):
        rect = RectangleShape(0, 0, 100, 50)
        assert rect.hit_test(50, 25)
        assert not rect.hit_test(150, 150)

    def test_edges_hit(self):
        rect = RectangleShape(0, 0, 100, 50)
        assert rect.hit_test(100, 50)

    def test_negative_extent_hits(self):
        rect = RectangleShape(100, 50, -100, -50)
        assert rect.hit_test(50, 25)
        assert rect.bounding_rect.x() == 0

    def test_rotation_quarter_turn(self):
        # Centre (50, 25); a quarter turn stands the box on end
        rect = RectangleShape(0, 0, 100, 50, rotation=math.pi / 2)
        assert rect.hit_test(50, 70)
        assert not rect.hit_test(95, 25)

    def test_rotated_outline_paints_on_end(self):
        # Centre (100, 100); a quarter turn spans x 90-110, y 50-150
        rect = RectangleShape(
            50, 90, 100, 20, ShapeStyle(line_width=4), rotation=math.pi / 2
        )
        image = _paint(rect)
        assert image.pixelColor(110, 100) == QColor(255, 0, 0)
        assert image.pixelColor(100, 50) == QColor(255, 0, 0)
        # Would be the top edge without rotation
        assert image.pixelColor(100, 90) == QColor(255, 255, 255)

    def test_center(self):
        assert RectangleShape(10, 20, 100, 50).center() == QPointF(60, 45)

    def test_resize_tracks_pointer(self):
        rect = RectangleShape(10, 10)
        rect.resize(40, -10)
        assert rect.width == 30
        assert rect.height == -20

    def test_move_by(self):
        rect = RectangleShape(0, 0, 10, 10)
        rect.move_by(5, -5)
        assert (rect.x, rect.y) == (5, -5)

    def test_shape_type(self):
        assert RectangleShape(0, 0).shape_type == ShapeType.RECTANGLE


class TestEllipseShape:
    """Test ellipse geometry."""

    def test_boundary(self):
        ellipse = EllipseShape(0, 0, 10, 5)
        assert ellipse.hit_test(10, 0)
        assert not ellipse.hit_test(11, 0)
        assert ellipse.hit_test(0, 5)
        assert not ellipse.hit_test(0, 6)

    def test_zero_radius_does_not_raise(self):
        ellipse = EllipseShape(5, 5, 0, 0)
        assert ellipse.hit_test(5, 5)
        assert not ellipse.hit_test(10, 10)

    def test_resize_uses_absolute_offsets(self):
        ellipse = EllipseShape(50, 50)
        ellipse.resize(30, 80)
        assert ellipse.rx == 20
        assert ellipse.ry == 30

    def test_bounds(self):
        bounds = EllipseShape(50, 50, 20, 10).bounding_rect
        assert (bounds.x(), bounds.y(), bounds.width(), bounds.height()) == (30, 40, 40, 20)

    def test_rotated_hit(self):
        ellipse = EllipseShape(50, 50, 40, 10, rotation=math.pi / 2)
        assert ellipse.hit_test(50, 85)
        assert not ellipse.hit_test(85, 50)
        assert not EllipseShape(50, 50, 40, 10).hit_test(50, 85)


class TestArrowShape:
    """Test arrow geometry."""

    def test_hit_tolerance(self):
        arrow = ArrowShape(0, 0, 100, 0)
        assert arrow.hit_test(50, 5)
        assert arrow.hit_test(50, 10)
        assert not arrow.hit_test(50, 15)

    def test_zero_length_arrow(self):
        arrow = ArrowShape(10, 10, 10, 10)
        assert arrow.hit_test(13, 14)
        assert not arrow.hit_test(30, 30)

    def test_move_by_moves_both_ends(self):
        arrow = ArrowShape(0, 0, 10, 10)
        arrow.move_by(5, 5)
        assert (arrow.x, arrow.y, arrow.end_x, arrow.end_y) == (5, 5, 15, 15)

    def test_resize_moves_end(self):
        arrow = ArrowShape(0, 0, 10, 10)
        arrow.resize(40, 20)
        assert (arrow.x, arrow.y, arrow.end_x, arrow.end_y) == (0, 0, 40, 20)

    def test_center_is_midpoint(self):
        assert ArrowShape(0, 0, 100, 50).center() == QPointF(50, 25)

    def test_rotated_hit(self):
        # Midpoint (50, 0); a quarter turn stands the shaft upright
        arrow = ArrowShape(0, 0, 100, 0, rotation=math.pi / 2)
        assert arrow.hit_test(50, 40)
        assert not arrow.hit_test(90, 0)


class TestFreehandShape:
    """Test pen strokes."""

    def test_hit_near_stroke(self):
        stroke = FreehandShape(0, 0, [QPointF(0, 0), QPointF(100, 0)])
        assert stroke.hit_test(50, 4)
        assert not stroke.hit_test(50, 20)

    def test_wide_stroke_tolerance(self):
        stroke = FreehandShape(
            0, 0, [QPointF(0, 0), QPointF(100, 0)], ShapeStyle(line_width=30)
        )
        assert stroke.hit_test(50, 14)

    def test_single_point_never_hits(self):
        stroke = FreehandShape(0, 0, [QPointF(0, 0)])
        assert not stroke.hit_test(0, 0)

    def test_empty_bounds_at_anchor(self):
        bounds = FreehandShape(7, 9).bounding_rect
        assert (bounds.x(), bounds.y(), bounds.width(), bounds.height()) == (7, 9, 0, 0)

    def test_constructor_copies_points(self):
        points = [QPointF(0, 0), QPointF(10, 10)]
        stroke = FreehandShape(0, 0, points)
        points.append(QPointF(50, 50))
        points[0].setX(99)
        assert len(stroke.points) == 2
        assert stroke.points[0].x() == 0

    def test_move_by_moves_points(self):
        stroke = FreehandShape(0, 0, [QPointF(0, 0), QPointF(10, 10)])
        stroke.move_by(5, 5)
        assert [(p.x(), p.y()) for p in stroke.points] == [(5, 5), (15, 15)]

    def test_resize_is_noop(self):
        stroke = FreehandShape(0, 0, [QPointF(0, 0), QPointF(10, 10)])
        before = shape_state(stroke)
        stroke.resize(100, 100)
        assert shape_state(stroke) == before

    def test_too_short_paints_nothing(self):
        image = _paint(FreehandShape(50, 50, [QPointF(50, 50)]))
        assert image.pixelColor(50, 50) == QColor(255, 255, 255)

    def test_rotated_hit(self):
        stroke = FreehandShape(
            0, 0, [QPointF(0, 0), QPointF(100, 0)], rotation=math.pi / 2
        )
        assert stroke.hit_test(50, 40)
        assert not stroke.hit_test(90, 0)


class TestPixelationShape:
    """Test mosaic strokes."""

    def test_hit_within_half_width(self):
        stroke = PixelationShape(
            0, 0, [QPointF(0, 0), QPointF(100, 0)], ShapeStyle(line_width=20)
        )
        assert stroke.hit_test(50, 9)
        assert not stroke.hit_test(50, 11)

    def test_rotated_hit(self):
        stroke = PixelationShape(
            0, 0, [QPointF(0, 0), QPointF(100, 0)],
            ShapeStyle(line_width=20), rotation=math.pi / 2,
        )
        assert stroke.hit_test(50, 40)
        assert not stroke.hit_test(90, 0)

    def test_clone_shares_pattern(self):
        pattern = QBrush(QColor(0, 255, 0))
        stroke = PixelationShape(0, 0, [QPointF(0, 0)], pattern=pattern)
        assert stroke.clone().pattern is pattern

    def test_paints_with_pattern(self):
        pattern = QBrush(QColor(0, 0, 255))
        stroke = PixelationShape(
            20, 100, [QPointF(20, 100), QPointF(180, 100)],
            ShapeStyle(line_width=20), pattern=pattern,
        )
        image = _paint(stroke)
        assert image.pixelColor(100, 100) == QColor(0, 0, 255)


class TestTextShape:
    """Test text blocks."""

    def test_estimated_size(self):
        text = TextShape(0, 0, "hello\nhi", font_size=20)
        width, height = text.estimated_size()
        assert width == pytest.approx(5 * 20 * 0.6)
        assert height == pytest.approx(2 * 20 * 1.2)

    def test_hit_uses_estimated_box(self):
        text = TextShape(10, 10, "hello", font_size=20)
        assert text.hit_test(20, 20)
        assert not text.hit_test(10 + 61, 20)

    def test_rotated_hit(self):
        # Estimated box (0, 0, 60, 24) turned about (30, 12)
        text = TextShape(0, 0, "hello", rotation=math.pi / 2, font_size=20)
        assert text.hit_test(30, 35)
        assert not text.hit_test(55, 12)
        assert TextShape(0, 0, "hello", font_size=20).hit_test(55, 12)

    def test_measured_bounds(self):
        text = TextShape(10, 10, "hello", font_size=20)
        bounds = text.text_bounds(measure_text)
        metrics = QFontMetricsF(text.font())
        assert bounds.x() == 10
        assert bounds.width() == pytest.approx(metrics.horizontalAdvance("hello"))
        assert bounds.height() == pytest.approx(24)

    def test_text_bounds_with_custom_measure(self):
        text = TextShape(0, 0, "abc")
        bounds = text.text_bounds(lambda shape: (42.0, 7.0))
        assert (bounds.width(), bounds.height()) == (42, 7)

    def test_resize_is_noop(self):
        text = TextShape(0, 0, "abc")
        text.resize(100, 100)
        assert (text.x, text.y, text.text) == (0, 0, "abc")


class TestClone:
    """Test that clones are independent value copies."""

    @pytest.mark.parametrize("shape", [
        RectangleShape(1, 2, 3, 4, rotation=0.5),
        EllipseShape(1, 2, 3, 4),
        ArrowShape(1, 2, 3, 4),
        FreehandShape(1, 2, [QPointF(1, 2), QPointF(3, 4)]),
        PixelationShape(1, 2, [QPointF(1, 2), QPointF(3, 4)]),
        TextShape(1, 2, "text", font_size=30, font_family="Courier"),
    ])
    def test_clone_equal_but_independent(self, shape):
        copy = shape.clone()
        assert copy is not shape
        assert shape_state(copy) == shape_state(shape)

        copy.move_by(10, 10)
        copy.stroke_color = QColor(0, 0, 255)
        assert shape_state(copy) != shape_state(shape)
        assert shape.stroke_color == QColor(255, 0, 0)

    def test_clone_drops_selection(self):
        rect = RectangleShape(0, 0, 10, 10)
        rect.selected = True
        assert rect.clone().selected is False
