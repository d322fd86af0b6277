"""
Shape models for the Markly editor.

This module provides the data models for every markup primitive that can be
placed over the background image. Each shape knows how to:
- Paint itself on a QPainter, rotated about its own center
- Hit-test a surface point for selection (rotation-aware)
- Move, resize, and clone itself

Shape Types:
- RectangleShape: Outlined rectangle anchored at its top-left corner
- EllipseShape: Outlined ellipse with independent radii, anchored at its center
- ArrowShape: Line with a filled arrowhead at the end point
- FreehandShape: Pen stroke through an ordered list of points
- PixelationShape: Mosaic brush stroke painted with an external pattern
- TextShape: Multi-line text block
"""

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Callable, Iterable, List, Optional, Tuple

from PySide6.QtCore import QPointF, QRectF, Qt
from PySide6.QtGui import (
    QBrush,
    QColor,
    QFont,
    QFontMetricsF,
    QPainter,
    QPainterPath,
    QPen,
    QPolygonF,
)

from markly.editor.geometry import (
    bounds_of_points,
    distance,
    point_in_rect,
    point_in_rotated_rect,
    point_to_segment_distance,
    rect_corners,
    rotate_point,
)


class ShapeType(Enum):
    """Enum for shape types."""
    RECTANGLE = auto()
    ELLIPSE = auto()
    ARROW = auto()
    FREEHAND = auto()
    PIXELATE = auto()
    TEXT = auto()


# Hit tolerance around an arrow shaft, in pixels
ARROW_HIT_TOLERANCE = 10.0
ARROW_HEAD_LENGTH = 15.0

# Minimum hit tolerance for thin pen strokes
FREEHAND_MIN_TOLERANCE = 5.0

# Text layout: line height and the per-character width estimate, as
# multiples of the font size
TEXT_LINE_HEIGHT = 1.2
TEXT_CHAR_WIDTH = 0.6

DEFAULT_FONT_SIZE = 20
DEFAULT_FONT_FAMILY = "Arial"

# Fallback stroke for a mosaic stroke whose pattern was never generated
PIXELATE_FALLBACK_COLOR = QColor(0, 0, 0, 25)


@dataclass
class ShapeStyle:
    """
    Style properties shared by every shape type.
    """
    stroke_color: QColor = field(default_factory=lambda: QColor(255, 0, 0))
    line_width: float = 2.0

    def clone(self) -> "ShapeStyle":
        """Create a copy of this style."""
        return ShapeStyle(
            stroke_color=QColor(self.stroke_color),
            line_width=self.line_width,
        )


class ShapeBase(ABC):
    """
    Base class for all shapes.

    (x, y) is the anchor point; what it means depends on the variant.
    `rotation` is in radians and is always applied about center().
    `selected` is interaction state and is never carried into clones.
    """

    def __init__(
        self,
        x: float,
        y: float,
        style: Optional[ShapeStyle] = None,
        rotation: float = 0.0,
    ) -> None:
        self.x: float = float(x)
        self.y: float = float(y)
        self.style: ShapeStyle = style or ShapeStyle()
        self.rotation: float = float(rotation)
        self.selected: bool = False

    @property
    @abstractmethod
    def shape_type(self) -> ShapeType:
        """Return the type of this shape."""
        pass

    @property
    @abstractmethod
    def bounding_rect(self) -> QRectF:
        """Return the unrotated, axis-aligned bounds of this shape."""
        pass

    @abstractmethod
    def center(self) -> QPointF:
        """Return the point the rotation is applied about."""
        pass

    @abstractmethod
    def paint(self, painter: QPainter) -> None:
        """
        Paint the shape.

        Args:
            painter: The QPainter to draw with. Its state is restored on return.
        """
        pass

    @abstractmethod
    def hit_test(self, x: float, y: float) -> bool:
        """
        Test if a surface point hits this shape.

        Args:
            x: Pointer X in surface coordinates.
            y: Pointer Y in surface coordinates.

        Returns:
            True if the point is on or inside the shape.
        """
        pass

    @abstractmethod
    def move_by(self, dx: float, dy: float) -> None:
        """Translate the shape by the given delta."""
        pass

    @abstractmethod
    def resize(self, x: float, y: float) -> None:
        """
        Drag the shape's resize point to (x, y).

        Variants that cannot be resized treat this as a no-op.
        """
        pass

    def begin_resize(self, handle: int) -> None:
        """
        Prepare for resize() calls driven from a corner handle.

        Args:
            handle: Corner of the bounding box being dragged, 0-3 clockwise
                from the top-left.
        """
        pass

    @abstractmethod
    def clone(self) -> "ShapeBase":
        """Create a fully independent copy of this shape."""
        pass

    @property
    def stroke_color(self) -> QColor:
        return self.style.stroke_color

    @stroke_color.setter
    def stroke_color(self, color: QColor) -> None:
        self.style.stroke_color = QColor(color)

    @property
    def line_width(self) -> float:
        return self.style.line_width

    @line_width.setter
    def line_width(self, width: float) -> None:
        self.style.line_width = float(width)

    def _apply_rotation(self, painter: QPainter) -> None:
        """Rotate the painter about the shape center. Callers save/restore."""
        if not self.rotation:
            return
        center = self.center()
        painter.translate(center)
        painter.rotate(math.degrees(self.rotation))
        painter.translate(-center.x(), -center.y())

    def _to_local(self, x: float, y: float) -> Tuple[float, float]:
        """Map a surface point into the shape's unrotated frame."""
        center = self.center()
        return rotate_point(x, y, center.x(), center.y(), -self.rotation)

    def _stroke_pen(self) -> QPen:
        pen = QPen(self.style.stroke_color)
        pen.setWidthF(self.style.line_width)
        return pen


class RectangleShape(ShapeBase):
    """
    Outlined rectangle. (x, y) is the corner the drag started from, so
    width and height may be negative while drawing up or left.
    """

    def __init__(
        self,
        x: float,
        y: float,
        width: float = 0.0,
        height: float = 0.0,
        style: Optional[ShapeStyle] = None,
        rotation: float = 0.0,
    ) -> None:
        super().__init__(x, y, style, rotation)
        self.width: float = float(width)
        self.height: float = float(height)

    @property
    def shape_type(self) -> ShapeType:
        return ShapeType.RECTANGLE

    @property
    def bounding_rect(self) -> QRectF:
        return QRectF(self.x, self.y, self.width, self.height).normalized()

    def center(self) -> QPointF:
        return QPointF(self.x + self.width / 2, self.y + self.height / 2)

    def paint(self, painter: QPainter) -> None:
        painter.save()
        self._apply_rotation(painter)
        painter.setPen(self._stroke_pen())
        painter.setBrush(Qt.BrushStyle.NoBrush)
        painter.drawRect(self.bounding_rect)
        painter.restore()

    def hit_test(self, x: float, y: float) -> bool:
        return point_in_rotated_rect(x, y, self.bounding_rect, self.rotation)

    def move_by(self, dx: float, dy: float) -> None:
        self.x += dx
        self.y += dy

    def resize(self, x: float, y: float) -> None:
        self.width = x - self.x
        self.height = y - self.y

    def begin_resize(self, handle: int) -> None:
        # Re-anchor on the opposite corner; the box itself is unchanged
        corners = rect_corners(self.bounding_rect)
        anchor = corners[(handle + 2) % 4]
        grabbed = corners[handle % 4]
        self.x = anchor.x()
        self.y = anchor.y()
        self.width = grabbed.x() - anchor.x()
        self.height = grabbed.y() - anchor.y()

    def clone(self) -> "RectangleShape":
        return RectangleShape(
            self.x, self.y, self.width, self.height,
            self.style.clone(), self.rotation,
        )


class EllipseShape(ShapeBase):
    """
    Outlined ellipse centered on (x, y) with independent radii.
    """

    def __init__(
        self,
        x: float,
        y: float,
        rx: float = 0.0,
        ry: float = 0.0,
        style: Optional[ShapeStyle] = None,
        rotation: float = 0.0,
    ) -> None:
        super().__init__(x, y, style, rotation)
        self.rx: float = float(rx)
        self.ry: float = float(ry)

    @property
    def shape_type(self) -> ShapeType:
        return ShapeType.ELLIPSE

    @property
    def bounding_rect(self) -> QRectF:
        rx = abs(self.rx)
        ry = abs(self.ry)
        return QRectF(self.x - rx, self.y - ry, rx * 2, ry * 2)

    def center(self) -> QPointF:
        return QPointF(self.x, self.y)

    def paint(self, painter: QPainter) -> None:
        painter.save()
        self._apply_rotation(painter)
        painter.setPen(self._stroke_pen())
        painter.setBrush(Qt.BrushStyle.NoBrush)
        painter.drawEllipse(self.center(), abs(self.rx), abs(self.ry))
        painter.restore()

    def hit_test(self, x: float, y: float) -> bool:
        lx, ly = self._to_local(x, y)
        # Radii floored to 1 so a collapsed ellipse never divides by zero
        rx = max(abs(self.rx), 1.0)
        ry = max(abs(self.ry), 1.0)
        nx = (lx - self.x) / rx
        ny = (ly - self.y) / ry
        return nx * nx + ny * ny <= 1.0

    def move_by(self, dx: float, dy: float) -> None:
        self.x += dx
        self.y += dy

    def resize(self, x: float, y: float) -> None:
        self.rx = abs(x - self.x)
        self.ry = abs(y - self.y)

    def clone(self) -> "EllipseShape":
        return EllipseShape(
            self.x, self.y, self.rx, self.ry,
            self.style.clone(), self.rotation,
        )


class ArrowShape(ShapeBase):
    """
    Arrow from (x, y) to (end_x, end_y) with a filled head at the end.
    """

    def __init__(
        self,
        x: float,
        y: float,
        end_x: float,
        end_y: float,
        style: Optional[ShapeStyle] = None,
        rotation: float = 0.0,
    ) -> None:
        super().__init__(x, y, style, rotation)
        self.end_x: float = float(end_x)
        self.end_y: float = float(end_y)
        # Which endpoint resize() moves; the end unless a handle picked the start
        self._resize_start: bool = False

    @property
    def shape_type(self) -> ShapeType:
        return ShapeType.ARROW

    @property
    def bounding_rect(self) -> QRectF:
        left = min(self.x, self.end_x)
        top = min(self.y, self.end_y)
        return QRectF(
            left, top,
            max(self.x, self.end_x) - left,
            max(self.y, self.end_y) - top,
        )

    def center(self) -> QPointF:
        return QPointF((self.x + self.end_x) / 2, (self.y + self.end_y) / 2)

    def paint(self, painter: QPainter) -> None:
        painter.save()
        self._apply_rotation(painter)

        painter.setPen(self._stroke_pen())
        painter.drawLine(QPointF(self.x, self.y), QPointF(self.end_x, self.end_y))

        # Arrowhead: two barbs at +/-30 degrees from the shaft direction
        angle = math.atan2(self.end_y - self.y, self.end_x - self.x)
        tip = QPointF(self.end_x, self.end_y)
        left = QPointF(
            self.end_x - ARROW_HEAD_LENGTH * math.cos(angle - math.pi / 6),
            self.end_y - ARROW_HEAD_LENGTH * math.sin(angle - math.pi / 6),
        )
        right = QPointF(
            self.end_x - ARROW_HEAD_LENGTH * math.cos(angle + math.pi / 6),
            self.end_y - ARROW_HEAD_LENGTH * math.sin(angle + math.pi / 6),
        )
        painter.setPen(Qt.PenStyle.NoPen)
        painter.setBrush(self.style.stroke_color)
        painter.drawPolygon(QPolygonF([tip, left, right]))

        painter.restore()

    def hit_test(self, x: float, y: float) -> bool:
        lx, ly = self._to_local(x, y)
        dist = point_to_segment_distance(
            lx, ly, self.x, self.y, self.end_x, self.end_y
        )
        return dist <= ARROW_HIT_TOLERANCE

    def move_by(self, dx: float, dy: float) -> None:
        self.x += dx
        self.y += dy
        self.end_x += dx
        self.end_y += dy

    def resize(self, x: float, y: float) -> None:
        if self._resize_start:
            self.x = x
            self.y = y
        else:
            self.end_x = x
            self.end_y = y

    def begin_resize(self, handle: int) -> None:
        # The endpoint nearest the grabbed corner follows the pointer
        corner = rect_corners(self.bounding_rect)[handle % 4]
        to_start = distance(corner.x(), corner.y(), self.x, self.y)
        to_end = distance(corner.x(), corner.y(), self.end_x, self.end_y)
        self._resize_start = to_start < to_end

    def clone(self) -> "ArrowShape":
        return ArrowShape(
            self.x, self.y, self.end_x, self.end_y,
            self.style.clone(), self.rotation,
        )


class _PathShape(ShapeBase):
    """
    Common base for stroke shapes that own an ordered list of points.

    The point list is always private to the shape: the constructor copies
    whatever sequence it is given, so callers never keep a handle into it.
    """

    def __init__(
        self,
        x: float,
        y: float,
        points: Optional[Iterable[QPointF]] = None,
        style: Optional[ShapeStyle] = None,
        rotation: float = 0.0,
    ) -> None:
        super().__init__(x, y, style, rotation)
        self.points: List[QPointF] = [QPointF(p) for p in (points or [])]

    def add_point(self, x: float, y: float) -> None:
        """Append a point to the stroke."""
        self.points.append(QPointF(x, y))

    @property
    def bounding_rect(self) -> QRectF:
        return bounds_of_points(self.points, self.x, self.y)

    def center(self) -> QPointF:
        return self.bounding_rect.center()

    def _build_path(self) -> QPainterPath:
        """Build a polyline QPainterPath through the points."""
        path = QPainterPath()
        if not self.points:
            return path

        path.moveTo(self.points[0])
        for point in self.points[1:]:
            path.lineTo(point)
        return path

    def _distance_to_stroke(self, x: float, y: float) -> float:
        """Smallest distance from (x, y) to any segment of the stroke."""
        best = math.inf
        for start, end in zip(self.points, self.points[1:]):
            dist = point_to_segment_distance(
                x, y, start.x(), start.y(), end.x(), end.y()
            )
            best = min(best, dist)
        return best

    def move_by(self, dx: float, dy: float) -> None:
        for point in self.points:
            point.setX(point.x() + dx)
            point.setY(point.y() + dy)
        self.x += dx
        self.y += dy

    def resize(self, x: float, y: float) -> None:
        # Free-form strokes don't resize
        pass


class FreehandShape(_PathShape):
    """
    Freehand pen stroke.
    """

    @property
    def shape_type(self) -> ShapeType:
        return ShapeType.FREEHAND

    def paint(self, painter: QPainter) -> None:
        if len(self.points) < 2:
            return

        painter.save()
        self._apply_rotation(painter)

        pen = self._stroke_pen()
        pen.setCapStyle(Qt.PenCapStyle.RoundCap)
        pen.setJoinStyle(Qt.PenJoinStyle.RoundJoin)
        painter.setPen(pen)
        painter.setBrush(Qt.BrushStyle.NoBrush)
        painter.drawPath(self._build_path())

        painter.restore()

    def hit_test(self, x: float, y: float) -> bool:
        if len(self.points) < 2:
            return False
        lx, ly = self._to_local(x, y)
        tolerance = max(FREEHAND_MIN_TOLERANCE, self.style.line_width / 2)
        return self._distance_to_stroke(lx, ly) <= tolerance

    def clone(self) -> "FreehandShape":
        return FreehandShape(
            self.x, self.y, self.points, self.style.clone(), self.rotation
        )


class PixelationShape(_PathShape):
    """
    Mosaic brush stroke.

    The stroke is painted with `pattern`, a brush over a pixelated render of
    the scene produced by the editor. The shape never inspects the pattern;
    clones share the same brush object.
    """

    def __init__(
        self,
        x: float,
        y: float,
        points: Optional[Iterable[QPointF]] = None,
        style: Optional[ShapeStyle] = None,
        rotation: float = 0.0,
        pattern: Optional[QBrush] = None,
    ) -> None:
        super().__init__(x, y, points, style, rotation)
        self.pattern: Optional[QBrush] = pattern

    @property
    def shape_type(self) -> ShapeType:
        return ShapeType.PIXELATE

    def paint(self, painter: QPainter) -> None:
        if len(self.points) < 2:
            return

        painter.save()
        self._apply_rotation(painter)

        brush = self.pattern if self.pattern is not None else QBrush(PIXELATE_FALLBACK_COLOR)
        pen = QPen(
            brush,
            self.style.line_width,
            Qt.PenStyle.SolidLine,
            Qt.PenCapStyle.RoundCap,
            Qt.PenJoinStyle.RoundJoin,
        )
        painter.setPen(pen)
        painter.setBrush(Qt.BrushStyle.NoBrush)
        painter.drawPath(self._build_path())

        painter.restore()

    def hit_test(self, x: float, y: float) -> bool:
        lx, ly = self._to_local(x, y)

        # Cheap reject against the bounds padded by the brush width
        pad = self.style.line_width
        if not point_in_rect(lx, ly, self.bounding_rect.adjusted(-pad, -pad, pad, pad)):
            return False

        return self._distance_to_stroke(lx, ly) <= self.style.line_width / 2

    def clone(self) -> "PixelationShape":
        return PixelationShape(
            self.x, self.y, self.points, self.style.clone(),
            self.rotation, self.pattern,
        )


class TextShape(ShapeBase):
    """
    Multi-line text block with its top-left corner at (x, y).

    Accurate layout needs font metrics from the rendering surface, so the
    hit test works on an estimated box (0.6 em per character). The
    estimate can be off from the painted glyphs by a fraction of a glyph.
    """

    def __init__(
        self,
        x: float,
        y: float,
        text: str = "",
        style: Optional[ShapeStyle] = None,
        rotation: float = 0.0,
        font_size: int = DEFAULT_FONT_SIZE,
        font_family: str = DEFAULT_FONT_FAMILY,
    ) -> None:
        super().__init__(x, y, style, rotation)
        self.text: str = text
        self.font_size: int = font_size
        self.font_family: str = font_family

    @property
    def shape_type(self) -> ShapeType:
        return ShapeType.TEXT

    @property
    def lines(self) -> List[str]:
        return self.text.split("\n")

    @property
    def line_height(self) -> float:
        return self.font_size * TEXT_LINE_HEIGHT

    def font(self) -> QFont:
        """Get the font for this text block."""
        font = QFont(self.font_family)
        font.setPixelSize(int(self.font_size))
        return font

    def estimated_size(self) -> Tuple[float, float]:
        """Width and height of the block without font metrics."""
        width = max(len(line) for line in self.lines) * self.font_size * TEXT_CHAR_WIDTH
        return width, len(self.lines) * self.line_height

    def measured_size(self, metrics: QFontMetricsF) -> Tuple[float, float]:
        """Width and height of the block as laid out with `metrics`."""
        width = max(metrics.horizontalAdvance(line) for line in self.lines)
        return width, len(self.lines) * self.line_height

    def text_bounds(
        self, measure: Optional[Callable[["TextShape"], Tuple[float, float]]] = None
    ) -> QRectF:
        """
        Bounds of the block, measured by `measure` when one is supplied and
        estimated otherwise.
        """
        width, height = measure(self) if measure else self.estimated_size()
        return QRectF(self.x, self.y, width, height)

    @property
    def bounding_rect(self) -> QRectF:
        return self.text_bounds()

    def center(self) -> QPointF:
        return self.bounding_rect.center()

    def paint(self, painter: QPainter) -> None:
        painter.save()

        font = self.font()
        painter.setFont(font)
        metrics = QFontMetricsF(font)

        # Rotate about the center of the laid-out text, not the estimate
        width, height = self.measured_size(metrics)
        if self.rotation:
            center = QPointF(self.x + width / 2, self.y + height / 2)
            painter.translate(center)
            painter.rotate(math.degrees(self.rotation))
            painter.translate(-center.x(), -center.y())

        painter.setPen(self.style.stroke_color)
        for index, line in enumerate(self.lines):
            # drawText positions the baseline; (x, y) is the top of the line
            baseline = self.y + index * self.line_height + metrics.ascent()
            painter.drawText(QPointF(self.x, baseline), line)

        painter.restore()

    def hit_test(self, x: float, y: float) -> bool:
        return point_in_rotated_rect(x, y, self.bounding_rect, self.rotation)

    def move_by(self, dx: float, dy: float) -> None:
        self.x += dx
        self.y += dy

    def resize(self, x: float, y: float) -> None:
        # Text is not resizable
        pass

    def clone(self) -> "TextShape":
        return TextShape(
            self.x, self.y, self.text, self.style.clone(), self.rotation,
            self.font_size, self.font_family,
        )


def measure_text(shape: TextShape) -> Tuple[float, float]:
    """
    Measure a text block with Qt font metrics.

    Needs a running QGuiApplication; this is the measuring capability the
    editor hands to the transformer.
    """
    return shape.measured_size(QFontMetricsF(shape.font()))
