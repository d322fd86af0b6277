"""
Geometry helpers shared by the shape models and the transformer overlay.

All functions work on plain floats in surface coordinates. Rectangles are
QRectF so they can be handed straight to a QPainter.
"""

import math
from typing import List, Sequence, Tuple

from PySide6.QtCore import QPointF, QRectF


def distance(x1: float, y1: float, x2: float, y2: float) -> float:
    """Euclidean distance between two points."""
    return math.hypot(x2 - x1, y2 - y1)


def rotate_point(
    x: float, y: float, cx: float, cy: float, angle: float
) -> Tuple[float, float]:
    """
    Rotate (x, y) about (cx, cy) by angle radians.

    Passing the negated shape rotation maps a surface point into the
    shape's unrotated local frame.
    """
    if angle == 0:
        return x, y
    cos = math.cos(angle)
    sin = math.sin(angle)
    dx = x - cx
    dy = y - cy
    return dx * cos - dy * sin + cx, dx * sin + dy * cos + cy


def point_to_segment_distance(
    px: float, py: float, x1: float, y1: float, x2: float, y2: float
) -> float:
    """
    Distance from (px, py) to the segment (x1, y1)-(x2, y2).

    A zero-length segment is treated as the single point (x1, y1).
    """
    dx = x2 - x1
    dy = y2 - y1
    length_sq = dx * dx + dy * dy

    if length_sq == 0:
        return distance(px, py, x1, y1)

    # Parameter of the closest point, clamped onto the segment
    t = ((px - x1) * dx + (py - y1) * dy) / length_sq
    t = max(0.0, min(1.0, t))

    return distance(px, py, x1 + t * dx, y1 + t * dy)


def point_in_rect(x: float, y: float, rect: QRectF) -> bool:
    """Inclusive point-in-rectangle test (edges count as inside)."""
    rect = rect.normalized()
    return (
        rect.left() <= x <= rect.right()
        and rect.top() <= y <= rect.bottom()
    )


def point_in_rotated_rect(x: float, y: float, rect: QRectF, rotation: float) -> bool:
    """Test a point against a rectangle rotated by `rotation` about its center."""
    center = rect.center()
    lx, ly = rotate_point(x, y, center.x(), center.y(), -rotation)
    return point_in_rect(lx, ly, rect)


def bounds_of_points(
    points: Sequence[QPointF], fallback_x: float = 0.0, fallback_y: float = 0.0
) -> QRectF:
    """
    Axis-aligned bounds of a point sequence.

    An empty sequence degenerates to a zero-size rectangle at the fallback
    anchor.
    """
    if not points:
        return QRectF(fallback_x, fallback_y, 0.0, 0.0)

    xs = [p.x() for p in points]
    ys = [p.y() for p in points]
    left, top = min(xs), min(ys)
    return QRectF(left, top, max(xs) - left, max(ys) - top)


def rect_corners(rect: QRectF) -> List[QPointF]:
    """Corners of a rectangle clockwise from the top-left: TL, TR, BR, BL."""
    return [
        rect.topLeft(),
        rect.topRight(),
        rect.bottomRight(),
        rect.bottomLeft(),
    ]
