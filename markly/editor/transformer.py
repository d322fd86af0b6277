"""
Selection overlay for the Markly editor.

The Transformer draws a box and four corner handles around the selected
shape and maps pointer positions onto those handles. It tracks the shape's
rotation itself: the shape's own hit test knows nothing about handle
positions, so the overlay inverse-rotates pointer samples on its own.
"""

import math
from typing import Callable, List, Optional, Tuple

from PySide6.QtCore import QPointF, QRectF, Qt
from PySide6.QtGui import QColor, QPainter, QPen

from markly.editor.geometry import (
    distance,
    point_in_rotated_rect,
    rect_corners,
    rotate_point,
)
from markly.editor.shapes import ShapeBase, TextShape

# Corner handle indices, clockwise from the top-left corner
HANDLE_TOP_LEFT = 0
HANDLE_TOP_RIGHT = 1
HANDLE_BOTTOM_RIGHT = 2
HANDLE_BOTTOM_LEFT = 3

# Non-handle hit results
HIT_INSIDE = -2
HIT_NONE = -1

DEFAULT_HANDLE_SIZE = 10.0

OVERLAY_COLOR = QColor(0, 168, 255)  # #00a8ff
HANDLE_FILL = QColor(255, 255, 255)

TextMeasure = Callable[[TextShape], Tuple[float, float]]


class Transformer:
    """
    Bounding box and resize handles for the single selected shape.

    Text blocks get the box but no handles, since text is not resizable.
    """

    def __init__(
        self,
        handle_size: float = DEFAULT_HANDLE_SIZE,
        measure: Optional[TextMeasure] = None,
    ) -> None:
        """
        Args:
            handle_size: Side of the square handles, also the pick radius.
            measure: Text measuring capability of the rendering surface.
                Without one, text boxes fall back to the estimated size.
        """
        self.handle_size: float = handle_size
        self.measure: Optional[TextMeasure] = measure
        self._shape: Optional[ShapeBase] = None

    @property
    def shape(self) -> Optional[ShapeBase]:
        return self._shape

    @property
    def is_attached(self) -> bool:
        return self._shape is not None

    def attach(self, shape: Optional[ShapeBase]) -> None:
        """Attach to a shape, or detach with None."""
        self._shape = shape

    def shape_bounds(self, shape: ShapeBase) -> QRectF:
        """Unrotated bounds of a shape as the overlay frames it."""
        if isinstance(shape, TextShape):
            return shape.text_bounds(self.measure)
        return shape.bounding_rect

    @staticmethod
    def corners(bounds: QRectF) -> List[QPointF]:
        """Box corners in handle-index order: TL, TR, BR, BL."""
        return rect_corners(bounds)

    def _has_handles(self, shape: ShapeBase) -> bool:
        return not isinstance(shape, TextShape)

    def paint(self, painter: QPainter) -> None:
        """Draw the box and handles, rotated like the attached shape."""
        shape = self._shape
        if shape is None:
            return

        bounds = self.shape_bounds(shape)
        center = bounds.center()

        painter.save()
        if shape.rotation:
            painter.translate(center)
            painter.rotate(math.degrees(shape.rotation))
            painter.translate(-center.x(), -center.y())

        pen = QPen(OVERLAY_COLOR)
        pen.setWidthF(1.0)
        painter.setPen(pen)
        painter.setBrush(Qt.BrushStyle.NoBrush)
        painter.drawRect(bounds)

        if self._has_handles(shape):
            painter.setBrush(HANDLE_FILL)
            half = self.handle_size / 2
            for corner in self.corners(bounds):
                painter.drawRect(QRectF(
                    corner.x() - half, corner.y() - half,
                    self.handle_size, self.handle_size,
                ))

        painter.restore()

    def hit_test(self, x: float, y: float) -> int:
        """
        Map a pointer position onto the overlay.

        Returns:
            0-3 for the corner handle under the pointer (TL, TR, BR, BL),
            -2 for inside the box but off the handles, -1 for a miss or
            when nothing is attached.
        """
        shape = self._shape
        if shape is None:
            return HIT_NONE

        bounds = self.shape_bounds(shape)

        if self._has_handles(shape):
            center = bounds.center()
            lx, ly = rotate_point(x, y, center.x(), center.y(), -shape.rotation)
            # Nearest corner within the pick radius; ties go to the lower index
            best_index = HIT_NONE
            best_dist = self.handle_size
            for index, corner in enumerate(self.corners(bounds)):
                dist = distance(lx, ly, corner.x(), corner.y())
                if dist < best_dist:
                    best_index = index
                    best_dist = dist
            if best_index != HIT_NONE:
                return best_index

        if point_in_rotated_rect(x, y, bounds, shape.rotation):
            return HIT_INSIDE

        return HIT_NONE
