"""
Scene controller for the Markly editor.

The SceneController owns the ordered shape list, the selection, the
transformer overlay and the undo history. It receives pointer samples in
surface coordinates, delegates them to the active tool, and renders the
whole scene onto any QPainter.

The controller is widget-free: the EditorCanvas forwards Qt events to it
and repaints when `changed` fires, so the same controller runs headless
in tests.
"""

import math
from typing import List, Optional, Tuple, Union

from PySide6.QtCore import QObject, QPointF, QRectF, Qt, Signal
from PySide6.QtGui import QBrush, QColor, QImage, QPainter, QPen

from markly.editor.history import DEFAULT_HISTORY_LIMIT, HistoryManager
from markly.editor.shapes import (
    DEFAULT_FONT_FAMILY,
    DEFAULT_FONT_SIZE,
    ShapeBase,
    ShapeStyle,
    TextShape,
    measure_text,
)
from markly.editor.tools import ToolBase, ToolType, create_tool
from markly.editor.transformer import (
    DEFAULT_HANDLE_SIZE,
    HANDLE_BOTTOM_LEFT,
    HANDLE_BOTTOM_RIGHT,
    HANDLE_TOP_LEFT,
    HANDLE_TOP_RIGHT,
    HIT_INSIDE,
    Transformer,
)
from markly.services.config_service import ConfigService
from markly.services.logging_service import get_logger

DEFAULT_CANVAS_SIZE = (800, 600)
DEFAULT_BACKGROUND_COLOR = "#ffffff"
DEFAULT_MOSAIC_PIXEL_SIZE = 10

# Outline drawn around the mosaic brush while the mosaic tool is active
MOSAIC_PREVIEW_COLOR = QColor(255, 255, 255, 204)

ColorLike = Union[str, QColor]


class SceneController(QObject):
    """
    Editing controller for a single annotation scene.

    Signals:
        changed: Emitted whenever the scene needs repainting.
        selection_changed: Emitted with the newly selected shape or None.
        text_edit_requested: Emitted with (x, y, initial_text) when the UI
            should open a text input at that surface position.
    """

    # Signals
    changed = Signal()
    selection_changed = Signal(object)  # ShapeBase or None
    text_edit_requested = Signal(float, float, str)

    def __init__(
        self,
        width: int = DEFAULT_CANVAS_SIZE[0],
        height: int = DEFAULT_CANVAS_SIZE[1],
        style: Optional[ShapeStyle] = None,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
        handle_size: float = DEFAULT_HANDLE_SIZE,
        font_size: int = DEFAULT_FONT_SIZE,
        font_family: str = DEFAULT_FONT_FAMILY,
        background_color: ColorLike = DEFAULT_BACKGROUND_COLOR,
        mosaic_pixel_size: int = DEFAULT_MOSAIC_PIXEL_SIZE,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self._logger = get_logger(__name__)

        # Shapes, in paint order (last is topmost)
        self._shapes: List[ShapeBase] = []
        self._selected_shape: Optional[ShapeBase] = None

        self._transformer = Transformer(handle_size, measure=measure_text)
        self._history = HistoryManager(history_limit)

        # Tool and style for new shapes
        self._tool: ToolBase = create_tool(ToolType.SELECT)
        self._style: ShapeStyle = style or ShapeStyle()
        self.font_size: int = font_size
        self.font_family: str = font_family

        # Surface
        self._width = int(width)
        self._height = int(height)
        self._background_color = QColor(background_color)
        self._background_image: Optional[QImage] = None
        self._mosaic_pixel_size = max(1, int(mosaic_pixel_size))

        # Last hover position, for the mosaic brush outline
        self._pointer_pos: Optional[Tuple[float, float]] = None

        # Pending text edit: anchor of a new block, or the block being edited
        self._text_editing: bool = False
        self._text_anchor: Optional[Tuple[float, float]] = None
        self._editing_shape: Optional[TextShape] = None

    @classmethod
    def from_config(
        cls, config: ConfigService, parent: Optional[QObject] = None
    ) -> "SceneController":
        """Build a scene using the user's configured defaults."""
        logger = get_logger(__name__)
        width, height = config.canvas_size

        line_width = config.line_width
        if line_width <= 0:
            logger.warning(f"Ignoring non-positive line width {line_width}")
            line_width = ShapeStyle().line_width

        stroke = QColor(config.stroke_color)
        if not stroke.isValid():
            logger.warning(f"Ignoring invalid stroke color '{config.stroke_color}'")
            stroke = ShapeStyle().stroke_color

        background = QColor(config.background_color)
        if not background.isValid():
            logger.warning(
                f"Ignoring invalid background color '{config.background_color}'"
            )
            background = QColor(DEFAULT_BACKGROUND_COLOR)

        return cls(
            width=width,
            height=height,
            style=ShapeStyle(stroke_color=stroke, line_width=line_width),
            history_limit=max(1, config.history_limit),
            handle_size=config.handle_size,
            font_size=config.font_size,
            font_family=config.font_family,
            background_color=background,
            mosaic_pixel_size=config.mosaic_pixel_size,
            parent=parent,
        )

    # ─── State ────────────────────────────────────────────────────────────

    @property
    def shapes(self) -> List[ShapeBase]:
        """Return the live shape list, in paint order."""
        return self._shapes

    @property
    def selected_shape(self) -> Optional[ShapeBase]:
        return self._selected_shape

    @property
    def transformer(self) -> Transformer:
        return self._transformer

    @property
    def history(self) -> HistoryManager:
        return self._history

    @property
    def tool(self) -> ToolType:
        return self._tool.tool_type

    @property
    def active_tool(self) -> ToolBase:
        return self._tool

    @property
    def style(self) -> ShapeStyle:
        """Style applied to newly drawn shapes."""
        return self._style

    @property
    def size(self) -> Tuple[int, int]:
        return (self._width, self._height)

    def set_size(self, width: int, height: int) -> None:
        self._width = int(width)
        self._height = int(height)
        self.changed.emit()

    @property
    def background_image(self) -> Optional[QImage]:
        return self._background_image

    @property
    def background_color(self) -> QColor:
        return QColor(self._background_color)

    def notify_changed(self) -> None:
        """Request a repaint."""
        self.changed.emit()

    # ─── Shape Management ─────────────────────────────────────────────────

    def save_state(self) -> None:
        """Snapshot the shape list before a mutation."""
        self._history.push(self._shapes)

    def add_shape(self, shape: ShapeBase) -> None:
        """Append a shape on top of the paint order."""
        self._shapes.append(shape)
        self.changed.emit()

    def select_shape(self, shape: Optional[ShapeBase]) -> None:
        """Select a shape, or clear the selection with None."""
        for existing in self._shapes:
            existing.selected = False

        self._selected_shape = shape
        if shape is not None:
            shape.selected = True
        self._transformer.attach(shape)

        self.selection_changed.emit(shape)
        self.changed.emit()

    def hit_test_shapes(self, x: float, y: float) -> Optional[ShapeBase]:
        """Find the topmost shape at a surface position."""
        for shape in reversed(self._shapes):
            if shape.hit_test(x, y):
                return shape
        return None

    def delete_selected(self) -> bool:
        """Delete the selected shape. Returns False if nothing is selected."""
        shape = self._selected_shape
        if shape is None:
            return False

        self.save_state()
        if shape in self._shapes:
            self._shapes.remove(shape)
        self.select_shape(None)
        self._logger.info(f"Deleted {shape.shape_type.name.lower()} shape")
        return True

    def reset(self) -> None:
        """Remove every shape. Undoable."""
        self.save_state()
        self._shapes = []
        self._end_text_edit()
        self.select_shape(None)
        self._logger.info("Scene reset")

    # ─── Tools and Style ──────────────────────────────────────────────────

    def set_tool(self, tool_type: Union[ToolType, str]) -> None:
        """
        Activate a tool.

        Args:
            tool_type: A ToolType, or its string value (e.g. "rect").

        Raises:
            ValueError: If the tool type is unknown.
        """
        if not isinstance(tool_type, ToolType):
            tool_type = ToolType(tool_type)

        new_tool = create_tool(tool_type)
        self._tool.on_deactivate(self)
        self._tool = new_tool
        self.select_shape(None)
        self._logger.info(f"Tool changed to {tool_type.value}")

    def set_color(self, color: ColorLike) -> None:
        """
        Set the stroke color for new shapes and the selected shape.

        Raises:
            ValueError: If the color cannot be parsed.
        """
        qcolor = QColor(color)
        if not qcolor.isValid():
            raise ValueError(f"Invalid color: {color!r}")

        self._style.stroke_color = qcolor
        if self._selected_shape is not None:
            self.save_state()
            self._selected_shape.stroke_color = qcolor
        self.changed.emit()

    def set_line_width(self, width: float) -> None:
        """
        Set the line width for new shapes and the selected shape.

        Raises:
            ValueError: If the width is not positive.
        """
        if width <= 0:
            raise ValueError(f"Line width must be positive, got {width}")

        self._style.line_width = float(width)
        if self._selected_shape is not None:
            self.save_state()
            self._selected_shape.line_width = width
        self.changed.emit()

    # ─── Undo/Redo ────────────────────────────────────────────────────────

    def undo(self) -> bool:
        """Restore the previous snapshot. Returns False if there is none."""
        previous = self._history.undo(self._shapes)
        if previous is None:
            return False
        self._restore(previous)
        return True

    def redo(self) -> bool:
        """Re-apply an undone snapshot. Returns False if there is none."""
        following = self._history.redo(self._shapes)
        if following is None:
            return False
        self._restore(following)
        return True

    def _restore(self, shapes: List[ShapeBase]) -> None:
        self._shapes = shapes
        # The edited shape belonged to the replaced list
        self._end_text_edit()
        self.select_shape(None)

    # ─── Pointer Input ────────────────────────────────────────────────────

    def pointer_press(self, x: float, y: float) -> None:
        self._pointer_pos = (x, y)
        self._tool.on_pointer_press(x, y, self)

    def pointer_move(self, x: float, y: float) -> None:
        self._pointer_pos = (x, y)
        self._tool.on_pointer_move(x, y, self)

    def pointer_release(self, x: float, y: float) -> None:
        self._pointer_pos = (x, y)
        self._tool.on_pointer_release(x, y, self)

    def pointer_leave(self) -> None:
        """The pointer left the surface; hide the mosaic brush outline."""
        self._pointer_pos = None
        self.changed.emit()

    def cursor_at(self, x: float, y: float) -> Qt.CursorShape:
        """Cursor to show for a hover position."""
        if self._tool.tool_type != ToolType.SELECT:
            return self._tool.cursor

        if self._selected_shape is not None:
            handle = self._transformer.hit_test(x, y)
            if handle in (HANDLE_TOP_LEFT, HANDLE_BOTTOM_RIGHT):
                return Qt.CursorShape.SizeFDiagCursor
            if handle in (HANDLE_TOP_RIGHT, HANDLE_BOTTOM_LEFT):
                return Qt.CursorShape.SizeBDiagCursor
            if handle == HIT_INSIDE:
                return Qt.CursorShape.SizeAllCursor

        if self.hit_test_shapes(x, y) is not None:
            return Qt.CursorShape.SizeAllCursor

        return self._tool.cursor

    # ─── Text Editing ─────────────────────────────────────────────────────

    @property
    def is_editing_text(self) -> bool:
        return self._text_editing

    @property
    def editing_shape(self) -> Optional[TextShape]:
        """The existing text block under edit, or None for a new block."""
        return self._editing_shape

    def begin_text_edit(self, x: float, y: float) -> None:
        """Open an edit for a new text block anchored at (x, y)."""
        if self._text_editing:
            self.cancel_text_edit()

        self._text_editing = True
        self._text_anchor = (x, y)
        self._editing_shape = None
        self.text_edit_requested.emit(float(x), float(y), "")
        self.changed.emit()

    def edit_text_at(self, x: float, y: float) -> bool:
        """
        Open an edit on the topmost text block at (x, y).

        Returns:
            True if a text block was found.
        """
        for shape in reversed(self._shapes):
            if isinstance(shape, TextShape) and shape.hit_test(x, y):
                if self._text_editing:
                    self.cancel_text_edit()
                self._text_editing = True
                self._text_anchor = (shape.x, shape.y)
                self._editing_shape = shape
                self.text_edit_requested.emit(shape.x, shape.y, shape.text)
                self.changed.emit()
                return True
        return False

    def commit_text(self, value: str) -> bool:
        """
        Apply the text collected by the UI and close the edit.

        Blank text creates nothing and deletes an existing block.

        Returns:
            True if the scene changed.
        """
        if not self._text_editing:
            return False

        shape = self._editing_shape
        blank = not value.strip()
        changed = False

        if shape is None:
            if not blank and self._text_anchor is not None:
                self.save_state()
                x, y = self._text_anchor
                self._shapes.append(TextShape(
                    x, y, value, self._style.clone(),
                    font_size=self.font_size, font_family=self.font_family,
                ))
                changed = True
        elif blank:
            self.save_state()
            if shape in self._shapes:
                self._shapes.remove(shape)
            if shape is self._selected_shape:
                self.select_shape(None)
            changed = True
        elif value != shape.text:
            self.save_state()
            shape.text = value
            changed = True

        self._end_text_edit()
        self.changed.emit()
        if changed:
            self._logger.debug("Text edit committed")
        return changed

    def cancel_text_edit(self) -> None:
        """Close the edit without touching the scene."""
        if self._text_editing:
            self._end_text_edit()
            self.changed.emit()

    def _end_text_edit(self) -> None:
        self._text_editing = False
        self._text_anchor = None
        self._editing_shape = None

    # ─── Background ───────────────────────────────────────────────────────

    def set_background_image(self, image: Optional[QImage]) -> bool:
        """
        Set the image drawn under the shapes, scaled to the canvas.

        Returns:
            False if the image is null and was ignored.
        """
        if image is None:
            self._background_image = None
            self.changed.emit()
            return True

        if image.isNull():
            self._logger.warning("Ignoring null background image")
            return False

        self._background_image = image
        self.changed.emit()
        self._logger.info(f"Background loaded: {image.width()}x{image.height()}")
        return True

    def set_background_color(self, color: ColorLike) -> None:
        """
        Set the fill used when there is no background image.

        Raises:
            ValueError: If the color cannot be parsed.
        """
        qcolor = QColor(color)
        if not qcolor.isValid():
            raise ValueError(f"Invalid color: {color!r}")
        self._background_color = qcolor
        self.changed.emit()

    # ─── Rendering ────────────────────────────────────────────────────────

    def render(self, painter: QPainter) -> None:
        """Paint the interactive view: scene, selection overlay, brush outline."""
        self._paint_scene(painter, include_overlay=True)

        if self._tool.tool_type == ToolType.MOSAIC and self._pointer_pos is not None:
            x, y = self._pointer_pos
            radius = self._style.line_width
            painter.save()
            painter.setPen(QPen(MOSAIC_PREVIEW_COLOR, 1))
            painter.setBrush(Qt.BrushStyle.NoBrush)
            painter.drawEllipse(QPointF(x, y), radius, radius)
            painter.restore()

    def render_to_image(self, include_overlay: bool = False) -> QImage:
        """
        Render the scene to a canvas-sized QImage.

        Used for export and for building the mosaic pattern.
        """
        if self._width <= 0 or self._height <= 0:
            return QImage()

        image = QImage(self._width, self._height, QImage.Format.Format_ARGB32_Premultiplied)
        image.fill(self._background_color)

        painter = QPainter(image)
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)
        painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform)
        self._paint_scene(painter, include_overlay=include_overlay)
        painter.end()

        return image

    def _paint_scene(self, painter: QPainter, include_overlay: bool) -> None:
        bounds = QRectF(0, 0, self._width, self._height)
        if self._background_image is not None:
            painter.drawImage(bounds, self._background_image)
        else:
            painter.fillRect(bounds, self._background_color)

        # The block under edit is shown by the text input instead
        for shape in self._shapes:
            if shape is self._editing_shape:
                continue
            shape.paint(painter)

        if include_overlay and self._selected_shape is not None:
            if self._selected_shape is not self._editing_shape:
                self._transformer.paint(painter)

    def create_mosaic_pattern(self) -> QBrush:
        """
        Build the pixelation brush from the current scene.

        The scene is shrunk by the pixel size without smoothing and scaled
        back up, so each block takes the color of one sampled pixel.
        """
        source = self.render_to_image(include_overlay=False)
        if source.isNull():
            return QBrush()

        size = self._mosaic_pixel_size
        small_w = max(1, math.ceil(self._width / size))
        small_h = max(1, math.ceil(self._height / size))

        small = source.scaled(
            small_w, small_h,
            Qt.AspectRatioMode.IgnoreAspectRatio,
            Qt.TransformationMode.FastTransformation,
        )
        pixelated = small.scaled(
            self._width, self._height,
            Qt.AspectRatioMode.IgnoreAspectRatio,
            Qt.TransformationMode.FastTransformation,
        )
        self._logger.debug(f"Mosaic pattern built ({small_w}x{small_h} blocks)")
        return QBrush(pixelated)
