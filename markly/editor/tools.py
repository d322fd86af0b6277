"""
Tool framework and implementations for the Markly editor.

Each tool turns a stream of pointer samples into scene mutations. Tools
receive plain (x, y) surface coordinates from the scene controller and
follow one rule: the scene is snapshotted on pointer-down, before anything
is mutated, so undo restores the state that preceded the gesture.

Tools:
- SelectTool: Select, move, and resize shapes through the transformer
- RectangleTool / EllipseTool / ArrowTool: Drag out a new shape
- PenTool: Freehand strokes
- MosaicTool: Pixelation brush strokes
- TextTool: Place a new text block
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import TYPE_CHECKING, Optional, Tuple

from PySide6.QtCore import QPointF, Qt

from markly.editor.shapes import (
    ArrowShape,
    EllipseShape,
    FreehandShape,
    PixelationShape,
    RectangleShape,
    ShapeBase,
    ShapeStyle,
)
from markly.editor.transformer import HIT_INSIDE, HIT_NONE
from markly.services.logging_service import get_logger

if TYPE_CHECKING:
    from markly.editor.scene import SceneController


class ToolType(Enum):
    """Enum for tool types."""
    SELECT = "select"
    RECTANGLE = "rect"
    ELLIPSE = "ellipse"
    ARROW = "arrow"
    PEN = "pen"
    TEXT = "text"
    MOSAIC = "mosaic"


# Mosaic strokes are drawn at twice the current line width
MOSAIC_WIDTH_FACTOR = 2


class ToolBase(ABC):
    """
    Base class for all tools.

    Tools handle pointer events forwarded by the scene controller and
    manipulate its shapes accordingly.
    """

    def __init__(self) -> None:
        self._logger = get_logger(__name__)

    @property
    @abstractmethod
    def tool_type(self) -> ToolType:
        """Return the type of this tool."""
        pass

    @property
    @abstractmethod
    def cursor(self) -> Qt.CursorShape:
        """Return the cursor to use when this tool is active."""
        pass

    @abstractmethod
    def on_pointer_press(self, x: float, y: float, scene: "SceneController") -> None:
        """Handle pointer press."""
        pass

    @abstractmethod
    def on_pointer_move(self, x: float, y: float, scene: "SceneController") -> None:
        """Handle pointer move. Called for hover moves too."""
        pass

    @abstractmethod
    def on_pointer_release(self, x: float, y: float, scene: "SceneController") -> None:
        """Handle pointer release."""
        pass

    def on_deactivate(self, scene: "SceneController") -> None:
        """Called when tool is deactivated (another tool selected)."""
        pass


class SelectTool(ToolBase):
    """
    Select tool for picking, moving, and resizing shapes.

    - Press on a handle of the selected shape: resize it
    - Press inside the selection box or on any shape: select and drag it
    - Press on empty surface: clear the selection
    """

    def __init__(self) -> None:
        super().__init__()
        self._handle: int = HIT_NONE
        self._last_pos: Optional[Tuple[float, float]] = None

    @property
    def tool_type(self) -> ToolType:
        return ToolType.SELECT

    @property
    def cursor(self) -> Qt.CursorShape:
        return Qt.CursorShape.ArrowCursor

    @property
    def active_handle(self) -> int:
        """Handle being dragged: 0-3 resize, -2 move, -1 idle."""
        return self._handle

    def on_pointer_press(self, x: float, y: float, scene: "SceneController") -> None:
        self._last_pos = (x, y)

        # Handles and box of the current selection take priority
        if scene.selected_shape is not None:
            handle = scene.transformer.hit_test(x, y)
            if handle != HIT_NONE:
                self._handle = handle
                scene.save_state()
                if handle != HIT_INSIDE:
                    scene.selected_shape.begin_resize(handle)
                self._logger.debug(f"Transform started on handle {handle}")
                return

        hit = scene.hit_test_shapes(x, y)
        if hit is not scene.selected_shape:
            scene.select_shape(hit)

        if hit is not None:
            self._handle = HIT_INSIDE
            scene.save_state()
        else:
            self._handle = HIT_NONE

    def on_pointer_move(self, x: float, y: float, scene: "SceneController") -> None:
        shape = scene.selected_shape
        if self._handle == HIT_NONE or shape is None or self._last_pos is None:
            return

        if self._handle == HIT_INSIDE:
            shape.move_by(x - self._last_pos[0], y - self._last_pos[1])
            self._last_pos = (x, y)
        else:
            shape.resize(x, y)
        scene.notify_changed()

    def on_pointer_release(self, x: float, y: float, scene: "SceneController") -> None:
        self._handle = HIT_NONE
        self._last_pos = None

    def on_deactivate(self, scene: "SceneController") -> None:
        self._handle = HIT_NONE
        self._last_pos = None


class DragShapeTool(ToolBase):
    """
    Base for tools that drag out a shape from the press point.

    The new shape is added at zero size on press and resized to the
    pointer on every move.
    """

    def __init__(self) -> None:
        super().__init__()
        self._current: Optional[ShapeBase] = None

    @property
    def cursor(self) -> Qt.CursorShape:
        return Qt.CursorShape.CrossCursor

    @abstractmethod
    def create_shape(self, x: float, y: float, style: ShapeStyle) -> ShapeBase:
        """Create the zero-size shape anchored at the press point."""
        pass

    def on_pointer_press(self, x: float, y: float, scene: "SceneController") -> None:
        scene.save_state()
        scene.select_shape(None)
        self._current = self.create_shape(x, y, scene.style.clone())
        scene.add_shape(self._current)

    def on_pointer_move(self, x: float, y: float, scene: "SceneController") -> None:
        if self._current is not None:
            self._current.resize(x, y)
            scene.notify_changed()

    def on_pointer_release(self, x: float, y: float, scene: "SceneController") -> None:
        self._current = None

    def on_deactivate(self, scene: "SceneController") -> None:
        self._current = None


class RectangleTool(DragShapeTool):
    """Tool for drawing rectangles."""

    @property
    def tool_type(self) -> ToolType:
        return ToolType.RECTANGLE

    def create_shape(self, x: float, y: float, style: ShapeStyle) -> ShapeBase:
        return RectangleShape(x, y, 0, 0, style)


class EllipseTool(DragShapeTool):
    """Tool for drawing ellipses, dragged out from the center."""

    @property
    def tool_type(self) -> ToolType:
        return ToolType.ELLIPSE

    def create_shape(self, x: float, y: float, style: ShapeStyle) -> ShapeBase:
        return EllipseShape(x, y, 0, 0, style)


class ArrowTool(DragShapeTool):
    """Tool for drawing arrows."""

    @property
    def tool_type(self) -> ToolType:
        return ToolType.ARROW

    def create_shape(self, x: float, y: float, style: ShapeStyle) -> ShapeBase:
        return ArrowShape(x, y, x, y, style)


class PenTool(ToolBase):
    """
    Freehand drawing tool.

    Creates a polyline stroke by tracking pointer movement.
    """

    def __init__(self) -> None:
        super().__init__()
        self._current: Optional[FreehandShape] = None

    @property
    def tool_type(self) -> ToolType:
        return ToolType.PEN

    @property
    def cursor(self) -> Qt.CursorShape:
        return Qt.CursorShape.CrossCursor

    def on_pointer_press(self, x: float, y: float, scene: "SceneController") -> None:
        scene.save_state()
        scene.select_shape(None)
        self._current = FreehandShape(x, y, [QPointF(x, y)], scene.style.clone())
        scene.add_shape(self._current)

    def on_pointer_move(self, x: float, y: float, scene: "SceneController") -> None:
        if self._current is not None:
            self._current.add_point(x, y)
            scene.notify_changed()

    def on_pointer_release(self, x: float, y: float, scene: "SceneController") -> None:
        self._current = None

    def on_deactivate(self, scene: "SceneController") -> None:
        self._current = None


class MosaicTool(ToolBase):
    """
    Pixelation brush.

    Each stroke is painted with a pattern made from a pixelated render of
    the scene as it looked when the stroke started.
    """

    def __init__(self) -> None:
        super().__init__()
        self._current: Optional[PixelationShape] = None

    @property
    def tool_type(self) -> ToolType:
        return ToolType.MOSAIC

    @property
    def cursor(self) -> Qt.CursorShape:
        # The scene paints the brush outline instead
        return Qt.CursorShape.BlankCursor

    def on_pointer_press(self, x: float, y: float, scene: "SceneController") -> None:
        scene.save_state()
        scene.select_shape(None)

        # Pattern must be rendered before the new stroke joins the scene
        pattern = scene.create_mosaic_pattern()
        style = scene.style.clone()
        style.line_width *= MOSAIC_WIDTH_FACTOR

        self._current = PixelationShape(x, y, [QPointF(x, y)], style, pattern=pattern)
        scene.add_shape(self._current)

    def on_pointer_move(self, x: float, y: float, scene: "SceneController") -> None:
        if self._current is not None:
            self._current.add_point(x, y)
        # Repaint on hover too, for the brush outline
        scene.notify_changed()

    def on_pointer_release(self, x: float, y: float, scene: "SceneController") -> None:
        self._current = None

    def on_deactivate(self, scene: "SceneController") -> None:
        self._current = None


class TextTool(ToolBase):
    """
    Text tool: a press opens a text edit at the pointer.

    The text itself is collected by the surrounding UI and committed
    through SceneController.commit_text().
    """

    @property
    def tool_type(self) -> ToolType:
        return ToolType.TEXT

    @property
    def cursor(self) -> Qt.CursorShape:
        return Qt.CursorShape.IBeamCursor

    def on_pointer_press(self, x: float, y: float, scene: "SceneController") -> None:
        scene.begin_text_edit(x, y)

    def on_pointer_move(self, x: float, y: float, scene: "SceneController") -> None:
        pass

    def on_pointer_release(self, x: float, y: float, scene: "SceneController") -> None:
        pass


def create_tool(tool_type: ToolType) -> ToolBase:
    """
    Factory function to create tools by type.

    Args:
        tool_type: The type of tool to create.

    Returns:
        A new instance of the requested tool.
    """
    tool_classes = {
        ToolType.SELECT: SelectTool,
        ToolType.RECTANGLE: RectangleTool,
        ToolType.ELLIPSE: EllipseTool,
        ToolType.ARROW: ArrowTool,
        ToolType.PEN: PenTool,
        ToolType.TEXT: TextTool,
        ToolType.MOSAIC: MosaicTool,
    }

    if tool_type not in tool_classes:
        raise ValueError(f"Unknown tool type: {tool_type}")

    return tool_classes[tool_type]()
