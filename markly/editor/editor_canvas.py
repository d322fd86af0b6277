"""
Editor canvas widget for Markly.

The EditorCanvas is the drawing surface shown on screen. It owns a
SceneController, forwards mouse and keyboard input to it, and repaints
whenever the scene reports a change. Text is typed into a QLineEdit that
floats over the canvas at the edit position.

Keyboard:
- 1-7: Select, Rectangle, Ellipse, Arrow, Pen, Text, Mosaic
- Delete / Backspace: Delete the selected shape
- Ctrl+Z: Undo, Ctrl+Shift+Z / Ctrl+Y: Redo
"""

from typing import Optional

from PySide6.QtCore import QPointF, Qt, Signal
from PySide6.QtGui import QFocusEvent, QKeyEvent, QMouseEvent, QPainter
from PySide6.QtWidgets import QLineEdit, QWidget

from markly.editor.scene import SceneController
from markly.editor.tools import ToolType
from markly.services.logging_service import get_logger

TOOL_SHORTCUTS = {
    Qt.Key.Key_1: ToolType.SELECT,
    Qt.Key.Key_2: ToolType.RECTANGLE,
    Qt.Key.Key_3: ToolType.ELLIPSE,
    Qt.Key.Key_4: ToolType.ARROW,
    Qt.Key.Key_5: ToolType.PEN,
    Qt.Key.Key_6: ToolType.TEXT,
    Qt.Key.Key_7: ToolType.MOSAIC,
}


class TextInput(QLineEdit):
    """Floating line edit that reports Escape and focus loss."""

    cancelled = Signal()
    focus_lost = Signal()

    def keyPressEvent(self, event: QKeyEvent) -> None:
        if event.key() == Qt.Key.Key_Escape:
            self.cancelled.emit()
            return
        super().keyPressEvent(event)

    def focusOutEvent(self, event: QFocusEvent) -> None:
        super().focusOutEvent(event)
        self.focus_lost.emit()


class EditorCanvas(QWidget):
    """
    Widget that displays and edits one annotation scene.

    Signals:
        tool_changed: Emitted with the ToolType after a shortcut switches tools.
    """

    tool_changed = Signal(object)  # ToolType

    def __init__(
        self,
        scene: Optional[SceneController] = None,
        parent: Optional[QWidget] = None,
    ) -> None:
        super().__init__(parent)
        self._logger = get_logger(__name__)

        self._scene = scene or SceneController(parent=self)
        self._scene.changed.connect(self.update)
        self._scene.text_edit_requested.connect(self._show_text_input)

        self._text_input = TextInput(self)
        self._text_input.hide()
        self._text_input.returnPressed.connect(self._commit_text_input)
        self._text_input.focus_lost.connect(self._commit_text_input)
        self._text_input.cancelled.connect(self._cancel_text_input)

        self._setup_widget()

    def _setup_widget(self) -> None:
        """Configure widget properties."""
        self.setMouseTracking(True)
        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)
        width, height = self._scene.size
        self.setFixedSize(width, height)

    @property
    def scene(self) -> SceneController:
        return self._scene

    # ─── Text Input ───────────────────────────────────────────────────────

    def _show_text_input(self, x: float, y: float, text: str) -> None:
        editing = self._scene.editing_shape
        font_size = editing.font_size if editing else self._scene.font_size
        family = editing.font_family if editing else self._scene.font_family

        font = self._text_input.font()
        font.setFamily(family)
        font.setPixelSize(int(font_size))
        self._text_input.setFont(font)

        self._text_input.setText(text)
        self._text_input.move(int(x), int(y))
        self._text_input.resize(max(200, self.width() - int(x)), self._text_input.sizeHint().height())
        self._text_input.show()
        self._text_input.setFocus()
        self._text_input.selectAll()

    def _commit_text_input(self) -> None:
        if not self._scene.is_editing_text:
            return
        self._logger.debug("Committing text input")
        self._scene.commit_text(self._text_input.text())
        self._hide_text_input()

    def _cancel_text_input(self) -> None:
        self._logger.debug("Text input cancelled")
        self._scene.cancel_text_edit()
        self._hide_text_input()

    def _hide_text_input(self) -> None:
        self._text_input.hide()
        self._text_input.clear()
        self.setFocus()

    # ─── Event Handlers ───────────────────────────────────────────────────

    def paintEvent(self, event) -> None:
        """Paint the canvas."""
        painter = QPainter(self)
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)
        painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform)
        self._scene.render(painter)
        painter.end()

    def mousePressEvent(self, event: QMouseEvent) -> None:
        """Handle mouse press."""
        if event.button() != Qt.MouseButton.LeftButton:
            return

        # Any click closes an open text edit first
        if self._scene.is_editing_text:
            self._commit_text_input()

        pos = event.position()
        self._scene.pointer_press(pos.x(), pos.y())
        self._update_cursor(pos)

    def mouseMoveEvent(self, event: QMouseEvent) -> None:
        """Handle mouse move."""
        pos = event.position()
        self._scene.pointer_move(pos.x(), pos.y())
        self._update_cursor(pos)

    def mouseReleaseEvent(self, event: QMouseEvent) -> None:
        """Handle mouse release."""
        if event.button() == Qt.MouseButton.LeftButton:
            pos = event.position()
            self._scene.pointer_release(pos.x(), pos.y())

    def mouseDoubleClickEvent(self, event: QMouseEvent) -> None:
        """Double-click on a text block edits it."""
        if event.button() != Qt.MouseButton.LeftButton:
            return
        pos = event.position()
        if not self._scene.edit_text_at(pos.x(), pos.y()):
            super().mouseDoubleClickEvent(event)

    def leaveEvent(self, event) -> None:
        self._scene.pointer_leave()
        super().leaveEvent(event)

    def _update_cursor(self, pos: QPointF) -> None:
        self.setCursor(self._scene.cursor_at(pos.x(), pos.y()))

    def keyPressEvent(self, event: QKeyEvent) -> None:
        """Handle key press."""
        key = event.key()
        modifiers = event.modifiers()

        if modifiers & Qt.KeyboardModifier.ControlModifier:
            if key == Qt.Key.Key_Z:
                if modifiers & Qt.KeyboardModifier.ShiftModifier:
                    self._scene.redo()
                else:
                    self._scene.undo()
                return
            elif key == Qt.Key.Key_Y:
                self._scene.redo()
                return

        if key in (Qt.Key.Key_Delete, Qt.Key.Key_Backspace):
            self._scene.delete_selected()
            return

        tool_type = TOOL_SHORTCUTS.get(key)
        if tool_type is not None and not modifiers:
            self._scene.set_tool(tool_type)
            self._logger.info(f"Tool switched to {tool_type.value} via shortcut")
            self.setCursor(self._scene.active_tool.cursor)
            self.tool_changed.emit(tool_type)
            return

        super().keyPressEvent(event)
