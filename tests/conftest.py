"""
Pytest configuration and shared fixtures for Markly tests.
"""

import os

# Qt must not try to open a display
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from typing import Any, Dict, List, Sequence

import pytest
from PySide6.QtWidgets import QApplication

from markly.editor.scene import SceneController
from markly.editor.shapes import (
    ArrowShape,
    EllipseShape,
    FreehandShape,
    PixelationShape,
    RectangleShape,
    ShapeBase,
    TextShape,
)


# ============== Qt Fixtures ==============

@pytest.fixture(scope="session", autouse=True)
def qapp() -> QApplication:
    """One QApplication for the whole session (fonts and painting need it)."""
    app = QApplication.instance()
    if app is None:
        app = QApplication([])
    return app


# ============== Scene Fixtures ==============

@pytest.fixture
def scene() -> SceneController:
    """A small empty scene with the select tool active."""
    return SceneController(width=200, height=150)


@pytest.fixture
def rect_scene(scene: SceneController) -> SceneController:
    """A scene holding one 100x50 rectangle at the origin."""
    scene.add_shape(RectangleShape(0, 0, 100, 50))
    return scene


# ============== Snapshot Helpers ==============

def shape_state(shape: ShapeBase) -> Dict[str, Any]:
    """Value view of a shape for equality checks; ignores `selected`."""
    state: Dict[str, Any] = {
        "type": shape.shape_type,
        "x": shape.x,
        "y": shape.y,
        "rotation": shape.rotation,
        "color": shape.stroke_color.name(),
        "line_width": shape.line_width,
    }
    if isinstance(shape, RectangleShape):
        state.update(width=shape.width, height=shape.height)
    elif isinstance(shape, EllipseShape):
        state.update(rx=shape.rx, ry=shape.ry)
    elif isinstance(shape, ArrowShape):
        state.update(end_x=shape.end_x, end_y=shape.end_y)
    elif isinstance(shape, (FreehandShape, PixelationShape)):
        state["points"] = [(p.x(), p.y()) for p in shape.points]
    elif isinstance(shape, TextShape):
        state.update(
            text=shape.text,
            font_size=shape.font_size,
            font_family=shape.font_family,
        )
    return state


def scene_state(shapes: Sequence[ShapeBase]) -> List[Dict[str, Any]]:
    return [shape_state(shape) for shape in shapes]


@pytest.fixture
def state_of():
    """Expose scene_state to tests without importing conftest."""
    return scene_state
