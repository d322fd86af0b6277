"""
Markly - An interactive vector annotation layer for images.

This is the main entry point for the application.
Run with: python -m markly.app [image]
"""

import signal
import sys
from typing import List, Optional

from PySide6.QtCore import QTimer
from PySide6.QtGui import QImage
from PySide6.QtWidgets import QApplication

from markly import __version__
from markly.editor.editor_canvas import EditorCanvas
from markly.editor.scene import SceneController
from markly.services.config_service import ConfigService
from markly.services.logging_service import get_logger, set_log_level, setup_logging

# Global app reference for signal handlers
_app: Optional[QApplication] = None
_should_quit = False


def request_quit(signum, frame):
    """Handle termination signals."""
    global _should_quit
    _should_quit = True


def check_for_quit():
    """Timer callback to check if we should quit."""
    if _should_quit and _app:
        get_logger(__name__).info("Signal received, quitting...")
        _app.quit()


def load_background(scene: SceneController, path: str) -> bool:
    """
    Load an image file as the scene background.

    Returns:
        False if the file could not be read as an image.
    """
    image = QImage(path)
    if image.isNull():
        get_logger(__name__).error(f"Could not load image: {path}")
        return False
    return scene.set_background_image(image)


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for Markly.

    Returns:
        Exit code (0 for success, non-zero for error).
    """
    global _app

    argv = sys.argv if argv is None else argv

    # Initialize basic logging first to catch early errors
    setup_logging()
    logger = get_logger(__name__)

    try:
        logger.info("Starting Markly...")

        config = ConfigService()
        set_log_level(config.log_level)

        _app = QApplication(argv)
        _app.setApplicationName("Markly")
        _app.setApplicationVersion(__version__)

        signal.signal(signal.SIGINT, request_quit)
        signal.signal(signal.SIGTERM, request_quit)

        # Qt event loop blocks Python signals, so poll for them
        quit_timer = QTimer()
        quit_timer.timeout.connect(check_for_quit)
        quit_timer.start(100)

        scene = SceneController.from_config(config)
        if len(argv) > 1:
            load_background(scene, argv[1])

        canvas = EditorCanvas(scene)
        canvas.setWindowTitle("Markly")
        canvas.show()

        logger.info("Markly initialization complete. Entering event loop...")
        exit_code = _app.exec()

        logger.info(f"Markly exiting with code {exit_code}")
        return exit_code

    except Exception as e:
        logger.critical(f"Fatal error during startup: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
