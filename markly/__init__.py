"""
Markly - An interactive vector annotation layer for images.

This package contains the main application modules:
- editor: Shapes, history, selection overlay, scene controller and canvas
- services: Application services (config, logging)
"""

__version__ = "0.1.0"
