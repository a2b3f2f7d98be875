"""
SnapMark - Screenshot annotation & compositing engine.

This package contains the main application modules:
- core: Capture session state machine, selection, geometry, capture/export
- editor: Annotation model, undo history, compositor, actions and registry
- services: Application services (config, logging)
"""

__version__ = "0.1.0"
