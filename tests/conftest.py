"""Shared pytest configuration for the SnapMark test suite.

Fixtures:
    qt_app: A QGuiApplication on the offscreen platform (skips without QtGui)
"""

import os

import pytest

# Qt must never try to reach a real display during tests
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")


@pytest.fixture(scope="session")
def qt_app():
    QtGui = pytest.importorskip("PySide6.QtGui")
    app = QtGui.QGuiApplication.instance()
    if app is None:
        app = QtGui.QGuiApplication([])
    return app
