"""
Capture service for SnapMark.

Grabs the primary screen through Qt and converts it into the RGBA8
ScreenCaptureBuffer used by the rest of the engine. A QGuiApplication
must be running; the caller owns it.
"""

from typing import Optional

import numpy as np
from PySide6.QtGui import QGuiApplication, QImage, QScreen

from snapmark.core.errors import CaptureUnavailable
from snapmark.core.image_buffer import CapturedScreen, ScreenCaptureBuffer
from snapmark.services.logging_service import get_logger

_logger = get_logger(__name__)


def qimage_to_buffer(image: QImage) -> ScreenCaptureBuffer:
    """
    Convert a QImage to an RGBA8 buffer.

    Args:
        image: Any non-null QImage.

    Returns:
        A buffer with the same pixel dimensions.

    Raises:
        CaptureUnavailable: If the image is null.
    """
    if image.isNull():
        raise CaptureUnavailable("Captured image is null")

    rgba = image.convertToFormat(QImage.Format.Format_RGBA8888)
    width, height = rgba.width(), rgba.height()
    stride = rgba.bytesPerLine()
    raw = np.frombuffer(rgba.constBits(), np.uint8)[:height * stride]

    # Rows may be padded to the stride; the buffer copies the pixels
    rows = raw.reshape((height, stride))[:, :width * 4]
    return ScreenCaptureBuffer(width, height, rows)


def capture_screen(screen: Optional[QScreen]) -> CapturedScreen:
    """
    Grab a whole screen.

    Args:
        screen: The screen to capture.

    Returns:
        The captured pixels and the screen's device pixel ratio.

    Raises:
        CaptureUnavailable: If there is no screen or the grab fails.
    """
    if screen is None:
        _logger.error("No screen available for capture!")
        raise CaptureUnavailable("No screen available for capture")

    # grabWindow(0) captures the entire screen, not a specific window
    image = screen.grabWindow(0).toImage()
    buffer = qimage_to_buffer(image)
    scale_factor = screen.devicePixelRatio() or 1.0

    _logger.info(
        f"Screen captured: {buffer.width}x{buffer.height} from {screen.name()} "
        f"(scale {scale_factor})"
    )
    return CapturedScreen(buffer=buffer, scale_factor=scale_factor, name=screen.name())


def capture_primary_screen() -> CapturedScreen:
    """
    Grab the primary screen.

    Raises:
        CaptureUnavailable: If no Qt application is running, there is no
            primary screen, or the grab returns a null image.
    """
    if QGuiApplication.instance() is None:
        _logger.error("Cannot capture without a running Qt application")
        raise CaptureUnavailable("No Qt application is running")
    return capture_screen(QGuiApplication.primaryScreen())
