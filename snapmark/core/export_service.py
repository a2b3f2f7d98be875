"""
Export service for SnapMark.

Turns composited buffers back into QImages and delivers them to disk or to
the system clipboard.
"""

from datetime import datetime
from pathlib import Path
from typing import Optional

from PySide6.QtGui import QClipboard, QGuiApplication, QImage

from snapmark.core.errors import ActionFailure
from snapmark.core.image_buffer import ScreenCaptureBuffer
from snapmark.services.logging_service import get_logger

_logger = get_logger(__name__)


def buffer_to_qimage(buffer: ScreenCaptureBuffer) -> QImage:
    """
    Convert an RGBA8 buffer to a QImage.

    The returned image owns a copy of the pixels, so the buffer can be
    changed or dropped afterwards.
    """
    image = QImage(
        buffer.to_bytes(),
        buffer.width,
        buffer.height,
        buffer.width * 4,
        QImage.Format.Format_RGBA8888,
    )
    return image.copy()


def timestamped_filename(now: Optional[datetime] = None) -> str:
    """File name used for saved screenshots, e.g. snapmark_20240131_093000.png."""
    now = now or datetime.now()
    return f"snapmark_{now.strftime('%Y%m%d_%H%M%S')}.png"


def save_buffer(buffer: ScreenCaptureBuffer, folder: Path) -> Path:
    """
    Save a buffer as a timestamped PNG.

    Args:
        buffer: The image to save.
        folder: Target folder. Created if it doesn't exist.

    Returns:
        Path of the written file.

    Raises:
        ActionFailure: If the folder cannot be created or the PNG cannot
            be written.
    """
    folder = Path(folder)
    try:
        folder.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        _logger.error(f"Could not create save folder: {e}")
        raise ActionFailure(f"Could not create save folder: {e}") from e

    filepath = folder / timestamped_filename()
    if not buffer_to_qimage(buffer).save(str(filepath), "PNG"):
        _logger.error(f"Failed to save screenshot to: {filepath}")
        raise ActionFailure(f"Failed to save screenshot to {filepath}")

    _logger.info(f"Screenshot saved to: {filepath}")
    return filepath


def copy_buffer_to_clipboard(buffer: ScreenCaptureBuffer) -> None:
    """
    Put a buffer on the system clipboard.

    Raises:
        ActionFailure: If no Qt application is running.
    """
    if QGuiApplication.instance() is None:
        raise ActionFailure("Clipboard unavailable: no Qt application is running")

    clipboard: QClipboard = QGuiApplication.clipboard()
    clipboard.setImage(buffer_to_qimage(buffer))
    _logger.info("Screenshot copied to clipboard")
