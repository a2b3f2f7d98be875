"""Exception types raised by the SnapMark core."""


class SnapmarkError(Exception):
    """Base class for all SnapMark errors."""
    pass


class CaptureUnavailable(SnapmarkError):
    """
    Raised when the initial screen capture cannot be obtained.

    This is fatal to a capture session: no ScreenshotMode is created.
    """
    pass


class ActionFailure(SnapmarkError):
    """
    Raised by an action that could not complete.

    The registry converts it into a failure ActionResult, so the session
    state is left untouched.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message
