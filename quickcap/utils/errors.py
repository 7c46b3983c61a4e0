"""Error types shared across QuickCap.

None of these are fatal: configuration errors fall back to defaults,
capture and clipboard errors are reported back to the user through the
control button label and the selection returns to idle.
"""


class QuickCapError(Exception):
    """Base class for all QuickCap errors."""


class ConfigParseError(QuickCapError, ValueError):
    """A configuration value could not be parsed."""

    def __init__(self, key: str, value, reason: str):
        self.key = key
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid value for {key}: {value!r} ({reason})")


class CaptureError(QuickCapError):
    """The screen region could not be read."""

    reason = "capture failed"


class CapturePermissionError(CaptureError):
    """The OS declined the pixel read."""

    reason = "permission denied"


class CaptureOffscreenError(CaptureError):
    """The requested rectangle is not fully on screen."""

    reason = "area off screen"


class CaptureUnavailableError(CaptureError):
    """No capture primitive is available (no display, missing backend)."""

    reason = "capture unavailable"


class ClipboardPublishError(QuickCapError):
    """The platform clipboard did not accept the image."""


class UnsupportedFormatError(QuickCapError, LookupError):
    """A clipboard consumer asked for a representation we do not offer."""

    def __init__(self, fmt: str):
        self.format = fmt
        super().__init__(f"Unsupported clipboard format: {fmt}")
