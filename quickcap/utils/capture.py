"""
Screen capture for QuickCap.

This module handles reading the pixels of a screen rectangle and handing
the result to the clipboard:
- X11 capture through python-xlib (root window GetImage)
- Qt capture through QScreen.grabWindow for non-X11 sessions
- Screen bounds checks so partially off-screen selections fail cleanly
- CaptureService, which never raises past its boundary
"""

import logging
import os
from dataclasses import dataclass
from typing import List, Optional, Tuple

from PIL import Image
from Xlib import X, display
from Xlib.error import XError
from Xlib.ext import randr

from .clipboard import ClipboardPublisher
from .errors import (
    CaptureError,
    CaptureOffscreenError,
    CapturePermissionError,
    CaptureUnavailableError,
    ClipboardPublishError,
    QuickCapError,
)
from .geometry import SelectionRectangle, bounding_box

# Set up logging
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CapturedImage:
    """Immutable pixel buffer of a captured screen rectangle.

    The raw bytes are never handed out for mutation; every accessor builds
    a fresh image object from them.
    """

    rect: SelectionRectangle
    mode: str
    data: bytes

    @property
    def size(self) -> Tuple[int, int]:
        return (self.rect.width, self.rect.height)

    @classmethod
    def from_pil(cls, rect: SelectionRectangle, image: Image.Image) -> "CapturedImage":
        if image.size != (rect.width, rect.height):
            raise CaptureError(
                f"Captured size {image.size} does not match selection {rect.width}x{rect.height}"
            )
        if image.mode not in ("RGB", "RGBA"):
            image = image.convert("RGB")
        return cls(rect=rect, mode=image.mode, data=image.tobytes())

    def to_pil(self) -> Image.Image:
        return Image.frombytes(self.mode, self.size, self.data)

    def to_qimage(self):
        """Build a QImage that owns a copy of the pixels."""
        from PyQt6.QtGui import QImage

        width, height = self.size
        if self.mode == "RGBA":
            qformat, bytes_per_line = QImage.Format.Format_RGBA8888, width * 4
        else:
            qformat, bytes_per_line = QImage.Format.Format_RGB888, width * 3

        # QImage does not copy the buffer it is constructed from
        return QImage(self.data, width, height, bytes_per_line, qformat).copy()


class ScreenGrabber:
    """Reads screen pixels for a rectangle."""

    name = "none"

    def screen_bounds(self) -> SelectionRectangle:
        """Area that can be grabbed, in global screen coordinates."""
        raise NotImplementedError

    def grab(self, rect: SelectionRectangle) -> Image.Image:
        raise NotImplementedError

    def cleanup(self):
        pass


class XlibScreenGrabber(ScreenGrabber):
    """Handles X11 screen capture through the root window."""

    name = "xlib"

    def __init__(self, display_name: Optional[str] = None):
        try:
            self.display = display.Display(display_name)
        except Exception as e:
            # python-xlib raises several unrelated types for a missing or
            # unreachable display
            raise CaptureUnavailableError(f"Cannot open X display: {e}") from e
        self.screen = self.display.screen()
        self.root = self.screen.root

    def _monitor_rects(self) -> List[SelectionRectangle]:
        """Rectangles of the connected outputs that drive a CRTC."""
        resources = randr.get_screen_resources(self.root)
        timestamp = resources.config_timestamp
        monitors = []
        for output in resources.outputs:
            info = randr.get_output_info(self.root, output, timestamp)
            if info.connection != randr.Connected or not info.crtc:
                continue
            crtc = randr.get_crtc_info(self.root, info.crtc, timestamp)
            monitors.append(SelectionRectangle(crtc.x, crtc.y, crtc.width, crtc.height))
        return monitors

    def screen_bounds(self) -> SelectionRectangle:
        """Bounding box of all monitors, or the root window without RandR."""
        try:
            monitors = self._monitor_rects()
        except Exception as e:
            logger.warning(f"RandR query failed, using root window size: {e}")
            monitors = []

        if monitors:
            return bounding_box(monitors)
        geometry = self.root.get_geometry()
        return SelectionRectangle(0, 0, geometry.width, geometry.height)

    def grab(self, rect: SelectionRectangle) -> Image.Image:
        try:
            raw_image = self.root.get_image(
                rect.x, rect.y, rect.width, rect.height, X.ZPixmap, 0xFFFFFFFF
            )
        except XError as e:
            # BadMatch / BadAccess: the server refused to read the area
            raise CapturePermissionError(f"X server refused GetImage: {e}") from e

        size = (rect.width, rect.height)
        if raw_image.depth == 24:
            return Image.frombytes("RGB", size, raw_image.data, "raw", "BGRX")
        if raw_image.depth == 32:
            return Image.frombytes("RGBA", size, raw_image.data, "raw", "BGRA")
        raise CaptureError(f"Unsupported color depth: {raw_image.depth}")

    def cleanup(self):
        if self.display:
            self.display.close()
            self.display = None


class QtScreenGrabber(ScreenGrabber):
    """Capture through QScreen.grabWindow; needs a QGuiApplication."""

    name = "qt"

    def _primary_screen(self):
        from PyQt6.QtGui import QGuiApplication

        if not isinstance(QGuiApplication.instance(), QGuiApplication):
            raise CaptureUnavailableError("Qt capture needs a running QGuiApplication")
        screen = QGuiApplication.primaryScreen()
        if screen is None:
            raise CaptureUnavailableError("No screen available")
        return screen

    def screen_bounds(self) -> SelectionRectangle:
        geometry = self._primary_screen().virtualGeometry()
        return SelectionRectangle(geometry.x(), geometry.y(), geometry.width(), geometry.height())

    def grab(self, rect: SelectionRectangle) -> Image.Image:
        """
        Grab ``rect`` from the screen under its top-left corner.

        On high-DPI screens Qt returns device pixels. The image is resampled
        back to the selection size with smooth filtering, so the output
        matches the rectangle but is not a 1:1 copy of the device pixels.
        """
        from PyQt6.QtCore import QPoint
        from PyQt6.QtGui import QGuiApplication

        primary = self._primary_screen()
        screen = QGuiApplication.screenAt(QPoint(rect.x, rect.y)) or primary
        origin = screen.geometry().topLeft()
        pixmap = screen.grabWindow(
            0, rect.x - origin.x(), rect.y - origin.y(), rect.width, rect.height
        )
        if pixmap.isNull():
            # Wayland compositors and macOS without screen recording
            # permission hand back an empty pixmap
            raise CapturePermissionError("Screen grab returned no pixels")

        return qimage_to_pil(pixmap.toImage(), rect)


def qimage_to_pil(qimage, rect: SelectionRectangle) -> Image.Image:
    """Convert a grabbed QImage to an RGBA Pillow image of the selection size."""
    from PyQt6.QtCore import Qt
    from PyQt6.QtGui import QImage

    qimage = qimage.convertToFormat(QImage.Format.Format_RGBA8888)
    if qimage.width() != rect.width or qimage.height() != rect.height:
        # Device pixels on high-DPI screens
        qimage = qimage.scaled(
            rect.width,
            rect.height,
            Qt.AspectRatioMode.IgnoreAspectRatio,
            Qt.TransformationMode.SmoothTransformation,
        )

    ptr = qimage.constBits()
    ptr.setsize(qimage.sizeInBytes())
    return Image.frombytes(
        "RGBA", (rect.width, rect.height), bytes(ptr), "raw", "RGBA", qimage.bytesPerLine()
    )


def create_grabber(backend: str = "auto") -> ScreenGrabber:
    """
    Create the screen grabber for a backend name.

    Args:
        backend: "xlib", "qt" or "auto" (X11 when $DISPLAY connects, else Qt)

    Raises:
        CaptureUnavailableError: If the requested backend cannot be used
    """
    if backend == "qt":
        return QtScreenGrabber()
    if backend == "xlib":
        return XlibScreenGrabber()

    if os.environ.get("DISPLAY") and not os.environ.get("WAYLAND_DISPLAY"):
        try:
            return XlibScreenGrabber()
        except CaptureUnavailableError as e:
            logger.warning(f"X11 capture unavailable, falling back to Qt: {e}")
    return QtScreenGrabber()


@dataclass(frozen=True)
class CaptureOutcome:
    """Result of a capture: an image or the error that prevented it."""

    image: Optional[CapturedImage] = None
    error: Optional[QuickCapError] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.image is not None


class CaptureService:
    """Captures screen rectangles and publishes them to the clipboard."""

    def __init__(self, grabber: ScreenGrabber, publisher: Optional[ClipboardPublisher] = None):
        self.grabber = grabber
        self.publisher = publisher
        self.last_outcome: Optional[CaptureOutcome] = None

    def capture(self, rect: SelectionRectangle) -> CaptureOutcome:
        """
        Read the pixels of ``rect``. Never raises.

        Args:
            rect: Screen rectangle to capture

        Returns:
            CaptureOutcome holding a CapturedImage or a CaptureError
        """
        try:
            self._check_on_screen(rect)
            image = CapturedImage.from_pil(rect, self.grabber.grab(rect))
        except CaptureError as e:
            logger.error(f"Capture of {rect.as_tuple()} failed: {e}")
            return CaptureOutcome(error=e)
        except Exception as e:
            # Backend errors (X protocol, Qt, Pillow) end up here
            logger.error(f"Capture of {rect.as_tuple()} failed unexpectedly: {e}")
            return CaptureOutcome(error=CaptureError(str(e)))

        logger.info(f"Captured {rect.width}x{rect.height} at ({rect.x}, {rect.y})")
        return CaptureOutcome(image=image)

    def publish(self, image: CapturedImage) -> CaptureOutcome:
        if self.publisher is None:
            return CaptureOutcome(error=ClipboardPublishError("No clipboard configured"))
        try:
            self.publisher.publish(image)
        except ClipboardPublishError as e:
            logger.error(f"Clipboard publish failed: {e}")
            return CaptureOutcome(image=image, error=e)
        return CaptureOutcome(image=image)

    def capture_and_publish(self, rect: SelectionRectangle) -> CaptureOutcome:
        outcome = self.capture(rect)
        if outcome.ok:
            outcome = self.publish(outcome.image)
        self.last_outcome = outcome
        return outcome

    def _check_on_screen(self, rect: SelectionRectangle):
        try:
            bounds = self.grabber.screen_bounds()
        except CaptureError:
            raise
        except Exception as e:
            raise CaptureUnavailableError(f"Cannot read screen geometry: {e}") from e
        if not bounds.contains_rect(rect):
            raise CaptureOffscreenError(
                f"Selection {rect.as_tuple()} is outside screen {bounds.as_tuple()}"
            )

    def cleanup(self):
        self.grabber.cleanup()
