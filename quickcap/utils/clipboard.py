"""
Clipboard integration for QuickCap.

Captured images are offered to other applications through a small
capability contract: a Transferable lists the formats it can provide and
provides one of them on request. The only format QuickCap offers is the
platform native image; every other request is refused.

The Qt backend adapts a Transferable to QMimeData, so the pixels are
converted only when a consumer actually pastes.
"""

import logging
from typing import Callable, List, Optional

from PyQt6.QtCore import QMimeData

from .errors import ClipboardPublishError, UnsupportedFormatError

# Set up logging
logger = logging.getLogger(__name__)

# Qt's name for its native image representation; the platform plugin
# exports it as image/png, image/bmp, CF_DIB etc.
IMAGE_FORMAT = "application/x-qt-image"


class Transferable:
    """Data that can be placed on the clipboard in one or more formats."""

    def formats(self) -> List[str]:
        raise NotImplementedError

    def supports(self, fmt: str) -> bool:
        return fmt in self.formats()

    def provide(self, fmt: str):
        """Return the data for ``fmt`` or raise UnsupportedFormatError."""
        raise NotImplementedError

    def lost_ownership(self):
        """Called once another owner has replaced the clipboard contents."""


class ImageTransferable(Transferable):
    """Offers a captured image as native image data, nothing else."""

    def __init__(self, image):
        self._image = image

    def formats(self) -> List[str]:
        return [IMAGE_FORMAT]

    def provide(self, fmt: str):
        if fmt != IMAGE_FORMAT:
            raise UnsupportedFormatError(fmt)
        return self._image

    def lost_ownership(self):
        # The buffer is not shared with anything, nothing to release
        logger.debug("Clipboard ownership lost")


class ClipboardBackend:
    def set_contents(self, transferable: Transferable):
        raise NotImplementedError

    def is_available(self) -> bool:
        return True


class MemoryClipboardBackend(ClipboardBackend):
    """In-process clipboard, used headless and in tests."""

    def __init__(self):
        self.contents: Optional[Transferable] = None

    def set_contents(self, transferable: Transferable):
        previous = self.contents
        self.contents = transferable
        if previous is not None and previous is not transferable:
            previous.lost_ownership()

    def request(self, fmt: str):
        """Paste side: ask the current owner for ``fmt``."""
        if self.contents is None or not self.contents.supports(fmt):
            return None
        return self.contents.provide(fmt)


class TransferableMimeData(QMimeData):
    """QMimeData answering format negotiation from a Transferable."""

    def __init__(self, transferable: Transferable):
        super().__init__()
        self.transferable = transferable

    def formats(self) -> List[str]:
        return self.transferable.formats()

    def hasFormat(self, mimetype: str) -> bool:
        return self.transferable.supports(mimetype)

    def hasImage(self) -> bool:
        return self.transferable.supports(IMAGE_FORMAT)

    def retrieveData(self, mimetype: str, preferred_type):
        if not self.transferable.supports(mimetype):
            return None
        data = self.transferable.provide(mimetype)
        if mimetype == IMAGE_FORMAT and hasattr(data, "to_qimage"):
            return data.to_qimage()
        return data


class QtClipboardBackend(ClipboardBackend):
    """System clipboard through QGuiApplication.clipboard()."""

    def __init__(self, on_ownership_lost: Optional[Callable[[], None]] = None):
        self.on_ownership_lost = on_ownership_lost
        self._owned: Optional[TransferableMimeData] = None
        self._connected = False

    def _clipboard(self):
        from PyQt6.QtGui import QGuiApplication

        if not isinstance(QGuiApplication.instance(), QGuiApplication):
            return None
        return QGuiApplication.clipboard()

    def is_available(self) -> bool:
        return self._clipboard() is not None

    def set_contents(self, transferable: Transferable):
        clipboard = self._clipboard()
        if clipboard is None:
            raise ClipboardPublishError("No clipboard available (no QGuiApplication)")

        if not self._connected:
            clipboard.dataChanged.connect(self._on_data_changed)
            self._connected = True

        previous = self._owned
        mime = TransferableMimeData(transferable)
        # Set before handing over: dataChanged fires synchronously
        self._owned = mime
        try:
            clipboard.setMimeData(mime)
        except RuntimeError as e:
            self._owned = previous
            raise ClipboardPublishError(f"Clipboard rejected data: {e}") from e

        if previous is not None:
            previous.transferable.lost_ownership()

    def _on_data_changed(self):
        clipboard = self._clipboard()
        if self._owned is None or clipboard is None:
            return
        if clipboard.ownsClipboard():
            return
        owned, self._owned = self._owned, None
        owned.transferable.lost_ownership()
        if self.on_ownership_lost:
            self.on_ownership_lost()


class ClipboardPublisher:
    """Replaces the clipboard contents with a captured image."""

    def __init__(self, backend: ClipboardBackend):
        self.backend = backend

    def publish(self, image) -> ImageTransferable:
        """
        Place ``image`` on the clipboard.

        Raises:
            ClipboardPublishError: If the platform does not take the data
        """
        transferable = ImageTransferable(image)
        try:
            self.backend.set_contents(transferable)
        except ClipboardPublishError:
            raise
        except Exception as e:
            raise ClipboardPublishError(str(e)) from e
        logger.info("Image copied to clipboard")
        return transferable


def clipboard_available(backend: Optional[ClipboardBackend] = None) -> bool:
    """
    Test if clipboard operations are available.

    Returns:
        True if clipboard is available, False otherwise
    """
    backend = backend or QtClipboardBackend()
    available = backend.is_available()
    if not available:
        logger.warning("No clipboard available")
    return available
