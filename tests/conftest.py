import os

import pytest
from PIL import Image
from PyQt6.QtGui import QGuiApplication

from quickcap.utils.capture import CaptureService, ScreenGrabber
from quickcap.utils.clipboard import ClipboardPublisher, MemoryClipboardBackend
from quickcap.utils.errors import CapturePermissionError
from quickcap.utils.geometry import SelectionRectangle


class FakeGrabber(ScreenGrabber):
    """Screen of a fixed size where pixel (x, y) has color (x % 256, y % 256, 7)."""

    name = "fake"

    def __init__(self, width: int = 1920, height: int = 1080, fail: bool = False):
        self.width = width
        self.height = height
        self.fail = fail
        self.grabs = []
        self.cleaned_up = False

    def screen_bounds(self) -> SelectionRectangle:
        return SelectionRectangle(0, 0, self.width, self.height)

    def grab(self, rect: SelectionRectangle) -> Image.Image:
        self.grabs.append(rect)
        if self.fail:
            raise CapturePermissionError("screen recording not allowed")
        image = Image.new("RGB", (rect.width, rect.height))
        image.putdata([
            ((rect.x + dx) % 256, (rect.y + dy) % 256, 7)
            for dy in range(rect.height)
            for dx in range(rect.width)
        ])
        return image

    def cleanup(self):
        self.cleaned_up = True


@pytest.fixture
def grabber():
    return FakeGrabber()


@pytest.fixture
def clipboard():
    return MemoryClipboardBackend()


@pytest.fixture
def capture_service(grabber, clipboard):
    return CaptureService(grabber, ClipboardPublisher(clipboard))


@pytest.fixture
def make_grabber():
    return FakeGrabber


@pytest.fixture(scope="session")
def qapp():
    """One QApplication for the whole run, on the offscreen platform."""
    from PyQt6.QtWidgets import QApplication

    os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
    app = QApplication.instance() or QApplication([])
    yield app


@pytest.fixture
def no_gui_app(monkeypatch):
    """Make the Qt backends behave as if no QGuiApplication was created."""
    monkeypatch.setattr(QGuiApplication, "instance", staticmethod(lambda: None))
