#!/usr/bin/env python3
"""
QuickCap UI - control window and selection preview overlay.

This module contains the PyQt6 side of QuickCap:
- ControlWindow: small always-on-top window with the control button.
  Space activates the button (Trigger), Enter confirms, Escape cancels
  and quits when nothing is selected.
- PreviewOverlay: translucent, borderless, non-focusable window placed
  exactly over the current selection. Left click confirms, any other
  click cancels.
- QuickCapUI: wires the selection controller, the poll loop and the
  capture service together.

The selection logic itself lives in quickcap.selection and has no Qt
dependency.
"""

import logging
import signal
import sys
from typing import Optional

from PyQt6.QtCore import Qt, QTimer, pyqtSignal
from PyQt6.QtGui import QColor, QKeyEvent, QMouseEvent, QPainter, QPaintEvent, QPen
from PyQt6.QtWidgets import QApplication, QGroupBox, QPushButton, QVBoxLayout, QWidget

from quickcap.selection import SelectionController
from quickcap.utils.capture import CaptureService, create_grabber
from quickcap.utils.clipboard import ClipboardPublisher, QtClipboardBackend
from quickcap.utils.config import Config, load_config
from quickcap.utils.errors import CaptureUnavailableError
from quickcap.utils.geometry import SelectionRectangle
from quickcap.utils.pointer import PointerSource, create_pointer_source
from quickcap.utils.poll_loop import PollLoop
from quickcap.utils.theme import QuickCapColors, StatusLabels

logger = logging.getLogger(__name__)


class PreviewOverlay(QWidget):
    """Translucent window covering the current selection."""

    confirm_requested = pyqtSignal()
    cancel_requested = pyqtSignal()
    # Emitted when the overlay goes from hidden to visible
    first_shown = pyqtSignal()

    def __init__(self, config: Config):
        super().__init__()
        self.fill_color = QColor(config.color)
        self.border_color = QColor(config.border)

        self.setWindowTitle("Selection")
        self.setWindowFlags(
            Qt.WindowType.FramelessWindowHint |
            Qt.WindowType.WindowStaysOnTopHint |
            Qt.WindowType.Tool |
            Qt.WindowType.WindowDoesNotAcceptFocus |
            Qt.WindowType.X11BypassWindowManagerHint
        )
        self.setAttribute(Qt.WidgetAttribute.WA_ShowWithoutActivating)
        self.setFocusPolicy(Qt.FocusPolicy.NoFocus)
        self.setWindowOpacity(config.opacity)

    def show_rectangle(self, rect: SelectionRectangle):
        """Move and resize to exactly ``rect``; show if hidden."""
        self.setGeometry(rect.x, rect.y, rect.width, rect.height)
        if not self.isVisible():
            self.show()
            self.first_shown.emit()

    def paintEvent(self, event: QPaintEvent):
        painter = QPainter(self)
        painter.fillRect(self.rect(), self.fill_color)

        # 1px border inside the widget bounds
        painter.setPen(QPen(self.border_color, 1))
        painter.setBrush(Qt.BrushStyle.NoBrush)
        painter.drawRect(self.rect().adjusted(0, 0, -1, -1))
        painter.end()

    def mouseReleaseEvent(self, event: QMouseEvent):
        if event.button() == Qt.MouseButton.LeftButton:
            logger.debug("Overlay left click - confirm")
            self.confirm_requested.emit()
        else:
            logger.debug(f"Overlay {event.button()} click - cancel")
            self.cancel_requested.emit()


class ControlButton(QPushButton):
    """Control button; Space clicks it, Enter and Escape are forwarded."""

    confirm_pressed = pyqtSignal()
    escape_pressed = pyqtSignal()

    def keyPressEvent(self, event: QKeyEvent):
        if event.key() in (Qt.Key.Key_Return, Qt.Key.Key_Enter):
            self.confirm_pressed.emit()
        elif event.key() == Qt.Key.Key_Escape:
            self.escape_pressed.emit()
        else:
            # Space is handled by QPushButton and ends up in clicked()
            super().keyPressEvent(event)


class ControlWindow(QWidget):
    """Small always-on-top window hosting the control button."""

    def __init__(self):
        super().__init__()
        self.setWindowTitle("QuickCap")
        self.setWindowFlags(
            Qt.WindowType.FramelessWindowHint |
            Qt.WindowType.WindowStaysOnTopHint
        )

        layout = QVBoxLayout()
        layout.setContentsMargins(4, 4, 4, 4)

        group = QGroupBox("QuickCap")
        group_layout = QVBoxLayout()
        self.button = ControlButton(StatusLabels.IDLE)
        self.button.setMinimumWidth(110)
        group_layout.addWidget(self.button)
        group.setLayout(group_layout)

        layout.addWidget(group)
        self.setLayout(layout)

    def set_status(self, text: str):
        self.button.setText(text)
        if text == StatusLabels.COPIED:
            color = QuickCapColors.STATUS_OK.name()
        elif text == StatusLabels.NOT_COPIED:
            color = QuickCapColors.STATUS_FAILED.name()
        else:
            color = None
        self.button.setStyleSheet(f"color: {color}; font-weight: bold;" if color else "")

    def reclaim_focus(self):
        """Bring keyboard focus back so Enter/Escape reach the controller."""
        self.raise_()
        self.activateWindow()
        self.button.setFocus()


class QuickCapUI:
    """Main QuickCap UI controller."""

    def __init__(self, config: Optional[Config] = None, pointer: Optional[PointerSource] = None):
        self.config = config or load_config()
        self.app: Optional[QApplication] = None
        self.pointer = pointer
        self.controller: Optional[SelectionController] = None
        self.capture_service: Optional[CaptureService] = None
        self.poll_loop: Optional[PollLoop] = None
        self.overlay: Optional[PreviewOverlay] = None
        self.window: Optional[ControlWindow] = None
        # Set between a Confirm and the end of its grab
        self.capture_pending = False

    def setup(self):
        """Create widgets and connect them; needs a QApplication."""
        self.overlay = PreviewOverlay(self.config)
        self.window = ControlWindow()

        self.controller = SelectionController(
            capture_handler=self._capture,
            on_rectangle=self.overlay.show_rectangle,
            on_hide=self.overlay.hide,
            on_status=self.window.set_status,
        )

        if self.pointer is None:
            self.pointer = create_pointer_source(self.config.backend)
        self.poll_loop = PollLoop(self.controller, self.pointer, self.config.poll_interval_ms)

        try:
            grabber = create_grabber(self.config.backend)
        except CaptureUnavailableError as e:
            # Selection still works; every capture reports the failure
            logger.error(f"Screen capture unavailable: {e}")
            grabber = None
        if grabber is not None:
            self.capture_service = CaptureService(
                grabber, ClipboardPublisher(QtClipboardBackend())
            )

        self.window.button.clicked.connect(self._on_trigger)
        self.window.button.confirm_pressed.connect(self.controller.confirm)
        self.window.button.escape_pressed.connect(self._on_escape)
        self.overlay.confirm_requested.connect(self.controller.confirm)
        self.overlay.cancel_requested.connect(self.controller.cancel)
        self.overlay.first_shown.connect(self.window.reclaim_focus)

    def run(self) -> int:
        """Launch the QuickCap UI."""
        try:
            self.app = QApplication.instance()
            if not self.app:
                self.app = QApplication(sys.argv)

            # Let Ctrl+C in the terminal end the session
            signal.signal(signal.SIGINT, signal.SIG_DFL)

            logger.info("Starting QuickCap UI...")
            self.setup()

            self.window.adjustSize()
            self.window.show()
            self.window.reclaim_focus()
            self.poll_loop.start()

            return self.app.exec()

        except Exception as e:
            logger.error(f"Error running QuickCap UI: {e}")
            return 1
        finally:
            self.cleanup()

    def _on_trigger(self):
        if self.capture_pending:
            # A new overlay would end up in the pending grab
            logger.debug("Trigger ignored: capture in progress")
            return
        self.controller.trigger(self.pointer.position())

    def _on_escape(self):
        had_selection = self.overlay.isVisible()
        self.controller.cancel()
        if not had_selection and self.app:
            logger.info("Escape pressed with no selection - exiting")
            self.app.quit()

    def _capture(self, rect: SelectionRectangle) -> Optional[bool]:
        if self.capture_service is None:
            logger.error("Capture requested but no screen grabber is available")
            return False

        # Grab on a later pass of the event loop, once the hidden overlay
        # is unmapped. The result comes back as its own event.
        self.capture_pending = True
        QTimer.singleShot(0, lambda: self._run_capture(rect))
        return None

    def _run_capture(self, rect: SelectionRectangle):
        try:
            if self.capture_service is None or self.controller is None:
                return
            outcome = self.capture_service.capture_and_publish(rect)
        finally:
            self.capture_pending = False
        self.controller.capture_finished(outcome.ok)

    def cleanup(self):
        """Clean up resources."""
        if self.poll_loop:
            self.poll_loop.stop()
        if self.capture_service:
            self.capture_service.cleanup()
            self.capture_service = None
        if self.pointer:
            self.pointer.close()
        if self.overlay:
            self.overlay.close()
            self.overlay = None

        logger.info("QuickCap UI cleanup completed")


def main(config: Optional[Config] = None) -> int:
    """Main entry point for the QuickCap UI."""
    ui = QuickCapUI(config)
    return ui.run()
