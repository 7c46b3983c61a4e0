import pytest
from PyQt6.QtCore import QElapsedTimer, QEvent, QPointF, QRect, Qt, QTimer
from PyQt6.QtGui import QKeyEvent, QMouseEvent

from quickcap.selection import InteractionState
from quickcap.ui import PreviewOverlay, QuickCapUI
from quickcap.utils.clipboard import IMAGE_FORMAT
from quickcap.utils.config import Config
from quickcap.utils.geometry import Point, SelectionRectangle
from quickcap.utils.pointer import StaticPointerSource
from quickcap.utils.theme import StatusLabels


class AppStub:
    def __init__(self):
        self.quit_calls = 0

    def quit(self):
        self.quit_calls += 1


def process_events_until(qapp, predicate, timeout_ms=2000):
    timer = QElapsedTimer()
    timer.start()
    while not predicate() and timer.elapsed() < timeout_ms:
        qapp.processEvents()
    return predicate()


def release(widget, button):
    event = QMouseEvent(
        QEvent.Type.MouseButtonRelease,
        QPointF(2, 2),
        QPointF(2, 2),
        button,
        Qt.MouseButton.NoButton,
        Qt.KeyboardModifier.NoModifier,
    )
    widget.mouseReleaseEvent(event)


def press_key(widget, key):
    widget.keyPressEvent(QKeyEvent(QEvent.Type.KeyPress, key, Qt.KeyboardModifier.NoModifier))


@pytest.fixture
def overlay(qapp):
    widget = PreviewOverlay(Config())
    yield widget
    widget.close()


@pytest.fixture
def ui(qapp, capture_service):
    quickcap_ui = QuickCapUI(Config(backend="qt"), StaticPointerSource())
    quickcap_ui.setup()
    quickcap_ui.capture_service = capture_service
    quickcap_ui.app = AppStub()
    yield quickcap_ui
    quickcap_ui.window.close()
    quickcap_ui.cleanup()


def lock_selection(ui):
    ui.pointer.move_to(10, 10)
    ui._on_trigger()
    ui.poll_loop.tick()
    ui._on_trigger()
    ui.pointer.move_to(50, 50)
    ui.poll_loop.tick()
    ui._on_trigger()
    assert ui.controller.state is InteractionState.LOCKED


def test_show_rectangle_places_overlay_exactly(overlay):
    shown = []
    overlay.first_shown.connect(lambda: shown.append(True))

    overlay.show_rectangle(SelectionRectangle(10, 20, 30, 40))
    overlay.show_rectangle(SelectionRectangle(15, 25, 35, 45))

    assert overlay.isVisible()
    assert overlay.geometry() == QRect(15, 25, 35, 45)
    assert shown == [True]


def test_first_shown_fires_again_after_hide(overlay):
    shown = []
    overlay.first_shown.connect(lambda: shown.append(True))

    overlay.show_rectangle(SelectionRectangle(1, 1, 5, 5))
    overlay.hide()
    overlay.show_rectangle(SelectionRectangle(1, 1, 5, 5))

    assert len(shown) == 2


def test_left_release_confirms(overlay):
    confirms, cancels = [], []
    overlay.confirm_requested.connect(lambda: confirms.append(True))
    overlay.cancel_requested.connect(lambda: cancels.append(True))

    release(overlay, Qt.MouseButton.LeftButton)

    assert (len(confirms), len(cancels)) == (1, 0)


@pytest.mark.parametrize("button", [Qt.MouseButton.RightButton, Qt.MouseButton.MiddleButton])
def test_other_release_cancels(overlay, button):
    confirms, cancels = [], []
    overlay.confirm_requested.connect(lambda: confirms.append(True))
    overlay.cancel_requested.connect(lambda: cancels.append(True))

    release(overlay, button)

    assert (len(confirms), len(cancels)) == (0, 1)


def test_selection_drives_overlay(ui):
    lock_selection(ui)

    assert ui.overlay.isVisible()
    assert ui.overlay.geometry() == QRect(10, 10, 40, 40)
    assert ui.window.button.text() == StatusLabels.LOCKED


@pytest.mark.parametrize("key", [Qt.Key.Key_Return, Qt.Key.Key_Enter])
def test_enter_on_control_button_confirms(ui, qapp, grabber, key):
    lock_selection(ui)

    press_key(ui.window.button, key)

    assert ui.controller.state is InteractionState.IDLE
    assert not ui.overlay.isVisible()
    assert process_events_until(qapp, lambda: grabber.grabs)
    assert grabber.grabs == [SelectionRectangle(10, 10, 40, 40)]


def test_escape_cancels_visible_selection(ui):
    lock_selection(ui)

    press_key(ui.window.button, Qt.Key.Key_Escape)

    assert ui.controller.state is InteractionState.IDLE
    assert not ui.overlay.isVisible()
    assert ui.app.quit_calls == 0


def test_escape_without_selection_quits(ui):
    press_key(ui.window.button, Qt.Key.Key_Escape)
    assert ui.app.quit_calls == 1


def test_grab_happens_after_confirm_returns(ui, qapp, grabber, clipboard):
    lock_selection(ui)

    ui.controller.confirm()

    # Nothing is read inside the Confirm transition itself
    assert grabber.grabs == []
    assert ui.capture_pending
    assert process_events_until(qapp, lambda: ui.controller.status == StatusLabels.COPIED)
    assert not ui.capture_pending
    assert ui.window.button.text() == StatusLabels.COPIED
    assert clipboard.contents.formats() == [IMAGE_FORMAT]


def test_click_queued_before_capture_does_not_reach_grab(ui, qapp, grabber):
    lock_selection(ui)
    overlay_visible = []
    grab = grabber.grab

    def recording_grab(rect):
        overlay_visible.append(ui.overlay.isVisible())
        return grab(rect)

    grabber.grab = recording_grab
    QTimer.singleShot(0, ui.window.button.click)
    ui.controller.confirm()

    assert process_events_until(qapp, lambda: overlay_visible)
    assert overlay_visible == [False]
    assert ui.controller.state is InteractionState.IDLE
    assert ui.window.button.text() == StatusLabels.COPIED

    # Once the capture is done the button starts a new selection again
    ui.pointer.move_to(200, 200)
    ui.window.button.click()
    assert ui.controller.state is InteractionState.TRACKING_CORNER1
    assert ui.controller.corner1 == Point(200, 200)


def test_failed_capture_reports_not_copied(ui, qapp, grabber, clipboard):
    grabber.fail = True
    lock_selection(ui)

    ui.controller.confirm()

    assert process_events_until(qapp, lambda: ui.controller.status == StatusLabels.NOT_COPIED)
    assert clipboard.contents is None


def test_no_grabber_reports_not_copied_at_once(ui):
    ui.capture_service = None
    lock_selection(ui)

    ui.controller.confirm()

    assert ui.controller.status == StatusLabels.NOT_COPIED
    assert not ui.capture_pending
