"""
Selection state machine for QuickCap.

The controller turns a stream of discrete events into the two corners of
a screen selection:

- Trigger: advance the selection step (Space / control button)
- PollSample: latest pointer position, delivered by the poll loop
- Confirm: capture the current selection (Enter / left click on overlay)
- Cancel: discard the current selection (Escape / other click on overlay)
- CaptureFinished: result of the capture started by the last Confirm

A full cycle is Trigger (seed corner 2, track corner 1), Trigger (track
corner 2), Trigger (lock). A further Trigger goes back to tracking corner
1 while corner 2 stays where it is.

The controller knows nothing about the UI toolkit. Observers are plain
callables so the state machine can be driven headless.
"""

import enum
import logging
from dataclasses import dataclass
from typing import Callable, Optional, Union

from quickcap.utils.geometry import SENTINEL, Point, SelectionRectangle, normalize
from quickcap.utils.theme import StatusLabels

logger = logging.getLogger(__name__)


class InteractionState(enum.Enum):
    IDLE = "idle"
    TRACKING_CORNER1 = "tracking_corner1"
    TRACKING_CORNER2 = "tracking_corner2"
    LOCKED = "locked"


@dataclass(frozen=True)
class Trigger:
    """Advance the selection step; ``position`` is the pointer at that moment."""

    position: Point


@dataclass(frozen=True)
class PollSample:
    position: Point


@dataclass(frozen=True)
class Confirm:
    pass


@dataclass(frozen=True)
class Cancel:
    pass


@dataclass(frozen=True)
class CaptureFinished:
    succeeded: bool


Event = Union[Trigger, PollSample, Confirm, Cancel, CaptureFinished]

# Capture handler: receives the frozen rectangle. Returning a bool reports
# the result at once; returning None means the result arrives later as a
# CaptureFinished event.
CaptureHandler = Callable[[SelectionRectangle], Optional[bool]]

_STATUS_FOR_STATE = {
    InteractionState.IDLE: StatusLabels.IDLE,
    InteractionState.TRACKING_CORNER1: StatusLabels.TRACKING_CORNER1,
    InteractionState.TRACKING_CORNER2: StatusLabels.TRACKING_CORNER2,
    InteractionState.LOCKED: StatusLabels.LOCKED,
}


class SelectionController:
    """Owns the selection corners and the interaction state."""

    def __init__(
        self,
        capture_handler: Optional[CaptureHandler] = None,
        on_rectangle: Optional[Callable[[SelectionRectangle], None]] = None,
        on_hide: Optional[Callable[[], None]] = None,
        on_state: Optional[Callable[[InteractionState], None]] = None,
        on_status: Optional[Callable[[str], None]] = None,
    ):
        self.capture_handler = capture_handler
        self.on_rectangle = on_rectangle
        self.on_hide = on_hide
        self.on_state = on_state
        self.on_status = on_status

        self.corner1: Point = SENTINEL
        self.corner2: Point = SENTINEL
        self.state: InteractionState = InteractionState.IDLE
        self.status: str = StatusLabels.IDLE

    @property
    def is_tracking(self) -> bool:
        """True while one of the corners follows the pointer."""
        return self.state in (
            InteractionState.TRACKING_CORNER1,
            InteractionState.TRACKING_CORNER2,
        )

    @property
    def has_selection(self) -> bool:
        return self.state is not InteractionState.IDLE

    @property
    def rectangle(self) -> Optional[SelectionRectangle]:
        """Current selection rectangle, or None while idle."""
        if not self.has_selection:
            return None
        return normalize(self.corner1, self.corner2)

    def dispatch(self, event: Event) -> InteractionState:
        """Apply one event and return the resulting state."""
        if isinstance(event, Trigger):
            self._on_trigger(event.position)
        elif isinstance(event, PollSample):
            self._on_sample(event.position)
        elif isinstance(event, Confirm):
            self._on_confirm()
        elif isinstance(event, Cancel):
            self._on_cancel()
        elif isinstance(event, CaptureFinished):
            self._on_capture_finished(event.succeeded)
        else:
            raise TypeError(f"Unknown selection event: {event!r}")
        return self.state

    # Convenience wrappers used by the UI wiring

    def trigger(self, position: Point) -> InteractionState:
        return self.dispatch(Trigger(position))

    def sample(self, position: Point) -> InteractionState:
        return self.dispatch(PollSample(position))

    def confirm(self) -> InteractionState:
        return self.dispatch(Confirm())

    def cancel(self) -> InteractionState:
        return self.dispatch(Cancel())

    def capture_finished(self, succeeded: bool) -> InteractionState:
        return self.dispatch(CaptureFinished(succeeded))

    def reset(self):
        """Forget the selection: corner 2 back to the sentinel, no tracking."""
        self.corner2 = SENTINEL
        self._set_state(InteractionState.IDLE)

    def _on_trigger(self, position: Point):
        if self.state is InteractionState.TRACKING_CORNER1:
            self._set_state(InteractionState.TRACKING_CORNER2)
        elif self.state is InteractionState.TRACKING_CORNER2:
            self._set_state(InteractionState.LOCKED)
        else:
            # Idle or Locked: (re)start tracking corner 1
            starting = self.state is InteractionState.IDLE
            if self.corner2 == SENTINEL:
                self.corner2 = position
            if starting:
                self.corner1 = position
            self._set_state(InteractionState.TRACKING_CORNER1)
            if starting:
                self._emit_rectangle()

    def _on_sample(self, position: Point):
        if self.state is InteractionState.TRACKING_CORNER1:
            self.corner1 = position
        elif self.state is InteractionState.TRACKING_CORNER2:
            self.corner2 = position
        else:
            return
        self._emit_rectangle()

    def _on_confirm(self):
        if not self.has_selection:
            logger.debug("Confirm ignored: no selection")
            return

        rect = normalize(self.corner1, self.corner2)
        self._hide()
        self.reset()

        logger.info(
            f"Capturing selection {rect.width}x{rect.height} at ({rect.x}, {rect.y})"
        )
        succeeded = False
        if self.capture_handler is not None:
            succeeded = self.capture_handler(rect)
        if succeeded is not None:
            self._on_capture_finished(succeeded)

    def _on_capture_finished(self, succeeded: bool):
        # A selection started after the Confirm owns the status label
        if self.state is not InteractionState.IDLE:
            logger.debug(f"Capture result ignored in state {self.state.value}")
            return
        self._set_status(StatusLabels.COPIED if succeeded else StatusLabels.NOT_COPIED)

    def _on_cancel(self):
        was_active = self.has_selection
        self._hide()
        self.reset()
        if was_active:
            logger.info("Selection cancelled")

    def _set_state(self, state: InteractionState):
        previous = self.state
        self.state = state
        if previous is not state:
            logger.debug(f"Selection state {previous.value} -> {state.value}")
            if self.on_state:
                self.on_state(state)
        self._set_status(_STATUS_FOR_STATE[state])

    def _set_status(self, status: str):
        self.status = status
        if self.on_status:
            self.on_status(status)

    def _emit_rectangle(self):
        if self.on_rectangle:
            self.on_rectangle(normalize(self.corner1, self.corner2))

    def _hide(self):
        if self.on_hide:
            self.on_hide()
