"""
Pointer position sources for QuickCap.

The selection never subscribes to pointer motion. The poll loop asks a
pointer source for the current position on every tick while a corner is
being tracked.
"""

import logging
from typing import Iterable, Iterator, Optional

from Xlib import display

from .errors import CaptureUnavailableError
from .geometry import Point

logger = logging.getLogger(__name__)


class PointerSource:
    """Reads the current pointer position in screen coordinates."""

    def position(self) -> Point:
        raise NotImplementedError

    def close(self):
        """Release any connection held by the source."""


class QtPointerSource(PointerSource):
    """Pointer position from Qt (works on every platform Qt supports)."""

    def position(self) -> Point:
        from PyQt6.QtGui import QCursor

        pos = QCursor.pos()
        return Point(pos.x(), pos.y())


class XlibPointerSource(PointerSource):
    """Pointer position queried from the X11 root window."""

    def __init__(self, display_name: Optional[str] = None):
        try:
            self.display = display.Display(display_name)
        except Exception as e:
            # python-xlib raises DisplayNameError / DisplayConnectionError
            # and plain socket errors depending on what went wrong
            raise CaptureUnavailableError(f"Cannot open X display: {e}") from e
        self.root = self.display.screen().root

    def position(self) -> Point:
        reply = self.root.query_pointer()
        return Point(reply.root_x, reply.root_y)

    def close(self):
        if self.display:
            self.display.close()
            self.display = None


class StaticPointerSource(PointerSource):
    """Replays a scripted sequence of positions.

    The last position is repeated once the script is exhausted. Used by
    tests and for driving the selection without a real pointer.
    """

    def __init__(self, positions: Iterable[Point] = (Point(0, 0),)):
        self._positions: Iterator[Point] = iter(positions)
        self._current = Point(0, 0)
        self.reads = 0

    def move_to(self, x: int, y: int):
        self._positions = iter(())
        self._current = Point(x, y)

    def position(self) -> Point:
        self._current = next(self._positions, self._current)
        self.reads += 1
        return self._current


def create_pointer_source(backend: str = "auto") -> PointerSource:
    """Pick a pointer source matching the capture backend."""
    if backend in ("auto", "xlib"):
        try:
            return XlibPointerSource()
        except CaptureUnavailableError as e:
            if backend == "xlib":
                raise
            logger.info(f"X11 pointer unavailable, using Qt cursor position: {e}")
    return QtPointerSource()
