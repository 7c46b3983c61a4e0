"""Fixed-period pointer polling for the selection.

The timer runs for the whole session. Ticks while no corner is tracked
do nothing, so the loop never has to be started or stopped as the
selection changes state.
"""

import logging
from typing import Optional

from PyQt6.QtCore import QObject, QTimer

from quickcap.selection import PollSample, SelectionController

from .pointer import PointerSource

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_MS = 40


class PollLoop(QObject):
    """Feeds pointer samples to the controller while it is tracking."""

    def __init__(
        self,
        controller: SelectionController,
        pointer: PointerSource,
        interval_ms: int = DEFAULT_POLL_INTERVAL_MS,
        parent: Optional[QObject] = None,
    ):
        super().__init__(parent)
        self.controller = controller
        self.pointer = pointer
        self.interval_ms = interval_ms

        self.timer = QTimer(self)
        self.timer.setInterval(interval_ms)
        self.timer.timeout.connect(self.tick)

    def start(self):
        logger.debug(f"Poll loop started ({self.interval_ms} ms)")
        self.timer.start()

    def stop(self):
        self.timer.stop()

    def tick(self) -> bool:
        """Sample the pointer once if a corner is tracked.

        Returns:
            True if a sample was delivered
        """
        if not self.controller.is_tracking:
            return False
        self.controller.dispatch(PollSample(self.pointer.position()))
        return True
