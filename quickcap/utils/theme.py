"""Shared colors and labels for the QuickCap UI.

Selection fill, border and opacity are user configurable (see
quickcap.utils.config); everything else the UI paints is defined here.
"""

from PyQt6.QtGui import QColor


class QuickCapColors:
    """Centralized color palette for QuickCap UI components."""

    # Defaults for the configurable selection overlay
    DEFAULT_SELECTION_FILL = "#0000FF"
    DEFAULT_SELECTION_BORDER = "#000000"
    DEFAULT_SELECTION_OPACITY = 0.3

    # Control button text per outcome
    STATUS_OK = QColor(40, 140, 60)
    STATUS_FAILED = QColor(200, 40, 40)


class StatusLabels:
    """Text shown on the control button.

    The label doubles as the status indicator: it names the next step of
    the selection and reports the result of the last capture.
    """

    IDLE = "Selection"
    TRACKING_CORNER1 = "Extend"
    TRACKING_CORNER2 = "From"
    LOCKED = "Ready!"
    COPIED = "Copied!"
    NOT_COPIED = "Not Copied!"
