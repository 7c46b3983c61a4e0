"""
Selection geometry for QuickCap.

Screen coordinates have their origin at the top-left of the primary
display and use platform-native units. A selection is described by two
arbitrary corner points; ``normalize`` turns them into a rectangle that
is always at least 1x1 so the preview overlay stays visible and
capturable even when both corners coincide.
"""

from typing import Iterable, NamedTuple, Tuple


class Point(NamedTuple):
    """A position in screen coordinates."""

    x: int
    y: int


# Corner2 holds this value while no selection has been started
SENTINEL = Point(0, 0)


class SelectionRectangle(NamedTuple):
    """Axis-aligned screen rectangle with width and height >= 1."""

    x: int
    y: int
    width: int
    height: int

    @property
    def right(self) -> int:
        """Exclusive right edge."""
        return self.x + self.width

    @property
    def bottom(self) -> int:
        """Exclusive bottom edge."""
        return self.y + self.height

    def as_tuple(self) -> Tuple[int, int, int, int]:
        return (self.x, self.y, self.width, self.height)

    def contains_rect(self, other: "SelectionRectangle") -> bool:
        """Return True if ``other`` lies completely inside this rectangle."""
        return (
            other.x >= self.x
            and other.y >= self.y
            and other.right <= self.right
            and other.bottom <= self.bottom
        )


def bounding_box(rects: Iterable[SelectionRectangle]) -> SelectionRectangle:
    """Smallest rectangle containing every rectangle in ``rects``."""
    rects = list(rects)
    if not rects:
        raise ValueError("bounding_box needs at least one rectangle")
    left = min(r.x for r in rects)
    top = min(r.y for r in rects)
    right = max(r.right for r in rects)
    bottom = max(r.bottom for r in rects)
    return SelectionRectangle(left, top, right - left, bottom - top)


def normalize(a: Point, b: Point) -> SelectionRectangle:
    """
    Build the selection rectangle spanned by two corner points.

    The top-left corner is the component-wise minimum of the two points.
    Width and height are the absolute distances, clamped to at least 1.

    Args:
        a: First corner (any of the four)
        b: Opposite corner

    Returns:
        SelectionRectangle covering both points
    """
    return SelectionRectangle(
        min(a.x, b.x),
        min(a.y, b.y),
        max(abs(a.x - b.x), 1),
        max(abs(a.y - b.y), 1),
    )


def parse_area(text: str) -> SelectionRectangle:
    """
    Parse an ``x,y,width,height`` string into a rectangle.

    Raises:
        ValueError: If the string does not hold four integers or the size
            is not positive.
    """
    x, y, width, height = map(int, text.split(","))
    if width < 1 or height < 1:
        raise ValueError(f"Area size must be positive: {width}x{height}")
    return SelectionRectangle(x, y, width, height)
