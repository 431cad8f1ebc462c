"""Canvas geometry: logical canvas size and pointer coordinate conversion.

Every element position is stored in logical canvas units. The canvas may be
displayed at any on-screen size, so pointer positions are converted here and
nowhere else.
"""

from typing import NamedTuple, Protocol

# A4 landscape: 297mm x 210mm
CANVAS_RATIO = 297 / 210
CANVAS_WIDTH = 1000
CANVAS_HEIGHT = round(CANVAS_WIDTH / CANVAS_RATIO)  # 707


class Box(Protocol):
    """Anything with an axis-aligned bounding box in canvas space."""

    x: float
    y: float
    width: float
    height: float


class DisplayRect(NamedTuple):
    """Where the canvas is displayed, in the pointer's coordinate space."""

    left: float
    top: float
    width: float
    height: float


def to_canvas_space(
    pointer_x: float,
    pointer_y: float,
    display_rect: DisplayRect,
    *,
    canvas_width: float = CANVAS_WIDTH,
    canvas_height: float = CANVAS_HEIGHT,
) -> tuple[float, float]:
    """Convert a pointer position on the displayed canvas to canvas units."""
    scale_x = canvas_width / display_rect.width
    scale_y = canvas_height / display_rect.height
    return (
        (pointer_x - display_rect.left) * scale_x,
        (pointer_y - display_rect.top) * scale_y,
    )


def contains(box: Box, x: float, y: float) -> bool:
    """Inclusive containment test: edges count as inside."""
    return box.x <= x <= box.x + box.width and box.y <= y <= box.y + box.height


def _clamp_axis(value: float, size: float, limit: float) -> float:
    # A box at least as large as the canvas pins to the origin
    upper = limit - size
    if upper <= 0:
        return 0.0
    return max(0.0, min(value, upper))


def clamp_origin(
    x: float,
    y: float,
    width: float,
    height: float,
    canvas_width: float = CANVAS_WIDTH,
    canvas_height: float = CANVAS_HEIGHT,
) -> tuple[float, float]:
    """Clamp a box origin so the whole box stays inside the canvas."""
    return (
        _clamp_axis(x, width, canvas_width),
        _clamp_axis(y, height, canvas_height),
    )
