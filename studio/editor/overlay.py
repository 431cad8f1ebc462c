"""Selection highlight drawn on top of the editor canvas."""

from PIL import Image, ImageDraw

from core.geometry import Box

SELECTION_COLOR = "#3b82f6"
SELECTION_LINE_WIDTH = 2
DASH_LENGTH = 5
HANDLE_SIZE = 8


def _dashed_line(
    draw: ImageDraw.ImageDraw,
    start: tuple[float, float],
    end: tuple[float, float],
) -> None:
    (x0, y0), (x1, y1) = start, end
    length = ((x1 - x0) ** 2 + (y1 - y0) ** 2) ** 0.5
    if length == 0:
        return
    dx, dy = (x1 - x0) / length, (y1 - y0) / length
    # 5px on, 5px off
    position = 0.0
    while position < length:
        stop = min(position + DASH_LENGTH, length)
        draw.line(
            [(x0 + dx * position, y0 + dy * position), (x0 + dx * stop, y0 + dy * stop)],
            fill=SELECTION_COLOR,
            width=SELECTION_LINE_WIDTH,
        )
        position += DASH_LENGTH * 2


def draw_selection(image: Image.Image, box: Box) -> None:
    """Dashed outline plus square handles on the four corners."""
    draw = ImageDraw.Draw(image)
    left, top = box.x, box.y
    right, bottom = box.x + box.width, box.y + box.height

    corners = [(left, top), (right, top), (right, bottom), (left, bottom)]
    for start, end in zip(corners, corners[1:] + corners[:1]):
        _dashed_line(draw, start, end)

    half = HANDLE_SIZE / 2
    for cx, cy in corners:
        draw.rectangle([cx - half, cy - half, cx + half, cy + half], fill=SELECTION_COLOR)
