"""Font resolution for text blocks.

Templates name fonts the way a browser canvas does ("serif", "Arial",
"Times New Roman" ...). Each family maps to a list of TrueType files tried in
order; the first one Pillow can open wins. When none is installed the result
is Pillow's built-in scalable font, so rendering never fails on a font.
"""

from functools import lru_cache
from pathlib import Path

from PIL import ImageFont

from core import get_logger
from core.config import get_settings

logger = get_logger(__name__)

Font = ImageFont.FreeTypeFont | ImageFont.ImageFont

_SERIF = {
    "normal": ["DejaVuSerif.ttf", "LiberationSerif-Regular.ttf", "Times New Roman.ttf", "times.ttf"],
    "bold": ["DejaVuSerif-Bold.ttf", "LiberationSerif-Bold.ttf", "Times New Roman Bold.ttf", "timesbd.ttf"],
}
_SANS = {
    "normal": ["DejaVuSans.ttf", "LiberationSans-Regular.ttf", "Arial.ttf", "arial.ttf"],
    "bold": ["DejaVuSans-Bold.ttf", "LiberationSans-Bold.ttf", "Arial Bold.ttf", "arialbd.ttf"],
}
_MONO = {
    "normal": ["DejaVuSansMono.ttf", "LiberationMono-Regular.ttf", "Courier New.ttf", "cour.ttf"],
    "bold": ["DejaVuSansMono-Bold.ttf", "LiberationMono-Bold.ttf", "Courier New Bold.ttf", "courbd.ttf"],
}

FONT_FAMILIES: dict[str, dict[str, list[str]]] = {
    "serif": _SERIF,
    "times new roman": _SERIF,
    "sans-serif": _SANS,
    "arial": _SANS,
    "monospace": _MONO,
    "courier new": _MONO,
}


def is_bold(font_weight: str | int | float) -> bool:
    """CSS weights: 'bold'/'bolder' or a numeric weight of 600 and up."""
    weight = str(font_weight).strip().lower()
    if weight in ("bold", "bolder"):
        return True
    try:
        return float(weight) >= 600
    except ValueError:
        return False


def _family_key(font_family: str) -> str:
    # "'Times New Roman', serif" -> first family in the list
    first = font_family.split(",")[0].strip().strip("'\"")
    return first.lower()


def font_candidates(font_family: str, bold: bool) -> list[str]:
    family = FONT_FAMILIES.get(_family_key(font_family), _SANS)
    return family["bold" if bold else "normal"]


def _search_paths(filename: str) -> list[str]:
    font_dir = get_settings().font_dir
    paths = []
    if font_dir:
        paths.append(str(Path(font_dir) / filename))
    # Bare filenames are looked up in the system font directories by Pillow
    paths.append(filename)
    return paths


@lru_cache(maxsize=128)
def resolve_font(font_family: str, font_weight: str, size: int) -> Font:
    """Return a font for the given CSS-style family, weight and pixel size."""
    size = max(1, size)
    for filename in font_candidates(font_family, is_bold(font_weight)):
        for path in _search_paths(filename):
            try:
                return ImageFont.truetype(path, size)
            except OSError:
                continue

    logger.debug(
        "font.fallback",
        font_family=font_family,
        font_weight=font_weight,
        size=size,
    )
    return ImageFont.load_default(size=size)


def clear_font_cache() -> None:
    resolve_font.cache_clear()
