"""Certificate rendering - the layered raster pipeline.

One code path draws every view of a template: the editor's live canvas, the
read-only preview and the exported certificate. Layers, bottom to top:

1. Background image stretched to the whole surface, or solid white
2. Logo stretched to its box
3. Static text elements in list order
4. Name placeholder with the substituted text

compose() is the pure part: given decoded images it only paints pixels.
render() loads the images first and applies the failure policy:
preview rendering skips a layer whose image fails to load, strict rendering
(certificate export) raises LayerDecodeError instead.
"""

import asyncio
from enum import Enum as PyEnum
from typing import Any

from PIL import Image, ImageColor, ImageDraw

from core import get_logger
from rendering.fonts import resolve_font
from rendering.images import ImageDecodeError, ImageLoader, describe_source
from schemas import Template, TextAlign, TextStyle

logger = get_logger(__name__)

BACKGROUND_COLOR = "#ffffff"
FALLBACK_TEXT_COLOR = (0, 0, 0)

# Pillow text anchors: horizontal edge named by align, ascender line at y
TEXT_ANCHORS = {
    TextAlign.LEFT: "la",
    TextAlign.CENTER: "ma",
    TextAlign.RIGHT: "ra",
}


class RenderLayer(str, PyEnum):
    BACKGROUND = "background"
    LOGO = "logo"


class LayerDecodeError(ImageDecodeError):
    """An image layer failed to load during strict rendering."""

    def __init__(self, layer: RenderLayer, cause: ImageDecodeError) -> None:
        self.layer = layer
        super().__init__(cause.source, f"{layer.value} layer: {cause.reason}")


def new_surface(width: float, height: float) -> Image.Image:
    """Blank off-screen surface sized to a template's canvas."""
    return Image.new("RGB", (max(1, round(width)), max(1, round(height))), BACKGROUND_COLOR)


def anchor_x(block: TextStyle) -> float:
    """x passed to the text primitive: the box edge or middle named by align."""
    if block.align == TextAlign.RIGHT:
        return block.x + block.width
    if block.align == TextAlign.CENTER:
        return block.x + block.width / 2
    return block.x


def parse_color(color: Any) -> tuple[int, ...]:
    try:
        return ImageColor.getrgb(color)
    except (ValueError, AttributeError, TypeError):
        logger.debug("render.color.invalid", color=color)
        return FALLBACK_TEXT_COLOR


def draw_text_block(draw: ImageDraw.ImageDraw, block: TextStyle, text: Any) -> None:
    """Draw one line of text with its top at block.y and anchored per align."""
    # Live edits are not validated; anything but None draws as its str()
    text = "" if text is None else str(text)
    # A 2D canvas draws newlines as spaces
    text = " ".join(text.splitlines())
    if not text:
        return

    try:
        size = round(float(block.font_size))
    except (TypeError, ValueError):
        size = 24
    font = resolve_font(str(block.font_family), str(block.font_weight), size)

    draw.text(
        (anchor_x(block), block.y),
        text,
        font=font,
        fill=parse_color(block.color),
        anchor=TEXT_ANCHORS.get(block.align, "la"),
    )


def _stretch(image: Image.Image, width: float, height: float) -> Image.Image | None:
    size = (round(width), round(height))
    if size[0] <= 0 or size[1] <= 0:
        return None
    return image.convert("RGBA").resize(size, Image.Resampling.LANCZOS)


def compose(
    surface: Image.Image,
    template: Template,
    substitution: str,
    *,
    background: Image.Image | None = None,
    logo: Image.Image | None = None,
) -> Image.Image:
    """Paint a template onto surface and return it.

    Args:
        surface: Target image; fully overwritten
        template: Layout to draw
        substitution: Text for the name placeholder
        background: Decoded background, or None for solid white
        logo: Decoded logo; ignored when the template has no logo

    Returns:
        The same surface, for chaining
    """
    width, height = surface.size
    surface.paste(ImageColor.getrgb(BACKGROUND_COLOR), (0, 0, width, height))

    if background is not None:
        stretched = _stretch(background, width, height)
        if stretched is not None:
            surface.paste(stretched, (0, 0), mask=stretched)

    if template.logo is not None and logo is not None:
        box = template.logo
        stretched = _stretch(logo, box.width, box.height)
        if stretched is not None:
            surface.paste(stretched, (round(box.x), round(box.y)), mask=stretched)

    draw = ImageDraw.Draw(surface)
    for element in template.text_elements:
        draw_text_block(draw, element, element.text or "")
    draw_text_block(draw, template.name_placeholder, substitution)

    return surface


async def _load_layer(
    loader: ImageLoader,
    layer: RenderLayer,
    source: str | None,
    *,
    strict: bool,
) -> Image.Image | None:
    if not source:
        return None
    try:
        return await loader.load(source)
    except ImageDecodeError as e:
        if strict:
            raise LayerDecodeError(layer, e) from e
        logger.warning(
            "render.layer.skipped",
            layer=layer.value,
            source=describe_source(source),
            reason=e.reason,
        )
        return None


async def render(
    surface: Image.Image,
    template: Template,
    substitution: str,
    *,
    loader: ImageLoader,
    strict: bool = False,
) -> Image.Image:
    """Load a template's images and compose it onto surface.

    Args:
        surface: Target image
        template: Layout to draw
        substitution: Text for the name placeholder
        loader: Image decode collaborator
        strict: Raise LayerDecodeError instead of skipping a broken layer

    Returns:
        The painted surface

    Raises:
        LayerDecodeError: strict is set and the background or logo failed
    """
    logo_source = template.logo.url if template.logo is not None else None
    background, logo = await asyncio.gather(
        _load_layer(loader, RenderLayer.BACKGROUND, template.background_image, strict=strict),
        _load_layer(loader, RenderLayer.LOGO, logo_source, strict=strict),
    )
    return compose(surface, template, substitution, background=background, logo=logo)
