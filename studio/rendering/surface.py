"""Render targets that can be redrawn while a previous draw is in flight.

A surface is redrawn whenever its template changes (drag, property edit) or
is swapped for another template. Each draw renders off-screen; only the most
recently started draw may publish its image, older ones are discarded when
they finish.
"""

from collections.abc import Callable
from io import BytesIO

from PIL import Image

from core import get_logger
from rendering.certificates import new_surface, render
from rendering.images import ImageLoader
from schemas import Template

logger = get_logger(__name__)

Overlay = Callable[[Image.Image], None]


class Surface:
    """A displayed canvas: the last committed image plus a draw generation."""

    def __init__(self, width: float, height: float) -> None:
        self.image = new_surface(width, height)
        self._generation = 0

    @property
    def size(self) -> tuple[int, int]:
        return self.image.size

    @property
    def generation(self) -> int:
        return self._generation

    def begin(self) -> int:
        """Start a draw; any draw started earlier becomes stale."""
        self._generation += 1
        return self._generation

    def commit(self, generation: int, image: Image.Image) -> bool:
        """Publish image if generation is still current."""
        if generation != self._generation:
            logger.debug(
                "surface.draw.discarded",
                generation=generation,
                current=self._generation,
            )
            return False
        self.image = image
        return True

    async def draw(
        self,
        template: Template,
        substitution: str,
        *,
        loader: ImageLoader,
        overlay: Overlay | None = None,
    ) -> bool:
        """Render template tolerantly and publish it unless superseded.

        Returns:
            True if this draw's image is now on the surface
        """
        generation = self.begin()
        # Image loading suspends; later edits must not change this frame
        snapshot = template.model_copy(deep=True)
        image = new_surface(*self.size)
        await render(image, snapshot, substitution, loader=loader)
        if overlay is not None:
            overlay(image)
        return self.commit(generation, image)

    def to_png(self) -> bytes:
        buffer = BytesIO()
        self.image.save(buffer, format="PNG")
        return buffer.getvalue()
