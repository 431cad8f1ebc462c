"""Tests for surfaces and stale draw handling."""

import asyncio

import pytest
from PIL import Image
from structlog.testing import capture_logs

from rendering.images import ImageDecodeError
from rendering.surface import Surface
from schemas import Template

pytestmark = pytest.mark.unit


class GatedLoader:
    """Loader whose images only resolve once their gate is opened."""

    def __init__(self) -> None:
        self.gates: dict[str, asyncio.Event] = {}
        self.images: dict[str, Image.Image] = {}

    def add(self, source: str, color: tuple[int, int, int]) -> asyncio.Event:
        gate = asyncio.Event()
        self.gates[source] = gate
        self.images[source] = Image.new("RGBA", (4, 4), (*color, 255))
        return gate

    async def load(self, source: str) -> Image.Image:
        if source not in self.images:
            raise ImageDecodeError(source, "unknown")
        await self.gates[source].wait()
        return self.images[source]


class TestSurface:
    def test_starts_white_at_canvas_size(self):
        surface = Surface(1000, 707)
        assert surface.size == (1000, 707)
        assert surface.image.getpixel((0, 0)) == (255, 255, 255)

    def test_begin_increments_generation(self):
        surface = Surface(10, 10)
        assert surface.begin() == 1
        assert surface.begin() == 2
        assert surface.generation == 2

    def test_commit_rejects_stale_generation(self):
        surface = Surface(10, 10)
        stale = surface.begin()
        surface.begin()
        replacement = Image.new("RGB", (10, 10), (0, 0, 0))

        with capture_logs() as logs:
            assert surface.commit(stale, replacement) is False

        assert surface.image is not replacement
        assert logs[0]["event"] == "surface.draw.discarded"

    async def test_draw_commits(self):
        loader = GatedLoader()
        loader.add("red", (255, 0, 0)).set()
        surface = Surface(100, 100)

        committed = await surface.draw(
            Template(id=1, background_image="red"), "", loader=loader
        )

        assert committed is True
        assert surface.image.getpixel((50, 50)) == (255, 0, 0)

    async def test_newer_draw_wins_over_slower_older_draw(self):
        loader = GatedLoader()
        slow_gate = loader.add("red", (255, 0, 0))
        loader.add("blue", (0, 0, 255)).set()
        surface = Surface(100, 100)

        older = asyncio.create_task(
            surface.draw(Template(id=1, background_image="red"), "", loader=loader)
        )
        await asyncio.sleep(0)
        newer = await surface.draw(
            Template(id=2, background_image="blue"), "", loader=loader
        )
        slow_gate.set()
        older_committed = await older

        assert newer is True
        assert older_committed is False
        assert surface.image.getpixel((50, 50)) == (0, 0, 255)

    async def test_edits_during_draw_do_not_leak_into_frame(self):
        loader = GatedLoader()
        gate = loader.add("red", (255, 0, 0))
        surface = Surface(100, 100)
        template = Template(id=1, background_image="red")

        task = asyncio.create_task(surface.draw(template, "", loader=loader))
        await asyncio.sleep(0)
        template.background_image = None
        gate.set()
        await task

        assert surface.image.getpixel((50, 50)) == (255, 0, 0)

    async def test_overlay_applied_after_render(self):
        loader = GatedLoader()
        surface = Surface(20, 20)

        def overlay(image: Image.Image) -> None:
            image.putpixel((5, 5), (0, 255, 0))

        await surface.draw(Template(id=1), "", loader=loader, overlay=overlay)
        assert surface.image.getpixel((5, 5)) == (0, 255, 0)

    async def test_to_png(self):
        surface = Surface(20, 10)
        data = surface.to_png()
        assert data.startswith(b"\x89PNG")
