"""Pytest configuration and shared fixtures.

This module provides:
- Environment defaults set before any Settings are built
- Temporary SQLite (aiosqlite) databases for store tests
- Small in-memory PNG images and data URIs
- An ImageLoader whose HTTP traffic goes to an httpx MockTransport
"""

# Set environment variables BEFORE any imports that trigger Settings validation
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SHOWCASE_BACKGROUND", "")
os.environ.setdefault("NAME_PLACEHOLDER_TEXT", "<Student Name>")
os.environ.setdefault("IMAGE_FETCH_BACKOFF_SECONDS", "0")

import io
from collections.abc import AsyncGenerator, Callable
from pathlib import Path

import httpx
import pytest
import pytest_asyncio
from PIL import Image
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

import models  # noqa: F401
from core.config import clear_settings_cache
from core.database import Base
from rendering.fonts import clear_font_cache
from rendering.images import ImageLoader, to_data_uri

# =============================================================================
# Settings
# =============================================================================


@pytest.fixture(autouse=True)
def _clear_settings():
    """Each test sees settings built from its own environment."""
    clear_settings_cache()
    clear_font_cache()
    yield
    clear_settings_cache()
    clear_font_cache()


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def test_engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine]:
    """A fresh SQLite file database with all tables created."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'studio.db'}",
        poolclass=NullPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_maker(test_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db_session(
    session_maker: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession]:
    """A session whose work is rolled back at the end of the test."""
    async with session_maker() as session:
        try:
            yield session
        finally:
            await session.rollback()


# =============================================================================
# Image Fixtures
# =============================================================================


def make_png(
    size: tuple[int, int] = (10, 10),
    color: tuple[int, ...] = (255, 0, 0, 255),
) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGBA", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def png_factory() -> Callable[..., bytes]:
    return make_png


@pytest.fixture
def red_png() -> bytes:
    return make_png(color=(255, 0, 0, 255))


@pytest.fixture
def red_data_uri(red_png: bytes) -> str:
    return to_data_uri(red_png)


@pytest.fixture
def blue_data_uri() -> str:
    return to_data_uri(make_png(color=(0, 0, 255, 255)))


@pytest.fixture
def broken_data_uri() -> str:
    return to_data_uri(b"definitely not an image")


@pytest.fixture
def http_routes() -> dict[str, bytes]:
    """URL -> body served by the mock transport; anything else is a 404."""
    return {}


@pytest.fixture
def mock_transport(http_routes: dict[str, bytes]) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        body = http_routes.get(str(request.url))
        if body is None:
            return httpx.Response(404)
        return httpx.Response(200, content=body)

    return httpx.MockTransport(handler)


@pytest_asyncio.fixture
async def loader(
    mock_transport: httpx.MockTransport, tmp_path: Path
) -> AsyncGenerator[ImageLoader]:
    async with httpx.AsyncClient(transport=mock_transport) as client:
        async with ImageLoader(client, base_dir=tmp_path) as image_loader:
            yield image_loader
