"""Image loading for background and logo layers.

A template references images three ways:
- embedded data URIs ("data:image/png;base64,...") written by uploads
- http(s) URLs
- local file paths (CLI and showcase backgrounds)

ImageLoader turns any of these into a decoded PIL image or raises
ImageDecodeError. Whether that error is fatal is the caller's decision.
"""

import asyncio
import base64
import binascii
import io
from pathlib import Path
from types import TracebackType
from typing import Self
from urllib.parse import unquote_to_bytes

import httpx
from cachetools import TTLCache
from PIL import Image, UnidentifiedImageError
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from core import get_logger
from core.config import get_settings

logger = get_logger(__name__)


class ImageDecodeError(Exception):
    """Raised when an image source cannot be fetched or decoded."""

    def __init__(self, source: str, reason: str) -> None:
        self.source = source
        self.reason = reason
        super().__init__(f"Could not load image {describe_source(source)}: {reason}")


class RemoteImageServerError(Exception):
    """Raised when an image host answers with a 5xx status (retriable)."""


# Exceptions that should trigger another fetch attempt
RETRIABLE_EXCEPTIONS: tuple[type[Exception], ...] = (
    httpx.TransportError,
    RemoteImageServerError,
)


def _wait_backoff(retry_state: RetryCallState) -> float:
    """Exponential backoff with jitter."""
    backoff = get_settings().image_fetch_backoff_seconds
    return wait_exponential_jitter(initial=backoff, max=5, jitter=backoff)(
        retry_state
    )


def describe_source(source: str) -> str:
    """Short, log-safe description; data URIs can be megabytes long."""
    if source.startswith("data:"):
        header = source.split(",", 1)[0]
        return f"<{header}, {len(source)} chars>"
    if len(source) > 120:
        return source[:117] + "..."
    return source


def _is_remote(source: str) -> bool:
    return source.startswith(("http://", "https://"))


def decode_data_uri(source: str) -> bytes:
    """Decode a data: URI payload (base64 or percent-encoded)."""
    try:
        header, payload = source.split(",", 1)
    except ValueError as e:
        raise ImageDecodeError(source, "malformed data URI") from e

    if header.endswith(";base64"):
        try:
            return base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ImageDecodeError(source, "invalid base64 payload") from e
    return unquote_to_bytes(payload)


def decode_image(data: bytes, source: str = "<bytes>") -> Image.Image:
    """Decode image bytes fully; lazy PIL loading would defer errors."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            return img.convert("RGBA")
    except (UnidentifiedImageError, OSError, Image.DecompressionBombError) as e:
        raise ImageDecodeError(source, f"{type(e).__name__}: {e}") from e


class ImageLoader:
    """Async image decode collaborator with a small TTL cache for URLs.

    Usage:
        async with ImageLoader() as loader:
            image = await loader.load(template.background_image)
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        *,
        base_dir: Path | None = None,
        max_bytes: int | None = None,
    ) -> None:
        settings = get_settings()
        self._client = client
        self._owns_client = client is None
        self._base_dir = base_dir
        self._max_bytes = max_bytes or settings.max_image_bytes
        self._cache: TTLCache[str, bytes] = TTLCache(
            maxsize=settings.image_cache_max_size,
            ttl=settings.image_cache_ttl_seconds,
        )

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def _http_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=get_settings().http_timeout,
                follow_redirects=True,
            )
        return self._client

    def _check_size(self, source: str, data: bytes) -> bytes:
        if len(data) > self._max_bytes:
            raise ImageDecodeError(
                source, f"{len(data)} bytes exceeds limit of {self._max_bytes}"
            )
        return data

    async def _get_with_retry(self, url: str) -> httpx.Response:
        """GET an image URL, retrying transport failures and 5xx answers.

        Raises:
            RemoteImageServerError: If every attempt got a 5xx status
            httpx.TransportError: For connection/network errors
        """
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(get_settings().image_fetch_attempts),
            wait=_wait_backoff,
            retry=retry_if_exception_type(RETRIABLE_EXCEPTIONS),
            reraise=True,
        ):
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    logger.info(
                        "image.fetch.retry",
                        source=describe_source(url),
                        attempt=attempt.retry_state.attempt_number,
                    )
                response = await self._http_client().get(url)
                if response.status_code >= 500:
                    raise RemoteImageServerError(
                        f"Server returned {response.status_code}"
                    )
        return response

    async def _fetch_remote(self, source: str) -> bytes:
        cached = self._cache.get(source)
        if cached is not None:
            return cached

        try:
            response = await self._get_with_retry(source)
            response.raise_for_status()
        except (httpx.HTTPError, RemoteImageServerError) as e:
            raise ImageDecodeError(source, f"{type(e).__name__}: {e}") from e

        data = self._check_size(source, response.content)
        self._cache[source] = data
        return data

    async def _read_file(self, source: str) -> bytes:
        path = Path(source)
        if not path.is_absolute() and self._base_dir is not None:
            path = self._base_dir / path
        try:
            data = await asyncio.to_thread(path.read_bytes)
        except OSError as e:
            raise ImageDecodeError(source, f"{type(e).__name__}: {e}") from e
        return self._check_size(source, data)

    async def fetch(self, source: str) -> bytes:
        """Return the raw bytes behind an image reference."""
        if not source:
            raise ImageDecodeError(source, "empty image reference")
        if source.startswith("data:"):
            return self._check_size(source, decode_data_uri(source))
        if _is_remote(source):
            return await self._fetch_remote(source)
        return await self._read_file(source)

    async def load(self, source: str) -> Image.Image:
        """Fetch and decode an image. Raises ImageDecodeError on any failure."""
        data = await self.fetch(source)
        image = await asyncio.to_thread(decode_image, data, source)
        logger.debug(
            "image.loaded",
            source=describe_source(source),
            width=image.width,
            height=image.height,
        )
        return image


def to_data_uri(data: bytes, mime_type: str = "image/png") -> str:
    """Embed image bytes the way uploads are stored in templates."""
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"
