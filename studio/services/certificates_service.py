"""Certificate generation for Certificate Studio.

This module handles turning a template into a finished certificate:
- Student name validation
- Strict off-screen rendering (a broken background or logo is fatal)
- PNG and PDF encoding
- Handing the PNG to an upload collaborator

The editor, CLI and any other caller should go through this module rather
than calling the rendering module directly.
"""

import asyncio
import io
import re
from typing import TYPE_CHECKING, Protocol

from PIL import Image

from core import get_logger
from rendering.certificates import LayerDecodeError, new_surface, render
from rendering.images import ImageLoader
from schemas import Template

if TYPE_CHECKING:
    from editor.session import EditorSession

logger = get_logger(__name__)

PDF_RESOLUTION = 72.0

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


class StudentNameRequiredError(ValueError):
    """Raised when a certificate is requested for a blank student name."""

    def __init__(self) -> None:
        super().__init__("Please enter a student name")


class CertificateGenerationError(Exception):
    """Raised when a certificate cannot be rendered.

    Attributes:
        layer: "background" or "logo", the image layer that failed
    """

    def __init__(self, layer: str, message: str | None = None) -> None:
        self.layer = layer
        super().__init__(message or f"Failed to load {layer} image")


class CertificateUploader(Protocol):
    """Stores generated certificate bytes and returns their address."""

    async def upload(self, data: bytes, filename: str) -> str: ...


def validate_student_name(student_name: str) -> str:
    """Return the name as given, or raise StudentNameRequiredError if it is blank.

    Surrounding whitespace only matters for the check; it is rendered as typed.
    """
    if not (student_name or "").strip():
        raise StudentNameRequiredError()
    return student_name


def certificate_filename(student_name: str, extension: str = "png") -> str:
    stem = _UNSAFE_FILENAME_CHARS.sub("_", student_name.strip()).strip("_")
    return f"certificate_{stem or 'student'}.{extension}"


def _encode(image: Image.Image, image_format: str) -> bytes:
    buffer = io.BytesIO()
    if image_format == "PDF":
        image.save(buffer, format="PDF", resolution=PDF_RESOLUTION)
    else:
        image.save(buffer, format=image_format)
    return buffer.getvalue()


async def _render_strict(
    template: Template, student_name: str, loader: ImageLoader
) -> Image.Image:
    name = validate_student_name(student_name)
    surface = new_surface(template.canvas_width, template.canvas_height)
    try:
        return await render(surface, template, name, loader=loader, strict=True)
    except LayerDecodeError as e:
        logger.error(
            "certificate.generation.failed",
            template_id=template.id,
            layer=e.layer.value,
            reason=e.reason,
        )
        raise CertificateGenerationError(e.layer.value) from e


async def _generate(
    template: Template,
    student_name: str,
    *,
    loader: ImageLoader,
    image_format: str,
) -> bytes:
    image = await _render_strict(template, student_name, loader)

    # Encoding is CPU-bound
    loop = asyncio.get_running_loop()
    data = await loop.run_in_executor(None, _encode, image, image_format)

    logger.info(
        "certificate.generated",
        template_id=template.id,
        format=image_format.lower(),
        width=image.width,
        height=image.height,
        size_bytes=len(data),
    )
    return data


async def generate_certificate_png(
    template: Template,
    student_name: str,
    *,
    loader: ImageLoader,
) -> bytes:
    """Render a certificate for one student as PNG.

    The surface is the template's logical canvas size. The name is validated
    before anything is loaded or drawn.

    Args:
        template: Layout to render; not modified
        student_name: Text substituted into the name placeholder
        loader: Image decode collaborator

    Returns:
        PNG content as bytes

    Raises:
        StudentNameRequiredError: If the name is blank
        CertificateGenerationError: If the background or logo fails to load
    """
    return await _generate(template, student_name, loader=loader, image_format="PNG")


async def generate_certificate_pdf(
    template: Template,
    student_name: str,
    *,
    loader: ImageLoader,
) -> bytes:
    """Render a certificate as a single-page PDF. Same rules as PNG."""
    return await _generate(template, student_name, loader=loader, image_format="PDF")


async def generate_from_session(
    session: "EditorSession",
    student_name: str,
    *,
    loader: ImageLoader,
) -> bytes:
    """Generate a PNG from the editor's current (possibly unsaved) state."""
    return await generate_certificate_png(
        session.snapshot(), student_name, loader=loader
    )


async def export_certificate(
    template: Template,
    student_name: str,
    *,
    loader: ImageLoader,
    uploader: CertificateUploader,
) -> str:
    """Generate a PNG certificate and upload it.

    Returns:
        The address the uploader assigned to the file
    """
    data = await generate_certificate_png(template, student_name, loader=loader)
    filename = certificate_filename(student_name)
    address = await uploader.upload(data, filename)
    logger.info(
        "certificate.exported",
        template_id=template.id,
        filename=filename,
        address=address,
    )
    return address
