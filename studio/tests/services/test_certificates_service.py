"""Tests for certificate generation and export."""

import io
from unittest.mock import AsyncMock

import pytest
from PIL import Image, ImageChops
from structlog.testing import capture_logs

from editor.session import EditorSession
from rendering.images import ImageLoader
from schemas import LogoPlacement, NamePlaceholder, Template
from services.certificates_service import (
    CertificateGenerationError,
    StudentNameRequiredError,
    certificate_filename,
    export_certificate,
    generate_certificate_pdf,
    generate_certificate_png,
    generate_from_session,
    validate_student_name,
)

pytestmark = pytest.mark.unit

WHITE = (255, 255, 255)


def name_only_template() -> Template:
    return Template(
        id=1712345678901,
        name="Template 1",
        name_placeholder=NamePlaceholder(
            x=400,
            y=320,
            width=300,
            height=60,
            font_size=36,
            font_family="serif",
            font_weight="bold",
            color="#000000",
        ),
    )


def open_png(data: bytes) -> Image.Image:
    image = Image.open(io.BytesIO(data))
    image.load()
    return image.convert("RGB")


class TestValidateStudentName:
    def test_returns_name_as_given(self):
        assert validate_student_name("  Ada Lovelace ") == "  Ada Lovelace "

    @pytest.mark.parametrize("name", ["", "   ", "\t\n"])
    def test_blank_rejected(self, name):
        with pytest.raises(StudentNameRequiredError):
            validate_student_name(name)

    def test_is_a_value_error(self):
        assert issubclass(StudentNameRequiredError, ValueError)


class TestCertificateFilename:
    def test_safe_characters(self):
        assert certificate_filename("Ada Lovelace") == "certificate_Ada_Lovelace.png"

    def test_nothing_usable(self):
        assert certificate_filename("///", "pdf") == "certificate_student.pdf"


class TestGenerateCertificatePng:
    async def test_end_to_end(self, loader: ImageLoader):
        data = await generate_certificate_png(
            name_only_template(), "Ada Lovelace", loader=loader
        )
        image = open_png(data)

        assert image.size == (1000, 707)
        assert image.getpixel((10, 10)) == WHITE
        bbox = ImageChops.difference(image, Image.new("RGB", image.size, WHITE)).getbbox()
        assert bbox is not None
        assert (bbox[0] + bbox[2]) / 2 == pytest.approx(550, abs=6)
        assert 320 <= bbox[1] < 340

    async def test_size_follows_template_canvas(self, loader: ImageLoader):
        template = name_only_template()
        template.canvas_width, template.canvas_height = 800, 600
        image = open_png(await generate_certificate_png(template, "Ada", loader=loader))
        assert image.size == (800, 600)

    async def test_blank_name_rejected_before_loading(self):
        loader = AsyncMock(spec=ImageLoader)
        template = name_only_template()
        template.background_image = "https://cdn.example.com/bg.png"

        with pytest.raises(StudentNameRequiredError):
            await generate_certificate_png(template, "   ", loader=loader)

        loader.load.assert_not_called()

    async def test_name_rendered_untrimmed(self, monkeypatch, loader: ImageLoader):
        render = AsyncMock(return_value=Image.new("RGB", (1000, 707), WHITE))
        monkeypatch.setattr("services.certificates_service.render", render)

        await generate_certificate_png(name_only_template(), " Ada  ", loader=loader)

        assert render.call_args.args[2] == " Ada  "

    async def test_broken_background_is_fatal(self, loader: ImageLoader, broken_data_uri):
        template = name_only_template()
        template.background_image = broken_data_uri

        with pytest.raises(CertificateGenerationError) as exc_info:
            await generate_certificate_png(template, "Ada", loader=loader)

        assert exc_info.value.layer == "background"
        assert "background" in str(exc_info.value)

    async def test_broken_logo_is_fatal(self, loader: ImageLoader):
        template = name_only_template()
        template.logo = LogoPlacement(url="https://cdn.example.com/missing.png")

        with pytest.raises(CertificateGenerationError) as exc_info:
            await generate_certificate_png(template, "Ada", loader=loader)

        assert exc_info.value.layer == "logo"

    async def test_does_not_modify_template(self, loader: ImageLoader):
        template = name_only_template()
        before = template.model_dump()
        await generate_certificate_png(template, "Ada", loader=loader)
        assert template.model_dump() == before

    async def test_logs_generation(self, loader: ImageLoader):
        with capture_logs() as logs:
            await generate_certificate_png(name_only_template(), "Ada", loader=loader)

        generated = [entry for entry in logs if entry["event"] == "certificate.generated"]
        assert generated[0]["format"] == "png"
        assert generated[0]["width"] == 1000


class TestOtherOutputs:
    async def test_pdf(self, loader: ImageLoader):
        data = await generate_certificate_pdf(name_only_template(), "Ada", loader=loader)
        assert data.startswith(b"%PDF")

    async def test_from_session_uses_live_state(self, loader: ImageLoader):
        session = EditorSession(name_only_template())
        session.template.name_placeholder.x = 0
        session.update_name_placeholder("align", "left")

        image = open_png(await generate_from_session(session, "Ada", loader=loader))
        bbox = ImageChops.difference(image, Image.new("RGB", image.size, WHITE)).getbbox()

        assert bbox[0] < 10

    async def test_export_uploads_png(self, loader: ImageLoader):
        uploader = AsyncMock()
        uploader.upload.return_value = "bafy-certificate"

        address = await export_certificate(
            name_only_template(), "Ada Lovelace", loader=loader, uploader=uploader
        )

        assert address == "bafy-certificate"
        data, filename = uploader.upload.call_args.args
        assert data.startswith(b"\x89PNG")
        assert filename == "certificate_Ada_Lovelace.png"

    async def test_export_skips_upload_on_failure(self, loader: ImageLoader):
        uploader = AsyncMock()
        with pytest.raises(StudentNameRequiredError):
            await export_certificate(
                name_only_template(), "", loader=loader, uploader=uploader
            )
        uploader.upload.assert_not_called()
