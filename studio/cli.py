#!/usr/bin/env python3
"""CLI for Certificate Studio.

Usage:
    python -m cli <command>

Commands:
    init-db          Create the template store table
    list-templates   List saved templates
    new-template     Create and save a new template
    preview          Render a template with a placeholder name (tolerant)
    generate         Render a finished certificate for one student (strict)
    delete-template  Remove a saved template
"""

import argparse
import asyncio
import sys
from pathlib import Path

from core import bind_contextvars, clear_contextvars, configure_logging, get_logger
from core.config import get_settings
from core.database import create_tables, reset_engine, session_scope
from editor.session import EditorSession
from rendering.images import ImageLoader
from rendering.surface import Surface
from schemas import EditorMode
from services.certificates_service import (
    CertificateGenerationError,
    StudentNameRequiredError,
    generate_certificate_pdf,
    generate_certificate_png,
)
from services.templates_service import (
    delete_template,
    get_template,
    load_templates,
    new_template,
    save_template,
)

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_NOT_FOUND = 2
EXIT_INVALID = 3


def _image_reference(value: str | None) -> str | None:
    """Keep data URIs and URLs as-is; make file paths absolute."""
    if not value:
        return None
    if value.startswith(("data:", "http://", "https://")):
        return value
    return str(Path(value).expanduser().resolve())


async def cmd_init_db() -> int:
    await create_tables()
    logger.info("database.initialized", url=get_settings().database_url)
    return EXIT_OK


async def cmd_list_templates() -> int:
    async with session_scope() as db:
        templates = await load_templates(db)

    for template in templates:
        saved = template.saved_at.isoformat() if template.saved_at else "-"
        print(
            f"{template.id}\t{template.name}\t{template.mode.value}\t"
            f"{len(template.text_elements)} text\t{saved}"
        )
    return EXIT_OK


async def cmd_new_template(args: argparse.Namespace) -> int:
    mode = EditorMode.DEFAULT if args.showcase else EditorMode.CUSTOM
    async with session_scope() as db:
        template = await new_template(db, mode=mode, name=args.name or "")
        session = EditorSession(template, mode=mode)
        if args.background:
            session.set_background(_image_reference(args.background))
        if args.logo:
            session.set_logo(_image_reference(args.logo))
        await save_template(db, session.snapshot())

    print(template.id)
    return EXIT_OK


async def cmd_preview(args: argparse.Namespace) -> int:
    async with session_scope() as db:
        template = await get_template(db, args.template_id)
    if template is None:
        logger.error("template.not_found", template_id=args.template_id)
        return EXIT_NOT_FOUND

    surface = Surface(template.canvas_width, template.canvas_height)
    name = (args.name or "").strip() or get_settings().name_placeholder_text
    async with ImageLoader() as loader:
        await surface.draw(template, name, loader=loader)

    Path(args.output).write_bytes(surface.to_png())
    logger.info("template.previewed", template_id=template.id, output=args.output)
    return EXIT_OK


async def cmd_generate(args: argparse.Namespace) -> int:
    async with session_scope() as db:
        template = await get_template(db, args.template_id)
    if template is None:
        logger.error("template.not_found", template_id=args.template_id)
        return EXIT_NOT_FOUND

    generate = generate_certificate_pdf if args.format == "pdf" else generate_certificate_png
    try:
        async with ImageLoader() as loader:
            data = await generate(template, args.name, loader=loader)
    except StudentNameRequiredError as e:
        logger.error("certificate.rejected", reason=str(e))
        return EXIT_INVALID
    except CertificateGenerationError as e:
        logger.error("certificate.failed", layer=e.layer, reason=str(e))
        return EXIT_ERROR

    output = args.output or f"certificate.{args.format}"
    Path(output).write_bytes(data)
    print(output)
    return EXIT_OK


async def cmd_delete_template(args: argparse.Namespace) -> int:
    async with session_scope() as db:
        deleted = await delete_template(db, args.template_id)
    if not deleted:
        logger.error("template.not_found", template_id=args.template_id)
        return EXIT_NOT_FOUND
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="certificate-studio",
        description="Certificate Studio CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("init-db", help="Create the template store table")
    subparsers.add_parser("list-templates", help="List saved templates")

    new = subparsers.add_parser("new-template", help="Create and save a new template")
    new.add_argument("--name", help="Template name (default: next 'Template N')")
    new.add_argument(
        "--showcase",
        action="store_true",
        help="Start from the showcase layout instead of an empty canvas",
    )
    new.add_argument("--background", help="Background image path, URL or data URI")
    new.add_argument("--logo", help="Logo image path, URL or data URI")

    preview = subparsers.add_parser("preview", help="Render a template preview")
    preview.add_argument("template_id", type=int)
    preview.add_argument("--name", help="Name to show instead of the placeholder")
    preview.add_argument("--output", default="preview.png")

    generate = subparsers.add_parser("generate", help="Generate a certificate")
    generate.add_argument("template_id", type=int)
    generate.add_argument("--name", required=True, help="Student name")
    generate.add_argument("--output", help="Output file (default: certificate.<format>)")
    generate.add_argument("--format", choices=["png", "pdf"], default="png")

    delete = subparsers.add_parser("delete-template", help="Remove a saved template")
    delete.add_argument("template_id", type=int)

    return parser


async def _dispatch(args: argparse.Namespace) -> int:
    bind_contextvars(command=args.command)
    try:
        if args.command == "init-db":
            return await cmd_init_db()
        if args.command == "list-templates":
            return await cmd_list_templates()
        if args.command == "new-template":
            return await cmd_new_template(args)
        if args.command == "preview":
            return await cmd_preview(args)
        if args.command == "generate":
            return await cmd_generate(args)
        if args.command == "delete-template":
            return await cmd_delete_template(args)
        return EXIT_ERROR
    finally:
        await reset_engine()
        clear_contextvars()


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        return EXIT_ERROR

    configure_logging()
    return asyncio.run(_dispatch(args))


if __name__ == "__main__":
    sys.exit(main())
