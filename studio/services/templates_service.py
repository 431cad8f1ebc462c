"""Template persistence for Certificate Studio.

All templates live as one list under a single well-known key. Saving reads
the full list, replaces (or appends) the entry with the same id and writes the
whole list back. Loading sanitizes every entry.
"""

import re
from datetime import UTC, datetime
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from core import get_logger
from core.config import get_settings
from repositories.template_store_repository import TemplateStoreRepository
from schemas import EditorMode, Template
from services.sanitize_service import coerce_int, sanitize_template

logger = get_logger(__name__)

UNNAMED_TEMPLATE = "Unnamed Template"

_DEFAULT_NAME_PATTERN = re.compile(r"^Template (\d+)$")


def _storage_key() -> str:
    return get_settings().templates_storage_key


async def _load_raw(repo: TemplateStoreRepository) -> list[Any]:
    raw = await repo.get(_storage_key())
    if raw is None:
        return []
    if not isinstance(raw, list):
        logger.warning(
            "template.collection.repaired",
            key=_storage_key(),
            reason=f"expected a list, got {type(raw).__name__}",
        )
        return []
    return _assign_missing_ids(raw)


def _raw_id(entry: Any) -> int | None:
    if not isinstance(entry, dict):
        return None
    return coerce_int(entry.get("id"))


def _assign_missing_ids(entries: list[Any]) -> list[Any]:
    """Give entries without a usable, unique id one past the largest stored id.

    Ids are handed out in stored order, so the same stored list always yields
    the same ids. The next save or delete writes them back.
    """
    next_id = max([0, *filter(None, map(_raw_id, entries))]) + 1
    seen: set[int] = set()
    repaired = []
    for index, entry in enumerate(entries):
        entry_id = _raw_id(entry)
        if entry_id is None or entry_id in seen:
            entry = dict(entry) if isinstance(entry, dict) else {}
            entry["id"] = entry_id = next_id
            next_id += 1
            logger.warning("template.id.assigned", index=index, template_id=entry_id)
        seen.add(entry_id)
        repaired.append(entry)
    return repaired


async def load_templates(db: AsyncSession) -> list[Template]:
    """Load and sanitize every stored template, in stored order."""
    repo = TemplateStoreRepository(db)
    return [sanitize_template(entry) for entry in await _load_raw(repo)]


async def get_template(db: AsyncSession, template_id: int) -> Template | None:
    for template in await load_templates(db):
        if template.id == template_id:
            return template
    return None


async def save_template(
    db: AsyncSession,
    template: Template,
    *,
    now: datetime | None = None,
) -> Template:
    """Persist a template, replacing any stored entry with the same id.

    Stamps saved_at and fills in a blank name. Other entries are written
    back as they were read, apart from ids assigned to entries that had none.

    Args:
        db: Database session
        template: The template to save; updated in place
        now: Override for the save timestamp (tests)

    Returns:
        The saved template
    """
    template.saved_at = now or datetime.now(UTC)
    if not template.name.strip():
        template.name = UNNAMED_TEMPLATE

    repo = TemplateStoreRepository(db)
    entries = await _load_raw(repo)
    stored = template.to_storage()

    for index, entry in enumerate(entries):
        if _raw_id(entry) == template.id:
            entries[index] = stored
            action = "updated"
            break
    else:
        entries.append(stored)
        action = "created"

    await repo.put(_storage_key(), entries)

    logger.info(
        "template.saved",
        template_id=template.id,
        name=template.name,
        action=action,
        total_templates=len(entries),
    )
    return template


async def delete_template(db: AsyncSession, template_id: int) -> bool:
    """Remove a template by id. Returns False if it was not stored."""
    repo = TemplateStoreRepository(db)
    entries = await _load_raw(repo)
    remaining = [entry for entry in entries if _raw_id(entry) != template_id]
    if len(remaining) == len(entries):
        return False

    await repo.put(_storage_key(), remaining)
    logger.info("template.deleted", template_id=template_id)
    return True


def default_template_name(existing_names: list[str]) -> str:
    """'Template N' where N is one more than the largest existing suffix."""
    numbers = [
        int(match.group(1))
        for name in existing_names
        if (match := _DEFAULT_NAME_PATTERN.match(name))
    ]
    return f"Template {max(numbers, default=0) + 1}"


async def next_template_name(db: AsyncSession) -> str:
    templates = await load_templates(db)
    return default_template_name([t.name for t in templates])


def _unused_id(candidate: int, taken: set[int]) -> int:
    # Two templates created within the same millisecond
    while candidate in taken:
        candidate += 1
    return candidate


async def new_template(
    db: AsyncSession,
    *,
    mode: EditorMode = EditorMode.CUSTOM,
    name: str = "",
) -> Template:
    """Start a new, unsaved template with a generated name if none given.

    The id is unique among stored templates.
    """
    stored = await load_templates(db)
    name = name.strip() or default_template_name([t.name for t in stored])
    if mode == EditorMode.DEFAULT:
        template = Template.showcase(
            name=name, background_image=get_settings().showcase_background
        )
    else:
        template = Template.empty(name=name)
    template.id = _unused_id(template.id, {t.id for t in stored})
    return template
