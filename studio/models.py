"""SQLAlchemy models for the template store."""

from datetime import UTC, datetime
from typing import Any

from sqlalchemy import JSON, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from core.database import Base


def utcnow() -> datetime:
    """Return current UTC time (timezone-aware)."""
    return datetime.now(UTC)


class TemplateCollection(Base):
    """A keyed collection: one row holds a whole list of templates.

    The list is stored exactly as the editor wrote it and is only parsed
    (and sanitized) on the way out.
    """

    __tablename__ = "template_collections"

    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    value: Mapped[list[Any]] = mapped_column(JSON, nullable=False, default=list)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )
