"""Repository for the keyed template collection."""

from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models import TemplateCollection


class TemplateStoreRepository:
    """get/put of whole template lists under a key.

    There is no per-template row and no optimistic concurrency check:
    put() replaces the full list and the last writer wins.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get(self, key: str) -> list[Any] | None:
        """Return the stored list for key, or None if nothing was ever saved."""
        result = await self.db.execute(
            select(TemplateCollection.value).where(TemplateCollection.key == key)
        )
        return result.scalar_one_or_none()

    async def put(self, key: str, value: list[Any]) -> None:
        """Replace the list stored under key.

        Calls flush() but does NOT commit; the caller is responsible for
        transaction management.
        """
        collection = await self.db.get(TemplateCollection, key)
        if collection is None:
            self.db.add(TemplateCollection(key=key, value=list(value)))
        else:
            # Assign a new list so the JSON column is marked dirty
            collection.value = list(value)
        await self.db.flush()
