"""Repository layer for database operations.

Repositories encapsulate all database queries. They call flush(), never
commit(); transaction boundaries belong to the caller.
"""

from repositories.template_store_repository import TemplateStoreRepository

__all__ = [
    "TemplateStoreRepository",
]
