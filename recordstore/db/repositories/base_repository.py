"""
Base repository - generic CRUD interface (SOLID: Interface Segregation, Dependency Inversion).
Challenge: Consistent data access, testability via mocks, query optimization in one place.
Design: Works on a RecordStore or a Transaction alike; both expose the same operations.
"""

from typing import Any, Generic, TypeVar

from recordstore.core.errors import NotFound
from recordstore.db.predicates import Eq

EntityType = TypeVar("EntityType")


class BaseRepository(Generic[EntityType]):
    """Generic async repository. Subclasses define model-specific methods."""

    def __init__(self, scope, model: type[EntityType]):
        self.scope = scope
        self.model = model

    @property
    def descriptor(self):
        return self.scope.registry.descriptor(self.model)

    async def get_by_id(self, id: Any, **options: Any) -> EntityType | None:
        """Fetch single entity by primary key, or None."""
        try:
            return await self.scope.find_one(self.model, Eq({self.descriptor.pk.attr: id}), **options)
        except NotFound:
            return None

    async def get_many(
        self,
        *,
        skip: int = 0,
        limit: int = 20,
        **options: Any,
    ) -> list[EntityType]:
        """Paginated list ordered by primary key. Avoids loading the full table."""
        return await self.scope.find_all(
            self.model,
            options.pop("where", None),
            order_by=self.descriptor.pk_column,
            offset=skip,
            limit=limit,
            **options,
        )

    async def add(self, entity: EntityType) -> EntityType:
        """Persist new entity; generated keys and stamps are written back onto it."""
        await self.scope.insert(entity)
        return entity

    async def delete(self, entity: EntityType) -> None:
        """Remove entity (soft delete when the model has a tombstone)."""
        await self.scope.delete(entity)
