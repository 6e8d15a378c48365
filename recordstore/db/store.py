"""
Record store facade.
Challenge: One object to hand around that is safe for concurrent use.
Design: The store owns the engine and pool; every call borrows a connection
for the length of one internal transaction and returns it. Explicit
transactions pin a connection until commit/rollback.
"""

import functools
import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncEngine

from recordstore.db.associations import Association
from recordstore.db.schema import Registry, Relation
from recordstore.db.transaction import DEFAULT, Transaction

logger = logging.getLogger(__name__)


def _delegate(name: str):
    """Store method running ``Transaction.<name>`` in its own short transaction."""
    method = getattr(Transaction, name)

    @functools.wraps(method)
    async def call(self: "RecordStore", *args: Any, **kwargs: Any) -> Any:
        return await self._auto(name, *args, **kwargs)

    return call


class RecordStore:
    """Entry point for every operation; share one instance across tasks."""

    def __init__(self, engine: AsyncEngine, registry: Registry, *, timeout: float | None = None):
        self._engine = engine
        self._registry = registry
        self._timeout = timeout

    def __repr__(self) -> str:
        return f"<RecordStore {self._engine.url.render_as_string(hide_password=True)}>"

    @property
    def registry(self) -> Registry:
        return self._registry

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    @property
    def dialect(self) -> str:
        return self._engine.dialect.name

    def begin(self, *, timeout: Any = DEFAULT) -> Transaction:
        """New manual transaction, started on ``async with``::

            async with store.begin() as tx:
                await tx.insert(user)
                await tx.commit()
        """
        limit = self._timeout if timeout is DEFAULT else timeout
        return Transaction(self._engine, self._registry, timeout=limit)

    async def transaction(self, fn, *, timeout: Any = DEFAULT) -> Any:
        """Run ``fn(tx)`` and commit; roll back if it raises or returns an exception.

        ``fn`` may be a plain function or a coroutine function.
        """
        async with self.begin(timeout=timeout) as tx:
            result = await tx.transaction(fn)
            await tx.commit()
        return result

    async def _auto(self, name: str, *args: Any, **kwargs: Any) -> Any:
        tx = Transaction(self._engine, self._registry, timeout=self._timeout, explicit=False)
        async with tx:
            result = await getattr(tx, name)(*args, **kwargs)
            await tx.commit()
        return result

    insert = _delegate("insert")
    upsert = _delegate("upsert")
    save = _delegate("save")
    update = _delegate("update")
    delete = _delegate("delete")

    find_one = _delegate("find_one")
    first = _delegate("first")
    last = _delegate("last")
    find_all = _delegate("find_all")
    count = _delegate("count")
    aggregate = _delegate("aggregate")
    aggregate_one = _delegate("aggregate_one")

    exec = _delegate("exec")
    query = _delegate("query")
    query_one = _delegate("query_one")

    migrate = _delegate("migrate")

    def association(self, owner: Any, relation: Relation) -> Association:
        """Association operations, each in its own transaction."""
        return Association(self, owner, relation)

    async def close(self) -> None:
        """Dispose of the pool. Checked-out connections close when returned."""
        await self._engine.dispose()
        logger.info("record store closed")

    async def __aenter__(self) -> "RecordStore":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
