"""
Transactions: one pinned connection and the full store operation surface.

State machine::

    IDLE --begin--> ACTIVE --commit--> COMMITTED
                           --rollback-> ROLLED_BACK

Only ``rollback()`` is accepted once a transaction is terminal (as a no-op),
so ``async with store.begin() as tx`` can always roll back on exit.
"""

import asyncio
import enum
import functools
import inspect
import logging
import time
from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Any

import sqlalchemy as sa
from alembic.migration import MigrationContext
from alembic.operations import Operations
from sqlalchemy.dialects.mysql import insert as mysql_insert
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from recordstore.core.errors import (
    MissingCondition,
    NotFound,
    SchemaError,
    TransactionError,
    translate,
)
from recordstore.db import associations, hooks
from recordstore.db.associations import Association
from recordstore.db.loading import JoinPlan, preload_relations
from recordstore.db.predicates import compile_where, has_condition, raw_clause
from recordstore.db.schema import AutoStamp, EntityDescriptor, Patch, Registry, Relation, RelationKind

logger = logging.getLogger(__name__)

# Marks "use the configured default timeout"
DEFAULT = object()

_CREATED_STAMPS = (AutoStamp.CREATED, AutoStamp.CREATED_MILLIS)


class TxState(enum.Enum):
    IDLE = "idle"
    ACTIVE = "active"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"

    @property
    def terminal(self) -> bool:
        return self in (TxState.COMMITTED, TxState.ROLLED_BACK)


async def guarded(name: str, awaitable, timeout: float | None):
    """Await ``awaitable`` under an optional deadline, translating driver errors."""
    try:
        if timeout is None:
            return await awaitable
        return await asyncio.wait_for(awaitable, timeout)
    except Exception as exc:
        translated = translate(exc, name)
        if translated is None or translated is exc:
            raise
        raise translated from exc


def operation(name: str):
    """Decorate a ``Transaction`` method: state check, deadline and error translation."""

    def decorator(method):
        @functools.wraps(method)
        async def wrapper(self: "Transaction", *args, timeout: Any = DEFAULT, **kwargs):
            self._require_active(name)
            limit = self._timeout if timeout is DEFAULT else timeout
            logger.debug("%s %s", name, args[0] if args else "")
            return await guarded(name, method(self, *args, **kwargs), limit)

        return wrapper

    return decorator


def _utcnow() -> datetime:
    # Columns are timezone-naive; store UTC
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _stamp_value(stamp: AutoStamp) -> Any:
    return int(time.time() * 1000) if stamp.millis else _utcnow()


def _as_batch(entities: Any) -> list[Any]:
    if isinstance(entities, (list, tuple)):
        return list(entities)
    return [entities]


def _as_sequence(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, (str, sa.ClauseElement)):
        return [value]
    return list(value)


def _order_clauses(order_by: Any) -> list[sa.ClauseElement]:
    return [sa.text(o) if isinstance(o, str) else o for o in _as_sequence(order_by)]


def _select_expression(expression: Any) -> sa.ColumnElement:
    """``"sum(balance) as total"`` -> ``literal_column("sum(balance)").label("total")``."""
    if not isinstance(expression, str):
        return expression
    head, sep, alias = expression.rpartition(" as ")
    if not sep:
        head, sep, alias = expression.rpartition(" AS ")
    if sep and alias.strip().isidentifier():
        return sa.literal_column(head.strip()).label(alias.strip())
    return sa.literal_column(expression)


def _addable_column(column: sa.Column, dialect: str) -> sa.Column:
    """Copy of ``column`` that can be added to a populated table."""
    server_default = None
    if isinstance(column.server_default, sa.DefaultClause):
        arg = column.server_default.arg
        # SQLite only accepts constant defaults in ADD COLUMN
        if isinstance(arg, str) or dialect != "sqlite":
            server_default = sa.DefaultClause(arg)
    return sa.Column(
        column.name,
        column.type,
        nullable=column.nullable or server_default is None,
        server_default=server_default,
    )


def _migrate_sync(connection: sa.Connection, tables: list[sa.Table]) -> list[str]:
    inspector = sa.inspect(connection)
    existing = set(inspector.get_table_names())
    changes: list[str] = []

    missing = [t for t in tables if t.name not in existing]
    if missing:
        missing[0].metadata.create_all(connection, tables=missing, checkfirst=True)
        changes.extend(f"create table {t.name}" for t in missing)

    ops = Operations(MigrationContext.configure(connection))
    for table in tables:
        if table.name not in existing:
            continue
        present = {c["name"] for c in inspector.get_columns(table.name)}
        for column in table.columns:
            if column.name not in present:
                ops.add_column(table.name, _addable_column(column, connection.dialect.name))
                changes.append(f"add column {table.name}.{column.name}")
    return changes


class Transaction:
    """A unit of work pinned to one pooled connection.

    Use ``async with store.begin() as tx`` and call ``await tx.commit()``;
    leaving the block without committing rolls back.
    """

    def __init__(
        self,
        engine: AsyncEngine,
        registry: Registry,
        *,
        timeout: float | None = None,
        explicit: bool = True,
    ):
        self._engine = engine
        self.registry = registry
        self._timeout = timeout
        # Store-internal transactions wrap a single call and cannot hold row locks
        self.explicit = explicit
        self.state = TxState.IDLE
        self._connection: AsyncConnection | None = None
        self._transaction = None

    def __repr__(self) -> str:
        return f"<Transaction {self.state.value}>"

    # === Lifecycle ===

    async def begin(self) -> "Transaction":
        if self.state is not TxState.IDLE:
            raise TransactionError(f"cannot begin a {self.state.value} transaction")
        connection = await guarded("begin", self._engine.connect(), self._timeout)
        try:
            self._transaction = await guarded("begin", connection.begin(), self._timeout)
        except BaseException:
            await connection.close()
            raise
        self._connection = connection
        self.state = TxState.ACTIVE
        logger.debug("transaction begun")
        return self

    async def commit(self) -> None:
        if self.state is not TxState.ACTIVE:
            raise TransactionError(f"cannot commit a {self.state.value} transaction")
        try:
            await guarded("commit", self._transaction.commit(), None)
        except BaseException:
            await self._finish(TxState.ROLLED_BACK, rollback=True)
            raise
        await self._finish(TxState.COMMITTED)
        logger.debug("transaction committed")

    async def rollback(self) -> None:
        """Roll back; a no-op on a transaction that already ended."""
        if self.state.terminal:
            return
        if self.state is TxState.IDLE:
            self.state = TxState.ROLLED_BACK
            return
        await self._finish(TxState.ROLLED_BACK, rollback=True)
        logger.debug("transaction rolled back")

    async def _finish(self, state: TxState, *, rollback: bool = False) -> None:
        connection, transaction = self._connection, self._transaction
        self._connection = self._transaction = None
        self.state = state
        try:
            if rollback and transaction is not None and transaction.is_active:
                await transaction.rollback()
        finally:
            if connection is not None:
                await connection.close()

    async def __aenter__(self) -> "Transaction":
        if self.state is TxState.IDLE:
            await self.begin()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        try:
            await self.rollback()
        except Exception:
            if exc is None:
                raise
            # Keep the original error; the connection is closed either way
            logger.exception("rollback failed while handling %s", exc_type.__name__)

    def _require_active(self, name: str) -> None:
        if self.state is not TxState.ACTIVE:
            raise TransactionError(f"{name} on a {self.state.value} transaction")

    @property
    def connection(self) -> AsyncConnection:
        self._require_active("connection")
        return self._connection

    async def transaction(self, fn) -> Any:
        """Run ``fn(self)`` inside this transaction (no savepoint)."""
        self._require_active("transaction")
        return await guarded("transaction", self._call(fn), None)

    async def _call(self, fn) -> Any:
        result = fn(self)
        if inspect.isawaitable(result):
            result = await result
        if isinstance(result, BaseException):
            raise result
        return result

    def association(self, owner: Any, relation: Relation) -> Association:
        return Association(self, owner, relation)

    # === Writes ===

    def _batch_descriptor(self, batch: list[Any]) -> EntityDescriptor:
        descriptor = self.registry.descriptor_of(batch[0])
        for entity in batch[1:]:
            if type(entity) is not descriptor.model:
                raise SchemaError(f"mixed batch: {descriptor.name} and {type(entity).__name__}")
        return descriptor

    def _stamp(self, descriptor: EntityDescriptor, entity: Any, *, creating: bool) -> None:
        for spec in descriptor.fields:
            if spec.stamp is None:
                continue
            if creating and spec.get(entity) in (None, 0):
                spec.set(entity, _stamp_value(spec.stamp))
            elif not creating and spec.stamp.on_update:
                spec.set(entity, _stamp_value(spec.stamp))

    def _link_parents(self, descriptor: EntityDescriptor, entity: Any) -> None:
        """Copy the key of every attached belongs-to parent into the foreign key."""
        for relation in self.registry.relations(descriptor.model):
            if relation.kind is not RelationKind.BELONGS_TO:
                continue
            parent = getattr(entity, relation.name, None)
            if parent is None:
                continue
            target = self.registry.descriptor(relation.target)
            descriptor.field_for_column(relation.foreign_key).set(
                entity, target.field_for_column(relation.references).get(parent)
            )

    async def _save_children(self, descriptor: EntityDescriptor, entity: Any) -> None:
        for relation in self.registry.relations(descriptor.model):
            if relation.kind is RelationKind.BELONGS_TO:
                continue
            value = getattr(entity, relation.name, None)
            if not value:
                continue
            targets = list(value) if relation.collection else [value]
            if relation.kind is RelationKind.MANY_TO_MANY:
                setattr(entity, relation.name, [])
                await associations.append(self, entity, relation, targets)
                continue
            target = self.registry.descriptor(relation.target)
            fk_field = target.field_for_column(relation.foreign_key)
            owner_key = descriptor.field_for_column(relation.references).get(entity)
            for child in targets:
                fk_field.set(child, owner_key)
            await self._insert(target, targets)

    async def _insert(self, descriptor: EntityDescriptor, batch: list[Any], *, omit_associations: bool = False) -> int:
        for entity in batch:
            await hooks.run_hooks(hooks.BEFORE_CREATE, entity, self)
            if not omit_associations:
                self._link_parents(descriptor, entity)
            self._stamp(descriptor, entity, creating=True)

        table = descriptor.table
        pk = descriptor.pk.column
        rows = [descriptor.values(entity) for entity in batch]
        generate = [descriptor.autoincrement and not descriptor.has_identity(e) for e in batch]

        if not any(generate):
            await self.connection.execute(sa.insert(table), rows)
        else:
            for row in rows:
                row.pop(pk)
            dialect = self.connection.dialect
            if all(generate) and len(batch) > 1 and dialect.insert_executemany_returning_sort_by_parameter_order:
                result = await self.connection.execute(
                    sa.insert(table).returning(descriptor.pk_column, sort_by_parameter_order=True), rows
                )
                keys = result.scalars().all()
            else:
                # Mixed or single rows: one statement each, still inside this transaction
                keys = []
                for entity, row, fresh in zip(batch, rows, generate):
                    if not fresh:
                        row[pk] = descriptor.identity(entity)
                    result = await self.connection.execute(sa.insert(table), row)
                    keys.append(result.inserted_primary_key[0] if fresh else descriptor.identity(entity))
            for entity, key in zip(batch, keys):
                descriptor.pk.set(entity, key)

        if not omit_associations:
            for entity in batch:
                await self._save_children(descriptor, entity)
        for entity in batch:
            await hooks.run_hooks(hooks.AFTER_CREATE, entity, self)
        logger.debug("inserted %d %s row(s)", len(batch), table.name)
        return len(batch)

    @operation("insert")
    async def insert(self, entities: Any, *, omit_associations: bool = False) -> int:
        """Insert one entity or a batch; returns rows affected (all or nothing)."""
        batch = _as_batch(entities)
        if not batch:
            return 0
        return await self._insert(self._batch_descriptor(batch), batch, omit_associations=omit_associations)

    def _upsert_statement(self, descriptor: EntityDescriptor):
        table = descriptor.table
        columns = [f.column for f in descriptor.fields if f is not descriptor.pk and f.stamp not in _CREATED_STAMPS]
        dialect = self.connection.dialect.name
        if dialect in ("postgresql", "sqlite"):
            stmt = (pg_insert if dialect == "postgresql" else sqlite_insert)(table)
            return stmt.on_conflict_do_update(
                index_elements=[descriptor.pk_column],
                set_={c: stmt.excluded[c] for c in columns},
            )
        if dialect in ("mysql", "mariadb"):
            stmt = mysql_insert(table)
            return stmt.on_duplicate_key_update({c: stmt.inserted[c] for c in columns})
        raise SchemaError(f"upsert is not supported on {dialect}")

    async def _upsert(
        self, descriptor: EntityDescriptor, batch: list[Any], *, before: tuple[str, ...] = hooks.BEFORE_CREATE
    ) -> int:
        fresh = [e for e in batch if descriptor.autoincrement and not descriptor.has_identity(e)]
        keyed = [e for e in batch if not (descriptor.autoincrement and not descriptor.has_identity(e))]
        affected = 0
        if fresh:
            affected += await self._insert(descriptor, fresh, omit_associations=True)
        if keyed:
            for entity in keyed:
                await hooks.run_hooks(before, entity, self)
                self._stamp(descriptor, entity, creating=True)
                self._stamp(descriptor, entity, creating=False)
            await self.connection.execute(
                self._upsert_statement(descriptor), [descriptor.values(e) for e in keyed]
            )
            for entity in keyed:
                await hooks.run_hooks(hooks.AFTER_CREATE, entity, self)
            affected += len(keyed)
        return affected

    @operation("upsert")
    async def upsert(self, entities: Any) -> int:
        """Insert, or overwrite every non-key column when the primary key exists."""
        batch = _as_batch(entities)
        if not batch:
            return 0
        return await self._upsert(self._batch_descriptor(batch), batch)

    @operation("save")
    async def save(self, entity: Any) -> int:
        """Write every field of an existing row (zero values included); upsert if missing."""
        descriptor = self.registry.descriptor_of(entity)
        if not descriptor.has_identity(entity):
            return await self._insert(descriptor, [entity], omit_associations=True)
        await hooks.run_hooks(hooks.BEFORE_UPDATE, entity, self)
        self._stamp(descriptor, entity, creating=False)
        values = descriptor.values(entity)
        values.pop(descriptor.pk.column)
        for spec in descriptor.fields:
            if spec.stamp in _CREATED_STAMPS and values.get(spec.column) is None:
                values.pop(spec.column)
        result = await self.connection.execute(
            sa.update(descriptor.table).where(descriptor.pk_column == descriptor.identity(entity)).values(values)
        )
        if result.rowcount == 0:
            # before_save already ran with the update hooks
            return await self._upsert(descriptor, [entity], before=("before_create",))
        await hooks.run_hooks(hooks.AFTER_UPDATE, entity, self)
        return result.rowcount

    def _update_values(self, descriptor: EntityDescriptor, values: Any) -> dict[str, Any]:
        if isinstance(values, Patch):
            return values.columns(descriptor)
        if isinstance(values, descriptor.model):
            columns = descriptor.values(values, omit_zero=True)
            columns.pop(descriptor.pk.column, None)
            for spec in descriptor.fields:
                if spec.stamp in _CREATED_STAMPS:
                    columns.pop(spec.column, None)
            return columns
        if isinstance(values, dict):
            for column in values:
                descriptor.field_for_column(column)
            return dict(values)
        raise SchemaError(f"cannot update {descriptor.name} from {type(values).__name__}")

    @operation("update")
    async def update(
        self,
        model: type,
        where: Any,
        values: Any,
        *,
        unscoped: bool = False,
        allow_global: bool = False,
    ) -> int:
        """Partial update of the matching rows.

        ``values`` is a column map or ``Patch`` (every listed field written) or
        an entity (zero-valued fields skipped, as in a struct-shaped update).
        """
        descriptor = self.registry.descriptor(model)
        if not allow_global and not has_condition(where):
            raise MissingCondition(f"update of {descriptor.table.name} without a condition")
        columns = self._update_values(descriptor, values)
        if not columns:
            return 0
        for spec in descriptor.fields:
            if spec.stamp is not None and spec.stamp.on_update and spec.column not in columns:
                columns[spec.column] = _stamp_value(spec.stamp)
        stmt = sa.update(descriptor.table).where(self._condition(descriptor, where, unscoped)).values(columns)
        result = await self.connection.execute(stmt)
        return result.rowcount

    @operation("delete")
    async def delete(
        self,
        target: Any,
        where: Any = None,
        *,
        unscoped: bool = False,
        allow_global: bool = False,
    ) -> int:
        """Delete an entity (by primary key) or the rows of a model matching ``where``.

        Entities with a tombstone are soft-deleted unless ``unscoped``.
        """
        entity = None
        if isinstance(target, type):
            descriptor = self.registry.descriptor(target)
            if not allow_global and not has_condition(where):
                raise MissingCondition(f"delete from {descriptor.table.name} without a condition")
        else:
            entity = target
            descriptor = self.registry.descriptor_of(entity)
            if not descriptor.has_identity(entity):
                raise SchemaError(f"cannot delete a {descriptor.name} without a primary key")
            await hooks.run_hooks(hooks.BEFORE_DELETE, entity, self)

        condition = self._condition(descriptor, where, unscoped)
        if entity is not None:
            condition = sa.and_(condition, descriptor.pk_column == descriptor.identity(entity))

        if descriptor.tombstone is not None and not unscoped:
            now = _utcnow()
            stmt = sa.update(descriptor.table).where(condition).values({descriptor.tombstone.column: now})
            if entity is not None:
                descriptor.tombstone.set(entity, now)
        else:
            stmt = sa.delete(descriptor.table).where(condition)
        result = await self.connection.execute(stmt)

        if entity is not None:
            await hooks.run_hooks(hooks.AFTER_DELETE, entity, self)
        return result.rowcount

    # === Reads ===

    def _condition(self, descriptor: EntityDescriptor, where: Any, unscoped: bool) -> sa.ColumnElement:
        condition = compile_where(where, descriptor)
        if descriptor.tombstone is not None and not unscoped:
            condition = sa.and_(condition, descriptor.column(descriptor.tombstone.column).is_(None))
        return condition

    def _select(
        self,
        descriptor: EntityDescriptor,
        where: Any,
        *,
        order_by: Any,
        joins: Sequence[Any],
        columns: Sequence[str] | None,
        unscoped: bool,
        for_update: bool,
    ) -> tuple[sa.Select, JoinPlan]:
        if for_update and not self.explicit:
            raise TransactionError("row locks need an explicit transaction (store.begin() or store.transaction())")
        plan = JoinPlan(self.registry, descriptor, joins)
        stmt = (
            sa.select(*plan.columns(columns))
            .select_from(plan.from_clause)
            .where(self._condition(descriptor, where, unscoped))
        )
        order = _order_clauses(order_by)
        if order:
            stmt = stmt.order_by(*order)
        if for_update:
            stmt = stmt.with_for_update()
        return stmt, plan

    async def _find(
        self,
        model: type,
        where: Any = None,
        *,
        order_by: Any = None,
        limit: int | None = None,
        offset: int | None = None,
        unscoped: bool = False,
        preload: Sequence[Any] = (),
        joins: Sequence[Any] = (),
        columns: Sequence[str] | None = None,
        for_update: bool = False,
    ) -> list[Any]:
        descriptor = self.registry.descriptor(model)
        stmt, plan = self._select(
            descriptor,
            where,
            order_by=order_by,
            joins=joins,
            columns=columns,
            unscoped=unscoped,
            for_update=for_update,
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        if offset is not None:
            stmt = stmt.offset(offset)
        rows = (await self.connection.execute(stmt)).mappings().all()
        entities = plan.load(rows)
        await preload_relations(self, descriptor, entities, preload)
        for entity in entities:
            await hooks.run_hooks(hooks.AFTER_FIND, entity, self)
        return entities

    @operation("find_all")
    async def find_all(self, model: type, where: Any = None, **options: Any) -> list[Any]:
        """All matching entities.

        Options: ``order_by``, ``limit``, ``offset``, ``unscoped``, ``preload``,
        ``joins``, ``columns``, ``for_update``.
        """
        return await self._find(model, where, **options)

    @operation("find_one")
    async def find_one(self, model: type, where: Any = None, **options: Any) -> Any:
        """First matching entity; raises ``NotFound``. Same options as ``find_all``."""
        options.pop("limit", None)
        found = await self._find(model, where, limit=1, **options)
        if not found:
            raise NotFound(f"no {self.registry.descriptor(model).name} matching {where!r}")
        return found[0]

    @operation("first")
    async def first(self, model: type, where: Any = None, **options: Any) -> Any:
        """Matching entity with the lowest primary key."""
        return await self._first(model, where, descending=False, **options)

    @operation("last")
    async def last(self, model: type, where: Any = None, **options: Any) -> Any:
        """Matching entity with the highest primary key."""
        return await self._first(model, where, descending=True, **options)

    async def _first(self, model: type, where: Any, *, descending: bool, **options: Any) -> Any:
        descriptor = self.registry.descriptor(model)
        pk = descriptor.pk_column
        options.pop("limit", None)
        options["order_by"] = [pk.desc() if descending else pk.asc()]
        found = await self._find(model, where, limit=1, **options)
        if not found:
            raise NotFound(f"no {descriptor.name} matching {where!r}")
        return found[0]

    @operation("count")
    async def count(self, model: type, where: Any = None, *, joins: Sequence[Any] = (), unscoped: bool = False) -> int:
        descriptor = self.registry.descriptor(model)
        plan = JoinPlan(self.registry, descriptor, joins)
        stmt = (
            sa.select(sa.func.count())
            .select_from(plan.from_clause)
            .where(self._condition(descriptor, where, unscoped))
        )
        return (await self.connection.execute(stmt)).scalar_one()

    @operation("aggregate")
    async def aggregate(
        self,
        model: type,
        select: Any,
        *,
        where: Any = None,
        joins: Sequence[Any] = (),
        group_by: Any = None,
        having: Any = None,
        order_by: Any = None,
        unscoped: bool = False,
    ) -> list[dict[str, Any]]:
        """Rows of computed expressions; SQL expressions pass through verbatim."""
        descriptor = self.registry.descriptor(model)
        plan = JoinPlan(self.registry, descriptor, joins)
        stmt = (
            sa.select(*(_select_expression(e) for e in _as_sequence(select)))
            .select_from(plan.from_clause)
            .where(self._condition(descriptor, where, unscoped))
        )
        groups = _order_clauses(group_by)
        if groups:
            stmt = stmt.group_by(*groups)
        if having is not None:
            stmt = stmt.having(compile_where(having, descriptor))
        order = _order_clauses(order_by)
        if order:
            stmt = stmt.order_by(*order)
        rows = (await self.connection.execute(stmt)).mappings().all()
        return [dict(row) for row in rows]

    @operation("aggregate_one")
    async def aggregate_one(self, model: type, select: Any, **options: Any) -> dict[str, Any]:
        rows = await self.aggregate(model, select, timeout=None, **options)
        if not rows:
            raise NotFound(f"aggregate over {self.registry.descriptor(model).name} returned no row")
        return rows[0]

    # === Raw SQL ===

    @operation("exec")
    async def exec(self, sql: str, *params: Any) -> int:
        """Execute a statement with ``?`` parameters; returns rows affected."""
        result = await self.connection.execute(raw_clause(sql, params))
        return result.rowcount

    def _into(self, into: type | None, row) -> Any:
        if into is None:
            return dict(row)
        try:
            return self.registry.descriptor(into).load(row)
        except SchemaError:
            return into(**row)

    @operation("query")
    async def query(self, sql: str, *params: Any, into: type | None = None) -> list[Any]:
        """Rows of a raw query as dicts, or as ``into`` instances."""
        rows = (await self.connection.execute(raw_clause(sql, params))).mappings().all()
        return [self._into(into, row) for row in rows]

    @operation("query_one")
    async def query_one(self, sql: str, *params: Any, into: type | None = None) -> Any:
        row = (await self.connection.execute(raw_clause(sql, params))).mappings().first()
        if row is None:
            raise NotFound(f"no row for {sql!r}")
        return self._into(into, row)

    # === Schema ===

    @operation("migrate")
    async def migrate(self, *models: type) -> list[str]:
        """Create missing tables and columns; never drops or alters anything."""
        if models:
            tables = [self.registry.descriptor(m).table for m in models]
        else:
            tables = self.registry.tables()
        changes = await self.connection.run_sync(_migrate_sync, tables)
        for change in changes:
            logger.info("migrate: %s", change)
        return changes


__all__ = ["DEFAULT", "Transaction", "TxState", "guarded", "operation"]
