"""
Association operations on one relation of one owner entity.

Many-to-many operations only touch the join table (related rows are never
deleted). Has-one / has-many operations move the foreign key on the related
rows; detaching a row whose foreign key is NOT NULL is rejected with
``ConstraintViolation`` before anything is written.
"""

import logging
from typing import Any

import sqlalchemy as sa

from recordstore.core.errors import ConstraintViolation, SchemaError
from recordstore.db.predicates import compile_where
from recordstore.db.schema import EntityDescriptor, Relation, RelationKind

logger = logging.getLogger(__name__)


class Association:
    """``find`` / ``count`` / ``append`` / ``replace`` / ``delete`` / ``clear`` for ``owner.relation``.

    Each call runs in one transaction: its own when bound to a store, the
    enclosing one when bound to a ``Transaction``.
    """

    def __init__(self, scope, owner: Any, relation: Relation):
        if not isinstance(owner, relation.owner):
            raise SchemaError(f"{relation!r} does not belong to {type(owner).__name__}")
        descriptor = scope.registry.descriptor(relation.owner)
        if descriptor.field_for_column(relation.owner_key()).get(owner) is None:
            raise SchemaError(f"{relation!r}: owner has no {relation.owner_key()}")
        self._scope = scope
        self.owner = owner
        self.relation = relation

    async def find(self, where: Any = None) -> list[Any]:
        return await self._scope.transaction(lambda tx: find(tx, self.owner, self.relation, where))

    async def count(self, where: Any = None) -> int:
        return await self._scope.transaction(lambda tx: count(tx, self.owner, self.relation, where))

    async def append(self, *targets: Any) -> int:
        return await self._scope.transaction(lambda tx: append(tx, self.owner, self.relation, list(targets)))

    async def replace(self, *targets: Any) -> int:
        return await self._scope.transaction(lambda tx: replace(tx, self.owner, self.relation, list(targets)))

    async def delete(self, *targets: Any) -> int:
        return await self._scope.transaction(lambda tx: delete(tx, self.owner, self.relation, list(targets)))

    async def clear(self) -> int:
        return await self._scope.transaction(lambda tx: clear(tx, self.owner, self.relation))


def _descriptors(tx, relation: Relation) -> tuple[EntityDescriptor, EntityDescriptor]:
    return tx.registry.descriptor(relation.owner), tx.registry.descriptor(relation.target)


def _owner_key(tx, owner: Any, relation: Relation) -> Any:
    owner_desc, _ = _descriptors(tx, relation)
    return owner_desc.field_for_column(relation.owner_key()).get(owner)


def _check_targets(target: EntityDescriptor, targets: list[Any]) -> None:
    for item in targets:
        if not isinstance(item, target.model):
            raise SchemaError(f"expected {target.name}, got {type(item).__name__}")


def _target_query(tx, owner: Any, relation: Relation, target: EntityDescriptor, where: Any) -> sa.Select:
    key = _owner_key(tx, owner, relation)
    table = target.table
    if relation.kind is RelationKind.MANY_TO_MANY:
        link = relation.join_table
        stmt = (
            sa.select(*table.c)
            .select_from(table.join(link, link.c[relation.join_target_key] == table.c[relation.target_references]))
            .where(link.c[relation.foreign_key] == key)
        )
    else:
        stmt = sa.select(table).where(table.c[relation.target_key()] == key)
    if target.tombstone is not None:
        stmt = stmt.where(table.c[target.tombstone.column].is_(None))
    if where is not None:
        stmt = stmt.where(compile_where(where, target))
    return stmt


async def find(tx, owner: Any, relation: Relation, where: Any = None) -> list[Any]:
    _, target = _descriptors(tx, relation)
    rows = (await tx.connection.execute(_target_query(tx, owner, relation, target, where))).mappings().all()
    return [target.load(row) for row in rows]


async def count(tx, owner: Any, relation: Relation, where: Any = None) -> int:
    _, target = _descriptors(tx, relation)
    subquery = _target_query(tx, owner, relation, target, where).subquery()
    return (await tx.connection.execute(sa.select(sa.func.count()).select_from(subquery))).scalar_one()


async def _existing_keys(tx, descriptor: EntityDescriptor, keys: list[Any]) -> set[Any]:
    if not keys:
        return set()
    stmt = sa.select(descriptor.pk_column).where(descriptor.pk_column.in_(keys))
    return set((await tx.connection.execute(stmt)).scalars().all())


async def _ensure_targets(tx, target: EntityDescriptor, targets: list[Any]) -> None:
    """Insert the targets that are not stored yet."""
    existing = await _existing_keys(tx, target, [target.identity(t) for t in targets if target.has_identity(t)])
    missing = [t for t in targets if not target.has_identity(t) or target.identity(t) not in existing]
    if missing:
        await tx._insert(target, missing, omit_associations=True)


def _remember(owner: Any, relation: Relation, targets: list[Any]) -> None:
    """Mirror an attach on the owner's in-memory attribute."""
    if relation.collection:
        current = getattr(owner, relation.name)
        for item in targets:
            if item not in current:
                current.append(item)
    else:
        setattr(owner, relation.name, targets[-1] if targets else None)


def _forget(owner: Any, relation: Relation, targets: list[Any] | None) -> None:
    if relation.collection:
        current = getattr(owner, relation.name)
        setattr(owner, relation.name, [] if targets is None else [c for c in current if c not in targets])
    else:
        setattr(owner, relation.name, None)


def _require_nullable(table: sa.Table, column: str, relation: Relation, orphans: int) -> None:
    if orphans and not table.c[column].nullable:
        raise ConstraintViolation(
            f"{relation!r}: detaching {orphans} row(s) would set NOT NULL column {table.name}.{column} to NULL"
        )


async def _detach(tx, relation: Relation, target: EntityDescriptor, condition: sa.ColumnElement) -> int:
    """Null out the foreign key of the matched related rows (has-one / has-many)."""
    table = target.table
    orphans = (
        await tx.connection.execute(sa.select(sa.func.count()).select_from(table).where(condition))
    ).scalar_one()
    _require_nullable(table, relation.foreign_key, relation, orphans)
    if not orphans:
        return 0
    result = await tx.connection.execute(sa.update(table).where(condition).values({relation.foreign_key: None}))
    return result.rowcount


async def append(tx, owner: Any, relation: Relation, targets: list[Any]) -> int:
    _, target = _descriptors(tx, relation)
    _check_targets(target, targets)
    if not targets:
        return 0
    if relation.kind in (RelationKind.HAS_ONE, RelationKind.BELONGS_TO):
        # A singular relation holds one row; appending means replacing it
        return await replace(tx, owner, relation, targets)

    key = _owner_key(tx, owner, relation)
    if relation.kind is RelationKind.MANY_TO_MANY:
        await _ensure_targets(tx, target, targets)
        link = relation.join_table
        wanted = list(dict.fromkeys(target.identity(t) for t in targets))
        present = set(
            (
                await tx.connection.execute(
                    sa.select(link.c[relation.join_target_key]).where(
                        link.c[relation.foreign_key] == key,
                        link.c[relation.join_target_key].in_(wanted),
                    )
                )
            )
            .scalars()
            .all()
        )
        rows = [
            {relation.foreign_key: key, relation.join_target_key: t_key} for t_key in wanted if t_key not in present
        ]
        if rows:
            await tx.connection.execute(sa.insert(link), rows)
        _remember(owner, relation, targets)
        logger.debug("%s: linked %d of %d targets", relation, len(rows), len(wanted))
        return len(rows)

    # HAS_MANY: point every target at the owner
    fk_field = target.field_for_column(relation.foreign_key)
    for item in targets:
        fk_field.set(item, key)
    await _attach(tx, target, targets, relation.foreign_key, key)
    _remember(owner, relation, targets)
    return len(targets)


async def _attach(tx, target: EntityDescriptor, targets: list[Any], foreign_key: str, key: Any) -> None:
    existing = await _existing_keys(tx, target, [target.identity(t) for t in targets if target.has_identity(t)])
    stored = [t for t in targets if target.has_identity(t) and target.identity(t) in existing]
    stored_ids = {id(t) for t in stored}
    fresh = [t for t in targets if id(t) not in stored_ids]
    if stored:
        await tx.connection.execute(
            sa.update(target.table)
            .where(target.pk_column.in_([target.identity(t) for t in stored]))
            .values({foreign_key: key})
        )
    if fresh:
        await tx._insert(target, fresh)


async def replace(tx, owner: Any, relation: Relation, targets: list[Any]) -> int:
    owner_desc, target = _descriptors(tx, relation)
    _check_targets(target, targets)
    if not relation.collection and len(targets) > 1:
        raise SchemaError(f"{relation!r} holds a single {target.name}")
    key = _owner_key(tx, owner, relation)

    if relation.kind is RelationKind.MANY_TO_MANY:
        await _ensure_targets(tx, target, targets)
        link = relation.join_table
        keep = [target.identity(t) for t in targets]
        await tx.connection.execute(
            sa.delete(link).where(link.c[relation.foreign_key] == key, link.c[relation.join_target_key].not_in(keep))
        )
        setattr(owner, relation.name, [])
        return await append(tx, owner, relation, targets)

    if relation.kind is RelationKind.BELONGS_TO:
        fk_field = owner_desc.field_for_column(relation.foreign_key)
        if not targets:
            return await clear(tx, owner, relation)
        (parent,) = targets
        await _ensure_targets(tx, target, [parent])
        parent_key = target.field_for_column(relation.references).get(parent)
        await tx.connection.execute(
            sa.update(owner_desc.table)
            .where(owner_desc.pk_column == owner_desc.identity(owner))
            .values({relation.foreign_key: parent_key})
        )
        fk_field.set(owner, parent_key)
        _remember(owner, relation, [parent])
        return 1

    # HAS_ONE / HAS_MANY: detach current rows that are not part of the new set
    table = target.table
    keep = [target.identity(t) for t in targets if target.has_identity(t)]
    condition = table.c[relation.foreign_key] == key
    if keep:
        condition = sa.and_(condition, target.pk_column.not_in(keep))
    await _detach(tx, relation, target, condition)
    setattr(owner, relation.name, relation.empty())
    if not targets:
        return 0
    fk_field = target.field_for_column(relation.foreign_key)
    for item in targets:
        fk_field.set(item, key)
    await _attach(tx, target, targets, relation.foreign_key, key)
    _remember(owner, relation, targets)
    return len(targets)


async def delete(tx, owner: Any, relation: Relation, targets: list[Any]) -> int:
    _, target = _descriptors(tx, relation)
    _check_targets(target, targets)
    if not targets:
        return 0
    key = _owner_key(tx, owner, relation)
    keys = [target.identity(t) for t in targets]

    if relation.kind is RelationKind.MANY_TO_MANY:
        link = relation.join_table
        result = await tx.connection.execute(
            sa.delete(link).where(link.c[relation.foreign_key] == key, link.c[relation.join_target_key].in_(keys))
        )
        removed = result.rowcount
    elif relation.kind is RelationKind.BELONGS_TO:
        parent_keys = [target.field_for_column(relation.references).get(t) for t in targets]
        if key not in parent_keys:
            return 0
        return await clear(tx, owner, relation)
    else:
        table = target.table
        removed = await _detach(
            tx, relation, target, sa.and_(table.c[relation.foreign_key] == key, target.pk_column.in_(keys))
        )
    _forget(owner, relation, targets)
    return removed


async def clear(tx, owner: Any, relation: Relation) -> int:
    owner_desc, target = _descriptors(tx, relation)
    key = _owner_key(tx, owner, relation)

    if relation.kind is RelationKind.MANY_TO_MANY:
        link = relation.join_table
        result = await tx.connection.execute(sa.delete(link).where(link.c[relation.foreign_key] == key))
        removed = result.rowcount
    elif relation.kind is RelationKind.BELONGS_TO:
        _require_nullable(owner_desc.table, relation.foreign_key, relation, 1 if key is not None else 0)
        result = await tx.connection.execute(
            sa.update(owner_desc.table)
            .where(owner_desc.pk_column == owner_desc.identity(owner))
            .values({relation.foreign_key: None})
        )
        owner_desc.field_for_column(relation.foreign_key).set(owner, None)
        removed = result.rowcount
    else:
        removed = await _detach(tx, relation, target, target.table.c[relation.foreign_key] == key)
    _forget(owner, relation, None)
    return removed
