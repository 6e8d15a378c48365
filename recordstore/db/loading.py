"""
Relation loading.

Two strategies, both driven by typed ``Relation`` descriptors:

* ``Preload`` - one extra query per relation, ``IN`` over the keys collected
  from the already-loaded parents. Nested relations resolve depth-first.
* ``Join`` - a LEFT (or INNER) JOIN on the primary query. The joined table is
  aliased by the relation name so raw clauses can reference it
  (``wallet.balance > ?``). Has-many joins repeat the parent once per child.
"""

import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

import sqlalchemy as sa

from recordstore.core.errors import SchemaError
from recordstore.db.predicates import compile_where
from recordstore.db.schema import EntityDescriptor, Registry, Relation, RelationKind

logger = logging.getLogger(__name__)

# Keys per IN query
IN_BATCH_SIZE = 500

OWNER_KEY_LABEL = "__owner_key"


class Preload:
    """Eager-load ``relation``, then each of ``nested`` on the loaded targets."""

    def __init__(self, relation: Relation, *nested: "Relation | Preload", where: Any = None):
        self.relation = relation
        self.nested = [n if isinstance(n, Preload) else Preload(n) for n in nested]
        self.where = where

    def __repr__(self) -> str:
        return f"Preload({self.relation!r}, nested={self.nested!r})"


class _AllRelations:
    def __repr__(self) -> str:
        return "ALL"


# Preload every direct relation of the queried model
ALL = _AllRelations()


class Join:
    """Join ``relation`` into the primary query."""

    def __init__(self, relation: Relation, *, where: Any = None, inner: bool = False):
        self.relation = relation
        self.where = where
        self.inner = inner


def _tombstone_filter(descriptor: EntityDescriptor, source: sa.FromClause | None = None) -> sa.ColumnElement:
    if descriptor.tombstone is None:
        return sa.true()
    return descriptor.column(descriptor.tombstone.column, source).is_(None)


def _chunks(keys: Sequence[Any], size: int = IN_BATCH_SIZE) -> Iterable[Sequence[Any]]:
    for start in range(0, len(keys), size):
        yield keys[start : start + size]


def _check_owner(relation: Relation, descriptor: EntityDescriptor) -> None:
    if relation.owner is not descriptor.model:
        raise SchemaError(f"{relation!r} does not start at {descriptor.name}")


class JoinPlan:
    """FROM clause, column list and row decoding for a query with joins."""

    def __init__(self, registry: Registry, descriptor: EntityDescriptor, joins: Iterable[Relation | Join] = ()):
        self.descriptor = descriptor
        self.entries: list[tuple[Relation, EntityDescriptor, sa.FromClause]] = []
        from_clause: sa.FromClause = descriptor.table
        for item in joins:
            join = item if isinstance(item, Join) else Join(item)
            relation = join.relation
            _check_owner(relation, descriptor)
            if relation.kind is RelationKind.MANY_TO_MANY:
                raise SchemaError(f"{relation!r}: many-to-many relations can only be preloaded")
            target = registry.descriptor(relation.target)
            alias = target.table.alias(relation.name)
            if relation.kind is RelationKind.BELONGS_TO:
                on = alias.c[relation.references] == descriptor.table.c[relation.foreign_key]
            else:
                on = alias.c[relation.foreign_key] == descriptor.table.c[relation.references]
            on = sa.and_(on, _tombstone_filter(target, alias))
            if join.where is not None:
                on = sa.and_(on, compile_where(join.where, target, alias))
            from_clause = from_clause.join(alias, on, isouter=not join.inner)
            self.entries.append((relation, target, alias))
        self.from_clause = from_clause

    def columns(self, selected: Sequence[str] | None = None) -> list[sa.ColumnElement]:
        names = list(selected) if selected else [f.column for f in self.descriptor.fields]
        columns: list[sa.ColumnElement] = [self.descriptor.column(name) for name in names]
        for relation, target, alias in self.entries:
            columns.extend(alias.c[f.column].label(f"{relation.name}__{f.column}") for f in target.fields)
        return columns

    def load(self, rows: Iterable[Mapping[str, Any]]) -> list[Any]:
        entities = []
        for row in rows:
            entity = self.descriptor.load(row)
            for relation, target, _ in self.entries:
                prefix = f"{relation.name}__"
                if row[prefix + target.pk.column] is None:
                    # NULL-padded row: no matching child
                    child = None
                else:
                    child = target.load(row, prefix)
                if relation.collection:
                    setattr(entity, relation.name, [child] if child is not None else [])
                else:
                    setattr(entity, relation.name, child)
            entities.append(entity)
        return entities


def normalize_preloads(registry: Registry, descriptor: EntityDescriptor, preloads: Iterable[Any]) -> list[Preload]:
    result: list[Preload] = []
    for item in preloads:
        if item is ALL:
            result.extend(Preload(r) for r in registry.relations(descriptor.model))
        elif isinstance(item, Preload):
            result.append(item)
        elif isinstance(item, Relation):
            result.append(Preload(item))
        else:
            raise SchemaError(f"cannot preload {item!r}")
    return result


async def preload_relations(tx, descriptor: EntityDescriptor, entities: list[Any], preloads: Iterable[Any]) -> None:
    """Resolve ``preloads`` on ``entities`` using the transaction's connection."""
    if not entities:
        return
    for preload in normalize_preloads(tx.registry, descriptor, preloads):
        await _preload(tx, descriptor, entities, preload)


async def _preload(tx, descriptor: EntityDescriptor, entities: list[Any], preload: Preload) -> None:
    relation = preload.relation
    _check_owner(relation, descriptor)
    target = tx.registry.descriptor(relation.target)
    owner_field = descriptor.field_for_column(relation.owner_key())

    keys = list(dict.fromkeys(k for k in (owner_field.get(e) for e in entities) if k is not None))
    groups: dict[Any, list[Any]] = {}
    loaded: dict[Any, Any] = {}
    for chunk in _chunks(keys):
        stmt = _preload_statement(relation, target, chunk)
        stmt = stmt.where(_tombstone_filter(target))
        if preload.where is not None:
            stmt = stmt.where(compile_where(preload.where, target))
        rows = (await tx.connection.execute(stmt)).mappings().all()
        for row in rows:
            identity = row[target.pk.column]
            # One instance per target row, shared by every owner that references it
            child = loaded.get(identity)
            if child is None:
                child = loaded[identity] = target.load(row)
            owner_key = row[OWNER_KEY_LABEL] if relation.kind is RelationKind.MANY_TO_MANY else row[relation.target_key()]
            groups.setdefault(owner_key, []).append(child)

    for entity in entities:
        related = groups.get(owner_field.get(entity), [])
        if relation.collection:
            setattr(entity, relation.name, list(related))
        else:
            setattr(entity, relation.name, related[0] if related else None)

    logger.debug("preloaded %s: %d keys, %d rows", relation, len(keys), len(loaded))

    children = list(loaded.values())
    for nested in preload.nested:
        if children:
            await _preload(tx, target, children, nested)


def _preload_statement(relation: Relation, target: EntityDescriptor, keys: Sequence[Any]) -> sa.Select:
    if relation.kind is RelationKind.MANY_TO_MANY:
        link = relation.join_table
        return (
            sa.select(*target.table.c, link.c[relation.foreign_key].label(OWNER_KEY_LABEL))
            .select_from(
                target.table.join(link, link.c[relation.join_target_key] == target.table.c[relation.target_references])
            )
            .where(link.c[relation.foreign_key].in_(keys))
        )
    return sa.select(target.table).where(target.table.c[relation.target_key()].in_(keys))
