"""
Explicit entity schema descriptors.

Each entity is registered once with an ordered list of ``FieldSpec`` (column
name, attribute path, zero-value policy) and its typed ``Relation``
descriptors. The store never discovers fields by inspecting classes; it only
reads what was registered here.
"""

import enum
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

import sqlalchemy as sa

from recordstore.core.errors import SchemaError


class ZeroPolicy(enum.Enum):
    """How a field's zero value ("", 0, False, None) is treated in struct-shaped calls."""

    OMIT = "omit"  # zero means "not provided" (struct-shaped updates and examples skip it)
    KEEP = "keep"  # zero is a real value and is always written/compared


class AutoStamp(enum.Enum):
    """Automatic timestamp maintained by the store."""

    CREATED = "created"
    UPDATED = "updated"
    CREATED_MILLIS = "created_millis"
    UPDATED_MILLIS = "updated_millis"

    @property
    def on_update(self) -> bool:
        return self in (AutoStamp.UPDATED, AutoStamp.UPDATED_MILLIS)

    @property
    def millis(self) -> bool:
        return self in (AutoStamp.CREATED_MILLIS, AutoStamp.UPDATED_MILLIS)


def is_zero(value: Any) -> bool:
    """True for None and the falsy values of scalar column types."""
    if value is None:
        return True
    if isinstance(value, (str, bytes, int, float, Decimal)):
        return not value
    return False


@dataclass(frozen=True)
class FieldSpec:
    """One persisted field: a column and the attribute path that holds its value."""

    column: str
    path: tuple[str, ...]
    zero: ZeroPolicy = ZeroPolicy.OMIT
    stamp: AutoStamp | None = None

    @classmethod
    def of(
        cls,
        column: str,
        attr: str | None = None,
        *,
        zero: ZeroPolicy = ZeroPolicy.OMIT,
        stamp: AutoStamp | None = None,
    ) -> "FieldSpec":
        """Build a spec from a dotted attribute path (defaults to the column name)."""
        return cls(column, tuple((attr or column).split(".")), zero, stamp)

    @property
    def attr(self) -> str:
        return ".".join(self.path)

    def get(self, entity: Any) -> Any:
        value = entity
        for name in self.path:
            value = getattr(value, name)
        return value

    def set(self, entity: Any, value: Any) -> None:
        target = entity
        for name in self.path[:-1]:
            target = getattr(target, name)
        setattr(target, self.path[-1], value)


class EntityDescriptor:
    """Mapping between an entity class and its table."""

    def __init__(
        self,
        model: type,
        table: sa.Table,
        fields: Iterable[FieldSpec],
        *,
        tombstone: str | None = None,
    ):
        self.model = model
        self.table = table
        self.fields: tuple[FieldSpec, ...] = tuple(fields)
        self._by_column = {f.column: f for f in self.fields}
        self._by_attr = {f.attr: f for f in self.fields}

        missing = [c for c in self._by_column if c not in table.c]
        if missing:
            raise SchemaError(f"{model.__name__}: columns {missing} not in table {table.name}")

        pk_columns = list(table.primary_key.columns)
        if len(pk_columns) != 1:
            raise SchemaError(f"{model.__name__}: entities need a single-column primary key")
        self.pk_column: sa.Column = pk_columns[0]
        self.pk = self._by_column[self.pk_column.name]
        self.autoincrement = self.pk_column.autoincrement is True

        if tombstone is not None and tombstone not in self._by_column:
            raise SchemaError(f"{model.__name__}: tombstone column {tombstone!r} is not a field")
        self.tombstone = self._by_column[tombstone] if tombstone else None

    def __repr__(self) -> str:
        return f"<EntityDescriptor({self.model.__name__} -> {self.table.name})>"

    @property
    def name(self) -> str:
        return self.model.__name__

    def field_for_column(self, column: str) -> FieldSpec:
        try:
            return self._by_column[column]
        except KeyError:
            raise SchemaError(f"{self.name} has no column {column!r}") from None

    def field_for_attr(self, attr: str) -> FieldSpec:
        try:
            return self._by_attr[attr]
        except KeyError:
            raise SchemaError(f"{self.name} has no attribute {attr!r}") from None

    def column(self, name: str, source: sa.FromClause | None = None) -> sa.ColumnElement:
        self.field_for_column(name)
        return (source if source is not None else self.table).c[name]

    def identity(self, entity: Any) -> Any:
        return self.pk.get(entity)

    def has_identity(self, entity: Any) -> bool:
        return not is_zero(self.pk.get(entity))

    def load(self, row: Mapping[str, Any], prefix: str = "") -> Any:
        """Build an entity from a row mapping; columns absent from the row keep defaults."""
        entity = self.model()
        for spec in self.fields:
            key = prefix + spec.column
            if key in row:
                spec.set(entity, row[key])
        return entity

    def values(self, entity: Any, *, omit_zero: bool = False) -> dict[str, Any]:
        """Column map for an entity. ``omit_zero`` drops OMIT-policy fields holding zero."""
        values = {}
        for spec in self.fields:
            value = spec.get(entity)
            if omit_zero and spec.zero is ZeroPolicy.OMIT and is_zero(value):
                continue
            values[spec.column] = value
        return values


class Patch:
    """Explicit field presence for partial updates.

    Every attribute listed is written, zero values included, which is what
    a struct-shaped update cannot express::

        Patch({"name.middle_name": "", "name.last_name": "Morro"})
        Patch(password="editagain")
    """

    def __init__(self, attrs: Mapping[str, Any] | None = None, **kwargs: Any):
        self.attrs = {**(attrs or {}), **kwargs}

    def __repr__(self) -> str:
        return f"Patch({self.attrs!r})"

    def columns(self, descriptor: EntityDescriptor) -> dict[str, Any]:
        return {descriptor.field_for_attr(attr).column: value for attr, value in self.attrs.items()}


class RelationKind(enum.Enum):
    HAS_ONE = "has_one"
    HAS_MANY = "has_many"
    BELONGS_TO = "belongs_to"
    MANY_TO_MANY = "many_to_many"


@dataclass(frozen=True, eq=False)
class Relation:
    """Typed relation descriptor with its key metadata.

    ``foreign_key``/``references`` meaning depends on ``kind``:

    * HAS_ONE / HAS_MANY: ``target.foreign_key`` -> ``owner.references``
    * BELONGS_TO: ``owner.foreign_key`` -> ``target.references``
    * MANY_TO_MANY: ``join_table.foreign_key`` -> ``owner.references`` and
      ``join_table.join_target_key`` -> ``target.target_references``
    """

    owner: type
    name: str
    kind: RelationKind
    target: type
    foreign_key: str
    references: str = "id"
    join_table: sa.Table | None = None
    join_target_key: str | None = None
    target_references: str = "id"

    def __repr__(self) -> str:
        return f"<Relation {self.owner.__name__}.{self.name} ({self.kind.value})>"

    @property
    def collection(self) -> bool:
        return self.kind in (RelationKind.HAS_MANY, RelationKind.MANY_TO_MANY)

    def owner_key(self) -> str:
        """Owner column whose values drive a batched load."""
        if self.kind is RelationKind.BELONGS_TO:
            return self.foreign_key
        return self.references

    def target_key(self) -> str:
        """Target column matched against the owner keys."""
        if self.kind is RelationKind.BELONGS_TO:
            return self.references
        if self.kind is RelationKind.MANY_TO_MANY:
            return self.target_references
        return self.foreign_key

    def empty(self) -> Any:
        return [] if self.collection else None


class Registry:
    """All entity descriptors and relations known to a store."""

    def __init__(
        self,
        descriptors: Iterable[EntityDescriptor] = (),
        relations: Iterable[Relation] = (),
    ):
        self._descriptors: dict[type, EntityDescriptor] = {}
        self._relations: dict[type, dict[str, Relation]] = {}
        for descriptor in descriptors:
            self.register(descriptor)
        for relation in relations:
            self.add_relation(relation)

    def register(self, descriptor: EntityDescriptor) -> None:
        if descriptor.model in self._descriptors:
            raise SchemaError(f"{descriptor.name} is already registered")
        self._descriptors[descriptor.model] = descriptor
        self._relations.setdefault(descriptor.model, {})

    def add_relation(self, relation: Relation) -> None:
        owner = self.descriptor(relation.owner)
        target = self.descriptor(relation.target)
        if relation.kind is RelationKind.MANY_TO_MANY:
            if relation.join_table is None or relation.join_target_key is None:
                raise SchemaError(f"{relation!r} needs a join table and target key")
            for column in (relation.foreign_key, relation.join_target_key):
                if column not in relation.join_table.c:
                    raise SchemaError(f"{relation!r}: {column!r} not in {relation.join_table.name}")
        owner.field_for_column(relation.owner_key())
        target.field_for_column(relation.target_key())
        if relation.name in self._relations[relation.owner]:
            raise SchemaError(f"{relation!r} is already registered")
        self._relations[relation.owner][relation.name] = relation

    def descriptor(self, model: type) -> EntityDescriptor:
        try:
            return self._descriptors[model]
        except KeyError:
            raise SchemaError(f"{getattr(model, '__name__', model)!r} is not a registered entity") from None

    def descriptor_of(self, entity: Any) -> EntityDescriptor:
        return self.descriptor(type(entity))

    def relations(self, model: type) -> list[Relation]:
        self.descriptor(model)
        return list(self._relations[model].values())

    def relation(self, model: type, name: str) -> Relation:
        try:
            return self._relations[model][name]
        except KeyError:
            raise SchemaError(f"{getattr(model, '__name__', model)} has no relation {name!r}") from None

    def tables(self) -> list[sa.Table]:
        """Entity tables plus join tables, in registration order."""
        tables = [d.table for d in self._descriptors.values()]
        for relations in self._relations.values():
            for relation in relations.values():
                if relation.join_table is not None and relation.join_table not in tables:
                    tables.append(relation.join_table)
        return tables
