"""
Predicate DSL for store queries.

A ``where`` argument may be:

* ``None`` - no condition
* a ``dict`` of column name -> value (zero values are real values)
* a ``Predicate``: ``Raw``, ``Eq``, ``Example``, ``And``, ``Or``, ``Not``
* a SQLAlchemy boolean expression, passed through untouched

Predicates combine with ``&``, ``|`` and ``~``.
"""

import itertools
from collections.abc import Mapping
from typing import Any

import sqlalchemy as sa
from sqlalchemy.sql.elements import Grouping

from recordstore.core.errors import SchemaError
from recordstore.db.schema import EntityDescriptor

_bind_names = itertools.count()

_EXPANDING = (list, tuple, set, frozenset)


def raw_clause(sql: str, params: tuple | list = ()) -> sa.TextClause:
    """Turn a clause with ``?`` placeholders into a bound ``text()`` construct.

    Placeholders inside quoted literals are left alone. Sequence parameters
    are expanded, so ``"id IN ?"`` with a list renders ``id IN (?, ?, ...)``.
    Colons are escaped so casts like ``::int`` survive.
    """
    values = iter(params)
    pieces: list[str] = []
    binds: list[sa.BindParameter] = []
    quote: str | None = None
    for ch in sql:
        if ch == ":":
            pieces.append("\\:")
            continue
        if quote:
            pieces.append(ch)
            if ch == quote:
                quote = None
            continue
        if ch in ("'", '"'):
            quote = ch
            pieces.append(ch)
        elif ch == "?":
            try:
                value = next(values)
            except StopIteration:
                raise SchemaError(f"not enough parameters for clause {sql!r}") from None
            name = f"raw_{next(_bind_names)}"
            expanding = isinstance(value, _EXPANDING)
            binds.append(sa.bindparam(name, list(value) if expanding else value, expanding=expanding))
            pieces.append(f":{name}")
        else:
            pieces.append(ch)
    if next(values, _Missing) is not _Missing:
        raise SchemaError(f"too many parameters for clause {sql!r}")
    return sa.text("".join(pieces)).bindparams(*binds)


class _Missing:
    pass


def _equals(column: sa.ColumnElement, value: Any) -> sa.ColumnElement:
    if value is None:
        return column.is_(None)
    if isinstance(value, _EXPANDING):
        return column.in_(list(value))
    return column == value


class Predicate:
    """Base class for structured filters."""

    def compile(self, descriptor: EntityDescriptor, source: sa.FromClause | None = None) -> sa.ColumnElement:
        raise NotImplementedError

    def __and__(self, other: "Predicate") -> "And":
        return And(self, other)

    def __or__(self, other: "Predicate") -> "Or":
        return Or(self, other)

    def __invert__(self) -> "Not":
        return Not(self)


class Raw(Predicate):
    """Free-form SQL condition with positional ``?`` parameters."""

    def __init__(self, clause: str, *params: Any):
        self.clause = clause
        self.params = params

    def __repr__(self) -> str:
        return f"Raw({self.clause!r}, {', '.join(map(repr, self.params))})"

    def compile(self, descriptor, source=None):
        return raw_clause(self.clause, self.params)


class Eq(Predicate):
    """Equality on entity attribute paths, e.g. ``Eq({"name.first_name": "Budi"})`` or ``Eq(id="1")``."""

    def __init__(self, attrs: Mapping[str, Any] | None = None, **kwargs: Any):
        self.attrs = {**(attrs or {}), **kwargs}

    def compile(self, descriptor, source=None):
        return sa.and_(
            sa.true(),
            *(
                _equals(descriptor.column(descriptor.field_for_attr(attr).column, source), value)
                for attr, value in self.attrs.items()
            ),
        )


class Example(Predicate):
    """Query by example: every non-zero field of ``entity`` must match.

    Fields with a zero value ("" / 0 / None) are treated as "not provided",
    so an example cannot ask for an empty last name; use a dict for that.
    """

    def __init__(self, entity: Any):
        self.entity = entity

    def compile(self, descriptor, source=None):
        if not isinstance(self.entity, descriptor.model):
            raise SchemaError(f"example {type(self.entity).__name__} does not match {descriptor.name}")
        values = descriptor.values(self.entity, omit_zero=True)
        return sa.and_(sa.true(), *(_equals(descriptor.column(c, source), v) for c, v in values.items()))


class And(Predicate):
    def __init__(self, *predicates: Any):
        self.predicates = predicates

    def compile(self, descriptor, source=None):
        return sa.and_(sa.true(), *(compile_where(p, descriptor, source) for p in self.predicates))


class Or(Predicate):
    def __init__(self, *predicates: Any):
        self.predicates = predicates

    def compile(self, descriptor, source=None):
        return sa.or_(sa.false(), *(compile_where(p, descriptor, source) for p in self.predicates))


class Not(Predicate):
    def __init__(self, predicate: Any):
        self.predicate = predicate

    def compile(self, descriptor, source=None):
        clause = compile_where(self.predicate, descriptor, source)
        if isinstance(clause, sa.TextClause):
            # text() is not a column expression; parenthesize it so it can be negated
            clause = Grouping(clause)
        return sa.not_(clause)


def compile_where(where: Any, descriptor: EntityDescriptor, source: sa.FromClause | None = None) -> sa.ColumnElement:
    """Compile any accepted ``where`` form into a SQLAlchemy boolean expression."""
    if where is None:
        return sa.true()
    if isinstance(where, Predicate):
        return where.compile(descriptor, source)
    if isinstance(where, Mapping):
        return sa.and_(sa.true(), *(_equals(descriptor.column(c, source), v) for c, v in where.items()))
    if isinstance(where, sa.ClauseElement):
        return where
    raise SchemaError(f"unsupported predicate {where!r}")


def has_condition(where: Any) -> bool:
    """False for ``None`` and empty maps, the forms that match every row."""
    if where is None:
        return False
    if isinstance(where, Mapping):
        return bool(where)
    return True
