"""Relational record store over SQLAlchemy's async engine."""

from recordstore.config import Settings, get_settings
from recordstore.core.errors import (
    ConnectionFailure,
    ConstraintViolation,
    MissingCondition,
    NotFound,
    OperationTimeout,
    SchemaError,
    StoreError,
    TransactionError,
    ValidationAbort,
)
from recordstore.db.associations import Association
from recordstore.db.loading import ALL, Join, Preload
from recordstore.db.predicates import And, Eq, Example, Not, Or, Raw
from recordstore.db.schema import (
    AutoStamp,
    EntityDescriptor,
    FieldSpec,
    Patch,
    Registry,
    Relation,
    RelationKind,
    ZeroPolicy,
)
from recordstore.db.session import create_engine, create_store, store_lifespan
from recordstore.db.store import RecordStore
from recordstore.db.transaction import Transaction, TxState

__version__ = "1.0.0"

__all__ = [
    "ALL",
    "And",
    "Association",
    "AutoStamp",
    "ConnectionFailure",
    "ConstraintViolation",
    "EntityDescriptor",
    "Eq",
    "Example",
    "FieldSpec",
    "Join",
    "MissingCondition",
    "Not",
    "NotFound",
    "OperationTimeout",
    "Or",
    "Patch",
    "Preload",
    "Raw",
    "RecordStore",
    "Registry",
    "Relation",
    "RelationKind",
    "SchemaError",
    "Settings",
    "StoreError",
    "Transaction",
    "TransactionError",
    "TxState",
    "ValidationAbort",
    "ZeroPolicy",
    "create_engine",
    "create_store",
    "get_settings",
    "store_lifespan",
]
