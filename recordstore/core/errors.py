"""
Store error taxonomy.

Callers catch these instead of driver exceptions. The original driver error
is always kept as ``__cause__`` so nothing is lost in translation.
"""

import asyncio
import logging

from sqlalchemy import exc as sa_exc

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Base class for every error raised by the record store."""


class ConnectionFailure(StoreError):
    """The backend could not be reached or dropped the connection. Retryable."""


class OperationTimeout(ConnectionFailure):
    """The operation exceeded its deadline and was aborted."""


class ConstraintViolation(StoreError):
    """Unique, foreign-key or not-null constraint breach. Not retryable."""


class NotFound(StoreError):
    """A single-row fetch matched zero rows."""


class ValidationAbort(StoreError):
    """A lifecycle hook rejected the operation."""


class TransactionError(StoreError):
    """Invalid use of a transaction (terminal state, lock outside a transaction, ...)."""


class SchemaError(StoreError):
    """Unknown model, relation or column, or an invalid predicate."""


class MissingCondition(StoreError):
    """An update or delete without a condition would touch every row."""


_CONNECTION_ERRORS = (
    sa_exc.InterfaceError,
    sa_exc.DisconnectionError,
    sa_exc.TimeoutError,
)


def _is_connection_error(error: BaseException) -> bool:
    """True when the failure is about reaching the backend, not the statement."""
    if isinstance(error, _CONNECTION_ERRORS):
        return True
    if isinstance(error, sa_exc.DBAPIError):
        if error.connection_invalidated:
            return True
        # OperationalError also covers missing tables and bad DDL on some drivers
        return isinstance(error.orig, (OSError, ConnectionError))
    return False


def translate(error: BaseException, operation: str) -> StoreError | None:
    """Map a driver/SQLAlchemy exception onto the store taxonomy.

    Returns None when the error is not a database error (it should then
    propagate unchanged).
    """
    if isinstance(error, StoreError):
        return error
    if isinstance(error, sa_exc.IntegrityError):
        translated: StoreError = ConstraintViolation(f"{operation}: {error.orig}")
    elif _is_connection_error(error):
        detail = getattr(error, "orig", None) or error
        translated = ConnectionFailure(f"{operation}: {detail}")
    elif isinstance(error, (asyncio.TimeoutError, TimeoutError)):
        translated = OperationTimeout(f"{operation}: deadline exceeded")
    elif isinstance(error, sa_exc.DBAPIError):
        # Anything else the driver raised (syntax errors, bad casts) is a caller bug
        # surfaced verbatim through the generic base class.
        translated = StoreError(f"{operation}: {error.orig}")
    else:
        return None
    logger.warning("%s failed: %s", operation, translated)
    translated.__cause__ = error
    return translated
