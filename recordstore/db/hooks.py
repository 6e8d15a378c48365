"""
Lifecycle hook dispatch.

Hooks are plain methods on the entity class (``before_create(self, scope)``
and friends), sync or async. A hook that raises aborts the operation.
"""

import inspect
import logging
from typing import Any

from recordstore.core.errors import StoreError, ValidationAbort

logger = logging.getLogger(__name__)

BEFORE_CREATE = ("before_save", "before_create")
AFTER_CREATE = ("after_create", "after_save")
BEFORE_UPDATE = ("before_save", "before_update")
AFTER_UPDATE = ("after_update", "after_save")
BEFORE_DELETE = ("before_delete",)
AFTER_DELETE = ("after_delete",)
AFTER_FIND = ("after_find",)


async def run_hooks(names: tuple[str, ...], entity: Any, scope: Any) -> None:
    """Call each named hook the entity defines, in order."""
    for name in names:
        hook = getattr(entity, name, None)
        if hook is None:
            continue
        try:
            result = hook(scope)
            if inspect.isawaitable(result):
                await result
        except ValidationAbort:
            raise
        except StoreError:
            # Store errors from writes inside the hook keep their own type
            raise
        except Exception as exc:
            logger.debug("%s.%s rejected the operation: %s", type(entity).__name__, name, exc)
            raise ValidationAbort(f"{type(entity).__name__}.{name}: {exc}") from exc
