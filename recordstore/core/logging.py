"""Logging setup for scripts and applications embedding the store."""

import logging

from recordstore.config import Settings

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    """Configure root logging from settings.

    SQL statements are only logged when ``settings.debug`` is on; the
    engine's own ``echo`` flag follows the same switch.
    """
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format=settings.log_format,
        handlers=[logging.StreamHandler()],
    )

    # Reduce noise from third-party libraries
    sql_level = logging.INFO if settings.debug else logging.WARNING
    logging.getLogger("sqlalchemy.engine").setLevel(sql_level)
    logging.getLogger("sqlalchemy.pool").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
    logging.getLogger("alembic").setLevel(logging.WARNING)

    logger.info("Logging configured at level %s", settings.log_level)
