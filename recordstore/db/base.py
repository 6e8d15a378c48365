"""
Shared SQLAlchemy metadata.
Challenge: Single place for table definitions and migrations.
"""

import sqlalchemy as sa

# Deterministic constraint names so Alembic revisions stay stable across backends
NAMING_CONVENTION = {
    "ix": "ix_%(table_name)s_%(column_0_name)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

metadata = sa.MetaData(naming_convention=NAMING_CONVENTION)
