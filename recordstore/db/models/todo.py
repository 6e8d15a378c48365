"""
Todo model - soft-deleted through its ``deleted_at`` tombstone.
"""

from dataclasses import dataclass
from datetime import datetime

import sqlalchemy as sa

from recordstore.db.base import metadata
from recordstore.db.schema import AutoStamp, EntityDescriptor, FieldSpec

todos = sa.Table(
    "todos",
    metadata,
    sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
    sa.Column("user_id", sa.String(100), nullable=False),
    sa.Column("title", sa.String(100), nullable=False),
    sa.Column("description", sa.Text, nullable=True),
    sa.Column("created_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
    sa.Column("updated_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
    sa.Column("deleted_at", sa.DateTime, nullable=True, index=True),
)


@dataclass
class Todo:
    id: int = 0
    user_id: str = ""
    title: str = ""
    description: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None
    deleted_at: datetime | None = None


todo_descriptor = EntityDescriptor(
    Todo,
    todos,
    [
        FieldSpec.of("id"),
        FieldSpec.of("user_id"),
        FieldSpec.of("title"),
        FieldSpec.of("description"),
        FieldSpec.of("created_at", stamp=AutoStamp.CREATED),
        FieldSpec.of("updated_at", stamp=AutoStamp.UPDATED),
        FieldSpec.of("deleted_at"),
    ],
    tombstone="deleted_at",
)
