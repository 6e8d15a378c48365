"""
GuestBook model - only exercised through schema migration.
"""

from dataclasses import dataclass
from datetime import datetime

import sqlalchemy as sa

from recordstore.db.base import metadata
from recordstore.db.schema import AutoStamp, EntityDescriptor, FieldSpec

guest_books = sa.Table(
    "guest_books",
    metadata,
    sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
    sa.Column("name", sa.String(100), nullable=False),
    sa.Column("email", sa.String(100), nullable=False),
    sa.Column("message", sa.Text, nullable=True),
    sa.Column("created_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
    sa.Column("updated_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
)


@dataclass
class GuestBook:
    id: int = 0
    name: str = ""
    email: str = ""
    message: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None


guest_book_descriptor = EntityDescriptor(
    GuestBook,
    guest_books,
    [
        FieldSpec.of("id"),
        FieldSpec.of("name"),
        FieldSpec.of("email"),
        FieldSpec.of("message"),
        FieldSpec.of("created_at", stamp=AutoStamp.CREATED),
        FieldSpec.of("updated_at", stamp=AutoStamp.UPDATED),
    ],
)
