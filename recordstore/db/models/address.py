"""
Address model - free-text addresses, many per user.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING

import sqlalchemy as sa

from recordstore.db.base import metadata
from recordstore.db.schema import AutoStamp, EntityDescriptor, FieldSpec

if TYPE_CHECKING:
    from recordstore.db.models.user import User


addresses = sa.Table(
    "addresses",
    metadata,
    sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
    sa.Column("user_id", sa.String(100), sa.ForeignKey("users.id"), nullable=False, index=True),
    sa.Column("address", sa.String(255), nullable=False),
    sa.Column("created_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
    sa.Column("updated_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
)


@dataclass
class Address:
    id: int = 0
    user_id: str = ""
    address: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None

    user: "User | None" = None


address_descriptor = EntityDescriptor(
    Address,
    addresses,
    [
        FieldSpec.of("id"),
        FieldSpec.of("user_id"),
        FieldSpec.of("address"),
        FieldSpec.of("created_at", stamp=AutoStamp.CREATED),
        FieldSpec.of("updated_at", stamp=AutoStamp.UPDATED),
    ],
)
