"""
Wallet model - one per user, belongs to its owner.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING

import sqlalchemy as sa

from recordstore.db.base import metadata
from recordstore.db.schema import AutoStamp, EntityDescriptor, FieldSpec

if TYPE_CHECKING:
    from recordstore.db.models.user import User


wallets = sa.Table(
    "wallets",
    metadata,
    sa.Column("id", sa.String(100), primary_key=True),
    sa.Column("user_id", sa.String(100), sa.ForeignKey("users.id"), nullable=False, index=True),
    sa.Column("balance", sa.BigInteger, nullable=False, server_default="0"),
    sa.Column("created_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
    sa.Column("updated_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
)


@dataclass
class Wallet:
    id: str = ""
    user_id: str = ""
    balance: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None

    user: "User | None" = None

    def __repr__(self) -> str:
        return f"<Wallet(id={self.id}, user_id={self.user_id}, balance={self.balance})>"


wallet_descriptor = EntityDescriptor(
    Wallet,
    wallets,
    [
        FieldSpec.of("id"),
        FieldSpec.of("user_id"),
        FieldSpec.of("balance"),
        FieldSpec.of("created_at", stamp=AutoStamp.CREATED),
        FieldSpec.of("updated_at", stamp=AutoStamp.UPDATED),
    ],
)
