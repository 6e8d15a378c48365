"""
User model - identity, composite name and the audit log entity.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING

import sqlalchemy as sa

from recordstore.db.base import metadata
from recordstore.db.schema import AutoStamp, EntityDescriptor, FieldSpec, ZeroPolicy

if TYPE_CHECKING:
    from recordstore.db.models.address import Address
    from recordstore.db.models.product import Product
    from recordstore.db.models.wallet import Wallet


users = sa.Table(
    "users",
    metadata,
    sa.Column("id", sa.String(100), primary_key=True),
    sa.Column("password", sa.String(255), nullable=False, server_default=""),
    sa.Column("first_name", sa.String(100), nullable=False, server_default=""),
    sa.Column("middle_name", sa.String(100), nullable=True),
    sa.Column("last_name", sa.String(100), nullable=True),
    sa.Column("created_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
    sa.Column("updated_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
)

user_logs = sa.Table(
    "user_logs",
    metadata,
    sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
    sa.Column("user_id", sa.String(100), nullable=False),
    sa.Column("action", sa.String(100), nullable=False),
    # Epoch milliseconds
    sa.Column("created_at", sa.BigInteger, nullable=False),
    sa.Column("updated_at", sa.BigInteger, nullable=False),
)


@dataclass
class Name:
    """Composite name stored as three columns on ``users``."""

    first_name: str = ""
    middle_name: str = ""
    last_name: str = ""


@dataclass
class User:
    """User entity. Relations are populated only when loaded explicitly."""

    id: str = ""
    password: str = ""
    name: Name = field(default_factory=Name)
    # Not a column; never persisted
    information: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None

    wallet: "Wallet | None" = None
    addresses: "list[Address]" = field(default_factory=list)
    liked_products: "list[Product]" = field(default_factory=list)

    def before_create(self, scope) -> None:
        """Generate an id for users created without one."""
        if not self.id:
            self.id = "user-" + datetime.now().strftime("%Y%m%d%H%M%S")

    def __repr__(self) -> str:
        return f"<User(id={self.id}, first_name={self.name.first_name})>"


@dataclass
class UserLog:
    """Append-only audit entry with an auto-incremented key."""

    id: int = 0
    user_id: str = ""
    action: str = ""
    created_at: int = 0
    updated_at: int = 0


user_descriptor = EntityDescriptor(
    User,
    users,
    [
        FieldSpec.of("id"),
        FieldSpec.of("password"),
        FieldSpec.of("first_name", "name.first_name"),
        FieldSpec.of("middle_name", "name.middle_name"),
        FieldSpec.of("last_name", "name.last_name"),
        FieldSpec.of("created_at", stamp=AutoStamp.CREATED),
        FieldSpec.of("updated_at", stamp=AutoStamp.UPDATED),
    ],
)

user_log_descriptor = EntityDescriptor(
    UserLog,
    user_logs,
    [
        FieldSpec.of("id"),
        FieldSpec.of("user_id"),
        FieldSpec.of("action", zero=ZeroPolicy.KEEP),
        FieldSpec.of("created_at", stamp=AutoStamp.CREATED_MILLIS),
        FieldSpec.of("updated_at", stamp=AutoStamp.UPDATED_MILLIS),
    ],
)
