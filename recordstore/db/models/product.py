"""
Product model and the user/product "like" join table.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING

import sqlalchemy as sa

from recordstore.db.base import metadata
from recordstore.db.schema import AutoStamp, EntityDescriptor, FieldSpec

if TYPE_CHECKING:
    from recordstore.db.models.user import User


products = sa.Table(
    "products",
    metadata,
    sa.Column("id", sa.String(100), primary_key=True),
    sa.Column("name", sa.String(100), nullable=False),
    sa.Column("price", sa.BigInteger, nullable=False, server_default="0"),
    sa.Column("created_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
    sa.Column("updated_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
)

# Composite primary key keeps (user, product) pairs unique
user_like_product = sa.Table(
    "user_like_product",
    metadata,
    sa.Column("user_id", sa.String(100), sa.ForeignKey("users.id"), primary_key=True),
    sa.Column("product_id", sa.String(100), sa.ForeignKey("products.id"), primary_key=True),
)


@dataclass
class Product:
    id: str = ""
    name: str = ""
    price: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None

    liked_by_users: "list[User]" = field(default_factory=list)


product_descriptor = EntityDescriptor(
    Product,
    products,
    [
        FieldSpec.of("id"),
        FieldSpec.of("name"),
        FieldSpec.of("price"),
        FieldSpec.of("created_at", stamp=AutoStamp.CREATED),
        FieldSpec.of("updated_at", stamp=AutoStamp.UPDATED),
    ],
)
