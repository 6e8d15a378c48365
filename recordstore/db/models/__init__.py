"""Entity models, their relations and the registry that ties them together."""

from recordstore.db.models.address import Address, address_descriptor, addresses
from recordstore.db.models.guest_book import GuestBook, guest_book_descriptor, guest_books
from recordstore.db.models.product import Product, product_descriptor, products, user_like_product
from recordstore.db.models.sample import Sample, sample, sample_descriptor
from recordstore.db.models.todo import Todo, todo_descriptor, todos
from recordstore.db.models.user import Name, User, UserLog, user_descriptor, user_log_descriptor, user_logs, users
from recordstore.db.models.wallet import Wallet, wallet_descriptor, wallets
from recordstore.db.schema import Registry, Relation, RelationKind

USER_WALLET = Relation(User, "wallet", RelationKind.HAS_ONE, Wallet, foreign_key="user_id")
USER_ADDRESSES = Relation(User, "addresses", RelationKind.HAS_MANY, Address, foreign_key="user_id")
USER_LIKED_PRODUCTS = Relation(
    User,
    "liked_products",
    RelationKind.MANY_TO_MANY,
    Product,
    foreign_key="user_id",
    join_table=user_like_product,
    join_target_key="product_id",
)
WALLET_USER = Relation(Wallet, "user", RelationKind.BELONGS_TO, User, foreign_key="user_id")
ADDRESS_USER = Relation(Address, "user", RelationKind.BELONGS_TO, User, foreign_key="user_id")
PRODUCT_LIKED_BY_USERS = Relation(
    Product,
    "liked_by_users",
    RelationKind.MANY_TO_MANY,
    User,
    foreign_key="product_id",
    join_table=user_like_product,
    join_target_key="user_id",
)


def build_registry() -> Registry:
    """Registry with every entity and relation of the schema."""
    return Registry(
        [
            user_descriptor,
            wallet_descriptor,
            address_descriptor,
            product_descriptor,
            user_log_descriptor,
            todo_descriptor,
            guest_book_descriptor,
            sample_descriptor,
        ],
        [
            USER_WALLET,
            USER_ADDRESSES,
            USER_LIKED_PRODUCTS,
            WALLET_USER,
            ADDRESS_USER,
            PRODUCT_LIKED_BY_USERS,
        ],
    )


__all__ = [
    "Address",
    "GuestBook",
    "Name",
    "Product",
    "Sample",
    "Todo",
    "User",
    "UserLog",
    "Wallet",
    "USER_WALLET",
    "USER_ADDRESSES",
    "USER_LIKED_PRODUCTS",
    "WALLET_USER",
    "ADDRESS_USER",
    "PRODUCT_LIKED_BY_USERS",
    "build_registry",
    "addresses",
    "guest_books",
    "products",
    "sample",
    "todos",
    "user_like_product",
    "user_logs",
    "users",
    "wallets",
]
