"""
User repository - encapsulates all user data access (SOLID: Single Responsibility).
Challenge: Keep queries in one place for optimization and reuse; avoid N+1.
"""

from recordstore.db.loading import ALL, Join, Preload
from recordstore.db.models import USER_ADDRESSES, USER_LIKED_PRODUCTS, USER_WALLET, User
from recordstore.db.predicates import Eq, Raw
from recordstore.db.repositories.base_repository import BaseRepository


class UserRepository(BaseRepository[User]):
    """User-specific queries. Extends base CRUD with domain logic."""

    def __init__(self, scope):
        super().__init__(scope, User)

    async def get_with_wallet(self, id: str) -> User | None:
        """User with its wallet preloaded (one extra query)."""
        return await self.get_by_id(id, preload=[USER_WALLET])

    async def get_with_relations(self, id: str) -> User | None:
        """User with wallet, addresses and liked products preloaded."""
        return await self.get_by_id(id, preload=[ALL])

    async def list_by_first_name(self, first_name: str) -> list[User]:
        return await self.scope.find_all(User, Eq({"name.first_name": first_name}), order_by="id")

    async def list_with_wallet_joined(self, min_balance: int = 0) -> list[User]:
        """Users whose wallet balance exceeds ``min_balance``, wallet joined in the same query."""
        return await self.scope.find_all(
            User,
            Raw("wallet.balance > ?", min_balance),
            joins=[Join(USER_WALLET, inner=True)],
            order_by="users.id",
        )

    async def list_with_addresses(self, *, skip: int = 0, limit: int = 20) -> list[User]:
        """Paginated users with their addresses loaded in one extra IN query."""
        return await self.get_many(skip=skip, limit=limit, preload=[Preload(USER_ADDRESSES)])

    async def liked_products(self, user: User) -> list:
        return await self.scope.association(user, USER_LIKED_PRODUCTS).find()
