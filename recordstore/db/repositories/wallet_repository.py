"""
Wallet repository - balance queries and aggregates.
Challenge: Push aggregation into the database instead of summing in Python.
"""

from typing import Any

from recordstore.db.models import WALLET_USER, Wallet
from recordstore.db.predicates import Raw
from recordstore.db.repositories.base_repository import BaseRepository


class WalletRepository(BaseRepository[Wallet]):
    """Wallet queries; owners joined when callers need them."""

    def __init__(self, scope):
        super().__init__(scope, Wallet)

    async def broke(self) -> list[Wallet]:
        """Wallets with a zero balance."""
        return await self.scope.find_all(Wallet, {"balance": 0}, order_by="id")

    async def sultan(self, threshold: int = 1_000_000) -> list[Wallet]:
        """Wallets holding more than ``threshold``, each with its owner joined."""
        return await self.scope.find_all(
            Wallet,
            Raw("wallets.balance > ?", threshold),
            joins=[WALLET_USER],
            order_by="wallets.id",
        )

    async def balance_summary(self) -> dict[str, Any]:
        """Total, min, max and average balance over every wallet."""
        return await self.scope.aggregate_one(
            Wallet,
            [
                "coalesce(sum(balance), 0) as total",
                "min(balance) as min_balance",
                "max(balance) as max_balance",
                "avg(balance) as avg_balance",
            ],
        )

    async def balance_by_user(self, *, minimum: int | None = None) -> list[dict[str, Any]]:
        """Summed balance per user id, optionally only groups above ``minimum``."""
        return await self.scope.aggregate(
            Wallet,
            ["wallets.user_id as user_id", "sum(wallets.balance) as total"],
            group_by="wallets.user_id",
            having=Raw("sum(wallets.balance) > ?", minimum) if minimum is not None else None,
            order_by="wallets.user_id",
        )
