# Repository pattern: domain queries over the record store (SOLID - Dependency Inversion)

from recordstore.db.repositories.product_repository import ProductRepository
from recordstore.db.repositories.user_log_repository import UserLogRepository
from recordstore.db.repositories.user_repository import UserRepository
from recordstore.db.repositories.wallet_repository import WalletRepository

__all__ = ["UserRepository", "WalletRepository", "ProductRepository", "UserLogRepository"]
