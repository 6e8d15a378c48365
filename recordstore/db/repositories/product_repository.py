"""
Product repository - the user/product "like" many-to-many.
"""

from recordstore.db.models import PRODUCT_LIKED_BY_USERS, USER_LIKED_PRODUCTS, Product, User
from recordstore.db.repositories.base_repository import BaseRepository


class ProductRepository(BaseRepository[Product]):
    def __init__(self, scope):
        super().__init__(scope, Product)

    async def like(self, user: User, *products: Product) -> int:
        """Record likes; unknown products are created, existing pairs are kept."""
        return await self.scope.association(user, USER_LIKED_PRODUCTS).append(*products)

    async def unlike(self, user: User, *products: Product) -> int:
        """Remove like rows only; the products stay."""
        return await self.scope.association(user, USER_LIKED_PRODUCTS).delete(*products)

    async def likers(self, product: Product) -> list[User]:
        return await self.scope.association(product, PRODUCT_LIKED_BY_USERS).find()
