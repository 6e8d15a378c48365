"""
User log repository - append-only audit entries.
"""

from recordstore.db.models import UserLog
from recordstore.db.repositories.base_repository import BaseRepository


class UserLogRepository(BaseRepository[UserLog]):
    def __init__(self, scope):
        super().__init__(scope, UserLog)

    async def record(self, user_id: str, action: str) -> UserLog:
        """Append an entry; the key and millisecond stamps are filled in on insert."""
        return await self.add(UserLog(user_id=user_id, action=action))

    async def for_user(self, user_id: str) -> list[UserLog]:
        return await self.scope.find_all(UserLog, {"user_id": user_id}, order_by="id")
