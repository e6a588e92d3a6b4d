"""Repository for User records."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tradermind.db.base import utcnow
from tradermind.db.models.user import UserRow
from tradermind.repositories.base import BaseRepository


class UserRepository(BaseRepository):
    def __init__(self, session: AsyncSession):
        super().__init__(session, UserRow)

    async def get(self, user_id: str) -> UserRow | None:
        return await self.get_by_id("user_id", user_id)

    async def get_by_username(self, username: str) -> UserRow | None:
        stmt = select(UserRow).where(UserRow.username == username)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def update_last_login(self, user: UserRow) -> None:
        user.last_login = utcnow()
        await self.session.flush()
