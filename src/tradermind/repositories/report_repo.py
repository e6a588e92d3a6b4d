"""Report repository."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tradermind.db.models.report import UserReportRow
from tradermind.repositories.base import BaseRepository


class ReportRepository(BaseRepository):
    def __init__(self, session: AsyncSession):
        super().__init__(session, UserReportRow)

    async def get(self, report_id: str) -> UserReportRow | None:
        return await self.get_by_id("report_id", report_id)

    async def latest_for_user(self, user_id: str) -> UserReportRow | None:
        stmt = (
            select(UserReportRow)
            .where(UserReportRow.user_id == user_id)
            .order_by(UserReportRow.created_at.desc())
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_page_for_user(self, user_id: str, page: int, limit: int) -> list[UserReportRow]:
        stmt = (
            select(UserReportRow)
            .where(UserReportRow.user_id == user_id)
            .order_by(UserReportRow.created_at.desc())
            .limit(limit)
            .offset((page - 1) * limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
