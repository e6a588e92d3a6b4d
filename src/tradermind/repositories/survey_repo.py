"""Survey question and response repositories."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tradermind.db.models.survey import (
    SurveyQuestionOptionRow,
    SurveyQuestionRow,
    SurveyResponseRow,
)
from tradermind.models.survey import OptionIn, QuestionAnswer
from tradermind.repositories.base import BaseRepository
from tradermind.services.id_generator import generate_id


def option_rows(options: list[OptionIn]) -> list[SurveyQuestionOptionRow]:
    return [
        SurveyQuestionOptionRow(
            option_id=generate_id("opt_"),
            content=option.content,
            sort_order=option.sort_order if option.sort_order is not None else index,
        )
        for index, option in enumerate(options)
    ]


class SurveyQuestionRepository(BaseRepository):
    def __init__(self, session: AsyncSession):
        super().__init__(session, SurveyQuestionRow)

    async def get(self, question_id: str) -> SurveyQuestionRow | None:
        return await self.get_by_id("question_id", question_id)

    async def list_page(self, page: int, limit: int) -> list[SurveyQuestionRow]:
        stmt = (
            select(SurveyQuestionRow)
            .order_by(SurveyQuestionRow.sort_order, SurveyQuestionRow.created_at)
            .limit(limit)
            .offset((page - 1) * limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def option_ids_by_question(self, question_ids: set[str]) -> dict[str, set[str]]:
        """Map each existing question id to its option ids; unknown ids are absent."""
        if not question_ids:
            return {}
        stmt = (
            select(SurveyQuestionRow.question_id, SurveyQuestionOptionRow.option_id)
            .outerjoin(
                SurveyQuestionOptionRow,
                SurveyQuestionOptionRow.question_id == SurveyQuestionRow.question_id,
            )
            .where(SurveyQuestionRow.question_id.in_(question_ids))
        )
        result = await self.session.execute(stmt)
        options: dict[str, set[str]] = {}
        for question_id, option_id in result.all():
            allowed = options.setdefault(question_id, set())
            if option_id is not None:
                allowed.add(option_id)
        return options

    async def create_with_options(self, options: list[OptionIn], **fields) -> SurveyQuestionRow:
        return await self.create(question_id=generate_id("q_"), options=option_rows(options), **fields)

    async def replace_options(self, question: SurveyQuestionRow, options: list[OptionIn]) -> None:
        """Drop the question's options and insert the given ones in order."""
        question.options.clear()
        await self.session.flush()
        question.options.extend(option_rows(options))
        await self.session.flush()


class SurveyResponseRepository(BaseRepository):
    def __init__(self, session: AsyncSession):
        super().__init__(session, SurveyResponseRow)

    async def _rows_for_user(self, user_id: str) -> list[tuple[SurveyResponseRow, SurveyQuestionRow]]:
        stmt = (
            select(SurveyResponseRow, SurveyQuestionRow)
            .join(SurveyQuestionRow, SurveyResponseRow.question_id == SurveyQuestionRow.question_id)
            .where(SurveyResponseRow.user_id == user_id)
            .order_by(
                SurveyQuestionRow.sort_order,
                SurveyQuestionRow.created_at,
                SurveyResponseRow.created_at,
            )
        )
        result = await self.session.execute(stmt)
        return [(row[0], row[1]) for row in result.all()]

    async def _option_contents(self, option_ids: set[str]) -> dict[str, str]:
        if not option_ids:
            return {}
        stmt = select(SurveyQuestionOptionRow).where(SurveyQuestionOptionRow.option_id.in_(option_ids))
        result = await self.session.execute(stmt)
        return {opt.option_id: opt.content for opt in result.scalars().all()}

    async def list_answers_for_user(self, user_id: str) -> list[QuestionAnswer]:
        """Return the subject's answers joined with question and option text, in survey order."""
        rows = await self._rows_for_user(user_id)
        wanted = {oid for resp, _ in rows for oid in (resp.selected_option_ids or [])}
        contents = await self._option_contents(wanted)

        answers = []
        for resp, question in rows:
            option_ids = tuple(resp.selected_option_ids or ())
            answers.append(
                QuestionAnswer(
                    question_id=question.question_id,
                    question_title=question.title,
                    question_type=question.question_type,
                    answer_text=resp.response_text,
                    selected_option_ids=option_ids,
                    selected_options=tuple(contents[oid] for oid in option_ids if oid in contents),
                    answer_duration_seconds=resp.answer_duration or 0,
                )
            )
        return answers
