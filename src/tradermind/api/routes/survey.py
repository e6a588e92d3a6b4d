"""Survey question management and questionnaire responses."""

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from tradermind.dependencies import CurrentUser, RequireAdmin, get_db
from tradermind.errors.exceptions import NotFoundError, ValidationError
from tradermind.models.survey import QuestionIn, QuestionOut, ResponseSubmission
from tradermind.repositories.survey_repo import SurveyQuestionRepository, SurveyResponseRepository
from tradermind.services.id_generator import generate_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/survey", tags=["Survey"])


# ── Questions ──────────────────────────────────────────────────────────────────

@router.post("/questions", status_code=201, dependencies=[RequireAdmin])
async def create_question(body: QuestionIn, db: AsyncSession = Depends(get_db)) -> dict:
    repo = SurveyQuestionRepository(db)
    question = await repo.create_with_options(
        body.options,
        title=body.title,
        question_type=body.question_type,
        is_required=body.is_required,
        sort_order=body.sort_order,
    )
    await db.commit()
    return {"question_id": question.question_id, "message": "问题创建成功"}


@router.get("/questions")
async def list_questions(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
) -> dict:
    repo = SurveyQuestionRepository(db)
    total = await repo.count()
    questions = await repo.list_page(page, limit)
    return {
        "data": [QuestionOut.model_validate(q).model_dump(mode="json") for q in questions],
        "pagination": {"page": page, "limit": limit, "total": total},
    }


@router.get("/questions/{question_id}", response_model=QuestionOut)
async def get_question(question_id: str, db: AsyncSession = Depends(get_db)):
    question = await SurveyQuestionRepository(db).get(question_id)
    if not question:
        raise NotFoundError("Question", question_id)
    return QuestionOut.model_validate(question)


@router.put("/questions/{question_id}", dependencies=[RequireAdmin])
async def update_question(question_id: str, body: QuestionIn, db: AsyncSession = Depends(get_db)) -> dict:
    repo = SurveyQuestionRepository(db)
    question = await repo.get(question_id)
    if not question:
        raise NotFoundError("Question", question_id)

    await repo.update(
        question,
        title=body.title,
        question_type=body.question_type,
        is_required=body.is_required,
        sort_order=body.sort_order,
    )
    await repo.replace_options(question, body.options)
    await db.commit()
    return {"message": "问题更新成功"}


@router.delete("/questions/{question_id}", dependencies=[RequireAdmin])
async def delete_question(question_id: str, db: AsyncSession = Depends(get_db)) -> dict:
    repo = SurveyQuestionRepository(db)
    question = await repo.get(question_id)
    if not question:
        raise NotFoundError("Question", question_id)
    await repo.delete(question)
    await db.commit()
    return {"message": "问题删除成功"}


# ── Responses ──────────────────────────────────────────────────────────────────

@router.post("/responses", status_code=201)
async def submit_responses(
    body: ResponseSubmission,
    current: CurrentUser,
    db: AsyncSession = Depends(get_db),
) -> dict:
    wanted = {item.question_id for item in body.responses}
    allowed = await SurveyQuestionRepository(db).option_ids_by_question(wanted)
    unknown = sorted(wanted - allowed.keys())
    # Selected options must belong to the question they answer
    foreign = sorted(
        {
            option_id
            for item in body.responses
            if item.question_id in allowed
            for option_id in item.selected_option_ids or []
            if option_id not in allowed[item.question_id]
        }
    )
    if unknown or foreign:
        raise ValidationError(
            "无效的回答数据",
            details={"unknown_question_ids": unknown, "invalid_option_ids": foreign},
        )

    repo = SurveyResponseRepository(db)
    for item in body.responses:
        await repo.create(
            response_id=generate_id("resp_"),
            question_id=item.question_id,
            user_id=current["sub"],
            response_text=item.response_text or None,
            selected_option_ids=item.selected_option_ids or None,
            answer_duration=item.answer_duration,
        )
    await db.commit()
    logger.info("Stored %d survey responses for %s", len(body.responses), current["sub"])
    return {"message": "问卷提交成功", "count": len(body.responses)}


@router.get("/responses")
async def list_responses(current: CurrentUser, db: AsyncSession = Depends(get_db)) -> list[dict]:
    answers = await SurveyResponseRepository(db).list_answers_for_user(current["sub"])
    return [
        {
            "question_id": a.question_id,
            "question_title": a.question_title,
            "question_type": a.question_type,
            "response_text": a.answer_text,
            "selected_option_ids": list(a.selected_option_ids),
            "selected_options": list(a.selected_options),
            "answer_duration": a.answer_duration_seconds,
        }
        for a in answers
    ]
