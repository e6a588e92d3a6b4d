"""Pydantic models for survey questions and responses."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

QuestionType = Literal["text", "single", "multiple"]


# ── Request models ─────────────────────────────────────────────────────────────

class OptionIn(BaseModel):
    content: str = Field(min_length=1)
    sort_order: int | None = None


class QuestionIn(BaseModel):
    title: str = Field(min_length=1)
    question_type: QuestionType
    is_required: bool = False
    sort_order: int = 0
    options: list[OptionIn] = Field(default_factory=list)


class ResponseItem(BaseModel):
    question_id: str
    response_text: str | None = None
    selected_option_ids: list[str] | None = None
    answer_duration: int = Field(default=0, ge=0)


class ResponseSubmission(BaseModel):
    responses: list[ResponseItem] = Field(min_length=1)


# ── Response models ────────────────────────────────────────────────────────────

class OptionOut(BaseModel):
    option_id: str
    content: str
    sort_order: int

    model_config = {"from_attributes": True}


class QuestionOut(BaseModel):
    question_id: str
    title: str
    question_type: str
    is_required: bool
    sort_order: int
    options: list[OptionOut]
    created_at: datetime

    model_config = {"from_attributes": True}


# ── Pipeline input ─────────────────────────────────────────────────────────────

class QuestionAnswer(BaseModel):
    """One answered question for one subject, as fed to report generation."""

    model_config = ConfigDict(frozen=True)

    question_id: str
    question_title: str
    question_type: str
    answer_text: str | None = None
    selected_option_ids: tuple[str, ...] = ()
    selected_options: tuple[str, ...] = ()
    answer_duration_seconds: int = 0

    @property
    def display_answer(self) -> str:
        """Text answer, else the chosen option contents, else the unanswered marker."""
        if self.answer_text:
            return self.answer_text
        if self.selected_options:
            return ", ".join(self.selected_options)
        return "未回答"
