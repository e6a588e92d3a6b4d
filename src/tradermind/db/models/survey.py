"""Survey question, option and response tables."""

from sqlalchemy import Boolean, ForeignKey, Integer, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tradermind.db.base import Base, TimestampMixin


class SurveyQuestionRow(Base, TimestampMixin):
    __tablename__ = "survey_questions"

    question_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    question_type: Mapped[str] = mapped_column(String(20), nullable=False)
    is_required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    options: Mapped[list["SurveyQuestionOptionRow"]] = relationship(
        back_populates="question",
        cascade="all, delete-orphan",
        order_by="SurveyQuestionOptionRow.sort_order",
        lazy="selectin",
    )


class SurveyQuestionOptionRow(Base, TimestampMixin):
    __tablename__ = "survey_question_options"

    option_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    question_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("survey_questions.question_id", ondelete="CASCADE"), nullable=False, index=True
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    question: Mapped[SurveyQuestionRow] = relationship(back_populates="options")


class SurveyResponseRow(Base, TimestampMixin):
    __tablename__ = "survey_responses"

    response_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    question_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("survey_questions.question_id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[str] = mapped_column(String(128), ForeignKey("users.user_id"), nullable=False, index=True)
    response_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    selected_option_ids: Mapped[list | None] = mapped_column(JSON, nullable=True)
    answer_duration: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
