"""SQLAlchemy ORM models - import all to register with Base.metadata."""

from tradermind.db.models.user import UserRow
from tradermind.db.models.survey import (
    SurveyQuestionRow,
    SurveyQuestionOptionRow,
    SurveyResponseRow,
)
from tradermind.db.models.report import UserReportRow

__all__ = [
    "UserRow",
    "SurveyQuestionRow",
    "SurveyQuestionOptionRow",
    "SurveyResponseRow",
    "UserReportRow",
]
