"""User report table (one row per report request)."""

from sqlalchemy import ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from tradermind.db.base import Base, TimestampMixin


class UserReportRow(Base, TimestampMixin):
    __tablename__ = "user_reports"

    report_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(128), ForeignKey("users.user_id"), nullable=False, index=True)
    report_name: Mapped[str] = mapped_column(String(300), nullable=False)
    # Relative to settings.storage_dir; never re-derived after insert
    report_path: Mapped[str] = mapped_column(String(500), nullable=False, unique=True)
    report_summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    # pending -> ready | failed
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    error_code: Mapped[str | None] = mapped_column(String(50), nullable=True)
