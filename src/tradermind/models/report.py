"""Pydantic models for report responses."""

from datetime import datetime

from pydantic import BaseModel

from tradermind.models.common import Pagination


class ReportGenerated(BaseModel):
    message: str = "报告生成成功"
    report_id: str
    report_name: str
    download_url: str
    warnings: list[str] | None = None


class ReportSummary(BaseModel):
    report_id: str
    report_name: str
    report_summary: str | None
    status: str
    created_at: datetime

    model_config = {"from_attributes": True}


class ReportDetail(ReportSummary):
    user_id: str
    error_code: str | None
    download_url: str | None = None


class ReportPage(BaseModel):
    data: list[ReportSummary]
    pagination: Pagination
