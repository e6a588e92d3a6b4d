"""Report generation, listing, download and deletion."""

import logging
from urllib.parse import quote

from fastapi import APIRouter, Depends, Query
from fastapi.responses import FileResponse
from sqlalchemy.ext.asyncio import AsyncSession

from tradermind.db.models.report import UserReportRow
from tradermind.dependencies import CurrentUser, Pipeline, get_db
from tradermind.errors.exceptions import AuthorizationError, ConflictError, NotFoundError
from tradermind.models.common import Pagination
from tradermind.models.report import ReportDetail, ReportGenerated, ReportPage, ReportSummary
from tradermind.repositories.report_repo import ReportRepository
from tradermind.services.report_pipeline import download_url

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/report", tags=["Reports"])


async def _owned_report(db: AsyncSession, report_id: str, current: dict) -> UserReportRow:
    """Load a report the caller may access: its owner, or any admin."""
    report = await ReportRepository(db).get(report_id)
    if not report:
        raise NotFoundError("Report", report_id)
    if report.user_id != current["sub"] and "admin" not in current.get("roles", []):
        raise AuthorizationError("报告不属于当前用户")
    return report


@router.post("", response_model=ReportGenerated, response_model_exclude_none=True)
async def generate_report(current: CurrentUser, pipeline: Pipeline):
    """Run the analysis pipeline for the caller and return where to download the PDF."""
    result = await pipeline.generate(current["sub"])
    return ReportGenerated(
        report_id=result.report_id,
        report_name=result.report_name,
        download_url=result.download_url,
        warnings=result.warnings or None,
    )


@router.get("", response_model=ReportPage)
async def list_reports(
    current: CurrentUser,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    repo = ReportRepository(db)
    total = await repo.count(user_id=current["sub"])
    reports = await repo.list_page_for_user(current["sub"], page, limit)
    return ReportPage(
        data=[ReportSummary.model_validate(r) for r in reports],
        pagination=Pagination(page=page, limit=limit, total=total),
    )


@router.get("/{report_id}", response_model=ReportDetail)
async def get_report(report_id: str, current: CurrentUser, db: AsyncSession = Depends(get_db)):
    report = await _owned_report(db, report_id, current)
    detail = ReportDetail.model_validate(report)
    if report.status == "ready":
        detail.download_url = download_url(report.report_id)
    return detail


@router.get("/{report_id}/download")
async def download_report(
    report_id: str,
    current: CurrentUser,
    pipeline: Pipeline,
    db: AsyncSession = Depends(get_db),
):
    report = await _owned_report(db, report_id, current)
    if report.status != "ready":
        raise NotFoundError("Report file", report_id)

    path = pipeline.artifact_file(report.report_path)
    if not path.is_file():
        logger.warning("Report %s is ready but %s is missing", report_id, path)
        raise NotFoundError("Report file", report_id)

    filename = quote(f"{report.report_name}.pdf", safe="")
    return FileResponse(
        path,
        media_type="application/pdf",
        headers={"Content-Disposition": f"attachment; filename=\"{filename}\"; filename*=UTF-8''{filename}"},
    )


@router.delete("/{report_id}")
async def delete_report(
    report_id: str,
    current: CurrentUser,
    pipeline: Pipeline,
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Remove the record, then its artifact file. Reports still generating are refused."""
    report = await _owned_report(db, report_id, current)
    if report.status == "pending":
        raise ConflictError("报告正在生成中，无法删除")
    path = pipeline.artifact_file(report.report_path)

    await ReportRepository(db).delete(report)
    await db.commit()

    path.unlink(missing_ok=True)
    logger.info("Deleted report %s", report_id)
    return {"message": "报告删除成功"}
