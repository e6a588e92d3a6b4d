"""Questionnaire-to-PDF report generation.

Stages run strictly in order for one subject:

    eligibility -> reservation -> analysis -> summary -> rendering -> done

Each stage that touches the database opens its own short-lived session and
closes it before the next stage starts; no pool connection is held across
the analysis call or the PDF render.

A reservation that has been committed is kept when analysis or rendering
fails afterwards, including when the request is cancelled. The record is
marked ``failed`` with the error code (``CANCELLED`` for cancellation) and
any artifact written for it is removed, so it is never mistaken for a
finished report.
"""

import asyncio
import logging
import math
from dataclasses import dataclass, field
from pathlib import Path

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tradermind.config import Settings
from tradermind.db.base import as_utc, utcnow
from tradermind.db.models.user import UserRow
from tradermind.errors.exceptions import (
    AnalysisTimeoutError,
    AnalysisUnavailableError,
    InsufficientDataError,
    NotFoundError,
    PersistenceError,
    RateLimitedError,
    TraderMindError,
)
from tradermind.logging_config import report_log_context
from tradermind.models.survey import QuestionAnswer
from tradermind.repositories.report_repo import ReportRepository
from tradermind.repositories.survey_repo import SurveyResponseRepository
from tradermind.repositories.user_repo import UserRepository
from tradermind.services.analysis import AnalysisServiceError
from tradermind.services.id_generator import artifact_file_name, generate_id
from tradermind.services.pdf_renderer import ReportDocument, ReportRenderer
from tradermind.services.prompts import ANALYST_SYSTEM_PROMPT, answer_rows, build_analysis_prompt
from tradermind.services.retry import RetryExhaustedError, RetryPolicy

logger = logging.getLogger(__name__)

ARTIFACT_SUBDIR = "reports"
SUMMARY_MARKER = "..."


def truncate_summary(text: str, limit: int = 500) -> str:
    """Keep at most ``limit`` characters, marking the cut with ``...``."""
    if len(text) <= limit:
        return text
    return text[:limit] + SUMMARY_MARKER


def download_url(report_id: str) -> str:
    return f"/api/v1/report/{report_id}/download"


def _failure_code(exc: BaseException) -> str:
    if isinstance(exc, TraderMindError):
        return exc.code
    if isinstance(exc, asyncio.CancelledError):
        return "CANCELLED"
    return "INTERNAL_ERROR"


@dataclass(frozen=True)
class ReportPolicy:
    cooldown_enabled: bool = True
    cooldown_seconds: int = 3600
    summary_max_chars: int = 500
    analysis_timeout_seconds: float = 120.0
    retry: RetryPolicy = field(
        default_factory=lambda: RetryPolicy(
            max_attempts=3,
            backoff_seconds=1.0,
            retry_on=(AnalysisServiceError,),
            give_up_on=(AnalysisTimeoutError,),
        )
    )

    @classmethod
    def from_settings(cls, settings: Settings) -> "ReportPolicy":
        return cls(
            cooldown_enabled=settings.report_cooldown_enabled,
            cooldown_seconds=settings.report_cooldown_seconds,
            summary_max_chars=settings.summary_max_chars,
            analysis_timeout_seconds=settings.analysis_timeout_seconds,
            retry=RetryPolicy(
                max_attempts=settings.analysis_max_attempts,
                backoff_seconds=settings.analysis_backoff_seconds,
                retry_on=(AnalysisServiceError,),
                give_up_on=(AnalysisTimeoutError,),
            ),
        )


@dataclass
class Subject:
    user_id: str
    display_name: str


@dataclass
class Reservation:
    report_id: str
    report_name: str
    artifact_path: str
    subject: Subject
    answers: list[QuestionAnswer]


@dataclass
class GeneratedReport:
    report_id: str
    report_name: str
    download_url: str
    warnings: list[str] = field(default_factory=list)


class ReportPipeline:
    """Generate one analysis report for one subject."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        analysis_client,
        renderer: ReportRenderer,
        storage_dir: str | Path,
        policy: ReportPolicy | None = None,
    ):
        self.session_factory = session_factory
        self.analysis_client = analysis_client
        self.renderer = renderer
        self.storage_dir = Path(storage_dir)
        self.policy = policy or ReportPolicy()

    def artifact_file(self, artifact_path: str) -> Path:
        return self.storage_dir / artifact_path

    async def generate(self, user_id: str) -> GeneratedReport:
        subject, answers = await self.check_eligibility(user_id)
        reservation = await self.reserve(subject, answers)
        with report_log_context(reservation.report_id):
            try:
                analysis = await self.analyze(reservation)
                warnings = await self.persist_summary(reservation.report_id, analysis)
                await self.render(reservation, analysis)
                await self._mark(reservation.report_id, "ready", None)
            except (Exception, asyncio.CancelledError) as exc:
                await self._abandon(reservation, _failure_code(exc))
                raise
            logger.info("Report %s ready for user %s", reservation.report_id, user_id)
        return GeneratedReport(
            report_id=reservation.report_id,
            report_name=reservation.report_name,
            download_url=download_url(reservation.report_id),
            warnings=warnings,
        )

    # ── Stage 1: eligibility & data assembly ──────────────────────────────────

    async def check_eligibility(self, user_id: str) -> tuple[Subject, list[QuestionAnswer]]:
        async with self.session_factory() as session:
            if self.policy.cooldown_enabled:
                latest = await ReportRepository(session).latest_for_user(user_id)
                if latest is not None:
                    elapsed = (utcnow() - as_utc(latest.created_at)).total_seconds()
                    if elapsed < self.policy.cooldown_seconds:
                        retry_after = max(1, math.ceil(self.policy.cooldown_seconds - elapsed))
                        logger.info("Report request for %s refused, retry after %ds", user_id, retry_after)
                        raise RateLimitedError(retry_after)

            answers = await SurveyResponseRepository(session).list_answers_for_user(user_id)
            if not answers:
                raise InsufficientDataError()

            user: UserRow | None = await UserRepository(session).get(user_id)
            if user is None:
                raise NotFoundError("User", user_id)

        return Subject(user_id=user.user_id, display_name=user.display_name), answers

    # ── Stage 2: reservation ──────────────────────────────────────────────────

    async def reserve(self, subject: Subject, answers: list[QuestionAnswer]) -> Reservation:
        report_id = generate_id("rpt_")
        report_name = f"{subject.display_name}_性格分析报告_{utcnow().date().isoformat()}"
        artifact_path = f"{ARTIFACT_SUBDIR}/{artifact_file_name(subject.user_id)}"

        try:
            async with self.session_factory() as session:
                async with session.begin():
                    await ReportRepository(session).create(
                        report_id=report_id,
                        user_id=subject.user_id,
                        report_name=report_name,
                        report_path=artifact_path,
                        status="pending",
                    )
        except SQLAlchemyError as exc:
            logger.error("Report reservation failed for %s: %s", subject.user_id, exc)
            raise PersistenceError(str(exc)) from exc

        logger.info("Reserved report %s at %s", report_id, artifact_path)
        return Reservation(
            report_id=report_id,
            report_name=report_name,
            artifact_path=artifact_path,
            subject=subject,
            answers=answers,
        )

    # ── Stage 3: analysis ─────────────────────────────────────────────────────

    async def analyze(self, reservation: Reservation) -> str:
        if self.analysis_client is None:
            raise AnalysisUnavailableError("text-generation service is not configured")

        prompt = build_analysis_prompt(
            reservation.subject.user_id, reservation.subject.display_name, reservation.answers
        )

        async def attempt() -> str:
            return await self.analysis_client.complete(ANALYST_SYSTEM_PROMPT, prompt)

        try:
            async with asyncio.timeout(self.policy.analysis_timeout_seconds):
                text = await self.policy.retry.run(attempt, label=f"analysis for {reservation.report_id}")
        except TimeoutError as exc:
            logger.warning("Analysis for %s exceeded %.0fs", reservation.report_id,
                           self.policy.analysis_timeout_seconds)
            raise AnalysisTimeoutError(f"deadline of {self.policy.analysis_timeout_seconds}s exceeded") from exc
        except RetryExhaustedError as exc:
            logger.error("Analysis for %s failed after %d attempts: %s",
                         reservation.report_id, exc.attempts, exc.last_error)
            raise AnalysisUnavailableError(exc.last_error) from exc

        logger.info("Analysis for %s returned %d chars", reservation.report_id, len(text))
        return text

    # ── Stage 4: summary ──────────────────────────────────────────────────────

    async def persist_summary(self, report_id: str, analysis: str) -> list[str]:
        """Best-effort: a failed write is logged and reported as a warning."""
        summary = truncate_summary(analysis, self.policy.summary_max_chars)
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    repo = ReportRepository(session)
                    row = await repo.get(report_id)
                    if row is None:
                        raise NotFoundError("Report", report_id)
                    await repo.update(row, report_summary=summary)
        except (SQLAlchemyError, NotFoundError) as exc:
            logger.warning("Summary write for %s failed: %s", report_id, exc)
            return ["报告摘要保存失败"]
        return []

    # ── Stage 5: rendering ────────────────────────────────────────────────────

    async def render(self, reservation: Reservation, analysis: str) -> Path:
        path = self.artifact_file(reservation.artifact_path)
        document = ReportDocument(
            title=reservation.report_name,
            display_name=reservation.subject.display_name,
            generated_on=utcnow().date(),
            analysis_text=analysis,
            answers=answer_rows(reservation.answers),
        )
        await self.renderer.render(path, document)
        return path

    # ── Stage 6: outcome ──────────────────────────────────────────────────────

    async def _abandon(self, reservation: Reservation, error_code: str) -> None:
        """Drop whatever artifact was written and record the failure."""
        self.artifact_file(reservation.artifact_path).unlink(missing_ok=True)
        await self._mark(reservation.report_id, "failed", error_code)
        logger.warning("Report %s failed with %s", reservation.report_id, error_code)

    async def _mark(self, report_id: str, status: str, error_code: str | None) -> None:
        """Set the final status; a record deleted mid-generation cannot become ready."""
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    repo = ReportRepository(session)
                    row = await repo.get(report_id)
                    if row is None:
                        if status == "ready":
                            raise NotFoundError("Report", report_id)
                        logger.warning("Report %s no longer exists, not marking it %s", report_id, status)
                        return
                    await repo.update(row, status=status, error_code=error_code)
        except SQLAlchemyError as exc:
            if status == "ready":
                raise PersistenceError(str(exc)) from exc
            logger.warning("Could not mark report %s as %s: %s", report_id, status, exc)
