"""Shared test fixtures."""

import asyncio

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from tradermind.db.base import Base
# Import all models to register with Base.metadata
import tradermind.db.models  # noqa: F401
from tradermind.errors.exceptions import AnalysisTimeoutError
from tradermind.models.survey import OptionIn
from tradermind.repositories.survey_repo import SurveyQuestionRepository, SurveyResponseRepository
from tradermind.repositories.user_repo import UserRepository
from tradermind.services.analysis import AnalysisServiceError
from tradermind.services.id_generator import generate_id
from tradermind.services.pdf_renderer import FontCache, ReportRenderer
from tradermind.services.report_pipeline import ReportPipeline, ReportPolicy
from tradermind.services.retry import RetryPolicy
from tradermind.services.security import create_access_token, hash_password

ANALYSIS_TEXT = (
    "1. 用户性格特点\n该用户做决定时较为理性，重视技术指标。\n\n"
    "2. 交易风格倾向\n偏向短线交易，持仓时间较短。\n\n"
    "6. 针对性的改进建议\n建议设置明确的止损位，控制单笔仓位。"
)


class FakeAnalysisClient:
    """Stands in for ``AnalysisClient``; plays back scripted outcomes, then ``text``."""

    def __init__(self, outcomes=None, text: str = ANALYSIS_TEXT, delay: float = 0.0):
        self.outcomes = list(outcomes or [])
        self.text = text
        self.delay = delay
        self.calls = 0
        self.prompts: list[str] = []
        self.closed = False

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        self.calls += 1
        self.prompts.append(user_prompt)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.outcomes:
            outcome = self.outcomes.pop(0)
            if isinstance(outcome, BaseException):
                raise outcome
            return outcome
        return self.text

    async def close(self) -> None:
        self.closed = True


def fast_policy(**overrides) -> ReportPolicy:
    """Report policy with no backoff sleeps; cooldown off unless overridden."""
    fields = {
        "cooldown_enabled": False,
        "retry": RetryPolicy(
            max_attempts=3,
            backoff_seconds=0,
            retry_on=(AnalysisServiceError,),
            give_up_on=(AnalysisTimeoutError,),
        ),
    }
    fields.update(overrides)
    return ReportPolicy(**fields)


def auth_headers(user_id: str, roles: list[str], username: str = "") -> dict:
    return {"Authorization": f"Bearer {create_access_token(user_id, roles, username)}"}


@pytest.fixture
async def db_engine():
    """Create an in-memory SQLite async engine for testing."""
    engine = create_async_engine("sqlite+aiosqlite:///", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory):
    """Create a test database session."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def fake_analysis():
    return FakeAnalysisClient()


@pytest.fixture
def storage_dir(tmp_path):
    path = tmp_path / "storage"
    path.mkdir()
    return path


@pytest.fixture
def renderer(tmp_path):
    """Renderer whose TTF is never present, so the built-in CJK font is used."""
    return ReportRenderer(FontCache(tmp_path / "fonts", "absent.ttf"))


@pytest.fixture
def pipeline(session_factory, fake_analysis, renderer, storage_dir):
    return ReportPipeline(
        session_factory=session_factory,
        analysis_client=fake_analysis,
        renderer=renderer,
        storage_dir=storage_dir,
        policy=fast_policy(),
    )


@pytest.fixture
def make_user(session_factory):
    """Insert a user directly; return ``(user_id, auth_headers)``."""

    async def _make(username: str = "trader01", roles=("customer",), nickname: str = ""):
        async with session_factory() as session:
            user = await UserRepository(session).create(
                user_id=generate_id("usr_"),
                username=username,
                nickname=nickname,
                email=f"{username}@example.com",
                phone="13800000000",
                hashed_password=hash_password("password123"),
                roles=list(roles),
                is_active=True,
            )
            await session.commit()
        return user.user_id, auth_headers(user.user_id, list(roles), username)

    return _make


@pytest.fixture
def seed_answers(session_factory):
    """Create a three-question survey and answer it for ``user_id``.

    Two free-text answers and one single-choice answer.
    """

    async def _seed(user_id: str) -> list[str]:
        async with session_factory() as session:
            questions = SurveyQuestionRepository(session)
            q1 = await questions.create_with_options(
                [], title="你通常如何做出交易决策？", question_type="text", sort_order=1,
            )
            q2 = await questions.create_with_options(
                [], title="亏损时你会怎么做？", question_type="text", sort_order=2,
            )
            q3 = await questions.create_with_options(
                [OptionIn(content="保守"), OptionIn(content="激进")],
                title="你的风险偏好是？",
                question_type="single",
                sort_order=3,
            )

            responses = SurveyResponseRepository(session)
            await responses.create(
                response_id=generate_id("resp_"), question_id=q1.question_id, user_id=user_id,
                response_text="主要看技术指标", answer_duration=12,
            )
            await responses.create(
                response_id=generate_id("resp_"), question_id=q2.question_id, user_id=user_id,
                response_text="严格止损", answer_duration=8,
            )
            await responses.create(
                response_id=generate_id("resp_"), question_id=q3.question_id, user_id=user_id,
                selected_option_ids=[q3.options[1].option_id], answer_duration=5,
            )
            await session.commit()
        return [q1.question_id, q2.question_id, q3.question_id]

    return _seed


@pytest.fixture
def app(db_engine, session_factory, fake_analysis, renderer, storage_dir):
    """Create a test application instance with in-memory DB and fake collaborators."""
    from tradermind.main import create_app

    _app = create_app()
    _app.state.db_engine = db_engine
    _app.state.db_session_factory = session_factory
    _app.state.analysis_client = fake_analysis
    _app.state.report_renderer = renderer
    _app.state.report_policy = fast_policy(cooldown_enabled=True, cooldown_seconds=3600)
    _app.state.storage_dir = storage_dir
    return _app


@pytest.fixture
async def client(app):
    """Async HTTP test client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
