"""
Общие фикстуры для тестов backend'а питания.

Стратегия:
- Тестовое FastAPI-приложение создаётся без lifespan (нет подключения к Postgres/Redis/Groq).
- Redis заменяется на fakeredis, БД — на SQLite в памяти (aiosqlite) с теми же моделями.
- LLMClient заменяется на AsyncMock: тест сам задаёт, что «ответила модель».
- get_current_user_id заменяется лямбдой; проверку JWT тестирует отдельный тест с настоящим токеном.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock
from httpx import AsyncClient, ASGITransport
from fastapi import FastAPI
from typing import AsyncGenerator

import fakeredis.aioredis
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.api.router import api_router
from app.core.base import Base
from app.core.dependencies import get_current_user_id
from app.models.user import User
from app.repositories.analysis_repository import AnalysisRepository
from app.repositories.goal_repository import GoalRepository
from app.repositories.notification_repository import NotificationRepository
from app.repositories.progress_repository import ProgressRepository
from app.repositories.user_repository import UserRepository
from app.services.goal_resolver import GoalResolver
from app.services.llm_client import LLMClient
from app.services.local_scheduler import LocalNotificationScheduler
from app.services.notification_dispatcher import NotificationDispatcher
from app.services.progress_store import DailyProgressStore
from app.services.push_sender import ExpoPushSender
from tests.factories import TEST_USER_ID, make_llm_text

import app.models  # noqa: F401  регистрирует все таблицы в metadata


# ---------------------------------------------------------------------------
# Вспомогательные функции
# ---------------------------------------------------------------------------

def create_test_app() -> FastAPI:
    """Тестовое FastAPI-приложение без lifespan."""
    test_app = FastAPI(title="Nutrition Test App")
    test_app.include_router(api_router, prefix="/api/v1")
    return test_app


# ---------------------------------------------------------------------------
# Инфраструктура: Redis, БД, LLM
# ---------------------------------------------------------------------------

@pytest.fixture
async def fake_redis() -> AsyncGenerator[fakeredis.aioredis.FakeRedis, None]:
    redis = fakeredis.aioredis.FakeRedis(decode_responses=True)
    yield redis
    await redis.flushall()
    await redis.aclose()


@pytest.fixture
async def engine():
    """SQLite в памяти: одно соединение на весь тест (StaticPool), схема из моделей."""
    test_engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker:
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def mock_llm() -> AsyncMock:
    """LLMClient без сети. По умолчанию отвечает валидным анализом овсянки."""
    llm = AsyncMock(spec=LLMClient)
    llm.complete.return_value = make_llm_text()
    return llm


@pytest.fixture
def mock_push_sender() -> AsyncMock:
    sender = AsyncMock(spec=ExpoPushSender)
    sender.send.return_value = True
    return sender


# ---------------------------------------------------------------------------
# Репозитории и сервисы поверх тестовой БД
# ---------------------------------------------------------------------------

@pytest.fixture
def user_repo(db_session) -> UserRepository:
    return UserRepository(db_session)


@pytest.fixture
def goal_repo(db_session) -> GoalRepository:
    return GoalRepository(db_session)


@pytest.fixture
def progress_repo(db_session) -> ProgressRepository:
    return ProgressRepository(db_session)


@pytest.fixture
def analysis_repo(db_session) -> AnalysisRepository:
    return AnalysisRepository(db_session)


@pytest.fixture
def notification_repo(db_session) -> NotificationRepository:
    return NotificationRepository(db_session)


@pytest.fixture
def goal_resolver(goal_repo, user_repo) -> GoalResolver:
    return GoalResolver(goal_repo, user_repo)


@pytest.fixture
def progress_store(progress_repo, fake_redis, goal_resolver) -> DailyProgressStore:
    return DailyProgressStore(progress_repo, fake_redis, goal_resolver)


@pytest.fixture
async def existing_user(user_repo) -> User:
    return await user_repo.create_user(User(id=TEST_USER_ID, email="test@example.com"))


@pytest.fixture
def dispatcher(fake_redis, mock_push_sender) -> NotificationDispatcher:
    return NotificationDispatcher(fake_redis, mock_push_sender)


@pytest.fixture
def local_scheduler(dispatcher) -> LocalNotificationScheduler:
    """Планировщик не запускается: задачи остаются в списке ожидающих, get_jobs() их видит."""
    return LocalNotificationScheduler(dispatcher, AsyncIOScheduler())


# ---------------------------------------------------------------------------
# HTTP-клиенты
# ---------------------------------------------------------------------------

def _build_app(session_factory, fake_redis, mock_llm, dispatcher, local_scheduler) -> FastAPI:
    app = create_test_app()
    app.state.session_factory = session_factory
    app.state.redis = fake_redis
    app.state.llm = mock_llm
    app.state.dispatcher = dispatcher
    app.state.local_scheduler = local_scheduler
    return app


@pytest.fixture
async def client(session_factory, fake_redis, mock_llm, dispatcher, local_scheduler) -> AsyncGenerator[AsyncClient, None]:
    """Клиент без подмены авторизации: JWT проверяется по-настоящему."""
    app = _build_app(session_factory, fake_redis, mock_llm, dispatcher, local_scheduler)
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.fixture
async def user_client(session_factory, fake_redis, mock_llm, dispatcher, local_scheduler) -> AsyncGenerator[AsyncClient, None]:
    """
    Клиент, аутентифицированный как TEST_USER_ID.
    get_current_user_id → TEST_USER_ID, остальное — настоящие сервисы поверх SQLite/fakeredis.
    """
    app = _build_app(session_factory, fake_redis, mock_llm, dispatcher, local_scheduler)
    app.dependency_overrides[get_current_user_id] = lambda: TEST_USER_ID
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.fixture
def broken_db() -> MagicMock:
    """Сессия БД, у которой любой запрос падает."""
    session = AsyncMock()
    session.execute.side_effect = RuntimeError("database is down")
    session.commit.side_effect = RuntimeError("database is down")
    session.get_bind = MagicMock()
    session.get_bind.return_value.dialect.name = "postgresql"
    return session
