"""
Зависимости FastAPI.

Долгоживущие клиенты (Redis, LLM, планировщик, доставка push) создаются в lifespan
и лежат в app.state. Репозитории и сервисы собираются на каждый запрос поверх сессии БД.
"""
import redis.asyncio as aioredis
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.db import get_db
from app.repositories.analysis_repository import AnalysisRepository
from app.repositories.goal_repository import GoalRepository
from app.repositories.notification_repository import NotificationRepository
from app.repositories.progress_repository import ProgressRepository
from app.repositories.user_repository import UserRepository
from app.services.goal_resolver import GoalResolver
from app.services.llm_client import LLMClient
from app.services.local_scheduler import LocalNotificationScheduler
from app.services.notification_content import NotificationContentGenerator
from app.services.notification_dispatcher import NotificationDispatcher
from app.services.notification_scheduler import ReminderScheduler
from app.services.nutrition_analyzer import NutritionAnalysisHandler
from app.services.progress_store import DailyProgressStore
from app.services.rate_limiter import FixedWindowRateLimiter
from app.services.timezone_resolver import TimezoneResolver


security = HTTPBearer()


async def get_current_user_id(credentials: HTTPAuthorizationCredentials = Depends(security)) -> str:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Невалидный токен доступа",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = jwt.decode(
            credentials.credentials,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM],
        )
        user_id: str = payload.get("sub")
        if not user_id:
            raise credentials_exception
    except JWTError:
        raise credentials_exception

    return str(user_id)


# ---------------------------------------------------------------------------
# Клиенты из app.state
# ---------------------------------------------------------------------------

def get_cache(request: Request) -> aioredis.Redis:
    return request.app.state.redis


def get_llm(request: Request) -> LLMClient:
    return request.app.state.llm


def get_local_scheduler(request: Request) -> LocalNotificationScheduler:
    return request.app.state.local_scheduler


def get_dispatcher(request: Request) -> NotificationDispatcher:
    return request.app.state.dispatcher


# ---------------------------------------------------------------------------
# Репозитории
# ---------------------------------------------------------------------------

def get_user_repository(db: AsyncSession = Depends(get_db)) -> UserRepository:
    """Фабрика репозитория — инжектируется в эндпоинты через Depends."""
    return UserRepository(db)


def get_goal_repository(db: AsyncSession = Depends(get_db)) -> GoalRepository:
    return GoalRepository(db)


def get_progress_repository(db: AsyncSession = Depends(get_db)) -> ProgressRepository:
    return ProgressRepository(db)


def get_analysis_repository(db: AsyncSession = Depends(get_db)) -> AnalysisRepository:
    return AnalysisRepository(db)


def get_notification_repository(db: AsyncSession = Depends(get_db)) -> NotificationRepository:
    return NotificationRepository(db)


# ---------------------------------------------------------------------------
# Сервисы
# ---------------------------------------------------------------------------

def get_goal_resolver(
        goal_repo: GoalRepository = Depends(get_goal_repository),
        user_repo: UserRepository = Depends(get_user_repository),
) -> GoalResolver:
    return GoalResolver(goal_repo, user_repo)


def get_progress_store(
        repo: ProgressRepository = Depends(get_progress_repository),
        cache: aioredis.Redis = Depends(get_cache),
        goal_resolver: GoalResolver = Depends(get_goal_resolver),
) -> DailyProgressStore:
    return DailyProgressStore(repo, cache, goal_resolver)


def get_analysis_handler(
        llm: LLMClient = Depends(get_llm),
        cache: aioredis.Redis = Depends(get_cache),
        progress_store: DailyProgressStore = Depends(get_progress_store),
        analysis_repo: AnalysisRepository = Depends(get_analysis_repository),
) -> NutritionAnalysisHandler:
    return NutritionAnalysisHandler(llm, cache, progress_store, analysis_repo)


def get_reminder_scheduler(
        local_scheduler: LocalNotificationScheduler = Depends(get_local_scheduler),
        dispatcher: NotificationDispatcher = Depends(get_dispatcher),
        llm: LLMClient = Depends(get_llm),
        cache: aioredis.Redis = Depends(get_cache),
        progress_store: DailyProgressStore = Depends(get_progress_store),
        notification_repo: NotificationRepository = Depends(get_notification_repository),
        user_repo: UserRepository = Depends(get_user_repository),
) -> ReminderScheduler:
    return ReminderScheduler(
        local_scheduler=local_scheduler,
        generator=NotificationContentGenerator(llm, FixedWindowRateLimiter(cache)),
        progress_store=progress_store,
        timezone_resolver=TimezoneResolver(llm, cache),
        notification_repo=notification_repo,
        user_repo=user_repo,
        dispatcher=dispatcher,
    )
