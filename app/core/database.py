import logging

from sqlalchemy.ext.asyncio import AsyncEngine

from app.core.config import settings
from app.core.base import Base

# Импортируем ВСЕ модели, чтобы они попали в metadata
from app.models.user import User
from app.models.progress import DailyProgress
from app.models.goal import NutritionGoal
from app.models.analysis import NutritionAnalysisRecord
from app.models.notification import NotificationSetting, NotificationHistory

logger = logging.getLogger(__name__)


async def init_database(engine: AsyncEngine):
    """Инициализация базы данных"""
    async with engine.begin() as conn:
        # Удаляем все таблицы если RESET_DATABASE=true
        if settings.RESET_DATABASE:
            logger.warning("RESET_DATABASE=true - пересоздаем БД")
            await conn.run_sync(Base.metadata.drop_all)

        # Создаем все таблицы
        await conn.run_sync(Base.metadata.create_all)
        logger.info("Таблицы БД созданы/проверены")
