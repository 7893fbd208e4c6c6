"""
Дневной прогресс питания: кеш Redis + основная таблица daily_progress.

- Redis хранит хеш user:<id>:progress:<date> с полями calories/protein/carbs/fat/meals_logged,
  обновляется атомарными HINCRBYFLOAT/HINCRBY в одной транзакции MULTI, TTL 24 часа.
- БД — источник истины: INSERT ... ON CONFLICT с прибавлением на стороне сервера.
- Ошибка записи в БД фатальна для merge (возвращаемый прогресс зависит от неё),
  ошибки Redis только логируются.
"""
import logging
from datetime import date, timedelta
from typing import Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError, ResponseError

from app.core.cache import user_key
from app.core.config import settings
from app.core.exceptions import ProgressUpdateError, require_user_id
from app.models.progress import DailyProgress
from app.repositories.progress_repository import ProgressRepository
from app.schemas.goal import NutritionGoals
from app.schemas.progress import (
    DashboardProgress, GoalPercentages, ProgressDelta, ProgressTotals, WeeklyProgress
)
from app.services.goal_resolver import DEFAULT_NUTRITION_GOALS, GoalResolver

logger = logging.getLogger(__name__)

MACRO_FIELDS = ("calories", "protein", "carbs", "fat")


def totals_from_row(row: Optional[DailyProgress]) -> ProgressTotals:
    if row is None:
        return ProgressTotals()
    return ProgressTotals(
        calories=row.total_calories,
        protein=row.total_protein,
        carbs=row.total_carbs,
        fat=row.total_fat,
        meals_logged=row.meals_logged
    )


def calculate_percentages(totals: ProgressTotals, goals: NutritionGoals) -> GoalPercentages:
    return GoalPercentages(
        calories=round(totals.calories / goals.daily_calories * 100, 1),
        protein=round(totals.protein / goals.daily_protein * 100, 1),
        carbs=round(totals.carbs / goals.daily_carbs * 100, 1),
        fat=round(totals.fat / goals.daily_fat * 100, 1)
    )


class DailyProgressStore:
    def __init__(
            self,
            repo: ProgressRepository,
            cache: aioredis.Redis,
            goal_resolver: GoalResolver,
            ttl: int = None
    ):
        self.repo = repo
        self.cache = cache
        self.goal_resolver = goal_resolver
        self.ttl = ttl or settings.PROGRESS_CACHE_TTL

    @staticmethod
    def cache_key(user_id: str, day: date) -> str:
        return user_key(user_id, "progress", day.isoformat())

    # ------------------------------------------------------------------
    # Кеш
    # ------------------------------------------------------------------

    async def _cache_increment(self, key: str, delta: ProgressDelta) -> int:
        """Инкремент хеша, возвращает meals_logged после него"""
        async with self.cache.pipeline(transaction=True) as pipe:
            for field in MACRO_FIELDS:
                pipe.hincrbyfloat(key, field, getattr(delta, field))
            pipe.hincrby(key, "meals_logged", 1)
            pipe.expire(key, self.ttl)
            results = await pipe.execute()
        return int(results[len(MACRO_FIELDS)])

    async def _cache_write(self, key: str, totals: ProgressTotals) -> None:
        try:
            async with self.cache.pipeline(transaction=True) as pipe:
                pipe.delete(key)
                pipe.hset(key, mapping={k: str(v) for k, v in totals.model_dump().items()})
                pipe.expire(key, self.ttl)
                await pipe.execute()
        except RedisError as e:
            logger.warning(f"Не удалось записать прогресс в кеш {key}: {e}")

    async def _invalidate(self, key: str) -> None:
        try:
            await self.cache.delete(key)
        except RedisError as e:
            logger.warning(f"Не удалось сбросить кеш прогресса {key}: {e}")

    async def _merge_cache(self, key: str, delta: ProgressDelta) -> Optional[int]:
        """
        Инкремент хеша в Redis. Возвращает meals_logged из кеша после инкремента
        или None, если инкремент не применился (хеш повреждён или Redis недоступен).
        """
        try:
            return await self._cache_increment(key, delta)
        except ResponseError as e:
            logger.warning(f"Повреждённый кеш прогресса {key}, сбрасываем: {e}")
        except RedisError as e:
            logger.error(f"Redis недоступен при обновлении прогресса {key}: {e}")
        await self._invalidate(key)
        return None

    async def get_cached(self, user_id: str, day: date) -> Optional[ProgressTotals]:
        try:
            raw = await self.cache.hgetall(self.cache_key(user_id, day))
        except RedisError as e:
            logger.warning(f"Redis недоступен при чтении прогресса: {e}")
            return None
        if not raw:
            return None
        try:
            return ProgressTotals(
                calories=float(raw.get("calories", 0)),
                protein=float(raw.get("protein", 0)),
                carbs=float(raw.get("carbs", 0)),
                fat=float(raw.get("fat", 0)),
                meals_logged=int(float(raw.get("meals_logged", 0)))
            )
        except (TypeError, ValueError):
            logger.warning(f"Повреждённый кеш прогресса для {user_id} {day}")
            return None

    # ------------------------------------------------------------------
    # Публичные методы
    # ------------------------------------------------------------------

    async def get(self, user_id: str, day: date) -> ProgressTotals:
        """Прогресс за день: БД, при её ошибке кеш, иначе нули"""
        user_id = require_user_id(user_id)
        try:
            row = await self.repo.get(user_id, day)
        except Exception as e:
            logger.error(f"Ошибка чтения прогресса из БД, пробуем кеш: {e}")
            return await self.get_cached(user_id, day) or ProgressTotals()
        return totals_from_row(row)

    async def merge(self, user_id: str, day: date, delta: ProgressDelta) -> ProgressTotals:
        """Прибавить delta к дневному итогу и вернуть состояние после обновления"""
        user_id = require_user_id(user_id)
        key = self.cache_key(user_id, day)
        cached_meals = await self._merge_cache(key, delta)

        try:
            row = await self.repo.increment(user_id, day, delta)
        except Exception as e:
            logger.error(f"Ошибка обновления прогресса {user_id} {day}: {e}")
            # В кеше уже есть инкремент, которого нет в БД
            await self._invalidate(key)
            raise ProgressUpdateError(f"Failed to update progress: {e}") from e

        totals = totals_from_row(row)
        # Кеш пропустил инкременты (ошибка Redis, вытеснение, повреждение): перезаписываем из БД
        if cached_meals != totals.meals_logged:
            await self._cache_write(key, totals)
        return totals

    async def with_goals(self, user_id: str, day: date, totals: ProgressTotals) -> DashboardProgress:
        goals = await self.goal_resolver.resolve_goals(user_id)
        return DashboardProgress(
            date=day,
            totals=totals,
            goals=goals,
            progress=calculate_percentages(totals, goals)
        )

    async def get_dashboard(self, user_id: str, day: date) -> DashboardProgress:
        """Для экранов: всегда что-то возвращает, при ошибке БД — нули и цели по умолчанию"""
        user_id = require_user_id(user_id)
        try:
            row = await self.repo.get(user_id, day)
        except Exception as e:
            logger.error(f"Ошибка чтения прогресса для дашборда: {e}")
            totals = ProgressTotals()
            return DashboardProgress(
                date=day,
                totals=totals,
                goals=DEFAULT_NUTRITION_GOALS,
                progress=calculate_percentages(totals, DEFAULT_NUTRITION_GOALS),
                degraded=True
            )
        return await self.with_goals(user_id, day, totals_from_row(row))

    async def get_weekly(self, user_id: str, end_day: date, days: int = 7) -> WeeklyProgress:
        user_id = require_user_id(user_id)
        start_day = end_day - timedelta(days=days - 1)
        dates = [start_day + timedelta(days=i) for i in range(days)]

        try:
            rows = await self.repo.list_range(user_id, start_day, end_day)
        except Exception as e:
            logger.error(f"Ошибка в get_weekly: {e}")
            rows = []

        by_date = {row.date: totals_from_row(row) for row in rows}
        series = [by_date.get(day, ProgressTotals()) for day in dates]
        return WeeklyProgress(
            dates=dates,
            calories=[item.calories for item in series],
            protein=[item.protein for item in series],
            carbs=[item.carbs for item in series],
            fats=[item.fat for item in series]
        )
