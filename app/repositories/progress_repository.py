from datetime import date, datetime
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.progress import DailyProgress
from app.schemas.progress import ProgressDelta


class ProgressRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    def _insert(self):
        dialect = self.db.get_bind().dialect.name
        if dialect == "sqlite":
            return sqlite_insert(DailyProgress)
        return pg_insert(DailyProgress)

    async def get(self, user_id: str, day: date) -> Optional[DailyProgress]:
        result = await self.db.execute(
            select(DailyProgress)
            .where(DailyProgress.user_id == user_id, DailyProgress.date == day)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def increment(self, user_id: str, day: date, delta: ProgressDelta) -> DailyProgress:
        """
        Атомарно прибавить delta к строке (user_id, date) и meals_logged += 1.
        Сложение выполняется в самой БД (INSERT ... ON CONFLICT DO UPDATE SET col = col + excluded.col),
        поэтому параллельные анализы одного пользователя не теряют обновления.
        """
        now = datetime.utcnow()
        stmt = self._insert().values(
            user_id=user_id,
            date=day,
            total_calories=delta.calories,
            total_protein=delta.protein,
            total_carbs=delta.carbs,
            total_fat=delta.fat,
            meals_logged=1,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id", "date"],
            set_={
                "total_calories": DailyProgress.total_calories + stmt.excluded.total_calories,
                "total_protein": DailyProgress.total_protein + stmt.excluded.total_protein,
                "total_carbs": DailyProgress.total_carbs + stmt.excluded.total_carbs,
                "total_fat": DailyProgress.total_fat + stmt.excluded.total_fat,
                "meals_logged": DailyProgress.meals_logged + 1,
                "updated_at": stmt.excluded.updated_at,
            },
        )
        try:
            await self.db.execute(stmt)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        row = await self.get(user_id, day)
        if row is None:
            raise RuntimeError(f"daily_progress row missing after upsert: {user_id} {day}")
        return row

    async def list_range(self, user_id: str, start: date, end: date) -> List[DailyProgress]:
        result = await self.db.execute(
            select(DailyProgress)
            .where(
                DailyProgress.user_id == user_id,
                DailyProgress.date >= start,
                DailyProgress.date <= end,
            )
            .order_by(DailyProgress.date.asc())
        )
        return list(result.scalars().all())
