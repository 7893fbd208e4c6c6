from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.goal import NutritionGoal, GoalSourceEnum
from app.schemas.goal import NutritionGoals


class GoalRepository:
    """Журнал версий целей: только INSERT, никаких UPDATE"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def append(
            self,
            user_id: str,
            goals: NutritionGoals,
            source: GoalSourceEnum = GoalSourceEnum.custom,
            start_date: datetime = None,
            end_date: datetime = None
    ) -> NutritionGoal:
        row = NutritionGoal(
            user_id=user_id,
            daily_calories=goals.daily_calories,
            daily_protein=goals.daily_protein,
            daily_carbs=goals.daily_carbs,
            daily_fat=goals.daily_fat,
            source=source,
            start_date=start_date or datetime.utcnow(),
            end_date=end_date,
        )
        self.db.add(row)
        await self.db.commit()
        await self.db.refresh(row)
        return row

    async def latest_started(self, user_id: str, as_of: datetime) -> Optional[NutritionGoal]:
        result = await self.db.execute(
            select(NutritionGoal)
            .where(NutritionGoal.user_id == user_id, NutritionGoal.start_date <= as_of)
            .order_by(NutritionGoal.start_date.desc(), NutritionGoal.id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def effective_as_of(self, user_id: str, as_of: datetime = None) -> Optional[NutritionGoal]:
        """Последняя начавшаяся версия, если её окно ещё не закрыто к моменту as_of"""
        as_of = as_of or datetime.utcnow()
        goal = await self.latest_started(user_id, as_of)
        if goal is None:
            return None
        if goal.end_date is not None and goal.end_date < as_of:
            return None
        return goal
