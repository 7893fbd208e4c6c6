import logging
from datetime import datetime
from typing import Optional

from app.core.exceptions import require_user_id
from app.models.goal import NutritionGoal, GoalSourceEnum
from app.repositories.goal_repository import GoalRepository
from app.repositories.user_repository import UserRepository
from app.schemas.goal import GoalCalculationInput, NutritionGoals
from app.services.nutrition_calculator import NutritionCalculator

logger = logging.getLogger(__name__)

DEFAULT_NUTRITION_GOALS = NutritionGoals(
    daily_calories=2000,
    daily_protein=50,
    daily_carbs=225,
    daily_fat=65
)


def goals_from_row(row: NutritionGoal) -> NutritionGoals:
    return NutritionGoals(
        daily_calories=row.daily_calories,
        daily_protein=row.daily_protein,
        daily_carbs=row.daily_carbs,
        daily_fat=row.daily_fat
    )


class GoalResolver:
    def __init__(self, goal_repo: GoalRepository, user_repo: UserRepository):
        self.goal_repo = goal_repo
        self.user_repo = user_repo

    async def effective_goal(self, user_id: str, as_of: datetime = None) -> Optional[NutritionGoal]:
        return await self.goal_repo.effective_as_of(require_user_id(user_id), as_of)

    async def resolve_goals(self, user_id: str, as_of: datetime = None) -> NutritionGoals:
        """Действующие цели на момент as_of, иначе цели по умолчанию. Не бросает исключений"""
        try:
            row = await self.effective_goal(user_id, as_of)
        except Exception as e:
            logger.error(f"Ошибка получения целей пользователя {user_id}: {e}")
            return DEFAULT_NUTRITION_GOALS

        if row is None:
            return DEFAULT_NUTRITION_GOALS
        return goals_from_row(row)

    async def set_custom_goals(self, user_id: str, goals: NutritionGoals) -> NutritionGoal:
        user_id = require_user_id(user_id)
        await self.user_repo.get_or_create(user_id)
        return await self.goal_repo.append(user_id, goals, source=GoalSourceEnum.custom)

    async def apply_ai_goals(self, user_id: str, data: GoalCalculationInput) -> NutritionGoal:
        user_id = require_user_id(user_id)
        goals = NutritionCalculator.calculate_goals(data)
        await self.user_repo.get_or_create(user_id)
        return await self.goal_repo.append(user_id, goals, source=GoalSourceEnum.ai)
