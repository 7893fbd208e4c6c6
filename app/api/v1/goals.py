from fastapi import APIRouter, Depends, HTTPException
import logging

from app.core.dependencies import get_current_user_id, get_goal_resolver
from app.core.exceptions import UnauthenticatedError
from app.schemas.goal import CalculateGoalsRequest, GoalCalculationInput, GoalsResponse, NutritionGoals
from app.services.goal_resolver import GoalResolver, goals_from_row
from app.services.nutrition_calculator import NutritionCalculator

router = APIRouter(prefix="/goals", tags=["goals"])
logger = logging.getLogger(__name__)


@router.get("/current", response_model=GoalsResponse)
async def get_current_goals(
        user_id: str = Depends(get_current_user_id),
        resolver: GoalResolver = Depends(get_goal_resolver)
):
    """Действующие цели пользователя или цели по умолчанию"""
    try:
        row = await resolver.effective_goal(user_id)
    except UnauthenticatedError as e:
        raise HTTPException(status_code=401, detail=str(e))
    except Exception as e:
        logger.error(f"Ошибка получения целей: {e}")
        row = None

    if row is None:
        return GoalsResponse(goals=await resolver.resolve_goals(user_id), message="Цели по умолчанию")
    return GoalsResponse(goals=goals_from_row(row), source=row.source, start_date=row.start_date)


@router.post("/custom", response_model=GoalsResponse)
async def set_custom_goals(
        goals: NutritionGoals,
        user_id: str = Depends(get_current_user_id),
        resolver: GoalResolver = Depends(get_goal_resolver)
):
    """Задать цели вручную. Новая версия действует с сегодняшнего дня и перекрывает предыдущие, история сохраняется"""
    try:
        row = await resolver.set_custom_goals(user_id, goals)
    except UnauthenticatedError as e:
        raise HTTPException(status_code=401, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Ошибка при сохранении целей: {str(e)}")

    return GoalsResponse(goals=goals_from_row(row), source=row.source, start_date=row.start_date,
                         message="Цели сохранены")


@router.post("/calculate", response_model=GoalsResponse)
async def calculate_goals(
        request: CalculateGoalsRequest,
        user_id: str = Depends(get_current_user_id),
        resolver: GoalResolver = Depends(get_goal_resolver)
):
    """Рассчитать цели по антропометрии; с save=true сохранить их как новую версию (source=ai)"""
    data = GoalCalculationInput(**request.model_dump(exclude={"save"}))
    if not request.save:
        return GoalsResponse(goals=NutritionCalculator.calculate_goals(data), message="Рассчитанные цели")

    try:
        row = await resolver.apply_ai_goals(user_id, data)
    except UnauthenticatedError as e:
        raise HTTPException(status_code=401, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Ошибка при сохранении целей: {str(e)}")

    return GoalsResponse(goals=goals_from_row(row), source=row.source, start_date=row.start_date,
                         message="Цели рассчитаны и сохранены")
