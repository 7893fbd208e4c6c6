from pydantic import BaseModel, Field
from typing import List
import datetime as dt

from app.schemas.goal import NutritionGoals


class ProgressDelta(BaseModel):
    calories: float = Field(0, ge=0)
    protein: float = Field(0, ge=0)
    carbs: float = Field(0, ge=0)
    fat: float = Field(0, ge=0)


class ProgressTotals(BaseModel):
    calories: float = 0
    protein: float = 0
    carbs: float = 0
    fat: float = 0
    meals_logged: int = 0


class GoalPercentages(BaseModel):
    calories: float
    protein: float
    carbs: float
    fat: float


class DashboardProgress(BaseModel):
    date: dt.date
    totals: ProgressTotals
    goals: NutritionGoals
    progress: GoalPercentages  # % выполнения дневной цели
    degraded: bool = False  # True — хранилище недоступно, показаны нули и цели по умолчанию


class WeeklyProgress(BaseModel):
    dates: List[dt.date]
    calories: List[float]
    protein: List[float]
    carbs: List[float]
    fats: List[float]
