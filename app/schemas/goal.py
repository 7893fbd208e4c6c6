from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime
import enum

from app.models.goal import GoalSourceEnum


class Gender(str, enum.Enum):
    male = "male"
    female = "female"


class ActivityLevel(str, enum.Enum):
    sedentary = "sedentary"
    lightly_active = "lightly_active"
    moderately_active = "moderately_active"
    very_active = "very_active"
    super_active = "super_active"


class HealthGoal(str, enum.Enum):
    maintain = "maintain"
    lose = "lose"
    gain = "gain"


class NutritionGoals(BaseModel):
    daily_calories: float = Field(gt=0)
    daily_protein: float = Field(gt=0)
    daily_carbs: float = Field(gt=0)
    daily_fat: float = Field(gt=0)

    class Config:
        from_attributes = True


class GoalCalculationInput(BaseModel):
    age: int = Field(gt=0, lt=130)
    gender: Gender
    weight: float = Field(gt=0)  # кг
    height: float = Field(gt=0)  # см
    activity_level: ActivityLevel
    health_goal: HealthGoal
    dietary_restrictions: List[str] = []


class CalculateGoalsRequest(GoalCalculationInput):
    save: bool = False


class GoalsResponse(BaseModel):
    goals: NutritionGoals
    source: Optional[GoalSourceEnum] = None
    start_date: Optional[datetime] = None
    message: str = "Текущие цели"
