from pydantic import BaseModel, Field
from typing import Optional, Dict, Any
from enum import Enum

from app.models.analysis import MealTypeEnum
from app.schemas.progress import ProgressDelta, DashboardProgress


class AnalysisKind(str, Enum):
    TEXT = "text"
    IMAGE = "image"


class Nutrient(BaseModel):
    amount: float = Field(ge=0)
    unit: str = "g"
    daily_value_percentage: Optional[float] = None


class Macronutrients(BaseModel):
    protein: Nutrient
    carbs: Nutrient
    fats: Nutrient

    class Config:
        extra = "allow"


class NutritionalContent(BaseModel):
    calories: float = Field(ge=0)
    macronutrients: Macronutrients

    class Config:
        extra = "allow"  # vitamins_minerals, fiber, added_sugars


class BasicInfo(BaseModel):
    food_name: str
    portion_size: Optional[str] = None
    preparation_method: Optional[str] = None
    total_servings: Optional[float] = None

    class Config:
        extra = "allow"


class NutritionAnalysis(BaseModel):
    """Структурированный ответ модели. Обязательны analysis_type, basic_info, nutritional_content"""
    analysis_type: str
    basic_info: BasicInfo
    nutritional_content: NutritionalContent
    health_analysis: Optional[Dict[str, Any]] = None
    recommendations: Optional[Dict[str, Any]] = None
    source_reliability: Optional[str] = None
    meal_type: Optional[str] = None

    class Config:
        extra = "allow"

    def to_delta(self) -> ProgressDelta:
        macros = self.nutritional_content.macronutrients
        return ProgressDelta(
            calories=self.nutritional_content.calories,
            protein=macros.protein.amount,
            carbs=macros.carbs.amount,
            fat=macros.fats.amount,
        )


class AnalyzeRequest(BaseModel):
    kind: AnalysisKind
    payload: str = Field(min_length=1)  # текст или base64 изображения
    meal_type: Optional[MealTypeEnum] = None


class AnalyzeResponse(BaseModel):
    analysis: NutritionAnalysis
    progress: DashboardProgress
    cached: bool = False
