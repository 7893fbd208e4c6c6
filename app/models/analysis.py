import enum
from sqlalchemy import Column, Integer, String, Float, Date, DateTime, Enum, JSON
from app.core.base import Base
from datetime import datetime

class MealTypeEnum(str, enum.Enum):
    breakfast = "breakfast"
    lunch = "lunch"
    dinner = "dinner"
    snack = "snack"

class NutritionAnalysisRecord(Base):
    __tablename__ = "nutrition_analysis_records"

    id = Column(Integer, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    date = Column(Date, nullable=False)
    analysis_type = Column(String, nullable=False)
    meal_type = Column(Enum(MealTypeEnum), nullable=False, default=MealTypeEnum.snack)
    food_name = Column(String, nullable=False)
    calories = Column(Float, default=0, nullable=False)
    protein = Column(Float, default=0, nullable=False)
    carbs = Column(Float, default=0, nullable=False)
    fat = Column(Float, default=0, nullable=False)
    analysis_data = Column(JSON, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
