import enum
from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey, Enum
from sqlalchemy.orm import relationship
from app.core.base import Base
from datetime import datetime

class GoalSourceEnum(str, enum.Enum):
    custom = "custom"
    ai = "ai"

class NutritionGoal(Base):
    """Версия целей пользователя. Строки только добавляются, действующая — последняя по start_date"""
    __tablename__ = "nutrition_goals"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    daily_calories = Column(Float, nullable=False)
    daily_protein = Column(Float, nullable=False)
    daily_carbs = Column(Float, nullable=False)
    daily_fat = Column(Float, nullable=False)
    source = Column(Enum(GoalSourceEnum), nullable=False, default=GoalSourceEnum.custom)
    start_date = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    end_date = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    user = relationship("User", back_populates="goals")
