from sqlalchemy import Column, Integer, Float, String, Date, DateTime, UniqueConstraint
from app.core.base import Base
from datetime import datetime

class DailyProgress(Base):
    __tablename__ = "daily_progress"
    __table_args__ = (
        UniqueConstraint("user_id", "date", name="uq_daily_progress_user_date"),
    )

    id = Column(Integer, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    date = Column(Date, nullable=False)
    total_calories = Column(Float, default=0, nullable=False)
    total_protein = Column(Float, default=0, nullable=False)
    total_carbs = Column(Float, default=0, nullable=False)
    total_fat = Column(Float, default=0, nullable=False)
    meals_logged = Column(Integer, default=0, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)
