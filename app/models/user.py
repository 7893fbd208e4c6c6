from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import relationship
from app.core.base import Base
from datetime import datetime

class User(Base):
    __tablename__ = "users"

    # subject из токена внешнего провайдера авторизации
    id = Column(String, primary_key=True, index=True)
    email = Column(String, nullable=True)
    location = Column(String, nullable=True)  # свободный текст, например "Mumbai, India"
    timezone = Column(String, nullable=True)  # IANA, вычисляется из location
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    goals = relationship("NutritionGoal", back_populates="user", cascade="all, delete")
    notification_settings = relationship("NotificationSetting", back_populates="user", cascade="all, delete")
