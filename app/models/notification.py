from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from app.core.base import Base
from datetime import datetime

class NotificationSetting(Base):
    __tablename__ = "notification_settings"
    __table_args__ = (
        UniqueConstraint("user_id", "meal_type", name="uq_notification_settings_user_meal"),
    )

    id = Column(Integer, primary_key=True)
    user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    meal_type = Column(String, nullable=False)
    hour = Column(Integer, nullable=False)
    minute = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, default=True, nullable=False)
    last_notified = Column(DateTime, nullable=True)

    user = relationship("User", back_populates="notification_settings")

class NotificationHistory(Base):
    """Журнал зарегистрированных уведомлений для аналитики и отмены"""
    __tablename__ = "notification_history"

    id = Column(Integer, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    notification_id = Column(String, nullable=False, index=True)
    kind = Column(String, nullable=False)  # meal_reminder / progress_check
    meal_type = Column(String, nullable=True)
    title = Column(String, nullable=False)
    body = Column(String, nullable=False)
    hour = Column(Integer, nullable=False)
    minute = Column(Integer, nullable=False)
    timezone = Column(String, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
