from pydantic import BaseModel, Field
from typing import Optional, Dict, Any
from datetime import datetime
import enum


class PushPlatform(str, enum.Enum):
    ios = "ios"
    android = "android"


class NotificationKind(str, enum.Enum):
    meal_reminder = "meal_reminder"
    progress_check = "progress_check"
    test_notification = "test_notification"


class ReminderTime(BaseModel):
    hour: int = Field(ge=0, le=23)
    minute: int = Field(0, ge=0, le=59)


class NotificationSettingSchema(BaseModel):
    meal_type: str
    time: ReminderTime
    is_active: bool = True
    last_notified: Optional[datetime] = None

    @classmethod
    def from_model(cls, setting) -> "NotificationSettingSchema":
        return cls(
            meal_type=setting.meal_type,
            time=ReminderTime(hour=setting.hour, minute=setting.minute),
            is_active=setting.is_active,
            last_notified=setting.last_notified,
        )


class NotificationSettingUpdate(BaseModel):
    meal_type: str
    is_active: bool
    time: Optional[ReminderTime] = None


class DeviceRegistration(BaseModel):
    push_token: str = Field(min_length=1)
    platform: PushPlatform
    location: Optional[str] = None


class NotificationContent(BaseModel):
    title: str
    body: str
    data: Dict[str, Any] = {}


class ScheduledNotification(BaseModel):
    notification_id: str
    user_id: str
    kind: NotificationKind
    meal_type: Optional[str] = None
    hour: int
    minute: int
    timezone: str
    title: str
    body: str


class SentNotification(BaseModel):
    """Результат немедленной отправки push-уведомления"""
    delivered: bool
    title: str
    body: str
