from datetime import datetime
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.notification import NotificationSetting, NotificationHistory
from app.schemas.notification import NotificationSettingSchema, ScheduledNotification


class NotificationRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_settings(self, user_id: str) -> List[NotificationSetting]:
        result = await self.db.execute(
            select(NotificationSetting)
            .where(NotificationSetting.user_id == user_id)
            .order_by(NotificationSetting.hour.asc(), NotificationSetting.minute.asc())
        )
        return list(result.scalars().all())

    async def get_setting(self, user_id: str, meal_type: str) -> Optional[NotificationSetting]:
        result = await self.db.execute(
            select(NotificationSetting).where(
                NotificationSetting.user_id == user_id,
                NotificationSetting.meal_type == meal_type
            )
        )
        return result.scalar_one_or_none()

    async def create_settings(self, user_id: str, settings: List[NotificationSettingSchema]) -> List[NotificationSetting]:
        rows = [
            NotificationSetting(
                user_id=user_id,
                meal_type=item.meal_type,
                hour=item.time.hour,
                minute=item.time.minute,
                is_active=item.is_active,
            )
            for item in settings
        ]
        self.db.add_all(rows)
        await self.db.commit()
        return rows

    async def save_setting(
            self,
            user_id: str,
            meal_type: str,
            is_active: bool,
            hour: int = None,
            minute: int = None
    ) -> NotificationSetting:
        setting = await self.get_setting(user_id, meal_type)
        if setting is None:
            setting = NotificationSetting(user_id=user_id, meal_type=meal_type, hour=hour, minute=minute or 0)
            self.db.add(setting)
        elif hour is not None:
            setting.hour = hour
            setting.minute = minute or 0
        setting.is_active = is_active
        await self.db.commit()
        return setting

    async def mark_notified(self, user_id: str, meal_type: str, when: datetime) -> None:
        setting = await self.get_setting(user_id, meal_type)
        if setting is not None:
            setting.last_notified = when
            await self.db.commit()

    async def add_history(self, entry: ScheduledNotification) -> NotificationHistory:
        row = NotificationHistory(
            user_id=entry.user_id,
            notification_id=entry.notification_id,
            kind=entry.kind.value,
            meal_type=entry.meal_type,
            title=entry.title,
            body=entry.body,
            hour=entry.hour,
            minute=entry.minute,
            timezone=entry.timezone,
        )
        self.db.add(row)
        try:
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        return row
