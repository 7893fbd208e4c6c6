import logging
import uuid
from typing import Any, Dict, List
from zoneinfo import ZoneInfo

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from app.schemas.notification import NotificationContent
from app.services.notification_dispatcher import NotificationDispatcher

logger = logging.getLogger(__name__)


class LocalNotificationScheduler:
    """
    Аналог локального планировщика уведомлений устройства:
    ежедневные триггеры, отмена всех, список запланированных.
    """
    MISFIRE_GRACE_TIME = 300  # секунд

    def __init__(self, dispatcher: NotificationDispatcher, scheduler: AsyncIOScheduler = None):
        self.dispatcher = dispatcher
        self.scheduler = scheduler or AsyncIOScheduler()

    def start(self) -> None:
        if not self.scheduler.running:
            self.scheduler.start()
            logger.info("Планировщик уведомлений запущен")

    def shutdown(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)

    def schedule_daily(
            self,
            user_id: str,
            hour: int,
            minute: int,
            tz: ZoneInfo,
            content: NotificationContent
    ) -> str:
        notification_id = uuid.uuid4().hex
        self.scheduler.add_job(
            self.dispatcher.deliver,
            trigger=CronTrigger(hour=hour, minute=minute, timezone=tz),
            id=notification_id,
            name=f"{content.data.get('type', 'notification')}:{user_id}",
            kwargs={
                "notification_id": notification_id,
                "user_id": user_id,
                "title": content.title,
                "body": content.body,
                "data": content.data,
            },
            replace_existing=True,
            coalesce=True,
            misfire_grace_time=self.MISFIRE_GRACE_TIME,
        )
        logger.debug(f"Запланировано {notification_id} на {hour:02d}:{minute:02d} {tz.key} для {user_id}")
        return notification_id

    def cancel_all(self) -> int:
        """Снимает ВСЕ триггеры установки, не только текущего пользователя"""
        count = len(self.scheduler.get_jobs())
        self.scheduler.remove_all_jobs()
        return count

    def cancel_for_user(self, user_id: str) -> int:
        count = 0
        for job in self.scheduler.get_jobs():
            if job.kwargs.get("user_id") == user_id:
                job.remove()
                count += 1
        return count

    def get_all_scheduled(self) -> List[Dict[str, Any]]:
        scheduled = []
        for job in self.scheduler.get_jobs():
            scheduled.append({
                "notification_id": job.id,
                "user_id": job.kwargs.get("user_id"),
                "title": job.kwargs.get("title"),
                "body": job.kwargs.get("body"),
                "data": job.kwargs.get("data") or {},
                "trigger": str(job.trigger),
                "next_run_time": getattr(job, "next_run_time", None),
            })
        return scheduled
