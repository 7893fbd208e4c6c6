"""
Планирование напоминаний о питании.

schedule_reminders снимает ранее запланированные триггеры, генерирует текст для каждого
активного напоминания (с учётом лимита генераций) и регистрирует ежедневные триггеры
в часовом поясе пользователя, плюс три проверки прогресса (12:00, 16:00, 20:00).
"""
import logging
from datetime import datetime, timezone
from typing import List, Optional
from zoneinfo import ZoneInfo

from app.core.config import settings as app_settings
from app.core.exceptions import require_user_id
from app.repositories.notification_repository import NotificationRepository
from app.repositories.user_repository import UserRepository
from app.schemas.notification import (
    NotificationContent, NotificationKind, NotificationSettingSchema, NotificationSettingUpdate,
    PushPlatform, ReminderTime, ScheduledNotification, SentNotification
)
from app.services.local_scheduler import LocalNotificationScheduler
from app.services.notification_content import NotificationContentGenerator
from app.services.notification_dispatcher import NotificationDispatcher
from app.services.progress_store import DailyProgressStore
from app.services.timezone_resolver import TimezoneResolver, default_zone

logger = logging.getLogger(__name__)

MEAL_REMINDER_TITLE = "Time to track your nutrition!"
PROGRESS_CHECK_TITLE = "Check your nutrition progress!"
TEST_NOTIFICATION_TITLE = "Welcome to NutriTrack!"

PROGRESS_CHECK_TIMES = [
    ReminderTime(hour=12, minute=0),  # прогресс к обеду
    ReminderTime(hour=16, minute=0),
    ReminderTime(hour=20, minute=0),  # итоги дня
]


def default_reminders() -> List[NotificationSettingSchema]:
    return [
        NotificationSettingSchema(meal_type="breakfast", time=ReminderTime(hour=8, minute=0)),
        NotificationSettingSchema(meal_type="morning_snack", time=ReminderTime(hour=10, minute=30)),
        NotificationSettingSchema(meal_type="lunch", time=ReminderTime(hour=13, minute=0)),
        NotificationSettingSchema(meal_type="afternoon_snack", time=ReminderTime(hour=16, minute=0)),
        NotificationSettingSchema(meal_type="dinner", time=ReminderTime(hour=19, minute=0)),
    ]


class ReminderScheduler:
    def __init__(
            self,
            local_scheduler: LocalNotificationScheduler,
            generator: NotificationContentGenerator,
            progress_store: DailyProgressStore,
            timezone_resolver: TimezoneResolver,
            notification_repo: NotificationRepository,
            user_repo: UserRepository,
            dispatcher: NotificationDispatcher,
            single_user_installation: bool = None
    ):
        self.local_scheduler = local_scheduler
        self.generator = generator
        self.progress_store = progress_store
        self.timezone_resolver = timezone_resolver
        self.notification_repo = notification_repo
        self.user_repo = user_repo
        self.dispatcher = dispatcher
        if single_user_installation is None:
            single_user_installation = app_settings.SINGLE_USER_INSTALLATION
        self.single_user_installation = single_user_installation

    async def register_device(
            self,
            user_id: str,
            push_token: str,
            platform: PushPlatform,
            location: str = None
    ) -> str:
        """Сохранить push-токен, при первой регистрации создать напоминания по умолчанию"""
        user_id = require_user_id(user_id)
        await self.user_repo.get_or_create(user_id, location)
        if not await self.notification_repo.list_settings(user_id):
            await self.notification_repo.create_settings(user_id, default_reminders())
        await self.dispatcher.store_push_token(user_id, push_token, platform)
        return push_token

    async def get_settings(self, user_id: str) -> List[NotificationSettingSchema]:
        rows = await self.notification_repo.list_settings(require_user_id(user_id))
        if not rows:
            return default_reminders()
        return [NotificationSettingSchema.from_model(row) for row in rows]

    def _cancel_existing(self, user_id: str) -> None:
        if self.single_user_installation:
            cancelled = self.local_scheduler.cancel_all()
        else:
            cancelled = self.local_scheduler.cancel_for_user(user_id)
        logger.info(f"Снято {cancelled} запланированных уведомлений (user={user_id})")

    async def _user_zone(self, user_id: str) -> ZoneInfo:
        try:
            user = await self.user_repo.get_by_id(user_id)
        except Exception as e:
            logger.error(f"Ошибка чтения пользователя {user_id}: {e}")
            return default_zone()

        if user is None:
            return await self.timezone_resolver.resolve(user_id, None)

        zone = await self.timezone_resolver.resolve(user_id, user.location, known=user.timezone)
        if user.location and user.timezone != zone.key:
            try:
                await self.user_repo.save_timezone(user, zone.key)
            except Exception as e:
                logger.warning(f"Не удалось сохранить часовой пояс {zone.key} для {user_id}: {e}")
        return zone

    async def _record(self, entry: ScheduledNotification) -> None:
        try:
            await self.notification_repo.add_history(entry)
        except Exception as e:
            logger.warning(f"Не удалось записать историю уведомления {entry.notification_id}: {e}")

    async def _mark_notified(self, user_id: str, meal_type: str, when: datetime) -> None:
        try:
            await self.notification_repo.mark_notified(user_id, meal_type, when)
        except Exception as e:
            logger.warning(f"Не удалось обновить last_notified для {user_id}/{meal_type}: {e}")

    async def _schedule_slot(
            self,
            user_id: str,
            zone: ZoneInfo,
            local_now: datetime,
            kind: NotificationKind,
            time: ReminderTime,
            title: str,
            meal_type: Optional[str] = None
    ) -> Optional[ScheduledNotification]:
        progress = await self.progress_store.get(user_id, local_now.date())
        body = await self.generator.generate(user_id, meal_type or kind.value, progress, local_now)
        if body is None:
            logger.info(f"Слот {kind.value} {time.hour:02d}:{time.minute:02d} пропущен для {user_id}: лимит генераций")
            return None

        data = {"type": kind.value, "userId": user_id}
        if meal_type:
            data["mealType"] = meal_type
        content = NotificationContent(title=title, body=body, data=data)

        notification_id = self.local_scheduler.schedule_daily(user_id, time.hour, time.minute, zone, content)
        entry = ScheduledNotification(
            notification_id=notification_id,
            user_id=user_id,
            kind=kind,
            meal_type=meal_type,
            hour=time.hour,
            minute=time.minute,
            timezone=zone.key,
            title=title,
            body=body,
        )
        await self._record(entry)
        return entry

    async def schedule_reminders(
            self,
            user_id: str,
            settings: List[NotificationSettingSchema] = None,
            now: datetime = None
    ) -> List[ScheduledNotification]:
        user_id = require_user_id(user_id)
        self._cancel_existing(user_id)

        if settings is None:
            settings = await self.get_settings(user_id)

        zone = await self._user_zone(user_id)
        now = now or datetime.now(timezone.utc)
        local_now = now.astimezone(zone)

        scheduled = []
        for setting in settings:
            if not setting.is_active:
                continue
            entry = await self._schedule_slot(
                user_id, zone, local_now,
                NotificationKind.meal_reminder, setting.time, MEAL_REMINDER_TITLE,
                meal_type=setting.meal_type
            )
            if entry is not None:
                scheduled.append(entry)
                await self._mark_notified(user_id, setting.meal_type, now.replace(tzinfo=None))

        for check_time in PROGRESS_CHECK_TIMES:
            entry = await self._schedule_slot(
                user_id, zone, local_now,
                NotificationKind.progress_check, check_time, PROGRESS_CHECK_TITLE
            )
            if entry is not None:
                scheduled.append(entry)

        logger.info(f"Запланировано {len(scheduled)} уведомлений для {user_id} ({zone.key})")
        return scheduled

    async def update_notification_setting(
            self,
            user_id: str,
            update: NotificationSettingUpdate
    ) -> List[ScheduledNotification]:
        """
        Изменить одно напоминание и перепланировать все.
        Если у пользователя ещё нет сохранённых напоминаний, сначала сохраняются
        напоминания по умолчанию, и изменение применяется поверх них.
        """
        user_id = require_user_id(user_id)
        time = update.time
        existing = await self.notification_repo.get_setting(user_id, update.meal_type)
        if existing is None and time is None:
            defaults = {item.meal_type: item.time for item in default_reminders()}
            if update.meal_type not in defaults:
                raise ValueError(f"Для нового напоминания '{update.meal_type}' нужно указать время")
            time = defaults[update.meal_type]

        await self.user_repo.get_or_create(user_id)
        if not await self.notification_repo.list_settings(user_id):
            await self.notification_repo.create_settings(user_id, default_reminders())
        await self.notification_repo.save_setting(
            user_id,
            update.meal_type,
            update.is_active,
            hour=time.hour if time else None,
            minute=time.minute if time else None
        )
        return await self.schedule_reminders(user_id)

    async def send_test_notification(self, user_id: str, now: datetime = None) -> SentNotification:
        """Разовое приветственное уведомление: проверка, что push-доставка работает"""
        user_id = require_user_id(user_id)
        zone = await self._user_zone(user_id)
        local_now = (now or datetime.now(timezone.utc)).astimezone(zone)
        body = f"App opened at {local_now.strftime('%H:%M:%S')}. Notifications are working correctly!"

        delivered = await self.dispatcher.send_now(
            user_id, TEST_NOTIFICATION_TITLE, body, {"type": NotificationKind.test_notification.value}
        )
        logger.info(f"Тестовое уведомление для {user_id}: delivered={delivered}")
        return SentNotification(delivered=delivered, title=TEST_NOTIFICATION_TITLE, body=body)
