"""
Модульные тесты ReminderScheduler.

Покрываемые сценарии:
- по умолчанию 5 напоминаний о еде + 3 проверки прогресса в часовом поясе пользователя
- перепланирование снимает старые триггеры (все или только свои)
- неактивные напоминания не планируются
- исчерпанный лимит генераций → слот пропускается, триггер не создаётся
- история уведомлений пишется, её ошибка не ломает планирование
- изменение настройки напоминания и перепланирование, в том числе до регистрации устройства
- разовое приветственное уведомление
"""

import pytest
from datetime import datetime, timezone
from unittest.mock import AsyncMock
from zoneinfo import ZoneInfo
from sqlalchemy import func, select

from app.core.exceptions import DeviceNotRegisteredError, UnauthenticatedError
from app.models.notification import NotificationHistory
from app.models.user import User
from app.repositories.notification_repository import NotificationRepository
from app.schemas.notification import (
    NotificationContent, NotificationKind, NotificationSettingSchema, NotificationSettingUpdate,
    PushPlatform, ReminderTime
)
from app.services.notification_content import NotificationContentGenerator
from app.services.notification_scheduler import (
    MEAL_REMINDER_TITLE, PROGRESS_CHECK_TITLE, TEST_NOTIFICATION_TITLE, ReminderScheduler, default_reminders
)
from app.services.rate_limiter import FixedWindowRateLimiter
from app.services.timezone_resolver import TimezoneResolver
from tests.factories import TEST_USER_ID

pytestmark = pytest.mark.unit

NOW = datetime(2026, 3, 14, 6, 30, tzinfo=timezone.utc)


def default_content() -> NotificationContent:
    return NotificationContent(title="t", body="b", data={"type": "meal_reminder"})


def build_scheduler(
        local_scheduler, dispatcher, mock_llm, fake_redis, progress_store, notification_repo, user_repo,
        max_calls: int = 10, single_user_installation: bool = True
) -> ReminderScheduler:
    limiter = FixedWindowRateLimiter(fake_redis, max_calls=max_calls, window=3600)
    return ReminderScheduler(
        local_scheduler=local_scheduler,
        generator=NotificationContentGenerator(mock_llm, limiter),
        progress_store=progress_store,
        timezone_resolver=TimezoneResolver(mock_llm, fake_redis),
        notification_repo=notification_repo,
        user_repo=user_repo,
        dispatcher=dispatcher,
        single_user_installation=single_user_installation,
    )


@pytest.fixture
def scheduler(local_scheduler, dispatcher, mock_llm, fake_redis, progress_store, notification_repo, user_repo):
    mock_llm.complete.return_value = "Keep going, you're doing great!"
    return build_scheduler(
        local_scheduler, dispatcher, mock_llm, fake_redis, progress_store, notification_repo, user_repo
    )


async def test_default_schedule_has_meals_and_progress_checks(scheduler, local_scheduler):
    scheduled = await scheduler.schedule_reminders(TEST_USER_ID, now=NOW)

    meals = [item for item in scheduled if item.kind == NotificationKind.meal_reminder]
    checks = [item for item in scheduled if item.kind == NotificationKind.progress_check]
    assert [item.meal_type for item in meals] == [
        "breakfast", "morning_snack", "lunch", "afternoon_snack", "dinner"
    ]
    assert [(item.hour, item.minute) for item in meals] == [(8, 0), (10, 30), (13, 0), (16, 0), (19, 0)]
    assert [item.hour for item in checks] == [12, 16, 20]
    assert all(item.title == MEAL_REMINDER_TITLE for item in meals)
    assert all(item.title == PROGRESS_CHECK_TITLE for item in checks)
    assert len(local_scheduler.get_all_scheduled()) == 8


async def test_schedule_uses_user_timezone(scheduler, user_repo, local_scheduler, mock_llm):
    await user_repo.create_user(User(id=TEST_USER_ID, location="Mumbai", timezone="Asia/Kolkata"))

    scheduled = await scheduler.schedule_reminders(TEST_USER_ID, now=NOW)

    assert {item.timezone for item in scheduled} == {"Asia/Kolkata"}
    job = local_scheduler.scheduler.get_job(scheduled[0].notification_id)
    assert str(job.trigger.timezone) == "Asia/Kolkata"


async def test_resolved_timezone_is_saved_on_user(scheduler, user_repo, mock_llm):
    await user_repo.create_user(User(id=TEST_USER_ID, location="Berlin"))
    mock_llm.complete.side_effect = lambda prompt, **kwargs: (
        "Europe/Berlin" if "IANA" in prompt else "Time for lunch!"
    )

    scheduled = await scheduler.schedule_reminders(TEST_USER_ID, now=NOW)

    assert scheduled[0].timezone == "Europe/Berlin"
    assert (await user_repo.get_by_id(TEST_USER_ID)).timezone == "Europe/Berlin"


async def test_unknown_user_uses_default_timezone(scheduler):
    scheduled = await scheduler.schedule_reminders(TEST_USER_ID, now=NOW)
    assert {item.timezone for item in scheduled} == {"UTC"}


async def test_reschedule_replaces_previous_triggers(scheduler, local_scheduler):
    first = await scheduler.schedule_reminders(TEST_USER_ID, now=NOW)
    second = await scheduler.schedule_reminders(TEST_USER_ID, now=NOW)

    current_ids = {item["notification_id"] for item in local_scheduler.get_all_scheduled()}
    assert current_ids == {item.notification_id for item in second}
    assert current_ids.isdisjoint({item.notification_id for item in first})


async def test_single_user_installation_cancels_everything(scheduler, local_scheduler):
    local_scheduler.schedule_daily("other-user", 7, 0, ZoneInfo("UTC"), default_content())

    await scheduler.schedule_reminders(TEST_USER_ID, now=NOW)

    assert {item["user_id"] for item in local_scheduler.get_all_scheduled()} == {TEST_USER_ID}


async def test_multi_user_cancels_only_own_triggers(
        local_scheduler, dispatcher, mock_llm, fake_redis, progress_store, notification_repo, user_repo
):
    scheduler = build_scheduler(
        local_scheduler, dispatcher, mock_llm, fake_redis, progress_store, notification_repo, user_repo,
        single_user_installation=False
    )
    local_scheduler.schedule_daily("other-user", 7, 0, ZoneInfo("UTC"), default_content())

    await scheduler.schedule_reminders(TEST_USER_ID, now=NOW)

    assert "other-user" in {item["user_id"] for item in local_scheduler.get_all_scheduled()}


async def test_inactive_settings_are_skipped(scheduler):
    settings = [
        NotificationSettingSchema(meal_type="breakfast", time=ReminderTime(hour=8), is_active=False),
        NotificationSettingSchema(meal_type="lunch", time=ReminderTime(hour=13)),
    ]

    scheduled = await scheduler.schedule_reminders(TEST_USER_ID, settings=settings, now=NOW)

    assert [item.meal_type for item in scheduled if item.kind == NotificationKind.meal_reminder] == ["lunch"]


async def test_rate_limited_slots_are_not_scheduled(
        local_scheduler, dispatcher, mock_llm, fake_redis, progress_store, notification_repo, user_repo
):
    mock_llm.complete.return_value = "Eat well!"
    scheduler = build_scheduler(
        local_scheduler, dispatcher, mock_llm, fake_redis, progress_store, notification_repo, user_repo,
        max_calls=3
    )

    scheduled = await scheduler.schedule_reminders(TEST_USER_ID, now=NOW)

    assert [item.meal_type for item in scheduled] == ["breakfast", "morning_snack", "lunch"]
    assert len(local_scheduler.get_all_scheduled()) == 3


async def test_history_recorded_for_each_trigger(scheduler, db_session):
    scheduled = await scheduler.schedule_reminders(TEST_USER_ID, now=NOW)

    count = (await db_session.execute(select(func.count(NotificationHistory.id)))).scalar_one()
    assert count == len(scheduled) == 8


async def test_history_failure_does_not_block_scheduling(
        local_scheduler, dispatcher, mock_llm, fake_redis, progress_store, user_repo
):
    repo = AsyncMock(spec=NotificationRepository)
    repo.list_settings.return_value = []
    repo.add_history.side_effect = RuntimeError("insert failed")
    repo.mark_notified.side_effect = RuntimeError("update failed")
    scheduler = build_scheduler(local_scheduler, dispatcher, mock_llm, fake_redis, progress_store, repo, user_repo)

    scheduled = await scheduler.schedule_reminders(TEST_USER_ID, now=NOW)

    assert len(scheduled) == 8


async def test_schedule_requires_user(scheduler):
    with pytest.raises(UnauthenticatedError):
        await scheduler.schedule_reminders("", now=NOW)


# ---------------------------------------------------------------------------
# register_device / settings
# ---------------------------------------------------------------------------

async def test_register_device_creates_default_settings(scheduler, notification_repo, dispatcher):
    await scheduler.register_device(TEST_USER_ID, "ExponentPushToken[xyz]", PushPlatform.ios, location="Paris")

    rows = await notification_repo.list_settings(TEST_USER_ID)
    assert [row.meal_type for row in rows] == [item.meal_type for item in default_reminders()]
    assert await dispatcher.get_push_token(TEST_USER_ID) == "ExponentPushToken[xyz]"


async def test_register_device_twice_keeps_settings(scheduler, notification_repo):
    await scheduler.register_device(TEST_USER_ID, "token-1", PushPlatform.ios)
    await notification_repo.save_setting(TEST_USER_ID, "lunch", False)
    await scheduler.register_device(TEST_USER_ID, "token-2", PushPlatform.ios)

    assert (await notification_repo.get_setting(TEST_USER_ID, "lunch")).is_active is False


async def test_update_setting_moves_reminder_and_reschedules(scheduler, notification_repo):
    await scheduler.register_device(TEST_USER_ID, "token-1", PushPlatform.android)

    scheduled = await scheduler.update_notification_setting(
        TEST_USER_ID, NotificationSettingUpdate(meal_type="lunch", is_active=True, time=ReminderTime(hour=14, minute=15))
    )

    lunch = [item for item in scheduled if item.meal_type == "lunch"][0]
    assert (lunch.hour, lunch.minute) == (14, 15)
    setting = await notification_repo.get_setting(TEST_USER_ID, "lunch")
    assert (setting.hour, setting.minute) == (14, 15)


async def test_update_before_registration_keeps_other_default_reminders(scheduler, notification_repo):
    assert len(await scheduler.get_settings(TEST_USER_ID)) == 5

    scheduled = await scheduler.update_notification_setting(
        TEST_USER_ID, NotificationSettingUpdate(meal_type="lunch", is_active=True, time=ReminderTime(hour=14, minute=0))
    )

    settings = await scheduler.get_settings(TEST_USER_ID)
    assert [item.meal_type for item in settings] == [
        "breakfast", "morning_snack", "lunch", "afternoon_snack", "dinner"
    ]
    assert settings[2].time == ReminderTime(hour=14, minute=0)
    assert len(await notification_repo.list_settings(TEST_USER_ID)) == 5
    meals = [item for item in scheduled if item.kind == NotificationKind.meal_reminder]
    assert len(meals) == 5


async def test_update_setting_disables_reminder(scheduler):
    await scheduler.register_device(TEST_USER_ID, "token-1", PushPlatform.android)

    scheduled = await scheduler.update_notification_setting(
        TEST_USER_ID, NotificationSettingUpdate(meal_type="dinner", is_active=False)
    )

    assert "dinner" not in {item.meal_type for item in scheduled}


async def test_update_unknown_meal_without_time_is_rejected(scheduler):
    with pytest.raises(ValueError):
        await scheduler.update_notification_setting(
            TEST_USER_ID, NotificationSettingUpdate(meal_type="midnight_feast", is_active=True)
        )


# ---------------------------------------------------------------------------
# Разовое приветственное уведомление
# ---------------------------------------------------------------------------

async def test_welcome_notification_sent_immediately(scheduler, mock_push_sender, local_scheduler):
    await scheduler.register_device(TEST_USER_ID, "ExponentPushToken[xyz]", PushPlatform.ios)

    result = await scheduler.send_test_notification(TEST_USER_ID, now=NOW)

    assert result.delivered is True
    assert result.body == "App opened at 06:30:00. Notifications are working correctly!"
    mock_push_sender.send.assert_awaited_once_with(
        "ExponentPushToken[xyz]", TEST_NOTIFICATION_TITLE, result.body, {"type": "test_notification"}
    )
    assert local_scheduler.get_all_scheduled() == []


async def test_welcome_notification_requires_registered_device(scheduler, mock_push_sender):
    with pytest.raises(DeviceNotRegisteredError):
        await scheduler.send_test_notification(TEST_USER_ID, now=NOW)

    mock_push_sender.send.assert_not_awaited()
