"""
Модульные тесты LocalNotificationScheduler и NotificationDispatcher.

- ежедневный триггер в часовом поясе пользователя
- отмена всех / только своих триггеров
- доставка: push-токен из Redis, повторная доставка в тот же день подавляется
"""

import json
import pytest
from zoneinfo import ZoneInfo

from app.schemas.notification import NotificationContent, PushPlatform
from app.services.notification_dispatcher import NotificationDispatcher
from tests.factories import TEST_USER_ID

pytestmark = pytest.mark.unit


def make_content(kind: str = "meal_reminder") -> NotificationContent:
    return NotificationContent(title="Time to track your nutrition!", body="Lunch time!", data={"type": kind})


# ---------------------------------------------------------------------------
# LocalNotificationScheduler
# ---------------------------------------------------------------------------

def test_schedule_daily_registers_cron_job(local_scheduler):
    notification_id = local_scheduler.schedule_daily(
        TEST_USER_ID, 13, 30, ZoneInfo("Asia/Kolkata"), make_content()
    )

    job = local_scheduler.scheduler.get_job(notification_id)
    assert job is not None
    assert job.kwargs["user_id"] == TEST_USER_ID
    assert job.kwargs["body"] == "Lunch time!"
    assert str(job.trigger.timezone) == "Asia/Kolkata"
    assert "hour='13'" in str(job.trigger)
    assert "minute='30'" in str(job.trigger)


def test_cancel_all_removes_every_job(local_scheduler):
    local_scheduler.schedule_daily("user-a", 8, 0, ZoneInfo("UTC"), make_content())
    local_scheduler.schedule_daily("user-b", 9, 0, ZoneInfo("UTC"), make_content())

    assert local_scheduler.cancel_all() == 2
    assert local_scheduler.get_all_scheduled() == []


def test_cancel_for_user_keeps_other_users(local_scheduler):
    local_scheduler.schedule_daily("user-a", 8, 0, ZoneInfo("UTC"), make_content())
    local_scheduler.schedule_daily("user-a", 12, 0, ZoneInfo("UTC"), make_content("progress_check"))
    local_scheduler.schedule_daily("user-b", 9, 0, ZoneInfo("UTC"), make_content())

    assert local_scheduler.cancel_for_user("user-a") == 2
    remaining = local_scheduler.get_all_scheduled()
    assert [item["user_id"] for item in remaining] == ["user-b"]


def test_get_all_scheduled_lists_content(local_scheduler):
    notification_id = local_scheduler.schedule_daily(TEST_USER_ID, 19, 0, ZoneInfo("UTC"), make_content())

    scheduled = local_scheduler.get_all_scheduled()

    assert len(scheduled) == 1
    assert scheduled[0]["notification_id"] == notification_id
    assert scheduled[0]["title"] == "Time to track your nutrition!"
    assert scheduled[0]["data"] == {"type": "meal_reminder"}


# ---------------------------------------------------------------------------
# NotificationDispatcher
# ---------------------------------------------------------------------------

async def test_store_push_token(dispatcher, fake_redis):
    await dispatcher.store_push_token(TEST_USER_ID, "ExponentPushToken[abc]", PushPlatform.ios)

    raw = await fake_redis.hget(f"user:{TEST_USER_ID}:notifications", "token")
    data = json.loads(raw)
    assert data["token"] == "ExponentPushToken[abc]"
    assert data["platform"] == "ios"
    assert "lastUpdated" in data
    assert await dispatcher.get_push_token(TEST_USER_ID) == "ExponentPushToken[abc]"


async def test_deliver_sends_push(dispatcher, mock_push_sender):
    await dispatcher.store_push_token(TEST_USER_ID, "ExponentPushToken[abc]", PushPlatform.android)

    delivered = await dispatcher.deliver("n1", TEST_USER_ID, "Title", "Body", {"type": "meal_reminder"})

    assert delivered is True
    mock_push_sender.send.assert_awaited_once_with(
        "ExponentPushToken[abc]", "Title", "Body", {"type": "meal_reminder"}
    )


async def test_deliver_same_notification_once_per_day(dispatcher, mock_push_sender):
    await dispatcher.store_push_token(TEST_USER_ID, "ExponentPushToken[abc]", PushPlatform.android)

    assert await dispatcher.deliver("n1", TEST_USER_ID, "Title", "Body") is True
    assert await dispatcher.deliver("n1", TEST_USER_ID, "Title", "Body") is False
    assert mock_push_sender.send.await_count == 1


async def test_deliver_without_token_is_skipped(dispatcher, mock_push_sender):
    assert await dispatcher.deliver("n2", TEST_USER_ID, "Title", "Body") is False
    mock_push_sender.send.assert_not_awaited()


async def test_corrupted_token_is_ignored(fake_redis, mock_push_sender):
    dispatcher = NotificationDispatcher(fake_redis, mock_push_sender)
    await fake_redis.hset(f"user:{TEST_USER_ID}:notifications", mapping={"token": "not json"})

    assert await dispatcher.get_push_token(TEST_USER_ID) is None
