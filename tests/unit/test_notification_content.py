"""
Модульные тесты генерации текста уведомлений.

- классификация часа: утро / день / вечер / ночь и уточнение приёма пищи
- ответ модели очищается от кавычек
- ошибка модели → сообщение по умолчанию для периода
- лимит генераций исчерпан → None, модель не вызывается
"""

import pytest
from datetime import datetime
from unittest.mock import AsyncMock

from app.core.exceptions import LLMServiceError
from app.schemas.progress import ProgressTotals
from app.services.notification_content import (
    DEFAULT_MESSAGES, NotificationContentGenerator, classify_hour, clean_message, default_message
)
from app.services.rate_limiter import FixedWindowRateLimiter
from tests.factories import TEST_USER_ID

pytestmark = pytest.mark.unit


@pytest.mark.parametrize("hour,period,meal_context", [
    (5, "morning", "early breakfast"),
    (6, "morning", "early breakfast"),
    (7, "morning", "breakfast"),
    (11, "morning", "breakfast"),
    (12, "afternoon", "lunch"),
    (13, "afternoon", "lunch"),
    (14, "afternoon", "afternoon snack"),
    (16, "afternoon", "afternoon snack"),
    (17, "evening", "dinner"),
    (19, "evening", "dinner"),
    (20, "evening", "evening snack"),
    (21, "evening", "evening snack"),
    (22, "night", "late night"),
    (0, "night", "late night"),
    (4, "night", "late night"),
])
def test_classify_hour(hour, period, meal_context):
    context = classify_hour(hour)
    assert context.period == period
    assert context.meal_context == meal_context


def test_default_message_rotates_by_minute():
    assert default_message("evening", 0) == DEFAULT_MESSAGES["evening"][0]
    assert default_message("evening", 4) == DEFAULT_MESSAGES["evening"][1]


def test_clean_message_strips_quotes():
    assert clean_message('  "Time for a healthy lunch!"  ') == "Time for a healthy lunch!"
    assert clean_message("'Hi'") == "Hi"
    assert clean_message("Plain text") == "Plain text"


@pytest.fixture
def limiter(fake_redis) -> FixedWindowRateLimiter:
    return FixedWindowRateLimiter(fake_redis, max_calls=10, window=3600)


async def test_generate_uses_model_text(mock_llm, limiter):
    mock_llm.complete.return_value = '"You\'re at 40% of protein, add some eggs!"'
    generator = NotificationContentGenerator(mock_llm, limiter)

    text = await generator.generate(
        TEST_USER_ID, "breakfast", ProgressTotals(calories=500), datetime(2026, 3, 14, 8, 0)
    )

    assert text == "You're at 40% of protein, add some eggs!"
    prompt = mock_llm.complete.call_args.args[0]
    assert "Time of day: morning" in prompt
    assert "Actual meal context: breakfast" in prompt
    assert mock_llm.complete.call_args.kwargs["temperature"] == 0.8


async def test_generate_falls_back_to_default_on_model_error(mock_llm, limiter):
    mock_llm.complete.side_effect = LLMServiceError("Groq is down")
    generator = NotificationContentGenerator(mock_llm, limiter)

    text = await generator.generate(TEST_USER_ID, "dinner", None, datetime(2026, 3, 14, 19, 2))

    assert text == DEFAULT_MESSAGES["evening"][2]


async def test_generate_falls_back_on_empty_reply(mock_llm, limiter):
    mock_llm.complete.return_value = '""'
    generator = NotificationContentGenerator(mock_llm, limiter)

    text = await generator.generate(TEST_USER_ID, "snack", None, datetime(2026, 3, 14, 23, 0))

    assert text in DEFAULT_MESSAGES["night"]


async def test_generate_returns_none_when_rate_limited(mock_llm, fake_redis):
    limiter = FixedWindowRateLimiter(fake_redis, max_calls=2, window=3600)
    generator = NotificationContentGenerator(mock_llm, limiter)
    now = datetime(2026, 3, 14, 13, 0)

    results = [await generator.generate(TEST_USER_ID, "lunch", None, now) for _ in range(3)]

    assert results[0] is not None and results[1] is not None
    assert results[2] is None
    assert mock_llm.complete.await_count == 2


async def test_rate_limit_counts_fallback_messages_too(fake_redis):
    llm = AsyncMock()
    llm.complete.side_effect = LLMServiceError("down")
    limiter = FixedWindowRateLimiter(fake_redis, max_calls=1, window=3600)
    generator = NotificationContentGenerator(llm, limiter)
    now = datetime(2026, 3, 14, 9, 0)

    assert await generator.generate(TEST_USER_ID, "breakfast", None, now) is not None
    assert await generator.generate(TEST_USER_ID, "breakfast", None, now) is None
