import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from app.core.exceptions import LLMServiceError
from app.schemas.progress import ProgressTotals
from app.services.llm_client import LLMClient
from app.services.rate_limiter import FixedWindowRateLimiter

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 100

DEFAULT_MESSAGES = {
    "morning": [
        "Rise and shine! Time to plan your healthy breakfast.",
        "Good morning! A protein-rich breakfast keeps you full for longer.",
        "Morning! Start your day with a glass of water and some fruit.",
    ],
    "afternoon": [
        "Lunchtime! Remember to include colorful veggies in your meal.",
        "Afternoon check-in: a handful of nuts beats the vending machine.",
        "Halfway through the day! Log your lunch to stay on track.",
    ],
    "evening": [
        "Dinner planning time! Keep it light and nutritious.",
        "Evening! Lean protein and greens make a great dinner.",
        "Almost done for the day. Don't forget to log your dinner!",
    ],
    "night": [
        "Planning tomorrow's meals? Don't forget to stay hydrated!",
        "Late night? Herbal tea is a better choice than a snack.",
        "Rest well! A good night's sleep helps your nutrition goals.",
    ],
}


@dataclass(frozen=True)
class TimeContext:
    period: str        # morning / afternoon / evening / night
    meal_context: str  # "early breakfast", "afternoon snack", ...


def classify_hour(hour: int) -> TimeContext:
    if 5 <= hour < 12:
        return TimeContext("morning", "early breakfast" if hour < 7 else "breakfast")
    if 12 <= hour < 17:
        return TimeContext("afternoon", "lunch" if hour < 14 else "afternoon snack")
    if 17 <= hour < 22:
        return TimeContext("evening", "dinner" if hour < 20 else "evening snack")
    return TimeContext("night", "late night")


def default_message(period: str, minute: int) -> str:
    """Запасное сообщение: выбор по минуте даёт разнообразие без случайности"""
    pool = DEFAULT_MESSAGES.get(period, DEFAULT_MESSAGES["morning"])
    return pool[minute % len(pool)]


def clean_message(text: str) -> str:
    text = (text or "").strip()
    if len(text) >= 2 and text[0] == text[-1] and text[0] in "\"'":
        text = text[1:-1].strip()
    return text


class NotificationContentGenerator:
    def __init__(self, llm: LLMClient, rate_limiter: FixedWindowRateLimiter):
        self.llm = llm
        self.rate_limiter = rate_limiter

    @staticmethod
    def build_prompt(context: TimeContext, meal_type: str, progress: Optional[ProgressTotals]) -> str:
        progress_text = progress.model_dump_json() if progress else "no data yet"
        return f"""Generate a friendly, motivational nutrition notification for a user. Use this context:
        - Time of day: {context.period}
        - Actual meal context: {context.meal_context}
        - Requested meal type: {meal_type}
        - Current progress: {progress_text}

        The message should be:
        1. Personal and encouraging
        2. Time-appropriate (don't say good morning in the evening)
        3. Reference their current progress if available
        4. Include a specific tip or suggestion related to the time of day
        5. Keep it under {MAX_MESSAGE_LENGTH} characters

        Format: Return only the notification text, no quotes or formatting."""

    async def generate(
            self,
            user_id: str,
            meal_type: str,
            progress: Optional[ProgressTotals],
            local_now: datetime
    ) -> Optional[str]:
        """
        Текст уведомления или None, если лимит генераций пользователя за окно исчерпан.
        None означает «пропустить слот», а не ошибку.
        """
        context = classify_hour(local_now.hour)

        if not await self.rate_limiter.hit(user_id):
            return None

        try:
            text = clean_message(await self.llm.complete(
                self.build_prompt(context, meal_type, progress),
                temperature=0.8,
                max_tokens=60
            ))
            if text:
                return text
        except LLMServiceError as e:
            logger.error(f"Error generating notification content: {e}")

        return default_message(context.period, local_now.minute)
