import logging

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from app.core.cache import user_key
from app.core.config import settings

logger = logging.getLogger(__name__)


class FixedWindowRateLimiter:
    """
    Счётчик user:<id>:<purpose> в Redis с фиксированным окном.
    TTL ставится только при первом инкременте окна, чтобы повторные вызовы не продлевали окно.
    """

    def __init__(
            self,
            cache: aioredis.Redis,
            max_calls: int = None,
            window: int = None,
            purpose: str = "notification_rate"
    ):
        self.cache = cache
        self.max_calls = max_calls or settings.NOTIFICATION_RATE_LIMIT_MAX
        self.window = window or settings.NOTIFICATION_RATE_LIMIT_WINDOW
        self.purpose = purpose

    def key(self, user_id: str) -> str:
        return user_key(user_id, self.purpose)

    async def hit(self, user_id: str) -> bool:
        """Засчитать вызов. False — лимит окна исчерпан, действие надо пропустить"""
        key = self.key(user_id)
        try:
            count = await self.cache.incr(key)
            if count == 1:
                await self.cache.expire(key, self.window)
        except RedisError as e:
            # Без Redis лимит не проверить — не блокируем пользователя
            logger.warning(f"Rate limiter недоступен для {user_id}: {e}")
            return True

        if count > self.max_calls:
            logger.info(f"Rate limit exceeded for user {user_id} ({count}/{self.max_calls})")
            return False
        return True
