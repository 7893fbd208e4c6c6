import json
import logging
from datetime import datetime
from typing import Any, Dict, Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from app.core.cache import user_key
from app.core.config import settings
from app.core.exceptions import DeviceNotRegisteredError
from app.schemas.notification import PushPlatform
from app.services.push_sender import ExpoPushSender

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """Push-токены пользователей и доставка сработавших напоминаний"""

    def __init__(self, cache: aioredis.Redis, sender: ExpoPushSender, handled_ttl: int = None):
        self.cache = cache
        self.sender = sender
        self.handled_ttl = handled_ttl or settings.HANDLED_NOTIFICATION_TTL

    @staticmethod
    def notifications_key(user_id: str) -> str:
        return user_key(user_id, "notifications")

    async def store_push_token(self, user_id: str, token: str, platform: PushPlatform) -> None:
        token_data = {
            "token": token,
            "platform": PushPlatform(platform).value,
            "lastUpdated": datetime.utcnow().isoformat(),
        }
        await self.cache.hset(self.notifications_key(user_id), mapping={"token": json.dumps(token_data)})

    async def get_push_token(self, user_id: str) -> Optional[str]:
        try:
            raw = await self.cache.hget(self.notifications_key(user_id), "token")
        except RedisError as e:
            logger.error(f"Redis недоступен при чтении push-токена {user_id}: {e}")
            return None
        if not raw:
            return None
        try:
            return json.loads(raw).get("token")
        except (json.JSONDecodeError, AttributeError):
            logger.warning(f"Повреждённый push-токен пользователя {user_id}")
            return None

    async def _mark_handled(self, notification_id: str) -> bool:
        """True — уведомление сегодня ещё не обрабатывалось"""
        key = f"handled_notification:{notification_id}:{datetime.utcnow().date().isoformat()}"
        try:
            return bool(await self.cache.set(key, "1", nx=True, ex=self.handled_ttl))
        except RedisError as e:
            logger.warning(f"Не удалось проверить повторную доставку {notification_id}: {e}")
            return True

    async def send_now(self, user_id: str, title: str, body: str, data: Dict[str, Any] = None) -> bool:
        """Отправить уведомление сразу, без триггера и без проверки повторной доставки"""
        token = await self.get_push_token(user_id)
        if not token:
            raise DeviceNotRegisteredError(f"Устройство пользователя {user_id} не зарегистрировано")
        return await self.sender.send(token, title, body, data)

    async def deliver(
            self,
            notification_id: str,
            user_id: str,
            title: str,
            body: str,
            data: Dict[str, Any] = None
    ) -> bool:
        """Вызывается планировщиком в момент срабатывания триггера"""
        if not await self._mark_handled(notification_id):
            logger.info(f"Уведомление {notification_id} уже доставлено сегодня")
            return False

        token = await self.get_push_token(user_id)
        if not token:
            logger.warning(f"Нет push-токена для пользователя {user_id}, уведомление {notification_id} пропущено")
            return False

        delivered = await self.sender.send(token, title, body, data)
        if delivered:
            logger.info(f"Уведомление {notification_id} доставлено пользователю {user_id}")
        return delivered
