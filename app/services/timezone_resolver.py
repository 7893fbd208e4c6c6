import json
import logging
import re
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from app.core.cache import user_key
from app.core.config import settings
from app.core.exceptions import LLMServiceError
from app.services.llm_client import LLMClient

logger = logging.getLogger(__name__)

ZONE_PATTERN = re.compile(r"\b(UTC|[A-Z][A-Za-z_]+(?:/[A-Za-z0-9_+\-]+)+)\b")


def to_zone(name: Optional[str]) -> Optional[ZoneInfo]:
    if not name:
        return None
    try:
        return ZoneInfo(name.strip())
    except (ZoneInfoNotFoundError, ValueError, TypeError):
        return None


def default_zone() -> ZoneInfo:
    return to_zone(settings.DEFAULT_TIMEZONE) or ZoneInfo("UTC")


def extract_zone_name(text: str) -> Optional[str]:
    """Достать IANA-идентификатор из ответа модели ("Asia/Kolkata", `Europe/Berlin` и т.п.)"""
    if not text:
        return None
    match = ZONE_PATTERN.search(text.strip().strip('"`\''))
    return match.group(1) if match else None


class TimezoneResolver:
    """Часовой пояс пользователя по свободному тексту локации. Никогда не бросает исключений"""

    def __init__(self, llm: LLMClient, cache: aioredis.Redis, ttl: int = None):
        self.llm = llm
        self.cache = cache
        self.ttl = ttl or settings.TIMEZONE_CACHE_TTL

    async def _get_cached(self, key: str, location: str) -> Optional[ZoneInfo]:
        try:
            raw = await self.cache.get(key)
        except RedisError as e:
            logger.warning(f"Redis недоступен при чтении часового пояса: {e}")
            return None
        if not raw:
            return None
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            return None
        if not isinstance(data, dict) or data.get("location") != location:
            return None
        return to_zone(data.get("zone"))

    async def _cache_set(self, key: str, location: str, zone: ZoneInfo) -> None:
        try:
            await self.cache.setex(key, self.ttl, json.dumps({"location": location, "zone": zone.key}))
        except RedisError as e:
            logger.warning(f"Не удалось закешировать часовой пояс: {e}")

    async def guess_zone(self, location: str) -> Optional[ZoneInfo]:
        prompt = (
            f'What is the IANA time zone identifier for this location: "{location}"? '
            "Reply with only the identifier, for example Asia/Kolkata or America/New_York."
        )
        try:
            text = await self.llm.complete(prompt, temperature=0, max_tokens=20)
        except LLMServiceError as e:
            logger.warning(f"AI не смог определить часовой пояс для '{location}': {e}")
            return None

        zone = to_zone(extract_zone_name(text))
        if zone is None:
            logger.warning(f"AI вернул неизвестный часовой пояс для '{location}': {text!r}")
        return zone

    async def resolve(self, user_id: str, location: Optional[str], known: Optional[str] = None) -> ZoneInfo:
        zone = to_zone(known)
        if zone is not None:
            return zone

        location = (location or "").strip()
        if not location:
            return default_zone()

        key = user_key(user_id, "timezone")
        zone = await self._get_cached(key, location)
        if zone is not None:
            return zone

        zone = await self.guess_zone(location)
        if zone is None:
            return default_zone()

        await self._cache_set(key, location, zone)
        return zone
