import redis.asyncio as aioredis

from app.core.config import settings


def create_redis(url: str = None) -> aioredis.Redis:
    return aioredis.from_url(
        url or settings.REDIS_URL,
        decode_responses=True,
        socket_connect_timeout=2,
        socket_timeout=2,
    )


def user_key(user_id: str, purpose: str, *parts: str) -> str:
    """user:<id>:<purpose>[:<part>...]"""
    return ":".join(["user", str(user_id), purpose, *[str(part) for part in parts]])
