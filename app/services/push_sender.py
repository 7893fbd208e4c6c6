import logging
from typing import Any, Dict

import httpx

from app.core.config import settings

logger = logging.getLogger(__name__)


class ExpoPushSender:
    """Отправка push-уведомлений через Expo Push API"""
    TIMEOUT = 10.0

    def __init__(self, url: str = None, http: httpx.AsyncClient = None):
        self.url = url or settings.EXPO_PUSH_URL
        self._http = http

    async def _get_http(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=self.TIMEOUT)
        return self._http

    async def send(self, token: str, title: str, body: str, data: Dict[str, Any] = None) -> bool:
        message = {
            "to": token,
            "title": title,
            "body": body,
            "data": data or {},
            "sound": "default",
            "badge": 1,
            "priority": "high",
        }
        try:
            client = await self._get_http()
            response = await client.post(self.url, json=message, headers={"Accept": "application/json"})
        except httpx.HTTPError as e:
            logger.error(f"Expo push error: {e}")
            return False

        if response.status_code != 200:
            logger.error(f"Expo push HTTP {response.status_code}: {response.text}")
            return False

        ticket = response.json().get("data") or {}
        if isinstance(ticket, list):
            ticket = ticket[0] if ticket else {}
        if ticket.get("status") == "error":
            logger.warning(f"Expo push rejected: {ticket.get('message')}")
            return False
        return True

    async def close(self) -> None:
        if self._http:
            await self._http.aclose()
            self._http = None
