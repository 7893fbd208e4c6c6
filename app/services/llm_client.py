import logging
from typing import Any, Dict, List, Optional

import httpx

from app.core.config import settings
from app.core.exceptions import LLMServiceError

logger = logging.getLogger(__name__)


class LLMClient:
    """Клиент OpenAI-совместимого chat completions API (по умолчанию Groq)"""

    def __init__(
            self,
            api_key: str = None,
            base_url: str = None,
            model: str = None,
            vision_model: str = None,
            timeout: float = None,
            http: httpx.AsyncClient = None
    ):
        self.api_key = api_key if api_key is not None else settings.LLM_API_KEY
        self.base_url = base_url or settings.LLM_BASE_URL
        self.model = model or settings.LLM_MODEL
        self.vision_model = vision_model or settings.LLM_VISION_MODEL
        self.timeout = timeout or settings.LLM_TIMEOUT
        self._http = http

        logger.info(f"LLM client initialized. API Key: {'PRESENT' if self.api_key else 'NOT FOUND'}")

    async def _get_http(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=self.timeout)
        return self._http

    @staticmethod
    def _build_messages(prompt: str, system: Optional[str], image_base64: Optional[str]) -> List[Dict[str, Any]]:
        messages = []
        if system:
            messages.append({"role": "system", "content": system})

        if image_base64:
            messages.append({
                "role": "user",
                "content": [
                    {"type": "text", "text": prompt},
                    {"type": "image_url", "image_url": {"url": f"data:image/jpeg;base64,{image_base64}"}},
                ]
            })
        else:
            messages.append({"role": "user", "content": prompt})
        return messages

    async def complete(
            self,
            prompt: str,
            system: str = None,
            image_base64: str = None,
            temperature: float = None,
            max_tokens: int = None
    ) -> str:
        """Один запрос к модели, возвращает текст первого choice"""
        if not self.api_key:
            raise LLMServiceError("AI сервис не настроен. Добавьте LLM_API_KEY в .env файл")

        logger.debug(f"Prompt: {prompt[:100]}...")

        try:
            client = await self._get_http()
            response = await client.post(
                self.base_url,
                headers={
                    "Content-Type": "application/json",
                    "Authorization": f"Bearer {self.api_key}"
                },
                json={
                    "model": self.vision_model if image_base64 else self.model,
                    "messages": self._build_messages(prompt, system, image_base64),
                    "temperature": settings.LLM_TEMPERATURE if temperature is None else temperature,
                    "max_tokens": max_tokens or settings.LLM_MAX_TOKENS,
                    "stream": False
                },
                timeout=self.timeout
            )
        except httpx.TimeoutException as e:
            raise LLMServiceError("Таймаут подключения к AI API") from e
        except httpx.HTTPError as e:
            raise LLMServiceError(f"Ошибка подключения к AI API: {e}") from e

        logger.debug(f"AI API response status: {response.status_code}")

        if response.status_code != 200:
            error_msg = f"Ошибка AI API: {response.status_code}"
            try:
                error_data = response.json()
                error = error_data.get("error")
                if isinstance(error, dict):
                    error_msg += f" - {error.get('message', error)}"
                elif error:
                    error_msg += f" - {error}"
            except ValueError:
                error_msg += f" - {response.text}"
            raise LLMServiceError(error_msg)

        result = response.json()
        choices = result.get("choices") or []
        if choices and "content" in (choices[0].get("message") or {}):
            text = choices[0]["message"]["content"]
            if text:
                return text
        raise LLMServiceError("Неверный формат ответа от AI API")

    async def close(self) -> None:
        if self._http:
            await self._http.aclose()
            self._http = None
