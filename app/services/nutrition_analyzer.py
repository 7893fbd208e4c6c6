"""
Анализ питания по тексту или фото.

Порядок:
1. Кеш Redis по ключу (тип, первые N символов запроса)
2. Вызов языковой модели и разбор JSON-ответа
3. Побочные эффекты по очереди: прогресс дня (обязательно), запись в журнал анализов
   и запись в кеш (best-effort, ошибки только логируются)
"""
import json
import logging
from datetime import date, datetime
from typing import Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from app.core.config import settings
from app.core.exceptions import require_user_id
from app.models.analysis import MealTypeEnum
from app.repositories.analysis_repository import AnalysisRepository
from app.schemas.analysis import AnalysisKind, AnalyzeResponse, NutritionAnalysis
from app.services.llm_client import LLMClient
from app.services.progress_store import DailyProgressStore
from app.services.response_parser import parse_analysis, validate_analysis

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are NutrInfo, a specialized AI for analyzing food descriptions and images. Provide thorough nutritional analysis in JSON format.

For text descriptions:
1. Parse the food description and quantity
2. Calculate nutritional content based on standard portions
3. Provide health insights
4. Consider common preparation methods
5. Suggest alternatives

Return analysis in this exact JSON structure:
{
  "analysis_type": "text" | "image",
  "basic_info": {
    "food_name": string,
    "portion_size": string,
    "preparation_method": string,
    "total_servings": number
  },
  "nutritional_content": {
    "calories": number,
    "macronutrients": {
      "protein": { "amount": number, "unit": "g", "daily_value_percentage": number },
      "carbs": { "amount": number, "unit": "g", "daily_value_percentage": number },
      "fats": { "amount": number, "unit": "g", "daily_value_percentage": number }
    }
  },
  "health_analysis": {
    "benefits": string[],
    "considerations": string[],
    "allergens": string[],
    "processing_level": string
  },
  "recommendations": {
    "serving_suggestions": string[],
    "healthier_alternatives": string[],
    "local_options": string[]
  },
  "source_reliability": "verified" | "estimated",
  "meal_type": "breakfast" | "lunch" | "dinner" | "snack"
}"""

IMAGE_PROMPT = "Analyze this food image and provide nutritional information."


class NutritionAnalysisHandler:
    def __init__(
            self,
            llm: LLMClient,
            cache: aioredis.Redis,
            progress_store: DailyProgressStore,
            analysis_repo: AnalysisRepository,
            cache_ttl: int = None,
            prefix_length: int = None
    ):
        self.llm = llm
        self.cache = cache
        self.progress_store = progress_store
        self.analysis_repo = analysis_repo
        self.cache_ttl = cache_ttl or settings.ANALYSIS_CACHE_TTL
        self.prefix_length = prefix_length or settings.ANALYSIS_CACHE_PREFIX_LENGTH

    def cache_key(self, kind: AnalysisKind, payload: str) -> str:
        # Длинные запросы с общим началом попадают в одну запись кеша
        return f"nutrition_analysis:{kind.value}:{payload[:self.prefix_length]}"

    @staticmethod
    def _strip_data_url(payload: str) -> str:
        if payload.startswith("data:") and "," in payload:
            return payload.split(",", 1)[1]
        return payload

    @staticmethod
    def resolve_meal_type(requested: Optional[MealTypeEnum], analysis: NutritionAnalysis) -> MealTypeEnum:
        if requested is not None:
            return MealTypeEnum(requested)
        try:
            return MealTypeEnum((analysis.meal_type or "").lower())
        except ValueError:
            return MealTypeEnum.snack

    async def _get_cached(self, key: str) -> Optional[NutritionAnalysis]:
        try:
            raw = await self.cache.get(key)
        except RedisError as e:
            logger.warning(f"Cache retrieval failed: {e}")
            return None
        if not raw:
            return None

        try:
            result = validate_analysis(json.loads(raw))
        except json.JSONDecodeError:
            result = None
        if result is None or not result.ok:
            logger.warning(f"Некорректная запись в кеше анализа {key}, запрашиваем модель")
            return None
        return result.analysis

    async def _cache_set(self, key: str, analysis: NutritionAnalysis) -> None:
        try:
            await self.cache.setex(key, self.cache_ttl, json.dumps(analysis.model_dump(mode="json"), ensure_ascii=False))
        except RedisError as e:
            logger.warning(f"Cache storage failed: {e}")

    async def _store_record(self, user_id: str, day: date, analysis: NutritionAnalysis, meal_type: MealTypeEnum) -> None:
        try:
            await self.analysis_repo.add_record(user_id, day, analysis, meal_type)
        except Exception as e:
            logger.error(f"Error storing analysis result for {user_id}: {e}")

    async def request_analysis(self, kind: AnalysisKind, payload: str) -> NutritionAnalysis:
        """Вызов модели и разбор ответа. LLMServiceError / MalformedAIResponseError пробрасываются"""
        if kind == AnalysisKind.TEXT:
            text = await self.llm.complete(f"Analyze this food description: {payload}", system=SYSTEM_PROMPT)
        else:
            text = await self.llm.complete(IMAGE_PROMPT, system=SYSTEM_PROMPT, image_base64=self._strip_data_url(payload))
        return parse_analysis(text)

    async def analyze(
            self,
            kind: AnalysisKind,
            payload: str,
            user_id: str,
            meal_type: MealTypeEnum = None,
            today: date = None
    ) -> AnalyzeResponse:
        user_id = require_user_id(user_id)
        kind = AnalysisKind(kind)
        day = today or datetime.utcnow().date()

        key = self.cache_key(kind, payload)
        analysis = await self._get_cached(key)
        cached = analysis is not None
        if cached:
            logger.info(f"Анализ из кеша для {user_id}: {kind.value}")
        else:
            analysis = await self.request_analysis(kind, payload)

        resolved_meal_type = self.resolve_meal_type(meal_type, analysis)

        totals = await self.progress_store.merge(user_id, day, analysis.to_delta())
        if not cached:
            await self._store_record(user_id, day, analysis, resolved_meal_type)
            await self._cache_set(key, analysis)

        progress = await self.progress_store.with_goals(user_id, day, totals)
        return AnalyzeResponse(analysis=analysis, progress=progress, cached=cached)
