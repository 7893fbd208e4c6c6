from fastapi import APIRouter, Depends, HTTPException
import logging

from app.core.dependencies import get_analysis_handler, get_current_user_id
from app.core.exceptions import (
    LLMServiceError, MalformedAIResponseError, ProgressUpdateError, UnauthenticatedError
)
from app.schemas.analysis import AnalyzeRequest, AnalyzeResponse
from app.services.nutrition_analyzer import NutritionAnalysisHandler

router = APIRouter(prefix="/analysis", tags=["analysis"])
logger = logging.getLogger(__name__)


@router.post("", response_model=AnalyzeResponse)
async def analyze_food(
        request: AnalyzeRequest,
        user_id: str = Depends(get_current_user_id),
        handler: NutritionAnalysisHandler = Depends(get_analysis_handler)
):
    """Анализ блюда по описанию или фото (base64) с обновлением дневного прогресса"""
    try:
        return await handler.analyze(request.kind, request.payload, user_id, meal_type=request.meal_type)
    except UnauthenticatedError as e:
        raise HTTPException(status_code=401, detail=str(e))
    except MalformedAIResponseError as e:
        logger.error(f"Некорректный ответ модели: {e}")
        raise HTTPException(status_code=502, detail=str(e))
    except LLMServiceError as e:
        raise HTTPException(status_code=502, detail=f"AI сервис недоступен: {e}")
    except ProgressUpdateError as e:
        raise HTTPException(status_code=500, detail=str(e))
