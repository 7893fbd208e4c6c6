from fastapi import APIRouter, Depends, HTTPException, Query
from datetime import date, datetime
from typing import Optional

from app.core.dependencies import get_current_user_id, get_progress_store
from app.core.exceptions import UnauthenticatedError
from app.schemas.progress import DashboardProgress, WeeklyProgress
from app.services.progress_store import DailyProgressStore

router = APIRouter(prefix="/progress", tags=["progress"])


@router.get("/today", response_model=DashboardProgress)
async def get_today_progress(
        day: Optional[date] = Query(None, description="День (UTC), по умолчанию сегодня"),
        user_id: str = Depends(get_current_user_id),
        store: DailyProgressStore = Depends(get_progress_store)
):
    """Итоги дня, цели и процент выполнения"""
    try:
        return await store.get_dashboard(user_id, day or datetime.utcnow().date())
    except UnauthenticatedError as e:
        raise HTTPException(status_code=401, detail=str(e))


@router.get("/weekly", response_model=WeeklyProgress)
async def get_weekly_progress(
        days: int = Query(7, ge=1, le=31),
        user_id: str = Depends(get_current_user_id),
        store: DailyProgressStore = Depends(get_progress_store)
):
    """Серии калорий и БЖУ за последние N дней, пропуски заполнены нулями"""
    try:
        return await store.get_weekly(user_id, datetime.utcnow().date(), days=days)
    except UnauthenticatedError as e:
        raise HTTPException(status_code=401, detail=str(e))
