from fastapi import APIRouter
from app.api.v1.analysis import router as analysis_router
from app.api.v1.progress import router as progress_router
from app.api.v1.goals import router as goals_router
from app.api.v1.notifications import router as notifications_router
from app.api.v1.payments import router as payments_router

api_router = APIRouter()

api_router.include_router(analysis_router)
api_router.include_router(progress_router)
api_router.include_router(goals_router)
api_router.include_router(notifications_router)
api_router.include_router(payments_router)
