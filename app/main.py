import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.router import api_router
from app.core.cache import create_redis
from app.core.config import settings
from app.core.database import init_database
from app.core.db import create_engine, create_session_factory
from app.services.llm_client import LLMClient
from app.services.local_scheduler import LocalNotificationScheduler
from app.services.notification_dispatcher import NotificationDispatcher
from app.services.push_sender import ExpoPushSender

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    engine = create_engine()
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)
    await init_database(engine)

    app.state.redis = create_redis()
    app.state.llm = LLMClient()
    push_sender = ExpoPushSender()
    app.state.dispatcher = NotificationDispatcher(app.state.redis, push_sender)
    app.state.local_scheduler = LocalNotificationScheduler(app.state.dispatcher)
    app.state.local_scheduler.start()
    logger.info("Приложение запущено!")

    try:
        yield
    finally:
        app.state.local_scheduler.shutdown()
        await push_sender.close()
        await app.state.llm.close()
        await app.state.redis.aclose()
        await engine.dispose()
        logger.info("Приложение остановлено")


app = FastAPI(title="NutriTrack - daily nutrition progress", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:8080",
        "http://localhost:8081",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix="/api/v1")


@app.get("/")
async def root():
    base_url = "http://localhost:8000"

    return {
        "app": "NutriTrack",
        "message": "Daily nutrition progress and meal reminders",
        "links": {
            "🥗 Analysis": f"{base_url}/api/v1/analysis",
            "📈 Progress": f"{base_url}/api/v1/progress/today",
            "🎯 Goals": f"{base_url}/api/v1/goals/current",
            "🔔 Notifications": f"{base_url}/api/v1/notifications/settings",
            "📚 Docs": f"{base_url}/docs",
            "📖 ReDoc": f"{base_url}/redoc"
        }
    }
