from fastapi import APIRouter, Depends, HTTPException
import logging
from typing import Any, Dict, List

from app.core.dependencies import get_current_user_id, get_local_scheduler, get_reminder_scheduler
from app.core.exceptions import DeviceNotRegisteredError, UnauthenticatedError
from app.schemas.notification import (
    DeviceRegistration, NotificationSettingSchema, NotificationSettingUpdate, ScheduledNotification,
    SentNotification
)
from app.services.local_scheduler import LocalNotificationScheduler
from app.services.notification_scheduler import ReminderScheduler

router = APIRouter(prefix="/notifications", tags=["notifications"])
logger = logging.getLogger(__name__)


@router.post("/register", response_model=List[ScheduledNotification])
async def register_device(
        registration: DeviceRegistration,
        user_id: str = Depends(get_current_user_id),
        scheduler: ReminderScheduler = Depends(get_reminder_scheduler)
):
    """Сохранить push-токен и запланировать напоминания"""
    try:
        await scheduler.register_device(
            user_id, registration.push_token, registration.platform, location=registration.location
        )
        return await scheduler.schedule_reminders(user_id)
    except UnauthenticatedError as e:
        raise HTTPException(status_code=401, detail=str(e))
    except Exception as e:
        logger.error(f"Ошибка регистрации устройства {user_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Ошибка регистрации уведомлений: {str(e)}")


@router.get("/settings", response_model=List[NotificationSettingSchema])
async def get_notification_settings(
        user_id: str = Depends(get_current_user_id),
        scheduler: ReminderScheduler = Depends(get_reminder_scheduler)
):
    try:
        return await scheduler.get_settings(user_id)
    except UnauthenticatedError as e:
        raise HTTPException(status_code=401, detail=str(e))


@router.put("/settings", response_model=List[ScheduledNotification])
async def update_notification_setting(
        update: NotificationSettingUpdate,
        user_id: str = Depends(get_current_user_id),
        scheduler: ReminderScheduler = Depends(get_reminder_scheduler)
):
    """Включить/выключить или перенести одно напоминание, затем перепланировать все"""
    try:
        return await scheduler.update_notification_setting(user_id, update)
    except UnauthenticatedError as e:
        raise HTTPException(status_code=401, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/reschedule", response_model=List[ScheduledNotification])
async def reschedule_notifications(
        user_id: str = Depends(get_current_user_id),
        scheduler: ReminderScheduler = Depends(get_reminder_scheduler)
):
    try:
        return await scheduler.schedule_reminders(user_id)
    except UnauthenticatedError as e:
        raise HTTPException(status_code=401, detail=str(e))


@router.get("/scheduled", response_model=List[Dict[str, Any]])
async def get_scheduled_notifications(
        user_id: str = Depends(get_current_user_id),
        local_scheduler: LocalNotificationScheduler = Depends(get_local_scheduler)
):
    """Запланированные триггеры текущего пользователя"""
    return [item for item in local_scheduler.get_all_scheduled() if item["user_id"] == user_id]


@router.post("/test", response_model=SentNotification)
async def send_test_notification(
        user_id: str = Depends(get_current_user_id),
        scheduler: ReminderScheduler = Depends(get_reminder_scheduler)
):
    """Отправить разовое приветственное уведомление на зарегистрированное устройство"""
    try:
        return await scheduler.send_test_notification(user_id)
    except UnauthenticatedError as e:
        raise HTTPException(status_code=401, detail=str(e))
    except DeviceNotRegisteredError as e:
        raise HTTPException(status_code=404, detail=str(e))
