from fastapi import APIRouter, Depends

from app.core.dependencies import get_current_user_id
from app.schemas.payment import BridgeMessageRequest, PaymentOutcome
from app.services.payment_bridge import handle_bridge_message

router = APIRouter(prefix="/payments", tags=["payments"])


@router.post("/bridge-message", response_model=PaymentOutcome)
async def bridge_message(
        request: BridgeMessageRequest,
        user_id: str = Depends(get_current_user_id)
):
    """Сообщение из платёжного webview. Всегда 200, статус оплаты — в теле ответа"""
    return handle_bridge_message(request.raw)
