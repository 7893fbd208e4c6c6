"""
Сообщения из встроенной платёжной страницы (webview -> приложение).

Страница шлёт JSON {type, data}. Любое сообщение превращается в PaymentOutcome,
исключения наружу не выходят: битое сообщение = неуспешная оплата.
"""
import json
import logging

from pydantic import ValidationError

from app.schemas.payment import PaymentBridgeMessage, PaymentMessageType, PaymentOutcome, PaymentStatus

logger = logging.getLogger(__name__)


def parse_bridge_message(raw: str) -> PaymentBridgeMessage:
    """ValueError / ValidationError для невалидного сообщения"""
    return PaymentBridgeMessage.model_validate(json.loads(raw))


def handle_bridge_message(raw: str) -> PaymentOutcome:
    try:
        message = parse_bridge_message(raw)
    except (ValueError, TypeError, ValidationError) as e:
        logger.error(f"Error handling WebView message: {e}")
        return PaymentOutcome(status=PaymentStatus.failed, error={"description": str(e)})

    data = message.data or {}

    if message.type == PaymentMessageType.PAYMENT_SUCCESS:
        payment_id = data.get("razorpay_payment_id")
        logger.info(f"Оплата прошла: {payment_id}")
        return PaymentOutcome(status=PaymentStatus.success, payment_id=payment_id)

    if message.type == PaymentMessageType.PAYMENT_ERROR:
        logger.warning(f"Ошибка оплаты: {data}")
        return PaymentOutcome(status=PaymentStatus.failed, error=data)

    return PaymentOutcome(status=PaymentStatus.dismissed)
