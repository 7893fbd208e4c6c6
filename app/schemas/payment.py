from pydantic import BaseModel
from typing import Optional, Dict, Any
from enum import Enum


class PaymentMessageType(str, Enum):
    PAYMENT_SUCCESS = "PAYMENT_SUCCESS"
    PAYMENT_ERROR = "PAYMENT_ERROR"
    MODAL_CLOSED = "MODAL_CLOSED"


class PaymentBridgeMessage(BaseModel):
    """postMessage из встроенной платёжной страницы: {type, data}"""
    type: PaymentMessageType
    data: Optional[Dict[str, Any]] = None


class PaymentStatus(str, Enum):
    success = "success"
    failed = "failed"
    dismissed = "dismissed"


class PaymentOutcome(BaseModel):
    status: PaymentStatus
    payment_id: Optional[str] = None
    error: Optional[Dict[str, Any]] = None
    close_modal: bool = True


class BridgeMessageRequest(BaseModel):
    raw: str
