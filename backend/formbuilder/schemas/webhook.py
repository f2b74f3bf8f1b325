from pydantic import BaseModel, ConfigDict
from typing import Optional, Dict, Any
from datetime import datetime
from enum import Enum


class PayloadFormat(str, Enum):
    JSON = "json"
    FORM_DATA = "form-data"


class DeliveryStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"


class WebhookBase(BaseModel):
    url: str
    secret: str
    enabled: bool = True
    headers: Dict[str, str] = {}
    payload_format: PayloadFormat = PayloadFormat.JSON
    retries_enabled: bool = True


class WebhookCreate(WebhookBase):
    pass


class WebhookUpdate(BaseModel):
    url: Optional[str] = None
    secret: Optional[str] = None
    enabled: Optional[bool] = None
    headers: Optional[Dict[str, str]] = None
    payload_format: Optional[PayloadFormat] = None
    retries_enabled: Optional[bool] = None


class Webhook(WebhookBase):
    id: str
    form_id: str
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class WebhookDeliveryPayload(BaseModel):
    form_id: str
    response_id: str
    data: Dict[str, Any] = {}


class DeliveryResult(BaseModel):
    webhook_id: str
    status: DeliveryStatus
    response_code: int = 0
    response_body: str = ""
    attempt_count: int = 1


class WebhookLog(BaseModel):
    id: Optional[str] = None
    webhook_id: str
    form_id: str
    submission_id: str
    status: DeliveryStatus
    response_code: int
    response_body: str = ""
    attempt_count: int
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
