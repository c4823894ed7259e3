"""Request payloads accepted by the JSON endpoints."""
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as PayloadError

from .errors import ValidationError


def parse(model: type[BaseModel], payload):
    """Validate ``payload`` against ``model``, raising the workflow ValidationError."""
    try:
        return model.model_validate(payload or {})
    except PayloadError as exc:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc']) or 'body'}: {error['msg']}"
            for error in exc.errors()
        )
        raise ValidationError(problems) from exc


class ProductLine(BaseModel):
    product: str
    quantity: int = Field(default=1, ge=1)


class EnquiryCreate(BaseModel):
    customer_name: str
    phone: str
    address: str = ""
    message: str = ""
    inquiry_type: str = "Walk-in"
    products: list[ProductLine]
    quoted_amount: Optional[Decimal] = None
    notes: Optional[str] = None

    @field_validator("customer_name", "phone")
    @classmethod
    def not_blank(cls, v):
        if not v.strip():
            raise ValueError("must not be blank")
        return v.strip()


class ConvertRequest(BaseModel):
    quoted_amount: Optional[Decimal] = None


class PickupAssign(BaseModel):
    assigned_to: str
    scheduled_time: Optional[datetime] = None


class PhotoRequest(BaseModel):
    photo: str
    notes: Optional[str] = None


class ReceivedItem(BaseModel):
    product: str
    item_index: int
    photos: list[str] = []
    notes: Optional[str] = None


class ReceiveItemsRequest(BaseModel):
    items: list[ReceivedItem]
    estimated_cost: Optional[Decimal] = None
    notes: Optional[str] = None


class ServiceAssign(BaseModel):
    service_types: list[str]
    product: str
    item_index: int


class CompleteWorkflowRequest(BaseModel):
    actual_cost: Decimal
    work_notes: Optional[str] = None


class BillingLine(BaseModel):
    service_type: str
    product: str
    item_index: int
    original_amount: Decimal
    discount_value: Decimal = Decimal("0")
    gst_rate: Optional[Decimal] = None
    description: Optional[str] = None


class BillingRequest(BaseModel):
    items: list[BillingLine]
    gst_included: Optional[bool] = None
    notes: Optional[str] = None


class ScheduleDeliveryRequest(BaseModel):
    delivery_method: str
    scheduled_time: datetime
    delivery_address: Optional[str] = None


class OutForDeliveryRequest(BaseModel):
    assigned_to: str


class CompleteDeliveryRequest(BaseModel):
    proof_photo: Optional[str] = None
    customer_signature: Optional[str] = None
    notes: Optional[str] = None
