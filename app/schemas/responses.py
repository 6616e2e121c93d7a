from datetime import datetime
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class IntegrationInfo(CamelModel):
    auto_detected: bool
    original_amount: Optional[Union[float, str]] = None
    parsed_amount: float


class CheckoutSessionResponse(CamelModel):
    order_id: str
    payment_url: str
    amount: float  # major units
    amount_in_minor_units: int
    currency: str
    description: str
    item_name: Optional[str] = None
    expires_at: datetime
    qr_code_url: Optional[str] = None
    upi_id: str
    integration_info: IntegrationInfo


class OrderStatusResponse(CamelModel):
    status: str
    order_id: str
    amount: int  # minor units
    updated_at: datetime


class SubmitPaymentResponse(CamelModel):
    message: str
    order_id: str


class OrderOut(CamelModel):
    """Full order view for admins and secret-key callers; includes the UTR."""
    id: str
    order_id: str
    product_id: Optional[str] = None
    qr_code_id: str
    amount: int
    currency: str
    description: Optional[str] = None
    customer_email: Optional[str] = None
    callback_url: Optional[str] = None
    status: str
    utr: Optional[str] = None
    expires_at: datetime
    approved_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class ApiKeyOut(CamelModel):
    id: str
    name: Optional[str] = None
    tier: str
    masked_key: str
    is_active: bool
    last_used_at: Optional[datetime] = None
    created_at: datetime


class ApiKeyCreated(CamelModel):
    key: str  # plaintext, shown only in this response
    api_key: ApiKeyOut


class ProductOut(CamelModel):
    id: str
    name: str
    description: Optional[str] = None
    price: int  # minor units
    is_active: bool
    created_at: datetime
    updated_at: datetime


class QrCodeOut(CamelModel):
    id: str
    upi_id: str
    image_url: Optional[str] = None
    is_active: bool
    created_at: datetime


class DashboardStats(CamelModel):
    total_revenue: int  # major units, rounded
    pending_payments: int
    successful_payments: int
    success_rate: float
    active_products: int


class MessageResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    detail: str
