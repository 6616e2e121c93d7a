from typing import Literal, Optional, Union

from pydantic import AnyHttpUrl, BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CheckoutSessionRequest(CamelModel):
    amount: Optional[Union[float, str]] = None
    price_text: Optional[str] = None
    description: str = Field(..., min_length=1, max_length=1000)
    item_name: Optional[str] = Field(None, max_length=255)
    customer_email: Optional[EmailStr] = None
    callback_url: Optional[AnyHttpUrl] = None
    currency: Optional[str] = Field(None, min_length=3, max_length=8)
    product_id: Optional[str] = None

    @field_validator("currency")
    @classmethod
    def upper_currency(cls, v):
        return v.upper() if v else v


class SubmitPaymentRequest(CamelModel):
    order_id: str = Field(..., min_length=1, max_length=50)
    utr: str

    @field_validator("utr")
    @classmethod
    def validate_utr(cls, v):
        v = v.strip()
        if not 8 <= len(v) <= 20:
            raise ValueError("UTR must be 8 to 20 characters")
        if not v.isalnum() or not v.isascii():
            raise ValueError("UTR must contain only letters and digits")
        return v


class ApiKeyCreateRequest(CamelModel):
    name: str = Field("Default Key", min_length=1, max_length=100)
    tier: Literal["publishable", "secret"] = "publishable"


class ProductCreateRequest(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    price: Union[float, str]  # major units; normalized server-side
    is_active: bool = True


class ProductUpdateRequest(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    price: Optional[Union[float, str]] = None
    is_active: Optional[bool] = None
