"""
Checkout session creation.

Resolves the amount (explicit amount -> free-text price -> product price,
first successful normalization wins), checks the accepted range, requires an
active receiving descriptor, persists the order and builds the payment page
descriptor returned to the merchant.
"""
import logging
from typing import Optional, Tuple

from sqlalchemy.orm import Session

from app import models
from app.config import DEFAULT_CURRENCY
from app.errors import PreconditionError, ValidationError
from app.schemas.requests import CheckoutSessionRequest
from app.schemas.responses import CheckoutSessionResponse, IntegrationInfo
from app.services import catalog, orders
from app.services.normalizer import in_range, normalize_amount, to_major_units

logger = logging.getLogger(__name__)

AMOUNT_FORMAT_HELP = (
    "Valid amount is required. Provide amount as number (in rupees) or string "
    "with currency symbol (₹100, 100.50, etc.)"
)
AMOUNT_RANGE_HELP = "Amount must be between ₹1 and ₹1,00,000"


def resolve_amount(
    request: CheckoutSessionRequest,
    product: Optional[models.Product],
) -> Tuple[Optional[int], bool]:
    """
    Returns (minor_units, auto_detected). auto_detected is True when the
    amount was parsed out of a string rather than given as a number.
    """
    amount = normalize_amount(request.amount)
    if amount is not None:
        return amount, isinstance(request.amount, str)

    amount = normalize_amount(request.price_text)
    if amount is not None:
        return amount, True

    if product is not None:
        return normalize_amount(to_major_units(product.price)), False
    return None, False


def build_description(request: CheckoutSessionRequest, product: Optional[models.Product]) -> str:
    if product is not None:
        return f"{request.description} - {product.name}"
    if request.item_name:
        return f"{request.item_name} - {request.description}"
    return request.description


def payment_url(base_url: str, order_code: str) -> str:
    return f"{base_url.rstrip('/')}/payment/{order_code}"


def create_session(
    request: CheckoutSessionRequest,
    api_key: models.ApiKey,
    base_url: str,
    db: Session,
) -> CheckoutSessionResponse:
    """
    Mint a pending order for a merchant and describe how to pay it.

    Raises:
        NotFoundError: product_id given but no such active product
        ValidationError: no parsable amount, or amount out of range
        PreconditionError: no active QR / UPI descriptor configured
    """
    product = catalog.get_product(request.product_id, db) if request.product_id else None

    amount, auto_detected = resolve_amount(request, product)
    if amount is None:
        raise ValidationError(AMOUNT_FORMAT_HELP)
    if not in_range(amount):
        raise ValidationError(AMOUNT_RANGE_HELP)

    qr_code = catalog.get_active_qr_code(db)
    if qr_code is None:
        raise PreconditionError("Payment gateway not configured")

    description = build_description(request, product)
    currency = request.currency or DEFAULT_CURRENCY
    order = orders.create_order(
        amount=amount,
        qr_code_id=qr_code.id,
        db=db,
        description=description,
        currency=currency,
        customer_email=request.customer_email,
        product_id=product.id if product else None,
        callback_url=str(request.callback_url) if request.callback_url else None,
    )
    logger.info("Checkout session %s created with API key %s", order.order_id, api_key.id)

    return CheckoutSessionResponse(
        order_id=order.order_id,
        payment_url=payment_url(base_url, order.order_id),
        amount=to_major_units(amount),
        amount_in_minor_units=amount,
        currency=currency,
        description=description,
        item_name=request.item_name,
        expires_at=order.expires_at,
        qr_code_url=qr_code.image_url,
        upi_id=qr_code.upi_id,
        integration_info=IntegrationInfo(
            auto_detected=auto_detected,
            original_amount=request.amount if request.amount is not None else request.price_text,
            parsed_amount=to_major_units(amount),
        ),
    )
