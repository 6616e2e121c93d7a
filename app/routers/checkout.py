from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app import models
from app.database import get_db
from app.dependencies.auth import require_api_key
from app.schemas.requests import CheckoutSessionRequest, SubmitPaymentRequest
from app.schemas.responses import (
    CheckoutSessionResponse,
    OrderStatusResponse,
    SubmitPaymentResponse,
)
from app.services import api_keys, checkout, orders, review
from app.services.notifier import ConnectionRegistry, get_notifier

router = APIRouter()


@router.post("/sessions", response_model=CheckoutSessionResponse)
def create_checkout_session(
    payload: CheckoutSessionRequest,
    request: Request,
    db: Session = Depends(get_db),
    api_key: models.ApiKey = Depends(require_api_key(api_keys.PUBLISHABLE, api_keys.SECRET)),
):
    """
    Create a payment order and return the payment page descriptor.

    Amount is taken from `amount`, then `priceText`, then the referenced
    product's price; the first one that parses wins. The order expires
    5 minutes after creation.
    """
    return checkout.create_session(payload, api_key, str(request.base_url), db)


@router.get("/status/{order_id}", response_model=OrderStatusResponse)
def get_checkout_status(order_id: str, db: Session = Depends(get_db)):
    """Public status poll. Expired orders are marked expired on read."""
    return orders.get_order(order_id, db)


@router.post("/submit", response_model=SubmitPaymentResponse)
async def submit_payment(
    payload: SubmitPaymentRequest,
    db: Session = Depends(get_db),
    notifier: ConnectionRegistry = Depends(get_notifier),
):
    """Attach the payer's UTR; the order then waits for admin review."""
    order = await review.submit_payment(payload.order_id, payload.utr, db, notifier)
    return SubmitPaymentResponse(
        message="Payment proof submitted successfully",
        order_id=order.order_id,
    )
