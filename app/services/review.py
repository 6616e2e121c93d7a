"""
Payment submission and manual verification workflow.

Orchestrates:
1. Payer submits a UTR -> order stays pending with the UTR attached
2. Admin approves or rejects -> terminal status persisted
3. Connected dashboards are notified of each state change
4. On the first approval only, a webhook delivery is handed back to the
   caller to schedule after the response (never before the commit)
"""
import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from app import models
from app.schemas.responses import OrderOut
from app.services import orders
from app.services.notifier import (
    ConnectionRegistry,
    PAYMENT_APPROVED,
    PAYMENT_REJECTED,
    PAYMENT_SUBMITTED,
)
from app.services.webhooks import build_payload

logger = logging.getLogger(__name__)


class WebhookDelivery:
    def __init__(self, url: str, payload: Dict[str, Any]):
        self.url = url
        self.payload = payload


class ReviewResult:
    def __init__(self, order: models.Order, changed: bool, webhook: Optional[WebhookDelivery] = None):
        self.order = order
        self.changed = changed
        self.webhook = webhook


def serialize_order(order: models.Order) -> Dict[str, Any]:
    return OrderOut.model_validate(order).model_dump(mode="json", by_alias=True)


async def submit_payment(order_code: str, utr: str, db: Session,
                         notifier: ConnectionRegistry) -> models.Order:
    order = orders.attach_utr(order_code, utr, db)
    await notifier.broadcast(PAYMENT_SUBMITTED, serialize_order(order))
    return order


async def approve_payment(order_code: str, db: Session,
                          notifier: ConnectionRegistry) -> ReviewResult:
    """
    Approve an order. Re-approving an approved order re-confirms it without
    touching approved_at, broadcasting, or producing a second webhook.
    """
    transition = orders.approve(order_code, db)
    order = transition.order
    if not transition.changed:
        return ReviewResult(order, changed=False)

    await notifier.broadcast(PAYMENT_APPROVED, serialize_order(order))

    webhook = None
    if order.callback_url:
        webhook = WebhookDelivery(order.callback_url, build_payload(order))
        logger.info("Webhook for order %s queued to %s", order.order_id, order.callback_url)
    return ReviewResult(order, changed=True, webhook=webhook)


async def reject_payment(order_code: str, db: Session,
                         notifier: ConnectionRegistry) -> ReviewResult:
    transition = orders.reject(order_code, db)
    if transition.changed:
        await notifier.broadcast(PAYMENT_REJECTED, serialize_order(transition.order))
    return ReviewResult(transition.order, changed=transition.changed)
