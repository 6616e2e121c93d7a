"""
Merchant webhook delivery.

Best-effort, at-most-once: a single POST per approval, no retry, no
signature. Failures are logged and swallowed so they can never affect the
approval that triggered them; merchants reconcile through the status
endpoint.
"""
import logging
from datetime import datetime
from typing import Any, Dict, Optional

import httpx

from app import models
from app.config import WEBHOOK_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)


def build_payload(order: models.Order, sent_at: Optional[datetime] = None) -> Dict[str, Any]:
    sent_at = sent_at or models.utcnow()
    return {
        "orderId": order.order_id,
        "status": order.status,
        "amount": order.amount,
        "timestamp": sent_at.isoformat(timespec="milliseconds") + "Z",
    }


async def deliver(url: str, payload: Dict[str, Any],
                  transport: Optional[httpx.AsyncBaseTransport] = None) -> bool:
    """POST `payload` to `url` once. Returns True on a 2xx response."""
    try:
        async with httpx.AsyncClient(timeout=WEBHOOK_TIMEOUT_SECONDS, transport=transport) as client:
            response = await client.post(url, json=payload)
    except httpx.HTTPError as e:
        logger.warning("Webhook for order %s to %s failed: %s", payload.get("orderId"), url, e)
        return False

    if not response.is_success:
        logger.warning(
            "Webhook for order %s to %s returned HTTP %s",
            payload.get("orderId"), url, response.status_code,
        )
        return False

    logger.info("Webhook for order %s delivered to %s", payload.get("orderId"), url)
    return True
