"""
Order store and payment state machine.

States:
    pending  -> approved   admin approve
    pending  -> failed     admin reject
    pending  -> expired    deadline passed (evaluated lazily on read)
approved, failed and expired are terminal.

A submitted payment is not a separate state: a pending order with a UTR
attached is awaiting review.

Expiry is lazy. There is no background sweep; every accessor that loads an
order by its public code checks the deadline first and persists the expired
transition before doing anything else. An order nobody reads stays pending
in storage, which is harmless because the next read corrects it.

Each order row carries a version counter (SQLAlchemy version_id_col), so a
write based on a stale read fails with ConflictError instead of silently
overwriting a concurrent transition.
"""
import logging
import time
import uuid
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from app import models
from app.config import DEFAULT_CURRENCY, ORDER_CODE_PREFIX, REQUIRE_UTR_FOR_REVIEW
from app.errors import ConflictError, NotFoundError, ValidationError
from app.models import OrderStatus

logger = logging.getLogger(__name__)

ORDER_TTL = timedelta(minutes=5)

PENDING = OrderStatus.PENDING.value
APPROVED = OrderStatus.APPROVED.value
FAILED = OrderStatus.FAILED.value
EXPIRED = OrderStatus.EXPIRED.value


class Transition:
    """Outcome of a review action. `changed` is False when it only re-confirmed."""

    def __init__(self, order: models.Order, changed: bool):
        self.order = order
        self.changed = changed


def generate_order_code() -> str:
    return f"{ORDER_CODE_PREFIX}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}"


def _save(order: models.Order, db: Session) -> models.Order:
    try:
        db.commit()
    except StaleDataError:
        db.rollback()
        raise ConflictError(f"Order {order.order_id} was modified concurrently, retry the request")
    db.refresh(order)
    return order


def create_order(
    amount: int,
    qr_code_id: str,
    db: Session,
    description: Optional[str] = None,
    currency: str = DEFAULT_CURRENCY,
    customer_email: Optional[str] = None,
    product_id: Optional[str] = None,
    callback_url: Optional[str] = None,
    now: Optional[datetime] = None,
) -> models.Order:
    """
    Persist a new pending order. `amount` must already be normalized minor units.

    The public order code is assigned here and expires_at is fixed at
    creation + 5 minutes; it is never extended.
    """
    now = now or models.utcnow()
    order = models.Order(
        order_id=generate_order_code(),
        amount=amount,
        qr_code_id=qr_code_id,
        description=description,
        currency=currency,
        customer_email=customer_email,
        product_id=product_id,
        callback_url=callback_url,
        status=PENDING,
        created_at=now,
        updated_at=now,
        expires_at=now + ORDER_TTL,
    )
    db.add(order)
    db.commit()
    db.refresh(order)
    logger.info("Created order %s for %s paise, expires %s", order.order_id, amount, order.expires_at)
    return order


def expire_if_due(order: models.Order, db: Session, now: Optional[datetime] = None) -> bool:
    """Persist pending -> expired when the deadline has passed. Returns True if it did."""
    now = now or models.utcnow()
    if order.status != PENDING or now < order.expires_at:
        return False
    order.status = EXPIRED
    order.updated_at = now
    _save(order, db)
    logger.info("Order %s expired", order.order_id)
    return True


def get_order(order_code: str, db: Session, now: Optional[datetime] = None) -> models.Order:
    """
    Load an order by public code, applying the lazy expiry check.

    Raises:
        NotFoundError: no order with that code
    """
    order = db.query(models.Order).filter(models.Order.order_id == order_code).first()
    if order is None:
        raise NotFoundError("Order not found")
    expire_if_due(order, db, now)
    return order


def attach_utr(order_code: str, utr: str, db: Session, now: Optional[datetime] = None) -> models.Order:
    """
    Record the payer's UTR. The order stays pending and is now awaiting review.

    Raises:
        NotFoundError: unknown order
        ValidationError: order expired (now or earlier) or no longer pending
    """
    now = now or models.utcnow()
    order = db.query(models.Order).filter(models.Order.order_id == order_code).first()
    if order is None:
        raise NotFoundError("Order not found")
    if expire_if_due(order, db, now) or order.status == EXPIRED:
        raise ValidationError("Order has expired")
    if order.status != PENDING:
        raise ValidationError("Order is not pending")

    order.utr = utr
    order.updated_at = now
    _save(order, db)
    logger.info("UTR submitted for order %s", order.order_id)
    return order


def _load_for_review(order_code: str, target: str, db: Session, now: datetime):
    """
    Load an order for approve/reject.

    Returns (order, already_done); already_done is True when the order is
    already in `target`, which re-confirms instead of transitioning again.
    """
    order = db.query(models.Order).filter(models.Order.order_id == order_code).first()
    if order is None:
        raise NotFoundError("Order not found")
    expire_if_due(order, db, now)

    if order.status == target:
        return order, True
    if order.status == EXPIRED:
        raise ValidationError("Order has expired")
    if order.status != PENDING:
        raise ValidationError(f"Order is already {order.status}")
    if REQUIRE_UTR_FOR_REVIEW and not order.utr:
        raise ValidationError("Order has no submitted UTR")
    return order, False


def approve(order_code: str, db: Session, now: Optional[datetime] = None) -> Transition:
    now = now or models.utcnow()
    order, already_done = _load_for_review(order_code, APPROVED, db, now)
    if already_done:
        return Transition(order, changed=False)

    order.status = APPROVED
    order.approved_at = now
    order.updated_at = now
    _save(order, db)
    logger.info("Order %s approved", order.order_id)
    return Transition(order, changed=True)


def reject(order_code: str, db: Session, now: Optional[datetime] = None) -> Transition:
    now = now or models.utcnow()
    order, already_done = _load_for_review(order_code, FAILED, db, now)
    if already_done:
        return Transition(order, changed=False)

    order.status = FAILED
    order.updated_at = now
    _save(order, db)
    logger.info("Order %s rejected", order.order_id)
    return Transition(order, changed=True)


def list_pending(db: Session, now: Optional[datetime] = None) -> List[models.Order]:
    """Pending orders still inside their payment window, newest first."""
    now = now or models.utcnow()
    return db.query(models.Order).filter(
        models.Order.status == PENDING,
        models.Order.expires_at > now,
    ).order_by(models.Order.created_at.desc()).all()


def list_recent(db: Session, limit: int = 10) -> List[models.Order]:
    return db.query(models.Order).order_by(models.Order.created_at.desc()).limit(limit).all()
