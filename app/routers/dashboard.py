from typing import List

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.orm import Session

from app import models
from app.database import get_db
from app.dependencies.auth import get_current_user
from app.schemas.responses import DashboardStats, OrderOut
from app.services import orders, review, webhooks
from app.services.dashboard import compute_stats
from app.services.notifier import ConnectionRegistry, get_notifier

router = APIRouter()


@router.get("/stats", response_model=DashboardStats)
def get_stats(
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    return compute_stats(db)


@router.get("/pending-orders", response_model=List[OrderOut])
def get_pending_orders(
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    """Pending orders still inside their window, newest first. Includes UTRs."""
    return orders.list_pending(db)


@router.get("/recent-orders", response_model=List[OrderOut])
def get_recent_orders(
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    return orders.list_recent(db, limit=limit)


@router.post("/approve-payment/{order_id}", response_model=OrderOut)
async def approve_payment(
    order_id: str,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
    notifier: ConnectionRegistry = Depends(get_notifier),
):
    """
    Approve a payment after checking the UTR against the bank statement.

    On the first approval the merchant webhook (if any) is sent once, after
    the response; its outcome never affects the approval.
    """
    result = await review.approve_payment(order_id, db, notifier)
    if result.webhook is not None:
        background_tasks.add_task(webhooks.deliver, result.webhook.url, result.webhook.payload)
    return result.order


@router.post("/reject-payment/{order_id}", response_model=OrderOut)
async def reject_payment(
    order_id: str,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
    notifier: ConnectionRegistry = Depends(get_notifier),
):
    result = await review.reject_payment(order_id, db, notifier)
    return result.order
