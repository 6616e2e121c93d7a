"""
Aggregate figures for the admin dashboard.
"""
from datetime import datetime
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app import models
from app.schemas.responses import DashboardStats
from app.services import catalog
from app.services.normalizer import MINOR_UNITS_PER_MAJOR
from app.services.orders import APPROVED, PENDING


def compute_stats(db: Session, now: Optional[datetime] = None) -> DashboardStats:
    now = now or models.utcnow()

    total_orders = db.query(func.count(models.Order.id)).scalar() or 0
    successful, revenue = db.query(
        func.count(models.Order.id),
        func.coalesce(func.sum(models.Order.amount), 0),
    ).filter(models.Order.status == APPROVED).one()
    pending = db.query(func.count(models.Order.id)).filter(
        models.Order.status == PENDING,
        models.Order.expires_at > now,
    ).scalar() or 0

    success_rate = (successful / total_orders) * 100 if total_orders else 0.0

    return DashboardStats(
        total_revenue=round(revenue / MINOR_UNITS_PER_MAJOR),
        pending_payments=pending,
        successful_payments=successful,
        success_rate=round(success_rate, 1),
        active_products=catalog.count_active_products(db),
    )
