from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app import models
from app.database import get_db
from app.dependencies.auth import require_api_key
from app.schemas.responses import OrderOut
from app.services import api_keys, orders

router = APIRouter()


@router.get("/{order_id}", response_model=OrderOut)
def get_order_detail(
    order_id: str,
    db: Session = Depends(get_db),
    api_key: models.ApiKey = Depends(require_api_key(api_keys.SECRET)),
):
    """Full order view for merchant servers, including the submitted UTR."""
    return orders.get_order(order_id, db)
