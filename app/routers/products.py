from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app import models
from app.database import get_db
from app.dependencies.auth import get_current_user
from app.schemas.requests import ProductCreateRequest, ProductUpdateRequest
from app.schemas.responses import MessageResponse, ProductOut
from app.services import catalog

router = APIRouter()


@router.get("", response_model=List[ProductOut])
def list_products(
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    return catalog.list_products(db)


@router.post("", response_model=ProductOut)
def create_product(
    payload: ProductCreateRequest,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    """Price is given in rupees (number or "₹499" style string) and stored in paise."""
    return catalog.create_product(
        payload.name,
        payload.price,
        db,
        description=payload.description,
        is_active=payload.is_active,
    )


@router.put("/{product_id}", response_model=ProductOut)
def update_product(
    product_id: str,
    payload: ProductUpdateRequest,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    return catalog.update_product(product_id, payload.model_dump(exclude_unset=True), db)


@router.delete("/{product_id}", response_model=MessageResponse)
def delete_product(
    product_id: str,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    catalog.delete_product(product_id, db)
    return MessageResponse(message="Product deleted successfully")
