"""
Products (optional price templates) and the active QR / UPI receiving descriptor.
"""
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from app import models
from app.errors import NotFoundError, ValidationError
from app.services.normalizer import normalize_amount, in_range

logger = logging.getLogger(__name__)


def _price_or_error(price) -> int:
    minor_units = normalize_amount(price)
    if minor_units is None:
        raise ValidationError("Price must be a positive amount, e.g. 499 or \"₹499.00\"")
    if not in_range(minor_units):
        raise ValidationError("Price must be between ₹1 and ₹1,00,000")
    return minor_units


def list_products(db: Session) -> List[models.Product]:
    return db.query(models.Product).filter(
        models.Product.is_active.is_(True)
    ).order_by(models.Product.created_at.desc()).all()


def get_product(product_id: str, db: Session, active_only: bool = True) -> models.Product:
    query = db.query(models.Product).filter(models.Product.id == product_id)
    if active_only:
        query = query.filter(models.Product.is_active.is_(True))
    product = query.first()
    if product is None:
        raise NotFoundError("Product not found")
    return product


def create_product(name: str, price, db: Session, description: Optional[str] = None,
                   is_active: bool = True) -> models.Product:
    product = models.Product(
        name=name,
        description=description,
        price=_price_or_error(price),
        is_active=is_active,
    )
    db.add(product)
    db.commit()
    db.refresh(product)
    logger.info("Created product %s (%s paise)", product.id, product.price)
    return product


def update_product(product_id: str, changes: dict, db: Session) -> models.Product:
    product = get_product(product_id, db, active_only=False)
    # Only description may be cleared; null for any other field means "unchanged"
    changes = {k: v for k, v in changes.items() if v is not None or k == "description"}
    if "price" in changes:
        changes["price"] = _price_or_error(changes["price"])
    for field, value in changes.items():
        setattr(product, field, value)
    db.commit()
    db.refresh(product)
    return product


def delete_product(product_id: str, db: Session) -> None:
    """Soft delete: the row stays so historical orders keep their reference."""
    product = get_product(product_id, db, active_only=False)
    product.is_active = False
    db.commit()


def count_active_products(db: Session) -> int:
    return db.query(models.Product).filter(models.Product.is_active.is_(True)).count()


def get_active_qr_code(db: Session) -> Optional[models.QrCode]:
    return db.query(models.QrCode).filter(
        models.QrCode.is_active.is_(True)
    ).order_by(models.QrCode.created_at.desc()).first()


def activate_qr_code(upi_id: str, db: Session, image_url: Optional[str] = None) -> models.QrCode:
    """Create a new receiving descriptor and deactivate every previous one."""
    db.query(models.QrCode).filter(
        models.QrCode.is_active.is_(True)
    ).update({models.QrCode.is_active: False}, synchronize_session="fetch")
    qr_code = models.QrCode(upi_id=upi_id, image_url=image_url, is_active=True)
    db.add(qr_code)
    db.commit()
    db.refresh(qr_code)
    logger.info("Activated QR code %s for %s", qr_code.id, upi_id)
    return qr_code
