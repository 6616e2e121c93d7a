"""
Seeds a local database for trying the gateway end to end.

Creates:
- an admin user and a signed dashboard token for it
- an active QR / UPI receiving descriptor
- two products
- one publishable and one secret API key (plaintext printed once)
- a handful of orders in every status so the dashboard has data
"""
import sys
import os
import random
from datetime import timedelta

# Allow running from project root
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.database import engine, SessionLocal, Base
from app import models
from app.dependencies.auth import create_access_token, upsert_user
from app.services import api_keys, catalog, orders

random.seed(42)

ADMIN_CLAIMS = {"sub": "admin-demo", "email": "admin@example.com", "first_name": "Demo", "last_name": "Admin"}

PRODUCTS = [
    ("Starter Plan", "Monthly starter subscription", "₹499"),
    ("Pro Plan", "Monthly pro subscription", "Rs 1,499"),
]

ORDER_MIX = (
    ["approved"] * 5 +
    ["failed"] * 2 +
    ["expired"] * 2 +
    ["submitted"] * 3
)


def utr():
    return "".join(random.choice("0123456789") for _ in range(12))


def seed_orders(db, qr_code):
    now = models.utcnow()
    for i, outcome in enumerate(ORDER_MIX):
        created_at = now - timedelta(minutes=1) if outcome == "submitted" else now - timedelta(hours=i + 1)
        order = orders.create_order(
            amount=random.choice([9900, 49900, 149900, 250000]),
            qr_code_id=qr_code.id,
            db=db,
            description=f"Demo order {i + 1}",
            now=created_at,
        )
        if outcome == "expired":
            orders.get_order(order.order_id, db)
            continue
        orders.attach_utr(order.order_id, utr(), db, now=created_at + timedelta(minutes=1))
        if outcome == "approved":
            orders.approve(order.order_id, db, now=created_at + timedelta(minutes=2))
        elif outcome == "failed":
            orders.reject(order.order_id, db, now=created_at + timedelta(minutes=2))


def main():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        user = upsert_user(ADMIN_CLAIMS, db)
        qr_code = catalog.activate_qr_code("demo-merchant@upi", db)
        for name, description, price in PRODUCTS:
            catalog.create_product(name, price, db, description=description)
        publishable = api_keys.issue_key(user.id, "Website widget", db, tier=api_keys.PUBLISHABLE)
        secret = api_keys.issue_key(user.id, "Backend", db, tier=api_keys.SECRET)
        seed_orders(db, qr_code)
    finally:
        db.close()

    print(f"Admin token:      {create_access_token(ADMIN_CLAIMS)}")
    print(f"Publishable key:  {publishable.key}")
    print(f"Secret key:       {secret.key}")
    print(f"Seeded {len(ORDER_MIX)} orders")


if __name__ == "__main__":
    main()
