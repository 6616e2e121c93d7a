"""
Tests for app/services/orders.py: the order state machine.

Time is controlled by passing `now=` explicitly; no clock mocking.
"""
import pytest
from datetime import datetime, timedelta
from unittest.mock import patch

from app import models
from app.errors import ConflictError, NotFoundError, ValidationError
from app.services import orders
from tests.conftest import make_order

BASE_TIME = datetime(2024, 1, 15, 10, 0, 0)


# ---------------------------------------------------------------------------
# create_order()
# ---------------------------------------------------------------------------
class TestCreateOrder:
    def test_new_order_is_pending(self, db, qr_code):
        order = make_order(db, qr_code, created_at=BASE_TIME)
        assert order.status == orders.PENDING
        assert order.utr is None
        assert order.approved_at is None

    def test_window_is_exactly_five_minutes(self, db, qr_code):
        order = make_order(db, qr_code, created_at=BASE_TIME)
        assert order.expires_at - order.created_at == timedelta(seconds=300)

    def test_order_code_format(self, db, qr_code):
        order = make_order(db, qr_code)
        prefix, millis, suffix = order.order_id.split("-")
        assert prefix == "ONP"
        assert millis.isdigit()
        assert len(suffix) == 8

    def test_order_codes_are_unique(self, db, qr_code):
        codes = {make_order(db, qr_code).order_id for _ in range(20)}
        assert len(codes) == 20

    def test_defaults_to_inr(self, db, qr_code):
        assert make_order(db, qr_code).currency == "INR"

    def test_references_descriptor(self, db, qr_code):
        assert make_order(db, qr_code).qr_code_id == qr_code.id


# ---------------------------------------------------------------------------
# Lazy expiry
# ---------------------------------------------------------------------------
class TestLazyExpiry:
    def test_read_inside_window_stays_pending(self, db, qr_code):
        order = make_order(db, qr_code, created_at=BASE_TIME)
        read = orders.get_order(order.order_id, db, now=BASE_TIME + timedelta(seconds=299))
        assert read.status == orders.PENDING

    def test_read_at_deadline_expires(self, db, qr_code):
        order = make_order(db, qr_code, created_at=BASE_TIME)
        read = orders.get_order(order.order_id, db, now=BASE_TIME + timedelta(seconds=300))
        assert read.status == orders.EXPIRED

    def test_expiry_is_persisted(self, db, qr_code):
        order = make_order(db, qr_code, created_at=BASE_TIME)
        orders.get_order(order.order_id, db, now=BASE_TIME + timedelta(minutes=6))
        db.expire_all()
        stored = db.query(models.Order).filter(models.Order.order_id == order.order_id).one()
        assert stored.status == orders.EXPIRED
        assert stored.updated_at == BASE_TIME + timedelta(minutes=6)

    def test_unread_order_stays_pending_in_storage(self, db, qr_code):
        order = make_order(db, qr_code, created_at=BASE_TIME)
        db.expire_all()
        assert db.get(models.Order, order.id).status == orders.PENDING

    def test_expired_order_never_returns_to_pending(self, db, qr_code):
        order = make_order(db, qr_code, created_at=BASE_TIME)
        orders.get_order(order.order_id, db, now=BASE_TIME + timedelta(minutes=6))
        read = orders.get_order(order.order_id, db, now=BASE_TIME)
        assert read.status == orders.EXPIRED

    def test_terminal_orders_do_not_expire(self, db, qr_code):
        order = make_order(db, qr_code, created_at=BASE_TIME)
        orders.approve(order.order_id, db, now=BASE_TIME + timedelta(minutes=1))
        read = orders.get_order(order.order_id, db, now=BASE_TIME + timedelta(hours=1))
        assert read.status == orders.APPROVED

    def test_unknown_order(self, db):
        with pytest.raises(NotFoundError, match="Order not found"):
            orders.get_order("ONP-0-missing", db)


# ---------------------------------------------------------------------------
# attach_utr()
# ---------------------------------------------------------------------------
class TestAttachUtr:
    def test_utr_recorded_and_order_stays_pending(self, db, qr_code):
        order = make_order(db, qr_code, created_at=BASE_TIME)
        updated = orders.attach_utr(order.order_id, "123456789012", db,
                                    now=BASE_TIME + timedelta(minutes=1))
        assert updated.utr == "123456789012"
        assert updated.status == orders.PENDING

    def test_resubmission_replaces_utr(self, db, qr_code):
        order = make_order(db, qr_code, created_at=BASE_TIME)
        orders.attach_utr(order.order_id, "111111111111", db, now=BASE_TIME + timedelta(minutes=1))
        updated = orders.attach_utr(order.order_id, "222222222222", db,
                                    now=BASE_TIME + timedelta(minutes=2))
        assert updated.utr == "222222222222"

    def test_submit_after_deadline_expires_order(self, db, qr_code):
        order = make_order(db, qr_code, created_at=BASE_TIME)
        with pytest.raises(ValidationError, match="Order has expired"):
            orders.attach_utr(order.order_id, "123456789012", db,
                              now=BASE_TIME + timedelta(minutes=6))
        db.refresh(order)
        assert order.status == orders.EXPIRED
        assert order.utr is None

    def test_submit_on_already_expired_order(self, db, qr_code):
        order = make_order(db, qr_code, created_at=BASE_TIME)
        orders.get_order(order.order_id, db, now=BASE_TIME + timedelta(minutes=6))
        with pytest.raises(ValidationError, match="Order has expired"):
            orders.attach_utr(order.order_id, "123456789012", db,
                              now=BASE_TIME + timedelta(minutes=7))

    def test_submit_on_approved_order(self, db, qr_code):
        order = make_order(db, qr_code, created_at=BASE_TIME)
        orders.approve(order.order_id, db, now=BASE_TIME + timedelta(minutes=1))
        with pytest.raises(ValidationError, match="Order is not pending"):
            orders.attach_utr(order.order_id, "123456789012", db,
                              now=BASE_TIME + timedelta(minutes=2))

    def test_submit_unknown_order(self, db):
        with pytest.raises(NotFoundError):
            orders.attach_utr("ONP-0-missing", "123456789012", db)


# ---------------------------------------------------------------------------
# approve() / reject()
# ---------------------------------------------------------------------------
class TestReview:
    def test_approve_pending(self, db, qr_code):
        order = make_order(db, qr_code, created_at=BASE_TIME, utr="123456789012")
        result = orders.approve(order.order_id, db, now=BASE_TIME + timedelta(minutes=2))
        assert result.changed is True
        assert result.order.status == orders.APPROVED
        assert result.order.approved_at == BASE_TIME + timedelta(minutes=2)

    def test_approve_twice_reconfirms(self, db, qr_code):
        order = make_order(db, qr_code, created_at=BASE_TIME)
        orders.approve(order.order_id, db, now=BASE_TIME + timedelta(minutes=2))
        again = orders.approve(order.order_id, db, now=BASE_TIME + timedelta(minutes=3))
        assert again.changed is False
        assert again.order.status == orders.APPROVED
        assert again.order.approved_at == BASE_TIME + timedelta(minutes=2)

    def test_reject_pending(self, db, qr_code):
        order = make_order(db, qr_code, created_at=BASE_TIME)
        result = orders.reject(order.order_id, db, now=BASE_TIME + timedelta(minutes=2))
        assert result.changed is True
        assert result.order.status == orders.FAILED
        assert result.order.approved_at is None

    def test_reject_twice_reconfirms(self, db, qr_code):
        order = make_order(db, qr_code, created_at=BASE_TIME)
        orders.reject(order.order_id, db, now=BASE_TIME + timedelta(minutes=2))
        assert orders.reject(order.order_id, db, now=BASE_TIME + timedelta(minutes=3)).changed is False

    def test_cannot_reject_approved(self, db, qr_code):
        order = make_order(db, qr_code, created_at=BASE_TIME)
        orders.approve(order.order_id, db, now=BASE_TIME + timedelta(minutes=2))
        with pytest.raises(ValidationError, match="Order is already approved"):
            orders.reject(order.order_id, db, now=BASE_TIME + timedelta(minutes=3))

    def test_cannot_approve_failed(self, db, qr_code):
        order = make_order(db, qr_code, created_at=BASE_TIME)
        orders.reject(order.order_id, db, now=BASE_TIME + timedelta(minutes=2))
        with pytest.raises(ValidationError, match="Order is already failed"):
            orders.approve(order.order_id, db, now=BASE_TIME + timedelta(minutes=3))

    def test_approve_after_deadline_expires_order(self, db, qr_code):
        order = make_order(db, qr_code, created_at=BASE_TIME, utr="123456789012")
        with pytest.raises(ValidationError, match="Order has expired"):
            orders.approve(order.order_id, db, now=BASE_TIME + timedelta(minutes=10))
        db.refresh(order)
        assert order.status == orders.EXPIRED

    def test_reject_unknown_order(self, db):
        with pytest.raises(NotFoundError):
            orders.reject("ONP-0-missing", db)

    def test_approve_without_utr_allowed_by_default(self, db, qr_code):
        order = make_order(db, qr_code, created_at=BASE_TIME)
        assert orders.approve(order.order_id, db, now=BASE_TIME + timedelta(minutes=1)).changed

    def test_approve_without_utr_refused_when_required(self, db, qr_code):
        order = make_order(db, qr_code, created_at=BASE_TIME)
        with patch.object(orders, "REQUIRE_UTR_FOR_REVIEW", True):
            with pytest.raises(ValidationError, match="no submitted UTR"):
                orders.approve(order.order_id, db, now=BASE_TIME + timedelta(minutes=1))


# ---------------------------------------------------------------------------
# Concurrent modification
# ---------------------------------------------------------------------------
class TestVersioning:
    def test_version_increments_on_each_write(self, db, qr_code):
        order = make_order(db, qr_code, created_at=BASE_TIME)
        first = order.version
        orders.attach_utr(order.order_id, "123456789012", db, now=BASE_TIME + timedelta(minutes=1))
        assert order.version == first + 1

    def test_stale_write_raises_conflict(self, db, qr_code):
        order = make_order(db, qr_code, created_at=BASE_TIME)
        # Another writer bumps the row behind this session's back
        db.execute(
            models.Order.__table__.update()
            .where(models.Order.__table__.c.id == order.id)
            .values(version=order.version + 1, status=orders.FAILED)
        )
        order.status = orders.APPROVED
        with pytest.raises(ConflictError):
            orders._save(order, db)


# ---------------------------------------------------------------------------
# list_pending() / list_recent()
# ---------------------------------------------------------------------------
class TestListings:
    def test_pending_excludes_past_deadline_and_terminal(self, db, qr_code):
        now = models.utcnow()
        live = make_order(db, qr_code, created_at=now - timedelta(minutes=1), utr="123456789012")
        make_order(db, qr_code, created_at=now - timedelta(minutes=10))
        done = make_order(db, qr_code, created_at=now - timedelta(minutes=2))
        orders.approve(done.order_id, db, now=now)

        pending = orders.list_pending(db, now=now)
        assert [o.order_id for o in pending] == [live.order_id]
        assert pending[0].utr == "123456789012"

    def test_pending_newest_first(self, db, qr_code):
        now = models.utcnow()
        older = make_order(db, qr_code, created_at=now - timedelta(minutes=3))
        newer = make_order(db, qr_code, created_at=now - timedelta(minutes=1))
        assert [o.order_id for o in orders.list_pending(db, now=now)] == [newer.order_id, older.order_id]

    def test_recent_respects_limit(self, db, qr_code):
        for i in range(5):
            make_order(db, qr_code, created_at=BASE_TIME + timedelta(minutes=i))
        recent = orders.list_recent(db, limit=3)
        assert len(recent) == 3
        assert recent[0].created_at == BASE_TIME + timedelta(minutes=4)
