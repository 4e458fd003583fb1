from decimal import Decimal

import pytest

from storefront.data.models import InvoiceModel, OrderModel
from storefront.domain.errors import InvalidTransitionError, NotFoundError
from storefront.services.order_service import OrderService
from storefront.services.payment_service import PaymentService
from tests.helpers import ADDRESS, line


@pytest.fixture()
def placed(db, user, product, voucher):
    return OrderService(db).place_order(user.id, [line(product, 2)], ADDRESS, voucher_code="PCT10")


class TestMarkPaid:
    def test_invoice_snapshot(self, db, user, placed, sent_invoice_emails):
        invoice = PaymentService(db).mark_paid(placed["order_id"], user.id)

        assert invoice.invoice_number.startswith("INV-")
        assert invoice.order_number == placed["order_number"]
        assert invoice.subtotal == Decimal("90.00")
        assert invoice.tax_amount == Decimal("9.00")
        assert invoice.shipping_amount == Decimal("10.00")
        assert invoice.total_amount == Decimal("109.00")
        assert invoice.billing_address["email"] == "alice@example.com"
        assert invoice.billing_address["city"] == "Springfield"
        assert invoice.shipping_address == ADDRESS
        assert invoice.email_sent is False
        assert sent_invoice_emails == [invoice.id]

    def test_order_flags_and_payment_metadata(self, db, user, placed):
        PaymentService(db).mark_paid(
            placed["order_id"],
            user.id,
            {"payment_result_id": "PAY-1", "payment_email": "billing@example.com"},
        )

        order = db.get(OrderModel, placed["order_id"])
        assert order.is_paid is True
        assert order.paid_at is not None
        assert order.status == "paid"
        assert order.payment_result_id == "PAY-1"
        assert order.payment_status == "completed"
        assert order.payment_email == "billing@example.com"

    def test_default_payment_metadata(self, db, user, placed):
        PaymentService(db).mark_paid(placed["order_id"], user.id)

        order = db.get(OrderModel, placed["order_id"])
        assert order.payment_result_id.startswith("MOCK-")
        assert order.payment_email == "alice@example.com"

    def test_second_payment_returns_the_same_invoice(self, db, user, placed, sent_invoice_emails):
        svc = PaymentService(db)
        first = svc.mark_paid(placed["order_id"], user.id)
        first_id = first.id

        second = svc.mark_paid(placed["order_id"], user.id)

        assert second.id == first_id
        assert db.query(InvoiceModel).count() == 1
        assert sent_invoice_emails == [first_id]

    def test_foreign_order(self, db, other_user, placed):
        with pytest.raises(NotFoundError):
            PaymentService(db).mark_paid(placed["order_id"], other_user.id)

    def test_missing_order(self, db, user):
        with pytest.raises(NotFoundError):
            PaymentService(db).mark_paid(999, user.id)

    def test_mail_enqueue_failure_keeps_payment(self, db, user, placed, monkeypatch):
        from storefront.services.notification_service import NotificationService

        def broker_down(invoice_id):
            raise ConnectionError("redis unreachable")

        monkeypatch.setattr(NotificationService, "send_invoice_email", staticmethod(broker_down))

        invoice = PaymentService(db).mark_paid(placed["order_id"], user.id)

        assert invoice.id is not None
        assert db.get(OrderModel, placed["order_id"]).is_paid is True


class TestMarkDelivered:
    def test_deliver_paid_order(self, db, user, placed):
        svc = PaymentService(db)
        svc.mark_paid(placed["order_id"], user.id)

        order = svc.mark_delivered(placed["order_id"])

        assert order.is_delivered is True
        assert order.delivered_at is not None
        assert order.status == "delivered"

    def test_unpaid_order_cannot_be_delivered(self, db, placed):
        with pytest.raises(InvalidTransitionError, match="not been paid"):
            PaymentService(db).mark_delivered(placed["order_id"])

    def test_deliver_twice(self, db, user, placed):
        svc = PaymentService(db)
        svc.mark_paid(placed["order_id"], user.id)
        svc.mark_delivered(placed["order_id"])

        with pytest.raises(InvalidTransitionError, match="already delivered"):
            svc.mark_delivered(placed["order_id"])

    def test_missing_order(self, db):
        with pytest.raises(NotFoundError):
            PaymentService(db).mark_delivered(999)
