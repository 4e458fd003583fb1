from datetime import timedelta

import pytest
import requests

from storefront.data.models import CartModel, InvoiceModel
from storefront.services.notification_service import deliver_invoice_email
from storefront.services.order_service import OrderService
from storefront.services.payment_service import PaymentService
from storefront.tasks.housekeeping import purge_guest_carts, resend_unsent_invoices
from storefront.utils.clock import utcnow
from tests.helpers import ADDRESS, line


class FakeMailClient:
    def __init__(self, fail=False):
        self.fail = fail
        self.sent = []

    def send(self, to, subject, text):
        if self.fail:
            raise requests.ConnectionError("mail service down")
        self.sent.append({"to": to, "subject": subject, "text": text})
        return {}


@pytest.fixture()
def invoice(db, user, product):
    placed = OrderService(db).place_order(user.id, [line(product, 1)], ADDRESS)
    return PaymentService(db).mark_paid(placed["order_id"], user.id)


class TestDeliverInvoiceEmail:
    def test_sends_and_marks_invoice(self, db, invoice):
        mail = FakeMailClient()

        result = deliver_invoice_email(db, invoice.id, mail)

        assert result["status"] == "sent"
        assert mail.sent[0]["to"] == "alice@example.com"
        assert invoice.invoice_number in mail.sent[0]["subject"]
        assert "Total:     $65.00" in mail.sent[0]["text"]
        db.refresh(invoice)
        assert invoice.email_sent is True
        assert invoice.email_sent_at is not None

    def test_already_sent_is_skipped(self, db, invoice):
        mail = FakeMailClient()
        deliver_invoice_email(db, invoice.id, mail)

        assert deliver_invoice_email(db, invoice.id, mail)["status"] == "skipped"
        assert len(mail.sent) == 1

    def test_missing_invoice(self, db):
        assert deliver_invoice_email(db, 404, FakeMailClient())["status"] == "missing"

    def test_mail_failure_propagates_and_leaves_flag(self, db, invoice):
        with pytest.raises(requests.ConnectionError):
            deliver_invoice_email(db, invoice.id, FakeMailClient(fail=True))

        db.refresh(invoice)
        assert invoice.email_sent is False


class TestHousekeeping:
    def test_resend_unsent_invoices(self, db, invoice, sent_invoice_emails):
        sent_invoice_emails.clear()

        assert resend_unsent_invoices(db, now=utcnow()) == 0
        assert resend_unsent_invoices(db, now=utcnow() + timedelta(hours=1)) == 1
        assert sent_invoice_emails == [invoice.id]

    def test_sent_invoices_are_not_resent(self, db, invoice, sent_invoice_emails):
        deliver_invoice_email(db, invoice.id, FakeMailClient())
        sent_invoice_emails.clear()

        assert resend_unsent_invoices(db, now=utcnow() + timedelta(hours=1)) == 0
        assert db.query(InvoiceModel).count() == 1

    def test_purge_only_stale_guest_carts(self, db, user):
        now = utcnow()
        stale = CartModel(user_id=None, session_id="old", updated_at=now - timedelta(days=60))
        fresh = CartModel(user_id=None, session_id="new", updated_at=now)
        owned = CartModel(user_id=user.id, updated_at=now - timedelta(days=60))
        db.add_all([stale, fresh, owned])
        db.commit()
        stale_id, fresh_id, owned_id = stale.id, fresh.id, owned.id

        assert purge_guest_carts(db, now=now) == 1

        assert db.get(CartModel, stale_id) is None
        assert db.get(CartModel, fresh_id) is not None
        assert db.get(CartModel, owned_id) is not None
