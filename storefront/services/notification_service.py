# storefront/services/notification_service.py
from typing import Any, Dict

from requests import RequestException
from sqlalchemy.orm import Session

from storefront.celery_worker import celery_app
from storefront.data.database import SessionLocal
from storefront.repos.invoice_repo import InvoiceRepo
from storefront.services.mail_client import MailClient
from storefront.utils.clock import utcnow
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class NotificationService:
    """
    Invoice mail. Enqueued after the payment transaction committed; the
    task runs in a worker and a failure there never touches the order.
    """

    @staticmethod
    def send_invoice_email(invoice_id: int):
        send_invoice_email_task.delay(invoice_id)


def render_invoice_email(invoice) -> Dict[str, str]:
    lines = [
        f"Thank you for your order {invoice.order_number}.",
        "",
        f"Invoice:   {invoice.invoice_number}",
        f"Subtotal:  ${invoice.subtotal}",
        f"Tax:       ${invoice.tax_amount}",
        f"Shipping:  ${invoice.shipping_amount}",
        f"Total:     ${invoice.total_amount}",
        f"Payment:   {invoice.payment_method} ({invoice.payment_status})",
    ]
    address = invoice.shipping_address or {}
    if address:
        lines += [
            "",
            "Ships to:",
            address.get("address", ""),
            f"{address.get('postal_code', '')} {address.get('city', '')}".strip(),
            address.get("country", ""),
        ]
    return {
        "subject": f"Your invoice {invoice.invoice_number}",
        "text": "\n".join(lines),
    }


def deliver_invoice_email(db: Session, invoice_id: int, mail_client: MailClient) -> Dict[str, Any]:
    repo = InvoiceRepo(db)
    invoice = repo.get_invoice(invoice_id)

    if not invoice:
        logger.warning(f"Invoice {invoice_id} not found, nothing to send")
        return {"invoice_id": invoice_id, "status": "missing"}

    if invoice.email_sent:
        logger.info(f"Invoice {invoice.invoice_number} already sent, skipping")
        return {"invoice_id": invoice_id, "status": "skipped"}

    recipient = (invoice.billing_address or {}).get("email")
    if not recipient:
        logger.warning(f"Invoice {invoice.invoice_number} has no billing e-mail")
        return {"invoice_id": invoice_id, "status": "no_recipient"}

    message = render_invoice_email(invoice)
    mail_client.send(to=recipient, subject=message["subject"], text=message["text"])

    invoice.email_sent = True
    invoice.email_sent_at = utcnow()
    db.commit()

    logger.info(f"[NOTIFICATION] Invoice {invoice.invoice_number} sent to {recipient}")
    return {"invoice_id": invoice_id, "status": "sent"}


@celery_app.task(
    bind=True,
    name="storefront.services.notification_service.send_invoice_email_task",
    autoretry_for=(RequestException,),
    retry_backoff=True,
    max_retries=5,
)
def send_invoice_email_task(self, invoice_id: int):
    db = SessionLocal()
    try:
        return deliver_invoice_email(db, invoice_id, MailClient())
    finally:
        db.close()
