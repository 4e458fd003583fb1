# storefront/tasks/housekeeping.py
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from storefront.celery_worker import celery_app
from storefront.data.database import SessionLocal
from storefront.repos.cart_repo import CartRepo
from storefront.repos.invoice_repo import InvoiceRepo
from storefront.services.notification_service import NotificationService
from storefront.utils.clock import utcnow
from storefront.utils.logging import get_logger
from storefront.utils.settings import GUEST_CART_TTL_DAYS, INVOICE_EMAIL_RESEND_AFTER_SECONDS

logger = get_logger(__name__)


def purge_guest_carts(db: Session, now: datetime | None = None) -> int:
    now = now or utcnow()
    repo = CartRepo(db)
    carts = repo.stale_guest_carts(now - timedelta(days=GUEST_CART_TTL_DAYS))

    logger.info(f"Found {len(carts)} stale guest carts to purge")

    for cart in carts:
        #items go with the cart (cascade)
        db.delete(cart)
    db.commit()
    return len(carts)


def resend_unsent_invoices(db: Session, now: datetime | None = None) -> int:
    now = now or utcnow()
    invoices = InvoiceRepo(db).list_unsent(now - timedelta(seconds=INVOICE_EMAIL_RESEND_AFTER_SECONDS))

    logger.info(f"Found {len(invoices)} invoices still waiting for their e-mail")

    queued = 0
    for invoice in invoices:
        try:
            NotificationService.send_invoice_email(invoice.id)
            queued += 1
        except Exception as e:
            logger.warning(f"Failed to enqueue e-mail for invoice {invoice.id}: {e}")
    return queued


@celery_app.task(name="storefront.tasks.housekeeping.purge_guest_carts_task")
def purge_guest_carts_task():
    logger.info("Purge guest carts task started")
    db = SessionLocal()
    try:
        return purge_guest_carts(db)
    finally:
        db.close()


@celery_app.task(name="storefront.tasks.housekeeping.resend_unsent_invoices_task")
def resend_unsent_invoices_task():
    logger.info("Resend unsent invoices task started")
    db = SessionLocal()
    try:
        return resend_unsent_invoices(db)
    finally:
        db.close()
