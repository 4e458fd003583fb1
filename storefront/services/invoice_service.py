# storefront/services/invoice_service.py
from typing import List

from sqlalchemy.orm import Session

from storefront.data.models.invoice import InvoiceModel
from storefront.domain.errors import NotFoundError
from storefront.repos.invoice_repo import InvoiceRepo
from storefront.services.notification_service import NotificationService
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class InvoiceService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = InvoiceRepo(db)

    def get_invoice(self, invoice_id: int, user_id: int) -> InvoiceModel:
        invoice = self.repo.get_user_invoice(invoice_id, user_id)
        if not invoice:
            raise NotFoundError("Invoice not found")
        return invoice

    def list_invoices(self, user_id: int) -> List[InvoiceModel]:
        return self.repo.list_user_invoices(user_id)

    def resend_email(self, invoice_id: int) -> InvoiceModel:
        """Admin: queue the invoice mail again, even if it already went out once."""
        invoice = self.repo.get_invoice(invoice_id)
        if not invoice:
            raise NotFoundError("Invoice not found")

        if invoice.email_sent:
            invoice.email_sent = False
            invoice.email_sent_at = None
            self.db.commit()

        NotificationService.send_invoice_email(invoice.id)
        logger.info(f"Invoice {invoice.invoice_number} e-mail re-queued")
        return invoice
