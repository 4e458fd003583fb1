# storefront/repos/invoice_repo.py
from datetime import datetime
from typing import List

from sqlalchemy import select
from sqlalchemy.orm import Session

from storefront.data.models.invoice import InvoiceModel


class InvoiceRepo:
    def __init__(self, db: Session):
        self.db = db

    def add_invoice(self, invoice: InvoiceModel) -> InvoiceModel:
        self.db.add(invoice)
        self.db.flush()
        return invoice

    def get_invoice(self, invoice_id: int) -> InvoiceModel | None:
        return self.db.get(InvoiceModel, invoice_id)

    def get_by_order(self, order_id: int) -> InvoiceModel | None:
        return self.db.execute(
            select(InvoiceModel).where(InvoiceModel.order_id == order_id)
        ).scalar_one_or_none()

    def get_user_invoice(self, invoice_id: int, user_id: int) -> InvoiceModel | None:
        return self.db.execute(
            select(InvoiceModel).where(InvoiceModel.id == invoice_id, InvoiceModel.user_id == user_id)
        ).scalar_one_or_none()

    def list_user_invoices(self, user_id: int) -> List[InvoiceModel]:
        return list(
            self.db.execute(
                select(InvoiceModel)
                .where(InvoiceModel.user_id == user_id)
                .order_by(InvoiceModel.created_at.desc(), InvoiceModel.id.desc())
            ).scalars()
        )

    def list_unsent(self, created_before: datetime) -> List[InvoiceModel]:
        return list(
            self.db.execute(
                select(InvoiceModel).where(
                    InvoiceModel.email_sent.is_(False),
                    InvoiceModel.created_at < created_before,
                )
            ).scalars()
        )
