from datetime import datetime, timezone

from sqlalchemy import Column, Integer, ForeignKey, String, DateTime, Numeric, Boolean, JSON
from sqlalchemy.orm import relationship

from storefront.data.database import Base


class InvoiceModel(Base):
    """
    Financial record written together with the order's "paid" flag.

    Amounts and addresses are copies taken at payment time. The UNIQUE
    order_id is what stops a retried payment callback from invoicing twice.
    """

    __tablename__ = "invoices"

    id = Column(Integer, primary_key=True)
    invoice_number = Column(String(40), nullable=False, unique=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="SET NULL"), nullable=True, unique=True)
    order_number = Column(String(40), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    subtotal = Column(Numeric(10, 2), nullable=False)
    tax_amount = Column(Numeric(10, 2), nullable=False)
    shipping_amount = Column(Numeric(10, 2), nullable=False)
    total_amount = Column(Numeric(10, 2), nullable=False)

    payment_method = Column(String(50), nullable=False)
    payment_status = Column(String(50), nullable=False)
    billing_address = Column(JSON, nullable=False)
    shipping_address = Column(JSON, nullable=False)

    email_sent = Column(Boolean, nullable=False, default=False)
    email_sent_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    order = relationship("OrderModel", back_populates="invoice")
