#storefront/data/models/order.py
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, ForeignKey, String, DateTime, Numeric, Boolean
from sqlalchemy.orm import relationship

from storefront.data.database import Base


class OrderModel(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)
    order_number = Column(String(40), nullable=False, unique=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    voucher_id = Column(Integer, ForeignKey("vouchers.id"), nullable=True)
    voucher_discount = Column(Numeric(10, 2), nullable=False, default=0)

    payment_method = Column(String(50), nullable=False)
    tax_price = Column(Numeric(10, 2), nullable=False, default=0)
    shipping_price = Column(Numeric(10, 2), nullable=False, default=0)
    total_price = Column(Numeric(10, 2), nullable=False)

    is_paid = Column(Boolean, nullable=False, default=False)
    paid_at = Column(DateTime(timezone=True), nullable=True)
    is_delivered = Column(Boolean, nullable=False, default=False)
    delivered_at = Column(DateTime(timezone=True), nullable=True)

    #mock payment metadata
    payment_result_id = Column(String(100), nullable=True)
    payment_status = Column(String(50), nullable=True)
    payment_update_time = Column(String(50), nullable=True)
    payment_email = Column(String(255), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    items = relationship(
        "OrderItemModel",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItemModel.id",
    )
    shipping_address = relationship(
        "ShippingAddressModel",
        back_populates="order",
        cascade="all, delete-orphan",
        uselist=False,
    )
    # no delete cascade: the invoice outlives the order, FK goes NULL
    invoice = relationship("InvoiceModel", back_populates="order", uselist=False)

    @property
    def status(self) -> str:
        if self.is_delivered:
            return "delivered"
        if self.is_paid:
            return "paid"
        return "pending"
