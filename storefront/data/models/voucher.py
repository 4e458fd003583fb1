from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, DateTime, Boolean, Numeric, Text, CheckConstraint
from sqlalchemy.orm import relationship

from storefront.data.database import Base


class VoucherModel(Base):
    __tablename__ = "vouchers"

    id = Column(Integer, primary_key=True)
    code = Column(String(50), nullable=False, unique=True, index=True)
    description = Column(Text, nullable=True)

    discount_type = Column(String(20), nullable=False)  # percentage | fixed
    discount_value = Column(Numeric(10, 2), nullable=False)
    min_purchase_amount = Column(Numeric(10, 2), nullable=False, default=0)
    max_discount_amount = Column(Numeric(10, 2), nullable=True)

    start_date = Column(DateTime(timezone=True), nullable=False)
    end_date = Column(DateTime(timezone=True), nullable=False)

    usage_limit_per_user = Column(Integer, nullable=False, default=1)
    total_usage_limit = Column(Integer, nullable=True)  # NULL => unlimited
    current_usage_count = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    usages = relationship("VoucherUsageModel", back_populates="voucher", passive_deletes=True)

    __table_args__ = (
        CheckConstraint(
            "total_usage_limit IS NULL OR current_usage_count <= total_usage_limit",
            name="ck_vouchers_usage_within_limit",
        ),
    )
