from sqlalchemy import Column, Integer, ForeignKey, String
from sqlalchemy.orm import relationship

from storefront.data.database import Base


class ShippingAddressModel(Base):
    __tablename__ = "shipping_addresses"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, unique=True)

    address = Column(String(255), nullable=False)
    city = Column(String(100), nullable=False)
    postal_code = Column(String(20), nullable=False)
    country = Column(String(100), nullable=False)

    order = relationship("OrderModel", back_populates="shipping_address")

    def as_dict(self) -> dict:
        return {
            "address": self.address,
            "city": self.city,
            "postal_code": self.postal_code,
            "country": self.country,
        }
