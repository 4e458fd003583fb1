# storefront/data/seed.py
from datetime import timedelta
from decimal import Decimal

from storefront.data.database import Base, SessionLocal, engine
from storefront.data.models import ProductModel, UserModel, VoucherModel
from storefront.utils.clock import utcnow
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def seed():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        # not forcing: only seed if empty
        if db.query(UserModel).first():
            logger.info("Database already seeded")
            return

        now = utcnow()
        db.add_all(
            [
                UserModel(id=1, name="Admin", email="admin@storefront.local", is_admin=True),
                UserModel(id=2, name="Demo Customer", email="demo@storefront.local"),
                ProductModel(name="Wireless Mouse", price=Decimal("25.00"), stock=50),
                ProductModel(name="Mechanical Keyboard", price=Decimal("75.00"), stock=20),
                ProductModel(
                    name="USB-C Hub",
                    price=Decimal("40.00"),
                    stock=30,
                    discount_type="percentage",
                    discount_value=Decimal("10"),
                ),
                VoucherModel(
                    code="PCT10",
                    description="10% off, once per customer",
                    discount_type="percentage",
                    discount_value=Decimal("10"),
                    start_date=now - timedelta(days=1),
                    end_date=now + timedelta(days=90),
                    usage_limit_per_user=1,
                    total_usage_limit=1000,
                ),
            ]
        )
        db.commit()
        logger.info("Seeded users, products and vouchers")
    finally:
        db.close()


if __name__ == "__main__":
    seed()
