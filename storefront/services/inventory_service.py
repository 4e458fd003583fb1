# storefront/services/inventory_service.py
from sqlalchemy.orm import Session

from storefront.domain.errors import InsufficientStockError, NotFoundError, OrderValidationError
from storefront.repos.product_repo import ProductRepo
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class InventoryService:
    """
    Stock counters. Both operations run inside the caller's transaction and
    never commit; the caller decides whether the change survives.
    """

    def __init__(self, db: Session):
        self.repo = ProductRepo(db)

    def decrement(self, product_id: int, quantity: int) -> None:
        if quantity <= 0:
            raise OrderValidationError("Quantity must be greater than 0")

        rowcount = self.repo.decrement_stock(product_id, quantity)
        if rowcount == 1:
            logger.info(f"Stock of product {product_id} decremented by {quantity}")
            return

        if self.repo.get_product(product_id) is None:
            raise OrderValidationError(f"Product {product_id} does not exist")

        logger.info(f"Insufficient stock for product {product_id}, requested {quantity}")
        raise InsufficientStockError(product_id, quantity)

    def restore(self, product_id: int, quantity: int) -> None:
        rowcount = self.repo.increment_stock(product_id, quantity)
        if rowcount == 0:
            raise NotFoundError(f"Product {product_id} not found, cannot restore stock")
        logger.info(f"Stock of product {product_id} restored by {quantity}")
