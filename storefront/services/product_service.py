# storefront/services/product_service.py
from typing import Any, Dict

from sqlalchemy.orm import Session

from storefront.data.models.product import ProductModel
from storefront.domain.errors import NotFoundError, ReferentialIntegrityError
from storefront.domain.pricing import effective_price
from storefront.domain.schemas import ProductCreate, ProductUpdate
from storefront.repos.product_repo import ProductRepo
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class ProductService:
    """Catalogue records the inventory works on. Stock changes from orders go through InventoryService."""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ProductRepo(db)

    def get_product(self, product_id: int) -> Dict[str, Any]:
        return self._to_dict(self._get(product_id))

    def create_product(self, payload: ProductCreate) -> Dict[str, Any]:
        try:
            product = self.repo.add_product(ProductModel(**payload.model_dump()))
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Product {product.id} ({product.name}) created with stock {product.stock}")
        return self._to_dict(product)

    def update_product(self, product_id: int, payload: ProductUpdate) -> Dict[str, Any]:
        product = self._get(product_id)
        changes = payload.model_dump(exclude_unset=True)
        try:
            for field, value in changes.items():
                setattr(product, field, value)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Product {product_id} updated: {sorted(changes)}")
        return self._to_dict(product)

    def delete_product(self, product_id: int) -> None:
        product = self._get(product_id)
        if self.repo.count_order_references(product_id) > 0:
            raise ReferentialIntegrityError(
                "Cannot delete product that has been ordered. Consider setting stock to 0 instead."
            )
        try:
            self.repo.delete_product(product)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info(f"Product {product_id} deleted")

    def _get(self, product_id: int) -> ProductModel:
        product = self.repo.get_product(product_id)
        if not product:
            raise NotFoundError("Product not found")
        return product

    @staticmethod
    def _to_dict(product: ProductModel) -> Dict[str, Any]:
        return {
            "id": product.id,
            "name": product.name,
            "image_url": product.image_url,
            "price": product.price,
            "effective_price": effective_price(product),
            "stock": product.stock,
            "discount_type": product.discount_type,
            "discount_value": product.discount_value,
            "discount_start": product.discount_start,
            "discount_end": product.discount_end,
        }
