# storefront/repos/product_repo.py
from typing import Dict, Iterable

from sqlalchemy import select, update, func
from sqlalchemy.orm import Session

from storefront.data.models.product import ProductModel
from storefront.data.models.order_item import OrderItemModel


class ProductRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_product(self, product_id: int) -> ProductModel | None:
        return self.db.get(ProductModel, product_id)

    def get_products(self, product_ids: Iterable[int]) -> Dict[int, ProductModel]:
        ids = set(product_ids)
        if not ids:
            return {}
        rows = self.db.execute(select(ProductModel).where(ProductModel.id.in_(ids))).scalars().all()
        return {p.id: p for p in rows}

    def add_product(self, product: ProductModel) -> ProductModel:
        self.db.add(product)
        self.db.flush()
        return product

    def delete_product(self, product: ProductModel) -> None:
        self.db.delete(product)
        self.db.flush()

    def count_order_references(self, product_id: int) -> int:
        return self.db.execute(
            select(func.count(OrderItemModel.id)).where(OrderItemModel.product_id == product_id)
        ).scalar_one()

    def decrement_stock(self, product_id: int, quantity: int) -> int:
        """
        UPDATE products SET stock = stock - :q WHERE id = :id AND stock >= :q

        The row lock taken by the UPDATE serializes concurrent checkouts on the
        same product; the loser re-evaluates the WHERE and matches nothing.
        """
        result = self.db.execute(
            update(ProductModel)
            .where(ProductModel.id == product_id, ProductModel.stock >= quantity)
            .values(stock=ProductModel.stock - quantity)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def increment_stock(self, product_id: int, quantity: int) -> int:
        result = self.db.execute(
            update(ProductModel)
            .where(ProductModel.id == product_id)
            .values(stock=ProductModel.stock + quantity)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount
