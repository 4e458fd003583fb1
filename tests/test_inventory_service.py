import pytest

from storefront.domain.errors import InsufficientStockError, NotFoundError, OrderValidationError
from storefront.services.inventory_service import InventoryService


def test_decrement_within_stock(db, product):
    InventoryService(db).decrement(product.id, 4)
    db.commit()

    assert product.stock == 6


def test_decrement_to_exactly_zero(db, product):
    InventoryService(db).decrement(product.id, 10)
    db.commit()

    assert product.stock == 0


def test_decrement_beyond_stock_changes_nothing(db, product):
    with pytest.raises(InsufficientStockError):
        InventoryService(db).decrement(product.id, 11)
    db.rollback()

    assert product.stock == 10


def test_decrement_missing_product(db):
    with pytest.raises(OrderValidationError, match="does not exist"):
        InventoryService(db).decrement(12345, 1)


def test_decrement_rejects_non_positive_quantity(db, product):
    with pytest.raises(OrderValidationError):
        InventoryService(db).decrement(product.id, 0)


def test_restore(db, product):
    InventoryService(db).restore(product.id, 5)
    db.commit()

    assert product.stock == 15


def test_restore_missing_product(db):
    with pytest.raises(NotFoundError):
        InventoryService(db).restore(12345, 1)
