from decimal import Decimal

import pytest

from storefront.data.models import CartItemModel, InvoiceModel, OrderModel, VoucherUsageModel
from storefront.domain.errors import (
    InsufficientStockError,
    InvalidTransitionError,
    NotFoundError,
    OrderValidationError,
    VoucherRejected,
)
from storefront.services.cart_service import CartService
from storefront.services.order_service import OrderService
from storefront.services.payment_service import PaymentService
from storefront.services.voucher_service import VoucherService
from tests.helpers import ADDRESS, line


def _orders(db):
    return db.query(OrderModel).count()


class TestPlaceOrder:
    def test_totals_with_voucher(self, db, user, product, voucher):
        placed = OrderService(db).place_order(user.id, [line(product, 2)], ADDRESS, voucher_code="PCT10")

        assert placed["voucher_discount"] == Decimal("10.00")
        assert placed["tax_price"] == Decimal("9.00")
        assert placed["shipping_price"] == Decimal("10.00")
        assert placed["total_price"] == Decimal("109.00")

        order = db.get(OrderModel, placed["order_id"])
        assert order.voucher_id == voucher.id
        assert order.status == "pending"
        assert order.order_number.startswith("ORD-")
        assert order.payment_method == "Mock Payment"
        assert order.shipping_address.postal_code == "12345"

    def test_stock_and_voucher_are_consumed(self, db, user, product, voucher):
        placed = OrderService(db).place_order(user.id, [line(product, 3)], ADDRESS, voucher_code="PCT10")

        assert product.stock == 7
        assert voucher.current_usage_count == 1
        usage = db.query(VoucherUsageModel).one()
        assert usage.order_id == placed["order_id"]
        assert usage.user_id == user.id

    def test_empty_items(self, db, user):
        with pytest.raises(OrderValidationError, match="Order items are required"):
            OrderService(db).place_order(user.id, [], ADDRESS)

    def test_missing_address(self, db, user, product):
        with pytest.raises(OrderValidationError, match="Shipping address is required"):
            OrderService(db).place_order(user.id, [line(product)], None)

    def test_incomplete_address(self, db, user, product):
        with pytest.raises(OrderValidationError):
            OrderService(db).place_order(user.id, [line(product)], {**ADDRESS, "city": ""})

    def test_voucher_second_use_rejected(self, db, user, product, voucher):
        svc = OrderService(db)
        svc.place_order(user.id, [line(product)], ADDRESS, voucher_code="PCT10")

        with pytest.raises(VoucherRejected) as exc:
            svc.place_order(user.id, [line(product)], ADDRESS, voucher_code="PCT10")

        assert exc.value.reason == "You have reached the usage limit for this voucher"
        assert voucher.current_usage_count == 1
        assert product.stock == 9
        assert _orders(db) == 1

    def test_insufficient_stock_rolls_everything_back(self, db, user, make_product, voucher):
        plenty = make_product(name="Plenty", stock=10)
        scarce = make_product(name="Scarce", stock=1)

        with pytest.raises(InsufficientStockError):
            OrderService(db).place_order(
                user.id, [line(plenty, 2), line(scarce, 2)], ADDRESS, voucher_code="PCT10"
            )

        assert plenty.stock == 10
        assert scarce.stock == 1
        assert voucher.current_usage_count == 0
        assert _orders(db) == 0
        assert db.query(VoucherUsageModel).count() == 0

    def test_failure_after_decrement_rolls_back(self, db, user, product, voucher, monkeypatch):
        def broken_redeem(self, voucher_id, user_id, order_id):
            raise RuntimeError("connection lost")

        monkeypatch.setattr(VoucherService, "redeem", broken_redeem)

        with pytest.raises(RuntimeError):
            OrderService(db).place_order(user.id, [line(product, 4)], ADDRESS, voucher_code="PCT10")

        assert product.stock == 10
        assert voucher.current_usage_count == 0
        assert _orders(db) == 0

    def test_unknown_product_rolls_back(self, db, user, product):
        ghost = {**line(product), "product_id": 4242}

        with pytest.raises(OrderValidationError, match="does not exist"):
            OrderService(db).place_order(user.id, [line(product, 1), ghost], ADDRESS)

        assert product.stock == 10
        assert _orders(db) == 0

    def test_cart_is_cleared_after_commit(self, db, user, product):
        carts = CartService(db)
        carts.add_item(carts.resolve(user.id), product.id, 2)

        OrderService(db).place_order(user.id, [line(product, 2)], ADDRESS)

        assert db.query(CartItemModel).count() == 0

    def test_cart_clear_failure_keeps_the_order(self, db, user, product):
        svc = OrderService(db)

        def boom(user_id):
            raise RuntimeError("cart store unavailable")

        svc.carts.clear_user_cart = boom
        placed = svc.place_order(user.id, [line(product)], ADDRESS)

        assert db.get(OrderModel, placed["order_id"]) is not None
        assert product.stock == 9

    def test_item_price_is_a_snapshot(self, db, user, product):
        placed = OrderService(db).place_order(user.id, [line(product, 1)], ADDRESS)

        product.price = Decimal("999.00")
        product.name = "Renamed"
        db.commit()

        order = db.get(OrderModel, placed["order_id"])
        assert order.items[0].price == Decimal("50.00")
        assert order.items[0].name == "Widget"

    def test_live_price_enforcement(self, db, user, product):
        svc = OrderService(db, enforce_live_prices=True)

        with pytest.raises(OrderValidationError, match="has changed"):
            svc.place_order(user.id, [line(product, 1, price="1.00")], ADDRESS)

        assert svc.place_order(user.id, [line(product, 1)], ADDRESS)["total_price"] == Decimal("65.00")


class TestCancelOrder:
    def test_pending_order_restores_stock(self, db, user, product):
        svc = OrderService(db)
        placed = svc.place_order(user.id, [line(product, 3)], ADDRESS)

        svc.cancel_order(placed["order_id"])

        assert product.stock == 10
        assert _orders(db) == 0

    def test_paid_order_restores_stock_and_keeps_invoice(self, db, user, product, voucher):
        svc = OrderService(db)
        placed = svc.place_order(user.id, [line(product, 2)], ADDRESS, voucher_code="PCT10")
        invoice = PaymentService(db).mark_paid(placed["order_id"], user.id)
        invoice_id = invoice.id

        svc.cancel_order(placed["order_id"])

        assert product.stock == 10
        survivor = db.get(InvoiceModel, invoice_id)
        assert survivor is not None
        assert survivor.order_id is None
        assert db.query(VoucherUsageModel).one().order_id is None
        assert voucher.current_usage_count == 1

    def test_delivered_order_is_immutable(self, db, user, product):
        svc = OrderService(db)
        placed = svc.place_order(user.id, [line(product, 2)], ADDRESS)
        payments = PaymentService(db)
        payments.mark_paid(placed["order_id"], user.id)
        payments.mark_delivered(placed["order_id"])

        with pytest.raises(InvalidTransitionError, match="Cannot delete a delivered order"):
            svc.cancel_order(placed["order_id"])

        assert product.stock == 8
        assert _orders(db) == 1

    def test_missing_order(self, db):
        with pytest.raises(NotFoundError):
            OrderService(db).cancel_order(777)


class TestQueries:
    def test_orders_are_private(self, db, user, other_user, product):
        svc = OrderService(db)
        placed = svc.place_order(user.id, [line(product)], ADDRESS)

        assert svc.get_order(placed["order_id"], user.id).id == placed["order_id"]
        with pytest.raises(NotFoundError):
            svc.get_order(placed["order_id"], other_user.id)
        assert svc.list_orders(other_user.id) == []
