# storefront/services/order_service.py
from decimal import Decimal
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from storefront.data.models.order import OrderModel
from storefront.data.models.order_item import OrderItemModel
from storefront.data.models.shipping_address import ShippingAddressModel
from storefront.domain.errors import InvalidTransitionError, NotFoundError, OrderValidationError, VoucherRejected
from storefront.domain.pricing import ZERO, effective_price, order_totals, subtotal_of, to_money
from storefront.repos.order_repo import OrderRepo
from storefront.repos.product_repo import ProductRepo
from storefront.services.cart_service import CartService
from storefront.services.followups import PostCommitActions
from storefront.services.inventory_service import InventoryService
from storefront.services.voucher_service import VoucherService
from storefront.utils.numbers import order_number
from storefront.utils.settings import DEFAULT_PAYMENT_METHOD, ENFORCE_LIVE_PRICES
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

_ADDRESS_FIELDS = ("address", "city", "postal_code", "country")


class OrderService:
    """
    Order placement and the order aggregate's lifecycle.

    place_order() is all-or-nothing: voucher check, order header, line
    snapshots, guarded stock decrements, shipping address and voucher
    redemption share one transaction. Clearing the cart happens only after
    the commit and cannot undo the order.
    """

    def __init__(self, db: Session, enforce_live_prices: bool = ENFORCE_LIVE_PRICES):
        self.db = db
        self.repo = OrderRepo(db)
        self.products = ProductRepo(db)
        self.inventory = InventoryService(db)
        self.vouchers = VoucherService(db)
        self.carts = CartService(db)
        self.enforce_live_prices = enforce_live_prices

    # =====================================================
    # COMMANDS
    # =====================================================
    def place_order(
        self,
        user_id: int,
        items: List[Dict[str, Any]],
        shipping_address: Dict[str, Any] | None,
        payment_method: str | None = None,
        voucher_code: str | None = None,
    ) -> Dict[str, Any]:
        if not items:
            raise OrderValidationError("Order items are required")
        if not shipping_address or any(not shipping_address.get(f) for f in _ADDRESS_FIELDS):
            raise OrderValidationError("Shipping address is required")

        followups = PostCommitActions()

        try:
            # 1. subtotal from the prices the cart handed us
            subtotal = subtotal_of(items)
            if self.enforce_live_prices:
                self._check_live_prices(items)

            # 2. voucher
            voucher = None
            voucher_discount = ZERO
            if voucher_code:
                result = self.vouchers.validate(voucher_code, user_id, subtotal)
                if not result["valid"]:
                    logger.info(f"Voucher {voucher_code!r} rejected for user {user_id}: {result['reason']}")
                    raise VoucherRejected(result["reason"])
                voucher = result["voucher"]
                voucher_discount = self.vouchers.compute_discount(voucher, subtotal)

            # 3. tax, shipping, total
            totals = order_totals(subtotal, voucher_discount)

            # 4-5. header
            order = self.repo.add_order(
                OrderModel(
                    order_number=order_number(),
                    user_id=user_id,
                    voucher_id=voucher.id if voucher else None,
                    voucher_discount=totals["voucher_discount"],
                    payment_method=payment_method or DEFAULT_PAYMENT_METHOD,
                    tax_price=totals["tax_price"],
                    shipping_price=totals["shipping_price"],
                    total_price=totals["total_price"],
                )
            )

            # 6. guarded stock decrement + line snapshots
            for item in items:
                self.inventory.decrement(item["product_id"], item["quantity"])
                order.items.append(
                    OrderItemModel(
                        product_id=item["product_id"],
                        name=item["name"],
                        image_url=item.get("image_url"),
                        price=to_money(item["price"]),
                        quantity=item["quantity"],
                    )
                )

            # 7. shipping address
            order.shipping_address = ShippingAddressModel(
                **{field: shipping_address[field] for field in _ADDRESS_FIELDS}
            )
            self.db.flush()

            # 8. voucher redemption
            if voucher:
                self.vouchers.redeem(voucher.id, user_id, order.id)

            followups.add("clear cart", self.carts.clear_user_cart, user_id)

            # 9. commit
            self.repo.commit()
        except Exception as e:
            self.repo.rollback()
            followups.discard()
            logger.warning(f"Order placement for user {user_id} rolled back: {e}")
            raise

        logger.info(
            "order_placed",
            order_id=order.id,
            order_number=order.order_number,
            user_id=user_id,
            total=str(totals["total_price"]),
        )
        followups.run()

        return {
            "order_id": order.id,
            "order_number": order.order_number,
            **totals,
        }

    def cancel_order(self, order_id: int) -> None:
        """
        Admin delete. Refused once delivered; otherwise every line's quantity
        goes back to stock and the aggregate is removed in one transaction.
        """
        try:
            order = self.repo.get_order_for_update(order_id)
            if not order:
                raise NotFoundError("Order not found")
            if order.is_delivered:
                raise InvalidTransitionError("Cannot delete a delivered order")

            was_paid = order.is_paid
            for item in order.items:
                self.inventory.restore(item.product_id, item.quantity)

            self.repo.delete_order(order)
            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise

        logger.info(f"Order {order_id} cancelled (was {'paid' if was_paid else 'pending'}), stock restored")

    # =====================================================
    # QUERIES
    # =====================================================
    def get_order(self, order_id: int, user_id: int) -> OrderModel:
        order = self.repo.get_user_order(order_id, user_id)
        if not order:
            raise NotFoundError("Order not found")
        return order

    def list_orders(self, user_id: int) -> List[OrderModel]:
        return self.repo.list_user_orders(user_id)

    # =====================================================
    # HELPERS
    # =====================================================
    def _check_live_prices(self, items: List[Dict[str, Any]]) -> None:
        products = self.products.get_products(item["product_id"] for item in items)
        for item in items:
            product = products.get(item["product_id"])
            if product is None:
                raise OrderValidationError(f"Product {item['product_id']} does not exist")
            live: Decimal = effective_price(product)
            if to_money(item["price"]) != live:
                raise OrderValidationError(
                    f"Price of {product.name} has changed to {live}, please review your cart"
                )
