# storefront/services/cart_service.py
from decimal import Decimal
from typing import Any, Dict

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from storefront.data.models.cart import CartModel
from storefront.data.models.cart_item import CartItemModel
from storefront.domain.errors import ConcurrentModificationError, NotFoundError, OrderValidationError
from storefront.domain.pricing import ZERO, effective_price, to_money
from storefront.repos.cart_repo import CartRepo
from storefront.repos.product_repo import ProductRepo
from storefront.utils.clock import utcnow
from storefront.utils.logging import get_logger
from storefront.utils.retry import db_retry

logger = get_logger(__name__)


class CartService:
    """
    Cart use cases.
    queries (resolve, get) only read, apart from lazily creating a user's cart
    commands (add, set, remove, clear, merge) commit once or roll back

    Every command bumps carts.version with a compare-and-set, so two
    requests racing on the same cart cannot both win.
    """

    def __init__(self, db: Session):
        self.db = db
        self.repo = CartRepo(db)
        self.products = ProductRepo(db)

    #query
    def resolve(
        self,
        user_id: int | None,
        guest_session_id: str | None = None,
        guest_cart_id: int | None = None,
        create: bool = True,
    ) -> CartModel | None:
        if user_id is not None:
            return self._resolve_user_cart(user_id, create)
        return self._resolve_guest_cart(guest_session_id, guest_cart_id, create)

    def _resolve_user_cart(self, user_id: int, create: bool) -> CartModel | None:
        cart = self.repo.get_cart_by_user(user_id)
        if cart or not create:
            return cart

        try:
            cart = self.repo.create_cart(CartModel(user_id=user_id))
            self.repo.commit()
        except IntegrityError:
            #another request created it first (carts.user_id is unique)
            self.repo.rollback()
            return self.repo.get_cart_by_user(user_id)

        logger.info(f"Created cart {cart.id} for user {user_id}")
        return cart

    def _resolve_guest_cart(
        self,
        guest_session_id: str | None,
        guest_cart_id: int | None,
        create: bool,
    ) -> CartModel | None:
        if guest_cart_id is not None:
            cart = self.repo.get_cart(guest_cart_id)
            if cart and self._is_trusted_guest_cart(cart, guest_session_id):
                return cart
            logger.warning(f"Ignoring untrusted guest cart id {guest_cart_id}")

        if not create:
            return None

        cart = self.repo.create_cart(CartModel(user_id=None, session_id=guest_session_id))
        self.repo.commit()
        logger.info(f"Created guest cart {cart.id} for session {guest_session_id}")
        return cart

    @staticmethod
    def _is_trusted_guest_cart(cart: CartModel, guest_session_id: str | None) -> bool:
        # a cookie may only point at an ownerless cart; never at someone's cart
        if cart.user_id is not None:
            return False
        if cart.session_id and guest_session_id and cart.session_id != guest_session_id:
            return False
        return True

    def get_cart(self, cart: CartModel | None) -> Dict[str, Any]:
        """Priced view of the cart; prices are read live from products."""
        if cart is None:
            return {"cart_id": None, "user_id": None, "items": [], "item_count": 0, "total": ZERO}

        lines = []
        for item in self.repo.get_cart_items(cart.id):
            price = effective_price(item.product)
            lines.append(
                {
                    "product_id": item.product_id,
                    "name": item.product.name,
                    "image_url": item.product.image_url,
                    "price": price,
                    "quantity": item.quantity,
                    "stock": item.product.stock,
                    "line_total": to_money(price * item.quantity),
                }
            )

        return {
            "cart_id": cart.id,
            "user_id": cart.user_id,
            "items": lines,
            "item_count": sum(line["quantity"] for line in lines),
            "total": to_money(sum((line["line_total"] for line in lines), Decimal("0.00"))),
        }

    #commands
    def add_item(self, cart: CartModel, product_id: int, quantity: int) -> Dict[str, Any]:
        if quantity <= 0:
            raise OrderValidationError("Quantity must be greater than 0")

        version = cart.version
        product = self.products.get_product(product_id)
        if not product:
            raise NotFoundError(f"Product {product_id} not found")

        try:
            existing = self.repo.get_cart_item(cart.id, product_id)
            new_quantity = quantity + (existing.quantity if existing else 0)
            if new_quantity > product.stock:
                raise OrderValidationError(f"Only {product.stock} unit(s) of {product.name} in stock")

            if existing:
                logger.info(
                    f"Product {product_id} already in cart {cart.id}, quantity "
                    f"{existing.quantity} -> {new_quantity}"
                )
                existing.quantity = new_quantity
            else:
                logger.info(f"Adding product {product_id} to cart {cart.id}")
                self.repo.add_cart_item(
                    CartItemModel(cart_id=cart.id, product_id=product_id, quantity=quantity)
                )

            self._bump_version(cart.id, version)
            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise

        return self.get_cart(cart)

    def set_quantity(self, cart: CartModel, product_id: int, quantity: int) -> Dict[str, Any]:
        if quantity <= 0:
            return self.remove_item(cart, product_id)

        version = cart.version
        try:
            item = self.repo.get_cart_item(cart.id, product_id)
            if not item:
                raise NotFoundError("Cart item not found")

            product = self.products.get_product(product_id)
            if quantity > product.stock:
                raise OrderValidationError(f"Only {product.stock} unit(s) of {product.name} in stock")

            item.quantity = quantity
            self._bump_version(cart.id, version)
            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise

        logger.info(f"Cart {cart.id}: product {product_id} quantity set to {quantity}")
        return self.get_cart(cart)

    def remove_item(self, cart: CartModel, product_id: int) -> Dict[str, Any]:
        version = cart.version
        try:
            if self.repo.delete_cart_item(cart.id, product_id) == 0:
                raise NotFoundError("Cart item not found")
            self._bump_version(cart.id, version)
            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise

        logger.info(f"Removed product {product_id} from cart {cart.id}")
        return self.get_cart(cart)

    def clear_cart(self, cart: CartModel) -> Dict[str, Any]:
        version = cart.version
        try:
            removed = self.repo.delete_cart_items(cart.id)
            self._bump_version(cart.id, version)
            self.repo.commit()
        except Exception:
            self.repo.rollback()
            raise

        logger.info(f"Cleared {removed} line(s) from cart {cart.id}")
        return self.get_cart(cart)

    def clear_user_cart(self, user_id: int) -> int:
        """Post-checkout cleanup; runs after the order committed, in its own transaction."""

        @db_retry()
        def _clear() -> int:
            try:
                cart = self.repo.get_cart_by_user(user_id)
                if not cart:
                    return 0
                removed = self.repo.delete_cart_items(cart.id)
                self.repo.commit()
                return removed
            except OperationalError:
                self.repo.rollback()
                raise

        removed = _clear()
        logger.info(f"Cleared {removed} line(s) from cart of user {user_id}")
        return removed

    def merge_guest_into_user(
        self,
        guest_cart_id: int,
        user_id: int,
        guest_session_id: str | None = None,
    ) -> Dict[str, Any]:
        """
        Login merge: quantities of products present in both carts are summed,
        other guest lines move over, then the guest cart is deleted. One
        transaction, so an interrupted merge leaves both carts untouched.
        """
        user_cart = self._resolve_user_cart(user_id, create=True)

        guest_cart = self.repo.get_cart(guest_cart_id)
        if not guest_cart or not self._is_trusted_guest_cart(guest_cart, guest_session_id):
            logger.info(f"Nothing to merge for user {user_id} from cart {guest_cart_id}")
            return self.get_cart(user_cart)

        version = user_cart.version
        try:
            merged = 0
            for guest_item in self.repo.get_cart_items(guest_cart.id):
                existing = self.repo.get_cart_item(user_cart.id, guest_item.product_id)
                if existing:
                    existing.quantity += guest_item.quantity
                else:
                    self.db.add(
                        CartItemModel(
                            cart_id=user_cart.id,
                            product_id=guest_item.product_id,
                            quantity=guest_item.quantity,
                        )
                    )
                self.db.delete(guest_item)
                merged += 1

            self.db.flush()
            self.repo.delete_cart(guest_cart)
            self._bump_version(user_cart.id, version)
            self.repo.commit()
        except Exception:
            self.repo.rollback()
            logger.warning(f"Merging guest cart {guest_cart_id} into user {user_id} rolled back")
            raise

        logger.info(f"Merged {merged} line(s) from guest cart {guest_cart_id} into cart {user_cart.id}")
        return self.get_cart(user_cart)

    def _bump_version(self, cart_id: int, version: int) -> None:
        rowcount = self.repo.update_cart_version(
            cart_id=cart_id,
            old_version=version,
            new_data={"version": version + 1, "updated_at": utcnow()},
        )
        if rowcount == 0:
            raise ConcurrentModificationError(
                "Cart was modified by another request, please try again"
            )
