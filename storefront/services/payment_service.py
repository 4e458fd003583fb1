# storefront/services/payment_service.py
from typing import Any, Dict

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.data.models.invoice import InvoiceModel
from storefront.data.models.order import OrderModel
from storefront.domain.errors import ConsistencyError, InvalidTransitionError, NotFoundError
from storefront.domain.pricing import to_money
from storefront.repos.invoice_repo import InvoiceRepo
from storefront.repos.order_repo import OrderRepo
from storefront.repos.user_repo import UserRepo
from storefront.services.followups import PostCommitActions
from storefront.services.notification_service import NotificationService
from storefront.utils.clock import utcnow
from storefront.utils.logging import get_logger
from storefront.utils.numbers import invoice_number

logger = get_logger(__name__)


class PaymentService:
    """
    Mock payment confirmation and delivery.

    Marking an order paid and writing its invoice is one transaction. A
    retried callback finds the order already paid and gets the existing
    invoice back; the UNIQUE invoices.order_id covers the case where two
    callbacks race past that check.
    """

    def __init__(self, db: Session):
        self.db = db
        self.orders = OrderRepo(db)
        self.invoices = InvoiceRepo(db)
        self.users = UserRepo(db)

    def mark_paid(self, order_id: int, user_id: int, payment: Dict[str, Any] | None = None) -> InvoiceModel:
        payment = payment or {}
        followups = PostCommitActions()

        try:
            order = self.orders.get_order_for_update(order_id)
            if not order or order.user_id != user_id:
                raise NotFoundError("Order not found")

            if order.is_paid:
                existing = self.invoices.get_by_order(order.id)
                if existing:
                    self.orders.commit()
                    logger.info(f"Order {order_id} already paid, returning invoice {existing.invoice_number}")
                    return existing
                logger.warning(f"Order {order_id} is paid but has no invoice, generating one")
            else:
                now = utcnow()
                order.is_paid = True
                order.paid_at = now
                order.payment_result_id = payment.get("payment_result_id") or f"MOCK-{int(now.timestamp() * 1000)}"
                order.payment_status = payment.get("payment_status") or "completed"
                order.payment_update_time = payment.get("payment_update_time") or now.isoformat()
                order.payment_email = payment.get("payment_email") or self._user_email(user_id)

            invoice = self.generate_invoice(order)
            followups.add("invoice email", NotificationService.send_invoice_email, invoice.id)
            self.orders.commit()
        except IntegrityError:
            self.orders.rollback()
            followups.discard()
            existing = self.invoices.get_by_order(order_id)
            if existing:
                logger.info(f"Concurrent payment for order {order_id} already invoiced as {existing.invoice_number}")
                return existing
            raise ConsistencyError("Payment could not be recorded, please try again")
        except Exception:
            self.orders.rollback()
            followups.discard()
            raise

        logger.info("order_paid", order_id=order_id, invoice_number=invoice.invoice_number)
        followups.run()
        return invoice

    def generate_invoice(self, order: OrderModel) -> InvoiceModel:
        """Snapshot of the order's money and addresses; joins the caller's transaction."""
        total = to_money(order.total_price)
        tax = to_money(order.tax_price)
        shipping = to_money(order.shipping_price)

        address = order.shipping_address.as_dict() if order.shipping_address else {}
        user = self.users.get_user(order.user_id)
        billing = {
            "name": user.name if user else None,
            "email": order.payment_email or (user.email if user else None),
            **address,
        }

        invoice = self.invoices.add_invoice(
            InvoiceModel(
                invoice_number=invoice_number(),
                order_id=order.id,
                order_number=order.order_number,
                user_id=order.user_id,
                subtotal=total - tax - shipping,
                tax_amount=tax,
                shipping_amount=shipping,
                total_amount=total,
                payment_method=order.payment_method,
                payment_status=order.payment_status or "completed",
                billing_address=billing,
                shipping_address=dict(address),
            )
        )
        return invoice

    def mark_delivered(self, order_id: int) -> OrderModel:
        try:
            order = self.orders.get_order_for_update(order_id)
            if not order:
                raise NotFoundError("Order not found")
            if order.is_delivered:
                raise InvalidTransitionError("Order already delivered")
            if not order.is_paid:
                raise InvalidTransitionError("Cannot deliver an order that has not been paid")

            order.is_delivered = True
            order.delivered_at = utcnow()
            self.orders.commit()
        except Exception:
            self.orders.rollback()
            raise

        logger.info(f"Order {order_id} marked as delivered")
        return order

    def _user_email(self, user_id: int) -> str | None:
        user = self.users.get_user(user_id)
        return user.email if user else None
