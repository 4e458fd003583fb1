# storefront/domain/pricing.py
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable

from storefront.utils.clock import as_utc, utcnow
from storefront.utils.settings import TAX_RATE, FREE_SHIPPING_THRESHOLD, FLAT_SHIPPING_FEE

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

PERCENTAGE = "percentage"
FIXED = "fixed"
DISCOUNT_TYPES = (PERCENTAGE, FIXED)


def to_money(value: Any) -> Decimal:
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def subtotal_of(items: Iterable[Any]) -> Decimal:
    """Sum of price * quantity; items may be dicts or objects."""
    total = ZERO
    for item in items:
        if isinstance(item, dict):
            price, quantity = item["price"], item["quantity"]
        else:
            price, quantity = item.price, item.quantity
        total += to_money(price) * quantity
    return to_money(total)


def order_totals(subtotal: Decimal, voucher_discount: Decimal = ZERO) -> Dict[str, Decimal]:
    """
    Checkout arithmetic. The voucher comes off before tax and shipping;
    shipping is free only strictly above the threshold.
    """
    subtotal = to_money(subtotal)
    voucher_discount = to_money(voucher_discount)

    post_discount = max(ZERO, subtotal - voucher_discount)
    tax_price = to_money(post_discount * TAX_RATE)
    shipping_price = ZERO if post_discount > FREE_SHIPPING_THRESHOLD else to_money(FLAT_SHIPPING_FEE)

    return {
        "subtotal": subtotal,
        "voucher_discount": voucher_discount,
        "post_discount": post_discount,
        "tax_price": tax_price,
        "shipping_price": shipping_price,
        "total_price": to_money(post_discount + tax_price + shipping_price),
    }


def discount_active(
    discount_type: str | None,
    start: datetime | None,
    end: datetime | None,
    now: datetime | None = None,
) -> bool:
    if discount_type not in DISCOUNT_TYPES:
        return False
    now = now or utcnow()
    if start is not None and now < as_utc(start):
        return False
    if end is not None and now > as_utc(end):
        return False
    return True


def effective_price(product, now: datetime | None = None) -> Decimal:
    """Product price after its own (non-voucher) discount, floored at zero."""
    price = to_money(product.price)
    if not discount_active(product.discount_type, product.discount_start, product.discount_end, now):
        return price

    value = to_money(product.discount_value or 0)
    if product.discount_type == PERCENTAGE:
        price = price - to_money(price * value / 100)
    else:
        price = price - value
    return max(ZERO, price)
