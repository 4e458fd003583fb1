# storefront/domain/schemas.py
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from storefront.utils.clock import as_utc


DiscountType = Literal["percentage", "fixed"]


def _reject_nulls(model: BaseModel, nullable: set[str]) -> None:
    # omitted fields stay untouched; an explicit null may only clear a nullable column
    for name in model.model_fields_set:
        if name not in nullable and getattr(model, name) is None:
            raise ValueError(f"{name} cannot be null")


# =====================================================
# USERS
# =====================================================
class UserCreate(BaseModel):
    id: int = Field(..., gt=0)
    name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., min_length=3, max_length=255)


class UserRead(BaseModel):
    id: int
    name: str
    email: str
    is_admin: bool = False

    model_config = ConfigDict(from_attributes=True)


# =====================================================
# PRODUCTS
# =====================================================
class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    image_url: str | None = None
    price: Decimal = Field(..., ge=0)
    stock: int = Field(0, ge=0)
    discount_type: DiscountType | None = None
    discount_value: Decimal | None = Field(None, ge=0)
    discount_start: datetime | None = None
    discount_end: datetime | None = None


class ProductUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    image_url: str | None = None
    price: Decimal | None = Field(None, ge=0)
    stock: int | None = Field(None, ge=0)
    discount_type: DiscountType | None = None
    discount_value: Decimal | None = Field(None, ge=0)
    discount_start: datetime | None = None
    discount_end: datetime | None = None

    @model_validator(mode="after")
    def _check_nulls(self):
        _reject_nulls(self, {"image_url", "discount_type", "discount_value", "discount_start", "discount_end"})
        return self


class ProductOut(BaseModel):
    id: int
    name: str
    image_url: str | None = None
    price: Decimal
    effective_price: Decimal
    stock: int
    discount_type: str | None = None
    discount_value: Decimal | None = None
    discount_start: datetime | None = None
    discount_end: datetime | None = None


# =====================================================
# CART
# =====================================================
class ItemIn(BaseModel):
    product_id: int = Field(..., gt=0)
    quantity: int = Field(1, gt=0)


class QuantityIn(BaseModel):
    """0 removes the line."""

    quantity: int = Field(..., ge=0)


class CartLineOut(BaseModel):
    product_id: int
    name: str
    image_url: str | None = None
    price: Decimal
    quantity: int
    stock: int
    line_total: Decimal


class CartOut(BaseModel):
    cart_id: int | None = None
    user_id: int | None = None
    items: List[CartLineOut] = []
    item_count: int = 0
    total: Decimal = Decimal("0.00")


# =====================================================
# ORDERS
# =====================================================
class OrderItemIn(BaseModel):
    product_id: int = Field(..., gt=0)
    name: str = Field(..., min_length=1)
    image_url: str | None = None
    price: Decimal = Field(..., ge=0)
    quantity: int = Field(..., gt=0)


class ShippingAddressIn(BaseModel):
    address: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    postal_code: str = Field(..., min_length=1, alias="postalCode")
    country: str = Field(..., min_length=1)

    model_config = ConfigDict(populate_by_name=True)


class OrderCreate(BaseModel):
    """Empty items or a missing address are rejected by the service with a 400, not here."""

    order_items: List[OrderItemIn] = Field(default_factory=list, alias="orderItems")
    shipping_address: ShippingAddressIn | None = Field(None, alias="shippingAddress")
    payment_method: str | None = Field(None, alias="paymentMethod", max_length=50)
    voucher_code: str | None = Field(None, max_length=50)

    model_config = ConfigDict(populate_by_name=True)


class OrderPlacedOut(BaseModel):
    message: str
    order_id: int = Field(..., serialization_alias="orderId")
    order_number: str = Field(..., serialization_alias="orderNumber")


class PaymentIn(BaseModel):
    payment_result_id: str | None = Field(None, max_length=100)
    payment_status: str | None = Field(None, max_length=50)
    payment_update_time: str | None = Field(None, max_length=50)
    payment_email: str | None = Field(None, max_length=255)


class OrderItemOut(BaseModel):
    product_id: int
    name: str
    image_url: str | None = None
    price: Decimal
    quantity: int

    model_config = ConfigDict(from_attributes=True)


class ShippingAddressOut(BaseModel):
    address: str
    city: str
    postal_code: str
    country: str

    model_config = ConfigDict(from_attributes=True)


class OrderOut(BaseModel):
    id: int
    order_number: str
    user_id: int
    status: str
    voucher_id: int | None = None
    voucher_discount: Decimal
    payment_method: str
    tax_price: Decimal
    shipping_price: Decimal
    total_price: Decimal
    is_paid: bool
    paid_at: datetime | None = None
    is_delivered: bool
    delivered_at: datetime | None = None
    payment_result_id: str | None = None
    payment_status: str | None = None
    created_at: datetime
    items: List[OrderItemOut] = []
    shipping_address: ShippingAddressOut | None = None

    model_config = ConfigDict(from_attributes=True)


class MessageOut(BaseModel):
    message: str


# =====================================================
# INVOICES
# =====================================================
class InvoiceOut(BaseModel):
    id: int
    invoice_number: str
    order_id: int | None = None
    order_number: str
    user_id: int
    subtotal: Decimal
    tax_amount: Decimal
    shipping_amount: Decimal
    total_amount: Decimal
    payment_method: str
    payment_status: str
    billing_address: Dict[str, Any]
    shipping_address: Dict[str, Any]
    email_sent: bool
    email_sent_at: datetime | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PaymentOut(BaseModel):
    message: str
    invoice: InvoiceOut


# =====================================================
# VOUCHERS
# =====================================================
class VoucherBase(BaseModel):
    description: str | None = None
    discount_type: DiscountType
    discount_value: Decimal = Field(..., ge=0)
    min_purchase_amount: Decimal = Field(Decimal("0.00"), ge=0)
    max_discount_amount: Decimal | None = Field(None, ge=0)
    start_date: datetime
    end_date: datetime
    usage_limit_per_user: int = Field(1, ge=1)
    total_usage_limit: int | None = Field(None, ge=1)
    is_active: bool = True

    @model_validator(mode="after")
    def _check_window_and_value(self):
        if as_utc(self.end_date) < as_utc(self.start_date):
            raise ValueError("end_date must not be before start_date")
        if self.discount_type == "percentage" and self.discount_value > 100:
            raise ValueError("percentage discount cannot exceed 100")
        return self


class VoucherCreate(VoucherBase):
    code: str = Field(..., min_length=1, max_length=50)


class VoucherUpdate(BaseModel):
    code: str | None = Field(None, min_length=1, max_length=50)
    description: str | None = None
    discount_type: DiscountType | None = None
    discount_value: Decimal | None = Field(None, ge=0)
    min_purchase_amount: Decimal | None = Field(None, ge=0)
    max_discount_amount: Decimal | None = Field(None, ge=0)
    start_date: datetime | None = None
    end_date: datetime | None = None
    usage_limit_per_user: int | None = Field(None, ge=1)
    total_usage_limit: int | None = Field(None, ge=1)
    is_active: bool | None = None

    @model_validator(mode="after")
    def _check_nulls(self):
        _reject_nulls(self, {"description", "max_discount_amount", "total_usage_limit"})
        return self


class VoucherOut(BaseModel):
    id: int
    code: str
    description: str | None = None
    discount_type: str
    discount_value: Decimal
    min_purchase_amount: Decimal
    max_discount_amount: Decimal | None = None
    start_date: datetime
    end_date: datetime
    usage_limit_per_user: int
    total_usage_limit: int | None = None
    current_usage_count: int
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


class VoucherValidateIn(BaseModel):
    code: str = Field(..., min_length=1, max_length=50)
    order_total: Decimal = Field(..., ge=0)


class VoucherValidationOut(BaseModel):
    valid: bool
    voucher: VoucherOut
    discount_amount: Decimal
