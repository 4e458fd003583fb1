#import all models so SQLAlchemy registers them in Base.metadata

from storefront.data.models.user import UserModel
from storefront.data.models.product import ProductModel
from storefront.data.models.cart import CartModel
from storefront.data.models.cart_item import CartItemModel
from storefront.data.models.voucher import VoucherModel
from storefront.data.models.voucher_usage import VoucherUsageModel
from storefront.data.models.order import OrderModel
from storefront.data.models.order_item import OrderItemModel
from storefront.data.models.shipping_address import ShippingAddressModel
from storefront.data.models.invoice import InvoiceModel

__all__ = [
    "UserModel",
    "ProductModel",
    "CartModel",
    "CartItemModel",
    "VoucherModel",
    "VoucherUsageModel",
    "OrderModel",
    "OrderItemModel",
    "ShippingAddressModel",
    "InvoiceModel",
]
