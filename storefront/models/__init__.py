from .base import Base
from .category import Category
from .product import Product
from .product_variant import ProductVariant
from .cart_item import CartItem
from .discount import Discount
from .shipping_rule import ShippingRule
from .order import Order, OrderItem
from .wishlist_item import WishlistItem

__all__ = [
    "Base",
    "Category",
    "Product",
    "ProductVariant",
    "CartItem",
    "Discount",
    "ShippingRule",
    "Order",
    "OrderItem",
    "WishlistItem",
]
