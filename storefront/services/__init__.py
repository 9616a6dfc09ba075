"""Storefront 服務模組入口。"""

from .cart_service import CartService
from .catalog_service import CatalogService
from .discount_service import DiscountService, DiscountValidation
from .order_numbers import OrderNumberGenerator
from .order_service import CheckoutStage, OrderService
from .pricing import PriceBreakdown, PricedLine, compute_breakdown
from .shipping_service import ShippingQuote, ShippingService
from .wishlist_service import WishlistService

__all__ = [
    "CartService",
    "CatalogService",
    "CheckoutStage",
    "DiscountService",
    "DiscountValidation",
    "OrderNumberGenerator",
    "OrderService",
    "PriceBreakdown",
    "PricedLine",
    "ShippingQuote",
    "ShippingService",
    "WishlistService",
    "compute_breakdown",
]
