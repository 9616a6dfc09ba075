"""Domain exceptions for the storefront checkout core."""

from typing import Any, Dict, List, Optional


class StorefrontError(ValueError):
    """Base exception for all storefront errors."""

    code = "storefront_error"
    http_status = 400

    def to_dict(self) -> Dict[str, Any]:
        return {"error": str(self), "code": self.code}


class NotFoundError(StorefrontError):
    code = "not_found"
    http_status = 404


class ProductNotFound(NotFoundError):
    code = "product_not_found"

    def __init__(self, product_id: str):
        self.product_id = product_id
        super().__init__(f"Product not found: {product_id}")


class VariantNotFound(NotFoundError):
    code = "variant_not_found"

    def __init__(self, variant_id: str, product_id: Optional[str] = None):
        self.variant_id = variant_id
        self.product_id = product_id
        msg = f"Variant not found: {variant_id}"
        if product_id:
            msg = f"Variant {variant_id} not found for product {product_id}"
        super().__init__(msg)


class CartItemNotFound(NotFoundError):
    code = "cart_item_not_found"

    def __init__(self, item_id: str):
        self.item_id = item_id
        super().__init__(f"Cart item not found: {item_id}")


class DiscountNotFound(NotFoundError):
    code = "discount_not_found"

    def __init__(self, discount_id: str):
        self.discount_id = discount_id
        super().__init__(f"Discount not found: {discount_id}")


class ShippingRuleNotFound(NotFoundError):
    code = "shipping_rule_not_found"

    def __init__(self, rule_id: str):
        self.rule_id = rule_id
        super().__init__(f"Shipping rule not found: {rule_id}")


class OrderNotFound(NotFoundError):
    code = "order_not_found"

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Order not found: {key}")


class CategoryNotFound(NotFoundError):
    code = "category_not_found"

    def __init__(self, category_id: str):
        self.category_id = category_id
        super().__init__(f"Category not found: {category_id}")


class WishlistItemNotFound(NotFoundError):
    code = "wishlist_item_not_found"

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Wishlist item not found: {key}")


class DuplicateEntry(StorefrontError):
    code = "duplicate"
    http_status = 409

    def __init__(self, field: str, value: str):
        self.field = field
        self.value = value
        super().__init__(f"{field} already exists: {value}")


class ResourceInUse(StorefrontError):
    """Raised when a catalog row is still referenced and cannot be deleted."""

    code = "resource_in_use"
    http_status = 409

    def __init__(self, resource: str, key: str, reason: str):
        self.resource = resource
        self.key = key
        self.reason = reason
        super().__init__(f"Cannot delete {resource} {key}: {reason.replace('_', ' ')}")

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["reason"] = self.reason
        return data


class InsufficientStock(StorefrontError):
    code = "insufficient_stock"

    def __init__(self, requested: int, available: int):
        self.requested = requested
        self.available = available
        super().__init__(f"Insufficient stock: requested {requested}, available {available}")


class EmptyCart(StorefrontError):
    code = "empty_cart"

    def __init__(self, user_id: Optional[str] = None):
        self.user_id = user_id
        super().__init__("Cart is empty")


class InvalidDiscount(StorefrontError):
    """Raised when a supplied discount code cannot be applied to the order."""

    code = "invalid_discount"

    MESSAGES = {
        "not_found": "Discount code does not exist",
        "inactive": "Discount code is not active",
        "expired": "Discount code is not valid at this time",
        "minimum_not_met": "Order subtotal is below the minimum for this code",
        "usage_limit_reached": "Discount code has reached its usage limit",
    }

    def __init__(self, discount_code: str, reason: str):
        self.discount_code = discount_code
        self.reason = reason
        super().__init__(f"{self.MESSAGES.get(reason, reason)}: {discount_code}")

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["reason"] = self.reason
        return data


class NoShippingCoverage(StorefrontError):
    code = "no_shipping_coverage"

    def __init__(self, pincode: str):
        self.pincode = pincode
        super().__init__(f"Delivery is not available for pincode {pincode}")


class CodUnavailable(StorefrontError):
    code = "cod_unavailable"

    def __init__(self, pincode: str):
        self.pincode = pincode
        super().__init__(f"Cash on delivery is not available for pincode {pincode}")


class InvalidTransition(StorefrontError):
    code = "invalid_transition"
    http_status = 409

    def __init__(self, field: str, current: str, target: str):
        self.field = field
        self.current = current
        self.target = target
        super().__init__(f"Cannot change {field} from '{current}' to '{target}'")


class OrderNotDeletable(StorefrontError):
    code = "order_not_deletable"
    http_status = 409

    def __init__(self, order_number: str, status: str):
        self.order_number = order_number
        self.status = status
        super().__init__(
            f"Cannot delete order with status '{status}'. Only pending or cancelled orders can be deleted."
        )


class OrderSequenceExhausted(StorefrontError):
    code = "sequence_exhausted"
    http_status = 503

    def __init__(self, year: int):
        self.year = year
        super().__init__(f"Order number sequence exhausted for {year}")


class SequenceCollision(StorefrontError):
    """Raised when order-number generation keeps colliding after all retries."""

    code = "sequence_collision"
    http_status = 503

    def __init__(
        self,
        attempts: int,
        order_number: Optional[str],
        cart_snapshot: Optional[List[Dict[str, Any]]] = None,
    ):
        self.attempts = attempts
        self.order_number = order_number
        self.cart_snapshot = cart_snapshot or []
        super().__init__(
            f"Could not allocate a unique order number after {attempts} attempts (last tried {order_number})"
        )

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update(
            {"attempts": self.attempts, "order_number": self.order_number, "cart_snapshot": self.cart_snapshot}
        )
        return data


class PartialCheckoutFailure(StorefrontError):
    """Raised when persistence fails mid-checkout.

    The checkout transaction is rolled back, so the cart is left intact; the
    stage, attempted order number and cart snapshot are kept for manual
    reconciliation.
    """

    code = "partial_checkout_failure"
    http_status = 500

    def __init__(self, stage: str, order_number: Optional[str], cart_snapshot: List[Dict[str, Any]]):
        self.stage = stage
        self.order_number = order_number
        self.cart_snapshot = cart_snapshot
        super().__init__(f"Checkout failed after stage '{stage}' (order number {order_number})")

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({"stage": self.stage, "order_number": self.order_number, "cart_snapshot": self.cart_snapshot})
        return data
