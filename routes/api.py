"""提供前台使用的 API 路由（商品、購物車、結帳、訂單）。"""

from __future__ import annotations

from typing import Any, Dict

from flask import Blueprint, current_app, jsonify, request

from storefront.schemas import CartItemAdd, CartItemUpdate, CheckoutRequest, DiscountCheck, WishlistAdd
from .errors import register_error_handlers


api_bp = Blueprint("storefront_api", __name__, url_prefix="/api")
register_error_handlers(api_bp)


def _components() -> Dict[str, Any]:
    return current_app.extensions["storefront_components"]


def _payload() -> Dict[str, Any]:
    return request.get_json(silent=True) or {}


def _require_user_id() -> str:
    user_id = (request.args.get("user_id") or "").strip()
    if not user_id:
        raise ValueError("user_id is required")
    return user_id


def _flag(name: str):
    raw = request.args.get(name)
    if raw is None:
        return None
    return raw.lower() in {"1", "true", "yes"}


@api_bp.get("/categories")
def list_categories():
    return jsonify({"categories": _components()["catalog"].list_categories()})


@api_bp.get("/products")
def list_products():
    result = _components()["catalog"].list_products(
        query=request.args.get("q"),
        category=request.args.get("category"),
        featured=_flag("featured"),
        page=request.args.get("page", 1, type=int),
        page_size=request.args.get("page_size", 20, type=int),
    )
    return jsonify(result)


@api_bp.get("/products/<slug>")
def get_product(slug: str):
    return jsonify(_components()["catalog"].get_product(slug))


@api_bp.get("/cart")
def get_cart():
    return jsonify(_components()["cart"].get_cart(user_id=_require_user_id()))


@api_bp.post("/cart")
def add_to_cart():
    body = CartItemAdd.model_validate(_payload())
    result = _components()["cart"].add_item(
        user_id=body.user_id,
        product_id=body.product_id,
        variant_id=body.variant_id,
        quantity=body.quantity,
    )
    return jsonify(result), 201


@api_bp.patch("/cart/<item_id>")
def update_cart_item(item_id: str):
    body = CartItemUpdate.model_validate(_payload())
    return jsonify(_components()["cart"].update_item(item_id=item_id, quantity=body.quantity))


@api_bp.delete("/cart/<item_id>")
def remove_cart_item(item_id: str):
    _components()["cart"].remove_item(item_id=item_id)
    return jsonify({"status": "removed", "item_id": item_id})


@api_bp.delete("/cart")
def clear_cart():
    removed = _components()["cart"].clear(user_id=_require_user_id())
    return jsonify({"status": "cleared", "removed": removed})


@api_bp.get("/shipping")
def shipping_quote():
    pincode = (request.args.get("pincode") or "").strip()
    if not pincode:
        raise ValueError("pincode is required")
    quote = _components()["shipping"].resolve(pincode)
    if quote is None:
        return jsonify({"error": "Delivery is not available for this pincode", "code": "no_shipping_coverage"}), 404
    return jsonify(quote.to_dict())


@api_bp.post("/discounts/validate")
def validate_discount():
    body = DiscountCheck.model_validate(_payload())
    result = _components()["discounts"].validate(body.code, body.subtotal)
    return jsonify(result.to_dict()), (200 if result.accepted else 400)


@api_bp.post("/checkout/preview")
def checkout_preview():
    body = CheckoutRequest.model_validate(_payload())
    return jsonify(_components()["orders"].preview(body))


@api_bp.post("/checkout")
def checkout():
    body = CheckoutRequest.model_validate(_payload())
    order = _components()["orders"].place_order(body)
    return jsonify(order), 201


@api_bp.get("/orders")
def list_orders():
    result = _components()["orders"].list_orders(
        user_id=_require_user_id(),
        status=request.args.get("status"),
        page=request.args.get("page", 1, type=int),
        page_size=request.args.get("page_size", 20, type=int),
    )
    return jsonify(result)


@api_bp.get("/orders/<order_number>")
def get_order(order_number: str):
    return jsonify(_components()["orders"].get_order(order_number))


@api_bp.get("/wishlist")
def get_wishlist():
    return jsonify(_components()["wishlist"].list_items(user_id=_require_user_id()))


@api_bp.post("/wishlist")
def add_to_wishlist():
    body = WishlistAdd.model_validate(_payload())
    item, created = _components()["wishlist"].add_item(user_id=body.user_id, product_id=body.product_id)
    return jsonify(item), (201 if created else 200)


@api_bp.delete("/wishlist")
def remove_from_wishlist():
    product_id = (request.args.get("product_id") or "").strip()
    if not product_id:
        raise ValueError("product_id is required")
    _components()["wishlist"].remove_product(user_id=_require_user_id(), product_id=product_id)
    return jsonify({"status": "removed", "product_id": product_id})


@api_bp.delete("/wishlist/<item_id>")
def remove_wishlist_item(item_id: str):
    _components()["wishlist"].remove_item(item_id=item_id)
    return jsonify({"status": "removed", "item_id": item_id})
