"""管理後台 API 路由（商品目錄、折扣碼、運費規則、訂單、設定）。"""

from __future__ import annotations

import json
from datetime import datetime

from flask import Blueprint, current_app, jsonify, request, session

from storefront.config import ALLOWED_HOT_KEYS, refresh_non_sensitive, requires_restart
from storefront.schemas import (
    CategoryCreate,
    CategoryUpdate,
    DiscountCreate,
    DiscountUpdate,
    OrderStatusUpdate,
    ProductCreate,
    ProductUpdate,
    ShippingRuleCreate,
    ShippingRuleUpdate,
    VariantCreate,
    VariantUpdate,
)
from .errors import register_error_handlers


admin_bp = Blueprint("storefront_admin", __name__, url_prefix="/admin")
register_error_handlers(admin_bp)


def _components() -> dict:
    return current_app.extensions["storefront_components"]


def _config():
    return current_app.config["STOREFRONT_CONFIG"]


def _payload() -> dict:
    return request.get_json(silent=True) or {}


def _flag(name: str):
    raw = request.args.get(name)
    if raw is None:
        return None
    return raw.lower() in {"1", "true", "yes"}


def _date_arg(name: str):
    raw = (request.args.get(name) or "").strip()
    if not raw:
        return None
    try:
        return datetime.fromisoformat(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an ISO 8601 date or datetime") from exc


def _changes(model, payload: dict) -> dict:
    changes = model.model_validate(payload).model_dump(exclude_none=True)
    if not changes:
        raise ValueError("No fields to update")
    return changes


def _is_authenticated() -> bool:
    return bool(session.get("storefront_admin"))


@admin_bp.before_request
def guard_private_routes():
    public = {"storefront_admin.login_submit"}
    if request.endpoint and request.endpoint not in public and not _is_authenticated():
        return jsonify({"error": "Admin login required", "code": "unauthorized"}), 401
    return None


@admin_bp.post("/login")
def login_submit():
    payload = _payload()
    username = str(payload.get("username", "")).strip()
    password = str(payload.get("password", "")).strip()
    cfg = _config()
    if username == cfg.admin_username and password == cfg.admin_password:
        session["storefront_admin"] = True
        return jsonify({"status": "ok"})
    return jsonify({"error": "Invalid credentials", "code": "unauthorized"}), 401


@admin_bp.post("/logout")
def logout():
    session.pop("storefront_admin", None)
    return jsonify({"status": "ok"})


# --- catalog ---

@admin_bp.get("/categories")
def list_categories():
    return jsonify({"categories": _components()["catalog"].list_categories()})


@admin_bp.post("/categories")
def create_category():
    body = CategoryCreate.model_validate(_payload())
    return jsonify(_components()["catalog"].create_category(**body.model_dump())), 201


@admin_bp.put("/categories/<category_id>")
def update_category(category_id: str):
    changes = _changes(CategoryUpdate, _payload())
    return jsonify(_components()["catalog"].update_category(category_id, **changes))


@admin_bp.delete("/categories/<category_id>")
def delete_category(category_id: str):
    _components()["catalog"].delete_category(category_id)
    return jsonify({"success": True})


@admin_bp.get("/products")
def list_products():
    result = _components()["catalog"].list_products(
        query=request.args.get("search"),
        category=request.args.get("category"),
        featured=_flag("featured"),
        active_only=False,
        page=request.args.get("page", 1, type=int),
        page_size=request.args.get("page_size", 20, type=int),
    )
    return jsonify(result)


@admin_bp.post("/products")
def create_product():
    body = ProductCreate.model_validate(_payload())
    return jsonify(_components()["catalog"].create_product(**body.model_dump())), 201


@admin_bp.put("/products/<product_id>")
def update_product(product_id: str):
    changes = _changes(ProductUpdate, _payload())
    return jsonify(_components()["catalog"].update_product(product_id, **changes))


@admin_bp.delete("/products/<product_id>")
def delete_product(product_id: str):
    _components()["catalog"].delete_product(product_id)
    return jsonify({"success": True})


@admin_bp.post("/products/<product_id>/variants")
def create_variant(product_id: str):
    body = VariantCreate.model_validate(_payload())
    return jsonify(_components()["catalog"].create_variant(product_id, **body.model_dump())), 201


@admin_bp.put("/variants/<variant_id>")
def update_variant(variant_id: str):
    changes = _changes(VariantUpdate, _payload())
    return jsonify(_components()["catalog"].update_variant(variant_id, **changes))


@admin_bp.delete("/variants/<variant_id>")
def delete_variant(variant_id: str):
    _components()["catalog"].delete_variant(variant_id)
    return jsonify({"success": True})


# --- discounts ---

@admin_bp.get("/discounts")
def list_discounts():
    items = _components()["discounts"].list_discounts(search=request.args.get("search"), active=_flag("active"))
    return jsonify({"discounts": items})


@admin_bp.post("/discounts")
def create_discount():
    body = DiscountCreate.model_validate(_payload())
    return jsonify(_components()["discounts"].create_discount(**body.model_dump())), 201


@admin_bp.get("/discounts/<key>")
def get_discount(key: str):
    return jsonify(_components()["discounts"].get_discount(key))


@admin_bp.put("/discounts/<discount_id>")
def update_discount(discount_id: str):
    body = DiscountUpdate.model_validate(_payload())
    changes = body.model_dump(exclude_none=True)
    if not changes:
        raise ValueError("No fields to update")
    return jsonify(_components()["discounts"].update_discount(discount_id, **changes))


@admin_bp.delete("/discounts/<discount_id>")
def delete_discount(discount_id: str):
    _components()["discounts"].delete_discount(discount_id)
    return jsonify({"success": True})


# --- shipping rules ---

@admin_bp.get("/shipping-rules")
def list_shipping_rules():
    rules = _components()["shipping"].list_rules(
        active=_flag("active"),
        state=request.args.get("state"),
        cod=_flag("cod"),
        pincode=request.args.get("pincode"),
    )
    return jsonify({"shipping_rules": rules})


@admin_bp.post("/shipping-rules")
def create_shipping_rule():
    body = ShippingRuleCreate.model_validate(_payload())
    return jsonify(_components()["shipping"].create_rule(**body.model_dump())), 201


@admin_bp.put("/shipping-rules/<rule_id>")
def update_shipping_rule(rule_id: str):
    body = ShippingRuleUpdate.model_validate(_payload())
    changes = body.model_dump(exclude_none=True)
    if not changes:
        raise ValueError("No fields to update")
    return jsonify(_components()["shipping"].update_rule(rule_id, **changes))


@admin_bp.delete("/shipping-rules/<rule_id>")
def delete_shipping_rule(rule_id: str):
    _components()["shipping"].delete_rule(rule_id)
    return jsonify({"success": True})


# --- orders ---

@admin_bp.get("/orders")
def list_orders():
    result = _components()["orders"].list_orders(
        user_id=request.args.get("user_id"),
        status=request.args.get("status"),
        payment_status=request.args.get("payment_status"),
        search=request.args.get("search"),
        start=_date_arg("start_date"),
        end=_date_arg("end_date"),
        page=request.args.get("page", 1, type=int),
        page_size=request.args.get("page_size", 20, type=int),
    )
    return jsonify(result)


@admin_bp.patch("/orders/<key>")
def update_order(key: str):
    body = OrderStatusUpdate.model_validate(_payload())
    order = _components()["orders"].update_status(key, status=body.status, payment_status=body.payment_status)
    return jsonify(order)


@admin_bp.delete("/orders/<key>")
def delete_order(key: str):
    order = _components()["orders"].delete_order(key)
    return jsonify({"message": "Order deleted successfully", "order": order})


# --- settings ---

@admin_bp.get("/settings")
def get_settings():
    """取得當前可熱更新的設定"""
    app_config = current_app.config["APP_CONFIG"]
    return jsonify({"status": "ok", "settings": {"CURRENCY": app_config.currency, "TAX_RATE": str(app_config.tax_rate)}})


@admin_bp.post("/settings")
def update_settings():
    """更新設定；只有非敏感的鍵會立即生效"""
    settings = _payload().get("settings") or {}
    if not settings:
        raise ValueError("No settings provided")

    current = current_app.config["APP_CONFIG"]
    refreshed = refresh_non_sensitive(settings, current)
    current_app.config["APP_CONFIG"] = refreshed
    _components()["orders"].reconfigure(tax_rate=refreshed.tax_rate, currency=refreshed.currency)

    settings_file = _config().settings_file
    stored = json.loads(settings_file.read_text(encoding="utf-8")) if settings_file.exists() else {}
    stored.update({"CURRENCY": refreshed.currency, "TAX_RATE": str(refreshed.tax_rate)})
    settings_file.write_text(json.dumps(stored, indent=2, ensure_ascii=False), encoding="utf-8")

    ignored = sorted(k for k in settings if k not in ALLOWED_HOT_KEYS)
    return jsonify(
        {
            "status": "ok",
            "settings": {"CURRENCY": refreshed.currency, "TAX_RATE": str(refreshed.tax_rate)},
            "ignored": ignored,
            "requires_restart": requires_restart(ignored),
        }
    )
