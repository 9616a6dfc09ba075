from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Optional


CENT = Decimal("0.01")


def money(value: Any) -> float:
    """Display value: two decimals, float for JSON."""
    return float(Decimal(str(value or 0)).quantize(CENT, rounding=ROUND_HALF_UP))


def _iso(value) -> Optional[str]:
    return value.isoformat() if value is not None else None


def to_product_dto(row: Any, include_variants: bool = False) -> Dict:
    dto = {
        "id": getattr(row, "id", None),
        "slug": getattr(row, "slug", None),
        "sku": getattr(row, "sku", None),
        "name": getattr(row, "name", None),
        "description": getattr(row, "description", None),
        "base_price": money(getattr(row, "base_price", 0)),
        "currency": getattr(row, "currency", None),
        "images": getattr(row, "images", None) or [],
        "category_id": getattr(row, "category_id", None),
        "stock_quantity": getattr(row, "stock_quantity", None),
        "featured": bool(getattr(row, "featured", False)),
        "is_active": bool(getattr(row, "is_active", True)),
    }
    if include_variants:
        dto["variants"] = [v.to_dict() for v in (row.variants or []) if v.is_active]
    return dto


def to_category_dto(row: Any) -> Dict:
    return {
        "id": row.id,
        "name": row.name,
        "slug": row.slug,
        "description": row.description,
        "parent_id": row.parent_id,
        "sort_order": row.sort_order or 0,
        "is_active": bool(row.is_active),
    }


def to_discount_dto(row: Any) -> Dict:
    return {
        "id": row.id,
        "code": row.code,
        "kind": row.kind,
        "value": float(row.value),
        "min_order_amount": money(row.min_order_amount),
        "max_discount_amount": money(row.max_discount_amount) if row.max_discount_amount is not None else None,
        "usage_limit": row.usage_limit,
        "used_count": row.used_count or 0,
        "valid_from": _iso(row.valid_from),
        "valid_until": _iso(row.valid_until),
        "is_active": bool(row.is_active),
    }


def to_shipping_rule_dto(row: Any) -> Dict:
    return {
        "id": row.id,
        "pincode_start": row.pincode_start,
        "pincode_end": row.pincode_end,
        "state": row.state,
        "delivery_days": row.delivery_days,
        "shipping_charge": money(row.shipping_charge),
        "is_cod_available": bool(row.is_cod_available),
        "is_active": bool(row.is_active),
    }


def to_order_item_dto(row: Any) -> Dict:
    return {
        "id": row.id,
        "product_id": row.product_id,
        "variant_id": row.variant_id,
        "product_name": row.product_name,
        "variant_name": row.variant_name,
        "quantity": row.quantity,
        "unit_price": money(row.unit_price),
        "total_price": money(row.total_price),
    }


def to_order_dto(row: Any, include_items: bool = True) -> Dict:
    dto = {
        "id": row.id,
        "order_number": row.order_number,
        "user_id": row.user_id,
        "status": row.status,
        "payment_method": row.payment_method,
        "payment_status": row.payment_status,
        "subtotal": money(row.subtotal),
        "discount_amount": money(row.discount_amount),
        "discount_code": row.discount_code,
        "shipping_charge": money(row.shipping_charge),
        "tax_amount": money(row.tax_amount),
        "total_amount": money(row.total_amount),
        "currency": row.currency,
        "shipping_address": row.shipping_address,
        "billing_address": row.billing_address,
        "pincode": row.pincode,
        "customer_name": row.customer_name,
        "customer_email": row.customer_email,
        "customer_phone": row.customer_phone,
        "created_at": _iso(row.created_at),
    }
    if include_items:
        dto["items"] = [to_order_item_dto(it) for it in row.items]
    return dto
