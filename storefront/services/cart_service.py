from typing import Dict, List, Optional
from uuid import uuid4
from ..db.session import get_session
from ..errors import CartItemNotFound, InsufficientStock, ProductNotFound, VariantNotFound
from ..models.cart_item import CartItem
from ..models.product import Product
from ..utils.dto import money
from ..utils.validators import ensure_positive_int
from .catalog_service import CatalogService
from .logging import log_event
from .pricing import PricedLine, ZERO


def _check_stock(stock: Optional[int], wanted: int) -> None:
    if stock is not None and wanted > int(stock):
        raise InsufficientStock(wanted, int(stock))


class CartService:
    """Cart operations backed by DB."""

    def __init__(self, session_factory=get_session):
        self._session_factory = session_factory

    @staticmethod
    def priced_lines_in(session, user_id: str) -> List[PricedLine]:
        """Resolve every cart line of ``user_id`` to its current unit price."""
        items = (
            session.query(CartItem)
            .filter(CartItem.user_id == user_id)
            .order_by(CartItem.added_at, CartItem.id)
            .all()
        )
        lines = []
        for it in items:
            product, variant = CatalogService.load_line_target(session, it.product_id, it.variant_id)
            lines.append(
                PricedLine(
                    cart_item_id=it.id,
                    product_id=product.id,
                    variant_id=variant.id if variant is not None else None,
                    product_name=product.name,
                    variant_name=variant.variant_name if variant is not None else None,
                    quantity=it.quantity,
                    unit_price=CatalogService.unit_price(product, variant),
                )
            )
        return lines

    def get_cart(self, *, user_id: str) -> Dict:
        with self._session_factory() as session:
            lines = self.priced_lines_in(session, user_id)
            currency = "INR"
            if lines:
                first = session.get(Product, lines[0].product_id)
                currency = first.currency or currency
            subtotal = sum((line.line_total for line in lines), ZERO)
            return {
                "items": [line.to_dict() for line in lines],
                "item_count": sum(line.quantity for line in lines),
                "subtotal": money(subtotal),
                "currency": currency,
            }

    def add_item(self, *, user_id: str, product_id: str, variant_id: Optional[str] = None, quantity: int = 1) -> Dict:
        if not user_id:
            raise ValueError("user_id required")
        if not product_id:
            raise ValueError("product_id required")
        qnty = ensure_positive_int(quantity, "quantity")
        with self._session_factory() as session:
            prod, variant = CatalogService.load_line_target(session, product_id, variant_id)
            if not prod.is_active:
                raise ProductNotFound(product_id)
            if variant is not None and not variant.is_active:
                raise VariantNotFound(variant_id, product_id)
            stock = variant.stock_quantity if variant is not None else prod.stock_quantity
            _check_stock(stock, qnty)

            # Merge with an existing line for the same product + variant
            existing = (
                session.query(CartItem)
                .filter(
                    CartItem.user_id == user_id,
                    CartItem.product_id == product_id,
                    CartItem.variant_id == variant_id if variant_id else CartItem.variant_id.is_(None),
                )
                .first()
            )
            if existing:
                new_q = existing.quantity + qnty
                _check_stock(stock, new_q)
                existing.quantity = new_q
                item_id = existing.id
            else:
                item = CartItem(
                    id=str(uuid4()),
                    user_id=user_id,
                    product_id=product_id,
                    variant_id=variant_id or None,
                    quantity=qnty,
                )
                session.add(item)
                item_id = item.id
            session.flush()
            log_event("info", "cart.item_added", user_id=user_id, product_id=product_id, variant_id=variant_id, quantity=qnty)
            return {"status": "added", "item_id": item_id}

    def update_item(self, *, item_id: str, quantity: int) -> Dict:
        if not item_id:
            raise ValueError("item_id required")
        qnty = int(quantity)
        if qnty < 0:
            raise ValueError("quantity must be >= 0")
        with self._session_factory() as session:
            it = session.get(CartItem, item_id)
            if not it:
                raise CartItemNotFound(item_id)
            if qnty == 0:
                session.delete(it)
                return {"status": "removed", "item_id": item_id}
            prod, variant = CatalogService.load_line_target(session, it.product_id, it.variant_id)
            _check_stock(variant.stock_quantity if variant is not None else prod.stock_quantity, qnty)
            it.quantity = qnty
            session.flush()
            return {"status": "updated", "item_id": item_id}

    def remove_item(self, *, item_id: str) -> None:
        with self._session_factory() as session:
            it = session.get(CartItem, item_id)
            if not it:
                raise CartItemNotFound(item_id)
            session.delete(it)

    def clear(self, *, user_id: str) -> int:
        with self._session_factory() as session:
            removed = session.query(CartItem).filter(CartItem.user_id == user_id).delete(synchronize_session=False)
            log_event("info", "cart.cleared", user_id=user_id, items=removed)
            return removed
