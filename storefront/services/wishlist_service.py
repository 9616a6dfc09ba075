from typing import Dict, Tuple
from uuid import uuid4
from ..db.session import get_session
from ..errors import ProductNotFound, WishlistItemNotFound
from ..models.product import Product
from ..models.wishlist_item import WishlistItem
from ..utils.dto import to_product_dto
from .logging import log_event


class WishlistService:
    """每位使用者的收藏清單，一個商品只收藏一次。"""

    def __init__(self, session_factory=get_session):
        self._session_factory = session_factory

    @staticmethod
    def _to_dto(item: WishlistItem, product: Product) -> Dict:
        return {
            "id": item.id,
            "user_id": item.user_id,
            "product_id": item.product_id,
            "added_at": item.created_at.isoformat() if item.created_at is not None else None,
            "product": to_product_dto(product),
        }

    def list_items(self, *, user_id: str) -> Dict:
        if not user_id:
            raise ValueError("user_id required")
        with self._session_factory() as session:
            rows = (
                session.query(WishlistItem, Product)
                .join(Product, Product.id == WishlistItem.product_id)
                .filter(WishlistItem.user_id == user_id)
                .order_by(WishlistItem.created_at.desc(), WishlistItem.id)
                .all()
            )
            return {"items": [self._to_dto(item, product) for item, product in rows], "count": len(rows)}

    def add_item(self, *, user_id: str, product_id: str) -> Tuple[Dict, bool]:
        """Return (item, created); adding a product twice returns the existing entry."""
        if not user_id:
            raise ValueError("user_id required")
        with self._session_factory() as session:
            product = session.get(Product, product_id)
            if product is None or not product.is_active:
                raise ProductNotFound(product_id)
            existing = (
                session.query(WishlistItem)
                .filter(WishlistItem.user_id == user_id, WishlistItem.product_id == product_id)
                .first()
            )
            if existing is not None:
                return self._to_dto(existing, product), False
            item = WishlistItem(id=str(uuid4()), user_id=user_id, product_id=product_id)
            session.add(item)
            session.flush()
            session.refresh(item)
            dto = self._to_dto(item, product)
        log_event("info", "wishlist.added", user_id=user_id, product_id=product_id)
        return dto, True

    def remove_item(self, *, item_id: str) -> None:
        with self._session_factory() as session:
            item = session.get(WishlistItem, item_id)
            if item is None:
                raise WishlistItemNotFound(item_id)
            session.delete(item)

    def remove_product(self, *, user_id: str, product_id: str) -> None:
        with self._session_factory() as session:
            deleted = (
                session.query(WishlistItem)
                .filter(WishlistItem.user_id == user_id, WishlistItem.product_id == product_id)
                .delete(synchronize_session=False)
            )
            if not deleted:
                raise WishlistItemNotFound(f"{user_id}/{product_id}")
