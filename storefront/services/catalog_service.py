from decimal import Decimal
from typing import Dict, Optional, Tuple
import time
from uuid import uuid4
from sqlalchemy import or_
from ..db.session import get_session
from ..errors import CategoryNotFound, DuplicateEntry, ProductNotFound, ResourceInUse, VariantNotFound
from ..models.cart_item import CartItem
from ..models.category import Category
from ..models.order import OrderItem
from ..models.product import Product
from ..models.product_variant import ProductVariant
from ..models.wishlist_item import WishlistItem
from ..utils.pagination import normalize_paging
from ..utils.dto import to_category_dto, to_product_dto
from .logging import log_event


_PRODUCT_FIELDS = ("name", "description", "currency", "images", "stock_quantity", "featured", "is_active", "sort_order")
_VARIANT_FIELDS = ("variant_name", "stock_quantity", "attributes", "is_active")
_CATEGORY_FIELDS = ("name", "description", "sort_order", "is_active")


class CatalogService:
    """Catalog querying, unit-price resolution and catalog administration.

    Responsibilities:
    - List/search products with pagination and optional category filter
    - Get a single product with its active variants
    - Resolve the current unit price of a product or one of its variants
    - Create/update/delete categories, products and variants; every write
      clears the listing cache
    """

    _cache_ttl_seconds: int = 60
    _cache_max_entries: int = 256

    def __init__(self, session_factory=get_session, clock=time.time):
        self._session_factory = session_factory
        self._clock = clock
        # naive in-process cache: key -> (ts, result)
        self._cache: Dict[Tuple, Tuple[float, Dict]] = {}

    def _cache_get(self, key: Tuple, now: float) -> Optional[Dict]:
        cached = self._cache.get(key)
        if cached is None:
            return None
        if now - cached[0] > self._cache_ttl_seconds:
            del self._cache[key]
            return None
        return cached[1]

    def _cache_put(self, key: Tuple, now: float, result: Dict) -> None:
        expired = [k for k, (ts, _) in self._cache.items() if now - ts > self._cache_ttl_seconds]
        for k in expired:
            del self._cache[k]
        self._cache.pop(key, None)
        # dicts keep insertion order, so the first key is the oldest entry
        while len(self._cache) >= self._cache_max_entries:
            del self._cache[next(iter(self._cache))]
        self._cache[key] = (now, result)

    def invalidate_cache(self) -> None:
        self._cache.clear()

    def list_categories(self) -> list:
        with self._session_factory() as session:
            rows = (
                session.query(Category)
                .filter(Category.is_active.is_(True))
                .order_by(Category.sort_order, Category.name)
                .all()
            )
            return [to_category_dto(r) for r in rows]

    def list_products(
        self,
        *,
        query: Optional[str] = None,
        category: Optional[str] = None,
        featured: Optional[bool] = None,
        active_only: bool = True,
        page: int = 1,
        page_size: int = 20,
    ) -> Dict:
        """Return dict: { items: [ProductDTO], page, page_size, total }"""
        p, ps, offset = normalize_paging(page, page_size)
        cache_key = (query or "", category or "", featured, active_only, p, ps)
        now = self._clock()
        cached = self._cache_get(cache_key, now)
        if cached is not None:
            return cached

        with self._session_factory() as session:
            q = session.query(Product)
            if active_only:
                q = q.filter(Product.is_active.is_(True))
            if query:
                like = f"%{query}%"
                q = q.filter(
                    or_(
                        Product.name.ilike(like),
                        Product.description.ilike(like),
                        Product.sku.ilike(like),
                    )
                )
            if category:
                q = (
                    q.join(Category, Category.id == Product.category_id, isouter=True)
                    .filter(or_(Category.slug == category, Product.category_id == category))
                )
            if featured is not None:
                q = q.filter(Product.featured.is_(featured))
            total = q.count()
            rows = (
                q.order_by(Product.sort_order.desc(), Product.created_at.desc())
                .offset(offset)
                .limit(ps)
                .all()
            )
            result = {"items": [to_product_dto(r) for r in rows], "page": p, "page_size": ps, "total": total}
            self._cache_put(cache_key, now, result)
            return result

    def get_product(self, slug_or_id: str) -> Dict:
        """Return ProductDTO (with active variants) by slug or id."""
        with self._session_factory() as session:
            r = (
                session.query(Product)
                .filter(
                    or_(Product.slug == slug_or_id, Product.id == slug_or_id),
                    Product.is_active.is_(True),
                )
                .first()
            )
            if not r:
                raise ProductNotFound(slug_or_id)
            return to_product_dto(r, include_variants=True)

    def resolve_unit_price(self, product_id: str, variant_id: Optional[str] = None) -> Decimal:
        with self._session_factory() as session:
            product, variant = self.load_line_target(session, product_id, variant_id)
            return self.unit_price(product, variant)

    @staticmethod
    def load_line_target(session, product_id: str, variant_id: Optional[str] = None):
        """Fetch (product, variant) for a cart line; the variant must belong to the product."""
        product = session.get(Product, product_id)
        if product is None:
            raise ProductNotFound(product_id)
        variant = None
        if variant_id:
            variant = session.get(ProductVariant, variant_id)
            if variant is None or variant.product_id != product.id:
                raise VariantNotFound(variant_id, product_id)
        return product, variant

    @staticmethod
    def unit_price(product: Product, variant: Optional[ProductVariant] = None) -> Decimal:
        source = variant.price if variant is not None else product.base_price
        return Decimal(str(source))

    # --- administration ---

    @staticmethod
    def _ensure_unique(session, model, field: str, value: str, exclude_id: Optional[str] = None) -> None:
        q = session.query(model.id).filter(getattr(model, field) == value)
        if exclude_id:
            q = q.filter(model.id != exclude_id)
        if q.first() is not None:
            raise DuplicateEntry(field, value)

    @staticmethod
    def _ensure_category(session, category_id: Optional[str]) -> None:
        if category_id and session.get(Category, category_id) is None:
            raise CategoryNotFound(category_id)

    @staticmethod
    def _referenced(session, column, value) -> bool:
        return session.query(column).filter(column == value).first() is not None

    def _written(self, event: str, **fields) -> None:
        self.invalidate_cache()
        log_event("info", event, **fields)

    def create_category(
        self,
        *,
        name: str,
        slug: str,
        description: Optional[str] = None,
        parent_id: Optional[str] = None,
        sort_order: int = 0,
        is_active: bool = True,
    ) -> Dict:
        with self._session_factory() as session:
            self._ensure_unique(session, Category, "slug", slug)
            self._ensure_category(session, parent_id)
            row = Category(
                id=str(uuid4()),
                name=name.strip(),
                slug=slug,
                description=description,
                parent_id=parent_id or None,
                sort_order=int(sort_order or 0),
                is_active=bool(is_active),
            )
            session.add(row)
            session.flush()
            dto = to_category_dto(row)
        self._written("catalog.category_created", category_id=dto["id"], slug=slug)
        return dto

    def update_category(self, category_id: str, **changes) -> Dict:
        with self._session_factory() as session:
            row = session.get(Category, category_id)
            if row is None:
                raise CategoryNotFound(category_id)
            slug = changes.get("slug")
            if slug is not None and slug != row.slug:
                self._ensure_unique(session, Category, "slug", slug, exclude_id=row.id)
                row.slug = slug
            parent_id = changes.get("parent_id")
            if parent_id is not None:
                if parent_id == row.id:
                    raise ValueError("A category cannot be its own parent")
                self._ensure_category(session, parent_id)
                row.parent_id = parent_id
            for field in _CATEGORY_FIELDS:
                if changes.get(field) is not None:
                    setattr(row, field, changes[field])
            session.flush()
            dto = to_category_dto(row)
        self._written("catalog.category_updated", category_id=category_id)
        return dto

    def delete_category(self, category_id: str) -> None:
        with self._session_factory() as session:
            row = session.get(Category, category_id)
            if row is None:
                raise CategoryNotFound(category_id)
            if self._referenced(session, Category.parent_id, category_id):
                raise ResourceInUse("category", category_id, "has_children")
            if self._referenced(session, Product.category_id, category_id):
                raise ResourceInUse("category", category_id, "has_products")
            session.delete(row)
        self._written("catalog.category_deleted", category_id=category_id)

    def create_product(
        self,
        *,
        name: str,
        slug: str,
        sku: str,
        base_price,
        description: Optional[str] = None,
        currency: str = "INR",
        images=None,
        category_id: Optional[str] = None,
        stock_quantity: Optional[int] = None,
        featured: bool = False,
        is_active: bool = True,
        sort_order: int = 0,
    ) -> Dict:
        sku = sku.strip()
        if Decimal(str(base_price)) <= 0:
            raise ValueError("base_price must be greater than 0")
        with self._session_factory() as session:
            self._ensure_unique(session, Product, "slug", slug)
            self._ensure_unique(session, Product, "sku", sku)
            self._ensure_category(session, category_id)
            row = Product(
                id=str(uuid4()),
                name=name.strip(),
                slug=slug,
                sku=sku,
                base_price=Decimal(str(base_price)),
                description=description,
                currency=(currency or "INR").upper(),
                images=list(images or []),
                category_id=category_id or None,
                stock_quantity=stock_quantity,
                featured=bool(featured),
                is_active=bool(is_active),
                sort_order=int(sort_order or 0),
            )
            session.add(row)
            session.flush()
            dto = to_product_dto(row)
        self._written("catalog.product_created", product_id=dto["id"], sku=sku)
        return dto

    def update_product(self, product_id: str, **changes) -> Dict:
        with self._session_factory() as session:
            row = session.get(Product, product_id)
            if row is None:
                raise ProductNotFound(product_id)
            for field in ("slug", "sku"):
                value = changes.get(field)
                if value is not None and value != getattr(row, field):
                    self._ensure_unique(session, Product, field, value, exclude_id=row.id)
                    setattr(row, field, value)
            if changes.get("category_id") is not None:
                self._ensure_category(session, changes["category_id"])
                row.category_id = changes["category_id"]
            if changes.get("base_price") is not None and Decimal(str(changes["base_price"])) <= 0:
                raise ValueError("base_price must be greater than 0")
            if changes.get("base_price") is not None:
                row.base_price = Decimal(str(changes["base_price"]))
            for field in _PRODUCT_FIELDS:
                if changes.get(field) is not None:
                    setattr(row, field, changes[field])
            session.flush()
            dto = to_product_dto(row)
        self._written("catalog.product_updated", product_id=product_id)
        return dto

    def delete_product(self, product_id: str) -> None:
        """Delete a product nobody references; variants must be removed first."""
        with self._session_factory() as session:
            row = session.get(Product, product_id)
            if row is None:
                raise ProductNotFound(product_id)
            checks = (
                (ProductVariant.product_id, "has_variants"),
                (CartItem.product_id, "in_cart"),
                (WishlistItem.product_id, "in_wishlist"),
                (OrderItem.product_id, "in_orders"),
            )
            for column, reason in checks:
                if self._referenced(session, column, product_id):
                    raise ResourceInUse("product", product_id, reason)
            session.delete(row)
        self._written("catalog.product_deleted", product_id=product_id)

    def create_variant(
        self,
        product_id: str,
        *,
        variant_name: str,
        sku: str,
        price,
        stock_quantity: Optional[int] = None,
        attributes=None,
        is_active: bool = True,
    ) -> Dict:
        sku = sku.strip()
        with self._session_factory() as session:
            if session.get(Product, product_id) is None:
                raise ProductNotFound(product_id)
            self._ensure_unique(session, ProductVariant, "sku", sku)
            row = ProductVariant(
                id=str(uuid4()),
                product_id=product_id,
                variant_name=variant_name.strip(),
                sku=sku,
                price=Decimal(str(price)),
                stock_quantity=stock_quantity,
                attributes=dict(attributes or {}),
                is_active=bool(is_active),
            )
            session.add(row)
            session.flush()
            dto = row.to_dict()
        self._written("catalog.variant_created", product_id=product_id, variant_id=dto["id"], sku=sku)
        return dto

    def update_variant(self, variant_id: str, **changes) -> Dict:
        with self._session_factory() as session:
            row = session.get(ProductVariant, variant_id)
            if row is None:
                raise VariantNotFound(variant_id)
            sku = changes.get("sku")
            if sku is not None and sku != row.sku:
                self._ensure_unique(session, ProductVariant, "sku", sku, exclude_id=row.id)
                row.sku = sku
            if changes.get("price") is not None:
                row.price = Decimal(str(changes["price"]))
            for field in _VARIANT_FIELDS:
                if changes.get(field) is not None:
                    setattr(row, field, changes[field])
            session.flush()
            dto = row.to_dict()
        self._written("catalog.variant_updated", variant_id=variant_id)
        return dto

    def delete_variant(self, variant_id: str) -> None:
        with self._session_factory() as session:
            row = session.get(ProductVariant, variant_id)
            if row is None:
                raise VariantNotFound(variant_id)
            if self._referenced(session, CartItem.variant_id, variant_id):
                raise ResourceInUse("variant", variant_id, "in_cart")
            if self._referenced(session, OrderItem.variant_id, variant_id):
                raise ResourceInUse("variant", variant_id, "in_orders")
            session.delete(row)
        self._written("catalog.variant_deleted", variant_id=variant_id)
