from decimal import Decimal

import pytest

from storefront.errors import (
    CategoryNotFound,
    DuplicateEntry,
    ProductNotFound,
    ResourceInUse,
    VariantNotFound,
)
from storefront.services import CatalogService

from conftest import fill_cart


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def catalog_service(session_factory, clock):
    return CatalogService(session_factory, clock=clock)


def new_product(service, **overrides):
    data = {"name": "Canvas Tote", "slug": "canvas-tote", "sku": "TOTE-001", "base_price": Decimal("450")}
    data.update(overrides)
    return service.create_product(**data)


class TestListingCache:
    def test_repeated_listing_served_from_cache(self, catalog, catalog_service):
        first = catalog_service.list_products()
        assert catalog_service.list_products() is first
        assert first["total"] == 2

    def test_cache_size_is_capped(self, catalog, catalog_service):
        catalog_service._cache_max_entries = 5

        for i in range(12):
            catalog_service.list_products(query=f"search-{i}")

        assert len(catalog_service._cache) == 5
        assert ("search-11", "", None, True, 1, 20) in catalog_service._cache
        assert ("search-0", "", None, True, 1, 20) not in catalog_service._cache

    def test_expired_entries_dropped_on_next_write(self, catalog, catalog_service, clock):
        for i in range(4):
            catalog_service.list_products(query=f"search-{i}")

        clock.now += catalog_service._cache_ttl_seconds + 1
        catalog_service.list_products(query="fresh")

        assert list(catalog_service._cache) == [("fresh", "", None, True, 1, 20)]

    def test_expired_entry_is_recomputed(self, catalog, catalog_service, clock):
        first = catalog_service.list_products()
        clock.now += catalog_service._cache_ttl_seconds + 1

        second = catalog_service.list_products()

        assert second is not first
        assert second == first

    def test_catalog_writes_clear_cache(self, catalog, catalog_service):
        assert catalog_service.list_products()["total"] == 2

        created = new_product(catalog_service)
        assert catalog_service.list_products()["total"] == 3

        catalog_service.update_product(created["id"], is_active=False)
        assert catalog_service.list_products()["total"] == 2
        assert catalog_service.list_products(active_only=False)["total"] == 4


class TestCategories:
    def test_create_and_update(self, catalog, catalog_service):
        created = catalog_service.create_category(name="Kitchen", slug="kitchen", parent_id="cat-1")
        assert created["parent_id"] == "cat-1"

        updated = catalog_service.update_category(created["id"], name="Kitchenware", sort_order=2)
        assert (updated["name"], updated["sort_order"]) == ("Kitchenware", 2)

    def test_duplicate_slug_rejected(self, catalog, catalog_service):
        with pytest.raises(DuplicateEntry) as exc:
            catalog_service.create_category(name="Clothes", slug="apparel")
        assert exc.value.field == "slug"

    def test_parent_must_exist_and_differ(self, catalog, catalog_service):
        with pytest.raises(CategoryNotFound):
            catalog_service.create_category(name="Orphan", slug="orphan", parent_id="cat-missing")
        with pytest.raises(ValueError):
            catalog_service.update_category("cat-1", parent_id="cat-1")

    def test_delete_blocked_while_referenced(self, catalog, catalog_service):
        child = catalog_service.create_category(name="Tops", slug="tops", parent_id="cat-1")

        with pytest.raises(ResourceInUse) as exc:
            catalog_service.delete_category("cat-1")
        assert exc.value.reason == "has_children"

        catalog_service.delete_category(child["id"])
        with pytest.raises(ResourceInUse) as exc:
            catalog_service.delete_category("cat-1")
        assert exc.value.reason == "has_products"

    def test_delete_unknown(self, catalog_service):
        with pytest.raises(CategoryNotFound):
            catalog_service.delete_category("cat-missing")


class TestProducts:
    def test_create_product(self, catalog, catalog_service):
        created = new_product(catalog_service, category_id="cat-1", currency="inr")

        assert created["base_price"] == 450.0
        assert created["currency"] == "INR"
        assert created["stock_quantity"] is None
        assert catalog_service.get_product("canvas-tote")["id"] == created["id"]

    @pytest.mark.parametrize("field,value", [("slug", "classic-tee"), ("sku", "TEE-001")])
    def test_duplicate_slug_or_sku_rejected(self, catalog, catalog_service, field, value):
        with pytest.raises(DuplicateEntry) as exc:
            new_product(catalog_service, **{field: value})
        assert exc.value.field == field

    def test_update_to_taken_slug_rejected(self, catalog, catalog_service):
        with pytest.raises(DuplicateEntry):
            catalog_service.update_product("p-mug", slug="classic-tee")
        assert catalog_service.update_product("p-mug", slug="coffee-mug")["slug"] == "coffee-mug"

    def test_unknown_category_and_bad_price(self, catalog, catalog_service):
        with pytest.raises(CategoryNotFound):
            new_product(catalog_service, category_id="cat-missing")
        with pytest.raises(ValueError):
            new_product(catalog_service, base_price=Decimal("0"))

    def test_price_update_reaches_cart(self, catalog, catalog_service, cart_service):
        fill_cart(cart_service)

        catalog_service.update_product("p-tee", base_price=Decimal("550"))

        assert cart_service.get_cart(user_id="user-1")["subtotal"] == 1100.0

    def test_delete_unreferenced_product(self, catalog, catalog_service):
        created = new_product(catalog_service)

        catalog_service.delete_product(created["id"])

        with pytest.raises(ProductNotFound):
            catalog_service.get_product(created["id"])

    def test_delete_blocked_by_variants_and_cart(self, catalog, catalog_service, cart_service):
        with pytest.raises(ResourceInUse) as exc:
            catalog_service.delete_product("p-mug")
        assert exc.value.reason == "has_variants"

        fill_cart(cart_service)
        with pytest.raises(ResourceInUse) as exc:
            catalog_service.delete_product("p-tee")
        assert exc.value.reason == "in_cart"

    def test_delete_blocked_by_orders(
        self, catalog, shipping_rules, catalog_service, cart_service, order_service, make_request
    ):
        fill_cart(cart_service)
        order_service.place_order(make_request())

        with pytest.raises(ResourceInUse) as exc:
            catalog_service.delete_product("p-tee")
        assert exc.value.reason == "in_orders"


class TestVariants:
    def test_create_and_update_variant(self, catalog, catalog_service):
        created = catalog_service.create_variant(
            "p-mug", variant_name="Small", sku="MUG-001-S", price=Decimal("200"), attributes={"size": "S"}
        )
        assert created["attributes"] == {"size": "S"}
        assert {v["sku"] for v in catalog_service.get_product("p-mug")["variants"]} == {"MUG-001-L", "MUG-001-S"}

        updated = catalog_service.update_variant(created["id"], price=Decimal("220"), is_active=False)
        assert updated["price"] == 220.0
        assert [v["sku"] for v in catalog_service.get_product("p-mug")["variants"]] == ["MUG-001-L"]

    def test_duplicate_variant_sku(self, catalog, catalog_service):
        with pytest.raises(DuplicateEntry):
            catalog_service.create_variant("p-mug", variant_name="Large 2", sku="MUG-001-L", price=Decimal("310"))

    def test_variant_needs_existing_product(self, catalog_service):
        with pytest.raises(ProductNotFound):
            catalog_service.create_variant("p-missing", variant_name="X", sku="X-1", price=Decimal("1"))

    def test_delete_variant(self, catalog, catalog_service, cart_service):
        cart_service.add_item(user_id="user-1", product_id="p-mug", variant_id="v-mug-large", quantity=1)
        with pytest.raises(ResourceInUse) as exc:
            catalog_service.delete_variant("v-mug-large")
        assert exc.value.reason == "in_cart"

        cart_service.clear(user_id="user-1")
        catalog_service.delete_variant("v-mug-large")
        with pytest.raises(VariantNotFound):
            catalog_service.update_variant("v-mug-large", price=Decimal("1"))
        catalog_service.delete_product("p-mug")
