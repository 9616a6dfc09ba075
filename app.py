"""Storefront Flask 應用：商品、購物車、結帳與後台 API。"""

from __future__ import annotations

from typing import Optional

from flask import Flask

from config import StorefrontConfig
from routes import admin, api
from storefront.config import AppConfig, load_env
from storefront.db.session import get_session, init_db
from storefront.services import CartService, CatalogService, DiscountService, OrderService, ShippingService, WishlistService


def create_app(
    config: Optional[StorefrontConfig] = None,
    app_config: Optional[AppConfig] = None,
    session_factory=None,
) -> Flask:
    config = config or StorefrontConfig.load()
    app_config = app_config or load_env()
    if session_factory is None:
        session_factory = get_session
        init_db()

    app = Flask(__name__)
    app.config["SECRET_KEY"] = config.secret_key
    app.config["STOREFRONT_CONFIG"] = config
    app.config["APP_CONFIG"] = app_config

    components = {
        "catalog": CatalogService(session_factory),
        "cart": CartService(session_factory),
        "shipping": ShippingService(session_factory),
        "discounts": DiscountService(session_factory),
        "wishlist": WishlistService(session_factory),
        "orders": OrderService(
            session_factory,
            tax_rate=app_config.tax_rate,
            currency=app_config.currency,
            max_attempts=app_config.order_number_attempts,
        ),
    }
    app.extensions["storefront_components"] = components

    app.register_blueprint(api.api_bp)
    app.register_blueprint(admin.admin_bp)

    return app


def main() -> None:
    app = create_app()
    app.run(host="0.0.0.0", port=5000, debug=False)


if __name__ == "__main__":
    main()
