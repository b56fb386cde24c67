"""Motorcycle shop storefront Flask application."""

from __future__ import annotations

from typing import Optional

from flask import Flask, jsonify
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from config import ShopConfig
from common.db.session import build_engine, init_db, make_session_factory
from common.services import logging as shop_logging
from common.services.cart_service import CartService
from common.services.catalog_service import CatalogService
from common.services.category_service import CategoryService
from common.services.content_service import ContentService
from common.services.errors import ShopError
from common.services.logging import log_event
from common.services.order_service import OrderService
from routes import admin, api


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(ShopError)
    def handle_shop_error(exc: ShopError):
        return jsonify(exc.to_dict()), exc.status_code

    @app.errorhandler(SQLAlchemyError)
    def handle_db_error(exc: SQLAlchemyError):
        log_event("error", "request.db_error", error=str(exc), error_type=type(exc).__name__)
        return jsonify({"error": "Đã xảy ra lỗi hệ thống, vui lòng thử lại sau"}), 500

    @app.errorhandler(Exception)
    def handle_unexpected_error(exc: Exception):
        if isinstance(exc, HTTPException):
            return exc
        log_event("error", "request.unhandled_error", error=str(exc), error_type=type(exc).__name__)
        return jsonify({"error": "Đã xảy ra lỗi hệ thống, vui lòng thử lại sau"}), 500


def create_app(config: Optional[ShopConfig] = None, session_factory=None) -> Flask:
    config = config or ShopConfig.load()
    shop_logging.set_level(config.app.log_level)

    app = Flask(__name__)
    app.config["SECRET_KEY"] = config.secret_key
    app.config["SHOP_CONFIG"] = config
    app.json.ensure_ascii = False

    if session_factory is None:
        engine = build_engine(config.app.database_url)
        init_db(engine)
        session_factory = make_session_factory(engine)

    components = {
        "cart_service": CartService(session_factory),
        "order_service": OrderService(session_factory, currency=config.app.currency),
        "category_service": CategoryService(session_factory, delete_policy=config.app.category_delete_policy),
        "catalog_service": CatalogService(session_factory),
        "content_service": ContentService(session_factory),
    }
    app.extensions["shop_components"] = components

    app.register_blueprint(admin.admin_bp)
    app.register_blueprint(api.api_bp)
    _register_error_handlers(app)

    @app.cli.command("init-db")
    def init_db_command():
        """Create all database tables."""
        init_db(build_engine(config.app.database_url))
        print(f"Database ready: {config.app.database_url}")

    return app


def main() -> None:
    app = create_app()
    app.run(host="0.0.0.0", port=5000, debug=False)


if __name__ == "__main__":
    main()
