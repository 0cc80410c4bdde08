# backend/bizops/__init__.py
import logging

from flask import Flask, request

from .config import Config
from .extensions import db, migrate, relay


def create_app(config_object=Config) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config_object)

    app.logger.setLevel(getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    relay.init_app(app)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    from .services.insight_service import InsightGenerator
    app.extensions.setdefault("insight_generator", InsightGenerator.from_config(app.config))

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.dashboard import dashboard_bp
    from .routes.products import products_bp
    from .routes.customers import customers_bp
    from .routes.vendors import vendors_bp
    from .routes.sales_orders import sales_orders_bp
    from .routes.purchase_orders import purchase_orders_bp
    from .routes.payments import payments_bp
    from .routes.insights import insights_bp
    from .routes.notifications import notifications_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(dashboard_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(customers_bp)
    app.register_blueprint(vendors_bp)
    app.register_blueprint(sales_orders_bp)
    app.register_blueprint(purchase_orders_bp)
    app.register_blueprint(payments_bp)
    app.register_blueprint(insights_bp)
    app.register_blueprint(notifications_bp)

    allowed_origins = {
        origin.strip()
        for origin in (app.config.get("CORS_ORIGINS") or "").split(",")
        if origin.strip()
    }

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Access-Control-Allow-Credentials"] = "true"
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
