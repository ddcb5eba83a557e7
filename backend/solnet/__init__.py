# backend/solnet/__init__.py
from flask import Flask, request

from .config import Config
from .extensions import db, migrate


def create_app(config_overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.users import users_bp, workers_bp, roles_bp
    from .routes.locations import locations_bp
    from .routes.customers import customers_bp
    from .routes.catalog import catalog_bp
    from .routes.devices import devices_bp
    from .routes.public import public_bp
    from .routes.inventory import inventory_bp, accessories_bp
    from .routes.purchasing import suppliers_bp, purchase_orders_bp
    from .routes.search import search_bp
    from .routes.sales import sales_bp
    from .routes.appointments import appointments_bp
    from .routes.finance import expenses_bp, expense_categories_bp, budgets_bp
    from .routes.loan_invoices import loan_invoices_bp
    from .routes.notifications import notifications_bp
    from .routes.sms import sms_bp, sms_queue_bp
    from .routes.sms_campaigns import sms_campaigns_bp, recipient_groups_bp
    from .routes.settings import settings_bp, business_profile_bp
    from .routes.dashboard import dashboard_bp, analytics_bp
    from .routes.import_export import import_export_bp

    for bp in (
        system_bp,
        auth_bp,
        users_bp,
        workers_bp,
        roles_bp,
        locations_bp,
        customers_bp,
        catalog_bp,
        devices_bp,
        public_bp,
        inventory_bp,
        accessories_bp,
        suppliers_bp,
        purchase_orders_bp,
        search_bp,
        sales_bp,
        appointments_bp,
        expenses_bp,
        expense_categories_bp,
        budgets_bp,
        loan_invoices_bp,
        notifications_bp,
        sms_bp,
        sms_queue_bp,
        sms_campaigns_bp,
        recipient_groups_bp,
        settings_bp,
        business_profile_bp,
        dashboard_bp,
        analytics_bp,
        import_export_bp,
    ):
        app.register_blueprint(bp)

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin in set(app.config.get("CORS_ALLOWED_ORIGINS") or ()):
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
