# backend/posledger/__init__.py
from __future__ import annotations

import logging

from flask import Flask, request

from .config import Config
from .extensions import db


def create_app(test_config: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if test_config:
        app.config.update(test_config)

    app.logger.setLevel(getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO))

    db.init_app(app)

    # Import models so metadata is complete before create_all
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.session import session_bp
    from .routes.products import products_bp
    from .routes.customers import customers_bp
    from .routes.cart import cart_bp
    from .routes.transactions import transactions_bp
    from .routes.refunds import refunds_bp
    from .routes.reports import reports_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(session_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(customers_bp)
    app.register_blueprint(cart_bp)
    app.register_blueprint(transactions_bp)
    app.register_blueprint(refunds_bp)
    app.register_blueprint(reports_bp)

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin and origin in app.config.get("CORS_ALLOWED_ORIGINS", ()):
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
        return response

    # Storage is in-process; the schema is created with the app
    with app.app_context():
        db.create_all()
        if app.config.get("DEMO_SEED_ENABLED"):
            from .seed import seed_demo_data
            created = seed_demo_data()
            app.logger.info("Seeded demo data: %s", created)

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
