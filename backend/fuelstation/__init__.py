# backend/fuelstation/__init__.py
import logging
import os

from flask import Flask, jsonify, request
from sqlalchemy.exc import OperationalError

from .config import Config
from .errors import StoreUnavailable, WorkflowError, error_response
from .extensions import db, migrate


MIGRATIONS_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "migrations")


def create_app(config_overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    # Overrides must land before db.init_app binds the engine
    if config_overrides:
        app.config.update(config_overrides)

    app.logger.setLevel(getattr(logging, str(app.config["LOG_LEVEL"]).upper(), logging.INFO))
    logging.getLogger("fuelstation").setLevel(app.logger.level)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db, directory=MIGRATIONS_DIR)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.discounts import discounts_bp
    from .routes.plate_requests import plate_requests_bp
    from .routes.handovers import handovers_bp
    from .routes.sales import sales_bp
    from .routes.cleaning import cleaning_bp
    from .routes.admin import admin_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(discounts_bp)
    app.register_blueprint(plate_requests_bp)
    app.register_blueprint(handovers_bp)
    app.register_blueprint(sales_bp)
    app.register_blueprint(cleaning_bp)
    app.register_blueprint(admin_bp)

    @app.errorhandler(WorkflowError)
    def handle_workflow_error(exc):
        return error_response(exc)

    @app.errorhandler(OperationalError)
    def handle_store_error(exc):
        # Anything the services did not translate themselves
        app.logger.warning("Database unavailable on %s %s: %s", request.method, request.path, exc)
        db.session.rollback()
        return error_response(StoreUnavailable())

    @app.errorhandler(500)
    def handle_internal_error(exc):
        # Flask has already logged the traceback via app.logger
        return jsonify({"error": "Internal server error"}), 500

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        allowed_origins = set(app.config.get("CORS_ALLOWED_ORIGINS") or [])
        if origin in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
