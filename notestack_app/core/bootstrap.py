"""Bootstrap helpers for configuring the Flask application."""

from __future__ import annotations

import logging

from flask import Flask

from .error_handlers import register_error_handlers
from .extensions import csrf_protect, db, login_manager
from .logging_config import setup_logging
from .module_registry import register_default_modules


def configure_logging(app: Flask) -> None:
    """Configure application logging if no handlers are present."""

    if not app.testing:
        setup_logging(
            app,
            log_level=app.config.get("LOG_LEVEL", "INFO"),
            log_dir=app.config.get("LOG_DIR"),
            json_format=app.config.get("LOG_JSON", False),
        )

    if app.logger.handlers:
        return

    app.logger.setLevel(logging.DEBUG if app.debug else logging.INFO)
    handler = logging.StreamHandler()
    formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    handler.setFormatter(formatter)
    app.logger.addHandler(handler)
    app.logger.propagate = False
    app.logger.info("Flask app logger configured successfully.")


def register_extensions(app: Flask) -> None:
    """Initialize shared extensions with the Flask app instance."""

    db.init_app(app)
    login_manager.init_app(app)
    csrf_protect.init_app(app)


def register_user_loader(app: Flask) -> None:
    """Wire Flask-Login to the auth module's user model."""

    @login_manager.user_loader
    def load_user(user_id: str):
        from ..modules.auth.models import User

        return db.session.get(User, int(user_id))


def register_blueprints(app: Flask) -> None:
    """Register all default blueprints with the app."""

    register_default_modules(app)


def register_errors(app: Flask) -> None:
    register_error_handlers(app)


def initialize_database(app: Flask) -> None:
    """Create database tables for every registered module."""

    db.create_all()
    app.logger.info("Database tables ensured at %s", app.config.get("SQLALCHEMY_DATABASE_URI"))
