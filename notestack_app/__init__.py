"""Application factory for the Notestack review engine."""

from __future__ import annotations

from flask import Flask

from .core.config import Config
from .core.bootstrap import (
    configure_logging,
    initialize_database,
    register_blueprints,
    register_errors,
    register_extensions,
    register_user_loader,
)
from .core.extensions import db

__all__ = ["create_app", "db"]


def create_app(config_class: type[Config] = Config) -> Flask:
    """Create and configure a Flask application instance."""

    app = Flask(__name__)
    app.config.from_object(config_class)
    config_class.init_app(app)

    configure_logging(app)
    register_extensions(app)
    register_user_loader(app)
    register_errors(app)
    register_blueprints(app)

    with app.app_context():
        initialize_database(app)

    return app
