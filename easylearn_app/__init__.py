"""Application factory for the EasyLearn backend."""

from __future__ import annotations

from flask import Flask

from .core.bootstrap import (
    configure_logging,
    initialize_database,
    register_blueprints,
    register_error_handlers,
    register_extensions,
    register_scheduled_jobs,
    register_user_loader,
)
from .core.config import Config
from .extensions import db

__all__ = ["create_app", "db"]


def create_app(config_class: type[Config] = Config) -> Flask:
    """Create and configure a Flask application instance."""

    app = Flask(__name__)
    app.config.from_object(config_class)
    config_class.init_app(app)

    configure_logging(app)
    register_extensions(app)
    register_user_loader(app)
    register_error_handlers(app)
    register_blueprints(app)

    with app.app_context():
        initialize_database(app)

    register_scheduled_jobs(app)

    return app
