"""Bootstrap helpers for configuring the Flask application."""

from __future__ import annotations

import os

from flask import Flask

from ..extensions import db, login_manager, scheduler
from .error_handlers import error_response
from .error_handlers import register_error_handlers as _register_error_handlers
from .logging_config import setup_logging
from .module_registry import register_default_modules


def configure_logging(app: Flask) -> None:
    """Attach console and rotating file handlers to the package logger.

    Flask names ``app.logger`` after the import name, so the package logger and
    the app logger are the same object and module loggers propagate into it.
    """

    setup_logging(
        app,
        log_level=app.config.get("LOG_LEVEL", "INFO"),
        log_dir=app.config.get("LOG_DIR"),
        json_format=app.config.get("LOG_JSON", False),
    )
    app.logger.propagate = False
    app.logger.info("Flask app logger configured successfully.")


def register_extensions(app: Flask) -> None:
    """Initialize shared extensions with the Flask app instance."""

    from ..modules.rooms.services.video_provider import init_video_provider

    db.init_app(app)
    login_manager.init_app(app)
    init_video_provider(app)


def register_user_loader(app: Flask) -> None:
    """Wire Flask-Login to the users table and answer JSON 401s."""

    @login_manager.user_loader
    def load_user(user_id: str):
        from ..models import User

        user = db.session.get(User, int(user_id))
        if user is None or not user.is_active:
            return None
        return user

    @login_manager.unauthorized_handler
    def unauthorized():
        return error_response("Authentication required", "UNAUTHENTICATED", 401)


def register_error_handlers(app: Flask) -> None:
    """Render business errors as JSON."""

    _register_error_handlers(app)


def register_blueprints(app: Flask) -> None:
    """Register all default blueprints with the app."""

    register_default_modules(app)


def initialize_database(app: Flask) -> None:
    """Create database tables and connect module event listeners."""

    from .. import models  # noqa: F401  (registers every table on the metadata)
    from ..modules.summaries import events as summary_events  # noqa: F401

    db.create_all()
    app.logger.info("Database tables ensured for %s", app.config["SQLALCHEMY_DATABASE_URI"])


def register_scheduled_jobs(app: Flask) -> None:
    """Start APScheduler with the periodic credential sweeps."""

    if not app.config.get("SCHEDULER_ENABLED", True):
        app.logger.info("Scheduler disabled by configuration.")
        return

    if app.debug and os.environ.get("WERKZEUG_RUN_MAIN") != "true":
        return

    from apscheduler.schedulers import SchedulerAlreadyRunningError

    from ..modules.auth.tasks import sweep_expired_access_tokens
    from ..modules.rooms.tasks import cleanup_expired_provider_tokens

    interval = app.config.get("TOKEN_SWEEP_INTERVAL_MINUTES", 60)
    try:
        scheduler.init_app(app)
        if not scheduler.get_job("sweep_expired_access_tokens"):
            scheduler.add_job(
                id="sweep_expired_access_tokens",
                func=sweep_expired_access_tokens,
                trigger="interval",
                minutes=interval,
                replace_existing=True,
            )
        if not scheduler.get_job("cleanup_expired_provider_tokens"):
            scheduler.add_job(
                id="cleanup_expired_provider_tokens",
                func=cleanup_expired_provider_tokens,
                trigger="cron",
                minute=0,
                replace_existing=True,
            )
        if not scheduler.running:
            scheduler.start()
        app.logger.info("Registered credential sweep jobs (every %s minutes, hourly).", interval)
    except SchedulerAlreadyRunningError:
        app.logger.info("Scheduler already running, skipping re-initialisation.")
