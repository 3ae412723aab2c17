"""Utilities for declaratively registering application modules.

Each blueprint-backed module is described with metadata so that registration
stays a single table instead of a list of imports in the factory.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from flask import Blueprint, Flask
from werkzeug.utils import import_string


@dataclass(frozen=True)
class ModuleDefinition:
    """Describe how a blueprint-backed module is registered with the app."""

    import_path: str
    attribute: str
    url_prefix: Optional[str] = None
    version: str = "1.0"

    def load_blueprint(self) -> Blueprint:
        """Import and return the blueprint described by this definition."""

        module = import_string(self.import_path)
        blueprint = getattr(module, self.attribute, None)
        if not isinstance(blueprint, Blueprint):
            raise TypeError(
                "Expected attribute '%s' in '%s' to be a Flask Blueprint, got %r instead"
                % (self.attribute, self.import_path, type(blueprint))
            )
        return blueprint


def register_modules(app: Flask, modules: Sequence[ModuleDefinition]) -> None:
    """Register all modules in the provided iterable with the Flask app."""

    for module in modules:
        blueprint = module.load_blueprint()
        app.register_blueprint(blueprint, url_prefix=module.url_prefix)
        app.logger.debug(
            "Registered module %s (version %s) at prefix %s",
            module.import_path,
            module.version,
            module.url_prefix or "<root>",
        )


def register_default_modules(app: Flask) -> None:
    """Register the built-in EasyLearn modules."""

    register_modules(app, DEFAULT_MODULES)


DEFAULT_MODULES: Iterable[ModuleDefinition] = (
    ModuleDefinition("easylearn_app.modules.auth.routes", "auth_bp", url_prefix="/api/auth", version="1.0"),
    ModuleDefinition("easylearn_app.modules.rooms.routes", "rooms_bp", url_prefix="/api/rooms", version="1.0"),
    ModuleDefinition(
        "easylearn_app.modules.challenges.routes",
        "challenges_bp",
        url_prefix="/api/challenges",
        version="1.0",
    ),
    ModuleDefinition("easylearn_app.modules.quizzes.routes", "quizzes_bp", url_prefix="/api/quizzes", version="1.0"),
    ModuleDefinition(
        "easylearn_app.modules.evaluations.routes",
        "evaluations_bp",
        url_prefix="/api/evaluations",
        version="1.0",
    ),
    ModuleDefinition("easylearn_app.modules.stats.routes", "stats_bp", url_prefix="/api/stats", version="1.0"),
    ModuleDefinition(
        "easylearn_app.modules.summaries.routes",
        "summaries_bp",
        url_prefix="/api/session-summaries",
        version="1.0",
    ),
    ModuleDefinition("easylearn_app.modules.profiles.routes", "students_bp", url_prefix="/api/students", version="1.0"),
    ModuleDefinition(
        "easylearn_app.modules.profiles.routes",
        "professors_bp",
        url_prefix="/api/professors",
        version="1.0",
    ),
)
