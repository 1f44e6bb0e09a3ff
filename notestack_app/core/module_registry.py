"""Utilities for declaratively registering application modules.

The registry describes each blueprint-backed module with metadata so that
module discovery and registration can be automated.
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
    attribute: str = "blueprint"
    url_prefix: Optional[str] = None
    version: str = "1.0"

    def load_module(self):
        return import_string(self.import_path)

    def load_blueprint(self) -> Blueprint:
        """Import and return the blueprint described by this definition."""

        module = self.load_module()
        blueprint = getattr(module, self.attribute, None)
        if not isinstance(blueprint, Blueprint):
            raise TypeError(
                "Expected attribute '%s' in '%s' to be a Flask Blueprint, got %r instead"
                % (self.attribute, self.import_path, type(blueprint))
            )
        return blueprint


def register_modules(app: Flask, modules: Sequence[ModuleDefinition]) -> None:
    """Run each module's ``setup_module`` hook and register its blueprint."""

    for module in modules:
        package = module.load_module()
        setup = getattr(package, "setup_module", None)
        if setup is not None:
            setup(app)
        blueprint = module.load_blueprint()
        app.register_blueprint(blueprint, url_prefix=module.url_prefix)
        app.logger.debug(
            "Registered module %s (version %s) at prefix %s",
            module.import_path,
            module.version,
            module.url_prefix or "<root>",
        )


def register_default_modules(app: Flask) -> None:
    """Convenience helper that registers the built-in Notestack modules."""

    register_modules(app, DEFAULT_MODULES)


DEFAULT_MODULES: Iterable[ModuleDefinition] = (
    ModuleDefinition("notestack_app.modules.auth", "auth_bp", url_prefix="/auth", version="1.0"),
    ModuleDefinition("notestack_app.modules.content", "content_bp", url_prefix="/content", version="1.0"),
    ModuleDefinition("notestack_app.modules.learning_history", "blueprint", url_prefix="/history", version="1.0"),
    ModuleDefinition("notestack_app.modules.fsrs", "fsrs_bp", url_prefix="/api/cards", version="2.0"),
    ModuleDefinition("notestack_app.modules.stats", "stats_bp", url_prefix="/api/stats", version="1.0"),
)
