"""Flask application factory and bootstrap.

This module provides the create_app() factory function wiring settings, the
profile store, the identity provider client, both orchestrators, blueprints
and error handlers.
"""
from __future__ import annotations
import logging
from typing import Optional

from flask import Flask

from identity_facade.config import AppConfig, load_settings
from identity_facade.core.identity_provider import IdentityProviderClient
from identity_facade.core.login import LoginOrchestrator
from identity_facade.core.profile_store import ProfileStore, SqlAlchemyProfileStore
from identity_facade.core.registration import RegistrationOrchestrator


# ─────────────────────────────────────────────────────────────────────────────
# Application Factory
# ─────────────────────────────────────────────────────────────────────────────
def create_app(
    config: Optional[AppConfig] = None,
    *,
    identity_provider=None,
    profile_store: Optional[ProfileStore] = None,
) -> Flask:
    """Create and configure Flask application.

    Args:
        config: Settings (loaded from the environment when omitted)
        identity_provider: Replaces the HTTP IdentityProviderClient
        profile_store: Replaces the SQLAlchemy profile store
    """
    cfg = config or load_settings()

    app = Flask(__name__)
    app.config["APP_CONFIG"] = cfg
    _configure_logging(app, cfg)

    if profile_store is None:
        profile_store = SqlAlchemyProfileStore(cfg.profile_store_url)
    if identity_provider is None:
        identity_provider = IdentityProviderClient(cfg)

    app.extensions["identity_facade"] = {
        "profile_store": profile_store,
        "identity_provider": identity_provider,
        "registration": RegistrationOrchestrator(identity_provider, profile_store),
        "login": LoginOrchestrator(identity_provider, profile_store),
    }

    # Register blueprints
    from identity_facade.api import auth, errors, health

    app.register_blueprint(auth.bp, url_prefix="/auth")
    app.register_blueprint(health.bp)

    errors.register_error_handlers(app)

    print(f"[flask_app] Identity facade ready (idp={cfg.idp_base_url or 'UNSET'}, log_level={cfg.log_level})")
    return app


def _configure_logging(app: Flask, cfg: AppConfig) -> None:
    """Apply LOG_LEVEL to the package loggers and the Flask logger."""
    level = logging.getLevelName(cfg.log_level)
    if not isinstance(level, int):
        level = logging.INFO
    if not logging.getLogger().handlers:
        logging.basicConfig(format="%(asctime)s %(levelname)s [%(name)s] %(message)s")
    logging.getLogger("identity_facade").setLevel(level)
    app.logger.setLevel(level)
