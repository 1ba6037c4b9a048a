"""Flask application factory and bootstrap.

This module provides the create_app() factory function for initializing
the Flask application with all blueprints, middleware, and configuration.

Gunicorn entry point: ``bct_backend.flask_app:create_app()``.
"""
from __future__ import annotations
import logging
import sys

from flask import Flask, request
from flask_cors import CORS

from bct_backend.config import AppConfig, load_settings
from bct_backend.core.declaration_types import DeclarationTypeService
from bct_backend.database import build_engine, build_session_factory, init_db

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

CORS_ALLOWED_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]
CORS_EXPOSED_HEADERS = ["Authorization"]
CORS_MAX_AGE = 3600

# Reachable without a bearer token
PUBLIC_API_PREFIXES = ("/api/test/public/",)


def configure_logging(level: str = "INFO") -> None:
    """Install a single stdout handler on the root logger (replacing earlier ones)."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        stream=sys.stdout,
        force=True,
    )


# ─────────────────────────────────────────────────────────────────────────────
# Application Factory
# ─────────────────────────────────────────────────────────────────────────────
def create_app(cfg: AppConfig | None = None, admin_service=None) -> Flask:
    """Create and configure Flask application.

    Args:
        cfg: Settings to use instead of reading the environment
        admin_service: Pre-built KeycloakAdminService; when omitted it is
            built on the first admin request
    """
    if cfg is None:
        cfg = load_settings()

    configure_logging(cfg.log_level)

    app = Flask(__name__)
    app.config["APP_CONFIG"] = cfg
    app.json.sort_keys = False

    # Local database (users mirror + declaration types)
    from bct_backend.api.helpers import services

    engine = build_engine(cfg.database_url)
    init_db(engine)
    session_factory = build_session_factory(engine)
    app.extensions[services.ENGINE_KEY] = engine
    app.extensions[services.SESSION_FACTORY_KEY] = session_factory
    app.extensions[services.DECLARATION_SERVICE_KEY] = DeclarationTypeService(session_factory)
    if admin_service is not None:
        app.extensions[services.ADMIN_SERVICE_KEY] = admin_service

    # Register blueprints
    from bct_backend.api import admin, declaration_types, errors, health, probes

    app.register_blueprint(health.bp)
    app.register_blueprint(admin.bp, url_prefix="/api/admin")
    app.register_blueprint(declaration_types.bp, url_prefix="/api/admin/declaration-types")
    app.register_blueprint(probes.bp, url_prefix="/api/test")

    # Register error handlers
    errors.register_error_handlers(app)

    # Register middleware
    _register_middleware(app, cfg)

    mode_label = "DEMO" if cfg.demo_mode else "PRODUCTION"
    print(f"[flask_app] Mode={mode_label}")
    print(f"[flask_app] Admin API registered at /api/admin (realm={cfg.keycloak_realm})")

    if cfg.demo_mode:
        print("[flask_app] WARNING: Demo mode active - do not deploy with demo credentials")

    return app


def _register_middleware(app: Flask, cfg: AppConfig):
    """Register CORS and authentication hooks."""
    from bct_backend.api.decorators import authenticate_request

    CORS(
        app,
        origins=list(cfg.cors_allowed_origins),
        methods=CORS_ALLOWED_METHODS,
        allow_headers="*",
        expose_headers=CORS_EXPOSED_HEADERS,
        supports_credentials=True,
        max_age=CORS_MAX_AGE,
    )

    @app.before_request
    def answer_preflight():
        """CORS preflight never carries credentials; answer it before auth."""
        if request.method == "OPTIONS" and request.headers.get("Access-Control-Request-Method"):
            return app.make_default_options_response()
        return None

    @app.before_request
    def require_token_for_api():
        """Every /api/** route needs a bearer token unless listed as public."""
        if not request.path.startswith("/api/"):
            return None
        if request.path.startswith(PUBLIC_API_PREFIXES):
            return None
        return authenticate_request()


if __name__ == "__main__":
    create_app().run(host="0.0.0.0", port=8081, debug=True)
