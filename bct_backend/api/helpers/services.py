"""
Service accessors for route handlers.

The Keycloak admin client authenticates on construction, so the admin service
is built on the first request that needs it rather than at startup. A
pre-built service (tests, scripts) can be handed to ``create_app``.
"""
import logging
import threading

from flask import current_app

from bct_backend.core.admin_service import KeycloakAdminService
from bct_backend.core.declaration_types import DeclarationTypeService
from bct_backend.core.keycloak import RoleService, UserService, create_client_from_config

logger = logging.getLogger(__name__)

ADMIN_SERVICE_KEY = "bct_admin_service"
DECLARATION_SERVICE_KEY = "bct_declaration_types"
SESSION_FACTORY_KEY = "bct_session_factory"
ENGINE_KEY = "bct_db_engine"

_build_lock = threading.Lock()


def build_admin_service(cfg, session_factory) -> KeycloakAdminService:
    """Authenticate against Keycloak and wire the admin service."""
    client = create_client_from_config(cfg)
    return KeycloakAdminService(
        UserService(client, cfg.keycloak_realm),
        RoleService(client, cfg.keycloak_realm),
        session_factory,
        role_prefix=cfg.role_prefix,
    )


def get_admin_service() -> KeycloakAdminService:
    extensions = current_app.extensions
    service = extensions.get(ADMIN_SERVICE_KEY)
    if service is None:
        with _build_lock:
            service = extensions.get(ADMIN_SERVICE_KEY)
            if service is None:
                logger.info("Building Keycloak admin service")
                service = build_admin_service(
                    current_app.config["APP_CONFIG"],
                    extensions[SESSION_FACTORY_KEY],
                )
                extensions[ADMIN_SERVICE_KEY] = service
    return service


def get_declaration_type_service() -> DeclarationTypeService:
    return current_app.extensions[DECLARATION_SERVICE_KEY]
