"""Keycloak Admin API client library.

Architecture:
- client.py: HTTP client with authentication and auto-refresh
- users.py: User lifecycle operations (list, search, create, update, delete, credentials)
- roles.py: Realm roles and user role mappings
- exceptions.py: Typed exceptions for error handling

Usage:
    from bct_backend.core.keycloak import KeycloakClient, UserService

    client = KeycloakClient("http://keycloak:8080")
    client.authenticate_service_account("bct", "bct-admin", "secret")

    users = UserService(client, "bct")
    alice = users.find_by_username("alice")
"""
from .client import (
    KeycloakClient,
    create_client_from_config,
    path_segment,
    REQUEST_TIMEOUT,
)
from .exceptions import (
    KeycloakError,
    KeycloakAPIError,
    UserNotFoundError,
    UserAlreadyExistsError,
    RoleNotFoundError,
    InsufficientPermissionsError,
)
from .users import UserService
from .roles import RoleService, filter_prefixed

__all__ = [
    # Client
    "KeycloakClient",
    "create_client_from_config",
    "path_segment",
    "REQUEST_TIMEOUT",

    # Exceptions
    "KeycloakError",
    "KeycloakAPIError",
    "UserNotFoundError",
    "UserAlreadyExistsError",
    "RoleNotFoundError",
    "InsufficientPermissionsError",

    # Services
    "UserService",
    "RoleService",
    "filter_prefixed",
]
