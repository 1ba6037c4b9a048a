"""Keycloak realm-role operations."""
from __future__ import annotations
import logging
from typing import Iterable, List

from .client import KeycloakClient, path_segment
from .exceptions import KeycloakAPIError, RoleNotFoundError

logger = logging.getLogger(__name__)


def filter_prefixed(roles: Iterable[dict], prefix: str) -> List[dict]:
    """Keep only application roles (name starts with ``prefix``).

    Keycloak's built-in realm roles (offline_access, uma_authorization,
    default-roles-<realm>) never carry the prefix.
    """
    return [role for role in roles if (role.get("name") or "").startswith(prefix)]


def _mapping_payload(roles: Iterable[dict]) -> List[dict]:
    return [{"id": role["id"], "name": role["name"]} for role in roles]


class RoleService:
    """Service for managing realm roles and user role mappings."""

    def __init__(self, client: KeycloakClient, realm: str):
        """Initialize role service.

        Args:
            client: Authenticated Keycloak client
            realm: Realm the roles live in
        """
        self.client = client
        self.realm = realm

    @property
    def _realm_path(self) -> str:
        return f"/admin/realms/{path_segment(self.realm)}"

    def list_realm_roles(self) -> List[dict]:
        resp = self.client.get(f"{self._realm_path}/roles")
        return resp.json() or []

    def get_realm_role(self, name: str) -> dict:
        """Look up a realm role by name.

        Raises:
            RoleNotFoundError: If the realm has no role with this name
        """
        try:
            resp = self.client.get(f"{self._realm_path}/roles/{path_segment(name)}")
        except KeycloakAPIError as exc:
            if exc.status_code == 404:
                raise RoleNotFoundError(f"Role '{name}' not found in realm '{self.realm}'") from exc
            raise
        return resp.json()

    def user_effective_realm_roles(self, user_id: str) -> List[dict]:
        """Direct and composite realm roles of a user."""
        resp = self.client.get(
            f"{self._realm_path}/users/{path_segment(user_id)}/role-mappings/realm/composite"
        )
        return resp.json() or []

    def add_realm_roles(self, user_id: str, roles: List[dict]) -> None:
        if not roles:
            return
        self.client.post(
            f"{self._realm_path}/users/{path_segment(user_id)}/role-mappings/realm",
            json=_mapping_payload(roles),
        )

    def remove_realm_roles(self, user_id: str, roles: List[dict]) -> None:
        if not roles:
            return
        self.client.delete(
            f"{self._realm_path}/users/{path_segment(user_id)}/role-mappings/realm",
            json=_mapping_payload(roles),
        )

    def role_user_members(self, name: str) -> List[dict]:
        """Users that hold the role directly.

        Raises:
            RoleNotFoundError: If the realm has no role with this name
        """
        try:
            resp = self.client.get(f"{self._realm_path}/roles/{path_segment(name)}/users")
        except KeycloakAPIError as exc:
            if exc.status_code == 404:
                raise RoleNotFoundError(f"Role '{name}' not found in realm '{self.realm}'") from exc
            raise
        return resp.json() or []
