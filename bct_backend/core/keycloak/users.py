"""Keycloak user management operations."""
from __future__ import annotations
import logging
from typing import Optional, List

from .client import KeycloakClient, path_segment
from .exceptions import (
    KeycloakError,
    KeycloakAPIError,
    UserNotFoundError,
    UserAlreadyExistsError,
)

logger = logging.getLogger(__name__)


class UserService:
    """Service for managing Keycloak users of a single realm."""

    def __init__(self, client: KeycloakClient, realm: str):
        """Initialize user service.

        Args:
            client: Authenticated Keycloak client
            realm: Realm the users live in
        """
        self.client = client
        self.realm = realm

    @property
    def _users_path(self) -> str:
        return f"/admin/realms/{path_segment(self.realm)}/users"

    def _user_path(self, user_id: str) -> str:
        return f"{self._users_path}/{path_segment(user_id)}"

    def list_users(self, first: Optional[int] = None, max_results: Optional[int] = None) -> List[dict]:
        """Return user representations, optionally paginated."""
        params = {}
        if first is not None:
            params["first"] = first
        if max_results is not None:
            params["max"] = max_results
        resp = self.client.get(self._users_path, params=params or None)
        return resp.json() or []

    def get_user(self, user_id: str) -> dict:
        """Return a single user representation.

        Raises:
            UserNotFoundError: If Keycloak has no user with this id
        """
        try:
            resp = self.client.get(self._user_path(user_id))
        except KeycloakAPIError as exc:
            if exc.status_code == 404:
                raise UserNotFoundError(f"User '{user_id}' not found in realm '{self.realm}'") from exc
            raise
        return resp.json()

    def search_users(self, search: str, first: int = 0, max_results: int = 100) -> List[dict]:
        """Full-text search over username, email, first and last name."""
        resp = self.client.get(
            self._users_path,
            params={"search": search, "first": first, "max": max_results},
        )
        return resp.json() or []

    def find_by_username(self, username: str, exact: bool = True) -> List[dict]:
        """Return users matching the username (exact match by default)."""
        params = {"username": username}
        if exact:
            params["exact"] = "true"
        resp = self.client.get(self._users_path, params=params)
        return resp.json() or []

    def find_by_email(self, email: str) -> List[dict]:
        """Return users whose email equals ``email`` ignoring case."""
        resp = self.client.get(self._users_path, params={"email": email, "first": 0, "max": 10})
        wanted = email.lower()
        return [user for user in resp.json() or [] if (user.get("email") or "").lower() == wanted]

    def create_user(self, payload: dict) -> str:
        """Create a user and return its id.

        Keycloak answers 201 with an empty body; the new id is the last
        segment of the Location header.

        Raises:
            UserAlreadyExistsError: On 409 (username or email taken)
            KeycloakAPIError: On any other non-201 status
            KeycloakError: If Keycloak omits the Location header
        """
        try:
            resp = self.client.post(self._users_path, json=payload)
        except KeycloakAPIError as exc:
            logger.error("Keycloak returned status %s: %s", exc.status_code, exc.message)
            if exc.status_code == 409:
                raise UserAlreadyExistsError(
                    f"Failed to create user in Keycloak (Status 409): {exc.message}"
                ) from exc
            raise

        if resp.status_code != 201:
            raise KeycloakAPIError(
                resp.status_code,
                f"Failed to create user in Keycloak (Status {resp.status_code}): {resp.text}",
                self._users_path,
            )

        location = resp.headers.get("Location")
        if not location:
            raise KeycloakError("No Location header in Keycloak response")

        return location.rstrip("/").rsplit("/", 1)[-1]

    def update_user(self, user_id: str, representation: dict) -> None:
        self.client.put(self._user_path(user_id), json=representation)

    def delete_user(self, user_id: str) -> None:
        try:
            self.client.delete(self._user_path(user_id))
        except KeycloakAPIError as exc:
            if exc.status_code == 404:
                raise UserNotFoundError(f"User '{user_id}' not found in realm '{self.realm}'") from exc
            raise

    def reset_password(self, user_id: str, password: str, temporary: bool = False) -> None:
        """Set the user's password credential."""
        self.client.put(
            f"{self._user_path(user_id)}/reset-password",
            json={"type": "password", "value": password, "temporary": temporary},
        )

    def execute_actions_email(self, user_id: str, actions: List[str]) -> None:
        """Ask Keycloak to e-mail the user a link for the given required actions."""
        self.client.put(f"{self._user_path(user_id)}/execute-actions-email", json=list(actions))
