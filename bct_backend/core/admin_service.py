"""
Admin service layer: Keycloak user and role management with local mirroring

Every operation is a call to the Keycloak Admin API. After each write the
affected user is re-read from Keycloak and upserted into the local ``users``
table, so the mirror always reflects Keycloak's state, never the request's.

Architecture:
    /api/admin/* ──> KeycloakAdminService ──> UserService / RoleService ──> Keycloak
                                         └──> UserRepository ──> local DB

Only roles whose name starts with the application prefix (``ROLE_``) are
surfaced or mirrored; Keycloak's built-in realm roles stay hidden.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from bct_backend.core.dto import CreateUserRequest, RoleDTO, UserDTO
from bct_backend.core.errors import SyncError
from bct_backend.core.keycloak import (
    KeycloakError,
    RoleNotFoundError,
    RoleService,
    UserService,
    filter_prefixed,
)
from bct_backend.core.validators import validate_create_user_request
from bct_backend.database import session_scope
from bct_backend.models import User
from bct_backend.repositories import UserRepository

logger = logging.getLogger(__name__)

SEARCH_PAGE_SIZE = 100
PASSWORD_RESET_ACTIONS = ["UPDATE_PASSWORD"]


@dataclass
class SyncReport:
    success: int = 0
    errors: int = 0
    failed_users: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"success": self.success, "errors": self.errors, "failedUsers": list(self.failed_users)}


class KeycloakAdminService:
    """User, role and mirror operations for one realm."""

    def __init__(
        self,
        user_service: UserService,
        role_service: RoleService,
        session_factory: sessionmaker,
        role_prefix: str = "ROLE_",
    ):
        self.users = user_service
        self.roles = role_service
        self.session_factory = session_factory
        self.role_prefix = role_prefix

    # ─────────────────────────────────────────────────────────────────────
    # Users
    # ─────────────────────────────────────────────────────────────────────

    def get_all_users(self) -> list[UserDTO]:
        return [self._to_user_dto(user) for user in self.users.list_users()]

    def get_user_by_id(self, user_id: str) -> UserDTO:
        return self._to_user_dto(self.users.get_user(user_id))

    def search_users(self, query: str) -> list[UserDTO]:
        """Search by username, email or name (first page of 100)."""
        found = self.users.search_users(query, first=0, max_results=SEARCH_PAGE_SIZE)
        return [self._to_user_dto(user) for user in found]

    def create_user(self, request: CreateUserRequest) -> str:
        """Create a user in Keycloak and mirror it locally.

        Only validation and the Keycloak create itself can fail the call.
        Password, role assignment and mirroring are best effort: the user
        exists in Keycloak at that point and the admin can fix the rest.

        Returns:
            The Keycloak id of the new user

        Raises:
            ValidationError: Invalid or duplicate username/email
            KeycloakError: Keycloak refused the create
        """
        validate_create_user_request(request, self.users)

        logger.info("Creating user in Keycloak: %s (%s)", request.username, request.email)
        user_id = self.users.create_user(request.to_keycloak())
        logger.info("User created in Keycloak with ID: %s", user_id)

        if request.password:
            try:
                self.users.reset_password(user_id, request.password, temporary=False)
                logger.info("Password set for user: %s", user_id)
            except KeycloakError as exc:
                logger.error("Failed to set password for %s: %s", user_id, exc)

        if request.roles:
            try:
                self.assign_roles(user_id, request.roles)
            except (KeycloakError, SyncError) as exc:
                logger.error("Failed to assign roles %s to %s: %s", request.roles, user_id, exc)

        try:
            self.sync_user(user_id)
        except SyncError as exc:
            logger.error("Failed to sync new user %s: %s", user_id, exc)

        return user_id

    def update_user(self, user_id: str, dto: UserDTO) -> None:
        """Overwrite email, names and enabled flag; username is immutable."""
        logger.info("Updating user in Keycloak: %s", user_id)
        representation = self.users.get_user(user_id)
        representation["email"] = dto.email
        representation["firstName"] = dto.first_name
        representation["lastName"] = dto.last_name
        representation["enabled"] = dto.enabled
        self.users.update_user(user_id, representation)

        self.sync_user(user_id)

    def delete_user(self, user_id: str) -> None:
        """Drop the mirror row first, then the Keycloak user."""
        logger.info("Deleting user: %s", user_id)
        with session_scope(self.session_factory) as session:
            if UserRepository(session).delete_by_keycloak_id(user_id):
                logger.info("User deleted from local mirror: %s", user_id)

        self.users.delete_user(user_id)
        logger.info("User deleted from Keycloak: %s", user_id)

    def toggle_user_status(self, user_id: str, enabled: bool) -> None:
        logger.info("Setting user status: %s -> %s", user_id, enabled)
        representation = self.users.get_user(user_id)
        representation["enabled"] = enabled
        self.users.update_user(user_id, representation)

        self.sync_user(user_id)

    def send_password_reset_email(self, user_id: str) -> None:
        self.users.execute_actions_email(user_id, PASSWORD_RESET_ACTIONS)

    # ─────────────────────────────────────────────────────────────────────
    # Roles
    # ─────────────────────────────────────────────────────────────────────

    def get_all_roles(self) -> list[RoleDTO]:
        roles = filter_prefixed(self.roles.list_realm_roles(), self.role_prefix)
        return [RoleDTO.from_keycloak(role) for role in roles]

    def get_user_roles(self, user_id: str) -> list[RoleDTO]:
        roles = filter_prefixed(self.roles.user_effective_realm_roles(user_id), self.role_prefix)
        return [RoleDTO.from_keycloak(role) for role in roles]

    def assign_roles(self, user_id: str, role_names: Iterable[str]) -> None:
        """Grant realm roles; names Keycloak does not know are skipped."""
        role_names = list(role_names)
        logger.info("Assigning roles to user %s: %s", user_id, role_names)
        resolved = self._resolve_roles(role_names)
        if resolved:
            self.roles.add_realm_roles(user_id, resolved)
            logger.info("Roles assigned in Keycloak: %s", [role["name"] for role in resolved])

        self.sync_user(user_id)

    def remove_roles(self, user_id: str, role_names: Iterable[str]) -> None:
        """Revoke realm roles; names Keycloak does not know are skipped."""
        role_names = list(role_names)
        logger.info("Removing roles from user %s: %s", user_id, role_names)
        resolved = self._resolve_roles(role_names)
        if resolved:
            self.roles.remove_realm_roles(user_id, resolved)
            logger.info("Roles removed from Keycloak: %s", [role["name"] for role in resolved])

        self.sync_user(user_id)

    def get_users_by_role(self, role_name: str) -> list[UserDTO]:
        return [self._to_user_dto(user) for user in self.roles.role_user_members(role_name)]

    # ─────────────────────────────────────────────────────────────────────
    # Local mirror
    # ─────────────────────────────────────────────────────────────────────

    def get_local_user(self, keycloak_id: str) -> Optional[User]:
        with session_scope(self.session_factory) as session:
            return UserRepository(session).find_by_keycloak_id(keycloak_id)

    def get_all_local_users(self) -> list[User]:
        with session_scope(self.session_factory) as session:
            return UserRepository(session).find_all()

    def sync_user(self, keycloak_id: str) -> User:
        """Upsert the mirror row for one user from current Keycloak state.

        Raises:
            SyncError: If Keycloak or the database call fails
        """
        try:
            kc_user = self.users.get_user(keycloak_id)
            role_names = {
                role["name"]
                for role in filter_prefixed(self.roles.user_effective_realm_roles(keycloak_id), self.role_prefix)
            }

            with session_scope(self.session_factory) as session:
                repo = UserRepository(session)
                db_user = repo.find_by_keycloak_id(keycloak_id) or User(keycloak_id=keycloak_id)

                db_user.username = kc_user.get("username")
                db_user.email = kc_user.get("email")
                db_user.first_name = kc_user.get("firstName")
                db_user.last_name = kc_user.get("lastName")
                db_user.enabled = bool(kc_user.get("enabled", False))
                db_user.email_verified = bool(kc_user.get("emailVerified") or False)
                db_user.roles = role_names
                db_user.updated_at = datetime.now(timezone.utc)

                created = kc_user.get("createdTimestamp")
                if created is not None and db_user.created_at is None:
                    db_user.created_at = datetime.fromtimestamp(created / 1000, tz=timezone.utc).replace(tzinfo=None)

                repo.save(db_user)

            logger.debug("User synced to local mirror: %s", db_user.username)
            return db_user
        except (KeycloakError, SQLAlchemyError) as exc:
            logger.error("Failed to sync user %s to local mirror: %s", keycloak_id, exc)
            raise SyncError("Failed to sync user to database") from exc

    def sync_all_users(self) -> SyncReport:
        """Mirror every Keycloak user; one failing user does not stop the run."""
        logger.info("Starting full synchronization of Keycloak users...")
        report = SyncReport()

        for kc_user in self.users.list_users():
            try:
                self.sync_user(kc_user["id"])
                report.success += 1
            except SyncError as exc:
                logger.error("Failed to sync user %s: %s", kc_user.get("username"), exc)
                report.errors += 1
                report.failed_users.append(kc_user.get("username") or kc_user["id"])

        logger.info("Synchronization complete: %s success, %s errors", report.success, report.errors)
        return report

    # ─────────────────────────────────────────────────────────────────────
    # Helpers
    # ─────────────────────────────────────────────────────────────────────

    def _resolve_roles(self, role_names: list[str]) -> list[dict]:
        resolved = []
        for name in role_names:
            try:
                resolved.append(self.roles.get_realm_role(name))
            except RoleNotFoundError:
                logger.warning("Role not found: %s", name)
        return resolved

    def _to_user_dto(self, user: dict) -> UserDTO:
        try:
            roles = [
                role["name"]
                for role in filter_prefixed(self.roles.user_effective_realm_roles(user["id"]), self.role_prefix)
            ]
        except KeycloakError as exc:
            logger.warning("Could not fetch roles for user %s: %s", user.get("id"), exc)
            roles = []
        return UserDTO.from_keycloak(user, roles)
