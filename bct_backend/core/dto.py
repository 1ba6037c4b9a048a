"""Wire-format objects for the admin API.

JSON keys use the camelCase names Keycloak and the admin frontend use;
attributes are snake_case.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Optional

from bct_backend.core.errors import ValidationError

TRUE_VALUES = {"true", "1", "yes"}
FALSE_VALUES = {"false", "0", "no"}


def parse_bool(raw: Any) -> Optional[bool]:
    """Boolean from a JSON value or query string; None if unrecognised."""
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, int) and raw in (0, 1):
        return bool(raw)
    if isinstance(raw, str):
        value = raw.strip().lower()
        if value in TRUE_VALUES:
            return True
        if value in FALSE_VALUES:
            return False
    return None


def _require_object(data: Any) -> dict:
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def _bool_field(data: dict, key: str, default: bool) -> bool:
    raw = data.get(key)
    if raw is None:
        return default
    value = parse_bool(raw)
    if value is None:
        raise ValidationError(f"Invalid {key}: expected true or false")
    return value


def _role_names(data: dict) -> list[str]:
    raw = data.get("roles")
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ValidationError("Invalid roles: expected a list of role names")
    return [str(role) for role in raw]


def _clean(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value).strip()


@dataclass
class RoleDTO:
    name: str
    id: Optional[str] = None
    description: Optional[str] = None

    @classmethod
    def from_keycloak(cls, role: dict) -> "RoleDTO":
        return cls(id=role.get("id"), name=role.get("name", ""), description=role.get("description"))

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "description": self.description}


@dataclass
class UserDTO:
    id: Optional[str] = None
    username: Optional[str] = None
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    enabled: bool = False
    email_verified: bool = False
    created_timestamp: Optional[int] = None
    roles: list[str] = field(default_factory=list)

    @classmethod
    def from_keycloak(cls, user: dict, roles: Optional[list[str]] = None) -> "UserDTO":
        """Build from a Keycloak UserRepresentation."""
        return cls(
            id=user.get("id"),
            username=user.get("username"),
            email=user.get("email"),
            first_name=user.get("firstName"),
            last_name=user.get("lastName"),
            enabled=bool(user.get("enabled", False)),
            email_verified=bool(user.get("emailVerified", False)),
            created_timestamp=user.get("createdTimestamp"),
            roles=list(roles or []),
        )

    @classmethod
    def from_dict(cls, data: Any) -> "UserDTO":
        """Build from an API request body (same keys as ``to_dict``).

        Raises:
            ValidationError: If the body is not an object or a flag is not boolean
        """
        data = _require_object(data)
        return cls(
            id=data.get("id"),
            username=data.get("username"),
            email=data.get("email"),
            first_name=data.get("firstName"),
            last_name=data.get("lastName"),
            enabled=_bool_field(data, "enabled", False),
            email_verified=_bool_field(data, "emailVerified", False),
            created_timestamp=data.get("createdTimestamp"),
            roles=_role_names(data),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "enabled": self.enabled,
            "emailVerified": self.email_verified,
            "createdTimestamp": self.created_timestamp,
            "roles": list(self.roles),
        }


@dataclass
class CreateUserRequest:
    """Body of POST /api/admin/users.

    ``from_dict`` normalizes input: username trimmed, email trimmed and
    lower-cased, names trimmed and defaulted to "".
    """
    username: Optional[str] = None
    email: Optional[str] = None
    first_name: str = ""
    last_name: str = ""
    password: Optional[str] = None
    enabled: bool = True
    roles: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> "CreateUserRequest":
        data = _require_object(data)
        email = _clean(data.get("email"))
        return cls(
            username=_clean(data.get("username")),
            email=email.lower() if email is not None else None,
            first_name=_clean(data.get("firstName")) or "",
            last_name=_clean(data.get("lastName")) or "",
            password=data.get("password"),
            enabled=_bool_field(data, "enabled", True),
            roles=_role_names(data),
        )

    def to_keycloak(self) -> dict:
        """UserRepresentation for POST /users (credentials set separately)."""
        return {
            "username": self.username,
            "email": self.email,
            "firstName": self.first_name or "",
            "lastName": self.last_name or "",
            "enabled": self.enabled,
            "emailVerified": True,
        }
