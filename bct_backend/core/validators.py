"""Input validation helpers for admin payloads."""
from __future__ import annotations
import logging
import re
from datetime import date, datetime
from typing import Any, Optional

from bct_backend.core.dto import CreateUserRequest, parse_bool
from bct_backend.core.errors import ValidationError
from bct_backend.core.keycloak import KeycloakError
from bct_backend.models import DeclarationFormat, DeclarationFrequency

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[A-Za-z0-9+_.-]+@(.+)$")


def is_valid_email(email: Optional[str]) -> bool:
    """Loose syntactic check; Keycloak does the real validation."""
    return email is not None and EMAIL_PATTERN.match(email) is not None


def validate_create_user_request(request: CreateUserRequest, user_service) -> None:
    """Validate a user creation request before anything is written.

    All problems are reported together. Uniqueness checks that cannot reach
    Keycloak are skipped with a warning; Keycloak still rejects duplicates
    with a 409 on create.

    Raises:
        ValidationError: "Validation failed: <error>, <error>, ..."
    """
    errors: list[str] = []

    if not request.username:
        errors.append("Username is required")

    if not request.email:
        errors.append("Email is required")
    elif not is_valid_email(request.email):
        errors.append("Invalid email format")

    if request.username:
        try:
            if user_service.find_by_username(request.username, exact=True):
                errors.append("Username already exists")
        except KeycloakError as exc:
            logger.warning("Could not check username uniqueness: %s", exc)

    if request.email:
        try:
            if user_service.find_by_email(request.email):
                errors.append("Email already exists")
        except KeycloakError as exc:
            logger.warning("Could not check email uniqueness: %s", exc)

    if errors:
        raise ValidationError("Validation failed: " + ", ".join(errors))


def _parse_enum(enum_cls, raw: Any, field: str):
    if raw is None or raw == "":
        return None
    try:
        return enum_cls(str(raw).strip().upper())
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValidationError(f"Invalid {field}: expected one of {allowed}")


def _parse_date(raw: Any) -> Optional[date]:
    if raw is None or raw == "":
        return None
    if isinstance(raw, date):
        return raw
    if not isinstance(raw, str):
        raise ValidationError("Invalid dateLimite: expected YYYY-MM-DD")
    # Full ISO datetimes are accepted and reduced to their date
    value = raw.strip()
    try:
        if "T" in value:
            return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
        return date.fromisoformat(value)
    except ValueError:
        raise ValidationError("Invalid dateLimite: expected YYYY-MM-DD")


def _optional_text(payload: dict, field: str) -> str:
    raw = payload.get(field)
    if raw is None:
        return ""
    if not isinstance(raw, str):
        raise ValidationError(f"Invalid {field}: expected a string")
    return raw.strip()


def validate_declaration_type(payload: Optional[dict]) -> dict:
    """Validate and normalize a declaration-type body.

    Args:
        payload: JSON body with code, nom, format, frequence, dateLimite, actif

    Returns:
        Dict with keys code, name, format, frequency, deadline, active

    Raises:
        ValidationError: If code is missing or an enum/date field is invalid
    """
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")

    code = _optional_text(payload, "code")
    if not code:
        raise ValidationError("Code is required")
    if len(code) > 64:
        raise ValidationError("Code exceeds maximum length")

    active = payload.get("actif")
    if active is not None and parse_bool(active) is None:
        raise ValidationError("Invalid actif: expected true or false")
    return {
        "code": code,
        "name": _optional_text(payload, "nom") or None,
        "format": _parse_enum(DeclarationFormat, payload.get("format"), "format"),
        "frequency": _parse_enum(DeclarationFrequency, payload.get("frequence"), "frequence"),
        "deadline": _parse_date(payload.get("dateLimite")),
        "active": True if active is None else parse_bool(active),
    }
