"""
Flask decorators for bearer-token authentication and role authorization.

Tokens are Keycloak access tokens from the application realm. Roles come from
the ``realm_access.roles`` claim and are matched exactly (``ROLE_ADMIN`` is
not ``role_admin``).

Security:
- RSA-SHA256 signature verification via the realm JWKS
- Expiration and issuer validation
- JWKS caching (1-hour refresh)
"""

import logging
from functools import wraps
from typing import Any, Dict, List, Optional

import jwt
from jwt import PyJWKClient
from jwt.exceptions import (
    DecodeError,
    ExpiredSignatureError,
    InvalidIssuerError,
    InvalidSignatureError,
    PyJWTError,
)
from flask import current_app, g, jsonify, request

logger = logging.getLogger(__name__)

# Global JWKS client (cached singleton)
_jwks_client: Optional[PyJWKClient] = None

BEARER_PREFIX = "Bearer "


class TokenValidationError(Exception):
    """Exception raised when JWT token validation fails."""
    pass


# ============================================================================
# Token validation
# ============================================================================

def get_jwks_client() -> PyJWKClient:
    """
    Get cached JWKS client for the configured realm.

    Returns:
        PyJWKClient: Client fetching the realm's public signing keys
    """
    global _jwks_client

    if _jwks_client is None:
        cfg = current_app.config["APP_CONFIG"]
        logger.info("Initializing JWKS client for: %s", cfg.keycloak_jwks_url)
        _jwks_client = PyJWKClient(
            cfg.keycloak_jwks_url,
            cache_keys=True,
            max_cached_keys=16,
            lifespan=3600,
            headers={"User-Agent": "bct-backend/1.0"},
        )

    return _jwks_client


def reset_jwks_client() -> None:
    """Drop the cached JWKS client (next request re-creates it)."""
    global _jwks_client
    _jwks_client = None


def validate_jwt_token(token: str) -> Dict[str, Any]:
    """
    Validate a JWT bearer token.

    Validations performed:
    1. Signature (RS256 via JWKS, key chosen by ``kid``)
    2. Expiration (exp, required)
    3. Issued-at (iat, required)
    4. Issuer (iss must be the configured realm issuer)

    Args:
        token: JWT token string (without "Bearer " prefix)

    Returns:
        dict: Validated token claims

    Raises:
        TokenValidationError: If any validation fails
    """
    cfg = current_app.config["APP_CONFIG"]

    try:
        signing_key = get_jwks_client().get_signing_key_from_jwt(token)
        claims = jwt.decode(
            token,
            signing_key.key,
            algorithms=["RS256"],
            issuer=cfg.keycloak_issuer,
            options={
                "verify_signature": True,
                "verify_exp": True,
                "verify_iss": True,
                "verify_aud": False,  # Keycloak access tokens carry aud=account
                "require": ["exp", "iat"],
            },
            leeway=5,
        )
    except ExpiredSignatureError:
        raise TokenValidationError("Token expired (exp claim)")
    except InvalidIssuerError as e:
        raise TokenValidationError(f"Invalid issuer: {e}")
    except InvalidSignatureError:
        raise TokenValidationError("Invalid signature")
    except DecodeError as e:
        raise TokenValidationError(f"Token decode error (malformed JWT): {e}")
    except PyJWTError as e:
        logger.error("JWT validation failed: %s", e)
        raise TokenValidationError(f"Token validation failed: {e}")

    logger.debug("JWT validated for: %s", principal_name(claims))
    return claims


# ============================================================================
# Claim mapping
# ============================================================================

def extract_roles(claims: Dict[str, Any]) -> List[str]:
    """Realm roles granted by the token (``realm_access.roles``)."""
    realm_access = claims.get("realm_access")
    if not isinstance(realm_access, dict):
        return []
    roles = realm_access.get("roles")
    if not isinstance(roles, list):
        return []
    return [str(role) for role in roles]


def principal_name(claims: Dict[str, Any]) -> Optional[str]:
    return claims.get("preferred_username") or claims.get("sub")


# ============================================================================
# Request guards
# ============================================================================

def _unauthorized(message: str):
    return jsonify({"error": "Unauthorized", "message": message}), 401


def _forbidden(message: str):
    return jsonify({"error": "Forbidden", "message": message}), 403


def authenticate_request():
    """
    Validate the request's bearer token and store the result on ``flask.g``.

    Sets ``g.jwt_claims``, ``g.current_user`` and ``g.current_roles``.
    Already-authenticated requests are not validated twice.

    Returns:
        None on success, otherwise a 401 JSON response
    """
    if g.get("jwt_claims") is not None:
        return None

    auth_header = request.headers.get("Authorization", "")
    if not auth_header:
        logger.warning("Request to %s missing Authorization header", request.path)
        return _unauthorized("Authorization header required. Use 'Authorization: Bearer <token>'")

    if not auth_header.startswith(BEARER_PREFIX):
        logger.warning("Request to %s with invalid Authorization format", request.path)
        return _unauthorized("Invalid Authorization header format. Expected 'Bearer <token>'")

    token = auth_header[len(BEARER_PREFIX):].strip()
    if not token:
        return _unauthorized("Bearer token is empty")

    try:
        claims = validate_jwt_token(token)
    except TokenValidationError as e:
        logger.warning("JWT validation failed: %s", e)
        return _unauthorized(str(e))

    g.jwt_claims = claims
    g.current_user = principal_name(claims)
    g.current_roles = extract_roles(claims)
    return None


def authorize_roles(required_roles):
    """Return a 403 JSON response unless the caller holds one of ``required_roles``."""
    granted = g.get("current_roles") or []
    if not any(role in granted for role in required_roles):
        logger.warning(
            "Access denied for %s on %s. Required: %s, granted: %s",
            g.get("current_user"), request.path, list(required_roles), granted,
        )
        return _forbidden(f"Required role: {', '.join(required_roles)}")
    return None


def require_auth(fn):
    """Decorator: reject the request with 401 unless it carries a valid token."""
    @wraps(fn)
    def wrapper(*args, **kwargs):
        error = authenticate_request()
        if error is not None:
            return error
        return fn(*args, **kwargs)
    return wrapper


def require_role(*required_roles):
    """
    Decorator requiring a valid token holding at least one of the roles.

    Example:
        @bp.route("/agent")
        @require_role("ROLE_AGENT")
        def agent():
            return "AGENT OK"
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            error = authenticate_request() or authorize_roles(required_roles)
            if error is not None:
                return error
            return fn(*args, **kwargs)
        return wrapper
    return decorator


def get_jwt_claims() -> Optional[dict]:
    """Claims of the current request's token, after authentication."""
    return g.get("jwt_claims")


def enforce_admin_role():
    """``before_request`` hook for admin blueprints: token plus the configured admin role."""
    cfg = current_app.config["APP_CONFIG"]
    return authenticate_request() or authorize_roles([cfg.admin_role])
