"""Pytest shared fixtures: network guards, app on in-memory SQLite, signed tokens."""
import json
import pathlib
import sys
import time
from typing import Optional
from unittest.mock import Mock

# Add project root to Python path
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest
import requests
from authlib.jose import JsonWebKey, jwt as authlib_jwt
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from jwt import PyJWKClient

from bct_backend.api import decorators
from bct_backend.config.settings import AppConfig
from bct_backend.core.admin_service import KeycloakAdminService
from bct_backend.flask_app import create_app

KC_URL = "http://kc.test"
REALM = "bct"
ISSUER = f"{KC_URL}/realms/{REALM}"
JWKS_URL = f"{ISSUER}/protocol/openid-connect/certs"
FRONTEND_ORIGIN = "http://localhost:4200"


def make_config(**overrides) -> AppConfig:
    base = dict(
        demo_mode=False,
        log_level="WARNING",
        keycloak_auth_server_url=KC_URL,
        keycloak_realm=REALM,
        keycloak_issuer=ISSUER,
        keycloak_jwks_url=JWKS_URL,
        keycloak_admin_client_id="bct-admin",
        keycloak_admin_client_secret="svc-secret",
        database_url="sqlite:///:memory:",
        cors_allowed_origins=[FRONTEND_ORIGIN],
    )
    base.update(overrides)
    return AppConfig(**base)


class StubResponse:
    """Just enough of requests.Response for the Keycloak client."""

    def __init__(self, status_code: int = 200, payload=None, headers: Optional[dict] = None, url: str = ""):
        self.status_code = status_code
        self.url = url
        self._payload = payload
        self.headers = headers or {}
        self.text = json.dumps(payload) if payload is not None else ""
        self.content = self.text.encode()

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON body")
        return self._payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(response=self)


# ─────────────────────────────────────────────────────────────────────────────
# Network Guard Rails
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture(autouse=True)
def _block_network(monkeypatch, request):
    """
    Prevent unit tests from reaching a live Keycloak.

    Token requests get a stub token; any other call fails the test.
    Tests marked @pytest.mark.integration are left alone.
    """
    if request.node.get_closest_marker("integration"):
        return

    def _stub_post(url, *args, **kwargs):
        if url.endswith("/protocol/openid-connect/token"):
            return StubResponse(200, {"access_token": "test-token", "expires_in": 300})
        raise RuntimeError(f"Unexpected HTTP POST in unit test: {url}")

    def _stub_get(url, *args, **kwargs):
        raise RuntimeError(f"Unexpected HTTP GET in unit test: {url}")

    def _stub_request(method, url, *args, **kwargs):
        raise RuntimeError(f"Unexpected HTTP {method} in unit test: {url}")

    monkeypatch.setattr(requests, "post", _stub_post)
    monkeypatch.setattr(requests, "get", _stub_get)
    monkeypatch.setattr(requests, "request", _stub_request)


@pytest.fixture(autouse=True)
def _reset_jwks_cache():
    """JWKS client is a module-level singleton; keep it per test."""
    decorators.reset_jwks_client()
    yield
    decorators.reset_jwks_client()


# ─────────────────────────────────────────────────────────────────────────────
# Application
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture()
def app_config():
    return make_config()


@pytest.fixture()
def admin_service():
    """Admin service double; routes are tested against its interface."""
    return Mock(spec=KeycloakAdminService)


@pytest.fixture()
def flask_app(app_config, admin_service):
    app = create_app(app_config, admin_service=admin_service)
    app.config.update(TESTING=True)
    return app


@pytest.fixture()
def client(flask_app):
    with flask_app.test_client() as client:
        yield client


@pytest.fixture()
def login_as(monkeypatch):
    """Skip signature checks and authenticate every request with the given roles."""

    def _login(roles: list[str], username: str = "alice"):
        claims = {
            "sub": f"{username}-id",
            "preferred_username": username,
            "iss": ISSUER,
            "realm_access": {"roles": list(roles)},
        }
        monkeypatch.setattr(decorators, "validate_jwt_token", lambda token: claims)
        return {"Authorization": "Bearer stub-token"}

    return _login


# ─────────────────────────────────────────────────────────────────────────────
# RSA Key Pair for JWT Testing
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture(scope="session")
def rsa_key_pair():
    """Generate RSA key pair for JWT signing in tests."""
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)

    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    public_pem = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )

    return {"private_key": private_key, "private_pem": private_pem, "public_pem": public_pem}


@pytest.fixture()
def mock_jwks_endpoint(monkeypatch, rsa_key_pair):
    """Serve the test public key from the realm JWKS without network access."""

    class JWKSEndpoint:
        def __init__(self):
            jwk = JsonWebKey.import_key(rsa_key_pair["public_pem"], {"kty": "RSA"})
            jwk_dict = jwk.as_dict()
            jwk_dict["kid"] = "default-key-id"
            jwk_dict["use"] = "sig"
            jwk_dict["alg"] = "RS256"
            self.keys = [jwk_dict]
            self.fetch_count = 0

        def get_jwks(self):
            self.fetch_count += 1
            return {"keys": self.keys}

    endpoint = JWKSEndpoint()
    monkeypatch.setattr(PyJWKClient, "fetch_data", lambda self: endpoint.get_jwks())
    return endpoint


# ─────────────────────────────────────────────────────────────────────────────
# JWT Token Helpers
# ─────────────────────────────────────────────────────────────────────────────
def create_valid_jwt(
    rsa_key_pair: dict,
    issuer: str = ISSUER,
    sub: str = "user-123",
    username: Optional[str] = "alice",
    roles: Optional[list[str]] = None,
    exp_offset: int = 3600,
    kid: str = "default-key-id",
    include_iat: bool = True,
) -> str:
    """Create an RS256-signed access token shaped like Keycloak's."""
    if roles is None:
        roles = ["ROLE_ADMIN"]

    now = int(time.time())
    header = {"alg": "RS256", "typ": "JWT", "kid": kid}
    payload = {
        "iss": issuer,
        "aud": "account",
        "sub": sub,
        "exp": now + exp_offset,
        "realm_access": {"roles": roles},
    }
    if include_iat:
        payload["iat"] = now
    if username is not None:
        payload["preferred_username"] = username

    token = authlib_jwt.encode(header, payload, rsa_key_pair["private_pem"])
    return token.decode("utf-8") if isinstance(token, bytes) else token


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


# ─────────────────────────────────────────────────────────────────────────────
# Pytest Configuration
# ─────────────────────────────────────────────────────────────────────────────
def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests (requires a running Keycloak)"
    )
