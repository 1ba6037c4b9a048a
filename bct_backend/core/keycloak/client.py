"""Low-level HTTP client for Keycloak Admin API.

Handles authentication, token management, and HTTP operations.
"""
from __future__ import annotations
import logging
from typing import Optional, Dict, Any
from datetime import datetime, timedelta
from urllib.parse import quote

import requests

from .exceptions import KeycloakError, KeycloakAPIError, InsufficientPermissionsError

REQUEST_TIMEOUT = 5

# Refresh this many seconds before the token actually expires
TOKEN_EXPIRY_SKEW = 10

logger = logging.getLogger(__name__)


def path_segment(value: Any) -> str:
    """Percent-encode one dynamic path segment (ids, role names).

    Raises:
        KeycloakError: For empty, "." or ".." segments, which would
            change the target resource once the URL is normalized
    """
    segment = str(value or "")
    if segment in {"", ".", ".."}:
        raise KeycloakError(f"Invalid path segment: '{segment}'")
    return quote(segment, safe="")


class KeycloakClient:
    """HTTP client for Keycloak Admin API with automatic token management.

    Features:
    - Automatic token refresh when expired
    - Centralized error handling
    - Support for both admin (password grant) and service account authentication

    Usage:
        client = KeycloakClient("http://keycloak:8080")
        client.authenticate_service_account("bct", "bct-admin", "secret")
        response = client.get("/admin/realms/bct/users")
    """

    def __init__(self, base_url: str):
        """Initialize Keycloak client.

        Args:
            base_url: Keycloak base URL (e.g. http://keycloak:8080)
        """
        self.base_url = base_url.rstrip("/")
        self._token: Optional[str] = None
        self._token_expires_at: Optional[datetime] = None
        self._auth_method: Optional[str] = None
        self._auth_params: Dict[str, Any] = {}

    def authenticate_admin(
        self,
        username: str,
        password: str,
        realm: str = "master",
        client_id: str = "admin-cli",
    ) -> str:
        """Authenticate as admin user and store credentials for auto-refresh.

        Args:
            username: Admin username
            password: Admin password
            realm: Authentication realm (default: master)
            client_id: Public client used for the password grant

        Returns:
            Access token
        """
        self._auth_method = "password"
        self._auth_params = {
            "grant_type": "password",
            "realm": realm,
            "client_id": client_id,
            "username": username,
            "password": password,
        }
        return self._refresh_token()

    def authenticate_service_account(self, auth_realm: str, client_id: str, client_secret: str) -> str:
        """Authenticate as service account and store credentials for auto-refresh.

        Args:
            auth_realm: Realm where service account client exists
            client_id: Service account client ID
            client_secret: Service account client secret

        Returns:
            Access token
        """
        self._auth_method = "client_credentials"
        self._auth_params = {
            "grant_type": "client_credentials",
            "realm": auth_realm,
            "client_id": client_id,
            "client_secret": client_secret,
        }
        return self._refresh_token()

    @property
    def is_authenticated(self) -> bool:
        return self._token is not None

    def _refresh_token(self) -> str:
        params = dict(self._auth_params)
        realm = params.pop("realm")
        url = f"{self.base_url}/realms/{path_segment(realm)}/protocol/openid-connect/token"
        try:
            resp = requests.post(url, data=params, timeout=REQUEST_TIMEOUT)
        except requests.RequestException as exc:
            raise KeycloakError(f"Keycloak unreachable at {url}: {exc}") from exc
        if resp.status_code != 200:
            raise KeycloakAPIError(resp.status_code, resp.text, url)

        payload = resp.json()
        expires_in = int(payload.get("expires_in") or 60)
        self._token = payload["access_token"]
        self._token_expires_at = datetime.now() + timedelta(seconds=expires_in)
        logger.debug("Obtained Keycloak admin token (%s, expires in %ss)", self._auth_method, expires_in)
        return self._token

    def _ensure_authenticated(self) -> None:
        """Ensure we have a valid token, refreshing if necessary."""
        if not self._token or not self._token_expires_at:
            raise KeycloakAPIError(401, "Not authenticated - call authenticate_admin or authenticate_service_account first", "")

        if datetime.now() >= self._token_expires_at - timedelta(seconds=TOKEN_EXPIRY_SKEW):
            self._refresh_token()

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        self._ensure_authenticated()
        url = f"{self.base_url}{path}"
        headers = kwargs.pop("headers", {})
        headers["Authorization"] = f"Bearer {self._token}"

        try:
            resp = requests.request(method, url, headers=headers, timeout=REQUEST_TIMEOUT, **kwargs)
        except requests.RequestException as exc:
            raise KeycloakError(f"Keycloak unreachable at {url}: {exc}") from exc
        self._handle_error(resp)
        return resp

    def get(self, path: str, params: Optional[Dict] = None, **kwargs) -> requests.Response:
        """Execute GET request with automatic authentication.

        Raises:
            KeycloakAPIError: On HTTP error
        """
        return self._request("GET", path, params=params, **kwargs)

    def post(self, path: str, json: Any = None, data: Optional[Dict] = None, **kwargs) -> requests.Response:
        """Execute POST request with automatic authentication.

        Raises:
            KeycloakAPIError: On HTTP error
        """
        return self._request("POST", path, json=json, data=data, **kwargs)

    def put(self, path: str, json: Any = None, **kwargs) -> requests.Response:
        """Execute PUT request with automatic authentication.

        Raises:
            KeycloakAPIError: On HTTP error
        """
        return self._request("PUT", path, json=json, **kwargs)

    def delete(self, path: str, json: Any = None, **kwargs) -> requests.Response:
        """Execute DELETE request with automatic authentication.

        Role-mapping removal sends its payload in the DELETE body.

        Raises:
            KeycloakAPIError: On HTTP error
        """
        return self._request("DELETE", path, json=json, **kwargs)

    def _handle_error(self, resp: requests.Response) -> None:
        """Centralized error handling for HTTP responses.

        Raises:
            InsufficientPermissionsError: On 403 from the admin API
            KeycloakAPIError: For any other status >= 400
        """
        if resp.status_code == 403:
            raise InsufficientPermissionsError(resp.status_code, resp.text, resp.url)
        if resp.status_code >= 400:
            raise KeycloakAPIError(resp.status_code, resp.text, resp.url)


def create_client_from_config(cfg) -> KeycloakClient:
    """Build an authenticated client from AppConfig.

    Service account (client_credentials) wins over username/password, the
    same order the admin credentials are documented in.

    Raises:
        ValueError: If no admin credentials are configured
        KeycloakAPIError: If Keycloak rejects the credentials
    """
    method = cfg.admin_auth_method
    client = KeycloakClient(cfg.keycloak_auth_server_url)

    logger.info(
        "Initializing Keycloak admin client: server=%s realm=%s client_id=%s method=%s",
        cfg.keycloak_auth_server_url,
        cfg.keycloak_realm,
        cfg.keycloak_admin_client_id,
        method,
    )

    if method == "client_credentials":
        client.authenticate_service_account(
            cfg.keycloak_realm,
            cfg.keycloak_admin_client_id,
            cfg.keycloak_admin_client_secret,
        )
    else:
        client.authenticate_admin(
            cfg.keycloak_admin_username,
            cfg.keycloak_admin_password,
            realm="master",
            client_id=cfg.keycloak_admin_client_id,
        )
    return client
