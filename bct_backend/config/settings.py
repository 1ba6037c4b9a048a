"""Settings loader with environment variable and Docker secrets integration."""
from __future__ import annotations
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional


SECRETS_DIR = Path("/run/secrets")

ADMIN_CONFIG_MISSING = (
    "Keycloak admin configuration missing! "
    "Provide either (admin-client-secret) or (admin-username + admin-password)"
)


def _load_secret_from_file(secret_name: str, env_var: str | None = None) -> str | None:
    """
    Load secret from /run/secrets (Docker secrets pattern).

    Priority:
    1. /run/secrets/{secret_name} (Docker secrets mount)
    2. Environment variable (fallback)

    Args:
        secret_name: Name of the secret file in /run/secrets
        env_var: Optional environment variable name to check as fallback

    Returns:
        Secret value or None if not found
    """
    secret_file = SECRETS_DIR / secret_name

    if secret_file.exists() and secret_file.is_file():
        try:
            secret_value = secret_file.read_text().strip()
            if secret_value:
                print(f"[settings] ✓ Loaded {secret_name} from /run/secrets")
                return secret_value
        except OSError as e:
            print(f"[settings] ✗ Failed to read /run/secrets/{secret_name}: {e}")

    if env_var:
        secret_value = os.getenv(env_var)
        if secret_value:
            return secret_value

    return None


@dataclass
class AppConfig:
    """Application configuration container."""
    # Mode
    demo_mode: bool = False
    log_level: str = "INFO"

    # Keycloak server
    keycloak_auth_server_url: str = ""
    keycloak_realm: str = "bct"
    keycloak_issuer: str = ""
    keycloak_jwks_url: str = ""

    # Admin client credentials
    keycloak_admin_client_id: str = "admin-cli"
    keycloak_admin_client_secret: str = ""
    keycloak_admin_username: str = ""
    keycloak_admin_password: str = ""

    # Persistence
    database_url: str = "sqlite:///bct_backend.db"

    # CORS
    cors_allowed_origins: list[str] = field(default_factory=lambda: ["http://localhost:4200"])

    # Roles
    role_prefix: str = "ROLE_"
    admin_role: str = "ROLE_ADMIN"

    @property
    def admin_auth_method(self) -> str:
        """Pick how the admin client authenticates against Keycloak.

        Priority:
        1. Client secret configured: client_credentials on the target realm
        2. Admin username configured: password grant on the master realm

        Returns:
            "client_credentials" or "password"

        Raises:
            ValueError: If neither credential set is configured
        """
        if self.keycloak_admin_client_secret:
            return "client_credentials"
        if self.keycloak_admin_username:
            return "password"
        raise ValueError(ADMIN_CONFIG_MISSING)

    @property
    def admin_auth_realm(self) -> str:
        """Realm the admin credentials live in."""
        if self.admin_auth_method == "client_credentials":
            return self.keycloak_realm
        return "master"


def _get_or_generate(var_name: str, demo_default: Optional[str] = None, required: bool = True, demo_mode: bool = False) -> str:
    """Get environment variable or use demo default."""
    value = os.environ.get(var_name)
    if value:
        return value

    if demo_mode and demo_default is not None:
        print(f"[demo-mode] Using default for {var_name}")
        os.environ[var_name] = demo_default
        return demo_default

    if not required:
        return ""

    raise RuntimeError(f"Environment variable {var_name} is required in production mode.")


def _split_csv(raw: str) -> list[str]:
    return [item.strip() for item in raw.split(",") if item.strip()]


def load_settings() -> AppConfig:
    """Load application settings from environment and /run/secrets."""
    demo_mode = os.environ.get("DEMO_MODE", "false").lower() == "true"

    # Keycloak server
    auth_server_url = _get_or_generate(
        "KEYCLOAK_AUTH_SERVER_URL",
        demo_default="http://localhost:8080",
        demo_mode=demo_mode,
    ).rstrip("/")
    realm = os.environ.get("KEYCLOAK_REALM", "bct")
    issuer = os.environ.get("KEYCLOAK_ISSUER") or f"{auth_server_url}/realms/{realm}"
    jwks_url = os.environ.get("KEYCLOAK_JWKS_URL") or f"{issuer}/protocol/openid-connect/certs"

    # Admin client credentials (secrets first)
    admin_client_id = os.environ.get("KEYCLOAK_ADMIN_CLIENT_ID", "admin-cli")
    admin_client_secret = _load_secret_from_file(
        "keycloak_admin_client_secret",
        "KEYCLOAK_ADMIN_CLIENT_SECRET",
    ) or ""
    admin_username = os.environ.get("KEYCLOAK_ADMIN_USERNAME", "")
    admin_password = _load_secret_from_file(
        "keycloak_admin_password",
        "KEYCLOAK_ADMIN_PASSWORD",
    ) or ""

    if demo_mode and not admin_client_secret and not admin_username:
        print("[demo-mode] Using admin/admin for the Keycloak admin client")
        admin_username = "admin"
        admin_password = admin_password or "admin"

    # Persistence
    database_url = _load_secret_from_file("database_url", "DATABASE_URL")
    if not database_url:
        database_url = "sqlite:///:memory:" if demo_mode else "sqlite:///bct_backend.db"

    cors_allowed_origins = _split_csv(os.environ.get("CORS_ALLOWED_ORIGINS", "http://localhost:4200"))

    role_prefix = os.environ.get("ROLE_PREFIX", "ROLE_")
    admin_role = os.environ.get("ADMIN_ROLE", f"{role_prefix}ADMIN")
    log_level = os.environ.get("LOG_LEVEL", "INFO").upper()

    mode_label = "DEMO" if demo_mode else "PRODUCTION"
    print(f"[settings] Mode={mode_label}; realm={realm}; server={auth_server_url}; admin_client_id={admin_client_id}")

    if demo_mode:
        print("[settings] WARNING: Demo credentials in use. Do not deploy with these defaults.")

    return AppConfig(
        demo_mode=demo_mode,
        log_level=log_level,
        keycloak_auth_server_url=auth_server_url,
        keycloak_realm=realm,
        keycloak_issuer=issuer,
        keycloak_jwks_url=jwks_url,
        keycloak_admin_client_id=admin_client_id,
        keycloak_admin_client_secret=admin_client_secret,
        keycloak_admin_username=admin_username,
        keycloak_admin_password=admin_password,
        database_url=database_url,
        cors_allowed_origins=cors_allowed_origins,
        role_prefix=role_prefix,
        admin_role=admin_role,
    )
