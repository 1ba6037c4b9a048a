"""Mirror Keycloak users into the local database from the command line.

Usage:
    python scripts/sync_users.py all
    python scripts/sync_users.py user --id <keycloak-user-id>

Reads the same environment/secrets as the web application.
"""
from __future__ import annotations
import argparse
import sys
from pathlib import Path

SCRIPT_DIR = Path(__file__).parent
PROJECT_ROOT = SCRIPT_DIR.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from bct_backend.api.helpers.services import build_admin_service
from bct_backend.config import load_settings
from bct_backend.core.errors import SyncError
from bct_backend.core.keycloak import KeycloakError
from bct_backend.database import build_engine, build_session_factory, init_db
from bct_backend.flask_app import configure_logging


def build_service(cfg):
    """Admin service on a fresh engine, tables created if missing."""
    engine = build_engine(cfg.database_url)
    init_db(engine)
    return build_admin_service(cfg, build_session_factory(engine))


def main(argv: list[str] | None = None) -> int:
    """Command-line entry point. Returns the process exit code."""
    parser = argparse.ArgumentParser(description="Sync Keycloak users into the local mirror")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")

    sub = parser.add_subparsers(dest="cmd", required=True)
    sub.add_parser("all", help="Sync every user of the realm")
    one = sub.add_parser("user", help="Sync a single user")
    one.add_argument("--id", dest="user_id", required=True, help="Keycloak user id")

    args = parser.parse_args(argv)

    cfg = load_settings()
    configure_logging(args.log_level or cfg.log_level)

    try:
        service = build_service(cfg)
    except (KeycloakError, ValueError) as exc:
        print(f"[sync] Cannot connect to Keycloak: {exc}", file=sys.stderr)
        return 2

    if args.cmd == "user":
        try:
            user = service.sync_user(args.user_id)
        except SyncError as exc:
            print(f"[sync] {exc.message}: {exc.__cause__}", file=sys.stderr)
            return 1
        print(f"[sync] Synced {user.username} ({user.keycloak_id})")
        return 0

    report = service.sync_all_users()
    print(f"[sync] {report.success} synced, {report.errors} failed")
    for username in report.failed_users:
        print(f"[sync]   failed: {username}", file=sys.stderr)
    return 1 if report.errors else 0


if __name__ == "__main__":
    sys.exit(main())
