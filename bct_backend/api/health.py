"""Health check endpoints."""
from flask import Blueprint, current_app
from sqlalchemy import text

from bct_backend.api.helpers.services import ENGINE_KEY

bp = Blueprint("health", __name__)


@bp.route("/health")
def health_check():
    """Basic health check endpoint."""
    return ("ok", 200, {"Content-Type": "text/plain"})


@bp.route("/ready")
def readiness_check():
    """Readiness check: the local database answers a trivial query."""
    with current_app.extensions[ENGINE_KEY].connect() as connection:
        connection.execute(text("SELECT 1"))
    return ("ready", 200, {"Content-Type": "text/plain"})
