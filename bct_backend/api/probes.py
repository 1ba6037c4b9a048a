"""Role probe endpoints for checking token and role wiring end to end."""
from flask import Blueprint

from bct_backend.api.decorators import require_role

bp = Blueprint("probes", __name__)

TEXT = {"Content-Type": "text/plain"}


@bp.route("/admin")
@require_role("ROLE_ADMIN")
def admin_probe():
    return ("ADMIN OK", 200, TEXT)


@bp.route("/agent")
@require_role("ROLE_AGENT")
def agent_probe():
    return ("AGENT OK", 200, TEXT)


@bp.route("/manager")
@require_role("ROLE_MANAGER")
def manager_probe():
    return ("MANAGER OK", 200, TEXT)


@bp.route("/auditor")
@require_role("ROLE_AUDITOR")
def auditor_probe():
    return ("AUDITOR OK", 200, TEXT)


@bp.route("/public/hello")
def public_hello():
    return ("PUBLIC OK", 200, TEXT)
