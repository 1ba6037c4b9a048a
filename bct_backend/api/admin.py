"""Admin REST routes: Keycloak users, realm roles and the local mirror.

Every route requires a bearer token holding the configured admin role.
Read routes let Keycloak failures surface as 500; write routes report them
as 400 with ``{"error": <message>}`` so the admin UI can show the reason.
"""
from __future__ import annotations
import logging

from flask import Blueprint, jsonify, request

from bct_backend.api.decorators import enforce_admin_role
from bct_backend.api.helpers.services import get_admin_service
from bct_backend.core.dto import CreateUserRequest, UserDTO, parse_bool
from bct_backend.core.errors import ServiceError
from bct_backend.core.keycloak import KeycloakError

logger = logging.getLogger(__name__)

bp = Blueprint("admin", __name__)
bp.before_request(enforce_admin_role)

# Failures a write route reports as 400
WRITE_ERRORS = (KeycloakError, ServiceError)


def _bad_request(exc: Exception):
    message = exc.message if isinstance(exc, ServiceError) else str(exc)
    return jsonify({"error": message}), 400


def _role_names_from_body():
    names = request.get_json(silent=True)
    if not isinstance(names, list) or not all(isinstance(name, str) for name in names):
        return None
    return names


# ─────────────────────────────────────────────────────────────────────────────
# Users
# ─────────────────────────────────────────────────────────────────────────────
@bp.route("/users", methods=["GET"])
def list_users():
    users = get_admin_service().get_all_users()
    return jsonify([user.to_dict() for user in users])


@bp.route("/users/search", methods=["GET"])
def search_users():
    query = (request.args.get("query") or "").strip()
    if not query:
        return jsonify({"error": "Query parameter 'query' is required"}), 400
    users = get_admin_service().search_users(query)
    return jsonify([user.to_dict() for user in users])


@bp.route("/users/<user_id>", methods=["GET"])
def get_user(user_id):
    try:
        user = get_admin_service().get_user_by_id(user_id)
    except KeycloakError as exc:
        logger.warning("User lookup failed for %s: %s", user_id, exc)
        return jsonify({"error": "User not found"}), 404
    return jsonify(user.to_dict())


@bp.route("/users", methods=["POST"])
def create_user():
    try:
        payload = CreateUserRequest.from_dict(request.get_json(silent=True))
        user_id = get_admin_service().create_user(payload)
    except WRITE_ERRORS as exc:
        logger.error("User creation failed: %s", exc)
        return _bad_request(exc)
    return jsonify({"userId": user_id, "message": "User created successfully"}), 201


@bp.route("/users/<user_id>", methods=["PUT"])
def update_user(user_id):
    try:
        dto = UserDTO.from_dict(request.get_json(silent=True))
        get_admin_service().update_user(user_id, dto)
    except WRITE_ERRORS as exc:
        logger.error("User update failed for %s: %s", user_id, exc)
        return _bad_request(exc)
    return jsonify({"message": "User updated successfully"})


@bp.route("/users/<user_id>", methods=["DELETE"])
def delete_user(user_id):
    try:
        get_admin_service().delete_user(user_id)
    except WRITE_ERRORS as exc:
        logger.error("User deletion failed for %s: %s", user_id, exc)
        return _bad_request(exc)
    return jsonify({"message": "User deleted successfully"})


@bp.route("/users/<user_id>/status", methods=["PATCH"])
def toggle_user_status(user_id):
    enabled = parse_bool(request.args.get("enabled"))
    if enabled is None:
        return jsonify({"error": "Query parameter 'enabled' must be true or false"}), 400
    try:
        get_admin_service().toggle_user_status(user_id, enabled)
    except WRITE_ERRORS as exc:
        logger.error("Status change failed for %s: %s", user_id, exc)
        return _bad_request(exc)
    return jsonify({"message": "User status updated successfully"})


@bp.route("/users/<user_id>/reset-password", methods=["POST"])
def reset_password(user_id):
    try:
        get_admin_service().send_password_reset_email(user_id)
    except WRITE_ERRORS as exc:
        logger.error("Password reset e-mail failed for %s: %s", user_id, exc)
        return _bad_request(exc)
    return jsonify({"message": "Password reset email sent successfully"})


# ─────────────────────────────────────────────────────────────────────────────
# Roles
# ─────────────────────────────────────────────────────────────────────────────
@bp.route("/roles", methods=["GET"])
def list_roles():
    return jsonify([role.to_dict() for role in get_admin_service().get_all_roles()])


@bp.route("/users/<user_id>/roles", methods=["GET"])
def get_user_roles(user_id):
    return jsonify([role.to_dict() for role in get_admin_service().get_user_roles(user_id)])


@bp.route("/users/<user_id>/roles", methods=["POST"])
def assign_roles(user_id):
    names = _role_names_from_body()
    if names is None:
        return jsonify({"error": "Request body must be a JSON list of role names"}), 400
    try:
        get_admin_service().assign_roles(user_id, names)
    except WRITE_ERRORS as exc:
        logger.error("Role assignment failed for %s: %s", user_id, exc)
        return _bad_request(exc)
    return jsonify({"message": "Roles assigned successfully"})


@bp.route("/users/<user_id>/roles", methods=["DELETE"])
def remove_roles(user_id):
    names = _role_names_from_body()
    if names is None:
        return jsonify({"error": "Request body must be a JSON list of role names"}), 400
    try:
        get_admin_service().remove_roles(user_id, names)
    except WRITE_ERRORS as exc:
        logger.error("Role removal failed for %s: %s", user_id, exc)
        return _bad_request(exc)
    return jsonify({"message": "Roles removed successfully"})


@bp.route("/roles/<role_name>/users", methods=["GET"])
def get_users_by_role(role_name):
    users = get_admin_service().get_users_by_role(role_name)
    return jsonify([user.to_dict() for user in users])


# ─────────────────────────────────────────────────────────────────────────────
# Local mirror
# ─────────────────────────────────────────────────────────────────────────────
@bp.route("/sync", methods=["POST"])
def sync_users():
    report = get_admin_service().sync_all_users()
    return jsonify(report.to_dict())


@bp.route("/local-users", methods=["GET"])
def list_local_users():
    return jsonify([user.to_dict() for user in get_admin_service().get_all_local_users()])
