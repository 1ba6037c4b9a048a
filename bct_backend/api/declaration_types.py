"""Declaration-type catalogue routes (admin only)."""
from flask import Blueprint, jsonify, request

from bct_backend.api.decorators import enforce_admin_role
from bct_backend.api.helpers.services import get_declaration_type_service

bp = Blueprint("declaration_types", __name__)
bp.before_request(enforce_admin_role)


@bp.route("", methods=["GET"])
def list_declaration_types():
    return jsonify([item.to_dict() for item in get_declaration_type_service().get_all()])


@bp.route("", methods=["POST"])
def create_declaration_type():
    created = get_declaration_type_service().create(request.get_json(silent=True))
    return jsonify(created.to_dict())


@bp.route("/<int:type_id>", methods=["GET"])
def get_declaration_type(type_id):
    return jsonify(get_declaration_type_service().get(type_id).to_dict())


@bp.route("/<int:type_id>", methods=["PUT"])
def update_declaration_type(type_id):
    updated = get_declaration_type_service().update(type_id, request.get_json(silent=True))
    return jsonify(updated.to_dict())


@bp.route("/<int:type_id>", methods=["DELETE"])
def delete_declaration_type(type_id):
    get_declaration_type_service().delete(type_id)
    return jsonify({"message": "Declaration type deleted successfully"})


@bp.route("/<int:type_id>/toggle", methods=["PATCH"])
def toggle_declaration_type(type_id):
    return jsonify(get_declaration_type_service().toggle_status(type_id).to_dict())
