"""
Email Blueprint: recipient address book and report sharing.

  GET    /api/v1/emails
  POST   /api/v1/emails
  PUT    /api/v1/emails/<id>
  DELETE /api/v1/emails/<id>
  POST   /api/v1/emails/share-project   { project_id, recipient_ids, message? }
"""

from flask import Blueprint, jsonify, request

from stagetrack.auth import current_caller
from stagetrack.services import recipient_service
from stagetrack.utils.errors import E, api_error

email_bp = Blueprint("emails", __name__, url_prefix="/api/v1/emails")


@email_bp.route("", methods=["GET"])
def list_recipients():
    recipients = recipient_service.list_recipients(current_caller())
    return jsonify([r.to_dict() for r in recipients]), 200


@email_bp.route("", methods=["POST"])
def create_recipient():
    data = request.get_json(silent=True) or {}
    recipient = recipient_service.create_recipient(current_caller(), data)
    return jsonify(recipient.to_dict()), 201


@email_bp.route("/<int:recipient_id>", methods=["PUT"])
def update_recipient(recipient_id):
    data = request.get_json(silent=True) or {}
    recipient = recipient_service.update_recipient(current_caller(), recipient_id, data)
    return jsonify(recipient.to_dict()), 200


@email_bp.route("/<int:recipient_id>", methods=["DELETE"])
def delete_recipient(recipient_id):
    recipient_service.delete_recipient(current_caller(), recipient_id)
    return jsonify({"message": "Recipient deleted"}), 200


@email_bp.route("/share-project", methods=["POST"])
def share_project():
    data = request.get_json(silent=True) or {}
    project_id = data.get("project_id")
    if project_id in (None, ""):
        return api_error(E.VALIDATION_REQUIRED, "project_id is required")
    try:
        project_id = int(project_id)
    except (TypeError, ValueError):
        return api_error(E.VALIDATION_INVALID, "project_id must be an integer")

    result = recipient_service.share_project(
        current_caller(), project_id, data.get("recipient_ids") or [], data.get("message"),
    )
    return jsonify(result), 200
