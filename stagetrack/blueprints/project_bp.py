"""
Project Blueprint: projects, their stage instances and connections.

  GET    /api/v1/projects                          ?year=&month=
  GET    /api/v1/projects/years
  POST   /api/v1/projects
  GET    /api/v1/projects/<id>
  PUT    /api/v1/projects/<id>
  DELETE /api/v1/projects/<id>
  PATCH  /api/v1/projects/<id>/status

  GET    /api/v1/projects/<id>/stages
  POST   /api/v1/projects/<id>/stages
  PUT    /api/v1/projects/<id>/stages/<sid>
  DELETE /api/v1/projects/<id>/stages/<sid>

  GET    /api/v1/projects/<id>/connections
  POST   /api/v1/projects/<id>/connections
  DELETE /api/v1/projects/<id>/connections/<cid>
"""

from flask import Blueprint, jsonify, request

from stagetrack.auth import current_caller
from stagetrack.blueprints import query_int
from stagetrack.services import connection_service, project_service, project_stage_service
from stagetrack.services.project_service import ProjectPatch
from stagetrack.utils.errors import E, api_error

project_bp = Blueprint("projects", __name__, url_prefix="/api/v1/projects")


# ── Projects ─────────────────────────────────────────────────────────────────


@project_bp.route("", methods=["GET"])
def list_projects():
    year = query_int("year", minimum=1)
    month = query_int("month", minimum=1, maximum=12)
    projects = project_service.list_projects(current_caller(), year=year, month=month)
    return jsonify([p.to_dict() for p in projects]), 200


@project_bp.route("/years", methods=["GET"])
def list_years():
    return jsonify(project_service.list_project_years(current_caller())), 200


@project_bp.route("", methods=["POST"])
def create_project():
    data = request.get_json(silent=True) or {}
    project = project_service.create_project(current_caller(), data)
    return jsonify(project.to_dict()), 201


@project_bp.route("/<int:project_id>", methods=["GET"])
def get_project(project_id):
    project = project_service.get_project(current_caller(), project_id)
    return jsonify(project.to_dict(include_stages=True)), 200


@project_bp.route("/<int:project_id>", methods=["PUT"])
def update_project(project_id):
    data = request.get_json(silent=True) or {}
    patch = ProjectPatch.from_payload(data)
    project = project_service.update_project(current_caller(), project_id, patch)
    return jsonify(project.to_dict()), 200


@project_bp.route("/<int:project_id>", methods=["DELETE"])
def delete_project(project_id):
    project_service.delete_project(current_caller(), project_id)
    return jsonify({"message": "Project deleted"}), 200


@project_bp.route("/<int:project_id>/status", methods=["PATCH"])
def update_status(project_id):
    data = request.get_json(silent=True) or {}
    if not data.get("status"):
        return api_error(E.VALIDATION_REQUIRED, "status is required")
    project = project_service.update_project_status(current_caller(), project_id, data["status"])
    return jsonify(project.to_dict()), 200


# ── Stage instances ──────────────────────────────────────────────────────────


@project_bp.route("/<int:project_id>/stages", methods=["GET"])
def list_stages(project_id):
    instances = project_stage_service.list_project_stages(current_caller(), project_id)
    return jsonify([ps.to_dict() for ps in instances]), 200


@project_bp.route("/<int:project_id>/stages", methods=["POST"])
def add_stage(project_id):
    data = request.get_json(silent=True) or {}
    instance = project_stage_service.add_project_stage(current_caller(), project_id, data)
    return jsonify(instance.to_dict()), 201


@project_bp.route("/<int:project_id>/stages/<int:instance_id>", methods=["PUT"])
def update_stage(project_id, instance_id):
    data = request.get_json(silent=True) or {}
    instance = project_stage_service.update_project_stage(
        current_caller(), project_id, instance_id, data,
    )
    return jsonify(instance.to_dict()), 200


@project_bp.route("/<int:project_id>/stages/<int:instance_id>", methods=["DELETE"])
def delete_stage(project_id, instance_id):
    project_stage_service.delete_project_stage(current_caller(), project_id, instance_id)
    return jsonify({"message": "Stage removed from project"}), 200


# ── Connections ──────────────────────────────────────────────────────────────


@project_bp.route("/<int:project_id>/connections", methods=["GET"])
def list_connections(project_id):
    connections = connection_service.list_connections(current_caller(), project_id)
    return jsonify([c.to_dict(include_endpoints=True) for c in connections]), 200


@project_bp.route("/<int:project_id>/connections", methods=["POST"])
def create_connection(project_id):
    data = request.get_json(silent=True) or {}
    connection = connection_service.create_connection(
        current_caller(), project_id, data.get("from_stage"), data.get("to_stage"),
    )
    return jsonify(connection.to_dict()), 201


@project_bp.route("/<int:project_id>/connections/<int:connection_id>", methods=["DELETE"])
def delete_connection(project_id, connection_id):
    connection_service.delete_connection(current_caller(), project_id, connection_id)
    return jsonify({"message": "Connection deleted"}), 200
