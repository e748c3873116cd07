"""
Stage Catalog Blueprint.

  GET    /api/v1/stages            ?project_id= adds that project's custom stages
  POST   /api/v1/stages
  GET    /api/v1/stages/<id>
  PUT    /api/v1/stages/<id>
  DELETE /api/v1/stages/<id>
"""

from flask import Blueprint, jsonify, request

from stagetrack.auth import current_caller
from stagetrack.blueprints import query_int
from stagetrack.services import stage_service

stage_bp = Blueprint("stages", __name__, url_prefix="/api/v1/stages")


@stage_bp.route("", methods=["GET"])
def list_stages():
    stages = stage_service.list_stages(current_caller(), project_id=query_int("project_id"))
    return jsonify([s.to_dict() for s in stages]), 200


@stage_bp.route("", methods=["POST"])
def create_stage():
    data = request.get_json(silent=True) or {}
    stage = stage_service.create_stage(current_caller(), data)
    return jsonify(stage.to_dict()), 201


@stage_bp.route("/<int:stage_id>", methods=["GET"])
def get_stage(stage_id):
    return jsonify(stage_service.get_stage(current_caller(), stage_id).to_dict()), 200


@stage_bp.route("/<int:stage_id>", methods=["PUT"])
def update_stage(stage_id):
    data = request.get_json(silent=True) or {}
    stage = stage_service.update_stage(current_caller(), stage_id, data)
    return jsonify(stage.to_dict()), 200


@stage_bp.route("/<int:stage_id>", methods=["DELETE"])
def delete_stage(stage_id):
    stage_service.delete_stage(current_caller(), stage_id)
    return jsonify({"message": "Stage deleted"}), 200
