"""
User Blueprint: own profile and referred-user management.

  GET  /api/v1/users/profile
  PUT  /api/v1/users/profile
  PUT  /api/v1/users/change-password
  GET  /api/v1/users/referred-users         (manager)
  PUT  /api/v1/users/<id>/toggle-status     (manager)
  GET  /api/v1/users/referral-link          (manager)
"""

from flask import Blueprint, current_app, jsonify, request

from stagetrack.auth import current_caller
from stagetrack.services import account_service

user_bp = Blueprint("users", __name__, url_prefix="/api/v1/users")


@user_bp.route("/profile", methods=["GET"])
def get_profile():
    account = account_service.get_account(current_caller().account_id)
    return jsonify(account.to_dict()), 200


@user_bp.route("/profile", methods=["PUT"])
def update_profile():
    data = request.get_json(silent=True) or {}
    account = account_service.update_profile(current_caller(), data)
    return jsonify(account.to_dict()), 200


@user_bp.route("/change-password", methods=["PUT"])
def change_password():
    data = request.get_json(silent=True) or {}
    account_service.change_password(
        current_caller(), data.get("current_password"), data.get("new_password"),
    )
    return jsonify({"message": "Password updated"}), 200


@user_bp.route("/referred-users", methods=["GET"])
def referred_users():
    accounts = account_service.list_referred_users(current_caller())
    return jsonify([a.to_dict() for a in accounts]), 200


@user_bp.route("/<int:account_id>/toggle-status", methods=["PUT"])
def toggle_status(account_id):
    account = account_service.toggle_account_status(current_caller(), account_id)
    return jsonify(account.to_dict()), 200


@user_bp.route("/referral-link", methods=["GET"])
def referral_link():
    link = account_service.get_referral_link(current_caller(), current_app.config["FRONTEND_URL"])
    return jsonify({"referral_link": link}), 200
