from flask import Blueprint, jsonify
from flask_login import login_user, logout_user, current_user, login_required
from werkzeug.security import check_password_hash
from dao import user as user_dao
from utils.forms import payload

auth_bp = Blueprint("auth", __name__, url_prefix="/auth")


@auth_bp.route("/login", methods=["POST"])
def login():
    data = payload()
    user = user_dao.get_by_username(data.get("username", ""))

    if not user or not check_password_hash(user.password_hash, data.get("password", "")):
        return jsonify({"error": "Invalid username or password"}), 401

    if not user.is_active:
        return jsonify({"error": "Account is disabled"}), 403

    login_user(user, remember=True)
    return jsonify({"id": user.id, "username": user.username, "roles": sorted(r.value for r in user.roles)})


@auth_bp.route("/logout", methods=["POST"])
def logout():
    if current_user.is_authenticated:
        logout_user()
    return jsonify({"logged_out": True})


@auth_bp.route("/me")
@login_required
def me():
    return jsonify(
        {
            "id": current_user.id,
            "username": current_user.username,
            "full_name": current_user.full_name,
            "roles": sorted(r.value for r in current_user.roles),
        }
    )
