import bcrypt
from flask import Blueprint, current_app, jsonify, request
from flask_jwt_extended import get_jwt_identity, jwt_required

from ..auth import ANY_ROLE, current_user_document, get_services, require_role
from ..errors import BadRequest, Unauthorized
from ..schemas import LoginInput, LogoutInput
from ..utils import normalize_email

bp = Blueprint("auth", __name__, url_prefix="/api/auth")

INVALID_LOGIN_MESSAGE = "Invalid email, password, or account is inactive"


@bp.route("/login/", methods=["POST"])
def login():
    data = LoginInput.model_validate(request.get_json(silent=True) or {})
    email = normalize_email(data.email)
    services = get_services()

    login_record = services.accounts.find_login_by_email(email)
    if not login_record or not bcrypt.checkpw(
        data.password.encode("utf-8"), login_record["password"]
    ):
        raise Unauthorized(INVALID_LOGIN_MESSAGE)

    user = services.accounts.get_user(login_record["user_id"], active_only=True)
    if not user:
        raise Unauthorized(INVALID_LOGIN_MESSAGE)

    tokens = services.tokens.issue_session_tokens(user, email)
    services.accounts.touch_last_login(user["_id"])
    current_app.logger.info("User %s signed in", user.get("username"))

    return jsonify(tokens), 200


@bp.route("/logout/", methods=["POST"])
@jwt_required()
@require_role(*ANY_ROLE)
def logout():
    data = LogoutInput.model_validate(request.get_json(silent=True) or {})
    if not get_services().tokens.revoke_refresh_token(data.refresh_token):
        raise BadRequest("Invalid or already revoked token")
    return jsonify({"message": "Successfully logged out"}), 200


@bp.route("/refresh/", methods=["POST"])
@jwt_required(refresh=True)
def refresh():
    services = get_services()
    user = current_user_document()
    login_record = services.accounts.find_login_by_user(user["_id"]) or {}
    access_token = services.tokens.issue_access_token(user, login_record.get("email", ""))
    current_app.logger.info("Refreshed access token for user %s", get_jwt_identity())
    return jsonify({"access_token": access_token}), 200
