"""
JWT wiring and role checks.

``JWTManager`` verifies bearer tokens for ``@jwt_required()``; the loaders
below shape its failures into the API's error bodies and consult the stored
refresh tokens on every refresh. Routes that need a specific role stack
``require_role`` under ``@jwt_required()``.
"""

from functools import wraps

from flask import current_app, jsonify
from flask_jwt_extended import JWTManager, get_jwt, get_jwt_identity

from .errors import Forbidden, Unauthorized

ANY_ROLE = ("user", "staff", "admin")
STAFF_ROLES = ("staff", "admin")


def get_services():
    return current_app.extensions["smartmart"]


def init_jwt(app) -> JWTManager:
    """
    Attach ``JWTManager`` to the app.

    Missing header -> 401 "Token missing"; bad signature, expiry, wrong
    type or revoked refresh token -> 403 "Invalid token".
    """
    jwt = JWTManager(app)

    def invalid_token_response():
        return jsonify({"error": "Invalid token"}), 403

    @jwt.unauthorized_loader
    def missing_token(reason):
        return jsonify({"error": "Token missing"}), 401

    @jwt.invalid_token_loader
    def invalid_token(reason):
        current_app.logger.info("Rejected token: %s", reason)
        return invalid_token_response()

    @jwt.expired_token_loader
    def expired_token(jwt_header, jwt_payload):
        return invalid_token_response()

    @jwt.revoked_token_loader
    def revoked_token(jwt_header, jwt_payload):
        current_app.logger.info("Rejected revoked refresh token %s", jwt_payload.get("jti"))
        return invalid_token_response()

    @jwt.token_in_blocklist_loader
    def refresh_token_revoked(jwt_header, jwt_payload):
        if jwt_payload.get("type") != "refresh":
            return False
        return get_services().tokens.refresh_token_revoked(jwt_payload["jti"])

    return jwt


def require_role(*role_names: str):
    """
    Reject callers whose token ``role`` claim is not one of ``role_names``.

    Must sit below ``@jwt_required()`` so the claims are already verified.
    """

    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            roles = get_services().roles
            allowed_ids = {
                str(role_id)
                for role_id in (roles.id_for(name) for name in role_names)
                if role_id is not None
            }
            claimed_role = get_jwt().get("role")
            if claimed_role is None or str(claimed_role) not in allowed_ids:
                raise Forbidden("Access denied")
            return view(*args, **kwargs)

        return wrapper

    return decorator


def current_user_document(active_only: bool = True):
    """Load the account behind the verified token or raise ``Unauthorized``."""
    user = get_services().accounts.get_user(get_jwt_identity(), active_only=active_only)
    if not user:
        raise Unauthorized("Account not found or inactive")
    return user
