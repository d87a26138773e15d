from datetime import date, datetime, time

import bcrypt
from flask import Blueprint, current_app, jsonify, request
from flask_jwt_extended import jwt_required
from pymongo.errors import DuplicateKeyError

from ..auth import ANY_ROLE, current_user_document, get_services, require_role
from ..errors import Conflict, InternalError, NotFound
from ..schemas import RegisterInput, UserInput, UserPartialInput
from ..serializers import serialize_user
from ..utils import normalize_email
from .helpers import public_url

bp = Blueprint("users", __name__, url_prefix="/api/users")


def as_datetime(value):
    # BSON has no plain date type.
    if isinstance(value, date) and not isinstance(value, datetime):
        return datetime.combine(value, time.min)
    return value


def profile_fields(data) -> dict:
    fields = data.model_dump(exclude_unset=True, exclude={"email", "password"})
    fields = {key: value for key, value in fields.items() if value is not None}
    if "date_of_birth" in fields:
        fields["date_of_birth"] = as_datetime(fields["date_of_birth"])
    return fields


def ensure_account_available(email: str, username: str):
    accounts = get_services().accounts
    if accounts.email_taken(email):
        raise Conflict("Email already in use.")
    if accounts.username_taken(username):
        raise Conflict("Username already in use.")


def create_account(user_fields: dict, email: str, password_hash: bytes, role_name: str, failure_message: str):
    services = get_services()
    role_id = services.roles.id_for(role_name)
    try:
        with services.database.transaction() as session:
            return services.accounts.create_account(
                user_fields, email, password_hash, role_id, session=session
            )
    except DuplicateKeyError:
        raise
    except Exception:
        current_app.logger.exception("Account creation failed for %s", email)
        raise InternalError(failure_message)


@bp.route("/registeruser/", methods=["POST"])
def register_user():
    data = RegisterInput.model_validate(request.get_json(silent=True) or {})
    email = normalize_email(data.email)
    ensure_account_available(email, data.username)

    services = get_services()
    password_hash = bcrypt.hashpw(data.password.encode("utf-8"), bcrypt.gensalt())
    token = services.tokens.issue_email_token(
        email,
        {
            "email": email,
            "password": password_hash,
            "user": profile_fields(data),
        },
    )

    link = public_url("users.verify_email", token=token)
    email_sent, email_error = services.mailer.send_verification_email(email, link)
    if not email_sent:
        services.tokens.discard_email_token(token)
        current_app.logger.error("Verification email to %s failed: %s", email, email_error)
        return (
            jsonify(
                {
                    "message": "We could not send the verification email. Please try again in a moment.",
                    "error": email_error,
                }
            ),
            502,
        )

    return jsonify({"message": "Verification email sent."}), 200


@bp.route("/verifyemail/", methods=["GET"])
def verify_email():
    registration = get_services().tokens.consume_email_token(request.args.get("token", ""))
    email = registration["email"]
    user_fields = registration["user"]

    accounts = get_services().accounts
    if accounts.email_taken(email):
        raise Conflict("Cannot complete verification. Email already registered.")
    if accounts.username_taken(user_fields.get("username", "")):
        raise Conflict("Cannot complete verification. Username already registered.")

    user_document = create_account(
        user_fields,
        email,
        registration["password"],
        "user",
        "Failed to create account after verification",
    )
    current_app.logger.info("Verified and created account %s", user_document.get("username"))
    return jsonify({"message": "Account verified and created."}), 201


@bp.route("/registerstaffuser/", methods=["POST"])
@jwt_required()
@require_role("admin")
def register_staff_user():
    data = RegisterInput.model_validate(request.get_json(silent=True) or {})
    email = normalize_email(data.email)
    ensure_account_available(email, data.username)

    password_hash = bcrypt.hashpw(data.password.encode("utf-8"), bcrypt.gensalt())
    user_document = create_account(
        profile_fields(data),
        email,
        password_hash,
        "staff",
        "Failed to create staff account",
    )
    current_app.logger.info("Created staff account %s", user_document.get("username"))
    return jsonify({"message": "Staff account created successfully."}), 201


@bp.route("/listusers/", methods=["GET"])
@jwt_required()
@require_role("admin")
def list_users():
    users = get_services().accounts.list_users()
    return jsonify([serialize_user(document) for document in users])


@bp.route("/getuser/<user_id>", methods=["GET"])
@jwt_required()
@require_role("admin")
def get_user(user_id: str):
    user_document = get_services().accounts.get_user(user_id)
    if not user_document:
        raise NotFound("User not found")
    return jsonify(serialize_user(user_document))


@bp.route("/user/", methods=["GET"])
@jwt_required()
@require_role(*ANY_ROLE)
def retrieve_current_user():
    return jsonify(serialize_user(current_user_document()))


@bp.route("/updateuser/", methods=["PUT", "PATCH"])
@jwt_required()
@require_role(*ANY_ROLE)
def update_current_user():
    payload = request.get_json(silent=True) or {}
    if request.method == "PATCH":
        data = UserPartialInput.model_validate(payload)
    else:
        data = UserInput.model_validate(payload)

    user_document = current_user_document()
    accounts = get_services().accounts
    changes = profile_fields(data)

    username = changes.get("username")
    if username and accounts.username_taken(username, exclude_id=user_document["_id"]):
        raise Conflict("Username already in use.")

    updated = accounts.update_user(user_document["_id"], changes)
    return jsonify(serialize_user(updated))


@bp.route("/deleteuser/<user_id>", methods=["DELETE"])
@jwt_required()
@require_role("admin")
def delete_user(user_id: str):
    if not get_services().accounts.delete_user(user_id):
        raise NotFound("User not found")
    current_app.logger.info("Deleted user %s", user_id)
    return "", 204


@bp.route("/deactivateuser/", methods=["PATCH"])
@jwt_required()
@require_role(*ANY_ROLE)
def deactivate_current_user():
    user_document = current_user_document()
    get_services().accounts.update_user(user_document["_id"], {"is_active": False})
    return jsonify({"message": "Account deactivated successfully."})
