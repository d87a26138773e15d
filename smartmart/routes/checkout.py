from flask import Blueprint, current_app, jsonify, request
from flask_jwt_extended import jwt_required

from ..auth import ANY_ROLE, current_user_document, get_services, require_role
from ..schemas import CheckoutRequest
from ..serializers import serialize_order
from .helpers import public_url

bp = Blueprint("checkout", __name__, url_prefix="/api/checkout")


@bp.route("/checkout/", methods=["POST"])
@jwt_required()
@require_role(*ANY_ROLE)
def process_checkout():
    data = CheckoutRequest.model_validate(request.get_json(silent=True) or {})
    user = current_user_document()

    payment_payload = get_services().checkout.initiate(
        data.items,
        user.get("username", ""),
        response_url=public_url("checkout.epayco_response"),
        confirmation_url=public_url("checkout.payment_confirmation"),
    )
    return jsonify(payment_payload), 200


@bp.route("/checkout/confirmation", methods=["POST"])
def payment_confirmation():
    # The gateway posts form-encoded data; JSON is accepted for manual replays.
    payload = request.form.to_dict() if request.form else {}
    if not payload:
        payload = request.get_json(silent=True) or {}

    result = get_services().checkout.confirm(payload)
    return jsonify(result), 200


@bp.route("/epayco/response", methods=["GET"])
def epayco_response():
    return current_app.send_static_file("epayco_response.html")


@bp.route("/orders/", methods=["GET"])
@jwt_required()
@require_role(*ANY_ROLE)
def list_orders():
    services = get_services()
    user = current_user_document()
    orders = [
        serialize_order(order, items=services.orders.list_items(order["_id"]))
        for order in services.orders.list_for_user(user["_id"])
    ]
    return jsonify({"orders": orders})
