from flask import Blueprint, current_app, jsonify, request
from flask_jwt_extended import jwt_required

from ..auth import STAFF_ROLES, get_services, require_role
from ..errors import BadRequest, Conflict, NotFound
from ..repositories import ACTIVE, INACTIVE
from ..schemas import ProductInput, ProductPartialInput
from ..serializers import serialize_category, serialize_product

bp = Blueprint("products", __name__, url_prefix="/api/products")

INVALID_CATEGORY_MESSAGE = "Invalid category ID or category is inactive"


def resolve_active_category(category_id):
    category_document = get_services().catalog.get_category(category_id)
    if not category_document:
        raise BadRequest(INVALID_CATEGORY_MESSAGE)
    return category_document


@bp.route("/createproduct/", methods=["POST"])
@jwt_required()
@require_role(*STAFF_ROLES)
def create_product():
    data = ProductInput.model_validate(request.get_json(silent=True) or {})
    catalog = get_services().catalog

    if catalog.product_name_taken(data.name):
        raise Conflict("Product name already exists")

    category_document = resolve_active_category(data.category_id)
    product_document = catalog.create_product(
        {
            "name": data.name,
            "description": data.description,
            "price": data.price,
            "stock_quantity": data.stock_quantity,
            "category_id": category_document["_id"],
        }
    )
    current_app.logger.info("Created product %s", product_document["slug"])
    return jsonify(serialize_product(product_document, category_document)), 201


@bp.route("/listproducts/", methods=["GET"])
def list_products():
    products = get_services().catalog.list_products()
    return jsonify([serialize_product(document) for document in products])


@bp.route("/productscategories/", methods=["GET"])
def list_products_by_category():
    catalog = get_services().catalog
    payload = [
        serialize_category(
            category_document,
            products=catalog.list_products(category_id=category_document["_id"]),
        )
        for category_document in catalog.list_categories()
    ]
    return jsonify(payload)


@bp.route("/productscategory/<slug>/", methods=["GET"])
def products_for_category(slug: str):
    catalog = get_services().catalog
    category_document = catalog.get_category_by_slug(slug)
    if not category_document:
        raise NotFound("Category not found or inactive")

    products = catalog.list_products(category_id=category_document["_id"])
    return jsonify([serialize_product(document) for document in products])


@bp.route("/retrieveproduct/<slug>/", methods=["GET"])
def retrieve_product(slug: str):
    catalog = get_services().catalog
    product_document = catalog.get_product_by_slug(slug)
    if not product_document:
        raise NotFound("Product not found or inactive")

    category_document = catalog.get_category(product_document.get("category_id"))
    return jsonify(serialize_product(product_document, category_document))


@bp.route("/updateproduct/<slug>/<product_id>/", methods=["PUT", "PATCH"])
@jwt_required()
@require_role(*STAFF_ROLES)
def update_product(slug: str, product_id: str):
    payload = request.get_json(silent=True) or {}
    if request.method == "PATCH":
        data = ProductPartialInput.model_validate(payload)
    else:
        data = ProductInput.model_validate(payload)
    changes = data.model_dump(exclude_unset=True)

    catalog = get_services().catalog
    product_document = catalog.find_product(product_id, slug)
    if not product_document:
        raise NotFound("Product not found")

    new_name = changes.get("name")
    if new_name is None:
        changes.pop("name", None)
    elif new_name == product_document.get("name"):
        changes.pop("name")
    elif catalog.product_name_taken(new_name, exclude_id=product_document["_id"]):
        raise Conflict("Product name already in use")

    if "category_id" in changes:
        if changes["category_id"] is None:
            changes.pop("category_id")
        else:
            changes["category_id"] = resolve_active_category(changes["category_id"])["_id"]

    for field_name in ("description", "price", "stock_quantity"):
        if field_name in changes and changes[field_name] is None:
            changes.pop(field_name)

    updated = catalog.update_product(product_document["_id"], changes)
    return jsonify(serialize_product(updated)), 200


@bp.route("/deleteproduct/<slug>/<product_id>/", methods=["DELETE"])
@jwt_required()
@require_role(*STAFF_ROLES)
def delete_product(slug: str, product_id: str):
    catalog = get_services().catalog
    product_document = catalog.find_product(product_id, slug)
    if not product_document:
        raise NotFound("Product not found")

    # Order items keep pointing at the product, so it is only deactivated.
    catalog.set_product_active(product_document["_id"], False)
    current_app.logger.info("Deactivated product %s", slug)
    return jsonify({"message": "Product deactivated successfully"}), 200


@bp.route("/deactivateproduct/<slug>/<product_id>/", methods=["PATCH"])
@jwt_required()
@require_role(*STAFF_ROLES)
def deactivate_product(slug: str, product_id: str):
    catalog = get_services().catalog
    product_document = catalog.find_product(product_id, slug, is_active=ACTIVE)
    if not product_document:
        raise NotFound("Active product not found")

    catalog.set_product_active(product_document["_id"], False)
    return jsonify({"message": "Product deactivated successfully"})


@bp.route("/activateproduct/<slug>/<product_id>/", methods=["PATCH"])
@jwt_required()
@require_role(*STAFF_ROLES)
def activate_product(slug: str, product_id: str):
    catalog = get_services().catalog
    product_document = catalog.find_product(product_id, slug, is_active=INACTIVE)
    if not product_document:
        raise NotFound("Inactive product not found or already active")

    catalog.set_product_active(product_document["_id"], True)
    return jsonify({"message": "Product activated successfully"})
