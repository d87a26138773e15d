from flask import Blueprint, current_app, jsonify, request
from flask_jwt_extended import jwt_required

from ..auth import ANY_ROLE, STAFF_ROLES, get_services, require_role
from ..errors import Conflict, NotFound
from ..repositories import ACTIVE, INACTIVE
from ..schemas import CategoryInput
from ..serializers import serialize_category

bp = Blueprint("categories", __name__, url_prefix="/api/categories")


@bp.route("/listcategories/", methods=["GET"])
def list_categories():
    categories = get_services().catalog.list_categories()
    return jsonify([serialize_category(document) for document in categories])


@bp.route("/createcategory/", methods=["POST"])
@jwt_required()
@require_role(*STAFF_ROLES)
def create_category():
    data = CategoryInput.model_validate(request.get_json(silent=True) or {})
    catalog = get_services().catalog

    if catalog.category_name_taken(data.name):
        raise Conflict("Category already exists")

    category_document = catalog.create_category(data.name)
    current_app.logger.info("Created category %s", category_document["slug"])
    return jsonify(serialize_category(category_document)), 201


@bp.route("/retrievecategory/<slug>", methods=["GET"])
@jwt_required()
@require_role(*ANY_ROLE)
def retrieve_category(slug: str):
    catalog = get_services().catalog
    category_document = catalog.get_category_by_slug(slug)
    if not category_document:
        raise NotFound("Category not found or inactive")

    products = catalog.list_products(category_id=category_document["_id"])
    return jsonify(serialize_category(category_document, products=products))


@bp.route("/updatecategory/<slug>/<category_id>", methods=["PUT"])
@jwt_required()
@require_role(*STAFF_ROLES)
def update_category(slug: str, category_id: str):
    data = CategoryInput.model_validate(request.get_json(silent=True) or {})
    catalog = get_services().catalog

    category_document = catalog.find_category(category_id, slug)
    if not category_document:
        raise NotFound("Category not found")

    changes = {}
    if data.name != category_document.get("name"):
        if catalog.category_name_taken(data.name, exclude_id=category_document["_id"]):
            raise Conflict("Category name already in use")
        changes["name"] = data.name

    updated = catalog.update_category(category_document["_id"], changes)
    return jsonify(serialize_category(updated)), 200


@bp.route("/deletecategory/<slug>/<category_id>", methods=["DELETE"])
@jwt_required()
@require_role(*STAFF_ROLES)
def delete_category(slug: str, category_id: str):
    catalog = get_services().catalog
    category_document = catalog.find_category(category_id, slug)
    if not category_document:
        raise NotFound("Category not found")

    # Soft delete: the row stays so existing products keep their reference.
    catalog.set_category_active(category_document["_id"], False)
    current_app.logger.info("Deactivated category %s", slug)
    return jsonify({"message": "Category deactivated successfully"}), 200


@bp.route("/deletecategory/<slug>/<category_id>", methods=["PATCH"])
@jwt_required()
@require_role(*STAFF_ROLES)
def deactivate_category(slug: str, category_id: str):
    catalog = get_services().catalog
    category_document = catalog.find_category(category_id, slug, is_active=ACTIVE)
    if not category_document:
        raise NotFound("Active category not found")

    catalog.set_category_active(category_document["_id"], False)
    return jsonify({"message": "Category deactivated successfully"})


@bp.route("/activatecategory/<slug>/<category_id>", methods=["PATCH"])
@jwt_required()
@require_role(*STAFF_ROLES)
def activate_category(slug: str, category_id: str):
    catalog = get_services().catalog
    category_document = catalog.find_category(category_id, slug, is_active=INACTIVE)
    if not category_document:
        raise NotFound("Inactive category not found or already active")

    catalog.set_category_active(category_document["_id"], True)
    return jsonify({"message": "Category activated successfully"})
