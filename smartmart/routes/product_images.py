from flask import Blueprint, jsonify, request
from flask_jwt_extended import jwt_required

from ..auth import STAFF_ROLES, get_services, require_role
from ..errors import BadRequest, Conflict, NotFound
from ..schemas import ProductImageInput
from ..serializers import serialize_product_image

bp = Blueprint("product_images", __name__, url_prefix="/api/productimages")

INVALID_PRODUCT_MESSAGE = "Invalid product ID or product is inactive"
DUPLICATE_IMAGE_MESSAGE = "Image URL already exists for this product"


@bp.route("/createproductimage/", methods=["POST"])
@jwt_required()
@require_role(*STAFF_ROLES)
def create_product_image():
    data = ProductImageInput.model_validate(request.get_json(silent=True) or {})
    catalog = get_services().catalog

    product_document = catalog.get_product(data.product_id)
    if not product_document:
        raise BadRequest(INVALID_PRODUCT_MESSAGE)

    image_url = str(data.image_url)
    if catalog.image_url_taken(product_document["_id"], image_url):
        raise Conflict(DUPLICATE_IMAGE_MESSAGE)

    image_document = catalog.create_image(product_document["_id"], image_url)
    return jsonify(serialize_product_image(image_document)), 201


@bp.route("/productimages/<product_id>", methods=["GET"])
def list_product_images(product_id: str):
    catalog = get_services().catalog
    product_document = catalog.get_product(product_id)
    if not product_document:
        raise NotFound("Product not found or inactive")

    images = catalog.list_images(product_document["_id"])
    return jsonify([serialize_product_image(document) for document in images])


@bp.route("/productimage/<image_id>", methods=["GET"])
def retrieve_product_image(image_id: str):
    catalog = get_services().catalog
    image_document = catalog.get_image(image_id)
    if not image_document or not catalog.get_product(image_document.get("product_id")):
        raise NotFound("Image not found or product is inactive")
    return jsonify(serialize_product_image(image_document))


@bp.route("/updateproductimage/<image_id>", methods=["PUT"])
@jwt_required()
@require_role(*STAFF_ROLES)
def update_product_image(image_id: str):
    data = ProductImageInput.model_validate(request.get_json(silent=True) or {})
    catalog = get_services().catalog

    image_document = catalog.get_image(image_id)
    if not image_document:
        raise NotFound("Image not found")

    product_id = image_document.get("product_id")
    if str(product_id) != data.product_id:
        product_document = catalog.get_product(data.product_id)
        if not product_document:
            raise BadRequest(INVALID_PRODUCT_MESSAGE)
        product_id = product_document["_id"]

    image_url = str(data.image_url)
    if catalog.image_url_taken(product_id, image_url, exclude_id=image_document["_id"]):
        raise Conflict(DUPLICATE_IMAGE_MESSAGE)

    updated = catalog.update_image(
        image_document["_id"], {"image_url": image_url, "product_id": product_id}
    )
    return jsonify(serialize_product_image(updated)), 200


@bp.route("/deleteproductimage/<image_id>", methods=["DELETE"])
@jwt_required()
@require_role(*STAFF_ROLES)
def delete_product_image(image_id: str):
    catalog = get_services().catalog
    image_document = catalog.get_image(image_id)
    if not image_document:
        raise NotFound("Image not found")

    catalog.delete_image(image_document["_id"])
    return "", 204
