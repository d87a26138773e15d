from datetime import datetime
from typing import Dict, Iterable, Optional

from .utils import isoformat


def serialize_category(category_document, products: Optional[Iterable[Dict]] = None):
    if not category_document:
        return {}

    payload = {
        "id": str(category_document.get("_id")),
        "name": category_document.get("name", ""),
        "slug": category_document.get("slug", ""),
        "isActive": bool(category_document.get("is_active", False)),
        "createdAt": isoformat(category_document.get("created_at")),
        "updatedAt": isoformat(category_document.get("updated_at")),
    }
    if products is not None:
        payload["products"] = [serialize_product(product) for product in products]
    return payload


def serialize_product(product_document, category_document=None):
    if not product_document:
        return {}

    category_id = product_document.get("category_id")
    payload = {
        "id": str(product_document.get("_id")),
        "name": product_document.get("name", ""),
        "slug": product_document.get("slug", ""),
        "description": product_document.get("description", "") or "",
        "price": round(float(product_document.get("price", 0) or 0), 2),
        "stock_quantity": int(product_document.get("stock_quantity", 0) or 0),
        "category_id": str(category_id) if category_id else None,
        "isActive": bool(product_document.get("is_active", False)),
        "createdAt": isoformat(product_document.get("created_at")),
        "updatedAt": isoformat(product_document.get("updated_at")),
    }
    if category_document:
        payload["category"] = category_document.get("name", "")
    return payload


def serialize_product_image(image_document):
    if not image_document:
        return {}
    return {
        "id": str(image_document.get("_id")),
        "image_url": image_document.get("image_url", ""),
        "product_id": str(image_document.get("product_id")),
        "createdAt": isoformat(image_document.get("created_at")),
        "updatedAt": isoformat(image_document.get("updated_at")),
    }


def serialize_user(user_document):
    if not user_document:
        return {}

    date_of_birth = user_document.get("date_of_birth")
    return {
        "id": str(user_document.get("_id")),
        "username": user_document.get("username", ""),
        "firstName": user_document.get("first_name", ""),
        "lastName": user_document.get("last_name", ""),
        "phone": user_document.get("phone", ""),
        "dateOfBirth": date_of_birth.date().isoformat()
        if isinstance(date_of_birth, datetime)
        else None,
    }


def serialize_order(order_document, items: Optional[Iterable[Dict]] = None):
    if not order_document:
        return {}

    payload = {
        "id": str(order_document.get("_id")),
        "invoice_id": order_document.get("invoice_id", ""),
        "first_name": order_document.get("first_name", ""),
        "last_name": order_document.get("last_name", ""),
        "sub_total": order_document.get("sub_total", 0),
        "tax": order_document.get("tax", 0),
        "tax_ico": order_document.get("tax_ico", 0),
        "total": order_document.get("total", 0),
        "is_paid": bool(order_document.get("is_paid", False)),
        "payment_method": order_document.get("payment_method", ""),
        "payment_reference": order_document.get("payment_reference", ""),
        "user_id": str(order_document.get("user_id")),
        "created_at": isoformat(order_document.get("created_at")),
        "updated_at": isoformat(order_document.get("updated_at")),
    }
    if items is not None:
        payload["items"] = [
            {
                "id": str(item.get("_id")),
                "product_id": str(item.get("product_id")),
                "quantity": item.get("quantity", 0),
                "price": item.get("price", 0),
                "order_id": str(item.get("order_id")),
            }
            for item in items
        ]
    return payload
