"""
Data access for the Mongo collections.

Every catalog read goes through ``CatalogRepository._scope`` so the
soft-delete rule (``is_active``) is applied in one place.
"""

import threading
import time
from typing import Callable, Dict, List, Optional

from pymongo import ReturnDocument

from .utils import parse_object_id, slugify, utcnow

ACTIVE = True
INACTIVE = False
ANY = None


class RoleRegistry:
    """
    In-process name -> id table for roles, reloaded every ``ttl_seconds``.
    """

    def __init__(self, collection, ttl_seconds: int = 300, clock: Callable[[], float] = time.monotonic):
        self.collection = collection
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._ids_by_name: Dict[str, int] = {}
        self._loaded_at: Optional[float] = None

    def refresh(self):
        table = {
            str(document.get("name")): document["_id"]
            for document in self.collection.find({}, {"name": 1})
        }
        with self._lock:
            self._ids_by_name = table
            self._loaded_at = self._clock()

    def _ensure_fresh(self):
        loaded_at = self._loaded_at
        if loaded_at is None or self._clock() - loaded_at >= self.ttl_seconds:
            self.refresh()

    def id_for(self, name: str):
        self._ensure_fresh()
        return self._ids_by_name.get(name)

    def name_for(self, role_id) -> Optional[str]:
        self._ensure_fresh()
        for name, candidate in self._ids_by_name.items():
            if str(candidate) == str(role_id):
                return name
        return None


class CatalogRepository:
    def __init__(self, db):
        self.categories = db.categories
        self.products = db.products
        self.images = db.product_images

    @staticmethod
    def _scope(query: Dict, is_active=ACTIVE) -> Dict:
        if is_active is ANY:
            return dict(query)
        return {**query, "is_active": bool(is_active)}

    # --- categories ---

    def list_categories(self, is_active=ACTIVE) -> List[Dict]:
        return list(self.categories.find(self._scope({}, is_active)).sort("name", 1))

    def get_category(self, category_id, is_active=ACTIVE) -> Optional[Dict]:
        object_id = parse_object_id(category_id)
        if object_id is None:
            return None
        return self.categories.find_one(self._scope({"_id": object_id}, is_active))

    def get_category_by_slug(self, slug: str, is_active=ACTIVE) -> Optional[Dict]:
        return self.categories.find_one(self._scope({"slug": slug}, is_active))

    def find_category(self, category_id, slug: str, is_active=ANY) -> Optional[Dict]:
        object_id = parse_object_id(category_id)
        if object_id is None:
            return None
        return self.categories.find_one(
            self._scope({"_id": object_id, "slug": slug}, is_active)
        )

    def category_name_taken(self, name: str, exclude_id=None) -> bool:
        query: Dict = {"name": name}
        if exclude_id is not None:
            query["_id"] = {"$ne": exclude_id}
        return self.categories.find_one(query) is not None

    def create_category(self, name: str) -> Dict:
        timestamp = utcnow()
        document = {
            "name": name,
            "slug": slugify(name),
            "is_active": True,
            "created_at": timestamp,
            "updated_at": timestamp,
        }
        result = self.categories.insert_one(document)
        document["_id"] = result.inserted_id
        return document

    def update_category(self, category_id, fields: Dict) -> Optional[Dict]:
        changes = dict(fields)
        changes.pop("is_active", None)
        if "name" in changes:
            changes["slug"] = slugify(changes["name"])
        changes["updated_at"] = utcnow()
        return self.categories.find_one_and_update(
            {"_id": category_id},
            {"$set": changes},
            return_document=ReturnDocument.AFTER,
        )

    def set_category_active(self, category_id, active: bool):
        self.categories.update_one(
            {"_id": category_id},
            {"$set": {"is_active": bool(active), "updated_at": utcnow()}},
        )

    # --- products ---

    def list_products(self, is_active=ACTIVE, category_id=None) -> List[Dict]:
        query: Dict = {}
        if category_id is not None:
            query["category_id"] = category_id
        return list(self.products.find(self._scope(query, is_active)).sort("name", 1))

    def get_product(self, product_id, is_active=ACTIVE, session=None) -> Optional[Dict]:
        object_id = parse_object_id(product_id)
        if object_id is None:
            return None
        return self.products.find_one(
            self._scope({"_id": object_id}, is_active), session=session
        )

    def get_product_by_slug(self, slug: str) -> Optional[Dict]:
        product = self.products.find_one(self._scope({"slug": slug}))
        if not product:
            return None
        if not self.get_category(product.get("category_id")):
            return None
        return product

    def find_product(self, product_id, slug: str, is_active=ANY) -> Optional[Dict]:
        object_id = parse_object_id(product_id)
        if object_id is None:
            return None
        return self.products.find_one(
            self._scope({"_id": object_id, "slug": slug}, is_active)
        )

    def product_name_taken(self, name: str, exclude_id=None) -> bool:
        query: Dict = {"name": name}
        if exclude_id is not None:
            query["_id"] = {"$ne": exclude_id}
        return self.products.find_one(query) is not None

    def create_product(self, fields: Dict) -> Dict:
        timestamp = utcnow()
        document = {
            **fields,
            "slug": slugify(fields["name"]),
            "is_active": True,
            "created_at": timestamp,
            "updated_at": timestamp,
        }
        result = self.products.insert_one(document)
        document["_id"] = result.inserted_id
        return document

    def update_product(self, product_id, fields: Dict) -> Optional[Dict]:
        changes = dict(fields)
        changes.pop("is_active", None)
        if "name" in changes:
            changes["slug"] = slugify(changes["name"])
        changes["updated_at"] = utcnow()
        return self.products.find_one_and_update(
            {"_id": product_id},
            {"$set": changes},
            return_document=ReturnDocument.AFTER,
        )

    def set_product_active(self, product_id, active: bool):
        self.products.update_one(
            {"_id": product_id},
            {"$set": {"is_active": bool(active), "updated_at": utcnow()}},
        )

    def decrement_stock(self, product_id, quantity: int, session=None) -> bool:
        """Take ``quantity`` off the stock unless that would go below zero."""
        object_id = parse_object_id(product_id)
        if object_id is None:
            return False
        result = self.products.update_one(
            {"_id": object_id, "stock_quantity": {"$gte": quantity}},
            {"$inc": {"stock_quantity": -quantity}, "$set": {"updated_at": utcnow()}},
            session=session,
        )
        return result.modified_count == 1

    def restore_stock(self, product_id, quantity: int):
        self.products.update_one(
            {"_id": parse_object_id(product_id)},
            {"$inc": {"stock_quantity": quantity}, "$set": {"updated_at": utcnow()}},
        )

    # --- product images ---

    def list_images(self, product_id) -> List[Dict]:
        return list(self.images.find({"product_id": product_id}).sort("created_at", 1))

    def get_image(self, image_id) -> Optional[Dict]:
        object_id = parse_object_id(image_id)
        if object_id is None:
            return None
        return self.images.find_one({"_id": object_id})

    def image_url_taken(self, product_id, image_url: str, exclude_id=None) -> bool:
        query: Dict = {"product_id": product_id, "image_url": image_url}
        if exclude_id is not None:
            query["_id"] = {"$ne": exclude_id}
        return self.images.find_one(query) is not None

    def create_image(self, product_id, image_url: str) -> Dict:
        timestamp = utcnow()
        document = {
            "image_url": image_url,
            "product_id": product_id,
            "created_at": timestamp,
            "updated_at": timestamp,
        }
        result = self.images.insert_one(document)
        document["_id"] = result.inserted_id
        return document

    def update_image(self, image_id, fields: Dict) -> Optional[Dict]:
        return self.images.find_one_and_update(
            {"_id": image_id},
            {"$set": {**fields, "updated_at": utcnow()}},
            return_document=ReturnDocument.AFTER,
        )

    def delete_image(self, image_id):
        self.images.delete_one({"_id": image_id})


class AccountRepository:
    def __init__(self, db):
        self.users = db.users
        self.logins = db.logins
        self.refresh_tokens = db.refresh_tokens

    def find_login_by_email(self, email: str) -> Optional[Dict]:
        return self.logins.find_one({"email": email})

    def get_user(self, user_id, active_only: bool = False) -> Optional[Dict]:
        object_id = parse_object_id(user_id)
        if object_id is None:
            return None
        query: Dict = {"_id": object_id}
        if active_only:
            query["is_active"] = True
        return self.users.find_one(query)

    def find_login_by_user(self, user_id) -> Optional[Dict]:
        return self.logins.find_one({"user_id": user_id})

    def find_user_by_username(self, username: str) -> Optional[Dict]:
        return self.users.find_one({"username": username})

    def email_taken(self, email: str) -> bool:
        return self.logins.find_one({"email": email}) is not None

    def username_taken(self, username: str, exclude_id=None) -> bool:
        query: Dict = {"username": username}
        if exclude_id is not None:
            query["_id"] = {"$ne": exclude_id}
        return self.users.find_one(query) is not None

    def create_account(self, user_fields: Dict, email: str, password_hash: bytes, role_id, session=None) -> Dict:
        timestamp = utcnow()
        user_document = {
            **user_fields,
            "is_active": True,
            "role_id": role_id,
            "last_login": None,
            "created_at": timestamp,
            "updated_at": timestamp,
        }
        result = self.users.insert_one(user_document, session=session)
        user_document["_id"] = result.inserted_id
        self.logins.insert_one(
            {
                "email": email,
                "password": password_hash,
                "user_id": result.inserted_id,
            },
            session=session,
        )
        return user_document

    def list_users(self) -> List[Dict]:
        return list(self.users.find().sort("username", 1))

    def update_user(self, user_id, fields: Dict) -> Optional[Dict]:
        return self.users.find_one_and_update(
            {"_id": user_id},
            {"$set": {**fields, "updated_at": utcnow()}},
            return_document=ReturnDocument.AFTER,
        )

    def touch_last_login(self, user_id):
        self.users.update_one({"_id": user_id}, {"$set": {"last_login": utcnow()}})

    def delete_user(self, user_id) -> bool:
        object_id = parse_object_id(user_id)
        if object_id is None:
            return False
        result = self.users.delete_one({"_id": object_id})
        if result.deleted_count:
            self.logins.delete_many({"user_id": object_id})
            self.refresh_tokens.delete_many({"user_id": object_id})
        return bool(result.deleted_count)

    def store_refresh_token(self, user_id, token: str, jti: str, issued_at, expires_at):
        self.refresh_tokens.insert_one(
            {
                "user_id": user_id,
                "token": token,
                "jti": jti,
                "issued_at": issued_at,
                "expires_at": expires_at,
                "revoked": False,
            }
        )

    def find_refresh_token(self, jti: str) -> Optional[Dict]:
        return self.refresh_tokens.find_one({"jti": jti})

    def revoke_refresh_token(self, token: str) -> bool:
        result = self.refresh_tokens.update_one(
            {"token": token, "revoked": False}, {"$set": {"revoked": True}}
        )
        return result.modified_count == 1


class OrderRepository:
    def __init__(self, db):
        self.orders = db.orders
        self.items = db.order_items

    def create_order(self, fields: Dict, session=None) -> Dict:
        timestamp = utcnow()
        document = {**fields, "created_at": timestamp, "updated_at": timestamp}
        result = self.orders.insert_one(document, session=session)
        document["_id"] = result.inserted_id
        return document

    def create_order_item(self, fields: Dict, session=None) -> Dict:
        timestamp = utcnow()
        document = {**fields, "created_at": timestamp, "updated_at": timestamp}
        result = self.items.insert_one(document, session=session)
        document["_id"] = result.inserted_id
        return document

    def delete_order(self, order_id):
        self.items.delete_many({"order_id": order_id})
        self.orders.delete_one({"_id": order_id})

    def find_by_invoice(self, invoice_id: str) -> Optional[Dict]:
        return self.orders.find_one({"invoice_id": invoice_id})

    def list_for_user(self, user_id) -> List[Dict]:
        return list(self.orders.find({"user_id": user_id}).sort("created_at", -1))

    def list_items(self, order_id) -> List[Dict]:
        return list(self.items.find({"order_id": order_id}))
