import logging
from contextlib import contextmanager

from .utils import utcnow

log = logging.getLogger(__name__)

DEFAULT_ROLES = [
    {"_id": 1, "name": "user", "description": "Customer account"},
    {"_id": 2, "name": "staff", "description": "Catalog staff"},
    {"_id": 3, "name": "admin", "description": "Administrator"},
]


class Database:
    """
    Thin wrapper over a pymongo (or mongomock) database.

    Owns index creation, role seeding and the transaction boundary used by
    multi-document writes.
    """

    def __init__(self, db, use_transactions: bool = True):
        self.db = db
        self.use_transactions = use_transactions

    def __getattr__(self, name):
        return getattr(self.db, name)

    @property
    def client(self):
        return self.db.client

    @contextmanager
    def transaction(self):
        """
        Yield a session bound to a started transaction, or ``None`` when
        transactions are disabled. Leaving the block with an exception
        aborts; leaving it normally commits.
        """
        if not self.use_transactions:
            yield None
            return

        with self.client.start_session() as session:
            with session.start_transaction():
                yield session

    def ensure_indexes(self):
        try:
            self.db.logins.create_index("email", unique=True)
            self.db.users.create_index("username", unique=True)
            self.db.roles.create_index("name", unique=True)
            self.db.refresh_tokens.create_index("jti", unique=True)
            self.db.refresh_tokens.create_index("expires_at", expireAfterSeconds=0)
            self.db.categories.create_index("name", unique=True)
            self.db.categories.create_index("slug", unique=True)
            self.db.products.create_index("name", unique=True)
            self.db.products.create_index("slug", unique=True)
            self.db.products.create_index("category_id")
            self.db.product_images.create_index(
                [("product_id", 1), ("image_url", 1)], unique=True
            )
            self.db.orders.create_index("invoice_id", unique=True)
            self.db.order_items.create_index("order_id")
        except Exception as exc:
            log.warning("Unable to ensure indexes: %s", exc)

    def seed_roles(self):
        timestamp = utcnow()
        try:
            self._upsert_roles(timestamp)
        except Exception as exc:
            log.warning("Unable to seed roles: %s", exc)

    def _upsert_roles(self, timestamp):
        for role in DEFAULT_ROLES:
            self.db.roles.update_one(
                {"_id": role["_id"]},
                {
                    "$setOnInsert": {
                        "name": role["name"],
                        "description": role["description"],
                        "created_at": timestamp,
                        "updated_at": timestamp,
                    }
                },
                upsert=True,
            )
