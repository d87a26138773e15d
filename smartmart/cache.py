"""
Short-lived key/value stores with take-once semantics.

Two stores use this: the pending-order cache (invoice -> priced cart) and
pending registrations keyed by email-token jti. Both are injected into
the services that need them so their lifetime is owned by the app factory.
"""

import logging
import threading
import time
from datetime import timedelta
from typing import Callable, Dict, Optional, Tuple

from .utils import utcnow

log = logging.getLogger(__name__)


class TTLStore:
    """Interface: ``set`` with an expiry, ``take`` reads and removes."""

    def set(self, key: str, value, ttl_seconds: int):
        raise NotImplementedError

    def take(self, key: str):
        """Return the value and delete it, or ``None`` if missing or expired."""
        raise NotImplementedError


class MemoryTTLStore(TTLStore):
    """Process-local store. Entries are lost on restart."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: Dict[str, Tuple[float, object]] = {}
        self._lock = threading.Lock()

    def set(self, key: str, value, ttl_seconds: int):
        expires_at = self._clock() + ttl_seconds
        with self._lock:
            self._purge_expired()
            self._entries[key] = (expires_at, value)

    def take(self, key: str):
        with self._lock:
            entry = self._entries.pop(key, None)
        if entry is None:
            return None
        expires_at, value = entry
        if expires_at <= self._clock():
            return None
        return value

    def __len__(self):
        with self._lock:
            self._purge_expired()
            return len(self._entries)

    def _purge_expired(self):
        now = self._clock()
        expired = [key for key, (expires_at, _) in self._entries.items() if expires_at <= now]
        for key in expired:
            del self._entries[key]


class MongoTTLStore(TTLStore):
    """
    Store backed by a Mongo collection with a TTL index on ``expires_at``.

    Mongo's TTL monitor only sweeps about once a minute, so ``take`` also
    filters on ``expires_at`` itself.
    """

    def __init__(self, collection, now: Optional[Callable] = None):
        self.collection = collection
        self._now = now or utcnow

    def ensure_indexes(self):
        try:
            self.collection.create_index("expires_at", expireAfterSeconds=0)
        except Exception as exc:
            log.warning("Unable to ensure TTL index on %s: %s", self.collection.name, exc)

    def set(self, key: str, value, ttl_seconds: int):
        now = self._now()
        self.collection.replace_one(
            {"_id": key},
            {
                "_id": key,
                "value": value,
                "created_at": now,
                "expires_at": now + timedelta(seconds=ttl_seconds),
            },
            upsert=True,
        )

    def take(self, key: str):
        document = self.collection.find_one_and_delete(
            {"_id": key, "expires_at": {"$gt": self._now()}}
        )
        if not document:
            return None
        return document.get("value")


def build_ttl_store(backend: str, collection) -> TTLStore:
    if backend == "mongo":
        store = MongoTTLStore(collection)
        store.ensure_indexes()
        return store
    if backend == "memory":
        return MemoryTTLStore()
    raise ValueError(f"Unknown cache backend: {backend!r}")
