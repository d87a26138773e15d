import re
import unicodedata
from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from bson import ObjectId
from bson.errors import InvalidId


def utcnow() -> datetime:
    # Naive UTC, matching what pymongo hands back by default.
    return datetime.now(timezone.utc).replace(tzinfo=None)


def normalize_email(value: Optional[str]) -> str:
    return str(value or "").strip().lower()


def normalize_name(value: Optional[str]) -> str:
    if value is None:
        return ""
    return " ".join(str(value).split()).strip()


def slugify(value: Optional[str]) -> str:
    normalized_name = normalize_name(value).lower()
    ascii_name = (
        unicodedata.normalize("NFKD", normalized_name)
        .encode("ascii", "ignore")
        .decode("ascii")
    )
    slug = re.sub(r"[^a-z0-9]+", "-", ascii_name).strip("-")
    if not slug:
        slug = uuid4().hex
    return slug


def parse_object_id(value) -> Optional[ObjectId]:
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        return None


def round_money(value) -> float:
    return round(float(value or 0), 2)


def isoformat(value) -> Optional[str]:
    if isinstance(value, datetime):
        return value.isoformat() + "Z"
    return None
