import os
from typing import Dict, List

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    raw_value = os.getenv(name)
    if raw_value is None or not raw_value.strip():
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except (TypeError, ValueError):
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except (TypeError, ValueError):
        return default


def _env_list(name: str, default: str = "") -> List[str]:
    raw_value = os.getenv(name, default) or ""
    return [entry.strip() for entry in raw_value.split(",") if entry.strip()]


def load_config() -> Dict[str, object]:
    """Read the application settings from the environment (and .env)."""
    return {
        "ENV": (os.getenv("ENV", "production") or "production").strip().lower(),
        "LOG_LEVEL": (os.getenv("LOG_LEVEL", "INFO") or "INFO").strip().upper(),
        "MONGO_URI": os.getenv("MONGO_URI", "mongodb://localhost:27017/smartmart"),
        # Multi-document transactions need a replica set.
        "MONGO_TRANSACTIONS": _env_bool("MONGO_TRANSACTIONS", True),
        "JWT_SECRET_KEY": os.getenv("JWT_SECRET_KEY", "change-me-in-production"),
        "EMAIL_TOKEN_SECRET": os.getenv(
            "EMAIL_TOKEN_SECRET", "change-me-email-in-production"
        ),
        "ACCESS_TOKEN_MINUTES": _env_int("ACCESS_TOKEN_MINUTES", 15),
        "REFRESH_TOKEN_DAYS": _env_int("REFRESH_TOKEN_DAYS", 7),
        "EMAIL_TOKEN_MINUTES": _env_int("EMAIL_TOKEN_MINUTES", 5),
        "TAX_RATE": _env_float("TAX_RATE", 0.19),
        "PAYMENT_CURRENCY": (os.getenv("PAYMENT_CURRENCY", "usd") or "usd").strip(),
        "STORE_NAME": (os.getenv("STORE_NAME", "Smartmart") or "Smartmart").strip(),
        "PUBLIC_BASE_URL": (os.getenv("PUBLIC_BASE_URL", "") or "").strip(),
        "TRUSTED_PROXY_HOPS": _env_int("TRUSTED_PROXY_HOPS", 1),
        "P_CUST_ID_CLIENTE": (os.getenv("P_CUST_ID_CLIENTE", "") or "").strip(),
        "P_KEY": (os.getenv("P_KEY", "") or "").strip(),
        "PENDING_ORDER_TTL_SECONDS": _env_int("PENDING_ORDER_TTL_SECONDS", 300),
        "CACHE_BACKEND": (os.getenv("CACHE_BACKEND", "memory") or "memory")
        .strip()
        .lower(),
        "ROLE_CACHE_TTL_SECONDS": _env_int("ROLE_CACHE_TTL_SECONDS", 300),
        "RESEND_API_KEY": (os.getenv("RESEND_API_KEY") or "").strip(),
        "MAIL_SENDER": (
            os.getenv("MAIL_SENDER", "verification@smartmart.store")
            or "verification@smartmart.store"
        ).strip(),
        "CORS_ALLOWED_ORIGINS": _env_list(
            "CORS_ALLOWED_ORIGINS", "http://localhost:3000,http://localhost:5173"
        ),
        "CORS_METHODS": _env_list("CORS_METHODS", "GET,POST,PUT,PATCH,DELETE"),
        "CORS_ALLOWED_HEADERS": _env_list(
            "CORS_ALLOWED_HEADERS", "Content-Type,Authorization"
        ),
    }
