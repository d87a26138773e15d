from dataclasses import dataclass
from datetime import timedelta
from typing import Dict, Optional

from flask import Flask
from flask_cors import CORS
from flask_pymongo import PyMongo
from werkzeug.middleware.proxy_fix import ProxyFix

from .auth import init_jwt
from .cache import TTLStore, build_ttl_store
from .checkout import CheckoutService
from .config import load_config
from .db import Database
from .errors import register_error_handlers
from .logging_config import setup_logging
from .mail import Mailer
from .repositories import AccountRepository, CatalogRepository, OrderRepository, RoleRegistry
from .routes import register_blueprints
from .tokens import TokenService


@dataclass
class Services:
    database: Database
    catalog: CatalogRepository
    accounts: AccountRepository
    orders: OrderRepository
    roles: RoleRegistry
    pending_orders: TTLStore
    pending_registrations: TTLStore
    tokens: TokenService
    mailer: Mailer
    checkout: CheckoutService


def build_services(app: Flask, mongo_db) -> Services:
    config = app.config
    database = Database(mongo_db, use_transactions=bool(config["MONGO_TRANSACTIONS"]))
    database.ensure_indexes()
    database.seed_roles()

    catalog = CatalogRepository(database)
    accounts = AccountRepository(database)
    orders = OrderRepository(database)
    roles = RoleRegistry(database.roles, ttl_seconds=int(config["ROLE_CACHE_TTL_SECONDS"]))

    pending_orders = build_ttl_store(config["CACHE_BACKEND"], database.pending_orders)
    pending_registrations = build_ttl_store(
        config["CACHE_BACKEND"], database.pending_registrations
    )

    tokens = TokenService(
        accounts,
        pending_registrations,
        email_secret=config["EMAIL_TOKEN_SECRET"],
        email_ttl_minutes=int(config["EMAIL_TOKEN_MINUTES"]),
    )
    mailer = Mailer(
        config["RESEND_API_KEY"],
        config["MAIL_SENDER"],
        store_name=config["STORE_NAME"],
        link_ttl_minutes=int(config["EMAIL_TOKEN_MINUTES"]),
    )
    checkout = CheckoutService(
        database,
        catalog,
        accounts,
        orders,
        pending_orders,
        merchant_customer_id=config["P_CUST_ID_CLIENTE"],
        merchant_key=config["P_KEY"],
        tax_rate=float(config["TAX_RATE"]),
        pending_ttl_seconds=int(config["PENDING_ORDER_TTL_SECONDS"]),
        currency=config["PAYMENT_CURRENCY"],
        store_name=config["STORE_NAME"],
    )
    return Services(
        database=database,
        catalog=catalog,
        accounts=accounts,
        orders=orders,
        roles=roles,
        pending_orders=pending_orders,
        pending_registrations=pending_registrations,
        tokens=tokens,
        mailer=mailer,
        checkout=checkout,
    )


def create_app(config_overrides: Optional[Dict] = None, mongo_db=None) -> Flask:
    """
    Create and configure the Flask application.

    ``mongo_db`` lets callers hand in an existing database object (tests
    pass a mongomock one); otherwise Flask-PyMongo connects to ``MONGO_URI``.
    """
    app = Flask(__name__)

    # --- Configuration ---
    app.config.update(load_config())
    if config_overrides:
        app.config.update(config_overrides)
    app.config["JWT_ACCESS_TOKEN_EXPIRES"] = timedelta(
        minutes=int(app.config["ACCESS_TOKEN_MINUTES"])
    )
    app.config["JWT_REFRESH_TOKEN_EXPIRES"] = timedelta(days=int(app.config["REFRESH_TOKEN_DAYS"]))

    # Honor proxy headers so callback and verification links keep the public origin.
    trusted_proxy_hops = max(0, int(app.config["TRUSTED_PROXY_HOPS"]))
    if trusted_proxy_hops:
        app.wsgi_app = ProxyFix(
            app.wsgi_app,
            x_for=trusted_proxy_hops,
            x_proto=trusted_proxy_hops,
            x_host=trusted_proxy_hops,
            x_port=trusted_proxy_hops,
        )

    setup_logging(app.config["LOG_LEVEL"])

    # --- Initialize extensions ---
    CORS(
        app,
        supports_credentials=True,
        origins=app.config["CORS_ALLOWED_ORIGINS"] or "*",
        methods=app.config["CORS_METHODS"],
        allow_headers=app.config["CORS_ALLOWED_HEADERS"],
    )
    init_jwt(app)

    if mongo_db is None:
        mongo = PyMongo(app)
        mongo_db = mongo.db if mongo.db is not None else mongo.cx["smartmart"]

    app.extensions["smartmart"] = build_services(app, mongo_db)
    register_error_handlers(app)

    # --- Routes ---
    register_blueprints(app)

    @app.route("/health")
    def health():
        return {"status": "ok"}, 200

    return app
