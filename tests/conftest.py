from datetime import datetime
from urllib.parse import parse_qs, urlparse

import bcrypt
import mongomock
import pytest

from smartmart import create_app

MERCHANT_CUSTOMER_ID = "578123"
MERCHANT_KEY = "test-p-key"


class FakeMailer:
    """Records outgoing verification mails instead of calling Resend."""

    def __init__(self):
        self.sent = []
        self.fail_with = None

    def send_verification_email(self, recipient_email, link):
        if self.fail_with:
            return False, self.fail_with
        self.sent.append({"to": recipient_email, "link": link})
        return True, None

    def last_token(self):
        link = self.sent[-1]["link"]
        return parse_qs(urlparse(link).query)["token"][0]


@pytest.fixture
def mongo_db():
    return mongomock.MongoClient().smartmart_test


@pytest.fixture
def app(mongo_db):
    app = create_app(
        {
            "TESTING": True,
            "ENV": "testing",
            "MONGO_TRANSACTIONS": False,
            "CACHE_BACKEND": "memory",
            "JWT_SECRET_KEY": "test-jwt-secret-with-enough-length-0001",
            "EMAIL_TOKEN_SECRET": "test-email-secret-with-enough-length-01",
            "P_CUST_ID_CLIENTE": MERCHANT_CUSTOMER_ID,
            "P_KEY": MERCHANT_KEY,
            "PUBLIC_BASE_URL": "http://shop.test",
        },
        mongo_db=mongo_db,
    )
    app.extensions["smartmart"].mailer = FakeMailer()
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def services(app):
    return app.extensions["smartmart"]


@pytest.fixture
def make_account(client, services):
    """Create an account directly in the store and sign it in."""

    def _make_account(username="buyer", role="user", email=None, password="s3cret-pass"):
        email = email or f"{username}@example.com"
        password_hash = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=4))
        user = services.accounts.create_account(
            {
                "username": username,
                "first_name": username.title(),
                "last_name": "Tester",
                "phone": "3001234567",
                "date_of_birth": datetime(1990, 5, 17),
            },
            email,
            password_hash,
            services.roles.id_for(role),
        )
        response = client.post("/api/auth/login/", json={"email": email, "password": password})
        assert response.status_code == 200, response.get_json()
        tokens = response.get_json()
        return {
            "user": user,
            "email": email,
            "password": password,
            "tokens": tokens,
            "headers": {"Authorization": f"Bearer {tokens['access_token']}"},
        }

    return _make_account


@pytest.fixture
def staff(make_account):
    return make_account(username="clerk", role="staff")


@pytest.fixture
def admin(make_account):
    return make_account(username="root", role="admin")


@pytest.fixture
def category(services):
    return services.catalog.create_category("Fresh Fruit")


@pytest.fixture
def product(services, category):
    return services.catalog.create_product(
        {
            "name": "Green Apple",
            "description": "Crisp",
            "price": 12.50,
            "stock_quantity": 10,
            "category_id": category["_id"],
        }
    )
