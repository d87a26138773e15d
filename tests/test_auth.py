from datetime import timedelta


def test_login_returns_token_pair(client, make_account, services):
    account = make_account()

    tokens = account["tokens"]
    assert set(tokens) == {"access_token", "refresh_token"}
    assert services.database.refresh_tokens.count_documents({"revoked": False}) == 1
    assert services.accounts.get_user(account["user"]["_id"])["last_login"] is not None


def test_login_rejects_wrong_password(client, make_account):
    account = make_account()
    response = client.post(
        "/api/auth/login/", json={"email": account["email"], "password": "wrong-password"}
    )
    assert response.status_code == 401
    assert response.get_json() == {"error": "Invalid email, password, or account is inactive"}


def test_login_rejects_inactive_account(client, make_account, services):
    account = make_account()
    services.accounts.update_user(account["user"]["_id"], {"is_active": False})

    response = client.post(
        "/api/auth/login/", json={"email": account["email"], "password": account["password"]}
    )
    assert response.status_code == 401


def test_login_validates_payload(client):
    response = client.post("/api/auth/login/", json={"email": "not-an-email", "password": "x"})
    assert response.status_code == 400
    fields = {error["field"] for error in response.get_json()["errors"]}
    assert fields == {"email", "password"}


def test_logout_revokes_refresh_token(client, make_account):
    account = make_account()
    refresh_token = account["tokens"]["refresh_token"]

    response = client.post(
        "/api/auth/logout/", json={"refreshToken": refresh_token}, headers=account["headers"]
    )
    assert response.status_code == 200

    again = client.post(
        "/api/auth/logout/", json={"refresh_token": refresh_token}, headers=account["headers"]
    )
    assert again.status_code == 400
    assert again.get_json() == {"error": "Invalid or already revoked token"}

    refreshed = client.post(
        "/api/auth/refresh/", headers={"Authorization": f"Bearer {refresh_token}"}
    )
    assert refreshed.status_code == 403
    assert refreshed.get_json() == {"error": "Invalid token"}


def test_refresh_issues_access_token(client, make_account):
    account = make_account()
    response = client.post(
        "/api/auth/refresh/",
        headers={"Authorization": f"Bearer {account['tokens']['refresh_token']}"},
    )
    assert response.status_code == 200
    access_token = response.get_json()["access_token"]

    profile = client.get("/api/users/user/", headers={"Authorization": f"Bearer {access_token}"})
    assert profile.status_code == 200
    assert profile.get_json()["username"] == "buyer"


def test_garbage_token_is_forbidden(client):
    response = client.get("/api/users/user/", headers={"Authorization": "Bearer garbage"})
    assert response.status_code == 403
    assert response.get_json() == {"error": "Invalid token"}


def test_missing_token(client):
    response = client.get("/api/users/user/")
    assert response.status_code == 401
    assert response.get_json() == {"error": "Token missing"}


def test_role_check_denies_customer(client, make_account):
    account = make_account()
    response = client.post(
        "/api/categories/createcategory/", json={"name": "Snacks"}, headers=account["headers"]
    )
    assert response.status_code == 403
    assert response.get_json() == {"error": "Access denied"}


def test_unknown_api_route(client):
    response = client.get("/api/nothing-here")
    assert response.status_code == 404
    assert response.get_json() == {"error": True, "message": "API endpoint not found"}


def test_health(client):
    assert client.get("/health").get_json() == {"status": "ok"}


def test_refresh_token_cannot_call_protected_routes(client, make_account):
    account = make_account()
    response = client.get(
        "/api/users/user/",
        headers={"Authorization": f"Bearer {account['tokens']['refresh_token']}"},
    )
    assert response.status_code == 403


def test_expired_access_token(app, client, make_account, services):
    account = make_account()
    with app.app_context():
        expired = services.tokens.issue_access_token(
            account["user"], account["email"], expires_delta=timedelta(seconds=-1)
        )

    response = client.get("/api/users/user/", headers={"Authorization": f"Bearer {expired}"})
    assert response.status_code == 403
    assert response.get_json() == {"error": "Invalid token"}
