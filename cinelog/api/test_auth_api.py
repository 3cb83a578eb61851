from datetime import datetime, timedelta, timezone

from jose import jwt

from cinelog.api.security import JWT_ALGORITHM, JWT_SECRET, create_email_verification_token, decode_token


REGISTER_BODY = {"username": "alice", "email": "Alice@Example.com", "password": "secret-password"}


def test_register_returns_token_and_user(client):
    response = client.post("/auth/register", json=REGISTER_BODY)

    assert response.status_code == 201
    body = response.json()
    assert body["token_type"] == "bearer"
    assert body["user"]["email"] == "alice@example.com"
    assert body["user"]["is_email_verified"] is False

    payload = decode_token(body["access_token"])
    assert payload["sub"] == body["user"]["id"]
    assert payload["username"] == "alice"


def test_register_conflicts_and_validation(client):
    client.post("/auth/register", json=REGISTER_BODY)

    duplicate = client.post("/auth/register", json=dict(REGISTER_BODY, username="alice2"))
    assert duplicate.status_code == 409

    bad_name = client.post("/auth/register", json=dict(REGISTER_BODY, username="a!", email="x@example.com"))
    assert bad_name.status_code == 422

    short_password = client.post("/auth/register", json=dict(REGISTER_BODY, username="bob", password="123"))
    assert short_password.status_code == 422


def test_login_and_me(client):
    client.post("/auth/register", json=REGISTER_BODY)

    login = client.post("/auth/token", data={"username": "alice@example.com", "password": "secret-password"})
    assert login.status_code == 200
    token = login.json()["access_token"]

    me = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["username"] == "alice"


def test_login_with_bad_credentials(client):
    client.post("/auth/register", json=REGISTER_BODY)

    response = client.post("/auth/token", data={"username": "alice", "password": "wrong-password"})

    assert response.status_code == 401
    assert response.headers["WWW-Authenticate"] == "Bearer"


def test_invalid_and_expired_tokens(client, make_user):
    user = make_user("alice")

    assert client.get("/auth/me", headers={"Authorization": "Bearer nonsense"}).status_code == 401

    expired = jwt.encode(
        {"sub": str(user.id), "iss": "cinelog", "exp": datetime.now(timezone.utc) - timedelta(minutes=1)},
        JWT_SECRET,
        algorithm=JWT_ALGORITHM,
    )
    assert client.get("/auth/me", headers={"Authorization": f"Bearer {expired}"}).status_code == 401


def test_change_password(client, make_user, auth_headers):
    headers = auth_headers(make_user("alice", password="secret-password"))

    wrong = client.post(
        "/auth/change-password",
        json={"current_password": "nope-nope", "new_password": "another-password"},
        headers=headers,
    )
    assert wrong.status_code == 422

    ok = client.post(
        "/auth/change-password",
        json={"current_password": "secret-password", "new_password": "another-password"},
        headers=headers,
    )
    assert ok.status_code == 200

    login = client.post("/auth/token", data={"username": "alice", "password": "another-password"})
    assert login.status_code == 200


def test_email_verification_flow(client, make_user, auth_headers):
    user = make_user("alice")
    headers = auth_headers(user)

    assert client.post("/auth/resend-verification", headers=headers).status_code == 202

    token = create_email_verification_token(user)
    verified = client.post("/auth/verify-email", json={"token": token})
    assert verified.status_code == 200
    assert verified.json()["is_email_verified"] is True

    assert client.get("/auth/me", headers=headers).json()["is_email_verified"] is True
    assert client.post("/auth/resend-verification", headers=headers).status_code == 409


def test_verification_and_access_tokens_are_not_interchangeable(client, make_user, auth_headers):
    user = make_user("alice")
    verification_token = create_email_verification_token(user)
    access_headers = auth_headers(user)

    as_bearer = client.get("/auth/me", headers={"Authorization": f"Bearer {verification_token}"})
    assert as_bearer.status_code == 401

    access_token = access_headers["Authorization"].split()[1]
    assert client.post("/auth/verify-email", json={"token": access_token}).status_code == 422
