from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from cinelog.api.security import (
    EMAIL_VERIFICATION_PURPOSE,
    JWT_ALGORITHM,
    JWT_SECRET,
    create_access_token,
    verify_password,
)
from cinelog.services.accounts import (
    authenticate_user,
    change_password,
    normalize_email,
    register_user,
    request_email_verification,
    validate_username,
    verify_email,
)
from cinelog.services.errors import ConflictError, UnauthenticatedError, ValidationError


@pytest.mark.parametrize("username", ["bob", "movie_fan-99", "a" * 50, "Zoë"])
def test_valid_usernames(username):
    assert validate_username(username) == username


@pytest.mark.parametrize("username", ["", "ab", "a" * 51, "has space", "dot.name", "semi;colon", None])
def test_invalid_usernames(username):
    with pytest.raises(ValidationError):
        validate_username(username)


def test_email_is_normalized():
    assert normalize_email("  Alice@Example.COM ") == "alice@example.com"
    with pytest.raises(ValidationError):
        normalize_email("no-at-sign")


def test_register_hashes_password(db):
    user = register_user(db, "alice", "Alice@Example.com", "secret-password", first_name=" Alice ")

    assert user.email == "alice@example.com"
    assert user.first_name == "Alice"
    assert user.is_email_verified is False
    assert user.hashed_password != "secret-password"
    assert verify_password("secret-password", user.hashed_password)


def test_register_rejects_duplicates(db):
    register_user(db, "alice", "alice@example.com", "secret-password")

    with pytest.raises(ConflictError, match="email"):
        register_user(db, "alice2", "ALICE@example.com", "secret-password")
    with pytest.raises(ConflictError, match="Username"):
        register_user(db, "Alice", "other@example.com", "secret-password")


def test_authenticate_by_email_or_username(db):
    user = register_user(db, "alice", "alice@example.com", "secret-password")

    assert authenticate_user(db, "ALICE@example.com", "secret-password").id == user.id
    assert authenticate_user(db, "alice", "secret-password").id == user.id
    with pytest.raises(UnauthenticatedError):
        authenticate_user(db, "alice", "wrong-password")
    with pytest.raises(UnauthenticatedError):
        authenticate_user(db, "nobody", "secret-password")


def test_change_password(db):
    user = register_user(db, "alice", "alice@example.com", "secret-password")

    with pytest.raises(ValidationError):
        change_password(db, user, "wrong-password", "new-password")

    change_password(db, user, "secret-password", "new-password")
    assert authenticate_user(db, "alice", "new-password").id == user.id


def test_verify_email(make_user, db):
    user = make_user("alice")
    assert user.is_email_verified is False
    token = request_email_verification(user)

    verified = verify_email(db, token)

    assert verified.id == user.id
    assert verified.is_email_verified is True
    # Second use of the same token changes nothing
    assert verify_email(db, token).is_email_verified is True
    with pytest.raises(ConflictError):
        request_email_verification(user)


def test_verify_email_rejects_bad_tokens(make_user, db):
    user = make_user("alice")
    access_token, _ = create_access_token(user)
    expired = jwt.encode(
        {
            "sub": str(user.id),
            "email": user.email,
            "purpose": EMAIL_VERIFICATION_PURPOSE,
            "iss": "cinelog",
            "exp": datetime.now(timezone.utc) - timedelta(minutes=1),
        },
        JWT_SECRET,
        algorithm=JWT_ALGORITHM,
    )

    for token in ("garbage", access_token, expired):
        with pytest.raises(ValidationError, match="Invalid or expired"):
            verify_email(db, token)
    assert user.is_email_verified is False


def test_verify_email_after_email_change(make_user, db):
    user = make_user("alice")
    token = request_email_verification(user)
    user.email = "alice.new@example.com"
    db.commit()

    with pytest.raises(ValidationError, match="current email"):
        verify_email(db, token)
