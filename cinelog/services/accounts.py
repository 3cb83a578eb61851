"""
cinelog/services/accounts.py

Registration, login, password changes and email verification of users.
"""
import logging
import uuid
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from jose import JWTError

from cinelog.api.security import (
    create_email_verification_token,
    decode_email_verification_token,
    hash_password,
    verify_password,
)
from cinelog.db.models.users import User, utc_now
from cinelog.services.errors import ConflictError, NotFoundError, UnauthenticatedError, ValidationError


USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 50
EMAIL_MAX_LENGTH = 255

logger = logging.getLogger(__name__)


def validate_username(username: Optional[str]) -> str:
    '''
    Usernames have 3-50 chars and consist of letters, digits, underscores and hyphens.
    Returns the stripped username.
    '''
    if username is None or not username.strip():
        raise ValidationError("Username is required.")

    username = username.strip()
    if len(username) < USERNAME_MIN_LENGTH or len(username) > USERNAME_MAX_LENGTH:
        raise ValidationError(f"Username must be between {USERNAME_MIN_LENGTH} and {USERNAME_MAX_LENGTH} characters.")

    if not all(c.isalnum() or c in "_-" for c in username):
        raise ValidationError("Username can only contain letters, numbers, underscores, and hyphens.")

    return username


def normalize_email(email: Optional[str]) -> str:
    """Strips and lower cases the email after a minimal format check."""
    if email is None or not email.strip():
        raise ValidationError("Email is required.")

    email = email.strip().lower()
    if "@" not in email or len(email) > EMAIL_MAX_LENGTH:
        raise ValidationError("Invalid email format.")

    return email


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip() or None


def register_user(
        db: Session,
        username: str,
        email: str,
        password: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
) -> User:
    '''
    Creates a new user, if neither the email nor the username exist already.

    Raises
    ------
    ValidationError
        If username or email violate the format rules.
    ConflictError
        If email or username are taken.
    '''
    username = validate_username(username)
    email = normalize_email(email)

    # Check if email or username already exist in DB
    if db.scalar(select(User.id).where(User.email == email)) is not None:
        raise ConflictError("User with this email already exists.")
    if db.scalar(select(User.id).where(func.lower(User.username) == username.lower())) is not None:
        raise ConflictError("Username is already taken.")

    now = utc_now()
    user = User(
        username=username,
        email=email,
        hashed_password=hash_password(password),
        first_name=_clean(first_name),
        last_name=_clean(last_name),
        is_email_verified=False,
        created_at=now,
        updated_at=now,
    )

    # Add user to DB, the unique indexes catch parallel registrations
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("User with this email or username already exists.") from None

    db.refresh(user)
    logger.info("Registered user %s (%s)", user.id, user.username)
    return user


def authenticate_user(db: Session, login: str, password: str) -> User:
    '''
    Returns the user whose email or username matches `login` and whose password is
    correct.

    Raises
    ------
    UnauthenticatedError
        If no such user exists or the password is wrong. Both cases share the message.
    '''
    login = (login or "").strip()
    stmt = select(User).where(
        (User.email == login.lower()) | (func.lower(User.username) == login.lower())
    )
    user = db.scalars(stmt).first()

    if user is None or not verify_password(password, user.hashed_password):
        raise UnauthenticatedError("Invalid email or password.")

    return user


def change_password(db: Session, user: User, current_password: str, new_password: str) -> None:
    """Replaces the password hash after checking the current password."""
    if not verify_password(current_password, user.hashed_password):
        raise ValidationError("Current password is incorrect.")

    user.change_password(hash_password(new_password))
    db.commit()
    logger.info("Changed password of user %s", user.id)


def request_email_verification(user: User) -> str:
    '''
    Issues a verification token for the current email of the user. Delivering it
    (mail, link) is left to the caller.
    '''
    if user.is_email_verified:
        raise ConflictError("Email is already verified.")

    logger.info("Issued email verification token for user %s", user.id)
    return create_email_verification_token(user)


def verify_email(db: Session, token: str) -> User:
    '''
    Marks the email of the token's user as verified. Verifying twice is a no-op.

    Raises
    ------
    ValidationError
        Invalid or expired token, or the email changed after the token was issued.
    NotFoundError
        The user of the token no longer exists.
    '''
    try:
        payload = decode_email_verification_token(token)
        user_id = uuid.UUID(payload["sub"])
    except (JWTError, ValueError):
        raise ValidationError("Invalid or expired verification token.") from None

    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found.")

    if payload.get("email") != user.email:
        raise ValidationError("Verification token does not match the current email.")

    if not user.is_email_verified:
        user.verify_email()
        db.commit()
        db.refresh(user)
        logger.info("Verified email of user %s", user.id)

    return user
