from fastapi import Depends, HTTPException, status, Security
from fastapi.security import OAuth2PasswordBearer

from sqlalchemy.orm import Session

import os
import uuid
from datetime import datetime, timedelta, timezone
from typing import Tuple
from dotenv import load_dotenv
from jose import jwt, JWTError
from passlib.context import CryptContext

from cinelog.db.database_session import get_db
from cinelog.db.models.users import User


load_dotenv()

# Create configured hashing machine -> Hash pwd with this machine
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

# Load env vars for JWT
JWT_SECRET = os.getenv("JWT_SECRET", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_ISSUER = os.getenv("JWT_ISSUER", "cinelog")
ACCESS_TOKEN_EXPIRE_MIN = int(os.getenv("ACCESS_TOKEN_EXPIRE_MIN", "60"))
EMAIL_VERIFICATION_EXPIRE_MIN = int(os.getenv("EMAIL_VERIFICATION_EXPIRE_MIN", "1440"))

EMAIL_VERIFICATION_PURPOSE = "email_verification"

oauth_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token")


def hash_password(pwd: str) -> str:
    '''
    Hashes the given password with the defined pwd_context manager (hashing machine).

    Parameters
    ----------
    pwd: str
        The password that will be hashed

    Returns
    -------
    The hashed password.
    '''
    return pwd_context.hash(pwd)


def verify_password(pwd: str, hashed_pwd: str) -> bool:
    '''
    Verifys if the given plain password corresponds to the given hashed pwd.

    Parameters
    ----------
    pwd: str
        Password in raw text.
    hashed_pwd: str
        Hashed password.

    Returns
    -------
    True if pwd and hashed password belong together, otherwise false.
    '''
    return pwd_context.verify(pwd, hashed_pwd)


def create_access_token(user: User) -> Tuple[str, datetime]:
    '''
    Creates an JWT access token for the given user.

    Parameters
    ----------
    user: User
        The user to give the token to. His id becomes the subject.

    Returns
    -------
    access_token: str
        The jwt access token for the user.
    expire: datetime
        Point in time (UTC) the token expires.
    '''
    # Define expiration date
    now = datetime.now(timezone.utc)
    expire = now + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MIN)

    # Define payload
    payload = {
        "sub": str(user.id),
        "email": user.email,
        "username": user.username,
        "email_verified": bool(user.is_email_verified),
        "jti": str(uuid.uuid4()),
        "iat": now,
        "iss": JWT_ISSUER,
        "exp": expire,
    }

    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM), expire


def create_email_verification_token(user: User) -> str:
    '''
    Creates a short lived JWT that confirms the current email address of the user.
    It carries a purpose claim, so it is never accepted as access token.
    '''
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user.id),
        "email": user.email,
        "purpose": EMAIL_VERIFICATION_PURPOSE,
        "iat": now,
        "iss": JWT_ISSUER,
        "exp": now + timedelta(minutes=EMAIL_VERIFICATION_EXPIRE_MIN),
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


def decode_email_verification_token(token: str) -> dict:
    payload = decode_token(token)
    if payload.get("purpose") != EMAIL_VERIFICATION_PURPOSE:
        raise JWTError("Not an email verification token.")
    return payload


def decode_token(token: str) -> dict:
    """
    Decodes a jwt token and returns its payload.

    Parameters
    ----------
    token : str
        The jwt access token for a specific subject.

    Returns
    -------
    payload: dict
        The payload of the decoded JWT token.
    """
    # Decode the jwt token, checks signature, expiry and issuer
    payload = jwt.decode(
        token=token,
        key=JWT_SECRET,
        algorithms=[JWT_ALGORITHM],
        issuer=JWT_ISSUER,
    )

    # Extracts the sub value from the dict -> user id
    sub = payload.get("sub")

    # Checks if user id could be extracted
    if not sub:
        raise JWTError("Missing subject (sub) claim.")

    return payload


def get_current_user(
        token: str = Security(oauth_scheme),
        db: Session = Depends(get_db),
) -> User:
    '''
    Gets a jwt access token and a db session object. First it decodes the given access token.
    If the extracted user id is part of the DB, then the function returns the user.
    Otherwise raises an HTTP Exception.

    Parameters
    ----------
    token: str
        JWT access token.
    db: Session
        A DB session object to access the DB trough SQLalchemy.

    Returns
    ----------
    user : User
        A User object containing the user information that correspondes to the
        given token, if found. Else HTTPException.
    '''
    # Checks if token is valid else, Exception
    try:
        payload = decode_token(token=token)
        # Purpose bound tokens (email verification) are no access tokens
        if payload.get("purpose"):
            raise JWTError("Token is not an access token.")
        user_id = uuid.UUID(payload["sub"])
    except (JWTError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token.",
            headers={"WWW-Authenticate": "Bearer"},
        )

    # Search if user exists in DB
    user = db.get(User, user_id)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found.",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return user
