import logging

from fastapi import APIRouter, Depends, status
from fastapi.security import OAuth2PasswordRequestForm

from sqlalchemy.orm import Session

from cinelog.db.database_session import get_db
from cinelog.db.models.users import User
from cinelog.api.schemas import (
    AuthResponse,
    ChangePasswordRequest,
    MessageResponse,
    RegisterRequest,
    Token,
    UserResponse,
    VerifyEmailRequest,
)
from cinelog.api.security import create_access_token, get_current_user
from cinelog.services.accounts import (
    authenticate_user,
    change_password,
    register_user,
    request_email_verification,
    verify_email,
)


logger = logging.getLogger(__name__)

# Init route obj
router = APIRouter(prefix="/auth", tags=["auth"])


def to_user_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        username=user.username,
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        bio=user.bio,
        avatar_url=user.avatar_url,
        is_email_verified=user.is_email_verified,
        created_at=user.created_at,
    )


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(payload: RegisterRequest, db: Session = Depends(get_db)):
    """
    Creates a new user, if neither the email nor the username already exist, and
    logs him in right away.

    **Parameters**:\n
    `payload` (RegisterRequest): username, email, password and optional names.\n

    **Returns**:\n
    `AuthResponse`(response_model): access token, its expiry and the created user.\n

    **Errors**: 409 if email or username are taken, 422 for invalid usernames.
    """
    user = register_user(
        db,
        username=payload.username,
        email=payload.email,
        password=payload.password,
        first_name=payload.first_name,
        last_name=payload.last_name,
    )
    token, expires_at = create_access_token(user)

    return AuthResponse(access_token=token, expires_at=expires_at, user=to_user_response(user))


@router.post("/token", response_model=Token)
def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db),
):
    """
    Login endpoint (OAuth2 password flow). Returns a JWT access token if the
    credentials are valid. The `username` form field takes the email or the username.

    **Returns**:\n
    `Token`(response_model):
    - `access_token` (str): JWT access token for authentication.\n
    - `token_type` (str): Type of the token, typically "bearer".
    """
    user = authenticate_user(db, login=form_data.username, password=form_data.password)

    # Create an jwt access token after validating credentials.
    token, expires_at = create_access_token(user)

    return Token(access_token=token, expires_at=expires_at)


@router.get("/me", response_model=UserResponse)
def me(current_user: User = Depends(get_current_user)):
    """Returns the profile of the logged in user."""
    return to_user_response(current_user)


@router.post("/change-password", response_model=MessageResponse)
def change_user_password(
    payload: ChangePasswordRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Changes the password of the logged in user. The current password must be given.
    """
    change_password(db, current_user, payload.current_password, payload.new_password)
    return MessageResponse(message="Password changed successfully.")


@router.post("/resend-verification", response_model=MessageResponse, status_code=status.HTTP_202_ACCEPTED)
def resend_verification(current_user: User = Depends(get_current_user)):
    """
    Issues a new email verification token for the logged in user.

    **Errors**: 409 if the email is already verified.
    """
    token = request_email_verification(current_user)

    # No mail backend is configured, the token only goes to the debug log
    logger.debug("Email verification token for %s: %s", current_user.email, token)

    return MessageResponse(message="Verification email sent.")


@router.post("/verify-email", response_model=UserResponse)
def verify_user_email(payload: VerifyEmailRequest, db: Session = Depends(get_db)):
    """
    Confirms the email address the token was issued for. No login needed, the
    token identifies the user.

    **Errors**: 422 for invalid or expired tokens, 404 if the user is gone.
    """
    user = verify_email(db, payload.token)
    return to_user_response(user)
