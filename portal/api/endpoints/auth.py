"""
Authentication Endpoints Module

Login, admin-driven registration and credential verification. Credentials are
stateless bearer tokens; there is no logout because there is nothing to revoke.
"""
from typing import Optional

from fastapi import APIRouter, Body, Depends, status
from sqlmodel import Session

from portal.api import deps
from portal.core.errors import AuthenticationError
from portal.core.security import create_access_token, verify_token
from portal.db.session import get_db
from portal.repositories.users import UserRepository
from portal.schemas.auth import Actor, LoginRequest, VerifyRequest
from portal.schemas.common import envelope
from portal.schemas.user import RegisterRequest, UserRead

router = APIRouter()


@router.post("/login")
def login(credentials: LoginRequest, db: Session = Depends(get_db)):
    """
    Authenticate a user and issue an access token.

    Users log in with their 16-character id, display name and password.

    Returns:
        Envelope with data.token and data.user

    Raises:
        400: missing fields
        401: unknown, inactive or wrong credentials
    """
    user = UserRepository(db).authenticate(
        credentials.id, credentials.display_name, credentials.password
    )
    if not user:
        raise AuthenticationError("Invalid credentials")

    token = create_access_token(user)
    return envelope(
        {"token": token, "user": UserRead.model_validate(user).model_dump(mode="json")},
        message="Login successful",
    )


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register_user(
    user_in: RegisterRequest,
    db: Session = Depends(get_db),
    actor: Actor = Depends(deps.get_current_admin),
):
    """
    Create a user account of any role. Administrators only.

    Raises:
        409: email already registered
    """
    user = UserRepository(db).create(actor, user_in)
    return envelope(
        {"user": UserRead.model_validate(user).model_dump(mode="json")},
        message="User created successfully",
    )


@router.post("/verify")
def verify(
    body: Optional[VerifyRequest] = Body(default=None),
    token: Optional[str] = Depends(deps.reusable_oauth2),
):
    """
    Check a credential and return the identity it carries.

    The token is read from the Authorization header, or from the JSON body
    ({"token": "..."}) when the header is absent. Claims are returned as
    signed; the user is not re-read from storage.
    """
    if not token and body is not None:
        token = body.token
    if not token:
        raise AuthenticationError("Token not provided")

    payload = verify_token(token)
    if payload is None:
        raise AuthenticationError("Invalid or expired token")

    actor = payload.to_actor()
    return envelope({"user": actor.model_dump(mode="json")}, message="Token is valid")
