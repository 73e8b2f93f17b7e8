"""
API Dependencies Module

This module provides FastAPI dependency functions for authentication and
role gates. Credentials are bearer tokens in the Authorization header; the
actor is rebuilt from the token claims alone, without a database lookup.
"""
from typing import Optional

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer

from portal.core.config import settings
from portal.core.errors import AuthenticationError, AuthorizationError
from portal.core.security import verify_token
from portal.models.user import UserRole
from portal.schemas.auth import Actor
from portal.services.policy import has_minimum_role

# auto_error=False so a missing header becomes our own 401 envelope
reusable_oauth2 = OAuth2PasswordBearer(
    tokenUrl=f"{settings.API_PREFIX}/auth/login",
    auto_error=False
)


def get_current_actor(token: Optional[str] = Depends(reusable_oauth2)) -> Actor:
    """
    Dependency that validates the bearer credential and yields the actor.

    Raises:
        AuthenticationError: header missing, token malformed, tampered or expired
    """
    if not token:
        raise AuthenticationError("Authorization token required")

    payload = verify_token(token)
    if payload is None:
        raise AuthenticationError("Invalid or expired token")
    return payload.to_actor()


class RoleChecker:
    """
    Dependency factory for minimum-role gates.

    Usage: Depends(RoleChecker(UserRole.ADMIN))

    Only the role rank is compared here; ownership rules are applied later by the
    repositories through the policy engine.
    """
    def __init__(self, minimum_role: UserRole):
        self.minimum_role = minimum_role

    def __call__(self, actor: Actor = Depends(get_current_actor)) -> Actor:
        if not has_minimum_role(actor.role, self.minimum_role):
            raise AuthorizationError(
                f"The user does not have enough privileges. Required role: {self.minimum_role.value}"
            )
        return actor


get_current_admin = RoleChecker(UserRole.ADMIN)
