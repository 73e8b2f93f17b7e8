"""
User Model Module

This module defines the User model and UserRole enumeration for authentication
and authorization throughout the portal.
"""
from enum import Enum
from typing import Optional

from sqlmodel import SQLModel, Field

from portal.core.ids import generate_unique_id, utcnow_iso


class UserRole(str, Enum):
    """
    Enumeration of user roles.

    Roles form a small total order (client < developer < admin) that is only used
    for minimum-role gates on endpoints. Ownership of projects and tickets is a
    separate dimension evaluated by ``portal.services.policy``.
    """
    CLIENT = "client"
    DEVELOPER = "developer"
    ADMIN = "admin"


ROLE_RANK = {
    UserRole.CLIENT: 1,
    UserRole.DEVELOPER: 2,
    UserRole.ADMIN: 3,
}


class User(SQLModel, table=True):
    """
    User model representing an account of the portal.

    Users are never hard-deleted: deactivation flips ``is_active``. Login is
    performed with the opaque ``id`` plus ``display_name`` and password.

    Attributes:
        id: 16-character hex identity
        account_code: Human-readable code, e.g. "dev-3fa85f64"
        display_name: Name shown in the UI and used at login
        email: Unique contact address
        password_hash: passlib digest of the account secret
        role: One of UserRole values
        is_active: Inactive users cannot log in nor be referenced by projects/tickets
        company_name: Optional company of a client
        phone: Optional phone number
        avatar_url: Optional avatar image URL
        last_login: ISO timestamp of the last successful login
        created_at: ISO timestamp when the account was created
        updated_at: ISO timestamp of the last modification
    """
    __tablename__ = "users"

    id: str = Field(default_factory=generate_unique_id, primary_key=True, max_length=16)
    account_code: str = Field(unique=True, index=True, nullable=False)
    display_name: str = Field(nullable=False)
    email: str = Field(unique=True, index=True, nullable=False)
    password_hash: str = Field(nullable=False)
    role: str = Field(default=UserRole.CLIENT.value, index=True)
    is_active: bool = True

    # Profile information
    company_name: Optional[str] = None
    phone: Optional[str] = None
    avatar_url: Optional[str] = None

    # Audit timestamps
    last_login: Optional[str] = None
    created_at: str = Field(default_factory=utcnow_iso)
    updated_at: str = Field(default_factory=utcnow_iso)
