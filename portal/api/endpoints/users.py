"""
User Management Endpoints Module

This module provides CRUD endpoints for user management. Every endpoint
requires administrative privileges.
"""
from fastapi import APIRouter, Depends, Query, status
from sqlmodel import Session

from portal.api import deps
from portal.db.session import get_db
from portal.repositories.users import UserRepository
from portal.schemas.auth import Actor
from portal.schemas.common import dump, envelope
from portal.schemas.user import UserCreate, UserFilters, UserRead, UserUpdate

router = APIRouter()


@router.get("")
def read_users(
    filters: UserFilters = Depends(),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    db: Session = Depends(get_db),
    actor: Actor = Depends(deps.get_current_admin),
):
    """
    Retrieve a paginated list of users, newest first.

    Args:
        filters: Optional role, is_active and search (display name, email or account code)
        page: 1-based page number
        limit: Page size
    """
    result = UserRepository(db).list(actor, filters, page, limit)
    return envelope({"users": dump(UserRead, result.items), "pagination": result.pagination()})


@router.post("", status_code=status.HTTP_201_CREATED)
def create_user(
    user_in: UserCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(deps.get_current_admin),
):
    """
    Create a client or developer account.

    The account code may be supplied; otherwise one is generated from the role.
    Admin accounts are created through /auth/register.

    Raises:
        400: missing fields or role not client/developer
        409: email or account code already in use
    """
    user = UserRepository(db).create(actor, user_in)
    return envelope(
        {"user": UserRead.model_validate(user).model_dump(mode="json")},
        message="User created successfully",
    )


@router.get("/{user_id}")
def read_user_by_id(
    user_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(deps.get_current_admin),
):
    user = UserRepository(db).get(actor, user_id)
    return envelope({"user": UserRead.model_validate(user).model_dump(mode="json")})


@router.put("/{user_id}")
def update_user(
    user_id: str,
    user_in: UserUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(deps.get_current_admin),
):
    """
    Update any user's profile. Only the fields present in the body change.

    Raises:
        400: empty update or invalid role
        404: user does not exist
        409: email already used by another user
    """
    user = UserRepository(db).update(actor, user_id, user_in)
    return envelope(
        {"user": UserRead.model_validate(user).model_dump(mode="json")},
        message="User updated successfully",
    )


@router.delete("/{user_id}")
def delete_user(
    user_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(deps.get_current_admin),
):
    """
    Deactivate a user. Accounts are never hard-deleted and admins cannot
    deactivate themselves.
    """
    user = UserRepository(db).delete(actor, user_id)
    return envelope(
        {"user": UserRead.model_validate(user).model_dump(mode="json")},
        message="User deactivated successfully",
    )
