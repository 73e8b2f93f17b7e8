"""
Repository Helpers Module

Shared pieces of the entity repositories: pagination, the whitelisted sparse
patch applier and referential checks against the users table.
"""
import math
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Mapping

from sqlalchemy import func
from sqlmodel import Session, SQLModel, select

from portal.core.errors import NotFoundError, ValidationError
from portal.core.ids import utcnow_iso
from portal.models.user import User, UserRole

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10


@dataclass
class Page:
    items: List[Any] = field(default_factory=list)
    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT
    total: int = 0

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    def pagination(self) -> Dict[str, int]:
        return {
            "page": self.page,
            "limit": self.limit,
            "total": self.total,
            "totalPages": self.total_pages,
        }


def paginate(db: Session, statement, order_by, page: int = None, limit: int = None) -> Page:
    """
    Run a filtered select as one page plus a total count.

    The count is computed from the same filtered statement as the page query.
    """
    page = DEFAULT_PAGE if page is None else page
    limit = DEFAULT_LIMIT if limit is None else limit
    if page < 1 or limit < 1:
        raise ValidationError("page and limit must be positive integers")

    total = db.exec(select(func.count()).select_from(statement.subquery())).one()
    offset = (page - 1) * limit
    items = db.exec(statement.order_by(order_by).offset(offset).limit(limit)).all()
    return Page(items=list(items), page=page, limit=limit, total=total)


def apply_patch(record: SQLModel, changes: Mapping[str, Any], allowed: FrozenSet[str]) -> Dict[str, Any]:
    """
    Apply a sparse patch through a fixed whitelist of column names.

    Keys outside ``allowed`` are ignored. An empty resulting patch is a
    validation error, never a silent success. ``updated_at`` is stamped.

    Returns:
        dict: The changes actually applied
    """
    applied = {name: value for name, value in changes.items() if name in allowed}
    if not applied:
        raise ValidationError("No fields to update")
    for name, value in applied.items():
        setattr(record, name, value)
    if hasattr(record, "updated_at"):
        record.updated_at = utcnow_iso()
    return applied


def require_active_user(db: Session, user_id: str, role: UserRole, message: str) -> User:
    """Referenced user must exist, be active and hold ``role``; otherwise NotFoundError."""
    user = db.exec(
        select(User).where(
            User.id == user_id,
            User.role == role.value,
            User.is_active == True,  # noqa: E712
        )
    ).first()
    if not user:
        raise NotFoundError(message)
    return user
