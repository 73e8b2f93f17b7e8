"""
User Repository Module

Field-level CRUD over user accounts plus credential checks for login. Every
mutation is gated by the access policy engine and audited.
"""
import logging
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from portal.core.errors import ConflictError, NotFoundError, ValidationError
from portal.core.ids import generate_account_code, generate_unique_id, utcnow_iso
from portal.core.security import hash_secret, verify_and_update
from portal.models.audit import AuditAction
from portal.models.user import User
from portal.repositories.base import Page, apply_patch, paginate
from portal.schemas.auth import Actor
from portal.schemas.user import RegisterRequest, UserFilters, UserUpdate
from portal.services import audit
from portal.services.policy import Action, enforce

logger = logging.getLogger(__name__)

# Columns a patch may touch; "password" is translated to password_hash first
USER_PATCH_FIELDS = frozenset({
    "display_name", "email", "role", "is_active",
    "company_name", "phone", "avatar_url", "password_hash",
})


class UserRepository:
    def __init__(self, db: Session):
        self.db = db

    def _email_taken(self, email: str, exclude_id: Optional[str] = None) -> bool:
        statement = select(User).where(User.email == email)
        if exclude_id:
            statement = statement.where(User.id != exclude_id)
        return self.db.exec(statement).first() is not None

    def _find(self, user_id: str) -> User:
        user = self.db.get(User, user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    def _commit(self, db_user: User, conflict_message: str) -> None:
        """Commit an account write. Unique-index races surface as ConflictError."""
        self.db.add(db_user)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            logger.info("User write rejected by a unique index: %s", conflict_message)
            raise ConflictError(conflict_message)
        self.db.refresh(db_user)

    def create(self, actor: Actor, user_in: RegisterRequest) -> User:
        """
        Create a user account.

        Raises:
            AuthorizationError: actor is not an admin
            ConflictError: email (or a supplied account code) already in use
        """
        enforce(actor, Action.CREATE, User)
        if self._email_taken(user_in.email):
            raise ConflictError("Email is already registered")

        account_code = getattr(user_in, "account_code", None)
        if account_code:
            if self.db.exec(select(User).where(User.account_code == account_code)).first():
                raise ConflictError("Account code is already in use")
        else:
            account_code = generate_account_code(user_in.role.value)

        db_user = User(
            id=generate_unique_id(),
            account_code=account_code,
            display_name=user_in.display_name,
            email=user_in.email,
            password_hash=hash_secret(user_in.password),
            role=user_in.role.value,
            company_name=user_in.company_name,
            phone=user_in.phone,
            is_active=True,
        )
        self._commit(db_user, "Email or account code is already in use")

        audit.record(
            self.db,
            entity_type="user",
            entity_id=db_user.id,
            action=AuditAction.CREATE,
            actor_id=actor.id,
            new_values=audit.snapshot(db_user),
        )
        self.db.refresh(db_user)
        logger.info("User %s (%s) created by %s", db_user.id, db_user.role, actor.id)
        return db_user

    def get(self, actor: Actor, user_id: str) -> User:
        enforce(actor, Action.READ, User)
        return self._find(user_id)

    def list(self, actor: Actor, filters: Optional[UserFilters] = None, page: int = None, limit: int = None) -> Page:
        enforce(actor, Action.LIST, User)
        filters = filters or UserFilters()
        statement = select(User)
        if filters.role is not None:
            statement = statement.where(User.role == filters.role.value)
        if filters.is_active is not None:
            statement = statement.where(User.is_active == filters.is_active)
        if filters.search:
            term = f"%{filters.search}%"
            statement = statement.where(or_(
                User.display_name.like(term),
                User.email.like(term),
                User.account_code.like(term),
            ))
        return paginate(self.db, statement, User.created_at.desc(), page, limit)

    def update(self, actor: Actor, user_id: str, user_in: UserUpdate) -> User:
        """
        Apply a sparse patch to a user.

        Raises:
            NotFoundError: user does not exist
            ConflictError: new email already used by another user
            ValidationError: the patch is empty
        """
        enforce(actor, Action.UPDATE, User)
        db_user = self._find(user_id)

        changes = user_in.model_dump(exclude_unset=True, mode="json")
        if "email" in changes and changes["email"] != db_user.email:
            if self._email_taken(changes["email"], exclude_id=user_id):
                raise ConflictError("Email is already used by another user")
        if "password" in changes:
            changes["password_hash"] = hash_secret(changes.pop("password"))

        before = audit.snapshot(db_user)
        apply_patch(db_user, changes, USER_PATCH_FIELDS)
        self._commit(db_user, "Email is already used by another user")

        audit.record(
            self.db,
            entity_type="user",
            entity_id=db_user.id,
            action=AuditAction.UPDATE,
            actor_id=actor.id,
            old_values=before,
            new_values=audit.snapshot(db_user),
        )
        self.db.refresh(db_user)
        return db_user

    def delete(self, actor: Actor, user_id: str) -> User:
        """
        Deactivate a user. Accounts are never hard-deleted.

        Raises:
            NotFoundError: user does not exist
            ValidationError: an admin tried to deactivate themself
        """
        enforce(actor, Action.DELETE, User)
        db_user = self._find(user_id)
        if db_user.id == actor.id:
            raise ValidationError("Users cannot deactivate themselves")

        before = audit.snapshot(db_user)
        db_user.is_active = False
        db_user.updated_at = utcnow_iso()
        self.db.add(db_user)
        self.db.commit()

        audit.record(
            self.db,
            entity_type="user",
            entity_id=db_user.id,
            action=AuditAction.DELETE,
            actor_id=actor.id,
            old_values=before,
        )
        self.db.refresh(db_user)
        return db_user

    def authenticate(self, user_id: str, display_name: str, password: str) -> Optional[User]:
        """
        Check login credentials against active users.

        Stamps last_login on success and transparently upgrades legacy digests.
        The stamp is a self-mutation and is not audited.
        """
        user = self.db.exec(
            select(User).where(
                User.id == user_id,
                User.display_name == display_name,
                User.is_active == True,  # noqa: E712
            )
        ).first()
        if not user:
            logger.info("Login failed: no active user %s", user_id)
            return None

        valid, new_hash = verify_and_update(password, user.password_hash)
        if not valid:
            logger.info("Login failed: bad password for user %s", user_id)
            return None

        if new_hash:
            user.password_hash = new_hash
        user.last_login = utcnow_iso()
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        logger.info("User %s logged in", user.id)
        return user
