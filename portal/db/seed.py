"""
Fixture Seeding Module

Creates a known set of accounts and a project for local development and
manual testing. Never runs against a production environment.
"""
import logging
from typing import Dict, Optional

from sqlmodel import Session, select

from portal.core.config import settings
from portal.core.ids import generate_account_code, generate_unique_id
from portal.core.security import hash_secret
from portal.models.audit import AuditAction
from portal.models.project import Project, ProjectType
from portal.models.user import User, UserRole
from portal.repositories.projects import ProjectRepository
from portal.repositories.users import UserRepository
from portal.schemas.auth import Actor
from portal.schemas.project import ProjectCreate
from portal.schemas.user import RegisterRequest
from portal.services import audit

logger = logging.getLogger(__name__)

SEED_ADMIN_EMAIL = "admin@nexus-portal.com"
SEED_CLIENT_EMAIL = "client@nexus-portal.com"
SEED_DEVELOPER_EMAIL = "developer@nexus-portal.com"
SEED_PROJECT_NAME = "Portal Website"


def create_admin(session: Session, display_name: str, email: str, password: str) -> User:
    """
    Bootstrap an administrator account.

    There is no actor yet to authorize the write, so the new admin is recorded
    as the author of its own creation.
    """
    admin = User(
        id=generate_unique_id(),
        account_code=generate_account_code(UserRole.ADMIN.value),
        display_name=display_name,
        email=email,
        password_hash=hash_secret(password),
        role=UserRole.ADMIN.value,
        is_active=True,
    )
    session.add(admin)
    session.commit()
    session.refresh(admin)

    audit.record(
        session,
        entity_type="user",
        entity_id=admin.id,
        action=AuditAction.CREATE,
        actor_id=admin.id,
        new_values=audit.snapshot(admin),
    )
    session.refresh(admin)
    logger.info("Bootstrap admin %s created", admin.id)
    return admin


def _find_by_email(session: Session, email: str) -> Optional[User]:
    return session.exec(select(User).where(User.email == email)).first()


def seed_fixtures(session: Session, password: Optional[str] = None) -> Dict[str, str]:
    """
    Create the fixture admin, client, developer and one web project.

    Idempotent: existing fixture rows are reused. Returns the ids keyed by
    "admin", "client", "developer" and "project".

    Raises:
        RuntimeError: ENVIRONMENT is production
    """
    if settings.is_production:
        raise RuntimeError("Refusing to seed fixtures in a production environment")

    password = password or settings.SEED_PASSWORD

    admin = _find_by_email(session, SEED_ADMIN_EMAIL)
    if admin is None:
        admin = create_admin(session, "Portal Admin", SEED_ADMIN_EMAIL, password)
    actor = Actor.from_user(admin)

    users = UserRepository(session)
    client = _find_by_email(session, SEED_CLIENT_EMAIL)
    if client is None:
        client = users.create(actor, RegisterRequest(
            display_name="Demo Client",
            email=SEED_CLIENT_EMAIL,
            password=password,
            role=UserRole.CLIENT,
            company_name="Demo Company",
        ))
    developer = _find_by_email(session, SEED_DEVELOPER_EMAIL)
    if developer is None:
        developer = users.create(actor, RegisterRequest(
            display_name="Demo Developer",
            email=SEED_DEVELOPER_EMAIL,
            password=password,
            role=UserRole.DEVELOPER,
        ))

    project = session.exec(
        select(Project).where(Project.client_id == client.id, Project.name == SEED_PROJECT_NAME)
    ).first()
    if project is None:
        project = ProjectRepository(session).create(actor, ProjectCreate(
            name=SEED_PROJECT_NAME,
            description="Fixture project",
            type=ProjectType.WEB,
            client_id=client.id,
        ))

    logger.info("Fixtures seeded: admin=%s client=%s developer=%s", admin.id, client.id, developer.id)
    return {
        "admin": admin.id,
        "client": client.id,
        "developer": developer.id,
        "project": project.id,
    }
