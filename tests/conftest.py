"""Shared fixtures: in-memory database, API client and entity factories."""
import os

# Must be set before portal.core.config is imported anywhere
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENVIRONMENT"] = "test"
os.environ["SEED_FIXTURES"] = "false"

from typing import Callable, Dict, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from portal.core.ids import generate_account_code, generate_unique_id
from portal.core.security import create_access_token, hash_secret
from portal.db.session import get_db, init_db
from portal.main import app
from portal.models.project import Project, ProjectType
from portal.models.ticket import Ticket, TicketCategory, TicketPriority
from portal.models.user import User, UserRole
from portal.repositories.projects import ProjectRepository
from portal.repositories.tickets import TicketRepository
from portal.schemas.auth import Actor
from portal.schemas.project import ProjectCreate
from portal.schemas.ticket import TicketCreate

PASSWORD = "s3cret-pass"


@pytest.fixture(name="engine")
def engine_fixture():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(name="session")
def session_fixture(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture(name="client")
def client_fixture(engine):
    def override_get_db():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(session) -> Callable[..., User]:
    counter = {"n": 0}

    def _make_user(
        role: UserRole = UserRole.CLIENT,
        display_name: Optional[str] = None,
        password: str = PASSWORD,
        is_active: bool = True,
        password_hash: Optional[str] = None,
    ) -> User:
        counter["n"] += 1
        user = User(
            id=generate_unique_id(),
            account_code=generate_account_code(role.value),
            display_name=display_name or f"{role.value.title()} {counter['n']}",
            email=f"{role.value}{counter['n']}@acme.com",
            password_hash=password_hash or hash_secret(password),
            role=role.value,
            is_active=is_active,
        )
        session.add(user)
        session.commit()
        session.refresh(user)
        return user

    return _make_user


@pytest.fixture
def admin(make_user) -> User:
    return make_user(UserRole.ADMIN, display_name="Ada Admin")


@pytest.fixture
def client_user(make_user) -> User:
    return make_user(UserRole.CLIENT, display_name="Carla Client")


@pytest.fixture
def other_client(make_user) -> User:
    return make_user(UserRole.CLIENT, display_name="Oscar Client")


@pytest.fixture
def developer(make_user) -> User:
    return make_user(UserRole.DEVELOPER, display_name="Dev One")


@pytest.fixture
def other_developer(make_user) -> User:
    return make_user(UserRole.DEVELOPER, display_name="Dev Two")


def actor_for(user: User) -> Actor:
    return Actor.from_user(user)


def auth_headers(user: User) -> Dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user)}"}


@pytest.fixture
def make_project(session, admin) -> Callable[..., Project]:
    def _make_project(client: User, project_type: ProjectType = ProjectType.WEB, name: str = "Storefront") -> Project:
        return ProjectRepository(session).create(actor_for(admin), ProjectCreate(
            name=name,
            type=project_type,
            client_id=client.id,
        ))

    return _make_project


@pytest.fixture
def make_ticket(session, admin) -> Callable[..., Ticket]:
    def _make_ticket(
        project: Project,
        title: str = "Checkout page fails",
        priority: TicketPriority = TicketPriority.MEDIUM,
        category: TicketCategory = TicketCategory.BUG,
        actor: Optional[Actor] = None,
    ) -> Ticket:
        return TicketRepository(session).create(actor or actor_for(admin), TicketCreate(
            project_id=project.id,
            title=title,
            description="Steps to reproduce attached",
            priority=priority,
            category=category,
        ))

    return _make_ticket
