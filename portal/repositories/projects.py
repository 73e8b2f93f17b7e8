"""
Project Repository Module

Field-level CRUD over projects. Creation allocates a project code from the
sequence allocator; every mutation is admin-only (enforced by the policy
engine) and audited.
"""
import logging
from typing import Optional

from sqlmodel import Session, select

from portal.core.errors import ConflictError, NotFoundError
from portal.models.audit import AuditAction
from portal.models.project import Project, ProjectStatus
from portal.models.ticket import Ticket
from portal.models.user import User, UserRole
from portal.repositories.base import Page, apply_patch, paginate, require_active_user
from portal.schemas.auth import Actor
from portal.schemas.project import ProjectCreate, ProjectFilters, ProjectRead, ProjectUpdate
from portal.services import audit
from portal.services.policy import Action, enforce, visibility_clause
from portal.services.sequence import next_project_code

logger = logging.getLogger(__name__)

PROJECT_PATCH_FIELDS = frozenset({
    "name", "description", "type", "client_id", "status",
    "estimated_budget", "estimated_duration", "start_date", "deadline",
})

CLIENT_NOT_FOUND = "Client not found or inactive"


def project_read_query():
    """Projects with the owning client's contact details joined in."""
    return (
        select(
            Project,
            User.display_name.label("client_name"),
            User.email.label("client_email"),
            User.company_name.label("company_name"),
        )
        .select_from(Project)
        .outerjoin(User, User.id == Project.client_id)
    )


class ProjectRepository:
    def __init__(self, db: Session):
        self.db = db

    def _find(self, project_id: str) -> Project:
        project = self.db.get(Project, project_id)
        if not project:
            raise NotFoundError("Project not found")
        return project

    def create(self, actor: Actor, project_in: ProjectCreate) -> Project:
        """
        Create a project for an active client and allocate its code.

        Raises:
            AuthorizationError: actor is not an admin
            NotFoundError: client_id is not an active client
        """
        enforce(actor, Action.CREATE, Project)
        require_active_user(self.db, project_in.client_id, UserRole.CLIENT, CLIENT_NOT_FOUND)

        project_code = next_project_code(self.db, project_in.type.value)
        project = Project(
            project_code=project_code,
            status=ProjectStatus.ACTIVE.value,
            **project_in.model_dump(mode="json"),
        )
        self.db.add(project)
        self.db.commit()
        self.db.refresh(project)

        audit.record(
            self.db,
            entity_type="project",
            entity_id=project.id,
            action=AuditAction.CREATE,
            actor_id=actor.id,
            new_values=audit.snapshot(project),
        )
        self.db.refresh(project)
        logger.info("Project %s (%s) created for client %s", project.id, project_code, project.client_id)
        return project

    def get(self, actor: Actor, project_id: str) -> Project:
        project = self._find(project_id)
        enforce(actor, Action.READ, project)
        return project

    def present(self, project: Project) -> ProjectRead:
        """Read model of a project the caller may already see, with client details joined."""
        row = self.db.exec(project_read_query().where(Project.id == project.id)).one()
        return ProjectRead.from_row(row)

    def list(self, actor: Actor, filters: Optional[ProjectFilters] = None, page: int = None, limit: int = None) -> Page:
        enforce(actor, Action.LIST, Project)
        filters = filters or ProjectFilters()
        statement = project_read_query().where(visibility_clause(actor, Project))
        if filters.status is not None:
            statement = statement.where(Project.status == filters.status.value)
        if filters.type is not None:
            statement = statement.where(Project.type == filters.type.value)
        if filters.client_id and actor.is_admin:
            statement = statement.where(Project.client_id == filters.client_id)
        result = paginate(self.db, statement, Project.created_at.desc(), page, limit)
        result.items = [ProjectRead.from_row(row) for row in result.items]
        return result

    def update(self, actor: Actor, project_id: str, project_in: ProjectUpdate) -> Project:
        """
        Apply a sparse patch to a project.

        Raises:
            AuthorizationError: actor is not an admin
            NotFoundError: project missing, or new client_id is not an active client
            ValidationError: the patch is empty
        """
        project = self._find(project_id)
        changes = project_in.model_dump(exclude_unset=True, mode="json")
        enforce(actor, Action.UPDATE, project, changes)
        if "client_id" in changes:
            require_active_user(self.db, changes["client_id"], UserRole.CLIENT, CLIENT_NOT_FOUND)

        before = audit.snapshot(project)
        applied = apply_patch(project, changes, PROJECT_PATCH_FIELDS)
        self.db.add(project)
        self.db.commit()

        audit.record(
            self.db,
            entity_type="project",
            entity_id=project.id,
            action=AuditAction.UPDATE,
            actor_id=actor.id,
            old_values=before,
            new_values=applied,
        )
        self.db.refresh(project)
        return project

    def delete(self, actor: Actor, project_id: str) -> dict:
        """
        Delete a project that no ticket references.

        Returns:
            dict: Snapshot of the deleted project

        Raises:
            ConflictError: the project still has tickets
        """
        project = self._find(project_id)
        enforce(actor, Action.DELETE, project)
        if self.db.exec(select(Ticket.id).where(Ticket.project_id == project_id)).first():
            raise ConflictError("Project has tickets and cannot be deleted")

        before = audit.snapshot(project)
        self.db.delete(project)
        self.db.commit()

        audit.record(
            self.db,
            entity_type="project",
            entity_id=project_id,
            action=AuditAction.DELETE,
            actor_id=actor.id,
            old_values=before,
        )
        logger.info("Project %s deleted by %s", project_id, actor.id)
        return before
