"""
Ticket Repository Module

Field-level CRUD over support tickets. This is where the ticket state machine
lives: role-scoped field and status permissions come from the policy engine,
developer assignment is checked against active developers, and moving a ticket
to "resolved" stamps resolved_at.
"""
import logging
from typing import Optional

from sqlalchemy.orm import aliased
from sqlmodel import Session, select

from portal.core.errors import NotFoundError
from portal.core.ids import generate_unique_id, utcnow_iso
from portal.models.audit import AuditAction
from portal.models.project import Project
from portal.models.ticket import Ticket, TicketStatus
from portal.models.user import User, UserRole
from portal.repositories.base import Page, apply_patch, paginate, require_active_user
from portal.schemas.auth import Actor
from portal.schemas.ticket import TicketCreate, TicketFilters, TicketRead, TicketUpdate
from portal.services import audit
from portal.services.policy import Action, enforce, visibility_clause
from portal.services.sequence import next_ticket_number

logger = logging.getLogger(__name__)

TICKET_PATCH_FIELDS = frozenset({
    "title", "description", "priority", "status", "category",
    "assigned_developer_id", "resolved_at",
})

ClientAccount = aliased(User, name="client_account")
DeveloperAccount = aliased(User, name="developer_account")


def ticket_read_query():
    """Tickets with the project name and the client/developer contacts joined in."""
    return (
        select(
            Ticket,
            Project.name.label("project_name"),
            ClientAccount.display_name.label("client_name"),
            ClientAccount.email.label("client_email"),
            DeveloperAccount.display_name.label("developer_name"),
            DeveloperAccount.email.label("developer_email"),
        )
        .select_from(Ticket)
        .outerjoin(Project, Project.id == Ticket.project_id)
        .outerjoin(ClientAccount, ClientAccount.id == Ticket.client_id)
        .outerjoin(DeveloperAccount, DeveloperAccount.id == Ticket.assigned_developer_id)
    )


class TicketRepository:
    def __init__(self, db: Session):
        self.db = db

    def _find(self, ticket_id: str) -> Ticket:
        ticket = self.db.get(Ticket, ticket_id)
        if not ticket:
            raise NotFoundError("Ticket not found")
        return ticket

    def create(self, actor: Actor, ticket_in: TicketCreate) -> Ticket:
        """
        Open a ticket on a project and allocate its number.

        The ticket belongs to the project's client. Clients may only open tickets
        on projects they own.

        Raises:
            NotFoundError: project does not exist
            AuthorizationError: client opening a ticket on someone else's project
        """
        project = self.db.get(Project, ticket_in.project_id)
        if not project:
            raise NotFoundError("Project not found")

        ticket = Ticket(
            id=generate_unique_id(),
            project_id=project.id,
            client_id=project.client_id,
            title=ticket_in.title,
            description=ticket_in.description,
            priority=ticket_in.priority.value,
            category=ticket_in.category.value,
            status=TicketStatus.OPEN.value,
        )
        enforce(actor, Action.CREATE, ticket)

        ticket.ticket_number = next_ticket_number(self.db)
        self.db.add(ticket)
        self.db.commit()
        self.db.refresh(ticket)

        audit.record(
            self.db,
            entity_type="ticket",
            entity_id=ticket.id,
            action=AuditAction.CREATE,
            actor_id=actor.id,
            new_values=audit.snapshot(ticket),
        )
        self.db.refresh(ticket)
        logger.info("Ticket %s (%s) opened on project %s", ticket.id, ticket.ticket_number, project.id)
        return ticket

    def get(self, actor: Actor, ticket_id: str) -> Ticket:
        ticket = self._find(ticket_id)
        enforce(actor, Action.READ, ticket)
        return ticket

    def present(self, ticket: Ticket) -> TicketRead:
        """Read model of a ticket the caller may already see, with display names joined."""
        row = self.db.exec(ticket_read_query().where(Ticket.id == ticket.id)).one()
        return TicketRead.from_row(row)

    def list(self, actor: Actor, filters: Optional[TicketFilters] = None, page: int = None, limit: int = None) -> Page:
        enforce(actor, Action.LIST, Ticket)
        filters = filters or TicketFilters()
        statement = ticket_read_query().where(visibility_clause(actor, Ticket))
        if filters.status is not None:
            statement = statement.where(Ticket.status == filters.status.value)
        if filters.priority is not None:
            statement = statement.where(Ticket.priority == filters.priority.value)
        if filters.category is not None:
            statement = statement.where(Ticket.category == filters.category.value)
        if filters.project_id:
            statement = statement.where(Ticket.project_id == filters.project_id)
        if filters.assigned_to and actor.is_admin:
            statement = statement.where(Ticket.assigned_developer_id == filters.assigned_to)
        result = paginate(self.db, statement, Ticket.created_at.desc(), page, limit)
        result.items = [TicketRead.from_row(row) for row in result.items]
        return result

    def update(self, actor: Actor, ticket_id: str, ticket_in: TicketUpdate) -> Ticket:
        """
        Apply a sparse patch to a ticket.

        Order of checks: existence, role/ownership permissions for the requested
        changes, developer reference, then the patch itself.

        Raises:
            NotFoundError: ticket missing, or assigned developer not an active developer
            AuthorizationError: the actor may not make these changes
            ValidationError: the patch is empty
        """
        ticket = self._find(ticket_id)
        changes = ticket_in.model_dump(exclude_unset=True, mode="json")
        enforce(actor, Action.UPDATE, ticket, changes)

        if changes.get("assigned_developer_id"):
            require_active_user(
                self.db, changes["assigned_developer_id"], UserRole.DEVELOPER,
                "Developer not found or inactive",
            )

        before = audit.snapshot(ticket)
        patch = dict(changes)
        if patch.get("status") == TicketStatus.RESOLVED.value:
            patch["resolved_at"] = utcnow_iso()
        apply_patch(ticket, patch, TICKET_PATCH_FIELDS)
        self.db.add(ticket)
        self.db.commit()

        audit.record(
            self.db,
            entity_type="ticket",
            entity_id=ticket.id,
            action=AuditAction.UPDATE,
            actor_id=actor.id,
            old_values=before,
            new_values=changes,
        )
        self.db.refresh(ticket)
        return ticket
