"""
Access Policy Engine Module

Decides whether an actor may perform an action on a user, project or ticket and,
for ticket updates, whether the requested field changes are allowed for the
actor's role.

Two independent dimensions are evaluated here:

- Role rank (client < developer < admin) answers "is this role high enough"
  questions and is only used for endpoint gates via ``has_minimum_role``.
- Ownership and assignment (who the project/ticket belongs to, who it is
  assigned to) drive every other rule. They are never derived from the rank.

Validation of enum values (e.g. a ticket status outside the closed set) happens
in the request schemas before a policy decision is requested; the engine only
ever sees well-formed values.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional, Union

from sqlalchemy import false, or_, true
from sqlalchemy.sql.elements import ColumnElement
from sqlmodel import SQLModel

from portal.core.errors import AuthorizationError
from portal.models.project import Project
from portal.models.ticket import Ticket, TicketStatus
from portal.models.user import ROLE_RANK, User, UserRole
from portal.schemas.auth import Actor

logger = logging.getLogger(__name__)

# Developers currently get no project-level access at all. Flip this single flag
# once ticket-based project visibility for developers exists.
DEVELOPER_PROJECT_ACCESS = False

# Statuses a client may move their own ticket into
CLIENT_SETTABLE_STATUSES = frozenset({TicketStatus.OPEN.value, TicketStatus.CLOSED.value})


class Action(str, Enum):
    READ = "read"
    LIST = "list"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: Optional[str] = None

    def __bool__(self) -> bool:
        return self.allowed


ALLOW = Decision(True)


def deny(reason: str) -> Decision:
    return Decision(False, reason)


Resource = Union[SQLModel, type]


def has_minimum_role(role: Union[UserRole, str], required: UserRole) -> bool:
    """Rank comparison only; says nothing about ownership."""
    try:
        rank = ROLE_RANK[UserRole(role)]
    except ValueError:
        return False
    return rank >= ROLE_RANK[required]


def _value(value: Any) -> Any:
    return getattr(value, "value", value)


# --- Users -------------------------------------------------------------------

def _user_rules(actor: Actor, action: Action, user: Optional[User], changes: Mapping[str, Any]) -> Decision:
    if actor.is_admin:
        return ALLOW
    return deny("Only administrators can manage users")


# --- Projects ----------------------------------------------------------------

def developer_project_rule(actor: Actor, project: Optional[Project]) -> Decision:
    """Single switch for developer access to projects."""
    if DEVELOPER_PROJECT_ACCESS:
        return ALLOW
    return deny("Developers have no access to projects")


def _project_rules(actor: Actor, action: Action, project: Optional[Project], changes: Mapping[str, Any]) -> Decision:
    if actor.is_admin:
        return ALLOW
    if actor.role == UserRole.DEVELOPER:
        if action == Action.LIST:
            # Listing is answered with an empty result set, see visibility_clause
            return ALLOW
        return developer_project_rule(actor, project)
    # Clients: read-only on what they own
    if action == Action.LIST:
        return ALLOW
    if action != Action.READ:
        return deny("Only administrators can modify projects")
    if project is None or project.client_id != actor.id:
        return deny("You do not have permission to view this project")
    return ALLOW


# --- Tickets -----------------------------------------------------------------

def _client_ticket_rules(actor: Actor, action: Action, ticket: Optional[Ticket], changes: Mapping[str, Any]) -> Decision:
    if action == Action.LIST:
        return ALLOW
    if action == Action.CREATE:
        if ticket is None or ticket.client_id != actor.id:
            return deny("You can only create tickets on your own projects")
        return ALLOW
    if action == Action.DELETE:
        return deny("Only administrators can delete tickets")
    if ticket is None or ticket.client_id != actor.id:
        if action == Action.READ:
            return deny("You do not have permission to view this ticket")
        return deny("You can only edit your own tickets")
    if action == Action.UPDATE:
        if "assigned_developer_id" in changes:
            return deny("Clients cannot assign tickets")
        status = changes.get("status")
        if status is not None and _value(status) not in CLIENT_SETTABLE_STATUSES:
            return deny("Clients can only open or close tickets")
    return ALLOW


def _developer_ticket_rules(actor: Actor, action: Action, ticket: Optional[Ticket], changes: Mapping[str, Any]) -> Decision:
    if action in (Action.LIST, Action.CREATE):
        return ALLOW
    if action == Action.DELETE:
        return deny("Only administrators can delete tickets")
    if ticket is None:
        return deny("Ticket not accessible")
    if ticket.assigned_developer_id not in (None, actor.id):
        if action == Action.READ:
            return deny("You can only view tickets assigned to you or unassigned")
        return deny("You can only edit tickets assigned to you")
    if action == Action.UPDATE and "assigned_developer_id" in changes:
        target = changes.get("assigned_developer_id")
        if target not in (None, actor.id):
            return deny("You cannot assign tickets to other developers")
    return ALLOW


def _ticket_rules(actor: Actor, action: Action, ticket: Optional[Ticket], changes: Mapping[str, Any]) -> Decision:
    if actor.is_admin:
        return ALLOW
    if actor.role == UserRole.CLIENT:
        return _client_ticket_rules(actor, action, ticket, changes)
    if actor.role == UserRole.DEVELOPER:
        return _developer_ticket_rules(actor, action, ticket, changes)
    return deny("Unknown role")


_RULES = {
    User: _user_rules,
    Project: _project_rules,
    Ticket: _ticket_rules,
}


def authorize(
    actor: Actor,
    action: Action,
    resource: Resource,
    changes: Optional[Mapping[str, Any]] = None,
) -> Decision:
    """
    Evaluate a request against the permission matrix.

    Args:
        actor: Authenticated identity
        action: Requested action
        resource: Target record, or the model class for LIST
        changes: Requested field changes for UPDATE (keys present = keys sent)

    Returns:
        Decision: ALLOW or a denial carrying a human-readable reason
    """
    kind = resource if isinstance(resource, type) else type(resource)
    record = None if isinstance(resource, type) else resource
    rule = _RULES.get(kind)
    if rule is None:
        return deny(f"No access policy for {kind.__name__}")
    return rule(actor, action, record, changes or {})


def enforce(
    actor: Actor,
    action: Action,
    resource: Resource,
    changes: Optional[Mapping[str, Any]] = None,
) -> None:
    """authorize() that raises AuthorizationError on denial."""
    decision = authorize(actor, action, resource, changes)
    if not decision:
        kind = resource.__name__ if isinstance(resource, type) else type(resource).__name__
        logger.warning(
            "Denied %s on %s for user %s (%s): %s",
            action.value, kind, actor.id, _value(actor.role), decision.reason,
        )
        raise AuthorizationError(decision.reason)


def visibility_clause(actor: Actor, model: type) -> ColumnElement:
    """
    Ownership filter applied to list queries instead of per-row checks.

    Clients see rows they own, developers see tickets assigned to them or
    unassigned, admins see everything.
    """
    if actor.is_admin:
        return true()
    if model is Ticket:
        if actor.role == UserRole.CLIENT:
            return Ticket.client_id == actor.id
        if actor.role == UserRole.DEVELOPER:
            return or_(Ticket.assigned_developer_id == actor.id, Ticket.assigned_developer_id.is_(None))
    if model is Project:
        if actor.role == UserRole.CLIENT:
            return Project.client_id == actor.id
        if actor.role == UserRole.DEVELOPER and developer_project_rule(actor, None):
            return true()
    return false()
