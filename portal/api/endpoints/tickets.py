"""
Ticket Endpoints Module

Support tickets and their comments. Visibility and allowed changes depend on
the actor's role and on ticket ownership/assignment; see
portal.services.policy for the full matrix.
"""
from fastapi import APIRouter, Depends, Query, status
from sqlmodel import Session

from portal.api import deps
from portal.db.session import get_db
from portal.repositories.comments import CommentRepository
from portal.repositories.tickets import TicketRepository
from portal.schemas.auth import Actor
from portal.schemas.comment import CommentCreate
from portal.schemas.common import envelope
from portal.schemas.ticket import TicketCreate, TicketDetail, TicketFilters, TicketUpdate

router = APIRouter()


@router.get("")
def list_tickets(
    filters: TicketFilters = Depends(),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    db: Session = Depends(get_db),
    actor: Actor = Depends(deps.get_current_actor),
):
    """
    Retrieve a paginated list of tickets, newest first.

    Clients see their own tickets, developers see tickets assigned to them or
    unassigned, admins see all. The assigned_to filter is admin-only.
    """
    result = TicketRepository(db).list(actor, filters, page, limit)
    tickets = [ticket.model_dump(mode="json") for ticket in result.items]
    return envelope({"tickets": tickets, "pagination": result.pagination()})


@router.post("", status_code=status.HTTP_201_CREATED)
def create_ticket(
    ticket_in: TicketCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(deps.get_current_actor),
):
    """
    Open a ticket on a project.

    Raises:
        400: missing fields, invalid priority or category
        403: client opening a ticket on a project they do not own
        404: project does not exist
    """
    repo = TicketRepository(db)
    ticket = repo.create(actor, ticket_in)
    return envelope(
        {"ticket": repo.present(ticket).model_dump(mode="json")},
        message="Ticket created successfully",
    )


@router.get("/{ticket_id}")
def read_ticket(
    ticket_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(deps.get_current_actor),
):
    """Get a ticket together with its comments in creation order."""
    repo = TicketRepository(db)
    ticket = repo.present(repo.get(actor, ticket_id))
    comments = CommentRepository(db).list_for_ticket(actor, ticket_id)
    detail = TicketDetail(ticket=ticket, comments=comments)
    return envelope(detail.model_dump(mode="json"))


@router.put("/{ticket_id}")
def update_ticket(
    ticket_id: str,
    ticket_in: TicketUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(deps.get_current_actor),
):
    """
    Update a ticket. Only the fields present in the body change.

    Raises:
        400: empty update or value outside its closed set
        403: change not permitted for the actor's role/ownership
        404: ticket missing, or assigned developer not an active developer
    """
    repo = TicketRepository(db)
    ticket = repo.update(actor, ticket_id, ticket_in)
    return envelope(
        {"ticket": repo.present(ticket).model_dump(mode="json")},
        message="Ticket updated successfully",
    )


@router.get("/{ticket_id}/comments")
def list_comments(
    ticket_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(deps.get_current_actor),
):
    comments = CommentRepository(db).list_for_ticket(actor, ticket_id)
    return envelope({"comments": [comment.model_dump(mode="json") for comment in comments]})


@router.post("/{ticket_id}/comments", status_code=status.HTTP_201_CREATED)
def add_comment(
    ticket_id: str,
    comment_in: CommentCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(deps.get_current_actor),
):
    repo = CommentRepository(db)
    comment = repo.create(actor, ticket_id, comment_in)
    return envelope(
        {"comment": repo.present(comment).model_dump(mode="json")},
        message="Comment added",
    )
