from typing import List

from sqlmodel import Session, select

from portal.models.audit import AuditAction
from portal.models.comment import Comment
from portal.models.user import User
from portal.repositories.tickets import TicketRepository
from portal.schemas.auth import Actor
from portal.schemas.comment import CommentCreate, CommentRead
from portal.services import audit


def comment_read_query():
    return (
        select(Comment, User.display_name.label("author_name"), User.role.label("author_role"))
        .select_from(Comment)
        .outerjoin(User, User.id == Comment.user_id)
    )


class CommentRepository:
    """Append-only ticket comments; readable and writable by whoever may read the ticket."""

    def __init__(self, db: Session):
        self.db = db
        self.tickets = TicketRepository(db)

    def present(self, comment: Comment) -> CommentRead:
        row = self.db.exec(comment_read_query().where(Comment.id == comment.id)).one()
        return CommentRead.from_row(row)

    def list_for_ticket(self, actor: Actor, ticket_id: str) -> List[CommentRead]:
        self.tickets.get(actor, ticket_id)
        statement = (
            comment_read_query()
            .where(Comment.ticket_id == ticket_id)
            .order_by(Comment.created_at.asc(), Comment.id.asc())
        )
        return [CommentRead.from_row(row) for row in self.db.exec(statement).all()]

    def create(self, actor: Actor, ticket_id: str, comment_in: CommentCreate) -> Comment:
        ticket = self.tickets.get(actor, ticket_id)
        comment = Comment(ticket_id=ticket.id, user_id=actor.id, body=comment_in.body)
        self.db.add(comment)
        self.db.commit()
        self.db.refresh(comment)

        audit.record(
            self.db,
            entity_type="comment",
            entity_id=comment.id,
            action=AuditAction.CREATE,
            actor_id=actor.id,
            new_values=audit.snapshot(comment),
        )
        self.db.refresh(comment)
        return comment
