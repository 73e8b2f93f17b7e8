from sqlmodel import SQLModel, Field

from portal.core.ids import generate_unique_id, utcnow_iso


class Comment(SQLModel, table=True):
    """Append-only note on a ticket, listed in creation order."""
    __tablename__ = "ticket_comments"

    id: str = Field(default_factory=generate_unique_id, primary_key=True, max_length=16)
    ticket_id: str = Field(foreign_key="tickets.id", index=True, nullable=False)
    user_id: str = Field(foreign_key="users.id", nullable=False)
    body: str = Field(nullable=False)
    created_at: str = Field(default_factory=utcnow_iso, index=True)
