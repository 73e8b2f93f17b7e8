from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from portal.models.ticket import TicketCategory, TicketPriority, TicketStatus
from portal.schemas.comment import CommentRead
from portal.schemas.common import ORMRead, reject_nulls


class TicketCreate(BaseModel):
    project_id: str = Field(min_length=1)
    title: str = Field(min_length=1)
    description: Optional[str] = None
    priority: TicketPriority
    category: TicketCategory


class TicketUpdate(BaseModel):
    """Sparse patch: only the keys present in the request are applied."""
    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    priority: Optional[TicketPriority] = None
    status: Optional[TicketStatus] = None
    category: Optional[TicketCategory] = None
    assigned_developer_id: Optional[str] = None

    @field_validator("assigned_developer_id", mode="before")
    @classmethod
    def blank_means_unassigned(cls, value):
        return value or None

    @field_validator("title", "priority", "status", "category")
    @classmethod
    def present_fields_not_null(cls, value, info):
        return reject_nulls(value, info)


class TicketFilters(BaseModel):
    status: Optional[TicketStatus] = None
    priority: Optional[TicketPriority] = None
    category: Optional[TicketCategory] = None
    project_id: Optional[str] = None
    assigned_to: Optional[str] = None  # honoured for admins only


class TicketRead(ORMRead):
    id: str
    ticket_number: str
    project_id: str
    client_id: str
    assigned_developer_id: Optional[str] = None
    title: str
    description: Optional[str] = None
    priority: TicketPriority
    status: TicketStatus
    category: TicketCategory
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    resolved_at: Optional[str] = None

    # Joined display data
    project_name: Optional[str] = None
    client_name: Optional[str] = None
    client_email: Optional[str] = None
    developer_name: Optional[str] = None
    developer_email: Optional[str] = None


class TicketDetail(BaseModel):
    ticket: TicketRead
    comments: List[CommentRead] = []
