"""
Ticket Model Module

This module defines the support Ticket model together with the closed sets of
priorities, statuses and categories a ticket can take.
"""
from enum import Enum
from typing import Optional

from sqlmodel import SQLModel, Field

from portal.core.ids import generate_unique_id, utcnow_iso


class TicketPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class TicketStatus(str, Enum):
    OPEN = "open"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    WAITING_CLIENT = "waiting_client"
    RESOLVED = "resolved"
    CLIENT_APPROVED = "client_approved"
    CLOSED = "closed"


class TicketCategory(str, Enum):
    BUG = "bug"
    FEATURE_REQUEST = "feature_request"
    SUPPORT = "support"
    CONSULTATION = "consultation"
    BILLING = "billing"
    TECHNICAL_ISSUE = "technical_issue"
    CHANGE_REQUEST = "change_request"


class Ticket(SQLModel, table=True):
    """
    Ticket model representing a support request raised against a project.

    Attributes:
        id: 16-character hex identity
        ticket_number: Unique human-readable number, e.g. "NX-2025-001"
        project_id: Parent project
        client_id: Client the ticket belongs to (the project's client)
        assigned_developer_id: Developer working on it, None while unassigned
        title: Short summary (required)
        description: Free-text details
        priority: One of TicketPriority values
        status: One of TicketStatus values (default: open)
        category: One of TicketCategory values
        created_at: ISO timestamp when the ticket was created
        updated_at: ISO timestamp of the last modification
        resolved_at: ISO timestamp of the last move to "resolved"; never cleared
    """
    __tablename__ = "tickets"

    id: str = Field(default_factory=generate_unique_id, primary_key=True, max_length=16)
    ticket_number: str = Field(unique=True, index=True, nullable=False)
    project_id: str = Field(foreign_key="projects.id", index=True, nullable=False)
    client_id: str = Field(foreign_key="users.id", index=True, nullable=False)
    assigned_developer_id: Optional[str] = Field(default=None, foreign_key="users.id", index=True)

    title: str = Field(nullable=False)
    description: Optional[str] = None
    priority: str = Field(default=TicketPriority.MEDIUM.value)
    status: str = Field(default=TicketStatus.OPEN.value, index=True)
    category: str = Field(nullable=False)

    created_at: str = Field(default_factory=utcnow_iso)
    updated_at: str = Field(default_factory=utcnow_iso)
    resolved_at: Optional[str] = None
