"""
Audit Model Module

Write-once records of every create/update/delete performed through the
repositories. The application only ever inserts into this table.
"""
from enum import Enum
from typing import Any, Dict, Optional

from sqlmodel import SQLModel, Field, JSON, Column

from portal.core.ids import utcnow_iso


class AuditAction(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class AuditRecord(SQLModel, table=True):
    """
    Attributes:
        id: Auto-incrementing primary key
        entity_type: "user", "project", "ticket" or "comment"
        entity_id: Identity of the affected record
        action: One of AuditAction values
        user_id: Actor who performed the change
        old_values: Snapshot before the change (update/delete)
        new_values: Snapshot or applied changes after the change (create/update)
        created_at: ISO timestamp of the write
    """
    __tablename__ = "audit_log"

    id: Optional[int] = Field(default=None, primary_key=True)
    entity_type: str = Field(index=True, nullable=False)
    entity_id: str = Field(index=True, nullable=False)
    action: str = Field(nullable=False)
    user_id: str = Field(nullable=False)

    # Opaque structured snapshots stored as JSON
    old_values: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON))
    new_values: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON))

    created_at: str = Field(default_factory=utcnow_iso)
