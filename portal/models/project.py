"""
Project Model Module

This module defines the Project model and the closed sets of project types and
statuses. Every project is owned by exactly one client user.
"""
from enum import Enum
from typing import Optional

from sqlmodel import SQLModel, Field

from portal.core.ids import generate_unique_id, utcnow_iso


class ProjectType(str, Enum):
    WEB = "web"
    MOBILE = "mobile"
    CONSULTING = "consulting"
    INTEGRAL = "integral"


# Display labels used by the client application, accepted as aliases on input
PROJECT_TYPE_LABELS = {
    "Desarrollo Web": ProjectType.WEB,
    "Aplicación Móvil": ProjectType.MOBILE,
    "Consultoría Tech": ProjectType.CONSULTING,
    "Solución Integral": ProjectType.INTEGRAL,
}

# Type segment embedded in project codes (NX-WEB-2025-001)
PROJECT_CODE_PREFIXES = {
    ProjectType.WEB: "WEB",
    ProjectType.MOBILE: "MOB",
    ProjectType.CONSULTING: "CON",
    ProjectType.INTEGRAL: "INT",
}
DEFAULT_PROJECT_CODE_PREFIX = "PRJ"


class ProjectStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    ON_HOLD = "on-hold"


class Project(SQLModel, table=True):
    """
    Project model representing a client engagement.

    Projects are created, updated and deleted by administrators only. Clients can
    read the projects they own; developers have no project access.

    Attributes:
        id: 16-character hex identity
        project_code: Unique human-readable code, e.g. "NX-WEB-2025-001"
        client_id: Owning client (User with role=client)
        name: Project name (required)
        description: Free-text description
        type: One of ProjectType values
        status: One of ProjectStatus values (default: active)
        estimated_budget: Budget estimate
        estimated_duration: Duration estimate in days
        start_date: ISO date (YYYY-MM-DD)
        deadline: ISO date (YYYY-MM-DD)
        created_at: ISO timestamp when the project was created
        updated_at: ISO timestamp of the last modification
    """
    __tablename__ = "projects"

    id: str = Field(default_factory=generate_unique_id, primary_key=True, max_length=16)
    project_code: str = Field(unique=True, index=True, nullable=False)
    client_id: str = Field(foreign_key="users.id", index=True, nullable=False)

    name: str = Field(nullable=False)
    description: Optional[str] = None
    type: str = Field(nullable=False)
    status: str = Field(default=ProjectStatus.ACTIVE.value, index=True)

    # Estimates
    estimated_budget: Optional[float] = None
    estimated_duration: Optional[int] = None
    start_date: Optional[str] = None
    deadline: Optional[str] = None

    created_at: str = Field(default_factory=utcnow_iso)
    updated_at: str = Field(default_factory=utcnow_iso)
