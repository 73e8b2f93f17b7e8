from typing import Optional

from pydantic import BaseModel, Field, field_validator

from portal.models.project import PROJECT_TYPE_LABELS, ProjectStatus, ProjectType
from portal.schemas.common import ORMRead, reject_nulls


def normalize_project_type(value):
    """Accept display labels ("Desarrollo Web") as aliases of the canonical type."""
    if isinstance(value, str) and value in PROJECT_TYPE_LABELS:
        return PROJECT_TYPE_LABELS[value]
    return value


class ProjectCreate(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    type: ProjectType
    client_id: str = Field(min_length=1)
    estimated_budget: Optional[float] = Field(default=None, ge=0)
    estimated_duration: Optional[int] = Field(default=None, ge=0)  # days
    start_date: Optional[str] = None
    deadline: Optional[str] = None

    @field_validator("type", mode="before")
    @classmethod
    def type_label(cls, value):
        return normalize_project_type(value)


class ProjectUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    type: Optional[ProjectType] = None
    client_id: Optional[str] = Field(default=None, min_length=1)
    status: Optional[ProjectStatus] = None
    estimated_budget: Optional[float] = Field(default=None, ge=0)
    estimated_duration: Optional[int] = Field(default=None, ge=0)
    start_date: Optional[str] = None
    deadline: Optional[str] = None

    @field_validator("type", mode="before")
    @classmethod
    def type_label(cls, value):
        return normalize_project_type(value)

    @field_validator("name", "type", "client_id", "status")
    @classmethod
    def present_fields_not_null(cls, value, info):
        return reject_nulls(value, info)


class ProjectFilters(BaseModel):
    status: Optional[ProjectStatus] = None
    type: Optional[ProjectType] = None
    client_id: Optional[str] = None  # honoured for admins only

    @field_validator("type", mode="before")
    @classmethod
    def type_label(cls, value):
        return normalize_project_type(value)


class ProjectRead(ORMRead):
    id: str
    project_code: str
    client_id: str
    name: str
    description: Optional[str] = None
    type: ProjectType
    status: ProjectStatus
    estimated_budget: Optional[float] = None
    estimated_duration: Optional[int] = None
    start_date: Optional[str] = None
    deadline: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    # Owning client, joined for display
    client_name: Optional[str] = None
    client_email: Optional[str] = None
    company_name: Optional[str] = None
