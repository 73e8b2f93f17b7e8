"""
Project Endpoints Module

Projects are listed and read with ownership scoping (clients see their own,
developers see none, admins see all) and mutated by administrators only.
"""
from fastapi import APIRouter, Depends, Query, status
from sqlmodel import Session

from portal.api import deps
from portal.db.session import get_db
from portal.repositories.projects import ProjectRepository
from portal.schemas.auth import Actor
from portal.schemas.common import envelope
from portal.schemas.project import ProjectCreate, ProjectFilters, ProjectUpdate

router = APIRouter()


@router.get("")
def list_projects(
    filters: ProjectFilters = Depends(),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    db: Session = Depends(get_db),
    actor: Actor = Depends(deps.get_current_actor),
):
    """
    Retrieve a paginated list of projects, newest first.

    The client_id filter is only honoured for administrators.
    """
    result = ProjectRepository(db).list(actor, filters, page, limit)
    projects = [project.model_dump(mode="json") for project in result.items]
    return envelope({"projects": projects, "pagination": result.pagination()})


@router.post("", status_code=status.HTTP_201_CREATED)
def create_project(
    project_in: ProjectCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(deps.get_current_admin),
):
    """
    Create a project for an active client and allocate its code.

    Raises:
        400: missing fields or invalid type
        404: client not found or inactive
    """
    repo = ProjectRepository(db)
    project = repo.create(actor, project_in)
    return envelope(
        {"project": repo.present(project).model_dump(mode="json")},
        message="Project created successfully",
    )


@router.get("/{project_id}")
def read_project(
    project_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(deps.get_current_actor),
):
    """
    Get a specific project by ID.

    Raises:
        404: project does not exist
        403: client not owning it, or any developer
    """
    repo = ProjectRepository(db)
    project = repo.present(repo.get(actor, project_id))
    return envelope({"project": project.model_dump(mode="json")})


@router.put("/{project_id}")
def update_project(
    project_id: str,
    project_in: ProjectUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(deps.get_current_admin),
):
    repo = ProjectRepository(db)
    project = repo.update(actor, project_id, project_in)
    return envelope(
        {"project": repo.present(project).model_dump(mode="json")},
        message="Project updated successfully",
    )


@router.delete("/{project_id}")
def delete_project(
    project_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(deps.get_current_admin),
):
    ProjectRepository(db).delete(actor, project_id)
    return envelope(message="Project deleted successfully")
