from uuid import UUID
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.config.database import get_db
from app.models.career import CareerProfile, CoworkerInteraction, Project, ProjectIssue
from app.routes.deps import get_current_user_id
from app.schemas.career import (
    InteractionCreate,
    Interaction as InteractionSchema,
    IssueCreate,
    Issue as IssueSchema,
    Profile as ProfileSchema,
    ProfileUpdate,
    Project as ProjectSchema,
    ProjectPatch,
)
from app.services import records

router = APIRouter()

@router.put("/profile", response_model=ProfileSchema)
async def replace_profile(
    request: ProfileUpdate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> CareerProfile:
    """Replace the career profile as a whole"""
    return await records.replace_profile(db, user_id, request)

@router.post("/interactions", response_model=InteractionSchema, status_code=201)
async def log_interaction(
    request: InteractionCreate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> CoworkerInteraction:
    """Log an interaction with a coworker"""
    return await records.log_interaction(db, user_id, request)

@router.patch("/projects/{project_id}", response_model=ProjectSchema)
async def update_project(
    project_id: UUID,
    request: ProjectPatch,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> Project:
    return await records.update_project(db, user_id, project_id, request)

@router.post("/projects/{project_id}/issues", response_model=IssueSchema, status_code=201)
async def file_project_issue(
    project_id: UUID,
    request: IssueCreate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> ProjectIssue:
    return await records.file_project_issue(db, user_id, project_id, request)
