from datetime import datetime
from typing import Any, Optional
from uuid import UUID
from loguru import logger
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.career import CareerProfile, Coworker, CoworkerInteraction, Project, ProjectIssue, ProjectUpdate
from app.schemas.career import InteractionCreate, IssueCreate, ProfileUpdate, ProjectPatch
from app.services.exceptions import NotFoundError

async def get_profile(db: AsyncSession, user_id: str) -> Optional[CareerProfile]:
    result = await db.execute(select(CareerProfile).where(CareerProfile.user_id == user_id))
    return result.scalar_one_or_none()

async def find_coworker_by_name(db: AsyncSession, user_id: str, name: str) -> Optional[Coworker]:
    """Case-insensitive exact name lookup, oldest match first"""
    result = await db.execute(
        select(Coworker)
        .where(Coworker.user_id == user_id, func.lower(Coworker.name) == name.strip().lower())
        .order_by(Coworker.created_at)
        .limit(1)
    )
    return result.scalar_one_or_none()

async def replace_profile(db: AsyncSession, user_id: str, data: ProfileUpdate) -> CareerProfile:
    """Replace the user's profile wholesale, creating it on first save"""
    try:
        profile = await get_profile(db, user_id)
        if profile is None:
            profile = CareerProfile(user_id=user_id)
            db.add(profile)
        # every field is written, omitted optional ones are cleared
        for field, value in data.model_dump().items():
            setattr(profile, field, value)
        await db.commit()
        await db.refresh(profile)
        return profile
    except Exception:
        await db.rollback()
        raise

def record_interaction(
    db: AsyncSession,
    user_id: str,
    coworker: Coworker,
    interaction_type: str,
    sentiment: str = "neutral",
    interaction_date: Optional[datetime] = None,
    **fields: Any,
) -> CoworkerInteraction:
    """Stage an interaction and bump the coworker's last interaction date.

    Does not commit; callers own the transaction.
    """
    when = interaction_date or datetime.utcnow()
    interaction = CoworkerInteraction(
        user_id=user_id,
        coworker_id=coworker.id,
        interaction_type=interaction_type,
        sentiment=sentiment,
        interaction_date=when,
        **fields,
    )
    db.add(interaction)
    if coworker.last_interaction_date is None or coworker.last_interaction_date < when:
        coworker.last_interaction_date = when
    return interaction

async def log_interaction(db: AsyncSession, user_id: str, data: InteractionCreate) -> CoworkerInteraction:
    try:
        result = await db.execute(
            select(Coworker).where(Coworker.id == data.coworker_id, Coworker.user_id == user_id)
        )
        coworker = result.scalar_one_or_none()
        if coworker is None:
            raise NotFoundError("Coworker not found")

        fields = data.model_dump(exclude={"coworker_id"})
        interaction_date = fields.pop("interaction_date")
        if interaction_date is not None and interaction_date.tzinfo is not None:
            interaction_date = interaction_date.replace(tzinfo=None) - interaction_date.utcoffset()

        interaction = record_interaction(db, user_id, coworker, interaction_date=interaction_date, **fields)
        await db.commit()
        await db.refresh(interaction)
        logger.info(f"Logged {interaction.interaction_type} interaction with coworker {coworker.id}")
        return interaction
    except Exception:
        await db.rollback()
        raise

async def _get_project(db: AsyncSession, user_id: str, project_id: UUID) -> Project:
    result = await db.execute(
        select(Project).where(Project.id == project_id, Project.user_id == user_id)
    )
    project = result.scalar_one_or_none()
    if project is None:
        raise NotFoundError("Project not found")
    return project

# an explicit null for these leaves the stored value untouched
_REQUIRED_PROJECT_FIELDS = frozenset({"name", "status", "completion_percentage", "archived"})

async def update_project(db: AsyncSession, user_id: str, project_id: UUID, patch: ProjectPatch) -> Project:
    """Apply a partial update, appending audit entries for status and progress changes"""
    try:
        project = await _get_project(db, user_id, project_id)
        changes = {
            field: value
            for field, value in patch.model_dump(exclude_unset=True).items()
            if value is not None or field not in _REQUIRED_PROJECT_FIELDS
        }

        new_status = changes.get("status")
        if new_status is not None and new_status != project.status:
            db.add(ProjectUpdate(
                project_id=project.id,
                user_id=user_id,
                update_type="status_change",
                title="Status changed",
                description=f"Project status changed from {project.status} to {new_status}",
                previous_value=project.status,
                new_value=new_status,
                impact="positive" if new_status == "completed" else "neutral",
            ))

        new_completion = changes.get("completion_percentage")
        old_completion = project.completion_percentage or 0
        if new_completion is not None and new_completion != old_completion:
            db.add(ProjectUpdate(
                project_id=project.id,
                user_id=user_id,
                update_type="progress",
                title="Progress updated",
                description=f"Project completion updated from {old_completion}% to {new_completion}%",
                previous_value=str(old_completion),
                new_value=str(new_completion),
                impact="positive" if new_completion > old_completion else "neutral",
            ))

        for field, value in changes.items():
            setattr(project, field, value)

        await db.commit()
        await db.refresh(project)
        return project
    except Exception:
        await db.rollback()
        raise

async def file_project_issue(db: AsyncSession, user_id: str, project_id: UUID, data: IssueCreate) -> ProjectIssue:
    try:
        project = await _get_project(db, user_id, project_id)
        issue = ProjectIssue(project_id=project.id, user_id=user_id, **data.model_dump())
        db.add(issue)
        db.add(ProjectUpdate(
            project_id=project.id,
            user_id=user_id,
            update_type="issue",
            title=f"New {data.severity} issue reported",
            description=data.title,
            impact="negative" if data.severity in ("high", "critical") else "neutral",
        ))
        await db.commit()
        await db.refresh(issue)
        return issue
    except Exception:
        await db.rollback()
        raise
