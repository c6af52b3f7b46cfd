import math
from datetime import datetime, time
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Literal, NamedTuple, Optional, Tuple, Type, Union
from uuid import UUID
from loguru import logger
from pydantic import ValidationError
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.career import Achievement, Challenge, Coworker, Decision, Goal, Project, Skill
from app.models.conversation import Suggestion
from app.schemas.extraction import (
    EXTRACTION_KEYS,
    AchievementPayload,
    ChallengePayload,
    CoworkerPayload,
    DecisionPayload,
    ExtractedEntities,
    GoalPayload,
    InteractionPayload,
    ProfileUpdatePayload,
    ProjectPayload,
    SkillPayload,
    SkillUpdatePayload,
    SuggestionPayload,
)
from app.services.exceptions import (
    ConflictError, InvalidSuggestionDataError, NotFoundError, UnknownEntityTypeError
)
from app.services.records import find_coworker_by_name, get_profile, record_interaction

SuggestionAction = Literal["accept", "reject"]

ALLOWED_ENTITY_TYPES = frozenset(entity_type for _, entity_type in EXTRACTION_KEYS)

PROFICIENCY_LEVELS = ("beginner", "intermediate", "advanced", "expert")

PROFILE_FIELDS = ("role_title", "company", "department", "years_experience", "industry", "responsibilities")

def normalize_proficiency(value: Union[int, float, str, None]) -> Optional[str]:
    """Map a 1-5 score or an ordinal label onto the ordinal scale.

    <=1 beginner, <=2 intermediate, <=4 advanced, anything higher expert.
    Numeric strings are treated as numbers.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        text = value.strip().lower()
        if not text:
            return None
        if text in PROFICIENCY_LEVELS:
            return text
        try:
            number = float(text)
        except ValueError:
            raise InvalidSuggestionDataError(f"Unknown proficiency level: {value}")
    else:
        number = float(value)
    if not math.isfinite(number):
        raise InvalidSuggestionDataError(f"Proficiency must be a finite number, got {value!r}")

    if number <= 1:
        return "beginner"
    if number <= 2:
        return "intermediate"
    if number <= 4:
        return "advanced"
    return "expert"

# Creation

def build_suggestions(
    user_id: str,
    conversation_id: Optional[UUID],
    candidates: Iterable[Tuple[str, Any]],
) -> List[Suggestion]:
    """Turn (entity_type, item) pairs into pending suggestions.

    Items with an unknown type or without a string ``context`` quote are
    dropped with a warning; their siblings are kept.
    """
    suggestions = []
    for entity_type, item in candidates:
        if entity_type not in ALLOWED_ENTITY_TYPES:
            logger.warning(f"Dropping extracted item with unknown entity type {entity_type}")
            continue
        context = item.get("context") if isinstance(item, dict) else None
        if not isinstance(context, str) or not context.strip():
            logger.warning(f"Dropping extracted {entity_type} without a context quote")
            continue

        entity_data = {key: value for key, value in item.items() if key != "context"}
        suggestions.append(Suggestion(
            user_id=user_id,
            conversation_id=conversation_id,
            entity_type=entity_type,
            entity_data=entity_data,
            context=context,
            status="pending",
        ))
    return suggestions

async def create_suggestions(
    db: AsyncSession,
    user_id: str,
    conversation_id: Optional[UUID],
    extracted: ExtractedEntities,
) -> List[Suggestion]:
    """Persist every well-formed extracted item as a pending suggestion"""
    suggestions = build_suggestions(user_id, conversation_id, extracted.candidates())
    if not suggestions:
        return []

    try:
        db.add_all(suggestions)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(f"Created {len(suggestions)} suggestions for conversation {conversation_id}")
    return suggestions

# Accept handlers, one per entity type. They stage changes without committing.

async def _apply_skill(db: AsyncSession, user_id: str, payload: SkillPayload) -> Skill:
    skill = Skill(
        user_id=user_id,
        name=payload.skill_name.strip(),
        category=payload.category,
        proficiency_level=normalize_proficiency(payload.proficiency_level),
        last_used=datetime.utcnow(),
    )
    db.add(skill)
    return skill

async def _apply_skill_update(db: AsyncSession, user_id: str, payload: SkillUpdatePayload) -> Skill:
    result = await db.execute(
        select(Skill)
        .where(Skill.user_id == user_id, func.lower(Skill.name) == payload.skill_name.strip().lower())
        .limit(1)
    )
    skill = result.scalar_one_or_none()
    if skill is None:
        raise NotFoundError(f"Skill not found: {payload.skill_name}")
    skill.proficiency_level = normalize_proficiency(payload.proficiency_level)
    skill.updated_at = datetime.utcnow()
    return skill

async def _apply_goal(db: AsyncSession, user_id: str, payload: GoalPayload) -> Goal:
    goal = Goal(
        user_id=user_id,
        title=payload.title,
        description=payload.description,
        category=payload.category,
        target_date=payload.target_date,
        status="active",
    )
    db.add(goal)
    return goal

async def _apply_project(db: AsyncSession, user_id: str, payload: ProjectPayload) -> Project:
    project = Project(
        user_id=user_id,
        name=payload.project_name,
        description=payload.description,
        technologies=payload.technologies,
        start_date=payload.start_date,
        end_date=payload.end_date,
        notes=f"Role: {payload.role}" if payload.role else None,
        status="active",
    )
    db.add(project)
    return project

async def _apply_challenge(db: AsyncSession, user_id: str, payload: ChallengePayload) -> Challenge:
    challenge = Challenge(
        user_id=user_id,
        title=payload.title,
        description=payload.description,
        category=payload.category,
        status="active",
    )
    db.add(challenge)
    return challenge

async def _apply_achievement(db: AsyncSession, user_id: str, payload: AchievementPayload) -> Achievement:
    achievement = Achievement(
        user_id=user_id,
        title=payload.title,
        description=payload.description,
        achieved_date=payload.date,
    )
    db.add(achievement)
    return achievement

def _coerce_profile_value(field: str, value: Any) -> Any:
    if field == "years_experience":
        try:
            return int(float(value))
        except (TypeError, ValueError, OverflowError):
            raise InvalidSuggestionDataError(f"years_experience must be a number, got {value!r}")
    if field == "responsibilities":
        return [str(v) for v in value] if isinstance(value, list) else [str(value)]
    if isinstance(value, list):
        return ", ".join(str(v) for v in value)
    return str(value)

async def _apply_profile_update(db: AsyncSession, user_id: str, payload: ProfileUpdatePayload):
    if payload.field not in PROFILE_FIELDS:
        raise InvalidSuggestionDataError(f"Profile field cannot be updated: {payload.field}")
    profile = await get_profile(db, user_id)
    if profile is None:
        raise NotFoundError("Career profile not found")
    setattr(profile, payload.field, _coerce_profile_value(payload.field, payload.value))
    return profile

async def _apply_coworker(db: AsyncSession, user_id: str, payload: CoworkerPayload) -> Coworker:
    """Merge into a same-named coworker if one exists, otherwise insert"""
    coworker = await find_coworker_by_name(db, user_id, payload.name)
    fields = payload.model_dump(exclude={"name", "personality_traits", "working_style"}, exclude_none=True)

    if coworker is None:
        coworker = Coworker(
            user_id=user_id,
            name=payload.name.strip(),
            personality_traits=payload.personality_traits,
            working_style=payload.working_style,
            **fields,
        )
        db.add(coworker)
        return coworker

    for field, value in fields.items():
        setattr(coworker, field, value)
    if payload.personality_traits:
        coworker.personality_traits = {**(coworker.personality_traits or {}), **payload.personality_traits}
    if payload.working_style:
        coworker.working_style = {**(coworker.working_style or {}), **payload.working_style}
    return coworker

async def _apply_interaction(db: AsyncSession, user_id: str, payload: InteractionPayload):
    coworker = await find_coworker_by_name(db, user_id, payload.coworker_name)
    if coworker is None:
        raise NotFoundError(f"Coworker not found: {payload.coworker_name}")
    when = datetime.combine(payload.interaction_date, time()) if payload.interaction_date else None
    return record_interaction(
        db,
        user_id,
        coworker,
        interaction_type=payload.interaction_type,
        sentiment=payload.sentiment,
        interaction_date=when,
        impact_on_career=payload.impact_on_career,
        description=payload.description,
        outcomes=payload.outcomes,
    )

async def _ids_for_names(db: AsyncSession, user_id: str, column, model, names: List[str]) -> List[str]:
    wanted = {name.strip().lower() for name in names if name and name.strip()}
    if not wanted:
        return []
    result = await db.execute(
        select(model.id).where(model.user_id == user_id, func.lower(column).in_(wanted))
    )
    return [str(record_id) for record_id in result.scalars().all()]

async def _apply_decision(db: AsyncSession, user_id: str, payload: DecisionPayload) -> Decision:
    decision = Decision(
        user_id=user_id,
        title=payload.title,
        description=payload.description,
        reasoning=payload.reasoning,
        expected_outcome=payload.expected_outcome,
        decision_date=datetime.utcnow().date(),
        status="pending",
        impact_score=payload.impact_score,
        confidence_level=payload.confidence_level,
        related_coworker_ids=await _ids_for_names(db, user_id, Coworker.name, Coworker, payload.related_coworkers),
        related_goal_ids=await _ids_for_names(db, user_id, Goal.title, Goal, payload.related_goals),
    )
    db.add(decision)
    return decision

class EntityHandler(NamedTuple):
    payload: Type[SuggestionPayload]
    apply: Callable[[AsyncSession, str, Any], Awaitable[Any]]

ENTITY_HANDLERS: Dict[str, EntityHandler] = {
    "skill": EntityHandler(SkillPayload, _apply_skill),
    "skill_update": EntityHandler(SkillUpdatePayload, _apply_skill_update),
    "goal": EntityHandler(GoalPayload, _apply_goal),
    "project": EntityHandler(ProjectPayload, _apply_project),
    "challenge": EntityHandler(ChallengePayload, _apply_challenge),
    "achievement": EntityHandler(AchievementPayload, _apply_achievement),
    "profile_update": EntityHandler(ProfileUpdatePayload, _apply_profile_update),
    "coworker": EntityHandler(CoworkerPayload, _apply_coworker),
    "interaction": EntityHandler(InteractionPayload, _apply_interaction),
    "decision": EntityHandler(DecisionPayload, _apply_decision),
}

async def apply_suggestion(db: AsyncSession, user_id: str, entity_type: str, entity_data: Dict[str, Any]):
    """Validate a suggestion payload and stage the record it describes"""
    handler = ENTITY_HANDLERS.get(entity_type)
    if handler is None:
        raise UnknownEntityTypeError(entity_type)
    try:
        payload = handler.payload.model_validate(entity_data or {})
    except ValidationError as e:
        raise InvalidSuggestionDataError(f"Invalid {entity_type} suggestion: {e.errors()[0]['msg']}")
    return await handler.apply(db, user_id, payload)

# Resolution

async def resolve_suggestion(
    db: AsyncSession,
    user_id: str,
    suggestion_id: UUID,
    action: SuggestionAction,
) -> Suggestion:
    """Accept or reject a pending suggestion exactly once.

    The status check and the transition are one conditional UPDATE, so two
    concurrent calls cannot both see ``pending``. Accepting applies the
    entity in the same transaction; if that fails everything is rolled back
    and the suggestion stays pending.
    """
    new_status = "accepted" if action == "accept" else "rejected"
    try:
        result = await db.execute(
            update(Suggestion)
            .where(
                Suggestion.id == suggestion_id,
                Suggestion.user_id == user_id,
                Suggestion.status == "pending",
            )
            .values(status=new_status, resolved_at=datetime.utcnow())
            .returning(Suggestion.entity_type, Suggestion.entity_data)
            .execution_options(synchronize_session=False)
        )
        row = result.first()

        if row is None:
            await db.rollback()
            current = await db.scalar(
                select(Suggestion.status).where(Suggestion.id == suggestion_id, Suggestion.user_id == user_id)
            )
            if current is None:
                raise NotFoundError("Suggestion not found")
            raise ConflictError(f"Suggestion already {current}")

        if action == "accept":
            await apply_suggestion(db, user_id, row.entity_type, row.entity_data)

        await db.commit()
    except Exception as e:
        await db.rollback()
        logger.warning(f"Could not {action} suggestion {suggestion_id}: {getattr(e, 'detail', str(e))}")
        raise

    logger.info(f"Suggestion {suggestion_id} {new_status}")
    result = await db.execute(
        select(Suggestion)
        .where(Suggestion.id == suggestion_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()

async def list_suggestions(
    db: AsyncSession,
    user_id: str,
    status: Optional[str] = None,
    conversation_id: Optional[UUID] = None,
) -> List[Suggestion]:
    stmt = select(Suggestion).where(Suggestion.user_id == user_id)
    if status:
        stmt = stmt.where(Suggestion.status == status)
    if conversation_id:
        stmt = stmt.where(Suggestion.conversation_id == conversation_id)
    result = await db.execute(stmt.order_by(Suggestion.created_at.desc()))
    return list(result.scalars().all())

async def delete_suggestion(db: AsyncSession, user_id: str, suggestion_id: UUID) -> None:
    result = await db.execute(
        select(Suggestion).where(Suggestion.id == suggestion_id, Suggestion.user_id == user_id)
    )
    suggestion = result.scalar_one_or_none()
    if suggestion is None:
        raise NotFoundError("Suggestion not found")
    try:
        await db.delete(suggestion)
        await db.commit()
    except Exception:
        await db.rollback()
        raise
