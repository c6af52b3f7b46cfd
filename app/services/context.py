import asyncio
from typing import Any, Callable, List, NamedTuple, Optional, Tuple
from loguru import logger
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config.database import get_session_factory
from app.config.settings import settings
from app.models.career import (
    Achievement, CareerProfile, Challenge, Coworker, CoworkerInteraction, Decision, Goal, Project, Skill
)
from app.models.conversation import Conversation
from app.schemas.context import ConversationStats, EnhancedContext, IntentAnalysis, ScoredItem
from app.services.intent import classify_intent, get_data_source_limit, get_data_source_priority
from app.services.relevance import ScoringOptions, score_and_rank

class EntitySource(NamedTuple):
    name: str
    model: Any
    date_field: str
    text_fields: Tuple[str, ...]
    # extra WHERE clauses beyond user scoping
    filters: Callable[[], tuple]
    nulls_last: bool = False

ENTITY_SOURCES: Tuple[EntitySource, ...] = (
    EntitySource(
        "skills", Skill, "updated_at", ("name", "category"),
        lambda: (),
    ),
    EntitySource(
        "goals", Goal, "updated_at", ("title", "description", "category"),
        lambda: (Goal.status.in_(("active", "ongoing")),),
    ),
    EntitySource(
        "projects", Project, "start_date", ("name", "description"),
        lambda: (Project.archived.is_not(True),),
        nulls_last=True,
    ),
    EntitySource(
        "coworkers", Coworker, "last_interaction_date", ("name", "role", "department", "relationship"),
        lambda: (),
        nulls_last=True,
    ),
    EntitySource(
        "challenges", Challenge, "updated_at", ("title", "description", "category"),
        lambda: (Challenge.status.in_(("active", "ongoing")),),
    ),
    EntitySource(
        "achievements", Achievement, "achieved_date", ("title", "description"),
        lambda: (),
        nulls_last=True,
    ),
    EntitySource(
        "interactions", CoworkerInteraction, "interaction_date", ("description", "outcomes"),
        lambda: (),
    ),
    EntitySource(
        "decisions", Decision, "decision_date", ("title", "description", "reasoning"),
        lambda: (Decision.status.in_(("pending", "ongoing")),),
        nulls_last=True,
    ),
)

class ContextService:
    """Builds the bounded, relevance-ranked context for one chat message.

    Every entity type is fetched on its own session so the queries can run
    concurrently. A failing branch is logged and contributes an empty list.
    """

    def __init__(
        self,
        session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
        fetch_limit: Optional[int] = None,
    ):
        self.session_factory = session_factory or get_session_factory()
        self.fetch_limit = fetch_limit or settings.CONTEXT_FETCH_LIMIT

    async def assemble_context(
        self,
        user_id: str,
        message: str,
        intent: Optional[IntentAnalysis] = None,
    ) -> EnhancedContext:
        intent = intent or classify_intent(message)

        profile, stats = await asyncio.gather(
            self._guarded("profile", self.fetch_profile(user_id), None),
            self._guarded("conversation stats", self.fetch_conversation_stats(user_id), ConversationStats()),
        )

        results = await asyncio.gather(*(
            self._guarded(
                source.name,
                self.fetch_scored(source, user_id, message, intent, stats),
                [],
            )
            for source in ENTITY_SOURCES
        ))
        scored = {source.name: items for source, items in zip(ENTITY_SOURCES, results)}

        logger.info(
            f"Assembled context for user {user_id}: intent={intent.primary}, "
            + ", ".join(f"{name}={len(items)}" for name, items in scored.items())
        )

        return EnhancedContext(
            message=message,
            profile=profile,
            conversation_stats=stats,
            intent_analysis=intent,
            **scored,
        )

    async def _guarded(self, name: str, coro, fallback):
        try:
            return await coro
        except Exception as e:
            logger.warning(f"Context fetch for {name} failed, continuing without it: {str(e)}")
            return fallback

    async def fetch_profile(self, user_id: str) -> Optional[CareerProfile]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(CareerProfile).where(CareerProfile.user_id == user_id)
            )
            return result.scalar_one_or_none()

    async def fetch_conversation_stats(self, user_id: str) -> ConversationStats:
        async with self.session_factory() as session:
            total = await session.scalar(
                select(func.count()).select_from(Conversation).where(Conversation.user_id == user_id)
            )
            result = await session.execute(
                select(Conversation.title)
                .where(Conversation.user_id == user_id)
                .order_by(Conversation.updated_at.desc())
                .limit(10)
            )
            titles = [title for title in result.scalars().all() if title]
        return ConversationStats(total_conversations=total or 0, recent_topics=titles)

    async def fetch_records(self, source: EntitySource, user_id: str) -> List[Any]:
        """Most recent records of one type, over-fetched to give the scorer a pool"""
        order_column = getattr(source.model, source.date_field).desc()
        if source.nulls_last:
            order_column = order_column.nulls_last()

        stmt = (
            select(source.model)
            .where(source.model.user_id == user_id, *source.filters())
            .order_by(order_column)
            .limit(self.fetch_limit)
        )
        async with self.session_factory() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def fetch_scored(
        self,
        source: EntitySource,
        user_id: str,
        message: str,
        intent: IntentAnalysis,
        stats: ConversationStats,
    ) -> List[ScoredItem]:
        records = await self.fetch_records(source, user_id)
        if not records:
            return []

        options = ScoringOptions(
            date_field=source.date_field,
            text_fields=list(source.text_fields),
            priority=get_data_source_priority(intent, source.name),
            limit=get_data_source_limit(intent, source.name),
            mention_counts=stats.mention_counts,
            total_conversations=stats.total_conversations,
        )
        return score_and_rank(records, message, intent.keywords, options)
