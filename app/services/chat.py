import asyncio
import json
import uuid
from datetime import datetime
from typing import Any, AsyncIterator, Dict, List, Optional, Set
from uuid import UUID
from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config.database import get_session_factory
from app.config.settings import settings
from app.models.career import Coworker, Goal, Project, Skill
from app.models.conversation import Conversation
from app.schemas.context import EnhancedContext
from app.schemas.extraction import ExistingSnapshot
from app.services.ai import AIService
from app.services.context import ContextService
from app.services.exceptions import NotFoundError
from app.services.intent import classify_intent
from app.services.memory import MemoryService
from app.services.prompts import build_memory_block, build_system_prompt
from app.services.records import get_profile
from app.services.suggestion import build_suggestions

TITLE_LENGTH = 50

# Strong references to detached turns so they are not garbage collected mid-flight
_background_turns: Set[asyncio.Task] = set()

def format_sse(event: Dict[str, Any]) -> str:
    return f"data: {json.dumps(event)}\n\n"

def derive_title(message: str) -> str:
    return message.strip()[:TITLE_LENGTH]

class ChatTurn:
    """One user message being answered; events are read from ``queue``"""

    def __init__(self, user_id: str, message: str, conversation_id: UUID, history: List[Dict[str, str]], is_new: bool):
        self.user_id = user_id
        self.message = message
        self.conversation_id = conversation_id
        self.history = history
        self.is_new = is_new
        self.queue: asyncio.Queue = asyncio.Queue()
        self.task: Optional[asyncio.Task] = None
        self.context: Optional[EnhancedContext] = None

    async def events(self) -> AsyncIterator[str]:
        """SSE frames until the turn finishes.

        If the client goes away this generator is closed, but the turn task
        keeps running so the reply and its suggestions are still saved.
        """
        while True:
            event = await self.queue.get()
            if event is None:
                break
            yield format_sse(event)

class ChatService:
    def __init__(
        self,
        session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
        ai_service: Optional[AIService] = None,
        context_service: Optional[ContextService] = None,
        memory_service: Optional[MemoryService] = None,
    ):
        self.session_factory = session_factory or get_session_factory()
        self.ai_service = ai_service or AIService()
        self.context_service = context_service or ContextService(self.session_factory)
        self.memory_service = memory_service or MemoryService()

    async def start_turn(self, user_id: str, message: str, conversation_id: Optional[UUID] = None) -> ChatTurn:
        """Validate the conversation and launch the turn in the background.

        Raises NotFoundError before anything is streamed if the conversation
        does not belong to the user.
        """
        history: List[Dict[str, str]] = []
        is_new = conversation_id is None
        if conversation_id is not None:
            async with self.session_factory() as db:
                conversation = await self._get_conversation(db, user_id, conversation_id)
                if conversation is None:
                    raise NotFoundError("Conversation not found")
                history = [
                    {"role": m["role"], "content": m["content"]}
                    for m in (conversation.messages or [])
                    if m.get("role") in ("user", "assistant") and m.get("content")
                ]
        else:
            # created only once the reply is complete
            conversation_id = uuid.uuid4()

        turn = ChatTurn(user_id, message, conversation_id, history, is_new)
        turn.task = asyncio.create_task(self.run_turn(turn))
        _background_turns.add(turn.task)
        turn.task.add_done_callback(_background_turns.discard)
        return turn

    async def _get_conversation(self, db: AsyncSession, user_id: str, conversation_id: UUID) -> Optional[Conversation]:
        result = await db.execute(
            select(Conversation).where(Conversation.id == conversation_id, Conversation.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def build_messages(self, turn: ChatTurn) -> List[Dict[str, str]]:
        intent = classify_intent(turn.message)
        context = await self.context_service.assemble_context(turn.user_id, turn.message, intent)
        async with self.session_factory() as db:
            memory = await self.memory_service.get_conversation_memory(db, turn.user_id)

        turn.context = context
        system_prompt = build_system_prompt(context) + build_memory_block(memory)
        recent = turn.history[-settings.CONVERSATION_HISTORY_TURNS:] if settings.CONVERSATION_HISTORY_TURNS else []
        return [
            {"role": "system", "content": system_prompt},
            *recent,
            {"role": "user", "content": turn.message},
        ]

    async def run_turn(self, turn: ChatTurn) -> None:
        queue = turn.queue
        try:
            await queue.put({"type": "conversation", "conversation_id": str(turn.conversation_id)})

            try:
                messages = await self.build_messages(turn)
                parts: List[str] = []
                async for delta in self.ai_service.stream_chat(messages):
                    parts.append(delta)
                    await queue.put({"type": "delta", "content": delta})
                reply = "".join(parts)
            except Exception as e:
                logger.error(f"Chat turn failed for user {turn.user_id}: {str(e)}")
                await queue.put({"type": "error", "message": "Failed to generate a response. Please try again."})
                return

            done: Dict[str, Any] = {"type": "done", "suggestions": 0}
            try:
                done["suggestions"] = await self.persist_turn(turn, reply)
            except Exception as e:
                logger.warning(f"Reply delivered but saving conversation {turn.conversation_id} failed: {str(e)}")
                done["warning"] = "Your conversation could not be saved."
            await queue.put(done)
        finally:
            await queue.put(None)

    async def load_snapshot(self, db: AsyncSession, user_id: str) -> ExistingSnapshot:
        """Names of stored entities, so extraction does not suggest them again"""
        profile = await get_profile(db, user_id)

        async def names(column, model) -> List[str]:
            result = await db.execute(select(column).where(model.user_id == user_id))
            return [name for name in result.scalars().all() if name]

        return ExistingSnapshot(
            profile={
                "role_title": profile.role_title,
                "company": profile.company,
                "department": profile.department,
                "years_experience": profile.years_experience,
                "industry": profile.industry,
                "responsibilities": profile.responsibilities or [],
            } if profile else None,
            skills=await names(Skill.name, Skill),
            goals=await names(Goal.title, Goal),
            projects=await names(Project.name, Project),
            coworkers=await names(Coworker.name, Coworker),
        )

    def context_summary(self, turn: ChatTurn) -> Dict[str, Any]:
        context = turn.context
        if context is None:
            return {}
        intent = context.intent_analysis
        return {
            "intent": intent.primary,
            "secondary": intent.secondary,
            "confidence": intent.confidence,
            "counts": {
                name: len(getattr(context, name))
                for name in ("skills", "goals", "projects", "coworkers", "challenges",
                             "achievements", "interactions", "decisions")
            },
        }

    async def persist_turn(self, turn: ChatTurn, reply: str) -> int:
        """Save the message pair and the suggestions extracted from it.

        Extraction runs first so the conversation and its suggestions are
        written in one transaction. Returns the number of suggestions saved.
        """
        async with self.session_factory() as db:
            snapshot = await self.load_snapshot(db, turn.user_id)
            extracted = await self.ai_service.extract_entities(turn.message, reply, snapshot)

            try:
                now = datetime.utcnow().isoformat()
                new_messages = [
                    {"role": "user", "content": turn.message, "timestamp": now},
                    {"role": "assistant", "content": reply, "timestamp": now},
                ]
                if turn.is_new:
                    conversation = Conversation(
                        id=turn.conversation_id,
                        user_id=turn.user_id,
                        title=derive_title(turn.message),
                        messages=new_messages,
                        context_used=self.context_summary(turn),
                    )
                    db.add(conversation)
                else:
                    conversation = await self._get_conversation(db, turn.user_id, turn.conversation_id)
                    if conversation is None:
                        raise NotFoundError("Conversation not found")
                    # reassign so the JSON column is flagged dirty
                    conversation.messages = [*(conversation.messages or []), *new_messages]
                    if not conversation.title:
                        conversation.title = derive_title(turn.message)
                    conversation.context_used = self.context_summary(turn)
                    conversation.updated_at = datetime.utcnow()

                suggestions = []
                if extracted.has_entities():
                    suggestions = build_suggestions(turn.user_id, turn.conversation_id, extracted.candidates())
                    db.add_all(suggestions)

                await db.commit()
            except Exception:
                await db.rollback()
                raise

        logger.info(f"Saved turn for conversation {turn.conversation_id} with {len(suggestions)} suggestions")
        return len(suggestions)
