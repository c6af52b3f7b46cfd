from typing import List
from uuid import UUID
from fastapi import APIRouter, Depends
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.config.database import get_db
from app.models.conversation import Conversation, Suggestion
from app.routes.deps import get_current_user_id
from app.schemas.career import (
    Conversation as ConversationSchema,
    ConversationCreate,
    ConversationSummary,
)
from app.services.exceptions import NotFoundError

router = APIRouter()

PREVIEW_LENGTH = 100

async def _get_owned(db: AsyncSession, user_id: str, conversation_id: UUID) -> Conversation:
    result = await db.execute(
        select(Conversation).where(Conversation.id == conversation_id, Conversation.user_id == user_id)
    )
    conversation = result.scalar_one_or_none()
    if conversation is None:
        raise NotFoundError("Conversation not found")
    return conversation

@router.get("", response_model=List[ConversationSummary])
async def list_conversations(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> List[ConversationSummary]:
    """List the user's conversations, most recently active first"""
    result = await db.execute(
        select(Conversation)
        .where(Conversation.user_id == user_id)
        .order_by(Conversation.updated_at.desc())
    )
    summaries = []
    for conversation in result.scalars().all():
        messages = conversation.messages or []
        last = messages[-1].get("content") if messages else None
        summaries.append(ConversationSummary(
            id=conversation.id,
            title=conversation.title,
            message_count=len(messages),
            last_message=last[:PREVIEW_LENGTH] if last else None,
            created_at=conversation.created_at,
            updated_at=conversation.updated_at,
        ))
    return summaries

@router.post("", response_model=ConversationSchema, status_code=201)
async def create_conversation(
    request: ConversationCreate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> Conversation:
    """Start an empty conversation"""
    conversation = Conversation(user_id=user_id, title=request.title, messages=[], context_used={})
    db.add(conversation)
    await db.commit()
    await db.refresh(conversation)
    return conversation

@router.get("/{conversation_id}", response_model=ConversationSchema)
async def get_conversation(
    conversation_id: UUID,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> Conversation:
    return await _get_owned(db, user_id, conversation_id)

@router.delete("/{conversation_id}")
async def delete_conversation(
    conversation_id: UUID,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Delete a conversation; its suggestions are kept but detached"""
    conversation = await _get_owned(db, user_id, conversation_id)
    try:
        await db.execute(
            update(Suggestion)
            .where(Suggestion.conversation_id == conversation.id, Suggestion.user_id == user_id)
            .values(conversation_id=None)
            .execution_options(synchronize_session=False)
        )
        await db.delete(conversation)
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    return {"status": "success", "message": "Conversation deleted successfully"}
