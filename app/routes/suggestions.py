from typing import List, Optional
from uuid import UUID
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.config.database import get_db
from app.models.conversation import Suggestion
from app.routes.deps import get_current_user_id
from app.schemas.suggestion import (
    Suggestion as SuggestionSchema,
    SuggestionAction,
    SuggestionResolution,
    SuggestionStatus,
)
from app.services import suggestion as suggestion_service

router = APIRouter()

@router.get("", response_model=List[SuggestionSchema])
async def list_suggestions(
    status: Optional[SuggestionStatus] = None,
    conversation_id: Optional[UUID] = None,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> List[Suggestion]:
    return await suggestion_service.list_suggestions(db, user_id, status, conversation_id)

@router.patch("/{suggestion_id}", response_model=SuggestionResolution)
async def resolve_suggestion(
    suggestion_id: UUID,
    request: SuggestionAction,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> SuggestionResolution:
    """Accept or reject a pending suggestion.

    404 if it does not exist, 409 if it was already resolved.
    """
    suggestion = await suggestion_service.resolve_suggestion(db, user_id, suggestion_id, request.action)
    return SuggestionResolution(success=True, suggestion_id=suggestion.id, status=suggestion.status)

@router.delete("/{suggestion_id}")
async def delete_suggestion(
    suggestion_id: UUID,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    await suggestion_service.delete_suggestion(db, user_id, suggestion_id)
    return {"status": "success", "message": "Suggestion deleted successfully"}
