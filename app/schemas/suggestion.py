from datetime import datetime
from typing import Any, Dict, Literal, Optional
from uuid import UUID
from pydantic import BaseModel, ConfigDict, Field

SuggestionStatus = Literal["pending", "accepted", "rejected"]

class Suggestion(BaseModel):
    id: UUID
    conversation_id: Optional[UUID] = None
    entity_type: str
    entity_data: Dict[str, Any] = Field(default_factory=dict)
    context: str
    status: SuggestionStatus
    created_at: datetime
    resolved_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class SuggestionAction(BaseModel):
    action: Literal["accept", "reject"]

class SuggestionResolution(BaseModel):
    success: bool
    suggestion_id: UUID
    status: SuggestionStatus
