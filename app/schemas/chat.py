from typing import Optional
from uuid import UUID
from pydantic import BaseModel, Field

class ChatRequest(BaseModel):
    message: str = Field(min_length=1)
    conversation_id: Optional[UUID] = None
