from datetime import datetime
from sqlalchemy import Column, DateTime, ForeignKey, JSON, String, Text, Uuid
from sqlalchemy.orm import relationship
import uuid

from app.models.base import Base

class Conversation(Base):
    __tablename__ = "conversations"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(String, index=True, nullable=False)
    title = Column(String, nullable=True)
    # ordered list of {"role", "content", "timestamp"}
    messages = Column(JSON, default=list)
    context_used = Column(JSON, default=dict)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    suggestions = relationship("Suggestion", back_populates="conversation", passive_deletes=True)

class Suggestion(Base):
    __tablename__ = "suggestions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(String, index=True, nullable=False)
    conversation_id = Column(Uuid, ForeignKey("conversations.id", ondelete="SET NULL"), nullable=True)
    entity_type = Column(String, nullable=False)
    entity_data = Column(JSON, default=dict)
    context = Column(Text, nullable=False)
    status = Column(String, default="pending", index=True)  # pending, accepted, rejected
    created_at = Column(DateTime, default=datetime.utcnow)
    resolved_at = Column(DateTime, nullable=True)

    conversation = relationship("Conversation", back_populates="suggestions")
