from datetime import date, datetime
from typing import Any, Dict, List, Literal, Optional
from uuid import UUID
from pydantic import BaseModel, ConfigDict, Field

Sentiment = Literal["positive", "negative", "neutral"]
InteractionType = Literal["meeting", "conflict", "collaboration", "feedback", "casual", "email", "chat", "phone"]
InteractionImpact = Literal["helped", "hindered", "neutral"]
SeniorityLevel = Literal["junior", "mid", "senior", "lead", "manager", "director", "vp", "executive"]

# Profile Schemas
class ProfileBase(BaseModel):
    role_title: str
    company: Optional[str] = None
    department: Optional[str] = None
    years_experience: Optional[int] = Field(default=None, ge=0)
    industry: Optional[str] = None
    responsibilities: List[str] = Field(default_factory=list)

class ProfileUpdate(ProfileBase):
    pass

class Profile(ProfileBase):
    id: UUID
    user_id: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

# Interaction Schemas
class InteractionCreate(BaseModel):
    coworker_id: UUID
    interaction_type: InteractionType
    sentiment: Sentiment = "neutral"
    impact_on_career: Optional[InteractionImpact] = None
    description: Optional[str] = None
    outcomes: Optional[str] = None
    interaction_date: Optional[datetime] = None
    related_project_id: Optional[UUID] = None
    related_goal_id: Optional[UUID] = None
    related_challenge_id: Optional[UUID] = None

class Interaction(BaseModel):
    id: UUID
    coworker_id: UUID
    interaction_type: str
    sentiment: str
    impact_on_career: Optional[str] = None
    description: Optional[str] = None
    outcomes: Optional[str] = None
    interaction_date: datetime

    model_config = ConfigDict(from_attributes=True)

# Project Schemas
class ProjectPatch(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[str] = None
    completion_percentage: Optional[int] = Field(default=None, ge=0, le=100)
    end_date: Optional[date] = None
    notes: Optional[str] = None
    archived: Optional[bool] = None

class Project(BaseModel):
    id: UUID
    name: str
    description: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[str] = None
    completion_percentage: Optional[int] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    technologies: List[str] = Field(default_factory=list)
    archived: bool = False
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

class IssueCreate(BaseModel):
    title: str
    description: Optional[str] = None
    severity: Literal["low", "medium", "high", "critical"] = "medium"
    status: str = "open"
    category: Optional[str] = None
    impact_on_timeline: Optional[str] = None
    related_tasks: List[str] = Field(default_factory=list)

class Issue(BaseModel):
    id: UUID
    project_id: UUID
    title: str
    description: Optional[str] = None
    severity: str
    status: str
    reported_date: datetime

    model_config = ConfigDict(from_attributes=True)

# Conversation Schemas
class Message(BaseModel):
    role: Literal["user", "assistant"]
    content: str
    timestamp: Optional[str] = None

class ConversationCreate(BaseModel):
    title: Optional[str] = None

class ConversationSummary(BaseModel):
    id: UUID
    title: Optional[str] = None
    message_count: int = 0
    last_message: Optional[str] = None
    created_at: datetime
    updated_at: datetime

class Conversation(BaseModel):
    id: UUID
    title: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    messages: List[Message] = Field(default_factory=list)
    context_used: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(from_attributes=True)
