from datetime import datetime
from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field

IntentCategory = Literal[
    "skills_learning",
    "career_goals",
    "relationships",
    "challenges_obstacles",
    "decision_making",
    "achievements_progress",
    "general_coaching",
]

Priority = Literal["high", "medium", "low"]

# Intent Schemas
class DataSource(BaseModel):
    name: str
    priority: Priority
    limit: int

    model_config = ConfigDict(frozen=True)

class IntentAnalysis(BaseModel):
    primary: IntentCategory
    secondary: List[IntentCategory] = Field(default_factory=list)
    confidence: float
    keywords: List[str] = Field(default_factory=list)
    data_sources: List[DataSource] = Field(default_factory=list)

    def get_source(self, name: str) -> Optional[DataSource]:
        for source in self.data_sources:
            if source.name == name:
                return source
        return None

# Scoring Schemas
class ScoringWeights(BaseModel):
    recency: float = 0.4
    frequency: float = 0.3
    semantic: float = 0.3

    model_config = ConfigDict(frozen=True)

class ScoreBreakdown(BaseModel):
    recency: float
    frequency: float
    semantic: float

class ScoredItem(BaseModel):
    item: Any
    score: float
    breakdown: ScoreBreakdown

    model_config = ConfigDict(arbitrary_types_allowed=True)

class ConversationStats(BaseModel):
    total_conversations: int = 0
    recent_topics: List[str] = Field(default_factory=list)
    # reserved for per-entity mention tracking, always empty for now
    mention_counts: Dict[str, int] = Field(default_factory=dict)

class EnhancedContext(BaseModel):
    """Everything the prompt builder needs for one chat request"""
    message: str
    profile: Optional[Any] = None
    skills: List[ScoredItem] = Field(default_factory=list)
    goals: List[ScoredItem] = Field(default_factory=list)
    projects: List[ScoredItem] = Field(default_factory=list)
    coworkers: List[ScoredItem] = Field(default_factory=list)
    challenges: List[ScoredItem] = Field(default_factory=list)
    achievements: List[ScoredItem] = Field(default_factory=list)
    interactions: List[ScoredItem] = Field(default_factory=list)
    decisions: List[ScoredItem] = Field(default_factory=list)
    conversation_stats: ConversationStats = Field(default_factory=ConversationStats)
    intent_analysis: IntentAnalysis

    model_config = ConfigDict(arbitrary_types_allowed=True)

# Memory Schemas
class ConversationPattern(BaseModel):
    theme: str
    frequency: int
    first_mentioned: Optional[datetime] = None
    last_mentioned: Optional[datetime] = None
    related_topics: List[str] = Field(default_factory=list)
    sentiment: Literal["positive", "negative", "neutral", "mixed"] = "neutral"

class ProgressTracking(BaseModel):
    area: str
    status: Literal["improving", "stable", "declining", "new"]
    evidence: List[str] = Field(default_factory=list)
    timeframe: str

class ConversationMemory(BaseModel):
    recurring_themes: List[ConversationPattern] = Field(default_factory=list)
    recent_progress: List[ProgressTracking] = Field(default_factory=list)
    ongoing_challenges: List[str] = Field(default_factory=list)
    conversation_summary: str = "No previous conversations."
    total_conversations: int = 0
    last_conversation_date: Optional[datetime] = None
