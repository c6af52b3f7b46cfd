import datetime as dt
from typing import Annotated, Any, Dict, Iterator, List, Optional, Tuple, Union
from pydantic import BaseModel, BeforeValidator, ConfigDict, Field

from app.schemas.career import InteractionImpact, InteractionType, SeniorityLevel, Sentiment

# Maps each extraction array to the suggestion entity_type it produces
EXTRACTION_KEYS: Tuple[Tuple[str, str], ...] = (
    ("skills", "skill"),
    ("skillUpdates", "skill_update"),
    ("goals", "goal"),
    ("projects", "project"),
    ("challenges", "challenge"),
    ("achievements", "achievement"),
    ("profileUpdates", "profile_update"),
    ("coworkers", "coworker"),
    ("interactions", "interaction"),
    ("decisions", "decision"),
)

class ExtractedEntities(BaseModel):
    """Raw candidate entities pulled out of one chat exchange.

    Items are kept as plain dicts: a single malformed item must not
    invalidate its siblings, so per-item checks happen when suggestions
    are created and when they are accepted.
    """
    skills: List[Dict[str, Any]] = Field(default_factory=list)
    skillUpdates: List[Dict[str, Any]] = Field(default_factory=list)
    goals: List[Dict[str, Any]] = Field(default_factory=list)
    projects: List[Dict[str, Any]] = Field(default_factory=list)
    challenges: List[Dict[str, Any]] = Field(default_factory=list)
    achievements: List[Dict[str, Any]] = Field(default_factory=list)
    profileUpdates: List[Dict[str, Any]] = Field(default_factory=list)
    coworkers: List[Dict[str, Any]] = Field(default_factory=list)
    interactions: List[Dict[str, Any]] = Field(default_factory=list)
    decisions: List[Dict[str, Any]] = Field(default_factory=list)

    def has_entities(self) -> bool:
        return any(getattr(self, key) for key, _ in EXTRACTION_KEYS)

    def candidates(self) -> Iterator[Tuple[str, Any]]:
        """Yield (entity_type, item) pairs in extraction order"""
        for key, entity_type in EXTRACTION_KEYS:
            for item in getattr(self, key):
                yield entity_type, item

class ExistingSnapshot(BaseModel):
    """Names of what is already stored, so the extractor does not re-suggest it"""
    profile: Optional[Dict[str, Any]] = None
    skills: List[str] = Field(default_factory=list)
    goals: List[str] = Field(default_factory=list)
    projects: List[str] = Field(default_factory=list)
    coworkers: List[str] = Field(default_factory=list)

def _lenient_date(value: Any) -> Optional[dt.date]:
    if value is None or isinstance(value, dt.date):
        return value
    try:
        return dt.date.fromisoformat(str(value)[:10])
    except ValueError:
        return None

LenientDate = Annotated[Optional[dt.date], BeforeValidator(_lenient_date)]

# Suggestion payloads, validated at accept time
class SuggestionPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

class SkillPayload(SuggestionPayload):
    skill_name: str
    category: Optional[str] = None
    proficiency_level: Optional[Union[int, float, str]] = None

class SkillUpdatePayload(SuggestionPayload):
    skill_name: str
    proficiency_level: Union[int, float, str]

class GoalPayload(SuggestionPayload):
    title: str
    description: Optional[str] = None
    category: Optional[str] = None
    target_date: LenientDate = None

class ProjectPayload(SuggestionPayload):
    project_name: str
    description: Optional[str] = None
    role: Optional[str] = None
    technologies: List[str] = Field(default_factory=list)
    start_date: LenientDate = None
    end_date: LenientDate = None

class ChallengePayload(SuggestionPayload):
    title: str
    description: Optional[str] = None
    category: Optional[str] = None

class AchievementPayload(SuggestionPayload):
    title: str
    description: Optional[str] = None
    date: LenientDate = None

class ProfileUpdatePayload(SuggestionPayload):
    field: str
    value: Union[str, int, float, List[str]]

class CoworkerPayload(SuggestionPayload):
    name: str
    role: Optional[str] = None
    department: Optional[str] = None
    seniority_level: Optional[SeniorityLevel] = None
    relationship: Optional[str] = None
    influence_score: Optional[int] = Field(default=None, ge=1, le=10)
    relationship_quality: Optional[int] = Field(default=None, ge=1, le=10)
    trust_level: Optional[int] = Field(default=None, ge=1, le=10)
    career_impact: Optional[Sentiment] = None
    personality_traits: Dict[str, Any] = Field(default_factory=dict)
    working_style: Dict[str, Any] = Field(default_factory=dict)

class InteractionPayload(SuggestionPayload):
    coworker_name: str
    interaction_type: InteractionType
    sentiment: Sentiment = "neutral"
    impact_on_career: Optional[InteractionImpact] = None
    description: Optional[str] = None
    outcomes: Optional[str] = None
    interaction_date: LenientDate = None

class DecisionPayload(SuggestionPayload):
    title: str
    description: Optional[str] = None
    reasoning: Optional[str] = None
    expected_outcome: Optional[str] = None
    related_coworkers: List[str] = Field(default_factory=list)
    related_goals: List[str] = Field(default_factory=list)
    impact_score: Optional[int] = Field(default=None, ge=1, le=10)
    confidence_level: Optional[int] = Field(default=None, ge=1, le=10)
