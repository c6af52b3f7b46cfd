import math
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence, Union
from pydantic import BaseModel, ConfigDict, Field

from app.schemas.context import Priority, ScoreBreakdown, ScoredItem, ScoringWeights

DateLike = Union[date, datetime, str, None]

DEFAULT_WEIGHTS = ScoringWeights()

_PRIORITY_WEIGHTS: Dict[str, ScoringWeights] = {
    # semantic match matters most for the topic being discussed
    "high": ScoringWeights(recency=0.3, frequency=0.2, semantic=0.5),
    "medium": DEFAULT_WEIGHTS,
    # supplementary context, prefer the latest information
    "low": ScoringWeights(recency=0.6, frequency=0.2, semantic=0.2),
}

# (max days, score), checked in order
_RECENCY_STEPS = ((7, 100), (14, 90), (30, 75), (60, 55), (90, 40), (180, 25))
_TEMPORAL_STEPS = ((7, 1.0), (30, 0.8), (90, 0.5), (180, 0.3))
_FREQUENCY_STEPS = ((0.5, 100), (0.3, 85), (0.2, 70), (0.1, 55), (0.05, 40))

class ScoringOptions(BaseModel):
    date_field: str = "created_at"
    text_fields: List[str] = Field(default_factory=list)
    priority: Optional[Priority] = None
    weights: Optional[ScoringWeights] = None
    limit: Optional[int] = None
    mention_counts: Dict[str, int] = Field(default_factory=dict)
    total_conversations: int = 1
    # returns a 0-1 boost, scaled by 100 and added to the composite score
    custom_boost: Optional[Callable[[Any], float]] = None
    now: Optional[datetime] = None

    model_config = ConfigDict(arbitrary_types_allowed=True)

    def resolved_weights(self) -> ScoringWeights:
        if self.weights is not None:
            return self.weights
        if self.priority is not None:
            return get_weights_for_priority(self.priority)
        return DEFAULT_WEIGHTS

def _to_naive_utc(value: DateLike) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    if not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day)
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value

def days_since(value: DateLike, now: Optional[datetime] = None) -> Optional[int]:
    """Whole days between ``value`` and ``now``, rounded up"""
    moment = _to_naive_utc(value)
    if moment is None:
        return None
    reference = _to_naive_utc(now) if now is not None else datetime.utcnow()
    elapsed = abs((reference - moment).total_seconds())
    return math.ceil(elapsed / 86400)

def calculate_recency_score(value: DateLike, now: Optional[datetime] = None) -> float:
    days = days_since(value, now)
    if days is None:
        return 20
    for max_days, score in _RECENCY_STEPS:
        if days <= max_days:
            return score
    return 10

def calculate_frequency_score(mention_count: int, total_conversations: int) -> float:
    if total_conversations <= 0:
        return 50
    frequency = mention_count / total_conversations
    for threshold, score in _FREQUENCY_STEPS:
        if frequency >= threshold:
            return score
    return max(20, frequency * 400)

def calculate_semantic_score(item_text: str, message: str, keywords: Sequence[str] = ()) -> float:
    """Keyword and word-overlap score between a record and the message, 0-100"""
    lower_item = item_text.lower()
    lower_message = message.lower()
    score = 0
    matches = 0

    for keyword in keywords:
        if keyword in lower_item or keyword in lower_message:
            matches += 1
            score += 15

    message_words = {word for word in lower_message.split() if len(word) > 3}
    for word in lower_item.split():
        if len(word) > 3 and word in message_words:
            matches += 1
            score += 5

    if matches >= 5:
        score += 20
    elif matches >= 3:
        score += 10

    return min(100, score)

def calculate_composite_score(
    recency: float,
    frequency: float,
    semantic: float,
    weights: ScoringWeights = DEFAULT_WEIGHTS
) -> float:
    score = recency * weights.recency + frequency * weights.frequency + semantic * weights.semantic
    return max(0.0, min(100.0, score))

def get_weights_for_priority(priority: Priority) -> ScoringWeights:
    return _PRIORITY_WEIGHTS[priority]

def _field(item: Any, name: str) -> Any:
    if isinstance(item, dict):
        return item.get(name)
    return getattr(item, name, None)

def mention_key(item: Any) -> str:
    key = _field(item, "id") or _field(item, "name")
    return str(key) if key is not None else repr(item)

def score_item(
    item: Any,
    message: str,
    keywords: Sequence[str],
    options: ScoringOptions,
) -> ScoredItem:
    recency = calculate_recency_score(_field(item, options.date_field), options.now)
    mentions = options.mention_counts.get(mention_key(item), 0)
    frequency = calculate_frequency_score(mentions, options.total_conversations)

    text = " ".join(str(value) for value in (_field(item, f) for f in options.text_fields) if value)
    semantic = calculate_semantic_score(text, message, keywords)

    score = calculate_composite_score(recency, frequency, semantic, options.resolved_weights())
    if options.custom_boost is not None:
        score = max(0.0, min(100.0, score + options.custom_boost(item) * 100))

    return ScoredItem(
        item=item,
        score=score,
        breakdown=ScoreBreakdown(recency=recency, frequency=frequency, semantic=semantic),
    )

def score_and_rank(
    items: Sequence[Any],
    message: str,
    keywords: Sequence[str],
    options: Optional[ScoringOptions] = None,
) -> List[ScoredItem]:
    """Score every item, sort by score descending and cut to ``options.limit``.

    The sort is stable: items with equal scores keep their input order, which
    is the storage order (most recent first) for fetched records.
    """
    options = options or ScoringOptions()
    scored = [score_item(item, message, keywords, options) for item in items]
    scored = sorted(scored, key=lambda entry: entry.score, reverse=True)
    if options.limit is not None:
        scored = scored[:max(options.limit, 0)]
    return scored

def temporal_weight(value: DateLike, now: Optional[datetime] = None) -> float:
    days = days_since(value, now)
    if days is None:
        return 0.2
    for max_days, weight in _TEMPORAL_STEPS:
        if days <= max_days:
            return weight
    return 0.2

def filter_by_min_score(items: Sequence[ScoredItem], min_score: float = 30) -> List[ScoredItem]:
    return [entry for entry in items if entry.score >= min_score]
