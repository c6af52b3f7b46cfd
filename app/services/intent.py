from typing import Dict, List, NamedTuple, Tuple
from loguru import logger

from app.schemas.context import DataSource, IntentAnalysis, IntentCategory, Priority

DEFAULT_SOURCE_LIMIT = 5

class IntentPattern(NamedTuple):
    category: IntentCategory
    keywords: Tuple[str, ...]
    data_sources: Tuple[DataSource, ...]

def _sources(*specs: Tuple[str, Priority, int]) -> Tuple[DataSource, ...]:
    return tuple(DataSource(name=name, priority=priority, limit=limit) for name, priority, limit in specs)

# Iteration order matters: ties on score go to the earlier entry
INTENT_PATTERNS: Tuple[IntentPattern, ...] = (
    IntentPattern(
        category="skills_learning",
        keywords=(
            "learn", "skill", "training", "course", "certification", "improve",
            "practice", "study", "master", "proficiency", "expertise", "knowledge",
            "technology", "framework", "language", "tool", "develop", "growth",
        ),
        data_sources=_sources(
            ("skills", "high", 15),
            ("achievements", "high", 5),
            ("goals", "medium", 5),
            ("projects", "medium", 5),
            ("challenges", "low", 3),
        ),
    ),
    IntentPattern(
        category="career_goals",
        keywords=(
            "goal", "career", "promotion", "promoted", "advance", "grow", "future",
            "plan", "aspire", "ambition", "objective", "target", "achieve",
            "progress", "next step", "move up", "transition", "change role",
            "senior", "staff engineer", "lead",
        ),
        data_sources=_sources(
            ("goals", "high", 8),
            ("projects", "high", 8),
            ("achievements", "medium", 5),
            ("decisions", "medium", 5),
            ("skills", "low", 10),
        ),
    ),
    IntentPattern(
        category="relationships",
        keywords=(
            "coworker", "colleague", "team", "manager", "boss", "relationship",
            "communication", "conflict", "collaborate", "work with", "meeting",
            "feedback", "interaction", "people", "person", "someone", "they",
            "list", "show", "who are",
        ),
        data_sources=_sources(
            ("coworkers", "high", 50),
            ("interactions", "high", 10),
            ("decisions", "medium", 5),
            ("challenges", "medium", 5),
            ("projects", "low", 5),
        ),
    ),
    IntentPattern(
        category="challenges_obstacles",
        keywords=(
            "challenge", "problem", "issue", "struggle", "difficult", "hard",
            "obstacle", "stuck", "blocked", "frustrated", "overwhelmed", "stress",
            "concern", "worry", "trouble", "help", "advice", "not sure",
        ),
        data_sources=_sources(
            ("challenges", "high", 8),
            ("interactions", "high", 8),
            ("decisions", "medium", 5),
            ("coworkers", "medium", 8),
            ("goals", "low", 5),
        ),
    ),
    IntentPattern(
        category="decision_making",
        keywords=(
            "decide", "decision", "choice", "option", "should i", "consider",
            "thinking about", "evaluate", "weigh", "pros and cons", "whether",
            "if i should", "opportunity", "offer", "job offer", "switch",
        ),
        data_sources=_sources(
            ("decisions", "high", 8),
            ("goals", "high", 8),
            ("coworkers", "medium", 10),
            ("interactions", "medium", 8),
            ("projects", "low", 5),
        ),
    ),
    IntentPattern(
        category="achievements_progress",
        keywords=(
            "achieved", "accomplished", "completed", "finished", "success",
            "milestone", "progress", "improved", "better", "proud", "won",
            "delivered", "shipped", "launched", "recognition", "award",
        ),
        data_sources=_sources(
            ("achievements", "high", 8),
            ("projects", "high", 8),
            ("goals", "medium", 8),
            ("skills", "medium", 10),
            ("interactions", "low", 5),
        ),
    ),
)

# Used when nothing in the message matches a known topic
GENERAL_COACHING = IntentPattern(
    category="general_coaching",
    keywords=(),
    data_sources=_sources(
        ("goals", "high", 5),
        ("skills", "high", 10),
        ("projects", "medium", 5),
        ("coworkers", "medium", 20),
        ("challenges", "medium", 3),
        ("achievements", "low", 3),
        ("interactions", "low", 5),
        ("decisions", "low", 3),
    ),
)

_PATTERNS_BY_CATEGORY: Dict[str, IntentPattern] = {
    pattern.category: pattern for pattern in INTENT_PATTERNS + (GENERAL_COACHING,)
}

def classify_intent(message: str) -> IntentAnalysis:
    """Classify a chat message into a coaching topic and the data sources it needs.

    Each category scores one point per distinct keyword found as a substring
    of the lower-cased message. The strictly highest score wins, earlier
    categories win ties, and a message with no matches falls back to
    general coaching with a confidence of 0.5.
    """
    lower_message = message.lower()
    scores: Dict[str, int] = {}
    matched_keywords: List[str] = []

    for pattern in INTENT_PATTERNS:
        score = 0
        for keyword in pattern.keywords:
            if keyword in lower_message:
                score += 1
                if keyword not in matched_keywords:
                    matched_keywords.append(keyword)
        scores[pattern.category] = score

    primary = GENERAL_COACHING.category
    max_score = 0
    for category, score in scores.items():
        if score > max_score:
            max_score = score
            primary = category

    # sorted() is stable, so equal scores keep table order
    secondary = [
        category
        for category, score in sorted(scores.items(), key=lambda entry: entry[1], reverse=True)
        if category != primary and score > 0
    ][:2]

    total_score = sum(scores.values())
    confidence = max_score / total_score if total_score > 0 else 0.5

    data_sources = list(_PATTERNS_BY_CATEGORY[primary].data_sources)
    present = {source.name for source in data_sources}
    for category in secondary:
        for source in _PATTERNS_BY_CATEGORY[category].data_sources:
            if source.priority == "high" and source.name not in present:
                data_sources.append(DataSource(name=source.name, priority="medium", limit=source.limit))
                present.add(source.name)

    analysis = IntentAnalysis(
        primary=primary,
        secondary=secondary,
        confidence=confidence,
        keywords=matched_keywords,
        data_sources=data_sources,
    )
    logger.debug(
        f"Classified intent as {primary} (confidence {confidence:.2f}, secondary {secondary})"
    )
    return analysis

def get_data_source_limit(analysis: IntentAnalysis, source_name: str) -> int:
    source = analysis.get_source(source_name)
    return source.limit if source else DEFAULT_SOURCE_LIMIT

def get_data_source_priority(analysis: IntentAnalysis, source_name: str) -> Priority:
    source = analysis.get_source(source_name)
    return source.priority if source else "low"

def should_fetch_data_source(analysis: IntentAnalysis, source_name: str) -> bool:
    return analysis.get_source(source_name) is not None
