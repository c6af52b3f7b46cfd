import math
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple
from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config.settings import settings
from app.models.conversation import Conversation
from app.schemas.context import ConversationMemory, ConversationPattern, ProgressTracking

THEME_KEYWORDS: Dict[str, Tuple[str, ...]] = {
    "work-life balance": ("work life", "balance", "burnout", "stress", "overwhelm", "time management"),
    "career growth": ("promotion", "advance", "grow", "next level", "senior", "lead"),
    "skill development": ("learn", "skill", "training", "course", "improve", "practice"),
    "team dynamics": ("team", "colleague", "coworker", "manager", "relationship"),
    "job search": ("job", "interview", "resume", "application", "offer", "switch"),
    "leadership": ("lead", "manage", "mentor", "delegate", "decision"),
    "communication": ("communicate", "present", "speak", "meeting", "feedback"),
    "confidence": ("confident", "imposter", "doubt", "anxiety", "worry"),
    "technical skills": ("code", "programming", "technology", "framework", "tool"),
    "project management": ("project", "deadline", "deliver", "scope", "timeline"),
}

POSITIVE_WORDS = (
    "success", "achieve", "accomplish", "improve", "better",
    "great", "excellent", "proud", "happy", "excited",
)
NEGATIVE_WORDS = (
    "struggle", "difficult", "hard", "problem", "issue",
    "stress", "worry", "concern", "frustrated", "stuck",
)

PROGRESS_KEYWORDS: Dict[str, Tuple[str, ...]] = {
    "technical skills": ("learned", "completed course", "practiced", "improved at", "better at"),
    "leadership": ("led", "managed", "mentored", "delegated", "made decision"),
    "communication": ("presented", "spoke", "gave feedback", "facilitated"),
    "relationships": ("built rapport", "improved relationship", "resolved conflict", "collaborated"),
    "confidence": ("more confident", "less anxious", "overcame fear", "took initiative"),
}

CHALLENGE_PHRASES = (
    "struggling with", "having trouble", "difficult to", "challenge with",
    "problem with", "stuck on", "not sure how", "need help with",
)

MIN_THEME_FREQUENCY = 2
MAX_THEMES = 5
MAX_CHALLENGES = 5
CHALLENGE_SNIPPET_LENGTH = 70
EVIDENCE_LENGTH = 100
RECENT_PROGRESS_DAYS = 30

def _get(record: Any, name: str) -> Any:
    if isinstance(record, dict):
        return record.get(name)
    return getattr(record, name, None)

def _messages(conversation: Any) -> List[Dict[str, Any]]:
    messages = _get(conversation, "messages")
    return [m for m in messages if isinstance(m, dict)] if isinstance(messages, list) else []

def _content(message: Dict[str, Any]) -> str:
    content = message.get("content")
    return content if isinstance(content, str) else ""

def _last_activity(conversation: Any) -> Optional[datetime]:
    return _get(conversation, "updated_at") or _get(conversation, "created_at")

def _matches_theme(content: str, theme: str) -> bool:
    lower = content.lower()
    return any(keyword in lower for keyword in THEME_KEYWORDS[theme])

def extract_themes(messages: Iterable[Dict[str, Any]]) -> Dict[str, int]:
    """Count messages per theme, a message counting at most once per theme"""
    themes: Dict[str, int] = {}
    for message in messages:
        content = _content(message)
        if not content:
            continue
        for theme in THEME_KEYWORDS:
            if _matches_theme(content, theme):
                themes[theme] = themes.get(theme, 0) + 1
    return themes

def analyze_sentiment(messages: Iterable[Dict[str, Any]]) -> str:
    positive = 0
    negative = 0
    for message in messages:
        content = _content(message).lower()
        if not content:
            continue
        positive += sum(1 for word in POSITIVE_WORDS if word in content)
        negative += sum(1 for word in NEGATIVE_WORDS if word in content)

    if positive > negative * 1.5:
        return "positive"
    if negative > positive * 1.5:
        return "negative"
    if positive > 0 and negative > 0:
        return "mixed"
    return "neutral"

def find_recurring_themes(conversations: Sequence[Any]) -> List[ConversationPattern]:
    """Themes seen in at least two messages, most frequent first"""
    all_messages = [message for conversation in conversations for message in _messages(conversation)]
    frequencies = extract_themes(all_messages)

    # oldest conversation first for first/last mention dates
    chronological = list(reversed(conversations))
    patterns = []
    for theme, frequency in frequencies.items():
        if frequency < MIN_THEME_FREQUENCY:
            continue

        first_mentioned = None
        last_mentioned = None
        for conversation in chronological:
            if any(_matches_theme(_content(m), theme) for m in _messages(conversation)):
                if first_mentioned is None:
                    first_mentioned = _get(conversation, "created_at")
                last_mentioned = _last_activity(conversation)

        matching = [m for m in all_messages if _matches_theme(_content(m), theme)]
        patterns.append(ConversationPattern(
            theme=theme,
            frequency=frequency,
            first_mentioned=first_mentioned,
            last_mentioned=last_mentioned,
            sentiment=analyze_sentiment(matching),
        ))

    patterns.sort(key=lambda pattern: pattern.frequency, reverse=True)
    return patterns[:MAX_THEMES]

def detect_progress(conversations: Sequence[Any], now: Optional[datetime] = None) -> List[ProgressTracking]:
    now = now or datetime.utcnow()
    mentions: Dict[str, List[Tuple[str, Optional[datetime]]]] = {}

    for conversation in conversations:
        when = _last_activity(conversation)
        for message in _messages(conversation):
            content = _content(message)
            lower = content.lower()
            for area, phrases in PROGRESS_KEYWORDS.items():
                if any(phrase in lower for phrase in phrases):
                    mentions.setdefault(area, []).append((content[:EVIDENCE_LENGTH], when))

    progress = []
    for area, entries in mentions.items():
        dates = [when for _, when in entries if when is not None]
        recent = sum(1 for when in dates if abs((now - when).total_seconds()) / 86400 <= RECENT_PROGRESS_DAYS)

        if recent >= 2:
            status = "improving"
        elif len(entries) == 1:
            status = "new"
        else:
            status = "stable"

        span = math.ceil((now - min(dates)).total_seconds() / 86400) if dates else 0
        progress.append(ProgressTracking(
            area=area,
            status=status,
            evidence=[snippet for snippet, _ in entries[:3]],
            timeframe=f"{len(entries)} mentions over {span} days",
        ))
    return progress

def identify_ongoing_challenges(conversations: Sequence[Any]) -> List[str]:
    """Snippets following challenge phrases in user messages of the 10 latest conversations"""
    challenges: List[str] = []
    for conversation in conversations[:10]:
        for message in _messages(conversation):
            if message.get("role") != "user":
                continue
            lower = _content(message).lower()
            for phrase in CHALLENGE_PHRASES:
                index = lower.find(phrase)
                if index != -1:
                    snippet = lower[index:index + CHALLENGE_SNIPPET_LENGTH].strip()
                    if snippet not in challenges:
                        challenges.append(snippet)
    return challenges[:MAX_CHALLENGES]

def summarize(
    total_conversations: int,
    themes: Sequence[ConversationPattern],
    progress: Sequence[ProgressTracking],
) -> str:
    plural = "s" if total_conversations != 1 else ""
    summary = f"User has had {total_conversations} coaching conversation{plural}. "
    if themes:
        summary += f"Main focus areas: {', '.join(t.theme for t in themes[:3])}. "
    improving = [p.area for p in progress if p.status == "improving"]
    if improving:
        summary += f"Showing progress in: {', '.join(improving)}. "
    return summary.strip()

def analyze_conversations(conversations: Sequence[Any], now: Optional[datetime] = None) -> ConversationMemory:
    """Build memory from conversations ordered most recently updated first"""
    if not conversations:
        return ConversationMemory()

    themes = find_recurring_themes(conversations)
    progress = detect_progress(conversations, now)
    return ConversationMemory(
        recurring_themes=themes,
        recent_progress=progress,
        ongoing_challenges=identify_ongoing_challenges(conversations),
        conversation_summary=summarize(len(conversations), themes, progress),
        total_conversations=len(conversations),
        last_conversation_date=_last_activity(conversations[0]),
    )

class MemoryService:
    def __init__(self, conversation_limit: Optional[int] = None):
        self.conversation_limit = conversation_limit or settings.MEMORY_CONVERSATION_LIMIT

    async def get_conversation_memory(self, db: AsyncSession, user_id: str) -> ConversationMemory:
        """Recompute memory from the user's latest conversations.

        Memory is a continuity aid for the prompt, so any failure here yields
        an empty memory instead of failing the chat turn.
        """
        try:
            result = await db.execute(
                select(Conversation)
                .where(Conversation.user_id == user_id)
                .order_by(Conversation.updated_at.desc())
                .limit(self.conversation_limit)
            )
            conversations = list(result.scalars().all())
        except Exception as e:
            logger.warning(f"Could not load conversation memory for user {user_id}: {str(e)}")
            return ConversationMemory()

        return analyze_conversations(conversations)
