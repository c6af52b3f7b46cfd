"""Tests for conversation memory analysis."""

from datetime import datetime, timedelta

from app.models.conversation import Conversation
from app.services.memory import (
    MemoryService,
    analyze_conversations,
    analyze_sentiment,
    detect_progress,
    extract_themes,
    find_recurring_themes,
    identify_ongoing_challenges,
    summarize,
)

from conftest import OTHER_USER_ID, USER_ID

NOW = datetime(2024, 6, 30)


def user(content):
    return {"role": "user", "content": content}


def assistant(content):
    return {"role": "assistant", "content": content}


def conversation(*messages, days_ago=0):
    when = NOW - timedelta(days=days_ago)
    return {"messages": list(messages), "created_at": when, "updated_at": when}


class TestThemes:
    def test_counts_once_per_message(self):
        themes = extract_themes([user("my team and my manager"), user("team again")])
        assert themes["team dynamics"] == 2

    def test_skips_empty_and_non_text(self):
        assert extract_themes([{"role": "user", "content": None}, user("")]) == {}

    def test_recurring_needs_two_mentions(self):
        conversations = [
            conversation(user("I want a promotion"), days_ago=1),
            conversation(user("talking about my promotion again"), user("a deadline"), days_ago=5),
        ]
        themes = find_recurring_themes(conversations)
        assert [t.theme for t in themes] == ["career growth"]
        assert themes[0].frequency == 2
        assert themes[0].first_mentioned == NOW - timedelta(days=5)
        assert themes[0].last_mentioned == NOW - timedelta(days=1)

    def test_theme_sentiment(self):
        conversations = [conversation(
            user("my team is great"), user("my team makes me proud"), user("the job is a problem"),
        )]
        themes = {t.theme: t for t in find_recurring_themes(conversations)}
        assert themes["team dynamics"].sentiment == "positive"

    def test_at_most_five_themes_most_frequent_first(self):
        texts = [
            "balance", "promotion", "learn", "team", "interview", "mentor", "present", "doubt",
        ]
        messages = [user(text) for text in texts for _ in range(2)] + [user("team"), user("team")]
        themes = find_recurring_themes([conversation(*messages)])
        assert len(themes) == 5
        assert themes[0].theme == "team dynamics"


class TestSentiment:
    def test_positive(self):
        assert analyze_sentiment([user("great success, so proud")]) == "positive"

    def test_negative(self):
        assert analyze_sentiment([user("stuck on a hard problem")]) == "negative"

    def test_mixed(self):
        assert analyze_sentiment([user("great but a problem")]) == "mixed"

    def test_neutral(self):
        assert analyze_sentiment([user("the weather")]) == "neutral"
        assert analyze_sentiment([]) == "neutral"


class TestProgress:
    def test_improving_with_two_recent_mentions(self):
        conversations = [
            conversation(user("I presented at all-hands"), days_ago=2),
            conversation(user("I spoke at the meetup"), days_ago=10),
        ]
        progress = {p.area: p for p in detect_progress(conversations, now=NOW)}
        assert progress["communication"].status == "improving"
        assert progress["communication"].timeframe == "2 mentions over 10 days"

    def test_single_mention_is_new(self):
        progress = detect_progress([conversation(user("I mentored a new hire"), days_ago=1)], now=NOW)
        assert progress[0].area == "leadership"
        assert progress[0].status == "new"

    def test_old_mentions_are_stable(self):
        conversations = [
            conversation(user("I learned Go"), days_ago=60),
            conversation(user("I practiced katas"), days_ago=90),
        ]
        progress = detect_progress(conversations, now=NOW)
        assert progress[0].status == "stable"
        assert progress[0].timeframe == "2 mentions over 90 days"

    def test_evidence_truncated(self):
        text = "I learned " + "x" * 200
        progress = detect_progress([conversation(user(text))], now=NOW)
        assert progress[0].evidence == [text[:100]]


class TestChallenges:
    def test_user_messages_only(self):
        conversations = [conversation(
            user("I'm Struggling with estimates"),
            assistant("having trouble is normal"),
        )]
        assert identify_ongoing_challenges(conversations) == ["struggling with estimates"]

    def test_deduplicated_and_capped(self):
        messages = [user(f"stuck on task {i}") for i in range(8)] + [user("stuck on task 0")]
        challenges = identify_ongoing_challenges([conversation(*messages)])
        assert len(challenges) == 5
        assert len(set(challenges)) == 5

    def test_only_latest_ten_conversations(self):
        conversations = [conversation(user("hello")) for _ in range(10)]
        conversations.append(conversation(user("stuck on something old")))
        assert identify_ongoing_challenges(conversations) == []


class TestSummary:
    def test_empty_history(self):
        memory = analyze_conversations([])
        assert memory.total_conversations == 0
        assert memory.conversation_summary == "No previous conversations."

    def test_singular(self):
        assert summarize(1, [], []) == "User has had 1 coaching conversation."

    def test_full_memory(self):
        conversations = [
            conversation(user("I presented my project"), days_ago=1),
            conversation(user("I spoke about the project deadline"), days_ago=3),
        ]
        memory = analyze_conversations(conversations, now=NOW)
        assert memory.total_conversations == 2
        assert memory.last_conversation_date == NOW - timedelta(days=1)
        assert memory.conversation_summary == (
            "User has had 2 coaching conversations. Main focus areas: project management. "
            "Showing progress in: communication."
        )


class TestMemoryService:
    async def test_reads_user_conversations(self, db):
        db.add_all([
            Conversation(user_id=USER_ID, title="a", messages=[user("my team"), user("my manager")]),
            Conversation(user_id=OTHER_USER_ID, title="b", messages=[user("job interview")]),
        ])
        await db.commit()

        memory = await MemoryService().get_conversation_memory(db, USER_ID)
        assert memory.total_conversations == 1
        assert [t.theme for t in memory.recurring_themes] == ["team dynamics"]

    async def test_database_error_gives_empty_memory(self):
        class BrokenSession:
            async def execute(self, *args, **kwargs):
                raise RuntimeError("connection lost")

        memory = await MemoryService().get_conversation_memory(BrokenSession(), USER_ID)
        assert memory.total_conversations == 0
