"""Tests for system prompt rendering."""

from datetime import datetime
from types import SimpleNamespace

from app.schemas.context import (
    ConversationMemory, ConversationPattern, EnhancedContext, ProgressTracking, ScoreBreakdown, ScoredItem
)
from app.services.intent import classify_intent
from app.services.prompts import (
    DEFAULT_FRAMEWORK,
    build_coaching_frameworks,
    build_memory_block,
    build_profile_section,
    build_system_prompt,
    rank_coworkers_by_relationship,
)


def scored(item, score=50.0):
    return ScoredItem(item=item, score=score, breakdown=ScoreBreakdown(recency=score, frequency=score, semantic=score))


def coworker(name, quality=None, trust=None, influence=None, **extra):
    return SimpleNamespace(
        name=name, role=extra.get("role"), relationship_quality=quality, trust_level=trust,
        influence_score=influence, career_impact=extra.get("career_impact"),
    )


def make_context(message, **kwargs):
    return EnhancedContext(message=message, intent_analysis=classify_intent(message), **kwargs)


class TestRelationshipRanking:
    def test_worst_relationships_order_by_quality_only(self):
        """Low quality with high trust still ranks as a worse relationship."""
        a = coworker("Alex", quality=3, trust=8)
        b = coworker("Blair", quality=7, trust=2)
        context = make_context("Who are my worst relationships at work?", coworkers=[scored(b, 90), scored(a, 10)])

        prompt = build_system_prompt(context)
        assert prompt.index("**Alex**") < prompt.index("**Blair**")

    def test_best_relationships_reverse_order(self):
        ranked = rank_coworkers_by_relationship(
            [coworker("a", 3), coworker("b", 9), coworker("c", 5)], worst_first=False
        )
        assert [c.name for c in ranked] == ["b", "c", "a"]

    def test_unrated_coworkers_go_last(self):
        entries = [coworker("none"), coworker("low", 2), coworker("high", 8)]
        assert [c.name for c in rank_coworkers_by_relationship(entries)] == ["low", "high", "none"]
        assert [c.name for c in rank_coworkers_by_relationship(entries, worst_first=False)] == ["high", "low", "none"]

    def test_ties_keep_order(self):
        entries = [coworker("first", 5), coworker("second", 5)]
        assert [c.name for c in rank_coworkers_by_relationship(entries)] == ["first", "second"]

    def test_scored_wrappers(self):
        ranked = rank_coworkers_by_relationship([scored(coworker("x", 9)), scored(coworker("y", 1))])
        assert [entry.item.name for entry in ranked] == ["y", "x"]

    def test_coworker_line_format(self):
        dana = coworker("Dana", quality=6, trust=7, influence=9, role="Manager", career_impact="positive")
        prompt = build_system_prompt(make_context("my manager gave feedback", coworkers=[scored(dana)]))
        assert "- **Dana** (Manager) - Influence: 9/10, Relationship: 6/10, Trust: 7/10 [positive impact]" in prompt

    def test_listing_shows_every_coworker(self):
        """Without a listing keyword the section stops at fifteen."""
        people = [scored(coworker(f"Person {i:02d}", 5)) for i in range(20)]
        listed = build_system_prompt(make_context("list my colleagues", coworkers=people))
        assert "Person 19" in listed

        capped = build_system_prompt(make_context("a conflict with a colleague", coworkers=people))
        assert "Person 14" in capped
        assert "Person 15" not in capped


class TestSections:
    """Intent decides which optional sections are included."""

    def test_coworkers_hidden_for_skills_intent(self):
        context = make_context("I want to learn Go", coworkers=[scored(coworker("Dana", 5))])
        assert "# Key Relationships" not in build_system_prompt(context)

    def test_achievements_only_for_goal_intents(self):
        achievement = SimpleNamespace(title="Shipped v2", achieved_date=None)
        goals = build_system_prompt(make_context("my career goal", achievements=[scored(achievement)]))
        skills = build_system_prompt(make_context("learn python", achievements=[scored(achievement)]))
        assert "# Recent Achievements" in goals
        assert "# Recent Achievements" not in skills

    def test_decisions_section(self):
        decision = SimpleNamespace(title="Switch teams?", status="pending", description=None)
        prompt = build_system_prompt(make_context("should I decide to switch", decisions=[scored(decision)]))
        assert "- **Switch teams?** (pending)" in prompt

    def test_skills_always_included(self):
        skill = SimpleNamespace(name="Rust", category=None, proficiency_level="advanced")
        prompt = build_system_prompt(make_context("hello", skills=[scored(skill)]))
        assert "- **Rust** (General) - advanced" in prompt

    def test_empty_sections_omitted(self):
        prompt = build_system_prompt(make_context("hello"))
        assert "# Current Skills" not in prompt
        assert "# Active Career Goals" not in prompt


class TestProfile:
    def test_missing_profile(self):
        assert "No profile information available yet." in build_profile_section(None)

    def test_profile_fields(self):
        profile = SimpleNamespace(
            role_title="Engineer", company="Acme", years_experience=5, industry="fintech",
            department="Payments", responsibilities=["on-call", "reviews"],
        )
        section = build_profile_section(profile)
        assert "**Current Role**: Engineer at Acme" in section
        assert "**Experience**: 5 years in fintech" in section
        assert "**Department**: Payments" in section
        assert "**Responsibilities**: on-call, reviews" in section


class TestFrameworks:
    def test_intent_framework(self):
        assert "SMART Goals Framework" in build_coaching_frameworks("career_goals")
        assert "70-20-10" in build_coaching_frameworks("skills_learning")

    def test_default_framework(self):
        assert build_coaching_frameworks("achievements_progress").endswith(DEFAULT_FRAMEWORK)
        assert "GROW Model" in build_coaching_frameworks("general_coaching")


class TestMemoryBlock:
    def test_first_conversation(self):
        block = build_memory_block(ConversationMemory())
        assert "This is your first conversation with this user." in block

    def test_returning_user(self):
        memory = ConversationMemory(
            total_conversations=4,
            conversation_summary="4 previous conversations.",
            recurring_themes=[ConversationPattern(theme="leadership", frequency=3, sentiment="positive")],
            recent_progress=[ProgressTracking(area="skills", status="improving", timeframe="2 weeks")],
            ongoing_challenges=["a", "b", "c", "d"],
            last_conversation_date=datetime(2024, 1, 1),
        )
        block = build_memory_block(memory)
        assert "**Overview**: 4 previous conversations." in block
        assert "- leadership (mentioned 3 times, positive sentiment)" in block
        assert "- skills: improving (2 weeks)" in block
        assert "- c\n" in block
        assert "- d\n" not in block
