"""Tests for relevance scoring (pure, no DB)."""

from datetime import date, datetime, timedelta, timezone

import pytest

from app.schemas.context import ScoringWeights
from app.services.relevance import (
    ScoringOptions,
    calculate_composite_score,
    calculate_frequency_score,
    calculate_recency_score,
    calculate_semantic_score,
    days_since,
    filter_by_min_score,
    get_weights_for_priority,
    score_and_rank,
    temporal_weight,
)

NOW = datetime(2024, 6, 30, 12, 0, 0)


def ago(days: float) -> datetime:
    return NOW - timedelta(days=days)


class TestRecency:
    """Step function over days elapsed."""

    @pytest.mark.parametrize("days,expected", [
        (0, 100), (7, 100), (8, 90), (14, 90), (15, 75), (30, 75), (31, 55),
        (60, 55), (61, 40), (90, 40), (91, 25), (180, 25), (181, 10), (1000, 10),
    ])
    def test_boundaries(self, days, expected):
        assert calculate_recency_score(ago(days), now=NOW) == expected

    def test_partial_day_rounds_up(self):
        """7 days and one hour counts as 8 days."""
        assert calculate_recency_score(ago(7) - timedelta(hours=1), now=NOW) == 90

    def test_missing_date(self):
        assert calculate_recency_score(None, now=NOW) == 20

    def test_monotonic_non_increasing(self):
        """Older records never score higher than newer ones."""
        scores = [calculate_recency_score(ago(d), now=NOW) for d in range(0, 400)]
        assert all(a >= b for a, b in zip(scores, scores[1:]))

    def test_accepts_date_and_iso_string(self):
        assert calculate_recency_score(date(2024, 6, 25), now=NOW) == 100
        assert calculate_recency_score("2024-06-01T00:00:00Z", now=NOW) == 75

    def test_timezone_aware_datetime(self):
        aware = datetime(2024, 6, 29, 12, 0, tzinfo=timezone.utc)
        assert days_since(aware, now=NOW) == 1

    def test_unparseable_string_treated_as_missing(self):
        assert calculate_recency_score("not a date", now=NOW) == 20


class TestFrequency:
    def test_no_conversations(self):
        assert calculate_frequency_score(0, 0) == 50

    @pytest.mark.parametrize("mentions,total,expected", [
        (5, 10, 100), (3, 10, 85), (2, 10, 70), (1, 10, 55), (1, 20, 40),
    ])
    def test_thresholds(self, mentions, total, expected):
        assert calculate_frequency_score(mentions, total) == expected

    def test_low_frequency_floor(self):
        """Below 5% the score is frequency x 400, floored at 20."""
        assert calculate_frequency_score(0, 10) == 20
        assert calculate_frequency_score(1, 25) == pytest.approx(20)


class TestSemantic:
    def test_keyword_points(self):
        """Each keyword present adds 15."""
        assert calculate_semantic_score("Python", "nothing here", ["python"]) == 15

    def test_keyword_in_message_counts(self):
        assert calculate_semantic_score("", "i want to learn", ["learn"]) == 15

    def test_word_overlap(self):
        """Shared words longer than three characters add 5 each."""
        assert calculate_semantic_score("kubernetes cluster", "my kubernetes cluster broke", []) == 10

    def test_short_words_ignored(self):
        assert calculate_semantic_score("the api", "the api", []) == 0

    def test_three_match_bonus(self):
        # 3 overlapping words: 15 + 10 bonus
        score = calculate_semantic_score("alpha bravo charlie", "alpha bravo charlie", [])
        assert score == 25

    def test_five_match_bonus(self):
        # 5 overlapping words: 25 + 20 bonus
        text = "alpha bravo charlie delta echos"
        assert calculate_semantic_score(text, text, []) == 45

    def test_capped_at_100(self):
        keywords = ["learn", "skill", "course", "study", "practice", "master", "growth"]
        assert calculate_semantic_score(" ".join(keywords), "x", keywords) == 100


class TestComposite:
    def test_priority_weights(self):
        assert get_weights_for_priority("high").model_dump() == {"recency": 0.3, "frequency": 0.2, "semantic": 0.5}
        assert get_weights_for_priority("medium").model_dump() == {"recency": 0.4, "frequency": 0.3, "semantic": 0.3}
        assert get_weights_for_priority("low").model_dump() == {"recency": 0.6, "frequency": 0.2, "semantic": 0.2}

    def test_weighted_sum(self):
        weights = ScoringWeights(recency=0.4, frequency=0.3, semantic=0.3)
        assert calculate_composite_score(100, 50, 0, weights) == pytest.approx(55)

    @pytest.mark.parametrize("priority", ["high", "medium", "low"])
    def test_bounded(self, priority):
        weights = get_weights_for_priority(priority)
        assert calculate_composite_score(100, 100, 100, weights) <= 100
        assert calculate_composite_score(0, 0, 0, weights) >= 0

    def test_clamped_for_oversized_weights(self):
        weights = ScoringWeights(recency=1, frequency=1, semantic=1)
        assert calculate_composite_score(100, 100, 100, weights) == 100


class TestScoreAndRank:
    """Sorting, truncation and tie handling."""

    def items(self):
        return [
            {"id": "a", "name": "Old unrelated", "updated_at": ago(400)},
            {"id": "b", "name": "Python", "updated_at": ago(1)},
            {"id": "c", "name": "Python", "updated_at": ago(100)},
            {"id": "d", "name": "Go", "updated_at": ago(3)},
        ]

    def options(self, **kwargs):
        defaults = dict(date_field="updated_at", text_fields=["name"], priority="high", now=NOW)
        defaults.update(kwargs)
        return ScoringOptions(**defaults)

    def test_sorted_descending(self):
        ranked = score_and_rank(self.items(), "help with python", ["python"], self.options())
        scores = [entry.score for entry in ranked]
        assert scores == sorted(scores, reverse=True)
        assert ranked[0].item["id"] == "b"

    def test_limit(self):
        ranked = score_and_rank(self.items(), "python", ["python"], self.options(limit=2))
        assert len(ranked) == 2

    def test_limit_larger_than_pool(self):
        ranked = score_and_rank(self.items(), "python", [], self.options(limit=10))
        assert len(ranked) == 4

    def test_zero_limit(self):
        assert score_and_rank(self.items(), "python", [], self.options(limit=0)) == []

    def test_ties_keep_input_order(self):
        """Equal scores keep the order the records were fetched in."""
        items = [{"id": str(i), "name": "same", "updated_at": ago(2)} for i in range(6)]
        ranked = score_and_rank(items, "unrelated", [], self.options())
        assert [entry.item["id"] for entry in ranked] == [str(i) for i in range(6)]

    def test_scores_bounded(self):
        ranked = score_and_rank(self.items(), "python " * 20, ["python"] * 10, self.options())
        assert all(0 <= entry.score <= 100 for entry in ranked)

    def test_breakdown(self):
        ranked = score_and_rank(self.items()[:1], "x", [], self.options(total_conversations=0))
        breakdown = ranked[0].breakdown
        assert breakdown.recency == 10
        assert breakdown.frequency == 50
        assert breakdown.semantic == 0

    def test_mention_counts_keyed_by_id(self):
        ranked = score_and_rank(
            self.items(), "x", [],
            self.options(mention_counts={"d": 10}, total_conversations=10),
        )
        by_id = {entry.item["id"]: entry for entry in ranked}
        assert by_id["d"].breakdown.frequency == 100
        assert by_id["b"].breakdown.frequency == 20

    def test_custom_boost(self):
        """A boost of 0.5 adds 50 points, capped at 100."""
        ranked = score_and_rank(
            self.items(), "x", [],
            self.options(custom_boost=lambda item: 0.5 if item["id"] == "a" else 0.0),
        )
        assert ranked[0].item["id"] == "a"
        assert ranked[0].score <= 100

    def test_orm_style_objects(self):
        """Records may be attribute objects rather than dicts."""
        class Record:
            def __init__(self, id, name, updated_at):
                self.id, self.name, self.updated_at = id, name, updated_at

        ranked = score_and_rank(
            [Record("x", "Rust", ago(1)), Record("y", "Java", ago(1))],
            "rust", ["rust"], self.options(),
        )
        assert ranked[0].item.id == "x"


class TestHelpers:
    @pytest.mark.parametrize("days,expected", [
        (7, 1.0), (30, 0.8), (90, 0.5), (180, 0.3), (181, 0.2),
    ])
    def test_temporal_weight(self, days, expected):
        assert temporal_weight(ago(days), now=NOW) == expected

    def test_temporal_weight_missing(self):
        assert temporal_weight(None) == 0.2

    def test_filter_by_min_score(self):
        ranked = score_and_rank(
            [{"id": "new", "name": "x", "updated_at": ago(1)}, {"id": "old", "name": "y", "updated_at": None}],
            "z", [], ScoringOptions(date_field="updated_at", text_fields=["name"], priority="low",
                                    total_conversations=0, now=NOW),
        )
        kept = filter_by_min_score(ranked)
        # new: 100*.6 + 50*.2 = 70; old: 20*.6 + 50*.2 = 22
        assert [entry.item["id"] for entry in kept] == ["new"]
