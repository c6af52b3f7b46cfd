"""Tests for parsing extraction replies and the LLM client wrapper."""

import json

import pytest

from app.schemas.extraction import ExistingSnapshot
from app.services.ai import AIService, build_extraction_input, parse_extraction, strip_code_fences

from conftest import fake_openai_client


def reply(**arrays):
    return json.dumps(arrays)


class TestParseExtraction:
    def test_missing_key_keeps_others(self):
        """A reply without "goals" still yields the skills it does contain."""
        content = reply(skills=[{"skill_name": "Rust", "proficiency_level": 4, "context": "I know Rust well"}])
        entities = parse_extraction(content)
        assert entities.goals == []
        assert entities.skills[0]["skill_name"] == "Rust"

    def test_malformed_json(self):
        entities = parse_extraction("{not json")
        assert not entities.has_entities()

    def test_empty_content(self):
        assert not parse_extraction(None).has_entities()
        assert not parse_extraction("").has_entities()

    def test_not_an_object(self):
        assert not parse_extraction("[1, 2, 3]").has_entities()

    def test_code_fences(self):
        content = "```json\n" + reply(goals=[{"title": "Lead a team", "context": "I want to lead"}]) + "\n```"
        assert parse_extraction(content).goals[0]["title"] == "Lead a team"

    def test_non_list_value_is_empty(self):
        entities = parse_extraction(reply(skills="Rust", coworkers=[{"name": "Dana", "context": "Dana"}]))
        assert entities.skills == []
        assert len(entities.coworkers) == 1

    def test_non_object_items_dropped(self):
        entities = parse_extraction(reply(skills=["Rust", {"skill_name": "Go", "context": "Go"}]))
        assert [item["skill_name"] for item in entities.skills] == ["Go"]

    def test_candidates_order(self):
        entities = parse_extraction(reply(
            decisions=[{"title": "d", "context": "c"}],
            skills=[{"skill_name": "s", "context": "c"}],
        ))
        assert [entity_type for entity_type, _ in entities.candidates()] == ["skill", "decision"]


class TestStripCodeFences:
    def test_plain(self):
        assert strip_code_fences('  {"a": 1} ') == '{"a": 1}'

    def test_bare_fence(self):
        assert strip_code_fences('```\n{"a": 1}\n```') == '{"a": 1}'


class TestExtractionInput:
    def test_lists_existing_names(self):
        snapshot = ExistingSnapshot(skills=["Python", "Go"], coworkers=["Dana"])
        text = build_extraction_input("hi", "hello", snapshot)
        assert "Skills: Python, Go" in text
        assert "Co-workers: Dana" in text
        assert "Profile: null" in text
        assert "User: hi" in text


class TestAIService:
    async def test_extract_entities(self):
        client = fake_openai_client(content=reply(skills=[{"skill_name": "Rust", "context": "Rust"}]))
        service = AIService(client=client)
        entities = await service.extract_entities("I use Rust", "Nice")

        assert entities.skills[0]["skill_name"] == "Rust"
        call = client.chat.completions.calls[0]
        assert call["response_format"] == {"type": "json_object"}
        assert call["messages"][1]["content"].count("User: I use Rust") == 1

    async def test_extract_entities_never_raises(self):
        service = AIService(client=fake_openai_client(error=RuntimeError("provider down")))
        entities = await service.extract_entities("hello", "hi")
        assert not entities.has_entities()

    async def test_stream_chat_yields_deltas(self):
        client = fake_openai_client(stream_chunks=["Hel", None, "lo"])
        service = AIService(client=client)
        parts = [delta async for delta in service.stream_chat([{"role": "user", "content": "hi"}])]

        assert parts == ["Hel", "lo"]
        assert client.chat.completions.calls[0]["stream"] is True

    async def test_stream_chat_propagates_errors(self):
        service = AIService(client=fake_openai_client(error=RuntimeError("boom")))
        with pytest.raises(RuntimeError, match="boom"):
            async for _ in service.stream_chat([]):
                pass
