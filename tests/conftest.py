"""Shared fixtures: a fresh SQLite database per test and fake LLM clients."""

import os

# Must be set before app.config.database builds its engine
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

import app.models.career  # noqa: F401
import app.models.conversation  # noqa: F401
from app.models.base import Base
from app.schemas.extraction import ExtractedEntities

USER_ID = "user-1"
OTHER_USER_ID = "user-2"


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


class FakeAIService:
    """Stands in for AIService: canned reply chunks and canned extraction."""

    def __init__(
        self,
        chunks: Optional[List[str]] = None,
        extracted: Optional[ExtractedEntities] = None,
        fail_with: Optional[Exception] = None,
        fail_after: int = 0,
    ):
        self.chunks = chunks if chunks is not None else ["Hello", " there"]
        self.extracted = extracted or ExtractedEntities()
        self.fail_with = fail_with
        self.fail_after = fail_after
        self.chat_calls: List[List[Dict[str, str]]] = []
        self.extract_calls: List[Any] = []

    async def stream_chat(self, messages):
        self.chat_calls.append(messages)
        for index, chunk in enumerate(self.chunks):
            if self.fail_with is not None and index == self.fail_after:
                raise self.fail_with
            yield chunk
        if self.fail_with is not None and self.fail_after >= len(self.chunks):
            raise self.fail_with

    async def extract_entities(self, user_message, assistant_reply, existing=None):
        self.extract_calls.append((user_message, assistant_reply, existing))
        return self.extracted


class FakeCompletions:
    """Mimics ``client.chat.completions`` of the OpenAI SDK."""

    def __init__(self, content: Optional[str] = None, error: Optional[Exception] = None, stream_chunks=None):
        self.content = content
        self.error = error
        self.stream_chunks = stream_chunks or []
        self.calls: List[Dict[str, Any]] = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        if kwargs.get("stream"):
            return self._stream()
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])

    async def _stream(self):
        for text in self.stream_chunks:
            delta = SimpleNamespace(content=text)
            yield SimpleNamespace(choices=[SimpleNamespace(delta=delta)])


def fake_openai_client(**kwargs) -> SimpleNamespace:
    return SimpleNamespace(chat=SimpleNamespace(completions=FakeCompletions(**kwargs)))


@pytest.fixture
def fake_ai():
    return FakeAIService()
