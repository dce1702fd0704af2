"""
Shared pytest fixtures.

The LLM and the knowledge source are replaced by scripted stand-ins so the
game logic can be driven turn by turn without network access.
"""

import asyncio
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from mindreader.config import Settings  # noqa: E402
from mindreader.controller import GameController  # noqa: E402
from mindreader.models import GuessInfo, Message  # noqa: E402
from mindreader.services.learning_log import LearningLog  # noqa: E402
from mindreader.state import InMemorySessionStore  # noqa: E402


class ScriptedChatModel:
    """Returns queued replies in order and records every call it receives."""

    def __init__(self, replies: List[Any]) -> None:
        self.replies = list(replies)
        self.calls: List[Dict[str, Any]] = []

    async def generate(self, instruction: str, history, *, temperature: float) -> str:
        self.calls.append({
            "instruction": instruction,
            "history": [m.model_copy() for m in history],
            "temperature": temperature,
        })
        # Yield like a real network call so concurrent turns can interleave.
        await asyncio.sleep(0)
        if not self.replies:
            raise AssertionError("ScriptedChatModel ran out of replies")
        reply = self.replies.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        return reply


class StubEnrichment:
    def __init__(self, info: Optional[GuessInfo] = None) -> None:
        self.info = info or GuessInfo(image_url="https://upload.example/Taylor_Swift.jpg", description="American singer-songwriter")
        self.lookups: List[str] = []
        self.closed = False

    async def lookup(self, name):
        self.lookups.append(name)
        return self.info

    async def aclose(self) -> None:
        self.closed = True


class FakeRedis:
    """
    Minimal async Redis replacement used for tests.
    Supports the subset of commands used by the session store.
    """

    def __init__(self) -> None:
        self._data: Dict[str, Any] = {}
        self.ttls: Dict[str, int] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        self.closed = False

    async def get(self, key: str):
        return self._data.get(key)

    async def set(self, key: str, value: str, ex: int | None = None):
        self._data[key] = value
        if ex is not None:
            self.ttls[key] = ex

    async def expire(self, key: str, seconds: int):
        if key in self._data:
            self.ttls[key] = seconds
            return True
        return False

    async def delete(self, key: str):
        self.ttls.pop(key, None)
        return 1 if self._data.pop(key, None) is not None else 0

    def lock(self, name: str, timeout: float | None = None):
        return self._locks.setdefault(name, asyncio.Lock())

    async def aclose(self) -> None:
        self.closed = True


def history_of(*turns: str) -> List[Message]:
    """Alternating conversation starting with a user turn."""
    roles = ("user", "assistant")
    return [Message(role=roles[i % 2], content=text) for i, text in enumerate(turns)]


@pytest.fixture
def test_settings() -> Settings:
    return Settings(gemini_api_key="test-key", learning_log_path="unused.jsonl")


@pytest.fixture
def store() -> InMemorySessionStore:
    return InMemorySessionStore(ttl_seconds=3600, max_sessions=100)


@pytest.fixture
def learning_log(tmp_path) -> LearningLog:
    return LearningLog(str(tmp_path / "logs" / "learning-data.jsonl"))


@pytest.fixture
def enrichment() -> StubEnrichment:
    return StubEnrichment()


@pytest.fixture
def make_controller(store, learning_log, enrichment, test_settings):
    def factory(replies: List[Any], **overrides) -> GameController:
        config = test_settings.model_copy(update=overrides) if overrides else test_settings
        return GameController(store, ScriptedChatModel(replies), enrichment, learning_log, config=config)

    return factory


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def make_history():
    return history_of
