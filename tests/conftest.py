# =============================================================================
# CONFTEST - Shared fixtures
# =============================================================================
# In-memory Redis double, controllable clock, fake quiz generator
# =============================================================================

import random
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import pytest
import redis

from app.exceptions import GenerationError
from app.schemas.quiz import GeneratedQuiz
from app.services.gemini_service import GenerationResult


# =============================================================================
# IN-MEMORY REDIS
# =============================================================================


class InMemoryPipeline:
    """Subset of redis.client.Pipeline used by CacheStore.update()."""

    def __init__(self, backend: "InMemoryRedis"):
        self.backend = backend
        self.watched: Dict[str, int] = {}
        self.commands: List[tuple] = []
        self.buffering = False

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.reset()
        return False

    def reset(self):
        self.watched = {}
        self.commands = []
        self.buffering = False

    def watch(self, *keys):
        for key in keys:
            self.watched[key] = self.backend.versions.get(key, 0)

    def get(self, key):
        return self.backend.get(key)

    def multi(self):
        self.buffering = True
        if self.backend.conflicting_writes > 0:
            # Another client writes every watched key between WATCH and EXEC
            self.backend.conflicting_writes -= 1
            for key in self.watched:
                self.backend.versions[key] = self.backend.versions.get(key, 0) + 1

    def set(self, key, value):
        self.commands.append(("set", key, value))

    def setex(self, key, ttl, value):
        self.commands.append(("setex", key, ttl, value))

    def incr(self, key):
        self.commands.append(("incr", key))

    def ttl(self, key):
        self.commands.append(("ttl", key))

    def execute(self):
        for key, version in self.watched.items():
            if self.backend.versions.get(key, 0) != version:
                raise redis.WatchError("Watched variable changed.")
        return [getattr(self.backend, command[0])(*command[1:]) for command in self.commands]


class InMemoryRedis:
    """Dict-backed stand-in for redis.Redis with decode_responses=True."""

    def __init__(self):
        self.data: Dict[str, Any] = {}
        self.ttls: Dict[str, int] = {}
        self.versions: Dict[str, int] = {}
        self.conflicting_writes = 0
        self.fail_with: Optional[Exception] = None

    def _check(self):
        if self.fail_with is not None:
            raise self.fail_with

    def _touch(self, key):
        self.versions[key] = self.versions.get(key, 0) + 1

    def get(self, key):
        self._check()
        return self.data.get(key)

    def set(self, key, value):
        self._check()
        self.data[key] = value
        self.ttls.pop(key, None)
        self._touch(key)
        return True

    def setex(self, key, ttl, value):
        self._check()
        self.data[key] = value
        self.ttls[key] = ttl
        self._touch(key)
        return True

    def expire(self, key, ttl):
        self._check()
        if key not in self.data:
            return False
        self.ttls[key] = ttl
        return True

    def ttl(self, key):
        self._check()
        if key not in self.data:
            return -2
        return self.ttls.get(key, -1)

    def delete(self, *keys):
        self._check()
        removed = 0
        for key in keys:
            if key in self.data:
                del self.data[key]
                self.ttls.pop(key, None)
                self._touch(key)
                removed += 1
        return removed

    def incr(self, key):
        self._check()
        value = int(self.data.get(key, 0)) + 1
        self.data[key] = str(value)
        self._touch(key)
        return value

    def ping(self):
        self._check()
        return True

    def close(self):
        pass

    def pipeline(self, transaction=True):
        self._check()
        return InMemoryPipeline(self)

    def expire_now(self, key):
        """Simulate TTL expiry."""
        self.data.pop(key, None)
        self.ttls.pop(key, None)
        self._touch(key)


# =============================================================================
# CLOCK & GENERATOR
# =============================================================================


class FakeClock:
    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


class FakeGenerator:
    """Returns queued GenerationResults; defaults to a valid quiz."""

    def __init__(self, default_payload: dict):
        self.default_payload = default_payload
        self.results: List[GenerationResult] = []
        self.calls: List[tuple] = []
        self.is_configured = True
        self.delay = 0.0

    def queue(self, result: GenerationResult):
        self.results.append(result)

    def generate_quiz(self, topic: str, difficulty: str = "medium") -> GenerationResult:
        self.calls.append((topic, difficulty))
        if self.delay:
            time.sleep(self.delay)
        if self.results:
            return self.results.pop(0)
        return GenerationResult.success(GeneratedQuiz.model_validate(self.default_payload))


def make_quiz_payload(title: str = "Quantum Basics", topic: str = "Quantum Computing") -> dict:
    return {
        "title": title,
        "description": f"Test your knowledge about {topic}",
        "trending_topic": topic,
        "questions": [
            {
                "question": f"Question {i + 1} about {topic}?",
                "options": ["A", "B", "C", "D"],
                "correct": i,
                "explanation": f"Because of reason {i + 1}",
                "source_context": f"Context {i + 1}",
            }
            for i in range(3)
        ],
    }


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def fake_redis():
    return InMemoryRedis()


@pytest.fixture
def cache_store(fake_redis):
    from app.utils.cache import CacheStore

    return CacheStore(fake_redis, cas_retries=3)


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def quiz_payload():
    return make_quiz_payload()


@pytest.fixture
def generator(quiz_payload):
    return FakeGenerator(quiz_payload)


@pytest.fixture
def failing_result():
    return GenerationResult.failure(GenerationError("Gemini request failed", details="timeout"))


@pytest.fixture
def backlog_service(cache_store, clock):
    from app.services.backlog_service import BacklogService

    return BacklogService(cache_store, clock=clock)


@pytest.fixture
def daily_quiz_service(cache_store, generator, backlog_service, clock):
    from app.services.daily_quiz_service import DailyQuizService

    return DailyQuizService(
        cache_store,
        generator,
        backlog_service,
        ttl_seconds=172800,
        clock=clock,
        rng=random.Random(7),
    )
