# =============================================================================
# TESTS - HTTP endpoints
# =============================================================================
# Services are wired onto app.state with the in-memory Redis double; the
# lifespan is not run, so no real Redis or Gemini connection is attempted.
# =============================================================================

import asyncio
import time

import httpx
import pytest
import redis
from fastapi.testclient import TestClient

from app.config import settings
from app.main import app, init_services
from app.utils.rate_limiter import RateLimiter


@pytest.fixture
def client(cache_store, generator, monkeypatch):
    monkeypatch.setattr(settings, "CRON_SECRET", None)
    init_services(app, cache_store, generator)
    return TestClient(app)


# =============================================================================
# HEALTH
# =============================================================================


class TestHealth:
    def test_root_lists_endpoints(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert "/daily-quiz/cached" in response.json()["endpoints"]

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_redis_health(self, client, fake_redis):
        assert client.get("/health/redis").status_code == 200

        fake_redis.fail_with = redis.ConnectionError("down")
        response = client.get("/health/redis")

        assert response.status_code == 503
        assert response.json()["status"] == "unhealthy"

    def test_gemini_health(self, client, generator):
        assert client.get("/health/gemini").status_code == 200

        generator.is_configured = False

        assert client.get("/health/gemini").status_code == 503

    def test_slow_generation_does_not_block_health(self, client, generator):
        generator.delay = 1.0

        async def scenario():
            transport = httpx.ASGITransport(app=app)
            async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
                cron = asyncio.create_task(ac.get("/cron/daily-quiz"))
                await asyncio.sleep(0.2)
                started = time.perf_counter()
                health = await ac.get("/health")
                waited = time.perf_counter() - started
                return health, waited, await cron

        health, waited, cron = asyncio.run(scenario())

        assert health.status_code == 200
        assert waited < 0.5
        assert cron.status_code == 200


# =============================================================================
# DAILY QUIZ
# =============================================================================


class TestDailyQuiz:
    def test_cached_is_404_before_generation(self, client):
        response = client.get("/daily-quiz/cached")

        assert response.status_code == 404
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "No daily quizzes available. Please generate new ones."

    def test_cron_then_cached(self, client):
        cron = client.get("/cron/daily-quiz")

        assert cron.status_code == 200
        body = cron.json()
        assert body["success"] is True
        assert body["source"] == "random-empty-backlog"
        assert body["quiz_count"] == 1
        assert body["degraded"] is False

        cached = client.get("/daily-quiz/cached").json()
        assert cached["count"] == 1
        quiz = cached["quizzes"][0]
        assert quiz["title"] == body["quiz_title"]
        assert len(quiz["questions"]) == 3
        assert all(len(q["options"]) == 4 for q in quiz["questions"])

    def test_cron_reports_degraded_fallback(self, client, generator, failing_result):
        generator.queue(failing_result)

        body = client.get("/cron/daily-quiz").json()

        assert body["degraded"] is True
        assert body["quiz_title"] == f"{body['quiz_topic']} Quiz"

    def test_cron_secret_required_when_configured(self, client, monkeypatch):
        monkeypatch.setattr(settings, "CRON_SECRET", "s3cret")

        assert client.get("/cron/daily-quiz").status_code == 401
        wrong = client.get("/cron/daily-quiz", headers={"Authorization": "Bearer nope"})
        assert wrong.status_code == 401

        ok = client.get("/cron/daily-quiz", headers={"Authorization": "Bearer s3cret"})
        assert ok.status_code == 200

    def test_cron_store_failure_is_500(self, client, fake_redis):
        fake_redis.fail_with = redis.ConnectionError("down")

        response = client.get("/cron/daily-quiz")

        assert response.status_code == 500
        assert response.json()["error"] == "Failed to generate daily quiz"

    def test_insert_test_quiz_and_clear(self, client):
        assert client.get("/test/insert-quiz").status_code == 200

        quizzes = client.get("/daily-quiz/cached").json()["quizzes"]
        assert [q["source"] for q in quizzes] == ["manual-test"]

        assert client.delete("/daily-quiz/cached").status_code == 200
        assert client.get("/daily-quiz/cached").status_code == 404

    def test_generate_quiz_on_demand(self, client, generator):
        response = client.post("/generate-quiz", json={"topic": "Rust", "difficulty": "easy"})

        assert response.status_code == 200
        quiz = response.json()["quiz"]
        assert quiz["topic"] == "Rust"
        assert quiz["difficulty"] == "easy"
        assert generator.calls == [("Rust", "easy")]

    def test_generate_quiz_failure_is_502(self, client, generator, failing_result):
        generator.queue(failing_result)

        response = client.post("/generate-quiz", json={"topic": "Rust"})

        assert response.status_code == 502
        assert response.json()["details"] == "timeout"

    def test_generate_quiz_rejects_unknown_difficulty(self, client):
        assert client.post("/generate-quiz", json={"topic": "Rust", "difficulty": "extreme"}).status_code == 400


# =============================================================================
# BACKLOG
# =============================================================================


class TestBacklog:
    def test_add_then_list(self, client):
        added = client.post("/backlog/add", json={"topic": "  Bitcoin ", "addedBy": "alice"})

        assert added.status_code == 200
        body = added.json()
        assert body["item"]["topic"] == "Bitcoin"
        assert body["message"] == 'Added "Bitcoin" to quiz backlog'

        listing = client.get("/backlog").json()
        assert listing["count"] == 1
        assert listing["items"][0]["addedBy"] == "alice"

    @pytest.mark.parametrize("payload", [{}, {"topic": ""}, {"topic": "   "}])
    def test_add_rejects_missing_or_empty_topic(self, client, payload):
        response = client.post("/backlog/add", json=payload)

        assert response.status_code == 400
        assert response.json()["success"] is False
        assert client.get("/backlog").json()["count"] == 0

    def test_add_is_rate_limited(self, client, cache_store):
        app.state.backlog_rate_limiter = RateLimiter(
            cache_store, scope="backlog_add", requests_per_minute=1, requests_per_hour=100
        )

        assert client.post("/backlog/add", json={"topic": "One"}).status_code == 200
        response = client.post("/backlog/add", json={"topic": "Two"})

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "60"

    def test_next_and_remove(self, client):
        assert client.get("/backlog/next").json()["item"] is None

        first = client.post("/backlog/add", json={"topic": "Bitcoin"}).json()["item"]

        assert client.get("/backlog/next").json()["item"]["id"] == first["id"]

        removed = client.delete(f"/backlog/{first['id']}")
        assert removed.status_code == 200
        assert removed.json()["item"]["topic"] == "Bitcoin"
        assert client.delete(f"/backlog/{first['id']}").status_code == 404

    def test_clear(self, client):
        client.post("/backlog/add", json={"topic": "Bitcoin"})

        assert client.delete("/backlog").status_code == 200
        assert client.get("/backlog").json()["items"] == []

    def test_cron_with_backlog_does_not_consume_it(self, client):
        client.post("/backlog/add", json={"topic": "Bitcoin"})

        body = client.get("/cron/daily-quiz").json()

        assert body["source"] == "random-with-backlog"
        assert client.get("/backlog").json()["count"] == 1
