"""
Daily quiz lifecycle: scheduled generation, day-scoped caching and reads
"""
import logging
import random
from dataclasses import dataclass
from typing import Any, List, Optional

from pydantic import ValidationError as SchemaValidationError

from app.exceptions import QuizAppError, StoreError, ValidationError
from app.schemas.quiz import (
    DailyQuizList,
    FrontendDailyQuizList,
    FrontendQuestion,
    FrontendQuizConfig,
    GeneratedQuiz,
    QuizQuestion,
    StoredDailyQuiz,
)
from app.services.backlog_service import BacklogService
from app.services.gemini_service import GeminiService
from app.services.topics import select_random_topic
from app.utils.cache import CacheStore
from app.utils.clock import Clock, day_key, epoch_millis, next_utc_midnight, to_iso, utc_now

logger = logging.getLogger(__name__)

SOURCE_WITH_BACKLOG = "random-with-backlog"
SOURCE_EMPTY_BACKLOG = "random-empty-backlog"
SOURCE_ON_DEMAND = "ai-generated-on-demand"
SOURCE_MANUAL_TEST = "manual-test"


@dataclass
class ScheduledGenerationResult:
    """Outcome of one scheduled run, returned instead of raising"""
    success: bool
    quiz: Optional[StoredDailyQuiz] = None
    source: Optional[str] = None
    error: Optional[str] = None
    details: Optional[str] = None
    degraded: bool = False


def build_fallback_quiz(topic: str) -> GeneratedQuiz:
    """
    Placeholder quiz derived only from the topic

    Used when generation fails so today's cache is never empty.
    Every question has 4 options and correct = 0.
    """
    context = f"Generated from topic: {topic}"
    return GeneratedQuiz(
        title=f"{topic} Quiz",
        description=f"A quiz about {topic}",
        trending_topic=topic,
        questions=[
            QuizQuestion(
                question=f"What is a key aspect of {topic}?",
                options=["Option A", "Option B", "Option C", "Option D"],
                correct=0,
                explanation=f"This is a fundamental aspect of {topic}.",
                source_context=context
            ),
            QuizQuestion(
                question=f"How does {topic} impact modern society?",
                options=["Significantly", "Moderately", "Minimally", "Not at all"],
                correct=0,
                explanation=f"{topic} has significant impact on modern society.",
                source_context=context
            ),
            QuizQuestion(
                question=f"What is the future outlook for {topic}?",
                options=["Very promising", "Somewhat promising", "Uncertain", "Declining"],
                correct=0,
                explanation=f"The future of {topic} looks very promising.",
                source_context=context
            ),
        ]
    )


def to_frontend(quiz: StoredDailyQuiz) -> FrontendQuizConfig:
    """Client-facing shape: topic instead of trending_topic, no source_context"""
    return FrontendQuizConfig(
        id=quiz.id,
        title=quiz.title,
        description=quiz.description,
        difficulty=quiz.difficulty,
        topic=quiz.trending_topic,
        questionCount=quiz.questionCount,
        questions=[
            FrontendQuestion(
                question=q.question,
                options=q.options,
                correct=q.correct,
                explanation=q.explanation
            )
            for q in quiz.questions
        ],
        createdAt=quiz.createdAt,
        source=quiz.source
    )


class DailyQuizService:
    """
    Owns the daily_quizzes:<YYYY-MM-DD> record

    Scheduled flow (driven by the cron endpoint, never self-scheduled):
    select topic -> generate -> validate (fallback on failure) -> persist.
    A run that fails is reported to the caller and not retried here.
    """

    KEY_PREFIX = "daily_quizzes"

    def __init__(
        self,
        store: CacheStore,
        generator: GeminiService,
        backlog: BacklogService,
        ttl_seconds: int = 60 * 60 * 48,
        clock: Clock = utc_now,
        rng: Optional[random.Random] = None
    ):
        self.store = store
        self.generator = generator
        self.backlog = backlog
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self.rng = rng

    def _key_for(self, moment) -> str:
        return f"{self.KEY_PREFIX}:{day_key(moment)}"

    def today_key(self) -> str:
        return self._key_for(self.clock())

    def _load(self, key: str, raw: Any) -> DailyQuizList:
        try:
            return DailyQuizList.model_validate(raw)
        except SchemaValidationError as e:
            raise StoreError(f"Corrupt daily quiz record under {key}", details=str(e)) from e

    def _record(self, quizzes: List[StoredDailyQuiz], now) -> DailyQuizList:
        return DailyQuizList(
            quizzes=quizzes,
            generatedAt=to_iso(now),
            expiresAt=to_iso(next_utc_midnight(now))
        )

    def _generate_for_topic(self, topic: str):
        result = self.generator.generate_quiz(topic)
        if result.ok:
            quiz = result.quiz
            if not quiz.trending_topic.strip():
                quiz = quiz.model_copy(update={"trending_topic": topic})
            return quiz, False

        error = result.error
        logger.warning(
            f"Generation failed for \"{topic}\" ({type(error).__name__}: {error.message}); "
            f"storing fallback quiz"
        )
        return build_fallback_quiz(topic), True

    def generate_scheduled(self) -> ScheduledGenerationResult:
        """
        Generate today's quiz and replace the day record with it

        The topic always comes from the built-in pool; the backlog is read
        only to pick the source label and is never consumed here.
        """
        source = None
        try:
            logger.info("Processing backlog for scheduled quiz...")
            backlog = self.backlog.list()
            topic = select_random_topic(self.rng)

            if backlog.totalCount > 0:
                source = SOURCE_WITH_BACKLOG
                logger.info(f"Backlog has {backlog.totalCount} items, using random topic: \"{topic}\"")
            else:
                source = SOURCE_EMPTY_BACKLOG
                logger.info(f"Backlog empty, using random topic: \"{topic}\"")

            generated, degraded = self._generate_for_topic(topic)

            now = self.clock()
            stored = StoredDailyQuiz(
                id=f"daily_quiz_{epoch_millis(now)}",
                title=generated.title,
                description=generated.description,
                trending_topic=generated.trending_topic,
                questions=generated.questions,
                difficulty="medium",
                questionCount=len(generated.questions),
                createdAt=to_iso(now),
                source=source
            )

            key = self._key_for(now)
            self.store.set(key, self._record([stored], now).model_dump(), ttl=self.ttl_seconds)
            logger.info(f"Stored 1 daily quiz with key: {key}")

            return ScheduledGenerationResult(
                success=True,
                quiz=stored,
                source=source,
                degraded=degraded
            )
        except QuizAppError as e:
            logger.error(f"Error generating scheduled quiz: {e.message}")
            return ScheduledGenerationResult(
                success=False,
                source=source,
                error=e.message,
                details=e.details
            )
        except Exception as e:
            logger.error(f"Unexpected error generating scheduled quiz: {str(e)}", exc_info=True)
            return ScheduledGenerationResult(success=False, source=source, error=str(e))

    def get_cached(self) -> Optional[FrontendDailyQuizList]:
        """Today's quizzes in client shape, or None if nothing is cached"""
        key = self.today_key()
        raw = self.store.get(key)
        if raw is None:
            logger.info(f"No daily quizzes found for key: {key}")
            return None

        record = self._load(key, raw)
        logger.info(f"Retrieved {len(record.quizzes)} daily quizzes")
        return FrontendDailyQuizList(
            quizzes=[to_frontend(quiz) for quiz in record.quizzes],
            generatedAt=record.generatedAt,
            expiresAt=record.expiresAt
        )

    def insert_manual(self, quiz: StoredDailyQuiz) -> None:
        """
        Append a quiz to today's record without calling the generator

        An existing record keeps its generatedAt/expiresAt.

        Raises:
            ValidationError: the quiz fails schema checks (e.g. questionCount
                disagrees with its questions)
        """
        try:
            # model_copy() skips validation, so re-check before storing
            quiz = StoredDailyQuiz.model_validate(quiz.model_dump())
        except SchemaValidationError as e:
            raise ValidationError("Invalid quiz", details=str(e)) from e

        now = self.clock()
        key = self._key_for(now)

        def append(current):
            if current is None:
                return self._record([quiz], now).model_dump()
            record = self._load(key, current)
            return record.model_copy(update={"quizzes": record.quizzes + [quiz]}).model_dump()

        self.store.update(key, append, ttl=self.ttl_seconds)
        logger.info(f"Manually inserted quiz: {quiz.title}")

    def clear_cached(self) -> None:
        key = self.today_key()
        self.store.delete(key)
        logger.info(f"Cleared daily quizzes for key: {key}")

    def generate_on_demand(self, topic: str, difficulty: str = "medium") -> FrontendQuizConfig:
        """
        Generate a quiz for an arbitrary topic without touching the cache

        Raises:
            ValidationError: empty topic
            GenerationError: the generator failed; no fallback on this path
        """
        cleaned = (topic or "").strip()
        if not cleaned:
            raise ValidationError("Topic is required")

        logger.info(f"Generating quiz for topic: \"{cleaned}\" with difficulty: {difficulty}")
        result = self.generator.generate_quiz(cleaned, difficulty)
        if not result.ok:
            raise result.error

        now = self.clock()
        quiz = result.quiz
        stored = StoredDailyQuiz(
            id=f"quiz_{epoch_millis(now)}",
            title=quiz.title,
            description=quiz.description,
            trending_topic=cleaned,
            questions=quiz.questions,
            difficulty=difficulty,
            questionCount=len(quiz.questions),
            createdAt=to_iso(now),
            source=SOURCE_ON_DEMAND
        )
        return to_frontend(stored)

    def build_test_quiz(self) -> StoredDailyQuiz:
        """Fixture quiz used to exercise the cache plumbing"""
        now = self.clock()
        return StoredDailyQuiz(
            id=f"test_quiz_{epoch_millis(now)}",
            title="Test Daily Quiz",
            description="A test quiz to verify Redis functionality",
            trending_topic="Testing",
            difficulty="medium",
            questionCount=3,
            createdAt=to_iso(now),
            source=SOURCE_MANUAL_TEST,
            questions=[
                QuizQuestion(
                    question="What is the purpose of this test quiz?",
                    options=["To test Redis", "To test frontend", "To test backend", "All of the above"],
                    correct=3,
                    explanation="This test quiz helps verify that Redis storage and retrieval works correctly.",
                    source_context="Manual test data insertion"
                ),
                QuizQuestion(
                    question="Which database is being used for caching?",
                    options=["MySQL", "PostgreSQL", "Redis", "MongoDB"],
                    correct=2,
                    explanation="Redis is being used for caching daily quiz data.",
                    source_context="Redis implementation testing"
                ),
                QuizQuestion(
                    question="How often are daily quizzes generated?",
                    options=["Hourly", "Daily", "Weekly", "Monthly"],
                    correct=1,
                    explanation="Daily quizzes are generated once every 24 hours via cron job.",
                    source_context="Daily quiz generation schedule"
                ),
            ]
        )
