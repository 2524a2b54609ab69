"""
Daily quiz API endpoints: cached reads, cron generation, manual insert
"""
from fastapi import APIRouter, Depends
import logging

from app.api.deps import get_daily_quiz_service, verify_cron_secret
from app.exceptions import NotFoundError, QuizAppError
from app.schemas.quiz import (
    CachedQuizzesResponse,
    CronResponse,
    MessageResponse,
    QuizGenerateRequest,
    QuizResponse,
)
from app.services.daily_quiz_service import DailyQuizService
from app.utils.clock import to_iso, utc_now

# Handlers are plain def: FastAPI runs them in its threadpool, off the event loop
router = APIRouter(tags=["quizzes"])
logger = logging.getLogger(__name__)


@router.get("/daily-quiz/cached", response_model=CachedQuizzesResponse)
def get_cached_daily_quizzes(
    quizzes: DailyQuizService = Depends(get_daily_quiz_service)
):
    """
    Today's quizzes from the cache

    - 404 when nothing has been generated for the current UTC day
    """
    cached = quizzes.get_cached()
    if cached is None:
        raise NotFoundError("No daily quizzes available. Please generate new ones.")

    return CachedQuizzesResponse(
        quizzes=cached.quizzes,
        count=len(cached.quizzes),
        timestamp=to_iso(utc_now())
    )


@router.delete("/daily-quiz/cached", response_model=MessageResponse)
def clear_cached_daily_quizzes(
    quizzes: DailyQuizService = Depends(get_daily_quiz_service)
):
    quizzes.clear_cached()

    return MessageResponse(
        message="Cleared today's daily quizzes",
        timestamp=to_iso(utc_now())
    )


@router.get(
    "/cron/daily-quiz",
    response_model=CronResponse,
    dependencies=[Depends(verify_cron_secret)]
)
def run_daily_quiz_cron(
    quizzes: DailyQuizService = Depends(get_daily_quiz_service)
):
    """
    Scheduled generation trigger

    - Requires "Authorization: Bearer <CRON_SECRET>" when a secret is set
    - Replaces today's cached quizzes with one freshly generated quiz
    - Reports success with degraded=true if the fallback quiz was stored
    """
    logger.info("Cron job triggered: generating daily quiz")
    result = quizzes.generate_scheduled()

    if not result.success:
        logger.error(f"Failed to generate daily quiz: {result.error}")
        raise QuizAppError("Failed to generate daily quiz", details=result.details or result.error)

    logger.info(f"Daily quiz generated successfully from {result.source}")
    return CronResponse(
        message="Daily quiz generated and stored successfully",
        source=result.source,
        quiz_count=1,
        quiz_title=result.quiz.title,
        quiz_topic=result.quiz.trending_topic,
        degraded=result.degraded,
        timestamp=to_iso(utc_now())
    )


@router.get("/test/insert-quiz", response_model=MessageResponse)
def insert_test_quiz(
    quizzes: DailyQuizService = Depends(get_daily_quiz_service)
):
    """Append the fixture quiz to today's record (cache plumbing check)"""
    quizzes.insert_manual(quizzes.build_test_quiz())

    return MessageResponse(
        message="Test quiz inserted successfully",
        timestamp=to_iso(utc_now())
    )


@router.post("/generate-quiz", response_model=QuizResponse)
def generate_quiz(
    request: QuizGenerateRequest,
    quizzes: DailyQuizService = Depends(get_daily_quiz_service)
):
    """
    Generate a quiz for any topic using Gemini

    - Not cached; every call hits the generator
    - 502 if generation fails (no fallback content on this path)
    """
    quiz = quizzes.generate_on_demand(request.topic, request.difficulty)
    logger.info(f"Quiz generated successfully: {quiz.title}")
    return QuizResponse(quiz=quiz)
