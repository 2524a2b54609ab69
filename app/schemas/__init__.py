"""
Pydantic schemas package
"""
from app.schemas.backlog import (
    BacklogAddRequest,
    BacklogItem,
    BacklogItemResponse,
    BacklogList,
    BacklogListResponse,
)
from app.schemas.quiz import (
    CachedQuizzesResponse,
    CronResponse,
    DailyQuizList,
    FrontendDailyQuizList,
    FrontendQuestion,
    FrontendQuizConfig,
    GeneratedQuiz,
    MessageResponse,
    QuizGenerateRequest,
    QuizQuestion,
    QuizResponse,
    StoredDailyQuiz,
)

__all__ = [
    "BacklogAddRequest",
    "BacklogItem",
    "BacklogItemResponse",
    "BacklogList",
    "BacklogListResponse",
    "CachedQuizzesResponse",
    "CronResponse",
    "DailyQuizList",
    "FrontendDailyQuizList",
    "FrontendQuestion",
    "FrontendQuizConfig",
    "GeneratedQuiz",
    "MessageResponse",
    "QuizGenerateRequest",
    "QuizQuestion",
    "QuizResponse",
    "StoredDailyQuiz",
]
