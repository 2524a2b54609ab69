"""
Pydantic schemas for generated, stored and served daily quizzes
"""
from pydantic import BaseModel, Field, model_validator
from typing import List, Optional


class QuizQuestion(BaseModel):
    """Single multiple choice question as generated and stored"""
    question: str
    options: List[str] = Field(..., min_length=4, max_length=4, description="Exactly 4 options")
    correct: int = Field(..., ge=0, le=3, description="Index of the correct option")
    explanation: str
    source_context: str = ""


class GeneratedQuiz(BaseModel):
    """Structured output expected from the generation service"""
    title: str
    description: str
    trending_topic: str
    questions: List[QuizQuestion] = Field(..., min_length=3, max_length=3)


class StoredDailyQuiz(BaseModel):
    """Quiz record persisted in the daily cache, including provenance"""
    id: str
    title: str
    description: str
    trending_topic: str
    questions: List[QuizQuestion] = Field(..., min_length=3, max_length=3)
    difficulty: str = "medium"
    questionCount: int
    createdAt: str
    source: str

    @model_validator(mode="after")
    def check_question_count(self) -> "StoredDailyQuiz":
        if self.questionCount != len(self.questions):
            raise ValueError(
                f"questionCount is {self.questionCount} but {len(self.questions)} questions were given"
            )
        return self


class DailyQuizList(BaseModel):
    """Record stored under daily_quizzes:<YYYY-MM-DD>"""
    quizzes: List[StoredDailyQuiz] = Field(default_factory=list)
    generatedAt: str
    expiresAt: str


class FrontendQuestion(BaseModel):
    question: str
    options: List[str]
    correct: int
    explanation: Optional[str] = None


class FrontendQuizConfig(BaseModel):
    """Quiz shape served to clients (no per-question source_context)"""
    id: str
    title: str
    description: str
    difficulty: str
    topic: str
    questionCount: int
    questions: List[FrontendQuestion]
    createdAt: str
    source: str


class FrontendDailyQuizList(BaseModel):
    quizzes: List[FrontendQuizConfig]
    generatedAt: str
    expiresAt: str


class QuizGenerateRequest(BaseModel):
    """Request schema for on-demand quiz generation"""
    topic: str = Field(..., description="Quiz topic")
    difficulty: str = Field("medium", pattern="^(easy|medium|hard)$", description="Quiz difficulty")


class QuizResponse(BaseModel):
    success: bool = True
    quiz: FrontendQuizConfig


class CachedQuizzesResponse(BaseModel):
    success: bool = True
    quizzes: List[FrontendQuizConfig]
    count: int
    timestamp: str


class CronResponse(BaseModel):
    success: bool = True
    message: str
    source: str
    quiz_count: int
    quiz_title: Optional[str] = None
    quiz_topic: Optional[str] = None
    degraded: bool = False
    timestamp: str


class MessageResponse(BaseModel):
    success: bool = True
    message: str
    timestamp: str
