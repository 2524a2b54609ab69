"""
Request dependencies: services built at startup and the cron guard
"""
from fastapi import Header, Request
from typing import Optional

from app.config import settings
from app.exceptions import UnauthorizedError
from app.services.backlog_service import BacklogService
from app.services.daily_quiz_service import DailyQuizService


def get_backlog_service(request: Request) -> BacklogService:
    return request.app.state.backlog_service


def get_daily_quiz_service(request: Request) -> DailyQuizService:
    return request.app.state.daily_quiz_service


def enforce_backlog_rate_limit(request: Request) -> None:
    request.app.state.backlog_rate_limiter(request)


def verify_cron_secret(authorization: Optional[str] = Header(None)) -> None:
    """Only enforced when CRON_SECRET is configured"""
    secret = settings.CRON_SECRET
    if secret and authorization != f"Bearer {secret}":
        raise UnauthorizedError("Unauthorized")
