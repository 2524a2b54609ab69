"""
Main FastAPI application
Daily AI quiz generation with a topic backlog and Redis cache
"""
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from typing import Optional
import logging
import time

from app.config import settings
from app.api import backlog, quizzes
from app.exceptions import QuizAppError, RateLimitError
from app.services.backlog_service import BacklogService
from app.services.daily_quiz_service import DailyQuizService
from app.services.gemini_service import GeminiService
from app.utils.cache import CacheStore
from app.utils.clock import to_iso, utc_now
from app.utils.rate_limiter import RateLimiter

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def init_services(app: FastAPI, cache_store: CacheStore, generator: GeminiService) -> None:
    """Wire the services onto app.state; the cache store is shared by all of them"""
    backlog_service = BacklogService(cache_store)

    app.state.cache_store = cache_store
    app.state.generator = generator
    app.state.backlog_service = backlog_service
    app.state.daily_quiz_service = DailyQuizService(
        cache_store,
        generator,
        backlog_service,
        ttl_seconds=settings.DAILY_QUIZ_TTL_SECONDS
    )
    app.state.backlog_rate_limiter = RateLimiter(
        cache_store,
        scope="backlog_add",
        requests_per_minute=settings.BACKLOG_RATE_LIMIT_PER_MINUTE,
        requests_per_hour=settings.BACKLOG_RATE_LIMIT_PER_HOUR
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")

    cache_store = CacheStore.from_url(
        settings.REDIS_URL,
        socket_timeout=settings.REDIS_SOCKET_TIMEOUT,
        cas_retries=settings.CACHE_CAS_RETRIES
    )
    generator = GeminiService(
        api_key=settings.GEMINI_API_KEY,
        model_name=settings.GEMINI_MODEL,
        timeout=settings.GEMINI_TIMEOUT
    )
    init_services(app, cache_store, generator)
    logger.info("Application startup complete")

    yield

    logger.info("Shutting down application")
    cache_store.close()


# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Daily AI-generated quizzes with a topic backlog and Redis cache",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=False,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)


# Request logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all requests with timing"""

    start_time = time.time()

    response = await call_next(request)

    duration = time.time() - start_time

    logger.info(
        f"{request.method} {request.url.path} - "
        f"Status: {response.status_code} - "
        f"Duration: {duration:.3f}s"
    )

    return response


def error_body(error: str, details: Optional[str] = None) -> dict:
    return {
        "success": False,
        "error": error,
        "details": details,
        "timestamp": to_iso(utc_now())
    }


@app.exception_handler(QuizAppError)
async def quiz_app_exception_handler(request: Request, exc: QuizAppError):
    """Render typed service errors as {success: false, error, details}"""

    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message} ({exc.details})")

    headers = None
    if isinstance(exc, RateLimitError):
        headers = {"Retry-After": str(exc.retry_after)}

    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.message, exc.details),
        headers=headers
    )


@app.exception_handler(RequestValidationError)
async def request_validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies are 400s"""

    return JSONResponse(
        status_code=400,
        content=error_body("Invalid request", str(exc.errors()))
    )


# HTTP exception handler
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Format HTTP exceptions consistently"""

    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(str(exc.detail))
    )


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle unexpected errors gracefully"""

    logger.error(f"Unhandled exception: {str(exc)}", exc_info=True)

    return JSONResponse(
        status_code=500,
        content=error_body(
            "An unexpected error occurred. Please try again later.",
            str(exc) if settings.DEBUG else None
        )
    )


# Root endpoint
@app.get("/")
async def root():
    """Root endpoint with API information"""
    return {
        "message": "Daily AI Quiz Generator with Backlog & Redis Cache",
        "version": settings.APP_VERSION,
        "endpoints": [
            "/health",
            "/health/redis",
            "/health/gemini",
            "/daily-quiz/cached",
            "/generate-quiz",
            "/backlog",
            "/backlog/add",
            "/backlog/next",
            "/cron/daily-quiz",
            "/test/insert-quiz",
        ]
    }


# Health check endpoint
@app.get("/health")
async def health_check():
    """Liveness check for monitoring"""
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "timestamp": to_iso(utc_now())
    }


@app.get("/health/redis")
def redis_health_check(request: Request):
    is_connected = request.app.state.cache_store.test_connection()

    return JSONResponse(
        status_code=200 if is_connected else 503,
        content={
            "status": "healthy" if is_connected else "unhealthy",
            "service": "redis",
            "timestamp": to_iso(utc_now())
        }
    )


@app.get("/health/gemini")
async def gemini_health_check(request: Request):
    """Reports whether a Gemini API key is configured (no request is made)"""
    is_configured = request.app.state.generator.is_configured

    return JSONResponse(
        status_code=200 if is_configured else 503,
        content={
            "status": "healthy" if is_configured else "unhealthy",
            "service": "gemini",
            "timestamp": to_iso(utc_now())
        }
    )


# Include routers
app.include_router(quizzes.router)
app.include_router(backlog.router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG
    )
