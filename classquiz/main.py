"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse

from classquiz.config import settings
from classquiz.core.errors import QuizError
from classquiz.schemas.common import ErrorResponse
from classquiz.api import (
    health_router,
    quizzes_router,
    submissions_router,
    notifications_router,
)

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s  %(name)-25s  %(levelname)-8s  %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("🚀 ClassQuiz service starting (%s)…", settings.ENV)
    yield
    logger.info("✅ ClassQuiz service shut down")


app = FastAPI(
    title="ClassQuiz API",
    description="Classroom quiz lifecycle and grading",
    version="0.1.0",
    lifespan=lifespan,
)

# ── Middleware ─────────────────────────────────────────────────────────────────

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.ALLOWED_HOSTS)

# ── Errors ────────────────────────────────────────────────────────────────────


@app.exception_handler(QuizError)
async def quiz_error_handler(request: Request, exc: QuizError):
    logger.info("%s %s → %s: %s", request.method, request.url.path, exc.error_code, exc.message)
    body = ErrorResponse(error_code=exc.error_code, message=exc.message)
    return JSONResponse(status_code=exc.status_code, content=body.model_dump())


# ── Routers ───────────────────────────────────────────────────────────────────

app.include_router(health_router, tags=["Health"])
app.include_router(quizzes_router, prefix="/api/quizzes", tags=["Quizzes"])
app.include_router(submissions_router, prefix="/api/submissions", tags=["Submissions"])
app.include_router(notifications_router, prefix="/api/notifications", tags=["Notifications"])


@app.get("/")
async def root():
    return {
        "name": "ClassQuiz API",
        "version": "0.1.0",
        "docs": "/docs",
        "health": "/health",
    }
