"""
FastAPI application factory
"""
import logging
import os
import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address
from starlette.middleware.base import BaseHTTPMiddleware

from tracker.api.v1 import auth, goals, habits, notes, notifications, stats, tasks
from tracker.config import get_settings
from tracker.domain.errors import (
    AuthError,
    ConflictError,
    IdentityProviderUnavailable,
    NotFoundError,
    ValidationFailed,
)
from tracker.infrastructure.db.session import check_db_connection

logger = logging.getLogger(__name__)


def _internal_error(exc: Exception, debug: bool) -> JSONResponse:
    body = {"message": "Internal server error"}
    if debug:
        body["detail"] = str(exc)
    return JSONResponse(status_code=500, content=body)


def _field_name(loc: tuple) -> str:
    # ("body", "notifications", "reminderDays") -> "notifications.reminderDays"
    parts = [str(p) for p in loc if p not in ("body", "query", "path")]
    return ".".join(parts) or "body"


def _register_error_handlers(app: FastAPI, debug: bool) -> None:
    @app.exception_handler(ValidationFailed)
    async def validation_failed(request: Request, exc: ValidationFailed):
        return JSONResponse(
            status_code=400,
            content={"message": exc.message, "errors": [e.to_dict() for e in exc.errors]},
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_failed(request: Request, exc: RequestValidationError):
        errors = [{"field": _field_name(e["loc"]), "message": e["msg"]} for e in exc.errors()]
        return JSONResponse(status_code=400, content={"message": "Validation failed", "errors": errors})

    @app.exception_handler(NotFoundError)
    async def not_found(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=404, content={"message": exc.message})

    @app.exception_handler(AuthError)
    async def unauthorized(request: Request, exc: AuthError):
        return JSONResponse(status_code=401, content={"message": exc.message})

    @app.exception_handler(ConflictError)
    async def conflict(request: Request, exc: ConflictError):
        return JSONResponse(status_code=400, content={"message": exc.message})

    @app.exception_handler(IdentityProviderUnavailable)
    async def provider_unavailable(request: Request, exc: IdentityProviderUnavailable):
        logger.error("Federated sign-in attempted but %s", exc.message)
        return JSONResponse(status_code=500, content={"message": "Authentication service unavailable"})

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        return JSONResponse(status_code=exc.status_code, content={"message": exc.detail})

    # SlowAPIMiddleware calls this directly, so it must stay a plain function
    def rate_limited(request: Request, exc: RateLimitExceeded):
        return JSONResponse(status_code=429, content={"message": "Too many requests, please try again later."})

    app.add_exception_handler(RateLimitExceeded, rate_limited)


def create_app(start_scheduler: bool | None = None) -> FastAPI:
    """
    Application factory - builds and configures the FastAPI app

    Args:
        start_scheduler: override SCHEDULER_ENABLED (tests pass False)
    """
    settings = get_settings()
    logging.basicConfig(level=logging.DEBUG if settings.DEBUG else logging.INFO)
    run_scheduler = settings.SCHEDULER_ENABLED if start_scheduler is None else start_scheduler

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        reminder_scheduler = None
        if run_scheduler:
            from tracker.application.scheduler import ReminderScheduler
            reminder_scheduler = ReminderScheduler(settings)
            reminder_scheduler.start()
        app.state.scheduler = reminder_scheduler
        try:
            yield
        finally:
            if reminder_scheduler is not None:
                reminder_scheduler.shutdown()

    app = FastAPI(
        title="Productivity Tracker",
        debug=settings.DEBUG,
        lifespan=lifespan,
    )

    # One request budget per client IP, shared by every route
    limiter = Limiter(
        key_func=get_remote_address,
        application_limits=[settings.RATE_LIMIT],
        enabled=settings.RATE_LIMIT_ENABLED,
    )
    app.state.limiter = limiter

    # Error-logging middleware - catches everything the handlers below don't
    class ErrorLoggingMiddleware(BaseHTTPMiddleware):
        async def dispatch(self, request, call_next):
            try:
                return await call_next(request)
            except Exception as exc:
                tb_str = traceback.format_exc()
                logger.error(f"\n{'='*60}\nERROR on {request.method} {request.url.path}\n{tb_str}{'='*60}")
                return _internal_error(exc, settings.DEBUG)

    app.add_middleware(ErrorLoggingMiddleware)
    app.add_middleware(SlowAPIMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _register_error_handlers(app, settings.DEBUG)

    # Uploaded avatars
    os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
    app.mount("/uploads", StaticFiles(directory=settings.UPLOAD_DIR), name="uploads")

    # Routers
    app.include_router(auth.router)
    app.include_router(goals.router)
    app.include_router(tasks.router)
    app.include_router(habits.router)
    app.include_router(notes.router)
    app.include_router(notifications.router)
    app.include_router(stats.router)

    # Health checks
    @app.get("/api/health", tags=["system"])
    def health():
        """Health check endpoint"""
        return {"status": "ok"}

    @app.get("/ready", response_class=PlainTextResponse, tags=["system"])
    @limiter.exempt
    def ready():
        """Readiness check endpoint (database reachable)"""
        check_db_connection()
        return "ok"

    return app


# Create app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "tracker.main:app",
        host="127.0.0.1",
        port=8000,
        reload=True,
    )
