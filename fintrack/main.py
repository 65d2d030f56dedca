"""
FastAPI application factory
"""
import logging
import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse, JSONResponse
from sqlalchemy.exc import OperationalError
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.sessions import SessionMiddleware
from starlette.responses import Response

from fintrack.config import get_settings
from fintrack.application.errors import (
    ValidationError, NotFoundError, ConflictError, TransportError,
)
from fintrack.application.scheduler import start_scheduler, stop_scheduler
from fintrack.infrastructure.db.session import check_db_connection
from fintrack.api.v1 import (
    auth, accounts, categories, transactions, budgets, goals, recurring, dashboard,
)

logging.basicConfig(level=get_settings().LOG_LEVEL)
logger = logging.getLogger(__name__)


class ErrorLoggingMiddleware(BaseHTTPMiddleware):
    """Logs any exception no handler claimed, sync routes included"""

    async def dispatch(self, request, call_next):
        try:
            return await call_next(request)
        except Exception as exc:
            tb_str = traceback.format_exc()
            logger.error(f"\n{'='*60}\nERROR on {request.method} {request.url.path}\n{tb_str}{'='*60}")
            return Response(content=f"Internal Server Error: {exc}", status_code=500)


def _error(status_code: int, exc: Exception) -> JSONResponse:
    return JSONResponse({"detail": str(exc)}, status_code=status_code)


def register_exception_handlers(app: FastAPI) -> None:
    """Map the use-case error taxonomy onto HTTP statuses"""

    @app.exception_handler(ValidationError)
    async def validation_error(request: Request, exc: ValidationError):
        return _error(400, exc)

    @app.exception_handler(NotFoundError)
    async def not_found_error(request: Request, exc: NotFoundError):
        return _error(404, exc)

    @app.exception_handler(ConflictError)
    async def conflict_error(request: Request, exc: ConflictError):
        return _error(409, exc)

    @app.exception_handler(TransportError)
    async def transport_error(request: Request, exc: TransportError):
        logger.warning("Transport error on %s %s: %s", request.method, request.url.path, exc)
        return _error(503, exc)

    @app.exception_handler(OperationalError)
    async def db_unavailable(request: Request, exc: OperationalError):
        logger.warning("Database unavailable on %s %s", request.method, request.url.path)
        return JSONResponse({"detail": "Database unavailable"}, status_code=503)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    if settings.SCHEDULER_ENABLED:
        start_scheduler()
    yield
    stop_scheduler()


def create_app() -> FastAPI:
    """
    Application factory - builds and wires the FastAPI app

    Returns:
        Configured FastAPI app
    """
    settings = get_settings()

    app = FastAPI(
        title="FinTrack",
        debug=settings.DEBUG,
        lifespan=lifespan,
    )

    app.add_middleware(ErrorLoggingMiddleware)

    # Middleware
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.SECRET_KEY
    )

    register_exception_handlers(app)

    # Routers
    app.include_router(accounts.router)
    app.include_router(categories.router)
    app.include_router(transactions.router)
    app.include_router(budgets.router)
    app.include_router(goals.router)
    app.include_router(recurring.router)
    app.include_router(dashboard.router)
    app.include_router(auth.router)  # /, /login, /register, /logout

    # Health checks
    @app.get("/health", response_class=PlainTextResponse, tags=["system"])
    def health():
        """Health check endpoint"""
        return "ok"

    @app.get("/ready", response_class=PlainTextResponse, tags=["system"])
    def ready():
        """Readiness check endpoint (checks the database is reachable)"""
        check_db_connection()
        return "ok"

    return app


# Create app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "fintrack.main:app",
        host="127.0.0.1",
        port=8000,
        reload=True,
    )
