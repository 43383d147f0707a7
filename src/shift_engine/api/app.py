"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from shift_engine import __version__
from shift_engine.api.routes import (
    balances_router,
    health_router,
    pay_periods_router,
    recurring_router,
    shifts_router,
    time_off_router,
)
from shift_engine.config import get_settings
from shift_engine.database import create_schema, dispose_db, init_db
from shift_engine.errors import (
    InvalidStateError,
    NotFoundError,
    PermissionDeniedError,
    ShiftEngineError,
    ValidationError,
)
from shift_engine.events import EventEmitter, log_event

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    # Startup
    engine, _ = init_db()
    if get_settings().auto_create_schema:
        await create_schema(engine)
    yield
    # Shutdown
    await dispose_db()


def _error(status_code: int, exc: Exception, code: str, context: dict | None = None) -> JSONResponse:
    content = {"detail": str(exc), "code": code}
    if context:
        content["context"] = context
    return JSONResponse(status_code=status_code, content=content)


def create_app(emitter: EventEmitter | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Shift Engine API",
        description="Shift scheduling, leave balances and pay period close",
        version=__version__,
        lifespan=lifespan,
    )

    if emitter is None:
        emitter = EventEmitter()
        emitter.on_all(log_event)
    app.state.emitter = emitter

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
        context = {"field": exc.field} if exc.field else None
        return _error(status.HTTP_400_BAD_REQUEST, exc, "VALIDATION_ERROR", context)

    @app.exception_handler(InvalidStateError)
    async def invalid_state_handler(request: Request, exc: InvalidStateError) -> JSONResponse:
        return _error(
            status.HTTP_409_CONFLICT,
            exc,
            "INVALID_STATE",
            {"from_status": str(exc.from_status), "to_status": str(exc.to_status)},
        )

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
        return _error(status.HTTP_404_NOT_FOUND, exc, "NOT_FOUND")

    @app.exception_handler(PermissionDeniedError)
    async def permission_denied_handler(
        request: Request, exc: PermissionDeniedError
    ) -> JSONResponse:
        return _error(status.HTTP_403_FORBIDDEN, exc, "PERMISSION_DENIED")

    @app.exception_handler(ShiftEngineError)
    async def engine_error_handler(request: Request, exc: ShiftEngineError) -> JSONResponse:
        return _error(status.HTTP_400_BAD_REQUEST, exc, "ENGINE_ERROR")

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "An unexpected error occurred",
                "code": "INTERNAL_ERROR",
            },
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(shifts_router, prefix="/api/v1")
    app.include_router(recurring_router, prefix="/api/v1")
    app.include_router(time_off_router, prefix="/api/v1")
    app.include_router(pay_periods_router, prefix="/api/v1")
    app.include_router(balances_router, prefix="/api/v1")

    return app


# Default app instance for uvicorn
app = create_app()
