"""FastAPI application factory."""

from __future__ import annotations

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from . import __version__
from .api import api_router
from .config import get_settings
from .database import init_database
from .errors import (
    AlreadyClaimedError,
    ConcurrentUpdateError,
    DuplicateProfileError,
    InsufficientPointsError,
    InsufficientStockError,
    InvalidTransitionError,
    MayssaError,
    NotFoundError,
    OrderValidationError,
    StoreAccessError,
)
from .logging_utils import configure_logging, get_logger

logger = get_logger(__name__)

_STATUS_BY_ERROR: tuple[tuple[type[MayssaError], int], ...] = (
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (InsufficientStockError, status.HTTP_409_CONFLICT),
    (InsufficientPointsError, status.HTTP_409_CONFLICT),
    (AlreadyClaimedError, status.HTTP_409_CONFLICT),
    (InvalidTransitionError, status.HTTP_409_CONFLICT),
    (ConcurrentUpdateError, status.HTTP_409_CONFLICT),
    (DuplicateProfileError, status.HTTP_400_BAD_REQUEST),
    (OrderValidationError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (StoreAccessError, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def _error_response(request: Request, exc: MayssaError) -> JSONResponse:
    status_code = status.HTTP_400_BAD_REQUEST
    for error_type, code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            status_code = code
            break
    if isinstance(exc, StoreAccessError):
        logger.error("Store failure on %s %s: %s", request.method, request.url.path, exc)
    detail = exc.errors if isinstance(exc, OrderValidationError) else str(exc)
    return JSONResponse(status_code=status_code, content={"detail": detail})


def _value_error_response(request: Request, exc: ValueError) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)})


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""

    settings = get_settings()
    configure_logging(settings.log_level)
    init_database()

    app = FastAPI(title=settings.app_name, version=__version__)
    app.add_exception_handler(MayssaError, _error_response)
    app.add_exception_handler(ValueError, _value_error_response)

    @app.get("/health", tags=["system"])
    def health_check() -> dict[str, str]:
        return {"status": "ok"}

    app.include_router(api_router)
    return app
