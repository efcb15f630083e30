# This project was developed with assistance from AI tools.
"""FastAPI application entry point."""

import logging
import uuid
from contextlib import asynccontextmanager

from db import engine
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .core.config import settings
from .routes import health, loans, modifications, waterfall
from .schemas import ValidationIssue
from .schemas.error import ErrorResponse
from .services.errors import ServicingError, ValidationError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """Application startup/shutdown lifecycle."""
    logger.info(
        "Starting %s %s (rounding=%s, places=%d)",
        settings.APP_NAME,
        __version__,
        settings.DEFAULT_ROUNDING_METHOD,
        settings.MONEY_DECIMAL_PLACES,
    )
    yield
    await engine.dispose()


app = FastAPI(
    title="Loan Servicing API",
    description="Loan modification impact and payment waterfall allocation",
    version=__version__,
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_HOSTS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
)

_HTTP_STATUS_TITLES: dict[int, str] = {
    400: "Bad Request",
    404: "Not Found",
    405: "Method Not Allowed",
    422: "Unprocessable Entity",
    500: "Internal Server Error",
    503: "Service Unavailable",
}


def _build_error(
    status_code: int,
    detail: str,
    request_id: str,
    *,
    title: str | None = None,
    errors: list[ValidationIssue] | None = None,
) -> ErrorResponse:
    return ErrorResponse(
        type="about:blank",
        title=title or _HTTP_STATUS_TITLES.get(status_code, "Error"),
        status=status_code,
        detail=detail,
        request_id=request_id,
        errors=errors or [],
    )


def _request_id(request: Request) -> str:
    return request.headers.get("x-request-id", str(uuid.uuid4()))


@app.exception_handler(ServicingError)
async def servicing_exception_handler(request: Request, exc: ServicingError):
    """Render servicing errors as RFC 7807 Problem Details."""
    request_id = _request_id(request)
    logger.warning("%s (request_id=%s): %s", type(exc).__name__, request_id, exc)
    errors = exc.errors if isinstance(exc, ValidationError) else None
    body = _build_error(exc.status_code, str(exc), request_id, title=exc.title, errors=errors)
    return JSONResponse(status_code=exc.status_code, content=body.model_dump(mode="json"))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Convert HTTPException to RFC 7807 Problem Details."""
    body = _build_error(exc.status_code, str(exc.detail), _request_id(request))
    return JSONResponse(status_code=exc.status_code, content=body.model_dump(mode="json"))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Convert Pydantic validation errors to RFC 7807 Problem Details."""
    body = _build_error(422, str(exc.errors()), _request_id(request))
    return JSONResponse(status_code=422, content=body.model_dump(mode="json"))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """Catch-all for unhandled exceptions -- log and return 500."""
    request_id = _request_id(request)
    logger.exception("Unhandled exception (request_id=%s)", request_id)
    body = _build_error(500, "An unexpected error occurred.", request_id)
    return JSONResponse(status_code=500, content=body.model_dump(mode="json"))


# Include routers
app.include_router(health.router, prefix="/health", tags=["health"])
app.include_router(modifications.router, prefix="/api/modifications", tags=["modifications"])
app.include_router(loans.router, prefix="/api/loans", tags=["loans"])
app.include_router(waterfall.router, prefix="/api/waterfall", tags=["waterfall"])


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint"""
    return {"message": f"Welcome to the {settings.APP_NAME} API"}
