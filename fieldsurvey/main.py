"""FastAPI application entry point for the field survey backend.

This module initializes the FastAPI application, sets up logging, creates
tables, imports YAML survey definitions, registers routers, and handles
global exception handling.
"""

import uuid
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from fieldsurvey import __version__
from fieldsurvey.config import get_settings
from fieldsurvey.logging_config import get_logger, request_id_var, setup_logging
from fieldsurvey.models.database import SessionLocal, init_db
from fieldsurvey.routes import health, help, responses, surveys, users
from fieldsurvey.services.errors import ServiceError
from fieldsurvey.services.survey_loader import SurveyLoader

# Initialize logger (will be configured during startup)
logger = get_logger(__name__)


def import_survey_definitions() -> None:
    """Import YAML survey definitions from the configured directory."""
    settings = get_settings()
    loader = SurveyLoader(settings.surveys_dir)
    db = SessionLocal()
    try:
        created = loader.import_all(db)
    finally:
        db.close()
    if created:
        logger.info(f"Imported {len(created)} survey definitions from {settings.surveys_dir}")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Startup:
    - Configure logging
    - Create missing tables
    - Import YAML survey definitions

    Args:
        app: FastAPI application instance

    Yields:
        None
    """
    settings = get_settings()
    setup_logging()

    logger.info(
        f"Field Survey API starting - "
        f"Environment: {settings.environment}, "
        f"Log Level: {settings.log_level}, "
        f"Database: {settings.database_url.split('@')[-1] if '@' in settings.database_url else 'configured'}, "
        f"Version: {settings.git_commit_sha}"
    )

    init_db()
    import_survey_definitions()

    yield

    logger.info("Field Survey API shutting down")


app = FastAPI(
    title="Field Survey API",
    description="Survey collection backend for field surveys with audio proof and quality review",
    version=__version__,
    lifespan=lifespan
)


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    """Tag every log record of a request with its request ID."""
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    token = request_id_var.set(request_id)
    try:
        response = await call_next(request)
    finally:
        request_id_var.reset(token)
    response.headers["X-Request-ID"] = request_id
    return response


@app.get("/")
async def root() -> dict:
    """Root endpoint with basic API information.

    Returns:
        dict: API information and status
    """
    settings = get_settings()
    return {
        "service": "Field Survey API",
        "version": __version__,
        "environment": settings.environment,
        "status": "operational"
    }


# Register routers
app.include_router(health.router, tags=["Health"])
app.include_router(help.router, tags=["Help"])
app.include_router(responses.router, tags=["Responses"])
app.include_router(surveys.router, tags=["Surveys"])
app.include_router(users.router, tags=["Users"])


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    """Render service errors with their own status and message."""
    if exc.status_code >= 500:
        logger.error(f"{type(exc).__name__} for {request.method} {request.url.path}: {exc.message}")
    else:
        logger.info(f"Rejected {request.method} {request.url.path}: {exc.message}")

    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed request bodies as 400 Validation errors."""
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg')}" if location else str(first.get("msg"))
    else:
        message = "Invalid request."

    logger.info(f"Rejected {request.method} {request.url.path}: {message}")
    return JSONResponse(status_code=400, content={"error": "Validation", "message": message})


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Global exception handler for unhandled exceptions.

    Logs all unhandled exceptions and returns a generic error response
    to prevent leaking sensitive information.

    Args:
        request: FastAPI request object
        exc: Exception that was raised

    Returns:
        JSONResponse: Generic error response
    """
    logger.error(
        f"Unhandled exception for {request.method} {request.url}: {exc}",
        exc_info=True
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "message": "An unexpected error occurred. Please try again later."
        }
    )
