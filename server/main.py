"""
Repo Health API

FastAPI application: submit a GitHub repository URL, get an AI-generated
code health report, and watch it on a polling dashboard.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded

from config import get_settings, load_allowed_origins
from database import init_db
from errors import AppError
from logging_config import setup_logging
from routers import analysis, pages
from schemas import HealthResponse
from services.providers import build_provider

logger = logging.getLogger(__name__)

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Fails startup when GITHUB_TOKEN is missing
    settings = get_settings()
    setup_logging(settings.environment, settings.log_level)
    init_db(settings.database_url)
    app.state.provider = build_provider(settings)
    logger.info(f"Repo Health API {VERSION} started (AI provider: {settings.ai_provider or 'none'})")
    yield


app = FastAPI(
    title="Repo Health API",
    description="AI-generated code health reports for GitHub repositories",
    version=VERSION,
    lifespan=lifespan,
)

# Rate limiting
app.state.limiter = analysis.limiter


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    return JSONResponse(
        status_code=429,
        content={"error": "Too many requests. Please try again later."},
    )


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message} {exc.details or ''}".rstrip())
    content = {"error": exc.message}
    if exc.details:
        content["details"] = exc.details
    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    return JSONResponse(
        status_code=400,
        content={"error": f"Invalid request: {location} {message}".replace("  ", " ")},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc.__class__.__name__}")
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=list(load_allowed_origins()),
    allow_credentials=False,
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type"],
)

app.include_router(analysis.router)
app.include_router(pages.router)


@app.get("/health", response_model=HealthResponse)
def health(request: Request):
    """Health check endpoint."""
    provider = getattr(request.app.state, "provider", None)
    return HealthResponse(
        status="ok",
        version=VERSION,
        ai_provider=provider.name if provider else None,
    )
