"""FastAPI application entry point for Pactwise."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import get_settings
from app.database import Database
from core.errors import (
    AuthorizationDenied,
    ConfigurationError,
    ExtractionError,
    PactwiseError,
    ProviderError,
)
from core.extraction import TextExtractor
from core.llm import ProviderClient

logger = logging.getLogger("pactwise.app")


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup and shutdown events."""
    # Startup
    settings = get_settings()
    configure_logging(settings.log_level)
    logger.info(f"🚀 Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"📍 Environment: {settings.app_env}")

    # Fails startup when the provider key is missing
    app.state.provider = ProviderClient.from_settings(settings)
    app.state.extractor = TextExtractor.from_settings(settings)

    db = Database()
    await db.connect(settings.database_url)
    await db.ensure_schema()
    app.state.db = db

    yield

    # Shutdown
    logger.info("👋 Shutting down Pactwise...")
    await db.disconnect()


settings = get_settings()

app = FastAPI(
    title=settings.app_name,
    description="Contract extraction, risk analysis and grounded chat",
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs" if settings.is_development else None,
    redoc_url="/redoc" if settings.is_development else None,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.is_development else [],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ExtractionError)
async def extraction_error_handler(request: Request, exc: ExtractionError) -> JSONResponse:
    logger.warning(f"Extraction failed ({exc.code}): {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message, "code": exc.code},
    )


@app.exception_handler(ProviderError)
async def provider_error_handler(request: Request, exc: ProviderError) -> JSONResponse:
    # Upstream status and body are logged by the provider client
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": "The AI provider request failed. Please try again.", "code": "PROVIDER_ERROR"},
    )


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError) -> JSONResponse:
    logger.error(f"Configuration error: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": "Service is not configured correctly.", "code": "CONFIGURATION_ERROR"},
    )


@app.exception_handler(AuthorizationDenied)
async def authorization_denied_handler(request: Request, exc: AuthorizationDenied) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message, "reason": exc.reason.value},
    )


@app.exception_handler(PactwiseError)
async def domain_error_handler(request: Request, exc: PactwiseError) -> JSONResponse:
    content = {"error": exc.message}
    code = getattr(exc, "code", None)
    if code:
        content["code"] = code
    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"error": "Malformed request body.", "code": "INVALID_REQUEST", "details": jsonable_encoder(exc.errors())},
    )


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "status": "operational",
    }


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}


# Import and include routers
from app.api.routes import analysis, chat, documents
app.include_router(documents.router, prefix="/api/documents", tags=["documents"])
app.include_router(analysis.router, prefix="/api", tags=["analysis"])
app.include_router(chat.router, prefix="/api/chat", tags=["chat"])
