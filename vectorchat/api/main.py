"""
HTTP entry point for the grounding engine.

Run with: uvicorn vectorchat.api.main:app
"""

import logging

import dotenv
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Load environment variables from .env before configuration is read
dotenv.load_dotenv()

from ..core.config import VERSION, debug_enabled, validate_config
from ..core.errors import (
    DimensionMismatch,
    EmbeddingError,
    RemoteServiceError,
    ValidationError,
)
from ..util.logging import logger
from . import chat, profile, vector
from .schemas import ErrorResponse, HealthResponse
from .services import Services, get_services

app = FastAPI(
    title="VectorChat Grounding API",
    version=VERSION,
    description="Local retrieval-augmented grounding for a chat client",
    docs_url="/docs" if debug_enabled() else None,
    redoc_url="/redoc" if debug_enabled() else None
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000", "http://localhost:5173", "http://127.0.0.1:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

if debug_enabled():
    logger.set_level("DEBUG")

for _issue in validate_config():
    logger.warning(f"Configuration issue: {_issue}")


@app.get("/health", response_model=HealthResponse)
def health_check_endpoint(services: Services = Depends(get_services)):
    """Check system health."""
    storage_health = services.storage.health()
    issues = validate_config()

    return HealthResponse(
        status="healthy" if storage_health else "unhealthy",
        version=VERSION,
        storage_health=storage_health,
        config_issues=issues,
    )


app.include_router(vector.router, prefix="/vector", tags=["vector"])
app.include_router(profile.router, prefix="/profile", tags=["profile"])
app.include_router(chat.router, prefix="/chat", tags=["chat"])


def _error_response(status_code: int, exc: Exception) -> JSONResponse:
    body = ErrorResponse(error_type=type(exc).__name__, message=str(exc))
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


@app.exception_handler(ValidationError)
async def validation_exception_handler(request: Request, exc: ValidationError):
    return _error_response(422, exc)


@app.exception_handler(DimensionMismatch)
async def dimension_exception_handler(request: Request, exc: DimensionMismatch):
    return _error_response(409, exc)


@app.exception_handler(EmbeddingError)
async def embedding_exception_handler(request: Request, exc: EmbeddingError):
    return _error_response(502, exc)


@app.exception_handler(RemoteServiceError)
async def remote_exception_handler(request: Request, exc: RemoteServiceError):
    return _error_response(502, exc)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle all unhandled exceptions."""
    logging.error(f"Unhandled exception: {exc}")
    content = {"detail": "Internal server error"}
    if debug_enabled():
        content["debug"] = str(exc)
    return JSONResponse(status_code=500, content=content)
