"""
PolicyWise Backend - FastAPI Application Entry Point

Policy analysis API with:
- Prompt flows over Gemini (analyze, recommend, chat, compare, summarize)
- Firebase-authenticated saved analyses
- CORS for frontend communication
"""
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import structlog

from config import get_settings
from api.router import router
from api.schemas import HealthResponse
from core.logger import setup_logging
from core.exceptions import PolicyWiseException
from services.analysis_store import init_analysis_store

settings = get_settings()

# Setup structured logging
setup_logging(settings.log_level, json_logs=settings.log_json)
logger = structlog.get_logger()

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup:
    - Select the saved-analysis store backend (Firestore or memory)

    Shutdown:
    - Log shutdown info
    """
    logger.info("PolicyWise backend starting up", model=settings.gemini_analysis_model)

    store = init_analysis_store(settings)
    app.state.store_backend = store.backend_name

    yield

    logger.info("PolicyWise backend shutting down")


# Initialize FastAPI app
app = FastAPI(
    title="PolicyWise AI API",
    description="Insurance policy analysis, comparison and chat over Gemini",
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        settings.frontend_url,
        "http://localhost:3000",
        "http://127.0.0.1:9002",
    ],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Global exception handlers
@app.exception_handler(PolicyWiseException)
async def policywise_exception_handler(request: Request, exc: PolicyWiseException):
    """Handle custom PolicyWise exceptions."""
    logger.warning(
        "PolicyWise exception",
        error=exc.error_code,
        message=exc.message,
        path=request.url.path
    )

    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    logger.error(
        "Unexpected error",
        error=str(exc),
        path=request.url.path,
        exc_info=True
    )

    detail = str(exc) if settings.log_level == "DEBUG" else None

    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_error",
            "message": "An unexpected error occurred",
            "detail": detail,
            "error_type": type(exc).__name__,
        },
    )


# Mount API router
app.include_router(router, prefix="/api")


@app.get("/health", response_model=HealthResponse)
async def health_check(request: Request):
    """Health check for liveness/readiness probes."""
    return {
        "status": "ok",
        "version": VERSION,
        "model": settings.gemini_analysis_model,
        "store_backend": getattr(request.app.state, "store_backend", "uninitialized"),
    }


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "name": "PolicyWise AI API",
        "version": VERSION,
        "description": "Insurance policy analysis with Gemini",
        "docs": "/docs",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level=settings.log_level.lower(),
    )
