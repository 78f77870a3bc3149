"""
FastAPI dependency injection setup

Provides reusable dependencies for API routes. Tests swap any of these via
app.dependency_overrides.
"""
from functools import lru_cache

from fastapi import Depends, Header
import structlog

from api.schemas import AuthUser
from config import Settings, get_settings
from core.data_uri import encode_data_uri
from core.exceptions import AuthenticationError, FileValidationError, InvalidFileTypeError
from services.analysis_service import PolicyAnalysisService, get_analysis_service
from services.analysis_store import AnalysisStore, get_analysis_store
from services.auth_service import FirebaseTokenVerifier, get_token_verifier
from services.chat_service import PolicyChatService, get_chat_service
from services.comparison_service import PolicyComparisonService, get_comparison_service
from services.summary_service import DocumentSummaryService, get_summary_service

logger = structlog.get_logger()

ACCEPTED_MIME_TYPE = "application/pdf"


@lru_cache
def get_settings_dep() -> Settings:
    """Dependency to get settings instance."""
    return get_settings()


async def get_analysis_service_dep() -> PolicyAnalysisService:
    return get_analysis_service()


async def get_chat_service_dep() -> PolicyChatService:
    return get_chat_service()


async def get_comparison_service_dep() -> PolicyComparisonService:
    return get_comparison_service()


async def get_summary_service_dep() -> DocumentSummaryService:
    return get_summary_service()


async def get_analysis_store_dep() -> AnalysisStore:
    return get_analysis_store()


async def get_token_verifier_dep() -> FirebaseTokenVerifier:
    return get_token_verifier()


async def get_current_user(
    authorization: str | None = Header(default=None),
    verifier: FirebaseTokenVerifier = Depends(get_token_verifier_dep),
) -> AuthUser:
    """
    Resolve the signed-in user from a Firebase ID token.

    Usage:
        @router.get("/analyses")
        async def list_analyses(user: AuthUser = Depends(get_current_user)):
            ...
    """
    if not authorization or not authorization.lower().startswith("bearer "):
        raise AuthenticationError("Missing bearer token")

    token = authorization.split(" ", 1)[1].strip()
    if not token:
        raise AuthenticationError("Missing bearer token")

    return verifier(token)


def validate_pdf_upload(
    file_bytes: bytes,
    filename: str,
    content_type: str,
    settings: Settings,
) -> str:
    """
    Validate an uploaded policy file and return it as a data URI.

    Checks:
    - File type is PDF (checked first, before the content is used)
    - File is not empty
    - File size within limit
    """
    if content_type != ACCEPTED_MIME_TYPE:
        logger.warning("Rejected upload with invalid type", filename=filename, content_type=content_type)
        raise InvalidFileTypeError(content_type)

    if len(file_bytes) == 0:
        raise FileValidationError(
            message="File is empty",
            recovery="Please select a non-empty PDF file.",
        )

    max_size = settings.max_file_size_bytes
    if len(file_bytes) > max_size:
        file_size_mb = len(file_bytes) / (1024 * 1024)
        raise FileValidationError(
            message=f"File too large: {file_size_mb:.2f}MB. Maximum size is {settings.max_file_size_mb}MB.",
            recovery=f"Compress your PDF or split it into smaller files (max {settings.max_file_size_mb}MB each).",
        )

    return encode_data_uri(file_bytes, ACCEPTED_MIME_TYPE)
