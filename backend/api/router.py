"""
API Router - All route definitions

Thin controllers that delegate to services.
"""
from typing import List

from fastapi import APIRouter, Depends, File, UploadFile, status
from fastapi.responses import Response
import structlog

from api.dependencies import (
    get_analysis_service_dep,
    get_analysis_store_dep,
    get_chat_service_dep,
    get_comparison_service_dep,
    get_current_user,
    get_settings_dep,
    get_summary_service_dep,
    validate_pdf_upload,
)
from api.schemas import (
    AnalysisRequest,
    AnalysisResult,
    AuthUser,
    ChatMessage,
    ChatRequest,
    CompareRequest,
    ComparisonResult,
    ErrorResponse,
    JargonExplanation,
    JargonRequest,
    PrivacyPolicySummaryRequest,
    RecommendationRequest,
    SavedAnalysis,
    SummaryResult,
    TermsSummaryRequest,
)
from config import Settings
from services.analysis_service import PolicyAnalysisService
from services.analysis_store import AnalysisStore
from services.chat_service import PolicyChatService
from services.comparison_service import PolicyComparisonService
from services.summary_service import DocumentSummaryService

logger = structlog.get_logger()

router = APIRouter()

_ERRORS = {
    400: {"model": ErrorResponse},
    422: {"model": ErrorResponse},
    502: {"model": ErrorResponse},
}


@router.post("/analyze", response_model=AnalysisResult, responses=_ERRORS)
async def analyze_policy(
    request: AnalysisRequest,
    service: PolicyAnalysisService = Depends(get_analysis_service_dep),
) -> AnalysisResult:
    """
    Analyze a policy given as pasted text or a base64 data URI.

    Non-policy documents answer 422 with error "not_a_policy" and the
    placeholder analysis (isPolicy=false) under "analysis".
    """
    return await service.analyze(request)


@router.post("/analyze/upload", response_model=AnalysisResult, responses=_ERRORS)
async def analyze_uploaded_policy(
    file: UploadFile = File(..., description="PDF policy document to analyze"),
    service: PolicyAnalysisService = Depends(get_analysis_service_dep),
    settings: Settings = Depends(get_settings_dep),
) -> AnalysisResult:
    """Upload a PDF and analyze it."""
    file_bytes = await file.read()
    data_uri = validate_pdf_upload(
        file_bytes=file_bytes,
        filename=file.filename or "policy.pdf",
        content_type=file.content_type or "application/octet-stream",
        settings=settings,
    )

    logger.info("Policy upload received", filename=file.filename, size_bytes=len(file_bytes))

    return await service.analyze(AnalysisRequest(document_data_uri=data_uri))


@router.post("/recommend", response_model=AnalysisResult, responses=_ERRORS)
async def recommend(
    request: RecommendationRequest,
    service: PolicyAnalysisService = Depends(get_analysis_service_dep),
) -> AnalysisResult:
    """Return the analysis with a personalized recommendation merged in."""
    return await service.recommend(request.analysis, request.user_context)


@router.post("/chat", response_model=ChatMessage, responses=_ERRORS)
async def chat(
    request: ChatRequest,
    service: PolicyChatService = Depends(get_chat_service_dep),
) -> ChatMessage:
    """
    Ask a question about an analysis.

    The client resends the whole history each turn and receives one bot message.
    """
    return await service.reply(request.analysis, request.chat_history)


@router.post("/compare", response_model=ComparisonResult, responses=_ERRORS)
async def compare_policies(
    request: CompareRequest,
    service: PolicyComparisonService = Depends(get_comparison_service_dep),
) -> ComparisonResult:
    return await service.compare(request.policy1_data_uri, request.policy2_data_uri)


@router.post("/summarize/privacy-policy", response_model=SummaryResult, responses=_ERRORS)
async def summarize_privacy_policy(
    request: PrivacyPolicySummaryRequest,
    service: DocumentSummaryService = Depends(get_summary_service_dep),
) -> SummaryResult:
    return await service.summarize_privacy_policy(str(request.url))


@router.post("/summarize/terms", response_model=SummaryResult, responses=_ERRORS)
async def summarize_terms(
    request: TermsSummaryRequest,
    service: DocumentSummaryService = Depends(get_summary_service_dep),
) -> SummaryResult:
    return await service.summarize_terms(str(request.terms_and_conditions_url))


@router.post("/simplify", response_model=JargonExplanation, responses=_ERRORS)
async def simplify_legal_jargon(
    request: JargonRequest,
    service: DocumentSummaryService = Depends(get_summary_service_dep),
) -> JargonExplanation:
    """Explain legal jargon in plain language."""
    return await service.simplify_legal_jargon(request.document_text)


@router.get("/me", response_model=AuthUser)
async def me(user: AuthUser = Depends(get_current_user)) -> AuthUser:
    return user


@router.get("/analyses", response_model=List[SavedAnalysis])
async def list_saved_analyses(
    user: AuthUser = Depends(get_current_user),
    store: AnalysisStore = Depends(get_analysis_store_dep),
) -> List[SavedAnalysis]:
    """List the signed-in user's saved analyses, newest first."""
    return await store.list(user.uid)


@router.post("/analyses", response_model=SavedAnalysis, status_code=status.HTTP_201_CREATED)
async def save_analysis(
    analysis: AnalysisResult,
    user: AuthUser = Depends(get_current_user),
    store: AnalysisStore = Depends(get_analysis_store_dep),
) -> SavedAnalysis:
    return await store.create(user.uid, analysis)


@router.delete("/analyses/{analysis_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_saved_analysis(
    analysis_id: str,
    user: AuthUser = Depends(get_current_user),
    store: AnalysisStore = Depends(get_analysis_store_dep),
) -> Response:
    """Permanently delete a saved analysis. There is no recovery."""
    await store.delete(user.uid, analysis_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
