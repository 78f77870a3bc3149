"""
Analysis Service - policy analysis and personalized recommendation flows

Analyzes a policy document (inline text or an uploaded file passed as a data
URI) into a structured AnalysisResult, and merges a personalized
recommendation into an existing analysis.
"""
from typing import Optional

import structlog

from api.schemas import (
    AnalysisRequest,
    AnalysisResult,
    RecommendationOutput,
    UserContext,
)
from core.data_uri import decode_data_uri
from core.exceptions import NotAPolicyError
from prompts.policy_prompts import (
    ANALYSIS_SYSTEM_PROMPT,
    ANALYSIS_USER_PROMPT,
    INLINE_TEXT_BLOCK,
    RECOMMENDATION_PROMPT,
)
from services.model_client import GeminiModelClient, PromptPart, get_model_client

logger = structlog.get_logger()


def _bullets(items: list[str]) -> str:
    return "\n".join(f"  - {item}" for item in items) or "  - (none listed)"


class PolicyAnalysisService:
    """
    Policy analysis flows on top of the shared model client.

    Both operations are stateless: nothing is stored between calls.
    """

    def __init__(self, model_client: Optional[GeminiModelClient] = None):
        self.model_client = model_client or get_model_client()

    def build_analysis_parts(self, request: AnalysisRequest) -> list[PromptPart]:
        """Render the analysis prompt with the document inline or as media."""
        request.ensure_input()

        if request.document_text is not None:
            return [
                ANALYSIS_USER_PROMPT.format(
                    document_reference="text below",
                    document_block=INLINE_TEXT_BLOCK.format(document_text=request.document_text),
                )
            ]

        document = decode_data_uri(request.document_data_uri)
        return [
            ANALYSIS_USER_PROMPT.format(
                document_reference="in the attached document file",
                document_block="",
            ),
            document,
        ]

    async def analyze(self, request: AnalysisRequest) -> AnalysisResult:
        """
        Analyze a policy document.

        Raises:
            MissingInputError: neither text nor data URI supplied
            InvalidDataUriError: data URI could not be decoded
            NotAPolicyError: model classified the document as non-policy
            UpstreamError: model call failed or returned an invalid shape
        """
        # Input is checked before any outbound call
        parts = self.build_analysis_parts(request)

        logger.info(
            "Starting policy analysis",
            source="text" if request.document_text is not None else "file",
        )

        result = await self.model_client.generate_json(
            parts,
            AnalysisResult,
            operation="analyze_policy",
            system_instruction=ANALYSIS_SYSTEM_PROMPT,
        )

        if not result.is_policy:
            logger.info("Document is not a policy")
            raise NotAPolicyError(analysis=result)

        logger.info(
            "Policy analysis complete",
            verdict=result.verdict_category.value if result.verdict_category else None,
            benefits=len(result.benefits),
            risks=len(result.risks),
        )
        return result

    async def recommend(self, analysis: AnalysisResult, user_context: UserContext) -> AnalysisResult:
        """Return a copy of ``analysis`` with a personalized ``recommendation``."""
        prompt = RECOMMENDATION_PROMPT.format(
            overview=analysis.overview,
            final_verdict=analysis.final_verdict,
            pros=_bullets(analysis.pros_cons.pros),
            cons=_bullets(analysis.pros_cons.cons),
            age=user_context.age,
            annual_salary=user_context.annual_salary,
            investment_goal=user_context.investment_goal,
        )

        logger.info("Requesting personalized recommendation", age=user_context.age)

        output = await self.model_client.generate_json(
            [prompt],
            RecommendationOutput,
            operation="policy_recommendation",
        )
        return analysis.model_copy(update={"recommendation": output.recommendation}, deep=True)


# Global service instance
_analysis_service: Optional[PolicyAnalysisService] = None


def get_analysis_service() -> PolicyAnalysisService:
    """Get or create the analysis service instance."""
    global _analysis_service
    if _analysis_service is None:
        _analysis_service = PolicyAnalysisService()
    return _analysis_service
