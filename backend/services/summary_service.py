"""
Summary Service - URL summaries and legal jargon explanations

Privacy policy and terms & conditions summaries hand the URL to the model,
which fetches the page itself through its url_context tool. This service does
no HTTP fetching, caching or retrying of its own.
"""
from typing import Optional

import structlog

from api.schemas import JargonExplanation, SummaryResult
from core.exceptions import MissingInputError
from prompts.policy_prompts import JARGON_PROMPT, PRIVACY_POLICY_PROMPT, TERMS_PROMPT
from services.model_client import GeminiModelClient, get_model_client

logger = structlog.get_logger()


class DocumentSummaryService:
    def __init__(self, model_client: Optional[GeminiModelClient] = None):
        self.model_client = model_client or get_model_client()

    async def _summarize_url(self, template: str, url: str, operation: str) -> SummaryResult:
        logger.info("Summarizing document at URL", operation=operation, url=url)
        text = await self.model_client.generate_text(
            [template.format(url=url)],
            operation=operation,
            use_url_context=True,
        )
        return SummaryResult(summary=text)

    async def summarize_privacy_policy(self, url: str) -> SummaryResult:
        return await self._summarize_url(PRIVACY_POLICY_PROMPT, url, "summarize_privacy_policy")

    async def summarize_terms(self, url: str) -> SummaryResult:
        return await self._summarize_url(TERMS_PROMPT, url, "summarize_terms")

    async def simplify_legal_jargon(self, document_text: str) -> JargonExplanation:
        """Explain a legal document in plain language."""
        if not (document_text or "").strip():
            raise MissingInputError(
                message="Please provide the legal text to explain.",
                detail="documentText must not be empty",
            )

        logger.info("Simplifying legal jargon", text_length=len(document_text))
        return await self.model_client.generate_json(
            [JARGON_PROMPT.format(document_text=document_text.strip())],
            JargonExplanation,
            operation="simplify_legal_jargon",
        )


_summary_service: Optional[DocumentSummaryService] = None


def get_summary_service() -> DocumentSummaryService:
    global _summary_service
    if _summary_service is None:
        _summary_service = DocumentSummaryService()
    return _summary_service
