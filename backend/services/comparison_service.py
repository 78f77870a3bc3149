"""
Comparison Service - narrative differences between two policy documents
"""
from typing import Optional

import structlog

from api.schemas import ComparisonResult
from core.data_uri import decode_data_uri
from prompts.policy_prompts import COMPARE_PROMPT
from services.model_client import GeminiModelClient, get_model_client

logger = structlog.get_logger()


class PolicyComparisonService:
    def __init__(self, model_client: Optional[GeminiModelClient] = None):
        self.model_client = model_client or get_model_client()

    async def compare(self, policy1_data_uri: str, policy2_data_uri: str) -> ComparisonResult:
        """
        Compare two policies attached as inline media.

        A malformed data URI fails with InvalidDataUriError before the model
        is called; the output is a free-text summary, not a structured diff.
        """
        first = decode_data_uri(policy1_data_uri)
        second = decode_data_uri(policy2_data_uri)

        logger.info(
            "Comparing policies",
            policy1_bytes=len(first.data),
            policy2_bytes=len(second.data),
        )

        return await self.model_client.generate_json(
            [COMPARE_PROMPT.format(), "Policy 1:", first, "Policy 2:", second],
            ComparisonResult,
            operation="compare_policies",
        )


_comparison_service: Optional[PolicyComparisonService] = None


def get_comparison_service() -> PolicyComparisonService:
    global _comparison_service
    if _comparison_service is None:
        _comparison_service = PolicyComparisonService()
    return _comparison_service
