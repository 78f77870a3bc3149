"""
Chat Service - Q&A grounded on a policy analysis

The caller owns the conversation: every turn resends the full analysis and the
entire history, and gets back exactly one bot message. Nothing is remembered
between calls.
"""
from typing import Optional, Sequence

import structlog

from api.schemas import AnalysisResult, ChatMessage, ChatOutput
from core.exceptions import MissingInputError
from prompts.policy_prompts import CHAT_SYSTEM_PROMPT, CHAT_USER_PROMPT
from services.model_client import GeminiModelClient, get_model_client

logger = structlog.get_logger()


def format_history(history: Sequence[ChatMessage]) -> str:
    """Render the conversation as one block per message."""
    lines = []
    for msg in history:
        # Keep each message on one line so roles stay unambiguous
        content = msg.content.replace("\n", " ").strip()
        lines.append(f"**{msg.role}:** {content}")
    return "\n".join(lines)


class PolicyChatService:
    """Answers questions about an analysis using only that analysis as context."""

    def __init__(self, model_client: Optional[GeminiModelClient] = None):
        self.model_client = model_client or get_model_client()

    async def reply(self, analysis: AnalysisResult, history: Sequence[ChatMessage]) -> ChatMessage:
        if not history or history[-1].role != "user":
            raise MissingInputError(
                message="Please enter a question about your policy.",
                detail="Chat history must end with a user message",
            )

        logger.info(
            "Chat request",
            policy=analysis.policy_name or "unknown",
            history_length=len(history),
        )

        user_prompt = CHAT_USER_PROMPT.format(
            analysis_json=analysis.model_dump_json(by_alias=True, indent=2),
            history_text=format_history(history),
        )

        output = await self.model_client.generate_json(
            [user_prompt],
            ChatOutput,
            operation="policy_chat",
            model=self.model_client.settings.gemini_chat_model,
            system_instruction=CHAT_SYSTEM_PROMPT,
        )

        logger.info("Chat response complete", chars=len(output.response))
        return ChatMessage(role="bot", content=output.response)


_chat_service: Optional[PolicyChatService] = None


def get_chat_service() -> PolicyChatService:
    global _chat_service
    if _chat_service is None:
        _chat_service = PolicyChatService()
    return _chat_service
