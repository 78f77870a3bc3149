"""
Model Client - Gemini integration via google-genai

Single seam between the flows and the generative model provider. Flows hand
over an ordered list of prompt parts (plain strings or decoded documents) and
either a pydantic schema (JSON output) or nothing (free text output).

Provider exceptions, unparsable JSON and schema mismatches all surface as
UpstreamError. There is no retry: each flow is a single one-shot call.
"""
import asyncio
import json
from typing import Any, Optional, Sequence, Type, TypeVar, Union

import structlog
from pydantic import BaseModel, ValidationError

from config import Settings, get_settings
from core.data_uri import DecodedDocument
from core.exceptions import ConfigurationError, UpstreamError

logger = structlog.get_logger()

T = TypeVar("T", bound=BaseModel)

PromptPart = Union[str, DecodedDocument]


def strip_code_fences(text: str) -> str:
    """Remove a surrounding ```json ... ``` block if the model added one."""
    text = (text or "").strip()
    if text.startswith("```json"):
        text = text[7:]
    elif text.startswith("```"):
        text = text[3:]
    if text.endswith("```"):
        text = text[:-3]
    return text.strip()


def parse_structured(raw: str, schema: Type[T], operation: str) -> T:
    """Parse a model JSON response and validate it against ``schema``."""
    try:
        data = json.loads(strip_code_fences(raw))
    except json.JSONDecodeError as e:
        logger.error("Failed to parse model JSON response", operation=operation, error=str(e))
        raise UpstreamError(
            message="The AI service returned an unreadable response.",
            detail=f"Invalid JSON: {e}",
        )

    try:
        return schema.model_validate(data)
    except ValidationError as e:
        logger.error(
            "Model response failed schema validation",
            operation=operation,
            schema=schema.__name__,
            errors=e.error_count(),
        )
        raise UpstreamError(
            message="The AI service returned an incomplete response.",
            detail=f"{schema.__name__} validation failed: {e.errors()[0]['msg']}",
        )


def describe_parts(parts: Sequence[Any]) -> list[str]:
    """Summarize prompt parts for logs without leaking document contents."""
    return [
        f"{p.mime_type}:{len(p.data)}B" if isinstance(p, DecodedDocument) else f"text:{len(p)}"
        for p in parts
    ]


class GeminiModelClient:
    """
    Gemini client wrapper shared by every flow.

    The google-genai SDK call is synchronous, so it runs in a worker thread
    to keep the event loop responsive while a request is outstanding.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.api_key = self.settings.gemini_api_key
        self.model_name = self.settings.gemini_analysis_model
        self._client = None

        if not self.api_key:
            raise ConfigurationError("GEMINI_API_KEY not configured")

        logger.info("GeminiModelClient initialized", model=self.model_name)

    def _get_client(self):
        """Get or create Gemini client."""
        if self._client is None:
            from google import genai
            self._client = genai.Client(api_key=self.api_key)
            logger.info("Gemini client created")
        return self._client

    @staticmethod
    def _build_contents(parts: Sequence[PromptPart]) -> list:
        from google.genai import types

        built = []
        for part in parts:
            if isinstance(part, DecodedDocument):
                built.append(types.Part.from_bytes(data=part.data, mime_type=part.mime_type))
            else:
                built.append(types.Part.from_text(text=part))
        return [types.Content(role="user", parts=built)]

    def _sync_generate(
        self,
        parts: Sequence[PromptPart],
        model: str,
        json_output: bool,
        use_url_context: bool,
        system_instruction: Optional[str],
    ) -> str:
        from google.genai import types

        tools = [types.Tool(url_context=types.UrlContext())] if use_url_context else None
        config = types.GenerateContentConfig(
            system_instruction=system_instruction,
            response_mime_type="application/json" if json_output else None,
            temperature=self.settings.gemini_temperature,
            max_output_tokens=self.settings.gemini_max_output_tokens,
            tools=tools,
        )
        response = self._get_client().models.generate_content(
            model=model,
            contents=self._build_contents(parts),
            config=config,
        )
        return getattr(response, "text", None) or ""

    async def _generate(
        self,
        parts: Sequence[PromptPart],
        *,
        operation: str,
        json_output: bool,
        model: Optional[str] = None,
        use_url_context: bool = False,
        system_instruction: Optional[str] = None,
    ) -> str:
        chosen_model = model or self.model_name
        logger.info(
            "Calling Gemini API",
            operation=operation,
            model=chosen_model,
            parts=describe_parts(parts),
            url_context=use_url_context,
        )
        try:
            text = await asyncio.to_thread(
                self._sync_generate,
                parts,
                chosen_model,
                json_output,
                use_url_context,
                system_instruction,
            )
        except Exception as e:
            logger.error("Gemini API call failed", operation=operation, error=str(e))
            raise UpstreamError(message="The AI service failed to respond.", detail=str(e))

        if not text.strip():
            logger.error("Gemini returned an empty response", operation=operation)
            raise UpstreamError(message="The AI service returned an empty response.")

        return text

    async def generate_json(
        self,
        parts: Sequence[PromptPart],
        schema: Type[T],
        *,
        operation: str,
        model: Optional[str] = None,
        system_instruction: Optional[str] = None,
    ) -> T:
        """Invoke the model expecting JSON that validates against ``schema``."""
        raw = await self._generate(
            parts,
            operation=operation,
            json_output=True,
            model=model,
            system_instruction=system_instruction,
        )
        return parse_structured(raw, schema, operation)

    async def generate_text(
        self,
        parts: Sequence[PromptPart],
        *,
        operation: str,
        model: Optional[str] = None,
        use_url_context: bool = False,
        system_instruction: Optional[str] = None,
    ) -> str:
        """Invoke the model for free text; ``use_url_context`` lets it fetch URLs itself."""
        raw = await self._generate(
            parts,
            operation=operation,
            json_output=False,
            model=model,
            use_url_context=use_url_context,
            system_instruction=system_instruction,
        )
        return raw.strip()


# Global client instance
_model_client: Optional[GeminiModelClient] = None


def get_model_client() -> GeminiModelClient:
    """Get or create the shared model client."""
    global _model_client
    if _model_client is None:
        _model_client = GeminiModelClient()
    return _model_client

