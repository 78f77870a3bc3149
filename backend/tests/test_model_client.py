import asyncio
import unittest

from api.schemas import AnalysisResult, ChatOutput
from config import Settings
from core.data_uri import DecodedDocument
from core.exceptions import ConfigurationError, UpstreamError
from services.model_client import GeminiModelClient, describe_parts, parse_structured, strip_code_fences


class _StubbedClient(GeminiModelClient):
    def __init__(self, reply=None, error=None):
        super().__init__(settings=Settings(gemini_api_key="test-key"))
        self.reply = reply
        self.error = error
        self.seen = []

    def _sync_generate(self, parts, model, json_output, use_url_context, system_instruction):
        self.seen.append((model, json_output, use_url_context))
        if self.error is not None:
            raise self.error
        return self.reply


class TestParsing(unittest.TestCase):
    def test_strip_code_fences(self):
        self.assertEqual(strip_code_fences('```json\n{"a": 1}\n```'), '{"a": 1}')
        self.assertEqual(strip_code_fences('```\n{"a": 1}```'), '{"a": 1}')
        self.assertEqual(strip_code_fences(' {"a": 1} '), '{"a": 1}')

    def test_parse_structured_valid(self):
        out = parse_structured('```json\n{"response": "Your deductible is $500."}\n```', ChatOutput, "chat")
        self.assertEqual(out.response, "Your deductible is $500.")

    def test_invalid_json_is_upstream_error(self):
        with self.assertRaises(UpstreamError):
            parse_structured("Sure! Here is your analysis", ChatOutput, "chat")

    def test_schema_mismatch_is_upstream_error(self):
        with self.assertRaises(UpstreamError) as ctx:
            parse_structured('{"isPolicy": true}', AnalysisResult, "analyze")
        self.assertIn("AnalysisResult", ctx.exception.detail)

    def test_describe_parts_hides_content(self):
        described = describe_parts(["secret text", DecodedDocument("application/pdf", b"12345")])
        self.assertEqual(described, ["text:11", "application/pdf:5B"])


class TestGeminiModelClient(unittest.TestCase):
    def test_missing_api_key(self):
        with self.assertRaises(ConfigurationError):
            GeminiModelClient(settings=Settings(gemini_api_key=""))

    def test_provider_exception_becomes_upstream_error(self):
        client = _StubbedClient(error=RuntimeError("503 UNAVAILABLE"))
        with self.assertRaises(UpstreamError) as ctx:
            asyncio.run(client.generate_json(["hi"], ChatOutput, operation="chat"))
        self.assertIn("503", ctx.exception.detail)

    def test_empty_response_is_upstream_error(self):
        client = _StubbedClient(reply="   ")
        with self.assertRaises(UpstreamError):
            asyncio.run(client.generate_text(["hi"], operation="summarize"))

    def test_generate_text_passes_url_context(self):
        client = _StubbedClient(reply="  A summary.  ")
        out = asyncio.run(client.generate_text(["hi"], operation="summarize", use_url_context=True))
        self.assertEqual(out, "A summary.")
        self.assertEqual(client.seen, [(client.model_name, False, True)])

    def test_generate_json_uses_model_override(self):
        client = _StubbedClient(reply='{"response": "ok"}')
        asyncio.run(client.generate_json(["hi"], ChatOutput, operation="chat", model="chat-model"))
        self.assertEqual(client.seen, [("chat-model", True, False)])


if __name__ == "__main__":
    unittest.main()
