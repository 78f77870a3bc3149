import asyncio
import unittest

from api.schemas import AnalysisResult, ChatMessage, ChatOutput
from config import Settings, get_settings
from core.exceptions import MissingInputError
from fakes import POLICY_PAYLOAD, FakeModelClient
from services.chat_service import PolicyChatService, format_history


class TestPolicyChat(unittest.TestCase):
    def setUp(self):
        self.analysis = AnalysisResult.model_validate(POLICY_PAYLOAD)

    def test_reply_returns_one_bot_message(self):
        fake = FakeModelClient(responses=[{"response": "The policy does not list a deductible."}])
        service = PolicyChatService(model_client=fake)
        history = [
            ChatMessage(role="bot", content="Hi"),
            ChatMessage(role="user", content="What is the deductible?"),
        ]

        reply = asyncio.run(service.reply(self.analysis, history))

        self.assertEqual(reply, ChatMessage(role="bot", content="The policy does not list a deductible."))
        call = fake.calls[0]
        self.assertEqual(call["schema"], ChatOutput)
        self.assertEqual(call["model"], get_settings().gemini_chat_model)
        prompt = call["parts"][0]
        self.assertTrue(prompt.index("**bot:** Hi") < prompt.index("**user:** What is the deductible?"))
        # Analysis is embedded as JSON with wire names
        self.assertIn('"policyName": "SecureLife Term Plan"', prompt)

    def test_chat_model_comes_from_client_settings(self):
        settings = Settings(_env_file=None, gemini_chat_model="gemini-chat-override")
        fake = FakeModelClient(responses=[{"response": "Yes."}], settings=settings)
        service = PolicyChatService(model_client=fake)

        asyncio.run(service.reply(self.analysis, [ChatMessage(role="user", content="Covered abroad?")]))

        self.assertEqual(fake.calls[0]["model"], "gemini-chat-override")

    def test_history_must_end_with_user_message(self):
        fake = FakeModelClient(responses=[{"response": "unused"}])
        service = PolicyChatService(model_client=fake)

        for history in ([], [ChatMessage(role="bot", content="Hi")]):
            with self.assertRaises(MissingInputError):
                asyncio.run(service.reply(self.analysis, history))
        self.assertEqual(fake.calls, [])

    def test_format_history_keeps_one_line_per_message(self):
        text = format_history([ChatMessage(role="user", content="line one\nline two")])
        self.assertEqual(text, "**user:** line one line two")


if __name__ == "__main__":
    unittest.main()
