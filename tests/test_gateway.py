import unittest
from types import SimpleNamespace
from unittest import mock

import openai

from cryptowire.analysis.gateway import (
    ANALYST_SYSTEM_PROMPT,
    AnalysisGateway,
    ChatMessage,
    ModelUnavailable,
)


def _completion(text):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=text))])


class TestAnalysisGateway(unittest.TestCase):
    def setUp(self):
        self.client = mock.Mock()
        self.gateway = AnalysisGateway("sk-test", model="gpt-test", client=self.client)

    def test_analyze_returns_text_verbatim(self):
        self.client.chat.completions.create.return_value = _completion("  Bullish, with caveats.\n")
        self.assertEqual(self.gateway.analyze("BTC ETF inflows rise"), "  Bullish, with caveats.\n")
        _, kwargs = self.client.chat.completions.create.call_args
        self.assertEqual(kwargs["model"], "gpt-test")
        self.assertEqual(kwargs["messages"], [
            {"role": "system", "content": ANALYST_SYSTEM_PROMPT},
            {"role": "user", "content": "BTC ETF inflows rise"},
        ])

    def test_chat_interpolates_context_into_system_message(self):
        self.client.chat.completions.create.return_value = _completion("It means more demand.")
        transcript = [
            ChatMessage("user", "What happened?"),
            ChatMessage("assistant", "ETF inflows rose."),
            ChatMessage("user", "What does it mean?"),
        ]
        self.assertEqual(self.gateway.chat(transcript, "ETF inflows hit a record"), "It means more demand.")
        _, kwargs = self.client.chat.completions.create.call_args
        messages = kwargs["messages"]
        self.assertEqual(messages[0]["role"], "system")
        self.assertIn("ETF inflows hit a record", messages[0]["content"])
        self.assertEqual([m["role"] for m in messages[1:]], ["user", "assistant", "user"])

    def test_api_error_becomes_model_unavailable(self):
        self.client.chat.completions.create.side_effect = openai.OpenAIError("connection reset")
        with self.assertRaises(ModelUnavailable):
            self.gateway.analyze("anything")
        self.assertEqual(self.client.chat.completions.create.call_count, 1)

    def test_empty_completion_becomes_model_unavailable(self):
        self.client.chat.completions.create.return_value = _completion(None)
        with self.assertRaises(ModelUnavailable):
            self.gateway.analyze("anything")

    def test_no_choices_becomes_model_unavailable(self):
        self.client.chat.completions.create.return_value = SimpleNamespace(choices=[])
        with self.assertRaises(ModelUnavailable):
            self.gateway.complete("system", [])


class TestChatMessage(unittest.TestCase):
    def test_rejects_unknown_role(self):
        with self.assertRaises(ValueError):
            ChatMessage("robot", "hi")

    def test_from_dict(self):
        self.assertEqual(ChatMessage.from_dict({"role": "user", "content": "hi"}).to_dict(), {"role": "user", "content": "hi"})


if __name__ == "__main__":
    unittest.main()
