"""Language-model gateway for investment analysis and article chat.

Thin pass-through: one chat-completions call per request, text returned verbatim,
no retry and no caching.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Optional

import openai

logger = logging.getLogger(__name__)

ANALYST_SYSTEM_PROMPT = (
    "You are a cryptocurrency investment analyst. Given news and market context, "
    "explain the likely impact on price, the main risks, and a short-term outlook. "
    "Be concise and state that this is not financial advice."
)

CHAT_SYSTEM_TEMPLATE = (
    "You are a helpful assistant discussing a cryptocurrency news article with an investor. "
    "Answer using the article below as context; say so when the article does not cover the question.\n\n"
    "Article:\n{context}"
)

ROLES = ("system", "user", "assistant")


class ModelUnavailable(Exception):
    """The completion endpoint failed or returned nothing usable."""


@dataclass(frozen=True)
class ChatMessage:
    role: str
    content: str

    def __post_init__(self):
        if self.role not in ROLES:
            raise ValueError(f"invalid role {self.role!r}; expected one of {', '.join(ROLES)}")
        if not isinstance(self.content, str):
            raise ValueError("message content must be a string")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ChatMessage":
        return cls(role=str(data.get("role", "")), content=data.get("content"))

    def to_dict(self) -> dict:
        return {"role": self.role, "content": self.content}


class AnalysisGateway:
    def __init__(
        self,
        api_key: str,
        *,
        model: str = "gpt-4o-mini",
        timeout: float = 60,
        max_tokens: int = 1500,
        temperature: float = 0.7,
        client: Optional[Any] = None,
    ):
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self._client = client or openai.OpenAI(api_key=api_key, timeout=timeout, max_retries=0)

    def complete(self, system_prompt: str, messages: Iterable[ChatMessage]) -> str:
        """Send system prompt + transcript; return the generated text verbatim."""
        payload: List[dict] = [{"role": "system", "content": system_prompt}]
        payload.extend(m.to_dict() for m in messages)
        try:
            response = self._client.chat.completions.create(
                model=self.model,
                messages=payload,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
            )
        except openai.OpenAIError as e:
            logger.error(f"AI generation error: {e.__class__.__name__}: {e}")
            raise ModelUnavailable("completion request failed") from e

        choices = getattr(response, "choices", None) or []
        text = choices[0].message.content if choices else None
        if not text:
            logger.error("AI generation error: empty completion")
            raise ModelUnavailable("empty completion")
        return text

    def analyze(self, prompt: str) -> str:
        return self.complete(ANALYST_SYSTEM_PROMPT, [ChatMessage(role="user", content=prompt)])

    def chat(self, messages: Iterable[ChatMessage], context: Optional[str] = None) -> str:
        system_prompt = CHAT_SYSTEM_TEMPLATE.format(context=(context or "").strip() or "(no article provided)")
        return self.complete(system_prompt, messages)
