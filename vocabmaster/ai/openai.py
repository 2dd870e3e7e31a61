"""OpenAI chat completions provider."""

import os
from typing import Optional

import openai

from vocabmaster.ai.base import AIProvider

DEFAULT_MODEL = "gpt-4o-mini"


class OpenAIProvider(AIProvider):
    """OpenAI GPT API provider."""

    name = "openai"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = DEFAULT_MODEL,
    ):
        self.api_key = api_key or os.environ.get("OPENAI_API_KEY")
        self.model = model
        self._client = None

    def _get_client(self) -> openai.OpenAI:
        """Create the client on first use."""
        if self._client is None:
            self._client = openai.OpenAI(api_key=self.api_key)
        return self._client

    def is_available(self) -> bool:
        return bool(self.api_key)

    def generate(
        self,
        prompt: str,
        system: Optional[str] = None,
        max_tokens: int = 2000,
    ) -> str:
        if not self.is_available():
            raise ValueError("OpenAI API key not configured")

        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        response = self._get_client().chat.completions.create(
            model=self.model,
            messages=messages,
            max_tokens=max_tokens,
        )
        return response.choices[0].message.content or ""
