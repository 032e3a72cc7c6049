"""
Text-completion service boundary.

The generators only need ``complete(prompt, options) -> text``. The OpenAI
implementation uses the official async SDK and maps its failures onto the
CompletionError family so callers can tell rate limits and timeouts apart
from unusable output.
"""

from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

import openai

from ..exceptions import (
    CompletionError,
    CompletionRateLimitError,
    CompletionTimeoutError,
    MalformedResponseError,
)

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful assistant that provides detailed and structured responses."
)


@dataclass
class CompletionOptions:
    """Per-call generation settings."""

    max_tokens: int = 4000
    temperature: float = 0.7
    response_format: str | None = "json_object"


class CompletionService(ABC):
    """Opaque text-completion provider."""

    @abstractmethod
    async def complete(self, prompt: str, options: CompletionOptions | None = None) -> str:
        """Return the raw completion text for ``prompt``.

        Raises:
            CompletionRateLimitError: Provider throttled the call
            CompletionTimeoutError: Provider did not answer in time
            CompletionError: Any other provider failure
            MalformedResponseError: Provider answered with no content
        """
        ...

    async def close(self) -> None:
        """Release client resources."""
        return None


class OpenAICompletionService(CompletionService):
    """Chat-completions backed by the OpenAI API."""

    provider = "openai"

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        base_url: str | None = None,
        system_prompt: str = DEFAULT_SYSTEM_PROMPT,
        timeout: float | None = 60.0,
    ):
        """
        Initialize the completion service.

        Args:
            api_key: OpenAI API key
            model: Chat model name
            base_url: Optional base URL for compatible endpoints
            system_prompt: System message sent with every prompt
            timeout: Request timeout in seconds
        """
        self.api_key = api_key
        self.model = model
        self.base_url = base_url
        self.system_prompt = system_prompt
        self.timeout = timeout
        self._client: openai.AsyncOpenAI | None = None

        logger.info(f"OpenAI completion service initialized: model={model}")

    @classmethod
    def from_env(cls) -> OpenAICompletionService:
        """
        Create the service from environment variables.

        Required env vars:
            OPENAI_API_KEY: OpenAI API key

        Optional env vars:
            OPENAI_COMPLETION_MODEL: Model name (default: gpt-4o-mini)
            OPENAI_BASE_URL: Custom base URL
        """
        api_key = os.environ.get("OPENAI_API_KEY")
        if not api_key:
            raise ValueError("OPENAI_API_KEY environment variable required")

        return cls(
            api_key=api_key,
            model=os.environ.get("OPENAI_COMPLETION_MODEL", "gpt-4o-mini"),
            base_url=os.environ.get("OPENAI_BASE_URL"),
        )

    def _ensure_client(self) -> openai.AsyncOpenAI:
        """Lazy initialize the OpenAI client."""
        if self._client is None:
            self._client = openai.AsyncOpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                timeout=self.timeout,
            )
        return self._client

    async def complete(self, prompt: str, options: CompletionOptions | None = None) -> str:
        options = options or CompletionOptions()
        client = self._ensure_client()

        request: dict[str, Any] = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": self.system_prompt},
                {"role": "user", "content": prompt},
            ],
            "temperature": options.temperature,
            "max_tokens": options.max_tokens,
        }
        if options.response_format:
            request["response_format"] = {"type": options.response_format}

        try:
            completion = await client.chat.completions.create(**request)
        except openai.RateLimitError as e:
            raise CompletionRateLimitError(self.provider, "rate limited", e) from e
        except openai.APITimeoutError as e:
            raise CompletionTimeoutError(self.provider, "request timed out", e) from e
        except openai.APIError as e:
            raise CompletionError(self.provider, str(e), e) from e

        content = completion.choices[0].message.content if completion.choices else None
        if not content:
            raise MalformedResponseError("empty completion")

        logger.debug(f"Completion received (len={len(content)})")
        return content

    async def close(self) -> None:
        """Close the OpenAI client."""
        if self._client:
            await self._client.close()
            self._client = None
