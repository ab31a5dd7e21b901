"""
OpenAI text-generation client.

Provides a single `generate()` entry point for plain-text and JSON-mode
completions. Rate-limit and server errors are retried with exponential
backoff; other client errors are raised immediately.
"""

import logging
import os
from typing import Optional

import openai
from openai import AsyncOpenAI
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential

from src.models.errors import GenerationError
from src.utils.logging import get_logger


def is_retryable_error(error: BaseException) -> bool:
    """
    Whether a provider error is worth retrying.

    429s, 5xx responses, connection failures and timeouts are transient.
    Any other 4xx means the request itself is wrong.
    """
    if isinstance(error, (openai.RateLimitError, openai.APIConnectionError)):
        return True
    if isinstance(error, openai.APIStatusError):
        return error.status_code >= 500
    return False


class LLMClient:
    """
    Async client for the OpenAI chat completions API.

    Any OpenAI-compatible endpoint can be used by setting `base_url`.
    """

    DEFAULT_MODEL = "gpt-4o-mini"

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        default_model: Optional[str] = None,
        timeout: float = 30.0,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the LLM client.

        Args:
            api_key: OpenAI API key. If not provided, reads from OPENAI_API_KEY env var.
            base_url: Optional OpenAI-compatible base URL.
            default_model: Model used when a call does not name one.
            timeout: Per-request timeout in seconds.
            logger: Optional injected logger.
        """
        self.api_key = api_key or os.getenv("OPENAI_API_KEY")
        if not self.api_key:
            raise ValueError(
                "OpenAI API key required. Set OPENAI_API_KEY environment variable "
                "or pass api_key parameter."
            )

        self.default_model = default_model or self.DEFAULT_MODEL
        self.logger = logger or get_logger("llm.client")

        # Retries are handled by tenacity, not the SDK
        self.client = AsyncOpenAI(
            api_key=self.api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=0,
        )

    @retry(
        retry=retry_if_exception(is_retryable_error),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=8),
        reraise=True,
    )
    async def generate(
        self,
        prompt: str,
        json_mode: bool = False,
        max_tokens: Optional[int] = None,
        temperature: float = 0.7,
        model: Optional[str] = None,
        system_prompt: Optional[str] = None,
    ) -> str:
        """
        Generate a completion for a single user prompt.

        Args:
            prompt: User message content
            json_mode: Request a JSON object response
            max_tokens: Maximum tokens to generate (optional)
            temperature: Sampling temperature (0.0 to 2.0)
            model: Model identifier, defaults to the client's default model
            system_prompt: Optional system message

        Returns:
            The generated text

        Raises:
            GenerationError: If the provider returned an empty completion
            openai.OpenAIError: On non-retryable or exhausted provider errors
        """
        model = model or self.default_model

        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        kwargs = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
        }
        if max_tokens:
            kwargs["max_tokens"] = max_tokens
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        response = await self.client.chat.completions.create(**kwargs)

        if not response.choices:
            raise GenerationError(f"Empty completion from {model}")

        return response.choices[0].message.content or ""


class MockLLMClient:
    """
    Mock LLM client for testing and offline runs.

    Returns predefined responses without making actual API calls.
    """

    def __init__(
        self,
        responses: Optional[dict[str, str]] = None,
        default_response: str = "{}",
        error: Optional[Exception] = None,
    ):
        """
        Initialize mock client.

        Args:
            responses: Optional dict mapping a prompt substring to response content.
                      The first key found in the prompt wins.
            default_response: Content returned when no key matches.
            error: If set, every call raises this exception.
        """
        self.responses = responses or {}
        self.default_response = default_response
        self.error = error
        self.calls: list[dict] = []

    async def generate(
        self,
        prompt: str,
        json_mode: bool = False,
        max_tokens: Optional[int] = None,
        temperature: float = 0.7,
        model: Optional[str] = None,
        system_prompt: Optional[str] = None,
    ) -> str:
        """Return a mock response."""
        self.calls.append({
            "prompt": prompt,
            "json_mode": json_mode,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "model": model,
            "system_prompt": system_prompt,
        })

        if self.error is not None:
            raise self.error

        for key, content in self.responses.items():
            if key in prompt:
                return content
        return self.default_response


class DisabledLLMClient:
    """
    Stand-in used when no API key is configured.

    Every call raises GenerationError, so each LLM-backed step takes its
    fallback path.
    """

    def __init__(self, reason: str = "No OpenAI API key configured"):
        self.reason = reason

    async def generate(
        self,
        prompt: str,
        json_mode: bool = False,
        max_tokens: Optional[int] = None,
        temperature: float = 0.7,
        model: Optional[str] = None,
        system_prompt: Optional[str] = None,
    ) -> str:
        raise GenerationError(self.reason)
