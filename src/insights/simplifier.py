"""
Content Simplifier - plain-language rewrites of clinical text for parents.

Simplification is best-effort. When the model is unavailable or returns
nothing, the original text comes back marked as not simplified.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from src.models.errors import InputValidationError
from src.utils.logging import get_logger
from src.utils.protocols import LLMClientProtocol


SIMPLIFY_SYSTEM_PROMPT = (
    "Simplify this medical text for parents. "
    "Use simple words, short sentences, and avoid jargon."
)

MAX_CONTENT_CHARS = 4000


@dataclass(frozen=True)
class SimplifiedText:
    text: str
    simplified: bool


class ContentSimplifier:
    """Rewrites text with a single plain-text LLM call."""

    TEMPERATURE = 0.7
    MAX_TOKENS = 200

    def __init__(
        self,
        llm_client: LLMClientProtocol,
        model: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.llm_client = llm_client
        self.model = model
        self.logger = logger or get_logger("insights.simplifier")

    async def simplify(self, content: str) -> SimplifiedText:
        """
        Rewrite content in plain language.

        Raises:
            InputValidationError: If the content is empty or too long
        """
        text = (content or "").strip()
        if not text:
            raise InputValidationError("Content to simplify cannot be empty")
        if len(text) > MAX_CONTENT_CHARS:
            raise InputValidationError(
                f"Content to simplify must be at most {MAX_CONTENT_CHARS} characters"
            )

        try:
            result = await self.llm_client.generate(
                prompt=text,
                system_prompt=SIMPLIFY_SYSTEM_PROMPT,
                max_tokens=self.MAX_TOKENS,
                temperature=self.TEMPERATURE,
                model=self.model,
            )
        except Exception as e:
            self.logger.warning(f"Simplification failed, returning original text: {e}")
            return SimplifiedText(text=text, simplified=False)

        result = (result or "").strip()
        if not result:
            return SimplifiedText(text=text, simplified=False)
        return SimplifiedText(text=result, simplified=True)
