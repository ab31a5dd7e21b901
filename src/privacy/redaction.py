"""
PHI redaction for case content shown to other users.

The primary path asks the LLM to replace identifiers. When no client is
configured, or the call fails or returns nothing, a regex pass covering
the common Safe Harbor identifiers is used instead.
"""

import logging
import re
from typing import Optional

from src.utils.logging import get_logger
from src.utils.protocols import LLMClientProtocol


# Applied in order; dates run before phones so "01-02-2024" is a date
REDACTION_PATTERNS: list[tuple[re.Pattern, str]] = [
    (re.compile(r"[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}", re.IGNORECASE), "[EMAIL_REDACTED]"),
    (re.compile(r"https?://\S+"), "[URL_REDACTED]"),
    (re.compile(r"\b\d{3}-\d{2}-\d{4}\b"), "[ID_REDACTED]"),
    (re.compile(r"\b(?:MRN|Medical Record|Patient ID|Case)\s*(?:#|:|No\.?)?\s*\w*\d\w*", re.IGNORECASE), "[ID_REDACTED]"),
    (re.compile(r"\b\d{1,2}[/-]\d{1,2}[/-]\d{2,4}\b"), "[DATE_REDACTED]"),
    (re.compile(r"\+?\b\d[\d\s().-]{7,}\d\b"), "[PHONE_REDACTED]"),
    (re.compile(r"\b(?:age|aged)\s*\d{1,3}\b", re.IGNORECASE), "[AGE_REDACTED]"),
    (re.compile(r"\b(?:Mr|Ms|Mrs|Dr|Prof)\.?\s+[A-Z][a-z]+(?:\s+[A-Z][a-z]+)?"), "[NAME_REDACTED]"),
]

# Input beyond this is not sent to the model
MAX_LLM_REDACTION_CHARS = 5000

REDACTION_PROMPT = """Replace all PII/PHI with [REDACTED] including:
- Names (patients, doctors, family)
- Ages, dates, years
- Locations (cities, hospitals, clinics)
- Contact info (emails, phones)
- ID numbers (MRN, SSN)

Keep all clinical information intact.

Text:
{text}

Redacted text:"""


def regex_redact(text: str) -> str:
    """Redact identifiers with pattern matching only."""
    if not text:
        return ""
    redacted = text
    for pattern, replacement in REDACTION_PATTERNS:
        redacted = pattern.sub(replacement, redacted)
    return redacted


class RedactionService:
    """LLM-backed redaction with a regex fallback. `redact()` never raises."""

    SYSTEM_PROMPT = "You are a medical privacy filter specializing in HIPAA compliance."

    def __init__(
        self,
        llm_client: Optional[LLMClientProtocol] = None,
        model: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.llm_client = llm_client
        self.model = model
        self.logger = logger or get_logger("privacy.redaction")

    async def redact(self, text: str) -> str:
        if not text:
            return ""
        if self.llm_client is None:
            return regex_redact(text)

        try:
            content = await self.llm_client.generate(
                prompt=REDACTION_PROMPT.format(text=text[:MAX_LLM_REDACTION_CHARS]),
                temperature=0.1,
                max_tokens=min(1500, int(len(text) * 1.2) + 1),
                model=self.model,
                system_prompt=self.SYSTEM_PROMPT,
            )
        except Exception as e:
            self.logger.error(f"LLM redaction failed, using regex: {e}")
            return regex_redact(text)

        content = (content or "").strip()
        return content or regex_redact(text)
