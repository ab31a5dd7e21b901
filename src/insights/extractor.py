"""
Case Parameter Extractor - structured facts from a free-text case query.

One JSON-mode LLM call pulls age, diagnoses, interventions, challenges and
goals out of the query. Extraction is best-effort: any failure yields empty
parameters so the rest of the pipeline can still run.
"""

import logging
from typing import Optional

from pydantic import ValidationError

from src.models.insights import CaseParameters
from src.utils.logging import get_logger
from src.utils.parsing import parse_json_object
from src.utils.protocols import LLMClientProtocol


EXTRACTION_PROMPT = """Extract clinical case parameters from this query. Return as JSON.

Query: "{query}"

Extract:
- age (if mentioned, as string)
- diagnosis (array of conditions/diagnoses)
- interventions (array of treatments tried)
- challenges (array of difficulties mentioned)
- goals (array of treatment goals)

Return ONLY valid JSON, no markdown. Example:
{{"age": "8", "diagnosis": ["ASD", "ADHD"], "interventions": ["ABA"], "challenges": ["aggression"], "goals": ["communication"]}}"""


class CaseParameterExtractor:
    """Turns a query into CaseParameters. `extract()` never raises."""

    TEMPERATURE = 0.3
    MAX_TOKENS = 500

    def __init__(
        self,
        llm_client: LLMClientProtocol,
        model: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the extractor.

        Args:
            llm_client: Text-generation client
            model: Model override for extraction calls
            logger: Optional injected logger
        """
        self.llm_client = llm_client
        self.model = model
        self.logger = logger or get_logger("insights.extractor")

    async def extract(self, query: str) -> CaseParameters:
        """
        Extract case parameters from a query.

        Args:
            query: Free-text case description

        Returns:
            Parsed CaseParameters, or CaseParameters.empty() on any failure
        """
        try:
            content = await self.llm_client.generate(
                prompt=EXTRACTION_PROMPT.format(query=query),
                json_mode=True,
                max_tokens=self.MAX_TOKENS,
                temperature=self.TEMPERATURE,
                model=self.model,
            )
        except Exception as e:
            self.logger.error(f"Failed to extract case parameters: {e}")
            return CaseParameters.empty()

        data = parse_json_object(content)
        if data is None:
            self.logger.warning("Extraction response was not a JSON object")
            return CaseParameters.empty()

        try:
            params = CaseParameters.model_validate(data)
        except ValidationError as e:
            self.logger.warning(f"Extraction response failed validation: {e}")
            return CaseParameters.empty()

        self.logger.debug(
            f"Extracted {len(params.diagnosis)} diagnoses, "
            f"{len(params.challenges)} challenges, {len(params.goals)} goals"
        )
        return params
