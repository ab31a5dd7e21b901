"""
Recommendation Generator - actionable next steps for the case.

A single JSON-mode LLM call produces primary recommendations and
alternatives. Items are validated one by one and invalid ones dropped.
When nothing usable comes back, a fixed template is returned instead.
The template goes through the same models, so callers cannot tell the
two paths apart by shape.
"""

import logging
from typing import Any, Optional

from pydantic import ValidationError

from src.models.insights import CaseParameters, Recommendation, RecommendationSet
from src.utils.logging import get_logger
from src.utils.parsing import parse_json_object
from src.utils.protocols import LLMClientProtocol


RECOMMENDATION_PROMPT = """You are an expert clinical advisor.

Case Details:
- Query: {query}
- Age: {age}
- Diagnoses: {diagnosis}
- Interventions Tried: {interventions}
- Current Challenges: {challenges}
- Goals: {goals}

Generate 3-5 detailed, actionable recommendations in this EXACT JSON format:
{{
  "recommendations": [
    {{
      "title": "Brief recommendation title (60 chars max)",
      "description": "Detailed 150-250 word explanation covering what it is, how it works, why relevant, and expected outcomes",
      "action_steps": ["Detailed step 1", "Detailed step 2", "Detailed step 3"],
      "priority": "high|medium|low",
      "timeline": "Expected timeline for results",
      "availability": {{"region": true, "telehealth": true, "languages": ["English"]}},
      "cost_estimate": "Cost range or 'Free' or 'Varies'"
    }}
  ],
  "alternatives": [
    {{
      "title": "Alternative approach title",
      "description": "Brief description of this alternative",
      "action_steps": ["Step 1", "Step 2"],
      "priority": "medium|low",
      "timeline": "Timeline estimate",
      "availability": {{"region": true, "telehealth": false, "languages": ["English"]}},
      "cost_estimate": "Cost estimate"
    }}
  ]
}}

Requirements:
- Evidence-based and culturally appropriate
- State whether each option is available locally and via telehealth
- Consider accessibility for lower-income families

Return ONLY valid JSON, no markdown."""


FALLBACK_RECOMMENDATIONS: list[dict[str, Any]] = [
    {
        "title": "Comprehensive Multidisciplinary Assessment",
        "description": (
            "Schedule a complete evaluation with a developmental pediatrician, speech "
            "therapist, and occupational therapist. This assessment identifies specific "
            "areas of need and creates a baseline for measuring progress."
        ),
        "action_steps": [
            "Contact a developmental pediatrician for initial consultation",
            "Request referrals to speech-language pathologist and occupational therapist",
            "Gather all previous medical records and intervention reports",
        ],
        "priority": "high",
        "timeline": "2-4 weeks",
        "availability": {"region": True, "telehealth": True, "languages": ["English"]},
        "cost_estimate": "Varies by provider",
    },
    {
        "title": "Evidence-Based Behavioral Intervention Program",
        "description": (
            "Implement a structured behavioral intervention program tailored to the "
            "child's needs using Applied Behavior Analysis principles combined with "
            "naturalistic teaching strategies."
        ),
        "action_steps": [
            "Find a certified ABA therapist or behavioral consultant",
            "Start with 10-15 hours per week of therapy",
            "Include parent training sessions for consistency at home",
        ],
        "priority": "high",
        "timeline": "8-12 weeks for initial improvements",
        "availability": {"region": True, "telehealth": True, "languages": ["English"]},
        "cost_estimate": "Per session, varies by provider",
    },
    {
        "title": "Augmentative and Alternative Communication Support",
        "description": (
            "Introduce a communication system such as picture exchange or a speech "
            "generating device alongside speech therapy, so the child has a reliable "
            "way to express needs while spoken language develops."
        ),
        "action_steps": [
            "Ask the speech-language pathologist for an AAC evaluation",
            "Start with a small core vocabulary used across home and school",
            "Model the system during daily routines",
        ],
        "priority": "medium",
        "timeline": "4-8 weeks to establish consistent use",
        "availability": {"region": True, "telehealth": True, "languages": ["English"]},
        "cost_estimate": "Free (low-tech) to device cost",
    },
]

FALLBACK_ALTERNATIVES: list[dict[str, Any]] = [
    {
        "title": "Parent-Mediated Early Intervention",
        "description": (
            "Training parents to deliver therapeutic interventions during daily routines. "
            "Research shows this can be highly effective and more affordable."
        ),
        "action_steps": [
            "Enroll in parent training workshop",
            "Practice strategies during daily activities",
        ],
        "priority": "medium",
        "timeline": "3-6 months",
        "availability": {"region": True, "telehealth": True, "languages": ["English"]},
        "cost_estimate": "Workshop series fee, varies",
    },
]


def validate_items(items: Any, logger: Optional[logging.Logger] = None) -> list[Recommendation]:
    """Validate raw items one by one, dropping the invalid ones."""
    if not isinstance(items, list):
        return []
    valid = []
    for item in items:
        try:
            valid.append(Recommendation.model_validate(item))
        except ValidationError as e:
            if logger:
                logger.debug(f"Dropping invalid recommendation: {e}")
    return valid


def fallback_recommendations() -> RecommendationSet:
    """The fixed template used when generation yields nothing usable."""
    return RecommendationSet(
        recommendations=validate_items(FALLBACK_RECOMMENDATIONS),
        alternatives=validate_items(FALLBACK_ALTERNATIVES),
        is_fallback=True,
    )


class RecommendationGenerator:
    """Generates recommendations. `generate()` never raises."""

    TEMPERATURE = 0.7
    MAX_TOKENS = 2500

    def __init__(
        self,
        llm_client: LLMClientProtocol,
        model: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.llm_client = llm_client
        self.model = model
        self.logger = logger or get_logger("insights.recommendations")

    async def generate(self, query: str, params: CaseParameters) -> RecommendationSet:
        """
        Generate recommendations and alternatives for the case.

        Args:
            query: The query text
            params: Extracted case parameters

        Returns:
            Generated set, or the fallback template
        """
        prompt = RECOMMENDATION_PROMPT.format(
            query=query,
            age=params.age or "Not specified",
            diagnosis=", ".join(params.diagnosis) or "Not specified",
            interventions=", ".join(params.interventions) or "None reported",
            challenges=", ".join(params.challenges) or "Not specified",
            goals=", ".join(params.goals) or "Not specified",
        )

        try:
            content = await self.llm_client.generate(
                prompt=prompt,
                json_mode=True,
                max_tokens=self.MAX_TOKENS,
                temperature=self.TEMPERATURE,
                model=self.model,
            )
        except Exception as e:
            self.logger.error(f"Failed to generate recommendations: {e}")
            return fallback_recommendations()

        data = parse_json_object(content)
        if data is None:
            self.logger.warning("Recommendation response was not a JSON object, using fallback")
            return fallback_recommendations()

        recommendations = validate_items(data.get("recommendations"), self.logger)
        if not recommendations:
            self.logger.warning("No valid recommendations generated, using fallback")
            return fallback_recommendations()

        return RecommendationSet(
            recommendations=recommendations,
            alternatives=validate_items(data.get("alternatives"), self.logger),
        )
