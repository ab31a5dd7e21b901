"""
Plan Generator - week-by-week plans built from a single recommendation.

One JSON-mode LLM call drafts the plan, which is validated and stored
for the requesting user. Unlike the analysis branches there is no
template fallback: a plan the model could not produce is an error.
"""

import logging
from typing import Optional

from pydantic import ValidationError

from src.models.errors import GenerationError, PlanNotFoundError
from src.models.insights import Recommendation
from src.models.plans import DEFAULT_PLAN_TITLE, StructuredPlan
from src.storage.plan_store import PlanStore
from src.utils.logging import get_logger
from src.utils.parsing import parse_json_object
from src.utils.protocols import LLMClientProtocol


PLAN_PROMPT = """Create a detailed, week-by-week implementation plan for this recommendation:
{recommendation}

Return as JSON with structure:
{{
  "title": "Plan Title",
  "weeks": [
    {{"week": 1, "focus": "...", "activities": ["..."], "goals": "..."}}
  ]
}}

Return ONLY valid JSON, no markdown."""


class PlanGenerator:
    """Drafts, stores and returns structured plans."""

    TEMPERATURE = 0.7
    MAX_TOKENS = 4000

    def __init__(
        self,
        llm_client: LLMClientProtocol,
        store: PlanStore,
        model: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.llm_client = llm_client
        self.store = store
        self.model = model
        self.logger = logger or get_logger("insights.plans")

    async def create_plan(self, recommendation: Recommendation, user_id: str) -> StructuredPlan:
        """
        Draft a plan for a recommendation and store it.

        Args:
            recommendation: The recommendation to plan around
            user_id: Owner of the new plan

        Returns:
            The stored plan

        Raises:
            GenerationError: If the model failed or returned no usable plan
        """
        prompt = PLAN_PROMPT.format(recommendation=recommendation.model_dump_json(indent=2))
        try:
            content = await self.llm_client.generate(
                prompt=prompt,
                json_mode=True,
                max_tokens=self.MAX_TOKENS,
                temperature=self.TEMPERATURE,
                model=self.model,
            )
        except Exception as e:
            self.logger.error(f"Error creating structured plan: {e}")
            raise GenerationError("Failed to generate plan") from e

        data = parse_json_object(content)
        if data is None:
            raise GenerationError("Plan response was not a JSON object")

        try:
            plan = StructuredPlan(
                user_id=user_id,
                title=data.get("title") or DEFAULT_PLAN_TITLE,
                recommendation_title=recommendation.title,
                weeks=data.get("weeks") or [],
            )
        except ValidationError as e:
            self.logger.warning(f"Plan response failed validation: {e}")
            raise GenerationError("Plan response failed validation") from e

        await self.store.create(plan)
        self.logger.info(f"Created {len(plan.weeks)}-week plan {plan.id} for user {user_id}")
        return plan

    async def get_plan(self, plan_id: str, user_id: str) -> StructuredPlan:
        """
        Raises:
            PlanNotFoundError: If the plan is missing or not the user's
        """
        plan = await self.store.find(plan_id)
        if plan is None or plan.user_id != user_id:
            raise PlanNotFoundError(plan_id)
        return plan
