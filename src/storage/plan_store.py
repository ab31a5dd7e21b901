"""
Plan Store - persistence for structured plans.

Same write-through JSON layout as the conversation store: the new state
is written to disk first and only then becomes visible in memory.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Optional

from src.models.plans import StructuredPlan
from src.utils.logging import get_logger


class PlanStore:
    """
    JSON-backed plan store.

    Storage file layout:
        {"plans": {id: {...}}}
    """

    def __init__(
        self,
        storage_path: Optional[Path] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.storage_path = storage_path
        self.logger = logger or get_logger("storage.plans")
        self._plans: dict[str, StructuredPlan] = {}
        self._lock = asyncio.Lock()

        if storage_path and storage_path.exists():
            self._load_from_storage()

    async def create(self, plan: StructuredPlan) -> StructuredPlan:
        async with self._lock:
            plans = {**self._plans, plan.id: plan}
            self._save_to_storage(plans)
            self._plans = plans
        self.logger.debug(f"Created plan {plan.id}")
        return plan

    async def find(self, plan_id: str) -> Optional[StructuredPlan]:
        return self._plans.get(plan_id)

    def _load_from_storage(self):
        data = json.loads(self.storage_path.read_text())
        for plan_id, plan_data in data.get("plans", {}).items():
            self._plans[plan_id] = StructuredPlan.model_validate(plan_data)
        self.logger.info(f"Loaded {len(self._plans)} plans from storage")

    def _save_to_storage(self, plans: dict[str, StructuredPlan]):
        if not self.storage_path:
            return
        data = {"plans": {plan_id: p.model_dump(mode="json") for plan_id, p in plans.items()}}
        self.storage_path.parent.mkdir(parents=True, exist_ok=True)
        self.storage_path.write_text(json.dumps(data, indent=2))
