"""
Usage Log - analytics events for generated insights.

Events are appended as JSON lines. Logging usage must never break a
request, so write failures are logged and swallowed.
"""

import json
import logging
from collections import deque
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from src.models.insights import InsightBundle
from src.utils.logging import get_logger


INSIGHTS_GENERATED_EVENT = "clinical_insights_generated"

# Queries are stored truncated
MAX_LOGGED_QUERY_CHARS = 200

# Only the most recent events are kept in memory
MAX_RECENT_EVENTS = 100


class UsageLog:
    """Append-only analytics sink."""

    def __init__(
        self,
        storage_path: Optional[Path] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.storage_path = storage_path
        self.logger = logger or get_logger("storage.usage")
        self.events: deque[dict[str, Any]] = deque(maxlen=MAX_RECENT_EVENTS)

    async def record_insights(self, user_id: str, query: str, bundle: InsightBundle) -> None:
        """Record one insight generation run."""
        await self.record(
            user_id,
            INSIGHTS_GENERATED_EVENT,
            {
                "query": query[:MAX_LOGGED_QUERY_CHARS],
                "diagnoses": bundle.case_analysis.diagnosis,
                "articles_found": len(bundle.articles),
                "cases_found": len(bundle.similar_cases),
                "confidence": bundle.confidence,
            },
        )

    async def record(self, user_id: str, event: str, metadata: dict[str, Any]) -> None:
        entry = {
            "user_id": user_id,
            "event": event,
            "metadata": metadata,
            "created_at": datetime.now(timezone.utc).isoformat(),
        }
        self.events.append(entry)

        if not self.storage_path:
            return
        try:
            self.storage_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.storage_path, "a") as f:
                f.write(json.dumps(entry) + "\n")
        except (OSError, TypeError, ValueError) as e:
            self.logger.error(f"Failed to log analytics: {e}")
