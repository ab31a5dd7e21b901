"""
Progress tracking models for streamed insight generation.

A streamed run emits one event per completed stage, in a fixed order,
with strictly non-decreasing progress ending at 100.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class ProgressStage(str, Enum):
    """Stages of a streamed pipeline run, in emission order."""

    EXTRACTING = "extracting"
    PARAMETERS = "parameters"
    SEARCHING = "searching"
    GENERATING = "generating"
    COMPLETE = "complete"
    ERROR = "error"


# Progress percentage reported when each stage event fires
STAGE_PROGRESS: dict[ProgressStage, int] = {
    ProgressStage.EXTRACTING: 10,
    ProgressStage.PARAMETERS: 25,
    ProgressStage.SEARCHING: 55,
    ProgressStage.GENERATING: 85,
    ProgressStage.COMPLETE: 100,
}


class StreamEvent(BaseModel):
    """
    Progress event for streaming consumers.

    Attributes:
        step: Stage name
        progress: Overall progress percentage (0-100)
        message: Human-readable status message
        data: Optional partial bundle payload
    """

    step: ProgressStage
    progress: int = Field(..., ge=0, le=100)
    message: str
    data: Optional[dict[str, Any]] = None

    @classmethod
    def for_stage(
        cls,
        stage: ProgressStage,
        message: str,
        data: Optional[dict[str, Any]] = None,
    ) -> "StreamEvent":
        return cls(step=stage, progress=STAGE_PROGRESS[stage], message=message, data=data)

    def to_sse(self) -> str:
        """Format as a Server-Sent Events data frame."""
        return f"data: {self.model_dump_json(exclude_none=True)}\n\n"
