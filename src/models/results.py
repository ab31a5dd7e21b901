"""
Branch result wrapper.

Each retrieval/generation branch produces a BranchResult instead of
raising. The orchestrator converts failures into the branch's documented
fallback value in one place.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Generic, Optional, TypeVar


T = TypeVar("T")


class Branch(str, Enum):
    """The independent operations fanned out by the orchestrator."""

    SIMILAR_CASES = "similar_cases"
    LITERATURE = "literature"
    EXPERTS = "experts"
    COMMUNITIES = "communities"
    ORGANIZATIONS = "organizations"
    RECOMMENDATIONS = "recommendations"


class BranchErrorKind(str, Enum):
    TIMEOUT = "timeout"
    FAILURE = "failure"


@dataclass(frozen=True)
class BranchError:
    """Why a branch produced no primary result."""

    branch: Branch
    kind: BranchErrorKind
    message: str


@dataclass(frozen=True)
class BranchResult(Generic[T]):
    """Either a value or a BranchError, never both."""

    value: Optional[T] = None
    error: Optional[BranchError] = None

    @classmethod
    def success(cls, value: T) -> "BranchResult[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: BranchError) -> "BranchResult[T]":
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap_or(self, fallback: Callable[[], T]) -> T:
        """Return the value, or build the fallback if the branch failed."""
        if self.error is not None:
            return fallback()
        return self.value
