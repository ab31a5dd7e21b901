"""
Platform records read by the pipeline.

These mirror the rows the retrieval branches query: published cases,
verified professional profiles, communities and organizations. The
pipeline never writes them.
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field


class PublishedCase(BaseModel):
    """A published community post describing a case."""

    id: str
    author_id: str
    author_name: Optional[str] = None
    author_role: str = "USER"
    author_years_of_experience: Optional[int] = None
    title: str = ""
    content: str = ""
    tags: list[str] = Field(default_factory=list)
    moderation_status: str = "APPROVED"
    is_published: bool = True
    community_id: Optional[str] = None
    upvotes: int = 0
    view_count: int = 0
    comment_count: int = 0
    embedding: list[float] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_approved(self) -> bool:
        return self.moderation_status == "APPROVED"


class ProfessionalProfile(BaseModel):
    """A therapist or educator registered on the platform."""

    id: str
    name: Optional[str] = None
    role: str = "THERAPIST"
    verification_status: str = "VERIFIED"
    specializations: list[str] = Field(default_factory=list)
    years_of_experience: Optional[int] = None
    trust_score: float = 0.0
    organization: Optional[str] = None
    post_count: int = 0
    comment_count: int = 0
    embedding: list[float] = Field(default_factory=list)

    @property
    def is_verified_professional(self) -> bool:
        return (
            self.role in ("THERAPIST", "EDUCATOR")
            and self.verification_status == "VERIFIED"
        )


class Community(BaseModel):
    """A peer community."""

    id: str
    name: str
    slug: str
    description: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    member_count: int = 0
    organization_id: Optional[str] = None


class Organization(BaseModel):
    """An organization that owns communities."""

    id: str
    name: str
    slug: str
    description: Optional[str] = None
    logo: Optional[str] = None
    website: Optional[str] = None
    member_count: int = 0
