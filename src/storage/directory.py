"""
Platform Directory - read model of platform content.

Holds published cases, professional profiles, communities and
organizations, with vector indexes over case and profile embeddings.
In-memory with JSON file persistence.
"""

import json
import logging
from pathlib import Path
from typing import Optional

from src.models.platform import (
    Community,
    Organization,
    ProfessionalProfile,
    PublishedCase,
)
from src.storage.vector_index import VectorHit, VectorIndex
from src.utils.logging import get_logger


class PlatformDirectory:
    """
    Directory of platform content queried by the retrieval branches.

    Storage file layout:
        {"cases": [...], "professionals": [...],
         "communities": [...], "organizations": [...]}
    """

    def __init__(
        self,
        storage_path: Optional[Path] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the directory.

        Args:
            storage_path: Path to JSON file for persistence (optional)
            logger: Optional injected logger
        """
        self.storage_path = storage_path
        self.logger = logger or get_logger("storage.directory")

        self.cases: dict[str, PublishedCase] = {}
        self.professionals: dict[str, ProfessionalProfile] = {}
        self.communities: dict[str, Community] = {}
        self.organizations: dict[str, Organization] = {}

        self.case_index = VectorIndex()
        self.professional_index = VectorIndex()

        if storage_path and storage_path.exists():
            self._load_from_storage()

    # -------------------------------------------------------------------------
    # Writes (seeding / admin)
    # -------------------------------------------------------------------------

    def add_case(self, case: PublishedCase) -> None:
        self.cases[case.id] = case
        if case.embedding:
            self.case_index.add(case.id, case.embedding)

    def add_professional(self, profile: ProfessionalProfile) -> None:
        self.professionals[profile.id] = profile
        if profile.embedding:
            self.professional_index.add(profile.id, profile.embedding)

    def add_community(self, community: Community) -> None:
        self.communities[community.id] = community

    def add_organization(self, organization: Organization) -> None:
        self.organizations[organization.id] = organization

    def save(self) -> None:
        """Write the directory to its storage file."""
        if not self.storage_path:
            return
        data = {
            "cases": [c.model_dump(mode="json") for c in self.cases.values()],
            "professionals": [p.model_dump(mode="json") for p in self.professionals.values()],
            "communities": [c.model_dump(mode="json") for c in self.communities.values()],
            "organizations": [o.model_dump(mode="json") for o in self.organizations.values()],
        }
        self.storage_path.parent.mkdir(parents=True, exist_ok=True)
        self.storage_path.write_text(json.dumps(data, indent=2))

    # -------------------------------------------------------------------------
    # Published cases
    # -------------------------------------------------------------------------

    def nearest_cases(
        self,
        embedding: list[float],
        exclude_author_id: Optional[str] = None,
        k: int = 5,
    ) -> list[tuple[PublishedCase, float]]:
        """
        Approved, published cases closest to the embedding.

        Cases authored by `exclude_author_id` are never returned.
        """
        def eligible(case_id: str) -> bool:
            case = self.cases.get(case_id)
            return (
                case is not None
                and case.is_approved
                and case.is_published
                and case.author_id != exclude_author_id
            )

        hits = self.case_index.nearest(embedding, k=k, predicate=eligible)
        return [(self.cases[hit.id], hit.similarity) for hit in hits]

    def search_cases_by_text(self, search: str, limit: int) -> list[PublishedCase]:
        """
        Approved, published cases whose title, content or tags match.

        Newest first.
        """
        needle = search.lower().strip()
        if not needle:
            return []
        words = set(needle.split())

        matches = [
            case for case in self.cases.values()
            if case.is_approved and case.is_published and (
                needle in case.title.lower()
                or needle in case.content.lower()
                or words & {t.lower() for t in case.tags}
            )
        ]
        matches.sort(key=lambda c: c.created_at, reverse=True)
        return matches[:limit]

    # -------------------------------------------------------------------------
    # Professionals
    # -------------------------------------------------------------------------

    def verified_professionals(self, limit: int = 20) -> list[ProfessionalProfile]:
        """Verified therapists/educators with at least one specialization."""
        pool = [
            p for p in self.professionals.values()
            if p.is_verified_professional and p.specializations
        ]
        return pool[:limit]

    def nearest_professionals(self, embedding: list[float], k: int = 10) -> list[VectorHit]:
        """Verified professionals closest to the embedding."""
        def eligible(profile_id: str) -> bool:
            profile = self.professionals.get(profile_id)
            return profile is not None and profile.is_verified_professional

        return self.professional_index.nearest(embedding, k=k, predicate=eligible)

    # -------------------------------------------------------------------------
    # Communities and organizations
    # -------------------------------------------------------------------------

    def communities_by_members(self) -> list[Community]:
        return sorted(self.communities.values(), key=lambda c: c.member_count, reverse=True)

    def communities_of(self, organization_id: str) -> list[Community]:
        return [c for c in self.communities.values() if c.organization_id == organization_id]

    def all_organizations(self) -> list[Organization]:
        return list(self.organizations.values())

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def _load_from_storage(self):
        """Load directory from JSON file."""
        try:
            data = json.loads(self.storage_path.read_text())
        except (OSError, json.JSONDecodeError) as e:
            self.logger.error(f"Failed to load platform directory: {e}")
            return

        for item in data.get("cases", []):
            self.add_case(PublishedCase.model_validate(item))
        for item in data.get("professionals", []):
            self.add_professional(ProfessionalProfile.model_validate(item))
        for item in data.get("communities", []):
            self.add_community(Community.model_validate(item))
        for item in data.get("organizations", []):
            self.add_organization(Organization.model_validate(item))

        self.logger.info(
            f"Loaded platform directory: {len(self.cases)} cases, "
            f"{len(self.professionals)} professionals, {len(self.communities)} communities, "
            f"{len(self.organizations)} organizations"
        )
