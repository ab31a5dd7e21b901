"""
Community / Organization Matcher - peer groups relevant to the case.

Matching is tiered. A tier runs only when every earlier tier found
nothing:
1. Tag match between case keywords and community tags
2. Keyword substring in community name or description
3. Popularity fallback

Organizations are matched through the communities they own.
"""

import logging
from typing import Optional

from src.models.insights import CaseParameters, CommunityMatch, OrganizationMatch
from src.models.platform import Community, Organization
from src.storage.directory import PlatformDirectory
from src.utils.logging import get_logger


MAX_MATCHED = 5
MAX_FALLBACK = 3

GENERAL_SUPPORT_TAGS = {"support", "general", "parenting"}

POPULAR_REASON = "Popular Community"
RELEVANT_TOPIC_REASON = "Relevant topic"
GENERAL_SUPPORT_REASON = "General Support Community"
MOST_ACTIVE_REASON = "Most Active Organization"


def matching_tag(community: Community, keywords: list[str]) -> Optional[str]:
    """First community tag that equals one of the keywords, ignoring case."""
    for tag in community.tags:
        if tag.lower() in keywords:
            return tag
    return None


def mentions_keyword(community: Community, keywords: list[str]) -> bool:
    """Whether a keyword appears in the community's name or description."""
    text = f"{community.name} {community.description or ''}".lower()
    return any(keyword in text for keyword in keywords)


def _community_match(community: Community, reason: str) -> CommunityMatch:
    return CommunityMatch(
        id=community.id,
        name=community.name,
        slug=community.slug,
        description=community.description or "",
        member_count=community.member_count,
        tags=community.tags,
        match_reason=reason,
    )


class CommunityMatcher:
    """Finds communities for a case."""

    def __init__(
        self,
        directory: PlatformDirectory,
        logger: Optional[logging.Logger] = None,
    ):
        self.directory = directory
        self.logger = logger or get_logger("insights.communities")

    async def match(self, params: CaseParameters) -> list[CommunityMatch]:
        """
        Match communities using diagnosis and challenge keywords.

        Returns:
            Up to five matched communities, or up to three fallback ones
        """
        keywords = params.keywords(include_goals=False)
        by_members = self.directory.communities_by_members()

        if not keywords:
            general = [
                c for c in by_members
                if GENERAL_SUPPORT_TAGS & {t.lower() for t in c.tags}
            ]
            if general:
                return [_community_match(c, GENERAL_SUPPORT_REASON) for c in general[:MAX_FALLBACK]]
            return self._popular(by_members)

        tagged = []
        for community in by_members:
            tag = matching_tag(community, keywords)
            if tag is not None:
                tagged.append(_community_match(community, f"Matches {tag} interest"))
        if tagged:
            return tagged[:MAX_MATCHED]

        topical = [
            _community_match(c, RELEVANT_TOPIC_REASON)
            for c in by_members
            if mentions_keyword(c, keywords)
        ]
        if topical:
            return topical[:MAX_MATCHED]

        self.logger.debug("No community matched the case keywords, using popular communities")
        return self._popular(by_members)

    @staticmethod
    def _popular(by_members: list[Community]) -> list[CommunityMatch]:
        return [_community_match(c, POPULAR_REASON) for c in by_members[:MAX_FALLBACK]]


class OrganizationMatcher:
    """Finds organizations whose communities fit the case."""

    def __init__(
        self,
        directory: PlatformDirectory,
        logger: Optional[logging.Logger] = None,
    ):
        self.directory = directory
        self.logger = logger or get_logger("insights.organizations")

    async def match(self, params: CaseParameters) -> list[OrganizationMatch]:
        """
        Match organizations using diagnosis, challenge and goal keywords.

        Returns:
            Up to five matched organizations, or the three with the most
            communities
        """
        keywords = params.keywords(include_goals=True)
        organizations = self.directory.all_organizations()
        owned = {org.id: self.directory.communities_of(org.id) for org in organizations}

        if keywords:
            tagged = []
            for org in organizations:
                for community in owned[org.id]:
                    tag = matching_tag(community, keywords)
                    if tag is not None:
                        reason = f"Hosts {community.name} ({tag} interest)"
                        tagged.append(self._to_match(org, owned[org.id], reason))
                        break
            if tagged:
                return tagged[:MAX_MATCHED]

            topical = []
            for org in organizations:
                for community in owned[org.id]:
                    if mentions_keyword(community, keywords):
                        reason = f"Hosts {community.name}"
                        topical.append(self._to_match(org, owned[org.id], reason))
                        break
            if topical:
                return topical[:MAX_MATCHED]

        most_active = sorted(organizations, key=lambda o: len(owned[o.id]), reverse=True)
        return [
            self._to_match(org, owned[org.id], MOST_ACTIVE_REASON)
            for org in most_active[:MAX_FALLBACK]
        ]

    @staticmethod
    def _to_match(
        org: Organization,
        communities: list[Community],
        reason: str,
    ) -> OrganizationMatch:
        return OrganizationMatch(
            id=org.id,
            name=org.name,
            slug=org.slug,
            description=org.description,
            logo=org.logo,
            website=org.website,
            community_count=len(communities),
            member_count=org.member_count,
            match_reason=reason,
        )
