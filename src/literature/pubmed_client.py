"""
PubMed client for literature retrieval.

Uses NCBI E-utilities API to search (esearch) and fetch (efetch) articles.
API documentation: https://www.ncbi.nlm.nih.gov/books/NBK25500/
"""

import asyncio
import logging
import os
import re
import xml.etree.ElementTree as ET
from typing import Optional

import httpx

from src.models.errors import LiteratureRepositoryError
from src.models.literature import PubMedArticle, PubMedSearchResult
from src.utils.logging import get_logger


class PubMedClient:
    """
    Client for interacting with PubMed via NCBI E-utilities.

    Rate limits:
    - Without API key: 3 requests/second
    - With API key: 10 requests/second

    Network and parse failures raise LiteratureRepositoryError so callers
    can tell "no results" apart from "search failed".
    """

    BASE_URL = "https://eutils.ncbi.nlm.nih.gov/entrez/eutils"

    def __init__(
        self,
        api_key: Optional[str] = None,
        timeout: float = 10.0,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the PubMed client.

        Args:
            api_key: NCBI API key for higher rate limits (optional)
            timeout: HTTP request timeout in seconds
            logger: Optional injected logger
        """
        self.api_key = api_key or os.getenv("NCBI_API_KEY")
        self.timeout = timeout
        self.logger = logger or get_logger("literature.pubmed")
        self._request_delay = 0.1 if self.api_key else 0.35  # Respect rate limits
        self._last_request_time = 0.0
        self._rate_lock = asyncio.Lock()

    async def _rate_limit(self):
        """Enforce rate limiting between requests."""
        async with self._rate_lock:
            loop = asyncio.get_running_loop()
            elapsed = loop.time() - self._last_request_time
            if elapsed < self._request_delay:
                await asyncio.sleep(self._request_delay - elapsed)
            self._last_request_time = loop.time()

    def _build_params(self, **kwargs) -> dict:
        """Build request parameters with API key if available."""
        params = {"retmode": "xml", "db": "pubmed"}
        params.update(kwargs)
        if self.api_key:
            params["api_key"] = self.api_key
        return params

    async def _get(self, endpoint: str, params: dict) -> str:
        await self._rate_limit()
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(f"{self.BASE_URL}/{endpoint}", params=params)
                response.raise_for_status()
                return response.text
        except httpx.HTTPError as e:
            raise LiteratureRepositoryError(f"PubMed {endpoint} request failed: {e}") from e

    async def search(
        self,
        query: str,
        max_results: int = 10,
        sort: str = "relevance",
    ) -> PubMedSearchResult:
        """
        Search PubMed for articles matching a query.

        Args:
            query: Search query string
            max_results: Maximum number of results to return
            sort: Sort order understood by esearch

        Returns:
            PubMedSearchResult with matching PMIDs

        Raises:
            LiteratureRepositoryError: On HTTP or XML errors
        """
        params = self._build_params(term=query, retmax=max_results, sort=sort)
        text = await self._get("esearch.fcgi", params)

        try:
            root = ET.fromstring(text)
        except ET.ParseError as e:
            raise LiteratureRepositoryError(f"Malformed esearch response: {e}") from e

        count_elem = root.find(".//Count")
        total_count = int(count_elem.text) if count_elem is not None and count_elem.text else 0

        pmids = [
            id_elem.text.strip()
            for id_elem in root.findall(".//IdList/Id")
            if id_elem.text and id_elem.text.strip()
        ]

        return PubMedSearchResult(
            found=len(pmids) > 0,
            pmids=pmids[:max_results],
            total_count=total_count,
            query_used=query,
        )

    async def fetch_multiple(self, pmids: list[str]) -> list[PubMedArticle]:
        """
        Fetch multiple articles by PMID.

        Args:
            pmids: List of PubMed IDs to fetch

        Returns:
            List of PubMedArticle objects, in response order

        Raises:
            LiteratureRepositoryError: On HTTP or XML errors
        """
        if not pmids:
            return []

        params = self._build_params(id=",".join(pmids), rettype="abstract")
        text = await self._get("efetch.fcgi", params)
        return self.parse_articles_xml(text)

    def parse_articles_xml(self, xml_text: str) -> list[PubMedArticle]:
        """Parse a PubmedArticleSet document."""
        try:
            root = ET.fromstring(xml_text)
        except ET.ParseError as e:
            raise LiteratureRepositoryError(f"Malformed efetch response: {e}") from e

        articles = []
        for article_elem in root.findall(".//PubmedArticle"):
            pmid_elem = article_elem.find(".//MedlineCitation/PMID")
            if pmid_elem is None or not pmid_elem.text:
                continue
            article = self._extract_article(article_elem, pmid_elem.text.strip())
            if article:
                articles.append(article)
        return articles

    def _extract_article(self, article_elem: ET.Element, pmid: str) -> Optional[PubMedArticle]:
        """Extract article data from an XML element."""
        title_elem = article_elem.find(".//ArticleTitle")
        title = _element_text(title_elem) or "No title"

        authors = []
        for author_elem in article_elem.findall(".//AuthorList/Author"):
            last_name = author_elem.find("LastName")
            initials = author_elem.find("Initials")
            if last_name is not None and last_name.text:
                author_str = last_name.text
                if initials is not None and initials.text:
                    author_str += f" {initials.text}"
                authors.append(author_str)
            else:
                collective = author_elem.find("CollectiveName")
                if collective is not None and collective.text:
                    authors.append(collective.text)

        journal_elem = article_elem.find(".//Journal/Title")
        journal = _element_text(journal_elem) or "Unknown Journal"

        # Prefer the article's own PubmedData ids, then its ELocationID.
        # ReferenceList ids belong to cited works.
        doi = None
        for article_id in article_elem.findall("PubmedData/ArticleIdList/ArticleId"):
            if article_id.get("IdType") == "doi" and article_id.text:
                doi = article_id.text.strip()
                break
        if doi is None:
            for location in article_elem.findall(".//ELocationID"):
                if location.get("EIdType") == "doi" and location.text:
                    doi = location.text.strip()
                    break

        # Structured abstracts have several labelled sections
        sections = [
            _element_text(section)
            for section in article_elem.findall(".//Abstract/AbstractText")
        ]
        abstract = " ".join(s for s in sections if s)

        return PubMedArticle(
            pmid=pmid,
            title=title,
            authors=authors,
            year=_extract_year(article_elem),
            journal=journal,
            doi=doi,
            abstract=abstract,
        )


def _element_text(elem: Optional[ET.Element]) -> str:
    """Full text of an element, including inline markup like <i>."""
    if elem is None:
        return ""
    return "".join(elem.itertext()).strip()


def _extract_year(article_elem: ET.Element) -> int:
    """Publication year from PubDate, MedlineDate or ArticleDate; 0 if absent."""
    pub_date = article_elem.find(".//JournalIssue/PubDate")
    if pub_date is None:
        pub_date = article_elem.find(".//PubDate")

    if pub_date is not None:
        year_elem = pub_date.find("Year")
        if year_elem is not None and year_elem.text and year_elem.text.strip().isdigit():
            return int(year_elem.text.strip())
        # e.g. "2024 Jan-Feb"
        medline_date = pub_date.find("MedlineDate")
        if medline_date is not None and medline_date.text:
            match = re.search(r"(\d{4})", medline_date.text)
            if match:
                return int(match.group(1))

    for path in (".//ArticleDate/Year", ".//DateCompleted/Year", ".//DateCreated/Year"):
        year_elem = article_elem.find(path)
        if year_elem is not None and year_elem.text and year_elem.text.strip().isdigit():
            return int(year_elem.text.strip())

    return 0
