"""
Data models for the literature repository adapter.

Raw records as parsed from PubMed, before truncation and ranking.
"""

from typing import Optional

from pydantic import BaseModel, Field


class PubMedArticle(BaseModel):
    """Article details from PubMed."""

    pmid: str = Field(..., description="PubMed ID")
    title: str = Field(..., description="Article title")
    authors: list[str] = Field(default_factory=list, description="List of authors")
    year: int = Field(default=0, description="Publication year, 0 if unknown")
    journal: str = Field(default="", description="Journal name")
    doi: Optional[str] = Field(default=None, description="DOI if available")
    abstract: str = Field(default="", description="Article abstract")


class PubMedSearchResult(BaseModel):
    """Result from a PubMed search query."""

    found: bool = Field(..., description="Whether any results were found")
    pmids: list[str] = Field(default_factory=list, description="List of matching PMIDs")
    total_count: int = Field(default=0, description="Total results in PubMed")
    query_used: str = Field(default="", description="The search query used")
