"""
Tests for PubMed client.

Uses mocked HTTP responses to test client logic without making real API calls.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from src.literature.pubmed_client import PubMedClient
from src.models.errors import LiteratureRepositoryError


SEARCH_RESPONSE_XML = """<?xml version="1.0" encoding="UTF-8"?>
<eSearchResult>
    <Count>2</Count>
    <RetMax>2</RetMax>
    <IdList>
        <Id>12345678</Id>
        <Id>87654321</Id>
    </IdList>
</eSearchResult>
"""

SEARCH_EMPTY_XML = """<?xml version="1.0" encoding="UTF-8"?>
<eSearchResult>
    <Count>0</Count>
    <RetMax>0</RetMax>
    <IdList/>
</eSearchResult>
"""

FETCH_RESPONSE_XML = """<?xml version="1.0" encoding="UTF-8"?>
<PubmedArticleSet>
    <PubmedArticle>
        <MedlineCitation>
            <PMID>12345678</PMID>
            <Article>
                <Journal>
                    <Title>Journal of Autism and Developmental Disorders</Title>
                    <JournalIssue>
                        <PubDate>
                            <Year>2024</Year>
                        </PubDate>
                    </JournalIssue>
                </Journal>
                <ArticleTitle>Parent-mediated <i>intervention</i> for autism</ArticleTitle>
                <AuthorList>
                    <Author>
                        <LastName>Smith</LastName>
                        <Initials>JD</Initials>
                    </Author>
                    <Author>
                        <CollectiveName>Autism Study Group</CollectiveName>
                    </Author>
                </AuthorList>
                <Abstract>
                    <AbstractText Label="BACKGROUND">Background text.</AbstractText>
                    <AbstractText Label="RESULTS">Results text.</AbstractText>
                </Abstract>
            </Article>
        </MedlineCitation>
        <PubmedData>
            <ArticleIdList>
                <ArticleId IdType="pubmed">12345678</ArticleId>
                <ArticleId IdType="doi">10.1007/s10803-024-0001</ArticleId>
            </ArticleIdList>
        </PubmedData>
    </PubmedArticle>
    <PubmedArticle>
        <MedlineCitation>
            <PMID>87654321</PMID>
            <Article>
                <Journal>
                    <JournalIssue>
                        <PubDate>
                            <MedlineDate>2019 Jan-Feb</MedlineDate>
                        </PubDate>
                    </JournalIssue>
                </Journal>
                <ArticleTitle>Sleep in children</ArticleTitle>
                <ELocationID EIdType="doi">10.1000/sleep.1</ELocationID>
            </Article>
        </MedlineCitation>
    </PubmedArticle>
</PubmedArticleSet>
"""


def _mock_http(text: str):
    """Patch httpx.AsyncClient so get() returns the given body."""
    mock_response = MagicMock()
    mock_response.text = text
    mock_response.raise_for_status = MagicMock()

    mock_instance = AsyncMock()
    mock_instance.get = AsyncMock(return_value=mock_response)
    mock_instance.__aenter__ = AsyncMock(return_value=mock_instance)
    mock_instance.__aexit__ = AsyncMock(return_value=False)
    return mock_instance


class TestPubMedClientInit:
    """Tests for PubMed client initialization."""

    def test_default_init(self):
        with patch.dict("os.environ", {}, clear=True):
            client = PubMedClient()
        assert client.api_key is None
        assert client.timeout == 10.0
        assert client._request_delay == 0.35

    def test_init_with_api_key(self):
        client = PubMedClient(api_key="test_key")
        assert client.api_key == "test_key"
        assert client._request_delay == 0.1

    def test_build_params_includes_key(self):
        client = PubMedClient(api_key="test_key")
        params = client._build_params(term="autism")
        assert params == {"retmode": "xml", "db": "pubmed", "term": "autism", "api_key": "test_key"}


class TestPubMedSearch:
    """Tests for esearch."""

    @pytest.mark.asyncio
    async def test_search_found(self):
        client = PubMedClient(api_key="k")
        mock_instance = _mock_http(SEARCH_RESPONSE_XML)

        with patch("httpx.AsyncClient") as mock_client:
            mock_client.return_value = mock_instance
            result = await client.search("autism ABA", max_results=10)

        assert result.found is True
        assert result.pmids == ["12345678", "87654321"]
        assert result.total_count == 2
        assert result.query_used == "autism ABA"

        params = mock_instance.get.call_args.kwargs["params"]
        assert params["sort"] == "relevance"
        assert params["retmax"] == 10

    @pytest.mark.asyncio
    async def test_search_not_found(self):
        client = PubMedClient(api_key="k")

        with patch("httpx.AsyncClient") as mock_client:
            mock_client.return_value = _mock_http(SEARCH_EMPTY_XML)
            result = await client.search("nonexistent term xyz123")

        assert result.found is False
        assert result.pmids == []
        assert result.total_count == 0

    @pytest.mark.asyncio
    async def test_search_http_error_raises(self):
        client = PubMedClient(api_key="k")
        mock_instance = _mock_http("")
        mock_instance.get = AsyncMock(side_effect=httpx.ConnectError("Connection failed"))

        with patch("httpx.AsyncClient") as mock_client:
            mock_client.return_value = mock_instance
            with pytest.raises(LiteratureRepositoryError):
                await client.search("test query")

    @pytest.mark.asyncio
    async def test_search_malformed_xml_raises(self):
        client = PubMedClient(api_key="k")

        with patch("httpx.AsyncClient") as mock_client:
            mock_client.return_value = _mock_http("<eSearchResult><IdList>")
            with pytest.raises(LiteratureRepositoryError):
                await client.search("test query")


class TestPubMedFetch:
    """Tests for efetch parsing."""

    @pytest.mark.asyncio
    async def test_fetch_empty_ids(self):
        client = PubMedClient(api_key="k")
        assert await client.fetch_multiple([]) == []

    @pytest.mark.asyncio
    async def test_fetch_multiple(self):
        client = PubMedClient(api_key="k")
        mock_instance = _mock_http(FETCH_RESPONSE_XML)

        with patch("httpx.AsyncClient") as mock_client:
            mock_client.return_value = mock_instance
            articles = await client.fetch_multiple(["12345678", "87654321"])

        params = mock_instance.get.call_args.kwargs["params"]
        assert params["id"] == "12345678,87654321"
        assert params["rettype"] == "abstract"
        assert len(articles) == 2

    def test_parse_full_record(self):
        articles = PubMedClient(api_key="k").parse_articles_xml(FETCH_RESPONSE_XML)
        article = articles[0]

        assert article.pmid == "12345678"
        assert article.title == "Parent-mediated intervention for autism"
        assert article.authors == ["Smith JD", "Autism Study Group"]
        assert article.journal == "Journal of Autism and Developmental Disorders"
        assert article.year == 2024
        assert article.doi == "10.1007/s10803-024-0001"
        assert article.abstract == "Background text. Results text."

    def test_parse_sparse_record(self):
        article = PubMedClient(api_key="k").parse_articles_xml(FETCH_RESPONSE_XML)[1]

        assert article.year == 2019
        assert article.journal == "Unknown Journal"
        assert article.doi == "10.1000/sleep.1"
        assert article.abstract == ""
        assert article.authors == []

    def test_cited_reference_doi_ignored(self):
        xml = """<PubmedArticleSet>
    <PubmedArticle>
        <MedlineCitation>
            <PMID>111</PMID>
            <Article><ArticleTitle>No DOI of its own</ArticleTitle></Article>
        </MedlineCitation>
        <PubmedData>
            <ArticleIdList>
                <ArticleId IdType="pubmed">111</ArticleId>
            </ArticleIdList>
            <ReferenceList>
                <Reference>
                    <ArticleIdList>
                        <ArticleId IdType="doi">10.9999/cited.work</ArticleId>
                    </ArticleIdList>
                </Reference>
            </ReferenceList>
        </PubmedData>
    </PubmedArticle>
</PubmedArticleSet>"""

        article = PubMedClient(api_key="k").parse_articles_xml(xml)[0]

        assert article.pmid == "111"
        assert article.doi is None

    def test_parse_malformed_raises(self):
        with pytest.raises(LiteratureRepositoryError):
            PubMedClient(api_key="k").parse_articles_xml("<PubmedArticleSet>")
