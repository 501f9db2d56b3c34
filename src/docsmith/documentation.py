"""The ``browseDocumentation`` tool."""

import logging
from typing import Literal
from urllib.parse import urlparse

from pydantic import Field

from docsmith.errors import DocsmithError
from docsmith.message import CamelModel
from docsmith.search import SearchClient, SearchResponse

logger = logging.getLogger(__name__)

MAX_CONTENT_CHARS = 2000
MAX_RAW_CONTENT_CHARS = 8000
SEARCH_MAX_RESULTS = 3
SITE_SEARCH_MAX_RESULTS = 5


class BrowseDocumentationInput(CamelModel):
    """Browse and fetch content from API documentation URLs or search for documentation."""

    url: str = Field(
        description="The URL of the API documentation to browse or search query",
    )
    is_search: bool = Field(
        default=False,
        description="Set to true if input is a search query instead of a URL",
    )


class DocumentationHit(CamelModel):
    title: str
    url: str
    content: str


class DocumentationResult(CamelModel):
    kind: Literal["search", "url"]
    query: str | None = None
    url: str | None = None
    title: str | None = None
    answer: str | None = None
    content: str | None = None
    raw_content: str | None = None
    results: list[DocumentationHit] | None = None


def _cap(text: str | None, limit: int) -> str | None:
    if text is None or len(text) <= limit:
        return text
    return text[:limit].rstrip() + "…"


def _search_result(query: str, response: SearchResponse) -> DocumentationResult:
    return DocumentationResult(
        kind="search",
        query=query,
        answer=response.answer,
        results=[
            DocumentationHit(
                title=hit.title,
                url=hit.url,
                content=_cap(hit.content, MAX_CONTENT_CHARS),
            )
            for hit in response.results
        ],
    )


class DocumentationBrowser:
    """Executes ``browseDocumentation`` calls against a search backend."""

    def __init__(self, search: SearchClient):
        self.search = search

    async def __call__(self, params: BrowseDocumentationInput) -> DocumentationResult:
        if params.is_search:
            return await self.search_docs(params.url)
        return await self.browse_url(params.url)

    async def search_docs(self, query: str) -> DocumentationResult:
        response = await self.search.search(
            query,
            depth="advanced",
            max_results=SEARCH_MAX_RESULTS,
            include_answer=True,
            include_raw_content=True,
        )
        return _search_result(query, response)

    async def browse_url(self, url: str) -> DocumentationResult:
        domain = urlparse(url).hostname
        if not domain:
            logger.info(f"{url!r} is not an address, searching instead")
            return await self.search_docs(url)

        extracted = await self._extract(url)
        if extracted is not None:
            return extracted

        query = f"site:{domain} documentation"
        response = await self.search.search(
            query,
            depth="advanced",
            max_results=SITE_SEARCH_MAX_RESULTS,
            include_answer=True,
            include_raw_content=True,
        )
        for hit in response.results:
            if domain in hit.url:
                return DocumentationResult(
                    kind="url",
                    url=url,
                    title=hit.title,
                    content=_cap(hit.content, MAX_CONTENT_CHARS),
                    raw_content=_cap(hit.raw_content, MAX_RAW_CONTENT_CHARS),
                )
        logger.info(f"No search hit on {domain}, returning the raw result set")
        return _search_result(url, response)

    async def _extract(self, url: str) -> DocumentationResult | None:
        """Fetch the page directly. ``None`` means fall back to search."""
        try:
            response = await self.search.extract([url])
        except DocsmithError as e:
            logger.warning(f"Extraction of {url} failed, falling back to search: {e}")
            return None
        for page in response.results:
            if page.raw_content and page.raw_content.strip():
                return DocumentationResult(
                    kind="url",
                    url=url,
                    title=page.title,
                    content=_cap(page.raw_content, MAX_CONTENT_CHARS),
                    raw_content=_cap(page.raw_content, MAX_RAW_CONTENT_CHARS),
                )
        return None
