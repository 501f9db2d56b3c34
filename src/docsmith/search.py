"""Async client for the Tavily search and extract REST API."""

import logging
from typing import Literal

import httpx
from pydantic import BaseModel, Field, ValidationError

from docsmith.errors import MissingCredentials, SearchError

logger = logging.getLogger(__name__)

TAVILY_BASE_URL = "https://api.tavily.com"


class SearchHit(BaseModel):
    title: str = ""
    url: str
    content: str = ""
    raw_content: str | None = None
    score: float | None = None


class SearchResponse(BaseModel):
    query: str = ""
    answer: str | None = None
    results: list[SearchHit] = Field(default_factory=list)


class ExtractedPage(BaseModel):
    url: str
    title: str | None = None
    raw_content: str | None = None


class ExtractResponse(BaseModel):
    results: list[ExtractedPage] = Field(default_factory=list)
    failed_results: list[dict] = Field(default_factory=list)


class SearchClient:
    """Search backend used by the documentation tool.

    Args:
        api_key: Tavily API key. Calls fail with
            :class:`MissingCredentials` when it is not set.
        base_url: API root, overridable for tests.
        http_client: Optional preconfigured ``httpx.AsyncClient``.
    """

    def __init__(
        self,
        api_key: str | None,
        base_url: str = TAVILY_BASE_URL,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self._client = http_client or httpx.AsyncClient(timeout=30.0)

    async def _post(self, path: str, payload: dict) -> dict:
        if not self.api_key:
            raise MissingCredentials("TAVILY_API_KEY is not configured")
        try:
            response = await self._client.post(
                f"{self.base_url}{path}",
                json=payload,
                headers={"Authorization": f"Bearer {self.api_key}"},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise SearchError(
                f"Search backend returned {e.response.status_code} for {path}"
            ) from e
        except httpx.HTTPError as e:
            raise SearchError(f"Search backend request failed: {e}") from e
        return response.json()

    async def search(
        self,
        query: str,
        depth: Literal["basic", "advanced"] = "advanced",
        max_results: int = 5,
        include_answer: bool = True,
        include_raw_content: bool = False,
    ) -> SearchResponse:
        logger.info(f"Searching for {query!r}")
        data = await self._post("/search", {
            "query": query,
            "search_depth": depth,
            "max_results": max_results,
            "include_answer": include_answer,
            "include_raw_content": include_raw_content,
        })
        try:
            return SearchResponse.model_validate(data)
        except ValidationError as e:
            raise SearchError(f"Unexpected search response: {e.error_count()} validation error(s)") from e

    async def extract(
        self,
        urls: list[str],
        depth: Literal["basic", "advanced"] = "basic",
        format: Literal["markdown", "text"] = "markdown",
    ) -> ExtractResponse:
        logger.info(f"Extracting {len(urls)} url(s)")
        data = await self._post("/extract", {
            "urls": urls,
            "extract_depth": depth,
            "format": format,
        })
        try:
            return ExtractResponse.model_validate(data)
        except ValidationError as e:
            raise SearchError(f"Unexpected extract response: {e.error_count()} validation error(s)") from e

    async def aclose(self) -> None:
        await self._client.aclose()
