"""
Tavily Search Client - Deep web search for scholarship pages.

One ``search`` call runs every query term in sequence, pausing
``batch_delay_ms`` between terms (not before the first). HTTP 429 is
retried with exponential backoff; other failures raise SearchClientError.
Retrying belongs here, never in the engine.
"""

import asyncio
import logging

import httpx

from tuitionlift.discovery.base import SearchClient, SearchHit, SearchQuery
from tuitionlift.errors import SearchClientError

logger = logging.getLogger(__name__)

TAVILY_API_URL = "https://api.tavily.com/search"


class TavilySearchClient(SearchClient):
    """
    Search client for the Tavily API.

    Args:
        api_key: Tavily API key
        client: Optional shared ``httpx.AsyncClient`` (tests pass one with a MockTransport)
        max_retries: Retries for HTTP 429 responses
        timeout: Per-request timeout in seconds
    """

    def __init__(
        self,
        api_key: str | None,
        client: httpx.AsyncClient | None = None,
        max_retries: int = 3,
        timeout: float = 30.0,
    ):
        self.api_key = api_key
        self._client = client
        self.max_retries = max_retries
        self.timeout = timeout
        self.backoff_base = 1.0

    async def search(self, query: SearchQuery) -> list[SearchHit]:
        if not self.api_key:
            raise SearchClientError(
                "Search API key not configured. Set TAVILY_API_KEY environment variable"
            )

        if self._client is not None:
            return await self._search_all(self._client, query)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await self._search_all(client, query)

    async def _search_all(self, client: httpx.AsyncClient, query: SearchQuery) -> list[SearchHit]:
        hits: list[SearchHit] = []
        for i, term in enumerate(query.terms):
            if i > 0 and query.batch_delay_ms > 0:
                await asyncio.sleep(query.batch_delay_ms / 1000)
            hits.extend(await self._search_one(client, term, query.max_results))
        logger.info(f"Search returned {len(hits)} hits for {len(query.terms)} queries")
        return hits

    async def _search_one(
        self, client: httpx.AsyncClient, term: str, max_results: int
    ) -> list[SearchHit]:
        """Execute one Tavily query."""
        for attempt in range(self.max_retries + 1):
            try:
                response = await client.post(
                    TAVILY_API_URL,
                    json={
                        "query": term,
                        "search_depth": "advanced",
                        "max_results": max_results,
                        "topic": "general",
                        "include_answer": False,
                    },
                    headers={
                        "Authorization": f"Bearer {self.api_key}",
                        "Accept": "application/json",
                    },
                    timeout=self.timeout,
                )
            except httpx.HTTPError as e:
                raise SearchClientError(f"Tavily request failed: {e}") from e

            if response.status_code == 429 and attempt < self.max_retries:
                delay = self.backoff_base * 2**attempt
                logger.warning(f"Tavily rate limited; retrying in {delay:.1f}s")
                await asyncio.sleep(delay)
                continue

            if response.status_code == 401:
                raise SearchClientError("Invalid Tavily API key")
            elif response.status_code == 429:
                raise SearchClientError("Tavily rate limit exceeded. Try again later.")
            elif response.status_code != 200:
                raise SearchClientError(
                    f"Tavily API error {response.status_code}: {response.text[:200]}"
                )

            break

        try:
            data = response.json()
        except ValueError as e:
            raise SearchClientError("Tavily returned a non-JSON response") from e

        if data.get("error"):
            raise SearchClientError(f"Tavily API error: {data['error']}")

        hits = []
        for item in data.get("results") or []:
            score = item.get("score")
            hits.append(
                SearchHit(
                    title=item.get("title") or "Untitled",
                    url=item.get("url") or "",
                    content=item.get("content") or "",
                    score=float(score) if isinstance(score, int | float) else 0.0,
                )
            )
        return hits
