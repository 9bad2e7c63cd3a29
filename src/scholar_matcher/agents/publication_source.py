"""Google Scholar publication source backed by SerpAPI.

Implements the PublicationSource contract: fetch an author's publications by
Google Scholar author id. Also offers an author search to help a user find
the id to link.
"""

from typing import Any, Callable, Optional
from urllib.parse import urlencode

import httpx

from scholar_matcher.errors import (
    ConfigurationError,
    EmptyProfileError,
    MalformedResponseError,
    RateLimitError,
    TransportError,
)
from scholar_matcher.models.publication import Article, AuthorCandidate, AuthorPublications
from scholar_matcher.utils.logger import get_logger
from scholar_matcher.utils.rate_limiter import ServiceRateLimiter

SERPAPI_ENDPOINT = "https://serpapi.com/search.json"
SCHOLAR_AUTHOR_SEARCH_URL = "https://scholar.google.com/citations"
DEFAULT_AVATAR_MARKER = "avatar_scholar_128.png"
NO_RESULTS_MARKER = "returned any results"
MAX_CANDIDATES = 3


def scholar_search_url(name: str, record_id: str, university: Optional[str] = None) -> str:
    """Build a Google Scholar author-search URL for a researcher.

    The record id rides along as ``researcher_id`` so an external capture tool
    can report the chosen author id back against the right record.
    """
    query = " ".join(part.strip() for part in (name, university or "") if part and part.strip())
    params = {
        "hl": "en",
        "view_op": "search_authors",
        "mauthors": query or name,
        "researcher_id": record_id,
    }
    return f"{SCHOLAR_AUTHOR_SEARCH_URL}?{urlencode(params)}"


def _parse_article(raw: dict[str, Any]) -> Optional[Article]:
    title = (raw.get("title") or "").strip()
    if not title:
        return None

    cited_by = raw.get("cited_by")
    citation_count = cited_by.get("value") if isinstance(cited_by, dict) else None
    if not isinstance(citation_count, int) or citation_count < 0:
        citation_count = None

    year = raw.get("year")
    return Article(
        title=title,
        year=str(year) if year not in (None, "") else None,
        citation_count=citation_count,
        authors=raw.get("authors") or None,
    )


class SerpApiPublicationSource:
    """Fetch Google Scholar author profiles through SerpAPI."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        timeout: int = 30,
        publications_per_request: int = 50,
        rate_limiter: Optional[ServiceRateLimiter] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        correlation_id: Optional[str] = None,
        api_key_provider: Optional[Callable[[], str]] = None,
    ):
        """
        Initialize the SerpAPI publication source.

        Args:
            api_key: SerpAPI key
            timeout: HTTP timeout in seconds
            publications_per_request: Number of articles requested per profile
            rate_limiter: Shared limiter for SerpAPI calls (default: 1 request/second)
            transport: Optional httpx transport (used by tests)
            correlation_id: Correlation ID for logging
            api_key_provider: Called on the first request when no api_key is given

        Raises:
            ConfigurationError: If neither a non-empty key nor a provider is given
        """
        if api_key is None and api_key_provider is None:
            raise ConfigurationError("SERPAPI_API_KEY is not configured")
        if api_key is not None and not api_key.strip():
            raise ConfigurationError("SERPAPI_API_KEY is not configured")

        self._api_key = api_key
        self._api_key_provider = api_key_provider
        self.timeout = timeout
        self.publications_per_request = publications_per_request
        self.rate_limiter = rate_limiter or ServiceRateLimiter()
        self.transport = transport
        self.logger = get_logger(
            correlation_id=correlation_id,
            phase="publication_fetch",
            component="serpapi_source",
        )

    @property
    def api_key(self) -> str:
        """The SerpAPI key, resolved through the provider on first use.

        Raises:
            ConfigurationError: If the provider yields no key
        """
        if self._api_key is None:
            key = self._api_key_provider() if self._api_key_provider else None
            if not key or not key.strip():
                raise ConfigurationError("SERPAPI_API_KEY is not configured")
            self._api_key = key
        return self._api_key

    async def _request(self, params: dict[str, str]) -> dict[str, Any]:
        """Issue one SerpAPI request and map failures to the error taxonomy."""
        api_key = self.api_key
        await self.rate_limiter.acquire(SERPAPI_ENDPOINT)

        query = {**params, "api_key": api_key}
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.get(SERPAPI_ENDPOINT, params=query)
        except httpx.TimeoutException as e:
            raise TransportError(f"SerpAPI request timeout: {e}") from e
        except httpx.TransportError as e:
            raise TransportError(f"SerpAPI network error: {e}") from e

        try:
            data = response.json()
        except ValueError:
            data = None

        error_message = data.get("error") if isinstance(data, dict) else None

        if response.status_code == 429:
            raise RateLimitError(f"SerpAPI rate limit exceeded (429): {error_message or response.reason_phrase}")
        if response.status_code in (401, 403):
            raise ConfigurationError(
                f"SerpAPI rejected the API key ({response.status_code}): {error_message or response.reason_phrase}"
            )
        if response.status_code >= 400 and not (error_message and NO_RESULTS_MARKER in error_message):
            raise TransportError(
                f"SerpAPI request failed: {response.status_code} {error_message or response.reason_phrase}",
                status_code=response.status_code,
            )

        if not isinstance(data, dict):
            raise MalformedResponseError("SerpAPI returned a non-JSON response")

        return data

    async def fetch(self, source_id: str) -> AuthorPublications:
        """
        Fetch an author's publications, newest first.

        Args:
            source_id: Google Scholar author id (e.g., "LSsXyncAAAAJ")

        Returns:
            AuthorPublications (articles may be empty; the pipeline decides what that means)

        Raises:
            EmptyProfileError: If SerpAPI reports no results for the id
            RateLimitError, TransportError: On HTTP/network failures
            MalformedResponseError: If the body is not JSON
        """
        self.logger.info("Fetching publications", source_id=source_id)

        data = await self._request(
            {
                "engine": "google_scholar_author",
                "author_id": source_id,
                "num": str(self.publications_per_request),
                "sort": "pubdate",
            }
        )

        error_message = data.get("error")
        if error_message:
            if NO_RESULTS_MARKER in error_message:
                raise EmptyProfileError(source_id)
            raise TransportError(f"SerpAPI error: {error_message}")

        author = data.get("author") or {}
        raw_articles = data.get("articles") or []
        if not isinstance(raw_articles, list):
            raise MalformedResponseError("SerpAPI 'articles' field is not a list")

        articles = [a for a in (_parse_article(raw) for raw in raw_articles if isinstance(raw, dict)) if a]

        thumbnail = author.get("thumbnail")
        if thumbnail and DEFAULT_AVATAR_MARKER in thumbnail:
            thumbnail = None

        self.logger.info(
            "Publications fetched",
            source_id=source_id,
            article_count=len(articles),
        )

        return AuthorPublications(
            source_id=source_id,
            name=author.get("name") or "Unknown",
            affiliations=author.get("affiliations") or "",
            articles=articles,
            thumbnail=thumbnail,
        )

    async def search_author_candidates(
        self, name: str, university: Optional[str] = None
    ) -> list[AuthorCandidate]:
        """
        Search Google Scholar profiles matching a name (and optional university).

        Returns:
            Up to three candidates with an author id and a name
        """
        query = " ".join(part.strip() for part in (name, university or "") if part and part.strip())
        if not query:
            return []

        data = await self._request({"engine": "google_scholar", "q": query, "hl": "en"})

        error_message = data.get("error")
        if error_message:
            if NO_RESULTS_MARKER in error_message:
                return []
            raise TransportError(f"SerpAPI error: {error_message}")

        profiles = data.get("profiles") or {}
        authors = profiles.get("authors") if isinstance(profiles, dict) else None
        if not isinstance(authors, list):
            return []

        candidates = []
        for author in authors:
            if not isinstance(author, dict) or not author.get("author_id") or not author.get("name"):
                continue
            cited_by = author.get("cited_by")
            candidates.append(
                AuthorCandidate(
                    name=author["name"],
                    source_id=author["author_id"],
                    link=author.get("link"),
                    affiliations=author.get("affiliations"),
                    email=author.get("email"),
                    cited_by=cited_by if isinstance(cited_by, int) else None,
                )
            )
            if len(candidates) >= MAX_CANDIDATES:
                break

        self.logger.info("Author candidates found", query=query, candidate_count=len(candidates))
        return candidates
