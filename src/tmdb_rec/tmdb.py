import asyncio
import logging
import random

import httpx

from .config import (
    TMDB_BASE_URL,
    TMDB_READ_TOKEN,
    USER_AGENT,
    HTTP_TIMEOUT,
    HTTP2_ENABLED,
    MAX_HTTP_RETRIES,
    RETRY_BASE_DELAY,
    RETRY_MAX_DELAY,
    DEFAULT_MAX_CONCURRENT,
)

logger = logging.getLogger(__name__)


class TMDBError(Exception):
    """A TMDB request failed after retries or returned an unusable payload."""


class MovieNotFoundError(TMDBError):
    """TMDB answered 404 for the requested resource."""


def backoff_delay(attempt: int, base: float = RETRY_BASE_DELAY, cap: float = RETRY_MAX_DELAY) -> float:
    """Exponential backoff: base, 2*base, 4*base ... capped at `cap` seconds."""
    return min(base * (2 ** attempt), cap)


def _parse_retry_after(value: str | None, fallback: float) -> float:
    if not value:
        return fallback
    try:
        return max(0.0, float(value))
    except ValueError:
        return fallback


class TMDBClient:
    """
    Async TMDB API client with bounded concurrency and retry logic.

    Can be used as an async context manager (one shared connection pool) or
    standalone, in which case each call opens a temporary client.
    """

    def __init__(
        self,
        token: str | None = None,
        base_url: str = TMDB_BASE_URL,
        max_concurrent: int = DEFAULT_MAX_CONCURRENT,
        timeout: float = HTTP_TIMEOUT,
        max_retries: int = MAX_HTTP_RETRIES,
        retry_base_delay: float = RETRY_BASE_DELAY,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.token = token if token is not None else TMDB_READ_TOKEN
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_base_delay = retry_base_delay
        self.transport = transport
        self.semaphore = asyncio.Semaphore(max_concurrent)
        self.client: httpx.AsyncClient | None = None
        # Coordinated rate limiting: when one task hits 429, all tasks pause
        self._rate_limit_event = asyncio.Event()
        self._rate_limit_event.set()

        if not self.token:
            logger.warning("No TMDB token configured (set TMDB_READ_TOKEN); requests will be rejected")

    def _build_client(self) -> httpx.AsyncClient:
        headers = {
            "Accept": "application/json",
            "User-Agent": USER_AGENT,
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=self.timeout,
            follow_redirects=True,
            # Custom transports (tests) bypass the HTTP/2 stack
            http2=HTTP2_ENABLED and self.transport is None,
            transport=self.transport,
        )

    async def __aenter__(self):
        """Async context manager entry."""
        self.client = self._build_client()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        if self.client:
            await self.client.aclose()
            self.client = None
        return False

    async def _get(self, path: str, params: dict | None = None) -> dict:
        """GET a JSON document, using the shared client when one is open."""
        if self.client:
            return await self._get_with_client(self.client, path, params)

        async with self._build_client() as temp_client:
            return await self._get_with_client(temp_client, path, params)

    async def _get_with_client(self, client: httpx.AsyncClient, path: str, params: dict | None) -> dict:
        """
        Internal GET with retry logic.

        429, 5xx, timeouts and transport errors are retried with exponential
        backoff. 404 raises MovieNotFoundError; other 4xx raise TMDBError
        immediately.
        """
        last_error: TMDBError = TMDBError(f"No attempt made for {path}")
        attempts = self.max_retries + 1

        async with self.semaphore:
            for attempt in range(attempts):
                await self._rate_limit_event.wait()
                wait_time = backoff_delay(attempt, base=self.retry_base_delay)

                try:
                    resp = await client.get(path, params=params)
                except httpx.TimeoutException as exc:
                    last_error = TMDBError(f"Timeout on {path}: {exc}")
                    logger.warning(f"Timeout on {path} (attempt {attempt + 1}/{attempts})")
                except httpx.HTTPError as exc:
                    last_error = TMDBError(f"Request error on {path}: {type(exc).__name__}: {exc}")
                    logger.warning(f"Request error on {path}: {type(exc).__name__} (attempt {attempt + 1}/{attempts})")
                else:
                    if resp.status_code == 404:
                        raise MovieNotFoundError(f"Not found: {path}")

                    if resp.status_code == 429:
                        retry_after = _parse_retry_after(resp.headers.get("Retry-After"), wait_time)
                        last_error = TMDBError(f"Rate limited on {path}")
                        logger.warning(
                            f"Rate limited on {path}, pausing ALL tasks for {retry_after:.1f}s "
                            f"(attempt {attempt + 1}/{attempts})"
                        )
                        if attempt < attempts - 1:
                            self._rate_limit_event.clear()
                            try:
                                await asyncio.sleep(retry_after)
                            finally:
                                self._rate_limit_event.set()
                            await asyncio.sleep(random.uniform(0, self.retry_base_delay))
                        continue

                    if 400 <= resp.status_code < 500:
                        raise TMDBError(f"HTTP {resp.status_code} on {path}")

                    if resp.status_code >= 500:
                        last_error = TMDBError(f"HTTP {resp.status_code} on {path}")
                        logger.warning(f"HTTP {resp.status_code} on {path} (attempt {attempt + 1}/{attempts})")
                    else:
                        try:
                            payload = resp.json()
                        except ValueError as exc:
                            raise TMDBError(f"Invalid JSON from {path}: {exc}") from exc
                        logger.debug(f"TMDB request successful: {path}")
                        return payload

                if attempt < attempts - 1:
                    await asyncio.sleep(wait_time)

        logger.error(f"Max retries exceeded for {path}")
        raise last_error

    async def get_movie_details(self, movie_id: int) -> dict:
        """Movie details with credits appended."""
        return await self._get(f"/movie/{movie_id}", {"append_to_response": "credits"})

    async def _get_results(self, path: str, params: dict | None = None) -> list[dict]:
        payload = await self._get(path, params)
        results = payload.get("results") if isinstance(payload, dict) else None
        return list(results or [])

    async def get_popular(self, page: int = 1) -> list[dict]:
        return await self._get_results("/movie/popular", {"page": page})

    async def get_top_rated(self, page: int = 1) -> list[dict]:
        return await self._get_results("/movie/top_rated", {"page": page})

    async def get_similar(self, movie_id: int, page: int = 1) -> list[dict]:
        return await self._get_results(f"/movie/{movie_id}/similar", {"page": page})

    async def discover(
        self,
        genres: list[int] | None = None,
        min_rating: float | None = None,
        year: int | None = None,
        sort_by: str = "popularity.desc",
        page: int = 1,
        original_language: str | None = None,
    ) -> list[dict]:
        """Discover movies with optional filters."""
        params: dict[str, str | int] = {"page": page, "sort_by": sort_by}
        if genres:
            params["with_genres"] = ",".join(str(g) for g in genres)
        if min_rating:
            params["vote_average.gte"] = str(min_rating)
        if year:
            params["primary_release_year"] = year
        if original_language:
            params["with_original_language"] = original_language
        return await self._get_results("/discover/movie", params)
