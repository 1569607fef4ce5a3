"""
Assemble a candidate pool from TMDB list endpoints.

Every list fetch degrades to an empty list on failure, so a partial outage
shrinks the pool instead of aborting the request.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Iterable

from .tmdb import TMDBClient, TMDBError
from .config import CANDIDATE_SOURCES, MAX_CANDIDATES, SIMILAR_SEED_MOVIES

logger = logging.getLogger(__name__)


def dedupe_movies(movies: Iterable[dict]) -> list[dict]:
    """Drop repeated ids, keeping the first occurrence."""
    seen: set = set()
    unique: list[dict] = []
    for movie in movies:
        movie_id = movie.get("id")
        if movie_id is None or movie_id in seen:
            continue
        seen.add(movie_id)
        unique.append(movie)
    return unique


async def _safe(fetch: Awaitable[list[dict]], label: str) -> list[dict]:
    try:
        return await fetch
    except TMDBError as exc:
        logger.warning(f"Failed to fetch {label}: {exc}")
        return []


async def _fetch_source(
    client: TMDBClient,
    source: str,
    genre_filter: list[int] | None,
    year_filter: int | None,
    rating_filter: float | None,
) -> list[dict]:
    if source == "popular":
        pages = await asyncio.gather(
            _safe(client.get_popular(1), "popular page 1"),
            _safe(client.get_popular(2), "popular page 2"),
        )
    elif source == "top_rated":
        pages = await asyncio.gather(
            _safe(client.get_top_rated(1), "top rated page 1"),
            _safe(client.get_top_rated(2), "top rated page 2"),
        )
    elif source == "discover":
        filters = dict(genres=genre_filter, year=year_filter, min_rating=rating_filter)
        pages = await asyncio.gather(
            _safe(client.discover(page=1, **filters), "discover page 1"),
            _safe(client.discover(page=2, **filters), "discover page 2"),
        )
    else:
        fetches = [
            _safe(client.get_popular(1), "popular page 1"),
            _safe(client.get_top_rated(1), "top rated page 1"),
        ]
        if genre_filter:
            fetches.append(_safe(client.discover(genres=genre_filter, page=1), "discover page 1"))
        pages = await asyncio.gather(*fetches)

    return [movie for page in pages for movie in page]


async def gather_candidates(
    client: TMDBClient,
    selected_movies: list[dict],
    source: str = "mixed",
    *,
    genre_filter: list[int] | None = None,
    year_filter: int | None = None,
    rating_filter: float | None = None,
    max_candidates: int = MAX_CANDIDATES,
) -> list[dict]:
    """
    Build a deduplicated candidate pool for the given selection.

    The chosen list source is combined with the /similar lists of the first
    few selected movies and capped at `max_candidates`.
    """
    if source not in CANDIDATE_SOURCES:
        raise ValueError(f"Unknown candidate source '{source}' (expected one of {', '.join(CANDIDATE_SOURCES)})")

    candidates = dedupe_movies(
        await _fetch_source(client, source, genre_filter, year_filter, rating_filter)
    )

    seeds = [m for m in selected_movies[:SIMILAR_SEED_MOVIES] if m.get("id") is not None]
    similar_lists = await asyncio.gather(
        *(_safe(client.get_similar(m["id"], 1), f"similar movies for {m['id']}") for m in seeds)
    )
    candidates.extend(movie for movies in similar_lists for movie in movies)

    pool = dedupe_movies(candidates)[:max_candidates]
    logger.info(f"Gathered {len(pool)} candidate movies from '{source}' source")
    return pool
