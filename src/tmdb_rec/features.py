"""
Feature extraction for TMDB movie records.

A movie record is the dict shape served by TMDB list endpoints. Extraction
enriches it with a detail/credits lookup when available and degrades to the
record's own fields when the lookup fails.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field, asdict
from datetime import date

from .keywords import extract_keywords
from .vectorizer import build_feature_vector
from .config import (
    DEFAULT_RELEASE_DATE,
    DEFAULT_YEAR,
    DEFAULT_RUNTIME,
    DEFAULT_LANGUAGE,
    MAX_CAST,
    DIRECTOR_JOB,
)

logger = logging.getLogger(__name__)

DetailsLookup = Callable[[int], Awaitable[dict]]


@dataclass
class MovieFeatures:
    """Structured, vectorized view of one movie (or of a synthesized profile)."""
    id: int
    title: str
    genres: list[int] = field(default_factory=list)
    genre_names: list[str] = field(default_factory=list)
    rating: float = 0.0
    year: int = DEFAULT_YEAR
    popularity: float = 0.0
    runtime: int = DEFAULT_RUNTIME
    director: list[str] = field(default_factory=list)
    cast: list[str] = field(default_factory=list)
    keywords: list[str] = field(default_factory=list)
    language: str = DEFAULT_LANGUAGE
    feature_vector: list[float] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)


def parse_year(release_date: str | None) -> int:
    """Year from an ISO date string; 2000 when missing or unparseable."""
    value = (release_date or DEFAULT_RELEASE_DATE).strip()
    try:
        return date.fromisoformat(value[:10]).year
    except ValueError:
        pass
    try:
        return int(value[:4])
    except ValueError:
        logger.debug(f"Unparseable release date '{release_date}', using {DEFAULT_YEAR}")
        return DEFAULT_YEAR


def _unique_ints(values) -> list[int]:
    """Deduplicate genre codes preserving first-seen order."""
    seen: dict[int, None] = {}
    for value in values or []:
        try:
            seen.setdefault(int(value), None)
        except (TypeError, ValueError):
            continue
    return list(seen)


def _base_fields(movie: dict) -> dict:
    """Fields that come straight from the movie record."""
    return {
        "id": int(movie["id"]),
        "title": movie.get("title") or "",
        "rating": float(movie.get("vote_average") or 0.0),
        "year": parse_year(movie.get("release_date")),
        "popularity": max(float(movie.get("popularity") or 0.0), 0.0),
        "keywords": extract_keywords(movie.get("title"), movie.get("overview")),
        "language": movie.get("original_language") or DEFAULT_LANGUAGE,
    }


def _assemble(base: dict, genres: list[int], genre_names: list[str], runtime: int,
              director: list[str], cast: list[str]) -> MovieFeatures:
    vector = build_feature_vector(
        genres=genres,
        rating=base["rating"],
        year=base["year"],
        popularity=base["popularity"],
        runtime=runtime,
        language=base["language"],
    )
    return MovieFeatures(
        genres=genres,
        genre_names=genre_names,
        runtime=runtime,
        director=director,
        cast=cast,
        feature_vector=vector,
        **base,
    )


def features_from_details(movie: dict, details: dict) -> MovieFeatures:
    """Build features from a movie record plus its detail/credits payload."""
    base = _base_fields(movie)

    detail_genres = [g for g in details.get("genres") or [] if isinstance(g, dict) and "id" in g]
    if detail_genres:
        genres = _unique_ints(g["id"] for g in detail_genres)
        genre_names = [g.get("name", "") for g in detail_genres if g.get("name")]
    else:
        genres = _unique_ints(movie.get("genre_ids"))
        genre_names = []

    credits = details.get("credits") or {}
    cast = [
        c["name"].lower()
        for c in (credits.get("cast") or [])[:MAX_CAST]
        if c.get("name")
    ]
    director = [
        c["name"].lower()
        for c in credits.get("crew") or []
        if c.get("job") == DIRECTOR_JOB and c.get("name")
    ]

    runtime = details.get("runtime") or DEFAULT_RUNTIME
    return _assemble(base, genres, genre_names, int(runtime), director, cast)


def fallback_features(movie: dict) -> MovieFeatures:
    """Degraded features when no detail lookup is available."""
    base = _base_fields(movie)
    genres = _unique_ints(movie.get("genre_ids"))
    return _assemble(base, genres, [], DEFAULT_RUNTIME, [], [])


async def extract_movie_features(movie: dict, lookup: DetailsLookup | None) -> MovieFeatures:
    """
    Extract features for a movie, enriching via `lookup` when possible.

    Lookup failures (HTTP errors, 404s, timeouts, malformed payloads) are
    logged and answered with fallback features; they never propagate.
    """
    if lookup is None:
        return fallback_features(movie)

    try:
        details = await lookup(movie["id"])
        if not isinstance(details, dict):
            raise TypeError(f"details lookup returned {type(details).__name__}")
        return features_from_details(movie, details)
    except Exception as exc:
        logger.warning(f"Failed to extract features for movie {movie.get('id')}: {type(exc).__name__}: {exc}")
        return fallback_features(movie)
