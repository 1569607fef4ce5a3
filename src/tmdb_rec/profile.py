import logging
import math
from collections import Counter
from collections.abc import Hashable, Iterable
from statistics import fmean
from typing import TypeVar

from .features import MovieFeatures
from .vectorizer import build_feature_vector
from .config import (
    DEFAULT_LANGUAGE,
    PROFILE_ID,
    PROFILE_TITLE,
    PROFILE_TOP_GENRES,
    PROFILE_TOP_DIRECTORS,
    PROFILE_TOP_CAST,
    PROFILE_TOP_KEYWORDS,
)

logger = logging.getLogger(__name__)

T = TypeVar('T', bound=Hashable)


class EmptyProfileError(ValueError):
    """Raised when a profile is requested from zero movies."""


def most_common(items: Iterable[T], limit: int) -> list[T]:
    """
    The `limit` most frequent items.

    Ties keep first-seen order (Counter preserves insertion order and
    most_common sorts stably).
    """
    return [item for item, _ in Counter(items).most_common(limit)]


def _round_half_up(value: float) -> int:
    # .5 goes up, so 2002.5 -> 2003 rather than round()'s 2002
    return math.floor(value + 0.5)


def build_profile(selected: list[MovieFeatures]) -> MovieFeatures:
    """
    Aggregate the user's selected movies into one synthetic MovieFeatures.

    Set-like attributes keep their most frequent values, numeric attributes
    are averaged, and the feature vector is rebuilt from the result.
    """
    if not selected:
        raise EmptyProfileError("No selected movies to generate profile from")

    genres = most_common((g for m in selected for g in m.genres), PROFILE_TOP_GENRES)
    directors = most_common((d for m in selected for d in m.director), PROFILE_TOP_DIRECTORS)
    cast = most_common((c for m in selected for c in m.cast), PROFILE_TOP_CAST)
    keywords = most_common((k for m in selected for k in m.keywords), PROFILE_TOP_KEYWORDS)

    languages = most_common((m.language for m in selected), 1)
    language = languages[0] if languages else DEFAULT_LANGUAGE

    rating = fmean(m.rating for m in selected)
    year = _round_half_up(fmean(m.year for m in selected))
    popularity = fmean(m.popularity for m in selected)
    runtime = _round_half_up(fmean(m.runtime for m in selected))

    profile = MovieFeatures(
        id=PROFILE_ID,
        title=PROFILE_TITLE,
        genres=genres,
        genre_names=[],
        rating=rating,
        year=year,
        popularity=popularity,
        runtime=runtime,
        director=directors,
        cast=cast,
        keywords=keywords,
        language=language,
        feature_vector=build_feature_vector(
            genres=genres,
            rating=rating,
            year=year,
            popularity=popularity,
            runtime=runtime,
            language=language,
        ),
    )
    logger.debug(f"Built profile from {len(selected)} movies: genres={genres}, directors={directors}")
    return profile
