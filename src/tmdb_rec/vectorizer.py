"""
Fixed-length numeric encoding of a movie for cosine comparison.

Layout (31 dims):
    [0:18]  one flag per reference genre
    [18]    rating / 10
    [19]    (year - 1900) / 130, unclamped
    [20]    ln(popularity + 1) / 10
    [21]    min(runtime / 300, 1)
    [22:31] one flag per reference language
"""

import math
from collections.abc import Iterable

import numpy as np
from scipy.spatial import distance

from .config import (
    REFERENCE_GENRES,
    REFERENCE_LANGUAGES,
    RATING_SCALE,
    YEAR_ORIGIN,
    YEAR_RANGE,
    POPULARITY_LOG_SCALE,
    RUNTIME_CAP,
)

FEATURE_VECTOR_SIZE = len(REFERENCE_GENRES) + 4 + len(REFERENCE_LANGUAGES)


def build_feature_vector(
    genres: Iterable[int],
    rating: float,
    year: int,
    popularity: float,
    runtime: float,
    language: str,
    reference_genres: tuple[int, ...] = REFERENCE_GENRES,
    reference_languages: tuple[str, ...] = REFERENCE_LANGUAGES,
) -> list[float]:
    """Encode movie attributes into the fixed vector layout above."""
    genre_set = set(genres)
    vector = [1.0 if genre_id in genre_set else 0.0 for genre_id in reference_genres]

    vector.append(rating / RATING_SCALE)
    vector.append((year - YEAR_ORIGIN) / YEAR_RANGE)
    vector.append(math.log(popularity + 1) / POPULARITY_LOG_SCALE)
    vector.append(min(runtime / RUNTIME_CAP, 1.0))

    vector.extend(1.0 if language == lang else 0.0 for lang in reference_languages)
    return vector


def cosine_similarity(vector_a: list[float], vector_b: list[float]) -> float:
    """
    Cosine similarity between two feature vectors.

    Returns 0.0 for mismatched lengths or a zero-norm vector, where the
    cosine is undefined.
    """
    if len(vector_a) != len(vector_b):
        return 0.0

    a = np.asarray(vector_a, dtype=float)
    b = np.asarray(vector_b, dtype=float)
    if not a.any() or not b.any():
        return 0.0

    return float(1.0 - distance.cosine(a, b))
