"""
Weighted multi-channel similarity between a profile and a candidate.

Each channel compares one aspect of two MovieFeatures and contributes
`similarity * weight / 100` to a running total. The final score is the
weighted average over active channels, so it stays in [0, 1] and does not
depend on the absolute magnitude of the weights.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Callable, Optional

from .features import MovieFeatures
from .vectorizer import cosine_similarity
from .weights import RecommendationWeights
from .config import (
    RATING_SCALE,
    YEAR_SPAN,
    MATCH_THRESHOLD_GENRE,
    MATCH_THRESHOLD_RATING,
    MATCH_THRESHOLD_DIRECTOR,
    MATCH_THRESHOLD_CAST,
    MATCH_THRESHOLD_KEYWORDS,
    MATCH_THRESHOLD_YEAR,
)


def jaccard_similarity(a: Iterable, b: Iterable) -> float:
    """|A ∩ B| / |A ∪ B|; 0 when either side is empty."""
    set_a, set_b = set(a), set(b)
    if not set_a or not set_b:
        return 0.0
    return len(set_a & set_b) / len(set_a | set_b)


def overlap_similarity(a: Iterable[str], b: Iterable[str]) -> float:
    """Case-insensitive |A ∩ B| / max(|A|, |B|); 0 when either side is empty."""
    set_a = {s.lower() for s in a}
    set_b = {s.lower() for s in b}
    if not set_a or not set_b:
        return 0.0
    return len(set_a & set_b) / max(len(set_a), len(set_b))


def rating_similarity(rating_a: float, rating_b: float) -> float:
    return max(0.0, 1.0 - abs(rating_a - rating_b) / RATING_SCALE)


def year_similarity(year_a: int, year_b: int) -> float:
    return max(0.0, 1.0 - abs(year_a - year_b) / YEAR_SPAN)


def _genre_reason(profile: MovieFeatures, candidate: MovieFeatures) -> str | None:
    common = [name for name in profile.genre_names if name in candidate.genre_names]
    if not common:
        return None
    return f"Similar genres: {', '.join(common)}"


@dataclass
class Channel:
    """One similarity channel."""
    name: str                                                    # weight field on RecommendationWeights
    similarity: Callable[[MovieFeatures, MovieFeatures], float]
    match_threshold: Optional[float]                             # None: never emits a reason
    reason: Callable[[MovieFeatures, MovieFeatures], Optional[str]]
    applies: Callable[[MovieFeatures, MovieFeatures], bool] = lambda profile, candidate: True


def _no_reason(profile: MovieFeatures, candidate: MovieFeatures) -> None:
    return None


# Order here is the order reasons are reported in.
DEFAULT_CHANNELS = [
    Channel(
        name="genre",
        similarity=lambda p, c: jaccard_similarity(p.genres, c.genres),
        match_threshold=MATCH_THRESHOLD_GENRE,
        reason=_genre_reason,
    ),
    Channel(
        name="rating",
        similarity=lambda p, c: rating_similarity(p.rating, c.rating),
        match_threshold=MATCH_THRESHOLD_RATING,
        reason=lambda p, c: f"Similar rating ({c.rating:.1f}/10)",
    ),
    Channel(
        name="director",
        similarity=lambda p, c: overlap_similarity(p.director, c.director),
        match_threshold=MATCH_THRESHOLD_DIRECTOR,
        reason=lambda p, c: "Familiar director style",
        # Only scored when the profile knows at least one director
        applies=lambda p, c: bool(p.director),
    ),
    Channel(
        name="cast",
        similarity=lambda p, c: overlap_similarity(p.cast, c.cast),
        match_threshold=MATCH_THRESHOLD_CAST,
        reason=lambda p, c: "Similar cast members",
    ),
    Channel(
        name="keywords",
        similarity=lambda p, c: overlap_similarity(p.keywords, c.keywords),
        match_threshold=MATCH_THRESHOLD_KEYWORDS,
        reason=lambda p, c: "Similar themes and style",
    ),
    Channel(
        name="year",
        similarity=lambda p, c: year_similarity(p.year, c.year),
        match_threshold=MATCH_THRESHOLD_YEAR,
        reason=lambda p, c: f"From similar era ({c.year})",
    ),
    Channel(
        name="cinematography",
        similarity=lambda p, c: cosine_similarity(p.feature_vector, c.feature_vector),
        match_threshold=None,
        reason=_no_reason,
    ),
]


class ScoringEngine:
    """Composable weighted-average scorer over a list of channels."""

    def __init__(self, channels: list[Channel] | None = None):
        self.channels = channels if channels is not None else DEFAULT_CHANNELS

    def score(
        self,
        profile: MovieFeatures,
        candidate: MovieFeatures,
        weights: RecommendationWeights,
    ) -> tuple[float, list[str]]:
        """Weighted similarity score in [0, 1] plus human-readable match reasons."""
        total_score = 0.0
        total_weight = 0.0
        reasons: list[str] = []

        for channel in self.channels:
            weight = getattr(weights, channel.name, 0)
            if weight <= 0 or not channel.applies(profile, candidate):
                continue

            similarity = channel.similarity(profile, candidate)
            total_score += similarity * (weight / 100)
            total_weight += weight / 100

            if channel.match_threshold is not None and similarity > channel.match_threshold:
                reason = channel.reason(profile, candidate)
                if reason:
                    reasons.append(reason)

        final_score = total_score / total_weight if total_weight > 0 else 0.0
        # Float error on identical vectors can nudge the cosine past 1.0
        return min(1.0, max(0.0, final_score)), reasons

    def channel_breakdown(
        self,
        profile: MovieFeatures,
        candidate: MovieFeatures,
        weights: RecommendationWeights,
    ) -> dict[str, float]:
        """Per-channel raw similarities for active channels, for explanations."""
        return {
            channel.name: channel.similarity(profile, candidate)
            for channel in self.channels
            if getattr(weights, channel.name, 0) > 0 and channel.applies(profile, candidate)
        }


_default_engine = ScoringEngine()


def score_candidate(
    profile: MovieFeatures,
    candidate: MovieFeatures,
    weights: RecommendationWeights,
    engine: ScoringEngine | None = None,
) -> tuple[float, list[str]]:
    """Score with `engine`, or the default channel table when none is given."""
    return (engine or _default_engine).score(profile, candidate, weights)
