import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from tqdm import tqdm

from .features import MovieFeatures, DetailsLookup, extract_movie_features
from .profile import build_profile
from .similarity import ScoringEngine, score_candidate
from .weights import RecommendationWeights
from .config import (
    BATCH_SIZE,
    DEFAULT_MIN_SCORE,
    DEFAULT_LIMIT,
    MAX_LIMIT,
    TMDB_IMAGE_BASE_URL,
)

logger = logging.getLogger(__name__)


class InvalidRequestError(ValueError):
    """A recommendation request is missing required input."""


@dataclass
class RecommendationRequest:
    selected_movies: list[dict]
    weights: RecommendationWeights
    exclude_ids: list[int] = field(default_factory=list)
    limit: int = DEFAULT_LIMIT
    min_score: float | None = None

    @property
    def effective_min_score(self) -> float:
        return DEFAULT_MIN_SCORE if self.min_score is None else self.min_score


@dataclass
class RecommendationResult:
    movie: dict
    score: float
    reasons: list[str] = field(default_factory=list)
    channels: dict[str, float] | None = None  # per-channel similarities, only when explaining

    def to_dict(self) -> dict:
        poster = self.movie.get("poster_path")
        data = {
            "movie": self.movie,
            "score": round(self.score, 3),
            "reasons": self.reasons,
            "tmdb_image_url": f"{TMDB_IMAGE_BASE_URL}{poster}" if poster else None,
        }
        if self.channels is not None:
            data["channels"] = {k: round(v, 3) for k, v in self.channels.items()}
        return data


def build_request(
    selected_movies: Sequence[dict] | None,
    weights: RecommendationWeights | dict | None,
    limit: int | None = None,
    min_score: float | None = None,
) -> RecommendationRequest:
    """
    Validate caller input and fill defaults.

    Selected movies are always excluded from the candidates. The limit is
    capped at MAX_LIMIT.
    """
    if not selected_movies:
        raise InvalidRequestError("At least one selected movie is required")
    if weights is None:
        raise InvalidRequestError("Recommendation weights are required")
    if isinstance(weights, dict):
        weights = RecommendationWeights.from_dict(weights)

    effective_limit = min(limit or DEFAULT_LIMIT, MAX_LIMIT)
    return RecommendationRequest(
        selected_movies=list(selected_movies),
        weights=weights,
        exclude_ids=[m["id"] for m in selected_movies if "id" in m],
        limit=max(effective_limit, 0),
        min_score=DEFAULT_MIN_SCORE if min_score is None else min_score,
    )


def _describe(movie: dict) -> str:
    return f"{movie.get('id')} ({movie.get('title', '?')})"


async def _extract_selected(selected_movies: list[dict], lookup: DetailsLookup | None) -> list[MovieFeatures]:
    """Extract all selected movies concurrently, skipping any that fail."""
    outcomes = await asyncio.gather(
        *(extract_movie_features(movie, lookup) for movie in selected_movies),
        return_exceptions=True,
    )

    features: list[MovieFeatures] = []
    for movie, outcome in zip(selected_movies, outcomes):
        if isinstance(outcome, Exception):
            logger.warning(
                f"Failed to extract features for selected movie {_describe(movie)}: "
                f"{type(outcome).__name__}: {outcome}"
            )
        elif isinstance(outcome, BaseException):
            raise outcome
        else:
            features.append(outcome)
    return features


async def _score_candidate(
    candidate: dict,
    profile: MovieFeatures,
    weights: RecommendationWeights,
    lookup: DetailsLookup | None,
    engine: ScoringEngine,
    explain: bool = False,
) -> RecommendationResult:
    features = await extract_movie_features(candidate, lookup)
    score, reasons = score_candidate(profile, features, weights, engine)
    channels = engine.channel_breakdown(profile, features, weights) if explain else None
    return RecommendationResult(movie=candidate, score=score, reasons=reasons, channels=channels)


async def generate_recommendations(
    request: RecommendationRequest,
    candidate_movies: Sequence[dict],
    lookup: DetailsLookup | None = None,
    *,
    batch_size: int = BATCH_SIZE,
    cancel_event: asyncio.Event | None = None,
    show_progress: bool = False,
    engine: ScoringEngine | None = None,
    explain: bool = False,
) -> list[RecommendationResult]:
    """
    Rank candidate movies against a profile built from the selected movies.

    Candidates are scored in sequential batches of `batch_size`, each batch
    running concurrently. Per-movie failures are logged and skipped; if no
    selected movie can be extracted the result is empty. Setting
    `cancel_event` stops new batches from starting and returns what has been
    ranked so far. With `explain`, each result carries its per-channel
    similarities.
    """
    engine = engine or ScoringEngine()
    min_score = request.effective_min_score
    logger.info(
        f"Starting recommendation generation for {len(request.selected_movies)} selected movies "
        f"and {len(candidate_movies)} candidates"
    )

    selected_features = await _extract_selected(request.selected_movies, lookup)
    if not selected_features:
        logger.error("Failed to extract features for any selected movies")
        return []
    logger.info(f"Successfully extracted features for {len(selected_features)} selected movies")

    profile = build_profile(selected_features)
    logger.info(f"Generated user profile with top genres: {profile.genres[:3]}")

    excluded = set(request.exclude_ids)
    filtered = [movie for movie in candidate_movies if movie.get("id") not in excluded]
    logger.info(f"Processing {len(filtered)} candidate movies (after exclusions)")

    recommendations: list[RecommendationResult] = []
    step = max(batch_size, 1)
    batch_starts = range(0, len(filtered), step)

    for batch_number, start in enumerate(
        tqdm(batch_starts, desc="Scoring", unit="batch", disable=not show_progress), 1
    ):
        if cancel_event is not None and cancel_event.is_set():
            logger.warning(f"Cancelled before batch {batch_number}; ranking {len(recommendations)} results so far")
            break

        batch = filtered[start:start + step]
        outcomes = await asyncio.gather(
            *(_score_candidate(c, profile, request.weights, lookup, engine, explain) for c in batch),
            return_exceptions=True,
        )

        valid: list[RecommendationResult] = []
        for candidate, outcome in zip(batch, outcomes):
            if isinstance(outcome, Exception):
                logger.warning(
                    f"Failed to process candidate movie {_describe(candidate)}: "
                    f"{type(outcome).__name__}: {outcome}"
                )
            elif isinstance(outcome, BaseException):
                raise outcome
            elif outcome.score >= min_score:
                valid.append(outcome)

        recommendations.extend(valid)
        logger.info(f"Processed batch {batch_number}, found {len(valid)} valid recommendations")

    logger.info(f"Total recommendations found: {len(recommendations)}")

    recommendations.sort(key=lambda r: r.score, reverse=True)
    final = recommendations[:max(request.limit, 0)]
    logger.info(f"Returning top {len(final)} recommendations")
    return final


class Recommender:
    """Binds a details lookup and batching policy for repeated requests."""

    def __init__(
        self,
        lookup: DetailsLookup | None,
        batch_size: int = BATCH_SIZE,
        engine: ScoringEngine | None = None,
    ):
        self.lookup = lookup
        self.batch_size = batch_size
        self.engine = engine or ScoringEngine()

    async def recommend(
        self,
        request: RecommendationRequest,
        candidate_movies: Sequence[dict],
        cancel_event: asyncio.Event | None = None,
        show_progress: bool = False,
        explain: bool = False,
    ) -> list[RecommendationResult]:
        return await generate_recommendations(
            request,
            candidate_movies,
            self.lookup,
            batch_size=self.batch_size,
            cancel_event=cancel_event,
            show_progress=show_progress,
            engine=self.engine,
            explain=explain,
        )

    async def explain(self, request: RecommendationRequest, candidate: dict) -> dict:
        """Per-channel similarities of one candidate against the request's profile."""
        selected_features = await _extract_selected(request.selected_movies, self.lookup)
        profile = build_profile(selected_features)
        features = await extract_movie_features(candidate, self.lookup)
        score, reasons = self.engine.score(profile, features, request.weights)
        return {
            "movie_id": candidate.get("id"),
            "score": score,
            "reasons": reasons,
            "channels": self.engine.channel_breakdown(profile, features, request.weights),
        }
