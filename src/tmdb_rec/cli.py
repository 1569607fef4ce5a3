import argparse
import asyncio
import json
import logging
import signal
from contextlib import contextmanager

from .candidates import gather_candidates
from .config import (
    CANDIDATE_SOURCES,
    DEFAULT_LIMIT,
    DEFAULT_MIN_SCORE,
    DEFAULT_MAX_CONCURRENT,
)
from .features import extract_movie_features
from .recommender import Recommender, RecommendationResult, build_request, InvalidRequestError
from .tmdb import TMDBClient, TMDBError
from .weights import CHANNELS, RecommendationWeights, load_weights

logger = logging.getLogger(__name__)


def details_to_record(details: dict, movie_id: int | None = None) -> dict:
    """Reduce a movie details payload to the list-endpoint record shape."""
    return {
        "id": details.get("id", movie_id),
        "title": details.get("title") or "",
        "overview": details.get("overview") or "",
        "release_date": details.get("release_date") or "",
        "vote_average": details.get("vote_average") or 0.0,
        "poster_path": details.get("poster_path"),
        "genre_ids": [g["id"] for g in details.get("genres") or [] if "id" in g],
        "popularity": details.get("popularity") or 0.0,
        "original_language": details.get("original_language") or "en",
    }


def _resolve_weights(args: argparse.Namespace) -> RecommendationWeights:
    """File (or defaults) first, then per-channel command-line overrides."""
    weights = load_weights(args.weights_file) if getattr(args, 'weights_file', None) else None
    if weights is None:
        weights = RecommendationWeights.defaults()

    overrides = {
        name: getattr(args, f"{name}_weight")
        for name in CHANNELS
        if getattr(args, f"{name}_weight", None) is not None
    }
    if overrides:
        merged = weights.to_dict()
        merged.update(overrides)
        weights = RecommendationWeights.from_dict(merged)
    return weights


async def _fetch_records(client: TMDBClient, movie_ids: list[int]) -> list[dict]:
    """Look up selected movies by id; ids that fail are logged and skipped."""
    outcomes = await asyncio.gather(
        *(client.get_movie_details(movie_id) for movie_id in movie_ids),
        return_exceptions=True,
    )
    records = []
    for movie_id, outcome in zip(movie_ids, outcomes):
        if isinstance(outcome, TMDBError):
            logger.warning(f"Could not load movie {movie_id}: {outcome}")
        elif isinstance(outcome, BaseException):
            raise outcome
        else:
            records.append(details_to_record(outcome, movie_id))
    return records


@contextmanager
def _cancellation(cancel_event: asyncio.Event, timeout: float | None):
    """Ctrl-C or the deadline stops new batches; in-flight lookups finish."""
    loop = asyncio.get_running_loop()
    handles_sigint = True
    try:
        loop.add_signal_handler(signal.SIGINT, cancel_event.set)
    except (NotImplementedError, RuntimeError, ValueError):
        handles_sigint = False
        logger.debug("Signal handlers unavailable; Ctrl-C will abort immediately")
    deadline = loop.call_later(timeout, cancel_event.set) if timeout else None

    try:
        yield cancel_event
    finally:
        if deadline:
            deadline.cancel()
        if handles_sigint:
            loop.remove_signal_handler(signal.SIGINT)


async def _run_recommend(args: argparse.Namespace) -> list[RecommendationResult]:
    weights = _resolve_weights(args)

    async with TMDBClient(max_concurrent=args.max_concurrent) as client:
        selected = await _fetch_records(client, args.movie_ids)
        if not selected:
            logger.error("None of the selected movies could be loaded from TMDB")
            return []

        request = build_request(selected, weights, limit=args.limit, min_score=args.min_score)
        candidates = await gather_candidates(
            client,
            selected,
            source=args.source,
            genre_filter=args.genres,
            year_filter=args.year,
            rating_filter=args.min_rating,
        )
        if not candidates:
            logger.warning("No candidate movies found")
            return []

        recommender = Recommender(client.get_movie_details)
        with _cancellation(asyncio.Event(), args.timeout) as cancel_event:
            recs = await recommender.recommend(
                request,
                candidates,
                cancel_event=cancel_event,
                show_progress=not args.verbose,
                explain=args.explain,
            )

    _output_recommendations(recs, args)
    return recs


def _output_recommendations(recs: list[RecommendationResult], args: argparse.Namespace) -> None:
    """Format and log recommendations in the requested format."""
    output_format = getattr(args, 'format', 'text')

    if output_format == 'json':
        output = [rec.to_dict() for rec in recs]
        logger.info(json.dumps(output, indent=2))
        return

    logger.info(f"\nTop {len(recs)} recommendations:")
    for i, rec in enumerate(recs, 1):
        year = (rec.movie.get("release_date") or "")[:4] or "?"
        logger.info(f"{i}. {rec.movie.get('title')} ({year}) - Score: {rec.score:.3f}")
        if rec.reasons:
            logger.info(f"   Why: {', '.join(rec.reasons[:3])}")
        if rec.channels:
            breakdown = ", ".join(f"{k} {v:.2f}" for k, v in rec.channels.items())
            logger.info(f"   Channels: {breakdown}")


def cmd_recommend(args: argparse.Namespace) -> None:
    """Generate recommendations for a set of liked movie ids."""
    try:
        asyncio.run(_run_recommend(args))
    except InvalidRequestError as exc:
        logger.error(f"Invalid request: {exc}")


async def _run_features(args: argparse.Namespace) -> dict | None:
    async with TMDBClient() as client:
        records = await _fetch_records(client, [args.movie_id])
        if not records:
            logger.error(f"Movie {args.movie_id} could not be loaded from TMDB")
            return None
        features = await extract_movie_features(records[0], client.get_movie_details)
    payload = features.to_dict()
    logger.info(json.dumps(payload, indent=2))
    return payload


def cmd_features(args: argparse.Namespace) -> None:
    """Show the extracted feature set for one movie."""
    asyncio.run(_run_features(args))


def cmd_weights(args: argparse.Namespace) -> None:
    """Show the effective channel weights."""
    weights = _resolve_weights(args)
    logger.info(json.dumps(weights.to_dict(), indent=2))


def _add_weight_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--weights-file", help="JSON file with channel weights (0-100)")
    for name in CHANNELS:
        parser.add_argument(f"--{name}-weight", type=int, dest=f"{name}_weight", metavar="N",
                            help=f"Importance of {name} similarity (0-100)")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="TMDB content-based movie recommender")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # Recommend command
    rec_parser = subparsers.add_parser("recommend", help="Generate recommendations")
    rec_parser.add_argument("movie_ids", nargs="+", type=int, help="TMDB ids of movies you like")
    rec_parser.add_argument("--source", choices=CANDIDATE_SOURCES, default="mixed",
                            help="Where candidate movies come from")
    rec_parser.add_argument("--genres", nargs="+", type=int, help="Genre ids to discover candidates from")
    rec_parser.add_argument("--year", type=int, help="Release year filter (discover source)")
    rec_parser.add_argument("--min-rating", type=float, help="Minimum vote average (discover source)")
    rec_parser.add_argument("--limit", type=int, default=DEFAULT_LIMIT, help="Number of recommendations")
    rec_parser.add_argument("--min-score", type=float, default=DEFAULT_MIN_SCORE,
                            help="Minimum similarity score (0-1)")
    rec_parser.add_argument("--max-concurrent", type=int, default=DEFAULT_MAX_CONCURRENT,
                            help="Max concurrent TMDB requests")
    rec_parser.add_argument("--timeout", type=float,
                            help="Stop starting new scoring batches after this many seconds")
    rec_parser.add_argument("--format", choices=['text', 'json'], default='text', help="Output format")
    rec_parser.add_argument("--explain", action="store_true",
                            help="Show per-channel similarities for each recommendation")
    _add_weight_arguments(rec_parser)
    rec_parser.set_defaults(func=cmd_recommend)

    # Features command
    features_parser = subparsers.add_parser("features", help="Show extracted features for a movie")
    features_parser.add_argument("movie_id", type=int, help="TMDB movie id")
    features_parser.set_defaults(func=cmd_features)

    # Weights command
    weights_parser = subparsers.add_parser("weights", help="Show effective channel weights")
    _add_weight_arguments(weights_parser)
    weights_parser.set_defaults(func=cmd_weights)

    return parser


def main():
    parser = build_parser()
    args = parser.parse_args()

    # Configure logging based on verbosity
    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    args.func(args)


if __name__ == "__main__":
    main()
