"""
Configuration constants for the TMDB recommender.

This module centralizes all magic numbers and configurable parameters.
Values can be overridden via environment variables where noted.
"""
import os
import logging
from pathlib import Path

logger = logging.getLogger(__name__)


def _get_float_env(key: str, default: float, min_val: float = 0) -> float:
    """
    Safely parse float from environment variable with validation.

    Args:
        key: Environment variable name
        default: Default value if not set or invalid
        min_val: Minimum allowed value

    Returns:
        Validated float value
    """
    try:
        val = float(os.environ.get(key, default))
        if val < min_val:
            logger.warning(f"{key}={val} is below minimum {min_val}, using {min_val}")
            return min_val
        return val
    except ValueError:
        logger.warning(f"Invalid {key}='{os.environ.get(key)}', using default {default}")
        return default


def _get_int_env(key: str, default: int, min_val: int = 1) -> int:
    """
    Safely parse integer from environment variable with validation.

    Args:
        key: Environment variable name
        default: Default value if not set or invalid
        min_val: Minimum allowed value

    Returns:
        Validated integer value
    """
    try:
        val = int(os.environ.get(key, default))
        if val < min_val:
            logger.warning(f"{key}={val} is below minimum {min_val}, using {min_val}")
            return min_val
        return val
    except ValueError:
        logger.warning(f"Invalid {key}='{os.environ.get(key)}', using default {default}")
        return default


# TMDB API
TMDB_BASE_URL = os.environ.get("TMDB_BASE_URL", "https://api.themoviedb.org/3")
TMDB_READ_TOKEN = os.environ.get("TMDB_READ_TOKEN") or os.environ.get("TMDB_ACCESS_TOKEN") or ""
TMDB_IMAGE_BASE_URL = "https://image.tmdb.org/t/p/w500"
USER_AGENT = "tmdb-rec/1.0"

# HTTP client
HTTP_TIMEOUT = _get_float_env("TMDB_HTTP_TIMEOUT", 10.0, min_val=0.5)
HTTP2_ENABLED = os.environ.get("TMDB_HTTP2", "1") not in ("0", "false", "False")
MAX_HTTP_RETRIES = _get_int_env("TMDB_MAX_RETRIES", 2, min_val=0)
RETRY_BASE_DELAY = 0.5  # First backoff step in seconds
RETRY_MAX_DELAY = 3.0   # Backoff ceiling in seconds
DEFAULT_MAX_CONCURRENT = _get_int_env("TMDB_MAX_CONCURRENT", 10, min_val=1)

# Orchestration
BATCH_SIZE = _get_int_env("TMDB_REC_BATCH_SIZE", 10, min_val=1)
DEFAULT_MIN_SCORE = 0.1
DEFAULT_LIMIT = 20
MAX_LIMIT = 50

# Candidate sourcing
MAX_CANDIDATES = 200
SIMILAR_SEED_MOVIES = 3  # Selected movies whose /similar lists join the pool
CANDIDATE_SOURCES = ("popular", "top_rated", "discover", "mixed")

# Weights file (optional)
WEIGHTS_PATH = Path(os.environ.get("TMDB_REC_WEIGHTS", "data/weights.json"))

# Feature extraction defaults
DEFAULT_RELEASE_DATE = "2000-01-01"
DEFAULT_YEAR = 2000
DEFAULT_RUNTIME = 120
DEFAULT_LANGUAGE = "en"
MAX_CAST = 10
MAX_KEYWORDS = 20
MIN_KEYWORD_LENGTH = 3
DIRECTOR_JOB = "Director"

# Profile synthesis
PROFILE_ID = -1
PROFILE_TITLE = "User Profile"
PROFILE_TOP_GENRES = 5
PROFILE_TOP_DIRECTORS = 5
PROFILE_TOP_CAST = 10
PROFILE_TOP_KEYWORDS = 10

# Similarity scaling
RATING_SCALE = 10.0
YEAR_SPAN = 50.0

# Match thresholds (similarity above which a reason is emitted)
MATCH_THRESHOLD_GENRE = 0.5
MATCH_THRESHOLD_RATING = 0.7
MATCH_THRESHOLD_DIRECTOR = 0.5
MATCH_THRESHOLD_CAST = 0.3
MATCH_THRESHOLD_KEYWORDS = 0.3
MATCH_THRESHOLD_YEAR = 0.8

# Feature vector layout
REFERENCE_GENRES = (
    28,     # Action
    12,     # Adventure
    16,     # Animation
    35,     # Comedy
    80,     # Crime
    99,     # Documentary
    18,     # Drama
    10751,  # Family
    14,     # Fantasy
    36,     # History
    27,     # Horror
    10402,  # Music
    9648,   # Mystery
    10749,  # Romance
    878,    # Science Fiction
    53,     # Thriller
    10752,  # War
    37,     # Western
)
REFERENCE_LANGUAGES = ("en", "hi", "es", "fr", "de", "it", "ja", "ko", "zh")
YEAR_ORIGIN = 1900
YEAR_RANGE = 130.0
POPULARITY_LOG_SCALE = 10.0
RUNTIME_CAP = 300.0

STOP_WORDS = frozenset({
    'the', 'a', 'an', 'and', 'or', 'but', 'in', 'on', 'at', 'to', 'for', 'of',
    'with', 'by', 'is', 'are', 'was', 'were', 'be', 'been', 'being', 'have',
    'has', 'had', 'do', 'does', 'did', 'will', 'would', 'should', 'could',
    'can', 'may', 'might', 'must', 'shall', 'this', 'that', 'these', 'those',
    'i', 'you', 'he', 'she', 'it', 'we', 'they', 'me', 'him', 'her', 'us',
    'them',
})

# Default channel weights (0-100) when the caller supplies none
DEFAULT_CHANNEL_WEIGHTS = {
    'genre': 75,
    'rating': 60,
    'director': 50,
    'cast': 65,
    'cinematography': 40,
    'keywords': 55,
    'year': 30,
}
