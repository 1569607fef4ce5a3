"""
Caller-supplied channel importance weights.

Each channel carries an integer importance in [0, 100]. The set is not
required to sum to anything: scoring normalizes by the active weight total.
Weights can be persisted as a flat JSON object keyed by channel name.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

from .config import DEFAULT_CHANNEL_WEIGHTS, WEIGHTS_PATH

logger = logging.getLogger(__name__)

MIN_WEIGHT = 0
MAX_WEIGHT = 100

CHANNELS = ("genre", "rating", "director", "cast", "cinematography", "keywords", "year")


def _clamp_weight(value: Any) -> int:
    try:
        numeric = int(round(float(value)))
    except (TypeError, ValueError, OverflowError):
        logger.warning(f"Invalid weight value {value!r}, using {MIN_WEIGHT}")
        return MIN_WEIGHT
    return max(MIN_WEIGHT, min(MAX_WEIGHT, numeric))


@dataclass
class RecommendationWeights:
    """Relative importance of each similarity channel."""

    genre: int = 0
    rating: int = 0
    director: int = 0
    cast: int = 0
    cinematography: int = 0
    keywords: int = 0
    year: int = 0

    def __post_init__(self) -> None:
        """Coerce every channel to an int in [0, 100]."""
        for f in fields(self):
            setattr(self, f.name, _clamp_weight(getattr(self, f.name)))

    def is_zero(self) -> bool:
        return all(getattr(self, name) == 0 for name in CHANNELS)

    def to_dict(self) -> dict[str, int]:
        return {name: getattr(self, name) for name in CHANNELS}

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "RecommendationWeights":
        """Build from a mapping; unknown keys are ignored, missing ones are 0."""
        unknown = set(payload) - set(CHANNELS)
        if unknown:
            logger.debug(f"Ignoring unknown weight keys: {sorted(unknown)}")
        return cls(**{name: payload.get(name, 0) for name in CHANNELS})

    @classmethod
    def defaults(cls) -> "RecommendationWeights":
        return cls.from_dict(DEFAULT_CHANNEL_WEIGHTS)


def load_weights(path: str | Path | None = None) -> RecommendationWeights | None:
    """Load weights from disk; return None if missing or invalid."""
    weight_path = Path(path) if path else WEIGHTS_PATH
    if not weight_path.exists():
        logger.debug("Weights file not found at %s; using defaults", weight_path)
        return None

    try:
        payload = json.loads(weight_path.read_text())
    except (OSError, json.JSONDecodeError) as exc:
        logger.warning("Failed to load weights from %s: %s", weight_path, exc)
        return None

    if not isinstance(payload, dict):
        logger.warning("Weights file %s does not contain a JSON object", weight_path)
        return None
    return RecommendationWeights.from_dict(payload)


def save_weights(weights: RecommendationWeights, path: str | Path | None = None) -> Path:
    """Persist weights to disk."""
    weight_path = Path(path) if path else WEIGHTS_PATH
    weight_path.parent.mkdir(parents=True, exist_ok=True)
    weight_path.write_text(json.dumps(weights.to_dict(), indent=2))
    return weight_path
