import importlib
import sys
from pathlib import Path

import pytest

# Ensure the package under test is importable without installation
PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))


@pytest.fixture
def fresh_config(monkeypatch, tmp_path):
    """
    Reload config with a temporary weights path to keep tests isolated.
    """
    monkeypatch.setenv("TMDB_REC_WEIGHTS", str(tmp_path / "weights.json"))
    import tmdb_rec.config as config

    importlib.reload(config)
    yield config

    monkeypatch.undo()
    importlib.reload(config)


def make_movie(
    movie_id: int,
    title: str = "",
    overview: str = "",
    genre_ids=None,
    vote_average: float = 7.0,
    release_date: str | None = "2010-01-01",
    popularity: float = 10.0,
    original_language: str = "en",
):
    """A TMDB list-endpoint movie record."""
    return {
        "id": movie_id,
        "title": title or f"Movie {movie_id}",
        "overview": overview,
        "release_date": release_date,
        "vote_average": vote_average,
        "poster_path": f"/poster{movie_id}.jpg",
        "genre_ids": list(genre_ids or []),
        "popularity": popularity,
        "original_language": original_language,
    }


def make_details(
    movie_id: int,
    genres=None,
    cast=None,
    directors=None,
    runtime: int | None = 110,
):
    """A TMDB /movie/{id}?append_to_response=credits payload."""
    return {
        "id": movie_id,
        "genres": [{"id": gid, "name": name} for gid, name in (genres or [])],
        "runtime": runtime,
        "credits": {
            "cast": [{"name": name, "character": "Someone"} for name in (cast or [])],
            "crew": [{"name": name, "job": "Director"} for name in (directors or [])],
        },
    }


@pytest.fixture
def movie_factory():
    return make_movie


@pytest.fixture
def details_factory():
    return make_details
