import json

from tmdb_rec.weights import (
    CHANNELS,
    MAX_WEIGHT,
    MIN_WEIGHT,
    RecommendationWeights,
    load_weights,
    save_weights,
)


def test_weights_clamp_and_coerce_values():
    weights = RecommendationWeights(genre=150, rating=-5, director="40", cast="bad", year=12.6)

    assert weights.genre == MAX_WEIGHT
    assert weights.rating == MIN_WEIGHT
    assert weights.director == 40
    assert weights.cast == MIN_WEIGHT
    assert weights.year == 13


def test_from_dict_ignores_unknown_and_defaults_missing():
    weights = RecommendationWeights.from_dict({"genre": 75, "mood": 90})

    assert weights.genre == 75
    assert weights.rating == 0
    assert not hasattr(weights, "mood")
    assert set(weights.to_dict()) == set(CHANNELS)


def test_is_zero_and_defaults():
    assert RecommendationWeights().is_zero()
    defaults = RecommendationWeights.defaults()
    assert not defaults.is_zero()
    assert defaults.to_dict() == {
        "genre": 75,
        "rating": 60,
        "director": 50,
        "cast": 65,
        "cinematography": 40,
        "keywords": 55,
        "year": 30,
    }


def test_load_weights_handles_missing_invalid_and_reads_file(tmp_path):
    assert load_weights(tmp_path / "missing.json") is None

    broken = tmp_path / "broken.json"
    broken.write_text("{not json")
    assert load_weights(broken) is None

    not_object = tmp_path / "list.json"
    not_object.write_text("[1, 2, 3]")
    assert load_weights(not_object) is None

    path = tmp_path / "weights.json"
    path.write_text(json.dumps({"genre": 90, "year": 10}))
    weights = load_weights(path)
    assert weights is not None
    assert weights.genre == 90
    assert weights.year == 10


def test_save_weights_writes_json(tmp_path):
    path = tmp_path / "nested" / "weights.json"

    saved_path = save_weights(RecommendationWeights(cast=33), path)

    assert saved_path.exists()
    assert json.loads(saved_path.read_text())["cast"] == 33


def test_non_finite_weights_fall_back_to_minimum(tmp_path):
    path = tmp_path / "huge.json"
    path.write_text('{"genre": 1e400, "cast": 40}')

    weights = load_weights(path)

    assert weights is not None
    assert weights.genre == MIN_WEIGHT
    assert weights.cast == 40
    assert RecommendationWeights(rating=float("nan")).rating == MIN_WEIGHT
