import httpx
import pytest

from tmdb_rec import candidates
from tmdb_rec.tmdb import TMDBClient


def _page(*ids):
    return {"results": [{"id": i, "title": f"Movie {i}"} for i in ids]}


def _client(routes):
    requested = []

    def handler(request: httpx.Request) -> httpx.Response:
        key = (request.url.path, request.url.params.get("page"))
        requested.append(key)
        if key not in routes:
            return httpx.Response(500)
        return httpx.Response(200, json=routes[key])

    client = TMDBClient(
        token="t",
        transport=httpx.MockTransport(handler),
        max_retries=0,
        retry_base_delay=0.0,
    )
    return client, requested


def test_dedupe_movies_keeps_first_occurrence():
    movies = [{"id": 1, "title": "a"}, {"id": 2}, {"id": 1, "title": "b"}, {"title": "no id"}]

    unique = candidates.dedupe_movies(movies)

    assert [m["id"] for m in unique] == [1, 2]
    assert unique[0]["title"] == "a"


@pytest.mark.asyncio
async def test_mixed_source_combines_lists_and_similar_movies():
    routes = {
        ("/3/movie/popular", "1"): _page(1, 2, 3),
        ("/3/movie/top_rated", "1"): _page(3, 4),
        ("/3/movie/100/similar", "1"): _page(4, 5),
        ("/3/movie/200/similar", "1"): _page(6),
    }
    client, _ = _client(routes)
    selected = [{"id": 100}, {"id": 200}]

    async with client:
        pool = await candidates.gather_candidates(client, selected)

    assert [m["id"] for m in pool] == [1, 2, 3, 4, 5, 6]


@pytest.mark.asyncio
async def test_failed_fetches_shrink_pool_instead_of_raising():
    routes = {
        ("/3/movie/popular", "1"): _page(1),
        # top_rated page is missing -> HTTP 500
    }
    client, _ = _client(routes)

    async with client:
        pool = await candidates.gather_candidates(client, [{"id": 100}])

    assert [m["id"] for m in pool] == [1]


@pytest.mark.asyncio
async def test_popular_source_fetches_two_pages_and_caps_pool():
    routes = {
        ("/3/movie/popular", "1"): _page(*range(1, 21)),
        ("/3/movie/popular", "2"): _page(*range(21, 41)),
        ("/3/movie/9/similar", "1"): _page(99),
    }
    client, requested = _client(routes)

    async with client:
        pool = await candidates.gather_candidates(client, [{"id": 9}], source="popular", max_candidates=25)

    assert len(pool) == 25
    assert pool[0]["id"] == 1
    assert ("/3/movie/popular", "2") in requested


@pytest.mark.asyncio
async def test_only_first_three_selected_movies_seed_similar_lists():
    routes = {
        ("/3/movie/top_rated", "1"): _page(1),
        ("/3/movie/top_rated", "2"): _page(2),
    }
    client, requested = _client(routes)
    selected = [{"id": i} for i in (10, 11, 12, 13)]

    async with client:
        await candidates.gather_candidates(client, selected, source="top_rated")

    similar_paths = {path for path, _ in requested if path.endswith("/similar")}
    assert similar_paths == {"/3/movie/10/similar", "/3/movie/11/similar", "/3/movie/12/similar"}


@pytest.mark.asyncio
async def test_unknown_source_is_rejected():
    client, _ = _client({})

    with pytest.raises(ValueError):
        await candidates.gather_candidates(client, [], source="trending")
