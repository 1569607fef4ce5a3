import httpx
import pytest

from tmdb_rec import tmdb


def _client(handler, **kwargs):
    kwargs.setdefault("retry_base_delay", 0.0)
    kwargs.setdefault("max_retries", 2)
    return tmdb.TMDBClient(token="test-token", transport=httpx.MockTransport(handler), **kwargs)


def test_backoff_delay_is_exponential_and_capped():
    assert tmdb.backoff_delay(0) == 0.5
    assert tmdb.backoff_delay(1) == 1.0
    assert tmdb.backoff_delay(2) == 2.0
    assert tmdb.backoff_delay(3) == 3.0
    assert tmdb.backoff_delay(10) == 3.0


@pytest.mark.asyncio
async def test_get_movie_details_sends_auth_and_credits_param():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["params"] = dict(request.url.params)
        seen["auth"] = request.headers.get("Authorization")
        return httpx.Response(200, json={"id": 550, "runtime": 139})

    async with _client(handler) as client:
        details = await client.get_movie_details(550)

    assert details["runtime"] == 139
    assert seen["path"] == "/3/movie/550"
    assert seen["params"] == {"append_to_response": "credits"}
    assert seen["auth"] == "Bearer test-token"


@pytest.mark.asyncio
async def test_not_found_raises_without_retry():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.path)
        return httpx.Response(404, json={"status_message": "not found"})

    async with _client(handler) as client:
        with pytest.raises(tmdb.MovieNotFoundError):
            await client.get_movie_details(1)

    assert len(calls) == 1


@pytest.mark.asyncio
async def test_client_errors_are_not_retried():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(1)
        return httpx.Response(401)

    async with _client(handler) as client:
        with pytest.raises(tmdb.TMDBError) as excinfo:
            await client.get_movie_details(1)

    assert not isinstance(excinfo.value, tmdb.MovieNotFoundError)
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_server_errors_are_retried_until_success():
    responses = iter([httpx.Response(502), httpx.Response(503), httpx.Response(200, json={"id": 3})])
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(1)
        return next(responses)

    async with _client(handler) as client:
        details = await client.get_movie_details(3)

    assert details == {"id": 3}
    assert len(calls) == 3


@pytest.mark.asyncio
async def test_persistent_server_errors_raise_after_retries():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(1)
        return httpx.Response(500)

    async with _client(handler, max_retries=1) as client:
        with pytest.raises(tmdb.TMDBError):
            await client.get_movie_details(3)

    assert len(calls) == 2


@pytest.mark.asyncio
async def test_rate_limit_and_timeouts_are_retried():
    state = {"calls": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        state["calls"] += 1
        if state["calls"] == 1:
            return httpx.Response(429, headers={"Retry-After": "0"})
        if state["calls"] == 2:
            raise httpx.ReadTimeout("slow", request=request)
        return httpx.Response(200, json={"results": [{"id": 1}, {"id": 2}]})

    async with _client(handler) as client:
        results = await client.get_popular(1)

    assert [m["id"] for m in results] == [1, 2]
    assert state["calls"] == 3


@pytest.mark.asyncio
async def test_invalid_json_raises_tmdb_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>oops</html>")

    async with _client(handler) as client:
        with pytest.raises(tmdb.TMDBError):
            await client.get_movie_details(9)


@pytest.mark.asyncio
async def test_standalone_client_uses_temporary_session():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"results": [{"id": 7}]})

    client = _client(handler)
    results = await client.get_top_rated(2)

    assert results == [{"id": 7}]
    assert client.client is None


@pytest.mark.asyncio
async def test_discover_builds_filter_params():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["params"] = dict(request.url.params)
        return httpx.Response(200, json={"results": []})

    async with _client(handler) as client:
        results = await client.discover(genres=[28, 12], min_rating=7.5, year=1999, page=2)

    assert results == []
    assert seen["path"] == "/3/discover/movie"
    assert seen["params"] == {
        "page": "2",
        "sort_by": "popularity.desc",
        "with_genres": "28,12",
        "vote_average.gte": "7.5",
        "primary_release_year": "1999",
    }


@pytest.mark.asyncio
async def test_list_endpoints_tolerate_missing_results():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/3/movie/5/similar"
        return httpx.Response(200, json={"page": 1})

    async with _client(handler) as client:
        assert await client.get_similar(5) == []
