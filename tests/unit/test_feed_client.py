"""Unit tests for the feed HTTP layer and client, using httpx.MockTransport."""

from datetime import date
from urllib.parse import parse_qs, urlsplit

import httpx
import pytest

from cricket_sync.errors import ParseError, TransientNetworkError
from cricket_sync.http import FeedHttp, build_url, is_retryable, relay_url
from cricket_sync.io_clients.feed import FeedClient

from tests.fakes import make_match, make_scorecard


def _client(settings, handler):
    http = FeedHttp(settings, client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    return FeedClient(settings, http=http)


def test_build_url_keeps_param_order():
    assert build_url("https://x.test/a", {"b": 1, "a": "two"}) == "https://x.test/a?b=1&a=two"
    assert build_url("https://x.test/a", None) == "https://x.test/a"


def test_relay_url_encodes_target():
    url = relay_url("https://relay.test/fetch", "https://feed.test/path?a=1&b=2")
    assert url == "https://relay.test/fetch?url=https%3A%2F%2Ffeed.test%2Fpath%3Fa%3D1%26b%3D2"


@pytest.mark.asyncio
async def test_fetch_matches_sends_window_params(settings):
    seen = []

    def handler(request):
        seen.append(request.url)
        return httpx.Response(200, json={"matches": [make_match("M1"), make_match("M2")]})

    client = _client(settings, handler)
    matches = await client.fetch_matches(start=date(2025, 1, 1), end=date(2025, 1, 31))
    await client.aclose()

    assert [m.game_id for m in matches] == ["M1", "M2"]
    query = parse_qs(urlsplit(str(seen[0])).query)
    assert query["methodtype"] == ["3"]
    assert query["client"] == [settings.CLIENT_MATCHES]
    assert query["daterange"] == ["01012025-31012025"]
    assert query["timezone"] == ["0530"]
    assert "gamestate" not in query


@pytest.mark.asyncio
async def test_fetch_matches_by_gamestate_with_since(settings):
    def handler(request):
        assert request.url.params["gamestate"] == "4"
        return httpx.Response(200, json={"matches": [
            make_match("OLD", start_date="2024-12-01T10:00:00"),
            make_match("NEW", start_date="2025-01-05T10:00:00"),
            make_match("NODATE", start_date=None),
        ]})

    client = _client(settings, handler)
    matches = await client.fetch_matches(gamestate="4", since="2025-01-01")
    assert [m.game_id for m in matches] == ["NEW"]


@pytest.mark.asyncio
async def test_fetch_matches_skips_malformed_entries(settings):
    def handler(request):
        return httpx.Response(200, json={"matches": [make_match("M1"), "garbage", {"participants": 5}]})

    matches = await _client(settings, handler).fetch_matches(gamestate="4")
    assert [m.game_id for m in matches] == ["M1", None]


@pytest.mark.asyncio
async def test_fetch_matches_returns_empty_on_feed_error(settings):
    def handler(request):
        return httpx.Response(503, text="unavailable")

    assert await _client(settings, handler).fetch_matches(gamestate="4") == []


@pytest.mark.asyncio
async def test_fetch_matches_returns_empty_without_matches_array(settings):
    def handler(request):
        return httpx.Response(200, json={"status": "ok"})

    assert await _client(settings, handler).fetch_matches(gamestate="4") == []


@pytest.mark.asyncio
async def test_fetch_matches_requires_window_or_gamestate(settings):
    client = _client(settings, lambda request: httpx.Response(200, json={}))
    with pytest.raises(ValueError):
        await client.fetch_matches()
    with pytest.raises(ValueError):
        await client.fetch_matches(start=date(2025, 1, 1))


@pytest.mark.asyncio
async def test_fetch_scorecard_returns_data_block(settings):
    def handler(request):
        assert request.url.path == "/cricket/v1/game/scorecard"
        assert request.url.params["game_id"] == "M1"
        assert request.url.params["client_id"] == settings.CLIENT_SCORECARD
        return httpx.Response(200, json={"data": make_scorecard()})

    scorecard = await _client(settings, handler).fetch_scorecard("M1")
    assert scorecard["Matchdetail"]["Status"] == "Team 1 won by 20 runs"


@pytest.mark.asyncio
@pytest.mark.parametrize("response", [
    httpx.Response(404, text="missing"),
    httpx.Response(200, json={"data": {}}),
    httpx.Response(200, json={"data": None}),
    httpx.Response(200, json=[]),
    httpx.Response(200, text="<html>not json</html>"),
])
async def test_fetch_scorecard_returns_none_when_unusable(settings, response):
    scorecard = await _client(settings, lambda request: response).fetch_scorecard("M1")
    assert scorecard is None


@pytest.mark.asyncio
async def test_requests_go_through_relay_when_configured(settings):
    settings.FEED_PROXY_URL = "https://relay.test/fetch"
    seen = []

    def handler(request):
        seen.append(request.url)
        return httpx.Response(200, json={"data": make_scorecard()})

    await _client(settings, handler).fetch_scorecard("M1")

    assert seen[0].host == "relay.test"
    target = seen[0].params["url"]
    assert target.startswith(settings.FEED_BASE_URL + "/cricket/v1/game/scorecard?")
    assert "game_id=M1" in target


@pytest.mark.asyncio
async def test_http_retries_then_raises(settings):
    settings.RETRY_MAX = 3
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(500)

    http = FeedHttp(settings, client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    with pytest.raises(TransientNetworkError) as exc_info:
        await http.get_json("https://feed.test/x")

    assert len(calls) == 3
    assert exc_info.value.status_code == 500


@pytest.mark.asyncio
async def test_http_client_error_fails_without_retrying(settings):
    settings.RETRY_MAX = 3
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(404, text="missing")

    http = FeedHttp(settings, client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    with pytest.raises(TransientNetworkError) as exc_info:
        await http.get_json("https://feed.test/x")

    assert len(calls) == 1
    assert exc_info.value.status_code == 404


@pytest.mark.asyncio
async def test_http_rate_limited_response_is_retried(settings):
    settings.RETRY_MAX = 2
    responses = iter([httpx.Response(429), httpx.Response(200, json={"ok": True})])

    http = FeedHttp(settings, client=httpx.AsyncClient(transport=httpx.MockTransport(lambda r: next(responses))))
    assert await http.get_json("https://feed.test/x") == {"ok": True}


def test_is_retryable():
    request = httpx.Request("GET", "https://feed.test/x")

    def status_error(code):
        return httpx.HTTPStatusError("error", request=request, response=httpx.Response(code, request=request))

    assert is_retryable(status_error(500))
    assert is_retryable(status_error(503))
    assert is_retryable(status_error(429))
    assert not is_retryable(status_error(404))
    assert not is_retryable(status_error(400))
    assert is_retryable(httpx.ReadTimeout("slow", request=request))
    assert not is_retryable(ValueError("boom"))


@pytest.mark.asyncio
async def test_http_recovers_after_transient_failure(settings):
    settings.RETRY_MAX = 2
    responses = iter([httpx.Response(502), httpx.Response(200, json={"ok": True})])

    http = FeedHttp(settings, client=httpx.AsyncClient(transport=httpx.MockTransport(lambda r: next(responses))))
    assert await http.get_json("https://feed.test/x") == {"ok": True}


@pytest.mark.asyncio
async def test_http_connection_error_is_transient(settings):
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    http = FeedHttp(settings, client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    with pytest.raises(TransientNetworkError) as exc_info:
        await http.get_json("https://feed.test/x")
    assert exc_info.value.status_code is None


@pytest.mark.asyncio
async def test_http_bad_json_is_parse_error(settings):
    http = FeedHttp(settings, client=httpx.AsyncClient(
        transport=httpx.MockTransport(lambda r: httpx.Response(200, text="{broken"))))
    with pytest.raises(ParseError):
        await http.get_json("https://feed.test/x")
