import asyncio

import httpx
import pytest

from stormwatch.feed import (
    AlertFeedClient,
    FeedPayloadError,
    FeedUnavailableError,
    extract_features,
)


def _client(feed_stub) -> AlertFeedClient:
    return AlertFeedClient(
        base_url="https://alerts.test/",
        user_agent="(stormwatch-tests, ops@example.com)",
        transport=feed_stub.transport,
    )


def test_fetch_features_queries_point_with_identifying_headers(feed_stub, make_feature) -> None:
    feed_stub.features = [make_feature("alert-1")]

    features = asyncio.run(_client(feed_stub).fetch_features(40.7128, -74.006))

    assert [feature["id"] for feature in features] == ["alert-1"]
    request = feed_stub.requests[0]
    assert request.url.path == "/alerts/active"
    assert request.url.params["point"] == "40.7128,-74.006"
    assert request.headers["User-Agent"] == "(stormwatch-tests, ops@example.com)"
    assert request.headers["Accept"] == "application/geo+json"


def test_error_status_is_reported_as_unavailable(feed_stub) -> None:
    feed_stub.status_code = 503

    with pytest.raises(FeedUnavailableError):
        asyncio.run(_client(feed_stub).fetch_features(1.0, 2.0))


def test_transport_errors_are_wrapped(feed_stub) -> None:
    feed_stub.error = httpx.ConnectError("connection refused")

    with pytest.raises(FeedUnavailableError):
        asyncio.run(_client(feed_stub).fetch_features(1.0, 2.0))


def test_timeouts_are_wrapped(feed_stub) -> None:
    feed_stub.error = httpx.ReadTimeout("timed out")

    with pytest.raises(FeedUnavailableError):
        asyncio.run(_client(feed_stub).fetch_features(1.0, 2.0))


def test_invalid_json_is_a_payload_error(feed_stub) -> None:
    feed_stub.body = b"<html>maintenance</html>"

    with pytest.raises(FeedPayloadError):
        asyncio.run(_client(feed_stub).fetch_features(1.0, 2.0))


def test_extract_features_handles_collections_and_lists() -> None:
    collection = {"type": "FeatureCollection", "features": [{"id": "a"}, "junk", {"id": "b"}]}

    assert [feature["id"] for feature in extract_features(collection)] == ["a", "b"]
    assert extract_features([{"id": "c"}]) == [{"id": "c"}]


def test_extract_features_rejects_unexpected_shapes() -> None:
    with pytest.raises(FeedPayloadError):
        extract_features({"title": "Not Found", "status": 404})
    with pytest.raises(FeedPayloadError):
        extract_features("features")


def test_check_health_reports_reachability(feed_stub) -> None:
    client = _client(feed_stub)
    assert asyncio.run(client.check_health()) is True
    assert feed_stub.requests[0].url.path == "/"

    feed_stub.status_code = 500
    assert asyncio.run(client.check_health()) is False

    feed_stub.error = httpx.ConnectTimeout("slow")
    assert asyncio.run(client.check_health()) is False


def test_client_requires_base_url() -> None:
    with pytest.raises(ValueError):
        AlertFeedClient(base_url="")


def test_total_timeout_bounds_a_slow_response() -> None:
    async def slow_feed(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(1)
        return httpx.Response(200, json={"features": []})

    client = AlertFeedClient(
        base_url="https://alerts.test",
        timeout_seconds=0.05,
        transport=httpx.MockTransport(slow_feed),
    )

    with pytest.raises(FeedUnavailableError, match="timed out"):
        asyncio.run(client.fetch_features(1.0, 2.0))
