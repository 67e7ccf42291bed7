"""Tests for the USGS feed client.

Uses the `responses` library to mock HTTP requests.
"""

import threading

import pytest
import requests
import responses

from src.shell import usgs_client
from src.shell.usgs_client import FetchResult, USGSFeedClient


ALL_HOUR = "https://earthquake.usgs.gov/earthquakes/feed/v1.0/summary/all_hour.geojson"
M45_HOUR = "https://earthquake.usgs.gov/earthquakes/feed/v1.0/summary/4.5_hour.geojson"


def feature(event_id: str, magnitude: float = 5.0, lng: float = 101.0, lat: float = 13.0) -> dict:
    return {
        "type": "Feature",
        "id": event_id,
        "properties": {
            "mag": magnitude,
            "place": "Test place",
            "time": 1743142854000,
            "url": f"https://earthquake.usgs.gov/earthquakes/eventpage/{event_id}",
        },
        "geometry": {"type": "Point", "coordinates": [lng, lat, 10.0]},
    }


def document(*features: dict) -> dict:
    return {"type": "FeatureCollection", "features": list(features)}


class TestFetch:
    """Tests for USGSFeedClient.fetch()."""

    @responses.activate
    def test_successful_fetch_parses_events(self):
        responses.add(responses.GET, ALL_HOUR, json=document(feature("a"), feature("b")), status=200)

        result = USGSFeedClient().fetch(ALL_HOUR)

        assert result.success is True
        assert result.status_code == 200
        assert [e.id for e in result.events] == ["a", "b"]

    @responses.activate
    def test_sends_user_agent(self):
        responses.add(responses.GET, ALL_HOUR, json=document(), status=200)

        USGSFeedClient().fetch(ALL_HOUR)

        assert responses.calls[0].request.headers["User-Agent"] == "SeismicAlertBot/1.0"

    @responses.activate
    def test_non_200_returns_failure(self):
        responses.add(responses.GET, ALL_HOUR, body="oops", status=503)

        result = USGSFeedClient().fetch(ALL_HOUR)

        assert result.success is False
        assert result.status_code == 503
        assert result.error == "HTTP error 503"
        assert result.events == []

    @responses.activate
    def test_timeout_returns_failure(self):
        responses.add(responses.GET, ALL_HOUR, body=requests.Timeout("slow"))

        result = USGSFeedClient().fetch(ALL_HOUR)

        assert result.success is False
        assert result.error == "Request timed out"

    @responses.activate
    def test_connection_error_returns_failure(self):
        responses.add(responses.GET, ALL_HOUR, body=requests.ConnectionError("refused"))

        result = USGSFeedClient().fetch(ALL_HOUR)

        assert result.success is False
        assert "refused" in result.error

    @responses.activate
    def test_invalid_json_returns_failure(self):
        responses.add(responses.GET, ALL_HOUR, body="not json", status=200)

        result = USGSFeedClient().fetch(ALL_HOUR)

        assert result.success is False

    @responses.activate
    def test_skips_malformed_features(self):
        bad = {"id": "bad", "properties": {"mag": None}}
        responses.add(responses.GET, ALL_HOUR, json=document(bad, feature("good")), status=200)

        result = USGSFeedClient().fetch(ALL_HOUR)

        assert [e.id for e in result.events] == ["good"]

    @responses.activate
    @pytest.mark.parametrize("body", [{"features": 5}, {"features": True}, {"type": "FeatureCollection"}])
    def test_malformed_document_returns_failure(self, body):
        responses.add(responses.GET, ALL_HOUR, json=body, status=200)

        result = USGSFeedClient().fetch(ALL_HOUR)

        assert result.success is False
        assert result.status_code == 200
        assert result.events == []


class TestFetchAll:
    """Tests for USGSFeedClient.fetch_all()."""

    @responses.activate
    def test_results_in_endpoint_order(self):
        responses.add(responses.GET, ALL_HOUR, json=document(feature("a")), status=200)
        responses.add(responses.GET, M45_HOUR, json=document(feature("b")), status=200)

        results = USGSFeedClient(endpoints=[ALL_HOUR, M45_HOUR]).fetch_all()

        assert [r.endpoint for r in results] == [ALL_HOUR, M45_HOUR]
        assert all(r.success for r in results)

    @responses.activate
    def test_one_timeout_does_not_block_other(self):
        responses.add(responses.GET, ALL_HOUR, body=requests.Timeout("slow"))
        responses.add(responses.GET, M45_HOUR, json=document(feature("b")), status=200)

        results = USGSFeedClient(endpoints=[ALL_HOUR, M45_HOUR]).fetch_all()

        assert results[0].success is False
        assert results[1].success is True
        assert [e.id for e in results[1].events] == ["b"]

    @responses.activate
    def test_malformed_document_does_not_block_other(self):
        responses.add(responses.GET, ALL_HOUR, json={"features": 5}, status=200)
        responses.add(responses.GET, M45_HOUR, json=document(feature("ok")), status=200)

        results = USGSFeedClient(endpoints=[ALL_HOUR, M45_HOUR]).fetch_all()

        assert results[0].success is False
        assert results[1].success is True
        assert [e.id for e in results[1].events] == ["ok"]

    def test_each_fetch_makes_its_own_request(self, monkeypatch):
        """Worker threads share no HTTP session state."""
        seen = []
        lock = threading.Lock()

        class FakeResponse:
            def raise_for_status(self):
                pass

            def json(self):
                return document()

        def fake_get(url, headers=None, timeout=None):
            with lock:
                seen.append(url)
            return FakeResponse()

        monkeypatch.setattr(usgs_client.requests, "get", fake_get)

        client = USGSFeedClient(endpoints=[ALL_HOUR, M45_HOUR])
        results = client.fetch_all()

        assert all(r.success for r in results)
        assert sorted(seen) == sorted([ALL_HOUR, M45_HOUR])
        assert not hasattr(client, "session")

    def test_no_endpoints(self):
        assert USGSFeedClient(endpoints=[]).fetch_all() == []

    def test_straggler_is_abandoned_at_deadline(self, monkeypatch):
        """A fetch that outlives the deadline is reported as failed."""
        monkeypatch.setattr(usgs_client, "DEADLINE_GRACE_SECONDS", 0.0)
        release = threading.Event()

        class SlowClient(USGSFeedClient):
            def fetch(self, endpoint, timeout=None):
                if endpoint == ALL_HOUR:
                    release.wait(5)
                return FetchResult(endpoint=endpoint, success=True)

        try:
            results = SlowClient(endpoints=[ALL_HOUR, M45_HOUR], timeout=0.2).fetch_all()
        finally:
            release.set()

        assert results[0].success is False
        assert results[0].error == "Deadline exceeded"
        assert results[1].success is True
