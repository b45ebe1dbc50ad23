"""
Tests for gnss_bridge/main.py (the scrape endpoint).
"""

import base64

import httpx
import pytest
from fastapi.testclient import TestClient

from gnss_bridge.config import BridgeSettings
from gnss_bridge.main import create_app

from conftest import GOOD_FIELDS, make_document

TARGET = "http://192.0.2.10/xml/status.xml"


class FakeReceiver:
    """Scripted receiver behind httpx.MockTransport."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return response


def ok(fields=None):
    return httpx.Response(200, text=make_document(fields))


@pytest.fixture
def bridge():
    """Return a factory for (app, receiver) pairs."""

    def factory(*responses, **settings):
        receiver = FakeReceiver(*responses)
        app = create_app(BridgeSettings(**settings), transport=httpx.MockTransport(receiver))
        return app, receiver

    return factory


def gauge(app, name, **labels):
    return app.state.bridge.snapshot.value(name, **labels)


class TestScrape:
    """Test cases for GET /metrics."""

    def test_known_good_document(self, bridge):
        app, receiver = bridge(ok())
        with TestClient(app) as client:
            resp = client.get("/metrics", params={"target": TARGET})

        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/plain")
        assert "gnss_ant 1.0" in resp.text
        assert 'gnss_svs_used{constellation="GPS"} 8.0' in resp.text
        assert 'gnss_svs_seen{constellation="BeiDou"} 5.0' in resp.text
        assert "gnss_alt 200.0" in resp.text
        assert gauge(app, "gnss_lat") == pytest.approx(49.25)
        assert gauge(app, "gnss_lon") == pytest.approx(7.25)
        assert str(receiver.requests[0].url) == TARGET

    def test_forwards_basic_credentials(self, bridge):
        app, receiver = bridge(ok())
        with TestClient(app) as client:
            resp = client.get("/metrics", params={"target": TARGET}, auth=("admin", "pw:with:colons"))

        assert resp.status_code == 200
        expected = base64.b64encode(b"admin:pw:with:colons").decode("ascii")
        assert receiver.requests[0].headers["authorization"] == f"Basic {expected}"

    def test_no_credentials_no_auth_header(self, bridge):
        app, receiver = bridge(ok())
        with TestClient(app) as client:
            client.get("/metrics", params={"target": TARGET})

        assert "authorization" not in receiver.requests[0].headers

    @pytest.mark.parametrize("header", ["Basic !!!notbase64", "Basic " + base64.b64encode(b"nocolon").decode("ascii")])
    def test_malformed_credentials_treated_as_absent(self, bridge, header):
        app, receiver = bridge(ok())
        with TestClient(app) as client:
            resp = client.get("/metrics", params={"target": TARGET}, headers={"Authorization": header})

        assert resp.status_code == 200
        assert len(receiver.requests) == 1
        assert "authorization" not in receiver.requests[0].headers

    def test_missing_target(self, bridge):
        app, receiver = bridge(ok())
        with TestClient(app) as client:
            resp = client.get("/metrics")

        assert resp.status_code == 422
        assert receiver.requests == []

    def test_partial_failure_still_serves(self, bridge):
        app, _ = bridge(ok({**GOOD_FIELDS, "gpsinfo": "--", "alt": "n/a"}))
        with TestClient(app) as client:
            resp = client.get("/metrics", params={"target": TARGET})

        assert resp.status_code == 200
        assert gauge(app, "gnss_svs_used", constellation="GPS") is None
        assert gauge(app, "gnss_svs_used", constellation="BeiDou") == 3

    def test_oversized_count_is_a_field_failure(self, bridge):
        app, _ = bridge(ok({**GOOD_FIELDS, "gpsinfo": "9" * 400 + "/1"}))
        with TestClient(app) as client:
            resp = client.get("/metrics", params={"target": TARGET})

        assert resp.status_code == 200
        assert gauge(app, "gnss_svs_used", constellation="GPS") is None
        assert gauge(app, "gnss_svs_used", constellation="BeiDou") == 3

    def test_seconds_coordinate_setting(self, bridge):
        app, _ = bridge(ok({**GOOD_FIELDS, "lat": "N 4915.30000"}), coordinate_format="seconds")
        with TestClient(app) as client:
            client.get("/metrics", params={"target": TARGET})

        assert gauge(app, "gnss_lat") == pytest.approx(49 + 15 / 60 + 30 / 3600)


class TestFatalErrors:
    """Test cases for fetch and deserialize failures."""

    def test_upstream_error_fails_scrape(self, bridge):
        app, _ = bridge(httpx.Response(500, text="boom"))
        with TestClient(app) as client:
            resp = client.get("/metrics", params={"target": TARGET})

        assert resp.status_code == 502
        assert "HTTP 500" in resp.text
        assert "gnss_ant" not in resp.text

    def test_network_error_fails_scrape(self, bridge):
        app, _ = bridge(httpx.ConnectError("connection refused"))
        with TestClient(app) as client:
            resp = client.get("/metrics", params={"target": TARGET})

        assert resp.status_code == 502
        assert "FetchError" in resp.text

    def test_bad_document_fails_scrape(self, bridge):
        app, _ = bridge(httpx.Response(200, text="<html>login</html"))
        with TestClient(app) as client:
            resp = client.get("/metrics", params={"target": TARGET})

        assert resp.status_code == 502
        assert "DeserializeError" in resp.text

    def test_oversized_total_fails_scrape(self, bridge):
        app, _ = bridge(ok({**GOOD_FIELDS, "svused": str(2**64)}))
        with TestClient(app) as client:
            resp = client.get("/metrics", params={"target": TARGET})

        assert resp.status_code == 502
        assert "DeserializeError" in resp.text

    def test_stale_snapshot_on_error(self, bridge):
        app, _ = bridge(ok(), httpx.Response(503), serve_stale_on_error=True)
        with TestClient(app) as client:
            first = client.get("/metrics", params={"target": TARGET})
            second = client.get("/metrics", params={"target": TARGET})

        assert first.status_code == 200
        assert second.status_code == 200
        assert 'gnss_svs_used{constellation="GPS"} 8.0' in second.text
        assert gauge(app, "gnss_ant") == 1

    def test_fatal_error_leaves_gauges_alone(self, bridge):
        app, _ = bridge(ok(), httpx.Response(200, text="not xml"))
        with TestClient(app) as client:
            client.get("/metrics", params={"target": TARGET})
            resp = client.get("/metrics", params={"target": TARGET})

        assert resp.status_code == 502
        assert gauge(app, "gnss_alt") == 200


class TestHealth:
    """Test cases for GET /api/health."""

    def test_reports_scrapes_and_errors(self, bridge):
        app, _ = bridge(ok(), httpx.Response(404), httpx.Response(200, text="<"))
        with TestClient(app) as client:
            for _ in range(3):
                client.get("/metrics", params={"target": TARGET})
            resp = client.get("/api/health")

        body = resp.json()
        assert resp.status_code == 200
        assert body["status"] == "healthy"
        assert body["scrapes_total"] == 3
        assert body["fatal_errors"] == {"fetch": 1, "deserialize": 1}
        assert "documents_parsed" in body["parser_counters"]
        assert "field_parse_errors" in body["parser_counters"]
