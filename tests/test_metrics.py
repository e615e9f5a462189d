"""Tests for the metrics and health endpoint."""

import json

from telegrep.metrics import LINES_READ, make_metrics_app


def get(app, path: str) -> tuple[str, dict[str, str], bytes]:
    captured = {}

    def start_response(status, headers):
        captured["status"] = status
        captured["headers"] = dict(headers)

    body = b"".join(app({"PATH_INFO": path}, start_response))
    return captured["status"], captured["headers"], body


class TestMetricsApp:
    """Tests for /metrics, /health and unknown paths."""

    def test_metrics(self):
        LINES_READ.inc()
        status, headers, body = get(make_metrics_app(), "/metrics")
        assert status == "200 OK"
        assert headers["Content-Type"].startswith("text/plain")
        assert b"telegrep_lines_read_total" in body

    def test_health_ok(self):
        app = make_metrics_app([lambda: ("pipeline", True), lambda: ("delivery", True)])
        status, headers, body = get(app, "/health")
        assert status == "200 OK"
        assert headers["Content-Type"] == "application/json"
        assert json.loads(body) == {
            "status": "ok",
            "checks": {"pipeline": True, "delivery": True},
        }

    def test_health_degraded(self):
        app = make_metrics_app([lambda: ("pipeline", False), lambda: ("delivery", True)])
        status, _, body = get(app, "/health")
        assert status == "503 Service Unavailable"
        assert json.loads(body)["status"] == "degraded"

    def test_failing_check_is_unhealthy(self):
        def broken_check():
            raise RuntimeError("boom")

        status, _, body = get(make_metrics_app([broken_check]), "/health")
        assert status == "503 Service Unavailable"
        assert json.loads(body)["checks"] == {"broken_check": False}

    def test_health_without_checks(self):
        status, _, body = get(make_metrics_app(), "/health")
        assert status == "200 OK"
        assert json.loads(body) == {"status": "ok", "checks": {}}

    def test_unknown_path(self):
        status, _, body = get(make_metrics_app(), "/nope")
        assert status == "404 Not Found"
        assert body == b"Not Found"
