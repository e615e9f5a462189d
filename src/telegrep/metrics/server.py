"""Loopback HTTP endpoint for Prometheus scrapes and supervisor health checks."""

import json
import threading
from collections.abc import Callable, Iterable
from typing import Any
from wsgiref.simple_server import WSGIRequestHandler, make_server

import structlog
from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, generate_latest

log = structlog.get_logger()

_server_lock = threading.Lock()
_server_thread: threading.Thread | None = None

StartResponse = Callable[[str, list[tuple[str, str]]], Any]
WSGIApp = Callable[[dict[str, Any], StartResponse], list[bytes]]

# Returns (name, is_healthy)
HealthCheck = Callable[[], tuple[str, bool]]


class _QuietHandler(WSGIRequestHandler):
    """Scrapes every few seconds would flood the log."""

    def log_message(self, format: str, *args: object) -> None:
        pass


def run_health_checks(checks: Iterable[HealthCheck]) -> tuple[dict[str, bool], bool]:
    """Run each check; a check that raises counts as unhealthy."""
    results: dict[str, bool] = {}
    all_healthy = True
    for check in checks:
        try:
            name, healthy = check()
        except Exception:
            name, healthy = getattr(check, "__name__", repr(check)), False
            log.exception("Health check failed", check=name)
        results[name] = healthy
        all_healthy = all_healthy and healthy
    return results, all_healthy


def make_metrics_app(health_checks: Iterable[HealthCheck] = ()) -> WSGIApp:
    """Build the WSGI app serving /metrics and /health.

    /health answers 200 with status "ok" when every check passes, otherwise
    503 with status "degraded", so a supervisor can restart a wedged daemon.
    """
    checks = list(health_checks)

    def app(environ: dict[str, Any], start_response: StartResponse) -> list[bytes]:
        path = environ.get("PATH_INFO", "/")

        if path == "/metrics":
            output = generate_latest(REGISTRY)
            status = "200 OK"
            headers = [("Content-Type", CONTENT_TYPE_LATEST)]
        elif path == "/health":
            results, all_healthy = run_health_checks(checks)
            body = {"status": "ok" if all_healthy else "degraded", "checks": results}
            output = json.dumps(body).encode()
            status = "200 OK" if all_healthy else "503 Service Unavailable"
            headers = [("Content-Type", "application/json")]
        else:
            output = b"Not Found"
            status = "404 Not Found"
            headers = [("Content-Type", "text/plain")]

        start_response(status, headers)
        return [output]

    return app


def start_metrics_server(
    port: int = 9108,
    host: str = "127.0.0.1",
    health_checks: Iterable[HealthCheck] = (),
) -> threading.Thread:
    """Bind the endpoint and serve it from a daemon thread.

    Binding happens in the caller's thread, so a busy port raises OSError
    here instead of failing silently in the background. A second call
    returns the thread already running.

    Args:
        port: Port to listen on
        host: Interface to bind (loopback, since the daemon usually runs as root)
        health_checks: Checks reported by /health
    """
    global _server_thread
    with _server_lock:
        if _server_thread is not None and _server_thread.is_alive():
            log.debug("Metrics server already running")
            return _server_thread

        server = make_server(
            host, port, make_metrics_app(health_checks), handler_class=_QuietHandler
        )

        def serve_forever() -> None:
            try:
                server.serve_forever()
            except Exception:
                log.exception("Metrics server failed unexpectedly")

        thread = threading.Thread(target=serve_forever, name="telegrep-metrics", daemon=True)
        thread.start()
        log.info("Metrics server listening", host=host, port=port)
        _server_thread = thread
        return thread
