"""Cooperative stop/reload flags for the pipeline loop."""

import signal
import threading

import structlog

log = structlog.get_logger()


class PipelineSignals:
    """Two independent flags polled once per loop iteration.

    Flags are level-triggered: a request stays set until it is observed,
    so a late check still honors it.
    """

    def __init__(self) -> None:
        self._stop = threading.Event()
        self._reload = threading.Event()

    def request_stop(self) -> None:
        self._stop.set()

    def request_reload(self) -> None:
        self._reload.set()

    def stop_requested(self) -> bool:
        return self._stop.is_set()

    def reload_requested(self) -> bool:
        return self._reload.is_set()

    def consume_reload(self) -> bool:
        """Return whether a reload was requested, clearing the flag."""
        if not self._reload.is_set():
            return False
        self._reload.clear()
        return True

    def wait(self, timeout: float) -> bool:
        """Sleep up to timeout, waking early if stop is requested."""
        return self._stop.wait(timeout)


def install_signal_handlers(signals: PipelineSignals) -> None:
    """Route SIGTERM/SIGINT to stop and SIGHUP to reload.

    Must be called from the main thread.
    """

    def handle_stop(signum: int, frame: object) -> None:
        log.info("Received shutdown signal", signal=signal.Signals(signum).name)
        signals.request_stop()

    def handle_reload(signum: int, frame: object) -> None:
        log.info("Received config reload signal")
        signals.request_reload()

    signal.signal(signal.SIGTERM, handle_stop)
    signal.signal(signal.SIGINT, handle_stop)
    signal.signal(signal.SIGHUP, handle_reload)
