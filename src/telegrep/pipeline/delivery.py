"""Background delivery so slow sends don't stall the read loop."""

import queue
import threading
import time

import structlog

from telegrep.metrics import DELIVERIES

from .aggregator import Transport

log = structlog.get_logger()

_STOP = object()


class BackgroundTransport:
    """Hands messages to a single worker thread that sends them in order.

    Each message gets exactly one send attempt. send() reports whether the
    message was accepted for delivery; a full queue drops the message.
    """

    def __init__(self, transport: Transport, max_pending: int = 20):
        self.transport = transport
        self._queue: queue.Queue = queue.Queue(maxsize=max_pending)
        self._thread = threading.Thread(target=self._run, name="telegrep-delivery", daemon=True)
        self._thread.start()

    def send(self, message: str) -> bool:
        try:
            self._queue.put_nowait(message)
        except queue.Full:
            DELIVERIES.labels(status="dropped").inc()
            log.error("Delivery queue full, message dropped", pending=self._queue.qsize())
            return False
        return True

    def health_check(self) -> tuple[str, bool]:
        return "delivery", self._thread.is_alive()

    def _run(self) -> None:
        while True:
            message = self._queue.get()
            try:
                if message is _STOP:
                    return
                if not self.transport.send(message):
                    log.error("Background delivery failed, message dropped")
            except Exception:
                log.exception("Unexpected error delivering message")
            finally:
                self._queue.task_done()

    def close(self, timeout: float | None = 30.0) -> bool:
        """Deliver pending messages, then stop the worker.

        The timeout bounds the whole call, including waiting for room in a
        full queue. Messages still pending when it expires are abandoned to
        the daemon thread.

        Returns:
            True if the worker finished within the timeout
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        try:
            self._queue.put(_STOP, timeout=timeout)
        except queue.Full:
            log.warning("Delivery worker still busy at shutdown", pending=self._queue.qsize())
            return False

        remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
        self._thread.join(remaining)
        finished = not self._thread.is_alive()
        if not finished:
            log.warning("Delivery worker still busy at shutdown", pending=self._queue.qsize())
        return finished
