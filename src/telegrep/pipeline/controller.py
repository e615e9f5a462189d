"""Read loop wiring follower, matcher, classifier and aggregator."""

import time
from collections.abc import Callable
from enum import Enum

import structlog

from telegrep.config import ConfigError
from telegrep.metrics import LINES_MATCHED, LINES_READ

from .aggregator import Aggregator, FlushResult
from .classifier import classify_event
from .follower import Follower
from .matcher import LineMatcher
from .signals import PipelineSignals

log = structlog.get_logger()

POLL_INTERVAL_SECONDS = 0.1

# A window this many flush intervals old means ticks have stopped
STALE_WINDOW_FACTOR = 3


class PipelineState(Enum):
    RUNNING = "running"
    RELOADING = "reloading"
    STOPPED = "stopped"


class PipelineController:
    """Single-threaded loop: follow, match, classify, buffer, flush."""

    def __init__(
        self,
        follower: Follower,
        matcher: LineMatcher,
        aggregator: Aggregator,
        signals: PipelineSignals,
        reload_config: Callable[[], object] | None = None,
        clock: Callable[[], float] = time.monotonic,
        poll_interval: float = POLL_INTERVAL_SECONDS,
    ):
        """Initialize the controller.

        Args:
            follower: Source of newly appended lines
            matcher: Line predicate
            aggregator: Event buffer that delivers digests
            signals: Stop/reload flags, checked once per iteration
            reload_config: Re-reads and validates configuration, raising ConfigError
            clock: Monotonic clock used for flush decisions
            poll_interval: Seconds to wait after reaching end of file
        """
        self.follower = follower
        self.matcher = matcher
        self.aggregator = aggregator
        self.signals = signals
        self.reload_config = reload_config
        self.clock = clock
        self.poll_interval = poll_interval
        self.state = PipelineState.RUNNING

    def process_line(self, line: str) -> bool:
        """Match, classify and buffer one line. Returns whether it matched."""
        LINES_READ.inc()
        if not self.matcher(line):
            return False

        event = classify_event(line)
        LINES_MATCHED.labels(category=event.category).inc()
        self.aggregator.offer(event.text)
        return True

    def health_check(self) -> tuple[str, bool]:
        """Healthy while running and flush decisions keep happening."""
        window_age = self.clock() - self.aggregator.window.started_at
        fresh = window_age < STALE_WINDOW_FACTOR * self.aggregator.flush_interval
        return "pipeline", self.state != PipelineState.STOPPED and fresh

    def step(self) -> bool:
        """Run one loop iteration. Returns False once the loop should exit."""
        if self.signals.stop_requested():
            return False

        line = self.follower.next_line()
        if line is not None:
            self.process_line(line)
            return True

        # End of file: bookkeeping, then a short wait
        self.aggregator.tick(self.clock())
        if self.signals.consume_reload():
            self._reload()
        self.signals.wait(self.poll_interval)
        return True

    def _reload(self) -> None:
        self.state = PipelineState.RELOADING
        log.info("Config reload requested")
        try:
            if self.reload_config is not None:
                self.reload_config()
            # Running pattern and transport are kept until restart
            log.info("Config reload requested (restart needed for changes)")
        except ConfigError as e:
            log.error("Reloaded config is invalid", error=str(e))
        finally:
            self.state = PipelineState.RUNNING

    def run(self) -> FlushResult:
        """Loop until stop is requested, then flush whatever is buffered.

        Returns:
            Result of the final flush
        """
        log.info("Pipeline started", path=str(self.follower.path))
        while self.step():
            pass

        self.state = PipelineState.STOPPED
        result = self.aggregator.flush(self.clock())
        log.info("Pipeline stopped", final_flush=result.action.value, events=result.event_count)
        return result
