"""Windowed event buffer with overload suppression."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

import structlog

from telegrep.metrics import FLUSHES

from .rate_limiter import RateLimiter

log = structlog.get_logger()

FLUSH_INTERVAL_SECONDS = 10.0
MASS_THRESHOLD = 50
MASS_WARNING_COOLDOWN_SECONDS = 300.0

# Telegram caps messages at 4096 characters
MAX_MESSAGE_LENGTH = 3800
TRUNCATED_LENGTH = 3700
TRUNCATION_NOTICE = "\n\n<i>... [message truncated]</i>"

DIGEST_SEPARATOR = "━━━━━━━━━━━━━━━━━━"

MASS_WARNING_KEY = "mass_warning"


class Transport(Protocol):
    """Anything that can deliver a message and report success."""

    def send(self, message: str) -> bool: ...


class FlushAction(Enum):
    """What a flush decision point did."""

    PENDING = "pending"  # Window still open, nothing changed
    EMPTY = "empty"  # Window closed with no events
    DIGEST = "digest"  # Events sent as a single digest
    MASS_WARNING = "mass_warning"  # Overload, count-only warning sent
    SUPPRESSED = "suppressed"  # Overload, warning still in cooldown


@dataclass
class FlushResult:
    """Result of a tick or flush."""

    action: FlushAction
    event_count: int = 0
    message: str | None = None
    delivered: bool | None = None  # None when nothing was sent
    retry_in: float | None = None  # Seconds left on the warning cooldown when suppressed


@dataclass
class AggregationWindow:
    """Events buffered since the last flush decision."""

    started_at: float
    events: list[str] = field(default_factory=list)
    count: int = 0

    def append(self, event: str) -> None:
        self.events.append(event)
        self.count += 1

    def reset(self, now: float) -> None:
        self.events.clear()
        self.count = 0
        # Never move the window start backwards
        self.started_at = max(self.started_at, now)


def format_digest(events: list[str], interval: float = FLUSH_INTERVAL_SECONDS) -> str:
    """Build the digest message, truncating it to fit a Telegram message."""
    message = (
        f"📊 <b>Events in the last {interval:g} seconds:</b> {len(events)}\n"
        f"{DIGEST_SEPARATOR}\n\n"
    )
    message += "".join(f"{event}\n\n" for event in events)

    if len(message) > MAX_MESSAGE_LENGTH:
        # Fixed-length cut, even when it splits a tag or entity
        message = message[:TRUNCATED_LENGTH] + TRUNCATION_NOTICE

    return message


def format_mass_warning(count: int, interval: float = FLUSH_INTERVAL_SECONDS) -> str:
    return (
        "🚨 <b>MASS WARNING</b>\n"
        f"⚠️ Received <u>{count} events</u> in the last {interval:g} seconds\n"
        "🔍 Check the system immediately!"
    )


class Aggregator:
    """Buffers classified events and delivers them on a fixed cadence.

    Flushing is schedule driven only: offer() never sends. Each flush
    decision point resets the window whatever it decided, so quiet or
    overloaded periods never build a backlog.
    """

    def __init__(
        self,
        transport: Transport,
        started_at: float,
        flush_interval: float = FLUSH_INTERVAL_SECONDS,
        mass_threshold: int = MASS_THRESHOLD,
        mass_warning_cooldown: float = MASS_WARNING_COOLDOWN_SECONDS,
    ):
        """Initialize the aggregator.

        Args:
            transport: Delivery channel with send(message) -> bool
            started_at: Start of the first window (monotonic seconds)
            flush_interval: Seconds between flush decisions
            mass_threshold: Event count at which the digest is replaced by a warning
            mass_warning_cooldown: Minimum seconds between overload warnings
        """
        self.transport = transport
        self.window = AggregationWindow(started_at=started_at)
        self.rate_limiter = RateLimiter()
        self.flush_interval = flush_interval
        self.mass_threshold = mass_threshold
        self.mass_warning_cooldown = mass_warning_cooldown

    @property
    def count(self) -> int:
        return self.window.count

    def offer(self, event: str) -> None:
        """Append a classified event to the current window."""
        self.window.append(event)

    def tick(self, now: float) -> FlushResult:
        """Flush if the current window has been open long enough."""
        if now - self.window.started_at < self.flush_interval:
            return FlushResult(action=FlushAction.PENDING, event_count=self.window.count)
        return self.flush(now)

    def flush(self, now: float) -> FlushResult:
        """Run a flush decision regardless of window age, then reset the window."""
        count = self.window.count

        if count >= self.mass_threshold:
            result = self._mass_warning(count, now)
        elif count > 0:
            message = format_digest(self.window.events, self.flush_interval)
            delivered = self._deliver(message)
            if delivered:
                log.info("Sent event digest", events=count)
            result = FlushResult(FlushAction.DIGEST, count, message, delivered)
        else:
            result = FlushResult(FlushAction.EMPTY)

        FLUSHES.labels(action=result.action.value).inc()
        self.window.reset(now)
        return result

    def _mass_warning(self, count: int, now: float) -> FlushResult:
        cooldown = self.mass_warning_cooldown
        if not self.rate_limiter.can_alert(MASS_WARNING_KEY, cooldown, now):
            retry_in = self.rate_limiter.time_until_alert(MASS_WARNING_KEY, cooldown, now)
            log.info("Mass warning in cooldown, events suppressed", events=count, retry_in=retry_in)
            return FlushResult(FlushAction.SUPPRESSED, count, retry_in=retry_in)

        message = format_mass_warning(count, self.flush_interval)
        delivered = self._deliver(message)
        if delivered:
            # Only a delivered warning starts the cooldown
            self.rate_limiter.record(MASS_WARNING_KEY, now)
            log.warning("Sent mass warning", events=count)
        return FlushResult(FlushAction.MASS_WARNING, count, message, delivered)

    def _deliver(self, message: str) -> bool:
        """Single delivery attempt; a failed message is dropped."""
        delivered = self.transport.send(message)
        if not delivered:
            log.error("Delivery failed, message dropped", length=len(message))
        return delivered
