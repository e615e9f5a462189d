"""Log event pipeline.

Follows a log file, filters lines by regex, formats them for Telegram and
delivers them in batched digests with overload protection.
"""

from .aggregator import (
    AggregationWindow,
    Aggregator,
    FlushAction,
    FlushResult,
    Transport,
    format_digest,
    format_mass_warning,
)
from .classifier import (
    RULES,
    ClassifiedEvent,
    LogComponents,
    Rule,
    classify,
    classify_event,
    html_escape,
    parse_log_line,
)
from .controller import PipelineController, PipelineState
from .daemon import StartupError, TelegrepDaemon, run_daemon
from .delivery import BackgroundTransport
from .follower import Follower, FollowerError
from .matcher import LineMatcher, PatternError, matches
from .rate_limiter import RateLimiter
from .signals import PipelineSignals, install_signal_handlers
from .telegram import TelegramClient

__all__ = [
    # Daemon
    "TelegrepDaemon",
    "run_daemon",
    "StartupError",
    # Controller
    "PipelineController",
    "PipelineState",
    "PipelineSignals",
    "install_signal_handlers",
    # Follower
    "Follower",
    "FollowerError",
    # Matcher
    "LineMatcher",
    "PatternError",
    "matches",
    # Classifier
    "classify",
    "classify_event",
    "html_escape",
    "parse_log_line",
    "ClassifiedEvent",
    "LogComponents",
    "Rule",
    "RULES",
    # Aggregator
    "Aggregator",
    "AggregationWindow",
    "FlushAction",
    "FlushResult",
    "Transport",
    "format_digest",
    "format_mass_warning",
    "RateLimiter",
    # Delivery
    "TelegramClient",
    "BackgroundTransport",
]
