"""Daemon that follows a log file and sends matching lines to Telegram."""

import os
import time
from pathlib import Path

import structlog

from telegrep import __version__
from telegrep.config import Config, load_config
from telegrep.metrics import SERVICE_INFO, start_metrics_server

from .aggregator import Aggregator, FlushResult, Transport
from .classifier import html_escape
from .controller import PipelineController
from .delivery import BackgroundTransport
from .follower import Follower
from .matcher import LineMatcher
from .signals import PipelineSignals, install_signal_handlers
from .telegram import TelegramClient

log = structlog.get_logger()


class StartupError(Exception):
    """Raised when the startup notification cannot be delivered."""

    pass


def startup_message(config: Config) -> str:
    message = (
        "✅ <b>Telegrep started</b>\n"
        f"📡 Monitoring: <code>{html_escape(str(config.log_file))}</code>\n"
        f"🔍 Pattern: <code>{html_escape(config.pattern)}</code>"
    )
    if config.exceptions:
        message += f"\n🚫 Exceptions: <code>{html_escape(config.exceptions)}</code>"
    return message


STOP_MESSAGE = "🛑 <b>Telegrep stopped</b>"


class TelegrepDaemon:
    """Owns the pipeline's lifecycle: startup notice, loop, shutdown notice."""

    def __init__(
        self,
        config: Config,
        config_path: Path | None = None,
        signals: PipelineSignals | None = None,
        client: TelegramClient | None = None,
        sync_delivery: bool = False,
        pid_file: Path | None = None,
        metrics_port: int | None = None,
    ):
        """Initialize the daemon.

        Args:
            config: Validated configuration
            config_path: File re-validated on reload requests
            signals: Stop/reload flags (default: fresh, unconnected flags)
            client: Telegram client (default: built from config)
            sync_delivery: Send from the read loop instead of a background worker
            pid_file: Where to write our PID, removed on exit
            metrics_port: Serve Prometheus metrics on this port if set
        """
        self.config = config
        self.config_path = config_path
        self.signals = signals or PipelineSignals()
        self.client = client or TelegramClient(config.token, config.chat_id)
        self.sync_delivery = sync_delivery
        self.pid_file = pid_file
        self.metrics_port = metrics_port
        self._pid_written = False
        self._controller: PipelineController | None = None
        self._background: BackgroundTransport | None = None

    def _reload_config(self) -> Config:
        if self.config_path is None:
            return self.config
        return load_config(self.config_path)

    def send_test_message(self) -> bool:
        """Send a test message to verify the token and chat id."""
        time_str = time.strftime("%Y-%m-%d %H:%M:%S")
        return self.client.send(
            "🧪 <b>Telegrep test message</b>\n"
            f"🕒 {time_str}\n"
            f"📡 Monitoring: <code>{html_escape(str(self.config.log_file))}</code>"
        )

    def _pipeline_health(self) -> tuple[str, bool]:
        if self._controller is None:
            return "pipeline", False
        return self._controller.health_check()

    def _delivery_health(self) -> tuple[str, bool]:
        if self._background is None:
            return "delivery", True
        return self._background.health_check()

    def _start_metrics(self) -> None:
        if self.metrics_port is None:
            return
        SERVICE_INFO.info({"version": __version__, "log_file": str(self.config.log_file)})
        try:
            start_metrics_server(
                port=self.metrics_port,
                health_checks=[self._pipeline_health, self._delivery_health],
            )
        except OSError as e:
            raise StartupError(f"Cannot serve metrics on port {self.metrics_port}: {e}") from e

    def _write_pid_file(self) -> None:
        if self.pid_file is None:
            return
        try:
            self.pid_file.write_text(f"{os.getpid()}\n")
            self._pid_written = True
        except OSError as e:
            log.warning("Cannot create PID file", path=str(self.pid_file), error=str(e))

    def _remove_pid_file(self) -> None:
        if self.pid_file is None or not self._pid_written:
            return
        try:
            self.pid_file.unlink()
        except FileNotFoundError:
            pass

    def run(self) -> FlushResult:
        """Run until stop is requested.

        Raises:
            PatternError: If the configured patterns don't compile
            FollowerError: If the log file cannot be opened
            StartupError: If the metrics port is busy or the startup notification
                cannot be delivered

        Returns:
            Result of the final flush
        """
        log.info("Starting telegrep daemon", log_file=str(self.config.log_file))
        matcher = LineMatcher(self.config.pattern, self.config.exceptions)
        follower = Follower.open(self.config.log_file)

        try:
            self._start_metrics()
            if not self.client.send(startup_message(self.config)):
                raise StartupError("Cannot connect to Telegram. Check token and chat_id")

            self._write_pid_file()

            transport: Transport = self.client
            background: BackgroundTransport | None = None
            if not self.sync_delivery:
                background = self._background = BackgroundTransport(self.client)
                transport = background

            aggregator = Aggregator(
                transport,
                started_at=time.monotonic(),
                flush_interval=self.config.flush_interval,
                mass_threshold=self.config.mass_threshold,
                mass_warning_cooldown=self.config.mass_warning_cooldown,
            )
            controller = self._controller = PipelineController(
                follower,
                matcher,
                aggregator,
                self.signals,
                reload_config=self._reload_config,
                poll_interval=self.config.poll_interval,
            )

            try:
                result = controller.run()
            finally:
                if background is not None:
                    background.close()

            self.client.send(STOP_MESSAGE)
            log.info("Telegrep daemon stopped")
            return result
        finally:
            self._remove_pid_file()
            follower.close()

    def stop(self) -> None:
        """Ask the loop to exit after its current iteration."""
        log.info("Stopping telegrep daemon")
        self.signals.request_stop()


def run_daemon(
    config_path: Path,
    sync_delivery: bool = False,
    pid_file: Path | None = None,
    metrics_port: int | None = None,
) -> FlushResult:
    """Load configuration, hook up OS signals and run the daemon.

    Args:
        config_path: YAML configuration file
        sync_delivery: Send from the read loop instead of a background worker
        pid_file: Optional PID file
        metrics_port: Optional Prometheus port
    """
    config = load_config(config_path)
    signals = PipelineSignals()
    install_signal_handlers(signals)

    daemon = TelegrepDaemon(
        config,
        config_path=config_path,
        signals=signals,
        sync_delivery=sync_delivery,
        pid_file=pid_file,
        metrics_port=metrics_port,
    )
    return daemon.run()
