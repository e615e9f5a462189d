"""CLI for telegrep.

Usage:
    telegrep run --pid-file /run/telegrep.pid
    telegrep check-config
    telegrep test
    telegrep send "message"
    telegrep classify "Oct 29 01:09:44 host1 kernel: eth0: link up"
"""

from pathlib import Path

import click
import structlog

from telegrep.config import DEFAULT_CONFIG_PATH, Config, ConfigError, load_config
from telegrep.logging import configure_logging
from telegrep.pipeline import (
    FollowerError,
    PatternError,
    StartupError,
    TelegramClient,
    TelegrepDaemon,
    classify_event,
    run_daemon,
)

log = structlog.get_logger()


def get_config(ctx: click.Context) -> Config:
    """Load config from the --config path or exit with error."""
    try:
        return load_config(ctx.obj["config_path"])
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)


@click.group()
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=False, path_type=Path),
    default=DEFAULT_CONFIG_PATH,
    envvar="TELEGREP_CONFIG",
    help="Config file path",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.option(
    "--log-format",
    type=click.Choice(["auto", "json", "console"]),
    default="auto",
    envvar="TELEGREP_LOG_FORMAT",
    help="Log output format (auto: console on a terminal, JSON otherwise)",
)
@click.pass_context
def main(ctx: click.Context, config_path: Path, verbose: bool, log_format: str) -> None:
    """Follow a log file and forward matching lines to Telegram."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose
    configure_logging("telegrep", "DEBUG" if verbose else "INFO", log_format)


@main.command("run")
@click.option(
    "--sync-delivery",
    is_flag=True,
    help="Send from the read loop instead of a background worker",
)
@click.option(
    "--pid-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write the daemon PID to this file",
)
@click.option("--metrics-port", type=int, default=None, help="Serve Prometheus metrics here")
@click.pass_context
def run_cmd(
    ctx: click.Context,
    sync_delivery: bool,
    pid_file: Path | None,
    metrics_port: int | None,
) -> None:
    """Run the daemon in the foreground.

    SIGTERM/SIGINT stop it after a final flush; SIGHUP re-validates the config.
    """
    try:
        run_daemon(
            ctx.obj["config_path"],
            sync_delivery=sync_delivery,
            pid_file=pid_file,
            metrics_port=metrics_port,
        )
    except (ConfigError, PatternError, FollowerError, StartupError) as e:
        log.error("Telegrep failed to start", error=str(e))
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)


@main.command("check-config")
@click.pass_context
def check_config(ctx: click.Context) -> None:
    """Validate the config file without sending anything."""
    config = get_config(ctx)
    click.echo("Config OK")
    click.echo(f"  Log file: {config.log_file}")
    click.echo(f"  Pattern: {config.pattern}")
    if config.exceptions:
        click.echo(f"  Exceptions: {config.exceptions}")
    click.echo(f"  Chat id: {config.chat_id}")


@main.command("test")
@click.pass_context
def test_cmd(ctx: click.Context) -> None:
    """Send a test message to verify the token and chat id."""
    daemon = TelegrepDaemon(get_config(ctx))
    if daemon.send_test_message():
        click.echo("Test message sent successfully!")
    else:
        click.echo("Failed to send test message")
        raise SystemExit(1)


@main.command("send")
@click.argument("message")
@click.pass_context
def send_cmd(ctx: click.Context, message: str) -> None:
    """Send a custom message (Telegram HTML) to the configured chat."""
    config = get_config(ctx)
    client = TelegramClient(config.token, config.chat_id)
    if client.send(message):
        click.echo("Message sent!")
    else:
        click.echo("Failed to send message")
        raise SystemExit(1)


@main.command("classify")
@click.argument("line")
def classify_cmd(line: str) -> None:
    """Show how a log line would be rendered."""
    event = classify_event(line)
    click.echo(f"[{event.category}]")
    click.echo(event.text)
