"""Tests for the command line interface."""

import os
from pathlib import Path

import pytest
from click.testing import CliRunner

from telegrep.cli import main
from telegrep.pipeline import TelegramClient

TOKEN = "123456789:" + "A" * 35


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    log_file = tmp_path / "messages"
    log_file.write_text("")
    path = tmp_path / "settings.yaml"
    path.write_text(
        f'token: "{TOKEN}"\n'
        'chat_id: "-100123"\n'
        'pattern: "HISTORY"\n'
        'exceptions: "CRON"\n'
        f"log_file: {log_file}\n"
    )
    os.chmod(path, 0o600)
    return path


def test_check_config(config_file: Path) -> None:
    result = CliRunner().invoke(main, ["--config", str(config_file), "check-config"])
    assert result.exit_code == 0
    assert "Config OK" in result.output
    assert "Pattern: HISTORY" in result.output
    assert "Exceptions: CRON" in result.output


def test_check_config_invalid(tmp_path: Path) -> None:
    path = tmp_path / "settings.yaml"
    path.write_text('token: "nope"\nchat_id: "1"\npattern: "x"\n')
    os.chmod(path, 0o600)

    result = CliRunner().invoke(main, ["--config", str(path), "check-config"])

    assert result.exit_code == 1
    assert "token" in result.output


def test_check_config_missing_file(tmp_path: Path) -> None:
    result = CliRunner().invoke(main, ["--config", str(tmp_path / "nope.yaml"), "check-config"])
    assert result.exit_code == 1


def test_classify() -> None:
    result = CliRunner().invoke(
        main, ["classify", "Oct 29 01:09:44 host1 sshd[1]: HISTORY: PID=999 UID=0 rm -rf /tmp/x"]
    )
    assert result.exit_code == 0
    assert "[history]" in result.output
    assert "<code>rm -rf /tmp/x</code>" in result.output


def test_send(config_file: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    sent = []
    monkeypatch.setattr(TelegramClient, "send", lambda self, message: sent.append(message) or True)

    result = CliRunner().invoke(main, ["--config", str(config_file), "send", "<b>hello</b>"])

    assert result.exit_code == 0
    assert "Message sent!" in result.output
    assert sent == ["<b>hello</b>"]


def test_send_failure(config_file: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(TelegramClient, "send", lambda self, message: False)
    result = CliRunner().invoke(main, ["--config", str(config_file), "send", "hello"])
    assert result.exit_code == 1


def test_test_command(config_file: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(TelegramClient, "send", lambda self, message: True)
    result = CliRunner().invoke(main, ["--config", str(config_file), "test"])
    assert result.exit_code == 0
    assert "Test message sent successfully!" in result.output


def test_run_fails_when_startup_message_fails(
    config_file: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(TelegramClient, "send", lambda self, message: False)
    monkeypatch.setattr("telegrep.pipeline.daemon.install_signal_handlers", lambda signals: None)

    result = CliRunner().invoke(main, ["--config", str(config_file), "run", "--sync-delivery"])

    assert result.exit_code == 1
    assert "Cannot connect to Telegram" in result.output


def test_run_fails_when_metrics_port_busy(
    config_file: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    sent = []
    monkeypatch.setattr(TelegramClient, "send", lambda self, message: sent.append(message) or True)
    monkeypatch.setattr("telegrep.pipeline.daemon.install_signal_handlers", lambda signals: None)

    def busy(port, health_checks):
        raise OSError("Address already in use")

    monkeypatch.setattr("telegrep.pipeline.daemon.start_metrics_server", busy)

    result = CliRunner().invoke(
        main, ["--config", str(config_file), "run", "--sync-delivery", "--metrics-port", "9108"]
    )

    assert result.exit_code == 1
    assert "Cannot serve metrics on port 9108" in result.output
    assert sent == []


def test_invalid_log_format() -> None:
    result = CliRunner().invoke(main, ["--log-format", "xml", "classify", "x"])
    assert result.exit_code == 2
