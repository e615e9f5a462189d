"""Shared fixtures for telegrep tests."""

import pytest

from telegrep.config import ENV_OVERRIDES, Config

TOKEN = "123456789:" + "A" * 35


class FakeTransport:
    """Records messages instead of sending them."""

    def __init__(self, result: bool = True):
        self.result = result
        self.messages: list[str] = []

    def send(self, message: str) -> bool:
        self.messages.append(message)
        return self.result


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's TELEGREP_* variables out of the tests."""
    for env_var in ENV_OVERRIDES:
        monkeypatch.delenv(env_var, raising=False)
    monkeypatch.delenv("TELEGREP_CONFIG", raising=False)
    monkeypatch.delenv("TELEGREP_LOG_FORMAT", raising=False)


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def config(tmp_path) -> Config:
    log_file = tmp_path / "messages"
    log_file.write_text("")
    return Config(token=TOKEN, chat_id="-100123", pattern="HISTORY|kernel", log_file=log_file)
