from __future__ import annotations

import pytest

from santabot.config import Settings
from santabot.config.settings import DEFAULT_HISTORY_WEIGHTS
from santabot.services.solver import SolverConfig

ENV_KEYS = (
    "BOT_TOKEN",
    "DATABASE_URL",
    "ADMIN_IDS",
    "HISTORY_WEIGHTS",
    "DRAW_MAX_ATTEMPTS",
    "DRAW_LEASE_TIMEOUT",
    "TIMEZONE",
    "ENVIRONMENT",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_defaults(monkeypatch):
    monkeypatch.setenv("BOT_TOKEN", "123:abc")

    s = Settings.load()

    assert s.bot_token == "123:abc"
    assert s.database_url == "sqlite+aiosqlite:///./santa.db"
    assert s.admin_ids == ()
    assert s.history_weights == DEFAULT_HISTORY_WEIGHTS
    assert s.history_window == 3
    assert s.draw_lease_timeout == 600
    assert s.timezone == "UTC"
    assert s.is_dev is False


def test_parses_lists(monkeypatch):
    monkeypatch.setenv("BOT_TOKEN", "123:abc")
    monkeypatch.setenv("ADMIN_IDS", "[248966803139723264, 255117530253754378]")
    monkeypatch.setenv("HISTORY_WEIGHTS", "0, 0.25")
    monkeypatch.setenv("DRAW_MAX_ATTEMPTS", "50")
    monkeypatch.setenv("DRAW_LEASE_TIMEOUT", "120")
    monkeypatch.setenv("ENVIRONMENT", "dev")

    s = Settings.load()

    assert s.admin_ids == (248966803139723264, 255117530253754378)
    assert s.history_weights == (0.0, 0.25)
    assert s.is_dev is True
    assert s.draw_lease_timeout == 120

    config = SolverConfig.from_settings(s)
    assert config.window == 2
    assert config.max_attempts == 50


def test_missing_token(monkeypatch):
    with pytest.raises(RuntimeError, match="BOT_TOKEN"):
        Settings.load()


@pytest.mark.parametrize(
    "key,value",
    [
        ("ADMIN_IDS", "12,abc"),
        ("HISTORY_WEIGHTS", "0,2"),
        ("HISTORY_WEIGHTS", "zero"),
        ("DRAW_MAX_ATTEMPTS", "0"),
        ("DRAW_LEASE_TIMEOUT", "0"),
    ],
)
def test_invalid_values_fail_fast(monkeypatch, key, value):
    monkeypatch.setenv("BOT_TOKEN", "123:abc")
    monkeypatch.setenv(key, value)

    with pytest.raises(RuntimeError):
        Settings.load()
