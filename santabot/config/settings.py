# santabot/config/settings.py
from __future__ import annotations

import os
import re
from dataclasses import dataclass

from dotenv import load_dotenv

DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./santa.db"

# Recency weights, most recent prior event first.
# 0.0 forbids a repeat pairing, 0.5 lets it through half of the time.
DEFAULT_HISTORY_WEIGHTS: tuple[float, ...] = (0.0, 0.0, 0.5)
DEFAULT_DRAW_MAX_ATTEMPTS = 10_000
DEFAULT_DRAW_LEASE_TIMEOUT = 600  # seconds


def _require(env: dict[str, str], key: str) -> str:
    v = env.get(key)
    if v is None or not v.strip():
        raise RuntimeError(f"Missing required environment variable: {key}")
    return v.strip()


def _to_int(value: str, key_name: str) -> int:
    try:
        return int(value)
    except ValueError as e:
        raise RuntimeError(f"Invalid integer for {key_name}: {value!r}") from e


def _to_float(value: str, key_name: str) -> float:
    try:
        return float(value)
    except ValueError as e:
        raise RuntimeError(f"Invalid number for {key_name}: {value!r}") from e


def _split_list(raw: str | None) -> list[str]:
    """
    Splits comma/space/newline separated values.
    Accepts:
      "951258732"
      "951258732,123"
      "951258732 123"
      "[951258732, 123]"  (brackets ignored)
    """
    if not raw:
        return []

    cleaned = raw.strip().strip("[](){}").strip()
    if not cleaned:
        return []

    parts = [p.strip().strip("'\"") for p in re.split(r"[,\s]+", cleaned)]
    return [p for p in parts if p]


def _parse_int_list(raw: str | None, key_name: str) -> list[int]:
    return [_to_int(p, key_name) for p in _split_list(raw)]


def _parse_weights(raw: str | None, key_name: str) -> tuple[float, ...]:
    values = [_to_float(p, key_name) for p in _split_list(raw)]
    if not values:
        return DEFAULT_HISTORY_WEIGHTS
    for w in values:
        if not 0.0 <= w <= 1.0:
            raise RuntimeError(f"{key_name} weights must be within [0, 1], got {w!r}")
    return tuple(values)


@dataclass(frozen=True, slots=True)
class Settings:
    # --- required ---
    bot_token: str

    # --- optional ---
    database_url: str = DEFAULT_DATABASE_URL

    # --- security / admin ---
    admin_ids: tuple[int, ...] = ()

    # --- draw tuning ---
    history_weights: tuple[float, ...] = DEFAULT_HISTORY_WEIGHTS
    draw_max_attempts: int = DEFAULT_DRAW_MAX_ATTEMPTS
    draw_lease_timeout: int = DEFAULT_DRAW_LEASE_TIMEOUT

    # --- time ---
    timezone: str = "UTC"

    # --- environment ---
    environment: str = "production"  # production | development

    @property
    def is_dev(self) -> bool:
        return self.environment.lower() in {"dev", "development", "local"}

    @property
    def history_window(self) -> int:
        return len(self.history_weights)

    @classmethod
    def load(cls) -> "Settings":
        """
        Loads from process env (and .env if present).
        Fails fast for required fields.
        """
        load_dotenv()
        env = os.environ

        bot_token = _require(env, "BOT_TOKEN")
        database_url = (env.get("DATABASE_URL") or DEFAULT_DATABASE_URL).strip()

        admin_ids = tuple(_parse_int_list(env.get("ADMIN_IDS"), "ADMIN_IDS"))

        history_weights = _parse_weights(env.get("HISTORY_WEIGHTS"), "HISTORY_WEIGHTS")

        attempts_raw = (env.get("DRAW_MAX_ATTEMPTS") or "").strip()
        draw_max_attempts = (
            _to_int(attempts_raw, "DRAW_MAX_ATTEMPTS") if attempts_raw else DEFAULT_DRAW_MAX_ATTEMPTS
        )
        if draw_max_attempts < 1:
            raise RuntimeError("DRAW_MAX_ATTEMPTS must be at least 1")

        lease_raw = (env.get("DRAW_LEASE_TIMEOUT") or "").strip()
        draw_lease_timeout = (
            _to_int(lease_raw, "DRAW_LEASE_TIMEOUT") if lease_raw else DEFAULT_DRAW_LEASE_TIMEOUT
        )
        if draw_lease_timeout < 1:
            raise RuntimeError("DRAW_LEASE_TIMEOUT must be at least 1 second")

        timezone = (env.get("TIMEZONE") or "UTC").strip() or "UTC"
        environment = (env.get("ENVIRONMENT") or "production").strip() or "production"

        return cls(
            bot_token=bot_token,
            database_url=database_url,
            admin_ids=admin_ids,
            history_weights=history_weights,
            draw_max_attempts=draw_max_attempts,
            draw_lease_timeout=draw_lease_timeout,
            timezone=timezone,
            environment=environment,
        )
