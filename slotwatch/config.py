from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

DEFAULT_RESPA_API_URL = "https://api.hel.fi/respa/v1"
DEFAULT_RESOURCE_ID = "axwzr3i57yba"


def _parse_chat_id(name: str, raw: str) -> str:
    value = raw.strip()
    # Telegram allows numeric IDs; groups/supergroups can be negative.
    try:
        int(value)
    except ValueError as e:
        raise RuntimeError(f"Invalid {name} value: {value!r}. Expected integer chat id.") from e

    if value == "0":
        raise RuntimeError(f"Invalid {name} value: '0' is not a valid chat id")
    return value


def _parse_telegram_chat_ids(raw: str) -> tuple[str, ...]:
    # TELEGRAM_CHAT_ID supports a single value or a comma-separated list.
    # Examples:
    #   TELEGRAM_CHAT_ID=123456789
    #   TELEGRAM_CHAT_ID=123456789,-1001234567890
    parts = [p.strip() for p in raw.split(",")]
    parts = [p for p in parts if p]

    seen: set[str] = set()
    result: list[str] = []
    for p in parts:
        p = _parse_chat_id("TELEGRAM_CHAT_ID", p)
        if p in seen:
            continue
        seen.add(p)
        result.append(p)

    if not result:
        raise RuntimeError("TELEGRAM_CHAT_ID is empty. Provide at least one chat id.")

    return tuple(result)


@dataclass(frozen=True)
class Settings:
    telegram_bot_token: str
    telegram_chat_ids: tuple[str, ...]
    telegram_admin_chat_id: str | None = None

    respa_api_url: str = DEFAULT_RESPA_API_URL
    resource_id: str = DEFAULT_RESOURCE_ID

    # How many days ahead of "now" we ask the API about
    lookahead_days: int = 14
    check_interval_seconds: int = 600

    # How many times a failed fetch is attempted within one cycle
    fetch_retry_attempts: int = 2
    http_timeout_seconds: float = 20.0

    # Send "check failed" / start / stop messages to the chats
    notify_errors: bool = True

    # Where we store the last computed availability
    state_file: str = "state.json"


def _require(name: str) -> str:
    value = os.getenv(name)
    if not value:
        raise RuntimeError(f"Missing required environment variable: {name}")
    return value


def _positive_int(name: str, default: str) -> int:
    raw = os.getenv(name, default)
    try:
        value = int(raw)
    except ValueError as e:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}") from e
    if value < 1:
        raise RuntimeError(f"{name} must be >= 1")
    return value


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() not in {"0", "false", "no"}


def load_settings(dotenv_path: str | None = None) -> Settings:
    # Prefer .env in repo root; dotenv_path allows overriding in tests.
    load_dotenv(dotenv_path=dotenv_path, override=False)

    admin_raw = (os.getenv("TELEGRAM_ADMIN_CHAT_ID") or "").strip()
    admin_chat_id = _parse_chat_id("TELEGRAM_ADMIN_CHAT_ID", admin_raw) if admin_raw else None

    timeout_raw = os.getenv("HTTP_TIMEOUT_SECONDS", "20")
    try:
        http_timeout_seconds = float(timeout_raw)
    except ValueError as e:
        raise RuntimeError(f"HTTP_TIMEOUT_SECONDS must be a number, got {timeout_raw!r}") from e
    if not http_timeout_seconds > 0:
        raise RuntimeError("HTTP_TIMEOUT_SECONDS must be > 0")

    return Settings(
        telegram_bot_token=_require("TELEGRAM_BOT_TOKEN"),
        telegram_chat_ids=_parse_telegram_chat_ids(_require("TELEGRAM_CHAT_ID")),
        telegram_admin_chat_id=admin_chat_id,
        respa_api_url=os.getenv("RESPA_API_URL", DEFAULT_RESPA_API_URL).rstrip("/"),
        resource_id=os.getenv("RESPA_RESOURCE_ID", DEFAULT_RESOURCE_ID),
        lookahead_days=_positive_int("LOOKAHEAD_DAYS", "14"),
        check_interval_seconds=_positive_int("CHECK_INTERVAL_SECONDS", "600"),
        fetch_retry_attempts=_positive_int("FETCH_RETRY_ATTEMPTS", "2"),
        http_timeout_seconds=http_timeout_seconds,
        notify_errors=_flag("NOTIFY_ERRORS", "1"),
        state_file=os.getenv("STATE_FILE", "state.json"),
    )
