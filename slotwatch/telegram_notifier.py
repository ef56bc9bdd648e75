from __future__ import annotations

from typing import Iterable

import httpx

from slotwatch.domain import TimeRange

# Bot API limit for the text of one sendMessage call
MAX_MESSAGE_LENGTH = 4096
NEW_RANGES_HEADER = "New available times:"


def send_telegram_message(*, bot_token: str, chat_id: str, text: str, timeout_seconds: float = 20.0) -> None:
    url = f"https://api.telegram.org/bot{bot_token}/sendMessage"
    payload = {
        "chat_id": chat_id,
        "text": text,
        "disable_web_page_preview": True,
    }

    with httpx.Client(timeout=timeout_seconds) as client:
        r = client.post(url, json=payload)
        r.raise_for_status()
        data = r.json()
        if not data.get("ok", False):
            raise RuntimeError(f"Telegram API error: {data}")


def format_new_ranges(ranges: Iterable[TimeRange], *, max_length: int = MAX_MESSAGE_LENGTH) -> list[str]:
    """Render the ranges as one or more messages, each within Telegram's length limit."""
    messages: list[str] = []
    current = NEW_RANGES_HEADER
    for r in ranges:
        line = f"\n• {r.format()}"
        if len(current) + len(line) > max_length and current != NEW_RANGES_HEADER:
            messages.append(current)
            current = NEW_RANGES_HEADER
        current += line
    if current != NEW_RANGES_HEADER:
        messages.append(current)
    return messages
