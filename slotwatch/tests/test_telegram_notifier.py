from __future__ import annotations

import datetime as dt
from unittest.mock import MagicMock, patch

import pytest

from slotwatch.domain import TimeRange
from slotwatch.telegram_notifier import MAX_MESSAGE_LENGTH, format_new_ranges, send_telegram_message

TZ = dt.timezone(dt.timedelta(hours=2))


def test_format_new_ranges_lists_one_line_per_range() -> None:
    ranges = [
        TimeRange(dt.datetime(2023, 12, 1, 11, tzinfo=TZ), dt.datetime(2023, 12, 1, 16, tzinfo=TZ)),
        TimeRange(dt.datetime(2023, 12, 2, 16, tzinfo=TZ), dt.datetime(2023, 12, 2, 17, tzinfo=TZ)),
    ]

    assert format_new_ranges(ranges) == [
        "New available times:\n"
        "• 2023-12-01 11:00-16:00 (5h)\n"
        "• 2023-12-02 16:00-17:00 (1h)"
    ]


def test_format_new_ranges_splits_long_lists_within_telegram_limit() -> None:
    # Every other hour free: far more lines than one message can hold.
    start = dt.datetime(2023, 12, 1, 0, tzinfo=TZ)
    ranges = [
        TimeRange(start + dt.timedelta(hours=2 * i), start + dt.timedelta(hours=2 * i + 1)) for i in range(400)
    ]

    messages = format_new_ranges(ranges)

    assert len(messages) > 1
    assert all(len(m) <= MAX_MESSAGE_LENGTH for m in messages)
    assert all(m.startswith("New available times:\n") for m in messages)
    lines = [line for m in messages for line in m.splitlines()[1:]]
    assert lines == [f"• {r.format()}" for r in ranges]


def test_format_new_ranges_of_nothing_is_no_message() -> None:
    assert format_new_ranges([]) == []


def _client_returning(body: dict) -> MagicMock:
    response = MagicMock()
    response.json.return_value = body
    client = MagicMock()
    client.__enter__.return_value = client
    client.post.return_value = response
    return client


def test_send_telegram_message_posts_to_bot_api() -> None:
    client = _client_returning({"ok": True})

    with patch("slotwatch.telegram_notifier.httpx.Client", return_value=client):
        send_telegram_message(bot_token="T", chat_id="42", text="hi")

    url = client.post.call_args.args[0]
    assert url == "https://api.telegram.org/botT/sendMessage"
    assert client.post.call_args.kwargs["json"]["chat_id"] == "42"
    assert client.post.call_args.kwargs["json"]["text"] == "hi"


def test_send_telegram_message_raises_when_api_reports_error() -> None:
    client = _client_returning({"ok": False, "description": "chat not found"})

    with patch("slotwatch.telegram_notifier.httpx.Client", return_value=client):
        with pytest.raises(RuntimeError, match="Telegram API error"):
            send_telegram_message(bot_token="T", chat_id="42", text="hi")
