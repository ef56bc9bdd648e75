from __future__ import annotations

import logging
import threading

from tenacity import RetryCallState, retry, stop_after_attempt, wait_exponential

from slotwatch.availability import compute_available_ranges
from slotwatch.config import Settings
from slotwatch.diff import diff_ranges, removed_ranges
from slotwatch.domain import SourceData, TimeRange
from slotwatch.respa_client import build_resource_url, fetch_source_data
from slotwatch.state_file import load_ranges, save_ranges
from slotwatch.telegram_notifier import format_new_ranges, send_telegram_message

logger = logging.getLogger(__name__)


def _broadcast_telegram(settings: Settings, text: str, *, include_admin: bool = False) -> None:
    chat_ids = list(settings.telegram_chat_ids)
    if include_admin and settings.telegram_admin_chat_id and settings.telegram_admin_chat_id not in chat_ids:
        chat_ids.append(settings.telegram_admin_chat_id)

    errors: list[tuple[str, Exception]] = []

    for chat_id in chat_ids:
        try:
            send_telegram_message(
                bot_token=settings.telegram_bot_token,
                chat_id=chat_id,
                text=text,
                timeout_seconds=settings.http_timeout_seconds,
            )
        except Exception as e:
            # Best-effort: don't stop sending to other chat_ids.
            logger.warning("Failed to send telegram message to chat_id=%s (%s: %s)", chat_id, type(e).__name__, e)
            errors.append((chat_id, e))

    if errors:
        failed = ", ".join([cid for cid, _ in errors])
        raise RuntimeError(f"Failed to send telegram message to some recipients: {failed}")


def _send_status_message(settings: Settings, text: str) -> None:
    if not settings.notify_errors:
        logger.debug("Status messages disabled, not sending: %s", text)
        return
    _broadcast_telegram(settings, text, include_admin=True)


def _short_exc(retry_state: RetryCallState) -> str | None:
    if retry_state.outcome is None or not retry_state.outcome.failed:
        return None
    exc = retry_state.outcome.exception()
    if exc is None:
        return None
    msg = str(exc).strip()
    return f"{type(exc).__name__}: {msg}" if msg else type(exc).__name__


def _log_before_attempt(retry_state: RetryCallState) -> None:
    logger.info("Fetch attempt %s: start", retry_state.attempt_number)


def _log_after_attempt(retry_state: RetryCallState) -> None:
    if retry_state.outcome is not None and retry_state.outcome.failed:
        reason = _short_exc(retry_state)
        if reason:
            logger.warning("Fetch attempt %s: failed (%s)", retry_state.attempt_number, reason)
        else:
            logger.warning("Fetch attempt %s: failed", retry_state.attempt_number)


def _log_before_sleep(retry_state: RetryCallState) -> None:
    sleep_seconds = getattr(retry_state.next_action, "sleep", None)
    if sleep_seconds is None:
        logger.info("Waiting before the next fetch attempt...")
        return
    logger.info("Waiting %.0f s before fetch attempt %s", sleep_seconds, retry_state.attempt_number + 1)


def _fetch_with_retry(settings: Settings) -> SourceData:
    decorated = retry(
        stop=stop_after_attempt(settings.fetch_retry_attempts),
        wait=wait_exponential(multiplier=2, min=2, max=4),
        before=_log_before_attempt,
        after=_log_after_attempt,
        before_sleep=_log_before_sleep,
        reraise=True,
    )(fetch_source_data)

    return decorated(settings)


def run_check_once(settings: Settings) -> list[TimeRange]:
    """Fetch, compute, diff, persist and notify. Returns the new ranges."""
    resource_url = build_resource_url(settings.respa_api_url, settings.resource_id)

    try:
        source = _fetch_with_retry(settings)
        current = compute_available_ranges(source.openings, source.reservations)

        previous = load_ranges(settings.state_file)
        new_ranges = diff_ranges(current, previous)

        logger.info(
            "Ranges: current=%d previous=%d new=%d gone=%d",
            len(current),
            len(previous),
            len(new_ranges),
            len(removed_ranges(current, previous)),
        )

        save_ranges(settings.state_file, current)
        logger.info("State saved to %s", settings.state_file)

    except Exception as e:
        logger.error("Check failed (%s: %s)", type(e).__name__, e)
        try:
            _send_status_message(
                settings,
                text=(
                    "Availability check failed.\n"
                    f"Reason: {type(e).__name__}: {e}\n"
                    f"Resource: {resource_url}"
                ),
            )
        except Exception:
            logger.warning("Failed to send telegram status message", exc_info=True)
        raise

    if not new_ranges:
        logger.info("No new available times.")
        return new_ranges

    # The snapshot is already saved; a failed delivery is not retried next tick.
    messages = format_new_ranges(new_ranges)
    for index, text in enumerate(messages, start=1):
        try:
            _broadcast_telegram(settings, text)
        except Exception as e:
            logger.error(
                "Failed to deliver new availability, message %d/%d (%s: %s)", index, len(messages), type(e).__name__, e
            )
    logger.info("Announced %d new range(s) in %d message(s).", len(new_ranges), len(messages))

    return new_ranges


def run_forever(settings: Settings, stop_event: threading.Event | None = None) -> None:
    stop_event = stop_event or threading.Event()
    logger.info("Worker started. Interval=%ss", settings.check_interval_seconds)
    while not stop_event.is_set():
        try:
            run_check_once(settings)
        except Exception as e:
            # Already logged in run_check_once(); next tick retries.
            logger.error("Check failed in run_forever (%s: %s)", type(e).__name__, e)
        stop_event.wait(settings.check_interval_seconds)
    logger.info("Worker stopped.")
