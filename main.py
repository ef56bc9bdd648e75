import argparse
import logging
import signal
import threading

from slotwatch.config import load_settings
from slotwatch.worker import run_check_once, run_forever, _send_status_message


def _setup_logging() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )


def _install_stop_handlers(stop_event: threading.Event) -> None:
    def _handler(signum, _frame) -> None:
        logging.getLogger(__name__).info("Received signal %s, stopping after the current check", signum)
        stop_event.set()

    signal.signal(signal.SIGINT, _handler)
    signal.signal(signal.SIGTERM, _handler)


def main() -> int:
    parser = argparse.ArgumentParser(description="SlotWatch: facility availability watcher")
    parser.add_argument("--once", action="store_true", help="Run single check and exit")
    args = parser.parse_args()

    _setup_logging()
    try:
        settings = load_settings()
    except RuntimeError as e:
        logging.getLogger(__name__).error("Invalid configuration: %s", e)
        return 2

    # Start notification (best-effort)
    try:
        _send_status_message(
            settings,
            text=(
                "SlotWatch started.\n"
                f"Mode: {'once' if args.once else 'forever'}\n"
                f"resource={settings.resource_id} interval={settings.check_interval_seconds}s "
                f"lookahead={settings.lookahead_days}d"
            ),
        )
    except Exception:
        logging.getLogger(__name__).warning("Failed to send Telegram startup message", exc_info=True)

    try:
        if args.once:
            run_check_once(settings)
            return 0

        stop_event = threading.Event()
        _install_stop_handlers(stop_event)
        run_forever(settings, stop_event)
        return 0

    except Exception as e:
        # Crash notification (best-effort)
        try:
            _send_status_message(
                settings,
                text=(
                    "SlotWatch exited with an error.\n"
                    f"Reason: {type(e).__name__}: {e}"
                ),
            )
        except Exception:
            logging.getLogger(__name__).warning("Failed to send Telegram crash message", exc_info=True)
        raise

    finally:
        # Process exit notification (best-effort)
        try:
            _send_status_message(settings, text="SlotWatch stopped (process exit).")
        except Exception:
            logging.getLogger(__name__).warning("Failed to send Telegram shutdown message", exc_info=True)


if __name__ == "__main__":
    raise SystemExit(main())
