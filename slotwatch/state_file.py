from __future__ import annotations

import datetime as dt
import json
import logging
import os
import tempfile
from typing import Iterable

from slotwatch.domain import TimeRange

logger = logging.getLogger(__name__)


def load_ranges(path: str) -> list[TimeRange]:
    if not os.path.exists(path):
        return []

    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except ValueError:
        # JSONDecodeError and UnicodeDecodeError; corrupted state shouldn't brick the worker.
        logger.warning("State file %s is not valid JSON, treating it as empty", path)
        return []

    records = raw.get("ranges") if isinstance(raw, dict) else None
    if not isinstance(records, list):
        logger.warning("State file %s has no list of ranges, treating it as empty", path)
        return []

    ranges: list[TimeRange] = []
    for item in records:
        try:
            ranges.append(
                TimeRange(
                    start=dt.datetime.fromisoformat(item["start"]),
                    end=dt.datetime.fromisoformat(item["end"]),
                )
            )
        except (KeyError, TypeError, ValueError):
            logger.warning("Skipping malformed state record: %r", item)
    return ranges


def save_ranges(path: str, ranges: Iterable[TimeRange]) -> None:
    data = {
        "ranges": [{"start": r.start.isoformat(), "end": r.end.isoformat()} for r in sorted(ranges)],
    }

    folder = os.path.dirname(os.path.abspath(path))
    if folder and not os.path.exists(folder):
        os.makedirs(folder, exist_ok=True)

    # Atomic write
    with tempfile.NamedTemporaryFile("w", delete=False, encoding="utf-8", dir=folder, suffix=".tmp") as tf:
        tmp_name = tf.name
        try:
            json.dump(data, tf, ensure_ascii=False, indent=2)
        except Exception:
            tf.close()
            os.unlink(tmp_name)
            raise

    os.replace(tmp_name, path)
