from __future__ import annotations

import datetime as dt
import logging
from collections import defaultdict
from typing import Iterable, Sequence

from slotwatch.domain import ONE_HOUR, OpeningWindow, ReservationWindow, TimeRange

logger = logging.getLogger(__name__)


def _is_reserved(instant: dt.datetime, reservations: Iterable[TimeRange]) -> bool:
    # Membership is sampled at the slot start only: a booking starting at
    # 10:30 leaves the 10:00 slot free and blocks the 11:00 one.
    return any(r.contains(instant) for r in reservations)


def hourly_slots(window: TimeRange, reservations: Sequence[TimeRange]) -> list[TimeRange]:
    """Free one-hour slots of a single opening window.

    A trailing partial hour (e.g. 10:00-10:45) produces no slot.
    """
    slots: list[TimeRange] = []
    current = window.start
    while current + ONE_HOUR <= window.end:
        if not _is_reserved(current, reservations):
            slots.append(TimeRange(current, current + ONE_HOUR))
        current = current + ONE_HOUR
    return slots


def merge_contiguous(slots: Iterable[TimeRange]) -> list[TimeRange]:
    """Join slots whose start equals the previous slot's end."""
    merged: list[TimeRange] = []
    running: TimeRange | None = None

    for slot in slots:
        if running is None:
            running = slot
        elif running.end == slot.start:
            running = TimeRange(running.start, slot.end)
        else:
            merged.append(running)
            running = slot

    if running is not None:
        merged.append(running)
    return merged


def _reservations_by_date(reservations: Iterable[ReservationWindow]) -> dict[dt.date, list[TimeRange]]:
    by_date: dict[dt.date, list[TimeRange]] = defaultdict(list)
    for reservation in reservations:
        booked = reservation.range
        if booked is None:
            logger.debug("Dropping malformed reservation %s - %s", reservation.begin, reservation.end)
            continue
        by_date[reservation.date].append(booked)
    return by_date


def compute_available_ranges(
    openings: Iterable[OpeningWindow],
    reservations: Iterable[ReservationWindow],
) -> list[TimeRange]:
    """Open time per opening window minus same-day reservations, merged into ranges.

    Openings are processed in the order given; closed days contribute nothing.
    Reservations only count against the opening of the same calendar date.
    """
    by_date = _reservations_by_date(reservations)

    free: list[TimeRange] = []
    for opening in openings:
        if opening.is_closed:
            continue
        window = opening.range
        if window is None:
            logger.debug("Dropping malformed opening window for %s", opening.date)
            continue
        free.extend(hourly_slots(window, by_date.get(opening.date, ())))

    return merge_contiguous(free)
