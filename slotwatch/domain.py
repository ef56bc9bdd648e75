from __future__ import annotations

import datetime as dt
from dataclasses import dataclass

ONE_HOUR = dt.timedelta(hours=1)


def _require_aware(name: str, value: dt.datetime) -> None:
    if value.tzinfo is None or value.utcoffset() is None:
        raise ValueError(f"{name} must be timezone-aware, got {value!r}")


@dataclass(frozen=True, order=True)
class TimeRange:
    """Half-open interval [start, end) between two aware instants.

    Equality and hashing follow ``datetime``: two ranges are equal when both
    endpoints are the same instant, whatever UTC offset they were written in.
    """

    start: dt.datetime
    end: dt.datetime

    def __post_init__(self) -> None:
        _require_aware("start", self.start)
        _require_aware("end", self.end)
        if self.start >= self.end:
            raise ValueError(f"TimeRange requires start < end, got start={self.start} end={self.end}")

    @property
    def duration(self) -> dt.timedelta:
        return self.end - self.start

    @property
    def hours(self) -> int:
        return self.duration // ONE_HOUR

    @property
    def date(self) -> dt.date:
        return self.start.date()

    def contains(self, instant: dt.datetime) -> bool:
        return self.start <= instant < self.end

    def format(self) -> str:
        # e.g. "2023-12-01 10:00-14:00 (4h)", in the offset the range was built with
        return f"{self.start:%Y-%m-%d %H:%M}-{self.end:%H:%M} ({self.hours}h)"


@dataclass(frozen=True)
class OpeningWindow:
    """Opening hours of the resource for one calendar date.

    ``opens``/``closes`` are ``None`` when the facility is closed that day.
    """

    date: dt.date
    opens: dt.datetime | None
    closes: dt.datetime | None

    @property
    def is_closed(self) -> bool:
        return self.opens is None or self.closes is None

    @property
    def range(self) -> TimeRange | None:
        if self.is_closed or self.opens >= self.closes:
            return None
        return TimeRange(self.opens, self.closes)


@dataclass(frozen=True)
class ReservationWindow:
    """An already booked interval."""

    begin: dt.datetime
    end: dt.datetime

    @property
    def date(self) -> dt.date:
        return self.begin.date()

    @property
    def range(self) -> TimeRange | None:
        if self.begin >= self.end:
            return None
        return TimeRange(self.begin, self.end)


@dataclass(frozen=True)
class SourceData:
    openings: tuple[OpeningWindow, ...]
    reservations: tuple[ReservationWindow, ...]


class SlotWatchError(RuntimeError):
    """Base class for errors raised by the watcher."""


class SourceFetchError(SlotWatchError):
    """The reservation API could not be reached or answered with an error."""


class SourceDataError(SlotWatchError):
    """The reservation API answered with data we cannot parse.

    Raised before anything reaches the availability calculation, so a bad
    payload never ends up in the persisted snapshot.
    """
