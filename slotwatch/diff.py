"""Compare a freshly computed availability list with the stored snapshot."""

from __future__ import annotations

from typing import Iterable, Sequence

from slotwatch.domain import TimeRange


def diff_ranges(current: Sequence[TimeRange], previous: Iterable[TimeRange]) -> list[TimeRange]:
    """Ranges of ``current`` that have no exact (start, end) match in ``previous``.

    A range that grew or shrank since the last run counts as new. The result
    keeps the order of ``current``.
    """
    known = set(previous)
    return [item for item in current if item not in known]


def removed_ranges(current: Iterable[TimeRange], previous: Sequence[TimeRange]) -> list[TimeRange]:
    """Ranges of ``previous`` that are gone from ``current``."""
    return diff_ranges(previous, current)
