"""Client for the Respa resource API (opening hours + reservations).

A resource document looks roughly like this (only the fields we read)::

    {
        "opening_hours": [
            {"date": "2023-12-01", "opens": "2023-12-01T10:00:00+02:00", "closes": "2023-12-01T14:00:00+02:00"},
            {"date": "2024-01-01", "opens": null, "closes": null}
        ],
        "reservations": [
            {"begin": "2023-12-01T10:00:00+02:00", "end": "2023-12-01T11:00:00+02:00"}
        ]
    }
"""

from __future__ import annotations

import datetime as dt
import logging
from typing import Any

import httpx

from slotwatch.config import Settings
from slotwatch.domain import OpeningWindow, ReservationWindow, SourceData, SourceDataError, SourceFetchError

logger = logging.getLogger(__name__)


def build_resource_url(base_url: str, resource_id: str) -> str:
    return f"{base_url.rstrip('/')}/resource/{resource_id}/"


def fetch_resource(
    settings: Settings,
    *,
    now: dt.datetime | None = None,
    client: httpx.Client | None = None,
) -> dict[str, Any]:
    start = now or dt.datetime.now(dt.timezone.utc)
    end = start + dt.timedelta(days=settings.lookahead_days)
    url = build_resource_url(settings.respa_api_url, settings.resource_id)
    params = {"start": start.isoformat(), "end": end.isoformat(), "format": "json"}

    owns_client = client is None
    if client is None:
        client = httpx.Client(timeout=settings.http_timeout_seconds)

    try:
        logger.debug("GET %s %s", url, params)
        r = client.get(url, params=params)
        r.raise_for_status()
    except httpx.HTTPError as e:
        raise SourceFetchError(f"Failed to fetch {url}: {type(e).__name__}: {e}") from e
    finally:
        if owns_client:
            client.close()

    try:
        payload = r.json()
    except ValueError as e:
        raise SourceDataError(f"Response from {url} is not valid JSON") from e

    if not isinstance(payload, dict):
        raise SourceDataError(f"Expected a JSON object from {url}, got {type(payload).__name__}")
    return payload


def _parse_instant(value: Any, field: str) -> dt.datetime:
    if not isinstance(value, str):
        raise SourceDataError(f"Field {field!r} must be a timestamp string, got {value!r}")
    try:
        instant = dt.datetime.fromisoformat(value)
    except ValueError as e:
        raise SourceDataError(f"Unparseable timestamp in {field!r}: {value!r}") from e
    if instant.tzinfo is None:
        raise SourceDataError(f"Timestamp in {field!r} has no UTC offset: {value!r}")
    return instant


def _parse_opening(item: Any) -> OpeningWindow:
    if not isinstance(item, dict) or "date" not in item:
        raise SourceDataError(f"Opening hours entry without a date: {item!r}")
    try:
        date = dt.date.fromisoformat(item["date"])
    except (TypeError, ValueError) as e:
        raise SourceDataError(f"Unparseable opening hours date: {item['date']!r}") from e

    opens = item.get("opens")
    closes = item.get("closes")
    # Either missing means the facility is closed that day.
    if opens is None or closes is None:
        return OpeningWindow(date=date, opens=None, closes=None)
    return OpeningWindow(
        date=date,
        opens=_parse_instant(opens, "opens"),
        closes=_parse_instant(closes, "closes"),
    )


def _parse_reservation(item: Any) -> ReservationWindow:
    if not isinstance(item, dict):
        raise SourceDataError(f"Reservation entry is not an object: {item!r}")
    missing = [k for k in ("begin", "end") if k not in item]
    if missing:
        raise SourceDataError(f"Reservation entry missing {', '.join(missing)}: {item!r}")
    return ReservationWindow(
        begin=_parse_instant(item["begin"], "begin"),
        end=_parse_instant(item["end"], "end"),
    )


def _require_list(payload: dict[str, Any], key: str) -> list[Any]:
    value = payload.get(key)
    if not isinstance(value, list):
        raise SourceDataError(f"Resource payload has no {key!r} list")
    return value


def parse_resource(payload: dict[str, Any]) -> SourceData:
    openings = tuple(_parse_opening(item) for item in _require_list(payload, "opening_hours"))
    reservations = tuple(_parse_reservation(item) for item in _require_list(payload, "reservations"))
    return SourceData(openings=openings, reservations=reservations)


def fetch_source_data(settings: Settings, *, now: dt.datetime | None = None) -> SourceData:
    data = parse_resource(fetch_resource(settings, now=now))
    logger.info(
        "Fetched %d opening day(s) and %d reservation(s) for resource %s",
        len(data.openings),
        len(data.reservations),
        settings.resource_id,
    )
    return data
