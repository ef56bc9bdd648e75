from __future__ import annotations

import datetime as dt
import json
from unittest.mock import patch

import pytest

from slotwatch.domain import TimeRange
from slotwatch.state_file import load_ranges, save_ranges

TZ = dt.timezone(dt.timedelta(hours=2))


def _range(start: int, end: int) -> TimeRange:
    return TimeRange(dt.datetime(2023, 12, 1, start, tzinfo=TZ), dt.datetime(2023, 12, 1, end, tzinfo=TZ))


def test_missing_state_file_is_empty(tmp_path) -> None:
    assert load_ranges(str(tmp_path / "nope.json")) == []


def test_saved_ranges_are_loaded_back_with_offsets(tmp_path) -> None:
    path = str(tmp_path / "nested" / "state.json")
    save_ranges(path, [_range(11, 16), _range(8, 10)])

    loaded = load_ranges(path)
    assert loaded == [_range(8, 10), _range(11, 16)]
    assert loaded[0].start.utcoffset() == dt.timedelta(hours=2)

    raw = json.loads((tmp_path / "nested" / "state.json").read_text(encoding="utf-8"))
    assert raw["ranges"][0] == {"start": "2023-12-01T08:00:00+02:00", "end": "2023-12-01T10:00:00+02:00"}


def test_save_overwrites_previous_content(tmp_path) -> None:
    path = str(tmp_path / "state.json")
    save_ranges(path, [_range(8, 10), _range(11, 16)])
    save_ranges(path, [_range(12, 13)])

    assert load_ranges(path) == [_range(12, 13)]
    assert [p.name for p in tmp_path.iterdir()] == ["state.json"]


def test_corrupted_state_file_is_treated_as_empty(tmp_path, caplog) -> None:
    path = tmp_path / "state.json"
    path.write_text("{not json", encoding="utf-8")

    with caplog.at_level("WARNING"):
        assert load_ranges(str(path)) == []
    assert "not valid JSON" in caplog.text


def test_malformed_records_are_skipped(tmp_path) -> None:
    path = tmp_path / "state.json"
    path.write_text(
        json.dumps(
            {
                "ranges": [
                    {"start": "2023-12-01T08:00:00+02:00", "end": "2023-12-01T10:00:00+02:00"},
                    {"start": "garbage", "end": "2023-12-01T10:00:00+02:00"},
                    {"start": "2023-12-01T10:00:00+02:00"},
                    {"start": "2023-12-01T12:00:00+02:00", "end": "2023-12-01T11:00:00+02:00"},
                ]
            }
        ),
        encoding="utf-8",
    )

    assert load_ranges(str(path)) == [_range(8, 10)]


@pytest.mark.parametrize("content", ['{"ranges": null}', '{"ranges": {"start": "x"}}', '["not", "an", "object"]'])
def test_state_file_without_range_list_is_treated_as_empty(tmp_path, caplog, content) -> None:
    path = tmp_path / "state.json"
    path.write_text(content, encoding="utf-8")

    with caplog.at_level("WARNING"):
        assert load_ranges(str(path)) == []
    assert "no list of ranges" in caplog.text


def test_state_file_with_invalid_utf8_is_treated_as_empty(tmp_path, caplog) -> None:
    path = tmp_path / "state.json"
    path.write_bytes(b'{"ranges": ["\xff\xfe"]}')

    with caplog.at_level("WARNING"):
        assert load_ranges(str(path)) == []
    assert "not valid JSON" in caplog.text


def test_failed_write_leaves_previous_state_and_no_temp_file(tmp_path) -> None:
    path = tmp_path / "state.json"
    save_ranges(str(path), [_range(8, 10)])

    with patch("slotwatch.state_file.json.dump", side_effect=OSError("No space left on device")):
        with pytest.raises(OSError):
            save_ranges(str(path), [_range(12, 13)])

    assert load_ranges(str(path)) == [_range(8, 10)]
    assert [p.name for p in tmp_path.iterdir()] == ["state.json"]
