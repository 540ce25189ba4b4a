from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timezone

import pytest

from surveyhub.database.models import SurveyStatus
from surveyhub.utils import jsonutil
from surveyhub.utils.dt import parse_datetime, parse_hour_bucket
from surveyhub.utils.sanitize import sanitize_input


def test_sanitize_nested():
    raw = {"a": " <i>x</i> ", "b": [1, "\"q\""], "c": {"d": None}}
    assert sanitize_input(raw) == {
        "a": "&lt;i&gt;x&lt;/i&gt;",
        "b": [1, "&quot;q&quot;"],
        "c": {"d": None},
    }


def test_parse_datetime():
    assert parse_datetime("2026-01-31") == datetime(2026, 1, 31)
    assert parse_datetime("2026-01-31", end_of_day=True) == datetime(2026, 1, 31, 23, 59, 59, 999999)
    assert parse_datetime("2026-01-31T10:00:00+02:00") == datetime(2026, 1, 31, 8)
    assert parse_datetime("2026-01-31T10:00:00Z") == datetime(2026, 1, 31, 10)
    assert parse_datetime("") is None
    with pytest.raises(ValueError):
        parse_datetime("yesterday")


def test_parse_hour_bucket():
    assert parse_hour_bucket("2026-01-31 10:00:00") == datetime(2026, 1, 31, 10)
    aware = datetime(2026, 1, 31, 12, 0, tzinfo=timezone.utc)
    assert parse_hour_bucket(aware) == datetime(2026, 1, 31, 12)


def test_jsonutil_handles_domain_values():
    @dataclass
    class Row:
        when: datetime
        status: SurveyStatus

    out = json.loads(jsonutil.dumps({"row": Row(datetime(2026, 1, 1, 9), SurveyStatus.CLOSED)}))
    assert out == {"row": {"when": "2026-01-01T09:00:00", "status": "closed"}}
