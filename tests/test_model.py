from __future__ import annotations

from datetime import time

import pytest

from fittrack.model import (
    ActivityKind,
    Reminder,
    parse_activity_kind,
    parse_days_of_week,
    parse_time_of_day,
)


def test_parse_time_of_day_formats() -> None:
    assert parse_time_of_day("07:00") == time(7, 0)
    assert parse_time_of_day("7:05:30") == time(7, 5, 30)
    assert parse_time_of_day(time(6, 1, 2, 999)) == time(6, 1, 2)


@pytest.mark.parametrize("raw", ["24:00", "07:60", "7", "aa:bb", "", "07:00:00:00"])
def test_parse_time_of_day_invalid(raw: str) -> None:
    with pytest.raises(ValueError):
        parse_time_of_day(raw)


def test_parse_days_of_week() -> None:
    assert parse_days_of_week("all") == frozenset(range(7))
    assert parse_days_of_week("Mon, wed,FRI") == frozenset({0, 2, 4})
    assert parse_days_of_week("sab,dom") == frozenset({5, 6})
    assert parse_days_of_week("0,6") == frozenset({0, 6})


@pytest.mark.parametrize("raw", [None, "", "funday", "7"])
def test_parse_days_of_week_invalid(raw: str | None) -> None:
    with pytest.raises(ValueError):
        parse_days_of_week(raw)


def test_parse_activity_kind() -> None:
    assert parse_activity_kind(" Water ") is ActivityKind.WATER
    with pytest.raises(ValueError):
        parse_activity_kind("steps")


def test_display_message_defaults_by_kind() -> None:
    assert Reminder(1, "sleep", "22:00").display_message() == "Registra tus horas de sueño"
    assert Reminder(2, "water", "10:00", message="  Agua! ").display_message() == "Agua!"
    assert Reminder(3, "yoga", "10:00").display_message() == "Recordatorio: yoga"
