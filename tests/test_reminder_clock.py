"""Tests for the periodic reminder clock."""

from __future__ import annotations

import threading
from datetime import date, datetime, time
from pathlib import Path

import pytest

from fittrack.alarms import AlarmOccurrence, AlarmState, ReminderBoard
from fittrack.model import DailySnapshot, Reminder
from fittrack.reminder_clock import ReminderClock, local_now
from fittrack.storage import SQLiteStore


class _FakeNow:
    def __init__(self, value: datetime) -> None:
        self.value = value

    def __call__(self) -> datetime:
        return self.value


def _reminders() -> list[Reminder]:
    return [Reminder(id=1, activity_kind="weight", time_of_day="08:30")]


def test_tick_reads_providers_each_time() -> None:
    now = _FakeNow(datetime(2025, 12, 15, 8, 25))
    snapshots: list[date] = []

    def snapshot(day: date) -> DailySnapshot:
        snapshots.append(day)
        return DailySnapshot(day=day)

    board = ReminderBoard()
    clock = ReminderClock(board, _reminders, snapshot, now=now)
    clock.tick()
    assert board.status(1).state is AlarmState.IMMINENT

    now.value = datetime(2025, 12, 15, 8, 30)
    transitions = clock.tick()
    assert transitions[-1].current is AlarmState.RINGING
    assert snapshots == [date(2025, 12, 15), date(2025, 12, 15)]


def test_snapshot_failure_counts_as_unsatisfied() -> None:
    def broken(_: date) -> DailySnapshot:
        raise OSError("database is locked")

    notified: list[AlarmOccurrence] = []
    board = ReminderBoard(notified.append)
    clock = ReminderClock(
        board, _reminders, broken, now=_FakeNow(datetime(2025, 12, 15, 8, 30))
    )
    clock.tick()
    assert board.status(1).state is AlarmState.RINGING
    assert len(notified) == 1


def test_reminder_provider_failure_skips_tick() -> None:
    def broken() -> list[Reminder]:
        raise OSError("database is locked")

    board = ReminderBoard()
    clock = ReminderClock(
        board,
        broken,
        lambda day: DailySnapshot(day=day),
        now=_FakeNow(datetime(2025, 12, 15, 8, 30)),
    )
    assert clock.tick() == []
    assert board.day is None


def test_satisfied_snapshot_suppresses() -> None:
    board = ReminderBoard()
    clock = ReminderClock(
        board,
        _reminders,
        lambda day: DailySnapshot(day=day, weight_kg=71.5),
        now=_FakeNow(datetime(2025, 12, 15, 8, 30)),
    )
    clock.tick()
    assert board.status(1).state is AlarmState.SUPPRESSED


def test_run_stops_when_event_is_set() -> None:
    stop = threading.Event()
    calls: list[int] = []

    def reminders() -> list[Reminder]:
        calls.append(1)
        if len(calls) == 3:
            stop.set()
        return []

    clock = ReminderClock(
        ReminderBoard(),
        reminders,
        lambda day: DailySnapshot(day=day),
        period=0.001,
        now=_FakeNow(datetime(2025, 12, 15, 8, 0)),
    )
    clock.run(stop)
    assert len(calls) == 3


def test_invalid_period() -> None:
    with pytest.raises(ValueError):
        ReminderClock(ReminderBoard(), list, lambda day: DailySnapshot(day=day), period=0)


def test_default_clock_is_naive_local_time() -> None:
    now = local_now()
    assert now.tzinfo is None
    assert isinstance(now.time(), time)


def test_disabling_reminder_in_store_drops_pending_countdown(tmp_path: Path) -> None:
    store = SQLiteStore(tmp_path / "app.sqlite3")
    reminder = store.add_reminder("water", "08:30")
    now = _FakeNow(datetime(2025, 12, 15, 8, 25))
    board = ReminderBoard()
    clock = ReminderClock(board, store.list_reminders, store.today_snapshot, now=now)
    clock.tick()
    assert board.status(reminder.id).state is AlarmState.IMMINENT

    store.update_reminder(reminder.id, is_active=False)
    now.value = datetime(2025, 12, 15, 8, 26)
    transitions = clock.tick()
    assert board.status(reminder.id).state is AlarmState.SCHEDULED
    assert transitions[0].previous is AlarmState.IMMINENT

    now.value = datetime(2025, 12, 15, 8, 30)
    clock.tick()
    assert board.ringing() == []
