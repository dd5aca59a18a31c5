"""Tests for the reminder board state machine."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta

import pytest

from fittrack.alarms import (
    AlarmOccurrence,
    AlarmState,
    ReminderBoard,
    TickContext,
    minutes_until,
    seconds_until,
)
from fittrack.model import DailySnapshot, Reminder

DAY = date(2025, 12, 15)  # lunes


def _at(hour: int, minute: int, second: int = 0, day: date = DAY) -> datetime:
    return datetime.combine(day, time(hour, minute, second))


def _ctx(
    now: datetime,
    reminders: list[Reminder],
    snapshot: DailySnapshot | None = None,
) -> TickContext:
    return TickContext(
        now=now,
        reminders=reminders,
        snapshot=snapshot if snapshot is not None else DailySnapshot(day=now.date()),
    )


def _water(reminder_id: int = 1, **kwargs: object) -> Reminder:
    return Reminder(id=reminder_id, activity_kind="water", time_of_day="07:00", **kwargs)


def test_minutes_until_wraps_and_hits_zero_once_per_day() -> None:
    assert minutes_until(420, 412) == 8
    assert minutes_until(420, 421) == 1439
    for reminder_minutes in (0, 420, 1439):
        values = [minutes_until(reminder_minutes, c) for c in range(1440)]
        assert all(0 <= v <= 1439 for v in values)
        assert values.count(0) == 1


def test_seconds_until_wraps() -> None:
    assert seconds_until(time(7, 0), time(6, 52, 30)) == 450
    assert seconds_until(time(7, 0), time(7, 0, 1)) == 86399


def test_end_to_end_water_reminder() -> None:
    notified: list[AlarmOccurrence] = []
    board = ReminderBoard(notified.append, warning_window_minutes=10)
    reminders = [_water()]

    board.advance(_ctx(_at(6, 52), reminders))
    status = board.status(1)
    assert status.state is AlarmState.IMMINENT
    assert status.minutes_until == 8
    assert status.countdown() == "08:00"

    transitions = board.advance(_ctx(_at(7, 0), reminders))
    assert board.status(1).state is AlarmState.RINGING
    assert [t.current for t in transitions] == [AlarmState.RINGING]
    assert len(notified) == 1
    assert notified[0].message == "Hora de tomar agua"

    assert board.acknowledge(1) is True
    board.advance(_ctx(_at(7, 5), reminders))
    assert board.status(1).state is AlarmState.ACKNOWLEDGED

    next_day = DAY + timedelta(days=1)
    board.advance(_ctx(_at(7, 0, day=next_day), reminders))
    assert board.status(1).state is AlarmState.RINGING
    assert board.occurrence(1, DAY) is None
    assert len(notified) == 2


def test_rings_once_per_day_across_many_due_ticks() -> None:
    notified: list[AlarmOccurrence] = []
    board = ReminderBoard(notified.append)
    reminders = [_water()]
    for second in range(60):
        board.advance(_ctx(_at(7, 0, second), reminders))
    assert len(notified) == 1
    assert len(board.ringing()) == 1


def test_reminder_with_seconds_rings_at_its_second() -> None:
    notified: list[AlarmOccurrence] = []
    board = ReminderBoard(notified.append)
    reminders = [Reminder(id=1, activity_kind="water", time_of_day="07:00:30")]

    board.advance(_ctx(_at(6, 59, 59), reminders))
    assert board.status(1).countdown() == "00:31"

    board.advance(_ctx(_at(7, 0, 0), reminders))
    status = board.status(1)
    assert status.state is AlarmState.IMMINENT
    assert status.countdown() == "00:30"
    assert notified == []

    board.advance(_ctx(_at(7, 0, 30), reminders))
    board.advance(_ctx(_at(7, 0, 45), reminders))
    assert board.status(1).state is AlarmState.RINGING
    assert len(notified) == 1


def test_reminder_with_seconds_fires_on_late_tick_in_due_minute() -> None:
    notified: list[AlarmOccurrence] = []
    board = ReminderBoard(notified.append)
    reminders = [Reminder(id=1, activity_kind="water", time_of_day="07:00:30")]
    board.advance(_ctx(_at(7, 0, 10), reminders))
    board.advance(_ctx(_at(7, 0, 50), reminders))
    assert board.status(1).state is AlarmState.RINGING
    assert len(notified) == 1


def test_acknowledged_does_not_ring_again_same_day() -> None:
    notified: list[AlarmOccurrence] = []
    board = ReminderBoard(notified.append)
    reminders = [_water()]
    board.advance(_ctx(_at(7, 0, 0), reminders))
    board.acknowledge(1)
    board.advance(_ctx(_at(7, 0, 30), reminders))
    assert board.status(1).state is AlarmState.ACKNOWLEDGED
    assert len(notified) == 1


def test_satisfied_activity_is_suppressed() -> None:
    notified: list[AlarmOccurrence] = []
    board = ReminderBoard(notified.append)
    snapshot = DailySnapshot(day=DAY, water_ml=250)
    board.advance(_ctx(_at(6, 55), [_water()], snapshot))
    board.advance(_ctx(_at(7, 0), [_water()], snapshot))
    assert board.status(1).state is AlarmState.SUPPRESSED
    assert notified == []
    assert board.ringing() == []


def test_missing_snapshot_rings() -> None:
    board = ReminderBoard()
    board.advance(TickContext(now=_at(7, 0), reminders=[_water()], snapshot=None))
    assert board.status(1).state is AlarmState.RINGING


def test_inactive_reminder_stays_scheduled() -> None:
    notified: list[AlarmOccurrence] = []
    board = ReminderBoard(notified.append)
    reminders = [_water(is_active=False)]
    for minute in range(50, 60):
        board.advance(_ctx(_at(6, minute), reminders))
        assert board.status(1).state is AlarmState.SCHEDULED
    board.advance(_ctx(_at(7, 0), reminders))
    assert board.status(1).state is AlarmState.SCHEDULED
    assert notified == []


def test_outside_window_is_scheduled_and_leaving_window_reverts() -> None:
    board = ReminderBoard(warning_window_minutes=10)
    board.advance(_ctx(_at(6, 0), [_water()]))
    assert board.status(1).state is AlarmState.SCHEDULED
    board.advance(_ctx(_at(6, 55), [_water()]))
    assert board.status(1).state is AlarmState.IMMINENT

    moved = Reminder(id=1, activity_kind="water", time_of_day="09:00")
    transitions = board.advance(_ctx(_at(6, 56), [moved]))
    assert board.status(1).state is AlarmState.SCHEDULED
    assert transitions[0].previous is AlarmState.IMMINENT


def test_two_reminders_due_same_tick_ring_independently() -> None:
    notified: list[AlarmOccurrence] = []
    board = ReminderBoard(notified.append)
    reminders = [
        _water(1),
        Reminder(id=2, activity_kind="workout", time_of_day="07:00:00"),
    ]
    board.advance(_ctx(_at(7, 0), reminders))
    assert {occ.reminder_id for occ in notified} == {1, 2}
    board.acknowledge(1)
    assert board.status(1).state is AlarmState.ACKNOWLEDGED
    assert board.status(2).state is AlarmState.RINGING


def test_malformed_reminder_is_skipped() -> None:
    board = ReminderBoard()
    reminders = [
        Reminder(id=1, activity_kind="water", time_of_day="25:61"),
        Reminder(id=2, activity_kind="water", time_of_day="07:00", days_of_week="xx"),
        _water(3),
    ]
    board.advance(_ctx(_at(7, 0), reminders))
    assert board.status(1).state is AlarmState.SCHEDULED
    assert board.status(2).state is AlarmState.SCHEDULED
    assert board.status(3).state is AlarmState.RINGING


def test_days_of_week_filter() -> None:
    board = ReminderBoard()
    weekend = _water(days_of_week="sat,sun")
    board.advance(_ctx(_at(7, 0), [weekend]))
    assert board.status(1).state is AlarmState.SCHEDULED
    board.advance(_ctx(_at(7, 0, day=DAY + timedelta(days=5)), [weekend]))
    assert board.status(1).state is AlarmState.RINGING


def test_countdown_before_midnight_uses_tomorrows_weekday() -> None:
    board = ReminderBoard()
    sunday = date(2025, 12, 14)
    monday_only = Reminder(
        id=1, activity_kind="sleep", time_of_day="00:05", days_of_week="mon"
    )
    board.advance(_ctx(_at(23, 58, day=sunday), [monday_only]))
    status = board.status(1)
    assert status.state is AlarmState.IMMINENT
    assert status.minutes_until == 7


def test_trigger_is_idempotent() -> None:
    notified: list[AlarmOccurrence] = []
    board = ReminderBoard(notified.append)
    occurrence = AlarmOccurrence(reminder=_water(), day=DAY)
    assert board.trigger(occurrence) is True
    assert board.trigger(occurrence) is False
    assert len(notified) == 1


def test_notifier_failure_keeps_ringing() -> None:
    def boom(_: AlarmOccurrence) -> None:
        raise RuntimeError("no audio")

    board = ReminderBoard(boom)
    board.advance(_ctx(_at(7, 0), [_water()]))
    assert board.status(1).state is AlarmState.RINGING


def test_acknowledge_without_ringing_returns_false() -> None:
    board = ReminderBoard()
    assert board.acknowledge(99) is False


@pytest.mark.parametrize("window", [0, 1])
def test_small_window(window: int) -> None:
    board = ReminderBoard(warning_window_minutes=window)
    board.advance(_ctx(_at(6, 59), [_water()]))
    expected = AlarmState.IMMINENT if window else AlarmState.SCHEDULED
    assert board.status(1).state is expected
