"""Maquina de estados de alarmas por recordatorio y por dia."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from enum import Enum

from fittrack.adherence import is_satisfied
from fittrack.model import DailySnapshot, Reminder

logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60
SECONDS_PER_DAY = MINUTES_PER_DAY * 60


class AlarmState(str, Enum):
    """Lifecycle of one reminder occurrence."""

    SCHEDULED = "scheduled"
    IMMINENT = "imminent"
    RINGING = "ringing"
    ACKNOWLEDGED = "acknowledged"
    SUPPRESSED = "suppressed"


# Estados que ya consumieron la hora de vencimiento del dia.
SETTLED_STATES = frozenset(
    {AlarmState.RINGING, AlarmState.ACKNOWLEDGED, AlarmState.SUPPRESSED}
)

_DISPLAY_PRIORITY = {
    AlarmState.RINGING: 0,
    AlarmState.IMMINENT: 1,
    AlarmState.ACKNOWLEDGED: 2,
    AlarmState.SUPPRESSED: 3,
    AlarmState.SCHEDULED: 4,
}


def minutes_until(reminder_minutes: int, current_minutes: int) -> int:
    """Minutes from now to the reminder, wrapping to tomorrow (0..1439)."""
    return (reminder_minutes - current_minutes) % MINUTES_PER_DAY


def seconds_until(due: time, now: time) -> int:
    """Seconds from ``now`` to ``due`` on a 24h clock (0..86399)."""
    due_s = due.hour * 3600 + due.minute * 60 + due.second
    now_s = now.hour * 3600 + now.minute * 60 + now.second
    return (due_s - now_s) % SECONDS_PER_DAY


@dataclass
class AlarmOccurrence:
    """State of one reminder for one calendar day."""

    reminder: Reminder
    day: date
    state: AlarmState = AlarmState.SCHEDULED
    minutes_until: int | None = None
    seconds_until: int | None = None

    @property
    def reminder_id(self) -> int:
        return self.reminder.id

    @property
    def message(self) -> str:
        return self.reminder.display_message()


@dataclass(frozen=True)
class Transition:
    """State change reported by a tick."""

    reminder_id: int
    day: date
    previous: AlarmState
    current: AlarmState


@dataclass(frozen=True)
class TickContext:
    """Everything one tick looks at: wall-clock time, reminders, snapshot."""

    now: datetime
    reminders: Sequence[Reminder]
    snapshot: DailySnapshot | None


@dataclass(frozen=True)
class ReminderStatus:
    """Display view of a reminder after the last tick."""

    reminder_id: int
    state: AlarmState
    minutes_until: int | None = None
    seconds_until: int | None = None

    def countdown(self) -> str:
        """Countdown as ``MM:SS`` (empty when not imminent)."""
        if self.state is not AlarmState.IMMINENT or self.seconds_until is None:
            return ""
        minutes, seconds = divmod(self.seconds_until, 60)
        return f"{minutes:02d}:{seconds:02d}"


Notifier = Callable[[AlarmOccurrence], None]


class ReminderBoard:
    """Tracks alarm occurrences and applies one tick at a time.

    The board is single-writer: only :meth:`advance`, :meth:`trigger` and
    :meth:`acknowledge` mutate it, and callers run them sequentially.
    """

    def __init__(
        self,
        notifier: Notifier | None = None,
        *,
        warning_window_minutes: int = 10,
    ) -> None:
        """Create an empty board.

        Args:
            notifier: Called once each time an occurrence starts ringing.
            warning_window_minutes: Lead time with a visible countdown.
        """
        self._notifier = notifier
        self.warning_window_minutes = warning_window_minutes
        self._occurrences: dict[tuple[int, date], AlarmOccurrence] = {}
        self._countdowns: dict[int, tuple[int, int]] = {}
        self._day: date | None = None

    @property
    def day(self) -> date | None:
        """Local day of the last tick."""
        return self._day

    def advance(self, context: TickContext) -> list[Transition]:
        """Evaluate every reminder against ``context.now``.

        A reminder whose time or days are malformed is logged and skipped;
        it never stops the evaluation of the others.
        """
        today = context.now.date()
        if self._day != today:
            self._rollover(today)

        now_time = context.now.time()
        current_minutes = now_time.hour * 60 + now_time.minute
        transitions: list[Transition] = []
        live_ids: set[int] = set()
        self._countdowns = {}

        for reminder in context.reminders:
            try:
                due = reminder.due_time()
                weekdays = reminder.weekdays()
            except (ValueError, TypeError) as exc:
                logger.warning("Skipping reminder %s: %s", reminder.id, exc)
                continue
            live_ids.add(reminder.id)
            if not reminder.is_active:
                self._discard_pending(reminder.id, transitions)
                continue

            minutes = minutes_until(due.hour * 60 + due.minute, current_minutes)
            seconds = seconds_until(due, now_time)
            self._countdowns[reminder.id] = (minutes, seconds)
            wraps = due.hour * 60 + due.minute < current_minutes
            due_day = today + timedelta(days=1) if wraps else today
            if due_day.weekday() not in weekdays:
                self._discard_pending(reminder.id, transitions)
                continue

            key = (reminder.id, due_day)
            occurrence = self._occurrences.get(key)
            if occurrence is not None and occurrence.state in SETTLED_STATES:
                occurrence.reminder = reminder
                continue

            # En el minuto de vencimiento se espera hasta el segundo indicado.
            if minutes == 0 and now_time.second >= due.second:
                occurrence = occurrence or self._new_occurrence(reminder, due_day)
                occurrence.reminder = reminder
                occurrence.minutes_until = 0
                occurrence.seconds_until = seconds
                self._fire(occurrence, context.snapshot, transitions)
            elif minutes == 0 or minutes <= self.warning_window_minutes:
                occurrence = occurrence or self._new_occurrence(reminder, due_day)
                occurrence.reminder = reminder
                occurrence.minutes_until = minutes
                occurrence.seconds_until = seconds
                self._move(occurrence, AlarmState.IMMINENT, transitions)
            else:
                self._discard_pending(reminder.id, transitions)

        for (reminder_id, _day), occurrence in list(self._occurrences.items()):
            if reminder_id not in live_ids and occurrence.state is AlarmState.IMMINENT:
                self._discard_pending(reminder_id, transitions)
        return transitions

    def trigger(self, occurrence: AlarmOccurrence) -> bool:
        """Start ringing and request the notification.

        Returns:
            False when the occurrence already rang (or was settled) that day.
        """
        key = (occurrence.reminder_id, occurrence.day)
        current = self._occurrences.get(key)
        if current is not None and current.state in SETTLED_STATES:
            return False
        occurrence.state = AlarmState.RINGING
        self._occurrences[key] = occurrence
        logger.info(
            "Reminder %s ringing for %s: %s",
            occurrence.reminder_id,
            occurrence.day,
            occurrence.message,
        )
        if self._notifier is not None:
            try:
                self._notifier(occurrence)
            except Exception:
                logger.exception(
                    "Notifier failed for reminder %s", occurrence.reminder_id
                )
        return True

    def acknowledge(self, reminder_id: int, day: date | None = None) -> bool:
        """Dismiss a ringing occurrence. Returns False if nothing was ringing."""
        for (rid, occ_day), occurrence in self._occurrences.items():
            if rid != reminder_id or (day is not None and occ_day != day):
                continue
            if occurrence.state is AlarmState.RINGING:
                occurrence.state = AlarmState.ACKNOWLEDGED
                logger.info("Reminder %s acknowledged for %s", reminder_id, occ_day)
                return True
        return False

    def occurrence(self, reminder_id: int, day: date) -> AlarmOccurrence | None:
        return self._occurrences.get((reminder_id, day))

    def ringing(self) -> list[AlarmOccurrence]:
        """Occurrences waiting for an explicit acknowledgment."""
        return [
            occ
            for occ in self._occurrences.values()
            if occ.state is AlarmState.RINGING
        ]

    def status(self, reminder_id: int) -> ReminderStatus:
        candidates = [
            occ for (rid, _), occ in self._occurrences.items() if rid == reminder_id
        ]
        minutes, seconds = self._countdowns.get(reminder_id, (None, None))
        if not candidates:
            return ReminderStatus(reminder_id, AlarmState.SCHEDULED, minutes, seconds)
        best = min(candidates, key=lambda occ: _DISPLAY_PRIORITY[occ.state])
        return ReminderStatus(reminder_id, best.state, minutes, seconds)

    def statuses(self) -> list[ReminderStatus]:
        """Status of every reminder seen by the last tick or still tracked."""
        ids = set(self._countdowns) | {rid for rid, _ in self._occurrences}
        return [self.status(rid) for rid in sorted(ids)]

    def _fire(
        self,
        occurrence: AlarmOccurrence,
        snapshot: DailySnapshot | None,
        transitions: list[Transition],
    ) -> None:
        previous = occurrence.state
        if is_satisfied(occurrence.reminder.activity_kind, snapshot):
            occurrence.state = AlarmState.SUPPRESSED
            self._occurrences[(occurrence.reminder_id, occurrence.day)] = occurrence
            logger.info(
                "Reminder %s suppressed: %s already logged",
                occurrence.reminder_id,
                occurrence.reminder.activity_kind,
            )
        elif not self.trigger(occurrence):
            return
        transitions.append(
            Transition(occurrence.reminder_id, occurrence.day, previous, occurrence.state)
        )

    def _move(
        self,
        occurrence: AlarmOccurrence,
        state: AlarmState,
        transitions: list[Transition],
    ) -> None:
        if occurrence.state is state:
            return
        transitions.append(
            Transition(occurrence.reminder_id, occurrence.day, occurrence.state, state)
        )
        occurrence.state = state

    def _new_occurrence(self, reminder: Reminder, day: date) -> AlarmOccurrence:
        occurrence = AlarmOccurrence(reminder=reminder, day=day)
        self._occurrences[(reminder.id, day)] = occurrence
        return occurrence

    def _discard_pending(self, reminder_id: int, transitions: list[Transition]) -> None:
        for key, occurrence in list(self._occurrences.items()):
            if key[0] != reminder_id or occurrence.state in SETTLED_STATES:
                continue
            del self._occurrences[key]
            if occurrence.state is not AlarmState.SCHEDULED:
                transitions.append(
                    Transition(
                        reminder_id, key[1], occurrence.state, AlarmState.SCHEDULED
                    )
                )

    def _rollover(self, today: date) -> None:
        stale = [key for key in self._occurrences if key[1] < today]
        for key in stale:
            del self._occurrences[key]
        if self._day is not None:
            logger.info(
                "Day rollover %s -> %s: discarded %d occurrence(s)",
                self._day,
                today,
                len(stale),
            )
        self._day = today
