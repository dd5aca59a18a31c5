"""Reloj de recordatorios: tick periodico cooperativo sobre el tablero de alarmas."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Sequence
from datetime import date, datetime

from dateutil import tz

from fittrack.alarms import (
    ReminderBoard,
    TickContext,
    Transition,
    minutes_until,
    seconds_until,
)
from fittrack.model import DailySnapshot, Reminder

__all__ = ["ReminderClock", "local_now", "minutes_until", "seconds_until"]

logger = logging.getLogger(__name__)

_LOCAL_TZ = tz.tzlocal()


def local_now() -> datetime:
    """Naive local wall-clock time."""
    return datetime.now(tz=_LOCAL_TZ).replace(tzinfo=None)


class ReminderClock:
    """Periodic driver that refreshes the tick context and advances the board.

    Providers are read at the start of every tick, so edits to reminders or
    new log entries are seen on the next tick. Failures are logged and the
    clock keeps ticking.
    """

    def __init__(
        self,
        board: ReminderBoard,
        reminders: Callable[[], Sequence[Reminder]],
        snapshot: Callable[[date], DailySnapshot],
        *,
        period: float = 1.0,
        now: Callable[[], datetime] = local_now,
    ) -> None:
        """Create a clock.

        Args:
            board: Alarm state machine to advance.
            reminders: Returns the live reminder list.
            snapshot: Returns the activity snapshot for a day.
            period: Seconds between ticks.
            now: Wall-clock source (naive local time).
        """
        if period <= 0:
            raise ValueError("period must be positive")
        self.board = board
        self.period = period
        self._reminders = reminders
        self._snapshot = snapshot
        self._now = now

    def build_context(self) -> TickContext | None:
        """Read time, reminders and snapshot. None if reminders are unavailable."""
        now = self._now()
        try:
            reminders = list(self._reminders())
        except Exception:
            logger.exception("Could not load reminders; skipping tick")
            return None
        snapshot: DailySnapshot | None
        try:
            snapshot = self._snapshot(now.date())
        except Exception:
            # Sin snapshot todo cuenta como no cumplido.
            logger.exception("Could not load activity snapshot for %s", now.date())
            snapshot = None
        return TickContext(now=now, reminders=reminders, snapshot=snapshot)

    def tick(self) -> list[Transition]:
        """Run one tick; returns the transitions it produced."""
        context = self.build_context()
        if context is None:
            return []
        transitions = self.board.advance(context)
        for transition in transitions:
            logger.debug(
                "Reminder %s (%s): %s -> %s",
                transition.reminder_id,
                transition.day,
                transition.previous.value,
                transition.current.value,
            )
        return transitions

    def run(self, stop: threading.Event) -> None:
        """Tick every ``period`` seconds until ``stop`` is set."""
        logger.info("Reminder clock started (period=%ss)", self.period)
        while not stop.is_set():
            self.tick()
            stop.wait(self.period)
        logger.info("Reminder clock stopped")
