"""Evaluacion de adherencia: ¿la actividad ya se registro hoy?"""

from __future__ import annotations

from collections.abc import Callable

from fittrack.model import ActivityKind, DailySnapshot

Evaluator = Callable[[DailySnapshot], bool]


def _weight_logged(snapshot: DailySnapshot) -> bool:
    return snapshot.weight_kg is not None


def _water_logged(snapshot: DailySnapshot) -> bool:
    return (snapshot.water_ml or 0) > 0


def _sleep_logged(snapshot: DailySnapshot) -> bool:
    return snapshot.sleep_hours is not None


def _workout_logged(snapshot: DailySnapshot) -> bool:
    return any(day == snapshot.day for day in snapshot.workout_dates)


EVALUATORS: dict[ActivityKind, Evaluator] = {
    ActivityKind.WEIGHT: _weight_logged,
    ActivityKind.WATER: _water_logged,
    ActivityKind.SLEEP: _sleep_logged,
    ActivityKind.WORKOUT: _workout_logged,
}


def is_satisfied(activity_kind: ActivityKind | str, snapshot: DailySnapshot | None) -> bool:
    """Decide whether the monitored activity is already done for the day.

    Unknown kinds and a missing snapshot count as unsatisfied, so a
    possibly-due alarm is never suppressed by mistake.

    Args:
        activity_kind: Kind monitored by the reminder.
        snapshot: Snapshot of the current day, or None if unavailable.

    Returns:
        True if the activity is satisfied.
    """
    if snapshot is None:
        return False
    try:
        evaluator = EVALUATORS[ActivityKind(activity_kind)]
    except ValueError:
        return False
    return evaluator(snapshot)


def adherence_report(snapshot: DailySnapshot | None) -> dict[str, bool]:
    """Satisfied flag for every known activity kind (dashboard view)."""
    return {kind.value: is_satisfied(kind, snapshot) for kind in EVALUATORS}
