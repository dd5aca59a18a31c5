"""Modelos tipados para recordatorios, registros diarios, entrenamientos y metas."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, time
from enum import Enum


class ActivityKind(str, Enum):
    """Activities a reminder can monitor."""

    WEIGHT = "weight"
    WATER = "water"
    SLEEP = "sleep"
    WORKOUT = "workout"


DEFAULT_MESSAGES: dict[ActivityKind, str] = {
    ActivityKind.WEIGHT: "Hora de registrar tu peso",
    ActivityKind.WATER: "Hora de tomar agua",
    ActivityKind.SLEEP: "Registra tus horas de sueño",
    ActivityKind.WORKOUT: "Hora de entrenar",
}

WORKOUT_TYPES: tuple[str, ...] = ("cardio", "strength", "yoga", "sports", "other")
INTENSITIES: tuple[str, ...] = ("low", "medium", "high")
MOODS: tuple[str, ...] = ("great", "good", "okay", "bad", "terrible")
GOAL_TYPES: tuple[str, ...] = (
    "weight_loss",
    "weight_gain",
    "workouts_per_week",
    "calories_per_week",
    "steps_per_day",
)
GOAL_STATUSES: tuple[str, ...] = ("active", "completed", "abandoned")

ALL_DAYS = "all"

_DAY_NAMES: dict[str, int] = {
    "mon": 0,
    "monday": 0,
    "lun": 0,
    "tue": 1,
    "tuesday": 1,
    "mar": 1,
    "wed": 2,
    "wednesday": 2,
    "mie": 2,
    "thu": 3,
    "thursday": 3,
    "jue": 3,
    "fri": 4,
    "friday": 4,
    "vie": 4,
    "sat": 5,
    "saturday": 5,
    "sab": 5,
    "sun": 6,
    "sunday": 6,
    "dom": 6,
}


def parse_activity_kind(value: ActivityKind | str) -> ActivityKind:
    """Convert raw text into an ActivityKind.

    Raises:
        ValueError: If the kind is unknown.
    """
    if isinstance(value, ActivityKind):
        return value
    return ActivityKind(str(value).strip().lower())


def parse_time_of_day(value: time | str) -> time:
    """Parse ``HH:MM`` or ``HH:MM:SS`` into a wall-clock time.

    Args:
        value: Time object or text as stored in the database.

    Returns:
        Naive time without microseconds.

    Raises:
        ValueError: If the value is not a valid 24-hour clock value.
    """
    if isinstance(value, time):
        return value.replace(microsecond=0, tzinfo=None)
    if not isinstance(value, str):
        raise ValueError(f"Invalid time of day: {value!r}")
    parts = value.strip().split(":")
    if len(parts) not in (2, 3) or not all(p.strip().isdigit() for p in parts):
        raise ValueError(f"Invalid time of day: {value!r}")
    hour, minute, *rest = (int(p) for p in parts)
    second = rest[0] if rest else 0
    # time() valida los rangos 0-23 / 0-59.
    return time(hour, minute, second)


def parse_days_of_week(value: str | None) -> frozenset[int]:
    """Parse ``all`` or a comma list of weekdays into weekday indexes.

    Weekdays follow ``date.weekday()`` (Monday=0). Names may be English or
    Spanish, full or abbreviated, or plain digits.

    Raises:
        ValueError: If the value is empty or holds an unknown day.
    """
    if value is None:
        raise ValueError("Missing days of week")
    text = str(value).strip().lower()
    if not text:
        raise ValueError("Missing days of week")
    if text == ALL_DAYS:
        return frozenset(range(7))
    out: set[int] = set()
    for token in text.split(","):
        token = token.strip()
        if token.isdigit() and 0 <= int(token) <= 6:
            out.add(int(token))
        elif token in _DAY_NAMES:
            out.add(_DAY_NAMES[token])
        else:
            raise ValueError(f"Unknown day of week: {token!r}")
    return frozenset(out)


@dataclass(frozen=True)
class Reminder:
    """User configured reminder.

    ``time_of_day`` and ``days_of_week`` keep their stored representation;
    use :meth:`due_time` and :meth:`weekdays` to get validated values.
    """

    id: int
    activity_kind: str
    time_of_day: time | str
    message: str | None = None
    days_of_week: str = ALL_DAYS
    is_active: bool = True

    def due_time(self) -> time:
        """Return the validated time of day (raises ValueError)."""
        return parse_time_of_day(self.time_of_day)

    def weekdays(self) -> frozenset[int]:
        """Return the validated weekday set (raises ValueError)."""
        return parse_days_of_week(self.days_of_week)

    def display_message(self) -> str:
        """Return the user message or a phrase derived from the kind."""
        if self.message and self.message.strip():
            return self.message.strip()
        try:
            return DEFAULT_MESSAGES[parse_activity_kind(self.activity_kind)]
        except ValueError:
            return f"Recordatorio: {self.activity_kind}"


@dataclass(frozen=True)
class DailySnapshot:
    """Read-only view of one calendar day of logged activity."""

    day: date
    weight_kg: float | None = None
    water_ml: float = 0
    sleep_hours: float | None = None
    workout_dates: tuple[date, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class DailyLog:
    """Daily metrics (date-based, one row per day)."""

    log_date: date
    weight_kg: float | None = None
    steps: int | None = None
    water_ml: float | None = None
    sleep_hours: float | None = None
    mood: str | None = None
    notes: str | None = None


@dataclass(frozen=True)
class Workout:
    """One logged workout."""

    id: int
    workout_type: str
    workout_name: str
    duration_minutes: float
    calories_burned: float
    intensity: str
    workout_date: date
    workout_time: time | None = None
    notes: str | None = None


@dataclass(frozen=True)
class Goal:
    """Fitness goal with a numeric target."""

    id: int
    goal_type: str
    target_value: float
    current_value: float = 0
    deadline: date | None = None
    status: str = "active"
