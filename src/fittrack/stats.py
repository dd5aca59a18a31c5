"""Estadisticas del tablero: racha, resumen semanal, tendencia de peso y metas."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import TYPE_CHECKING

import pandas as pd

from fittrack.adherence import adherence_report
from fittrack.model import DailyLog, Goal

if TYPE_CHECKING:
    from fittrack.storage import SQLiteStore

CHART_COLUMNS = ["workout_date", "total_calories", "total_duration", "workout_count"]


@dataclass(frozen=True)
class WorkoutSummary:
    """Workout totals for a trailing window."""

    count: int = 0
    total_calories: float = 0.0
    total_minutes: float = 0.0


@dataclass(frozen=True)
class WeightTrend:
    """Average weight of the last 7 days against the previous 7."""

    recent_avg: float | None = None
    previous_avg: float | None = None

    @property
    def change(self) -> float | None:
        if self.recent_avg is None or self.previous_avg is None:
            return None
        return round(self.recent_avg - self.previous_avg, 2)


@dataclass(frozen=True)
class DashboardStats:
    """Everything the dashboard shows at the top."""

    today: DailyLog | None
    this_week: WorkoutSummary
    active_goals: int
    weight_progress: WeightTrend
    workout_streak: int
    adherence: dict[str, bool]


def compute_streak(workout_dates: Iterable[object], today: date | None = None) -> int:
    """Count consecutive workout days ending at the most recent one <= today.

    The most recent day does not need to be today: a streak that ended
    yesterday still counts, a full day without workouts breaks it.
    Entries that are not dates are ignored.

    Args:
        workout_dates: Workout dates (duplicates allowed).
        today: Reference day (defaults to the current date).

    Returns:
        Streak length, 0 for an empty or unusable history.
    """
    today = today or date.today()
    try:
        days = {_as_date(value) for value in workout_dates}
    except TypeError:
        return 0
    days = {d for d in days if d is not None and d <= today}
    if not days:
        return 0
    cursor = max(days)
    streak = 0
    while cursor in days:
        streak += 1
        cursor -= timedelta(days=1)
    return streak


def weekly_summary(workouts: pd.DataFrame, today: date) -> WorkoutSummary:
    """Totals for workouts dated from ``today - 7`` through ``today``."""
    window = _date_window(workouts, "workout_date", today - timedelta(days=7), today)
    if window.empty:
        return WorkoutSummary()
    calories = pd.to_numeric(window["calories_burned"], errors="coerce").sum()
    minutes = pd.to_numeric(window["duration_minutes"], errors="coerce").sum()
    return WorkoutSummary(
        count=int(len(window)),
        total_calories=float(calories),
        total_minutes=float(minutes),
    )


def weight_trend(logs: pd.DataFrame, today: date) -> WeightTrend:
    """Average weight for the trailing 7 days vs the 7 days before them."""
    recent = _date_window(logs, "log_date", today - timedelta(days=7), today)
    previous = _date_window(
        logs,
        "log_date",
        today - timedelta(days=14),
        today - timedelta(days=8),
    )
    return WeightTrend(
        recent_avg=_mean_or_none(recent, "weight_kg"),
        previous_avg=_mean_or_none(previous, "weight_kg"),
    )


def workout_chart(workouts: pd.DataFrame, today: date, days: int = 30) -> pd.DataFrame:
    """Per-day workout totals for the trailing ``days`` days (chart data)."""
    window = _date_window(workouts, "workout_date", today - timedelta(days=days), today)
    if window.empty:
        return pd.DataFrame(columns=CHART_COLUMNS)
    window = window.assign(
        calories_burned=pd.to_numeric(window["calories_burned"], errors="coerce"),
        duration_minutes=pd.to_numeric(window["duration_minutes"], errors="coerce"),
    )
    g = window.groupby("workout_date", as_index=False).agg(
        total_calories=("calories_burned", "sum"),
        total_duration=("duration_minutes", "sum"),
        workout_count=("calories_burned", "size"),
    )
    return g.sort_values("workout_date").reset_index(drop=True)[CHART_COLUMNS]


def goal_progress(goal: Goal) -> float:
    """Progress towards a goal as a percentage in [0, 100].

    ``weight_loss`` is lower-is-better: progress is target/current.
    Every other goal type is higher-is-better: current/target.
    """
    target = goal.target_value
    current = goal.current_value
    if goal.goal_type == "weight_loss":
        if current <= 0:
            return 0.0
        if current <= target:
            return 100.0
        pct = target / current * 100
    else:
        if target <= 0:
            return 0.0
        pct = current / target * 100
    return round(max(0.0, min(100.0, pct)), 1)


def dashboard_stats(store: SQLiteStore, today: date | None = None) -> DashboardStats:
    """Collect the dashboard figures from the store."""
    today = today or date.today()
    workouts = store.workouts_frame(since=today - timedelta(days=7))
    logs = store.logs_frame(since=today - timedelta(days=14))
    return DashboardStats(
        today=store.get_daily_log(today),
        this_week=weekly_summary(workouts, today),
        active_goals=store.count_active_goals(),
        weight_progress=weight_trend(logs, today),
        workout_streak=compute_streak(store.workout_dates(), today),
        adherence=adherence_report(store.today_snapshot(today)),
    )


def format_dashboard(stats: DashboardStats) -> str:
    """Plain-text rendering used by the CLI and the app preview."""
    log = stats.today
    trend = stats.weight_progress
    lines = [
        f"Racha de entrenamiento: {stats.workout_streak} dia(s)",
        (
            f"Semana: {stats.this_week.count} entrenamiento(s), "
            f"{_fmt(stats.this_week.total_calories)} kcal, "
            f"{_fmt(stats.this_week.total_minutes)} min"
        ),
        f"Metas activas: {stats.active_goals}",
        (
            f"Peso 7d: {_fmt(trend.recent_avg)} kg "
            f"(anterior {_fmt(trend.previous_avg)} kg, cambio {_fmt(trend.change)})"
        ),
        (
            f"Hoy: peso {_fmt(log.weight_kg if log else None)} kg, "
            f"agua {_fmt(log.water_ml if log else None)} ml, "
            f"sueño {_fmt(log.sleep_hours if log else None)} h"
        ),
        "Cumplido hoy: "
        + ", ".join(
            f"{kind} {'si' if done else 'no'}" for kind, done in stats.adherence.items()
        ),
    ]
    return "\n".join(lines)


def _as_date(value: object) -> date | None:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError:
            return None
    return None


def _date_window(df: pd.DataFrame, col: str, start: date, end: date) -> pd.DataFrame:
    """Rows whose ``col`` falls in the inclusive range [start, end]."""
    if df.empty or col not in df.columns:
        return pd.DataFrame(columns=df.columns)
    days = df[col].map(_as_date)
    mask = days.map(lambda d: d is not None and start <= d <= end).astype(bool)
    out = df.loc[mask].copy()
    out[col] = days[mask]
    return out


def _mean_or_none(df: pd.DataFrame, col: str) -> float | None:
    if df.empty or col not in df.columns:
        return None
    mean = pd.to_numeric(df[col], errors="coerce").mean()
    if pd.isna(mean):
        return None
    return round(float(mean), 2)


def _fmt(value: float | None) -> str:
    if value is None or pd.isna(value):
        return "--"
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.1f}"
