from __future__ import annotations

import sqlite3
from datetime import date, timedelta
from pathlib import Path

import pandas as pd

from fittrack.model import DailyLog, Goal
from fittrack.stats import (
    WeightTrend,
    compute_streak,
    dashboard_stats,
    format_dashboard,
    goal_progress,
    weekly_summary,
    weight_trend,
    workout_chart,
)
from fittrack.storage import SQLiteStore

TODAY = date(2025, 12, 15)


def _days_ago(n: int) -> date:
    return TODAY - timedelta(days=n)


def _workouts(days_back: list[int], calories: float = 100, minutes: float = 30) -> pd.DataFrame:
    return pd.DataFrame(
        {
            "workout_date": [_days_ago(n) for n in days_back],
            "workout_type": ["cardio"] * len(days_back),
            "workout_name": ["run"] * len(days_back),
            "duration_minutes": [minutes] * len(days_back),
            "calories_burned": [calories] * len(days_back),
        }
    )


def test_compute_streak_examples() -> None:
    assert compute_streak(set(), TODAY) == 0
    assert compute_streak({TODAY}, TODAY) == 1
    assert compute_streak({TODAY, _days_ago(1), _days_ago(2)}, TODAY) == 3
    assert compute_streak({TODAY, _days_ago(2)}, TODAY) == 1


def test_compute_streak_ending_yesterday_still_counts() -> None:
    assert compute_streak([_days_ago(1), _days_ago(2), _days_ago(4)], TODAY) == 2


def test_compute_streak_ignores_future_duplicates_and_garbage() -> None:
    dates = [TODAY, TODAY, "2025-12-14", None, "not a date", TODAY + timedelta(days=1)]
    assert compute_streak(dates, TODAY) == 2


def test_compute_streak_malformed_history() -> None:
    assert compute_streak(None, TODAY) == 0  # type: ignore[arg-type]
    assert compute_streak(["x", 3], TODAY) == 0


def test_weekly_summary_window_boundary() -> None:
    df = _workouts([0, 3, 7, 8])
    summary = weekly_summary(df, TODAY)
    assert summary.count == 3
    assert summary.total_calories == 300
    assert summary.total_minutes == 90


def test_weekly_summary_empty() -> None:
    summary = weekly_summary(pd.DataFrame(), TODAY)
    assert summary.count == 0
    assert summary.total_calories == 0


def test_weight_trend_windows() -> None:
    logs = pd.DataFrame(
        {
            "log_date": [_days_ago(0), _days_ago(7), _days_ago(8), _days_ago(14), _days_ago(15)],
            "weight_kg": [80.0, 82.0, 84.0, 86.0, 99.0],
        }
    )
    trend = weight_trend(logs, TODAY)
    assert trend.recent_avg == 81.0
    assert trend.previous_avg == 85.0
    assert trend.change == -4.0


def test_weight_trend_without_weights() -> None:
    logs = pd.DataFrame({"log_date": [TODAY], "weight_kg": [None]})
    assert weight_trend(logs, TODAY) == WeightTrend(None, None)
    assert WeightTrend(None, None).change is None


def test_workout_chart_groups_by_day() -> None:
    df = pd.concat([_workouts([0, 0, 2]), _workouts([31])], ignore_index=True)
    chart = workout_chart(df, TODAY)
    assert list(chart["workout_date"]) == [_days_ago(2), TODAY]
    assert list(chart["workout_count"]) == [1, 2]
    assert list(chart["total_calories"]) == [100, 200]


def test_goal_progress() -> None:
    assert goal_progress(Goal(1, "steps_per_day", 10000, 2500)) == 25.0
    assert goal_progress(Goal(2, "workouts_per_week", 4, 6)) == 100.0
    assert goal_progress(Goal(3, "weight_loss", 75, 80)) == 93.8
    assert goal_progress(Goal(4, "weight_loss", 75, 74)) == 100.0
    assert goal_progress(Goal(5, "calories_per_week", 0, 10)) == 0.0


def test_dashboard_stats_from_store(tmp_path: Path) -> None:
    store = SQLiteStore(tmp_path / "app.sqlite3")
    store.upsert_daily_log(DailyLog(log_date=TODAY, weight_kg=80, water_ml=500))
    store.upsert_daily_log(DailyLog(log_date=_days_ago(10), weight_kg=82))
    for n in (0, 1, 2):
        store.add_workout(
            "cardio",
            "run",
            duration_minutes=30,
            calories_burned=200,
            workout_date=_days_ago(n),
        )
    store.add_goal("steps_per_day", 8000)

    stats = dashboard_stats(store, TODAY)
    assert stats.workout_streak == 3
    assert stats.this_week.count == 3
    assert stats.this_week.total_calories == 600
    assert stats.active_goals == 1
    assert stats.weight_progress.change == -2.0
    assert stats.adherence == {
        "weight": True,
        "water": True,
        "sleep": False,
        "workout": True,
    }
    text = format_dashboard(stats)
    assert "Racha de entrenamiento: 3 dia(s)" in text
    assert "sleep no" in text


def test_dashboard_stats_skips_corrupted_workout_dates(tmp_path: Path) -> None:
    db_path = tmp_path / "app.sqlite3"
    store = SQLiteStore(db_path)
    for n in (0, 1):
        store.add_workout(
            "cardio",
            "run",
            duration_minutes=30,
            calories_burned=200,
            workout_date=_days_ago(n),
        )
    with sqlite3.connect(db_path) as conn:
        conn.execute(
            """
            INSERT INTO workouts(
                workout_type, workout_name, workout_date, created_at
            ) VALUES ('cardio', 'run', 'ayer', '2025-12-15T00:00:00')
            """
        )

    assert store.workout_dates() == {_days_ago(0), _days_ago(1)}
    assert len(store.list_workouts()) == 2

    stats = dashboard_stats(store, TODAY)
    assert stats.workout_streak == 2
    assert stats.this_week.count == 2
