"""Persistencia SQLite para configuracion, recordatorios, registros y entrenamientos."""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from datetime import date, datetime, time
from pathlib import Path
from typing import Any

import pandas as pd

from fittrack.model import (
    ALL_DAYS,
    GOAL_STATUSES,
    GOAL_TYPES,
    INTENSITIES,
    MOODS,
    WORKOUT_TYPES,
    DailyLog,
    DailySnapshot,
    Goal,
    Reminder,
    Workout,
    parse_activity_kind,
    parse_days_of_week,
    parse_time_of_day,
)

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS app_config (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS activity_reminders (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    activity_type TEXT NOT NULL,
    reminder_time TEXT NOT NULL,
    message TEXT,
    days_of_week TEXT NOT NULL DEFAULT 'all',
    is_active INTEGER NOT NULL DEFAULT 1,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS daily_logs (
    log_date TEXT PRIMARY KEY,
    weight_kg REAL,
    steps INTEGER,
    water_ml REAL,
    sleep_hours REAL,
    mood TEXT,
    notes TEXT
);

CREATE TABLE IF NOT EXISTS workouts (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    workout_type TEXT NOT NULL,
    workout_name TEXT NOT NULL,
    duration_minutes REAL NOT NULL DEFAULT 0,
    calories_burned REAL NOT NULL DEFAULT 0,
    intensity TEXT NOT NULL DEFAULT 'medium',
    workout_date TEXT NOT NULL,
    workout_time TEXT,
    notes TEXT,
    created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_workouts_workout_date
ON workouts(workout_date);

CREATE TABLE IF NOT EXISTS goals (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    goal_type TEXT NOT NULL,
    target_value REAL NOT NULL,
    current_value REAL NOT NULL DEFAULT 0,
    deadline TEXT,
    status TEXT NOT NULL DEFAULT 'active',
    created_at TEXT NOT NULL
);
"""

WORKOUT_COLUMNS = [
    "workout_date",
    "workout_type",
    "workout_name",
    "duration_minutes",
    "calories_burned",
    "intensity",
    "notes",
]
LOG_COLUMNS = ["log_date", "weight_kg", "steps", "water_ml", "sleep_hours", "mood"]


@dataclass(frozen=True)
class AppConfig:
    """Configuracion persistida de la app."""

    warning_window_minutes: int = 10
    tick_seconds: float = 1.0
    export_dir: str = ""
    alarm_sound: str = ""
    log_level: str = "INFO"


class SQLiteStore:
    """Repositorio SQLite para la app."""

    def __init__(self, db_path: Path) -> None:
        """Create store and ensure schema exists."""
        self._db_path = db_path
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_schema(self) -> None:
        with self._connect() as conn:
            conn.executescript(SCHEMA_SQL)
            self._migrate(conn)
            conn.commit()

    def _migrate(self, conn: sqlite3.Connection) -> None:
        """Apply lightweight schema migrations."""
        cols = {
            row["name"]
            for row in conn.execute("PRAGMA table_info(activity_reminders)")
        }
        if "days_of_week" not in cols:
            conn.execute(
                "ALTER TABLE activity_reminders "
                "ADD COLUMN days_of_week TEXT NOT NULL DEFAULT 'all'"
            )

    # -- configuracion -------------------------------------------------

    def load_config(self) -> AppConfig:
        """Devuelve configuracion guardada o defaults."""
        defaults = AppConfig()
        with self._connect() as conn:
            rows = conn.execute("SELECT key, value FROM app_config").fetchall()
        values = {row["key"]: row["value"] for row in rows}
        return AppConfig(
            warning_window_minutes=_parse_int(
                values.get("warning_window_minutes"),
                defaults.warning_window_minutes,
            ),
            tick_seconds=_parse_positive_float(
                values.get("tick_seconds"), defaults.tick_seconds
            ),
            export_dir=values.get("export_dir", defaults.export_dir),
            alarm_sound=values.get("alarm_sound", defaults.alarm_sound),
            log_level=values.get("log_level", defaults.log_level),
        )

    def save_config(self, config: AppConfig) -> None:
        """Guarda la configuracion en tabla key/value."""
        payload = {
            "warning_window_minutes": str(config.warning_window_minutes),
            "tick_seconds": str(config.tick_seconds),
            "export_dir": config.export_dir,
            "alarm_sound": config.alarm_sound,
            "log_level": config.log_level,
        }
        with self._connect() as conn:
            conn.executemany(
                """
                INSERT INTO app_config(key, value) VALUES(?, ?)
                ON CONFLICT(key) DO UPDATE SET value=excluded.value
                """,
                payload.items(),
            )
            conn.commit()

    # -- recordatorios -------------------------------------------------

    def add_reminder(
        self,
        activity_kind: str,
        time_of_day: time | str,
        *,
        message: str | None = None,
        days_of_week: str = ALL_DAYS,
    ) -> Reminder:
        """Create a reminder. Raises ValueError on invalid kind/time/days."""
        kind = parse_activity_kind(activity_kind)
        due = parse_time_of_day(time_of_day)
        parse_days_of_week(days_of_week)
        with self._connect() as conn:
            cur = conn.execute(
                """
                INSERT INTO activity_reminders(
                    activity_type, reminder_time, message, days_of_week,
                    is_active, created_at
                ) VALUES (?, ?, ?, ?, 1, ?)
                """,
                (
                    kind.value,
                    due.isoformat(),
                    message,
                    days_of_week,
                    _now_iso(),
                ),
            )
            conn.commit()
            reminder_id = int(cur.lastrowid)
        return self.get_reminder(reminder_id)

    def update_reminder(
        self,
        reminder_id: int,
        *,
        time_of_day: time | str | None = None,
        is_active: bool | None = None,
        message: str | None = None,
        days_of_week: str | None = None,
    ) -> Reminder:
        """Update the editable fields of a reminder.

        Raises:
            KeyError: If the reminder does not exist.
            ValueError: If the new time or days are invalid.
        """
        current = self.get_reminder(reminder_id)
        new_time = (
            parse_time_of_day(time_of_day).isoformat()
            if time_of_day is not None
            else current.time_of_day
        )
        if days_of_week is not None:
            parse_days_of_week(days_of_week)
        with self._connect() as conn:
            conn.execute(
                """
                UPDATE activity_reminders
                SET reminder_time = ?, is_active = ?, message = ?, days_of_week = ?
                WHERE id = ?
                """,
                (
                    str(new_time),
                    int(current.is_active if is_active is None else is_active),
                    current.message if message is None else message,
                    current.days_of_week if days_of_week is None else days_of_week,
                    reminder_id,
                ),
            )
            conn.commit()
        return self.get_reminder(reminder_id)

    def delete_reminder(self, reminder_id: int) -> None:
        """Borra un recordatorio."""
        with self._connect() as conn:
            conn.execute("DELETE FROM activity_reminders WHERE id = ?", (reminder_id,))
            conn.commit()

    def get_reminder(self, reminder_id: int) -> Reminder:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM activity_reminders WHERE id = ?", (reminder_id,)
            ).fetchone()
        if row is None:
            raise KeyError(reminder_id)
        return _reminder_from_row(row)

    def list_reminders(self) -> list[Reminder]:
        """Todos los recordatorios, ordenados por hora."""
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM activity_reminders ORDER BY reminder_time, id"
            ).fetchall()
        return [_reminder_from_row(row) for row in rows]

    def list_active_reminders(self) -> list[Reminder]:
        """Recordatorios activos; refleja ediciones en vivo.

        El reloj recibe ``list_reminders`` completo: asi, desactivar un
        recordatorio descarta su cuenta regresiva pendiente.
        """
        return [r for r in self.list_reminders() if r.is_active]

    # -- registros diarios ---------------------------------------------

    def upsert_daily_log(self, log: DailyLog) -> DailyLog:
        """Insert or replace the log for ``log.log_date``."""
        if log.mood is not None and log.mood not in MOODS:
            raise ValueError(f"Unknown mood: {log.mood!r}")
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO daily_logs(
                    log_date, weight_kg, steps, water_ml, sleep_hours, mood, notes
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(log_date) DO UPDATE SET
                    weight_kg=excluded.weight_kg,
                    steps=excluded.steps,
                    water_ml=excluded.water_ml,
                    sleep_hours=excluded.sleep_hours,
                    mood=excluded.mood,
                    notes=excluded.notes
                """,
                (
                    log.log_date.isoformat(),
                    log.weight_kg,
                    log.steps,
                    log.water_ml,
                    log.sleep_hours,
                    log.mood,
                    log.notes,
                ),
            )
            conn.commit()
        return log

    def get_daily_log(self, day: date) -> DailyLog | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM daily_logs WHERE log_date = ?", (day.isoformat(),)
            ).fetchone()
        if row is None:
            return None
        return _log_from_row(row)

    def list_logs(self, limit: int = 30) -> list[DailyLog]:
        """Ultimos registros diarios, del mas reciente al mas antiguo."""
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM daily_logs ORDER BY log_date DESC LIMIT ?", (limit,)
            ).fetchall()
        return [_log_from_row(row) for row in rows]

    def today_snapshot(self, day: date | None = None) -> DailySnapshot:
        """Materialize the adherence snapshot for one calendar day."""
        day = day or date.today()
        log = self.get_daily_log(day)
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT workout_date FROM workouts WHERE workout_date = ?",
                (day.isoformat(),),
            ).fetchall()
        return DailySnapshot(
            day=day,
            weight_kg=log.weight_kg if log else None,
            water_ml=(log.water_ml or 0) if log else 0,
            sleep_hours=log.sleep_hours if log else None,
            workout_dates=tuple(
                date.fromisoformat(row["workout_date"]) for row in rows
            ),
        )

    # -- entrenamientos ------------------------------------------------

    def add_workout(
        self,
        workout_type: str,
        workout_name: str,
        *,
        duration_minutes: float,
        calories_burned: float,
        workout_date: date,
        intensity: str = "medium",
        workout_time: time | None = None,
        notes: str | None = None,
    ) -> Workout:
        """Create a workout. Raises ValueError on unknown type/intensity."""
        if workout_type not in WORKOUT_TYPES:
            raise ValueError(f"Unknown workout type: {workout_type!r}")
        if intensity not in INTENSITIES:
            raise ValueError(f"Unknown intensity: {intensity!r}")
        with self._connect() as conn:
            cur = conn.execute(
                """
                INSERT INTO workouts(
                    workout_type, workout_name, duration_minutes, calories_burned,
                    intensity, workout_date, workout_time, notes, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    workout_type,
                    workout_name,
                    duration_minutes,
                    calories_burned,
                    intensity,
                    workout_date.isoformat(),
                    workout_time.isoformat() if workout_time else None,
                    notes,
                    _now_iso(),
                ),
            )
            conn.commit()
            workout_id = int(cur.lastrowid)
            row = conn.execute(
                "SELECT * FROM workouts WHERE id = ?", (workout_id,)
            ).fetchone()
        return _workout_from_row(row)

    def delete_workout(self, workout_id: int) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM workouts WHERE id = ?", (workout_id,))
            conn.commit()

    def list_workouts(self, limit: int = 100) -> list[Workout]:
        """Ultimos entrenamientos (fecha descendente)."""
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT * FROM workouts
                ORDER BY workout_date DESC, created_at DESC, id DESC
                LIMIT ?
                """,
                (limit,),
            ).fetchall()
        return _workouts_from_rows(rows)

    def list_workouts_on_or_after(self, day: date) -> list[Workout]:
        """Entrenamientos con fecha >= ``day`` (orden ascendente)."""
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT * FROM workouts
                WHERE workout_date >= ?
                ORDER BY workout_date, id
                """,
                (day.isoformat(),),
            ).fetchall()
        return _workouts_from_rows(rows)

    def workout_dates(self) -> set[date]:
        """Distinct dates with at least one workout; unreadable dates are skipped."""
        with self._connect() as conn:
            rows = conn.execute("SELECT DISTINCT workout_date FROM workouts").fetchall()
        dates: set[date] = set()
        for row in rows:
            try:
                dates.add(date.fromisoformat(row["workout_date"]))
            except (TypeError, ValueError):
                logger.warning("Skipping workout date %r", row["workout_date"])
        return dates

    def workouts_frame(self, since: date | None = None) -> pd.DataFrame:
        """Carga entrenamientos como DataFrame."""
        workouts = (
            self.list_workouts_on_or_after(since)
            if since is not None
            else list(reversed(self.list_workouts(limit=-1)))
        )
        out = pd.DataFrame(
            [
                {
                    "workout_date": w.workout_date,
                    "workout_type": w.workout_type,
                    "workout_name": w.workout_name,
                    "duration_minutes": w.duration_minutes,
                    "calories_burned": w.calories_burned,
                    "intensity": w.intensity,
                    "notes": w.notes,
                }
                for w in workouts
            ]
        )
        if out.empty:
            return pd.DataFrame(columns=WORKOUT_COLUMNS)
        return out

    def logs_frame(self, since: date | None = None) -> pd.DataFrame:
        """Carga registros diarios como DataFrame (fecha ascendente)."""
        query = "SELECT * FROM daily_logs"
        params: tuple[Any, ...] = ()
        if since is not None:
            query += " WHERE log_date >= ?"
            params = (since.isoformat(),)
        with self._connect() as conn:
            rows = conn.execute(query + " ORDER BY log_date", params).fetchall()
        out = pd.DataFrame([dict(row) for row in rows])
        if out.empty:
            return pd.DataFrame(columns=LOG_COLUMNS)
        out["log_date"] = pd.to_datetime(out["log_date"], errors="coerce").dt.date
        return out[LOG_COLUMNS]

    # -- metas ---------------------------------------------------------

    def add_goal(
        self,
        goal_type: str,
        target_value: float,
        *,
        current_value: float = 0,
        deadline: date | None = None,
    ) -> Goal:
        """Create an active goal. Raises ValueError on unknown type."""
        if goal_type not in GOAL_TYPES:
            raise ValueError(f"Unknown goal type: {goal_type!r}")
        with self._connect() as conn:
            cur = conn.execute(
                """
                INSERT INTO goals(
                    goal_type, target_value, current_value, deadline, status,
                    created_at
                ) VALUES (?, ?, ?, ?, 'active', ?)
                """,
                (
                    goal_type,
                    target_value,
                    current_value,
                    deadline.isoformat() if deadline else None,
                    _now_iso(),
                ),
            )
            conn.commit()
            goal_id = int(cur.lastrowid)
        return self.get_goal(goal_id)

    def update_goal(
        self,
        goal_id: int,
        *,
        target_value: float | None = None,
        current_value: float | None = None,
        deadline: date | None = None,
        status: str | None = None,
    ) -> Goal:
        if status is not None and status not in GOAL_STATUSES:
            raise ValueError(f"Unknown goal status: {status!r}")
        current = self.get_goal(goal_id)
        new_deadline = deadline if deadline is not None else current.deadline
        with self._connect() as conn:
            conn.execute(
                """
                UPDATE goals
                SET target_value = ?, current_value = ?, deadline = ?, status = ?
                WHERE id = ?
                """,
                (
                    current.target_value if target_value is None else target_value,
                    current.current_value if current_value is None else current_value,
                    new_deadline.isoformat() if new_deadline else None,
                    current.status if status is None else status,
                    goal_id,
                ),
            )
            conn.commit()
        return self.get_goal(goal_id)

    def delete_goal(self, goal_id: int) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM goals WHERE id = ?", (goal_id,))
            conn.commit()

    def get_goal(self, goal_id: int) -> Goal:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM goals WHERE id = ?", (goal_id,)).fetchone()
        if row is None:
            raise KeyError(goal_id)
        return _goal_from_row(row)

    def list_goals(self) -> list[Goal]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM goals ORDER BY created_at DESC, id DESC"
            ).fetchall()
        return [_goal_from_row(row) for row in rows]

    def count_active_goals(self) -> int:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT COUNT(*) AS n FROM goals WHERE status = 'active'"
            ).fetchone()
        return int(row["n"])


def _now_iso() -> str:
    return datetime.now().isoformat(timespec="seconds")


def _parse_int(raw: str | None, default: int) -> int:
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value >= 0 else default


def _parse_positive_float(raw: str | None, default: float) -> float:
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    return value if value > 0 else default


def _parse_optional_date(raw: str | None) -> date | None:
    if not raw:
        return None
    return date.fromisoformat(raw)


def _reminder_from_row(row: sqlite3.Row) -> Reminder:
    # Sin validar: un registro corrupto se descarta en el tick, no aqui.
    return Reminder(
        id=int(row["id"]),
        activity_kind=row["activity_type"],
        time_of_day=row["reminder_time"],
        message=row["message"],
        days_of_week=row["days_of_week"],
        is_active=bool(row["is_active"]),
    )


def _log_from_row(row: sqlite3.Row) -> DailyLog:
    return DailyLog(
        log_date=date.fromisoformat(row["log_date"]),
        weight_kg=row["weight_kg"],
        steps=row["steps"],
        water_ml=row["water_ml"],
        sleep_hours=row["sleep_hours"],
        mood=row["mood"],
        notes=row["notes"],
    )


def _workout_from_row(row: sqlite3.Row) -> Workout:
    raw_time = row["workout_time"]
    return Workout(
        id=int(row["id"]),
        workout_type=row["workout_type"],
        workout_name=row["workout_name"],
        duration_minutes=float(row["duration_minutes"]),
        calories_burned=float(row["calories_burned"]),
        intensity=row["intensity"],
        workout_date=date.fromisoformat(row["workout_date"]),
        workout_time=time.fromisoformat(raw_time) if raw_time else None,
        notes=row["notes"],
    )


def _workouts_from_rows(rows: list[sqlite3.Row]) -> list[Workout]:
    out: list[Workout] = []
    for row in rows:
        try:
            out.append(_workout_from_row(row))
        except (TypeError, ValueError) as exc:
            logger.warning("Skipping workout %s: %s", row["id"], exc)
    return out


def _goal_from_row(row: sqlite3.Row) -> Goal:
    return Goal(
        id=int(row["id"]),
        goal_type=row["goal_type"],
        target_value=float(row["target_value"]),
        current_value=float(row["current_value"]),
        deadline=_parse_optional_date(row["deadline"]),
        status=row["status"],
    )
