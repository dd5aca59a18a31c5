"""CLI para registrar actividad, consultar estadisticas y vigilar recordatorios."""

from __future__ import annotations

import argparse
import threading
from datetime import date, datetime
from pathlib import Path

from fittrack.alarms import AlarmOccurrence, ReminderBoard
from fittrack.excel_writer import ExcelLayout, write_history_xlsx
from fittrack.logging_config import setup_logging
from fittrack.model import ALL_DAYS, GOAL_STATUSES, GOAL_TYPES, DailyLog
from fittrack.reminder_clock import ReminderClock, local_now
from fittrack.stats import dashboard_stats, format_dashboard, goal_progress
from fittrack.storage import SQLiteStore


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Returns:
        Parsed argparse namespace.
    """
    parser = argparse.ArgumentParser(
        description="Seguimiento personal de actividad fisica y recordatorios."
    )
    parser.add_argument(
        "--db",
        default=str(Path.cwd() / "fittrack.sqlite3"),
        help="Base SQLite (default: ./fittrack.sqlite3).",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Nivel de logging (default: el guardado en la configuracion).",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("stats", help="Muestra el resumen del tablero.")

    export = sub.add_parser("export", help="Exporta el historial a Excel.")
    export.add_argument("--out", default=None, help="Archivo XLSX de salida.")

    sub.add_parser("check", help="Evalua los recordatorios una vez.")
    sub.add_parser("watch", help="Vigila los recordatorios hasta Ctrl+C.")

    log = sub.add_parser("log", help="Actualiza el registro de hoy.")
    log.add_argument("--weight", type=float, default=None)
    log.add_argument("--steps", type=int, default=None)
    log.add_argument("--water", type=float, default=None)
    log.add_argument("--sleep", type=float, default=None)
    log.add_argument("--mood", default=None)

    workout = sub.add_parser("workout", help="Administra entrenamientos.")
    workout_sub = workout.add_subparsers(dest="action", required=True)
    w_add = workout_sub.add_parser("add", help="Registra un entrenamiento hoy.")
    w_add.add_argument("name")
    w_add.add_argument("--type", dest="workout_type", default="cardio")
    w_add.add_argument("--minutes", type=float, required=True)
    w_add.add_argument("--calories", type=float, default=0)
    w_add.add_argument("--intensity", default="medium")
    w_list = workout_sub.add_parser("list")
    w_list.add_argument("--limit", type=int, default=20)
    w_delete = workout_sub.add_parser("delete")
    w_delete.add_argument("id", type=int)

    goal = sub.add_parser("goal", help="Administra metas.")
    goal_sub = goal.add_subparsers(dest="action", required=True)
    g_add = goal_sub.add_parser("add")
    g_add.add_argument("goal_type", help=", ".join(GOAL_TYPES))
    g_add.add_argument("target", type=float)
    g_add.add_argument("--current", type=float, default=0)
    g_add.add_argument("--deadline", type=date.fromisoformat, default=None)
    goal_sub.add_parser("list")
    g_update = goal_sub.add_parser("update")
    g_update.add_argument("id", type=int)
    g_update.add_argument("--target", type=float, default=None)
    g_update.add_argument("--current", type=float, default=None)
    g_update.add_argument("--deadline", type=date.fromisoformat, default=None)
    g_update.add_argument("--status", default=None, help=", ".join(GOAL_STATUSES))
    g_delete = goal_sub.add_parser("delete")
    g_delete.add_argument("id", type=int)

    reminder = sub.add_parser("reminder", help="Administra recordatorios.")
    reminder_sub = reminder.add_subparsers(dest="action", required=True)
    add = reminder_sub.add_parser("add")
    add.add_argument("kind", help="weight, water, sleep o workout.")
    add.add_argument("time", help="Hora HH:MM[:SS].")
    add.add_argument("--message", default=None)
    add.add_argument("--days", default=ALL_DAYS, help="all o lista: mon,wed,fri.")
    reminder_sub.add_parser("list")
    for action in ("delete", "enable", "disable"):
        cmd = reminder_sub.add_parser(action)
        cmd.add_argument("id", type=int)

    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Run the CLI.

    Returns:
        Exit code (0 on success).
    """
    ns = parse_args(argv)
    store = SQLiteStore(Path(ns.db).expanduser())
    config = store.load_config()
    setup_logging(ns.log_level or config.log_level)

    if ns.command == "stats":
        print(format_dashboard(dashboard_stats(store)))
    elif ns.command == "export":
        out_path = _export_path(ns.out, config.export_dir)
        write_history_xlsx(
            store.workouts_frame(), store.logs_frame(), out_path, ExcelLayout()
        )
        print(f"OK: Output: {out_path}")
    elif ns.command == "check":
        board = ReminderBoard(
            _print_alarm, warning_window_minutes=config.warning_window_minutes
        )
        _build_clock(store, board, config.tick_seconds).tick()
        _print_statuses(store, board)
    elif ns.command == "watch":
        board = ReminderBoard(
            _print_alarm, warning_window_minutes=config.warning_window_minutes
        )
        clock = _build_clock(store, board, config.tick_seconds)
        stop = threading.Event()
        try:
            clock.run(stop)
        except KeyboardInterrupt:
            stop.set()
    elif ns.command == "log":
        _update_today_log(store, ns)
    elif ns.command == "workout":
        _workout_command(store, ns)
    elif ns.command == "goal":
        _goal_command(store, ns)
    elif ns.command == "reminder":
        _reminder_command(store, ns)
    return 0


def _build_clock(store: SQLiteStore, board: ReminderBoard, period: float) -> ReminderClock:
    return ReminderClock(
        board,
        store.list_reminders,
        store.today_snapshot,
        period=period,
        now=local_now,
    )


def _export_path(out: str | None, export_dir: str) -> Path:
    if out:
        return Path(out).expanduser()
    out_dir = Path(export_dir).expanduser() if export_dir else Path.cwd() / "salidas"
    ts = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
    return out_dir / f"fittrack_historial_{ts}.xlsx"


def _print_alarm(occurrence: AlarmOccurrence) -> None:
    print(f"ALARMA [{occurrence.reminder_id}] {occurrence.message}")


def _print_statuses(store: SQLiteStore, board: ReminderBoard) -> None:
    for reminder in store.list_reminders():
        status = board.status(reminder.id)
        countdown = status.countdown()
        suffix = f" ({countdown})" if countdown else ""
        print(
            f"{reminder.id}: {reminder.activity_kind} {reminder.time_of_day} "
            f"{status.state.value}{suffix}"
        )


def _update_today_log(store: SQLiteStore, ns: argparse.Namespace) -> None:
    today = date.today()
    current = store.get_daily_log(today) or DailyLog(log_date=today)
    updated = DailyLog(
        log_date=today,
        weight_kg=ns.weight if ns.weight is not None else current.weight_kg,
        steps=ns.steps if ns.steps is not None else current.steps,
        water_ml=ns.water if ns.water is not None else current.water_ml,
        sleep_hours=ns.sleep if ns.sleep is not None else current.sleep_hours,
        mood=ns.mood if ns.mood is not None else current.mood,
        notes=current.notes,
    )
    store.upsert_daily_log(updated)
    print(f"OK: Log {today.isoformat()} actualizado")


def _reminder_command(store: SQLiteStore, ns: argparse.Namespace) -> None:
    if ns.action == "add":
        created = store.add_reminder(
            ns.kind, ns.time, message=ns.message, days_of_week=ns.days
        )
        print(f"OK: Reminder {created.id} a las {created.time_of_day}")
    elif ns.action == "list":
        for r in store.list_reminders():
            flag = "on" if r.is_active else "off"
            print(
                f"{r.id}: {r.activity_kind} {r.time_of_day} [{r.days_of_week}] "
                f"{flag} - {r.display_message()}"
            )
    elif ns.action == "delete":
        store.delete_reminder(ns.id)
        print(f"OK: Reminder {ns.id} borrado")
    else:
        store.update_reminder(ns.id, is_active=ns.action == "enable")
        print(f"OK: Reminder {ns.id} {ns.action}d")


def _workout_command(store: SQLiteStore, ns: argparse.Namespace) -> None:
    if ns.action == "add":
        created = store.add_workout(
            ns.workout_type,
            ns.name,
            duration_minutes=ns.minutes,
            calories_burned=ns.calories,
            intensity=ns.intensity,
            workout_date=date.today(),
        )
        print(f"OK: Workout {created.id}: {created.workout_name}")
    elif ns.action == "list":
        for w in store.list_workouts(limit=ns.limit):
            print(
                f"{w.id}: {w.workout_date.isoformat()} {w.workout_type} "
                f"{w.workout_name} {w.duration_minutes:g} min "
                f"{w.calories_burned:g} kcal"
            )
    else:
        store.delete_workout(ns.id)
        print(f"OK: Workout {ns.id} borrado")


def _goal_command(store: SQLiteStore, ns: argparse.Namespace) -> None:
    if ns.action == "add":
        created = store.add_goal(
            ns.goal_type, ns.target, current_value=ns.current, deadline=ns.deadline
        )
        print(f"OK: Goal {created.id}: {created.goal_type}")
    elif ns.action == "list":
        for g in store.list_goals():
            deadline = g.deadline.isoformat() if g.deadline else "-"
            print(
                f"{g.id}: {g.goal_type} {g.current_value:g}/{g.target_value:g} "
                f"({goal_progress(g)}%) {g.status} hasta {deadline}"
            )
    elif ns.action == "update":
        updated = store.update_goal(
            ns.id,
            target_value=ns.target,
            current_value=ns.current,
            deadline=ns.deadline,
            status=ns.status,
        )
        print(f"OK: Goal {updated.id} {updated.status} ({goal_progress(updated)}%)")
    else:
        store.delete_goal(ns.id)
        print(f"OK: Goal {ns.id} borrado")
