"""App Kivy: tablero, registro diario, recordatorios con alarma y persistencia SQLite."""

from __future__ import annotations

import logging
import traceback
from datetime import date, datetime
from pathlib import Path

import pandas as pd

from fittrack.alarms import AlarmOccurrence, AlarmState, ReminderBoard
from fittrack.excel_writer import ExcelLayout, write_history_xlsx
from fittrack.logging_config import setup_logging
from fittrack.model import (
    ALL_DAYS,
    GOAL_TYPES,
    MOODS,
    WORKOUT_TYPES,
    DailyLog,
    Goal,
    Reminder,
)
from fittrack.reminder_clock import ReminderClock
from fittrack.stats import dashboard_stats, format_dashboard, goal_progress
from fittrack.storage import SQLiteStore

logger = logging.getLogger(__name__)

LOG_FIELDS = [
    ("weight_kg", "Peso (kg)"),
    ("steps", "Pasos"),
    ("water_ml", "Agua (ml)"),
    ("sleep_hours", "Sueño (h)"),
]
PREVIEW_COLUMNS = [
    "workout_date",
    "workout_type",
    "workout_name",
    "duration_minutes",
    "calories_burned",
]


def run_app() -> int:
    """Lanza la app Kivy."""
    from kivy.app import App
    from kivy.clock import Clock
    from kivy.core.audio import SoundLoader
    from kivy.core.window import Window
    from kivy.resources import resource_find
    from kivy.uix.boxlayout import BoxLayout
    from kivy.uix.button import Button
    from kivy.uix.gridlayout import GridLayout
    from kivy.uix.label import Label
    from kivy.uix.popup import Popup
    from kivy.uix.scrollview import ScrollView
    from kivy.uix.spinner import Spinner
    from kivy.uix.textinput import TextInput

    class FitTrackApp(App):
        """Main Kivy app."""

        def __init__(self, **kwargs: object) -> None:
            super().__init__(**kwargs)
            self.store = SQLiteStore(Path.cwd() / "fittrack.sqlite3")
            self.app_config = self.store.load_config()
            setup_logging(self.app_config.log_level)
            self.board = ReminderBoard(
                self._on_alarm,
                warning_window_minutes=self.app_config.warning_window_minutes,
            )
            self.reminder_clock = ReminderClock(
                self.board,
                self.store.list_reminders,
                self.store.today_snapshot,
                period=self.app_config.tick_seconds,
            )
            self.preview: TextInput | None = None
            self.status: Label | None = None
            self.countdowns: Label | None = None
            self._tick_event: object | None = None
            self._alarm_popups: dict[tuple[int, date], tuple[Popup, object]] = {}
            self._preview_font = resource_find("data/fonts/RobotoMono-Regular.ttf")

        def build(self) -> BoxLayout:
            Window.bind(on_key_down=self._on_key_down)

            root = BoxLayout(orientation="vertical", spacing=8, padding=10)
            root.add_widget(
                Label(
                    text="FitTrack: registro diario, entrenamientos y recordatorios.",
                    size_hint_y=None,
                    height=36,
                )
            )

            actions = BoxLayout(
                orientation="horizontal",
                spacing=8,
                size_hint_y=None,
                height=40,
            )
            log_btn = Button(text="Registro de hoy")
            workout_btn = Button(text="Entrenamiento")
            reminders_btn = Button(text="Recordatorios")
            goals_btn = Button(text="Metas")
            export_btn = Button(text="Exportar Excel")
            exit_btn = Button(text="Salir")
            log_btn.bind(on_press=self._open_log_popup)
            workout_btn.bind(on_press=self._open_workout_popup)
            reminders_btn.bind(on_press=self._open_reminders_popup)
            goals_btn.bind(on_press=self._open_goals_popup)
            export_btn.bind(on_press=self._on_export)
            exit_btn.bind(on_press=lambda *_args: self.stop())
            for btn in (
                log_btn, workout_btn, reminders_btn, goals_btn, export_btn, exit_btn
            ):
                actions.add_widget(btn)
            root.add_widget(actions)

            self.status = Label(text="Listo", size_hint_y=None, height=30)
            root.add_widget(self.status)

            self.countdowns = Label(text="", size_hint_y=None, height=60)
            root.add_widget(self.countdowns)

            self.preview = TextInput(
                readonly=True,
                text="",
                multiline=True,
                do_wrap=False,
            )
            if self._preview_font:
                self.preview.font_name = self._preview_font
            root.add_widget(self.preview)

            self._refresh_dashboard()
            return root

        def on_start(self) -> None:
            self._tick_event = Clock.schedule_interval(
                self._on_tick, self.reminder_clock.period
            )

        def on_stop(self) -> None:
            if self._tick_event is not None:
                self._tick_event.cancel()
                self._tick_event = None

        def _on_key_down(
            self,
            _window: object,
            keycode: int,
            _scancode: int,
            _text: str,
            _modifiers: list[str],
        ) -> bool:
            # Esc: salir de fullscreen o cerrar app (nunca con una alarma sonando).
            if keycode != 27:
                return False
            if self.board.ringing():
                return True
            if Window.fullscreen:
                Window.fullscreen = False
            else:
                self.stop()
            return True

        # -- reloj y alarmas -------------------------------------------

        def _on_tick(self, _dt: float) -> None:
            day_before = self.board.day
            self.reminder_clock.tick()
            if day_before is not None and self.board.day != day_before:
                self._refresh_dashboard()
            self._refresh_countdowns()

        def _refresh_countdowns(self) -> None:
            if self.countdowns is None:
                return
            lines = []
            for status in self.board.statuses():
                if status.state is AlarmState.IMMINENT:
                    lines.append(
                        f"Recordatorio {status.reminder_id} en {status.countdown()}"
                    )
                elif status.state is AlarmState.RINGING:
                    lines.append(f"Recordatorio {status.reminder_id} sonando")
            self.countdowns.text = "\n".join(lines)

        def _on_alarm(self, occurrence: AlarmOccurrence) -> None:
            key = (occurrence.reminder_id, occurrence.day)
            if key in self._alarm_popups:
                return
            sound = self._start_sound()
            content = BoxLayout(orientation="vertical", spacing=8, padding=8)
            content.add_widget(Label(text=occurrence.message))
            ack_btn = Button(text="Entendido", size_hint_y=None, height=44)
            content.add_widget(ack_btn)
            popup = Popup(
                title="Recordatorio",
                content=content,
                size_hint=(0.7, 0.5),
                auto_dismiss=False,
            )
            ack_btn.bind(on_press=lambda *_args: self._acknowledge(occurrence))
            self._alarm_popups[key] = (popup, sound)
            popup.open()

        def _start_sound(self) -> object | None:
            path = self.app_config.alarm_sound
            if not path:
                return None
            sound = SoundLoader.load(str(Path(path).expanduser()))
            if sound is None:
                logger.warning("Could not load alarm sound %s", path)
                return None
            sound.loop = True
            sound.play()
            return sound

        def _acknowledge(self, occurrence: AlarmOccurrence) -> None:
            self.board.acknowledge(occurrence.reminder_id, occurrence.day)
            popup, sound = self._alarm_popups.pop(
                (occurrence.reminder_id, occurrence.day), (None, None)
            )
            if sound is not None:
                sound.stop()
            if popup is not None:
                popup.dismiss()
            self._refresh_countdowns()

        # -- formularios -----------------------------------------------

        def _open_log_popup(self, _: object) -> None:
            today = date.today()
            current = self.store.get_daily_log(today) or DailyLog(log_date=today)
            inputs: dict[str, TextInput] = {}
            form = GridLayout(cols=2, spacing=6, size_hint_y=None)
            form.bind(minimum_height=form.setter("height"))
            for field, label in LOG_FIELDS:
                value = getattr(current, field)
                inp = TextInput(
                    text="" if value is None else _format_preview_value(value),
                    multiline=False,
                    size_hint_y=None,
                    height=36,
                )
                form.add_widget(Label(text=label, size_hint_y=None, height=36))
                form.add_widget(inp)
                inputs[field] = inp
            mood = Spinner(
                text=current.mood or "good",
                values=MOODS,
                size_hint_y=None,
                height=36,
            )
            form.add_widget(Label(text="Ánimo", size_hint_y=None, height=36))
            form.add_widget(mood)

            def save(*_args: object) -> None:
                try:
                    log = DailyLog(
                        log_date=today,
                        weight_kg=_optional_float(inputs["weight_kg"].text),
                        steps=_optional_int(inputs["steps"].text),
                        water_ml=_optional_float(inputs["water_ml"].text),
                        sleep_hours=_optional_float(inputs["sleep_hours"].text),
                        mood=mood.text,
                        notes=current.notes,
                    )
                    self.store.upsert_daily_log(log)
                except ValueError as exc:
                    self._show_error("guardar el registro", exc)
                    return
                popup.dismiss()
                self._set_status("Registro diario actualizado.")
                self._refresh_dashboard()

            popup = self._form_popup("Registro de hoy", form, save)
            popup.open()

        def _open_workout_popup(self, _: object) -> None:
            form = GridLayout(cols=2, spacing=6, size_hint_y=None)
            form.bind(minimum_height=form.setter("height"))
            workout_type = Spinner(
                text=WORKOUT_TYPES[0], values=WORKOUT_TYPES, size_hint_y=None, height=36
            )
            intensity = Spinner(
                text="medium",
                values=("low", "medium", "high"),
                size_hint_y=None,
                height=36,
            )
            name = TextInput(multiline=False, size_hint_y=None, height=36)
            minutes = TextInput(multiline=False, size_hint_y=None, height=36)
            calories = TextInput(multiline=False, size_hint_y=None, height=36)
            for label, widget in (
                ("Tipo", workout_type),
                ("Nombre", name),
                ("Minutos", minutes),
                ("Calorías", calories),
                ("Intensidad", intensity),
            ):
                form.add_widget(Label(text=label, size_hint_y=None, height=36))
                form.add_widget(widget)

            def save(*_args: object) -> None:
                try:
                    created = self.store.add_workout(
                        workout_type.text,
                        name.text.strip() or workout_type.text,
                        duration_minutes=_optional_float(minutes.text) or 0,
                        calories_burned=_optional_float(calories.text) or 0,
                        intensity=intensity.text,
                        workout_date=date.today(),
                    )
                except ValueError as exc:
                    self._show_error("guardar el entrenamiento", exc)
                    return
                popup.dismiss()
                self._set_status(
                    f"Entrenamiento registrado: {created.workout_name} - "
                    f"{_format_preview_value(created.calories_burned)} kcal"
                )
                self._refresh_dashboard()

            popup = self._form_popup("Nuevo entrenamiento", form, save)
            popup.open()

        def _open_reminders_popup(self, _: object) -> None:
            body = BoxLayout(orientation="vertical", spacing=6)
            grid = GridLayout(cols=1, spacing=4, size_hint_y=None)
            grid.bind(minimum_height=grid.setter("height"))
            for reminder in self.store.list_reminders():
                grid.add_widget(self._reminder_row(reminder))
            scroll = ScrollView()
            scroll.add_widget(grid)
            body.add_widget(scroll)

            add_row = BoxLayout(orientation="horizontal", size_hint_y=None, height=36)
            kind = Spinner(text="water", values=("weight", "water", "sleep", "workout"))
            time_input = TextInput(text="07:00", multiline=False)
            days_input = TextInput(text=ALL_DAYS, multiline=False)
            message_input = TextInput(hint_text="Mensaje", multiline=False)
            for widget in (kind, time_input, days_input, message_input):
                add_row.add_widget(widget)
            body.add_widget(add_row)

            def save(*_args: object) -> None:
                try:
                    self.store.add_reminder(
                        kind.text,
                        time_input.text,
                        message=message_input.text.strip() or None,
                        days_of_week=days_input.text.strip() or ALL_DAYS,
                    )
                except ValueError as exc:
                    self._show_error("crear el recordatorio", exc)
                    return
                popup.dismiss()
                self._set_status("Recordatorio creado.")

            popup = self._form_popup("Recordatorios", body, save, save_text="Agregar")
            popup.open()

        def _reminder_row(self, reminder: Reminder) -> BoxLayout:
            row = BoxLayout(orientation="horizontal", size_hint_y=None, height=32)
            row.add_widget(
                Label(
                    text=(
                        f"{reminder.time_of_day} {reminder.activity_kind} "
                        f"[{reminder.days_of_week}] {reminder.display_message()}"
                    )
                )
            )
            toggle = Button(
                text="Desactivar" if reminder.is_active else "Activar",
                size_hint_x=0.2,
            )
            delete = Button(text="Borrar", size_hint_x=0.15)

            def on_toggle(*_args: object) -> None:
                updated = self.store.update_reminder(
                    reminder.id, is_active=not toggle.text.startswith("Desactivar")
                )
                toggle.text = "Desactivar" if updated.is_active else "Activar"

            def on_delete(*_args: object) -> None:
                self.store.delete_reminder(reminder.id)
                row.disabled = True

            toggle.bind(on_press=on_toggle)
            delete.bind(on_press=on_delete)
            row.add_widget(toggle)
            row.add_widget(delete)
            return row

        def _open_goals_popup(self, _: object) -> None:
            body = BoxLayout(orientation="vertical", spacing=6)
            grid = GridLayout(cols=1, spacing=4, size_hint_y=None)
            grid.bind(minimum_height=grid.setter("height"))
            for goal in self.store.list_goals():
                grid.add_widget(self._goal_row(goal))
            scroll = ScrollView()
            scroll.add_widget(grid)
            body.add_widget(scroll)

            add_row = BoxLayout(orientation="horizontal", size_hint_y=None, height=36)
            goal_type = Spinner(text=GOAL_TYPES[0], values=GOAL_TYPES)
            target = TextInput(hint_text="Objetivo", multiline=False)
            current = TextInput(hint_text="Actual", multiline=False)
            deadline = TextInput(hint_text="AAAA-MM-DD", multiline=False)
            for widget in (goal_type, target, current, deadline):
                add_row.add_widget(widget)
            body.add_widget(add_row)

            def save(*_args: object) -> None:
                try:
                    raw_deadline = deadline.text.strip()
                    self.store.add_goal(
                        goal_type.text,
                        _optional_float(target.text) or 0,
                        current_value=_optional_float(current.text) or 0,
                        deadline=(
                            date.fromisoformat(raw_deadline) if raw_deadline else None
                        ),
                    )
                except ValueError as exc:
                    self._show_error("crear la meta", exc)
                    return
                popup.dismiss()
                self._set_status("Meta creada.")
                self._refresh_dashboard()

            popup = self._form_popup("Metas", body, save, save_text="Agregar")
            popup.open()

        def _goal_row(self, goal: Goal) -> BoxLayout:
            row = BoxLayout(orientation="horizontal", size_hint_y=None, height=32)
            label = Label(
                text=f"{goal.goal_type} {goal_progress(goal)}% [{goal.status}]"
            )
            row.add_widget(label)
            current = TextInput(
                text=_format_preview_value(goal.current_value),
                multiline=False,
                size_hint_x=0.15,
            )
            update = Button(text="Actualizar", size_hint_x=0.17)
            complete = Button(text="Completar", size_hint_x=0.17)
            delete = Button(text="Borrar", size_hint_x=0.13)

            def on_update(*_args: object) -> None:
                try:
                    updated = self.store.update_goal(
                        goal.id, current_value=_optional_float(current.text)
                    )
                except ValueError as exc:
                    self._show_error("actualizar la meta", exc)
                    return
                label.text = (
                    f"{updated.goal_type} {goal_progress(updated)}% [{updated.status}]"
                )
                self._refresh_dashboard()

            def on_complete(*_args: object) -> None:
                updated = self.store.update_goal(goal.id, status="completed")
                label.text = (
                    f"{updated.goal_type} {goal_progress(updated)}% [{updated.status}]"
                )
                self._refresh_dashboard()

            def on_delete(*_args: object) -> None:
                self.store.delete_goal(goal.id)
                row.disabled = True
                self._refresh_dashboard()

            update.bind(on_press=on_update)
            complete.bind(on_press=on_complete)
            delete.bind(on_press=on_delete)
            for widget in (current, update, complete, delete):
                row.add_widget(widget)
            return row

        def _form_popup(
            self,
            title: str,
            body: object,
            on_save: object,
            *,
            save_text: str = "Guardar",
        ) -> Popup:
            footer = BoxLayout(orientation="horizontal", size_hint_y=None, height=42)
            cancel_btn = Button(text="Cancelar")
            save_btn = Button(text=save_text)
            footer.add_widget(cancel_btn)
            footer.add_widget(save_btn)

            content = BoxLayout(orientation="vertical")
            content.add_widget(body)
            content.add_widget(footer)
            popup = Popup(title=title, content=content, size_hint=(0.92, 0.92))
            cancel_btn.bind(on_press=lambda *_args: popup.dismiss())
            save_btn.bind(on_press=on_save)
            return popup

        # -- tablero y exportacion -------------------------------------

        def _on_export(self, _: object) -> None:
            config = self.app_config
            out_dir = (
                Path(config.export_dir).expanduser()
                if config.export_dir
                else Path.cwd() / "salidas"
            )
            timestamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
            out_path = out_dir / f"fittrack_historial_gui_{timestamp}.xlsx"
            try:
                write_history_xlsx(
                    self.store.workouts_frame(),
                    self.store.logs_frame(),
                    out_path,
                    ExcelLayout(),
                )
            except Exception as exc:
                self._show_error("exportar", exc)
                return
            self._set_status(f"Excel generado: {out_path}")

        def _refresh_dashboard(self) -> None:
            if self.preview is None:
                return
            try:
                summary = format_dashboard(dashboard_stats(self.store))
                goals = [
                    f"Meta {g.goal_type}: {goal_progress(g)}%"
                    for g in self.store.list_goals()
                    if g.status == "active"
                ]
                workouts = self.store.workouts_frame().tail(20)
            except Exception as exc:
                self._show_error("cargar el tablero", exc)
                return
            parts = [summary]
            if goals:
                parts.append("\n".join(goals))
            if not workouts.empty:
                display_df = _display_frame(workouts[PREVIEW_COLUMNS].iloc[::-1])
                parts.append(display_df.to_string(index=False, max_colwidth=28))
            self.preview.text = "\n\n".join(parts)

        def _set_status(self, text: str) -> None:
            if self.status is not None:
                self.status.text = text

        def _show_error(self, action: str, exc: Exception) -> None:
            error_type = type(exc).__name__
            self._set_status(f"Error al {action} ({error_type}): {exc}")
            if self.preview is not None:
                self.preview.text = traceback.format_exc()

    FitTrackApp().run()
    return 0


def _optional_float(text: str) -> float | None:
    text = text.strip().replace(",", ".")
    return float(text) if text else None


def _optional_int(text: str) -> int | None:
    text = text.strip()
    return int(text) if text else None


def _display_frame(df: pd.DataFrame) -> pd.DataFrame:
    """Prepare a string-renderable DataFrame for aligned preview."""
    if df.empty:
        return df.copy()
    out = df.copy()
    for col in out.columns:
        out[col] = out[col].map(_format_preview_value)
    return out


def _format_preview_value(value: object) -> str:
    """Format preview values without NaN/scientific notation."""
    if value is None or pd.isna(value):
        return ""
    if isinstance(value, datetime):
        return value.strftime("%d/%m/%Y %H:%M")
    if isinstance(value, date):
        return value.strftime("%d/%m/%Y")
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        text = format(value, "f").rstrip("0").rstrip(".")
        return text if text else "0"
    return str(value)
