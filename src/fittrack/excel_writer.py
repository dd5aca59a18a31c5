"""Exportacion a Excel del historial de entrenamientos y registros diarios."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pandas as pd
from openpyxl.styles import Alignment, Border, Font, Side

_DIA_SEMANA: tuple[str, ...] = ("lun", "mar", "mie", "jue", "vie", "sab", "dom")

_HEADER_MAP: dict[str, str] = {
    "weekday": "Día",
    "workout_date": "Fecha",
    "log_date": "Fecha",
    "workout_type": "Tipo",
    "workout_name": "Entrenamiento",
    "duration_minutes": "Minutos",
    "calories_burned": "Calorías\n(kcal)",
    "intensity": "Intensidad",
    "notes": "Notas",
    "weight_kg": "Peso (kg)",
    "steps": "Pasos",
    "water_ml": "Agua (ml)",
    "sleep_hours": "Sueño (h)",
    "mood": "Ánimo",
}

_WIDTHS: dict[str, int] = {
    "Día": 6,
    "Fecha": 12,
    "Tipo": 10,
    "Entrenamiento": 22,
    "Minutos": 9,
    "Calorías\n(kcal)": 10,
    "Intensidad": 11,
    "Notas": 28,
    "Peso (kg)": 10,
    "Pasos": 10,
    "Agua (ml)": 10,
    "Sueño (h)": 10,
    "Ánimo": 10,
}

_NUMBER_FORMATS: dict[str, str] = {
    "Fecha": "dd/mm/yyyy",
    "Minutos": "0",
    "Calorías\n(kcal)": "#,##0",
    "Peso (kg)": "0.0",
    "Pasos": "#,##0",
    "Agua (ml)": "#,##0",
    "Sueño (h)": "0.0",
}


@dataclass(frozen=True)
class ExcelLayout:
    """Sheet names for the history workbook."""

    workouts_sheet: str = "Entrenamientos"
    logs_sheet: str = "Registro diario"


def _weekday_label(i: object) -> str:
    """Convierte índice 0-6 (lunes-domingo) a etiqueta de 3 letras."""
    try:
        if i is None or (isinstance(i, float) and pd.isna(i)):
            return ""
        if isinstance(i, int | float):
            idx = int(i)
            return _DIA_SEMANA[idx] if 0 <= idx < 7 else ""
        return ""
    except (ValueError, TypeError):
        return ""


def _add_weekday_column(export_df: pd.DataFrame, date_col: str) -> pd.DataFrame:
    """Añade columna weekday (Día) a partir de la columna de fecha."""
    if date_col not in export_df.columns or export_df.empty:
        return export_df
    export_df = export_df.copy()
    export_df[date_col] = pd.to_datetime(export_df[date_col], errors="coerce")
    export_df["weekday"] = export_df[date_col].dt.weekday.map(_weekday_label)
    cols = ["weekday"] + [c for c in export_df.columns if c != "weekday"]
    return export_df[cols]


def _prepare_sheet(df: pd.DataFrame, date_col: str) -> pd.DataFrame:
    export_df = _add_weekday_column(df.copy(), date_col)
    return export_df.rename(columns=_HEADER_MAP)


def write_history_xlsx(
    workouts: pd.DataFrame,
    logs: pd.DataFrame,
    out_path: Path,
    layout: ExcelLayout,
) -> None:
    """Write workouts and daily logs to a formatted workbook.

    Args:
        workouts: Workout history (``workout_date`` column).
        logs: Daily logs (``log_date`` column).
        out_path: Output path for the XLSX file.
        layout: Sheet names.
    """
    out_path.parent.mkdir(parents=True, exist_ok=True)

    sheets = {
        layout.workouts_sheet: _prepare_sheet(workouts, "workout_date"),
        layout.logs_sheet: _prepare_sheet(logs, "log_date"),
    }
    with pd.ExcelWriter(out_path, engine="openpyxl") as writer:
        for name, export_df in sheets.items():
            export_df.to_excel(writer, index=False, sheet_name=name)
            _format_sheet(writer.book[name])


def _style_header_row(ws: Any) -> None:
    """Aplica fuente negrita, alineación y borde a la fila de cabecera."""
    thin = Side(style="thin")
    border = Border(left=thin, right=thin, top=thin, bottom=thin)
    header_font = Font(bold=True)
    center = Alignment(horizontal="center", vertical="center", wrap_text=True)
    for cell in ws[1]:
        cell.font = header_font
        cell.alignment = center
        cell.border = border


def _style_body_rows(ws: Any) -> None:
    """Aplica alineación y borde a las filas de datos."""
    thin = Side(style="thin")
    border = Border(left=thin, right=thin, top=thin, bottom=thin)
    center = Alignment(horizontal="center", vertical="center", wrap_text=True)
    for row in ws.iter_rows(min_row=2):
        for cell in row:
            cell.alignment = center
            cell.border = border


def _get_header_col_index(ws: Any) -> dict[str, int]:
    """Devuelve mapa nombre de cabecera -> índice de columna (1-based)."""
    headers = [str(cell.value) for cell in ws[1]]
    return {name: idx + 1 for idx, name in enumerate(headers)}


def _apply_column_widths(ws: Any, col_index: dict[str, int]) -> None:
    for header, width in _WIDTHS.items():
        idx = col_index.get(header)
        if idx is not None:
            letter = ws.cell(row=1, column=idx).column_letter
            ws.column_dimensions[letter].width = width


def _apply_number_formats(ws: Any, col_index: dict[str, int]) -> None:
    for row in ws.iter_rows(min_row=2):
        for header, fmt in _NUMBER_FORMATS.items():
            idx = col_index.get(header)
            if idx is not None:
                row[idx - 1].number_format = fmt


def _format_sheet(ws: Any) -> None:
    """Apply borders, widths and number formats to a worksheet."""
    _style_header_row(ws)
    _style_body_rows(ws)
    col_index = _get_header_col_index(ws)
    _apply_column_widths(ws, col_index)
    _apply_number_formats(ws, col_index)
