"""CSV export of weekly meal selections.

Column order and header names are consumed by spreadsheet tooling and must
stay fixed:

    Email, Name, Week, Delivery, Locked, Day1_Lunch, Day1_Dinner, ... Day7_Dinner

Every cell is double-quoted with embedded quotes doubled.
"""

import csv
import io
from datetime import datetime
from typing import Callable, Iterable

from .meal_names import DAYS, MealCatalog, parse_selection_entries
from .models import MealSelection, MealType

BASE_HEADERS = ["Email", "Name", "Week", "Delivery", "Locked"]

CSV_HEADERS = BASE_HEADERS + [
    f"Day{day}_{meal_type.value.capitalize()}" for day in DAYS for meal_type in MealType
]


def export_filename(week: int | None = None) -> str:
    if week is not None:
        return f"meal-selections-week-{week}.csv"
    return "meal-selections-all.csv"


def sort_selections(selections: Iterable[MealSelection]) -> list[MealSelection]:
    """Order by challenge week ascending, then newest first.

    Selections without a week go last; the id breaks remaining ties.
    """
    ordered = sorted(selections, key=lambda s: s.id or "")
    ordered.sort(key=lambda s: s.created_at or datetime.min, reverse=True)
    ordered.sort(key=lambda s: (s.challenge_week is None, s.challenge_week or 0))
    return ordered


def selection_row(selection: MealSelection, catalog: MealCatalog) -> list[str]:
    """Flatten one selection into a CSV row with resolved meal names."""
    profile = selection.profile
    week = selection.challenge_week

    picked = {
        (entry.day, entry.meal_type): catalog.resolve(week, entry.day, entry.meal_type, entry.choice)
        for entry in parse_selection_entries(selection.selections)
    }
    meal_cols = [picked.get((day, meal_type), "") for day in DAYS for meal_type in MealType]

    return [
        profile.email if profile else "",
        (profile.full_name or "") if profile else "",
        str(week) if week is not None else "",
        selection.delivery_preference or "",
        "Yes" if selection.locked else "No",
        *meal_cols,
    ]


def build_rows(
    selections: Iterable[MealSelection],
    catalog_for: Callable[[MealSelection], MealCatalog],
) -> list[list[str]]:
    """Header row followed by one row per selection, in export order."""
    rows = [list(CSV_HEADERS)]
    for selection in sort_selections(selections):
        rows.append(selection_row(selection, catalog_for(selection)))
    return rows


def to_csv(rows: Iterable[list[str]]) -> str:
    """Rows separated by newlines, with no terminator after the last row."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerows(rows)
    return buffer.getvalue().removesuffix("\n")


def export_selections_csv(
    selections: Iterable[MealSelection],
    catalog_for: Callable[[MealSelection], MealCatalog],
) -> str:
    """Serialize selections as CSV text, byte-identical for identical input."""
    return to_csv(build_rows(selections, catalog_for))
