"""Meal name resolution for A/B selection codes.

The mobile client stores a week's picks as a flat map of "{day}_{meal_type}"
keys to "A"/"B" codes. parse_selection_entries() turns that map into typed
SlotChoice records once, at the boundary; everything downstream works on the
records.
"""

import logging
from dataclasses import dataclass
from typing import Iterable

from .models import MealOption, MealType

logger = logging.getLogger(__name__)

DAYS = range(1, 8)


@dataclass(frozen=True)
class SlotChoice:
    """One picked alternative for a (day, meal type) slot."""

    day: int
    meal_type: MealType
    choice: str


def parse_selection_entries(selections: dict | None) -> list[SlotChoice]:
    """Parse a raw selections map into SlotChoice records.

    Keys that do not name a day 1-7 and a known meal type, and empty codes,
    are skipped. Records are ordered by day, lunch before dinner.
    """
    entries = []
    for key, choice in (selections or {}).items():
        day_part, _, type_part = str(key).partition("_")
        try:
            day = int(day_part)
            meal_type = MealType(type_part)
        except ValueError:
            logger.warning(f"Skipping unrecognized selection key: {key!r}")
            continue
        if day not in DAYS or not choice:
            continue
        entries.append(SlotChoice(day=day, meal_type=meal_type, choice=str(choice)))

    type_order = list(MealType)
    entries.sort(key=lambda e: (e.day, type_order.index(e.meal_type)))
    return entries


def _type_value(meal_type) -> str:
    return meal_type.value if isinstance(meal_type, MealType) else str(meal_type)


def find_option(
    meal_options: Iterable[MealOption], week: int | None, day: int, meal_type
) -> MealOption | None:
    """The option configured for (week, day, meal_type), if any."""
    if week is None:
        return None
    type_value = _type_value(meal_type)
    for option in meal_options:
        if (
            option.challenge_week == week
            and option.challenge_day == day
            and option.meal_type == type_value
        ):
            return option
    return None


def resolve(meal_options: Iterable[MealOption], week: int | None, day: int, meal_type, choice: str) -> str:
    """Display name for a choice code, or the code itself when unresolvable.

    Legacy selections without a week, slots the program has not configured
    yet, and codes other than A/B all fall back to the raw code.
    """
    option = find_option(meal_options, week, day, meal_type)
    if option is None:
        return choice
    name = option.name_for(choice)
    return name if name is not None else choice


class MealCatalog:
    """Indexed meal options of one program, for resolving many selections."""

    def __init__(self, meal_options: Iterable[MealOption] = ()):
        self._index: dict[tuple[int, int, str], MealOption] = {}
        for option in meal_options:
            if option.challenge_week is None or option.challenge_day is None:
                continue
            key = (option.challenge_week, option.challenge_day, option.meal_type)
            self._index[key] = option

    def __len__(self) -> int:
        return len(self._index)

    def option(self, week: int | None, day: int, meal_type) -> MealOption | None:
        if week is None:
            return None
        return self._index.get((week, day, _type_value(meal_type)))

    def resolve(self, week: int | None, day: int, meal_type, choice: str) -> str:
        option = self.option(week, day, meal_type)
        if option is None:
            return choice
        name = option.name_for(choice)
        return name if name is not None else choice

    def resolve_entries(self, week: int | None, selections: dict | None) -> list[dict]:
        """Resolved names for every slot picked in a raw selections map."""
        return [
            {
                "day": entry.day,
                "meal_type": entry.meal_type.value,
                "choice": entry.choice,
                "meal_name": self.resolve(week, entry.day, entry.meal_type, entry.choice),
            }
            for entry in parse_selection_entries(selections)
        ]

    def week_grid(self, week: int) -> dict[int, dict[str, MealOption | None]]:
        """Options for days 1-7 of a week, keyed by day then meal type."""
        return {
            day: {meal_type.value: self.option(week, day, meal_type) for meal_type in MealType}
            for day in DAYS
        }
