from challenge_admin.meal_names import (
    MealCatalog,
    SlotChoice,
    find_option,
    parse_selection_entries,
    resolve,
)
from challenge_admin.models import MealOption, MealType


def _option(week, day, meal_type, a, b):
    return MealOption(
        meal_program_id="program-1",
        challenge_week=week,
        challenge_day=day,
        meal_type=meal_type,
        option_a_name=a,
        option_b_name=b,
    )


OPTIONS = [
    _option(1, 3, "lunch", "Chicken Salad", "Salmon Bowl"),
    _option(1, 3, "dinner", "Veggie Chili", "Steak Frites"),
    _option(2, 3, "lunch", "Falafel Plate", "Ramen"),
]


def test_resolve_picks_named_alternative():
    assert resolve(OPTIONS, 1, 3, "lunch", "A") == "Chicken Salad"
    assert resolve(OPTIONS, 1, 3, "lunch", "B") == "Salmon Bowl"
    assert resolve(OPTIONS, 2, 3, MealType.LUNCH, "A") == "Falafel Plate"


def test_resolve_falls_back_to_raw_code():
    assert resolve(OPTIONS, 1, 3, "breakfast", "A") == "A"
    assert resolve(OPTIONS, 1, 4, "lunch", "B") == "B"
    assert resolve(OPTIONS, None, 3, "lunch", "A") == "A"
    assert resolve(OPTIONS, 1, 3, "lunch", "C") == "C"
    assert resolve([], 1, 3, "lunch", "A") == "A"


def test_find_option_matches_week_day_and_type():
    option = find_option(OPTIONS, 1, 3, MealType.DINNER)
    assert option.option_a_name == "Veggie Chili"
    assert find_option(OPTIONS, 3, 3, "dinner") is None


def test_parse_selection_entries_orders_and_skips_bad_keys():
    entries = parse_selection_entries({
        "2_dinner": "B",
        "1_dinner": "A",
        "1_lunch": "B",
        "1_breakfast": "A",
        "notes": "x",
        "9_lunch": "A",
        "3_lunch": "",
    })

    assert entries == [
        SlotChoice(day=1, meal_type=MealType.LUNCH, choice="B"),
        SlotChoice(day=1, meal_type=MealType.DINNER, choice="A"),
        SlotChoice(day=2, meal_type=MealType.DINNER, choice="B"),
    ]


def test_parse_selection_entries_handles_missing_map():
    assert parse_selection_entries(None) == []
    assert parse_selection_entries({}) == []


def test_catalog_resolves_entries():
    catalog = MealCatalog(OPTIONS)

    assert len(catalog) == 3
    assert catalog.resolve_entries(1, {"3_dinner": "B", "3_lunch": "A", "4_lunch": "A"}) == [
        {"day": 3, "meal_type": "lunch", "choice": "A", "meal_name": "Chicken Salad"},
        {"day": 3, "meal_type": "dinner", "choice": "B", "meal_name": "Steak Frites"},
        {"day": 4, "meal_type": "lunch", "choice": "A", "meal_name": "A"},
    ]


def test_catalog_week_grid_covers_every_slot():
    grid = MealCatalog(OPTIONS).week_grid(1)

    assert sorted(grid) == [1, 2, 3, 4, 5, 6, 7]
    assert grid[3]["lunch"].option_b_name == "Salmon Bowl"
    assert grid[3]["dinner"].option_a_name == "Veggie Chili"
    assert grid[1]["lunch"] is None


def test_catalog_ignores_options_without_week():
    legacy = _option(None, None, "lunch", "Old A", "Old B")
    catalog = MealCatalog([legacy])

    assert len(catalog) == 0
    assert catalog.resolve(1, 1, "lunch", "A") == "A"
