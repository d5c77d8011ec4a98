"""Tests for pure daily log derivations."""

from datetime import date

from auranut.domain import tracking
from auranut.domain.models import (
    ActivityLevel,
    DailyLog,
    DurationUnit,
    ExerciseItem,
    FoodItem,
    Gender,
    MealType,
    UserGoals,
    WeightEntry,
)


def _food(name: str, calories: float, protein: float = 10.0) -> FoodItem:
    return FoodItem(
        id=name,
        name=name,
        calories=calories,
        protein=protein,
        carbs=20.0,
        fat=5.0,
        serving_size=1.0,
        serving_unit="serving",
    )


def _goals(current_weight: float = 80.0) -> UserGoals:
    return UserGoals(
        current_weight=current_weight,
        goal_weight=72.0,
        height=180.0,
        age=34,
        gender=Gender.MALE,
        activity_level=ActivityLevel.MODERATE,
        daily_calorie_goal=2000.0,
        daily_protein_goal=150.0,
        daily_carbs_goal=200.0,
        daily_fat_goal=60.0,
        daily_water_goal=8,
    )


def test_today_key_uses_iso_date() -> None:
    assert tracking.today_key(date(2024, 3, 9)) == "2024-03-09"


def test_ensure_today_log_is_idempotent() -> None:
    logs, created = tracking.ensure_today_log([], "2024-01-05")
    again, existing = tracking.ensure_today_log(logs, "2024-01-05")

    assert len(logs) == 1
    assert len(again) == 1
    assert existing is created
    assert created.water_intake == 0
    assert created.exercises == ()
    assert all(created.meals[meal_type] == () for meal_type in MealType)


def test_ensure_today_log_appends_new_day() -> None:
    yesterday = DailyLog(date="2024-01-04", water_intake=3)

    logs, created = tracking.ensure_today_log([yesterday], "2024-01-05")

    assert [log.date for log in logs] == ["2024-01-04", "2024-01-05"]
    assert created.date == "2024-01-05"
    assert tracking.find_log(logs, "2024-01-04") == yesterday
    assert tracking.find_log(logs, "2023-12-31") is None


def test_daily_stats_sums_every_meal_and_exercise() -> None:
    log = tracking.add_foods_to_meal(
        DailyLog(date="2024-01-05"), MealType.BREAKFAST, [_food("oats", 300)]
    )
    log = tracking.add_foods_to_meal(log, MealType.DINNER, [_food("rice", 450, 8)])
    log = tracking.add_exercise(
        log,
        ExerciseItem(
            id="run",
            name="Running",
            duration=30,
            duration_unit=DurationUnit.MINUTES,
            calories_burned=250,
        ),
    )

    stats = tracking.daily_stats(log)

    assert stats.consumed_calories == 750
    assert stats.burned_calories == 250
    assert stats.net_calories == 500
    assert stats.protein == 18
    assert stats.carbs == 40
    assert stats.fat == 10


def test_add_foods_to_meal_appends_in_order() -> None:
    log = tracking.add_foods_to_meal(
        DailyLog(date="2024-01-05"), MealType.SNACKS, [_food("apple", 95)]
    )
    log = tracking.add_foods_to_meal(
        log, MealType.SNACKS, [_food("almonds", 160), _food("yogurt", 120)]
    )

    assert [item.name for item in log.meals[MealType.SNACKS]] == [
        "apple",
        "almonds",
        "yogurt",
    ]
    assert log.meals[MealType.LUNCH] == ()


def test_net_remaining_can_go_negative() -> None:
    assert tracking.net_remaining(consumed=2200, burned=300, goal=2000) == 100
    assert tracking.net_remaining(consumed=2500, burned=0, goal=2000) == -500


def test_hydration_ratio_is_unbounded_above_one() -> None:
    assert tracking.hydration_ratio(4, 8) == 0.5
    assert tracking.hydration_ratio(12, 8) == 1.5
    assert tracking.hydration_ratio(3, 0) == 0.0


def test_adjust_water_clamps_at_zero() -> None:
    log = DailyLog(date="2024-01-05", water_intake=2)

    assert tracking.adjust_water(log, 1).water_intake == 3
    assert tracking.adjust_water(log, -1000).water_intake == 0


def test_upsert_weight_replaces_entry_for_same_date() -> None:
    history = [
        WeightEntry(date="2024-01-03", weight=81.0),
        WeightEntry(date="2024-01-05", weight=80.0),
    ]

    updated, goals = tracking.upsert_weight(
        history, WeightEntry(date="2024-01-05", weight=78.0), _goals()
    )

    assert updated == [
        WeightEntry(date="2024-01-03", weight=81.0),
        WeightEntry(date="2024-01-05", weight=78.0),
    ]
    assert goals is not None
    assert goals.current_weight == 78.0


def test_upsert_weight_keeps_history_sorted() -> None:
    history = [
        WeightEntry(date="2024-01-02", weight=82.0),
        WeightEntry(date="2024-01-06", weight=79.5),
    ]

    updated, goals = tracking.upsert_weight(
        history, WeightEntry(date="2024-01-04", weight=80.5), None
    )

    assert [entry.date for entry in updated] == [
        "2024-01-02",
        "2024-01-04",
        "2024-01-06",
    ]
    assert goals is None


def test_calorie_history_orders_by_date() -> None:
    later = tracking.add_foods_to_meal(
        DailyLog(date="2024-01-05"), MealType.LUNCH, [_food("soup", 400)]
    )
    earlier = tracking.add_foods_to_meal(
        DailyLog(date="2024-01-04"), MealType.LUNCH, [_food("salad", 250)]
    )

    points = tracking.calorie_history([later, earlier], goal=1800)

    assert [(point.date, point.consumed) for point in points] == [
        ("2024-01-04", 250),
        ("2024-01-05", 400),
    ]
    assert {point.goal for point in points} == {1800}
