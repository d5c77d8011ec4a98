"""Pure derivations over daily logs and weight history."""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace
from datetime import date

from auranut.domain.models import (
    DailyLog,
    ExerciseItem,
    FoodItem,
    MealType,
    UserGoals,
    WeightEntry,
)


@dataclass(frozen=True)
class DailyStats:
    """Calories and macros accumulated in one daily log."""

    consumed_calories: float
    burned_calories: float
    protein: float = 0.0
    carbs: float = 0.0
    fat: float = 0.0

    @property
    def net_calories(self) -> float:
        return self.consumed_calories - self.burned_calories


@dataclass(frozen=True)
class CaloriePoint:
    """One bar of the calorie history chart."""

    date: str
    consumed: float
    goal: float


def today_key(today: date | None = None) -> str:
    """Return the ISO date key for today (local wall clock)."""
    return (today or date.today()).isoformat()


def ensure_today_log(
    logs: Sequence[DailyLog], day: str
) -> tuple[list[DailyLog], DailyLog]:
    """Return logs containing an entry for ``day`` and that entry."""
    existing = find_log(logs, day)
    if existing is not None:
        return list(logs), existing
    created = DailyLog(date=day)
    return [*logs, created], created


def find_log(logs: Iterable[DailyLog], day: str) -> DailyLog | None:
    """Return the log for ``day`` if one exists."""
    for log in logs:
        if log.date == day:
            return log
    return None


def replace_log(logs: Sequence[DailyLog], updated: DailyLog) -> list[DailyLog]:
    """Swap the log with the same date for ``updated``."""
    return [updated if log.date == updated.date else log for log in logs]


def all_foods(log: DailyLog) -> list[FoodItem]:
    """Return every food in the log across meal slots, in slot order."""
    foods: list[FoodItem] = []
    for meal_type in MealType:
        foods.extend(log.meals.get(meal_type, ()))
    return foods


def daily_stats(log: DailyLog) -> DailyStats:
    """Sum consumed and burned calories plus macros for a log."""
    consumed = protein = carbs = fat = 0.0
    for item in all_foods(log):
        consumed += item.calories
        protein += item.protein
        carbs += item.carbs
        fat += item.fat
    burned = sum((item.calories_burned for item in log.exercises), 0.0)
    return DailyStats(
        consumed_calories=consumed,
        burned_calories=burned,
        protein=protein,
        carbs=carbs,
        fat=fat,
    )


def net_remaining(consumed: float, burned: float, goal: float) -> float:
    """Return the calorie budget left; negative means the goal is exceeded."""
    return goal - (consumed - burned)


def hydration_ratio(water_intake: int, water_goal: int) -> float:
    """Return glasses drunk over the goal; unbounded above 1.0."""
    if water_goal <= 0:
        return 0.0
    return water_intake / water_goal


def adjust_water(log: DailyLog, delta: int) -> DailyLog:
    """Change water intake by ``delta`` glasses, never dropping below zero."""
    return replace(log, water_intake=max(0, log.water_intake + delta))


def add_foods_to_meal(
    log: DailyLog, meal_type: MealType, items: Sequence[FoodItem]
) -> DailyLog:
    """Append foods to the end of a meal slot."""
    meals = dict(log.meals)
    meals[meal_type] = (*meals.get(meal_type, ()), *items)
    return replace(log, meals=meals)


def add_exercise(log: DailyLog, item: ExerciseItem) -> DailyLog:
    """Append an exercise to the log."""
    return replace(log, exercises=(*log.exercises, item))


def upsert_weight(
    history: Sequence[WeightEntry], entry: WeightEntry, goals: UserGoals | None
) -> tuple[list[WeightEntry], UserGoals | None]:
    """Insert or replace the entry for its date and update current weight.

    The returned history is sorted by date ascending. ISO dates compare
    correctly as strings.
    """
    updated: list[WeightEntry] = []
    replaced = False
    for existing in history:
        if existing.date == entry.date:
            updated.append(entry)
            replaced = True
        else:
            updated.append(existing)
    if not replaced:
        updated.append(entry)
    updated.sort(key=lambda item: item.date)
    if goals is not None:
        goals = replace(goals, current_weight=entry.weight)
    return updated, goals


def calorie_history(logs: Iterable[DailyLog], goal: float) -> list[CaloriePoint]:
    """Return consumed calories per day against the goal, oldest first."""
    points = [
        CaloriePoint(
            date=log.date,
            consumed=daily_stats(log).consumed_calories,
            goal=goal,
        )
        for log in logs
    ]
    return sorted(points, key=lambda point: point.date)
