"""Domain models for the nutrition tracker."""

from dataclasses import dataclass, field
from enum import StrEnum


class Gender(StrEnum):
    """Biological sex used for goal estimation."""

    MALE = "male"
    FEMALE = "female"


class ActivityLevel(StrEnum):
    """Self-reported activity level."""

    SEDENTARY = "sedentary"
    LIGHT = "light"
    MODERATE = "moderate"
    ACTIVE = "active"
    VERY_ACTIVE = "very_active"


class MealType(StrEnum):
    """Meal slots of a daily log, in display order."""

    BREAKFAST = "Breakfast"
    LUNCH = "Lunch"
    DINNER = "Dinner"
    SNACKS = "Snacks"


class FoodSource(StrEnum):
    """Where a food item's nutrition data came from."""

    DATABASE = "database"
    SEARCH = "search"


class DurationUnit(StrEnum):
    """Units for exercise duration."""

    MINUTES = "minutes"
    HOURS = "hours"


class ChatRole(StrEnum):
    """Author of a chat message."""

    USER = "user"
    MODEL = "model"


class Theme(StrEnum):
    """UI color theme."""

    LIGHT = "light"
    DARK = "dark"


@dataclass(frozen=True)
class User:
    """Signed-in identity."""

    id: str
    name: str
    email: str
    photo: str | None = None


@dataclass(frozen=True)
class UserGoals:
    """Body profile and daily nutrition targets."""

    current_weight: float
    goal_weight: float
    height: float
    age: int
    gender: Gender
    activity_level: ActivityLevel
    daily_calorie_goal: float
    daily_protein_goal: float
    daily_carbs_goal: float
    daily_fat_goal: float
    daily_water_goal: int


@dataclass(frozen=True)
class FoodItem:
    """A single logged food with per-serving macros."""

    id: str
    name: str
    calories: float
    protein: float
    carbs: float
    fat: float
    serving_size: float
    serving_unit: str
    emoji: str | None = None
    source: FoodSource = FoodSource.DATABASE
    grounding_urls: tuple[str, ...] | None = None


@dataclass(frozen=True)
class ExerciseItem:
    """A logged exercise with its estimated energy cost."""

    id: str
    name: str
    duration: float
    duration_unit: DurationUnit
    calories_burned: float


def empty_meals() -> dict[MealType, tuple[FoodItem, ...]]:
    """Return a meal mapping with every slot present and empty."""
    return {meal_type: () for meal_type in MealType}


@dataclass(frozen=True)
class DailyLog:
    """All food, exercise and water entries for one calendar date."""

    date: str
    meals: dict[MealType, tuple[FoodItem, ...]] = field(default_factory=empty_meals)
    exercises: tuple[ExerciseItem, ...] = ()
    water_intake: int = 0


@dataclass(frozen=True)
class WeightEntry:
    """Body weight measured on a date."""

    date: str
    weight: float


@dataclass(frozen=True)
class ChatMessage:
    """One turn of the coach conversation."""

    role: ChatRole
    text: str
    timestamp: int
