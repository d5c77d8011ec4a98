"""Key/value persistence for the session's state slices."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Protocol, TypeVar

from auranut.domain.models import (
    ActivityLevel,
    ChatMessage,
    ChatRole,
    DailyLog,
    DurationUnit,
    ExerciseItem,
    FoodItem,
    FoodSource,
    Gender,
    MealType,
    Theme,
    User,
    UserGoals,
    WeightEntry,
)

_logger = logging.getLogger(__name__)
_T = TypeVar("_T")

COACH_GREETING = (
    "Hello! I'm your Auranut AI Coach. "
    "How can I help you reach your health goals today?"
)


class KeyValueStore(Protocol):
    """Interface for a flat JSON key/value store."""

    def get(self, key: str) -> object | None:
        """Return the stored value for a key, if present."""

    def set(self, key: str, value: object) -> None:
        """Store a JSON-serializable value under a key."""

    def clear(self) -> None:
        """Remove every key owned by the application."""


class StateSlice(StrEnum):
    """Names of independently persisted slices."""

    THEME = "theme"
    USER = "user"
    USER_GOALS = "userGoals"
    DAILY_LOGS = "dailyLogs"
    WEIGHT_HISTORY = "weightHistory"
    CHAT_HISTORY = "chat_history"


@dataclass
class StateRepository:
    """Typed load/save per slice over a key/value store.

    Loads fall back to the slice default when the key is absent or the stored
    payload cannot be decoded. Saves are best-effort and never raise.
    """

    store: KeyValueStore
    prefix: str = "auranut_"

    def load_theme(self) -> Theme:
        raw = self._read(StateSlice.THEME)
        try:
            return Theme(raw) if raw is not None else Theme.LIGHT
        except ValueError:
            return Theme.LIGHT

    def save_theme(self, theme: Theme) -> None:
        self._write(StateSlice.THEME, theme.value)

    def load_user(self) -> User | None:
        return self._decode(StateSlice.USER, _user_from_dict, None)

    def save_user(self, user: User | None) -> None:
        self._write(StateSlice.USER, _user_to_dict(user) if user else None)

    def load_goals(self) -> UserGoals | None:
        return self._decode(StateSlice.USER_GOALS, _goals_from_dict, None)

    def save_goals(self, goals: UserGoals | None) -> None:
        self._write(StateSlice.USER_GOALS, goals_to_dict(goals) if goals else None)

    def load_daily_logs(self) -> list[DailyLog]:
        return self._decode(
            StateSlice.DAILY_LOGS,
            lambda raw: [_log_from_dict(row) for row in raw],
            [],
        )

    def save_daily_logs(self, logs: list[DailyLog]) -> None:
        self._write(StateSlice.DAILY_LOGS, [log_to_dict(log) for log in logs])

    def load_weight_history(self) -> list[WeightEntry]:
        return self._decode(
            StateSlice.WEIGHT_HISTORY,
            lambda raw: [
                WeightEntry(date=str(row["date"]), weight=float(row["weight"]))
                for row in raw
            ],
            [],
        )

    def save_weight_history(self, history: list[WeightEntry]) -> None:
        self._write(
            StateSlice.WEIGHT_HISTORY,
            [{"date": entry.date, "weight": entry.weight} for entry in history],
        )

    def load_chat_history(self) -> list[ChatMessage]:
        return self._decode(
            StateSlice.CHAT_HISTORY,
            lambda raw: [
                ChatMessage(
                    role=ChatRole(row["role"]),
                    text=str(row["text"]),
                    timestamp=int(row["timestamp"]),
                )
                for row in raw
            ],
            None,
        ) or [ChatMessage(role=ChatRole.MODEL, text=COACH_GREETING, timestamp=0)]

    def save_chat_history(self, messages: list[ChatMessage]) -> None:
        self._write(
            StateSlice.CHAT_HISTORY,
            [
                {"role": msg.role.value, "text": msg.text, "timestamp": msg.timestamp}
                for msg in messages
            ],
        )

    def clear(self) -> None:
        """Drop every persisted slice."""
        try:
            self.store.clear()
        except Exception:
            _logger.warning("Failed to clear persisted state", exc_info=True)

    def _key(self, state_slice: StateSlice) -> str:
        return f"{self.prefix}{state_slice.value}"

    def _read(self, state_slice: StateSlice) -> object | None:
        try:
            return self.store.get(self._key(state_slice))
        except Exception:
            _logger.warning("Failed to read %s", state_slice.value, exc_info=True)
            return None

    def _decode(
        self, state_slice: StateSlice, decoder: Callable[[Any], _T], default: _T
    ) -> _T:
        raw = self._read(state_slice)
        if raw is None:
            return default
        try:
            return decoder(raw)
        except (KeyError, TypeError, ValueError, AttributeError):
            _logger.warning("Discarding undecodable %s payload", state_slice.value)
            return default

    def _write(self, state_slice: StateSlice, value: object) -> None:
        try:
            self.store.set(self._key(state_slice), value)
        except Exception:
            _logger.warning("Failed to persist %s", state_slice.value, exc_info=True)


def _user_to_dict(user: User) -> dict[str, object]:
    payload: dict[str, object] = {"id": user.id, "name": user.name, "email": user.email}
    if user.photo is not None:
        payload["photo"] = user.photo
    return payload


def _user_from_dict(row: dict[str, object]) -> User:
    photo = row.get("photo")
    return User(
        id=str(row["id"]),
        name=str(row["name"]),
        email=str(row["email"]),
        photo=str(photo) if photo else None,
    )


def goals_to_dict(goals: UserGoals) -> dict[str, object]:
    """Serialize goals using the stored camelCase field names."""
    return {
        "currentWeight": goals.current_weight,
        "goalWeight": goals.goal_weight,
        "height": goals.height,
        "age": goals.age,
        "gender": goals.gender.value,
        "activityLevel": goals.activity_level.value,
        "dailyCalorieGoal": goals.daily_calorie_goal,
        "dailyProteinGoal": goals.daily_protein_goal,
        "dailyCarbsGoal": goals.daily_carbs_goal,
        "dailyFatGoal": goals.daily_fat_goal,
        "dailyWaterGoal": goals.daily_water_goal,
    }


def _goals_from_dict(row: dict[str, object]) -> UserGoals:
    return UserGoals(
        current_weight=float(row["currentWeight"]),
        goal_weight=float(row["goalWeight"]),
        height=float(row["height"]),
        age=int(row["age"]),
        gender=Gender(row["gender"]),
        activity_level=ActivityLevel(row["activityLevel"]),
        daily_calorie_goal=float(row["dailyCalorieGoal"]),
        daily_protein_goal=float(row["dailyProteinGoal"]),
        daily_carbs_goal=float(row["dailyCarbsGoal"]),
        daily_fat_goal=float(row["dailyFatGoal"]),
        daily_water_goal=int(row["dailyWaterGoal"]),
    )


def food_to_dict(item: FoodItem) -> dict[str, object]:
    """Serialize a food item using the stored camelCase field names."""
    payload: dict[str, object] = {
        "id": item.id,
        "name": item.name,
        "calories": item.calories,
        "protein": item.protein,
        "carbs": item.carbs,
        "fat": item.fat,
        "servingSize": item.serving_size,
        "servingUnit": item.serving_unit,
        "source": item.source.value,
    }
    if item.emoji is not None:
        payload["emoji"] = item.emoji
    if item.grounding_urls is not None:
        payload["groundingUrls"] = list(item.grounding_urls)
    return payload


def _food_from_dict(row: dict[str, object]) -> FoodItem:
    urls = row.get("groundingUrls")
    emoji = row.get("emoji")
    return FoodItem(
        id=str(row["id"]),
        name=str(row["name"]),
        calories=float(row["calories"]),
        protein=float(row["protein"]),
        carbs=float(row["carbs"]),
        fat=float(row["fat"]),
        serving_size=float(row["servingSize"]),
        serving_unit=str(row["servingUnit"]),
        emoji=str(emoji) if emoji is not None else None,
        source=FoodSource(row.get("source") or FoodSource.DATABASE),
        grounding_urls=tuple(str(url) for url in urls) if urls is not None else None,
    )


def exercise_to_dict(item: ExerciseItem) -> dict[str, object]:
    """Serialize an exercise using the stored camelCase field names."""
    return {
        "id": item.id,
        "name": item.name,
        "duration": item.duration,
        "durationUnit": item.duration_unit.value,
        "caloriesBurned": item.calories_burned,
    }


def log_to_dict(log: DailyLog) -> dict[str, object]:
    """Serialize a daily log using the stored camelCase field names."""
    return {
        "date": log.date,
        "meals": {
            meal_type.value: [
                food_to_dict(item) for item in log.meals.get(meal_type, ())
            ]
            for meal_type in MealType
        },
        "exercises": [exercise_to_dict(item) for item in log.exercises],
        "waterIntake": log.water_intake,
    }


def _log_from_dict(row: dict[str, object]) -> DailyLog:
    raw_meals = row.get("meals") or {}
    meals = {
        meal_type: tuple(
            _food_from_dict(item) for item in raw_meals.get(meal_type.value, [])
        )
        for meal_type in MealType
    }
    exercises = tuple(
        ExerciseItem(
            id=str(item["id"]),
            name=str(item["name"]),
            duration=float(item["duration"]),
            duration_unit=DurationUnit(item["durationUnit"]),
            calories_burned=float(item["caloriesBurned"]),
        )
        for item in row.get("exercises") or []
    )
    return DailyLog(
        date=str(row["date"]),
        meals=meals,
        exercises=exercises,
        water_intake=max(0, int(row.get("waterIntake") or 0)),
    )

