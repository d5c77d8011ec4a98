"""Generative-model gateway for nutrition lookups and coaching."""

import asyncio
import base64
import json
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Protocol, TypeVar
from uuid import uuid4

from pydantic import ValidationError

from auranut.domain.ai import (
    MAX_FOOD_CANDIDATES,
    CaloriesBurnedEstimate,
    GoalTargets,
    NutritionFacts,
    NutritionSearchResult,
    OnboardingProfile,
)
from auranut.domain.models import (
    ChatMessage,
    ChatRole,
    DailyLog,
    DurationUnit,
    FoodItem,
    FoodSource,
    UserGoals,
)
from auranut.services.state_store import goals_to_dict, log_to_dict

_logger = logging.getLogger(__name__)
_T = TypeVar("_T")

CHAT_FALLBACK = "I'm sorry, I'm offline at the moment. Please try again soon!"
ANALYSIS_FALLBACK = (
    "I'm having trouble thinking deeply right now. Let's try again in a moment."
)
ANALYSIS_WINDOW_DAYS = 7

_FOOD_PROPERTIES: dict[str, object] = {
    "name": {"type": "string", "description": "Name of the food item"},
    "calories": {"type": "number", "description": "Calories per serving"},
    "protein": {"type": "number", "description": "Grams of protein per serving"},
    "carbs": {"type": "number", "description": "Grams of carbohydrates per serving"},
    "fat": {"type": "number", "description": "Grams of fat per serving"},
    "servingSize": {"type": "number", "description": "Size of a single serving"},
    "servingUnit": {"type": "string", "description": "Unit of the serving size"},
    "emoji": {"type": "string", "description": "A single emoji for the food"},
}

FOOD_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": _FOOD_PROPERTIES,
    "required": list(_FOOD_PROPERTIES),
    "additionalProperties": False,
}

FOOD_SEARCH_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {"items": {"type": "array", "items": FOOD_SCHEMA}},
    "required": ["items"],
    "additionalProperties": False,
}

CALORIES_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {"calories": {"type": "number"}},
    "required": ["calories"],
    "additionalProperties": False,
}

_GOAL_FIELDS = (
    "dailyCalorieGoal",
    "dailyProteinGoal",
    "dailyCarbsGoal",
    "dailyFatGoal",
    "dailyWaterGoal",
)

GOALS_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {name: {"type": "number"} for name in _GOAL_FIELDS},
    "required": list(_GOAL_FIELDS),
    "additionalProperties": False,
}


@dataclass(frozen=True)
class GenerationResult:
    """Structured model output plus any cited source URLs."""

    payload: dict[str, object]
    citations: list[str] = field(default_factory=list)


class GenerativeClient(Protocol):
    """Interface for the hosted generative model."""

    async def generate_json(  # noqa: PLR0913
        self,
        *,
        model: str,
        reasoning_effort: str | None,
        store: bool,
        prompt: str,
        schema: dict[str, object],
        schema_name: str,
        image_data_url: str | None = None,
        web_search: bool = False,
    ) -> GenerationResult:
        """Return output conforming to ``schema``."""

    async def generate_text(  # noqa: PLR0913
        self,
        *,
        model: str,
        reasoning_effort: str | None,
        store: bool,
        instructions: str,
        messages: list[dict[str, str]],
    ) -> str:
        """Return free-text output for a conversation."""


@dataclass
class AIGateway:
    """Prompts the model and validates its answers.

    Every capability returns a sentinel instead of raising: ``None`` for
    lookups and estimates, a fixed apology for free-text answers.
    """

    client: GenerativeClient
    model: str
    analysis_model: str
    reasoning_effort: str | None
    analysis_reasoning_effort: str | None
    store: bool
    timeout_seconds: float = 45.0

    async def lookup_food_by_name(self, query: str) -> list[FoodItem] | None:
        """Return up to three candidate foods, web-grounded when possible."""
        grounded = await self._attempt(
            lambda: self._search_food(query, web_search=True),
            action="food_search_grounded",
        )
        if grounded is not None:
            return grounded
        return await self._attempt(
            lambda: self._search_food(query, web_search=False),
            action="food_search",
        )

    async def lookup_food_by_image(
        self, image_bytes: bytes, mime_type: str | None = None
    ) -> FoodItem | None:
        """Identify a food in a photo and estimate its nutrition."""

        async def call() -> FoodItem:
            result = await self.client.generate_json(
                model=self.model,
                reasoning_effort=self.reasoning_effort,
                store=self.store,
                prompt=(
                    "Identify the food in the image and return its nutritional "
                    "info per serving: name, calories, protein, carbs, fat, "
                    "servingSize, servingUnit and a single emoji."
                ),
                schema=FOOD_SCHEMA,
                schema_name="food_item",
                image_data_url=_to_data_url(image_bytes, mime_type),
            )
            facts = NutritionFacts.model_validate(result.payload)
            return _food_from_facts(facts, FoodSource.DATABASE, None)

        return await self._attempt(call, action="food_image")

    async def estimate_calories_burned(
        self,
        activity: str,
        duration: float,
        unit: DurationUnit,
        body_weight: float,
    ) -> float | None:
        """Estimate calories burned by a person doing an activity."""

        async def call() -> float:
            result = await self.client.generate_json(
                model=self.model,
                reasoning_effort=self.reasoning_effort,
                store=self.store,
                prompt=(
                    f"Estimate calories burned for a {body_weight}kg person doing "
                    f'"{activity}" for {duration} {unit.value}. '
                    'Return JSON: { "calories": number }'
                ),
                schema=CALORIES_SCHEMA,
                schema_name="calories_burned",
            )
            return CaloriesBurnedEstimate.model_validate(result.payload).calories

        return await self._attempt(call, action="calories_burned")

    async def compute_initial_goals(
        self, profile: OnboardingProfile
    ) -> GoalTargets | None:
        """Compute daily targets for an onboarding profile."""

        async def call() -> GoalTargets:
            result = await self.client.generate_json(
                model=self.model,
                reasoning_effort=self.reasoning_effort,
                store=self.store,
                prompt=(
                    "Calculate daily health goals for this profile: "
                    f"{profile.model_dump_json()}. Return dailyCalorieGoal (kcal), "
                    "dailyProteinGoal, dailyCarbsGoal, dailyFatGoal (grams) and "
                    "dailyWaterGoal (glasses of water)."
                ),
                schema=GOALS_SCHEMA,
                schema_name="daily_goals",
            )
            return GoalTargets.model_validate(result.payload)

        return await self._attempt(call, action="initial_goals")

    async def chat_reply(
        self,
        history: Sequence[ChatMessage],
        message: str,
        goals: UserGoals | None,
        today_log: DailyLog | None,
    ) -> str:
        """Answer a coaching message given the conversation so far."""
        instructions = (
            "You are Auranut AI Coach. You have access to the user's goals: "
            f"{json.dumps(goals_to_dict(goals) if goals else None)} and today's "
            f"activity: {json.dumps(log_to_dict(today_log) if today_log else None)}. "
            "Be helpful, encouraging, and accurate."
        )
        messages = [
            {"role": _openai_role(msg.role), "content": msg.text} for msg in history
        ]
        messages.append({"role": "user", "content": message})
        reply = await self._attempt(
            lambda: self.client.generate_text(
                model=self.model,
                reasoning_effort=self.reasoning_effort,
                store=self.store,
                instructions=instructions,
                messages=messages,
            ),
            action="chat",
        )
        return reply or CHAT_FALLBACK

    async def deep_analysis(self, logs: Sequence[DailyLog], goals: UserGoals) -> str:
        """Produce a long-form trend analysis of the most recent week of logs."""
        recent = [log_to_dict(log) for log in list(logs)[-ANALYSIS_WINDOW_DAYS:]]
        prompt = (
            "Analyze the user's health trends based on their profile and logs.\n"
            f"Profile: {json.dumps(goals_to_dict(goals))}\n"
            f"History: {json.dumps(recent)}"
        )
        report = await self._attempt(
            lambda: self.client.generate_text(
                model=self.analysis_model,
                reasoning_effort=self.analysis_reasoning_effort,
                store=self.store,
                instructions=(
                    "You are a health data scientist. Identify patterns in calorie "
                    "intake vs. goals, analyze macronutrient balance, and provide a "
                    "detailed, science-based recommendation for the next week. "
                    "Highlight potential deficiencies. Be thorough and analytical."
                ),
                messages=[{"role": "user", "content": prompt}],
            ),
            action="deep_analysis",
        )
        return report or ANALYSIS_FALLBACK

    async def _search_food(self, query: str, *, web_search: bool) -> list[FoodItem]:
        if web_search:
            prompt = (
                f'Search for the nutritional information of "{query}". Use '
                "real-world data from official brand websites or verified "
                "nutrition databases. Return up to 3 possible matches. If the "
                "query is generic, provide standard entries."
            )
        else:
            prompt = (
                f'Provide nutritional info for "{query}". Return up to 3 '
                "possible matches."
            )
        result = await self.client.generate_json(
            model=self.model,
            reasoning_effort=self.reasoning_effort,
            store=self.store,
            prompt=prompt,
            schema=FOOD_SEARCH_SCHEMA,
            schema_name="food_search",
            web_search=web_search,
        )
        payload = dict(result.payload)
        items = payload.get("items")
        if isinstance(items, list):
            payload["items"] = items[:MAX_FOOD_CANDIDATES]
        parsed = NutritionSearchResult.model_validate(payload)
        if web_search:
            source = FoodSource.SEARCH
            urls: tuple[str, ...] | None = (
                tuple(dict.fromkeys(result.citations)) or None
            )
        else:
            source = FoodSource.DATABASE
            urls = None
        return [_food_from_facts(facts, source, urls) for facts in parsed.items]

    async def _attempt(
        self, func: Callable[[], Awaitable[_T]], *, action: str
    ) -> _T | None:
        """Run one model call, mapping any failure to None."""
        try:
            return await asyncio.wait_for(func(), timeout=self.timeout_seconds)
        except TimeoutError:
            _logger.warning(
                "AI %s timed out after %ss", action, self.timeout_seconds
            )
        except ValidationError as exc:
            _logger.warning(
                "AI %s returned data outside the schema: %s",
                action,
                exc.error_count(),
            )
        except Exception:
            _logger.exception("AI %s failed", action)
        return None


def _food_from_facts(
    facts: NutritionFacts, source: FoodSource, urls: tuple[str, ...] | None
) -> FoodItem:
    return FoodItem(
        id=str(uuid4()),
        name=facts.name,
        calories=facts.calories,
        protein=facts.protein,
        carbs=facts.carbs,
        fat=facts.fat,
        serving_size=facts.serving_size,
        serving_unit=facts.serving_unit,
        emoji=facts.emoji or None,
        source=source,
        grounding_urls=urls,
    )


def _openai_role(role: ChatRole) -> str:
    return "assistant" if role is ChatRole.MODEL else "user"


def _to_data_url(image_bytes: bytes, mime_type: str | None = None) -> str:
    """Convert bytes to a base64 data URL for image input."""
    resolved = mime_type or _detect_mime_type(image_bytes)
    encoded = base64.b64encode(image_bytes).decode("utf-8")
    return f"data:{resolved};base64,{encoded}"


def _detect_mime_type(image_bytes: bytes) -> str:
    """Infer a basic image MIME type from file signatures."""
    if image_bytes.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if image_bytes.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    return "image/jpeg"
