"""Pydantic models for API request bodies."""

from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from auranut.domain.models import (
    ActivityLevel,
    DurationUnit,
    FoodItem,
    FoodSource,
    MealType,
    Theme,
)


class FoodItemPayload(BaseModel):
    """Food item chosen by the user, usually from a search result."""

    model_config = ConfigDict(populate_by_name=True)

    id: str | None = None
    name: str = Field(min_length=1)
    calories: float = Field(ge=0.0)
    protein: float = Field(default=0.0, ge=0.0)
    carbs: float = Field(default=0.0, ge=0.0)
    fat: float = Field(default=0.0, ge=0.0)
    serving_size: float = Field(default=1.0, ge=0.0, alias="servingSize")
    serving_unit: str = Field(default="serving", alias="servingUnit")
    emoji: str | None = None
    source: FoodSource = FoodSource.DATABASE
    grounding_urls: list[str] | None = Field(default=None, alias="groundingUrls")

    def to_domain(self) -> FoodItem:
        return FoodItem(
            id=self.id or str(uuid4()),
            name=self.name,
            calories=self.calories,
            protein=self.protein,
            carbs=self.carbs,
            fat=self.fat,
            serving_size=self.serving_size,
            serving_unit=self.serving_unit,
            emoji=self.emoji,
            source=self.source,
            grounding_urls=(
                tuple(self.grounding_urls) if self.grounding_urls is not None else None
            ),
        )


class LogFoodRequest(BaseModel):
    """Foods to append to a meal slot."""

    items: list[FoodItemPayload] = Field(min_length=1)


class FoodSearchRequest(BaseModel):
    """Free-text food lookup."""

    query: str = Field(min_length=1)


class ScanMealRequest(BaseModel):
    """Captured meal photo, base64-encoded."""

    model_config = ConfigDict(populate_by_name=True)

    image_base64: str = Field(min_length=1, alias="imageBase64")
    mime_type: str | None = Field(default=None, alias="mimeType")
    meal_type: MealType = Field(default=MealType.LUNCH, alias="mealType")


class ExerciseRequest(BaseModel):
    """Activity to estimate and log."""

    name: str = Field(min_length=1)
    duration: float = Field(gt=0.0)
    unit: DurationUnit = DurationUnit.MINUTES


class WeightRequest(BaseModel):
    """Body weight measured today, in kilograms."""

    weight: float = Field(gt=0.0)


class WaterRequest(BaseModel):
    """Change in glasses of water."""

    delta: int


class ChatRequest(BaseModel):
    """Message to the coach."""

    text: str = Field(min_length=1)


class LogoutRequest(BaseModel):
    """Logout wipes all local data, so it must be confirmed."""

    confirm: bool = False


class ThemeRequest(BaseModel):
    """UI theme selection."""

    theme: Theme


class GoalsUpdateRequest(BaseModel):
    """Profile edits from the settings screen; omitted fields are unchanged."""

    model_config = ConfigDict(populate_by_name=True)

    current_weight: float | None = Field(default=None, gt=0.0, alias="currentWeight")
    goal_weight: float | None = Field(default=None, gt=0.0, alias="goalWeight")
    height: float | None = Field(default=None, gt=0.0)
    age: int | None = Field(default=None, ge=13)
    activity_level: ActivityLevel | None = Field(default=None, alias="activityLevel")
    daily_calorie_goal: float | None = Field(
        default=None, gt=0.0, alias="dailyCalorieGoal"
    )
    daily_protein_goal: float | None = Field(
        default=None, gt=0.0, alias="dailyProteinGoal"
    )
    daily_carbs_goal: float | None = Field(default=None, gt=0.0, alias="dailyCarbsGoal")
    daily_fat_goal: float | None = Field(default=None, gt=0.0, alias="dailyFatGoal")
    daily_water_goal: int | None = Field(default=None, gt=0, alias="dailyWaterGoal")

    def changes(self) -> dict[str, object]:
        return self.model_dump(exclude_none=True)
