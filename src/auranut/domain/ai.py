"""Validated shapes exchanged with the generative model."""

from pydantic import BaseModel, Field

from auranut.domain.models import ActivityLevel, Gender

MAX_FOOD_CANDIDATES = 3


class NutritionFacts(BaseModel):
    """Per-serving nutrition for one identified food."""

    name: str = Field(min_length=1)
    calories: float = Field(ge=0.0)
    protein: float = Field(ge=0.0)
    carbs: float = Field(ge=0.0)
    fat: float = Field(ge=0.0)
    serving_size: float = Field(ge=0.0, alias="servingSize")
    serving_unit: str = Field(alias="servingUnit")
    emoji: str


class NutritionSearchResult(BaseModel):
    """Up to three candidate foods for a free-text query."""

    items: list[NutritionFacts] = Field(max_length=MAX_FOOD_CANDIDATES)


class CaloriesBurnedEstimate(BaseModel):
    """Energy cost of an activity."""

    calories: float = Field(ge=0.0)


class GoalTargets(BaseModel):
    """Daily nutrition targets computed from a profile."""

    daily_calorie_goal: float = Field(gt=0.0, alias="dailyCalorieGoal")
    daily_protein_goal: float = Field(gt=0.0, alias="dailyProteinGoal")
    daily_carbs_goal: float = Field(gt=0.0, alias="dailyCarbsGoal")
    daily_fat_goal: float = Field(gt=0.0, alias="dailyFatGoal")
    daily_water_goal: float = Field(gt=0.0, alias="dailyWaterGoal")


class OnboardingProfile(BaseModel):
    """Answers collected by the onboarding wizard."""

    gender: Gender = Gender.MALE
    age: int = Field(default=30, ge=13)
    height: float = Field(default=175.0, gt=0.0)
    current_weight: float = Field(default=70.0, gt=0.0)
    goal_weight: float = Field(default=65.0, gt=0.0)
    activity_level: ActivityLevel = ActivityLevel.MODERATE


DEFAULT_TARGETS = GoalTargets(
    dailyCalorieGoal=2000,
    dailyProteinGoal=150,
    dailyCarbsGoal=200,
    dailyFatGoal=60,
    dailyWaterGoal=8,
)
