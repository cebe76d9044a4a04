"""Pydantic models for API request payloads."""

from pydantic import BaseModel, Field

from nutriplan.domain.meals import Ingredient, Meal
from nutriplan.domain.profile import UserProfile
from nutriplan.domain.targets import (
    CustomTargets,
    DailyTargets,
    MacroTargets,
    MealDistribution,
    MealTarget,
)


class ProfilePayload(BaseModel):
    """User profile payload."""

    age: float | None = None
    biological_sex: str | None = None
    height_cm: float | None = None
    current_weight_kg: float | None = None
    target_weight_kg: float | None = None
    activity_level: str | None = None
    primary_diet_goal: str | None = None
    secondary_diet_goal: str | None = None
    preferred_diet: str | None = None
    allergies: list[str] = Field(default_factory=list)
    disliked_ingredients: list[str] = Field(default_factory=list)
    preferred_ingredients: list[str] = Field(default_factory=list)
    preferred_cuisines: list[str] = Field(default_factory=list)
    disliked_cuisines: list[str] = Field(default_factory=list)
    medical_conditions: list[str] = Field(default_factory=list)
    medications: list[str] = Field(default_factory=list)

    def to_domain(self) -> UserProfile:
        return UserProfile(**self.model_dump())


class CustomTargetsPayload(BaseModel):
    """User-entered target overrides."""

    calories: float | None = None
    protein_g: float | None = None
    carbs_g: float | None = None
    fat_g: float | None = None

    def to_domain(self) -> CustomTargets:
        return CustomTargets(**self.model_dump())


class DailyTargetsPayload(BaseModel):
    """Daily calorie and macro targets."""

    calories: float
    protein_g: float
    carbs_g: float
    fat_g: float

    def to_domain(self) -> DailyTargets:
        return DailyTargets(**self.model_dump())


class MealDistributionPayload(BaseModel):
    """Share of daily targets for one meal slot."""

    meal_name: str
    calories_pct: float
    protein_pct: float | None = None
    carbs_pct: float | None = None
    fat_pct: float | None = None

    def to_domain(self) -> MealDistribution:
        return MealDistribution(**self.model_dump())


class MacroTargetsPayload(BaseModel):
    """Absolute macro targets for one meal."""

    calories: float
    protein: float
    carbs: float
    fat: float

    def to_domain(self) -> MacroTargets:
        return MacroTargets(**self.model_dump())


class MealTargetPayload(MacroTargetsPayload):
    """Macro targets for a named meal slot."""

    meal_name: str

    def to_meal_target(self) -> MealTarget:
        return MealTarget(**self.model_dump())


class IngredientPayload(BaseModel):
    """Ingredient with absolute macros for its quantity."""

    name: str
    quantity: float
    unit: str = "g"
    calories: float
    protein: float
    carbs: float
    fat: float

    def to_domain(self) -> Ingredient:
        return Ingredient(**self.model_dump())


class MealPayload(BaseModel):
    """Meal payload; totals sent by clients are ignored."""

    name: str
    custom_name: str = ""
    ingredients: list[IngredientPayload] = Field(default_factory=list)

    def to_domain(self) -> Meal:
        return Meal(
            name=self.name,
            custom_name=self.custom_name,
            ingredients=[item.to_domain() for item in self.ingredients],
        )


class TargetsRequest(BaseModel):
    profile: ProfilePayload
    custom_targets: CustomTargetsPayload | None = None


class MealTargetsRequest(BaseModel):
    daily_targets: DailyTargetsPayload
    distributions: list[MealDistributionPayload] | None = None


class GeneratePlanRequest(BaseModel):
    """Weekly plan request; meal targets are derived when not given."""

    profile: ProfilePayload
    custom_targets: CustomTargetsPayload | None = None
    distributions: list[MealDistributionPayload] | None = None
    meal_targets: list[MealTargetPayload] | None = None


class AdjustMealRequest(BaseModel):
    """Adjust one stored meal; the target is derived when not given."""

    day_index: int
    meal_index: int
    profile: ProfilePayload
    target: MacroTargetsPayload | None = None
    custom_targets: CustomTargetsPayload | None = None
    distributions: list[MealDistributionPayload] | None = None


class UpdateMealRequest(BaseModel):
    meal: MealPayload


class BatchMealItem(BaseModel):
    meal: MealPayload
    target: MacroTargetsPayload


class BatchOptimizationRequest(BaseModel):
    profile: ProfilePayload = Field(default_factory=ProfilePayload)
    meals: list[BatchMealItem]


class MealSuggestionRequest(BaseModel):
    meal_name: str
    target: MacroTargetsPayload
    profile: ProfilePayload = Field(default_factory=ProfilePayload)
