"""Wire models for generative provider responses and stored plan documents."""

from pydantic import BaseModel, ConfigDict, Field


class _StrictModel(BaseModel):
    model_config = ConfigDict(strict=True, extra="forbid", allow_inf_nan=False)


class AdjustedIngredient(_StrictModel):
    """Ingredient of an adjusted meal, absolute values for the quantity."""

    name: str
    quantity: float = Field(ge=0)
    unit: str
    calories: float = Field(ge=0)
    protein: float = Field(ge=0)
    carbs: float = Field(ge=0)
    fat: float = Field(ge=0)


class AdjustedMeal(_StrictModel):
    """Meal returned by a single-meal adjustment."""

    name: str
    custom_name: str
    ingredients: list[AdjustedIngredient] = Field(min_length=1)
    total_calories: float
    total_protein: float
    total_carbs: float
    total_fat: float


class AdjustedMealResponse(_StrictModel):
    """Response to a single-meal adjustment prompt."""

    adjusted_meal: AdjustedMeal = Field(alias="adjustedMeal")
    explanation: str


class GeneratedIngredient(_StrictModel):
    """Ingredient of a generated meal."""

    name: str
    calories: float = Field(ge=0)
    protein: float = Field(ge=0)
    carbs: float = Field(ge=0)
    fat: float = Field(ge=0)
    quantity: float | None = Field(default=None, ge=0)
    unit: str | None = None


class GeneratedMeal(_StrictModel):
    """Meal of a generated day; the slot is implied by position."""

    meal_title: str
    ingredients: list[GeneratedIngredient] = Field(min_length=1)


class GeneratedDay(_StrictModel):
    """One generated day."""

    day: str
    meals: list[GeneratedMeal] = Field(min_length=1)


class WeeklyPlanResponse(_StrictModel):
    """Response to a full-week generation prompt."""

    weekly_meal_plan: list[GeneratedDay] = Field(alias="weeklyMealPlan")


class CandidateIngredient(_StrictModel):
    """Candidate ingredient with per-100g nutrient densities."""

    name: str
    calories_per_100g: float = Field(ge=0)
    protein_per_100g: float = Field(ge=0)
    carbs_per_100g: float = Field(ge=0)
    fat_per_100g: float = Field(ge=0)


class MealSuggestionResponse(_StrictModel):
    """Response to a single-dish suggestion prompt."""

    meal_title: str
    description: str
    ingredients: list[CandidateIngredient] = Field(min_length=1)


class DocumentIngredient(_StrictModel):
    name: str
    quantity: float
    unit: str
    calories: float
    protein: float
    carbs: float
    fat: float


class DocumentMeal(_StrictModel):
    meal_name: str
    custom_name: str
    ingredients: list[DocumentIngredient]
    total_calories: float
    total_protein: float
    total_carbs: float
    total_fat: float


class DocumentTotals(_StrictModel):
    calories: float
    protein: float
    carbs: float
    fat: float


class DocumentDay(_StrictModel):
    day_of_week: str
    meals: list[DocumentMeal]
    daily_totals: DocumentTotals


class DocumentSummary(_StrictModel):
    total_calories: float
    total_protein: float
    total_carbs: float
    total_fat: float


class PlanDocument(_StrictModel):
    """Stored JSON shape of a weekly meal plan."""

    days: list[DocumentDay]
    weekly_summary: DocumentSummary
