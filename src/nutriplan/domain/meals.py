"""Domain models for meals and weekly meal plans."""

from dataclasses import dataclass, field

DAYS_OF_WEEK = (
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
)

MEAL_SLOT_NAMES = (
    "Breakfast",
    "Morning Snack",
    "Lunch",
    "Afternoon Snack",
    "Dinner",
    "Evening Snack",
)


@dataclass(frozen=True)
class Ingredient:
    """Ingredient with absolute macro values for the given quantity."""

    name: str
    quantity: float
    unit: str
    calories: float
    protein: float
    carbs: float
    fat: float


@dataclass(frozen=True)
class NutrientDensity:
    """Macro values per 100 g, as exchanged with optimization APIs."""

    calories: float
    protein: float
    carbs: float
    fat: float


@dataclass(frozen=True)
class MacroTotals:
    """Summed macros for a meal, day or week."""

    calories: float = 0.0
    protein: float = 0.0
    carbs: float = 0.0
    fat: float = 0.0

    def __add__(self, other: "MacroTotals") -> "MacroTotals":
        return MacroTotals(
            calories=self.calories + other.calories,
            protein=self.protein + other.protein,
            carbs=self.carbs + other.carbs,
            fat=self.fat + other.fat,
        )


@dataclass(frozen=True)
class Meal:
    """A meal in a slot of the daily schedule."""

    name: str
    custom_name: str = ""
    ingredients: list[Ingredient] = field(default_factory=list)
    total_calories: float = 0.0
    total_protein: float = 0.0
    total_carbs: float = 0.0
    total_fat: float = 0.0

    @property
    def totals(self) -> MacroTotals:
        return MacroTotals(
            calories=self.total_calories,
            protein=self.total_protein,
            carbs=self.total_carbs,
            fat=self.total_fat,
        )


@dataclass(frozen=True)
class DailyMealPlan:
    """Meals planned for one day of the week."""

    day_of_week: str
    meals: list[Meal] = field(default_factory=list)
    daily_totals: MacroTotals = field(default_factory=MacroTotals)


@dataclass(frozen=True)
class WeeklyMealPlan:
    """Seven daily plans with a week-level rollup."""

    days: list[DailyMealPlan] = field(default_factory=list)
    weekly_summary: MacroTotals = field(default_factory=MacroTotals)


@dataclass(frozen=True)
class MealAdjustmentResult:
    """Outcome of adjusting or suggesting a single meal."""

    meal: Meal
    explanation: str
    status: str
    provider: str | None = None
    is_fallback: bool = False
    fallback_reason: str | None = None


@dataclass(frozen=True)
class PlanGenerationResult:
    """Outcome of generating a weekly meal plan."""

    plan: WeeklyMealPlan
    provider: str | None = None
    is_fallback: bool = False
    fallback_reason: str | None = None
    fallback_meals: int = 0
