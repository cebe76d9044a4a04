"""Calorie and macro target models."""

from dataclasses import dataclass


@dataclass(frozen=True)
class DailyTargets:
    """Daily calorie and macro targets."""

    calories: float
    protein_g: float
    carbs_g: float
    fat_g: float
    bmr: float | None = None
    tdee: float | None = None


@dataclass(frozen=True)
class CustomTargets:
    """User-entered overrides for daily targets."""

    calories: float | None = None
    protein_g: float | None = None
    carbs_g: float | None = None
    fat_g: float | None = None


@dataclass(frozen=True)
class MealDistribution:
    """Share of the daily targets assigned to one meal slot, in percent."""

    meal_name: str
    calories_pct: float
    protein_pct: float | None = None
    carbs_pct: float | None = None
    fat_pct: float | None = None


@dataclass(frozen=True)
class MacroTargets:
    """Absolute macro targets for a single meal."""

    calories: float
    protein: float
    carbs: float
    fat: float


@dataclass(frozen=True)
class MealTarget:
    """Macro targets for a named meal slot."""

    meal_name: str
    calories: float
    protein: float
    carbs: float
    fat: float

    @property
    def macros(self) -> MacroTargets:
        return MacroTargets(
            calories=self.calories,
            protein=self.protein,
            carbs=self.carbs,
            fat=self.fat,
        )
