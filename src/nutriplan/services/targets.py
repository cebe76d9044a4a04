"""Daily calorie and macro target calculation."""

import math

from nutriplan.domain.profile import ActivityLevel, DietGoal, UserProfile
from nutriplan.domain.targets import CustomTargets, DailyTargets

ACTIVITY_FACTORS: dict[str, float] = {
    ActivityLevel.SEDENTARY: 1.2,
    ActivityLevel.LIGHT: 1.375,
    ActivityLevel.MODERATE: 1.55,
    ActivityLevel.ACTIVE: 1.725,
    ActivityLevel.EXTRA_ACTIVE: 1.9,
}
DEFAULT_ACTIVITY_FACTOR = 1.2

GOAL_CALORIE_ADJUSTMENTS: dict[str, float] = {
    DietGoal.FAT_LOSS: -500,
    DietGoal.MUSCLE_GAIN: 300,
    DietGoal.RECOMP: -200,
}

# (protein, carbs, fat) share of calories, in percent
GOAL_MACRO_SPLITS: dict[str, tuple[float, float, float]] = {
    DietGoal.MUSCLE_GAIN: (30, 50, 20),
    DietGoal.RECOMP: (40, 35, 25),
}
DEFAULT_MACRO_SPLIT = (30.0, 40.0, 30.0)

KCAL_PER_GRAM_PROTEIN = 4
KCAL_PER_GRAM_CARBS = 4
KCAL_PER_GRAM_FAT = 9

_BOUNDS: dict[str, tuple[float, float]] = {
    "age": (1, 120),
    "height_cm": (50, 272),
    "current_weight_kg": (20, 400),
}


def calculate_bmr(sex: str, weight_kg: float, height_cm: float, age: float) -> float:
    """Return the Mifflin-St Jeor basal metabolic rate in kcal/day.

    Sexes other than male and female get the mean of both formulas.
    """
    base = 10 * weight_kg + 6.25 * height_cm - 5 * age
    normalized = sex.strip().lower()
    if normalized == "male":
        return base + 5
    if normalized == "female":
        return base - 161
    return ((base + 5) + (base - 161)) / 2


def calculate_tdee(bmr: float, activity_level: str | None) -> float:
    """Return total daily energy expenditure, rounded to whole kcal."""
    key = (activity_level or "").strip().lower()
    factor = ACTIVITY_FACTORS.get(key, DEFAULT_ACTIVITY_FACTOR)
    return round(bmr * factor)


def adjust_for_goal(tdee: float, goal: str | None) -> float:
    """Apply the calorie surplus or deficit for a diet goal."""
    key = (goal or "").strip().lower()
    return tdee + GOAL_CALORIE_ADJUSTMENTS.get(key, 0)


def macro_split_for_goal(goal: str | None) -> tuple[float, float, float]:
    """Return (protein, carbs, fat) percentages of calories for a goal."""
    key = (goal or "").strip().lower()
    return GOAL_MACRO_SPLITS.get(key, DEFAULT_MACRO_SPLIT)


def missing_profile_fields(profile: UserProfile) -> list[str]:
    """Return profile fields that prevent computing targets.

    Out-of-range numbers count as missing so implausible input degrades to
    an unavailable result instead of a nonsensical one.
    """
    missing: list[str] = []
    if not (profile.biological_sex or "").strip():
        missing.append("biological_sex")
    for name, (low, high) in _BOUNDS.items():
        value = getattr(profile, name)
        if not _is_number(value) or not low <= float(value) <= high:
            missing.append(name)
    if not (profile.activity_level or "").strip():
        missing.append("activity_level")
    if not (profile.primary_diet_goal or "").strip():
        missing.append("primary_diet_goal")
    return missing


def calculate_daily_targets(profile: UserProfile) -> DailyTargets | None:
    """Compute daily targets from a profile, or None if inputs are incomplete."""
    if missing_profile_fields(profile):
        return None

    bmr = calculate_bmr(
        str(profile.biological_sex),
        float(profile.current_weight_kg),  # type: ignore[arg-type]
        float(profile.height_cm),  # type: ignore[arg-type]
        float(profile.age),  # type: ignore[arg-type]
    )
    tdee = calculate_tdee(bmr, profile.activity_level)
    calories = max(0.0, adjust_for_goal(tdee, profile.primary_diet_goal))
    protein_pct, carbs_pct, fat_pct = macro_split_for_goal(profile.primary_diet_goal)
    return DailyTargets(
        calories=round(calories),
        protein_g=round(calories * protein_pct / 100 / KCAL_PER_GRAM_PROTEIN),
        carbs_g=round(calories * carbs_pct / 100 / KCAL_PER_GRAM_CARBS),
        fat_g=round(calories * fat_pct / 100 / KCAL_PER_GRAM_FAT),
        bmr=round(bmr),
        tdee=tdee,
    )


def apply_custom_targets(
    base: DailyTargets | None, custom: CustomTargets | None
) -> DailyTargets | None:
    """Overlay user-entered targets on computed ones, field by field.

    Overrides are accepted even when they break the 4/4/9 kcal identity.
    Negative or non-finite overrides keep the computed value.
    """
    if custom is None:
        return base
    overrides = {
        "calories": custom.calories,
        "protein_g": custom.protein_g,
        "carbs_g": custom.carbs_g,
        "fat_g": custom.fat_g,
    }
    resolved: dict[str, float] = {}
    for name, value in overrides.items():
        if _is_number(value) and math.isfinite(value) and value >= 0:
            resolved[name] = float(value)
        elif base is not None:
            resolved[name] = getattr(base, name)
        else:
            return None
    return DailyTargets(
        calories=resolved["calories"],
        protein_g=resolved["protein_g"],
        carbs_g=resolved["carbs_g"],
        fat_g=resolved["fat_g"],
        bmr=base.bmr if base else None,
        tdee=base.tdee if base else None,
    )


def macro_calories(protein_g: float, carbs_g: float, fat_g: float) -> float:
    """Return the calories implied by macro grams."""
    return (
        protein_g * KCAL_PER_GRAM_PROTEIN
        + carbs_g * KCAL_PER_GRAM_CARBS
        + fat_g * KCAL_PER_GRAM_FAT
    )


def _is_number(value: object) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)
