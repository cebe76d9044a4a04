"""User profile domain models."""

from dataclasses import dataclass, field
from enum import StrEnum


class ActivityLevel(StrEnum):
    """Physical activity levels understood by the target calculator."""

    SEDENTARY = "sedentary"
    LIGHT = "light"
    MODERATE = "moderate"
    ACTIVE = "active"
    EXTRA_ACTIVE = "extra_active"


class DietGoal(StrEnum):
    """Primary diet goals."""

    FAT_LOSS = "fat_loss"
    MUSCLE_GAIN = "muscle_gain"
    RECOMP = "recomp"
    MAINTENANCE = "maintenance"


@dataclass(frozen=True)
class UserProfile:
    """Biometric and preference data for a user.

    Enum-like fields hold plain strings so that unknown values coming from
    older profile forms degrade to defaults instead of failing.
    """

    age: float | None = None
    biological_sex: str | None = None
    height_cm: float | None = None
    current_weight_kg: float | None = None
    target_weight_kg: float | None = None
    activity_level: str | None = None
    primary_diet_goal: str | None = None
    secondary_diet_goal: str | None = None
    preferred_diet: str | None = None
    allergies: list[str] = field(default_factory=list)
    disliked_ingredients: list[str] = field(default_factory=list)
    preferred_ingredients: list[str] = field(default_factory=list)
    preferred_cuisines: list[str] = field(default_factory=list)
    disliked_cuisines: list[str] = field(default_factory=list)
    medical_conditions: list[str] = field(default_factory=list)
    medications: list[str] = field(default_factory=list)
