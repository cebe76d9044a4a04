"""Validation of caller-supplied optimization input."""

import math

from nutriplan.domain.meals import Meal
from nutriplan.domain.targets import MacroTargets, MealTarget
from nutriplan.errors import InvalidRequestError

_MACRO_FIELDS = ("calories", "protein", "carbs", "fat")


def validate_target_macros(
    target: MacroTargets | MealTarget, field_prefix: str = "target"
) -> None:
    """Reject non-numeric, non-finite or negative targets, naming the field."""
    for name in _MACRO_FIELDS:
        require_non_negative(getattr(target, name, None), f"{field_prefix}.{name}")


def validate_meal(meal: Meal, field_prefix: str = "meal") -> None:
    """Reject a structurally malformed meal, naming the offending field."""
    if not isinstance(meal.name, str) or not meal.name.strip():
        raise InvalidRequestError(f"{field_prefix}.name", "meal name is required")
    if not isinstance(meal.ingredients, list):
        raise InvalidRequestError(f"{field_prefix}.ingredients", "must be a list")
    for index, ingredient in enumerate(meal.ingredients):
        prefix = f"{field_prefix}.ingredients[{index}]"
        if not isinstance(ingredient.name, str) or not ingredient.name.strip():
            raise InvalidRequestError(f"{prefix}.name", "ingredient name is required")
        for name in ("quantity", *_MACRO_FIELDS):
            require_non_negative(getattr(ingredient, name), f"{prefix}.{name}")


def require_non_negative(value: object, field: str) -> None:
    """Raise ``InvalidRequestError`` unless value is a finite number >= 0."""
    if not isinstance(value, int | float) or isinstance(value, bool):
        raise InvalidRequestError(field, "must be a number")
    if not math.isfinite(value):
        raise InvalidRequestError(field, "must be a finite number")
    if value < 0:
        raise InvalidRequestError(field, "must not be negative")
