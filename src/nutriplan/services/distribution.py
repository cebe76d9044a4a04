"""Split daily targets into per-meal targets."""

import logging
import math

from nutriplan.domain.targets import DailyTargets, MealDistribution, MealTarget
from nutriplan.errors import InvalidRequestError
from nutriplan.services.inputs import require_non_negative

_logger = logging.getLogger(__name__)

DEFAULT_MEAL_DISTRIBUTIONS: tuple[MealDistribution, ...] = tuple(
    MealDistribution(
        meal_name=name,
        calories_pct=pct,
        protein_pct=pct,
        carbs_pct=pct,
        fat_pct=pct,
    )
    for name, pct in (
        ("Breakfast", 25),
        ("Morning Snack", 10),
        ("Lunch", 30),
        ("Afternoon Snack", 10),
        ("Dinner", 20),
        ("Evening Snack", 5),
    )
)


def allocate_meal_targets(
    daily: DailyTargets, distributions: list[MealDistribution] | None = None
) -> list[MealTarget]:
    """Return rounded per-meal targets in distribution order.

    Custom rows are used as given: percentages are not normalized to 100.
    """
    _validate_daily(daily)
    rows = list(distributions) if distributions else list(DEFAULT_MEAL_DISTRIBUTIONS)
    for index, row in enumerate(rows):
        _validate_row(index, row)
    total_pct = sum(row.calories_pct for row in rows)
    if distributions and abs(total_pct - 100) > 0.01:
        _logger.warning(
            "Custom meal distribution calories_pct sums to %.1f, using as-is",
            total_pct,
        )
    return [_allocate_row(daily, row) for row in rows]


def meal_target_for(
    meal_name: str,
    daily: DailyTargets,
    distributions: list[MealDistribution] | None = None,
) -> MealTarget:
    """Return targets for one meal slot.

    A slot absent from custom rows uses the default table row for that slot.
    """
    row = _find_row(meal_name, distributions or [])
    if row is None:
        row = _find_row(meal_name, list(DEFAULT_MEAL_DISTRIBUTIONS))
    if row is None:
        raise InvalidRequestError("meal_name", f"unknown meal slot {meal_name!r}")
    _validate_daily(daily)
    _validate_row(0, row)
    return _allocate_row(daily, row)


def _allocate_row(daily: DailyTargets, row: MealDistribution) -> MealTarget:
    protein_pct = row.protein_pct if row.protein_pct is not None else row.calories_pct
    carbs_pct = row.carbs_pct if row.carbs_pct is not None else row.calories_pct
    fat_pct = row.fat_pct if row.fat_pct is not None else row.calories_pct
    return MealTarget(
        meal_name=row.meal_name,
        calories=_share(daily.calories, row.calories_pct, row.meal_name),
        protein=_share(daily.protein_g, protein_pct, row.meal_name),
        carbs=_share(daily.carbs_g, carbs_pct, row.meal_name),
        fat=_share(daily.fat_g, fat_pct, row.meal_name),
    )


def _share(total: float, pct: float, meal_name: str) -> int:
    value = total * pct / 100
    if not math.isfinite(value):
        raise InvalidRequestError(
            "distributions", f"share for {meal_name!r} is too large"
        )
    return round(value)


def _find_row(
    meal_name: str, rows: list[MealDistribution]
) -> MealDistribution | None:
    wanted = meal_name.strip().lower()
    for row in rows:
        if row.meal_name.strip().lower() == wanted:
            return row
    return None


def _validate_row(index: int, row: MealDistribution) -> None:
    if not row.meal_name or not row.meal_name.strip():
        raise InvalidRequestError(
            f"distributions[{index}].meal_name", "meal name is required"
        )
    for name in ("calories_pct", "protein_pct", "carbs_pct", "fat_pct"):
        value = getattr(row, name)
        if value is None and name != "calories_pct":
            continue
        require_non_negative(value, f"distributions[{index}].{name}")


def _validate_daily(daily: DailyTargets) -> None:
    for name in ("calories", "protein_g", "carbs_g", "fat_g"):
        require_non_negative(getattr(daily, name), f"daily_targets.{name}")
