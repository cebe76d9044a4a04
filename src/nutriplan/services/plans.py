"""Weekly plan rollups, merges and persistence."""

import copy
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, replace
from typing import Any, Protocol
from uuid import UUID

from nutriplan.domain.generation import GeneratedMeal, WeeklyPlanResponse
from nutriplan.domain.meals import (
    DAYS_OF_WEEK,
    MEAL_SLOT_NAMES,
    DailyMealPlan,
    Ingredient,
    MacroTotals,
    Meal,
    WeeklyMealPlan,
)
from nutriplan.domain.targets import MealTarget
from nutriplan.errors import InvalidRequestError
from nutriplan.services.inputs import validate_meal
from nutriplan.services.validation import PLAN_DOCUMENT, validate_and_repair

_logger = logging.getLogger(__name__)

_LOWER_DAYS = {day.lower() for day in DAYS_OF_WEEK}


def ingredient_totals(ingredients: Sequence[Ingredient]) -> MacroTotals:
    """Sum the macros of ingredients."""
    total = MacroTotals()
    for ingredient in ingredients:
        total = total + MacroTotals(
            calories=ingredient.calories,
            protein=ingredient.protein,
            carbs=ingredient.carbs,
            fat=ingredient.fat,
        )
    return total


def recompute_meal(meal: Meal) -> Meal:
    """Return the meal with totals re-summed from its ingredients."""
    totals = ingredient_totals(meal.ingredients)
    return replace(
        meal,
        ingredients=list(meal.ingredients),
        total_calories=totals.calories,
        total_protein=totals.protein,
        total_carbs=totals.carbs,
        total_fat=totals.fat,
    )


def recompute_day(day: DailyMealPlan) -> DailyMealPlan:
    """Return the day with every meal and the daily totals recomputed."""
    meals = [recompute_meal(meal) for meal in day.meals]
    totals = MacroTotals()
    for meal in meals:
        totals = totals + meal.totals
    return replace(day, meals=meals, daily_totals=totals)


def recompute_plan(plan: WeeklyMealPlan) -> WeeklyMealPlan:
    """Return the plan with all rollups recomputed bottom-up."""
    days = [recompute_day(day) for day in plan.days]
    summary = MacroTotals()
    for day in days:
        summary = summary + day.daily_totals
    return replace(plan, days=days, weekly_summary=summary)


def merge_meal_into_plan(
    plan: WeeklyMealPlan, day_index: int, meal_index: int, new_meal: Meal
) -> WeeklyMealPlan:
    """Replace one meal slot and recompute every rollup.

    The input plan is left untouched. Merging the same meal twice yields the
    same plan as merging it once.
    """
    _check_index("day_index", day_index, len(plan.days))
    day = plan.days[day_index]
    _check_index("meal_index", meal_index, len(day.meals))
    validate_meal(new_meal)
    updated = copy.deepcopy(plan)
    meals = list(updated.days[day_index].meals)
    meals[meal_index] = copy.deepcopy(new_meal)
    days = list(updated.days)
    days[day_index] = replace(days[day_index], meals=meals)
    return recompute_plan(replace(updated, days=days))


def merge_day_into_plan(
    plan: WeeklyMealPlan, day_index: int, new_day: DailyMealPlan
) -> WeeklyMealPlan:
    """Replace a whole day and recompute every rollup."""
    _check_index("day_index", day_index, len(plan.days))
    for meal_index, meal in enumerate(new_day.meals):
        validate_meal(meal, f"day.meals[{meal_index}]")
    updated = copy.deepcopy(plan)
    days = list(updated.days)
    days[day_index] = copy.deepcopy(new_day)
    return recompute_plan(replace(updated, days=days))


def initial_weekly_plan(
    meal_names: Sequence[str] = MEAL_SLOT_NAMES,
) -> WeeklyMealPlan:
    """Return a 7-day plan whose meal slots are all empty."""
    days = [
        DailyMealPlan(day_of_week=day, meals=[Meal(name=name) for name in meal_names])
        for day in DAYS_OF_WEEK
    ]
    return recompute_plan(WeeklyMealPlan(days=days))


def plan_from_weekly_response(
    response: WeeklyPlanResponse, meal_targets: Sequence[MealTarget]
) -> WeeklyMealPlan:
    """Convert a generated week into a plan, one meal per target slot.

    Days are matched by name, falling back to position. Slots the response
    does not cover are left empty for the caller to fill.
    """
    by_name = {
        generated.day.strip().lower(): generated
        for generated in response.weekly_meal_plan
    }
    days = []
    for position, day_name in enumerate(DAYS_OF_WEEK):
        generated_day = by_name.get(day_name.lower())
        if generated_day is None and not by_name.keys() & _LOWER_DAYS:
            if position < len(response.weekly_meal_plan):
                generated_day = response.weekly_meal_plan[position]
        generated_meals = generated_day.meals if generated_day else []
        meals = []
        for slot, target in enumerate(meal_targets):
            if slot < len(generated_meals):
                meals.append(
                    _meal_from_generated(target.meal_name, generated_meals[slot])
                )
            else:
                meals.append(Meal(name=target.meal_name))
        days.append(DailyMealPlan(day_of_week=day_name, meals=meals))
    return recompute_plan(WeeklyMealPlan(days=days))


def _meal_from_generated(meal_name: str, generated: GeneratedMeal) -> Meal:
    ingredients = []
    for item in generated.ingredients:
        if item.quantity is None:
            quantity, unit = 1.0, item.unit or "serving"
        else:
            quantity, unit = item.quantity, item.unit or "g"
        ingredients.append(
            Ingredient(
                name=item.name,
                quantity=quantity,
                unit=unit,
                calories=item.calories,
                protein=item.protein,
                carbs=item.carbs,
                fat=item.fat,
            )
        )
    return Meal(
        name=meal_name, custom_name=generated.meal_title, ingredients=ingredients
    )


def plan_to_document(plan: WeeklyMealPlan) -> dict[str, Any]:
    """Serialize a plan to the stored JSON document shape."""
    plan = recompute_plan(plan)
    return {
        "days": [
            {
                "day_of_week": day.day_of_week,
                "meals": [_meal_to_document(meal) for meal in day.meals],
                "daily_totals": {
                    "calories": day.daily_totals.calories,
                    "protein": day.daily_totals.protein,
                    "carbs": day.daily_totals.carbs,
                    "fat": day.daily_totals.fat,
                },
            }
            for day in plan.days
        ],
        "weekly_summary": {
            "total_calories": plan.weekly_summary.calories,
            "total_protein": plan.weekly_summary.protein,
            "total_carbs": plan.weekly_summary.carbs,
            "total_fat": plan.weekly_summary.fat,
        },
    }


def _meal_to_document(meal: Meal) -> dict[str, Any]:
    return {
        "meal_name": meal.name,
        "custom_name": meal.custom_name,
        "ingredients": [
            {
                "name": ingredient.name,
                "quantity": ingredient.quantity,
                "unit": ingredient.unit,
                "calories": ingredient.calories,
                "protein": ingredient.protein,
                "carbs": ingredient.carbs,
                "fat": ingredient.fat,
            }
            for ingredient in meal.ingredients
        ],
        "total_calories": meal.total_calories,
        "total_protein": meal.total_protein,
        "total_carbs": meal.total_carbs,
        "total_fat": meal.total_fat,
    }


def plan_from_document(document: str | Mapping[str, Any]) -> WeeklyMealPlan:
    """Parse a stored plan document, repairing legacy field names.

    Stored totals are ignored and recomputed from ingredients.
    """
    validated = validate_and_repair(document, PLAN_DOCUMENT)
    if validated.repaired:
        _logger.info("Stored meal plan document required repair")
    days = [
        DailyMealPlan(
            day_of_week=day.day_of_week,
            meals=[
                Meal(
                    name=meal.meal_name,
                    custom_name=meal.custom_name,
                    ingredients=[
                        Ingredient(
                            name=item.name,
                            quantity=item.quantity,
                            unit=item.unit,
                            calories=item.calories,
                            protein=item.protein,
                            carbs=item.carbs,
                            fat=item.fat,
                        )
                        for item in meal.ingredients
                    ],
                )
                for meal in day.meals
            ],
        )
        for day in validated.value.days
    ]
    return recompute_plan(WeeklyMealPlan(days=days))


class PlanRepository(Protocol):
    """Persistence interface for weekly meal plans, one per user."""

    def get(self, user_id: UUID) -> WeeklyMealPlan | None:
        """Return the stored plan for a user, if any."""

    def upsert(self, user_id: UUID, plan: WeeklyMealPlan) -> None:
        """Insert or replace the stored plan for a user."""


@dataclass
class PlanStoreService:
    """Loads, saves and edits stored weekly plans."""

    repository: PlanRepository

    def load(self, user_id: UUID) -> WeeklyMealPlan | None:
        return self.repository.get(user_id)

    def save(self, user_id: UUID, plan: WeeklyMealPlan) -> WeeklyMealPlan:
        recomputed = recompute_plan(plan)
        self.repository.upsert(user_id, recomputed)
        return recomputed

    def replace_meal(
        self, user_id: UUID, day_index: int, meal_index: int, meal: Meal
    ) -> WeeklyMealPlan:
        """Merge one meal into the stored (or an empty) plan and save it."""
        plan = self.repository.get(user_id) or initial_weekly_plan()
        merged = merge_meal_into_plan(plan, day_index, meal_index, meal)
        self.repository.upsert(user_id, merged)
        return merged


def _check_index(field: str, index: int, size: int) -> None:
    if isinstance(index, bool) or not isinstance(index, int):
        raise InvalidRequestError(field, "must be an integer")
    if not 0 <= index < size:
        raise InvalidRequestError(field, f"out of range for {size} entries")
