"""Meal plan generation and single-meal optimization."""

import logging
import random
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field, replace

from nutriplan.domain.generation import AdjustedMeal, MealSuggestionResponse
from nutriplan.domain.meals import (
    DAYS_OF_WEEK,
    DailyMealPlan,
    Ingredient,
    Meal,
    MealAdjustmentResult,
    NutrientDensity,
    PlanGenerationResult,
    WeeklyMealPlan,
)
from nutriplan.domain.profile import UserProfile
from nutriplan.domain.targets import MacroTargets, MealTarget
from nutriplan.errors import InvalidRequestError
from nutriplan.services.fallback import (
    CandidateFood,
    build_meal_from_candidates,
    fallback_meal_for_slot,
    macro_status,
    scale_meal_to_target,
)
from nutriplan.services.generation import GenerationService
from nutriplan.services.inputs import validate_meal, validate_target_macros
from nutriplan.services.plans import (
    plan_from_weekly_response,
    recompute_meal,
    recompute_plan,
)
from nutriplan.services.prompts import PromptKind, build_prompt
from nutriplan.services.validation import (
    ADJUSTED_MEAL,
    MEAL_SUGGESTION,
    WEEKLY_PLAN,
    TargetSchema,
    validate_and_repair,
)

_logger = logging.getLogger(__name__)

DEFAULT_MAX_BATCH_MEALS = 10


@dataclass(frozen=True)
class MealOptimizationRequest:
    """One meal to adjust in a batch."""

    meal: Meal
    target: MacroTargets | MealTarget
    profile: UserProfile = field(default_factory=UserProfile)


@dataclass
class MealPlannerService:
    """Runs generation requests and falls back to local optimization."""

    generation: GenerationService
    week_timeout_seconds: float = 180.0
    meal_timeout_seconds: float = 60.0
    max_batch_meals: int = DEFAULT_MAX_BATCH_MEALS

    async def generate_weekly_plan(
        self, profile: UserProfile, meal_targets: Sequence[MealTarget]
    ) -> PlanGenerationResult:
        """Generate a 7-day plan; never fails once the input is valid."""
        targets = list(meal_targets)
        prompt = build_prompt(PromptKind.WEEKLY_PLAN, targets, profile)
        outcome = await self.generation.generate(
            prompt,
            _parser(WEEKLY_PLAN),
            schema=WEEKLY_PLAN.json_schema(),
            timeout_seconds=self.week_timeout_seconds,
        )
        if outcome.value is None:
            _logger.warning(
                "Weekly plan generation failed (%s), using fallback plan",
                outcome.failure_reason,
            )
            plan = _fallback_week(targets)
            return PlanGenerationResult(
                plan=plan,
                is_fallback=True,
                fallback_reason=outcome.failure_reason,
                fallback_meals=sum(len(day.meals) for day in plan.days),
            )

        plan, filled = _fill_empty_meals(
            plan_from_weekly_response(outcome.value, targets), targets
        )
        reason = None
        if filled:
            reason = f"{filled} meals missing from {outcome.provider} response"
            _logger.warning("Filled %d missing meals with fallback meals", filled)
        return PlanGenerationResult(
            plan=plan,
            provider=outcome.provider,
            fallback_reason=reason,
            fallback_meals=filled,
        )

    async def adjust_single_meal(
        self,
        meal: Meal,
        target: MacroTargets | MealTarget,
        profile: UserProfile,
    ) -> MealAdjustmentResult:
        """Re-quantify a meal's ingredients to hit its target."""
        prompt = build_prompt(
            PromptKind.MEAL_ADJUSTMENT, target, profile, existing_meal=meal
        )
        outcome = await self.generation.generate(
            prompt,
            _parser(ADJUSTED_MEAL),
            schema=ADJUSTED_MEAL.json_schema(),
            timeout_seconds=self.meal_timeout_seconds,
        )
        if outcome.value is None:
            _logger.warning(
                "Meal adjustment failed (%s), scaling proportionally",
                outcome.failure_reason,
            )
            scaled = scale_meal_to_target(meal, target)
            return MealAdjustmentResult(
                meal=scaled.meal,
                explanation=(
                    "Quantities were scaled proportionally by "
                    f"{scaled.scale_factor:.2f} to match the calorie target."
                ),
                status=scaled.status,
                is_fallback=True,
                fallback_reason=outcome.failure_reason,
            )

        adjusted = _meal_from_adjusted(outcome.value.adjusted_meal, meal)
        return MealAdjustmentResult(
            meal=adjusted,
            explanation=outcome.value.explanation,
            status=macro_status(adjusted.totals, target),
            provider=outcome.provider,
        )

    async def suggest_meal(
        self,
        meal_name: str,
        target: MacroTargets | MealTarget,
        profile: UserProfile,
        *,
        seed: int | str | None = None,
    ) -> MealAdjustmentResult:
        """Suggest a dish and size its ingredients with the local search."""
        if not meal_name or not meal_name.strip():
            raise InvalidRequestError("meal_name", "meal name is required")
        slot_target = MealTarget(
            meal_name=meal_name,
            calories=target.calories,
            protein=target.protein,
            carbs=target.carbs,
            fat=target.fat,
        )
        prompt = build_prompt(PromptKind.MEAL_SUGGESTION, slot_target, profile)
        outcome = await self.generation.generate(
            prompt,
            _parser(MEAL_SUGGESTION),
            schema=MEAL_SUGGESTION.json_schema(),
            timeout_seconds=self.meal_timeout_seconds,
        )
        resolved_seed = seed if seed is not None else meal_name
        if outcome.value is None:
            _logger.warning(
                "Meal suggestion failed (%s), using pantry meal",
                outcome.failure_reason,
            )
            fallback = fallback_meal_for_slot(meal_name, target, seed=resolved_seed)
            return MealAdjustmentResult(
                meal=fallback.meal,
                explanation="Built from a standard ingredient set.",
                status=fallback.status,
                is_fallback=True,
                fallback_reason=outcome.failure_reason,
            )

        suggestion: MealSuggestionResponse = outcome.value
        candidates = [
            CandidateFood(
                name=item.name,
                density=NutrientDensity(
                    calories=item.calories_per_100g,
                    protein=item.protein_per_100g,
                    carbs=item.carbs_per_100g,
                    fat=item.fat_per_100g,
                ),
            )
            for item in suggestion.ingredients
        ]
        result = build_meal_from_candidates(
            meal_name,
            suggestion.meal_title,
            candidates,
            target,
            random.Random(f"{resolved_seed}"),
        )
        return MealAdjustmentResult(
            meal=result.meal,
            explanation=suggestion.description,
            status=result.status,
            provider=outcome.provider,
        )

    async def optimize_batch(
        self, requests: Sequence[MealOptimizationRequest]
    ) -> list[MealAdjustmentResult]:
        """Adjust several meals one after another."""
        if len(requests) > self.max_batch_meals:
            raise InvalidRequestError(
                "meals", f"at most {self.max_batch_meals} meals per batch"
            )
        for index, request in enumerate(requests):
            validate_meal(request.meal, f"meals[{index}].meal")
            validate_target_macros(request.target, f"meals[{index}].target")
        results = []
        for request in requests:
            results.append(
                await self.adjust_single_meal(
                    request.meal, request.target, request.profile
                )
            )
        return results


def _parser(schema: TargetSchema) -> Callable[[str], object]:
    def parse(text: str) -> object:
        validated = validate_and_repair(text, schema)
        if validated.repaired:
            _logger.info("Repaired %s response before use", schema.name)
        return validated.value

    return parse


def _meal_from_adjusted(adjusted: AdjustedMeal, original: Meal) -> Meal:
    """Build a canonical meal from a provider response, keeping slot names."""
    returned = sorted(item.name.strip().lower() for item in adjusted.ingredients)
    expected = sorted(item.name.strip().lower() for item in original.ingredients)
    if returned != expected:
        _logger.warning(
            "Adjusted %s has ingredients %s, expected %s",
            original.name,
            returned,
            expected,
        )
    ingredients = [
        Ingredient(
            name=item.name,
            quantity=item.quantity,
            unit=item.unit,
            calories=item.calories,
            protein=item.protein,
            carbs=item.carbs,
            fat=item.fat,
        )
        for item in adjusted.ingredients
    ]
    # Provider totals are discarded and re-summed.
    return recompute_meal(
        Meal(
            name=original.name or adjusted.name,
            custom_name=adjusted.custom_name or original.custom_name,
            ingredients=ingredients,
        )
    )


def _fallback_week(targets: Sequence[MealTarget]) -> WeeklyMealPlan:
    days = []
    for day_name in DAYS_OF_WEEK:
        meals = [
            fallback_meal_for_slot(
                target.meal_name, target, seed=f"{day_name}:{target.meal_name}"
            ).meal
            for target in targets
        ]
        days.append(DailyMealPlan(day_of_week=day_name, meals=meals))
    return recompute_plan(WeeklyMealPlan(days=days))


def _fill_empty_meals(
    plan: WeeklyMealPlan, targets: Sequence[MealTarget]
) -> tuple[WeeklyMealPlan, int]:
    filled = 0
    days = []
    for day in plan.days:
        meals = []
        for meal, target in zip(day.meals, targets, strict=True):
            if meal.ingredients:
                meals.append(meal)
                continue
            filled += 1
            meals.append(
                fallback_meal_for_slot(
                    target.meal_name,
                    target,
                    seed=f"{day.day_of_week}:{target.meal_name}",
                ).meal
            )
        days.append(replace(day, meals=meals))
    return recompute_plan(replace(plan, days=days)), filled

