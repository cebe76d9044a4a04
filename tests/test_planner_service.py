"""Tests for meal planning with provider fallbacks."""

import asyncio
import logging
import math

import pytest

from nutriplan.domain.meals import Ingredient, Meal
from nutriplan.domain.profile import UserProfile
from nutriplan.domain.targets import MacroTargets, MealTarget
from nutriplan.errors import InvalidRequestError
from nutriplan.services.fallback import OPTIMAL
from nutriplan.services.planner import MealOptimizationRequest, MealPlannerService
from nutriplan.services.plans import ingredient_totals
from tests.conftest import (
    ScriptedGenerationClient,
    adjusted_meal_payload,
    as_text,
    sample_meal,
    sample_meal_targets,
    weekly_plan_payload,
)

PROFILE = UserProfile(allergies=["peanuts"])
TARGET = MacroTargets(calories=300, protein=30, carbs=26, fat=3.6)


def test_adjust_meal_uses_provider_response(
    planner_service: MealPlannerService, gemini_client: ScriptedGenerationClient
) -> None:
    gemini_client.script.append(as_text(adjusted_meal_payload(sample_meal(), 1.5)))

    result = asyncio.run(
        planner_service.adjust_single_meal(sample_meal(), TARGET, PROFILE)
    )

    assert result.provider == "gemini"
    assert result.is_fallback is False
    assert result.explanation == "Scaled portions."
    assert result.meal.name == "Lunch"
    assert result.meal.custom_name == "Chicken and Rice"
    assert result.meal.total_calories == 300
    assert result.status == OPTIMAL
    assert "Chicken breast" in gemini_client.prompts[0]
    schema = gemini_client.schemas[0]
    assert schema is not None
    assert "adjustedMeal" in schema["properties"]  # type: ignore[operator]


def test_adjust_meal_falls_back_to_scaling_on_invalid_json(
    planner_service: MealPlannerService,
    gemini_client: ScriptedGenerationClient,
    openai_client: ScriptedGenerationClient,
) -> None:
    gemini_client.script.append("not json")
    openai_client.script.append("not json")

    result = asyncio.run(
        planner_service.adjust_single_meal(sample_meal(), TARGET, PROFILE)
    )

    assert result.is_fallback is True
    assert result.provider is None
    assert result.fallback_reason == "openai: invalid_json"
    assert result.meal.total_calories == 300
    assert result.meal.totals == ingredient_totals(result.meal.ingredients)
    assert "1.50" in result.explanation


def test_adjust_meal_rejects_invalid_target_before_calling_providers(
    planner_service: MealPlannerService, gemini_client: ScriptedGenerationClient
) -> None:
    target = MacroTargets(calories=-1, protein=30, carbs=26, fat=4)

    with pytest.raises(InvalidRequestError) as excinfo:
        asyncio.run(planner_service.adjust_single_meal(sample_meal(), target, PROFILE))

    assert excinfo.value.field == "target.calories"
    assert gemini_client.prompts == []


def test_weekly_plan_from_provider(
    planner_service: MealPlannerService, gemini_client: ScriptedGenerationClient
) -> None:
    targets = sample_meal_targets()
    gemini_client.script.append(as_text(weekly_plan_payload(targets)))

    result = asyncio.run(planner_service.generate_weekly_plan(PROFILE, targets))

    assert result.provider == "gemini"
    assert result.is_fallback is False
    assert result.fallback_meals == 0
    assert result.fallback_reason is None
    assert len(result.plan.days) == 7
    assert result.plan.weekly_summary.calories == 1800 * 7


def test_weekly_plan_fills_missing_meals(
    planner_service: MealPlannerService, gemini_client: ScriptedGenerationClient
) -> None:
    targets = sample_meal_targets()
    partial = weekly_plan_payload(targets, days=("Monday", "Tuesday", "Wednesday"))
    gemini_client.script.append(as_text(partial))

    result = asyncio.run(planner_service.generate_weekly_plan(PROFILE, targets))

    assert result.is_fallback is False
    assert result.fallback_meals == 12
    assert result.fallback_reason == "12 meals missing from gemini response"
    sunday = result.plan.days[6]
    assert all(meal.ingredients for meal in sunday.meals)
    assert [meal.name for meal in sunday.meals] == ["Breakfast", "Lunch", "Dinner"]


def test_weekly_plan_falls_back_when_providers_fail(
    planner_service: MealPlannerService,
    gemini_client: ScriptedGenerationClient,
    openai_client: ScriptedGenerationClient,
) -> None:
    targets = sample_meal_targets()

    result = asyncio.run(planner_service.generate_weekly_plan(PROFILE, targets))

    assert result.is_fallback is True
    assert result.provider is None
    assert result.fallback_meals == 21
    assert result.fallback_reason == "openai: server_error (500)"
    assert len(gemini_client.prompts) == 1
    assert len(openai_client.prompts) == 1
    for day in result.plan.days:
        assert len(day.meals) == 3
        assert all(meal.ingredients for meal in day.meals)


def test_fallback_week_is_reproducible(planner_service: MealPlannerService) -> None:
    targets = sample_meal_targets()

    first = asyncio.run(planner_service.generate_weekly_plan(PROFILE, targets))
    second = asyncio.run(planner_service.generate_weekly_plan(PROFILE, targets))

    assert first.plan == second.plan


def test_batch_rejects_too_many_meals(
    planner_service: MealPlannerService, gemini_client: ScriptedGenerationClient
) -> None:
    requests = [
        MealOptimizationRequest(meal=sample_meal(), target=TARGET) for _ in range(11)
    ]

    with pytest.raises(InvalidRequestError) as excinfo:
        asyncio.run(planner_service.optimize_batch(requests))

    assert excinfo.value.field == "meals"
    assert gemini_client.prompts == []


def test_batch_adjusts_meals_in_order(
    planner_service: MealPlannerService, gemini_client: ScriptedGenerationClient
) -> None:
    gemini_client.script.append(as_text(adjusted_meal_payload(sample_meal(), 1.5)))
    requests = [
        MealOptimizationRequest(meal=sample_meal(), target=TARGET),
        MealOptimizationRequest(
            meal=sample_meal("Dinner"),
            target=MacroTargets(calories=400, protein=40, carbs=35, fat=5),
        ),
    ]

    results = asyncio.run(planner_service.optimize_batch(requests))

    assert [result.meal.name for result in results] == ["Lunch", "Dinner"]
    assert results[0].provider == "gemini"
    assert results[1].is_fallback is True
    assert results[1].meal.total_calories == 400


def test_suggest_meal_sizes_provider_ingredients(
    planner_service: MealPlannerService, gemini_client: ScriptedGenerationClient
) -> None:
    gemini_client.script.append(
        as_text(
            {
                "meal_title": "Chicken Rice Bowl",
                "description": "Simple and filling.",
                "ingredients": [
                    {
                        "name": "Chicken breast",
                        "calories_per_100g": 165,
                        "protein_per_100g": 31,
                        "carbs_per_100g": 0,
                        "fat_per_100g": 3.6,
                    },
                    {
                        "name": "Brown rice (raw)",
                        "calories_per_100g": 370,
                        "protein_per_100g": 7.9,
                        "carbs_per_100g": 77,
                        "fat_per_100g": 2.9,
                    },
                ],
            }
        )
    )
    target = MealTarget(meal_name="Dinner", calories=600, protein=45, carbs=60, fat=10)

    result = asyncio.run(planner_service.suggest_meal("Dinner", target, PROFILE))

    assert result.provider == "gemini"
    assert result.meal.name == "Dinner"
    assert result.meal.custom_name == "Chicken Rice Bowl"
    assert result.explanation == "Simple and filling."
    assert {item.name for item in result.meal.ingredients} <= {
        "Chicken breast",
        "Brown rice (raw)",
    }
    assert all(item.unit == "g" for item in result.meal.ingredients)
    assert result.meal.totals == ingredient_totals(result.meal.ingredients)


def test_suggest_meal_falls_back_to_pantry(
    planner_service: MealPlannerService,
) -> None:
    target = MacroTargets(calories=250, protein=20, carbs=25, fat=8)

    first = asyncio.run(planner_service.suggest_meal("Morning Snack", target, PROFILE))
    second = asyncio.run(planner_service.suggest_meal("Morning Snack", target, PROFILE))

    assert first.is_fallback is True
    assert first.meal == second.meal
    assert first.meal.ingredients


def test_suggest_meal_requires_name(planner_service: MealPlannerService) -> None:
    with pytest.raises(InvalidRequestError) as excinfo:
        asyncio.run(planner_service.suggest_meal(" ", TARGET, PROFILE))

    assert excinfo.value.field == "meal_name"


@pytest.mark.parametrize("token", ["1e400", "Infinity", "NaN"])
def test_adjust_meal_rejects_non_finite_provider_numbers(
    planner_service: MealPlannerService,
    gemini_client: ScriptedGenerationClient,
    token: str,
) -> None:
    text = as_text(adjusted_meal_payload(sample_meal(), 1.5))
    gemini_client.script.append(text.replace('"calories": 180', f'"calories": {token}'))

    result = asyncio.run(
        planner_service.adjust_single_meal(sample_meal(), TARGET, PROFILE)
    )

    assert result.is_fallback is True
    assert result.meal.total_calories == 300
    assert math.isfinite(result.meal.total_protein)


def test_weekly_plan_rejects_non_finite_provider_numbers(
    planner_service: MealPlannerService, gemini_client: ScriptedGenerationClient
) -> None:
    targets = sample_meal_targets()
    text = as_text(weekly_plan_payload(targets))
    gemini_client.script.append(text.replace('"calories": 500', '"calories": 1e400', 1))

    result = asyncio.run(planner_service.generate_weekly_plan(PROFILE, targets))

    assert result.is_fallback is True
    assert result.fallback_meals == 21
    assert math.isfinite(result.plan.weekly_summary.calories)


def test_suggest_meal_rejects_non_finite_densities(
    planner_service: MealPlannerService, gemini_client: ScriptedGenerationClient
) -> None:
    gemini_client.script.append(
        '{"meal_title": "Rice Bowl", "description": "Filling.", "ingredients": '
        '[{"name": "Rice", "calories_per_100g": 1e400, "protein_per_100g": 7,'
        ' "carbs_per_100g": 77, "fat_per_100g": 1}]}'
    )
    target = MacroTargets(calories=500, protein=30, carbs=60, fat=12)

    result = asyncio.run(planner_service.suggest_meal("Lunch", target, PROFILE))

    assert result.is_fallback is True
    assert result.meal.ingredients
    assert math.isfinite(result.meal.total_calories)


def test_batch_validates_every_meal_before_calling_providers(
    planner_service: MealPlannerService, gemini_client: ScriptedGenerationClient
) -> None:
    broken = Meal(
        name="Dinner",
        ingredients=[
            Ingredient(
                name="Rice",
                quantity=-5,
                unit="g",
                calories=10,
                protein=0,
                carbs=2,
                fat=0,
            )
        ],
    )
    requests = [
        MealOptimizationRequest(meal=sample_meal(), target=TARGET) for _ in range(4)
    ]
    requests.append(MealOptimizationRequest(meal=broken, target=TARGET))

    with pytest.raises(InvalidRequestError) as excinfo:
        asyncio.run(planner_service.optimize_batch(requests))

    assert excinfo.value.field == "meals[4].meal.ingredients[0].quantity"
    assert gemini_client.prompts == []


def test_batch_validates_targets_before_calling_providers(
    planner_service: MealPlannerService, gemini_client: ScriptedGenerationClient
) -> None:
    requests = [
        MealOptimizationRequest(meal=sample_meal(), target=TARGET),
        MealOptimizationRequest(
            meal=sample_meal(),
            target=MacroTargets(calories=math.inf, protein=30, carbs=26, fat=4),
        ),
    ]

    with pytest.raises(InvalidRequestError) as excinfo:
        asyncio.run(planner_service.optimize_batch(requests))

    assert excinfo.value.field == "meals[1].target.calories"
    assert gemini_client.prompts == []


def test_adjust_meal_warns_when_provider_changes_ingredients(
    planner_service: MealPlannerService,
    gemini_client: ScriptedGenerationClient,
    caplog: pytest.LogCaptureFixture,
) -> None:
    payload = adjusted_meal_payload(sample_meal(), 1.5)
    payload["adjustedMeal"]["ingredients"].append(  # type: ignore[index]
        {
            "name": "Olive oil",
            "quantity": 5,
            "unit": "g",
            "calories": 44,
            "protein": 0,
            "carbs": 0,
            "fat": 5,
        }
    )
    gemini_client.script.append(as_text(payload))
    logger = logging.getLogger("nutriplan.services.planner")
    logger.addHandler(caplog.handler)
    try:
        result = asyncio.run(
            planner_service.adjust_single_meal(sample_meal(), TARGET, PROFILE)
        )
    finally:
        logger.removeHandler(caplog.handler)

    assert result.provider == "gemini"
    assert len(result.meal.ingredients) == 3
    warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
    assert any("olive oil" in record.getMessage() for record in warnings)
