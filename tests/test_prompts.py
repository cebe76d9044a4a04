"""Tests for prompt construction."""

import json

import pytest

from nutriplan.domain.meals import Meal
from nutriplan.domain.profile import UserProfile
from nutriplan.domain.targets import MacroTargets, MealTarget
from nutriplan.errors import InvalidRequestError
from nutriplan.services.prompts import PromptKind, build_prompt
from tests.conftest import sample_meal, sample_meal_targets

TARGET = MacroTargets(calories=300, protein=30, carbs=26, fat=4)
PROFILE = UserProfile(
    preferred_diet="Mediterranean",
    allergies=["peanuts", " "],
    disliked_ingredients=["cilantro"],
)


def test_adjustment_prompt_lists_targets_and_ingredients() -> None:
    prompt = build_prompt(
        PromptKind.MEAL_ADJUSTMENT, TARGET, PROFILE, existing_meal=sample_meal()
    )

    assert "TARGET MACROS (non-negotiable):" in prompt
    assert "- Calories: 300 kcal (allowed 285-315)" in prompt
    assert "- Protein: 30g (allowed 28.5-31.5)" in prompt
    assert '"name": "Chicken breast"' in prompt
    assert "- Allergies: peanuts" in prompt
    assert "- Disliked ingredients: cilantro" in prompt
    assert "- Medications: None" in prompt
    assert "STRICT JSON RULES:" in prompt
    assert '"adjustedMeal"' in prompt


def test_adjustment_prompt_requires_meal() -> None:
    with pytest.raises(InvalidRequestError) as excinfo:
        build_prompt(PromptKind.MEAL_ADJUSTMENT, TARGET, PROFILE)

    assert excinfo.value.field == "meal"


def test_adjustment_prompt_rejects_malformed_meal() -> None:
    meal = Meal(name=" ")

    with pytest.raises(InvalidRequestError) as excinfo:
        build_prompt(PromptKind.MEAL_ADJUSTMENT, TARGET, PROFILE, existing_meal=meal)

    assert excinfo.value.field == "meal.name"


def test_adjustment_prompt_rejects_negative_target() -> None:
    target = MacroTargets(calories=300, protein=-1, carbs=26, fat=4)

    with pytest.raises(InvalidRequestError) as excinfo:
        build_prompt(
            PromptKind.MEAL_ADJUSTMENT, target, PROFILE, existing_meal=sample_meal()
        )

    assert excinfo.value.field == "target.protein"


def test_weekly_prompt_lists_every_meal_target() -> None:
    prompt = build_prompt(PromptKind.WEEKLY_PLAN, sample_meal_targets(), PROFILE)

    assert "Exactly 7 days" in prompt
    assert "Each day has exactly 3 meals" in prompt
    assert "3 to 8 ingredients" in prompt
    assert "- Breakfast: 500 kcal, 35g protein, 55g carbs, 15g fat" in prompt
    assert "DAILY TARGETS (non-negotiable):" in prompt
    assert "- Calories: 1800 kcal (allowed 1710-1890)" in prompt
    assert "- Diet type: Mediterranean" in prompt
    assert '"weeklyMealPlan"' in prompt


def test_weekly_prompt_requires_targets() -> None:
    with pytest.raises(InvalidRequestError) as excinfo:
        build_prompt(PromptKind.WEEKLY_PLAN, [], PROFILE)

    assert excinfo.value.field == "meal_targets"


def test_weekly_prompt_names_invalid_target() -> None:
    targets = [
        *sample_meal_targets(),
        MealTarget(meal_name="Snack", calories=float("nan"), protein=1, carbs=1, fat=1),
    ]

    with pytest.raises(InvalidRequestError) as excinfo:
        build_prompt(PromptKind.WEEKLY_PLAN, targets, PROFILE)

    assert excinfo.value.field == "meal_targets[3].calories"


def test_suggestion_prompt_asks_for_densities() -> None:
    target = MealTarget(meal_name="Dinner", calories=600, protein=45, carbs=50, fat=20)

    prompt = build_prompt(PromptKind.MEAL_SUGGESTION, target, UserProfile())

    assert "Suggest one Dinner dish" in prompt
    assert "calories_per_100g" in prompt
    assert "3 to 6 ingredients" in prompt
    shape = json.loads(prompt.split("RESPONSE FORMAT:\n", 1)[1])
    assert set(shape) == {"meal_title", "description", "ingredients"}
