"""Prompt construction for meal generation and adjustment."""

import json
from enum import StrEnum

from nutriplan.domain.meals import DAYS_OF_WEEK, Meal
from nutriplan.domain.profile import UserProfile
from nutriplan.domain.targets import MacroTargets, MealTarget
from nutriplan.errors import InvalidRequestError
from nutriplan.services.inputs import validate_meal, validate_target_macros

SYSTEM_PROMPT = (
    "You are a precision nutrition calculator. Use standard nutrition data "
    "(USDA or equivalent) for every ingredient and compute quantities that hit "
    "the requested macro targets. Respond only with one valid JSON document."
)

TOLERANCE = 0.05

_STRICT_JSON_RULES = """STRICT JSON RULES:
- Return exactly one JSON object and nothing else.
- No markdown code fences, no comments, no trailing commas.
- All numbers must be unquoted JSON numbers.
- Use exactly the field names shown below; do not rename or add fields."""


class PromptKind(StrEnum):
    """Kinds of prompts sent to generation providers."""

    MEAL_ADJUSTMENT = "meal_adjustment"
    WEEKLY_PLAN = "weekly_plan"
    MEAL_SUGGESTION = "meal_suggestion"


def build_prompt(
    kind: PromptKind,
    target: MacroTargets | MealTarget | list[MealTarget],
    profile: UserProfile,
    existing_meal: Meal | None = None,
) -> str:
    """Build the prompt text for a generation request."""
    if kind == PromptKind.MEAL_ADJUSTMENT:
        if existing_meal is None:
            raise InvalidRequestError("meal", "an existing meal is required")
        if isinstance(target, list):
            raise InvalidRequestError("target", "expected a single meal target")
        return build_meal_adjustment_prompt(existing_meal, target, profile)
    if kind == PromptKind.WEEKLY_PLAN:
        if not isinstance(target, list):
            raise InvalidRequestError("meal_targets", "expected a list of targets")
        return build_weekly_plan_prompt(target, profile)
    if isinstance(target, list):
        raise InvalidRequestError("target", "expected a single meal target")
    meal_name = target.meal_name if isinstance(target, MealTarget) else "Meal"
    return build_meal_suggestion_prompt(meal_name, target, profile)


def build_meal_adjustment_prompt(
    meal: Meal, target: MacroTargets | MealTarget, profile: UserProfile
) -> str:
    """Prompt asking to re-quantify the existing ingredients of one meal."""
    validate_meal(meal)
    validate_target_macros(target)
    ingredients = [
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
    ]
    response_shape = {
        "adjustedMeal": {
            "name": meal.name,
            "custom_name": meal.custom_name,
            "ingredients": [
                {
                    "name": "<existing ingredient name>",
                    "quantity": "<number, grams or ml>",
                    "unit": "<unit>",
                    "calories": "<number for this quantity>",
                    "protein": "<number for this quantity>",
                    "carbs": "<number for this quantity>",
                    "fat": "<number for this quantity>",
                }
            ],
            "total_calories": _fmt(target.calories),
            "total_protein": _fmt(target.protein),
            "total_carbs": _fmt(target.carbs),
            "total_fat": _fmt(target.fat),
        },
        "explanation": "<one or two sentences>",
    }
    return "\n\n".join(
        [
            "TASK: Adjust the quantities of the existing ingredients of this meal "
            "so that its totals match the macro targets.",
            _target_block("TARGET MACROS", target),
            "ORIGINAL MEAL: "
            + json.dumps(
                {"name": meal.name, "custom_name": meal.custom_name},
                ensure_ascii=False,
            )
            + "\nORIGINAL INGREDIENTS:\n"
            + json.dumps(ingredients, indent=2, ensure_ascii=False),
            _restrictions_block(profile),
            "\n".join(
                [
                    "RULES:",
                    "1. Change only the quantity of existing ingredients.",
                    "2. Do not add or remove ingredients, except to replace an "
                    "ingredient that conflicts with a listed allergy.",
                    "3. Keep the meal name, custom_name and ingredient order.",
                    "4. Recompute calories, protein, carbs and fat of every "
                    "ingredient for its new quantity (absolute values, not per 100g).",
                    "5. total_calories, total_protein, total_carbs and total_fat "
                    "must equal the sum of the ingredient values and match the "
                    "targets within 5%.",
                ]
            ),
            _STRICT_JSON_RULES,
            "RESPONSE FORMAT:\n" + json.dumps(response_shape, indent=2),
        ]
    )


def build_weekly_plan_prompt(
    meal_targets: list[MealTarget], profile: UserProfile
) -> str:
    """Prompt asking for a complete 7-day plan with per-meal targets."""
    if not meal_targets:
        raise InvalidRequestError("meal_targets", "at least one meal is required")
    for index, target in enumerate(meal_targets):
        validate_target_macros(target, f"meal_targets[{index}]")

    meal_lines = [
        f"- {target.meal_name}: {_fmt(target.calories)} kcal, "
        f"{_fmt(target.protein)}g protein, {_fmt(target.carbs)}g carbs, "
        f"{_fmt(target.fat)}g fat"
        for target in meal_targets
    ]
    daily = MacroTargets(
        calories=sum(target.calories for target in meal_targets),
        protein=sum(target.protein for target in meal_targets),
        carbs=sum(target.carbs for target in meal_targets),
        fat=sum(target.fat for target in meal_targets),
    )
    response_shape = {
        "weeklyMealPlan": [
            {
                "day": "Monday",
                "meals": [
                    {
                        "meal_title": "<descriptive dish name>",
                        "ingredients": [
                            {
                                "name": "<ingredient>",
                                "calories": 0,
                                "protein": 0,
                                "carbs": 0,
                                "fat": 0,
                            }
                        ],
                    }
                ],
            }
        ]
    }
    return "\n\n".join(
        [
            "TASK: Create a 7-day meal plan.",
            "\n".join(
                [
                    "REQUIREMENTS:",
                    f"1. Exactly 7 days, in order: {', '.join(DAYS_OF_WEEK)}.",
                    f"2. Each day has exactly {len(meal_targets)} meals, in this "
                    "order: " + ", ".join(t.meal_name for t in meal_targets) + ".",
                    "3. Every meal has a descriptive meal_title and 3 to 8 "
                    "ingredients.",
                    "4. Ingredient calories, protein, carbs and fat are absolute "
                    "values for the portion used, not per 100g.",
                    "5. The sum of each meal's ingredients must be within 5% of "
                    "that meal's targets.",
                    "6. Vary dishes across the week.",
                ]
            ),
            _target_block("DAILY TARGETS", daily),
            "MEAL TARGETS (apply to every day):\n" + "\n".join(meal_lines),
            _preferences_block(profile),
            _restrictions_block(profile),
            _STRICT_JSON_RULES,
            "RESPONSE FORMAT (repeat the day object for all 7 days and the meal "
            "object for every meal):\n" + json.dumps(response_shape, indent=2),
        ]
    )


def build_meal_suggestion_prompt(
    meal_name: str, target: MacroTargets | MealTarget, profile: UserProfile
) -> str:
    """Prompt asking for one dish with per-100g ingredient densities."""
    validate_target_macros(target)
    response_shape = {
        "meal_title": "<dish name>",
        "description": "<one sentence>",
        "ingredients": [
            {
                "name": "<ingredient>",
                "calories_per_100g": 0,
                "protein_per_100g": 0,
                "carbs_per_100g": 0,
                "fat_per_100g": 0,
            }
        ],
    }
    return "\n\n".join(
        [
            f"TASK: Suggest one {meal_name} dish whose ingredients can be "
            "portioned to meet the targets below. Quantities are computed "
            "separately, so list nutrient densities only.",
            _target_block("TARGET MACROS", target),
            "\n".join(
                [
                    "RULES:",
                    "1. List 3 to 6 ingredients that together cover protein, "
                    "carbohydrate and fat sources.",
                    "2. Values are per 100 g of the ingredient as eaten.",
                ]
            ),
            _preferences_block(profile),
            _restrictions_block(profile),
            _STRICT_JSON_RULES,
            "RESPONSE FORMAT:\n" + json.dumps(response_shape, indent=2),
        ]
    )


def _target_block(title: str, target: MacroTargets | MealTarget) -> str:
    lines = [f"{title} (non-negotiable):"]
    for label, unit, value in (
        ("Calories", " kcal", target.calories),
        ("Protein", "g", target.protein),
        ("Carbs", "g", target.carbs),
        ("Fat", "g", target.fat),
    ):
        low = _fmt(value * (1 - TOLERANCE))
        high = _fmt(value * (1 + TOLERANCE))
        lines.append(f"- {label}: {_fmt(value)}{unit} (allowed {low}-{high})")
    return "\n".join(lines)


def _preferences_block(profile: UserProfile) -> str:
    return "\n".join(
        [
            "USER PREFERENCES:",
            f"- Diet type: {profile.preferred_diet or 'Standard'}",
            f"- Goal: {profile.primary_diet_goal or 'not specified'}",
            f"- Preferred ingredients: {_join(profile.preferred_ingredients)}",
            f"- Preferred cuisines: {_join(profile.preferred_cuisines)}",
            f"- Avoid cuisines: {_join(profile.disliked_cuisines)}",
        ]
    )


def _restrictions_block(profile: UserProfile) -> str:
    return "\n".join(
        [
            "RESTRICTIONS (must be respected):",
            f"- Allergies: {_join(profile.allergies)}",
            f"- Disliked ingredients: {_join(profile.disliked_ingredients)}",
            f"- Medical conditions: {_join(profile.medical_conditions)}",
            f"- Medications: {_join(profile.medications)}",
        ]
    )


def _join(values: list[str]) -> str:
    cleaned = [value.strip() for value in values if value and value.strip()]
    return ", ".join(cleaned) if cleaned else "None"


def _fmt(value: float) -> float | int:
    rounded = round(float(value), 1)
    if rounded.is_integer():
        return int(rounded)
    return rounded
