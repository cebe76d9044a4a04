"""Parse, validate and repair JSON produced by generative providers.

Each target schema pairs a strict pydantic model with a declarative alias
table. Valid input is accepted as-is; anything else is reshaped once
(aliases renamed, numeric strings coerced, missing fields defaulted, extra
keys dropped) and validated again.
"""

import json
import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import UnionType
from typing import Any, Generic, TypeVar, Union, get_args, get_origin

from pydantic import BaseModel, ValidationError

from nutriplan.domain.generation import (
    AdjustedIngredient,
    AdjustedMeal,
    AdjustedMealResponse,
    CandidateIngredient,
    DocumentDay,
    DocumentMeal,
    DocumentSummary,
    DocumentTotals,
    GeneratedDay,
    GeneratedIngredient,
    GeneratedMeal,
    MealSuggestionResponse,
    PlanDocument,
    WeeklyPlanResponse,
)
from nutriplan.errors import MalformedResponseError, SchemaValidationError

_logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

_FENCE_PATTERN = re.compile(r"^```[a-zA-Z]*\s*(.*?)\s*```$", re.DOTALL)
_NUMBER_PATTERN = re.compile(r"^-?\d+(?:\.\d+)?")
_MISSING = object()


@dataclass(frozen=True)
class TargetSchema(Generic[ModelT]):
    """Strict model plus the reshaping rules used to repair near misses.

    ``aliases`` maps a model class to ``{variant key: canonical key}``.
    ``hoists`` names nested objects whose keys are merged into their parent,
    overriding the parent's own values.
    """

    name: str
    model: type[ModelT]
    aliases: dict[type[BaseModel], dict[str, str]] = field(default_factory=dict)
    hoists: dict[type[BaseModel], tuple[str, ...]] = field(default_factory=dict)
    prune_empty: bool = True

    def json_schema(self) -> dict[str, object]:
        """JSON schema of the strict model, using wire field names."""
        return self.model.model_json_schema(by_alias=True)


@dataclass(frozen=True)
class ValidatedOutput(Generic[ModelT]):
    """A validated model and whether repair was needed to obtain it."""

    value: ModelT
    repaired: bool


_CAMEL_TOTALS = {
    "totalCalories": "total_calories",
    "totalProtein": "total_protein",
    "totalCarbs": "total_carbs",
    "totalFat": "total_fat",
}

_INGREDIENT_ALIASES = {
    "ingredient": "name",
    "ingredient_name": "name",
    "item": "name",
    "amount": "quantity",
    "qty": "quantity",
    "grams": "quantity",
    "units": "unit",
    "kcal": "calories",
    "cal": "calories",
    "proteins": "protein",
    "protein_g": "protein",
    "carbohydrates": "carbs",
    "carbs_g": "carbs",
    "fats": "fat",
    "fat_g": "fat",
}

ADJUSTED_MEAL: TargetSchema[AdjustedMealResponse] = TargetSchema(
    name="adjusted_meal",
    model=AdjustedMealResponse,
    aliases={
        AdjustedMealResponse: {
            "optimized_meal": "adjustedMeal",
            "optimizedMeal": "adjustedMeal",
            "adjusted_meal": "adjustedMeal",
            "meal": "adjustedMeal",
            "notes": "explanation",
            "reasoning": "explanation",
            "summary": "explanation",
        },
        AdjustedMeal: {
            "meal_name": "name",
            "meal_type": "name",
            "mealName": "name",
            "mealTitle": "custom_name",
            "meal_title": "custom_name",
            "customName": "custom_name",
            **_CAMEL_TOTALS,
        },
        AdjustedIngredient: _INGREDIENT_ALIASES,
    },
    hoists={AdjustedMeal: ("optimized_meal", "optimizedMeal")},
)

WEEKLY_PLAN: TargetSchema[WeeklyPlanResponse] = TargetSchema(
    name="weekly_plan",
    model=WeeklyPlanResponse,
    aliases={
        WeeklyPlanResponse: {
            "weeklyPlan": "weeklyMealPlan",
            "weekly_plan": "weeklyMealPlan",
            "mealPlan": "weeklyMealPlan",
            "days": "weeklyMealPlan",
        },
        GeneratedDay: {
            "day_of_week": "day",
            "dayOfWeek": "day",
            "day_name": "day",
        },
        GeneratedMeal: {
            "mealTitle": "meal_title",
            "title": "meal_title",
            "custom_name": "meal_title",
            "name": "meal_title",
        },
        GeneratedIngredient: _INGREDIENT_ALIASES,
    },
)

MEAL_SUGGESTION: TargetSchema[MealSuggestionResponse] = TargetSchema(
    name="meal_suggestion",
    model=MealSuggestionResponse,
    aliases={
        MealSuggestionResponse: {
            "mealTitle": "meal_title",
            "dish_name": "meal_title",
            "dishName": "meal_title",
            "name": "meal_title",
            "title": "meal_title",
            "summary": "description",
        },
        CandidateIngredient: {
            "ingredient": "name",
            "caloriesPer100g": "calories_per_100g",
            "kcal_per_100g": "calories_per_100g",
            "proteinPer100g": "protein_per_100g",
            "carbsPer100g": "carbs_per_100g",
            "fatPer100g": "fat_per_100g",
        },
    },
)

PLAN_DOCUMENT: TargetSchema[PlanDocument] = TargetSchema(
    name="plan_document",
    model=PlanDocument,
    aliases={
        PlanDocument: {
            "weeklyMealPlan": "days",
            "weekly_meal_plan": "days",
            "weeklySummary": "weekly_summary",
        },
        DocumentDay: {
            "day": "day_of_week",
            "dayOfWeek": "day_of_week",
            "dailyTotals": "daily_totals",
        },
        DocumentMeal: {
            "meal_type": "meal_name",
            "mealType": "meal_name",
            "mealName": "meal_name",
            "name": "meal_name",
            "meal_title": "custom_name",
            "mealTitle": "custom_name",
            "customName": "custom_name",
            **_CAMEL_TOTALS,
        },
        DocumentTotals: {
            "total_calories": "calories",
            "total_protein": "protein",
            "total_carbs": "carbs",
            "total_fat": "fat",
        },
        DocumentSummary: _CAMEL_TOTALS,
    },
    prune_empty=False,
)


def parse_json_text(text: str) -> Any:
    """Parse provider text as JSON, tolerating a surrounding markdown fence."""
    cleaned = text.strip()
    match = _FENCE_PATTERN.match(cleaned)
    if match:
        cleaned = match.group(1)
    if not cleaned:
        raise MalformedResponseError("Provider returned an empty response", text)
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise MalformedResponseError(
            f"Provider response is not valid JSON: {exc.msg}", text
        ) from exc


def validate_and_repair(
    raw: str | Mapping[str, Any], schema: TargetSchema[ModelT]
) -> ValidatedOutput[ModelT]:
    """Validate provider output against a schema, repairing it once if needed."""
    data = parse_json_text(raw) if isinstance(raw, str) else raw
    try:
        value = schema.model.model_validate(data)
    except ValidationError as exc:
        _logger.info(
            "%s output failed strict validation with %d errors, repairing",
            schema.name,
            exc.error_count(),
        )
    else:
        return ValidatedOutput(value=value, repaired=False)

    reshaped = _reshape(data, schema.model, schema)
    try:
        value = schema.model.model_validate(reshaped)
    except ValidationError as exc:
        raise SchemaValidationError(
            schema.name,
            problems=_problems(exc),
            expected=describe_model(schema.model),
            actual=describe_value(data),
        ) from exc
    return ValidatedOutput(value=value, repaired=True)


def describe_model(model: type[BaseModel]) -> dict[str, object]:
    """Return the expected shape of a model as a nested dict of type names."""
    shape: dict[str, object] = {}
    for name, info in model.model_fields.items():
        shape[info.alias or name] = _describe_annotation(info.annotation)
    return shape


def describe_value(value: Any) -> Any:
    """Return the actual shape of parsed JSON as a nested dict of type names."""
    if isinstance(value, Mapping):
        return {str(key): describe_value(item) for key, item in value.items()}
    if isinstance(value, list):
        return [describe_value(value[0])] if value else []
    if value is None:
        return "null"
    return type(value).__name__


def _describe_annotation(annotation: Any) -> Any:
    annotation, optional = _unwrap_optional(annotation)
    if _is_model(annotation):
        return describe_model(annotation)
    if get_origin(annotation) is list:
        (item_type,) = get_args(annotation)
        return [_describe_annotation(item_type)]
    name = getattr(annotation, "__name__", str(annotation))
    return f"{name} | null" if optional else name


def _reshape(value: Any, model: type[BaseModel], schema: TargetSchema) -> Any:
    if not isinstance(value, Mapping):
        return value
    source = dict(value)
    for key in schema.hoists.get(model, ()):
        nested = source.pop(key, None)
        if isinstance(nested, Mapping):
            source.update(nested)

    aliases = schema.aliases.get(model, {})
    renamed = {key: item for key, item in source.items() if key not in aliases}
    for key, item in source.items():
        if key in aliases:
            renamed.setdefault(aliases[key], item)

    result: dict[str, Any] = {}
    for name, info in model.model_fields.items():
        key = info.alias or name
        if key in renamed:
            item = renamed[key]
        elif name in renamed:
            item = renamed[name]
        else:
            item = _MISSING
        if item is _MISSING and not info.is_required():
            continue
        result[key] = _repair_value(item, info.annotation, schema)
    return result


def _repair_value(value: Any, annotation: Any, schema: TargetSchema) -> Any:
    annotation, optional = _unwrap_optional(annotation)
    if value is _MISSING or value is None:
        if optional:
            return None
        return _default_for(annotation, schema)
    if _is_model(annotation):
        return _reshape(value, annotation, schema)
    if get_origin(annotation) is list:
        (item_type,) = get_args(annotation)
        if isinstance(value, Mapping):
            value = [value]
        if not isinstance(value, list):
            return []
        items = [_repair_value(item, item_type, schema) for item in value]
        if schema.prune_empty and _is_model(item_type):
            items = [item for item in items if not _is_hollow(item, item_type)]
        return items
    if annotation in (float, int):
        return _coerce_number(value)
    if annotation is str:
        if isinstance(value, int | float) and not isinstance(value, bool):
            return str(value)
        return value
    return value


def _default_for(annotation: Any, schema: TargetSchema) -> Any:
    if annotation in (float, int):
        return 0
    if annotation is str:
        return ""
    if get_origin(annotation) is list:
        return []
    if _is_model(annotation):
        return _reshape({}, annotation, schema)
    return None


def _coerce_number(value: Any) -> Any:
    if isinstance(value, bool) or not isinstance(value, str):
        return value
    match = _NUMBER_PATTERN.match(value.strip())
    if match is None:
        return value
    return float(match.group())


def _is_hollow(item: Any, model: type[BaseModel]) -> bool:
    """True for list elements that are unusable once repaired.

    An element is hollow when it is not an object or when one of its
    required list fields (a meal's ingredients, a day's meals) is empty.
    """
    if not isinstance(item, Mapping):
        return True
    for name, info in model.model_fields.items():
        if not info.is_required() or get_origin(info.annotation) is not list:
            continue
        if not item.get(info.alias or name):
            return True
    return False


def _unwrap_optional(annotation: Any) -> tuple[Any, bool]:
    if get_origin(annotation) in (Union, UnionType):
        args = [arg for arg in get_args(annotation) if arg is not type(None)]
        if len(args) == 1:
            return args[0], True
    return annotation, False


def _is_model(annotation: Any) -> bool:
    return isinstance(annotation, type) and issubclass(annotation, BaseModel)


def _problems(exc: ValidationError) -> list[str]:
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"]) or "<root>"
        problems.append(f"{location}: {error['msg']}")
    return problems
