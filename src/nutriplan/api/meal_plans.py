"""Authenticated meal plan endpoints."""

from __future__ import annotations

import dataclasses
from typing import TYPE_CHECKING
from uuid import UUID  # noqa: TC003

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

from nutriplan.api.schemas import (
    AdjustMealRequest,
    BatchOptimizationRequest,
    CustomTargetsPayload,
    GeneratePlanRequest,
    MealDistributionPayload,
    MealSuggestionRequest,
    ProfilePayload,
    UpdateMealRequest,
)
from nutriplan.domain.meals import MealAdjustmentResult
from nutriplan.domain.targets import DailyTargets, MealDistribution
from nutriplan.errors import InvalidRequestError
from nutriplan.services.distribution import allocate_meal_targets, meal_target_for
from nutriplan.services.planner import MealOptimizationRequest
from nutriplan.services.plans import merge_meal_into_plan, plan_to_document
from nutriplan.services.targets import (
    apply_custom_targets,
    calculate_daily_targets,
    missing_profile_fields,
)

if TYPE_CHECKING:
    from nutriplan.containers import AppContainer

router = APIRouter(tags=["meal-plans"])

_BEARER_PREFIX = "bearer "


async def require_user(
    request: Request, authorization: str | None = Header(default=None)
) -> UUID:
    """Resolve the bearer token to a user id or reject the request."""
    container: AppContainer = request.app.state.container
    if not authorization or not authorization.lower().startswith(_BEARER_PREFIX):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)
    token = authorization[len(_BEARER_PREFIX) :].strip()
    user_id = container.auth_client.current_user_id(token)
    if user_id is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)
    return user_id


@router.get("/meal-plan")
async def get_meal_plan(
    request: Request,
    user_id: UUID = Depends(require_user),
) -> dict[str, object]:
    """Return the stored weekly plan."""
    container: AppContainer = request.app.state.container
    plan = container.plan_store_service.load(user_id)
    if plan is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
    return {"plan": plan_to_document(plan)}


@router.post("/meal-plan/generate")
async def generate_meal_plan(
    payload: GeneratePlanRequest,
    request: Request,
    user_id: UUID = Depends(require_user),
) -> dict[str, object]:
    """Generate a weekly plan and store it."""
    container: AppContainer = request.app.state.container
    profile = payload.profile.to_domain()
    if payload.meal_targets:
        meal_targets = [target.to_meal_target() for target in payload.meal_targets]
    else:
        daily = _daily_targets(payload.profile, payload.custom_targets)
        meal_targets = allocate_meal_targets(
            daily, _distributions(payload.distributions)
        )
    result = await container.planner_service.generate_weekly_plan(
        profile, meal_targets
    )
    plan = container.plan_store_service.save(user_id, result.plan)
    return {
        "plan": plan_to_document(plan),
        "provider": result.provider,
        "is_fallback": result.is_fallback,
        "fallback_reason": result.fallback_reason,
        "fallback_meals": result.fallback_meals,
    }


@router.post("/meal-plan/adjust-meal")
async def adjust_meal(
    payload: AdjustMealRequest,
    request: Request,
    user_id: UUID = Depends(require_user),
) -> dict[str, object]:
    """Adjust one meal of the stored plan to its target and store the result."""
    container: AppContainer = request.app.state.container
    plan = container.plan_store_service.load(user_id)
    if plan is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
    if not 0 <= payload.day_index < len(plan.days):
        raise InvalidRequestError("day_index", "out of range")
    day = plan.days[payload.day_index]
    if not 0 <= payload.meal_index < len(day.meals):
        raise InvalidRequestError("meal_index", "out of range")
    meal = day.meals[payload.meal_index]
    if payload.target is not None:
        target = payload.target.to_domain()
    else:
        daily = _daily_targets(payload.profile, payload.custom_targets)
        target = meal_target_for(
            meal.name, daily, _distributions(payload.distributions)
        ).macros
    result = await container.planner_service.adjust_single_meal(
        meal, target, payload.profile.to_domain()
    )
    merged = merge_meal_into_plan(
        plan, payload.day_index, payload.meal_index, result.meal
    )
    container.plan_store_service.save(user_id, merged)
    return {
        "plan": plan_to_document(merged),
        "result": _result_payload(result),
    }


@router.put("/meal-plan/days/{day_index}/meals/{meal_index}")
async def update_meal(
    day_index: int,
    meal_index: int,
    payload: UpdateMealRequest,
    request: Request,
    user_id: UUID = Depends(require_user),
) -> dict[str, object]:
    """Replace one meal of the stored plan with an edited version."""
    container: AppContainer = request.app.state.container
    plan = container.plan_store_service.replace_meal(
        user_id, day_index, meal_index, payload.meal.to_domain()
    )
    return {"plan": plan_to_document(plan)}


@router.post("/meal-optimization/batch")
async def optimize_batch(
    payload: BatchOptimizationRequest,
    request: Request,
    _user_id: UUID = Depends(require_user),
) -> dict[str, object]:
    """Adjust up to the configured number of meals in one request."""
    container: AppContainer = request.app.state.container
    profile = payload.profile.to_domain()
    results = await container.planner_service.optimize_batch(
        [
            MealOptimizationRequest(
                meal=item.meal.to_domain(),
                target=item.target.to_domain(),
                profile=profile,
            )
            for item in payload.meals
        ]
    )
    return {"results": [_result_payload(result) for result in results]}


@router.post("/meal-suggestions")
async def suggest_meal(
    payload: MealSuggestionRequest,
    request: Request,
    _user_id: UUID = Depends(require_user),
) -> dict[str, object]:
    """Suggest one dish sized to the target."""
    container: AppContainer = request.app.state.container
    result = await container.planner_service.suggest_meal(
        payload.meal_name, payload.target.to_domain(), payload.profile.to_domain()
    )
    return {"result": _result_payload(result)}


def _daily_targets(
    profile: ProfilePayload, custom: CustomTargetsPayload | None
) -> DailyTargets:
    domain_profile = profile.to_domain()
    daily = apply_custom_targets(
        calculate_daily_targets(domain_profile),
        custom.to_domain() if custom else None,
    )
    if daily is None:
        missing = ", ".join(missing_profile_fields(domain_profile))
        raise InvalidRequestError("profile", f"missing or invalid fields: {missing}")
    return daily


def _distributions(
    payload: list[MealDistributionPayload] | None,
) -> list[MealDistribution] | None:
    if not payload:
        return None
    return [row.to_domain() for row in payload]


def _result_payload(result: MealAdjustmentResult) -> dict[str, object]:
    return {
        "meal": dataclasses.asdict(result.meal),
        "explanation": result.explanation,
        "status": result.status,
        "provider": result.provider,
        "is_fallback": result.is_fallback,
        "fallback_reason": result.fallback_reason,
    }

