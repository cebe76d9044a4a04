"""Shared test fixtures."""

import asyncio
import json
from dataclasses import dataclass, field
from uuid import UUID, uuid4

import pytest

from nutriplan.adapters.supabase_auth_client import AuthClient
from nutriplan.config import Settings
from nutriplan.containers import AppContainer
from nutriplan.domain.meals import DAYS_OF_WEEK, Ingredient, Meal, WeeklyMealPlan
from nutriplan.domain.targets import MealTarget
from nutriplan.errors import PersistenceError
from nutriplan.services.generation import (
    FailureKind,
    GenerationClient,
    GenerationResult,
    GenerationService,
)
from nutriplan.services.planner import MealPlannerService
from nutriplan.services.plans import PlanRepository, PlanStoreService

USER_ID = UUID("5b3f0c1e-8a4d-4f59-9d0a-2f6b7c8d9e10")
ACCESS_TOKEN = "valid-token"


@dataclass
class InMemoryPlanRepository(PlanRepository):
    """In-memory plan repository for tests."""

    plans: dict[UUID, WeeklyMealPlan] = field(default_factory=dict)
    upserts: list[UUID] = field(default_factory=list)
    fail: bool = False

    def get(self, user_id: UUID) -> WeeklyMealPlan | None:
        if self.fail:
            raise PersistenceError("database unavailable")
        return self.plans.get(user_id)

    def upsert(self, user_id: UUID, plan: WeeklyMealPlan) -> None:
        if self.fail:
            raise PersistenceError("database unavailable")
        self.plans[user_id] = plan
        self.upserts.append(user_id)


@dataclass
class ScriptedGenerationClient(GenerationClient):
    """Generation client replaying scripted results in order.

    Strings are returned as successful response text. When the script runs
    out, every further call fails with a server error.
    """

    name: str = "gemini"
    script: list[GenerationResult | str] = field(default_factory=list)
    prompts: list[str] = field(default_factory=list)
    schemas: list[dict[str, object] | None] = field(default_factory=list)
    delay_seconds: float = 0.0

    async def generate(
        self,
        prompt: str,
        *,
        schema: dict[str, object] | None,
        timeout_seconds: float,
    ) -> GenerationResult:
        self.prompts.append(prompt)
        self.schemas.append(schema)
        if self.delay_seconds:
            await asyncio.sleep(self.delay_seconds)
        if not self.script:
            return GenerationResult.failed(
                self.name, FailureKind.SERVER_ERROR, status_code=500
            )
        item = self.script.pop(0)
        if isinstance(item, str):
            return GenerationResult.success(self.name, item)
        return item

    def fail_with(self, failure: FailureKind, status_code: int | None = None) -> None:
        self.script.append(
            GenerationResult.failed(self.name, failure, status_code=status_code)
        )


@dataclass
class FakeAuthClient(AuthClient):
    """Auth client accepting a fixed set of tokens."""

    tokens: dict[str, UUID] = field(default_factory=lambda: {ACCESS_TOKEN: USER_ID})

    def current_user_id(self, access_token: str) -> UUID | None:
        return self.tokens.get(access_token)


async def no_sleep(_seconds: float) -> None:
    return None


def sample_meal(name: str = "Lunch") -> Meal:
    """Two-ingredient meal totalling 200 kcal."""
    return Meal(
        name=name,
        custom_name="Chicken and Rice",
        ingredients=[
            Ingredient(
                name="Chicken breast",
                quantity=60,
                unit="g",
                calories=120,
                protein=18.6,
                carbs=0,
                fat=2.2,
            ),
            Ingredient(
                name="Cooked rice",
                quantity=60,
                unit="g",
                calories=80,
                protein=1.6,
                carbs=17.4,
                fat=0.2,
            ),
        ],
        total_calories=200,
        total_protein=20.2,
        total_carbs=17.4,
        total_fat=2.4,
    )


def sample_meal_targets() -> list[MealTarget]:
    return [
        MealTarget(meal_name="Breakfast", calories=500, protein=35, carbs=55, fat=15),
        MealTarget(meal_name="Lunch", calories=700, protein=50, carbs=70, fat=22),
        MealTarget(meal_name="Dinner", calories=600, protein=45, carbs=50, fat=20),
    ]


def weekly_plan_payload(
    meal_targets: list[MealTarget], days: tuple[str, ...] = DAYS_OF_WEEK
) -> dict[str, object]:
    """A well-formed weekly response with one ingredient per meal."""
    return {
        "weeklyMealPlan": [
            {
                "day": day,
                "meals": [
                    {
                        "meal_title": f"{day} {target.meal_name}",
                        "ingredients": [
                            {
                                "name": "Chicken bowl",
                                "calories": target.calories,
                                "protein": target.protein,
                                "carbs": target.carbs,
                                "fat": target.fat,
                            }
                        ],
                    }
                    for target in meal_targets
                ],
            }
            for day in days
        ]
    }


def adjusted_meal_payload(meal: Meal, factor: float) -> dict[str, object]:
    """A well-formed adjustment response scaling every ingredient."""
    ingredients = [
        {
            "name": item.name,
            "quantity": round(item.quantity * factor, 1),
            "unit": item.unit,
            "calories": round(item.calories * factor),
            "protein": round(item.protein * factor, 1),
            "carbs": round(item.carbs * factor, 1),
            "fat": round(item.fat * factor, 1),
        }
        for item in meal.ingredients
    ]
    return {
        "adjustedMeal": {
            "name": meal.name,
            "custom_name": meal.custom_name,
            "ingredients": ingredients,
            "total_calories": 9999,
            "total_protein": 0,
            "total_carbs": 0,
            "total_fat": 0,
        },
        "explanation": "Scaled portions.",
    }


def as_text(payload: dict[str, object]) -> str:
    return json.dumps(payload)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="service-key",
        openai_api_key="openai-key",
        gemini_api_key="gemini-key",
    )


@pytest.fixture
def gemini_client() -> ScriptedGenerationClient:
    return ScriptedGenerationClient(name="gemini")


@pytest.fixture
def openai_client() -> ScriptedGenerationClient:
    return ScriptedGenerationClient(name="openai")


@pytest.fixture
def generation_service(
    gemini_client: ScriptedGenerationClient,
    openai_client: ScriptedGenerationClient,
) -> GenerationService:
    return GenerationService(
        clients=[gemini_client, openai_client],
        rate_limit_retries=2,
        rate_limit_backoff_seconds=2.0,
        sleep=no_sleep,
    )


@pytest.fixture
def planner_service(generation_service: GenerationService) -> MealPlannerService:
    return MealPlannerService(
        generation=generation_service,
        week_timeout_seconds=5,
        meal_timeout_seconds=5,
        max_batch_meals=10,
    )


@pytest.fixture
def plan_repository() -> InMemoryPlanRepository:
    return InMemoryPlanRepository()


@pytest.fixture
def container(
    settings: Settings,
    planner_service: MealPlannerService,
    plan_repository: InMemoryPlanRepository,
) -> AppContainer:
    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        planner_service=planner_service,
        plan_store_service=PlanStoreService(plan_repository),
        auth_client=FakeAuthClient(),
        close_resources=close_resources,
    )


@pytest.fixture
def other_user_id() -> UUID:
    return uuid4()
