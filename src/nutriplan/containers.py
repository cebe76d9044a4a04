"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from nutriplan.adapters.gemini_generation_client import HttpxGeminiClient
from nutriplan.adapters.openai_generation_client import OpenAIGenerationClient
from nutriplan.adapters.supabase_auth_client import AuthClient, SupabaseAuthClient
from nutriplan.adapters.supabase_plan_repository import SupabasePlanRepository
from nutriplan.config import Settings, parse_provider_order
from nutriplan.services.generation import GenerationClient, GenerationService
from nutriplan.services.planner import MealPlannerService
from nutriplan.services.plans import PlanStoreService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    planner_service: MealPlannerService
    plan_store_service: PlanStoreService
    auth_client: AuthClient
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    plan_repository = SupabasePlanRepository(
        supabase_client, table_name=resolved_settings.meal_plans_table
    )
    gemini_client = HttpxGeminiClient.create(
        api_key=resolved_settings.gemini_api_key,
        model=resolved_settings.gemini_model,
        base_url=resolved_settings.gemini_base_url,
    )
    openai_client = OpenAIGenerationClient.create(
        api_key=resolved_settings.openai_api_key,
        model=resolved_settings.openai_model,
    )
    available: dict[str, GenerationClient] = {
        "gemini": gemini_client,
        "openai": openai_client,
    }
    generation_service = GenerationService(
        clients=[
            available[name]
            for name in parse_provider_order(resolved_settings.primary_provider)
        ],
        rate_limit_retries=resolved_settings.rate_limit_retries,
        rate_limit_backoff_seconds=resolved_settings.rate_limit_backoff_seconds,
    )
    planner_service = MealPlannerService(
        generation=generation_service,
        week_timeout_seconds=resolved_settings.week_generation_timeout_seconds,
        meal_timeout_seconds=resolved_settings.meal_generation_timeout_seconds,
        max_batch_meals=resolved_settings.max_batch_meals,
    )

    async def close_resources() -> None:
        await gemini_client.close()
        await openai_client.close()

    return AppContainer(
        settings=resolved_settings,
        planner_service=planner_service,
        plan_store_service=PlanStoreService(plan_repository),
        auth_client=SupabaseAuthClient(supabase_client),
        close_resources=close_resources,
    )
