"""Supabase repository for weekly meal plans."""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from postgrest.exceptions import APIError
from supabase import Client

from nutriplan.domain.meals import WeeklyMealPlan
from nutriplan.errors import MalformedResponseError, PersistenceError
from nutriplan.services.plans import (
    PlanRepository,
    plan_from_document,
    plan_to_document,
)

_logger = logging.getLogger(__name__)


@dataclass
class SupabasePlanRepository(PlanRepository):
    """Supabase implementation storing one plan document per user."""

    client: Client
    table_name: str = "meal_plans"

    def get(self, user_id: UUID) -> WeeklyMealPlan | None:
        """Return the stored plan for a user."""
        try:
            response = (
                self.client.table(self.table_name)
                .select("ai_plan")
                .eq("user_id", str(user_id))
                .limit(1)
                .execute()
            )
        except APIError as exc:
            _logger.error("Failed to load meal plan for %s: %s", user_id, exc.message)
            raise PersistenceError(f"Failed to load meal plan: {exc.message}") from exc
        if not response.data:
            return None
        document = response.data[0].get("ai_plan")
        if not document:
            return None
        try:
            return plan_from_document(document)
        except MalformedResponseError as exc:
            raise PersistenceError(f"Stored meal plan is unreadable: {exc}") from exc

    def upsert(self, user_id: UUID, plan: WeeklyMealPlan) -> None:
        """Insert or replace the user's plan document."""
        try:
            self.client.table(self.table_name).upsert(
                {
                    "user_id": str(user_id),
                    "ai_plan": plan_to_document(plan),
                    "updated_at": datetime.now(tz=UTC).isoformat(),
                },
                on_conflict="user_id",
            ).execute()
        except APIError as exc:
            _logger.error("Failed to save meal plan for %s: %s", user_id, exc.message)
            raise PersistenceError(f"Failed to save meal plan: {exc.message}") from exc
