"""FastAPI application factory."""

import dataclasses
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from nutriplan.api.meal_plans import router as meal_plans_router
from nutriplan.api.schemas import MealTargetsRequest, TargetsRequest
from nutriplan.app_logging import configure_logging
from nutriplan.containers import AppContainer
from nutriplan.errors import InvalidRequestError, PersistenceError
from nutriplan.services.distribution import allocate_meal_targets
from nutriplan.services.targets import (
    apply_custom_targets,
    calculate_daily_targets,
    missing_profile_fields,
)


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(meal_plans_router)

    @app.exception_handler(InvalidRequestError)
    async def invalid_request_handler(
        _request: Request, exc: InvalidRequestError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"field": exc.field, "detail": exc.message},
        )

    @app.exception_handler(PersistenceError)
    async def persistence_handler(
        _request: Request, exc: PersistenceError
    ) -> JSONResponse:
        logger.error("Meal plan storage unavailable", exc_info=exc)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"detail": "Meal plan storage is unavailable"},
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post("/targets")
    async def targets(payload: TargetsRequest) -> dict[str, object]:
        """Compute daily targets from a profile and optional overrides."""
        profile = payload.profile.to_domain()
        daily = apply_custom_targets(
            calculate_daily_targets(profile),
            payload.custom_targets.to_domain() if payload.custom_targets else None,
        )
        if daily is None:
            return {
                "available": False,
                "missing_fields": missing_profile_fields(profile),
            }
        return {"available": True, "targets": dataclasses.asdict(daily)}

    @app.post("/meal-targets")
    async def meal_targets(payload: MealTargetsRequest) -> dict[str, object]:
        """Split daily targets across meal slots."""
        distributions = (
            [row.to_domain() for row in payload.distributions]
            if payload.distributions
            else None
        )
        allocated = allocate_meal_targets(
            payload.daily_targets.to_domain(), distributions
        )
        return {"meal_targets": [dataclasses.asdict(row) for row in allocated]}

    return app
