from __future__ import annotations

from fastapi import APIRouter, HTTPException

from ...simulation.rate_plans import get_rate_plan, list_rate_plans
from ..schemas import rate_plans as plan_schemas

router = APIRouter(prefix="/api", tags=["rate-plans"])


@router.get("/rate-plans", response_model=list[plan_schemas.RatePlanResponse])
def list_plans() -> list[plan_schemas.RatePlanResponse]:
    """List the built-in rate plans with their priced periods."""
    return [plan_schemas.RatePlanResponse(**plan.to_summary()) for plan in list_rate_plans()]


@router.get("/rate-plans/{plan_id}", response_model=plan_schemas.RatePlanResponse)
def get_plan(plan_id: str) -> plan_schemas.RatePlanResponse:
    try:
        plan = get_rate_plan(plan_id)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=f"Rate plan '{plan_id}' not found") from exc
    return plan_schemas.RatePlanResponse(**plan.to_summary())
