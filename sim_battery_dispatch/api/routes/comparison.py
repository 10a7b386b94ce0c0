"""
Comparison execution API endpoints.

Runs the dispatch + projection engine for a scenario and returns one
serialized comparison per (battery, rate plan) pair. Invalid usage input
maps to HTTP 422, unknown catalog ids to HTTP 404.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from ...application import SimulationApplication
from ...errors import InvalidUsageError
from .. import dependencies
from ..schemas import comparison as cmp_schemas

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["comparison"])


@router.post("/comparison", response_model=cmp_schemas.ComparisonResponse)
def run_comparison(
    payload: cmp_schemas.ComparisonRequest,
    app_service: SimulationApplication = Depends(dependencies.get_application_service),
) -> cmp_schemas.ComparisonResponse:
    """
    Compare batteries for the submitted scenario.

    Args:
        payload: Scenario plus optional rate plan / battery overrides.
        app_service: Application orchestrator (dependency injected).

    Returns:
        ComparisonResponse with comparisons in input order (unsorted) and
        the best cost-effective entry by payback.

    Raises:
        HTTPException 422: Invalid usage input or scenario values.
        HTTPException 404: Unknown battery or rate plan id.
    """
    try:
        summary = app_service.run_comparison(
            scenario_data=payload.scenario,
            rate_plan_ids=payload.rate_plan_ids,
            battery_ids=payload.battery_ids,
            max_workers=payload.max_workers,
        )
    except InvalidUsageError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=str(exc.args[0]) if exc.args else "Not found") from exc
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return cmp_schemas.ComparisonResponse(**summary)


@router.post("/recommendation", response_model=cmp_schemas.RecommendationResponse)
def recommend_battery(
    payload: cmp_schemas.RecommendationRequest,
    app_service: SimulationApplication = Depends(dependencies.get_application_service),
) -> cmp_schemas.RecommendationResponse:
    """
    Recommend the catalog battery closest to 90% of daily on-peak usage,
    optionally within a net-price budget.
    """
    try:
        result = app_service.recommend(
            scenario_data=payload.scenario,
            rate_plan_id=payload.rate_plan_id,
            budget=payload.budget,
        )
    except InvalidUsageError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=str(exc.args[0]) if exc.args else "Not found") from exc
    return cmp_schemas.RecommendationResponse(**result)
