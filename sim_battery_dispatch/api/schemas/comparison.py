"""
Comparison execution schemas for API validation.

Requests carry an optional scenario definition plus overrides; responses
mirror :meth:`BatteryComparison.to_summary`, which is the single source of
every number shown to users.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class ComparisonRequest(BaseModel):
    """
    Request schema for a multi-battery comparison.

    Attributes:
        scenario: Scenario definition (same structure as the bundled JSON).
            None runs the default Ontario scenario.
        rate_plan_ids: Override of the scenario's rate plans (``ulo``, ``tou``).
        battery_ids: Override of the scenario's batteries (catalog ids).
        max_workers: Thread count for the per-battery fan-out.

    Example:
        ```python
        # POST /api/comparison
        {
            "scenario": {"usage": {"annual_kwh": 12000}},
            "rate_plan_ids": ["ulo"],
            "battery_ids": ["renon-16", "tesla-powerwall"]
        }
        ```
    """

    scenario: Optional[Dict[str, Any]] = Field(default=None, description="Scenario definition")
    rate_plan_ids: Optional[List[str]] = Field(default=None, description="Rate plans to evaluate")
    battery_ids: Optional[List[str]] = Field(default=None, description="Catalog batteries to evaluate")
    max_workers: Optional[int] = Field(default=None, ge=1, le=32)


class ComparisonSummary(BaseModel):
    """
    Serialized result of one battery under one rate plan.

    ``payback_years`` is None and ``payback_period`` is ``"N/A"`` when the
    battery never pays for itself; ``annual_roi`` and
    ``savings_per_dollar_invested`` are None when the net cost is not
    positive.
    """

    model_config = ConfigDict(extra="ignore")

    battery_id: str
    battery_name: str
    rate_plan_id: str
    usable_kwh: float
    battery_price: float
    rebate: float
    net_cost: float
    original_annual_cost: float
    solar_only_annual_cost: float
    optimized_annual_cost: float
    annual_savings: float
    storage_savings: float
    cycles_per_year: float
    total_kwh_shifted: float
    grid_charge_kwh: float
    payback_years: Optional[float] = None
    payback_period: Union[float, str]
    annual_roi: Optional[float] = None
    savings_per_dollar_invested: Optional[float] = None
    total_savings_25_year: float
    profit_25_year: float
    is_cost_effective: bool
    recommendation: Optional[str] = None


class ComparisonResponse(BaseModel):
    """Response for ``POST /api/comparison``; comparisons are in input order."""

    scenario: str
    total_consumption_kwh: float
    total_solar_kwh: float
    rate_plans: List[str]
    comparisons: List[ComparisonSummary]
    best: Optional[ComparisonSummary] = None


class RecommendationRequest(BaseModel):
    scenario: Optional[Dict[str, Any]] = None
    rate_plan_id: Optional[str] = None
    budget: Optional[float] = Field(default=None, ge=0)


class RecommendationResponse(BaseModel):
    rate_plan_id: str
    daily_on_peak_kwh: float
    recommended_battery: Optional[Dict[str, Any]] = None
