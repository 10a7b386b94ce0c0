"""
Core battery dispatch and projection models.

This package collects all components of the engine:

* Usage profiles and rate plans that describe the household and its tariff.
* Storage physics (`battery`), solar allocation and the hour-by-hour
  dispatch simulator.
* Financial projection and the multi-battery comparison engine.

Higher layers (`application`, FastAPI routes, CLI) import from this single
namespace.
"""

from __future__ import annotations

from .battery import BatteryBank, BatterySpec
from .comparison import (
    BatteryComparison,
    BatteryComparisonEngine,
    ComparisonUnit,
    rank_comparisons,
    simulate,
)
from .dispatch import BatteryDispatchSimulator, DispatchPolicy, DispatchResult, DispatchStep
from .financials import (
    ComparisonMetrics,
    FinancialConfig,
    FinancialProjector,
    FirstYearAnalysis,
    MultiYearProjection,
    RebateRule,
    YearlyProjection,
    compute_payback_years,
)
from .rate_plans import (
    ONTARIO_HOLIDAYS_2025,
    PeriodRule,
    RatePlan,
    flat_rate_plan,
    get_rate_plan,
    list_rate_plans,
    rate_plan_from_mapping,
    tou_rate_plan,
    ulo_rate_plan,
)
from .solar_allocation import SolarAllocation, allocate_solar
from .usage_profiles import (
    LoadShape,
    UsageDataPoint,
    UsageProfile,
    UsageProfileGenerator,
    annual_usage_from_monthly_bill,
    from_interval_data,
    hourly_solar_from_monthly,
    summarize_by_month,
    summarize_by_period,
    with_solar,
)

__all__ = [
    # Inputs
    "UsageDataPoint",
    "UsageProfile",
    "UsageProfileGenerator",
    "LoadShape",
    "annual_usage_from_monthly_bill",
    "from_interval_data",
    "hourly_solar_from_monthly",
    "with_solar",
    "summarize_by_period",
    "summarize_by_month",
    "PeriodRule",
    "RatePlan",
    "ONTARIO_HOLIDAYS_2025",
    "ulo_rate_plan",
    "tou_rate_plan",
    "flat_rate_plan",
    "get_rate_plan",
    "list_rate_plans",
    "rate_plan_from_mapping",
    # Physics + dispatch
    "BatterySpec",
    "BatteryBank",
    "SolarAllocation",
    "allocate_solar",
    "DispatchPolicy",
    "DispatchStep",
    "DispatchResult",
    "BatteryDispatchSimulator",
    # Economics
    "RebateRule",
    "FinancialConfig",
    "FirstYearAnalysis",
    "YearlyProjection",
    "MultiYearProjection",
    "ComparisonMetrics",
    "FinancialProjector",
    "compute_payback_years",
    "BatteryComparison",
    "BatteryComparisonEngine",
    "ComparisonUnit",
    "rank_comparisons",
    "simulate",
]
