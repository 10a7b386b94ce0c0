from .calendar_utils import MONTH_LENGTHS, build_hourly_calendar
from .catalog import DEFAULT_BATTERIES, battery_financials, get_battery, recommend_battery
from .errors import InvalidUsageError, UnresolvedPeriodError
from .simulation import (
    BatteryBank,
    BatteryComparison,
    BatteryComparisonEngine,
    BatteryDispatchSimulator,
    BatterySpec,
    ComparisonMetrics,
    DispatchPolicy,
    DispatchResult,
    DispatchStep,
    FinancialConfig,
    FinancialProjector,
    FirstYearAnalysis,
    LoadShape,
    MultiYearProjection,
    PeriodRule,
    RatePlan,
    RebateRule,
    UsageDataPoint,
    UsageProfile,
    UsageProfileGenerator,
    allocate_solar,
    flat_rate_plan,
    from_interval_data,
    get_rate_plan,
    hourly_solar_from_monthly,
    rank_comparisons,
    simulate,
    tou_rate_plan,
    ulo_rate_plan,
)
from .result_builder import ResultBuilder
from .application import SimulationApplication

__all__ = [
    "MONTH_LENGTHS",
    "build_hourly_calendar",
    "InvalidUsageError",
    "UnresolvedPeriodError",
    "UsageDataPoint",
    "UsageProfile",
    "UsageProfileGenerator",
    "LoadShape",
    "from_interval_data",
    "hourly_solar_from_monthly",
    "PeriodRule",
    "RatePlan",
    "ulo_rate_plan",
    "tou_rate_plan",
    "flat_rate_plan",
    "get_rate_plan",
    "BatterySpec",
    "BatteryBank",
    "allocate_solar",
    "DispatchPolicy",
    "DispatchStep",
    "DispatchResult",
    "BatteryDispatchSimulator",
    "RebateRule",
    "FinancialConfig",
    "FirstYearAnalysis",
    "MultiYearProjection",
    "ComparisonMetrics",
    "FinancialProjector",
    "BatteryComparison",
    "BatteryComparisonEngine",
    "rank_comparisons",
    "simulate",
    "DEFAULT_BATTERIES",
    "get_battery",
    "battery_financials",
    "recommend_battery",
    "ResultBuilder",
    "SimulationApplication",
]
