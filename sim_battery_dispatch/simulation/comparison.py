"""
Battery comparison across candidate products and rate plans.

Each (battery, rate plan) pair is an independent unit of work: a fresh
dispatch run followed by a financial projection. Units share no mutable
state, so the engine can run them sequentially or fan them out over a
thread pool and join the results in input order.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Sequence

from .battery import BatterySpec
from .dispatch import BatteryDispatchSimulator, DispatchPolicy, DispatchResult
from .financials import (
    ComparisonMetrics,
    FinancialConfig,
    FinancialProjector,
    FirstYearAnalysis,
    MultiYearProjection,
    RebateRule,
)
from .rate_plans import RatePlan
from .usage_profiles import UsageProfile

logger = logging.getLogger(__name__)

NOT_COST_EFFECTIVE_MESSAGE = (
    "Not cost-effective with this usage pattern: consider a smaller battery "
    "or a rate plan with a wider price spread."
)


@dataclass(frozen=True)
class BatteryComparison:
    """
    Outcome of evaluating one battery under one rate plan.

    Instances are immutable and self-contained; :meth:`to_summary` is the
    only serialized form renderers should consume.
    """

    battery: BatterySpec
    rate_plan_id: str
    metrics: ComparisonMetrics
    first_year_analysis: FirstYearAnalysis
    multi_year_projection: MultiYearProjection
    max_payback_years: int = 100

    @property
    def annual_savings(self) -> float:
        return self.first_year_analysis.total_savings

    @property
    def is_cost_effective(self) -> bool:
        payback = self.metrics.payback_years
        return self.first_year_analysis.total_savings > 0 and (
            payback is not None and payback < self.max_payback_years
        )

    @property
    def recommendation(self) -> str | None:
        return None if self.is_cost_effective else NOT_COST_EFFECTIVE_MESSAGE

    def to_summary(self) -> Dict[str, Any]:
        """Flat dictionary of every user-facing number for this comparison."""
        first = self.first_year_analysis
        projection = self.multi_year_projection
        payback = self.metrics.payback_years
        return {
            "battery_id": self.battery.id,
            "battery_name": self.battery.name,
            "rate_plan_id": self.rate_plan_id,
            "usable_kwh": self.battery.usable_kwh,
            "battery_price": projection.battery_price,
            "rebate": projection.rebate,
            "net_cost": projection.net_cost,
            "original_annual_cost": first.original_annual_cost,
            "solar_only_annual_cost": first.solar_only_annual_cost,
            "optimized_annual_cost": first.optimized_annual_cost,
            "annual_savings": first.total_savings,
            "storage_savings": first.storage_savings,
            "cycles_per_year": first.cycles_per_year,
            "total_kwh_shifted": first.total_kwh_shifted,
            "grid_charge_kwh": first.grid_charge_kwh,
            "payback_years": payback,
            "payback_period": "N/A" if payback is None else round(payback, 1),
            "annual_roi": self.metrics.annual_roi,
            "savings_per_dollar_invested": self.metrics.savings_per_dollar_invested,
            "total_savings_25_year": projection.total_savings_25_year,
            "profit_25_year": projection.net_profit_25_year,
            "is_cost_effective": self.is_cost_effective,
            "recommendation": self.recommendation,
        }


@dataclass(frozen=True)
class ComparisonUnit:
    """One independent (battery, rate plan) evaluation."""

    battery: BatterySpec
    rate_plan: RatePlan


def simulate(
    usage_profile: UsageProfile,
    rate_plan: RatePlan,
    battery_spec: BatterySpec,
    *,
    policy: DispatchPolicy | None = None,
    financial_config: FinancialConfig | None = None,
    rebate_rule: RebateRule | None = None,
) -> BatteryComparison:
    """
    Dispatch one battery and project its finances.

    Pure function of its inputs: identical arguments always yield an
    identical BatteryComparison.
    """
    comparison, _ = _run_unit(
        usage_profile,
        ComparisonUnit(battery_spec, rate_plan),
        policy=policy,
        projector=FinancialProjector(financial_config, rebate_rule),
    )
    return comparison


def _run_unit(
    usage_profile: UsageProfile,
    unit: ComparisonUnit,
    *,
    policy: DispatchPolicy | None,
    projector: FinancialProjector,
) -> tuple[BatteryComparison, DispatchResult]:
    dispatch = BatteryDispatchSimulator(unit.rate_plan, policy).simulate(usage_profile, unit.battery)
    first_year = projector.analyze_first_year(usage_profile, dispatch)
    projection = projector.project(first_year, unit.battery)
    comparison = BatteryComparison(
        battery=unit.battery,
        rate_plan_id=unit.rate_plan.id,
        metrics=projector.metrics(first_year, projection),
        first_year_analysis=first_year,
        multi_year_projection=projection,
        max_payback_years=projector.config.max_payback_years,
    )
    if not comparison.is_cost_effective:
        logger.info(
            "%s on %s is not cost-effective (annual savings %.2f)",
            unit.battery.id,
            unit.rate_plan.id,
            first_year.total_savings,
        )
    return comparison, dispatch


class BatteryComparisonEngine:
    """
    Evaluate several batteries (and optionally several rate plans).

    Args:
        policy: Dispatch heuristics shared by every unit.
        financial_config: Projection assumptions.
        rebate_rule: Rebate applied to each battery's price.
        max_workers: Thread count for fan-out; 1 runs sequentially.

    Example:
        ```python
        engine = BatteryComparisonEngine(max_workers=4)
        results = engine.compare(profile, DEFAULT_BATTERIES, [ulo_rate_plan(), tou_rate_plan()])
        best = rank_comparisons(results, by="payback_years")[0]
        ```
    """

    def __init__(
        self,
        *,
        policy: DispatchPolicy | None = None,
        financial_config: FinancialConfig | None = None,
        rebate_rule: RebateRule | None = None,
        max_workers: int = 1,
    ) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be >= 1")
        self.policy = policy or DispatchPolicy()
        self.projector = FinancialProjector(financial_config, rebate_rule)
        self.max_workers = max_workers

    @staticmethod
    def units(batteries: Iterable[BatterySpec], rate_plans: Iterable[RatePlan]) -> List[ComparisonUnit]:
        """Expand batteries x rate plans into units (battery-major order)."""
        plans = list(rate_plans)
        return [ComparisonUnit(battery, plan) for battery in batteries for plan in plans]

    def evaluate(self, usage_profile: UsageProfile, battery: BatterySpec, rate_plan: RatePlan) -> BatteryComparison:
        """Run a single unit of work."""
        comparison, _ = _run_unit(
            usage_profile,
            ComparisonUnit(battery, rate_plan),
            policy=self.policy,
            projector=self.projector,
        )
        return comparison

    def evaluate_with_dispatch(
        self,
        usage_profile: UsageProfile,
        battery: BatterySpec,
        rate_plan: RatePlan,
    ) -> tuple[BatteryComparison, DispatchResult]:
        """Like :meth:`evaluate` but also return the hourly schedule."""
        return _run_unit(
            usage_profile,
            ComparisonUnit(battery, rate_plan),
            policy=self.policy,
            projector=self.projector,
        )

    def compare(
        self,
        usage_profile: UsageProfile,
        batteries: Sequence[BatterySpec],
        rate_plans: RatePlan | Sequence[RatePlan],
        *,
        max_workers: int | None = None,
    ) -> List[BatteryComparison]:
        """
        Evaluate every battery under every rate plan.

        Args:
            usage_profile: Shared, read-only usage series.
            batteries: Candidate batteries.
            rate_plans: One plan or a small set of plans.
            max_workers: Override for the engine's thread count.

        Returns:
            Comparisons in input order (battery-major, then rate plan),
            unsorted.

        Raises:
            ValueError: If no batteries or rate plans are given.
            UnresolvedPeriodError: If a plan leaves a step unpriced.
        """
        plans = [rate_plans] if isinstance(rate_plans, RatePlan) else list(rate_plans)
        if not batteries:
            raise ValueError("At least one battery is required for a comparison")
        if not plans:
            raise ValueError("At least one rate plan is required for a comparison")
        for plan in plans:
            plan.resolve(usage_profile.timestamps)

        units = self.units(batteries, plans)
        workers = min(max_workers or self.max_workers, len(units))
        logger.info(
            "Comparing %d batteries across %d rate plan(s) with %d worker(s)",
            len(batteries),
            len(plans),
            workers,
        )

        def run(unit: ComparisonUnit) -> BatteryComparison:
            comparison, _ = _run_unit(usage_profile, unit, policy=self.policy, projector=self.projector)
            return comparison

        if workers <= 1:
            return [run(unit) for unit in units]
        with ThreadPoolExecutor(max_workers=workers) as executor:
            return list(executor.map(run, units))


RANKING_KEYS = {
    "payback_years": (lambda c: c.metrics.payback_years, False),
    "profit_25_year": (lambda c: c.multi_year_projection.net_profit_25_year, True),
    "annual_savings": (lambda c: c.first_year_analysis.total_savings, True),
    "savings_per_dollar_invested": (lambda c: c.metrics.savings_per_dollar_invested, True),
    "annual_roi": (lambda c: c.metrics.annual_roi, True),
}


def rank_comparisons(comparisons: Iterable[BatteryComparison], by: str = "payback_years") -> List[BatteryComparison]:
    """
    Sort comparisons by a metric, best first; ``None`` values sort last.

    Args:
        comparisons: Results from :meth:`BatteryComparisonEngine.compare`.
        by: One of ``payback_years`` (ascending), ``profit_25_year``,
            ``annual_savings``, ``savings_per_dollar_invested`` or
            ``annual_roi`` (descending).
    """
    try:
        getter, descending = RANKING_KEYS[by]
    except KeyError:
        raise ValueError(f"Unknown ranking metric '{by}'. Available: {sorted(RANKING_KEYS)}") from None
    items = list(comparisons)
    present = [c for c in items if getter(c) is not None]
    missing = [c for c in items if getter(c) is None]
    present.sort(key=getter, reverse=descending)
    return present + missing
