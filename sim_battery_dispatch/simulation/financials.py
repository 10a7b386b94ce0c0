"""
First-year cost analysis and multi-year financial projection.

The projector turns a :class:`DispatchResult` into costs before and after
the battery, then escalates the first-year savings over the analysis
horizon to derive payback, ROI and lifetime profit. Every ratio that would
divide by a non-positive net cost short-circuits to ``None`` so that no
NaN or infinity reaches a renderer.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Mapping, Tuple

import numpy as np

from ..calendar_utils import hours_in_year
from .battery import BatterySpec
from .dispatch import DispatchResult
from .usage_profiles import UsageProfile

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RebateRule:
    """
    Utility storage rebate: ``per_kwh * nominal_kwh``, capped at ``cap``.

    Attributes:
        per_kwh: Rebate dollars per nominal kWh.
        cap: Maximum rebate in dollars.
    """

    per_kwh: float = 300.0
    cap: float = 5000.0

    def __post_init__(self) -> None:
        if self.per_kwh < 0 or self.cap < 0:
            raise ValueError("Rebate parameters must be non-negative")

    def rebate_for(self, battery: BatterySpec) -> float:
        return min((battery.nominal_kwh or 0.0) * self.per_kwh, self.cap)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "RebateRule":
        return cls(
            per_kwh=float(data.get("per_kwh", 300.0)),
            cap=float(data.get("cap", 5000.0)),
        )


@dataclass
class FinancialConfig:
    """
    Economic assumptions for the projection.

    Attributes:
        escalation_rate: Annual electricity price escalation (0.05 = 5%).
        years: Projection horizon in years.
        max_payback_years: Horizon searched for payback before giving up.
    """

    escalation_rate: float = 0.05
    years: int = 25
    max_payback_years: int = 100

    def __post_init__(self) -> None:
        if self.escalation_rate <= -1.0:
            raise ValueError("escalation_rate must be greater than -1")
        if self.years < 1:
            raise ValueError("years must be >= 1")
        if self.max_payback_years < self.years:
            raise ValueError("max_payback_years must be >= years")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "FinancialConfig":
        return cls(
            escalation_rate=float(data.get("escalation_rate", 0.05)),
            years=int(data.get("years", 25)),
            max_payback_years=int(data.get("max_payback_years", 100)),
        )


@dataclass(frozen=True)
class FirstYearAnalysis:
    """
    First-year costs before and after the battery ($, annualized).

    Attributes:
        original_annual_cost: Grid cost of the raw consumption, no solar or
            battery.
        solar_only_annual_cost: Cost with solar but no battery.
        optimized_annual_cost: Cost with solar and the dispatched battery,
            including grid energy used for charging, net of export credits.
        total_savings: ``original - optimized``.
        storage_savings: ``solar_only - optimized``; what the battery adds.
        cycles_per_year: Equivalent full cycles.
        total_kwh_shifted: Energy delivered by the battery.
        grid_charge_kwh: Energy drawn from the grid to charge.
        export_credit: Value of exported solar.
        active_days: Days on which the battery discharged.
    """

    original_annual_cost: float
    solar_only_annual_cost: float
    optimized_annual_cost: float
    total_savings: float
    storage_savings: float
    cycles_per_year: float
    total_kwh_shifted: float
    grid_charge_kwh: float
    export_credit: float
    active_days: int


@dataclass(frozen=True)
class YearlyProjection:
    year: int
    rate_multiplier: float
    annual_savings: float
    cumulative_savings: float


@dataclass(frozen=True)
class MultiYearProjection:
    """
    Escalated savings over the projection horizon.

    ``payback_years`` is fractional (linear interpolation inside the year
    the cumulative savings cross the net cost), so ``ceil(payback_years)``
    is the first whole year in which the battery has paid for itself.
    ``None`` means it never does within ``max_payback_years``.
    """

    battery_price: float
    rebate: float
    net_cost: float
    total_savings_25_year: float
    net_profit_25_year: float
    payback_years: float | None
    yearly: Tuple[YearlyProjection, ...]


@dataclass(frozen=True)
class ComparisonMetrics:
    """Investment ratios; ``None`` marks a value that is not meaningful."""

    payback_years: float | None
    annual_roi: float | None
    savings_per_dollar_invested: float | None


def _solar_only_cost(profile: UsageProfile, prices: np.ndarray, credits: np.ndarray) -> float:
    consumption = profile.consumption_kwh
    solar = profile.solar_kwh
    imported = np.clip(consumption - solar, 0.0, None)
    exported = np.clip(solar - consumption, 0.0, None)
    return float(np.dot(imported, prices) - np.dot(exported, credits))


def _annualization_factor(profile: UsageProfile, dispatch: DispatchResult) -> float:
    """Scale a profile shorter or longer than one year to a single year."""
    first = profile.points[0].timestamp
    year_hours = hours_in_year(first.year)
    duration = profile.duration_hours
    if abs(duration - year_hours) <= dispatch.step_hours / 2:
        return 1.0
    factor = year_hours / duration
    logger.info("Profile covers %.0f hours; annualizing results by x%.2f", duration, factor)
    return factor


def compute_payback_years(
    net_cost: float,
    first_year_savings: float,
    escalation_rate: float,
    max_years: int = 100,
) -> float | None:
    """
    Fractional year at which cumulative escalated savings reach ``net_cost``.

    Args:
        net_cost: Investment after rebates ($).
        first_year_savings: Savings in year 1 ($).
        escalation_rate: Annual growth of savings.
        max_years: Search horizon.

    Returns:
        Payback in years (0.0 when nothing is owed), or ``None`` when the
        savings never cover the cost within ``max_years``.
    """
    if net_cost <= 0:
        return 0.0
    if first_year_savings <= 0:
        return None
    cumulative = 0.0
    for year in range(1, max_years + 1):
        annual = first_year_savings * (1.0 + escalation_rate) ** (year - 1)
        previous = cumulative
        cumulative += annual
        if cumulative >= net_cost:
            fraction = (net_cost - previous) / annual if annual > 0 else 1.0
            return year - 1 + fraction
    return None


class FinancialProjector:
    """
    Aggregate dispatch results into costs, savings and investment metrics.

    Example:
        ```python
        projector = FinancialProjector(FinancialConfig(escalation_rate=0.05))
        first_year = projector.analyze_first_year(profile, dispatch)
        projection = projector.project(first_year, battery)
        metrics = projector.metrics(first_year, projection)
        ```
    """

    def __init__(self, config: FinancialConfig | None = None, rebate_rule: RebateRule | None = None) -> None:
        self.config = config or FinancialConfig()
        self.rebate_rule = rebate_rule or RebateRule()

    def analyze_first_year(self, profile: UsageProfile, dispatch: DispatchResult) -> FirstYearAnalysis:
        """
        Price the baseline, solar-only and battery-dispatched scenarios.

        Args:
            profile: Usage profile the dispatch ran on.
            dispatch: Dispatch schedule (carries the per-step prices).

        Returns:
            FirstYearAnalysis scaled to a full year.
        """
        if len(dispatch.steps) != len(profile):
            raise ValueError("Dispatch result does not match the usage profile length")
        prices = np.array([step.price_per_kwh for step in dispatch.steps], dtype=float)
        credits = np.array([step.export_credit_per_kwh for step in dispatch.steps], dtype=float)
        grid_import = np.array([step.grid_import_kwh for step in dispatch.steps], dtype=float)
        exported = np.array([step.solar_exported for step in dispatch.steps], dtype=float)

        original = float(np.dot(profile.consumption_kwh, prices))
        solar_only = _solar_only_cost(profile, prices, credits)
        export_credit = float(np.dot(exported, credits))
        optimized = float(np.dot(grid_import, prices)) - export_credit

        factor = _annualization_factor(profile, dispatch)
        original *= factor
        solar_only *= factor
        optimized *= factor
        return FirstYearAnalysis(
            original_annual_cost=original,
            solar_only_annual_cost=solar_only,
            optimized_annual_cost=optimized,
            total_savings=original - optimized,
            storage_savings=solar_only - optimized,
            cycles_per_year=dispatch.equivalent_cycles * factor,
            total_kwh_shifted=dispatch.total_kwh_shifted * factor,
            grid_charge_kwh=dispatch.grid_charge_kwh * factor,
            export_credit=export_credit * factor,
            active_days=min(int(round(dispatch.active_days * factor)), 366),
        )

    def project(
        self,
        first_year: FirstYearAnalysis,
        battery: BatterySpec,
        *,
        rebate: float | None = None,
    ) -> MultiYearProjection:
        """
        Escalate first-year savings over the configured horizon.

        Args:
            first_year: Result of :meth:`analyze_first_year`.
            battery: Battery whose price is being recovered.
            rebate: Override for the rebate; defaults to the rebate rule.

        Returns:
            MultiYearProjection with per-year rows.
        """
        cfg = self.config
        rebate_value = self.rebate_rule.rebate_for(battery) if rebate is None else rebate
        net_cost = battery.price - rebate_value

        yearly = []
        cumulative = 0.0
        for year in range(1, cfg.years + 1):
            multiplier = (1.0 + cfg.escalation_rate) ** (year - 1)
            annual = first_year.total_savings * multiplier
            cumulative += annual
            yearly.append(
                YearlyProjection(
                    year=year,
                    rate_multiplier=multiplier,
                    annual_savings=annual,
                    cumulative_savings=cumulative,
                )
            )

        if first_year.storage_savings <= 0:
            # Solar-only savings do not recover a battery's cost.
            payback = None
        else:
            payback = compute_payback_years(
                net_cost,
                first_year.total_savings,
                cfg.escalation_rate,
                cfg.max_payback_years,
            )
        return MultiYearProjection(
            battery_price=battery.price,
            rebate=rebate_value,
            net_cost=net_cost,
            total_savings_25_year=cumulative,
            net_profit_25_year=cumulative - net_cost,
            payback_years=payback,
            yearly=tuple(yearly),
        )

    def metrics(self, first_year: FirstYearAnalysis, projection: MultiYearProjection) -> ComparisonMetrics:
        net_cost = projection.net_cost
        if net_cost <= 0:
            roi = None
            per_dollar = None
        else:
            roi = first_year.total_savings / net_cost * 100.0
            per_dollar = projection.total_savings_25_year / net_cost
        for value in (roi, per_dollar, projection.payback_years):
            if value is not None and not math.isfinite(value):
                raise ArithmeticError("Non-finite financial metric produced")
        return ComparisonMetrics(
            payback_years=projection.payback_years,
            annual_roi=roi,
            savings_per_dollar_invested=per_dollar,
        )
