"""
Built-in battery catalog, rebate financials and sizing recommendation.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List

from .simulation.battery import BatterySpec
from .simulation.financials import RebateRule
from .simulation.rate_plans import RatePlan
from .simulation.usage_profiles import UsageProfile

ON_PEAK_COVERAGE_TARGET = 0.9

DEFAULT_BATTERIES: tuple[BatterySpec, ...] = (
    BatterySpec(
        id="renon-16",
        brand="Renon",
        model="16 kWh",
        usable_kwh=14.4,
        nominal_kwh=16.0,
        inverter_kw=5.0,
        round_trip_efficiency=0.90,
        price=8000.0,
        description="LFP home battery, 16 kWh nameplate",
    ),
    BatterySpec(
        id="renon-32",
        brand="Renon",
        model="32 kWh",
        usable_kwh=28.8,
        nominal_kwh=32.0,
        inverter_kw=10.0,
        round_trip_efficiency=0.90,
        price=11000.0,
        description="Two stacked 16 kWh modules",
    ),
    BatterySpec(
        id="tesla-powerwall",
        brand="Tesla",
        model="Powerwall 13.5",
        usable_kwh=12.825,
        nominal_kwh=13.5,
        inverter_kw=5.0,
        round_trip_efficiency=0.92,
        price=17000.0,
        warranty_cycles=3650,
        description="Integrated inverter, 10-year warranty",
    ),
    BatterySpec(
        id="growatt-10",
        brand="Growatt",
        model="10 kWh",
        usable_kwh=9.0,
        nominal_kwh=10.0,
        inverter_kw=5.0,
        round_trip_efficiency=0.90,
        price=10000.0,
    ),
    BatterySpec(
        id="growatt-15",
        brand="Growatt",
        model="15 kWh",
        usable_kwh=13.5,
        nominal_kwh=15.0,
        inverter_kw=5.0,
        round_trip_efficiency=0.90,
        price=13000.0,
    ),
    BatterySpec(
        id="growatt-20",
        brand="Growatt",
        model="20 kWh",
        usable_kwh=18.0,
        nominal_kwh=20.0,
        inverter_kw=5.0,
        round_trip_efficiency=0.90,
        price=16000.0,
    ),
)


def default_catalog() -> Dict[str, BatterySpec]:
    return {spec.id: spec for spec in DEFAULT_BATTERIES}


def get_battery(battery_id: str) -> BatterySpec:
    """
    Look up a built-in battery.

    Raises:
        KeyError: If the id is not in the catalog.
    """
    catalog = default_catalog()
    if battery_id not in catalog:
        raise KeyError(f"Unknown battery '{battery_id}'. Available: {sorted(catalog)}")
    return catalog[battery_id]


@dataclass(frozen=True)
class BatteryFinancials:
    battery_id: str
    price: float
    rebate: float
    net_price: float
    price_per_usable_kwh: float | None


def battery_financials(battery: BatterySpec, rebate_rule: RebateRule | None = None) -> BatteryFinancials:
    """Rebate, net price and net $/usable kWh for a catalog entry."""
    rule = rebate_rule or RebateRule()
    rebate = rule.rebate_for(battery)
    net_price = battery.price - rebate
    per_kwh = net_price / battery.usable_kwh if battery.usable_kwh > 0 else None
    return BatteryFinancials(
        battery_id=battery.id,
        price=battery.price,
        rebate=rebate,
        net_price=net_price,
        price_per_usable_kwh=per_kwh,
    )


def daily_on_peak_usage(profile: UsageProfile, rate_plan: RatePlan) -> float:
    """Average daily consumption during the plan's most expensive period."""
    prices, _, _ = rate_plan.resolve(profile.timestamps)
    consumption = profile.consumption_kwh
    mask = prices >= rate_plan.highest_price - 1e-9
    days = max(profile.duration_hours / 24.0, 1.0)
    return float(consumption[mask].sum() / days)


def recommend_battery(
    daily_on_peak_kwh: float,
    catalog: Iterable[BatterySpec] | None = None,
    *,
    budget: float | None = None,
    rebate_rule: RebateRule | None = None,
) -> BatterySpec | None:
    """
    Pick the battery whose usable capacity best matches on-peak demand.

    The target capacity is 90% of the average daily on-peak consumption.
    With a ``budget``, batteries whose net price (after rebate) exceeds it
    are excluded. Ties prefer the lower net price.

    Returns:
        The closest battery, or ``None`` when nothing fits the budget.
    """
    if daily_on_peak_kwh < 0:
        raise ValueError("daily_on_peak_kwh must be non-negative")
    target = daily_on_peak_kwh * ON_PEAK_COVERAGE_TARGET
    candidates: List[tuple[float, float, BatterySpec]] = []
    for spec in catalog if catalog is not None else DEFAULT_BATTERIES:
        info = battery_financials(spec, rebate_rule)
        if budget is not None and info.net_price > budget:
            continue
        candidates.append((abs(spec.usable_kwh - target), info.net_price, spec))
    if not candidates:
        return None
    candidates.sort(key=lambda item: (item[0], item[1]))
    return candidates[0][2]
