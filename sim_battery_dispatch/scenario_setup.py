from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable, List, Mapping

from .catalog import get_battery
from .errors import InvalidUsageError
from .simulation import (
    BatterySpec,
    DispatchPolicy,
    FinancialConfig,
    LoadShape,
    RatePlan,
    RebateRule,
    UsageProfile,
    UsageProfileGenerator,
    from_interval_data,
    get_rate_plan,
    hourly_solar_from_monthly,
    rate_plan_from_mapping,
    with_solar,
)

DEFAULT_SCENARIO_PATH = Path(__file__).resolve().parent / "scenarios" / "ontario_default.json"

ScenarioSource = str | Path | Mapping[str, Any] | None


def load_scenario_data(source: ScenarioSource = None) -> dict[str, Any]:
    """
    Load scenario data from JSON or return the provided mapping.

    Args:
        source: Path to a JSON file, mapping, or None for the bundled default.

    Returns:
        Dictionary containing the scenario configuration.
    """
    if source is None:
        return json.loads(DEFAULT_SCENARIO_PATH.read_text(encoding="utf-8"))
    if isinstance(source, (str, Path)):
        return json.loads(Path(source).read_text(encoding="utf-8"))
    return dict(source)


def build_rate_plans(scenario_data: ScenarioSource = None, plan_ids: List[str] | None = None) -> List[RatePlan]:
    """
    Build the rate plans listed in the scenario.

    Entries are either built-in ids (``"ulo"``, ``"tou"``) or full plan
    mappings. ``plan_ids`` overrides the scenario list.
    """
    data = load_scenario_data(scenario_data)
    entries = plan_ids if plan_ids is not None else data.get("rate_plans", ["ulo"])
    plans: List[RatePlan] = []
    for entry in entries:
        if isinstance(entry, Mapping):
            plans.append(rate_plan_from_mapping(dict(entry)))
        else:
            plans.append(get_rate_plan(str(entry)))
    return plans


def build_usage_profile(scenario_data: ScenarioSource = None, rate_plan: RatePlan | None = None) -> UsageProfile:
    """
    Build the hourly usage profile described by the ``usage`` and ``solar``
    sections.

    Usage accepts exactly one of ``interval_data`` (list of readings),
    ``monthly_kwh`` (12 values), ``monthly_bill`` ($) or ``annual_kwh``.

    Raises:
        InvalidUsageError: If no usage input is given or it is invalid.
    """
    data = load_scenario_data(scenario_data)
    usage = data.get("usage") or {}
    year = int(data.get("year", 2025))
    shape = LoadShape.from_mapping(usage["load_shape"]) if usage.get("load_shape") else None
    generator = UsageProfileGenerator(shape, year=year)
    seasonal = bool(usage.get("seasonal_adjustment", True))

    if usage.get("interval_data"):
        profile = from_interval_data(usage["interval_data"])
    elif usage.get("monthly_kwh") is not None:
        profile = generator.generate_from_monthly(usage["monthly_kwh"], rate_plan)
    elif usage.get("monthly_bill") is not None:
        profile = generator.generate_from_monthly_bill(
            usage["monthly_bill"],
            rate_plan,
            blended_rate=float(usage.get("blended_rate", 0.223)),
            use_seasonal_adjustment=seasonal,
        )
    elif usage.get("annual_kwh") is not None:
        profile = generator.generate_annual(usage["annual_kwh"], rate_plan, use_seasonal_adjustment=seasonal)
    else:
        raise InvalidUsageError(
            "Scenario usage needs one of 'annual_kwh', 'monthly_kwh', 'monthly_bill' or 'interval_data'"
        )

    solar = data.get("solar") or {}
    if solar.get("hourly_kwh") is not None:
        profile = with_solar(profile, solar["hourly_kwh"])
    elif solar.get("monthly_production_kwh") is not None:
        hourly = hourly_solar_from_monthly(solar["monthly_production_kwh"], year)
        if len(hourly) == len(profile):
            profile = with_solar(profile, hourly)
        else:
            raise InvalidUsageError(
                "monthly_production_kwh needs a full-year hourly usage profile; "
                "provide solar.hourly_kwh for interval data"
            )
    return profile


def build_batteries(
    scenario_data: ScenarioSource = None,
    battery_ids: List[str] | None = None,
    lookup: Callable[[str], BatterySpec] = get_battery,
) -> List[BatterySpec]:
    """
    Resolve the scenario's battery list.

    Entries are catalog ids (resolved with ``lookup``) or full battery
    mappings. ``battery_ids`` overrides the scenario list.
    """
    data = load_scenario_data(scenario_data)
    entries = battery_ids if battery_ids is not None else data.get("batteries", [])
    specs: List[BatterySpec] = []
    for entry in entries:
        if isinstance(entry, Mapping):
            specs.append(BatterySpec.from_mapping(entry))
        else:
            specs.append(lookup(str(entry)))
    return specs


def build_dispatch_policy(scenario_data: ScenarioSource = None) -> DispatchPolicy:
    data = load_scenario_data(scenario_data)
    return DispatchPolicy.from_mapping(data.get("dispatch") or {})


def build_financial_config(scenario_data: ScenarioSource = None) -> FinancialConfig:
    data = load_scenario_data(scenario_data)
    return FinancialConfig.from_mapping(data.get("financial") or {})


def build_rebate_rule(scenario_data: ScenarioSource = None) -> RebateRule:
    data = load_scenario_data(scenario_data)
    return RebateRule.from_mapping(data.get("rebate") or {})
