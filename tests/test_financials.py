import math
from datetime import datetime, timedelta

import pytest

from sim_battery_dispatch.simulation.battery import BatterySpec
from sim_battery_dispatch.simulation.dispatch import BatteryDispatchSimulator
from sim_battery_dispatch.simulation.financials import (
    FinancialConfig,
    FinancialProjector,
    FirstYearAnalysis,
    RebateRule,
    compute_payback_years,
)
from sim_battery_dispatch.simulation.rate_plans import flat_rate_plan
from sim_battery_dispatch.simulation.usage_profiles import from_interval_data

from conftest import make_day_profile


def _first_year(total_savings: float, storage_savings: float | None = None) -> FirstYearAnalysis:
    storage = total_savings if storage_savings is None else storage_savings
    return FirstYearAnalysis(
        original_annual_cost=2000.0,
        solar_only_annual_cost=2000.0 - (total_savings - storage),
        optimized_annual_cost=2000.0 - total_savings,
        total_savings=total_savings,
        storage_savings=storage,
        cycles_per_year=300.0,
        total_kwh_shifted=4000.0,
        grid_charge_kwh=4200.0,
        export_credit=0.0,
        active_days=300,
    )


def _battery(price: float, nominal: float = 10.0) -> BatterySpec:
    return BatterySpec(
        id="b", brand="B", model="b", usable_kwh=nominal, nominal_kwh=nominal, inverter_kw=5.0, price=price
    )


def test_payback_without_escalation_is_linear():
    assert compute_payback_years(1000, 100, 0.0) == pytest.approx(10.0)
    assert compute_payback_years(1050, 100, 0.0) == pytest.approx(10.5)


def test_payback_edge_cases():
    assert compute_payback_years(1000, 0, 0.05) is None
    assert compute_payback_years(1000, -50, 0.05) is None
    assert compute_payback_years(1000, 100, 0.0, max_years=5) is None
    assert compute_payback_years(0, 100, 0.05) == 0.0
    assert compute_payback_years(-100, 100, 0.05) == 0.0


def test_payback_with_escalation_lands_in_fifth_year():
    payback = compute_payback_years(5000, 1000, 0.05)
    assert 4.0 < payback < 5.0
    assert math.ceil(payback) == 5


@pytest.mark.parametrize(
    "nominal, expected",
    [(16.0, 4800.0), (32.0, 5000.0), (13.5, 4050.0), (0.0, 0.0)],
)
def test_rebate_rule(nominal, expected):
    assert RebateRule().rebate_for(_battery(10_000, nominal)) == pytest.approx(expected)


def test_projection_escalates_savings():
    projector = FinancialProjector(FinancialConfig(escalation_rate=0.05, years=25), RebateRule(0, 0))
    projection = projector.project(_first_year(1000.0), _battery(5000))
    assert len(projection.yearly) == 25
    annual = [row.annual_savings for row in projection.yearly]
    assert all(later > earlier for earlier, later in zip(annual, annual[1:]))
    assert projection.yearly[1].rate_multiplier == pytest.approx(1.05)
    assert projection.total_savings_25_year == pytest.approx(projection.yearly[-1].cumulative_savings)
    assert projection.net_profit_25_year == pytest.approx(projection.total_savings_25_year - 5000)
    assert math.ceil(projection.payback_years) == 5


def test_projection_applies_rebate():
    projection = FinancialProjector().project(_first_year(1000.0), _battery(8000, nominal=16.0))
    assert projection.rebate == pytest.approx(4800.0)
    assert projection.net_cost == pytest.approx(3200.0)


def test_no_payback_when_storage_adds_nothing():
    projection = FinancialProjector(rebate_rule=RebateRule(0, 0)).project(
        _first_year(800.0, storage_savings=0.0), _battery(5000)
    )
    assert projection.payback_years is None


def test_metrics_for_free_battery_have_no_ratios():
    projector = FinancialProjector()
    first_year = _first_year(500.0)
    projection = projector.project(first_year, _battery(0.0))
    metrics = projector.metrics(first_year, projection)
    assert projection.net_cost < 0
    assert metrics.payback_years == 0.0
    assert metrics.annual_roi is None
    assert metrics.savings_per_dollar_invested is None


def test_metrics_ratios():
    projector = FinancialProjector(FinancialConfig(escalation_rate=0.0, years=25), RebateRule(0, 0))
    first_year = _first_year(1000.0)
    projection = projector.project(first_year, _battery(10_000))
    metrics = projector.metrics(first_year, projection)
    assert metrics.annual_roi == pytest.approx(10.0)
    assert metrics.savings_per_dollar_invested == pytest.approx(2.5)
    assert metrics.payback_years == pytest.approx(10.0)


def test_config_validation():
    with pytest.raises(ValueError):
        FinancialConfig(years=0)
    with pytest.raises(ValueError):
        FinancialConfig(escalation_rate=-1.0)
    with pytest.raises(ValueError):
        RebateRule(per_kwh=-1)
    assert FinancialConfig.from_mapping({"years": 10}).years == 10


def _solar_day():
    consumption = [1.0] * 24
    solar = [0.0] * 24
    for hour in range(10, 14):
        solar[hour] = 3.0
    return make_day_profile(consumption, solar)


def test_partial_profile_is_annualized():
    profile = make_day_profile([1.0] * 24)
    plan = flat_rate_plan(0.1)
    empty = BatterySpec(id="none", brand="", model="none", usable_kwh=0.0, inverter_kw=0.0)
    dispatch = BatteryDispatchSimulator(plan).simulate(profile, empty)
    first_year = FinancialProjector().analyze_first_year(profile, dispatch)
    assert first_year.original_annual_cost == pytest.approx(0.1 * 24 * 365)
    assert first_year.total_savings == pytest.approx(0.0)


def _hourly_records(hours: int, start: datetime = datetime(2025, 1, 1)) -> list:
    return [{"timestamp": start + timedelta(hours=h), "kwh": 1.0} for h in range(hours)]


@pytest.mark.parametrize("years", [1, 2, 3])
def test_multi_year_profile_is_scaled_to_one_year(years):
    plan = flat_rate_plan(0.1)
    empty = BatterySpec(id="none", brand="", model="none", usable_kwh=0.0, inverter_kw=0.0)
    profile = from_interval_data(_hourly_records(8760 * years))
    dispatch = BatteryDispatchSimulator(plan).simulate(profile, empty)
    first_year = FinancialProjector().analyze_first_year(profile, dispatch)
    assert first_year.original_annual_cost == pytest.approx(0.1 * 8760)
    assert first_year.active_days == 0


def test_multi_year_battery_metrics_are_per_year():
    plan = flat_rate_plan(0.1)
    battery = BatterySpec(id="b", brand="", model="b", usable_kwh=5.0, inverter_kw=5.0)
    records = _hourly_records(8760 * 2)
    for record in records:
        record["solar_kwh"] = 4.0 if record["timestamp"].hour == 12 else 0.0
    profile = from_interval_data(records)
    one_year = from_interval_data(records[:8760])
    projector = FinancialProjector()
    simulator = BatteryDispatchSimulator(plan)
    two = projector.analyze_first_year(profile, simulator.simulate(profile, battery))
    one = projector.analyze_first_year(one_year, simulator.simulate(one_year, battery))
    assert two.total_kwh_shifted == pytest.approx(one.total_kwh_shifted, rel=1e-3)
    assert two.cycles_per_year == pytest.approx(one.cycles_per_year, rel=1e-3)
    assert two.total_savings == pytest.approx(one.total_savings, rel=1e-3)


def test_battery_stores_solar_surplus():
    profile = _solar_day()
    plan = flat_rate_plan(0.2, export_credit_per_kwh=0.0)
    battery = BatterySpec(
        id="b", brand="", model="b", usable_kwh=4.0, inverter_kw=5.0, round_trip_efficiency=1.0, price=3000
    )
    dispatch = BatteryDispatchSimulator(plan).simulate(profile, battery)
    assert dispatch.grid_charge_kwh == 0.0
    assert dispatch.solar_to_battery_kwh == pytest.approx(4.0)

    projector = FinancialProjector(rebate_rule=RebateRule(0, 0))
    first_year = projector.analyze_first_year(profile, dispatch)
    assert first_year.original_annual_cost == pytest.approx(4.8 * 365)
    assert first_year.solar_only_annual_cost == pytest.approx(4.0 * 365)
    assert first_year.optimized_annual_cost == pytest.approx(3.2 * 365)
    assert first_year.storage_savings == pytest.approx(0.8 * 365)
    assert first_year.cycles_per_year == pytest.approx(365.0)

    projection = projector.project(first_year, battery)
    assert projection.payback_years is not None
    assert projection.payback_years < 6.0


def test_analysis_rejects_mismatched_dispatch():
    profile = make_day_profile([1.0] * 24)
    other = make_day_profile([1.0] * 12)
    battery = _battery(1000)
    dispatch = BatteryDispatchSimulator(flat_rate_plan(0.1)).simulate(other, battery)
    with pytest.raises(ValueError):
        FinancialProjector().analyze_first_year(profile, dispatch)
