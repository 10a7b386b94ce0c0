from datetime import datetime

import pytest

from sim_battery_dispatch.simulation.battery import BatterySpec
from sim_battery_dispatch.simulation.dispatch import BatteryDispatchSimulator, DispatchPolicy
from sim_battery_dispatch.simulation.rate_plans import flat_rate_plan, ulo_rate_plan

from conftest import make_day_profile


def _assert_conserves_energy(result, usable_kwh):
    for step in result.steps:
        assert step.solar_to_load + step.solar_to_battery + step.solar_exported == pytest.approx(step.solar_kwh)
        assert step.solar_to_load + step.battery_to_load + step.grid_to_load == pytest.approx(step.consumption_kwh)
        assert -1e-9 <= step.state_of_charge_kwh <= usable_kwh + 1e-9
        assert step.grid_to_load >= -1e-9
        assert step.battery_to_load >= 0.0


def test_dispatch_conserves_energy(ulo_profile, battery_15):
    result = BatteryDispatchSimulator(ulo_rate_plan()).simulate(ulo_profile, battery_15)
    assert len(result.steps) == len(ulo_profile)
    _assert_conserves_energy(result, battery_15.usable_kwh)


def test_dispatch_with_solar_conserves_energy(solar_profile, battery_15):
    result = BatteryDispatchSimulator(ulo_rate_plan()).simulate(solar_profile, battery_15)
    _assert_conserves_energy(result, battery_15.usable_kwh)
    assert result.solar_to_battery_kwh > 0
    assert result.solar_exported_kwh > 0


@pytest.mark.parametrize("depth_of_discharge", [0.8, 0.5])
def test_soc_never_drops_below_depth_of_discharge_floor(ulo_profile, solar_profile, depth_of_discharge):
    battery = BatterySpec(
        id="dod",
        brand="",
        model="dod",
        usable_kwh=10.0,
        inverter_kw=5.0,
        depth_of_discharge=depth_of_discharge,
    )
    floor = battery.min_soc_kwh
    for profile in (ulo_profile, solar_profile):
        result = BatteryDispatchSimulator(ulo_rate_plan()).simulate(profile, battery)
        assert len(result.steps) == 8760
        _assert_conserves_energy(result, battery.usable_kwh)
        socs = [step.state_of_charge_kwh for step in result.steps]
        assert min(socs) >= floor - 1e-9
        assert min(socs) == pytest.approx(floor)
        assert max(socs) <= battery.usable_kwh + 1e-9


def test_grid_charging_happens_only_in_ultra_low(ulo_profile, battery_15):
    result = BatteryDispatchSimulator(ulo_rate_plan()).simulate(ulo_profile, battery_15)
    assert result.grid_charging_active
    assert result.grid_charge_kwh > 0
    labels = {step.period_label for step in result.steps if step.grid_to_battery > 0}
    assert labels == {"ultra-low"}
    assert all(step.battery_to_load == 0 for step in result.steps if step.grid_to_battery > 0)


def test_discharge_threshold_limits_discharge_to_on_peak(ulo_profile, battery_15):
    policy = DispatchPolicy(discharge_price_threshold=0.3)
    result = BatteryDispatchSimulator(ulo_rate_plan(), policy).simulate(ulo_profile, battery_15)
    labels = {step.period_label for step in result.steps if step.battery_to_load > 0}
    assert labels == {"on-peak"}


def test_large_spread_disables_grid_charging(ulo_profile, battery_15):
    policy = DispatchPolicy(min_arbitrage_spread=1.0)
    simulator = BatteryDispatchSimulator(ulo_rate_plan(), policy)
    assert not simulator.grid_charging_active(battery_15)
    result = simulator.simulate(ulo_profile, battery_15)
    assert result.grid_charge_kwh == 0.0
    # No solar and no grid charging leaves nothing to shift.
    assert result.total_kwh_shifted == 0.0


def test_flat_plan_never_grid_charges(ulo_profile, battery_15):
    simulator = BatteryDispatchSimulator(flat_rate_plan(0.15))
    assert not simulator.grid_charging_active(battery_15)
    assert simulator.simulate(ulo_profile, battery_15).grid_charge_kwh == 0.0


def test_zero_capacity_battery_is_a_no_op(solar_profile):
    empty = BatterySpec(id="none", brand="", model="none", usable_kwh=0.0, inverter_kw=0.0)
    result = BatteryDispatchSimulator(ulo_rate_plan()).simulate(solar_profile, empty)
    assert not result.grid_charging_active
    assert result.total_kwh_shifted == 0.0
    assert result.equivalent_cycles == 0.0
    assert result.active_days == 0
    assert result.solar_exported_kwh == pytest.approx(
        sum(max(0.0, p.solar_kwh - p.consumption_kwh) for p in solar_profile)
    )


def test_reserve_holds_energy_for_on_peak(ulo_profile, battery_15):
    result = BatteryDispatchSimulator(ulo_rate_plan()).simulate(ulo_profile, battery_15)
    by_time = {step.timestamp: step for step in result.steps}
    # Tuesday: mid-peak hours must leave charge for the 16:00-21:00 block.
    assert by_time[datetime(2025, 3, 4, 15)].state_of_charge_kwh > 5.0
    assert by_time[datetime(2025, 3, 4, 18)].battery_to_load > 0


def test_single_day_schedule():
    profile = make_day_profile([1.0] * 24)
    battery = BatterySpec(
        id="small", brand="", model="small", usable_kwh=4.0, inverter_kw=5.0, round_trip_efficiency=1.0
    )
    result = BatteryDispatchSimulator(ulo_rate_plan()).simulate(profile, battery)
    shifted = [step.battery_to_load for step in result.steps]
    assert result.steps[0].grid_to_battery == pytest.approx(4.0)
    assert shifted[16:20] == pytest.approx([1.0, 1.0, 1.0, 1.0])
    assert sum(shifted) == pytest.approx(4.0)
    assert result.active_days == 1
    assert result.equivalent_cycles == pytest.approx(1.0)


def test_without_reserve_battery_drains_in_mid_peak():
    profile = make_day_profile([1.0] * 24)
    battery = BatterySpec(
        id="small", brand="", model="small", usable_kwh=4.0, inverter_kw=5.0, round_trip_efficiency=1.0
    )
    policy = DispatchPolicy(reserve_for_higher_prices=False)
    result = BatteryDispatchSimulator(ulo_rate_plan(), policy).simulate(profile, battery)
    shifted = [step.battery_to_load for step in result.steps]
    assert shifted[7:11] == pytest.approx([1.0, 1.0, 1.0, 1.0])
    assert sum(shifted[16:21]) == 0.0


def test_dispatch_frame_has_one_row_per_step():
    profile = make_day_profile([1.0] * 24)
    battery = BatterySpec(id="b", brand="", model="b", usable_kwh=4.0, inverter_kw=5.0)
    frame = BatteryDispatchSimulator(ulo_rate_plan()).simulate(profile, battery).to_frame()
    assert len(frame) == 24
    assert "state_of_charge_kwh" in frame.columns


def test_policy_validation_and_mapping():
    with pytest.raises(ValueError):
        DispatchPolicy(min_arbitrage_spread=-0.1)
    with pytest.raises(ValueError):
        DispatchPolicy(horizon_hours=0)
    policy = DispatchPolicy.from_mapping({"grid_charging": False, "unknown": 1})
    assert policy.grid_charging is False
