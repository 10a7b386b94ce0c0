import pytest

from sim_battery_dispatch.simulation.battery import BatteryBank, BatterySpec
from sim_battery_dispatch.simulation.solar_allocation import allocate_solar


def _spec(**overrides) -> BatterySpec:
    params = dict(
        id="bank",
        brand="Test",
        model="Bank",
        usable_kwh=10.0,
        inverter_kw=5.0,
        round_trip_efficiency=0.81,
    )
    params.update(overrides)
    return BatterySpec(**params)


def test_efficiency_applied_on_each_direction():
    bank = BatteryBank(_spec())
    assert bank.eta_charge == pytest.approx(0.9)
    bank.start_step()
    used = bank.charge(10.0)
    assert used == pytest.approx(5.0)
    assert bank.soc_kwh == pytest.approx(4.5)

    bank.start_step()
    delivered = bank.discharge(10.0)
    assert delivered == pytest.approx(4.05)
    assert bank.soc_kwh == pytest.approx(0.0)
    assert bank.equivalent_cycles == pytest.approx(0.405)


def test_inverter_budget_is_shared_within_a_step():
    bank = BatteryBank(_spec(round_trip_efficiency=1.0))
    bank.start_step()
    assert bank.charge(3.0) == pytest.approx(3.0)
    assert bank.charge(5.0) == pytest.approx(2.0)
    assert bank.discharge(1.0) == 0.0
    bank.start_step()
    assert bank.step_budget_kwh == pytest.approx(5.0)


def test_charge_stops_at_capacity():
    bank = BatteryBank(_spec(usable_kwh=3.0, round_trip_efficiency=1.0))
    bank.start_step()
    assert bank.charge(5.0) == pytest.approx(3.0)
    assert bank.headroom_kwh == pytest.approx(0.0)
    bank.start_step()
    assert bank.charge(1.0) == 0.0


def test_depth_of_discharge_floor():
    spec = _spec(round_trip_efficiency=1.0, depth_of_discharge=0.8)
    assert spec.min_soc_kwh == pytest.approx(2.0)
    bank = BatteryBank(spec, soc_init_kwh=10.0)
    bank.start_step()
    assert bank.discharge(5.0) == pytest.approx(5.0)
    bank.start_step()
    assert bank.discharge(5.0) == pytest.approx(3.0)
    assert bank.soc_kwh == pytest.approx(2.0)
    bank.reset()
    assert bank.soc_kwh == pytest.approx(10.0)


def test_bank_starts_at_floor_by_default():
    bank = BatteryBank(_spec(depth_of_discharge=0.9))
    assert bank.soc_kwh == pytest.approx(1.0)
    assert bank.available_kwh == 0.0


def test_sub_hourly_step_scales_inverter_limit():
    bank = BatteryBank(_spec(round_trip_efficiency=1.0), step_hours=0.25)
    bank.start_step()
    assert bank.charge(5.0) == pytest.approx(1.25)


def test_zero_capacity_bank_is_inert():
    bank = BatteryBank(_spec(usable_kwh=0.0))
    bank.start_step()
    assert bank.charge(5.0) == 0.0
    assert bank.discharge(5.0) == 0.0
    assert bank.equivalent_cycles == 0.0


@pytest.mark.parametrize(
    "overrides",
    [
        {"usable_kwh": -1.0},
        {"inverter_kw": -1.0},
        {"round_trip_efficiency": 0.0},
        {"round_trip_efficiency": 1.2},
        {"depth_of_discharge": 0.0},
        {"price": -5.0},
        {"id": ""},
    ],
)
def test_spec_validation(overrides):
    with pytest.raises(ValueError):
        _spec(**overrides)


def test_spec_from_mapping_defaults_nominal_to_usable():
    spec = BatterySpec.from_mapping({"id": "x", "usable_kwh": 9, "inverter_kw": 4})
    assert spec.nominal_kwh == 9.0
    assert spec.round_trip_efficiency == 0.9
    assert spec.to_dict()["model"] == "x"


def test_allocate_solar_priority_order():
    bank = BatteryBank(_spec(usable_kwh=1.0, round_trip_efficiency=1.0))
    bank.start_step()
    allocation = allocate_solar(2.0, 5.0, bank)
    assert allocation.solar_to_load == pytest.approx(2.0)
    assert allocation.solar_to_battery == pytest.approx(1.0)
    assert allocation.solar_exported == pytest.approx(2.0)
    assert allocation.residual_load == 0.0


def test_allocate_solar_without_battery_exports_surplus():
    allocation = allocate_solar(2.0, 5.0)
    assert allocation.solar_to_battery == 0.0
    assert allocation.solar_exported == pytest.approx(3.0)

    short = allocate_solar(4.0, 1.5)
    assert short.residual_load == pytest.approx(2.5)
    assert short.solar_exported == 0.0
