from __future__ import annotations

from dataclasses import dataclass

from .battery import BatteryBank


@dataclass(frozen=True)
class SolarAllocation:
    """
    Split of one step's solar production (all values in kWh).

    ``solar_to_load + solar_to_battery + solar_exported`` always equals the
    production passed to :func:`allocate_solar`.
    """

    solar_to_load: float
    solar_to_battery: float
    solar_exported: float
    residual_load: float


def allocate_solar(consumption_kwh: float, solar_kwh: float, battery: BatteryBank | None = None) -> SolarAllocation:
    """
    Allocate solar production for one step in fixed priority order.

    1. Self-consumption, up to the step's consumption.
    2. Battery charging, limited by headroom and the inverter budget.
    3. Export of whatever remains.

    Args:
        consumption_kwh: Household consumption during the step.
        solar_kwh: Solar production during the step.
        battery: Bank to charge with surplus; ``None`` exports all surplus.

    Returns:
        SolarAllocation with the residual load still to be served.
    """
    solar_to_load = min(solar_kwh, consumption_kwh)
    surplus = solar_kwh - solar_to_load
    solar_to_battery = battery.charge(surplus) if battery is not None else 0.0
    solar_exported = max(0.0, surplus - solar_to_battery)
    return SolarAllocation(
        solar_to_load=solar_to_load,
        solar_to_battery=solar_to_battery,
        solar_exported=solar_exported,
        residual_load=max(0.0, consumption_kwh - solar_to_load),
    )
