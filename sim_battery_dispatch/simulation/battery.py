"""
Battery specifications and constraint-aware storage simulation.

Contains the read-only :class:`BatterySpec` catalog entry and the
:class:`BatteryBank` that tracks state of charge while enforcing capacity,
depth-of-discharge, inverter power and round-trip efficiency limits.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, Mapping


@dataclass(frozen=True)
class BatterySpec:
    """
    Read-only description of a residential battery product.

    Attributes:
        id: Catalog identifier (e.g. ``"tesla-powerwall"``).
        brand: Manufacturer name.
        model: Product/model name.
        usable_kwh: Usable energy capacity (kWh). Zero is allowed and models
            a solar-only installation.
        inverter_kw: Maximum charge or discharge power (kW).
        round_trip_efficiency: Fraction of stored energy returned, in (0, 1].
        depth_of_discharge: Fraction of ``usable_kwh`` that may be cycled,
            in (0, 1]. The state of charge never drops below
            ``usable_kwh * (1 - depth_of_discharge)``.
        price: Installed price before rebates ($).
        nominal_kwh: Nameplate capacity used for rebate calculation;
            defaults to ``usable_kwh``.
        warranty_years: Warranty duration in years.
        warranty_cycles: Warranted full cycles.
        description: Free-form product notes.

    Example:
        ```python
        powerwall = BatterySpec(
            id="tesla-powerwall",
            brand="Tesla",
            model="Powerwall 13.5",
            usable_kwh=12.825,
            nominal_kwh=13.5,
            inverter_kw=5.0,
            round_trip_efficiency=0.92,
            price=17_000,
        )
        powerwall.one_way_efficiency   # ~0.959
        ```

    Notes:
        - Efficiency is split symmetrically: sqrt(RTE) is lost on the way in
          and sqrt(RTE) on the way out.
        - The inverter limit is shared by charging and discharging within a
          single time step.
    """

    id: str
    brand: str
    model: str
    usable_kwh: float
    inverter_kw: float
    round_trip_efficiency: float = 0.9
    depth_of_discharge: float = 1.0
    price: float = 0.0
    nominal_kwh: float | None = None
    warranty_years: int = 10
    warranty_cycles: int = 6000
    description: str = ""

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("Battery id must not be empty")
        if not math.isfinite(self.usable_kwh) or self.usable_kwh < 0:
            raise ValueError("usable_kwh must be finite and >= 0")
        if not math.isfinite(self.inverter_kw) or self.inverter_kw < 0:
            raise ValueError("inverter_kw must be finite and >= 0")
        if not 0.0 < self.round_trip_efficiency <= 1.0:
            raise ValueError("round_trip_efficiency must be within (0, 1]")
        if not 0.0 < self.depth_of_discharge <= 1.0:
            raise ValueError("depth_of_discharge must be within (0, 1]")
        if not math.isfinite(self.price) or self.price < 0:
            raise ValueError("price must be finite and >= 0")
        if self.nominal_kwh is None:
            object.__setattr__(self, "nominal_kwh", self.usable_kwh)
        elif self.nominal_kwh < 0:
            raise ValueError("nominal_kwh must be >= 0")

    @property
    def name(self) -> str:
        return f"{self.brand} {self.model}".strip()

    @property
    def one_way_efficiency(self) -> float:
        return math.sqrt(self.round_trip_efficiency)

    @property
    def min_soc_kwh(self) -> float:
        return self.usable_kwh * (1.0 - self.depth_of_discharge)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "brand": self.brand,
            "model": self.model,
            "usable_kwh": self.usable_kwh,
            "nominal_kwh": self.nominal_kwh,
            "inverter_kw": self.inverter_kw,
            "round_trip_efficiency": self.round_trip_efficiency,
            "depth_of_discharge": self.depth_of_discharge,
            "price": self.price,
            "warranty_years": self.warranty_years,
            "warranty_cycles": self.warranty_cycles,
            "description": self.description,
        }

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "BatterySpec":
        """Build a spec from a JSON-style mapping, ignoring unknown keys."""
        nominal = data.get("nominal_kwh")
        return cls(
            id=str(data["id"]),
            brand=str(data.get("brand", "")),
            model=str(data.get("model", data["id"])),
            usable_kwh=float(data["usable_kwh"]),
            inverter_kw=float(data["inverter_kw"]),
            round_trip_efficiency=float(data.get("round_trip_efficiency", 0.9)),
            depth_of_discharge=float(data.get("depth_of_discharge", 1.0)),
            price=float(data.get("price", 0.0)),
            nominal_kwh=float(nominal) if nominal is not None else None,
            warranty_years=int(data.get("warranty_years", 10)),
            warranty_cycles=int(data.get("warranty_cycles", 6000)),
            description=str(data.get("description", "")),
        )


class BatteryBank:
    """
    Mutable storage state for one simulation run.

    A new bank is created for every dispatch run so that concurrent runs
    never share state. Each time step starts with :meth:`start_step`, which
    restores the inverter energy budget; :meth:`charge` and
    :meth:`discharge` then draw from that shared budget.

    Energy Flow:
        Charging:    energy in -> x sqrt(RTE) -> stored energy
        Discharging: stored energy -> x sqrt(RTE) -> energy delivered

    Attributes:
        spec: Battery specification.
        capacity_kwh: Usable capacity (upper SoC bound).
        min_soc_kwh: Depth-of-discharge floor (lower SoC bound).
        eta_charge: Charging efficiency (sqrt of RTE).
        eta_discharge: Discharging efficiency (sqrt of RTE).
        max_step_kwh: Inverter energy limit per step.
        soc_kwh: Current stored energy.
        charged_input_kwh: Cumulative energy drawn to charge.
        discharged_kwh: Cumulative energy delivered.

    Example:
        ```python
        bank = BatteryBank(spec, step_hours=1.0)
        bank.start_step()
        used = bank.charge(3.0)        # energy drawn from solar/grid
        bank.start_step()
        delivered = bank.discharge(2.0)
        ```
    """

    def __init__(self, spec: BatterySpec, step_hours: float = 1.0, soc_init_kwh: float | None = None) -> None:
        """
        Args:
            spec: Battery specification.
            step_hours: Duration of a simulation step (hours); converts the
                inverter power limit into an energy limit.
            soc_init_kwh: Initial stored energy. Defaults to the
                depth-of-discharge floor (battery starts empty).
        """
        if not step_hours > 0:
            raise ValueError("step_hours must be positive")
        self.spec = spec
        self.step_hours = step_hours
        self.capacity_kwh = spec.usable_kwh
        self.min_soc_kwh = spec.min_soc_kwh
        self.eta_charge = spec.one_way_efficiency
        self.eta_discharge = spec.one_way_efficiency
        self.max_step_kwh = spec.inverter_kw * step_hours
        self._soc_init_kwh = soc_init_kwh
        self.reset()

    def reset(self) -> None:
        """Restore the initial state of charge and clear counters."""
        if self._soc_init_kwh is None:
            self.soc_kwh = self.min_soc_kwh
        else:
            self.soc_kwh = min(max(self._soc_init_kwh, self.min_soc_kwh), self.capacity_kwh)
        self.charged_input_kwh = 0.0
        self.discharged_kwh = 0.0
        self._budget_kwh = self.max_step_kwh

    def start_step(self) -> None:
        self._budget_kwh = self.max_step_kwh

    @property
    def step_budget_kwh(self) -> float:
        return self._budget_kwh

    @property
    def headroom_kwh(self) -> float:
        return max(0.0, self.capacity_kwh - self.soc_kwh)

    @property
    def available_kwh(self) -> float:
        """Stored energy above the depth-of-discharge floor."""
        return max(0.0, self.soc_kwh - self.min_soc_kwh)

    @property
    def deliverable_kwh(self) -> float:
        """Energy the bank could deliver ignoring the inverter limit."""
        return self.available_kwh * self.eta_discharge

    def max_charge_input_kwh(self) -> float:
        """Largest charge input accepted in the current step."""
        if self.capacity_kwh <= 0:
            return 0.0
        return max(0.0, min(self._budget_kwh, self.headroom_kwh / self.eta_charge))

    def charge(self, energy_in_kwh: float) -> float:
        """
        Charge with up to ``energy_in_kwh`` of input energy.

        Returns:
            Input energy actually absorbed (before losses).
        """
        if energy_in_kwh <= 0.0:
            return 0.0
        used = min(energy_in_kwh, self.max_charge_input_kwh())
        if used <= 0.0:
            return 0.0
        self.soc_kwh = min(self.capacity_kwh, self.soc_kwh + used * self.eta_charge)
        self._budget_kwh = max(0.0, self._budget_kwh - used)
        self.charged_input_kwh += used
        return used

    def discharge(self, energy_out_kwh: float) -> float:
        """
        Deliver up to ``energy_out_kwh``.

        Returns:
            Energy delivered (after losses).
        """
        if energy_out_kwh <= 0.0:
            return 0.0
        delivered = min(energy_out_kwh, self._budget_kwh, self.deliverable_kwh)
        if delivered <= 0.0:
            return 0.0
        self.soc_kwh = max(self.min_soc_kwh, self.soc_kwh - delivered / self.eta_discharge)
        self._budget_kwh = max(0.0, self._budget_kwh - delivered)
        self.discharged_kwh += delivered
        return delivered

    @property
    def equivalent_cycles(self) -> float:
        if self.capacity_kwh <= 0:
            return 0.0
        return self.discharged_kwh / self.capacity_kwh
