"""
Hour-by-hour battery dispatch.

The simulator walks a usage profile in temporal order and, for every step,
allocates solar production, then either charges the battery from the grid
(inside a designated cheap window, when arbitrage is worthwhile) or
discharges it against the residual load. State of charge is the only
quantity carried from one step to the next.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, List, Mapping, Tuple

import numpy as np
import pandas as pd

from .battery import BatteryBank, BatterySpec
from .rate_plans import RatePlan
from .solar_allocation import allocate_solar
from .usage_profiles import UsageProfile

logger = logging.getLogger(__name__)

PRICE_TOLERANCE = 1e-9


@dataclass(frozen=True)
class DispatchPolicy:
    """
    Tunable dispatch heuristics.

    Attributes:
        grid_charging: Allow charging from the grid in cheap periods.
        charge_price_threshold: Steps priced at or below this value form the
            grid-charging window. ``None`` uses the plan's cheapest price.
        min_arbitrage_spread: Grid charging is enabled only when
            ``highest_price * RTE - cheapest_price`` exceeds this spread
            ($/kWh).
        discharge_price_threshold: Minimum step price for discharging.
            ``None`` discharges at any price outside the charge window.
        reserve_for_higher_prices: Hold back stored energy needed for
            pricier steps that come before the next charge window.
        horizon_hours: How far ahead the reserve looks.
    """

    grid_charging: bool = True
    charge_price_threshold: float | None = None
    min_arbitrage_spread: float = 0.0
    discharge_price_threshold: float | None = None
    reserve_for_higher_prices: bool = True
    horizon_hours: float = 24.0

    def __post_init__(self) -> None:
        if self.min_arbitrage_spread < 0:
            raise ValueError("min_arbitrage_spread must be non-negative")
        if not self.horizon_hours > 0:
            raise ValueError("horizon_hours must be positive")
        for name in ("charge_price_threshold", "discharge_price_threshold"):
            value = getattr(self, name)
            if value is not None and value < 0:
                raise ValueError(f"{name} must be non-negative")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "DispatchPolicy":
        known = {key: data[key] for key in cls.__dataclass_fields__ if key in data}
        return cls(**known)


@dataclass(frozen=True)
class DispatchStep:
    """
    Energy flows of one step (kWh) plus the resulting state of charge.

    Invariants:
        ``solar_to_load + solar_to_battery + solar_exported == solar_kwh``
        ``battery_to_load + grid_to_load == consumption_kwh - solar_to_load``
    """

    timestamp: datetime
    consumption_kwh: float
    solar_kwh: float
    solar_to_load: float
    solar_to_battery: float
    solar_exported: float
    battery_to_load: float
    grid_to_load: float
    grid_to_battery: float
    state_of_charge_kwh: float
    price_per_kwh: float
    export_credit_per_kwh: float
    period_label: str

    @property
    def grid_import_kwh(self) -> float:
        return self.grid_to_load + self.grid_to_battery


@dataclass(frozen=True)
class DispatchResult:
    """Complete dispatch schedule for one (battery, rate plan) run."""

    battery_id: str
    rate_plan_id: str
    usable_kwh: float
    step_hours: float
    grid_charging_active: bool
    steps: Tuple[DispatchStep, ...]

    def _total(self, attr: str) -> float:
        return float(sum(getattr(step, attr) for step in self.steps))

    @property
    def total_kwh_shifted(self) -> float:
        """Energy delivered by the battery to the household."""
        return self._total("battery_to_load")

    @property
    def equivalent_cycles(self) -> float:
        if self.usable_kwh <= 0:
            return 0.0
        return self.total_kwh_shifted / self.usable_kwh

    @property
    def grid_charge_kwh(self) -> float:
        return self._total("grid_to_battery")

    @property
    def solar_to_battery_kwh(self) -> float:
        return self._total("solar_to_battery")

    @property
    def solar_exported_kwh(self) -> float:
        return self._total("solar_exported")

    @property
    def grid_import_kwh(self) -> float:
        return self._total("grid_to_load") + self.grid_charge_kwh

    @property
    def active_days(self) -> int:
        """Number of distinct days on which the battery discharged."""
        return len({step.timestamp.date() for step in self.steps if step.battery_to_load > PRICE_TOLERANCE})

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            [
                {
                    "timestamp": step.timestamp,
                    "period": step.period_label,
                    "price_per_kwh": step.price_per_kwh,
                    "consumption_kwh": step.consumption_kwh,
                    "solar_kwh": step.solar_kwh,
                    "solar_to_load": step.solar_to_load,
                    "solar_to_battery": step.solar_to_battery,
                    "solar_exported": step.solar_exported,
                    "battery_to_load": step.battery_to_load,
                    "grid_to_load": step.grid_to_load,
                    "grid_to_battery": step.grid_to_battery,
                    "state_of_charge_kwh": step.state_of_charge_kwh,
                }
                for step in self.steps
            ]
        )


class BatteryDispatchSimulator:
    """
    Greedy, price-aware dispatch of one battery under one rate plan.

    Each step:

    1. Solar serves the load, then charges the battery, then is exported.
    2. Inside the grid-charging window the battery fills its remaining
       headroom from the grid and does not discharge.
    3. Otherwise the battery discharges against the residual load, keeping
       back what pricier steps before the next charge window will need.

    All limits are enforced by a fresh :class:`BatteryBank` per run, so one
    simulator instance can be reused across batteries and threads.

    Example:
        ```python
        simulator = BatteryDispatchSimulator(ulo_rate_plan())
        result = simulator.simulate(profile, powerwall)
        result.equivalent_cycles
        ```
    """

    def __init__(self, rate_plan: RatePlan, policy: DispatchPolicy | None = None) -> None:
        self.rate_plan = rate_plan
        self.policy = policy or DispatchPolicy()

    def grid_charging_active(self, battery: BatterySpec) -> bool:
        """Whether grid arbitrage is economically justified for ``battery``."""
        if not self.policy.grid_charging or battery.usable_kwh <= 0:
            return False
        spread = self.rate_plan.highest_price * battery.round_trip_efficiency - self.rate_plan.cheapest_price
        return spread > self.policy.min_arbitrage_spread

    def simulate(self, profile: UsageProfile, battery: BatterySpec) -> DispatchResult:
        """
        Run the dispatch over every step of ``profile``.

        Args:
            profile: Ordered usage series.
            battery: Battery to dispatch.

        Returns:
            DispatchResult with one DispatchStep per profile point.

        Raises:
            UnresolvedPeriodError: If the rate plan leaves a step unpriced.
        """
        policy = self.policy
        timestamps = profile.timestamps
        prices, credits, labels = self.rate_plan.resolve(timestamps)
        consumption = profile.consumption_kwh
        solar = profile.solar_kwh

        bank = BatteryBank(battery, step_hours=profile.step_hours)
        grid_charging = self.grid_charging_active(battery)
        threshold = (
            policy.charge_price_threshold
            if policy.charge_price_threshold is not None
            else self.rate_plan.cheapest_price
        )
        if grid_charging:
            charge_window = prices <= threshold + PRICE_TOLERANCE
        else:
            charge_window = np.zeros(len(prices), dtype=bool)

        # Upper bound of what the battery could deliver in each later step.
        future_draw = np.minimum(np.clip(consumption - solar, 0.0, None), bank.max_step_kwh)
        horizon_steps = max(1, int(round(policy.horizon_hours / profile.step_hours)))

        steps: List[DispatchStep] = []
        for idx, ts in enumerate(timestamps):
            bank.start_step()
            allocation = allocate_solar(float(consumption[idx]), float(solar[idx]), bank)

            battery_to_load = 0.0
            grid_to_battery = 0.0
            if charge_window[idx]:
                grid_to_battery = bank.charge(bank.max_charge_input_kwh())
            elif allocation.residual_load > 0 and (
                policy.discharge_price_threshold is None
                or prices[idx] >= policy.discharge_price_threshold - PRICE_TOLERANCE
            ):
                request = allocation.residual_load
                if policy.reserve_for_higher_prices:
                    reserve = self._reserve_kwh(idx, prices, future_draw, charge_window, horizon_steps)
                    request = min(request, max(0.0, bank.deliverable_kwh - reserve))
                battery_to_load = bank.discharge(request)

            steps.append(
                DispatchStep(
                    timestamp=ts,
                    consumption_kwh=float(consumption[idx]),
                    solar_kwh=float(solar[idx]),
                    solar_to_load=allocation.solar_to_load,
                    solar_to_battery=allocation.solar_to_battery,
                    solar_exported=allocation.solar_exported,
                    battery_to_load=battery_to_load,
                    grid_to_load=allocation.residual_load - battery_to_load,
                    grid_to_battery=grid_to_battery,
                    state_of_charge_kwh=bank.soc_kwh,
                    price_per_kwh=float(prices[idx]),
                    export_credit_per_kwh=float(credits[idx]),
                    period_label=labels[idx],
                )
            )

        result = DispatchResult(
            battery_id=battery.id,
            rate_plan_id=self.rate_plan.id,
            usable_kwh=battery.usable_kwh,
            step_hours=profile.step_hours,
            grid_charging_active=grid_charging,
            steps=tuple(steps),
        )
        logger.debug(
            "Dispatched %s on %s: %.1f kWh shifted, %.1f cycles, grid charging %s",
            battery.id,
            self.rate_plan.id,
            result.total_kwh_shifted,
            result.equivalent_cycles,
            "on" if grid_charging else "off",
        )
        return result

    @staticmethod
    def _reserve_kwh(
        idx: int,
        prices: np.ndarray,
        future_draw: np.ndarray,
        charge_window: np.ndarray,
        horizon_steps: int,
    ) -> float:
        """Energy to keep for pricier steps before the next charge window."""
        reserve = 0.0
        current = prices[idx]
        end = min(len(prices), idx + 1 + horizon_steps)
        for later in range(idx + 1, end):
            if charge_window[later]:
                break
            if prices[later] > current + PRICE_TOLERANCE:
                reserve += future_draw[later]
        return reserve
