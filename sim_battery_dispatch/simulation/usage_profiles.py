"""
Hourly household usage profiles.

Turns coarse usage inputs (annual kWh, monthly kWh, a monthly bill, or
uploaded interval data) into an ordered series of :class:`UsageDataPoint`
objects that the dispatch simulator walks step by step. Synthetic profiles
are fully deterministic: the same inputs always produce the same series.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Any, Iterable, List, Mapping, Sequence, Tuple

import numpy as np
import pandas as pd

from ..calendar_utils import build_daily_calendar, hours_in_year, month_lengths
from ..errors import InvalidUsageError
from .rate_plans import RatePlan

logger = logging.getLogger(__name__)

# Relative monthly consumption for an Ontario household: winter heating and
# summer cooling peaks, shoulder-season lows (January..December).
DEFAULT_MONTHLY_WEIGHTS: Tuple[float, ...] = (
    11.0, 10.0, 8.5, 7.0, 6.5, 7.5, 9.5, 9.5, 7.5, 7.0, 8.0, 9.5,
)

# Share of daily energy per hour (hour 0..23). Weekdays show a morning peak
# around 08:00 and a stronger evening peak around 18:00.
DEFAULT_WEEKDAY_HOURLY: Tuple[float, ...] = (
    2.5, 2.0, 1.8, 1.6, 1.5, 1.8, 2.5, 4.5, 5.5, 5.0, 4.5, 4.0,
    4.0, 3.8, 3.5, 3.8, 5.0, 6.5, 7.5, 7.0, 6.0, 5.5, 4.5, 3.5,
)

# Weekends start later and stay flatter through the day.
DEFAULT_WEEKEND_HOURLY: Tuple[float, ...] = (
    3.0, 2.4, 2.0, 1.8, 1.7, 1.8, 2.2, 3.0, 4.2, 5.2, 5.6, 5.4,
    5.0, 4.8, 4.6, 4.6, 5.0, 5.8, 6.6, 6.4, 5.6, 5.0, 4.2, 3.4,
)

# Relative PV output per hour of a clear-sky day.
SOLAR_HOURLY_PATTERN: Tuple[float, ...] = (
    0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.05, 0.15, 0.35, 0.55, 0.75,
    0.90, 1.0, 0.95, 0.85, 0.70, 0.50, 0.25, 0.10, 0.0, 0.0, 0.0, 0.0,
)

DEFAULT_BLENDED_RATE = 0.223  # $/kWh, all-in residential average
MAX_PLAUSIBLE_HOURLY_KWH = 100.0
MAX_GAP_HOURS = 2.0
MIN_COVERAGE_DAYS = 30


@dataclass(frozen=True)
class UsageDataPoint:
    """Energy consumed and produced during one interval starting at ``timestamp``."""

    timestamp: datetime
    consumption_kwh: float
    solar_kwh: float = 0.0


@dataclass(frozen=True)
class UsageProfile:
    """
    Ordered usage series consumed by the dispatch simulator.

    Attributes:
        points: Data points in strictly increasing timestamp order.
        step_hours: Interval length shared by every point (hours).

    Raises:
        InvalidUsageError: On empty input, unordered timestamps, or negative
            and non-finite energy values.
    """

    points: Tuple[UsageDataPoint, ...]
    step_hours: float = 1.0

    def __post_init__(self) -> None:
        points = tuple(self.points)
        if not points:
            raise InvalidUsageError("Usage profile must contain at least one data point")
        if not self.step_hours > 0:
            raise InvalidUsageError("step_hours must be positive")
        previous: datetime | None = None
        for point in points:
            if previous is not None and point.timestamp <= previous:
                raise InvalidUsageError(
                    f"Timestamps must be strictly increasing (got {point.timestamp} after {previous})"
                )
            for name, value in (("consumption_kwh", point.consumption_kwh), ("solar_kwh", point.solar_kwh)):
                if not math.isfinite(value) or value < 0:
                    raise InvalidUsageError(f"{name} at {point.timestamp} must be finite and >= 0")
            previous = point.timestamp
        object.__setattr__(self, "points", points)

    def __len__(self) -> int:
        return len(self.points)

    def __iter__(self):
        return iter(self.points)

    @property
    def timestamps(self) -> List[datetime]:
        return [point.timestamp for point in self.points]

    @property
    def consumption_kwh(self) -> np.ndarray:
        return np.array([point.consumption_kwh for point in self.points], dtype=float)

    @property
    def solar_kwh(self) -> np.ndarray:
        return np.array([point.solar_kwh for point in self.points], dtype=float)

    @property
    def total_consumption_kwh(self) -> float:
        return float(self.consumption_kwh.sum())

    @property
    def total_solar_kwh(self) -> float:
        return float(self.solar_kwh.sum())

    @property
    def duration_hours(self) -> float:
        return len(self.points) * self.step_hours

    def to_frame(self) -> pd.DataFrame:
        """Return the profile as a DataFrame indexed by timestamp."""
        return pd.DataFrame(
            {
                "consumption_kwh": self.consumption_kwh,
                "solar_kwh": self.solar_kwh,
            },
            index=pd.DatetimeIndex(self.timestamps, name="timestamp"),
        )


def _normalized(values: Sequence[float], expected_len: int, name: str) -> np.ndarray:
    arr = np.asarray(values, dtype=float)
    if arr.shape != (expected_len,):
        raise ValueError(f"{name} must contain {expected_len} values")
    if np.any(arr < 0) or not np.all(np.isfinite(arr)):
        raise ValueError(f"{name} must be finite and non-negative")
    total = arr.sum()
    if total <= 0:
        raise ValueError(f"{name} must not sum to zero")
    return arr / total


@dataclass(frozen=True)
class LoadShape:
    """
    Tunable curves used to spread coarse usage over hours.

    Attributes:
        monthly_weights: Twelve relative weights for the seasonal split.
        weekday_hourly: Twenty-four relative weights for a weekday.
        weekend_hourly: Twenty-four relative weights for weekends/holidays.
        weekend_factor: Daily energy of a weekend day relative to a weekday.
    """

    monthly_weights: Tuple[float, ...] = DEFAULT_MONTHLY_WEIGHTS
    weekday_hourly: Tuple[float, ...] = DEFAULT_WEEKDAY_HOURLY
    weekend_hourly: Tuple[float, ...] = DEFAULT_WEEKEND_HOURLY
    weekend_factor: float = 1.1

    def __post_init__(self) -> None:
        _normalized(self.monthly_weights, 12, "monthly_weights")
        _normalized(self.weekday_hourly, 24, "weekday_hourly")
        _normalized(self.weekend_hourly, 24, "weekend_hourly")
        if not self.weekend_factor > 0:
            raise ValueError("weekend_factor must be positive")
        object.__setattr__(self, "monthly_weights", tuple(float(v) for v in self.monthly_weights))
        object.__setattr__(self, "weekday_hourly", tuple(float(v) for v in self.weekday_hourly))
        object.__setattr__(self, "weekend_hourly", tuple(float(v) for v in self.weekend_hourly))

    @classmethod
    def flat(cls) -> "LoadShape":
        """Shape with identical weight for every month, day, and hour."""
        return cls(
            monthly_weights=(1.0,) * 12,
            weekday_hourly=(1.0,) * 24,
            weekend_hourly=(1.0,) * 24,
            weekend_factor=1.0,
        )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "LoadShape":
        defaults = cls()
        return cls(
            monthly_weights=tuple(data.get("monthly_weights", defaults.monthly_weights)),
            weekday_hourly=tuple(data.get("weekday_hourly", defaults.weekday_hourly)),
            weekend_hourly=tuple(data.get("weekend_hourly", defaults.weekend_hourly)),
            weekend_factor=float(data.get("weekend_factor", defaults.weekend_factor)),
        )


def _validate_energy(value: float, name: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidUsageError(f"{name} must be a number, got {value!r}") from exc
    if not math.isfinite(number) or number <= 0:
        raise InvalidUsageError(f"{name} must be a positive finite number, got {value!r}")
    return number


class UsageProfileGenerator:
    """
    Build deterministic hourly usage profiles for a calendar year.

    Energy is split across months by the seasonal weights (or evenly per
    day when seasonal adjustment is disabled), across the days of a month
    by the weekday/weekend factor, and across the hours of a day by the
    weekday or weekend hourly shape. Every split is normalized, so the
    generated profile sums exactly to the requested energy.

    Example:
        ```python
        generator = UsageProfileGenerator(year=2025)
        profile = generator.generate_annual(12_000, rate_plan=ulo_rate_plan())
        len(profile)                     # 8760
        profile.total_consumption_kwh    # 12000.0
        ```
    """

    def __init__(self, load_shape: LoadShape | None = None, *, year: int = 2025) -> None:
        """
        Args:
            load_shape: Curves used to shape the profile; defaults to the
                Ontario residential shape.
            year: Calendar year of the generated timestamps.
        """
        self.load_shape = load_shape or LoadShape()
        self.year = year

    def generate_annual(
        self,
        annual_usage_kwh: float,
        rate_plan: RatePlan | None = None,
        *,
        use_seasonal_adjustment: bool = True,
        solar_kwh: Sequence[float] | None = None,
    ) -> UsageProfile:
        """
        Spread annual consumption across every hour of the year.

        Args:
            annual_usage_kwh: Total yearly consumption (kWh), must be > 0.
            rate_plan: Optional plan whose holidays shape weekend days; every
                generated hour is resolved against it so coverage gaps fail
                before simulation.
            use_seasonal_adjustment: Apply the monthly weights; when False
                every day of the year carries the same base energy.
            solar_kwh: Optional hourly solar production aligned with the year.

        Returns:
            UsageProfile with 8760 (8784 in leap years) hourly points.

        Raises:
            InvalidUsageError: If ``annual_usage_kwh`` is not positive.
            UnresolvedPeriodError: If ``rate_plan`` leaves an hour unpriced.
        """
        annual = _validate_energy(annual_usage_kwh, "annual_usage_kwh")
        if use_seasonal_adjustment:
            weights = _normalized(self.load_shape.monthly_weights, 12, "monthly_weights")
        else:
            lengths = month_lengths(self.year).astype(float)
            weights = lengths / lengths.sum()
        return self._build(annual * weights, rate_plan, solar_kwh)

    def generate_from_monthly(
        self,
        monthly_kwh: Sequence[float],
        rate_plan: RatePlan | None = None,
        *,
        solar_kwh: Sequence[float] | None = None,
    ) -> UsageProfile:
        """
        Shape twelve monthly totals (January first) into hourly points.

        Raises:
            InvalidUsageError: If the list is not twelve finite non-negative
                values with a positive total.
        """
        values = list(monthly_kwh)
        if len(values) != 12:
            raise InvalidUsageError(f"monthly_kwh must contain 12 values, got {len(values)}")
        try:
            month_energy = np.asarray(values, dtype=float)
        except (TypeError, ValueError) as exc:
            raise InvalidUsageError("monthly_kwh must contain numbers") from exc
        if not np.all(np.isfinite(month_energy)) or np.any(month_energy < 0):
            raise InvalidUsageError("monthly_kwh values must be finite and non-negative")
        if month_energy.sum() <= 0:
            raise InvalidUsageError("monthly_kwh must have a positive total")
        return self._build(month_energy, rate_plan, solar_kwh)

    def generate_from_monthly_bill(
        self,
        monthly_bill: float,
        rate_plan: RatePlan | None = None,
        *,
        blended_rate: float = DEFAULT_BLENDED_RATE,
        use_seasonal_adjustment: bool = True,
        solar_kwh: Sequence[float] | None = None,
    ) -> UsageProfile:
        """Estimate annual usage from an average monthly bill and shape it."""
        annual = annual_usage_from_monthly_bill(monthly_bill, blended_rate=blended_rate)
        return self.generate_annual(
            annual,
            rate_plan,
            use_seasonal_adjustment=use_seasonal_adjustment,
            solar_kwh=solar_kwh,
        )

    def _build(
        self,
        month_energy: np.ndarray,
        rate_plan: RatePlan | None,
        solar_kwh: Sequence[float] | None,
    ) -> UsageProfile:
        shape = self.load_shape
        days = build_daily_calendar(self.year)
        holidays = rate_plan.holidays if rate_plan is not None else frozenset()

        day_month = np.array([day.month - 1 for day in days], dtype=int)
        day_weekend = np.array([day.weekday() >= 5 or day in holidays for day in days], dtype=bool)
        day_weight = np.where(day_weekend, shape.weekend_factor, 1.0)
        month_weight_sum = np.bincount(day_month, weights=day_weight, minlength=12)
        day_energy = month_energy[day_month] * day_weight / month_weight_sum[day_month]

        weekday_shape = _normalized(shape.weekday_hourly, 24, "weekday_hourly")
        weekend_shape = _normalized(shape.weekend_hourly, 24, "weekend_hourly")
        hourly = np.where(day_weekend[:, None], weekend_shape[None, :], weekday_shape[None, :])
        consumption = (hourly * day_energy[:, None]).ravel()

        n_hours = hours_in_year(self.year)
        if solar_kwh is None:
            solar = np.zeros(n_hours)
        else:
            solar = np.asarray(solar_kwh, dtype=float)
            if solar.shape != (n_hours,):
                raise InvalidUsageError(
                    f"solar_kwh must contain {n_hours} hourly values for {self.year}, got {solar.size}"
                )

        start = datetime(self.year, 1, 1)
        timestamps = [start + timedelta(hours=offset) for offset in range(n_hours)]
        if rate_plan is not None:
            rate_plan.resolve(timestamps)

        profile = UsageProfile(
            points=tuple(
                UsageDataPoint(ts, float(load), float(pv))
                for ts, load, pv in zip(timestamps, consumption, solar)
            ),
            step_hours=1.0,
        )
        logger.debug(
            "Generated %d-hour usage profile for %d (%.1f kWh)",
            n_hours,
            self.year,
            profile.total_consumption_kwh,
        )
        return profile


def annual_usage_from_monthly_bill(
    monthly_bill: float,
    *,
    blended_rate: float = DEFAULT_BLENDED_RATE,
) -> float:
    """
    Convert an average monthly electricity bill to annual kWh.

    Args:
        monthly_bill: Average monthly bill in dollars.
        blended_rate: All-in $/kWh used for the conversion.

    Returns:
        Estimated annual consumption in kWh.
    """
    bill = _validate_energy(monthly_bill, "monthly_bill")
    if not blended_rate > 0:
        raise ValueError("blended_rate must be positive")
    return bill / blended_rate * 12.0


def hourly_solar_from_monthly(monthly_production_kwh: Sequence[float], year: int = 2025) -> np.ndarray:
    """
    Spread monthly PV production across daylight hours.

    Each month's energy is divided evenly over its days and shaped with
    :data:`SOLAR_HOURLY_PATTERN`.

    Args:
        monthly_production_kwh: Twelve monthly production totals (kWh).
        year: Calendar year (determines month lengths).

    Returns:
        Array with one value per hour of ``year``.
    """
    monthly = np.asarray(list(monthly_production_kwh), dtype=float)
    if monthly.shape != (12,):
        raise InvalidUsageError("monthly_production_kwh must contain 12 values")
    if not np.all(np.isfinite(monthly)) or np.any(monthly < 0):
        raise InvalidUsageError("monthly_production_kwh values must be finite and non-negative")
    pattern = np.asarray(SOLAR_HOURLY_PATTERN) / sum(SOLAR_HOURLY_PATTERN)
    lengths = month_lengths(year)
    daily = np.repeat(monthly / lengths, lengths)
    return (daily[:, None] * pattern[None, :]).ravel()


def with_solar(profile: UsageProfile, solar_kwh: Sequence[float]) -> UsageProfile:
    """Return a copy of ``profile`` with its solar series replaced."""
    solar = np.asarray(list(solar_kwh), dtype=float)
    if solar.shape != (len(profile),):
        raise InvalidUsageError(
            f"solar_kwh must contain {len(profile)} values to match the profile, got {solar.size}"
        )
    points = tuple(replace(point, solar_kwh=float(pv)) for point, pv in zip(profile.points, solar))
    return UsageProfile(points=points, step_hours=profile.step_hours)


def from_interval_data(records: Iterable[Mapping[str, Any]]) -> UsageProfile:
    """
    Normalize uploaded smart-meter interval data into an hourly profile.

    Sub-hourly readings are summed into the hour they start in. Readings
    are validated before anything is simulated; gaps, short coverage and
    implausible magnitudes are logged as data-quality warnings.

    Args:
        records: Mappings with ``timestamp`` and ``kwh`` (or
            ``consumption_kwh``) keys, plus optional ``solar_kwh``.

    Returns:
        Hourly UsageProfile sorted by timestamp.

    Raises:
        InvalidUsageError: On empty input, unparseable timestamps, missing
            or non-numeric readings, or negative consumption.
    """
    frame = pd.DataFrame(list(records))
    if frame.empty:
        raise InvalidUsageError("Interval data is empty")
    if "timestamp" not in frame.columns:
        raise InvalidUsageError("Interval data needs a 'timestamp' column")
    if "kwh" not in frame.columns:
        if "consumption_kwh" not in frame.columns:
            raise InvalidUsageError("Interval data needs a 'kwh' or 'consumption_kwh' column")
        frame = frame.rename(columns={"consumption_kwh": "kwh"})
    if "solar_kwh" not in frame.columns:
        frame["solar_kwh"] = 0.0

    try:
        stamps = pd.to_datetime(frame["timestamp"])
    except (ValueError, TypeError) as exc:
        raise InvalidUsageError(f"Unparseable interval timestamp: {exc}") from exc
    if stamps.isna().any():
        raise InvalidUsageError("Interval data contains missing timestamps")
    if stamps.dt.tz is not None:
        stamps = stamps.dt.tz_localize(None)

    values = frame[["kwh", "solar_kwh"]].apply(pd.to_numeric, errors="coerce")
    if values.isna().any().any() or not np.all(np.isfinite(values.to_numpy())):
        raise InvalidUsageError("Interval readings must be finite numbers")
    if (values < 0).any().any():
        raise InvalidUsageError("Interval readings must not be negative")

    values.index = pd.DatetimeIndex(stamps.dt.floor("h"))
    hourly = values.groupby(level=0).sum().sort_index()

    gaps = hourly.index.to_series().diff().dt.total_seconds().div(3600.0)
    large_gaps = gaps[gaps > MAX_GAP_HOURS]
    if not large_gaps.empty:
        logger.warning(
            "Interval data has %d gap(s) longer than %.0f hours (largest %.1f h)",
            len(large_gaps),
            MAX_GAP_HOURS,
            float(large_gaps.max()),
        )
    coverage_days = (hourly.index[-1] - hourly.index[0]).total_seconds() / 86400.0 + 1.0 / 24.0
    if coverage_days < MIN_COVERAGE_DAYS:
        logger.warning(
            "Interval data covers %.1f days; at least %d are recommended",
            coverage_days,
            MIN_COVERAGE_DAYS,
        )
    implausible = int((hourly["kwh"] > MAX_PLAUSIBLE_HOURLY_KWH).sum())
    if implausible:
        logger.warning("%d hourly readings exceed %.0f kWh", implausible, MAX_PLAUSIBLE_HOURLY_KWH)

    points = tuple(
        UsageDataPoint(ts.to_pydatetime(), float(row.kwh), float(row.solar_kwh))
        for ts, row in zip(hourly.index, hourly.itertuples(index=False))
    )
    return UsageProfile(points=points, step_hours=1.0)


def summarize_by_period(profile: UsageProfile, rate_plan: RatePlan) -> pd.DataFrame:
    """
    Consumption and import cost grouped by rate period label.

    Returns:
        DataFrame with ``period``, ``consumption_kwh``, ``cost`` and
        ``share`` columns, ordered by descending consumption.
    """
    prices, _, labels = rate_plan.resolve(profile.timestamps)
    consumption = profile.consumption_kwh
    frame = pd.DataFrame({"period": labels, "consumption_kwh": consumption, "cost": consumption * prices})
    grouped = frame.groupby("period", as_index=False)[["consumption_kwh", "cost"]].sum()
    total = grouped["consumption_kwh"].sum()
    grouped["share"] = grouped["consumption_kwh"] / total if total > 0 else 0.0
    return grouped.sort_values("consumption_kwh", ascending=False).reset_index(drop=True)


def summarize_by_month(profile: UsageProfile) -> pd.DataFrame:
    """Monthly consumption and solar totals (``month`` is 1-12)."""
    frame = profile.to_frame()
    monthly = frame.groupby(frame.index.month)[["consumption_kwh", "solar_kwh"]].sum()
    monthly.index.name = "month"
    return monthly.reset_index()
