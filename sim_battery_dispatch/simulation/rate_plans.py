"""
Time-of-use rate plan models.

A :class:`RatePlan` is an ordered list of :class:`PeriodRule` objects; the
first rule whose calendar predicate matches a timestamp determines the
price. Built-in factories reproduce the Ontario Energy Board residential
plans (Time-of-Use and Ultra-Low Overnight) effective 2025-11-01, plus a
flat tariff used for baselines and tests.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Callable, Dict, FrozenSet, Iterable, List, Sequence, Tuple

import numpy as np

from ..calendar_utils import build_hourly_calendar
from ..errors import UnresolvedPeriodError

logger = logging.getLogger(__name__)

DAY_TYPES = ("all", "weekday", "weekend")
WINTER_MONTHS: FrozenSet[int] = frozenset({11, 12, 1, 2, 3, 4})
SUMMER_MONTHS: FrozenSet[int] = frozenset({5, 6, 7, 8, 9, 10})

ONTARIO_HOLIDAYS_2025: FrozenSet[date] = frozenset(
    {
        date(2025, 1, 1),
        date(2025, 2, 17),
        date(2025, 4, 18),
        date(2025, 5, 19),
        date(2025, 7, 1),
        date(2025, 8, 4),
        date(2025, 9, 1),
        date(2025, 10, 13),
        date(2025, 12, 25),
        date(2025, 12, 26),
    }
)

HourWindow = Tuple[int, int]


def _hour_in_window(hour: int, window: HourWindow) -> bool:
    start, end = window
    if start == end:
        return True
    if start < end:
        return start <= hour < end
    # Window wraps past midnight, e.g. (23, 7).
    return hour >= start or hour < end


@dataclass(frozen=True)
class PeriodRule:
    """
    One priced period of a rate plan.

    Attributes:
        label: Period name shown to users ("on-peak", "ultra-low", ...).
        price_per_kwh: Import price in $/kWh.
        hours: Half-open ``(start, end)`` hour windows. ``start > end`` wraps
            past midnight; ``(0, 24)`` covers the whole day.
        day_type: ``"weekday"``, ``"weekend"`` (statutory holidays included)
            or ``"all"``.
        months: Optional set of months (1-12) the rule is restricted to.
    """

    label: str
    price_per_kwh: float
    hours: Tuple[HourWindow, ...] = ((0, 24),)
    day_type: str = "all"
    months: FrozenSet[int] | None = None

    def __post_init__(self) -> None:
        if self.price_per_kwh < 0 or not np.isfinite(self.price_per_kwh):
            raise ValueError(f"Period '{self.label}' must have a finite non-negative price")
        if self.day_type not in DAY_TYPES:
            raise ValueError(f"day_type must be one of {DAY_TYPES}, got {self.day_type!r}")
        windows = tuple((int(start), int(end)) for start, end in self.hours)
        if not windows:
            raise ValueError(f"Period '{self.label}' needs at least one hour window")
        for start, end in windows:
            if not (0 <= start <= 24 and 0 <= end <= 24):
                raise ValueError(f"Hour window ({start}, {end}) is outside 0-24")
        object.__setattr__(self, "hours", windows)
        if self.months is not None:
            months = frozenset(int(m) for m in self.months)
            if not months or any(m < 1 or m > 12 for m in months):
                raise ValueError("months must be a non-empty subset of 1..12")
            object.__setattr__(self, "months", months)

    def covers_hour(self, hour: int) -> bool:
        return any(_hour_in_window(hour, window) for window in self.hours)

    def applies_at(self, timestamp: datetime, is_holiday: bool = False) -> bool:
        """
        Check whether this rule prices ``timestamp``.

        Args:
            timestamp: Start of the interval being priced.
            is_holiday: Whether the date is a statutory holiday (treated as a
                weekend day).

        Returns:
            True when month, day type, and hour all match.
        """
        if self.months is not None and timestamp.month not in self.months:
            return False
        weekend = is_holiday or timestamp.weekday() >= 5
        if self.day_type == "weekday" and weekend:
            return False
        if self.day_type == "weekend" and not weekend:
            return False
        return self.covers_hour(timestamp.hour)

    def to_summary(self) -> Dict[str, object]:
        return {
            "label": self.label,
            "price_per_kwh": self.price_per_kwh,
            "hours": [list(window) for window in self.hours],
            "day_type": self.day_type,
            "months": sorted(self.months) if self.months is not None else None,
        }


@dataclass(frozen=True)
class RatePlan:
    """
    Ordered collection of period rules forming a complete tariff.

    The rules must partition every hour of the year: resolution walks the
    rules in order and returns the first match, and a timestamp with no
    match raises :class:`UnresolvedPeriodError` instead of defaulting to a
    zero price.

    Attributes:
        id: Short identifier (``"ulo"``, ``"tou"``, ...).
        name: Human-readable plan name.
        periods: Priced rules, evaluated in order.
        export_credit_per_kwh: Fixed export credit in $/kWh. ``None`` means
            net metering: exports are credited at the import price of the
            same hour.
        holidays: Dates priced as weekend days.
        description: Free-form notes.

    Example:
        ```python
        plan = ulo_rate_plan()
        plan.price_for(datetime(2025, 3, 4, 18))   # weekday on-peak, 0.391
        plan.price_for(datetime(2025, 3, 8, 18))   # Saturday, 0.098
        plan.export_credit_for(datetime(2025, 3, 4, 2))  # retail, 0.039
        ```
    """

    id: str
    name: str
    periods: Tuple[PeriodRule, ...]
    export_credit_per_kwh: float | None = None
    holidays: FrozenSet[date] = field(default_factory=frozenset)
    description: str = ""

    def __post_init__(self) -> None:
        periods = tuple(self.periods)
        if not periods:
            raise ValueError(f"Rate plan '{self.id}' must define at least one period")
        if self.export_credit_per_kwh is not None and self.export_credit_per_kwh < 0:
            raise ValueError("export_credit_per_kwh must be non-negative")
        object.__setattr__(self, "periods", periods)
        object.__setattr__(self, "holidays", frozenset(self.holidays))

    def is_holiday(self, timestamp: datetime | date) -> bool:
        day = timestamp.date() if isinstance(timestamp, datetime) else timestamp
        return day in self.holidays

    def period_for(self, timestamp: datetime) -> PeriodRule:
        holiday = self.is_holiday(timestamp)
        for rule in self.periods:
            if rule.applies_at(timestamp, holiday):
                return rule
        raise UnresolvedPeriodError(
            f"Rate plan '{self.id}' has no period covering {timestamp.isoformat()}"
        )

    def price_for(self, timestamp: datetime) -> float:
        return self.period_for(timestamp).price_per_kwh

    def export_credit_for(self, timestamp: datetime) -> float:
        if self.export_credit_per_kwh is None:
            return self.price_for(timestamp)
        return self.export_credit_per_kwh

    def resolve(self, timestamps: Iterable[datetime]) -> Tuple[np.ndarray, np.ndarray, List[str]]:
        """
        Resolve prices, export credits and period labels for many timestamps.

        Args:
            timestamps: Interval start times.

        Returns:
            Tuple ``(prices, export_credits, labels)``; the first two are
            float arrays aligned with the input order.

        Raises:
            UnresolvedPeriodError: If any timestamp falls outside every rule.
        """
        prices: List[float] = []
        labels: List[str] = []
        for ts in timestamps:
            rule = self.period_for(ts)
            prices.append(rule.price_per_kwh)
            labels.append(rule.label)
        price_arr = np.asarray(prices, dtype=float)
        if self.export_credit_per_kwh is None:
            credit_arr = price_arr.copy()
        else:
            credit_arr = np.full(price_arr.shape, self.export_credit_per_kwh, dtype=float)
        return price_arr, credit_arr, labels

    @property
    def cheapest_price(self) -> float:
        return min(rule.price_per_kwh for rule in self.periods)

    @property
    def highest_price(self) -> float:
        return max(rule.price_per_kwh for rule in self.periods)

    def check_coverage(self, year: int) -> None:
        """
        Resolve every hour of ``year`` and fail fast on gaps.

        Raises:
            UnresolvedPeriodError: On the first uncovered hour.
        """
        for ts in build_hourly_calendar(year):
            self.period_for(ts)
        logger.debug("Rate plan %s covers every hour of %d", self.id, year)

    def _hours_by_price(self, day: date, n: int, descending: bool) -> List[int]:
        if n < 0:
            raise ValueError("n must be non-negative")
        stamps = [datetime(day.year, day.month, day.day, hour) for hour in range(24)]
        priced = [(self.price_for(ts), ts.hour) for ts in stamps]
        if descending:
            priced.sort(key=lambda item: (-item[0], item[1]))
        else:
            priced.sort(key=lambda item: (item[0], item[1]))
        return [hour for _, hour in priced[:n]]

    def cheapest_hours(self, day: date, n: int) -> List[int]:
        """Hours of ``day`` ordered by ascending price (ties by hour), first ``n``."""
        return self._hours_by_price(day, n, descending=False)

    def most_expensive_hours(self, day: date, n: int) -> List[int]:
        """Hours of ``day`` ordered by descending price (ties by hour), first ``n``."""
        return self._hours_by_price(day, n, descending=True)

    def cost_of(self, timestamps: Sequence[datetime], consumption_kwh: Sequence[float]) -> float:
        """Import cost of ``consumption_kwh`` drawn at ``timestamps``."""
        if len(timestamps) != len(consumption_kwh):
            raise ValueError("timestamps and consumption_kwh must have the same length")
        prices, _, _ = self.resolve(timestamps)
        return float(np.dot(prices, np.asarray(consumption_kwh, dtype=float)))

    def to_summary(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "export_credit": (
                "retail" if self.export_credit_per_kwh is None else self.export_credit_per_kwh
            ),
            "cheapest_price": self.cheapest_price,
            "highest_price": self.highest_price,
            "holidays": sorted(day.isoformat() for day in self.holidays),
            "periods": [rule.to_summary() for rule in self.periods],
        }


def ulo_rate_plan(holidays: Iterable[date] = ONTARIO_HOLIDAYS_2025) -> RatePlan:
    """
    Ontario Ultra-Low Overnight plan (OEB prices effective 2025-11-01).

    Ultra-low pricing applies 23:00-07:00 every day; weekends and holidays
    are otherwise off-peak; weekdays carry a 16:00-21:00 on-peak block with
    mid-peak around it.
    """
    return RatePlan(
        id="ulo",
        name="Ultra-Low Overnight",
        periods=(
            PeriodRule("ultra-low", 0.039, hours=((23, 7),)),
            PeriodRule("weekend-off-peak", 0.098, hours=((7, 23),), day_type="weekend"),
            PeriodRule("on-peak", 0.391, hours=((16, 21),), day_type="weekday"),
            PeriodRule("mid-peak", 0.157, hours=((7, 16), (21, 23)), day_type="weekday"),
        ),
        holidays=frozenset(holidays),
        description="OEB Ultra-Low Overnight, effective 2025-11-01",
    )


def tou_rate_plan(holidays: Iterable[date] = ONTARIO_HOLIDAYS_2025) -> RatePlan:
    """
    Ontario seasonal Time-of-Use plan (OEB prices effective 2025-11-01).

    Winter (Nov-Apr) peaks in the morning and early evening; summer
    (May-Oct) peaks midday. Weekends, holidays and weekday nights
    19:00-07:00 are off-peak.
    """
    return RatePlan(
        id="tou",
        name="Time-of-Use",
        periods=(
            PeriodRule("off-peak", 0.098, day_type="weekend"),
            PeriodRule("off-peak", 0.098, hours=((19, 7),), day_type="weekday"),
            PeriodRule(
                "on-peak", 0.203, hours=((7, 11), (17, 19)), day_type="weekday", months=WINTER_MONTHS
            ),
            PeriodRule("mid-peak", 0.157, hours=((11, 17),), day_type="weekday", months=WINTER_MONTHS),
            PeriodRule("on-peak", 0.203, hours=((11, 17),), day_type="weekday", months=SUMMER_MONTHS),
            PeriodRule(
                "mid-peak", 0.157, hours=((7, 11), (17, 19)), day_type="weekday", months=SUMMER_MONTHS
            ),
        ),
        holidays=frozenset(holidays),
        description="OEB seasonal Time-of-Use, effective 2025-11-01",
    )


def flat_rate_plan(
    price_per_kwh: float,
    *,
    plan_id: str = "flat",
    export_credit_per_kwh: float | None = None,
) -> RatePlan:
    """Single-price tariff covering every hour."""
    return RatePlan(
        id=plan_id,
        name=f"Flat {price_per_kwh:.3f} $/kWh",
        periods=(PeriodRule("flat", price_per_kwh),),
        export_credit_per_kwh=export_credit_per_kwh,
    )


RATE_PLAN_FACTORIES: Dict[str, Callable[[], RatePlan]] = {
    "ulo": ulo_rate_plan,
    "tou": tou_rate_plan,
}


def get_rate_plan(plan_id: str) -> RatePlan:
    """
    Build a built-in rate plan by id.

    Raises:
        KeyError: If ``plan_id`` is not a known plan.
    """
    try:
        factory = RATE_PLAN_FACTORIES[plan_id.lower()]
    except KeyError:
        raise KeyError(
            f"Unknown rate plan '{plan_id}'. Available: {sorted(RATE_PLAN_FACTORIES)}"
        ) from None
    return factory()


def list_rate_plans() -> List[RatePlan]:
    return [factory() for factory in RATE_PLAN_FACTORIES.values()]


def _optional_price(value: object) -> float | None:
    return None if value is None else float(value)  # type: ignore[arg-type]


def rate_plan_from_mapping(data: Dict[str, object]) -> RatePlan:
    """
    Build a custom rate plan from a JSON-style mapping.

    Expected keys: ``id``, ``name``, ``periods`` (list of mappings with
    ``label``, ``price_per_kwh`` and optional ``hours``, ``day_type``,
    ``months``), optional ``export_credit_per_kwh`` and ``holidays``
    (ISO dates). A mapping with only ``price_per_kwh`` builds a flat plan.
    """
    if "periods" not in data:
        if "price_per_kwh" not in data:
            raise ValueError("Rate plan mapping needs 'periods' or 'price_per_kwh'")
        return flat_rate_plan(
            float(data["price_per_kwh"]),
            plan_id=str(data.get("id", "flat")),
            export_credit_per_kwh=_optional_price(data.get("export_credit_per_kwh")),
        )
    periods = tuple(
        PeriodRule(
            label=str(rule["label"]),
            price_per_kwh=float(rule["price_per_kwh"]),
            hours=tuple(tuple(window) for window in rule.get("hours", [(0, 24)])),
            day_type=str(rule.get("day_type", "all")),
            months=frozenset(rule["months"]) if rule.get("months") else None,
        )
        for rule in data["periods"]  # type: ignore[union-attr]
    )
    holidays = frozenset(date.fromisoformat(str(day)) for day in data.get("holidays", []))  # type: ignore[union-attr]
    return RatePlan(
        id=str(data["id"]),
        name=str(data.get("name", data["id"])),
        periods=periods,
        export_credit_per_kwh=_optional_price(data.get("export_credit_per_kwh")),
        holidays=holidays,
        description=str(data.get("description", "")),
    )
