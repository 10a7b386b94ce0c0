from datetime import date, datetime

import pytest

from sim_battery_dispatch.errors import UnresolvedPeriodError
from sim_battery_dispatch.simulation.rate_plans import (
    PeriodRule,
    RatePlan,
    flat_rate_plan,
    get_rate_plan,
    list_rate_plans,
    rate_plan_from_mapping,
    tou_rate_plan,
    ulo_rate_plan,
)


@pytest.mark.parametrize(
    "timestamp, expected_price, expected_label",
    [
        (datetime(2025, 3, 4, 18), 0.391, "on-peak"),
        (datetime(2025, 3, 4, 2), 0.039, "ultra-low"),
        (datetime(2025, 3, 4, 23), 0.039, "ultra-low"),
        (datetime(2025, 3, 4, 8), 0.157, "mid-peak"),
        (datetime(2025, 3, 4, 22), 0.157, "mid-peak"),
        (datetime(2025, 3, 8, 18), 0.098, "weekend-off-peak"),
        (datetime(2025, 3, 8, 3), 0.039, "ultra-low"),
        (datetime(2025, 7, 1, 18), 0.098, "weekend-off-peak"),
    ],
)
def test_ulo_resolves_expected_periods(timestamp, expected_price, expected_label):
    plan = ulo_rate_plan()
    rule = plan.period_for(timestamp)
    assert rule.price_per_kwh == pytest.approx(expected_price)
    assert rule.label == expected_label


@pytest.mark.parametrize(
    "timestamp, expected_price",
    [
        (datetime(2025, 1, 7, 8), 0.203),
        (datetime(2025, 1, 7, 12), 0.157),
        (datetime(2025, 1, 7, 18), 0.203),
        (datetime(2025, 1, 7, 20), 0.098),
        (datetime(2025, 7, 8, 12), 0.203),
        (datetime(2025, 7, 8, 8), 0.157),
        (datetime(2025, 7, 12, 12), 0.098),
    ],
)
def test_tou_is_seasonal(timestamp, expected_price):
    assert tou_rate_plan().price_for(timestamp) == pytest.approx(expected_price)


@pytest.mark.parametrize("year", [2025, 2024])
@pytest.mark.parametrize("factory", [ulo_rate_plan, tou_rate_plan])
def test_builtin_plans_cover_every_hour(factory, year):
    factory().check_coverage(year)


def test_gap_in_plan_raises_instead_of_zero_price():
    plan = RatePlan(
        id="gappy",
        name="Gappy",
        periods=(PeriodRule("day", 0.2, hours=((7, 19),)),),
    )
    with pytest.raises(UnresolvedPeriodError):
        plan.price_for(datetime(2025, 3, 4, 2))
    with pytest.raises(UnresolvedPeriodError):
        plan.check_coverage(2025)


def test_first_matching_rule_wins():
    plan = RatePlan(
        id="overlap",
        name="Overlap",
        periods=(
            PeriodRule("first", 0.1, hours=((0, 12),)),
            PeriodRule("second", 0.3),
        ),
    )
    assert plan.period_for(datetime(2025, 3, 4, 6)).label == "first"
    assert plan.period_for(datetime(2025, 3, 4, 15)).label == "second"


def test_export_credit_defaults_to_retail_price():
    plan = ulo_rate_plan()
    assert plan.export_credit_for(datetime(2025, 3, 4, 18)) == pytest.approx(0.391)
    fixed = flat_rate_plan(0.2, export_credit_per_kwh=0.05)
    assert fixed.export_credit_for(datetime(2025, 3, 4, 18)) == pytest.approx(0.05)
    _, credits, _ = fixed.resolve([datetime(2025, 3, 4, h) for h in range(3)])
    assert credits.tolist() == pytest.approx([0.05, 0.05, 0.05])


def test_cheapest_and_most_expensive_hours():
    plan = ulo_rate_plan()
    tuesday = date(2025, 3, 4)
    assert plan.cheapest_hours(tuesday, 8) == [0, 1, 2, 3, 4, 5, 6, 23]
    assert plan.most_expensive_hours(tuesday, 5) == [16, 17, 18, 19, 20]
    assert plan.cheapest_hours(tuesday, 0) == []


def test_price_extremes_and_cost():
    plan = ulo_rate_plan()
    assert plan.cheapest_price == pytest.approx(0.039)
    assert plan.highest_price == pytest.approx(0.391)
    stamps = [datetime(2025, 3, 4, 2), datetime(2025, 3, 4, 18)]
    assert plan.cost_of(stamps, [1.0, 2.0]) == pytest.approx(0.039 + 2 * 0.391)
    with pytest.raises(ValueError):
        plan.cost_of(stamps, [1.0])


def test_get_rate_plan_lookup():
    assert get_rate_plan("ULO").id == "ulo"
    assert {plan.id for plan in list_rate_plans()} == {"ulo", "tou"}
    with pytest.raises(KeyError):
        get_rate_plan("nope")


def test_period_rule_validation():
    with pytest.raises(ValueError):
        PeriodRule("bad", 0.1, day_type="holiday")
    with pytest.raises(ValueError):
        PeriodRule("bad", -0.1)
    with pytest.raises(ValueError):
        PeriodRule("bad", 0.1, hours=((0, 25),))
    with pytest.raises(ValueError):
        PeriodRule("bad", 0.1, months={13})


def test_rate_plan_from_mapping():
    flat = rate_plan_from_mapping({"id": "flat-12", "price_per_kwh": 0.12})
    assert flat.id == "flat-12"
    assert flat.price_for(datetime(2025, 6, 1, 5)) == pytest.approx(0.12)

    custom = rate_plan_from_mapping(
        {
            "id": "custom",
            "export_credit_per_kwh": 0.0,
            "holidays": ["2025-03-04"],
            "periods": [
                {"label": "night", "price_per_kwh": 0.05, "hours": [[22, 6]]},
                {"label": "weekday-day", "price_per_kwh": 0.25, "hours": [[6, 22]], "day_type": "weekday"},
                {"label": "weekend-day", "price_per_kwh": 0.10, "hours": [[6, 22]], "day_type": "weekend"},
            ],
        }
    )
    # 2025-03-04 is a Tuesday listed as a holiday.
    assert custom.period_for(datetime(2025, 3, 4, 12)).label == "weekend-day"
    assert custom.period_for(datetime(2025, 3, 5, 12)).label == "weekday-day"
    assert custom.export_credit_for(datetime(2025, 3, 5, 12)) == 0.0

    with pytest.raises(ValueError):
        rate_plan_from_mapping({"id": "empty"})


def test_rate_plan_from_mapping_coerces_export_credit():
    periods = [{"label": "all-day", "price_per_kwh": "0.1"}]
    plan = rate_plan_from_mapping({"id": "x", "periods": periods, "export_credit_per_kwh": "0.05"})
    assert plan.export_credit_per_kwh == pytest.approx(0.05)
    assert plan.export_credit_for(datetime(2025, 3, 5, 12)) == pytest.approx(0.05)

    flat = rate_plan_from_mapping({"id": "flat", "price_per_kwh": "0.12", "export_credit_per_kwh": "0"})
    assert flat.export_credit_per_kwh == 0.0
    assert rate_plan_from_mapping({"id": "retail", "price_per_kwh": 0.12}).export_credit_per_kwh is None

    with pytest.raises(ValueError):
        rate_plan_from_mapping({"id": "x", "periods": periods, "export_credit_per_kwh": "lots"})


def test_summary_reports_retail_export():
    summary = ulo_rate_plan().to_summary()
    assert summary["export_credit"] == "retail"
    assert summary["periods"][0]["label"] == "ultra-low"
    assert "2025-07-01" in summary["holidays"]
