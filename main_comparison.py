from __future__ import annotations

from sim_battery_dispatch import (
    BatteryComparisonEngine,
    ResultBuilder,
    rank_comparisons,
)
from sim_battery_dispatch.config import configure_logging, get_max_workers
from sim_battery_dispatch.scenario_setup import (
    build_batteries,
    build_dispatch_policy,
    build_financial_config,
    build_rate_plans,
    build_rebate_rule,
    build_usage_profile,
    load_scenario_data,
)


def main() -> None:
    configure_logging()
    scenario = load_scenario_data()
    plans = build_rate_plans(scenario)
    profile = build_usage_profile(scenario, plans[0])
    batteries = build_batteries(scenario)

    engine = BatteryComparisonEngine(
        policy=build_dispatch_policy(scenario),
        financial_config=build_financial_config(scenario),
        rebate_rule=build_rebate_rule(scenario),
        max_workers=get_max_workers(),
    )
    comparisons = engine.compare(profile, batteries, plans)

    for comparison in rank_comparisons(comparisons, by="payback_years"):
        summary = comparison.to_summary()
        print(
            f"{summary['battery_name']:<24} {summary['rate_plan_id']:<4} "
            f"savings ${summary['annual_savings']:>8.2f}/yr  payback {summary['payback_period']}"
        )

    output_dir = ResultBuilder().build_comparison_bundle(scenario["scenario_name"], comparisons)
    print(f"Results saved to: {output_dir}")


if __name__ == "__main__":
    main()
