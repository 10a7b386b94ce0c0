from __future__ import annotations

import logging
from typing import Any, Dict, List

from .catalog import daily_on_peak_usage, get_battery, recommend_battery
from .config import get_max_workers
from .persistence import PersistenceService
from .result_builder import ResultBuilder
from .scenario_setup import (
    ScenarioSource,
    build_batteries,
    build_dispatch_policy,
    build_financial_config,
    build_rate_plans,
    build_rebate_rule,
    build_usage_profile,
    load_scenario_data,
)
from .simulation import BatteryComparisonEngine, BatterySpec, list_rate_plans, rank_comparisons

logger = logging.getLogger(__name__)


class SimulationApplication:
    """
    High-level orchestrator used by the CLI and the FastAPI surface.
    """

    def __init__(
        self,
        *,
        save_outputs: bool = False,
        persistence: PersistenceService | None = None,
        result_builder: ResultBuilder | None = None,
    ) -> None:
        """
        Args:
            save_outputs: When True, ResultBuilder saves CSVs and charts.
            persistence: Optional battery catalog; falls back to the
                built-in catalog when absent or when it has no entries.
            result_builder: Optional ResultBuilder for CLI outputs.
        """
        self.save_outputs = save_outputs
        self.persistence = persistence
        self.result_builder = result_builder

    def _battery_lookup(self):
        if self.persistence is None:
            return get_battery
        persistence = self.persistence

        def lookup(battery_id: str) -> BatterySpec:
            record = persistence.get_battery(battery_id)
            if record is not None:
                return record.to_spec()
            return get_battery(battery_id)

        return lookup

    def run_comparison(
        self,
        *,
        scenario_data: ScenarioSource = None,
        rate_plan_ids: List[str] | None = None,
        battery_ids: List[str] | None = None,
        max_workers: int | None = None,
    ) -> Dict[str, Any]:
        """
        Compare the scenario's batteries across its rate plans.

        Args:
            scenario_data: Mapping/path overriding the bundled scenario.
            rate_plan_ids: Optional override of the scenario's rate plans.
            battery_ids: Optional override of the scenario's batteries.
            max_workers: Thread count; defaults to ``SIM_BATTERY_MAX_WORKERS``.

        Returns:
            Summary dictionary with one serialized entry per comparison (in
            input order), the best entry by payback, and the optional output
            directory.

        Raises:
            InvalidUsageError: If the usage input is invalid.
            KeyError: If a battery or rate plan id is unknown.
        """
        scenario_payload = load_scenario_data(scenario_data)
        scenario_name = scenario_payload.get("scenario_name", "custom_scenario")
        plans = build_rate_plans(scenario_payload, rate_plan_ids)
        if not plans:
            raise ValueError("Scenario defines no rate plans")
        profile = build_usage_profile(scenario_payload, plans[0])
        batteries = build_batteries(scenario_payload, battery_ids, lookup=self._battery_lookup())

        engine = BatteryComparisonEngine(
            policy=build_dispatch_policy(scenario_payload),
            financial_config=build_financial_config(scenario_payload),
            rebate_rule=build_rebate_rule(scenario_payload),
            max_workers=max_workers or get_max_workers(),
        )
        comparisons = engine.compare(profile, batteries, plans)
        ranked = rank_comparisons(comparisons, by="payback_years")
        best = ranked[0] if ranked and ranked[0].is_cost_effective else None

        summary: Dict[str, Any] = {
            "scenario": scenario_name,
            "total_consumption_kwh": profile.total_consumption_kwh,
            "total_solar_kwh": profile.total_solar_kwh,
            "rate_plans": [plan.id for plan in plans],
            "comparisons": [comparison.to_summary() for comparison in comparisons],
            "best": best.to_summary() if best is not None else None,
        }

        if self.save_outputs and self.result_builder is not None:
            dispatch_results = {}
            if best is not None:
                plan = next(plan for plan in plans if plan.id == best.rate_plan_id)
                _, dispatch = engine.evaluate_with_dispatch(profile, best.battery, plan)
                dispatch_results[f"{best.battery.id}_{plan.id}"] = dispatch
            output_dir = self.result_builder.build_comparison_bundle(
                scenario_name,
                comparisons,
                dispatch_results,
            )
            summary["output_dir"] = str(output_dir)
            logger.info("Comparison outputs saved to %s", output_dir)
        return summary

    def recommend(
        self,
        *,
        scenario_data: ScenarioSource = None,
        rate_plan_id: str | None = None,
        budget: float | None = None,
    ) -> Dict[str, Any]:
        """
        Recommend a battery size from the scenario's on-peak consumption.

        Returns:
            Dictionary with the daily on-peak kWh and the recommended battery
            (``None`` when nothing fits the budget).
        """
        scenario_payload = load_scenario_data(scenario_data)
        plan = build_rate_plans(scenario_payload, [rate_plan_id] if rate_plan_id else None)[0]
        profile = build_usage_profile(scenario_payload, plan)
        on_peak = daily_on_peak_usage(profile, plan)
        if self.persistence is not None:
            catalog = self.persistence.load_specs() or None
        else:
            catalog = None
        choice = recommend_battery(on_peak, catalog, budget=budget, rebate_rule=build_rebate_rule(scenario_payload))
        return {
            "rate_plan_id": plan.id,
            "daily_on_peak_kwh": on_peak,
            "recommended_battery": choice.to_dict() if choice is not None else None,
        }

    @staticmethod
    def rate_plans() -> List[Dict[str, Any]]:
        return [plan.to_summary() for plan in list_rate_plans()]
