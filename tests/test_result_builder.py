from __future__ import annotations

import pandas as pd

from sim_battery_dispatch.catalog import get_battery
from sim_battery_dispatch.result_builder import ResultBuilder, _slugify
from sim_battery_dispatch.simulation.comparison import BatteryComparisonEngine
from sim_battery_dispatch.simulation.rate_plans import ulo_rate_plan

from conftest import make_day_profile


def _comparisons_and_dispatch():
    """Run two catalog batteries over one synthetic week."""
    profile = make_day_profile([1.5] * (24 * 7))
    engine = BatteryComparisonEngine()
    plan = ulo_rate_plan()
    comparisons = engine.compare(profile, [get_battery("renon-16"), get_battery("growatt-10")], plan)
    _, dispatch = engine.evaluate_with_dispatch(profile, get_battery("renon-16"), plan)
    return comparisons, dispatch


def test_slugify():
    assert _slugify(" Ontario default / 2025 ") == "Ontario_default___2025"
    assert _slugify("///") == ""


def test_result_builder_writes_bundle(tmp_path):
    """Ensure the comparison bundle persists summaries, charts and schedules."""
    comparisons, dispatch = _comparisons_and_dispatch()
    builder = ResultBuilder(output_root=tmp_path)

    run_dir = builder.build_comparison_bundle("batch test", comparisons, {"renon-16 ulo": dispatch})

    assert run_dir.exists()
    assert run_dir.name.endswith("_batch_test_comparison")
    summary = pd.read_csv(run_dir / "comparison_summary.csv")
    assert list(summary["battery_id"]) == ["renon-16", "growatt-10"]
    yearly = pd.read_csv(run_dir / "yearly_projection.csv")
    assert len(yearly) == 2 * 25
    assert (run_dir / "cumulative_savings.png").exists()
    assert (run_dir / "payback.png").exists()
    schedule = pd.read_csv(run_dir / "dispatch_renon-16_ulo.csv")
    assert len(schedule) == 24 * 7
    assert (run_dir / "soc_renon-16_ulo.png").exists()


def test_result_builder_skips_charts_without_comparisons(tmp_path, monkeypatch):
    calls = []
    monkeypatch.setattr("sim_battery_dispatch.result_builder._plot_payback", lambda *a, **k: calls.append(a))
    run_dir = ResultBuilder(output_root=tmp_path).build_comparison_bundle("empty", [])
    assert run_dir.exists()
    assert not (run_dir / "comparison_summary.csv").exists()
    assert calls == []
