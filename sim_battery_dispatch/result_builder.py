from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import List, Mapping, Sequence

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from .simulation.comparison import BatteryComparison
from .simulation.dispatch import DispatchResult


def _slugify(value: str) -> str:
    """
    Convert a free-form string into a filesystem-safe slug.

    Args:
        value: Input string.

    Returns:
        Slug containing only alphanumeric characters, dash, or underscore.
    """
    return "".join(c if c.isalnum() or c in ("-", "_") else "_" for c in value.strip()).strip("_")


def _create_run_directory(scenario_name: str, output_root: Path) -> Path:
    """
    Create the timestamped directory for one comparison run.
    """
    timestamp = datetime.now().strftime("%y%m%d_%H%M%S")
    slug = _slugify(scenario_name) or "scenario"
    run_dir = output_root / f"{timestamp}_{slug}_comparison"
    run_dir.mkdir(parents=True, exist_ok=True)
    return run_dir


def _label(comparison: BatteryComparison) -> str:
    return f"{comparison.battery.name} ({comparison.rate_plan_id})"


def _save_comparison_summary(comparisons: Sequence[BatteryComparison], save_path: Path) -> None:
    """
    Save the CSV summary built from each comparison's serialized form.
    """
    if not comparisons:
        return
    df = pd.DataFrame([comparison.to_summary() for comparison in comparisons])
    df.to_csv(save_path, index=False)


def _save_yearly_projection(comparisons: Sequence[BatteryComparison], save_path: Path) -> None:
    rows = []
    for comparison in comparisons:
        projection = comparison.multi_year_projection
        for row in projection.yearly:
            rows.append(
                {
                    "battery_id": comparison.battery.id,
                    "rate_plan_id": comparison.rate_plan_id,
                    "year": row.year,
                    "rate_multiplier": row.rate_multiplier,
                    "annual_savings": row.annual_savings,
                    "cumulative_savings": row.cumulative_savings,
                    "net_position": row.cumulative_savings - projection.net_cost,
                }
            )
    pd.DataFrame(rows).to_csv(save_path, index=False)


def _plot_cumulative_savings(comparisons: Sequence[BatteryComparison], save_path: Path) -> None:
    """
    Plot the net position (cumulative savings minus net cost) per year.
    """
    fig, ax = plt.subplots(figsize=(10, 6))
    for comparison in comparisons:
        projection = comparison.multi_year_projection
        years = [0] + [row.year for row in projection.yearly]
        net = [-projection.net_cost] + [row.cumulative_savings - projection.net_cost for row in projection.yearly]
        ax.plot(years, net, marker="o", markersize=3, label=_label(comparison))
    ax.axhline(0.0, color="black", linewidth=0.8)
    ax.set_xlabel("Year")
    ax.set_ylabel("Net position ($)")
    ax.set_title("Cumulative savings net of battery cost")
    ax.grid(True, alpha=0.3)
    ax.legend(fontsize=8)
    fig.tight_layout()
    fig.savefig(save_path, dpi=300)
    plt.close(fig)


def _plot_payback(comparisons: Sequence[BatteryComparison], save_path: Path) -> None:
    """
    Bar chart of payback years; batteries that never pay back are hatched.
    """
    labels = [_label(c) for c in comparisons]
    horizon = max((c.multi_year_projection.yearly[-1].year for c in comparisons), default=25)
    values = [
        c.metrics.payback_years if c.metrics.payback_years is not None else float(horizon)
        for c in comparisons
    ]
    fig, ax = plt.subplots(figsize=(10, 6))
    positions = np.arange(len(labels))
    bars = ax.barh(positions, values, color="tab:green")
    for bar, comparison in zip(bars, comparisons):
        if comparison.metrics.payback_years is None:
            bar.set_color("tab:gray")
            bar.set_hatch("//")
    ax.set_yticks(positions)
    ax.set_yticklabels(labels, fontsize=8)
    ax.set_xlabel("Payback (years)")
    ax.set_title("Payback period by battery")
    ax.grid(True, axis="x", alpha=0.3)
    fig.tight_layout()
    fig.savefig(save_path, dpi=300)
    plt.close(fig)


def _plot_state_of_charge(dispatch: DispatchResult, save_path: Path, hours: int = 168) -> None:
    """
    Plot state of charge and grid/battery flows for the first ``hours`` steps.
    """
    df = dispatch.to_frame().head(hours)
    fig, (ax_soc, ax_flow) = plt.subplots(2, 1, figsize=(12, 7), sharex=True)
    ax_soc.plot(df["timestamp"], df["state_of_charge_kwh"], color="tab:blue")
    ax_soc.set_ylabel("State of charge (kWh)")
    ax_soc.set_title(f"{dispatch.battery_id} on {dispatch.rate_plan_id}: first {len(df)} hours")
    ax_soc.grid(True, alpha=0.3)
    ax_flow.plot(df["timestamp"], df["grid_to_load"], label="Grid to load")
    ax_flow.plot(df["timestamp"], df["battery_to_load"], label="Battery to load")
    ax_flow.plot(df["timestamp"], df["grid_to_battery"], label="Grid to battery")
    ax_flow.set_ylabel("Energy (kWh)")
    ax_flow.grid(True, alpha=0.3)
    ax_flow.legend(fontsize=8)
    fig.autofmt_xdate()
    fig.tight_layout()
    fig.savefig(save_path, dpi=300)
    plt.close(fig)


class ResultBuilder:
    """
    Write comparison deliverables (CSV summaries and charts) to disk.
    """

    def __init__(self, output_root: str | Path = "results") -> None:
        """
        Args:
            output_root: Base directory for generated assets.
        """
        self.output_root = Path(output_root)

    def build_comparison_bundle(
        self,
        scenario_name: str,
        comparisons: Sequence[BatteryComparison],
        dispatch_results: Mapping[str, DispatchResult] | None = None,
    ) -> Path:
        """
        Save summary, yearly projection and charts for a comparison run.

        Args:
            scenario_name: Name used for the output directory.
            comparisons: Results to export, in the order they should appear.
            dispatch_results: Optional hourly schedules keyed by label; each
                is written as CSV with a one-week state-of-charge chart.

        Returns:
            Path of the created run directory.
        """
        run_dir = _create_run_directory(scenario_name, self.output_root)
        items: List[BatteryComparison] = list(comparisons)
        _save_comparison_summary(items, run_dir / "comparison_summary.csv")
        if items:
            _save_yearly_projection(items, run_dir / "yearly_projection.csv")
            _plot_cumulative_savings(items, run_dir / "cumulative_savings.png")
            _plot_payback(items, run_dir / "payback.png")
        for key, dispatch in (dispatch_results or {}).items():
            slug = _slugify(key) or dispatch.battery_id
            dispatch.to_frame().to_csv(run_dir / f"dispatch_{slug}.csv", index=False)
            _plot_state_of_charge(dispatch, run_dir / f"soc_{slug}.png")
        return run_dir
