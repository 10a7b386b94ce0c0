from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Sequence

from .application import SimulationApplication
from .config import configure_logging
from .db.session import init_db
from .errors import InvalidUsageError
from .persistence import PersistenceService
from .result_builder import ResultBuilder


def build_argument_parser() -> argparse.ArgumentParser:
    """
    Build the CLI argument parser used by entry points.

    Returns:
        Configured argparse.ArgumentParser instance.
    """
    parser = argparse.ArgumentParser(description="Battery dispatch simulator CLI")
    sub = parser.add_subparsers(dest="command")

    compare = sub.add_parser("compare", help="Compare batteries across rate plans")
    compare.add_argument(
        "--scenario-file",
        type=str,
        default=None,
        help="Path to a scenario JSON file (defaults to the bundled Ontario scenario)",
    )
    compare.add_argument(
        "--rate-plans",
        type=str,
        default=None,
        help="Comma-separated rate plan ids, e.g. ulo,tou",
    )
    compare.add_argument(
        "--batteries",
        type=str,
        default=None,
        help="Comma-separated battery catalog ids",
    )
    compare.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Worker threads for the per-battery fan-out",
    )
    compare.add_argument(
        "--no-save",
        action="store_true",
        help="Do not write CSVs and charts to the results folder",
    )
    compare.add_argument(
        "--output-dir",
        type=str,
        default="results",
        help="Base directory for saved outputs",
    )

    recommend = sub.add_parser("recommend", help="Recommend a battery size from on-peak usage")
    recommend.add_argument("--scenario-file", type=str, default=None)
    recommend.add_argument("--rate-plan", type=str, default=None, help="Rate plan id (default: first in scenario)")
    recommend.add_argument("--budget", type=float, default=None, help="Maximum net price after rebate")

    batteries = sub.add_parser("batteries", help="Manage the battery catalog")
    battery_sub = batteries.add_subparsers(dest="battery_command")
    battery_sub.add_parser("list", help="List catalog batteries")
    battery_sub.add_parser("seed", help="Load the built-in catalog into the database")
    upsert = battery_sub.add_parser("upsert", help="Create or update a battery from JSON")
    upsert.add_argument("--file", type=str, required=True, help="JSON file with one battery or a list")
    delete = battery_sub.add_parser("delete", help="Delete a battery")
    delete.add_argument("--id", type=str, required=True, help="Battery catalog id")

    plans = sub.add_parser("rate-plans", help="Inspect built-in rate plans")
    plans_sub = plans.add_subparsers(dest="plans_command")
    plans_sub.add_parser("list", help="List built-in rate plans")

    return parser


def _load_json_file(path: str | Path) -> Any:
    file_path = Path(path)
    if not file_path.exists():
        raise SystemExit(f"File not found: {file_path}")
    try:
        return json.loads(file_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise SystemExit(f"Invalid JSON file ({file_path}): {exc}") from exc


def _print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, default=str, ensure_ascii=False))


def _parse_id_list(raw: str | None) -> list[str] | None:
    if raw is None:
        return None
    values = [token.strip() for token in raw.split(",")]
    return [value for value in values if value]


def _battery_row(record) -> dict[str, Any]:
    return {
        "id": record.battery_id,
        "name": f"{record.brand} {record.model}".strip(),
        "usable_kwh": record.usable_kwh,
        "inverter_kw": record.inverter_kw,
        "round_trip_efficiency": record.round_trip_efficiency,
        "price": record.price,
    }


def main(argv: Sequence[str] | None = None) -> None:
    """
    CLI entry point for comparisons, recommendations and catalog management.

    Args:
        argv: Optional sequence of CLI args (defaults to sys.argv).
    """
    parser = build_argument_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return

    configure_logging()

    if args.command == "rate-plans":
        _print_json(SimulationApplication.rate_plans())
        return

    init_db()
    persistence = PersistenceService()

    if args.command == "batteries":
        if not args.battery_command:
            parser.error("Specify a batteries subcommand (list/seed/upsert/delete).")
        if args.battery_command == "list":
            _print_json([_battery_row(record) for record in persistence.list_batteries()])
            return
        if args.battery_command == "seed":
            count = persistence.seed_defaults()
            _print_json({"seeded": count})
            return
        if args.battery_command == "upsert":
            payload = _load_json_file(args.file)
            entries = payload if isinstance(payload, list) else [payload]
            try:
                stored = [persistence.upsert_battery(entry) for entry in entries]
            except ValueError as exc:
                raise SystemExit(f"Invalid battery definition: {exc}") from exc
            _print_json([_battery_row(record) for record in stored])
            return
        if args.battery_command == "delete":
            if not persistence.delete_battery(args.id):
                raise SystemExit(f"Battery not found: {args.id}")
            _print_json({"deleted": args.id})
            return

    save_outputs = not getattr(args, "no_save", False)
    app = SimulationApplication(
        save_outputs=save_outputs,
        persistence=persistence,
        result_builder=None,
    )
    scenario_data = _load_json_file(args.scenario_file) if args.scenario_file else None

    try:
        if args.command == "compare":
            if app.save_outputs and app.result_builder is None:
                app.result_builder = ResultBuilder(args.output_dir)
            summary = app.run_comparison(
                scenario_data=scenario_data,
                rate_plan_ids=_parse_id_list(args.rate_plans),
                battery_ids=_parse_id_list(args.batteries),
                max_workers=args.workers,
            )
            _print_json(summary)
            return

        if args.command == "recommend":
            _print_json(
                app.recommend(
                    scenario_data=scenario_data,
                    rate_plan_id=args.rate_plan,
                    budget=args.budget,
                )
            )
            return
    except InvalidUsageError as exc:
        raise SystemExit(f"Invalid usage data: {exc}") from exc
    except KeyError as exc:
        raise SystemExit(str(exc.args[0]) if exc.args else "Unknown identifier") from exc


if __name__ == "__main__":
    main(sys.argv[1:])
