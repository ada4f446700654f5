#!/usr/bin/env python3
"""Run the slippage simulation on a scenario file.

Usage:
    python scripts/run_slippage.py --scenario tests/fixtures/scenarios/four_pool_basket.json

Outputs (in --out, default current directory):
    slippage.jsonl - One CycleRecord per line, appended as cycles complete
    slippage.csv - Same records in spreadsheet form
    run_artifacts.json - Config, records, summary and SHA256
    sha256.txt - SHA256 digest of the artifacts

Exit codes: 0 finished, 1 bad input, 2 run aborted.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run batch mint slippage simulation")
    parser.add_argument(
        "--scenario",
        type=Path,
        required=True,
        help="Path to scenario JSON file",
    )
    parser.add_argument(
        "--out",
        type=Path,
        default=None,
        help="Output directory (default: current directory)",
    )
    parser.add_argument(
        "--max-slippage",
        type=str,
        default=None,
        help="Override the scenario's maximum slippage ratio (e.g. 0.005)",
    )
    parser.add_argument(
        "--max-cycles",
        type=int,
        default=None,
        help="Stop after this many cycles",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Emit JSON log lines instead of human-readable ones",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        help="Log level (default: INFO)",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Run simulation."""
    args = build_parser().parse_args(argv)

    if not args.scenario.exists():
        print(f"ERROR: Scenario file not found: {args.scenario}")
        return 1

    # Import after arg parsing to fail fast on bad args
    from slippagesim.errors import InvalidConfiguration
    from slippagesim.logging_config import setup_logging
    from slippagesim.sim import ResultRecorder, build_run_artifacts, dump_artifacts_json
    from slippagesim.sim.scenario import load_scenario

    setup_logging(level=args.log_level.upper(), json_format=args.json_logs)
    logger = logging.getLogger("run_slippage")

    overrides: dict[str, object] = {}
    if args.max_slippage is not None:
        overrides["max_slippage"] = args.max_slippage
    if args.max_cycles is not None:
        overrides["max_cycles"] = args.max_cycles

    try:
        scenario = load_scenario(args.scenario, overrides)
    except InvalidConfiguration as exc:
        print(f"ERROR: Invalid scenario: {exc}")
        return 1

    out_dir = args.out or Path(".")
    out_dir.mkdir(parents=True, exist_ok=True)
    jsonl_path = out_dir / "slippage.jsonl"
    jsonl_path.unlink(missing_ok=True)

    config = scenario.config
    print(
        f"Config: input={config.input_amount} {config.reference_asset}, "
        f"max_slippage={config.max_slippage}, blocks=[{config.start_block}, {config.end_block})"
    )

    recorder = ResultRecorder(sink_path=jsonl_path)
    result = scenario.driver(recorder=recorder).run_sync()

    csv_path = recorder.write_csv(out_dir / "slippage.csv")
    artifacts = build_run_artifacts(result.run)
    artifacts_path = out_dir / "run_artifacts.json"
    with open(artifacts_path, "wb") as f:
        f.write(dump_artifacts_json(artifacts))
    sha256_path = out_dir / "sha256.txt"
    with open(sha256_path, "w") as f:
        f.write(f"{artifacts.sha256}\n")
    print(f"  Records written to {jsonl_path} and {csv_path}")
    print(f"  Artifacts written to {artifacts_path}")

    summary = artifacts.summary
    print("\n=== SLIPPAGE RESULTS ===")
    print(f"  SHA256: {artifacts.sha256}")
    print(f"  Cycles: {summary['cycles']} (passed {summary['passed']}, failed {summary['failed']})")
    print(f"  Slippage min/mean/max: {summary['min_slippage']} / {summary['mean_slippage']} / {summary['max_slippage']}")
    print(f"  Blocks: {summary['first_block']} -> {summary['last_block']}")
    print(f"  Final State: {summary['final_state']}")

    if not result.ok:
        logger.error("Run aborted", extra={"error_type": summary["error_type"]})
        print(f"  ABORTED: {result.error}")
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
