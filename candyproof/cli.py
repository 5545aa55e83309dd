"""candyproof CLI — command-line driver for the convergence proof.

Commands:
  candyproof prove [--format pretty|json|smtlib2]   — Run the whole proof plan
  candyproof plan                                   — List the lemmas in order
  candyproof simulate 4 0 2                         — Run the process on concrete counts
  candyproof witness 4 0 --step 1                   — Check a convergence witness with the solver
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Optional

from candyproof import __version__
from candyproof.config import FORMATS, ProverConfig, load_config
from candyproof.errors import ProofFailure, ScenarioError
from candyproof.formatters import (
    ICON_ERROR, ICON_OK, format_plan, format_report, format_trajectory, trajectory_dict,
)
from candyproof.lemmas import LEMMAS
from candyproof.scenario import check_witness, run
from candyproof.theorem import prove_convergence


def _load(args: argparse.Namespace) -> ProverConfig:
    """Config file values, overridden by command-line flags."""
    config = load_config(getattr(args, "config", None))
    if getattr(args, "timeout_ms", None) is not None:
        config.timeout_ms = args.timeout_ms
    if getattr(args, "format", None):
        config.format = args.format
    if getattr(args, "record_smtlib2", False):
        config.record_smtlib2 = True
    if getattr(args, "no_corollaries", False):
        config.corollaries = False
    if getattr(args, "verbose", 0):
        config.log_level = "DEBUG" if args.verbose > 1 else "INFO"
    return config.validate()


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level),
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def cmd_prove(args: argparse.Namespace) -> int:
    """Run the proof plan and print the report."""
    try:
        config = _load(args)
    except ProofFailure as e:
        print(e.to_json())
        return 1
    _setup_logging(config.log_level)

    if config.format == "smtlib2":
        config.record_smtlib2 = True

    report = prove_convergence(config, raise_on_failure=False)
    print(format_report(report, config.format))
    return 0 if report.proved else 1


def cmd_plan(args: argparse.Namespace) -> int:
    """Print the lemma plan."""
    if getattr(args, "json", False):
        print(json.dumps([
            {"index": i, "name": s.name, "stage": s.stage, "requires": list(s.requires)}
            for i, s in enumerate(LEMMAS, 1)
        ], indent=2))
    else:
        print(format_plan(LEMMAS))
    return 0


def cmd_simulate(args: argparse.Namespace) -> int:
    """Run the dynamics on concrete counts until they are uniform."""
    try:
        trajectory = run(args.counts, max_steps=args.max_steps)
    except ScenarioError as e:
        print(e.to_json())
        return 1
    if args.json:
        print(json.dumps(trajectory_dict(trajectory), indent=2))
    else:
        print(format_trajectory(trajectory))
    return 0


def cmd_witness(args: argparse.Namespace) -> int:
    """Check with the solver that all children agree at the given step."""
    try:
        config = _load(args)
    except ProofFailure as e:
        print(e.to_json())
        return 1
    _setup_logging(config.log_level)

    try:
        result = check_witness(args.counts, args.step, config)
    except ScenarioError as e:
        print(e.to_json())
        return 1

    if result.refuted:
        print(f" {ICON_OK}  step {args.step} is a convergence witness for {args.counts}")
        return 0
    print(f" {ICON_ERROR}  step {args.step} is not a witness for {args.counts} (solver: {result.value})")
    return 1


def main(argv: Optional[list] = None) -> None:
    parser = argparse.ArgumentParser(
        prog="candyproof",
        description="candyproof — refutation proof of uniform candy distribution",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="count", default=0,
                        help="Log solver queries (-vv for layer operations)")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # prove
    p_prove = subparsers.add_parser("prove", help="Prove the convergence theorem")
    p_prove.add_argument("--format", choices=FORMATS, help="Output format (default: pretty)")
    p_prove.add_argument("--timeout-ms", type=int, dest="timeout_ms", help="Per-query solver timeout")
    p_prove.add_argument("--config", help="Path to a .candyproofrc.json file")
    p_prove.add_argument("--record-smtlib2", action="store_true", dest="record_smtlib2",
                         help="Keep the SMTLIB2 text of every query")
    p_prove.add_argument("--no-corollaries", action="store_true", dest="no_corollaries",
                         help="Stop after the main theorem")
    p_prove.set_defaults(func=cmd_prove)

    # plan
    p_plan = subparsers.add_parser("plan", help="List the lemmas of the proof plan")
    p_plan.add_argument("--json", action="store_true", help="Machine-readable output")
    p_plan.set_defaults(func=cmd_plan)

    # simulate
    p_sim = subparsers.add_parser("simulate", help="Run the process on concrete counts")
    p_sim.add_argument("counts", nargs="+", type=int, help="Initial counts, child 1 first")
    p_sim.add_argument("--max-steps", type=int, default=10000, dest="max_steps")
    p_sim.add_argument("--json", action="store_true", help="Machine-readable output")
    p_sim.set_defaults(func=cmd_simulate)

    # witness
    p_wit = subparsers.add_parser("witness", help="Check a convergence step with the solver")
    p_wit.add_argument("counts", nargs="+", type=int, help="Initial counts, child 1 first")
    p_wit.add_argument("--step", type=int, required=True, help="Step claimed to be uniform")
    p_wit.add_argument("--timeout-ms", type=int, dest="timeout_ms", help="Solver timeout")
    p_wit.add_argument("--config", help="Path to a .candyproofrc.json file")
    p_wit.set_defaults(func=cmd_witness)

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    sys.exit(args.func(args))


if __name__ == "__main__":
    main()
