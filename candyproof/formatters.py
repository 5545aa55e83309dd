"""candyproof Output Formatters — terminal output of a proof run.

Output modes:
    pretty   — colored lemma list and query table (default)
    json     — machine-readable report
    smtlib2  — every recorded query as one SMTLIB2 bundle
"""

from __future__ import annotations

import json
import os
import sys
from typing import Any, Dict, List, Sequence

from candyproof.lemmas import LemmaStep
from candyproof.theorem import ProofReport


# ── ANSI color helpers ───────────────────────────────────────────────────

_NO_COLOR = os.environ.get("NO_COLOR") is not None or not sys.stdout.isatty()


def _c(code: str, text: str) -> str:
    if _NO_COLOR:
        return text
    return f"\033[{code}m{text}\033[0m"


def red(t: str) -> str:
    return _c("31", t)


def green(t: str) -> str:
    return _c("32", t)


def cyan(t: str) -> str:
    return _c("36", t)


def bold(t: str) -> str:
    return _c("1", t)


def dim(t: str) -> str:
    return _c("2", t)


ICON_ERROR = red("✖")
ICON_OK = green("✔")


# ── Proof report ────────────────────────────────────────────────────────

def format_pretty(report: ProofReport) -> str:
    lines: List[str] = []
    trace = report.trace
    for name in report.committed:
        obligations = trace.for_lemma(name)
        if not obligations:
            lines.append(f"   {dim('·')}  {dim(name)}")
            continue
        ms = sum(o.duration_ms for o in obligations)
        lines.append(f"   {ICON_OK}  {name} {dim(f'({len(obligations)} queries, {ms:.0f} ms)')}")
    if report.failed_lemma is not None:
        lines.append(f"   {ICON_ERROR}  {red(report.failed_lemma)}")
        if report.error:
            lines.append(f"      {dim(report.error)}")

    lines.append("")
    lines.append(trace.to_ascii_table())
    if report.proved:
        lines.append(f" {ICON_OK}  {bold('Theorem proved:')} {cyan(str(report.theorem))}\n")
    else:
        where = f" at lemma {report.failed_index} ({report.failed_lemma})" if report.failed_lemma else ""
        lines.append(f" {ICON_ERROR}  {bold(red('Proof failed' + where))}\n")
    return "\n".join(lines)


def format_report(report: ProofReport, fmt: str = "pretty") -> str:
    """Dispatch to the formatter for ``fmt``."""
    if fmt == "json":
        return json.dumps(report.to_dict(), indent=2)
    elif fmt == "smtlib2":
        return report.trace.to_smtlib2_bundle()
    return format_pretty(report)


# ── Plan and scenarios ──────────────────────────────────────────────────

def format_plan(steps: Sequence[LemmaStep]) -> str:
    lines = [f"  {'#':>2}  {'Lemma':<28} {'Stage':<14} Requires"]
    for i, step in enumerate(steps, 1):
        requires = ", ".join(step.requires) or dim("base axioms")
        lines.append(f"  {i:>2}  {step.name:<28} {step.stage:<14} {requires}")
    return "\n".join(lines) + "\n"


def format_trajectory(trajectory: Sequence[Sequence[int]]) -> str:
    width = max(len(str(c)) for state in trajectory for c in state)
    lines = []
    for k, state in enumerate(trajectory):
        cells = " ".join(f"{c:>{width}}" for c in state)
        lines.append(f"  {dim(f'k={k:<3}')} {cells}")
    lines.append(f"\n  {ICON_OK}  uniform after {len(trajectory) - 1} step(s)\n")
    return "\n".join(lines)


def trajectory_dict(trajectory: Sequence[Sequence[int]]) -> Dict[str, Any]:
    return {"steps": len(trajectory) - 1, "trajectory": [list(s) for s in trajectory]}
