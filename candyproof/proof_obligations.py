"""candyproof Proof Obligations — the per-query proof ledger.

Every refutation query the harness issues is recorded, successful or
not, so that a run can be audited after the fact:

  1. The LEMMA and the PROOF RULE it was established by
     (e.g. "induction-step", "well-founded-step", "refutation").
  2. The VERIFICATION CONDITION — a readable rendering of the claim.
  3. The SMTLIB2 QUERY — the assertions active at check time, when
     recording is enabled, so results are independently reproducible.
  4. The SOLVER RESPONSE — UNSAT (refuted, the lemma holds), SAT
     (a model of the negated goal exists) or UNKNOWN.

Usage:
    from candyproof.proof_obligations import ProofObligation, ProofTrace, SolverResult

    trace = ProofTrace()
    trace.add(ProofObligation(
        lemma="max-nonincreasing",
        rule="refutation",
        vc_formula="max2(k + 1) <= max2(k)",
        result=SolverResult.UNSAT,
    ))
    print(trace.to_ascii_table())
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, List

from candyproof import __version__


class SolverResult(str, Enum):
    """Three-valued verdict of one refutation query."""
    UNSAT = "UNSAT"          # Negated goal unsatisfiable → lemma holds
    SAT = "SAT"              # Model of the negated goal found
    UNKNOWN = "UNKNOWN"      # Solver gave up or timed out

    @property
    def refuted(self) -> bool:
        return self is SolverResult.UNSAT


@dataclass
class ProofObligation:
    """One refutation query and its outcome.

    Attributes
    ----------
    lemma : str
        Name of the lemma (or sub-lemma, "parent/child") being refuted.
    rule : str
        The proof rule the query discharges ("refutation",
        "induction-base", "induction-step", "well-founded-step", ...).
    vc_formula : str
        Readable rendering of the claim whose negation was asserted.
    depth : int
        Number of open layers when the query was issued.
    smtlib2 : str
        SMTLIB2 rendering of the active assertions (empty unless
        recording is enabled).
    result : SolverResult
        Solver verdict.
    duration_ms : float
        Wall-clock time of the check call.
    """
    lemma: str
    rule: str
    vc_formula: str
    depth: int = 0
    smtlib2: str = ""
    result: SolverResult = SolverResult.UNKNOWN
    duration_ms: float = 0.0

    @property
    def proved(self) -> bool:
        return self.result.refuted

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["result"] = self.result.value
        d["proved"] = self.proved
        return d

    def to_ascii(self) -> str:
        """Single-obligation summary for terminal output."""
        status = "✓ REFUTED" if self.proved else f"✗ {self.result.value}"
        lines = [
            f"  [{self.lemma}] {status}",
            f"    Rule      : {self.rule}",
            f"    Depth     : {self.depth}",
            f"    VC        : {self.vc_formula[:200]}{'…' if len(self.vc_formula) > 200 else ''}",
        ]
        if self.smtlib2:
            lines.append(f"    SMTLIB2   : {len(self.smtlib2.splitlines())} lines")
        if self.duration_ms:
            lines.append(f"    Solver ms : {self.duration_ms:.1f}")
        return "\n".join(lines)


@dataclass
class ProofTrace:
    """Ordered collection of the queries issued during one proof run."""
    obligations: List[ProofObligation] = field(default_factory=list)
    version: str = __version__

    def add(self, obligation: ProofObligation) -> None:
        self.obligations.append(obligation)

    # ------------------------------------------------------------------
    # Aggregate statistics
    # ------------------------------------------------------------------

    @property
    def total(self) -> int:
        return len(self.obligations)

    @property
    def proved_count(self) -> int:
        return sum(1 for o in self.obligations if o.proved)

    @property
    def failed_count(self) -> int:
        return sum(1 for o in self.obligations if o.result == SolverResult.SAT)

    @property
    def unknown_count(self) -> int:
        return sum(1 for o in self.obligations if o.result == SolverResult.UNKNOWN)

    @property
    def all_proved(self) -> bool:
        return self.total > 0 and self.proved_count == self.total

    @property
    def duration_ms(self) -> float:
        return sum(o.duration_ms for o in self.obligations)

    def for_lemma(self, lemma: str) -> List[ProofObligation]:
        """Obligations of a lemma and all of its sub-lemmas."""
        prefix = lemma + "/"
        return [o for o in self.obligations
                if o.lemma == lemma or o.lemma.startswith(prefix)]

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "summary": {
                "total": self.total,
                "refuted": self.proved_count,
                "sat": self.failed_count,
                "unknown": self.unknown_count,
                "all_proved": self.all_proved,
                "duration_ms": round(self.duration_ms, 1),
            },
            "obligations": [o.to_dict() for o in self.obligations],
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    def to_ascii_table(self) -> str:
        """Render a compact ASCII table of all obligations."""
        if not self.obligations:
            return "  (no refutation queries recorded)\n"

        col_w = {"lemma": 44, "rule": 20, "result": 10}
        header = (
            f"  {'Lemma':<{col_w['lemma']}} "
            f"{'Rule':<{col_w['rule']}} "
            f"{'Result':<{col_w['result']}}"
        )
        sep = "  " + "-" * (sum(col_w.values()) + 2)
        rows = [header, sep]
        for o in self.obligations:
            result_str = "✓ REFUTED" if o.proved else o.result.value
            lemma = "  " * o.depth + o.lemma
            rows.append(
                f"  {lemma:<{col_w['lemma']}} "
                f"{o.rule:<{col_w['rule']}} "
                f"{result_str:<{col_w['result']}}"
            )
        rows.append(sep)
        rows.append(
            f"  {self.proved_count}/{self.total} queries refuted"
            + (f", {self.failed_count} sat" if self.failed_count else "")
            + (f", {self.unknown_count} unknown" if self.unknown_count else "")
        )
        return "\n".join(rows) + "\n"

    def to_smtlib2_bundle(self) -> str:
        """Emit all recorded SMTLIB2 queries as a single annotated file."""
        parts = [
            "; candyproof refutation bundle",
            f"; Version: {self.version}",
            f"; Total queries: {self.total}",
            "",
        ]
        for i, o in enumerate(self.obligations, 1):
            if not o.smtlib2:
                continue
            parts += [
                f"; --- Query {i}: {o.lemma} / {o.rule} ---",
                f"; VC     : {o.vc_formula}",
                f"; Result : {o.result.value}",
                o.smtlib2,
                "(check-sat)",
                "(reset)",
                "",
            ]
        return "\n".join(parts)
