"""candyproof Theorem Assembler — runs the proof plan end to end.

The assembler performs no reasoning of its own. It asserts the base
axioms, then runs the lemmas of the plan strictly in order on one
ProofContext, each gated on its prerequisites having been committed.
The first failing refutation stops the run; the report names the
failing lemma by its 1-based position in the plan and by name.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from candyproof.config import ProverConfig
from candyproof.context import ProofContext
from candyproof.errors import ProofFailure, ScopeViolation
from candyproof.facts import Fact
from candyproof.lemmas import LEMMAS, LemmaStep
from candyproof.model import CandyModel
from candyproof.proof_obligations import ProofTrace


logger = logging.getLogger(__name__)

THEOREM = "convergence"


@dataclass
class ProofPlan:
    """Ordered lemma steps."""
    steps: Tuple[LemmaStep, ...] = LEMMAS

    def __iter__(self):
        return iter(self.steps)

    def __len__(self) -> int:
        return len(self.steps)

    def names(self) -> List[str]:
        return [s.name for s in self.steps]

    def without_corollaries(self) -> "ProofPlan":
        return ProofPlan(tuple(s for s in self.steps if not s.corollary))


@dataclass
class ProofReport:
    """Outcome of one run of the plan."""
    trace: ProofTrace
    committed: List[str] = field(default_factory=list)
    theorem: Optional[Fact] = None
    failed_index: Optional[int] = None
    failed_lemma: Optional[str] = None
    error: Optional[str] = None

    @property
    def proved(self) -> bool:
        return self.theorem is not None and self.failed_lemma is None

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "proved": self.proved,
            "theorem": str(self.theorem) if self.theorem is not None else None,
            "committed": list(self.committed),
            "trace": self.trace.to_dict(),
        }
        if self.failed_lemma is not None:
            d["failed"] = {"index": self.failed_index, "lemma": self.failed_lemma}
            if self.error:
                d["failed"]["error"] = self.error
        return d


class TheoremAssembler:
    """Runs a ProofPlan against a fresh context."""

    def __init__(self, config: Optional[ProverConfig] = None,
                 model: Optional[CandyModel] = None,
                 plan: Optional[ProofPlan] = None):
        self.config = config or ProverConfig()
        self.model = model or CandyModel()
        plan = plan or ProofPlan()
        self.plan = plan if self.config.corollaries else plan.without_corollaries()
        self.ctx = ProofContext(self.config)

    def assert_axioms(self) -> None:
        for axiom in self.model.axioms():
            self.ctx.commit(axiom)

    def run_step(self, index: int, step: LemmaStep) -> Fact:
        missing = [r for r in step.requires if not self.ctx.has_fact(r)]
        if missing:
            raise ScopeViolation(
                f"'{step.name}' requires {', '.join(missing)}, which is not committed",
                layer="base",
            )
        logger.info("[%d/%d] %s (%s)", index, len(self.plan), step.name, step.stage)
        fact = step.prove(self.ctx, self.model)
        if self.ctx.depth != 0:
            raise ScopeViolation(f"'{step.name}' left {self.ctx.depth} layer(s) open",
                                 layer=self.ctx.current.name)
        return fact

    def run(self, raise_on_failure: bool = True) -> ProofReport:
        report = ProofReport(trace=self.ctx.trace)
        self.assert_axioms()
        for index, step in enumerate(self.plan, 1):
            try:
                fact = self.run_step(index, step)
            except ProofFailure as exc:
                report.failed_index = index
                report.failed_lemma = step.name
                report.error = str(exc)
                logger.error("proof stopped at lemma %d (%s): %s", index, step.name, exc)
                if raise_on_failure:
                    raise
                break
            if step.name == THEOREM:
                report.theorem = fact
        report.committed = list(self.ctx.committed)
        return report


def prove_convergence(config: Optional[ProverConfig] = None,
                      raise_on_failure: bool = True) -> ProofReport:
    """Prove that every circle of even, non-negative counts converges."""
    return TheoremAssembler(config).run(raise_on_failure=raise_on_failure)
