"""candyproof Proof Context — scoped refutation queries over a fact base.

The context owns a single solver and a stack of reversible LAYERS on
top of a persistent base layer:

    layer 0 (base)   axioms and every lemma committed so far; only grows
    layer 1..n       temporary symbols and hypotheses of the proof in
                     progress; discarded, strictly LIFO, on pop

A lemma P is established by REFUTATION: open a layer, assert ¬P (for
fresh witnesses of P's variables) together with the hypotheses the
proof needs, and check that the solver finds no model. Only after the
layer is closed is P committed to the base, so a temporary hypothesis
can never leak into a later, unrelated lemma.

Checks are synchronous and issued one at a time. UNKNOWN is as fatal
as SAT: there is no retry, since the same query over the same
(monotonically grown) fact base gives the same answer.
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Set, Tuple

import z3

from candyproof.config import ProverConfig
from candyproof.errors import RefutationFailed, ScopeViolation
from candyproof.facts import Fact, Step, Term, as_term, constants_of
from candyproof.proof_obligations import ProofObligation, ProofTrace, SolverResult


logger = logging.getLogger(__name__)

Hints = Callable[..., Iterable[z3.BoolRef]]


def _verdict(answer: z3.CheckSatResult) -> SolverResult:
    if answer == z3.unsat:
        return SolverResult.UNSAT
    if answer == z3.sat:
        return SolverResult.SAT
    return SolverResult.UNKNOWN


@dataclass
class Layer:
    """One reversible scope: the symbols and facts introduced in it."""
    name: str
    depth: int
    symbols: List[str] = field(default_factory=list)
    facts: Dict[str, Fact] = field(default_factory=dict)
    assumptions: int = 0


class ProofContext:
    """Stack of reversible layers over a persistent fact base."""

    def __init__(self, config: Optional[ProverConfig] = None) -> None:
        self.config = config or ProverConfig()
        self.solver = z3.Solver()
        self.solver.set("timeout", self.config.timeout_ms)
        self.trace = ProofTrace()
        self._layers: List[Layer] = [Layer("base", 0)]
        self._retired: Set[str] = set()
        self._committed: List[str] = []

    # ------------------------------------------------------------------
    # Layer stack
    # ------------------------------------------------------------------

    @property
    def depth(self) -> int:
        return len(self._layers) - 1

    @property
    def current(self) -> Layer:
        return self._layers[-1]

    @property
    def committed(self) -> Tuple[str, ...]:
        return tuple(self._committed)

    def push(self, name: str) -> Layer:
        layer = Layer(name, self.depth + 1)
        self.solver.push()
        self._layers.append(layer)
        logger.debug("push %s (depth %d)", name, layer.depth)
        return layer

    def pop(self, expected: Optional[Layer] = None) -> Layer:
        if self.depth == 0:
            raise ScopeViolation("pop without a matching push", layer="base")
        layer = self._layers[-1]
        if expected is not None and layer is not expected:
            raise ScopeViolation(
                f"layer '{expected.name}' closed while '{layer.name}' is still open",
                layer=layer.name,
            )
        self.solver.pop()
        self._layers.pop()
        self._retired.update(layer.symbols)
        logger.debug("pop %s (depth %d)", layer.name, self.depth)
        return layer

    @contextmanager
    def scope(self, name: str) -> Iterator[Layer]:
        layer = self.push(name)
        try:
            yield layer
        except BaseException:
            self._unwind(layer)
            raise
        self.pop(expected=layer)

    def _unwind(self, layer: Layer) -> None:
        """Close ``layer`` and anything left open above it."""
        while any(open_ is layer for open_ in self._layers[1:]):
            self.pop()

    # ------------------------------------------------------------------
    # Symbols and assertions
    # ------------------------------------------------------------------

    def declare(self, name: str, sort: Optional[z3.SortRef] = None) -> z3.ExprRef:
        """Fresh constant owned by the innermost layer."""
        symbol = z3.FreshConst(sort if sort is not None else z3.IntSort(), prefix=name)
        self.current.symbols.append(symbol.decl().name())
        return symbol

    def declare_step(self, lower: Term = 0, name: str = "k") -> Step:
        """Fix a symbolic step ``k >= lower`` and its successor in this layer."""
        k = self.declare(name)
        k1 = self.declare(name + "_next")
        self.assume(k >= as_term(lower), label=f"{name} >= {lower}")
        self.assume(k1 == k + 1, label=f"{name}_next = {name} + 1")
        return Step(k, k1, layer=self.current.name)

    def _check_leaks(self, formula: z3.ExprRef, what: str) -> None:
        if not self._retired:
            return
        leaked = constants_of(formula) & self._retired
        if leaked:
            raise ScopeViolation(
                f"{what} mentions {', '.join(sorted(leaked))} from a closed layer",
                layer=self.current.name,
            )

    def assume(self, formula: z3.BoolRef, label: str = "") -> None:
        """Add a hypothesis to the innermost layer."""
        self._check_leaks(formula, f"assumption {label or formula}")
        self.solver.add(formula)
        self.current.assumptions += 1

    def assume_fact(self, fact: Fact) -> None:
        """Add a quantified fact to the innermost layer (a local lemma)."""
        self.assume(fact.formula(), label=fact.name)
        self.current.facts[fact.name] = fact

    def commit(self, fact: Fact) -> None:
        """Make a fact permanent. Only legal with no layer open."""
        if self.depth != 0:
            raise ScopeViolation(
                f"cannot commit '{fact.name}' with {self.depth} layer(s) open",
                layer=self.current.name,
            )
        if fact.name in self._layers[0].facts:
            raise ScopeViolation(f"'{fact.name}' is already committed", layer="base")
        self._check_leaks(fact.formula(), f"fact '{fact.name}'")
        self.solver.add(fact.formula())
        self._layers[0].facts[fact.name] = fact
        self._committed.append(fact.name)
        logger.debug("commit %s", fact.name)

    def conclude(self, fact: Fact) -> None:
        """Commit at the base layer, otherwise keep as a lemma of the current layer."""
        if self.depth == 0:
            self.commit(fact)
        else:
            self.assume_fact(fact)

    def fact(self, name: str) -> Fact:
        """Look up a visible fact, innermost layer first."""
        for layer in reversed(self._layers):
            if name in layer.facts:
                return layer.facts[name]
        raise ScopeViolation(f"fact '{name}' has not been established", layer=self.current.name)

    def has_fact(self, name: str) -> bool:
        return any(name in layer.facts for layer in self._layers)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def check_refuted(self, name: str, rule: str = "refutation", vc: str = "") -> SolverResult:
        """Ask whether the active assertions are unsatisfiable."""
        smtlib2 = self.solver.sexpr() if self.config.record_smtlib2 else ""
        started = time.perf_counter()
        answer = self.solver.check()
        elapsed = (time.perf_counter() - started) * 1000.0
        verdict = _verdict(answer)
        self.trace.add(ProofObligation(
            lemma=name,
            rule=rule,
            vc_formula=vc or name,
            depth=self.depth,
            smtlib2=smtlib2,
            result=verdict,
            duration_ms=elapsed,
        ))
        if verdict.refuted:
            logger.info("%s [%s] refuted in %.1f ms", name, rule, elapsed)
        else:
            reason = self.solver.reason_unknown() if verdict is SolverResult.UNKNOWN else "model found"
            logger.error("%s [%s] not refuted: %s (%s)", name, rule, verdict.value, reason)
        return verdict

    @contextmanager
    def proving(self, claim: Fact, rule: str = "refutation",
                conclude: bool = True) -> Iterator["Goal"]:
        """Open a layer for refuting ``claim``; concluded on success unless
        ``conclude`` is False (induction obligations are not lemmas).

        The yielded goal carries one fresh witness per claim variable,
        with the claim guard already assumed for them. Nested sub-proofs
        may run before ``discharge``; the negated body is asserted only
        at discharge time.
        """
        with self.scope(claim.name) as layer:
            witnesses = tuple(self.declare(v.decl().name(), v.sort()) for v in claim.variables)
            if claim.variables or not z3.is_true(claim.guard):
                self.assume(claim.guard_at(*witnesses), label=f"{claim.name} guard")
            goal = Goal(self, claim, rule, witnesses, layer)
            yield goal
            if goal.result is None:
                raise ScopeViolation(f"'{claim.name}' was never discharged", layer=layer.name)
        if not goal.result.refuted:
            raise RefutationFailed(claim.name, goal.result.value, rule=rule, depth=layer.depth)
        if conclude:
            self.conclude(claim)

    def prove(self, claim: Fact, rule: str = "refutation", hints: Optional[Hints] = None,
              conclude: bool = True) -> Fact:
        """Refute ¬claim in one query; hints(*witnesses) supplies instances."""
        with self.proving(claim, rule, conclude=conclude) as goal:
            goal.discharge(*(hints(*goal.witnesses) if hints else ()))
        return claim


class Goal:
    """A claim under refutation inside its own layer."""

    def __init__(self, ctx: ProofContext, claim: Fact, rule: str,
                 witnesses: Tuple[z3.ExprRef, ...], layer: Layer) -> None:
        self.ctx = ctx
        self.claim = claim
        self.rule = rule
        self.witnesses = witnesses
        self.layer = layer
        self.result: Optional[SolverResult] = None

    def discharge(self, *hints: z3.BoolRef) -> SolverResult:
        if self.ctx.current is not self.layer:
            raise ScopeViolation(
                f"'{self.claim.name}' discharged while '{self.ctx.current.name}' is open",
                layer=self.ctx.current.name,
            )
        self.ctx.assume(z3.Not(self.claim.body_at(*self.witnesses)), label=f"not {self.claim.name}")
        for h in hints:
            self.ctx.assume(h, label=f"{self.claim.name} hint")
        self.result = self.ctx.check_refuted(self.claim.name, rule=self.rule, vc=str(self.claim))
        return self.result
