"""candyproof Induction — proof schemes built from refutation queries.

The solver cannot perform induction itself. Each scheme below reduces
an induction principle to ordinary refutation queries and, once all of
them come back UNSAT, concludes the universally quantified conclusion
that the principle licenses.

  TWO-STEP INDUCTION over integers from a (possibly symbolic) lower
  bound ``lo``:

      P(lo)        ∀x ≥ lo. P(x) → P(x + 1)
      ─────────────────────────────────────
                 ∀x ≥ lo. P(x)

  WELL-FOUNDED INDUCTION over a strict well-founded order ``<`` on a
  domain D (here: lexicographic order on pairs of naturals):

      ∀v ∈ D. (∀u ∈ D. u < v → P(u)) → P(v)
      ─────────────────────────────────────
                  ∀v ∈ D. P(v)

The premise of the well-founded rule is discharged by a single query:
fresh ``v``, the hypothesis for all smaller ``u``, and ¬P(v).

Conclusions are concluded into the context: committed when no layer is
open, kept as a layer-local lemma inside a nested proof.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Tuple

import z3

from candyproof.context import Hints, ProofContext
from candyproof.facts import Fact, Step, Term, Trigger, as_term


Claim = Callable[[z3.ArithRef], Fact]
Pair = Tuple[z3.ArithRef, z3.ArithRef]
StepHints = Callable[..., Iterable[z3.BoolRef]]


def two_step_induction(
    ctx: ProofContext,
    name: str,
    claim: Claim,
    lower: Term = 0,
    base_hints: Optional[Hints] = None,
    step_hints: Optional[StepHints] = None,
    trigger: Optional[Trigger] = None,
) -> Fact:
    """Prove ``∀x ≥ lower. claim(x)`` by base case and successor step.

    ``claim(x)`` returns a Fact, possibly quantified over further
    variables (e.g. every child at step ``x``). ``base_hints`` receives
    the witnesses of ``claim(lower)``; ``step_hints`` receives the
    Step, the assumed hypothesis ``claim(step.k)`` and the witnesses of
    ``claim(step.next)``.
    """
    lower = as_term(lower)

    ctx.prove(claim(lower).renamed(f"{name}/base"), rule="induction-base",
              hints=base_hints, conclude=False)

    with ctx.scope(f"{name}/step"):
        step: Step = ctx.declare_step(lower)
        hypothesis = claim(step.k).renamed(f"{name}/hypothesis")
        ctx.assume_fact(hypothesis)
        hints = None
        if step_hints is not None:
            hints = lambda *w: step_hints(step, hypothesis, *w)
        ctx.prove(claim(step.next).renamed(f"{name}/step"), rule="induction-step",
                  hints=hints, conclude=False)

    x = z3.Int("x")
    shape = claim(x)
    conclusion = Fact(
        name,
        (x,) + shape.variables,
        z3.And(x >= lower, shape.guard),
        shape.body,
        trigger or shape.trigger,
    )
    ctx.conclude(conclusion)
    return conclusion


@dataclass(frozen=True)
class LexOrder:
    """Strict lexicographic order on pairs of natural numbers."""

    def domain(self, p: Pair) -> z3.BoolRef:
        return z3.And(p[0] >= 0, p[1] >= 0)

    def lt(self, p: Pair, q: Pair) -> z3.BoolRef:
        return z3.Or(p[0] < q[0], z3.And(p[0] == q[0], p[1] < q[1]))

    @property
    def bottom(self) -> Pair:
        return (z3.IntVal(0), z3.IntVal(0))


def well_founded_induction(
    ctx: ProofContext,
    name: str,
    order: LexOrder,
    predicate: Callable[[Pair], Fact],
    step_hints: StepHints,
    base_hints: Optional[Hints] = None,
) -> Fact:
    """Prove ``∀v ∈ domain. predicate(v)`` by well-founded induction.

    ``predicate(v)`` returns a Fact whose guard and body may mention
    the pair ``v``. When ``base_hints`` is given, the least element of
    the order is refuted on its own first. ``step_hints`` receives the
    pair, the flattened induction hypothesis (variables: the smaller
    pair, then the predicate's own) and the goal witnesses; it runs
    inside the goal layer and may declare further symbols.
    """
    if base_hints is not None:
        ctx.prove(predicate(order.bottom).renamed(f"{name}/base"),
                  rule="well-founded-base", hints=base_hints, conclude=False)

    with ctx.scope(f"{name}/step"):
        v = (ctx.declare("v1"), ctx.declare("v2"))
        ctx.assume(order.domain(v), label=f"{name} domain")

        u = z3.Ints("u1 u2")
        smaller = predicate((u[0], u[1]))
        # no trigger: the pair occurs only under arithmetic; used through at()
        hypothesis = Fact(
            f"{name}/hypothesis",
            tuple(u) + smaller.variables,
            z3.And(order.domain((u[0], u[1])), order.lt((u[0], u[1]), v), smaller.guard),
            smaller.body,
        )
        ctx.assume_fact(hypothesis)

        with ctx.proving(predicate(v).renamed(f"{name}/step"),
                         rule="well-founded-step", conclude=False) as goal:
            goal.discharge(*step_hints(v, hypothesis, *goal.witnesses))

    w = z3.Ints("w1 w2")
    shape = predicate((w[0], w[1]))
    conclusion = Fact(
        name,
        tuple(w) + shape.variables,
        z3.And(order.domain((w[0], w[1])), shape.guard),
        shape.body,
    )
    ctx.conclude(conclusion)
    return conclusion
