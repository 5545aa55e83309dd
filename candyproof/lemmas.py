"""candyproof Lemmas — the proof plan of the convergence theorem.

Each lemma is a function ``(ctx, model) -> Fact`` that establishes one
named fact by refutation and concludes it into the context. Every query
carries explicit ground instances ("hints") of the facts it relies on,
so a proof does not hinge on which instances the solver's matching
heuristics happen to pick; triggers are still needed for the skolem
witnesses the solver introduces itself.

Plan (stage — facts required besides the base axioms):

   1. state-invariant              invariant       —
   2. max-nonincreasing            monotonicity    1
   3. min-nondecreasing            monotonicity    —
   4. above-min-stays-above        monotonicity    1
   5. gains-from-richer-neighbor   monotonicity    1
   6. variant-bounded              monotonicity    —
   7. histogram-decrease           histogram       4, 5
   8. lex-decrease                 lexicographic   2, 3, 7
   9. eventual-convergence         well-founded    6, 8
  10. convergence                  conclusion      6, 9
  11. uniform-at-convergence       corollary       —

Successor facts quantify over ``(k, k2)`` guarded by ``k2 == k + 1``;
variable order is always steps first, then children or values.

Lemmas 2-5 each open their own layer and assume their own step-local
transition instance, fixed to that layer's witness step. No transition
fact outlives the layer it was assumed in.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Tuple

import z3

from candyproof.context import Goal, ProofContext
from candyproof.facts import Fact, Step, Trigger
from candyproof.induction import LexOrder, two_step_induction, well_founded_induction
from candyproof.model import CandyModel


LEX = LexOrder()


@dataclass(frozen=True)
class LemmaStep:
    """One entry of the proof plan."""
    name: str
    stage: str
    requires: Tuple[str, ...]
    prove: Callable[[ProofContext, CandyModel], Fact]
    corollary: bool = False


def _facts(ctx: ProofContext, *names: str) -> Tuple[Fact, ...]:
    return tuple(ctx.fact(n) for n in names)


def _transition(ctx: ProofContext, model: CandyModel, goal: Goal) -> Fact:
    """Assume the dynamics for the goal's own step pair ``(k, k2)``."""
    k0, k1 = goal.witnesses[:2]
    fact = model.transition(Step(k0, k1, layer=goal.layer.name))
    ctx.assume_fact(fact)
    return fact


def _eventually_converged(model: CandyModel) -> z3.BoolRef:
    t = z3.Int("t")
    return z3.Exists([t], z3.And(model.is_nat(t), model.converged(t)),
                     patterns=[model.min_child(t)])


# ---------------------------------------------------------------------------
# 1. Invariant
# ---------------------------------------------------------------------------

def state_invariant(ctx: ProofContext, model: CandyModel) -> Fact:
    """Every child holds an even, non-negative count at every step."""
    initial, right = _facts(ctx, "initial-state", "right-neighbor")
    i = z3.Int("i")

    def claim(k):
        return Fact("state-invariant", (i,), model.is_child(i),
                    model.state_ok(i, k), Trigger(model.m(i, k)))

    def step_hints(step, hypothesis, i0):
        t = model.transition(step)
        ctx.assume_fact(t)
        r = model.right(i0)
        return [t.at(i0), right.at(i0), hypothesis.at(i0), hypothesis.at(r)]

    return two_step_induction(
        ctx, "state-invariant", claim,
        base_hints=lambda i0: [initial.at(i0)],
        step_hints=step_hints,
    )


# ---------------------------------------------------------------------------
# 2-6. Monotonicity and progress
# ---------------------------------------------------------------------------

def max_nonincreasing(ctx: ProofContext, model: CandyModel) -> Fact:
    right, si, exists, dom = _facts(
        ctx, "right-neighbor", "state-invariant", "max-child-exists", "max-dominates")
    k, k2 = z3.Ints("k k2")
    claim = Fact(
        "max-nonincreasing", (k, k2),
        z3.And(model.is_nat(k), k2 == k + 1),
        model.max2(k2) <= model.max2(k),
        Trigger(model.max_child(k), model.max_child(k2)),
    )
    with ctx.proving(claim) as goal:
        k0, k1 = goal.witnesses
        t = _transition(ctx, model, goal)
        j = model.max_child(k1)
        # the new maximum is a half-sum of two values bounded by an even max2(k0)
        goal.discharge(
            exists.at(k0), exists.at(k1),
            t.at(j), right.at(j),
            dom.at(k0, j), dom.at(k0, model.right(j)),
            si.at(k0, model.max_child(k0)),
        )
    return claim


def min_nondecreasing(ctx: ProofContext, model: CandyModel) -> Fact:
    right, exists, dom = _facts(ctx, "right-neighbor", "min-child-exists", "min-dominated")
    k, k2 = z3.Ints("k k2")
    claim = Fact(
        "min-nondecreasing", (k, k2),
        z3.And(model.is_nat(k), k2 == k + 1),
        model.min2(k) <= model.min2(k2),
        Trigger(model.min_child(k), model.min_child(k2)),
    )
    with ctx.proving(claim) as goal:
        k0, k1 = goal.witnesses
        t = _transition(ctx, model, goal)
        j = model.min_child(k1)
        goal.discharge(
            exists.at(k0), exists.at(k1),
            t.at(j), right.at(j),
            dom.at(k0, j), dom.at(k0, model.right(j)),
        )
    return claim


def above_min_stays_above(ctx: ProofContext, model: CandyModel) -> Fact:
    """A child above the minimum is still above the old minimum one step later."""
    right, si, exists, dom = _facts(
        ctx, "right-neighbor", "state-invariant", "min-child-exists", "min-dominated")
    k, k2, i = z3.Ints("k k2 i")
    claim = Fact(
        "above-min-stays-above", (k, k2, i),
        z3.And(model.is_nat(k), k2 == k + 1, model.is_child(i),
               model.m(i, k) > model.min2(k)),
        model.m(i, k2) > model.min2(k),
        Trigger(model.m(i, k2), model.min_child(k)),
    )
    with ctx.proving(claim) as goal:
        k0, k1, i0 = goal.witnesses
        t = _transition(ctx, model, goal)
        r = model.right(i0)
        # evenness turns m(i, k) > min2(k) into m(i, k) >= min2(k) + 2
        goal.discharge(
            t.at(i0), right.at(i0), exists.at(k0),
            dom.at(k0, r),
            si.at(k0, i0), si.at(k0, model.min_child(k0)),
        )
    return claim


def gains_from_richer_neighbor(ctx: ProofContext, model: CandyModel) -> Fact:
    """A child poorer than its right neighbour strictly gains."""
    right, si = _facts(ctx, "right-neighbor", "state-invariant")
    k, k2, i = z3.Ints("k k2 i")
    claim = Fact(
        "gains-from-richer-neighbor", (k, k2, i),
        z3.And(model.is_nat(k), k2 == k + 1, model.is_child(i),
               model.m(i, k) < model.m(model.right(i), k)),
        model.m(i, k) < model.m(i, k2),
        Trigger(model.m(i, k2), model.m(i, k)),
    )
    with ctx.proving(claim) as goal:
        k0, k1, i0 = goal.witnesses
        t = _transition(ctx, model, goal)
        goal.discharge(
            t.at(i0), right.at(i0),
            si.at(k0, i0), si.at(k0, model.right(i0)),
        )
    return claim


def variant_bounded(ctx: ProofContext, model: CandyModel) -> Fact:
    """Both loop variants are natural numbers."""
    min_exists, max_exists, dom, nonneg = _facts(
        ctx, "min-child-exists", "max-child-exists", "max-dominates", "histogram-nonneg")
    k = z3.Int("k")
    v1, v2 = model.variant(k)
    claim = Fact(
        "variant-bounded", (k,),
        model.is_nat(k),
        z3.And(v1 >= 0, v2 >= 0),
        Trigger(model.min_child(k)),
    )
    return ctx.prove(claim, hints=lambda k0: [
        min_exists.at(k0), max_exists.at(k0),
        dom.at(k0, model.min_child(k0)),
        nonneg.at(k0, model.min2(k0)),
    ])


# ---------------------------------------------------------------------------
# 7. Histogram decrease
# ---------------------------------------------------------------------------

def histogram_decrease(ctx: ProofContext, model: CandyModel) -> Fact:
    """Unless all children hold the minimum, fewer children hold it next step.

    Some minimum holder ``b`` must sit left of a richer child: otherwise
    the minimum would propagate around the whole circle, from the
    minimum holder up to child N and then, after the wrap, from child 1.
    ``b`` gains and so leaves the minimum, while no child enters it
    since everyone above the minimum stays above it. The histogram
    axiom then gives the strict decrease.
    """
    right, min_exists, dom, above, gains, leaves = _facts(
        ctx, "right-neighbor", "min-child-exists", "min-dominated",
        "above-min-stays-above", "gains-from-richer-neighbor", "histogram-leaves")
    k, k2, j = z3.Ints("k k2 j")
    claim = Fact(
        "histogram-decrease", (k, k2, j),
        z3.And(model.is_nat(k), k2 == k + 1, model.is_child(j),
               model.m(j, k) > model.min2(k)),
        model.num(model.min2(k), k2) < model.num(model.min2(k), k),
        Trigger(model.m(j, k), model.num(model.min2(k), k2)),
    )

    with ctx.proving(claim) as goal:
        k0, k1, j0 = goal.witnesses
        low = model.min2(k0)
        N = model.N

        b = z3.Int("b")
        boundary = Fact(
            "histogram-decrease/boundary", (), z3.BoolVal(True),
            z3.Exists([b], z3.And(model.is_child(b), model.m(b, k0) == low,
                                  model.m(model.right(b), k0) > low)),
        )
        with ctx.proving(boundary, rule="contradiction") as inner:
            i = z3.Int("i")
            no_boundary = Fact(
                "histogram-decrease/no-boundary", (i,),
                z3.And(model.is_child(i), model.m(i, k0) == low),
                model.m(model.right(i), k0) <= low,
                Trigger(model.m(model.right(i), k0)),
            )
            ctx.assume_fact(no_boundary)

            def holds_min(name):
                return lambda x: Fact(name, (), x <= N, model.m(x, k0) == low,
                                      Trigger(model.m(x, k0)))

            def propagate(step, hypothesis):
                x = step.k
                return [min_exists.at(k0), no_boundary.at(x), right.at(x),
                        dom.at(k0, model.right(x))]

            sweep = two_step_induction(
                ctx, "histogram-decrease/sweep", holds_min("histogram-decrease/sweep"),
                lower=model.min_child(k0), step_hints=propagate,
            )
            wrap = two_step_induction(
                ctx, "histogram-decrease/wrap", holds_min("histogram-decrease/wrap"),
                lower=1,
                base_hints=lambda: [min_exists.at(k0), sweep.at(N), no_boundary.at(N),
                                    right.at(N), dom.at(k0, model.right(N))],
                step_hints=propagate,
            )
            inner.discharge(wrap.at(j0))

        w = ctx.declare("b")
        ctx.assume(z3.And(model.is_child(w), model.m(w, k0) == low,
                          model.m(model.right(w), k0) > low), label="boundary witness")

        no_entry = model.no_entry_fact(low, k0, k1, name="histogram-decrease/no-entry")
        ctx.prove(no_entry, hints=lambda j1: [dom.at(k0, j1), above.at(k0, k1, j1)])

        goal.discharge(gains.at(k0, k1, w), leaves.at(k0, k1, low, w))
    return claim


# ---------------------------------------------------------------------------
# 8. Lexicographic decrease
# ---------------------------------------------------------------------------

def lex_decrease(ctx: ProofContext, model: CandyModel) -> Fact:
    maxdec, minincr, hist = _facts(
        ctx, "max-nonincreasing", "min-nondecreasing", "histogram-decrease")
    k, k2, j = z3.Ints("k k2 j")
    claim = Fact(
        "lex-decrease", (k, k2, j),
        z3.And(model.is_nat(k), k2 == k + 1, model.is_child(j),
               model.m(j, k) > model.min2(k)),
        LEX.lt(model.variant(k2), model.variant(k)),
        Trigger(model.m(j, k), model.max_child(k2)),
    )
    return ctx.prove(claim, hints=lambda k0, k1, j0: [
        maxdec.at(k0, k1), minincr.at(k0, k1), hist.at(k0, k1, j0),
    ])


# ---------------------------------------------------------------------------
# 9-10. Well-founded induction and the theorem
# ---------------------------------------------------------------------------

def eventual_convergence(ctx: ProofContext, model: CandyModel) -> Fact:
    """From any step with variant pair ``v`` the process eventually converges."""
    max_exists, min_exists, dom, lexdec, bounded = _facts(
        ctx, "max-child-exists", "min-child-exists", "min-dominated",
        "lex-decrease", "variant-bounded")
    k = z3.Int("k")

    def predicate(v):
        v1, v2 = model.variant(k)
        return Fact(
            "eventual-convergence", (k,),
            z3.And(model.is_nat(k), v1 == v[0], v2 == v[1]),
            _eventually_converged(model),
            Trigger(model.min_child(k)),
        )

    # consequence of the negated goal, instantiated at the goal step
    never = Fact("never-converged", (k,), model.is_nat(k),
                 z3.Not(model.converged(k)), Trigger(model.min_child(k)))

    def step_hints(v, hypothesis, k0):
        k1 = ctx.declare("k_next")
        ctx.assume(k1 == k0 + 1, label="k_next = k + 1")
        top = model.max_child(k0)
        u1, u2 = model.variant(k1)
        return [
            never.at(k0), max_exists.at(k0), min_exists.at(k0),
            dom.at(k0, top),
            lexdec.at(k0, k1, top),
            bounded.at(k1),
            hypothesis.at(u1, u2, k1),
        ]

    return well_founded_induction(
        ctx, "eventual-convergence", LEX, predicate, step_hints,
        base_hints=lambda k0: [never.at(k0)],
    )


def convergence(ctx: ProofContext, model: CandyModel) -> Fact:
    """∃k. min2(k) = max2(k): the top-level theorem."""
    bounded, wf = _facts(ctx, "variant-bounded", "eventual-convergence")
    claim = Fact("convergence", (), z3.BoolVal(True), _eventually_converged(model))
    v1, v2 = model.variant(0)
    return ctx.prove(claim, rule="well-founded-instance",
                     hints=lambda: [bounded.at(0), wf.at(v1, v2, 0)])


# ---------------------------------------------------------------------------
# 11. Corollary
# ---------------------------------------------------------------------------

def uniform_at_convergence(ctx: ProofContext, model: CandyModel) -> Fact:
    """At a converged step every child holds the same count."""
    max_dom, min_dom = _facts(ctx, "max-dominates", "min-dominated")
    k, i = z3.Ints("k i")
    claim = Fact(
        "uniform-at-convergence", (k, i),
        z3.And(model.is_nat(k), model.is_child(i), model.converged(k)),
        model.m(i, k) == model.min2(k),
        Trigger(model.m(i, k)),
    )
    return ctx.prove(claim, hints=lambda k0, i0: [max_dom.at(k0, i0), min_dom.at(k0, i0)])


LEMMAS: Tuple[LemmaStep, ...] = (
    LemmaStep("state-invariant", "invariant", (), state_invariant),
    LemmaStep("max-nonincreasing", "monotonicity", ("state-invariant",), max_nonincreasing),
    LemmaStep("min-nondecreasing", "monotonicity", (), min_nondecreasing),
    LemmaStep("above-min-stays-above", "monotonicity", ("state-invariant",), above_min_stays_above),
    LemmaStep("gains-from-richer-neighbor", "monotonicity", ("state-invariant",),
              gains_from_richer_neighbor),
    LemmaStep("variant-bounded", "monotonicity", (), variant_bounded),
    LemmaStep("histogram-decrease", "histogram",
              ("above-min-stays-above", "gains-from-richer-neighbor"), histogram_decrease),
    LemmaStep("lex-decrease", "lexicographic",
              ("max-nonincreasing", "min-nondecreasing", "histogram-decrease"), lex_decrease),
    LemmaStep("eventual-convergence", "well-founded",
              ("variant-bounded", "lex-decrease"), eventual_convergence),
    LemmaStep("convergence", "conclusion",
              ("variant-bounded", "eventual-convergence"), convergence),
    LemmaStep("uniform-at-convergence", "corollary", (), uniform_at_convergence, corollary=True),
)
