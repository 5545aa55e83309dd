"""candyproof Induction Tests — IND-001 through IND-004.

Tests for:
  - Two-step induction from a constant and a symbolic lower bound
  - Lexicographic order on pairs of naturals
  - Well-founded induction over that order
  - Failing obligations stop the scheme without leaving layers open
"""

import pytest
import z3

from candyproof.context import ProofContext
from candyproof.errors import RefutationFailed
from candyproof.facts import Fact, Trigger
from candyproof.induction import LexOrder, two_step_induction, well_founded_induction


I = z3.IntSort()


def _counter_context():
    """g(0) = 0 and g(x + 1) = g(x) + 2."""
    g = z3.Function("g", I, I)
    x, x2 = z3.Ints("x x2")
    ctx = ProofContext()
    ctx.commit(Fact("g-zero", (), z3.BoolVal(True), g(0) == 0))
    succ = Fact("g-succ", (x, x2), z3.And(x >= 0, x2 == x + 1), g(x2) == g(x) + 2,
                Trigger(g(x), g(x2)))
    ctx.commit(succ)
    return ctx, g, succ


# ===========================================================================
# IND-001: Two-step induction
# ===========================================================================

class TestIND001:
    """IND-001: Base case plus successor step conclude ∀x ≥ lower."""

    def test_even_counter(self):
        ctx, g, succ = _counter_context()

        def claim(n):
            return Fact("g-even", (), z3.BoolVal(True),
                        z3.And(g(n) >= 0, g(n) % 2 == 0), Trigger(g(n)))

        fact = two_step_induction(
            ctx, "g-even", claim,
            step_hints=lambda step, hyp: [succ.at(step.k, step.next)],
        )
        assert ctx.committed[-1] == "g-even"
        assert fact.variables[0].decl().name() == "x"
        rules = [o.rule for o in ctx.trace.obligations]
        assert rules == ["induction-base", "induction-step"]
        assert ctx.trace.obligations[1].lemma == "g-even/step"
        assert ctx.depth == 0

    def test_conclusion_usable(self):
        ctx, g, succ = _counter_context()

        def claim(n):
            return Fact("g-nonneg", (), z3.BoolVal(True), g(n) >= 0, Trigger(g(n)))

        fact = two_step_induction(
            ctx, "g-nonneg", claim,
            step_hints=lambda step, hyp: [succ.at(step.k, step.next)],
        )
        ctx.prove(Fact("g-at-40", (), z3.BoolVal(True), g(40) >= 0),
                  hints=lambda: [fact.at(40)])
        assert ctx.has_fact("g-at-40")

    def test_symbolic_lower_bound(self):
        ctx, g, succ = _counter_context()
        lo = z3.Int("lo")
        ctx.commit(Fact("lo-bounds", (), z3.BoolVal(True), z3.And(lo >= 0, g(lo) >= 10)))

        def claim(n):
            return Fact("g-large", (), z3.BoolVal(True), g(n) >= 10, Trigger(g(n)))

        two_step_induction(
            ctx, "g-large", claim, lower=lo,
            step_hints=lambda step, hyp: [succ.at(step.k, step.next)],
        )
        assert ctx.has_fact("g-large")


# ===========================================================================
# IND-002: Failing induction
# ===========================================================================

class TestIND002:
    """IND-002: A false step aborts the scheme with the step named."""

    def test_false_step(self):
        ctx, g, succ = _counter_context()

        def claim(n):
            return Fact("g-zero-everywhere", (), z3.BoolVal(True), g(n) == 0, Trigger(g(n)))

        with pytest.raises(RefutationFailed) as info:
            two_step_induction(
                ctx, "g-zero-everywhere", claim,
                step_hints=lambda step, hyp: [succ.at(step.k, step.next)],
            )
        assert info.value.lemma == "g-zero-everywhere/step"
        assert ctx.depth == 0
        assert not ctx.has_fact("g-zero-everywhere")

    def test_false_base(self):
        ctx, g, succ = _counter_context()

        def claim(n):
            return Fact("g-one", (), z3.BoolVal(True), g(n) >= 1, Trigger(g(n)))

        with pytest.raises(RefutationFailed) as info:
            two_step_induction(ctx, "g-one", claim)
        assert info.value.lemma == "g-one/base"


# ===========================================================================
# IND-003: Lexicographic order
# ===========================================================================

class TestIND003:
    """IND-003: LexOrder compares the first component, then the second."""

    def _lt(self, p, q):
        order = LexOrder()
        p = tuple(z3.IntVal(v) for v in p)
        q = tuple(z3.IntVal(v) for v in q)
        return z3.is_true(z3.simplify(order.lt(p, q)))

    def test_first_component_decides(self):
        assert self._lt((1, 50), (2, 0))
        assert not self._lt((2, 0), (1, 50))

    def test_second_component_breaks_ties(self):
        assert self._lt((3, 1), (3, 2))
        assert not self._lt((3, 2), (3, 1))

    def test_irreflexive(self):
        assert not self._lt((4, 4), (4, 4))

    def test_bottom_is_minimal(self):
        order = LexOrder()
        p = z3.Ints("p1 p2")
        s = z3.Solver()
        s.add(order.domain(p), order.lt(p, order.bottom))
        assert s.check() == z3.unsat


# ===========================================================================
# IND-004: Well-founded induction
# ===========================================================================

def _reach_context():
    """r(0, 0) = 1 and every other pair inherits r from a smaller pair.

    (a, b) steps to (a, b - 1) while b > 0, then to (a - 1, 7).
    """
    r = z3.Function("r", I, I, I)
    a, b, c, d = z3.Ints("a b c d")
    ctx = ProofContext()
    ctx.commit(Fact("r-origin", (), z3.BoolVal(True), r(0, 0) == 1))
    step = Fact(
        "r-step", (a, b, c, d),
        z3.And(a >= 0, b >= 0, z3.Or(
            z3.And(b > 0, c == a, d == b - 1),
            z3.And(b == 0, a > 0, c == a - 1, d == 7),
        )),
        r(a, b) == r(c, d),
        Trigger(r(a, b), r(c, d)),
    )
    ctx.commit(step)
    return ctx, r, step


class TestIND004:
    """IND-004: One refutation under the hypothesis for all smaller pairs."""

    def _hints(self, step):
        def hints(v, hypothesis):
            v1, v2 = v
            return [
                step.at(v1, v2, v1, v2 - 1), step.at(v1, v2, v1 - 1, 7),
                hypothesis.at(v1, v2 - 1), hypothesis.at(v1 - 1, 7),
            ]
        return hints

    def test_reachability(self):
        ctx, r, step = _reach_context()
        fact = well_founded_induction(
            ctx, "r-one", LexOrder(),
            lambda v: Fact("r-one", (), z3.BoolVal(True), r(v[0], v[1]) == 1),
            self._hints(step),
            base_hints=lambda: [],
        )
        assert ctx.committed[-1] == "r-one"
        assert len(fact.variables) == 2
        assert [o.rule for o in ctx.trace.obligations] == ["well-founded-base", "well-founded-step"]

        ctx.prove(Fact("r-3-5", (), z3.BoolVal(True), r(3, 5) == 1),
                  hints=lambda: [fact.at(3, 5)])
        assert ctx.has_fact("r-3-5")

    def test_without_base_obligation(self):
        ctx, r, step = _reach_context()
        well_founded_induction(
            ctx, "r-one", LexOrder(),
            lambda v: Fact("r-one", (), z3.BoolVal(True), r(v[0], v[1]) == 1),
            self._hints(step),
        )
        assert [o.rule for o in ctx.trace.obligations] == ["well-founded-step"]

    def test_false_predicate(self):
        ctx, r, step = _reach_context()
        with pytest.raises(RefutationFailed) as info:
            well_founded_induction(
                ctx, "r-two", LexOrder(),
                lambda v: Fact("r-two", (), z3.BoolVal(True), r(v[0], v[1]) == 2),
                self._hints(step),
                base_hints=lambda: [],
            )
        assert info.value.lemma == "r-two/base"
        assert ctx.depth == 0
