"""candyproof Model — vocabulary and axioms of the candy distribution process.

N children sit in a circle, child ``i`` next to ``right(i)``. After step
``k`` child ``i`` holds ``m(i, k)`` candies. In one step every child
takes half of its own candies plus half of its right neighbour's, and
is topped up by one candy if the result is odd:

    m(i, k+1) = next_value(m(i, k), m(right(i), k))
    next_value(a, b) = h if h is even else h + 1,   h = (a + b) / 2

The model only supplies vocabulary: uninterpreted symbols, builders for
derived quantities, and the axioms fixing their meaning. It contains no
proof logic.

Two rules keep every query free of trigger loops:

  - There is no global transition axiom. A proof that needs the
    dynamics asserts ``transition(step)`` for the one symbolic step it
    reasons about, with trigger ``m(i, step.next)``.
  - Facts relating a step to its successor quantify over both, guarded
    by ``k2 == k + 1``; no trigger contains arithmetic and no instance
    manufactures a fresh ``k + 1`` term.

The histogram ``num`` is deliberately only partially axiomatized: it
is non-negative, and it strictly decreases at a value some child leaves
while no child enters it. No defining equation is given.
"""

from __future__ import annotations

from typing import List, Optional, Tuple

import z3

from candyproof.facts import Fact, Step, Term, Trigger, as_term


Pair = Tuple[z3.ArithRef, z3.ArithRef]


class CandyModel:
    """Symbols, derived quantities and axioms of the process.

    ``children`` pins the circle size for concrete scenarios; when it
    is None, ``N`` stays a free positive parameter.
    """

    def __init__(self, children: Optional[int] = None):
        if children is not None and children < 1:
            raise ValueError("a circle needs at least one child")
        self.children = children
        I = z3.IntSort()
        self.N = z3.Int("N")
        self.m = z3.Function("m", I, I, I)
        self.right_of = z3.Function("right", I, I)
        self.max_child_of = z3.Function("max_child", I, I)
        self.min_child_of = z3.Function("min_child", I, I)
        self.num_of = z3.Function("num", I, I, I)

    # ------------------------------------------------------------------
    # Domains
    # ------------------------------------------------------------------

    def is_child(self, i: Term) -> z3.BoolRef:
        i = as_term(i)
        return z3.And(1 <= i, i <= self.N)

    def is_nat(self, k: Term) -> z3.BoolRef:
        return as_term(k) >= 0

    # ------------------------------------------------------------------
    # Derived quantities
    # ------------------------------------------------------------------

    def right(self, i: Term) -> z3.ArithRef:
        return self.right_of(as_term(i))

    def max_child(self, k: Term) -> z3.ArithRef:
        return self.max_child_of(as_term(k))

    def min_child(self, k: Term) -> z3.ArithRef:
        return self.min_child_of(as_term(k))

    def max2(self, k: Term) -> z3.ArithRef:
        return self.m(self.max_child(k), as_term(k))

    def min2(self, k: Term) -> z3.ArithRef:
        return self.m(self.min_child(k), as_term(k))

    def num(self, n: Term, k: Term) -> z3.ArithRef:
        return self.num_of(as_term(n), as_term(k))

    @staticmethod
    def next_value(a: z3.ArithRef, b: z3.ArithRef) -> z3.ArithRef:
        half = (a + b) / 2
        return z3.If(half % 2 == 0, half, half + 1)

    def trans(self, i: Term, step: Step) -> z3.BoolRef:
        i = as_term(i)
        return self.m(i, step.next) == self.next_value(
            self.m(i, step.k), self.m(self.right(i), step.k))

    def state_ok(self, i: Term, k: Term) -> z3.BoolRef:
        held = self.m(as_term(i), as_term(k))
        return z3.And(held >= 0, held % 2 == 0)

    def variant(self, k: Term) -> Pair:
        """Loop variants: (max2 - min2, number of children at the minimum)."""
        return (self.max2(k) - self.min2(k), self.num(self.min2(k), k))

    def converged(self, k: Term) -> z3.BoolRef:
        return self.min2(k) == self.max2(k)

    def no_entry(self, n: Term, k: Term, k2: Term) -> z3.BoolRef:
        """No child that does not hold ``n`` at ``k`` holds it at ``k2``."""
        return self.no_entry_fact(n, k, k2).formula()

    def no_entry_fact(self, n: Term, k: Term, k2: Term, name: str = "no-entry") -> Fact:
        j = z3.Int("j")
        n, k, k2 = as_term(n), as_term(k), as_term(k2)
        return Fact(
            name, (j,),
            z3.And(self.is_child(j), self.m(j, k) != n),
            self.m(j, k2) != n,
            Trigger(self.m(j, k2)),
        )

    # ------------------------------------------------------------------
    # Axioms
    # ------------------------------------------------------------------

    def axioms(self) -> List[Fact]:
        """The persistent base facts, in assertion order."""
        i, k, k2, n = z3.Ints("i k k2 n")
        facts = [
            Fact("children-exist", (), z3.BoolVal(True), self.N >= 1),
        ]
        if self.children is not None:
            facts.append(Fact("children-count", (), z3.BoolVal(True), self.N == self.children))
        facts += [
            Fact(
                "right-neighbor", (i,),
                self.is_child(i),
                self.right(i) == z3.If(i < self.N, i + 1, 1),
                Trigger(self.right(i)),
            ),
            Fact(
                "initial-state", (i,),
                self.is_child(i),
                self.state_ok(i, 0),
                Trigger(self.m(i, 0)),
            ),
            Fact(
                "max-child-exists", (k,),
                self.is_nat(k),
                self.is_child(self.max_child(k)),
                Trigger(self.max_child(k)),
            ),
            Fact(
                "min-child-exists", (k,),
                self.is_nat(k),
                self.is_child(self.min_child(k)),
                Trigger(self.min_child(k)),
            ),
            Fact(
                "max-dominates", (k, i),
                z3.And(self.is_nat(k), self.is_child(i)),
                self.m(i, k) <= self.max2(k),
                Trigger(self.m(i, k)),
            ),
            Fact(
                "min-dominated", (k, i),
                z3.And(self.is_nat(k), self.is_child(i)),
                self.min2(k) <= self.m(i, k),
                Trigger(self.m(i, k)),
            ),
            Fact(
                "histogram-nonneg", (k, n),
                self.is_nat(k),
                self.num(n, k) >= 0,
                Trigger(self.num(n, k)),
            ),
            Fact(
                "histogram-leaves", (k, k2, n, i),
                z3.And(
                    self.is_nat(k), k2 == k + 1, self.is_child(i),
                    self.m(i, k) == n, self.m(i, k2) != n,
                    self.no_entry(n, k, k2),
                ),
                self.num(n, k2) < self.num(n, k),
                Trigger(self.num(n, k2), self.num(n, k), self.m(i, k)),
            ),
        ]
        return facts

    def transition(self, step: Step) -> Fact:
        """Dynamics of one symbolic step, triggered on the successor state."""
        i = z3.Int("i")
        return Fact(
            f"transition[{step}]", (i,),
            self.is_child(i),
            self.trans(i, step),
            Trigger(self.m(i, step.next)),
            step=step,
        )

    def initial_counts(self, counts) -> Fact:
        """Concrete starting configuration, child 1 first."""
        return Fact(
            "initial-counts", (), z3.BoolVal(True),
            z3.And([self.m(i, 0) == c for i, c in enumerate(counts, start=1)]),
        )
