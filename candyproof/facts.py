"""candyproof Facts — quantified formulas with explicit instantiation keys.

A fact is ``∀ variables. guard → body`` together with the TRIGGER the
solver uses to instantiate it: the term pattern whose appearance in a
query causes the quantifier to be specialized to concrete terms. The
trigger is a correctness-relevant part of the fact, not decoration:

  - too narrow, and the instance a proof needs never fires;
  - too eager, and each instance creates new terms matching the same
    pattern again (a trigger loop) and search never terminates.

Facts are either GLOBAL (part of the persistent base, quantified over
all steps) or LOCAL (instantiated for one symbolic ``Step`` and living
only as long as the proof layer that introduced it).

Besides the quantified formula, a fact can be instantiated explicitly
with ``at(...)``; refutation queries assert such instances as hints so
that the proof does not depend on the solver's matching heuristics.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Iterable, Optional, Set, Tuple, Union

import z3


Term = Union[z3.ExprRef, int]


class Scope(str, Enum):
    GLOBAL = "global"
    LOCAL = "local"


def as_term(value: Term) -> z3.ExprRef:
    if isinstance(value, z3.ExprRef):
        return value
    if isinstance(value, bool):
        return z3.BoolVal(value)
    if isinstance(value, int):
        return z3.IntVal(value)
    raise TypeError(f"cannot use {value!r} as a solver term")


def constants_of(expr: z3.ExprRef) -> Set[str]:
    """Names of the uninterpreted constants occurring free in expr."""
    names: Set[str] = set()
    seen: Set[int] = set()
    stack = [expr]
    while stack:
        e = stack.pop()
        key = e.get_id()
        if key in seen:
            continue
        seen.add(key)
        if z3.is_quantifier(e):
            stack.append(e.body())
        elif z3.is_app(e):
            if e.num_args() == 0:
                if e.decl().kind() == z3.Z3_OP_UNINTERPRETED:
                    names.add(e.decl().name())
            else:
                stack.extend(e.children())
    return names


class Trigger:
    """Instantiation key: one term, or several forming a multi-pattern."""

    __slots__ = ("terms",)

    def __init__(self, *terms: z3.ExprRef):
        if not terms:
            raise ValueError("a trigger needs at least one term")
        self.terms: Tuple[z3.ExprRef, ...] = tuple(terms)

    def pattern(self):
        if len(self.terms) == 1:
            return self.terms[0]
        return z3.MultiPattern(*self.terms)

    def mentions(self) -> Set[str]:
        names: Set[str] = set()
        for t in self.terms:
            names |= constants_of(t)
        return names

    def __repr__(self) -> str:
        return "Trigger(" + ", ".join(str(t) for t in self.terms) + ")"


@dataclass(frozen=True, eq=False)
class Step:
    """A symbolic step ``k`` and its successor, fixed inside one layer."""
    k: z3.ArithRef
    next: z3.ArithRef
    layer: str = ""

    def __str__(self) -> str:
        return f"{self.k} -> {self.next}"


@dataclass(frozen=True, eq=False)
class Fact:
    name: str
    variables: Tuple[z3.ExprRef, ...]
    guard: z3.BoolRef
    body: z3.BoolRef
    trigger: Optional[Trigger] = None
    step: Optional[Step] = None

    def __post_init__(self) -> None:
        if self.trigger is not None and self.variables:
            covered = self.trigger.mentions()
            missing = [str(v) for v in self.variables if v.decl().name() not in covered]
            if missing:
                raise ValueError(
                    f"trigger {self.trigger!r} of '{self.name}' does not mention {', '.join(missing)}"
                )

    @property
    def scope(self) -> Scope:
        return Scope.LOCAL if self.step is not None else Scope.GLOBAL

    @property
    def matrix(self) -> z3.BoolRef:
        if z3.is_true(self.guard):
            return self.body
        return z3.Implies(self.guard, self.body)

    def formula(self) -> z3.BoolRef:
        if not self.variables:
            return self.matrix
        patterns = [self.trigger.pattern()] if self.trigger is not None else []
        return z3.ForAll(list(self.variables), self.matrix, patterns=patterns, qid=self.name)

    def _pairs(self, terms: Iterable[Term]):
        terms = tuple(as_term(t) for t in terms)
        if len(terms) != len(self.variables):
            raise ValueError(
                f"'{self.name}' quantifies {len(self.variables)} variable(s), got {len(terms)} term(s)"
            )
        return list(zip(self.variables, terms))

    def _subst(self, expr: z3.ExprRef, pairs) -> z3.ExprRef:
        return z3.substitute(expr, *pairs) if pairs else expr

    def at(self, *terms: Term) -> z3.BoolRef:
        """Instance of the fact for the given terms (in variable order)."""
        return self._subst(self.matrix, self._pairs(terms))

    def negation_at(self, *terms: Term) -> z3.BoolRef:
        """Guard holds but body fails for the given terms."""
        pairs = self._pairs(terms)
        return z3.And(self._subst(self.guard, pairs), z3.Not(self._subst(self.body, pairs)))

    def guard_at(self, *terms: Term) -> z3.BoolRef:
        return self._subst(self.guard, self._pairs(terms))

    def body_at(self, *terms: Term) -> z3.BoolRef:
        return self._subst(self.body, self._pairs(terms))

    def renamed(self, name: str) -> "Fact":
        return replace(self, name=name)

    def __str__(self) -> str:
        if not self.variables:
            return str(self.matrix)
        names = ", ".join(str(v) for v in self.variables)
        return f"ForAll({names}). {self.matrix}"
