"""candyproof Scenario — concrete runs of the candy distribution process.

Executes the dynamics on an explicit list of counts (child 1 first) and
checks concrete witnesses of the convergence theorem with the solver:

    >>> next_counts([4, 0])
    [2, 2]
    >>> convergence_step([4, 0])
    1
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import List, Optional, Sequence

import z3

from candyproof.config import ProverConfig
from candyproof.context import ProofContext
from candyproof.errors import ScenarioError
from candyproof.facts import Step
from candyproof.model import CandyModel
from candyproof.proof_obligations import SolverResult


logger = logging.getLogger(__name__)

Counts = Sequence[int]

# Axioms needed to evaluate a concrete run; the histogram plays no part.
WITNESS_AXIOMS = (
    "children-exist", "children-count", "right-neighbor",
    "max-child-exists", "min-child-exists", "max-dominates", "min-dominated",
)


def validate(counts: Counts) -> List[int]:
    values = list(counts)
    if not values:
        raise ScenarioError("a circle needs at least one child", values)
    for c in values:
        if isinstance(c, bool) or not isinstance(c, int):
            raise ScenarioError(f"count {c!r} is not an integer", values)
        if c < 0:
            raise ScenarioError(f"count {c} is negative", values)
        if c % 2:
            raise ScenarioError(f"count {c} is odd", values)
    return values


def next_value(own: int, neighbour: int) -> int:
    half = (own + neighbour) // 2
    return half if half % 2 == 0 else half + 1


def next_counts(counts: Counts) -> List[int]:
    """One step: every child takes half of its own and its right neighbour's candies."""
    values = validate(counts)
    n = len(values)
    return [next_value(values[i], values[(i + 1) % n]) for i in range(n)]


def is_uniform(counts: Counts) -> bool:
    return min(counts) == max(counts)


def run(counts: Counts, max_steps: int = 10000) -> List[List[int]]:
    """Trajectory from the initial counts up to and including the first uniform state."""
    state = validate(counts)
    trajectory = [state]
    while not is_uniform(state):
        if len(trajectory) > max_steps:
            raise ScenarioError(f"no convergence within {max_steps} steps", counts)
        state = next_counts(state)
        trajectory.append(state)
    return trajectory


def convergence_step(counts: Counts, max_steps: int = 10000) -> int:
    """First step at which every child holds the same count."""
    return len(run(counts, max_steps)) - 1


def histogram(counts: Counts) -> Counter:
    """num(n, k) for one state: how many children hold each count."""
    return Counter(counts)


def leaves_clause_holds(before: Counts, after: Counts, n: int) -> bool:
    """Whether the histogram decrease axiom is satisfied at value ``n``.

    Vacuously true unless some child leaves ``n`` while none enters it.
    """
    leaves = any(b == n and a != n for b, a in zip(before, after))
    enters = any(b != n and a == n for b, a in zip(before, after))
    if not leaves or enters:
        return True
    return histogram(after)[n] < histogram(before)[n]


def check_witness(counts: Counts, step: int,
                  config: Optional[ProverConfig] = None) -> SolverResult:
    """Ask the solver whether ``step`` is a convergence witness for ``counts``.

    The model is pinned to ``len(counts)`` children with the given
    initial state and the dynamics of every step before ``step``. UNSAT
    for ``min2(step) != max2(step)`` means all children provably hold the
    same count at ``step``.
    """
    values = validate(counts)
    if step < 0:
        raise ScenarioError(f"step {step} is negative", values)
    n = len(values)
    model = CandyModel(children=n)
    ctx = ProofContext(config)

    for axiom in model.axioms():
        if axiom.name in WITNESS_AXIOMS:
            ctx.commit(axiom)
    ctx.commit(model.initial_counts(values))
    transitions = []
    for t in range(step):
        fact = model.transition(Step(z3.IntVal(t), z3.IntVal(t + 1), layer="base"))
        ctx.commit(fact)
        transitions.append(fact)

    right = ctx.fact("right-neighbor")
    max_exists = ctx.fact("max-child-exists")
    min_exists = ctx.fact("min-child-exists")
    children = range(1, n + 1)
    hints = [right.at(i) for i in children]
    hints += [t.at(i) for t in transitions for i in children]
    hints += [
        max_exists.at(step), min_exists.at(step),
        z3.Or([model.max_child(step) == i for i in children]),
        z3.Or([model.min_child(step) == i for i in children]),
    ]

    name = f"witness[{step}]"
    with ctx.scope(name):
        ctx.assume(z3.Not(model.converged(step)), label=f"not converged at {step}")
        for h in hints:
            ctx.assume(h, label=f"{name} hint")
        result = ctx.check_refuted(name, rule="witness", vc=f"min2({step}) = max2({step})")
    logger.info("witness %s at step %d: %s", values, step, result.value)
    return result
