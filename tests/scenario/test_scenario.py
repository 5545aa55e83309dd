"""candyproof Scenario Tests — SIM-001 through SIM-005.

Tests for:
  - The concrete dynamics on explicit counts
  - The histogram and its decrease clause on the N = 2 example
  - Input validation
  - Solver check of existential witnesses
"""

import pytest
import z3

from candyproof.config import ProverConfig
from candyproof.errors import ScenarioError
from candyproof.model import CandyModel
from candyproof.proof_obligations import SolverResult
from candyproof.scenario import (
    check_witness, convergence_step, histogram, leaves_clause_holds, next_counts,
    next_value, run,
)


# ===========================================================================
# SIM-001: Dynamics
# ===========================================================================

class TestSIM001:
    """SIM-001: Half-sum with the right neighbour, rounded up to even."""

    def test_two_children(self):
        assert next_counts([4, 0]) == [2, 2]

    def test_rounding_up(self):
        assert next_value(2, 4) == 4
        assert next_value(4, 4) == 4
        assert next_value(0, 2) == 2

    def test_circle_wraps(self):
        assert next_counts([2, 0, 0]) == [2, 0, 2]

    def test_single_child_is_uniform(self):
        assert run([6]) == [[6]]

    def test_matches_symbolic_rule(self):
        for a, b in [(4, 0), (2, 4), (6, 8), (0, 0)]:
            symbolic = z3.simplify(CandyModel.next_value(z3.IntVal(a), z3.IntVal(b)))
            assert symbolic.as_long() == next_value(a, b)


# ===========================================================================
# SIM-002: Convergence
# ===========================================================================

class TestSIM002:
    """SIM-002: Runs stop at the first uniform state."""

    def test_example_converges_at_one(self):
        assert run([4, 0]) == [[4, 0], [2, 2]]
        assert convergence_step([4, 0]) == 1

    def test_already_uniform(self):
        assert convergence_step([2, 2, 2]) == 0

    def test_longer_circle(self):
        trajectory = run([10, 0, 4, 2, 8])
        assert len(set(trajectory[-1])) == 1
        assert all(len(set(s)) > 1 for s in trajectory[:-1])

    def test_step_limit(self):
        with pytest.raises(ScenarioError, match="within 1 steps"):
            run([10, 0, 4, 2, 8], max_steps=1)


# ===========================================================================
# SIM-003: Histogram
# ===========================================================================

class TestSIM003:
    """SIM-003: num(n, k) on the N = 2 example."""

    def test_counts(self):
        before, after = run([4, 0])
        assert histogram(before)[0] == 1
        assert histogram(before)[4] == 1
        assert histogram(after)[2] == 2
        assert histogram(after)[0] == 0
        assert histogram(after)[4] == 0

    def test_decrease_clause(self):
        before, after = run([4, 0])
        for n in (0, 2, 4):
            assert leaves_clause_holds(before, after, n)

    def test_clause_vacuous_when_value_entered(self):
        # child 2 leaves 4 but child 1 enters it
        assert leaves_clause_holds([0, 4], [4, 0], 4)

    def test_clause_with_leaving_child(self):
        # child 1 leaves 2 and nobody enters it
        assert histogram([4, 4])[2] < histogram([2, 4])[2]
        assert leaves_clause_holds([2, 4], [4, 4], 2)


# ===========================================================================
# SIM-004: Validation
# ===========================================================================

class TestSIM004:
    """SIM-004: Only non-empty lists of even, non-negative integers are accepted."""

    @pytest.mark.parametrize("counts, message", [
        ([], "at least one child"),
        ([3, 2], "odd"),
        ([-2, 2], "negative"),
        ([2.0, 2], "not an integer"),
        ([True, 2], "not an integer"),
    ])
    def test_rejected(self, counts, message):
        with pytest.raises(ScenarioError, match=message):
            next_counts(counts)

    def test_is_value_error(self):
        with pytest.raises(ValueError):
            run([1])


# ===========================================================================
# SIM-005: Witness check
# ===========================================================================

class TestSIM005:
    """SIM-005: The solver admits k = 1 as a witness for (4, 0)."""

    def test_step_one_is_witness(self):
        assert check_witness([4, 0], 1) is SolverResult.UNSAT

    def test_step_zero_is_not(self):
        result = check_witness([4, 0], 0, ProverConfig(timeout_ms=5000))
        assert result is not SolverResult.UNSAT

    def test_uniform_start(self):
        assert check_witness([2, 2, 2], 0) is SolverResult.UNSAT

    def test_three_children(self):
        step = convergence_step([4, 0, 2])
        assert check_witness([4, 0, 2], step) is SolverResult.UNSAT

    def test_negative_step(self):
        with pytest.raises(ScenarioError, match="negative"):
            check_witness([4, 0], -1)
