"""candyproof Proof Ledger Tests — LEDGER-001 through LEDGER-003."""

import json

from candyproof import __version__
from candyproof.proof_obligations import ProofObligation, ProofTrace, SolverResult


def _trace():
    trace = ProofTrace()
    trace.add(ProofObligation("histogram-decrease/sweep/base", "induction-base", "m(c) = L",
                              depth=3, result=SolverResult.UNSAT, duration_ms=1.5))
    trace.add(ProofObligation("histogram-decrease", "refutation", "num decreases",
                              depth=1, result=SolverResult.UNSAT, duration_ms=2.5))
    trace.add(ProofObligation("histogram-decreasing", "refutation", "other",
                              result=SolverResult.SAT))
    trace.add(ProofObligation("lex-decrease", "refutation", "lt", smtlib2="(assert false)",
                              result=SolverResult.UNKNOWN))
    return trace


# ===========================================================================
# LEDGER-001: Counts
# ===========================================================================

class TestLEDGER001:
    """LEDGER-001: Aggregate counts distinguish UNSAT, SAT and UNKNOWN."""

    def test_counts(self):
        trace = _trace()
        assert trace.total == 4
        assert trace.proved_count == 2
        assert trace.failed_count == 1
        assert trace.unknown_count == 1
        assert not trace.all_proved
        assert trace.duration_ms == 4.0

    def test_empty_trace_not_proved(self):
        assert not ProofTrace().all_proved

    def test_only_unsat_refutes(self):
        assert SolverResult.UNSAT.refuted
        assert not SolverResult.SAT.refuted
        assert not SolverResult.UNKNOWN.refuted


# ===========================================================================
# LEDGER-002: Lemma grouping
# ===========================================================================

class TestLEDGER002:
    """LEDGER-002: for_lemma includes sub-lemmas, not name prefixes."""

    def test_sub_lemmas_included(self):
        names = [o.lemma for o in _trace().for_lemma("histogram-decrease")]
        assert names == ["histogram-decrease/sweep/base", "histogram-decrease"]


# ===========================================================================
# LEDGER-003: Rendering
# ===========================================================================

class TestLEDGER003:
    """LEDGER-003: JSON, ASCII table and SMTLIB2 bundle."""

    def test_json(self):
        data = json.loads(_trace().to_json())
        assert data["version"] == __version__
        assert data["summary"]["refuted"] == 2
        assert data["obligations"][0]["result"] == "UNSAT"
        assert data["obligations"][0]["proved"] is True

    def test_table_indents_by_depth(self):
        table = _trace().to_ascii_table()
        assert "      histogram-decrease/sweep/base" in table
        assert "2/4 queries refuted, 1 sat, 1 unknown" in table

    def test_empty_table(self):
        assert "no refutation queries" in ProofTrace().to_ascii_table()

    def test_bundle_skips_unrecorded(self):
        bundle = _trace().to_smtlib2_bundle()
        assert bundle.count("(check-sat)") == 1
        assert "; --- Query 4: lex-decrease / refutation ---" in bundle

    def test_obligation_ascii(self):
        text = _trace().obligations[2].to_ascii()
        assert "✗ SAT" in text
