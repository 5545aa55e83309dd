"""candyproof Configuration & Error Tests — CFG-001 through CFG-003, ERR-001 through ERR-002."""

import json

import pytest

from candyproof.config import ProverConfig, find_config, load_config
from candyproof.errors import (
    ErrorKind, ProofError, ProofFailure, RefutationFailed, ScenarioError, ScopeViolation,
    config_error,
)


# ===========================================================================
# CFG-001: Discovery
# ===========================================================================

class TestCFG001:
    """CFG-001: The nearest config file is found by walking up."""

    def test_found_in_parent(self, tmp_path):
        (tmp_path / ".candyproofrc.json").write_text("{}")
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)
        assert find_config(str(nested)) == str(tmp_path / ".candyproofrc.json")

    def test_rc_file_preferred(self, tmp_path):
        (tmp_path / ".candyproofrc.json").write_text("{}")
        (tmp_path / "candyproof.config.json").write_text("{}")
        assert find_config(str(tmp_path)).endswith(".candyproofrc.json")

    def test_alternate_name(self, tmp_path):
        (tmp_path / "candyproof.config.json").write_text("{}")
        assert find_config(str(tmp_path)).endswith("candyproof.config.json")


# ===========================================================================
# CFG-002: Loading
# ===========================================================================

class TestCFG002:
    """CFG-002: Values are read; unusable files give defaults."""

    def test_values(self, tmp_path):
        path = tmp_path / ".candyproofrc.json"
        path.write_text(json.dumps({
            "timeout_ms": 5000,
            "record_smtlib2": True,
            "format": "json",
            "log_level": "info",
            "corollaries": False,
        }))
        config = load_config(str(path))
        assert config.timeout_ms == 5000
        assert config.record_smtlib2 is True
        assert config.format == "json"
        assert config.log_level == "INFO"
        assert config.corollaries is False

    def test_missing_file(self, tmp_path):
        config = load_config(str(tmp_path / "absent.json"))
        assert config == ProverConfig()

    def test_invalid_json(self, tmp_path):
        path = tmp_path / ".candyproofrc.json"
        path.write_text("{not json")
        assert load_config(str(path)) == ProverConfig()

    def test_not_an_object(self, tmp_path):
        path = tmp_path / ".candyproofrc.json"
        path.write_text("[1, 2]")
        assert load_config(str(path)) == ProverConfig()

    def test_defaults(self):
        config = ProverConfig()
        assert config.timeout_ms == 60000
        assert config.format == "pretty"
        assert config.corollaries is True


# ===========================================================================
# CFG-003: Validation
# ===========================================================================

class TestCFG003:
    """CFG-003: Out-of-range values raise ProofFailure(config_error)."""

    @pytest.mark.parametrize("data", [
        {"timeout_ms": 0},
        {"timeout_ms": "soon"},
        {"timeout_ms": "5000"},
        {"timeout_ms": True},
        {"timeout_ms": 1.9},
        {"format": "xml"},
        {"log_level": "LOUD"},
        {"record_smtlib2": "false"},
        {"corollaries": 1},
    ])
    def test_rejected(self, tmp_path, data):
        path = tmp_path / ".candyproofrc.json"
        path.write_text(json.dumps(data))
        with pytest.raises(ProofFailure) as info:
            load_config(str(path))
        assert info.value.errors[0].kind is ErrorKind.CONFIG_ERROR
        assert info.value.errors[0].details["key"] == next(iter(data))


# ===========================================================================
# ERR-001: Structured errors
# ===========================================================================

class TestERR001:
    """ERR-001: Errors render as dicts, JSON and one-line text."""

    def test_to_dict(self):
        err = ProofError(ErrorKind.REFUTATION_FAILED, "no", lemma="lex-decrease",
                         details={"verdict": "SAT"})
        assert err.to_dict() == {
            "kind": "refutation_failed",
            "message": "no",
            "lemma": "lex-decrease",
            "details": {"verdict": "SAT"},
        }

    def test_str(self):
        err = config_error("format", "xml", "expected one of pretty, json, smtlib2")
        assert str(err).startswith("[config_error]: Invalid configuration value for 'format'")

    def test_failure_wraps_many(self):
        failure = ProofFailure([config_error("a", 1, "x"), config_error("b", 2, "y")])
        assert len(json.loads(failure.to_json())) == 2
        assert "'a'" in str(failure) and "'b'" in str(failure)


# ===========================================================================
# ERR-002: Exception types
# ===========================================================================

class TestERR002:
    """ERR-002: Each failure class carries its own context."""

    def test_refutation_failed(self):
        exc = RefutationFailed("histogram-decrease/no-entry", "UNKNOWN", rule="refutation", depth=2)
        assert isinstance(exc, ProofFailure)
        d = exc.errors[0].to_dict()
        assert d["lemma"] == "histogram-decrease/no-entry"
        assert d["details"] == {"verdict": "UNKNOWN", "depth": 2, "rule": "refutation"}

    def test_scope_violation(self):
        exc = ScopeViolation("pop without a matching push", layer="base")
        assert exc.errors[0].kind is ErrorKind.SCOPE_VIOLATION
        assert exc.errors[0].details == {"layer": "base"}

    def test_scenario_error_is_value_error(self):
        exc = ScenarioError("count 3 is odd", [3])
        assert isinstance(exc, ValueError)
        assert json.loads(exc.to_json())["details"] == {"counts": [3]}
