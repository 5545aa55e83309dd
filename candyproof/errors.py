"""Structured error objects for the candyproof harness.

Every failure is machine-readable: a failing refutation names the lemma
and the solver verdict, a scope violation names the layer involved.
The whole proof is only meaningful as an unbroken chain of refuted
queries, so none of these are recovered from locally.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class ErrorKind(Enum):
    REFUTATION_FAILED = "refutation_failed"
    SCOPE_VIOLATION = "scope_violation"
    CONFIG_ERROR = "config_error"
    SCENARIO_ERROR = "scenario_error"


@dataclass
class ProofError:
    kind: ErrorKind
    message: str
    lemma: Optional[str] = None
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "kind": self.kind.value,
            "message": self.message,
        }
        if self.lemma:
            d["lemma"] = self.lemma
        if self.details:
            d["details"] = self.details
        return d

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    def __str__(self) -> str:
        where = f" in '{self.lemma}'" if self.lemma else ""
        return f"[{self.kind.value}]{where}: {self.message}"


def refutation_error(lemma: str, verdict: str, rule: str = "", depth: int = 0) -> ProofError:
    details: dict[str, Any] = {"verdict": verdict, "depth": depth}
    if rule:
        details["rule"] = rule
    return ProofError(
        kind=ErrorKind.REFUTATION_FAILED,
        message=f"Negated goal was not refuted (solver answered {verdict})",
        lemma=lemma,
        details=details,
    )


def scope_error(message: str, layer: Optional[str] = None) -> ProofError:
    details: dict[str, Any] = {}
    if layer:
        details["layer"] = layer
    return ProofError(
        kind=ErrorKind.SCOPE_VIOLATION,
        message=message,
        details=details,
    )


def config_error(key: str, value: Any, reason: str) -> ProofError:
    return ProofError(
        kind=ErrorKind.CONFIG_ERROR,
        message=f"Invalid configuration value for '{key}': {reason}",
        details={"key": key, "value": repr(value)},
    )


class ProofFailure(Exception):
    """Exception wrapping one or more ProofErrors."""

    def __init__(self, errors: list[ProofError] | ProofError):
        if isinstance(errors, ProofError):
            errors = [errors]
        self.errors = errors
        super().__init__(self._format())

    def _format(self) -> str:
        return "\n".join(str(e) for e in self.errors)

    def to_json(self, indent: int = 2) -> str:
        return json.dumps([e.to_dict() for e in self.errors], indent=indent)


class RefutationFailed(ProofFailure):
    """A query expected to be UNSAT came back SAT or UNKNOWN."""

    def __init__(self, lemma: str, verdict: str, rule: str = "", depth: int = 0):
        self.lemma = lemma
        self.verdict = verdict
        super().__init__(refutation_error(lemma, verdict, rule=rule, depth=depth))


class ScopeViolation(ProofFailure):
    """The layer stack discipline was broken."""

    def __init__(self, message: str, layer: Optional[str] = None):
        super().__init__(scope_error(message, layer=layer))


class ScenarioError(ValueError):
    """Concrete candy configuration that the process is not defined on."""

    def __init__(self, message: str, counts: Any = None):
        self.error = ProofError(
            kind=ErrorKind.SCENARIO_ERROR,
            message=message,
            details={"counts": list(counts)} if counts is not None else {},
        )
        super().__init__(message)

    def to_json(self, indent: int = 2) -> str:
        return self.error.to_json(indent=indent)
