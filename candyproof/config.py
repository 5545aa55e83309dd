"""candyproof Configuration — project-level .candyproofrc.json support.

Loads configuration from .candyproofrc.json (or candyproof.config.json)
found by walking up from the working directory. Allows tuning:
  - The per-query solver timeout
  - Whether the SMTLIB2 text of every query is recorded
  - Output format and log level of the command-line driver
  - Whether the corollaries after the main theorem are proved

Example .candyproofrc.json:
    {
      "timeout_ms": 120000,
      "record_smtlib2": true,
      "format": "json",
      "log_level": "INFO"
    }
"""

from __future__ import annotations

import os
import json
from dataclasses import dataclass
from typing import Optional, Dict, Any

from candyproof.errors import ProofFailure, config_error


FORMATS = ("pretty", "json", "smtlib2")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


@dataclass
class ProverConfig:
    """Harness configuration."""
    # Per-query solver timeout; an expired query answers UNKNOWN
    timeout_ms: int = 60000
    # Keep the SMTLIB2 rendering of every query in the trace
    record_smtlib2: bool = False
    # Output
    format: str = "pretty"  # "pretty", "json", "smtlib2"
    log_level: str = "WARNING"
    # Prove corollaries after the main theorem
    corollaries: bool = True

    def validate(self) -> "ProverConfig":
        if self.timeout_ms <= 0:
            raise ProofFailure(config_error("timeout_ms", self.timeout_ms, "must be positive"))
        if self.format not in FORMATS:
            raise ProofFailure(config_error("format", self.format, f"expected one of {', '.join(FORMATS)}"))
        if self.log_level.upper() not in LOG_LEVELS:
            raise ProofFailure(config_error("log_level", self.log_level, f"expected one of {', '.join(LOG_LEVELS)}"))
        self.log_level = self.log_level.upper()
        return self


# ---------------------------------------------------------------------------
# Config file names (in priority order)
# ---------------------------------------------------------------------------

_CONFIG_FILES = [
    ".candyproofrc.json",
    "candyproof.config.json",
]


def find_config(start_dir: str = ".") -> Optional[str]:
    """Find the nearest config file by walking up from start_dir."""
    current = os.path.abspath(start_dir)
    while True:
        for name in _CONFIG_FILES:
            path = os.path.join(current, name)
            if os.path.isfile(path):
                return path
        parent = os.path.dirname(current)
        if parent == current:
            break
        current = parent
    return None


def load_config(path: Optional[str] = None, start_dir: str = ".") -> ProverConfig:
    """Load configuration from a file.

    If no path is given, searches for a config file starting from start_dir.
    If no config file is found, or it cannot be read or parsed, returns
    defaults. Values that parse but are out of range raise ProofFailure.
    """
    if path is None:
        path = find_config(start_dir)

    if path is None:
        return ProverConfig()

    try:
        with open(path, "r") as f:
            content = f.read()
    except (IOError, OSError):
        return ProverConfig()

    try:
        data = json.loads(content)
    except json.JSONDecodeError:
        return ProverConfig()
    if not isinstance(data, dict):
        return ProverConfig()

    return _dict_to_config(data)


def _flag(data: Dict[str, Any], key: str) -> bool:
    value = data[key]
    if not isinstance(value, bool):
        raise ProofFailure(config_error(key, value, "expected true or false"))
    return value


def _dict_to_config(data: Dict[str, Any]) -> ProverConfig:
    """Convert a parsed dict to ProverConfig."""
    config = ProverConfig()

    if "timeout_ms" in data:
        value = data["timeout_ms"]
        if isinstance(value, bool) or not isinstance(value, int):
            raise ProofFailure(config_error("timeout_ms", value, "not an integer"))
        config.timeout_ms = value
    if "record_smtlib2" in data:
        config.record_smtlib2 = _flag(data, "record_smtlib2")
    if "format" in data:
        config.format = str(data["format"])
    if "log_level" in data:
        config.log_level = str(data["log_level"])
    if "corollaries" in data:
        config.corollaries = _flag(data, "corollaries")

    return config.validate()
