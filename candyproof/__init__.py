"""candyproof — refutation-based proof that uniform candy distribution converges."""

__version__ = "0.1.0"
