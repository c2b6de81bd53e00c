"""verify-gate: verify test claims and enforce quality gates."""

__version__ = "0.1.0-dev"
