"""Validation and invariant checks for yield pools."""

from .invariants import InvariantChecker, ValidationWarning, validate_pool_history

__all__ = [
    "InvariantChecker",
    "ValidationWarning",
    "validate_pool_history"
]
