"""Utility modules."""
from .transaction import TransactionContext, store_operation
from .startup_check import validate_environment, validate_timeouts, get_missing_vars

__all__ = [
    "TransactionContext",
    "store_operation",
    "validate_environment",
    "validate_timeouts",
    "get_missing_vars",
]
