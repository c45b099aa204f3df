"""Utility modules for shared functionality."""

from .github import split_repository
from .retry import retry_on_rate_limit

__all__ = [
    "split_repository",
    "retry_on_rate_limit",
]
