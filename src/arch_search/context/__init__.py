"""
Context Package

Client, retry policy and wiki-aware service for the external
vector-context provider that stores and searches all wiki content.
"""

from .client import ContextAPIError, ContextClient, is_name_conflict
from .retry import (
    RetryCancelledError,
    RetryExhaustedError,
    RetryPolicy,
    RetryState,
    rename_on_conflict,
    retry_async,
)
from .service import ContextService, source_key

__all__ = [
    "ContextAPIError",
    "ContextClient",
    "is_name_conflict",
    "RetryCancelledError",
    "RetryExhaustedError",
    "RetryPolicy",
    "RetryState",
    "rename_on_conflict",
    "retry_async",
    "ContextService",
    "source_key",
]
