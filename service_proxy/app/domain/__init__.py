"""
Domain layer for the proxy service.

Holds the request-scoped aggregation that combines adapter results; it has
no knowledge of HTTP routing.
"""

from .aggregator import AggregatedResult, Aggregator, build_context_prompt, require_prompt

__all__ = [
    "AggregatedResult",
    "Aggregator",
    "build_context_prompt",
    "require_prompt",
]
