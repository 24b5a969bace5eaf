"""
Middleware package.

WHY: Middleware provides cross-cutting concerns, here the per-request
context used for log correlation.
"""

from tracker.middleware.request_context import (
    RequestContextMiddleware,
    RequestContext,
    get_request_context,
    get_client_ip,
    resolve_request_id,
)

__all__ = [
    "RequestContextMiddleware",
    "RequestContext",
    "get_request_context",
    "get_client_ip",
    "resolve_request_id",
]
