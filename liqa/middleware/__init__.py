"""
Middleware components for request processing.
"""

from liqa.middleware.request_context import RequestContextMiddleware

__all__ = ["RequestContextMiddleware"]
