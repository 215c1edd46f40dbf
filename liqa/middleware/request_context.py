"""
RequestContext Middleware - per-request metadata for activity logging.

Sets on request.state:
- request_id: UUID echoed back in the X-Request-ID response header
- ip_address: Client IP (X-Forwarded-For only from trusted proxies)
- user_agent: Client user agent string

Route handlers pass ip_address and user_agent to the ActivityLogger through
``liqa.utils.audit_helpers.record_activity``.
"""

import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from liqa.config import settings
from liqa.infrastructure.observability.logging import (
    bind_request_context,
    clear_request_context,
    get_logger,
)

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Populate request.state with request_id, ip_address and user_agent."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id
        request.state.ip_address = client_ip(request)
        request.state.user_agent = request.headers.get("user-agent")
        bind_request_context(request_id=request_id, ip_address=request.state.ip_address)

        logger.debug("Request started", method=request.method, path=request.url.path)

        try:
            response = await call_next(request)
        finally:
            clear_request_context()
        response.headers[REQUEST_ID_HEADER] = request_id
        return response


def client_ip(request: Request) -> str | None:
    """
    Resolve the client IP.

    X-Forwarded-For is honoured only when TRUST_X_FORWARDED_FOR is on and the
    direct peer is listed in TRUSTED_PROXY_IPS; its first entry is the client.
    """
    peer = request.client.host if request.client else None

    if not settings.TRUST_X_FORWARDED_FOR or peer not in settings.TRUSTED_PROXY_IPS:
        return peer

    forwarded_for = request.headers.get("x-forwarded-for")
    if not forwarded_for:
        return peer
    return forwarded_for.split(",")[0].strip()
