"""
Request Context Middleware Tests.

WHAT: Unit tests for the RequestContextMiddleware.

WHY: Every service log line carries the request id set here, and the
host editor's plugin correlates its own logs through X-Request-ID.
These tests ensure correct behavior for:
- Client IP extraction (direct and through proxies)
- Request ID reuse and generation
- Context availability throughout request lifecycle

HOW: Tests build raw ASGI scopes and call dispatch() directly.
"""

import uuid

import pytest
from unittest.mock import MagicMock
from starlette.requests import Request
from starlette.responses import Response

from tracker.middleware.request_context import (
    REQUEST_ID_HEADER,
    RequestContext,
    RequestContextMiddleware,
    _request_context,
    get_client_ip,
    get_request_context,
    resolve_request_id,
)


def make_request(headers: dict = None, client_host: str = "10.0.0.1", method: str = "GET", path: str = "/api/tickets") -> Request:
    """
    Create a request with specified headers and client.

    Args:
        headers: Dictionary of headers
        client_host: Client IP address, None for no client
        method: HTTP method
        path: Request path

    Returns:
        Request object
    """
    scope = {
        "type": "http",
        "method": method,
        "scheme": "http",
        "server": ("testserver", 80),
        "root_path": "",
        "path": path,
        "query_string": b"",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "client": (client_host, 12345) if client_host else None,
    }
    return Request(scope)


def is_uuid(value: str) -> bool:
    try:
        uuid.UUID(value)
    except ValueError:
        return False
    return True


class TestGetClientIp:
    """Tests for the get_client_ip function."""

    def test_get_client_ip_from_x_real_ip(self):
        request = make_request(headers={"X-Real-IP": "192.168.1.100"})
        assert get_client_ip(request) == "192.168.1.100"

    def test_get_client_ip_from_x_forwarded_for(self):
        """The first address in X-Forwarded-For is the original client."""
        request = make_request(headers={"X-Forwarded-For": "203.0.113.50, 70.41.3.18"})
        assert get_client_ip(request) == "203.0.113.50"

    def test_get_client_ip_prefers_x_real_ip_over_x_forwarded_for(self):
        request = make_request(
            headers={
                "X-Real-IP": "192.168.1.100",
                "X-Forwarded-For": "203.0.113.50, 70.41.3.18",
            },
        )
        assert get_client_ip(request) == "192.168.1.100"

    def test_get_client_ip_from_direct_connection(self):
        request = make_request(client_host="192.168.1.50")
        assert get_client_ip(request) == "192.168.1.50"

    def test_get_client_ip_unknown_fallback(self):
        request = make_request(client_host=None)
        assert get_client_ip(request) == "unknown"


class TestResolveRequestId:
    """Tests for request id reuse and generation."""

    def test_generates_uuid_without_header(self):
        assert is_uuid(resolve_request_id(make_request()))

    def test_reuses_incoming_header(self):
        request = make_request(headers={REQUEST_ID_HEADER: "plugin-req-0042"})
        assert resolve_request_id(request) == "plugin-req-0042"

    def test_ignores_overlong_header(self):
        request = make_request(headers={REQUEST_ID_HEADER: "x" * 65})
        assert is_uuid(resolve_request_id(request))

    def test_ignores_blank_header(self):
        request = make_request(headers={REQUEST_ID_HEADER: "   "})
        assert is_uuid(resolve_request_id(request))


class TestGetRequestContext:
    """Tests for the get_request_context function."""

    def test_get_request_context_returns_none_by_default(self):
        token = _request_context.set(None)
        try:
            assert get_request_context() is None
        finally:
            _request_context.reset(token)

    def test_get_request_context_returns_set_context(self):
        ctx = RequestContext(
            request_id="test-id",
            ip_address="1.2.3.4",
            user_agent=None,
            path="/api/tickets",
            method="GET",
        )

        token = _request_context.set(ctx)
        try:
            assert get_request_context() == ctx
        finally:
            _request_context.reset(token)


@pytest.mark.asyncio
class TestRequestContextMiddleware:
    """Tests for the RequestContextMiddleware class."""

    async def test_middleware_adds_request_id_header(self):
        async def call_next(req):
            return Response(content="OK", status_code=200)

        middleware = RequestContextMiddleware(app=MagicMock())
        response = await middleware.dispatch(make_request(), call_next)

        assert is_uuid(response.headers[REQUEST_ID_HEADER])

    async def test_middleware_echoes_incoming_request_id(self):
        async def call_next(req):
            return Response(content="OK", status_code=200)

        middleware = RequestContextMiddleware(app=MagicMock())
        response = await middleware.dispatch(
            make_request(headers={REQUEST_ID_HEADER: "abc-123"}), call_next
        )

        assert response.headers[REQUEST_ID_HEADER] == "abc-123"

    async def test_middleware_sets_context_during_request(self):
        """Services read the context without the Request object."""
        captured = {}

        async def call_next(req):
            captured["state"] = req.state.context
            captured["var"] = get_request_context()
            return Response(content="OK", status_code=200)

        request = make_request(
            headers={"X-Real-IP": "192.168.1.100", "User-Agent": "ExpressPlugin/1.0"},
            method="PATCH",
            path="/api/tickets/3/status",
        )
        middleware = RequestContextMiddleware(app=MagicMock())
        await middleware.dispatch(request, call_next)

        assert captured["state"] is captured["var"]
        assert captured["var"].ip_address == "192.168.1.100"
        assert captured["var"].user_agent == "ExpressPlugin/1.0"
        assert captured["var"].method == "PATCH"
        assert captured["var"].path == "/api/tickets/3/status"

    async def test_middleware_clears_context_after_request(self):
        async def call_next(req):
            return Response(content="OK", status_code=200)

        middleware = RequestContextMiddleware(app=MagicMock())
        await middleware.dispatch(make_request(), call_next)

        assert get_request_context() is None

    async def test_middleware_clears_context_on_error(self):
        """Errors in handlers should not prevent context cleanup."""

        async def call_next(req):
            raise RuntimeError("handler failed")

        middleware = RequestContextMiddleware(app=MagicMock())
        with pytest.raises(RuntimeError):
            await middleware.dispatch(make_request(), call_next)

        assert get_request_context() is None
