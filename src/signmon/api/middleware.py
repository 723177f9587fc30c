"""
Request monitoring middleware.

Raw ASGI middleware that times every HTTP request and records its outcome
with the monitor. Responses with status >= 400 are also recorded as errors,
named after the `code` of a JSON error body when there is one, as are
exceptions raised by the application. A request cancelled mid-flight
(server timeout, client disconnect) is still recorded before the
cancellation propagates.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import Any
from urllib.parse import parse_qs

from signmon.core.endpoints import normalize_endpoint
from signmon.core.service import Monitor
from signmon.exceptions import ApiError
from signmon.models import ErrorContext

logger = logging.getLogger("signmon.middleware")

# Error bodies larger than this are not inspected for a code.
MAX_ERROR_BODY = 64 * 1024


def _header(scope: dict[str, Any], name: bytes) -> str | None:
    for key, value in scope.get("headers", []):
        if key.lower() == name:
            return value.decode("latin-1")
    return None


def _route_path(scope: dict[str, Any]) -> str:
    """Prefer the matched route template (set by Starlette routers) over the raw path."""
    route = scope.get("route")
    template = getattr(route, "path", None)
    return template or scope.get("path", "")


def _user_id(scope: dict[str, Any]) -> str | None:
    state = scope.get("state") or {}
    user_id = state.get("user_id") if isinstance(state, dict) else None
    return str(user_id) if user_id is not None else None


def _client_ip(scope: dict[str, Any]) -> str | None:
    forwarded = _header(scope, b"x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    client = scope.get("client")
    return client[0] if client else None


def _is_json(headers: list[tuple[bytes, bytes]]) -> bool:
    for key, value in headers:
        if key.lower() == b"content-type":
            return b"json" in value.lower()
    return False


def _response_error(status_code: int, body: bytes) -> ApiError:
    """Build the recorded error for a failed response, named after its JSON ``code``."""
    try:
        data = json.loads(body) if body else None
    except (ValueError, UnicodeDecodeError):
        data = None
    if isinstance(data, dict) and data.get("error"):
        return ApiError(str(data["error"]), status_code, code=str(data.get("code") or "APIError"))
    return ApiError(f"HTTP {status_code} Error", status_code, code="HTTPError")


class MonitoringMiddleware:
    """
    ASGI middleware recording request timing and failures.

    Usage:
        app = MonitoringMiddleware(app, monitor)
    """

    def __init__(self, app: Any, monitor: Monitor):
        self.app = app
        self.monitor = monitor
        self.slow_request_ms = monitor.config.health.response_time_threshold_ms

    async def __call__(self, scope: dict[str, Any], receive: Any, send: Any) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        started = time.monotonic()
        status: dict[str, int | None] = {"code": None}
        capture = {"enabled": False}
        body = bytearray()

        async def send_with_status(message: dict[str, Any]) -> None:
            if message["type"] == "http.response.start":
                status["code"] = message["status"]
                capture["enabled"] = (
                    message["status"] >= 400 and _is_json(message.get("headers", []))
                )
            elif message["type"] == "http.response.body" and capture["enabled"]:
                body.extend(message.get("body", b""))
                if len(body) > MAX_ERROR_BODY:
                    capture["enabled"] = False
                    body.clear()
            await send(message)

        try:
            await self.app(scope, receive, send_with_status)
        except (Exception, asyncio.CancelledError) as exc:
            self._record(scope, status["code"] or 500, started, exc)
            raise
        else:
            self._record(scope, status["code"] or 500, started, None, bytes(body))

    def _record(
        self,
        scope: dict[str, Any],
        status_code: int,
        started: float,
        exc: BaseException | None,
        body: bytes = b"",
    ) -> None:
        latency_ms = round((time.monotonic() - started) * 1000, 2)
        endpoint = normalize_endpoint(_route_path(scope))
        method = scope.get("method", "GET")
        user_id = _user_id(scope)

        self.monitor.record_request(endpoint, method, status_code, latency_ms, user_id)

        if latency_ms > self.slow_request_ms:
            logger.warning("Slow request: %s %s - %.0fms", method, endpoint, latency_ms)

        if status_code < 400 and exc is None:
            return

        query_string = scope.get("query_string", b"").decode("latin-1")
        context = ErrorContext(
            endpoint=endpoint,
            method=method,
            status_code=status_code,
            latency_ms=latency_ms,
            user_id=user_id,
            user_agent=_header(scope, b"user-agent"),
            ip=_client_ip(scope),
            query=parse_qs(query_string) if query_string else None,
            params=dict(scope.get("path_params") or {}) or None,
        )
        error = exc or _response_error(status_code, body)
        self.monitor.record_error(error, context)
