"""HTTP middleware that counts every inbound request by client address."""

from __future__ import annotations

import ipaddress
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from fastapi import Request, Response, status
from fastapi.responses import JSONResponse

from pingstats.counter import CounterLockError, RequestCounter

UNKNOWN_CLIENT = "unknown"

request_logger = logging.getLogger("pingstats.request")


def client_address(request: Request) -> str:
    """Return the peer IP of the connection, without port.

    IP literals are rendered in canonical form; anything else the transport
    reports is used verbatim. Forwarding headers are ignored.
    """

    if request.client is None or not request.client.host:
        return UNKNOWN_CLIENT
    host = request.client.host
    try:
        return str(ipaddress.ip_address(host))
    except ValueError:
        return host


def request_counting_middleware(
    counter: RequestCounter,
) -> Callable[[Request, Any], Awaitable[Response]]:
    """Build an ``http`` middleware that records each request in ``counter``."""

    async def count_request(request: Request, call_next: Any) -> Response:
        address = client_address(request)
        try:
            counter.increment(address)
        except CounterLockError:
            request_logger.exception(
                "request_count_failed client=%s method=%s path=%s",
                address,
                request.method.upper(),
                request.url.path,
            )
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={"detail": "Request counter unavailable"},
            )
        return await call_next(request)

    return count_request
