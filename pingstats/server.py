"""Process entry: bind the listener, then serve the app with uvicorn."""

from __future__ import annotations

import asyncio
import logging
import socket

import uvicorn

from pingstats.config import Settings
from pingstats.main import create_app, settings

server_logger = logging.getLogger("pingstats.server")


class StartupError(RuntimeError):
    """Raised when the server cannot start accepting connections."""


class ServerError(RuntimeError):
    """Raised when the server stops because of an unexpected failure."""


def bind_listener(host: str, port: int) -> socket.socket:
    """Bind a TCP socket on ``host:port``; uvicorn starts listening on it."""

    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    sock = socket.socket(family, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((host, port))
    except OSError as exc:
        sock.close()
        raise StartupError(f"Failed to bind to port {port}") from exc
    return sock


def uvicorn_config(app_settings: Settings) -> uvicorn.Config:
    """Build a uvicorn config whose own lifecycle chatter stays below WARNING.

    Logging is already configured by ``pingstats.main``; uvicorn only gets its
    logger levels set, so the one startup line comes from ``pingstats.server``.
    """

    level = getattr(logging, app_settings.log_level.upper(), logging.INFO)
    return uvicorn.Config(
        create_app(app_settings=app_settings),
        log_config=None,
        log_level=max(level, logging.WARNING),
    )


async def serve(app_settings: Settings | None = None) -> None:
    app_settings = app_settings or settings
    sock = bind_listener(app_settings.host, app_settings.port)
    try:
        server_logger.info(
            "Server running on http://%s:%s", app_settings.host, app_settings.port
        )
        server = uvicorn.Server(uvicorn_config(app_settings))
        try:
            await server.serve(sockets=[sock])
        except Exception as exc:
            raise ServerError("Server error") from exc
    finally:
        sock.close()


def main() -> int:
    try:
        asyncio.run(serve())
    except (StartupError, ServerError) as exc:
        server_logger.error("%s: %s", exc, exc.__cause__, exc_info=exc)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
