from __future__ import annotations

from collections.abc import Callable

import httpx
import pytest
import pytest_asyncio

import pingstats.main as main_module
from pingstats.main import app


@pytest.fixture(autouse=True)
def clean_state() -> None:
    main_module.request_counter.clear()
    yield
    main_module.request_counter.clear()


@pytest_asyncio.fixture
async def client() -> httpx.AsyncClient:
    transport = httpx.ASGITransport(app=app, client=("127.0.0.1", 51000))
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as test_client:
        yield test_client


@pytest.fixture
def client_from() -> Callable[..., httpx.AsyncClient]:
    """Build clients whose requests arrive from a chosen peer address."""

    def _build(address: str, port: int = 40000) -> httpx.AsyncClient:
        transport = httpx.ASGITransport(app=app, client=(address, port))
        return httpx.AsyncClient(transport=transport, base_url="http://testserver")

    return _build
