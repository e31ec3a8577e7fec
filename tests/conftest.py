"""Shared test fixtures for fake-xmlrpc tests."""

from __future__ import annotations

import socket
import time
import xmlrpc.client
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import httpx
import pytest

from fake_xmlrpc import Dispatcher, MockServer, load_fixtures
from fake_xmlrpc.http import _SyncTestClient, make_sync_client

FIXTURE_DIR = Path(__file__).parent / "fixtures" / "bugzilla"

AUTH: dict[str, Any] = {"Bugzilla_login": "calvin", "Bugzilla_password": "hobbes"}
"""Credentials the tests treat as valid."""


def _find_free_port() -> int:
    """Find a free TCP port on localhost."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return int(s.getsockname()[1])


def _wait_for_http(port: int, timeout: float = 5.0) -> None:
    """Poll until an HTTP server is accepting connections."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        try:
            _ = httpx.get(f"http://127.0.0.1:{port}/", timeout=5.0)
            return
        except (httpx.ConnectError, httpx.ConnectTimeout):
            time.sleep(0.1)
    raise TimeoutError(f"HTTP server on port {port} did not start within {timeout}s")


def _proxy(server: MockServer) -> xmlrpc.client.ServerProxy:
    """XML-RPC client for a running server, decoding the way the server does."""
    return xmlrpc.client.ServerProxy(server.url, allow_none=True, use_builtin_types=True)


@pytest.fixture
def dispatcher() -> Dispatcher:
    """Dispatcher over the bundled Bugzilla fixtures."""
    return Dispatcher(load_fixtures(FIXTURE_DIR))


@pytest.fixture
def client(dispatcher: Dispatcher) -> Iterator[_SyncTestClient]:
    """Create a sync Falcon test client with proper cleanup."""
    c = make_sync_client(dispatcher)
    yield c
    c.close()


@pytest.fixture(scope="module")
def fixture_server() -> Iterator[MockServer]:
    """A running fixture-backed server shared by a test module."""
    server = MockServer(FIXTURE_DIR)
    server.start()
    yield server
    server.stop()


@pytest.fixture
def server() -> Iterator[MockServer]:
    """A fresh, not yet started server; stopped after the test."""
    s = MockServer(FIXTURE_DIR)
    yield s
    s.stop()
