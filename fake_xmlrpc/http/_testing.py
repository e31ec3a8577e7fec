# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Synchronous in-process client for the XML-RPC WSGI app.

Provides ``_SyncTestClient`` and ``make_sync_client`` which use
``falcon.testing.TestClient`` internally, so no socket or listener needed.
"""

from __future__ import annotations

import xmlrpc.client
from collections.abc import Mapping
from typing import Any

import falcon
import falcon.testing

from fake_xmlrpc.dispatch import Dispatcher
from fake_xmlrpc.wire import XML_CONTENT_TYPE, encode_call

from ._server import make_wsgi_app


def _lower_headers(headers: Mapping[str, str]) -> dict[str, str]:
    return {name.lower(): value for name, value in headers.items()}


class _SyncTestResponse:
    """Minimal response object: status, lower-cased headers, raw body."""

    __slots__ = ("content", "headers", "status_code")

    def __init__(self, status_code: int, content: bytes, headers: dict[str, str] | None = None) -> None:
        self.status_code = status_code
        self.headers: dict[str, str] = headers or {}
        self.content = content

    def result(self) -> Any:
        """Decode the ``methodResponse`` body.

        Raises:
            xmlrpc.client.Fault: If the body carries a fault, exactly as
                ``xmlrpc.client.ServerProxy`` would.

        """
        (value,), _ = xmlrpc.client.loads(self.content, use_builtin_types=True)
        return value


class _SyncTestClient:
    """Sync client that calls a Falcon WSGI app directly via falcon.testing.TestClient."""

    __slots__ = ("_client", "_default_headers")

    def __init__(
        self,
        app: falcon.App[falcon.Request, falcon.Response],
        default_headers: dict[str, str] | None = None,
    ) -> None:
        self._client = falcon.testing.TestClient(app)
        self._default_headers: dict[str, str] = default_headers or {}

    def post(self, path: str, *, content: bytes, headers: dict[str, str] | None = None) -> _SyncTestResponse:
        """Send a raw POST using the Falcon test client."""
        merged = {"Content-Type": XML_CONTENT_TYPE, **self._default_headers, **(headers or {})}
        result = self._client.simulate_post(path, body=content, headers=merged)
        return _SyncTestResponse(result.status_code, result.content, headers=_lower_headers(result.headers))

    def get(self, path: str) -> _SyncTestResponse:
        """Send a GET (rejected by the app; useful for transport tests)."""
        result = self._client.simulate_get(path, headers=self._default_headers)
        return _SyncTestResponse(result.status_code, result.content, headers=_lower_headers(result.headers))

    def call(self, action_name: str, params: Mapping[str, Any] | None = None, *, path: str = "/") -> Any:
        """Call *action_name* with a single struct argument and decode the result.

        Raises:
            xmlrpc.client.Fault: If the server answered with a fault.

        """
        return self.post(path, content=encode_call(action_name, params)).result()

    def close(self) -> None:
        """Close the client (no-op for test client)."""


def make_sync_client(
    dispatcher: Dispatcher,
    *,
    enable_introspection: bool = False,
    allow_none: bool = True,
    default_headers: dict[str, str] | None = None,
) -> _SyncTestClient:
    """Create a synchronous test client for a ``Dispatcher``.

    Args:
        dispatcher: The dispatcher to exercise.
        enable_introspection: See ``make_wsgi_app``.
        allow_none: See ``make_wsgi_app``.
        default_headers: Headers merged into every request.

    Returns:
        A client whose ``call`` mirrors ``ServerProxy`` semantics.

    """
    app = make_wsgi_app(dispatcher, enable_introspection=enable_introspection, allow_none=allow_none)
    return _SyncTestClient(app, default_headers=default_headers)
