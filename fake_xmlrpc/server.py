# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Lifecycle of the fake XML-RPC server.

``MockServer`` owns a dispatcher (fixtures plus programmatic handlers) and a
stock waitress listener that it runs on a background thread::

    server = MockServer("tests/fixtures/bugzilla", env={"existing_bug": bug})

    @server.action("Bug.get")
    def bug_get(ctx: ResponseContext) -> Response | Fault:
        return ctx.assert_bugzilla_auth("calvin", "hobbes") or {"bugs": [ctx.env["existing_bug"]]}

    with server:
        client = xmlrpc.client.ServerProxy(server.url)
        client.Bug.get({"ids": [1], "Bugzilla_login": "calvin", "Bugzilla_password": "hobbes"})

STATE MACHINE
-------------
``STOPPED -> STARTING -> RUNNING -> STOPPING -> STOPPED``

- ``start()`` returns only after the listener socket is bound and listening
  and its loop thread has signalled through a ``threading.Event`` that it is
  about to enter the serve loop.  Connections made before the loop polls
  wait in the listen backlog.
- ``stop()`` closes the listening socket and idle connections from inside
  the listener's own loop (via the waitress trigger), lets the worker threads
  finish the calls they are servicing, closes the remaining connections once
  their responses are flushed, and joins the loop thread before returning,
  so the port can be bound again immediately.
"""

from __future__ import annotations

import contextlib
import logging
import socket
import threading
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from types import MappingProxyType, TracebackType
from typing import Any

import waitress
from waitress import wasyncore
from waitress.server import BaseWSGIServer

from fake_xmlrpc.dispatch import Dispatcher
from fake_xmlrpc.errors import LifecycleError
from fake_xmlrpc.fixtures import Fixture, load_fixtures
from fake_xmlrpc.http import make_wsgi_app
from fake_xmlrpc.response import HandlerBody, ProgrammaticHandler

__all__ = ["DEFAULT_HOST", "MockServer", "ServerConfig", "ServerState", "mock_server"]

_logger = logging.getLogger("fake_xmlrpc.server")

DEFAULT_HOST = "127.0.0.1"


class ServerState(Enum):
    """Lifecycle states of a ``MockServer``."""

    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"


@dataclass(frozen=True)
class ServerConfig:
    """Listener settings for a ``MockServer``.

    Attributes:
        host: Interface to bind (default ``127.0.0.1``).
        port: Port to bind; ``None`` binds an OS-assigned ephemeral port.
        threads: Waitress worker threads answering requests concurrently.
        ready_timeout: Seconds ``start()`` waits for the listener loop.
        drain_timeout: Seconds ``stop()`` lets worker threads finish the
            calls they are servicing.
        enable_introspection: Answer ``system.listMethods``.
        allow_none: Allow ``None`` in responses (``<nil/>``).

    """

    host: str = DEFAULT_HOST
    port: int | None = None
    threads: int = 4
    ready_timeout: float = 5.0
    drain_timeout: float = 5.0
    enable_introspection: bool = False
    allow_none: bool = True

    def __post_init__(self) -> None:
        """Validate ranges."""
        if self.port is not None and not 0 <= self.port <= 65535:
            raise ValueError(f"port must be between 0 and 65535, got {self.port}")
        if self.threads < 1:
            raise ValueError(f"threads must be at least 1, got {self.threads}")
        if self.ready_timeout <= 0:
            raise ValueError(f"ready_timeout must be positive, got {self.ready_timeout}")
        if self.drain_timeout <= 0:
            raise ValueError(f"drain_timeout must be positive, got {self.drain_timeout}")


def _resolve_host(host: str, port: int) -> str:
    """Resolve *host* to the one address the listener binds.

    waitress binds every address a name resolves to; the first wins here so
    the server has a single host and port.
    """
    infos = socket.getaddrinfo(host, port, socket.AF_UNSPEC, socket.SOCK_STREAM, socket.IPPROTO_TCP, socket.AI_PASSIVE)
    return str(infos[0][4][0])


def _format_url(host: str, port: int) -> str:
    if ":" in host:
        host = f"[{host}]"
    return f"http://{host}:{port}/"


def _discard_listener(listener: Any, socket_map: dict[int, Any]) -> None:
    """Close a listener whose loop never ran, with its sockets and workers."""
    for channel in list(socket_map.values()):
        channel.close()
    listener.task_dispatcher.shutdown()


def _stop_accepting(listener: Any, socket_map: dict[int, Any], done: threading.Event) -> None:
    """Close the listening socket and every connection without a pending request.

    Runs on the listener's loop thread.  Connections whose request is queued
    or being serviced stay open.
    """
    try:
        wasyncore.dispatcher.close(listener)
        for channel in list(socket_map.values()):
            if channel is not listener.trigger and not channel.requests:
                channel.handle_close()
    finally:
        done.set()


def _close_when_flushed(listener: Any, socket_map: dict[int, Any]) -> None:
    """Close the remaining connections once their output is written, then the trigger.

    Runs on the listener's loop thread; the loop exits once the map is empty.
    """
    for channel in list(socket_map.values()):
        if channel is listener.trigger:
            continue
        if channel.total_outbufs_len:
            channel.close_when_flushed = True
        else:
            channel.handle_close()
    listener.trigger.close()


class MockServer:
    """Fake XML-RPC server with an explicit start/stop lifecycle."""

    __slots__ = (
        "_config",
        "_dispatcher",
        "_env",
        "_host",
        "_listener",
        "_port",
        "_socket_map",
        "_state",
        "_thread",
    )

    def __init__(
        self,
        fixture_dir: str | Path | None = None,
        *,
        fixtures: Mapping[str, Fixture] | None = None,
        env: Mapping[str, Any] | None = None,
        config: ServerConfig | None = None,
    ) -> None:
        """Compose a server; nothing is bound until ``start()``.

        Args:
            fixture_dir: Directory of fixture documents to load.
            fixtures: Already-loaded fixtures (takes precedence over
                *fixture_dir*).
            env: Named values visible to every programmatic handler as
                ``ctx.env``.
            config: Listener settings.

        Raises:
            FixtureError: If a fixture file is malformed.

        """
        if fixtures is None:
            fixtures = load_fixtures(fixture_dir)
        self._dispatcher = Dispatcher(fixtures)
        self._env: Mapping[str, Any] = MappingProxyType(dict(env or {}))
        self._config = config or ServerConfig()
        self._state = ServerState.STOPPED
        self._listener: Any = None
        self._socket_map: dict[int, Any] = {}
        self._thread: threading.Thread | None = None
        self._host: str | None = None
        self._port: int | None = None

    # -----------------------------------------------------------------------
    # Registration
    # -----------------------------------------------------------------------

    def register(
        self,
        action_name: str,
        handler: HandlerBody,
        *,
        env: Mapping[str, Any] | None = None,
    ) -> ProgrammaticHandler:
        """Register a programmatic handler for *action_name*.

        The handler sees the server-level env overlaid with *env*.

        Raises:
            DuplicateHandlerError: If *action_name* already has a handler.
            RegistryFrozenError: If the server is running.

        """
        merged = {**self._env, **(env or {})}
        return self._dispatcher.register(action_name, handler, env=merged)

    def action(self, action_name: str, *, env: Mapping[str, Any] | None = None) -> Callable[[HandlerBody], HandlerBody]:
        """Register the decorated function as the handler for *action_name*."""

        def decorator(body: HandlerBody) -> HandlerBody:
            self.register(action_name, body, env=env)
            return body

        return decorator

    # -----------------------------------------------------------------------
    # Accessors
    # -----------------------------------------------------------------------

    @property
    def dispatcher(self) -> Dispatcher:
        """The dispatcher answering calls."""
        return self._dispatcher

    @property
    def config(self) -> ServerConfig:
        """Listener settings."""
        return self._config

    @property
    def state(self) -> ServerState:
        """Current lifecycle state."""
        return self._state

    @property
    def running(self) -> bool:
        """Whether the listener is serving."""
        return self._state is ServerState.RUNNING

    @property
    def host(self) -> str | None:
        """Bound host while started, else ``None``."""
        return self._host

    @property
    def port(self) -> int | None:
        """Bound (possibly OS-assigned) port while started, else ``None``."""
        return self._port

    @property
    def url(self) -> str:
        """Base URL clients connect to.

        Raises:
            LifecycleError: If the server is not started.

        """
        if self._host is None or self._port is None:
            raise LifecycleError("MockServer is not started")
        return _format_url(self._host, self._port)

    # -----------------------------------------------------------------------
    # Lifecycle
    # -----------------------------------------------------------------------

    def start(self, host: str | None = None, port: int | None = None) -> MockServer:
        """Bind the listener and serve on a background thread.

        Blocks until the listener socket is listening and its loop thread is
        about to serve, so a client can connect and complete a round trip as
        soon as this returns.  A host name is resolved to its first address.

        Args:
            host: Interface to bind; defaults to ``config.host``.
            port: Port to bind; defaults to ``config.port``, and to an
                OS-assigned ephemeral port when both are unset.

        Returns:
            This server, for chaining.

        Raises:
            LifecycleError: If the server is not stopped, or the listener
                did not become ready within ``config.ready_timeout``.
            OSError: If the host cannot be resolved or the address cannot be
                bound.

        """
        if self._state is not ServerState.STOPPED:
            raise LifecycleError(f"MockServer cannot start while {self._state.value}")
        self._state = ServerState.STARTING
        bind_host = host or self._config.host
        bind_port = port if port is not None else self._config.port

        self._dispatcher.freeze()
        socket_map: dict[int, Any] = {}
        listener: Any = None
        try:
            listen_port = bind_port if bind_port is not None else 0
            app = make_wsgi_app(
                self._dispatcher,
                enable_introspection=self._config.enable_introspection,
                allow_none=self._config.allow_none,
            )
            listener = waitress.create_server(
                app,
                map=socket_map,
                host=_resolve_host(bind_host, listen_port),
                port=listen_port,
                threads=self._config.threads,
            )
            if not isinstance(listener, BaseWSGIServer):
                raise LifecycleError(f"{bind_host} must resolve to a single listening socket")
            self._host = str(listener.effective_host)
            self._port = int(listener.effective_port)
        except BaseException:
            if listener is not None:
                _discard_listener(listener, socket_map)
            self._host = None
            self._port = None
            self._dispatcher.thaw()
            self._state = ServerState.STOPPED
            raise

        self._listener = listener
        self._socket_map = socket_map

        ready = threading.Event()
        self._thread = threading.Thread(
            target=self._serve,
            args=(listener, ready),
            name=f"fake_xmlrpc.server:{self._port}",
            daemon=True,
        )
        self._thread.start()
        if not ready.wait(self._config.ready_timeout):
            self._shutdown()
            self._host = None
            self._port = None
            raise LifecycleError(f"Listener on {bind_host}:{bind_port} not ready after {self._config.ready_timeout}s")

        self._state = ServerState.RUNNING
        _logger.info(
            "Fake XML-RPC server listening on %s (%d actions)",
            self.url,
            len(self._dispatcher.actions()),
            extra={"host": self._host, "port": self._port, "action_count": len(self._dispatcher.actions())},
        )
        return self

    @staticmethod
    def _serve(listener: Any, ready: threading.Event) -> None:
        """Background thread body: signal readiness, run the loop, stop workers."""
        # Already listening: connections made before run() polls wait in the backlog.
        ready.set()
        try:
            listener.run()
        except Exception:
            _logger.exception("Listener loop failed")
        finally:
            listener.task_dispatcher.shutdown()

    def stop(self) -> None:
        """Shut the listener down and wait for its thread to finish.

        A no-op when the server is not started.
        """
        if self._state is ServerState.STOPPED or self._listener is None:
            return
        self._state = ServerState.STOPPING
        url = self.url
        self._shutdown()
        _logger.info("Fake XML-RPC server on %s stopped", url, extra={"host": self._host, "port": self._port})
        self._host = None
        self._port = None

    def _shutdown(self) -> None:
        listener, socket_map, thread = self._listener, self._socket_map, self._thread
        accepting_closed = threading.Event()
        listener.trigger.pull_trigger(lambda: _stop_accepting(listener, socket_map, accepting_closed))
        accepting_closed.wait(self._config.drain_timeout)
        listener.task_dispatcher.shutdown(timeout=self._config.drain_timeout)
        listener.trigger.pull_trigger(lambda: _close_when_flushed(listener, socket_map))
        if thread is not None:
            thread.join()
        self._listener = None
        self._socket_map = {}
        self._thread = None
        self._dispatcher.thaw()
        self._state = ServerState.STOPPED

    def __enter__(self) -> MockServer:
        """Start the server if it is not already running."""
        if self._state is ServerState.STOPPED:
            self.start()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Stop the server."""
        self.stop()


@contextlib.contextmanager
def mock_server(
    fixture_dir: str | Path | None = None,
    *,
    actions: Mapping[str, HandlerBody] | None = None,
    env: Mapping[str, Any] | None = None,
    config: ServerConfig | None = None,
) -> Iterator[MockServer]:
    """Run a ``MockServer`` for the duration of a ``with`` block.

    Args:
        fixture_dir: Directory of fixture documents.
        actions: Programmatic handlers keyed by action name.
        env: Named values visible to every handler.
        config: Listener settings.

    Yields:
        The running server.

    """
    server = MockServer(fixture_dir, env=env, config=config)
    for name, body in (actions or {}).items():
        server.register(name, body)
    server.start()
    try:
        yield server
    finally:
        server.stop()
