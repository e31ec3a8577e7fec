# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Routing of action calls to programmatic handlers or fixtures.

The :class:`Dispatcher` owns two read-mostly tables:

- fixtures loaded by :func:`fake_xmlrpc.fixtures.load_fixtures`, fixed at
  construction;
- programmatic handlers added with :meth:`Dispatcher.register` before
  serving begins.

Once :meth:`Dispatcher.freeze` is called (the server does this on start)
neither table changes, so worker threads read them without locking.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, TypeAlias

from fake_xmlrpc import reporter
from fake_xmlrpc.errors import DuplicateHandlerError, Fault, RegistryFrozenError, UnknownActionError
from fake_xmlrpc.fixtures import Fixture
from fake_xmlrpc.response import HandlerBody, ProgrammaticHandler, Response, ResponseBuilder
from fake_xmlrpc.utils import thaw_value

__all__ = ["ActionHandler", "Dispatcher", "FixtureHandler"]

_logger = logging.getLogger("fake_xmlrpc.dispatch")


@dataclass(frozen=True)
class FixtureHandler:
    """Answers an action from its fixture table."""

    action_name: str
    fixture: Fixture

    def __call__(self, params: Mapping[str, Any]) -> Response | Fault:
        """Return a copy of the first matching response, or the not-found fault."""
        matched = self.fixture.match(params)
        if matched is None:
            return reporter.not_found(self.action_name, self.fixture, params)
        return thaw_value(matched.response)


ActionHandler: TypeAlias = FixtureHandler | ProgrammaticHandler


class Dispatcher:
    """Dispatches action calls to the handler registered for each name."""

    __slots__ = ("_fixtures", "_frozen", "_handlers")

    def __init__(self, fixtures: Mapping[str, Fixture] | None = None) -> None:
        """Initialize with an optional fixture table."""
        self._fixtures: Mapping[str, Fixture] = MappingProxyType(dict(fixtures or {}))
        self._handlers: dict[str, ProgrammaticHandler] = {}
        self._frozen = False

    @property
    def fixtures(self) -> Mapping[str, Fixture]:
        """Read-only fixture table."""
        return self._fixtures

    @property
    def frozen(self) -> bool:
        """Whether registration is closed."""
        return self._frozen

    def register(
        self,
        action_name: str,
        handler: HandlerBody | ResponseBuilder,
        *,
        env: Mapping[str, Any] | None = None,
    ) -> ProgrammaticHandler:
        """Register a programmatic handler for *action_name*.

        A programmatic handler takes precedence over a fixture of the same
        name.

        Args:
            action_name: The RPC method name to answer.
            handler: A handler body, or a prepared ``ResponseBuilder``.
            env: Named values visible to the body as ``ctx.env``.  Ignored
                when *handler* is already a ``ResponseBuilder``.

        Returns:
            The registered ``ProgrammaticHandler``.

        Raises:
            DuplicateHandlerError: If *action_name* already has a handler.
            RegistryFrozenError: If the dispatcher is serving.

        """
        if self._frozen:
            raise RegistryFrozenError(f"Cannot register {action_name!r} while the server is running")
        if action_name in self._handlers:
            raise DuplicateHandlerError(action_name)
        builder = handler if isinstance(handler, ResponseBuilder) else ResponseBuilder(handler, env)
        built = builder.build(action_name)
        self._handlers[action_name] = built
        _logger.debug(
            "Registered handler for %s%s",
            action_name,
            " (overrides fixture)" if action_name in self._fixtures else "",
            extra={"action": action_name},
        )
        return built

    def freeze(self) -> None:
        """Close registration; called when serving begins."""
        self._frozen = True

    def thaw(self) -> None:
        """Reopen registration; called once serving has stopped."""
        self._frozen = False

    def resolve(self, action_name: str) -> ActionHandler | None:
        """Return the handler that answers *action_name*, if any."""
        handler = self._handlers.get(action_name)
        if handler is not None:
            return handler
        fixture = self._fixtures.get(action_name)
        if fixture is not None:
            return FixtureHandler(action_name, fixture)
        return None

    def actions(self) -> list[str]:
        """Sorted names of every action this dispatcher can answer."""
        return sorted(self._handlers.keys() | self._fixtures.keys())

    def handle(self, action_name: str, params: Mapping[str, Any]) -> Response | Fault:
        """Answer one call.

        Args:
            action_name: The called method name.
            params: The call's argument struct.

        Returns:
            The response value, or a ``Fault`` produced by the handler or
            the fixture's error reporter.

        Raises:
            UnknownActionError: If nothing answers *action_name*.
            TemplateRenderError: If a fixture's ``error_message`` cannot be
                rendered for these params.

        """
        handler = self.resolve(action_name)
        if handler is None:
            raise UnknownActionError(action_name)
        return handler(params)
