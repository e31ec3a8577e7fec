# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Programmatic action handlers: assertions plus a response.

A handler body is a callable taking a :class:`ResponseContext` and returning
either the response value or a :class:`~fake_xmlrpc.errors.Fault`.  The
assertion helpers return ``Fault | None`` so a body can short-circuit with
``or``::

    def bug_get(ctx: ResponseContext) -> Response | Fault:
        return (
            ctx.assert_bugzilla_auth("calvin", "hobbes")
            or ctx.assert_params({"ids": [948972], "include_fields": ABSENT})
            or {"bugs": [ctx.env["existing_bug"]]}
        )

or step by step::

    def bug_get(ctx: ResponseContext) -> Response | Fault:
        if fault := ctx.assert_params({"ids": [948972]}):
            return fault
        if "permissive" in ctx.params:
            return ctx.halt("permissive mode is not supported")
        return {"bugs": []}

Values supplied at declaration time are reachable through ``ctx.env``, a
read-only mapping looked up by name.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Final, TypeAlias, final

from fake_xmlrpc.errors import Fault
from fake_xmlrpc.utils import describe_value, structurally_equal

__all__ = [
    "ABSENT",
    "HandlerBody",
    "ProgrammaticHandler",
    "Response",
    "ResponseBuilder",
    "ResponseContext",
]

Response: TypeAlias = Any
"""A value the wire codec can marshal back to the client (normally a mapping)."""

HandlerBody: TypeAlias = Callable[["ResponseContext"], Any]
"""Callable evaluated per call; returns a ``Response`` or a ``Fault``."""

_EMPTY_ENV: Final[Mapping[str, Any]] = MappingProxyType({})


@final
class _Absent:
    """Type of the :data:`ABSENT` sentinel."""

    __slots__ = ()

    def __repr__(self) -> str:
        return "ABSENT"

    def __reduce__(self) -> str:
        return "ABSENT"


ABSENT: Final = _Absent()
"""Expected value for :meth:`ResponseContext.assert_params` meaning "not passed"."""


class ResponseContext:
    """Per-call view handed to a handler body.

    Attributes:
        action_name: The action being answered.
        params: Read-only inbound call arguments.
        env: Read-only named values supplied when the handler was declared.

    """

    __slots__ = ("action_name", "env", "params")

    def __init__(self, action_name: str, params: Mapping[str, Any], env: Mapping[str, Any] = _EMPTY_ENV) -> None:
        """Bind the call arguments and environment for one evaluation."""
        self.action_name = action_name
        self.params: Mapping[str, Any] = MappingProxyType(dict(params))
        self.env: Mapping[str, Any] = env

    def halt(self, message: str) -> Fault:
        """Return a code-1 fault carrying *message*; the body should return it."""
        return Fault.halt(message)

    def assert_params(self, expected: Mapping[str, Any]) -> Fault | None:
        """Check individual params against expected values.

        Each key is checked in order.  ``ABSENT`` requires the key not to be
        passed at all; any other value must equal the passed value by strict
        deep equality (a missing key compares as ``None``).

        Args:
            expected: Key to expected value (or ``ABSENT``).

        Returns:
            The fault for the first failing key, or ``None`` if all pass.

        """
        for key, value in expected.items():
            if value is ABSENT:
                if key in self.params:
                    return self.halt(
                        f"expected {describe_value(key)} not to be passed; got {describe_value(self.params[key])}"
                    )
                continue
            actual = self.params.get(key)
            if not structurally_equal(actual, value):
                return self.halt(
                    f"expected {describe_value(key)} to be {describe_value(value)}; got {describe_value(actual)}"
                )
        return None

    def assert_bugzilla_auth(self, username: str, password: str) -> Fault | None:
        """Check the ``Bugzilla_login`` and ``Bugzilla_password`` params.

        The login is checked first; the password is only checked once the
        login matches.

        Returns:
            A fault naming the mismatched field, or ``None``.

        """
        login = self.params.get("Bugzilla_login")
        if login != username:
            return self.halt(f"expected login to be {describe_value(username)}, but was {describe_value(login)}")
        passed = self.params.get("Bugzilla_password")
        if passed != password:
            return self.halt(f"expected password to be {describe_value(password)}, but was {describe_value(passed)}")
        return None


@dataclass(frozen=True)
class ProgrammaticHandler:
    """Registered handler that evaluates a body per call."""

    action_name: str
    body: HandlerBody
    env: Mapping[str, Any] = _EMPTY_ENV

    def __call__(self, params: Mapping[str, Any]) -> Response | Fault:
        """Evaluate the body against *params*.

        Exceptions raised by the body propagate to the caller; only returned
        ``Fault`` values are treated as intended faults.
        """
        return self.body(ResponseContext(self.action_name, params, self.env))


class ResponseBuilder:
    """Declares a programmatic action from a body and its named values."""

    __slots__ = ("_body", "_env")

    def __init__(self, body: HandlerBody, env: Mapping[str, Any] | None = None) -> None:
        """Capture the handler body and a snapshot of *env*."""
        if not callable(body):
            raise TypeError(f"handler body must be callable, got {type(body).__name__}")
        self._body = body
        self._env: Mapping[str, Any] = MappingProxyType(dict(env)) if env else _EMPTY_ENV

    @property
    def env(self) -> Mapping[str, Any]:
        """Read-only named values visible to the body."""
        return self._env

    def build(self, action_name: str) -> ProgrammaticHandler:
        """Produce the handler registered for *action_name*."""
        return ProgrammaticHandler(action_name=action_name, body=self._body, env=self._env)
