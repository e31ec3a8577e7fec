# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Fault values and exception hierarchy for the fake XML-RPC server.

Two kinds of failure exist:

- ``Fault`` is a *value*.  Handlers return it, the dispatcher passes it
  through, and the wire codec encodes it as an XML-RPC ``<fault>``.  It never
  propagates as an exception.
- ``SetupError`` and ``LifecycleError`` are ordinary exceptions raised while
  a server is being composed, started, or misused.  They are programmer
  errors and are never converted into faults.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

__all__ = [
    "APPLICATION_ERROR",
    "DEFAULT_FAULT_CODE",
    "INTERNAL_ERROR",
    "INVALID_PARAMS",
    "METHOD_NOT_FOUND",
    "PARSE_ERROR",
    "DuplicateHandlerError",
    "Fault",
    "FixtureError",
    "LifecycleError",
    "RegistryFrozenError",
    "SetupError",
    "TemplateRenderError",
    "UnknownActionError",
]

# ---------------------------------------------------------------------------
# Fault codes
# ---------------------------------------------------------------------------

DEFAULT_FAULT_CODE: Final[int] = 1
"""Code carried by every fault produced by fixtures and handler assertions."""

# Transport-level codes from the XML-RPC "specs for fault code interoperability".
PARSE_ERROR: Final[int] = -32700
INVALID_PARAMS: Final[int] = -32602
METHOD_NOT_FOUND: Final[int] = -32601
INTERNAL_ERROR: Final[int] = -32603
APPLICATION_ERROR: Final[int] = -32500


@dataclass(frozen=True)
class Fault:
    """Structured error returned across the RPC boundary.

    Attributes:
        code: Numeric fault code (``1`` for everything a fixture or handler
            produces).
        message: Human-readable fault string shown to the client.

    """

    code: int
    message: str

    @classmethod
    def halt(cls, message: str) -> Fault:
        """Fault with the default code, as produced by ``halt`` and assertions."""
        return cls(DEFAULT_FAULT_CODE, message)

    def __str__(self) -> str:
        """Render as ``<code>: <message>``."""
        return f"{self.code}: {self.message}"


# ---------------------------------------------------------------------------
# Setup errors
# ---------------------------------------------------------------------------


class SetupError(Exception):
    """Raised while loading fixtures or composing a server.

    Setup errors are fatal: they abort server construction and are never
    turned into per-request faults.
    """


class FixtureError(SetupError):
    """A fixture file could not be read or does not have the expected shape."""

    def __init__(self, path: object, reason: str) -> None:
        """Initialize with the offending file and a description of the problem."""
        self.path = path
        self.reason = reason
        super().__init__(f"{path}: {reason}")


class DuplicateHandlerError(SetupError):
    """A programmatic handler was registered twice for one action."""

    def __init__(self, action_name: str) -> None:
        """Initialize with the action name that was already registered."""
        self.action_name = action_name
        super().__init__(f"Handler for {action_name!r} is already registered")


class RegistryFrozenError(SetupError):
    """A handler was registered after the server started serving."""


class TemplateRenderError(SetupError):
    """A fixture ``error_message`` template failed to render."""

    def __init__(self, action_name: str, template: str, cause: BaseException) -> None:
        """Initialize with the action, the raw template, and the underlying error."""
        self.action_name = action_name
        self.template = template
        super().__init__(f"error_message for {action_name!r} failed to render ({type(cause).__name__}: {cause})")


# ---------------------------------------------------------------------------
# Dispatch / lifecycle errors
# ---------------------------------------------------------------------------


class UnknownActionError(LookupError):
    """No handler and no fixture exist for the requested action."""

    def __init__(self, action_name: str) -> None:
        """Initialize with the unknown action name."""
        self.action_name = action_name
        super().__init__(action_name)


class LifecycleError(RuntimeError):
    """The server was started twice or its listener never became ready."""
