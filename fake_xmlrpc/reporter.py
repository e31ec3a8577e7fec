# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Fault construction for fixture-driven actions that matched no request.

A fixture may carry an ``error_message`` template written in
:meth:`str.format` syntax.  Two names are bound while rendering:

``params``
    The inbound call arguments, e.g. ``{params[ids][0]}``.
``action``
    The action name, e.g. ``{action}``.

Templates are checked when fixtures load (:func:`check_template`) so that a
typo in a field name fails setup instead of the first unmatched request.
"""

from __future__ import annotations

import logging
import string
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Final

from fake_xmlrpc.errors import Fault, TemplateRenderError

if TYPE_CHECKING:
    from fake_xmlrpc.fixtures import Fixture

__all__ = ["TEMPLATE_FIELDS", "check_template", "default_message", "not_found", "render_template"]

_logger = logging.getLogger("fake_xmlrpc.reporter")
_formatter = string.Formatter()

TEMPLATE_FIELDS: Final[frozenset[str]] = frozenset({"params", "action"})


def _root_field(field_name: str) -> str:
    for i, ch in enumerate(field_name):
        if ch in ".[":
            return field_name[:i]
    return field_name


def check_template(template: str) -> None:
    """Validate template syntax and that it only references bound names.

    Raises:
        ValueError: If the template is malformed or references a field other
            than ``params`` or ``action`` (including positional ``{}``).

    """
    for _literal, field_name, format_spec, _conversion in _formatter.parse(template):
        if field_name is None:
            continue
        root = _root_field(field_name)
        if root not in TEMPLATE_FIELDS:
            raise ValueError(f"unknown template field {field_name!r}; available: {', '.join(sorted(TEMPLATE_FIELDS))}")
        if format_spec:
            check_template(format_spec)


def render_template(template: str, action_name: str, params: Mapping[str, Any]) -> str:
    """Render an ``error_message`` template for one request.

    Raises:
        TemplateRenderError: If a lookup inside the template fails, e.g.
            ``{params[ids]}`` when the call did not pass ``ids``.

    """
    try:
        return template.format_map({"params": params, "action": action_name})
    except (LookupError, AttributeError, ValueError, TypeError) as exc:
        raise TemplateRenderError(action_name, template, exc) from exc


def default_message(action_name: str) -> str:
    """Fault message used when a fixture has no ``error_message``."""
    return f'Method "{action_name}" missing or invalid params!'


def not_found(action_name: str, fixture: Fixture | None, params: Mapping[str, Any]) -> Fault:
    """Build the fault returned when no fixture request matched *params*.

    Args:
        action_name: The action that was called.
        fixture: The action's fixture (``None`` behaves like a fixture
            without ``error_message``).
        params: The inbound call arguments.

    Returns:
        A ``Fault`` with code 1.

    Raises:
        TemplateRenderError: If the fixture's template cannot be rendered.

    """
    if fixture is not None and fixture.error_message is not None:
        message = render_template(fixture.error_message, action_name, params)
    else:
        message = default_message(action_name)
    _logger.debug("No fixture request matched for %s", action_name, extra={"action": action_name})
    return Fault.halt(message)
