# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Tests for action routing (fake_xmlrpc.dispatch)."""

from __future__ import annotations

from typing import Any

import pytest

from fake_xmlrpc import ABSENT, Dispatcher, Fault, ResponseBuilder, ResponseContext
from fake_xmlrpc.dispatch import FixtureHandler
from fake_xmlrpc.errors import DuplicateHandlerError, RegistryFrozenError, TemplateRenderError, UnknownActionError
from fake_xmlrpc.response import ProgrammaticHandler, Response

from .conftest import AUTH

EXISTING_BUG: dict[str, Any] = {"id": 948972, "summary": "Stuffed tiger comes to life"}


def _bug_get(ctx: ResponseContext) -> Response | Fault:
    if fault := ctx.assert_bugzilla_auth("calvin", "hobbes"):
        return fault
    if fault := ctx.assert_params({"ids": [EXISTING_BUG["id"]], "permissive": ABSENT}):
        return fault
    return {"bugs": [ctx.env["existing_bug"]]}


# ---------------------------------------------------------------------------
# Fixture-backed actions
# ---------------------------------------------------------------------------


class TestFixtureDispatch:
    """Calls answered from the bundled fixture tables."""

    def test_first_entry(self, dispatcher: Dispatcher) -> None:
        """The earliest matching entry answers, shadowing later duplicates."""
        assert dispatcher.handle("Bug.get", {"ids": [123]}) == {"bugs": []}

    def test_authenticated_entry(self, dispatcher: Dispatcher) -> None:
        """Auth params are part of the match."""
        result = dispatcher.handle("Bug.get", {"ids": [948972], **AUTH})
        assert result["bugs"][0]["id"] == 948972
        assert result["bugs"][0]["keywords"] == ["ZStream"]

    def test_missing_auth_is_default_fault(self, dispatcher: Dispatcher) -> None:
        """Dropping auth params falls through to the default fault."""
        assert dispatcher.handle("Bug.get", {"ids": [948972]}) == Fault(
            1, 'Method "Bug.get" missing or invalid params!'
        )

    def test_custom_error_message(self, dispatcher: Dispatcher) -> None:
        """A fixture template renders with the call's params."""
        fault = dispatcher.handle("Bug.search", {"product": "Calvin and Hobbes", "summary": "lion"})
        assert fault == Fault(1, "No Bug.search results for summary 'lion'")

    def test_template_render_failure_raises(self, dispatcher: Dispatcher) -> None:
        """A template that cannot render for these params raises."""
        with pytest.raises(TemplateRenderError):
            dispatcher.handle("Bug.search", {"product": "Calvin and Hobbes"})

    def test_unknown_action(self, dispatcher: Dispatcher) -> None:
        """Names with neither handler nor fixture raise UnknownActionError."""
        with pytest.raises(UnknownActionError) as exc_info:
            dispatcher.handle("Bug.create", {})
        assert exc_info.value.action_name == "Bug.create"

    def test_resolve_fixture(self, dispatcher: Dispatcher) -> None:
        """Fixture names resolve to FixtureHandler."""
        handler = dispatcher.resolve("Product.get")
        assert isinstance(handler, FixtureHandler)
        assert handler.action_name == "Product.get"
        assert dispatcher.resolve("Nope.nope") is None


# ---------------------------------------------------------------------------
# Programmatic handlers
# ---------------------------------------------------------------------------


class TestProgrammaticDispatch:
    """Calls answered by registered handler bodies."""

    def test_handler_answers(self) -> None:
        """A registered body answers its action."""
        dispatcher = Dispatcher()
        dispatcher.register("Bug.get", _bug_get, env={"existing_bug": EXISTING_BUG})
        assert dispatcher.handle("Bug.get", {"ids": [948972], **AUTH}) == {"bugs": [EXISTING_BUG]}

    def test_auth_checked_before_params(self) -> None:
        """The auth assertion runs first and short-circuits."""
        dispatcher = Dispatcher()
        dispatcher.register("Bug.get", _bug_get, env={"existing_bug": EXISTING_BUG})
        fault = dispatcher.handle("Bug.get", {"ids": [1]})
        assert fault == Fault(1, 'expected login to be "calvin", but was None')

    def test_absent_param(self) -> None:
        """Passing a param the handler requires to be absent faults."""
        dispatcher = Dispatcher()
        dispatcher.register("Bug.get", _bug_get, env={"existing_bug": EXISTING_BUG})
        fault = dispatcher.handle("Bug.get", {"ids": [948972], "permissive": True, **AUTH})
        assert fault == Fault(1, 'expected "permissive" not to be passed; got True')

    def test_halt(self) -> None:
        """halt ends the call with a code-1 fault."""
        dispatcher = Dispatcher()
        dispatcher.register("Foo.bar", lambda ctx: ctx.halt("Only 'foo' actions are acceptable here..."))
        assert dispatcher.handle("Foo.bar", {}) == Fault(1, "Only 'foo' actions are acceptable here...")

    def test_handler_overrides_fixture(self, dispatcher: Dispatcher) -> None:
        """A handler takes precedence over a fixture of the same name."""
        dispatcher.register("Bug.get", lambda ctx: {"bugs": ["programmatic"]})
        assert isinstance(dispatcher.resolve("Bug.get"), ProgrammaticHandler)
        assert dispatcher.handle("Bug.get", {"ids": [123]}) == {"bugs": ["programmatic"]}

    def test_register_builder(self) -> None:
        """A prepared ResponseBuilder keeps its own env."""
        dispatcher = Dispatcher()
        builder = ResponseBuilder(lambda ctx: ctx.env["value"], {"value": {"ok": True}})
        dispatcher.register("Foo.value", builder, env={"value": "ignored"})
        assert dispatcher.handle("Foo.value", {}) == {"ok": True}

    def test_duplicate_rejected(self) -> None:
        """Registering the same action twice fails."""
        dispatcher = Dispatcher()
        dispatcher.register("Foo.bar", lambda ctx: {})
        with pytest.raises(DuplicateHandlerError, match="Foo.bar"):
            dispatcher.register("Foo.bar", lambda ctx: {})

    def test_frozen_rejects_registration(self) -> None:
        """Registration is closed while frozen and reopens on thaw."""
        dispatcher = Dispatcher()
        dispatcher.freeze()
        assert dispatcher.frozen
        with pytest.raises(RegistryFrozenError):
            dispatcher.register("Foo.bar", lambda ctx: {})
        dispatcher.thaw()
        dispatcher.register("Foo.bar", lambda ctx: {})
        assert dispatcher.actions() == ["Foo.bar"]


def test_actions_lists_union(dispatcher: Dispatcher) -> None:
    """actions() merges fixture and handler names, sorted, without duplicates."""
    dispatcher.register("Bug.get", lambda ctx: {})
    dispatcher.register("Auth.login", lambda ctx: {})
    assert dispatcher.actions() == ["Auth.login", "Bug.get", "Bug.search", "Product.get"]


def test_fixtures_read_only(dispatcher: Dispatcher) -> None:
    """The fixture table exposed by the dispatcher cannot be mutated."""
    with pytest.raises(TypeError):
        dispatcher.fixtures["Bug.new"] = dispatcher.fixtures["Bug.get"]  # type: ignore[index]


def test_fixture_response_is_a_fresh_copy(dispatcher: Dispatcher) -> None:
    """Mutating a returned fixture response does not change later answers."""
    params = {"ids": [948972], **AUTH}
    first = dispatcher.handle("Bug.get", params)
    first["bugs"][0]["priority"] = "urgent"
    first["bugs"].append({"id": 1})
    second = dispatcher.handle("Bug.get", params)
    assert len(second["bugs"]) == 1
    assert second["bugs"][0]["priority"] == "unspecified"
