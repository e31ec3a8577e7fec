# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Tests for not-found fault construction (fake_xmlrpc.reporter)."""

from __future__ import annotations

import pytest

from fake_xmlrpc.errors import Fault, TemplateRenderError
from fake_xmlrpc.fixtures import Fixture
from fake_xmlrpc.reporter import check_template, default_message, not_found, render_template


class TestNotFound:
    """Fault selection for unmatched fixture requests."""

    def test_default_message(self) -> None:
        """Without error_message the generic text names the action."""
        fixture = Fixture(valid_requests=())
        assert not_found("Bug.get", fixture, {"ids": [1]}) == Fault(1, 'Method "Bug.get" missing or invalid params!')

    def test_no_fixture_uses_default(self) -> None:
        """A missing fixture behaves like one without a template."""
        assert not_found("Bug.get", None, {}).message == default_message("Bug.get")

    def test_literal_message(self) -> None:
        """A template without fields is returned verbatim."""
        fixture = Fixture(valid_requests=(), error_message="Bug #1 does not exist.")
        assert not_found("Bug.get", fixture, {}) == Fault(1, "Bug #1 does not exist.")

    def test_template_sees_params_and_action(self) -> None:
        """params and action are both bound while rendering."""
        fixture = Fixture(valid_requests=(), error_message="{action}: Bug #{params[ids][0]} does not exist.")
        fault = not_found("Bug.get", fixture, {"ids": [42]})
        assert fault.message == "Bug.get: Bug #42 does not exist."
        assert fault.code == 1

    def test_render_failure_raises(self) -> None:
        """A lookup that fails for these params is a TemplateRenderError, not a fault."""
        fixture = Fixture(valid_requests=(), error_message="Bug #{params[ids][0]} does not exist.")
        with pytest.raises(TemplateRenderError) as exc_info:
            not_found("Bug.get", fixture, {})
        assert exc_info.value.action_name == "Bug.get"
        assert "KeyError" in str(exc_info.value)


class TestTemplates:
    """Template checking and rendering."""

    @pytest.mark.parametrize(
        "template",
        ["plain", "{action}", "{params[ids]}", "{params.keys}", "{params!r}", "{action:>{action}}", "{{literal}}"],
    )
    def test_check_accepts(self, template: str) -> None:
        """Templates using only bound names pass."""
        check_template(template)

    @pytest.mark.parametrize("template", ["{0}", "{}", "{env}", "{action:{user}}", "unbalanced {", "bad }"])
    def test_check_rejects(self, template: str) -> None:
        """Unknown names, positional fields and bad syntax are rejected."""
        with pytest.raises(ValueError):
            check_template(template)

    def test_render_repr_conversion(self) -> None:
        """Conversions apply to looked-up values."""
        assert render_template("got {params[summary]!r}", "Bug.search", {"summary": "tiger"}) == "got 'tiger'"

    def test_render_index_error(self) -> None:
        """Out of range indexes fail with TemplateRenderError."""
        with pytest.raises(TemplateRenderError):
            render_template("{params[ids][3]}", "Bug.get", {"ids": [1]})
