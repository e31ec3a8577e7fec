# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Loading per-action fixture documents from a directory.

Each file in the fixture directory describes one action.  The file's base
name with its last extension removed is the action name, so
``Bug.get.yml`` answers ``Bug.get``::

    valid_requests:
      - request_params:
          ids: [123]
          Bugzilla_login: calvin
          Bugzilla_password: hobbes
        response:
          bugs: []
    error_message: "Bug {params[ids][0]} does not exist"

Documents are parsed with ``yaml.safe_load`` (JSON documents load too).
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Any

import yaml

from fake_xmlrpc.errors import FixtureError
from fake_xmlrpc.reporter import check_template
from fake_xmlrpc.utils import freeze_value, structurally_equal

__all__ = ["Fixture", "ValidRequest", "action_name_for", "load_fixture", "load_fixtures"]

_logger = logging.getLogger("fake_xmlrpc.fixtures")


@dataclass(frozen=True)
class ValidRequest:
    """One accepted request and the response returned for it."""

    request_params: Mapping[str, Any]
    response: Mapping[str, Any]

    def matches(self, params: Mapping[str, Any]) -> bool:
        """Return whether *params* is structurally equal to ``request_params``."""
        return structurally_equal(self.request_params, params)


@dataclass(frozen=True)
class Fixture:
    """Static request/response table for one action.

    Attributes:
        valid_requests: Accepted requests in declaration order.
        error_message: Optional ``str.format`` template used when nothing
            matches (see :mod:`fake_xmlrpc.reporter`).

    """

    valid_requests: tuple[ValidRequest, ...]
    error_message: str | None = None

    def match(self, params: Mapping[str, Any]) -> ValidRequest | None:
        """Return the first entry whose ``request_params`` equals *params*."""
        for request in self.valid_requests:
            if request.matches(params):
                return request
        return None

    @classmethod
    def from_document(cls, document: object, source: object = "<document>") -> Fixture:
        """Build a fixture from a parsed document.

        Args:
            document: The deserialized file contents.
            source: Where the document came from, used in error messages.

        Raises:
            FixtureError: If the document does not have the fixture shape.

        """
        if not isinstance(document, Mapping):
            raise FixtureError(source, f"expected a mapping at the top level, got {type(document).__name__}")

        raw_requests = document.get("valid_requests")
        if not isinstance(raw_requests, list):
            raise FixtureError(source, "'valid_requests' must be a list")

        requests: list[ValidRequest] = []
        for index, entry in enumerate(raw_requests):
            if not isinstance(entry, Mapping):
                raise FixtureError(source, f"valid_requests[{index}] must be a mapping")
            request_params = entry.get("request_params")
            if not isinstance(request_params, Mapping):
                raise FixtureError(source, f"valid_requests[{index}].request_params must be a mapping")
            response = entry.get("response")
            if not isinstance(response, Mapping):
                raise FixtureError(source, f"valid_requests[{index}].response must be a mapping")
            requests.append(ValidRequest(request_params=freeze_value(request_params), response=freeze_value(response)))

        error_message = document.get("error_message")
        if error_message is not None:
            if not isinstance(error_message, str):
                raise FixtureError(source, "'error_message' must be a string")
            try:
                check_template(error_message)
            except ValueError as exc:
                raise FixtureError(source, f"invalid error_message template: {exc}") from exc

        return cls(valid_requests=tuple(requests), error_message=error_message)


def action_name_for(path: Path) -> str:
    """Action name answered by a fixture file (base name minus last extension)."""
    return path.stem


def load_fixture(path: Path) -> Fixture:
    """Read and validate a single fixture file.

    Raises:
        FixtureError: If the file cannot be read, is not valid YAML, or does
            not have the fixture shape.

    """
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise FixtureError(path, f"cannot read fixture: {exc}") from exc
    try:
        document = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise FixtureError(path, f"invalid YAML: {exc}") from exc
    return Fixture.from_document(document, source=path)


def load_fixtures(directory: str | Path | None) -> Mapping[str, Fixture]:
    """Load every fixture file in *directory*.

    Hidden files and subdirectories are skipped.  A missing or empty
    directory yields an empty mapping.

    Args:
        directory: Directory holding one fixture document per action, or
            ``None`` for no fixtures.

    Returns:
        A read-only mapping of action name to ``Fixture``.

    Raises:
        FixtureError: On the first malformed file, or when two files map to
            the same action name.

    """
    if directory is None:
        return MappingProxyType({})
    root = Path(directory)
    if not root.is_dir():
        _logger.debug("Fixture directory %s does not exist; no fixtures loaded", root)
        return MappingProxyType({})

    fixtures: dict[str, Fixture] = {}
    sources: dict[str, Path] = {}
    for path in sorted(root.iterdir()):
        if path.name.startswith(".") or not path.is_file():
            continue
        action = action_name_for(path)
        if action in fixtures:
            raise FixtureError(path, f"action {action!r} is already defined by {sources[action].name}")
        fixtures[action] = load_fixture(path)
        sources[action] = path
        _logger.debug(
            "Loaded fixture %s (%d requests)",
            action,
            len(fixtures[action].valid_requests),
            extra={"action": action, "path": str(path)},
        )

    _logger.info(
        "Loaded %d fixtures from %s",
        len(fixtures),
        root,
        extra={"fixture_dir": str(root), "fixture_count": len(fixtures)},
    )
    return MappingProxyType(fixtures)
