# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Tests for the fake-xmlrpc CLI tool."""

from __future__ import annotations

import json
import signal
import subprocess
import sys
import xmlrpc.client
from pathlib import Path
from typing import Any

from typer.testing import CliRunner

from fake_xmlrpc.cli import app

from .conftest import AUTH, FIXTURE_DIR, _wait_for_http

runner = CliRunner()


def _invoke(args: list[str]) -> Any:
    """Invoke the CLI in-process.

    Returns ``Any`` because typer has no type stubs; ``runner.invoke``
    returns a click ``Result``.
    """
    return runner.invoke(app, args, catch_exceptions=False)


# ---------------------------------------------------------------------------
# check
# ---------------------------------------------------------------------------


class TestCheck:
    """Validating fixture directories without serving."""

    def test_lists_actions(self) -> None:
        """Every action is listed with its request count and error style."""
        result = _invoke(["check", str(FIXTURE_DIR)])
        assert result.exit_code == 0, result.output
        lines = result.output.strip().splitlines()
        assert [line.split()[0] for line in lines] == ["Bug.get", "Bug.search", "Product.get"]
        assert lines[0].endswith("3 request(s), default error")
        assert lines[1].endswith("1 request(s), custom error")

    def test_empty_directory(self, tmp_path: Path) -> None:
        """An empty directory is valid and says so."""
        result = _invoke(["check", str(tmp_path)])
        assert result.exit_code == 0
        assert "No fixtures found." in result.output

    def test_not_a_directory(self, tmp_path: Path) -> None:
        """A missing directory is an error."""
        result = _invoke(["check", str(tmp_path / "missing")])
        assert result.exit_code == 1
        assert "is not a directory" in result.output

    def test_malformed_fixture(self, tmp_path: Path) -> None:
        """A malformed file fails with its path and the problem."""
        (tmp_path / "Bug.get.yml").write_text("valid_requests: {}\n", encoding="utf-8")
        result = _invoke(["check", str(tmp_path)])
        assert result.exit_code == 1
        assert "Error:" in result.output
        assert "'valid_requests' must be a list" in result.output


# ---------------------------------------------------------------------------
# serve
# ---------------------------------------------------------------------------


class TestServeErrors:
    """serve failures that happen before anything is bound."""

    def test_bad_log_level(self) -> None:
        """An unknown log level is a usage error."""
        result = runner.invoke(app, ["serve", str(FIXTURE_DIR), "--log-level", "CHATTY"])
        assert result.exit_code == 2

    def test_malformed_fixture(self, tmp_path: Path) -> None:
        """Fixture errors abort startup."""
        (tmp_path / "Bug.get.yml").write_text("- not a mapping\n", encoding="utf-8")
        result = _invoke(["serve", str(tmp_path)])
        assert result.exit_code == 1
        assert "expected a mapping at the top level" in result.output

    def test_bad_threads(self) -> None:
        """Out-of-range listener settings abort startup."""
        result = _invoke(["serve", str(FIXTURE_DIR), "--threads", "0"])
        assert result.exit_code == 1
        assert "threads must be at least 1" in result.output


class TestServeProcess:
    """serve as a real process, stopped by SIGTERM."""

    def test_serve_and_stop(self) -> None:
        """Prints PORT:<n>, answers calls, logs JSON, exits cleanly on SIGTERM."""
        proc = subprocess.Popen(
            [
                sys.executable,
                "-m",
                "fake_xmlrpc.cli",
                "serve",
                str(FIXTURE_DIR),
                "--introspection",
                "--log-level",
                "INFO",
                "--log-format",
                "json",
            ],
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
        )
        try:
            assert proc.stdout is not None
            line = proc.stdout.readline().decode().strip()
            assert line.startswith("PORT:"), f"Expected PORT:<n>, got: {line!r}"
            port = int(line.split(":", 1)[1])
            _wait_for_http(port)

            proxy = xmlrpc.client.ServerProxy(f"http://127.0.0.1:{port}/", allow_none=True)
            assert proxy.Bug.get({"ids": [948972], **AUTH})["bugs"][0]["id"] == 948972
            assert "Bug.search" in proxy.system.listMethods()
        finally:
            proc.send_signal(signal.SIGTERM)
            _, stderr = proc.communicate(timeout=10)

        assert proc.returncode == 0
        records = [json.loads(raw) for raw in stderr.decode().splitlines() if raw.startswith("{")]
        access = [r for r in records if r["logger"] == "fake_xmlrpc.access" and r.get("action") == "Bug.get"]
        assert len(access) == 1
        assert access[0]["status"] == "ok"
        assert any(r["logger"] == "fake_xmlrpc.server" and "stopped" in r["message"] for r in records)
