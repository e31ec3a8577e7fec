"""Tests that verify every example in the examples/ directory runs successfully."""

from __future__ import annotations

import subprocess
import sys

import pytest

from .conftest import _find_free_port, _wait_for_http

# ---------------------------------------------------------------------------
# Self-contained example
# ---------------------------------------------------------------------------


class TestSelfContainedExamples:
    """Examples that run entirely in-process via make_sync_client."""

    def test_testing_dispatcher(self, capsys: pytest.CaptureFixture[str]) -> None:
        """testing_dispatcher.py: fixtures and a handler through the WSGI app."""
        from examples.testing_dispatcher import main

        main()
        out = capsys.readouterr().out
        assert "Bug.get(ids=[99]) fault = Bug #99 does not exist." in out
        assert 'Product.get fault = expected "names" to be ["Calvin and Hobbes"]; got ["Spaceman Spiff"]' in out
        assert "All assertions passed!" in out


# ---------------------------------------------------------------------------
# Server example: in-process and as a subprocess
# ---------------------------------------------------------------------------


class TestBugzillaExample:
    """bugzilla_server.py + bugzilla_client.py pair."""

    def test_client_against_in_process_server(self, capsys: pytest.CaptureFixture[str]) -> None:
        """build_server() composes a working endpoint."""
        from examples.bugzilla_client import run
        from examples.bugzilla_server import build_server

        with build_server(port=0) as server:
            run(server.url)
        out = capsys.readouterr().out
        assert "User.login     -> token 42-calvinball" in out
        assert "Bug.get #2     -> fault 1: Bug #2 does not exist." in out
        assert 'Bug.update     -> fault 1: expected "status" not to be passed; got "CLOSED"' in out
        assert "Methods        -> Bug.get, Bug.update, User.login, system.listMethods" in out

    def test_server_and_client_processes(self) -> None:
        """Start bugzilla_server.py, then run bugzilla_client.py against it."""
        port = _find_free_port()
        proc = subprocess.Popen(
            [sys.executable, "examples/bugzilla_server.py", str(port)],
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
        )
        try:
            assert proc.stdout is not None
            line = proc.stdout.readline().decode().strip()
            assert line.endswith(f"on http://127.0.0.1:{port}/"), f"Unexpected output: {line}"
            _wait_for_http(port)

            result = subprocess.run(
                [sys.executable, "examples/bugzilla_client.py", str(port)],
                capture_output=True,
                text=True,
                timeout=30,
            )
            assert result.returncode == 0, result.stderr
            assert "Bug.get #1     -> Transmogrifier sets people to tigers [NEW]" in result.stdout
        finally:
            proc.terminate()
            proc.wait(timeout=5)
