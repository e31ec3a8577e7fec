"""Fake Bugzilla endpoint combining fixture files and a programmatic handler.

Start the server::

    python examples/bugzilla_server.py

Then run the client in another terminal::

    python examples/bugzilla_client.py
"""

from __future__ import annotations

import sys
import threading
from pathlib import Path

from fake_xmlrpc import ABSENT, Fault, MockServer, ResponseContext, ServerConfig
from fake_xmlrpc.response import Response

PORT = 8234
FIXTURE_DIR = Path(__file__).parent / "fixtures"


# ---------------------------------------------------------------------------
# Server definition
# ---------------------------------------------------------------------------


def build_server(port: int = PORT) -> MockServer:
    """Compose the fake endpoint: fixtures for reads, a handler for Bug.update."""
    server = MockServer(
        FIXTURE_DIR,
        env={"token": "42-calvinball"},
        config=ServerConfig(port=port, enable_introspection=True),
    )

    @server.action("Bug.update")
    def bug_update(ctx: ResponseContext) -> Response | Fault:
        if fault := ctx.assert_params({"Bugzilla_token": ctx.env["token"], "ids": [1], "status": ABSENT}):
            return fault
        if ctx.params.get("resolution") not in (None, "FIXED"):
            return ctx.halt(f"Resolution {ctx.params['resolution']} is not allowed here")
        return {"bugs": [{"id": 1, "changes": {"resolution": {"added": "FIXED", "removed": ""}}}]}

    return server


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------


def main() -> None:
    """Start the server and block until interrupted."""
    port = int(sys.argv[1]) if len(sys.argv) > 1 else PORT
    server = build_server(port)
    with server:
        print(f"Serving {len(server.dispatcher.actions())} actions on {server.url}", flush=True)
        try:
            threading.Event().wait()
        except KeyboardInterrupt:
            pass


if __name__ == "__main__":
    main()
