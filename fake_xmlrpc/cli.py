"""Command-line interface for the fake XML-RPC server.

Provides ``serve`` to run a fixture-backed server and ``check`` to validate
a fixture directory without starting anything.

Usage::

    fake-xmlrpc serve tests/fixtures/bugzilla --port 8080
    fake-xmlrpc serve tests/fixtures/bugzilla --log-level INFO --log-format json
    fake-xmlrpc check tests/fixtures/bugzilla

"""

from __future__ import annotations

import signal
import sys
import threading
from enum import StrEnum
from pathlib import Path
from typing import Annotated

import typer

from fake_xmlrpc.errors import FixtureError
from fake_xmlrpc.fixtures import load_fixtures
from fake_xmlrpc.logging_utils import configure_logging
from fake_xmlrpc.server import DEFAULT_HOST, MockServer, ServerConfig


class LogFormat(StrEnum):
    """Log output format."""

    text = "text"
    json = "json"


app = typer.Typer(
    name="fake-xmlrpc",
    help="Fake XML-RPC server for exercising client libraries.",
    add_completion=False,
    no_args_is_help=True,
)


def _fail(message: str) -> typer.Exit:
    sys.stderr.write(f"Error: {message}\n")
    sys.stderr.flush()
    return typer.Exit(code=1)


@app.command()
def serve(
    fixture_dir: Annotated[Path, typer.Argument(help="Directory of per-action fixture files")],
    host: Annotated[str, typer.Option("--host", help="Interface to bind")] = DEFAULT_HOST,
    port: Annotated[int, typer.Option("--port", "-p", help="Port to bind (0 for an ephemeral port)")] = 0,
    threads: Annotated[int, typer.Option("--threads", help="Worker threads")] = 4,
    introspection: Annotated[
        bool, typer.Option("--introspection/--no-introspection", help="Answer system.listMethods")
    ] = False,
    log_level: Annotated[str | None, typer.Option("--log-level", help="Log level for fake_xmlrpc loggers")] = None,
    log_format: Annotated[LogFormat, typer.Option("--log-format", help="Log output format")] = LogFormat.text,
) -> None:
    """Serve the fixtures in FIXTURE_DIR until interrupted.

    Prints ``PORT:<n>`` on the first line of stdout once the server accepts
    connections.
    """
    if log_level is not None:
        try:
            configure_logging(log_level, fmt=log_format.value)
        except ValueError as exc:
            raise typer.BadParameter(str(exc), param_hint="--log-level") from exc

    try:
        config = ServerConfig(host=host, port=port, threads=threads, enable_introspection=introspection)
        server = MockServer(fixture_dir, config=config)
    except (ValueError, FixtureError) as exc:
        raise _fail(str(exc)) from exc

    stop_requested = threading.Event()
    previous = {
        signum: signal.signal(signum, lambda received, frame: stop_requested.set())
        for signum in (signal.SIGINT, signal.SIGTERM)
    }
    try:
        server.start()
        print(f"PORT:{server.port}", flush=True)
        print(f"Serving {len(server.dispatcher.actions())} actions on {server.url}", flush=True)
        stop_requested.wait()
    finally:
        server.stop()
        for signum, handler in previous.items():
            signal.signal(signum, handler)


@app.command()
def check(
    fixture_dir: Annotated[Path, typer.Argument(help="Directory of per-action fixture files")],
) -> None:
    """Validate the fixtures in FIXTURE_DIR and list their actions."""
    if not fixture_dir.is_dir():
        raise _fail(f"{fixture_dir} is not a directory")
    try:
        fixtures = load_fixtures(fixture_dir)
    except FixtureError as exc:
        raise _fail(str(exc)) from exc

    if not fixtures:
        typer.echo("No fixtures found.")
        return
    width = max(len(name) for name in fixtures)
    for name, fixture in fixtures.items():
        template = "custom error" if fixture.error_message is not None else "default error"
        typer.echo(f"{name:<{width}}  {len(fixture.valid_requests)} request(s), {template}")


def main() -> None:
    """Entry point for the ``fake-xmlrpc`` console script."""
    app()


if __name__ == "__main__":
    main()
