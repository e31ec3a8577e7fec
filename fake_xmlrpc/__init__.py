# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Fake XML-RPC server for testing client libraries without a live service."""

from fake_xmlrpc.dispatch import ActionHandler, Dispatcher, FixtureHandler
from fake_xmlrpc.errors import (
    APPLICATION_ERROR,
    DEFAULT_FAULT_CODE,
    INTERNAL_ERROR,
    INVALID_PARAMS,
    METHOD_NOT_FOUND,
    PARSE_ERROR,
    DuplicateHandlerError,
    Fault,
    FixtureError,
    LifecycleError,
    RegistryFrozenError,
    SetupError,
    TemplateRenderError,
    UnknownActionError,
)
from fake_xmlrpc.fixtures import Fixture, ValidRequest, load_fixture, load_fixtures
from fake_xmlrpc.http import make_sync_client, make_wsgi_app
from fake_xmlrpc.reporter import not_found
from fake_xmlrpc.response import (
    ABSENT,
    HandlerBody,
    ProgrammaticHandler,
    Response,
    ResponseBuilder,
    ResponseContext,
)
from fake_xmlrpc.server import MockServer, ServerConfig, ServerState, mock_server

__all__ = [
    # Server
    "MockServer",
    "ServerConfig",
    "ServerState",
    "mock_server",
    # Handlers
    "ABSENT",
    "ActionHandler",
    "Dispatcher",
    "FixtureHandler",
    "HandlerBody",
    "ProgrammaticHandler",
    "Response",
    "ResponseBuilder",
    "ResponseContext",
    # Fixtures
    "Fixture",
    "ValidRequest",
    "load_fixture",
    "load_fixtures",
    "not_found",
    # Transport
    "make_sync_client",
    "make_wsgi_app",
    # Errors
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
