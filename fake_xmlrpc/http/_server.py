# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Falcon WSGI application exposing a ``Dispatcher`` over XML-RPC.

The app accepts ``POST`` on any path (XML-RPC clients disagree on whether
the endpoint is ``/``, ``/RPC2`` or ``/xmlrpc.cgi``), decodes the call,
dispatches it, and always answers HTTP 200 with a ``methodResponse``,
faults included.
"""

from __future__ import annotations

import logging
import time
import uuid
from contextvars import ContextVar
from typing import Any, Final, Literal

import falcon

from fake_xmlrpc.dispatch import Dispatcher
from fake_xmlrpc.errors import (
    APPLICATION_ERROR,
    INTERNAL_ERROR,
    METHOD_NOT_FOUND,
    Fault,
    TemplateRenderError,
    UnknownActionError,
)
from fake_xmlrpc.wire import XML_CONTENT_TYPE, DecodeError, EncodeError, decode_call, encode_fault, encode_response

_logger = logging.getLogger("fake_xmlrpc.http")
_access_logger = logging.getLogger("fake_xmlrpc.access")

LIST_METHODS: Final[str] = "system.listMethods"
REQUEST_ID_HEADER: Final[str] = "X-Request-ID"

_current_request_id: ContextVar[str] = ContextVar("fake_xmlrpc_request_id", default="")


def _generate_request_id() -> str:
    """Generate a 16-char hex request ID for correlation."""
    return uuid.uuid4().hex[:16]


def _log_handler_error(action_name: str, exc: BaseException) -> None:
    """Log an exception that escaped a handler body, with traceback."""
    extra: dict[str, object] = {"action": action_name, "error_type": type(exc).__name__}
    request_id = _current_request_id.get()
    if request_id:
        extra["request_id"] = request_id
    _logger.error("Error in handler for %s: %s", action_name, exc, exc_info=True, extra=extra)


def _emit_access_log(
    action_name: str,
    remote_addr: str,
    duration_ms: float,
    status: Literal["ok", "fault"],
    fault_code: int | None = None,
) -> None:
    """Emit a structured access log record for a completed call."""
    if not _access_logger.isEnabledFor(logging.INFO):
        return
    extra: dict[str, object] = {
        "action": action_name,
        "remote_addr": remote_addr,
        "duration_ms": round(duration_ms, 2),
        "status": status,
    }
    if fault_code is not None:
        extra["fault_code"] = fault_code
    request_id = _current_request_id.get()
    if request_id:
        extra["request_id"] = request_id
    _access_logger.info("%s %s", action_name or "<undecoded>", status, extra=extra)


class _XmlRpcApp:
    """Decodes, dispatches and encodes one XML-RPC call."""

    __slots__ = ("_allow_none", "_dispatcher", "_enable_introspection")

    def __init__(self, dispatcher: Dispatcher, *, enable_introspection: bool, allow_none: bool) -> None:
        self._dispatcher = dispatcher
        self._enable_introspection = enable_introspection
        self._allow_none = allow_none

    def _list_methods(self) -> list[str]:
        return sorted([*self._dispatcher.actions(), LIST_METHODS])

    def invoke(self, action_name: str, params: dict[str, Any]) -> Any:
        """Run the call through the dispatcher, mapping failures to faults."""
        if self._enable_introspection and action_name == LIST_METHODS:
            return self._list_methods()
        try:
            return self._dispatcher.handle(action_name, params)
        except UnknownActionError:
            _logger.warning("Call to unknown action %s", action_name, extra={"action": action_name})
            return Fault(METHOD_NOT_FOUND, f'Method "{action_name}" is not supported')
        except TemplateRenderError as exc:
            _logger.error("%s", exc, exc_info=True, extra={"action": action_name, "error_type": type(exc).__name__})
            return Fault(INTERNAL_ERROR, str(exc))
        except Exception as exc:
            _log_handler_error(action_name, exc)
            return Fault(APPLICATION_ERROR, f"{type(exc).__name__}: {exc}")

    def respond(self, body: bytes) -> tuple[str, bytes, Fault | None]:
        """Answer a raw request body.

        Returns:
            ``(action_name, response_body, fault)``; *fault* is ``None`` for a
            successful call and *action_name* is empty when decoding failed.

        """
        try:
            action_name, params = decode_call(body)
        except DecodeError as exc:
            _logger.warning("Rejected XML-RPC request: %s", exc, extra={"fault_code": exc.fault_code})
            fault = exc.to_fault()
            return "", encode_fault(fault), fault

        result = self.invoke(action_name, params)
        if isinstance(result, Fault):
            return action_name, encode_fault(result), result
        try:
            return action_name, encode_response(result, allow_none=self._allow_none), None
        except EncodeError as exc:
            _logger.error(
                "Response for %s could not be encoded: %s",
                action_name,
                exc,
                extra={"action": action_name, "error_type": type(exc).__name__},
            )
            fault = exc.to_fault()
            return action_name, encode_fault(fault), fault


class _XmlRpcSink:
    """Falcon sink answering XML-RPC ``POST`` requests on every path."""

    def __init__(self, app: _XmlRpcApp) -> None:
        self._app = app

    def __call__(self, req: falcon.Request, resp: falcon.Response, **kwargs: Any) -> None:
        """Handle one XML-RPC call."""
        if req.method != "POST":
            raise falcon.HTTPMethodNotAllowed(["POST"])
        start = time.monotonic()
        action_name, payload, fault = self._app.respond(req.bounded_stream.read())
        resp.content_type = XML_CONTENT_TYPE
        resp.data = payload
        resp.status = falcon.HTTP_200
        _emit_access_log(
            action_name,
            req.remote_addr or "",
            (time.monotonic() - start) * 1000,
            "ok" if fault is None else "fault",
            fault.code if fault is not None else None,
        )


class _RequestIdMiddleware:
    """Falcon middleware that sets a per-request correlation ID.

    Reads ``X-Request-ID`` from the incoming request header or generates a
    new 16-char hex ID, stores it on the ``_current_request_id`` contextvar
    for log records, and echoes it back on the response.
    """

    def process_request(self, req: falcon.Request, resp: falcon.Response) -> None:
        """Set request ID from header or generate one; populate contextvar."""
        request_id = req.get_header(REQUEST_ID_HEADER) or _generate_request_id()
        req.context.request_id = request_id
        req.context.request_id_token = _current_request_id.set(request_id)

    def process_response(
        self,
        req: falcon.Request,
        resp: falcon.Response,
        resource: object,
        req_succeeded: bool,
    ) -> None:
        """Echo request ID on response header and reset contextvar."""
        request_id = getattr(req.context, "request_id", None)
        if request_id is not None:
            resp.set_header(REQUEST_ID_HEADER, request_id)
        token = getattr(req.context, "request_id_token", None)
        if token is not None:
            _current_request_id.reset(token)


def make_wsgi_app(
    dispatcher: Dispatcher,
    *,
    enable_introspection: bool = False,
    allow_none: bool = True,
) -> falcon.App[falcon.Request, falcon.Response]:
    """Create a Falcon WSGI app that answers XML-RPC calls via *dispatcher*.

    Args:
        dispatcher: Routes action calls to handlers and fixtures.
        enable_introspection: Answer ``system.listMethods`` with the sorted
            action names.
        allow_none: Allow ``None`` in responses (the ``<nil/>`` extension).

    Returns:
        A Falcon application accepting ``POST`` on any path.

    """
    handler = _XmlRpcApp(dispatcher, enable_introspection=enable_introspection, allow_none=allow_none)
    app: falcon.App[falcon.Request, falcon.Response] = falcon.App(middleware=[_RequestIdMiddleware()])
    app.add_sink(_XmlRpcSink(handler), prefix="/")

    _logger.info(
        "WSGI app created (%d actions, introspection=%s)",
        len(dispatcher.actions()),
        "enabled" if enable_introspection else "disabled",
        extra={"action_count": len(dispatcher.actions()), "introspection": enable_introspection},
    )
    return app
