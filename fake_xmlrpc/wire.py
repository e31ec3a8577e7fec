# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""XML-RPC request decoding and response encoding.

Marshalling itself is delegated to :mod:`xmlrpc.client`; this module adapts
its tuples and exceptions to the server's model: a call is an action name
plus a single argument struct, and an answer is either a value or a
:class:`~fake_xmlrpc.errors.Fault`.
"""

from __future__ import annotations

import xmlrpc.client
from collections.abc import Mapping
from typing import Any
from xml.parsers.expat import ExpatError

from fake_xmlrpc.errors import INTERNAL_ERROR, INVALID_PARAMS, PARSE_ERROR, Fault
from fake_xmlrpc.utils import thaw_value

__all__ = [
    "XML_CONTENT_TYPE",
    "DecodeError",
    "EncodeError",
    "decode_call",
    "encode_call",
    "encode_fault",
    "encode_response",
]

XML_CONTENT_TYPE = "text/xml"


class DecodeError(ValueError):
    """The request body is not a usable XML-RPC call."""

    def __init__(self, fault_code: int, message: str) -> None:
        """Initialize with the transport fault code to report."""
        self.fault_code = fault_code
        super().__init__(message)

    def to_fault(self) -> Fault:
        """Fault reported to the client for this decode failure."""
        return Fault(self.fault_code, str(self))


class EncodeError(TypeError):
    """A response value cannot be marshalled."""

    def to_fault(self) -> Fault:
        """Fault reported to the client instead of the unmarshallable value."""
        return Fault(INTERNAL_ERROR, f"response could not be encoded: {self}")


def decode_call(body: bytes) -> tuple[str, dict[str, Any]]:
    """Decode a ``methodCall`` document.

    A call with no params yields an empty struct.  A call whose only param is
    a struct yields that struct.  Anything else is rejected.

    Args:
        body: Raw request body.

    Returns:
        ``(action_name, params)``.

    Raises:
        DecodeError: ``PARSE_ERROR`` for malformed XML or a document that is
            not a call; ``INVALID_PARAMS`` for an unsupported argument shape.

    """
    try:
        args, method_name = xmlrpc.client.loads(body, use_builtin_types=True)
    except (ExpatError, xmlrpc.client.ResponseError, xmlrpc.client.Fault, ValueError, TypeError) as exc:
        raise DecodeError(PARSE_ERROR, f"parse error: not well formed ({exc})") from exc
    if not method_name:
        raise DecodeError(PARSE_ERROR, "parse error: request is not a methodCall")
    if not args:
        return method_name, {}
    if len(args) == 1 and isinstance(args[0], dict):
        return method_name, args[0]
    raise DecodeError(
        INVALID_PARAMS,
        f"invalid method parameters: {method_name} expects a single struct argument, got {len(args)} argument(s)",
    )


def encode_response(value: Any, *, allow_none: bool = True) -> bytes:
    """Encode a successful ``methodResponse``.

    Raises:
        EncodeError: If *value* contains something XML-RPC cannot represent.

    """
    try:
        text = xmlrpc.client.dumps((thaw_value(value),), methodresponse=True, allow_none=allow_none, encoding="utf-8")
    except (TypeError, OverflowError) as exc:
        raise EncodeError(str(exc)) from exc
    return text.encode("utf-8")


def encode_fault(fault: Fault) -> bytes:
    """Encode a ``methodResponse`` carrying *fault*."""
    text = xmlrpc.client.dumps(
        xmlrpc.client.Fault(fault.code, fault.message),
        methodresponse=True,
        encoding="utf-8",
    )
    return text.encode("utf-8")


def encode_call(action_name: str, params: Mapping[str, Any] | None = None, *, allow_none: bool = True) -> bytes:
    """Encode a ``methodCall`` with a single struct argument (client side)."""
    args: tuple[Any, ...] = (thaw_value(params),) if params is not None else ()
    return xmlrpc.client.dumps(args, methodname=action_name, allow_none=allow_none, encoding="utf-8").encode("utf-8")
