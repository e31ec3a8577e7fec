"""HTTP transport for fake-xmlrpc using Falcon (WSGI app) and waitress (listener).

Provides ``make_wsgi_app`` to expose a ``Dispatcher`` as a Falcon WSGI
application, and ``make_sync_client`` to exercise it in-process.

HTTP Wire Protocol
------------------
- ``POST <any path>`` with an XML-RPC ``methodCall`` body.
- Responses are ``text/xml`` ``methodResponse`` documents, HTTP 200 for
  results and faults alike.
- Other HTTP methods get ``405 Method Not Allowed``.
- ``X-Request-ID`` is echoed back (or generated) on every response.
"""

from fake_xmlrpc.http._server import LIST_METHODS, REQUEST_ID_HEADER, make_wsgi_app
from fake_xmlrpc.http._testing import (
    _SyncTestClient,
    _SyncTestResponse,
    make_sync_client,
)

__all__ = [
    "LIST_METHODS",
    "REQUEST_ID_HEADER",
    "_SyncTestClient",
    "_SyncTestResponse",
    "make_sync_client",
    "make_wsgi_app",
]
