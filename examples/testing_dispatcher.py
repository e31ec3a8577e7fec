"""Testing handlers without a running server.

``make_sync_client`` wraps a Falcon ``TestClient`` so the full XML-RPC
encode/dispatch/decode path runs in-process with zero network I/O.

Run::

    python examples/testing_dispatcher.py
"""

from __future__ import annotations

import xmlrpc.client
from pathlib import Path

from fake_xmlrpc import Dispatcher, Fault, ResponseContext, load_fixtures
from fake_xmlrpc.http import make_sync_client
from fake_xmlrpc.response import Response

FIXTURE_DIR = Path(__file__).parent / "fixtures"


def product_get(ctx: ResponseContext) -> Response | Fault:
    """Answer Product.get for a single known product."""
    if fault := ctx.assert_params({"names": ["Calvin and Hobbes"]}):
        return fault
    return {"products": [{"id": 7, "name": "Calvin and Hobbes"}]}


def main() -> None:
    """Run the in-process examples."""
    dispatcher = Dispatcher(load_fixtures(FIXTURE_DIR))
    dispatcher.register("Product.get", product_get)
    client = make_sync_client(dispatcher)

    # --- Fixture-backed action ---------------------------------------------
    bugs = client.call("Bug.get", {"ids": [1]})["bugs"]
    assert bugs[0]["id"] == 1
    print(f"Bug.get(ids=[1]) = {bugs[0]['summary']}")

    try:
        client.call("Bug.get", {"ids": [99]})
    except xmlrpc.client.Fault as fault:
        assert fault.faultString == "Bug #99 does not exist."
        print(f"Bug.get(ids=[99]) fault = {fault.faultString}")

    # --- Programmatic action -----------------------------------------------
    products = client.call("Product.get", {"names": ["Calvin and Hobbes"]})["products"]
    assert products == [{"id": 7, "name": "Calvin and Hobbes"}]
    print(f"Product.get = {products}")

    try:
        client.call("Product.get", {"names": ["Spaceman Spiff"]})
    except xmlrpc.client.Fault as fault:
        print(f"Product.get fault = {fault.faultString}")

    print("All assertions passed!")


if __name__ == "__main__":
    main()
